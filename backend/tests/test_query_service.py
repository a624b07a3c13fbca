"""Tests for PlayerQueryService: filters, caching, single-flight, stale fallback."""
import asyncio
from unittest.mock import patch

import pytest

from rosterstats.exceptions import InvalidArgument, NotFound, Overloaded, SourceUnavailable
from rosterstats.models import PlayerQuery
from rosterstats.services.flight import FetchLimiter
from rosterstats.services.query_service import MISSING_FILTER_MESSAGE, PlayerQueryService, paginate


class TestTeamFilter:
    async def test_returns_only_that_team(self, service, fetcher):
        result = await service.get_players_by_team("nyy")

        assert result.total == 3
        assert {p.team for p in result.players} == {"NYY"}
        assert result.cache_key == "team:NYY:hitting"
        assert fetcher.fetches == ["team:NYY:hitting"]

    async def test_second_call_served_from_cache(self, service, fetcher):
        await service.get_players_by_team("NYY")
        await service.get_players_by_team("NYY")

        assert fetcher.fetch_count == 1

    async def test_refetches_after_ttl(self, service, fetcher, clock):
        await service.get_players_by_team("NYY")
        clock.advance(300)
        await service.get_players_by_team("NYY")

        assert fetcher.fetch_count == 2

    async def test_stat_type_is_part_of_key(self, service, fetcher):
        hitters = await service.get_players_by_team("NYY", "hitting")
        pitchers = await service.get_players_by_team("NYY", "pitching")

        assert fetcher.fetches == ["team:NYY:hitting", "team:NYY:pitching"]
        assert [p.name for p in pitchers.players] == ["Gerrit Cole"]
        assert "Gerrit Cole" not in [p.name for p in hitters.players]

    async def test_invalid_team_never_fetches(self, service, fetcher):
        with pytest.raises(InvalidArgument):
            await service.get_players_by_team("XYZ")
        with pytest.raises(InvalidArgument):
            await service.get_players_by_team("")

        assert fetcher.fetch_count == 0

    async def test_invalid_stat_type(self, service):
        with pytest.raises(InvalidArgument, match="statType"):
            await service.get_players_by_team("NYY", "fielding")


class TestSearchAndPosition:
    async def test_search_is_accent_insensitive(self, service):
        result = await service.search_players("acuna")

        assert [p.name for p in result.players] == ["Ronald Acuña Jr."]

    async def test_search_results_sorted_by_name(self, service):
        result = await service.search_players("jr")

        assert [p.name for p in result.players] == [
            "Bobby Witt Jr.",
            "Fernando Tatis Jr.",
            "Ronald Acuña Jr.",
        ]

    async def test_repeated_search_fetches_once(self, service, fetcher, cache):
        await service.search_players("Judge")
        await service.search_players("  judge ")

        assert fetcher.fetch_count == 1
        assert cache.get("search:judge:hitting") is not None

    async def test_search_and_position_share_league_dataset(self, service, fetcher):
        await service.search_players("judge")
        result = await service.get_players_by_position("ss")

        assert fetcher.fetches == ["league:hitting"]
        assert [p.name for p in result.players] == ["Anthony Volpe", "Bobby Witt Jr."]

    async def test_empty_and_long_search_rejected(self, service, config):
        with pytest.raises(InvalidArgument):
            await service.search_players("   ")
        with pytest.raises(InvalidArgument):
            await service.search_players("x" * (config.search_max_length + 1))

    async def test_unknown_position_rejected(self, service, fetcher):
        with pytest.raises(InvalidArgument, match="Unknown position"):
            await service.get_players_by_position("QB")
        assert fetcher.fetch_count == 0

    async def test_no_matches_is_empty_not_error(self, service):
        result = await service.search_players("zzzz")

        assert result.players == []
        assert result.total == 0


class TestListPlayers:
    async def test_requires_a_filter(self, service):
        with pytest.raises(InvalidArgument) as exc_info:
            await service.list_players(PlayerQuery())
        assert exc_info.value.message == MISSING_FILTER_MESSAGE

    async def test_blank_filters_count_as_missing(self, service):
        with pytest.raises(InvalidArgument):
            await service.list_players(PlayerQuery(team="  ", search=""))

    async def test_pagination_after_filtering(self, service):
        first = await service.list_players(PlayerQuery(team="NYY", limit=2))
        rest = await service.list_players(PlayerQuery(team="NYY", limit=2, offset=2))
        past_end = await service.list_players(PlayerQuery(team="NYY", offset=10))

        assert len(first.players) == 2
        assert first.total == 3
        assert len(rest.players) == 1
        assert past_end.players == []
        assert past_end.total == 3

    async def test_limit_zero(self, service):
        result = await service.list_players(PlayerQuery(team="NYY", limit=0))
        assert result.players == []
        assert result.total == 3

    async def test_search_takes_precedence(self, service):
        result = await service.list_players(PlayerQuery(team="BOS", position="C", search="judge"))

        assert result.cache_key == "search:judge:hitting"
        assert [p.name for p in result.players] == ["Aaron Judge"]

    async def test_team_before_position(self, service):
        result = await service.list_players(PlayerQuery(team="BOS", position="SS"))

        assert result.cache_key == "team:BOS:hitting"

    async def test_negative_paging_rejected(self, service):
        with pytest.raises(InvalidArgument):
            await service.list_players(PlayerQuery(team="NYY", offset=-1))


def test_paginate():
    assert paginate([1, 2, 3, 4], 2, 1) == [2, 3]
    assert paginate([1, 2], 5, 0) == [1, 2]
    with pytest.raises(InvalidArgument):
        paginate([1], -1, 0)


class TestConcurrency:
    async def test_concurrent_cold_requests_fetch_once(self, service, fetcher):
        fetcher.delay = 0.02

        results = await asyncio.gather(*(service.get_players_by_team("NYY") for _ in range(10)))

        assert fetcher.fetch_count == 1
        assert all(r.total == 3 for r in results)
        assert service.inflight_fetches == 0

    async def test_overloaded_when_queue_full(self, cache, fetcher, config):
        fetcher.delay = 0.05
        service = PlayerQueryService(cache, fetcher, config=config, limiter=FetchLimiter(1, 0))

        results = await asyncio.gather(
            service.get_players_by_team("NYY"),
            service.get_players_by_team("BOS"),
            return_exceptions=True,
        )

        assert results[0].total == 3
        assert isinstance(results[1], Overloaded)


class TestFailures:
    async def test_transient_failure_retried(self, service, fetcher):
        fetcher.failures = 1

        result = await service.get_players_by_team("NYY")

        assert result.total == 3
        assert fetcher.fetch_count == 1
        assert len(fetcher.attempts) == 2

    async def test_failure_without_cache_raises(self, service, fetcher, cache):
        fetcher.fail_always = True

        with pytest.raises(SourceUnavailable):
            await service.get_players_by_team("NYY")
        assert len(cache) == 0

    async def test_stale_entry_served_when_origin_down(self, service, fetcher, clock):
        fresh = await service.get_players_by_team("NYY")
        clock.advance(301)
        fetcher.fail_always = True

        stale = await service.get_players_by_team("NYY")
        again = await service.get_players_by_team("NYY")

        assert stale.stale is True
        assert again.stale is True
        assert [p.id for p in stale.players] == [p.id for p in fresh.players]

    async def test_concurrent_callers_all_get_stale_entry(self, service, fetcher, clock):
        await service.get_players_by_team("NYY")
        clock.advance(301)
        fetcher.fail_always = True
        fetcher.delay = 0.05

        results = await asyncio.gather(
            service.get_players_by_team("NYY"),
            service.get_players_by_team("NYY"),
            return_exceptions=True,
        )

        assert all(not isinstance(r, Exception) for r in results)
        assert [r.stale for r in results] == [True, True]
        assert results[0].players == results[1].players
        assert fetcher.fetch_count == 2

    async def test_stale_entry_gone_after_sweep(self, service, fetcher, clock, cache):
        await service.get_players_by_team("NYY")
        clock.advance(301)
        cache.sweep()
        fetcher.fail_always = True

        with pytest.raises(SourceUnavailable):
            await service.get_players_by_team("NYY")

    async def test_stale_derived_result_not_cached(self, service, fetcher, clock, cache):
        await service.search_players("judge")
        clock.advance(301)
        fetcher.fail_always = True

        result = await service.search_players("judge")

        assert result.stale is True
        assert cache.lookup("search:judge:hitting") is None

    async def test_parser_crash_becomes_source_unavailable(self, service):
        with patch.object(service.parser, "parse", side_effect=RuntimeError("layout changed")):
            with pytest.raises(SourceUnavailable, match="Could not read origin data"):
                await service.get_players_by_team("NYY")


class TestPlayerStats:
    async def test_found_in_league_dataset(self, service, fetcher):
        by_type = await service.get_player_stats("592450")

        assert list(by_type) == ["hitting"]
        assert by_type["hitting"].name == "Aaron Judge"
        assert sorted(fetcher.fetches) == ["league:hitting", "league:pitching"]

    async def test_two_way_player_has_both(self, service):
        by_type = await service.get_player_stats("660271")

        assert set(by_type) == {"hitting", "pitching"}
        assert by_type["pitching"].stats["era"] == pytest.approx(2.87)

    async def test_uses_cached_team_dataset(self, service, fetcher):
        await service.get_players_by_team("NYY")

        by_type = await service.get_player_stats("592450", "hitting")

        assert by_type["hitting"].team == "NYY"
        assert fetcher.fetches == ["team:NYY:hitting"]

    async def test_unknown_player(self, service):
        with pytest.raises(NotFound):
            await service.get_player_stats("1")

    async def test_unknown_player_with_origin_down(self, service, fetcher):
        fetcher.fail_always = True

        with pytest.raises(SourceUnavailable):
            await service.get_player_stats("1")

    async def test_empty_id(self, service):
        with pytest.raises(InvalidArgument):
            await service.get_player_stats(" ")


class TestWarm:
    async def test_warm_fills_league_datasets(self, service, cache):
        await service.warm()

        assert cache.get("league:hitting") is not None
        assert cache.get("league:pitching") is not None

    async def test_warm_failure_is_logged_not_raised(self, service, fetcher):
        fetcher.fail_always = True
        await service.warm()
