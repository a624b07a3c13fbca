"""
Pytest fixtures for the roster stats service tests.

Nothing here touches the network: FakeFetcher serves stats JSON shaped like
the origin API from in-memory splits, and FakeClock drives cache expiry.
"""
import asyncio
import json
from datetime import datetime, timezone
from typing import Dict, List, Optional

import pytest
from fastapi.testclient import TestClient

from rosterstats.config import Settings
from rosterstats.dependencies import build_services
from rosterstats.exceptions import SourceUnavailable
from rosterstats.main import create_app
from rosterstats.models import HITTING, PITCHING, RawPage, SourceQuery, TEAM_SCOPE
from rosterstats.services.cache import PlayerCache
from rosterstats.services.fetcher import Fetcher, RetryableFetchError
from rosterstats.services.query_service import PlayerQueryService
from rosterstats.utils import TEAMS


class FakeClock:
    """Manually advanced monotonic clock."""

    def __init__(self, start: float = 1000.0):
        self.now = start

    def __call__(self) -> float:
        return self.now

    def advance(self, seconds: float) -> None:
        self.now += seconds


def make_split(player_id: int, name: str, team_id: int, position: str, stat: dict, number: str = None) -> dict:
    """One row as the stats API returns it."""
    player = {"id": player_id, "fullName": name, "link": f"/api/v1/people/{player_id}"}
    if number is not None:
        player["primaryNumber"] = number
    return {
        "season": "2025",
        "stat": stat,
        "team": {"id": team_id, "name": next(t.name for t in TEAMS.values() if t.team_id == team_id)},
        "player": player,
        "position": {"abbreviation": position},
    }


def make_stats_body(splits: List[dict]) -> str:
    return json.dumps({"stats": [{"type": {"displayName": "season"}, "splits": splits}]})


HITTING_SPLITS = [
    make_split(592450, "Aaron Judge", 147, "RF", {"gamesPlayed": 152, "homeRuns": 53, "rbi": 114, "avg": ".331", "ops": "1.144"}, "99"),
    make_split(683011, "Anthony Volpe", 147, "SS", {"gamesPlayed": 153, "homeRuns": 19, "rbi": 72, "avg": ".212", "ops": ".663"}, "11"),
    make_split(519317, "Giancarlo Stanton", 147, "DH", {"gamesPlayed": 70, "homeRuns": 24, "rbi": 66, "avg": ".273", "ops": ".944"}, "27"),
    make_split(646240, "Rafael Devers", 111, "3B", {"gamesPlayed": 73, "homeRuns": 15, "rbi": 58, "avg": ".272", "ops": ".905"}),
    make_split(660271, "Shohei Ohtani", 119, "DH", {"gamesPlayed": 158, "homeRuns": 55, "rbi": 102, "avg": ".282", "ops": "1.014"}),
    make_split(660670, "Ronald Acuña Jr.", 144, "RF", {"gamesPlayed": 95, "homeRuns": 21, "rbi": 42, "avg": ".290", "ops": ".935"}),
    make_split(665487, "Fernando Tatis Jr.", 135, "RF", {"gamesPlayed": 155, "homeRuns": 25, "rbi": 71, "avg": ".268", "ops": ".814"}),
    make_split(677951, "Bobby Witt Jr.", 118, "SS", {"gamesPlayed": 157, "homeRuns": 23, "rbi": 88, "avg": ".295", "ops": ".852"}),
]

PITCHING_SPLITS = [
    make_split(543037, "Gerrit Cole", 147, "P", {"wins": 8, "losses": 5, "era": "3.41", "inningsPitched": "95.0", "whip": "1.13"}),
    make_split(660271, "Shohei Ohtani", 119, "P", {"wins": 1, "losses": 1, "era": "2.87", "inningsPitched": "47.0", "whip": "1.04"}),
]


class FakeFetcher(Fetcher):
    """
    Fetcher serving in-memory splits.

    Args:
        failures: number of attempts that fail with a retryable error first
        fail_always: every attempt fails
        delay: seconds each attempt sleeps before answering
        probe_ok: whether probe() succeeds
    """

    def __init__(
        self,
        config: Settings,
        splits: Optional[Dict[str, List[dict]]] = None,
        failures: int = 0,
        fail_always: bool = False,
        delay: float = 0.0,
        probe_ok: bool = True,
    ):
        super().__init__(config)
        self.splits = splits if splits is not None else {HITTING: HITTING_SPLITS, PITCHING: PITCHING_SPLITS}
        self.failures = failures
        self.fail_always = fail_always
        self.delay = delay
        self.probe_ok = probe_ok
        self.fetches: List[str] = []
        self.attempts: List[str] = []
        self.closed = False

    @property
    def fetch_count(self) -> int:
        return len(self.fetches)

    @property
    def probe_url(self) -> str:
        return "http://origin.test/sports/1"

    def build_url(self, query: SourceQuery) -> str:
        return f"http://origin.test/{query.cache_key}"

    async def fetch(self, query: SourceQuery) -> RawPage:
        self.fetches.append(query.cache_key)
        return await super().fetch(query)

    async def _fetch_once(self, query: SourceQuery, url: str) -> RawPage:
        self.attempts.append(query.cache_key)
        if self.delay:
            await asyncio.sleep(self.delay)
        if self.fail_always or self.failures > 0:
            self.failures -= 1
            raise RetryableFetchError("HTTP 503")

        splits = self.splits.get(query.stat_type, [])
        if query.scope == TEAM_SCOPE:
            team_id = TEAMS[query.team].team_id
            splits = [s for s in splits if s["team"]["id"] == team_id]
        return RawPage(
            query=query,
            url=url,
            body=make_stats_body(splits),
            content_type="json",
            fetched_at=datetime.now(timezone.utc),
        )

    async def probe(self, timeout: Optional[float] = None) -> float:
        if not self.probe_ok:
            raise SourceUnavailable("Origin probe failed: ConnectError")
        return 12.5

    async def close(self) -> None:
        self.closed = True


@pytest.fixture
def config():
    """Fast settings: no backoff, two attempts per fetch."""
    return Settings(
        fetch_retries=2,
        fetch_backoff_base=0.0,
        fetch_backoff_max=0.0,
        cache_ttl_seconds=300,
        cache_max_entries=100,
        max_concurrent_fetches=4,
        max_queued_fetches=16,
        warm_cache_on_startup=False,
    )


@pytest.fixture
def clock():
    return FakeClock()


@pytest.fixture
def cache(clock, config):
    return PlayerCache(ttl_seconds=config.cache_ttl_seconds, max_entries=config.cache_max_entries, clock=clock)


@pytest.fixture
def fetcher(config):
    return FakeFetcher(config)


@pytest.fixture
def service(cache, fetcher, config):
    return PlayerQueryService(cache, fetcher, config=config)


@pytest.fixture
def split_factory():
    return make_split


@pytest.fixture
def hitting_splits():
    return list(HITTING_SPLITS)


@pytest.fixture
def make_json_page():
    """Build a stats JSON RawPage from splits."""
    def _make(splits: List[dict], query: Optional[SourceQuery] = None, body: Optional[str] = None) -> RawPage:
        return RawPage(
            query=query or SourceQuery.for_league(HITTING),
            url="http://origin.test/stats",
            body=make_stats_body(splits) if body is None else body,
            content_type="json",
            fetched_at=datetime(2025, 7, 1, tzinfo=timezone.utc),
        )
    return _make


@pytest.fixture
def make_html_page():
    def _make(html: str, query: Optional[SourceQuery] = None) -> RawPage:
        return RawPage(
            query=query or SourceQuery.for_league(HITTING),
            url="https://www.mlb.com/stats/",
            body=html,
            content_type="html",
            fetched_at=datetime(2025, 7, 1, tzinfo=timezone.utc),
        )
    return _make


@pytest.fixture
def client(config, fetcher, cache):
    """TestClient whose lifespan wires the fake fetcher and fake-clock cache."""
    app = create_app(lambda: build_services(config, fetcher=fetcher, cache=cache))
    with TestClient(app) as c:
        yield c
