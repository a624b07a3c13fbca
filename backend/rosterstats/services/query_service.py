"""
Player query service.

Composes cache -> fetch -> parse -> cache fill, then filters, searches and
paginates in memory. All fetch/parse failures are translated into the
service's error taxonomy here; nothing from httpx or Playwright escapes.
"""
import logging
from typing import Dict, List, Optional, Sequence, Tuple

from rosterstats.config import Settings, settings as default_settings
from rosterstats.exceptions import (
    InvalidArgument,
    NotFound,
    Overloaded,
    RosterStatsError,
    SourceUnavailable,
)
from rosterstats.models import (
    Player,
    PlayerQuery,
    QueryResult,
    SourceQuery,
    STAT_TYPES,
    normalize_stat_type,
)
from rosterstats.services.cache import CacheEntry, PlayerCache
from rosterstats.services.fetcher import Fetcher
from rosterstats.services.flight import FetchLimiter, SingleFlight
from rosterstats.services.parser import PlayerParser
from rosterstats.utils import (
    POSITIONS,
    fold_text,
    normalize_team_code,
    sanitize_error_message,
    validate_search_query,
)

logger = logging.getLogger(__name__)

MISSING_FILTER_MESSAGE = "At least one filter parameter is required"


def paginate(items: Sequence[Player], limit: int, offset: int) -> List[Player]:
    """Slice the post-filter result. Offset past the end or limit 0 gives []."""
    if limit < 0 or offset < 0:
        raise InvalidArgument("limit and offset must be non-negative integers")
    return list(items[offset:offset + limit])


class PlayerQueryService:
    """
    Public query operations over cached, normalized player datasets.

    The cache, fetcher and parser are injected so the same service runs
    against the HTTP or browser fetcher, and against fakes in tests.
    """

    def __init__(
        self,
        cache: PlayerCache,
        fetcher: Fetcher,
        parser: Optional[PlayerParser] = None,
        config: Optional[Settings] = None,
        limiter: Optional[FetchLimiter] = None,
    ):
        self.config = config or default_settings
        self.cache = cache
        self.fetcher = fetcher
        self.parser = parser or PlayerParser()
        self.limiter = limiter or FetchLimiter(
            self.config.max_concurrent_fetches,
            self.config.max_queued_fetches,
        )
        self._flights = SingleFlight()

    @property
    def inflight_fetches(self) -> int:
        return len(self._flights)

    # ------------------------------------------------------------------
    # Public operations
    # ------------------------------------------------------------------

    async def list_players(self, query: PlayerQuery) -> QueryResult:
        """Dispatch to one filter (search, then team, then position) and paginate."""
        if not query.has_filter():
            raise InvalidArgument(MISSING_FILTER_MESSAGE)
        if query.limit < 0 or query.offset < 0:
            raise InvalidArgument("limit and offset must be non-negative integers")

        if query.search is not None and query.search.strip():
            result = await self.search_players(query.search, query.stat_type)
        elif query.team is not None and query.team.strip():
            result = await self.get_players_by_team(query.team, query.stat_type)
        else:
            result = await self.get_players_by_position(query.position, query.stat_type)

        page = paginate(result.players, query.limit, query.offset)
        logger.info(f"Returning {len(page)} players (total: {result.total}) for {result.cache_key}")
        return QueryResult(players=page, total=result.total, cache_key=result.cache_key, stale=result.stale)

    async def get_players_by_team(self, team_code: str, stat_type: Optional[str] = None) -> QueryResult:
        stat_type = self._stat_type(stat_type)
        try:
            code = normalize_team_code(team_code)
        except ValueError as e:
            raise InvalidArgument(str(e))

        source = SourceQuery.for_team(code, stat_type)
        players, stale = await self._dataset(source, lambda ps: [p for p in ps if p.team == code])
        return QueryResult(players=list(players), total=len(players), cache_key=source.cache_key, stale=stale)

    async def get_players_by_position(self, position: str, stat_type: Optional[str] = None) -> QueryResult:
        stat_type = self._stat_type(stat_type)
        if position is None or not position.strip():
            raise InvalidArgument("Position cannot be empty")
        pos = position.strip().upper()
        if pos not in POSITIONS:
            raise InvalidArgument(
                f"Unknown position '{position.strip()}': expected one of {', '.join(sorted(POSITIONS))}"
            )

        key = f"position:{pos}:{stat_type}"
        return await self._derived(key, stat_type, lambda ps: [p for p in ps if p.position == pos])

    async def search_players(self, term: str, stat_type: Optional[str] = None) -> QueryResult:
        stat_type = self._stat_type(stat_type)
        try:
            validated = validate_search_query(term or "", self.config.search_max_length)
        except ValueError as e:
            raise InvalidArgument(str(e))

        needle = fold_text(validated)
        key = f"search:{needle}:{stat_type}"

        def _match(players: Sequence[Player]) -> List[Player]:
            hits = [p for p in players if needle in fold_text(p.name)]
            return sorted(hits, key=lambda p: (fold_text(p.name), p.id))

        return await self._derived(key, stat_type, _match)

    async def get_player_stats(self, player_id: str, stat_type: Optional[str] = None) -> Dict[str, Player]:
        """
        Look a player up by id across cached datasets, then the league dataset.

        Returns a mapping stat_type -> Player for each stat type the player
        appears under.

        Raises:
            NotFound: if the id is absent from every reachable dataset
        """
        if player_id is None or not str(player_id).strip():
            raise InvalidArgument("Player id cannot be empty")
        player_id = str(player_id).strip()
        stat_types = (self._stat_type(stat_type),) if stat_type else STAT_TYPES

        found: Dict[str, Player] = {}
        for entry in self.cache.live_entries():
            for p in entry.payload:
                if p.id == player_id and p.stat_type in stat_types:
                    found.setdefault(p.stat_type, p)

        failures: List[RosterStatsError] = []
        for st in stat_types:
            if st in found:
                continue
            try:
                players, _ = await self._dataset(SourceQuery.for_league(st))
            except (SourceUnavailable, Overloaded) as e:
                failures.append(e)
                continue
            match = next((p for p in players if p.id == player_id), None)
            if match is not None:
                found[st] = match

        if found:
            return found
        if failures:
            # Could not rule the player out; surface the origin failure
            raise failures[0]
        raise NotFound(f"Player {player_id} not found")

    async def warm(self) -> None:
        """Prefetch the league datasets."""
        for st in STAT_TYPES:
            try:
                await self._dataset(SourceQuery.for_league(st))
            except RosterStatsError as e:
                logger.warning(f"Cache warm-up for {st} failed: {e.message}")

    # ------------------------------------------------------------------
    # Cache-or-fetch plumbing
    # ------------------------------------------------------------------

    def _stat_type(self, stat_type: Optional[str]) -> str:
        try:
            return normalize_stat_type(stat_type)
        except ValueError as e:
            raise InvalidArgument(str(e))

    async def _derived(self, key: str, stat_type: str, select) -> QueryResult:
        """Result computed from the league dataset, cached under its own key."""
        cached = self.cache.get(key)
        if cached is not None:
            return QueryResult(players=list(cached), total=len(cached), cache_key=key)

        league, stale = await self._dataset(SourceQuery.for_league(stat_type))
        players = tuple(select(league))
        if not stale:
            self.cache.set(key, players)
        return QueryResult(players=list(players), total=len(players), cache_key=key, stale=stale)

    async def _dataset(self, source: SourceQuery, select=None) -> Tuple[Tuple[Player, ...], bool]:
        """
        Cache-or-fetch one origin dataset.

        Returns (players, stale). Stale is True when the origin failed and an
        expired entry was served instead.
        """
        key = source.cache_key
        # Taken before get(), which evicts expired entries
        previous = self.cache.lookup(key)
        cached = self.cache.get(key)
        if cached is not None:
            return cached, False

        # Joiners share the leader's outcome, including its stale fallback
        return await self._flights.do(key, lambda: self._fill_or_stale(source, select, previous))

    async def _fill_or_stale(
        self,
        source: SourceQuery,
        select,
        previous: Optional[CacheEntry],
    ) -> Tuple[Tuple[Player, ...], bool]:
        key = source.cache_key
        try:
            players = await self._fetch_and_fill(source, select)
        except SourceUnavailable as e:
            if previous is None:
                raise
            # Keep the expired entry around for later fallbacks until swept
            self.cache.restore(previous)
            logger.warning(f"Serving stale {key}: {e.message}")
            return previous.payload, True
        return players, False

    async def _fetch_and_fill(self, source: SourceQuery, select=None) -> Tuple[Player, ...]:
        key = source.cache_key
        async with self.limiter.slot():
            try:
                page = await self.fetcher.fetch(source)
            except RosterStatsError:
                raise
            except Exception as e:
                logger.error(f"Unexpected fetch failure for {key}: {e!r}")
                raise SourceUnavailable(f"Origin fetch failed for {key}: {sanitize_error_message(e)}")

        try:
            parsed = self.parser.parse(page)
        except Exception as e:
            logger.error(f"Parser failed for {key}: {e!r}")
            raise SourceUnavailable(f"Could not read origin data for {key}: {sanitize_error_message(e)}")

        players = tuple(select(parsed) if select is not None else parsed)
        self.cache.set(key, players)
        logger.info(f"Cached {len(players)} players under {key}")
        return players
