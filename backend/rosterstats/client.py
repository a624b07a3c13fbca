"""
Client-side mirror of the service contract.

ClientCache is the per-session in-memory cache every dashboard frontend keeps
in front of the API (same expiry rules as the server cache). RosterStatsClient
is an async httpx client for the HTTP surface that reads through it.
"""
import logging
import time
from typing import Any, Callable, Dict, List, Optional, Tuple

import httpx

logger = logging.getLogger(__name__)

DEFAULT_EXPIRES_IN = 5 * 60  # seconds


class ClientCache:
    """In-memory key -> value cache with per-item expiry."""

    def __init__(self, default_expires_in: float = DEFAULT_EXPIRES_IN, clock: Callable[[], float] = time.monotonic):
        self.default_expires_in = default_expires_in
        self._clock = clock
        self._items: Dict[str, Tuple[Any, float]] = {}

    def set(self, key: str, value: Any, expires_in: Optional[float] = None) -> None:
        expires_in = self.default_expires_in if expires_in is None else expires_in
        self._items[key] = (value, self._clock() + expires_in)

    def get(self, key: str) -> Optional[Any]:
        item = self._items.get(key)
        if item is None:
            return None
        value, expires_at = item
        if self._clock() >= expires_at:
            del self._items[key]
            return None
        return value

    def clear(self) -> None:
        self._items.clear()

    def clear_expired(self) -> int:
        now = self._clock()
        expired = [k for k, (_, expires_at) in self._items.items() if now >= expires_at]
        for key in expired:
            del self._items[key]
        return len(expired)

    def __len__(self) -> int:
        return len(self._items)


class RosterStatsClientError(Exception):
    def __init__(self, message: str, status_code: Optional[int] = None):
        super().__init__(message)
        self.status_code = status_code


class RosterStatsClient:
    """
    Async client for the roster stats API with read-through caching.

    Usage:
        async with RosterStatsClient("http://localhost:8000") as client:
            players = await client.get_players(team="NYY", limit=10)
    """

    def __init__(
        self,
        base_url: str,
        cache: Optional[ClientCache] = None,
        timeout: float = 30.0,
        transport: Optional[httpx.AsyncBaseTransport] = None,
    ):
        self.cache = cache if cache is not None else ClientCache()
        self._client = httpx.AsyncClient(
            base_url=base_url.rstrip("/"),
            timeout=timeout,
            headers={"Accept": "application/json"},
            transport=transport,
        )
        # Set when the last players response was served stale by the server
        self.last_response_stale = False

    async def __aenter__(self) -> "RosterStatsClient":
        return self

    async def __aexit__(self, *exc) -> None:
        await self.close()

    async def close(self) -> None:
        await self._client.aclose()

    async def get_players(
        self,
        team: Optional[str] = None,
        position: Optional[str] = None,
        search: Optional[str] = None,
        stat_type: str = "hitting",
        limit: int = 50,
        offset: int = 0,
    ) -> List[Dict[str, Any]]:
        params: Dict[str, Any] = {"statType": stat_type, "limit": limit, "offset": offset}
        for name, value in (("team", team), ("position", position), ("search", search)):
            if value is not None:
                params[name] = value
        return await self._get_cached("/api/v1/players/", params)

    async def get_player(self, player_id: str, stat_type: Optional[str] = None) -> Dict[str, Any]:
        params = {"statType": stat_type} if stat_type else {}
        return await self._get_cached(f"/api/v1/players/{player_id}", params)

    async def health(self) -> Dict[str, Any]:
        # Never cached
        response = await self._client.get("/health")
        return response.json()

    async def _get_cached(self, path: str, params: Dict[str, Any]) -> Any:
        key = f"{path}?{'&'.join(f'{k}={params[k]}' for k in sorted(params))}"
        cached = self.cache.get(key)
        if cached is not None:
            logger.debug(f"Client cache hit: {key}")
            return cached

        try:
            response = await self._client.get(path, params=params)
        except httpx.HTTPError as e:
            raise RosterStatsClientError(f"Request to {path} failed: {e}") from e

        if response.status_code >= 400:
            try:
                message = response.json().get("error", response.text)
            except ValueError:
                message = response.text
            raise RosterStatsClientError(message, status_code=response.status_code)

        data = response.json()
        self.last_response_stale = response.headers.get("X-Data-Stale") == "true"
        # Stale data is shown but not cached, so the next call retries the server
        if not self.last_response_stale:
            self.cache.set(key, data)
        return data
