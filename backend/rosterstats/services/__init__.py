# Services module
from rosterstats.services.cache import PlayerCache, CacheEntry, CacheStore, MemoryStore
from rosterstats.services.fetcher import Fetcher, HttpFetcher, BrowserFetcher, build_fetcher
from rosterstats.services.flight import SingleFlight, FetchLimiter
from rosterstats.services.parser import PlayerParser, ParseResult, ParseWarning
from rosterstats.services.query_service import PlayerQueryService
from rosterstats.services.health import HealthReporter

__all__ = [
    "PlayerCache",
    "CacheEntry",
    "CacheStore",
    "MemoryStore",
    "Fetcher",
    "HttpFetcher",
    "BrowserFetcher",
    "build_fetcher",
    "SingleFlight",
    "FetchLimiter",
    "PlayerParser",
    "ParseResult",
    "ParseWarning",
    "PlayerQueryService",
    "HealthReporter",
]
