"""
FastAPI Dependency Injection Container

Services are built once in the app lifespan by build_services() and stored
on ``app.state.services``; route handlers reach them through the dependency
functions below rather than through module-level singletons.
"""
from dataclasses import dataclass
from typing import Optional

from fastapi import Request

from rosterstats.config import Settings, settings as default_settings
from rosterstats.services.cache import PlayerCache
from rosterstats.services.fetcher import Fetcher, build_fetcher
from rosterstats.services.health import HealthReporter
from rosterstats.services.parser import PlayerParser
from rosterstats.services.query_service import PlayerQueryService


@dataclass
class ServiceContainer:
    """The wired service graph for one application instance."""

    config: Settings
    cache: PlayerCache
    fetcher: Fetcher
    query_service: PlayerQueryService
    health_reporter: HealthReporter

    async def close(self) -> None:
        await self.fetcher.close()
        self.cache.clear()


def build_services(
    config: Optional[Settings] = None,
    fetcher: Optional[Fetcher] = None,
    cache: Optional[PlayerCache] = None,
) -> ServiceContainer:
    """Wire cache, fetcher, parser, query service and health reporter."""
    config = config or default_settings
    # PlayerCache defines __len__, so an empty cache is falsy
    if cache is None:
        cache = PlayerCache(
            ttl_seconds=config.cache_ttl_seconds,
            max_entries=config.cache_max_entries,
        )
    if fetcher is None:
        fetcher = build_fetcher(config)
    query_service = PlayerQueryService(cache, fetcher, PlayerParser(), config=config)
    return ServiceContainer(
        config=config,
        cache=cache,
        fetcher=fetcher,
        query_service=query_service,
        health_reporter=HealthReporter(cache, fetcher, config),
    )


# FastAPI dependency functions
def get_services(request: Request) -> ServiceContainer:
    return request.app.state.services


def get_query_service(request: Request) -> PlayerQueryService:
    """
    FastAPI dependency for PlayerQueryService.

    Usage:
        @router.get("/players")
        async def players(service: PlayerQueryService = Depends(get_query_service)):
            ...
    """
    return request.app.state.services.query_service


def get_health_reporter(request: Request) -> HealthReporter:
    return request.app.state.services.health_reporter
