import logging

from fastapi import APIRouter, Depends

from rosterstats.dependencies import ServiceContainer, get_services
from rosterstats.schemas.player import CacheStatsResponse

logger = logging.getLogger(__name__)
router = APIRouter()


@router.get("/cache", response_model=CacheStatsResponse)
async def get_cache_stats(services: ServiceContainer = Depends(get_services)):
    """Entry count and hit/miss counters for the player cache."""
    stats = services.cache.stats()
    stats["inflight_fetches"] = services.query_service.inflight_fetches
    return stats


@router.post("/cache/clear")
async def clear_cache(services: ServiceContainer = Depends(get_services)):
    """Drop every cached dataset; the next request refetches from the origin."""
    dropped = len(services.cache)
    services.cache.clear()
    logger.info(f"Cache cleared via admin endpoint ({dropped} entries)")
    return {"cleared": dropped}


@router.post("/cache/sweep")
async def sweep_cache(services: ServiceContainer = Depends(get_services)):
    """Run an expiry sweep now instead of waiting for the scheduled one."""
    return {"removed": services.cache.sweep()}
