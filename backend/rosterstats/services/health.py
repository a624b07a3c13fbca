import logging
from datetime import datetime, timezone
from typing import Any, Dict, Optional

from rosterstats.config import Settings, settings as default_settings
from rosterstats.exceptions import SourceUnavailable
from rosterstats.services.cache import PlayerCache
from rosterstats.services.fetcher import Fetcher

logger = logging.getLogger(__name__)

HEALTHY = "healthy"
DEGRADED = "degraded"
UNHEALTHY = "unhealthy"


class HealthReporter:
    """Cache liveness plus origin reachability."""

    def __init__(self, cache: PlayerCache, fetcher: Fetcher, config: Optional[Settings] = None):
        self.cache = cache
        self.fetcher = fetcher
        self.config = config or default_settings

    async def check_health(self) -> Dict[str, Any]:
        cache_status = self._check_cache()
        if not cache_status["ok"]:
            status = UNHEALTHY
            source_status = {"ok": False, "checked": False}
        else:
            source_status = await self._check_source()
            status = HEALTHY if source_status["ok"] else DEGRADED

        return {
            "status": status,
            "cache": cache_status,
            "source": source_status,
            "timestamp": datetime.now(timezone.utc).isoformat(),
        }

    def _check_cache(self) -> Dict[str, Any]:
        try:
            ok = self.cache.ping()
            entries = len(self.cache)
        except Exception as e:
            logger.error(f"Cache health check failed: {e!r}")
            return {"ok": False, "error": str(e)}
        return {"ok": bool(ok), "entries": entries}

    async def _check_source(self) -> Dict[str, Any]:
        try:
            latency_ms = await self.fetcher.probe(self.config.health_probe_timeout)
        except SourceUnavailable as e:
            logger.warning(f"Origin probe failed: {e.message}")
            return {"ok": False, "checked": True, "error": e.message}
        return {"ok": True, "checked": True, "latency_ms": round(latency_ms, 1)}
