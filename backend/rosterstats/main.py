import logging
from contextlib import asynccontextmanager
from typing import Callable, Optional

from apscheduler.schedulers.asyncio import AsyncIOScheduler
from fastapi import Depends, FastAPI, Request
from fastapi.exceptions import RequestValidationError
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse

from rosterstats.config import settings
from rosterstats.dependencies import ServiceContainer, build_services, get_health_reporter
from rosterstats.api.v1.router import api_router
from rosterstats.exceptions import Overloaded, RosterStatsError
from rosterstats.schemas.player import HealthResponse
from rosterstats.services.health import UNHEALTHY, HealthReporter

logging.basicConfig(
    level=getattr(logging, settings.log_level.upper(), logging.INFO),
    format="%(asctime)s [%(levelname)s] %(name)s: %(message)s",
)
logger = logging.getLogger(__name__)


def create_app(services_factory: Optional[Callable[[], ServiceContainer]] = None) -> FastAPI:
    """Build the FastAPI app. Tests pass a factory wiring fake fetchers."""
    services_factory = services_factory or build_services

    @asynccontextmanager
    async def lifespan(app: FastAPI):
        # Startup
        services = services_factory()
        app.state.services = services

        scheduler = AsyncIOScheduler()
        scheduler.add_job(
            services.cache.sweep,
            'interval',
            seconds=services.config.cache_sweep_interval_seconds,
            id="cache_sweep",
        )
        scheduler.start()
        logger.info(
            f"Scheduler started: cache sweep every {services.config.cache_sweep_interval_seconds} s, "
            f"TTL {services.config.cache_ttl_seconds} s, fetcher={type(services.fetcher).__name__}"
        )

        if services.config.warm_cache_on_startup:
            await services.query_service.warm()

        yield

        scheduler.shutdown(wait=False)
        # Shutdown - release HTTP clients and drop cached data
        await services.close()

    app = FastAPI(
        title=settings.app_name,
        description="Cached, normalized MLB roster and player stats for the dashboard frontends",
        version="0.1.0",
        lifespan=lifespan,
    )

    # CORS for frontend
    app.add_middleware(
        CORSMiddleware,
        allow_origins=settings.cors_origins,
        allow_credentials=True,
        allow_methods=["*"],
        allow_headers=["*"],
        expose_headers=["X-Total-Count", "X-Data-Stale"],
    )

    @app.exception_handler(RosterStatsError)
    async def handle_service_error(request: Request, exc: RosterStatsError):
        if exc.status_code >= 500:
            logger.warning(f"{request.method} {request.url.path} failed: {exc.message}")
        headers = {"Retry-After": str(exc.retry_after)} if isinstance(exc, Overloaded) else None
        return JSONResponse(status_code=exc.status_code, content={"error": exc.message}, headers=headers)

    @app.exception_handler(RequestValidationError)
    async def handle_validation_error(request: Request, exc: RequestValidationError):
        message = "; ".join(
            f"{'.'.join(str(p) for p in err.get('loc', ())[1:])}: {err.get('msg', 'invalid input')}"
            for err in exc.errors()
        )
        return JSONResponse(status_code=400, content={"error": message})

    # Include API routes
    app.include_router(api_router, prefix="/api/v1")

    @app.get("/health", response_model=HealthResponse, responses={503: {"model": HealthResponse}})
    async def health_check(reporter: HealthReporter = Depends(get_health_reporter)):
        report = await reporter.check_health()
        status_code = 503 if report["status"] == UNHEALTHY else 200
        return JSONResponse(status_code=status_code, content=report)

    return app


app = create_app()
