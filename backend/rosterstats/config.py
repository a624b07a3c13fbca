from pydantic_settings import BaseSettings
from typing import Optional


class Settings(BaseSettings):
    # App settings
    app_name: str = "MLB Roster Stats Service"
    debug: bool = False
    log_level: str = "INFO"

    # Origin source
    source_api_base_url: str = "https://statsapi.mlb.com/api/v1"
    source_site_base_url: str = "https://www.mlb.com"
    source_season: Optional[int] = None  # None = current calendar year
    fetcher_backend: str = "http"        # "http" or "browser"
    user_agent: str = (
        "Mozilla/5.0 (Macintosh; Intel Mac OS X 10_15_7) AppleWebKit/537.36 "
        "(KHTML, like Gecko) Chrome/120.0.0.0 Safari/537.36"
    )

    # Fetch policy
    fetch_timeout_seconds: float = 15.0
    fetch_retries: int = 3               # total attempts
    fetch_backoff_base: float = 0.5      # seconds, doubled per attempt
    fetch_backoff_max: float = 8.0
    max_concurrent_fetches: int = 4
    max_queued_fetches: int = 32

    # Headless browser (fetcher_backend="browser")
    browser_headless: bool = True
    browser_wait_selector: str = "table tbody tr"

    # Caching settings
    cache_ttl_seconds: int = 300         # 5 minutes
    cache_max_entries: int = 1000
    cache_sweep_interval_seconds: int = 300
    warm_cache_on_startup: bool = False

    # Health
    health_probe_timeout: float = 3.0

    # Query limits
    search_max_length: int = 100
    default_page_limit: int = 50
    max_page_limit: int = 500

    # CORS for the dashboard frontends
    cors_origins: list[str] = [
        "http://localhost:3000",
        "http://localhost:5173",
        "http://localhost:19006",
    ]

    class Config:
        env_file = ".env"
        env_file_encoding = "utf-8"
        env_prefix = "ROSTERSTATS_"


settings = Settings()
