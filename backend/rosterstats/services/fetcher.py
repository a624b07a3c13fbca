"""
Origin fetchers.

Fetcher is the capability the query layer depends on:
``fetch(SourceQuery) -> RawPage``. HttpFetcher reads the JSON stats
endpoints with httpx; BrowserFetcher renders the public stats pages in
headless Chromium via Playwright and returns the resulting HTML. Both share
the same bounded retry/backoff policy and raise SourceUnavailable once it is
exhausted.
"""
import asyncio
import logging
import random
import time
from abc import ABC, abstractmethod
from datetime import datetime, timezone
from typing import Any, Dict, Optional

import httpx

from rosterstats.config import Settings, settings as default_settings
from rosterstats.exceptions import SourceUnavailable
from rosterstats.models import SourceQuery, RawPage, TEAM_SCOPE, PITCHING
from rosterstats.utils import TEAMS, sanitize_error_message

logger = logging.getLogger(__name__)

# Status codes worth another attempt
RETRYABLE_STATUS = {408, 425, 429, 500, 502, 503, 504}


class RetryableFetchError(Exception):
    """Transient failure for one attempt; the retry loop decides what happens next."""


class Fetcher(ABC):
    """Retrieves one raw page from the origin with timeout and bounded retry."""

    def __init__(self, config: Optional[Settings] = None):
        self.config = config or default_settings
        self.timeout = self.config.fetch_timeout_seconds
        self.retries = max(1, self.config.fetch_retries)
        self.backoff_base = self.config.fetch_backoff_base
        self.backoff_max = self.config.fetch_backoff_max
        self._probe_client: Optional[httpx.AsyncClient] = None

    @property
    def season(self) -> int:
        return self.config.source_season or datetime.now(timezone.utc).year

    @property
    @abstractmethod
    def probe_url(self) -> str: ...

    @abstractmethod
    def build_url(self, query: SourceQuery) -> str: ...

    @abstractmethod
    async def _fetch_once(self, query: SourceQuery, url: str) -> RawPage:
        """Single attempt. Raise RetryableFetchError for transient failures."""

    def backoff_delay(self, attempt: int) -> float:
        """Delay before retrying after the given 1-based attempt."""
        delay = min(self.backoff_base * (2 ** (attempt - 1)), self.backoff_max)
        return delay + random.uniform(0, delay * 0.1)

    async def fetch(self, query: SourceQuery) -> RawPage:
        url = self.build_url(query)
        last_error: Optional[Exception] = None

        for attempt in range(1, self.retries + 1):
            try:
                page = await self._fetch_once(query, url)
                logger.info(
                    f"Fetched {query.cache_key} from {url} "
                    f"({len(page.body)} bytes, attempt {attempt})"
                )
                return page
            except RetryableFetchError as e:
                last_error = e
                if attempt < self.retries:
                    delay = self.backoff_delay(attempt)
                    logger.warning(
                        f"Fetch attempt {attempt}/{self.retries} for {query.cache_key} failed: {e}; "
                        f"retrying in {delay:.2f}s"
                    )
                    await asyncio.sleep(delay)

        logger.error(f"Giving up on {query.cache_key} after {self.retries} attempts: {last_error}")
        raise SourceUnavailable(
            f"Origin unavailable for {query.cache_key}: {sanitize_error_message(last_error)}",
            url=url,
        )

    async def probe(self, timeout: Optional[float] = None) -> float:
        """
        Lightweight reachability check. Returns latency in milliseconds.

        Raises:
            SourceUnavailable: if the origin does not answer in time
        """
        timeout = timeout or self.config.health_probe_timeout
        client = await self._get_probe_client()
        start = time.perf_counter()
        try:
            response = await client.head(self.probe_url, timeout=timeout)
            if response.status_code == 405:
                response = await client.get(self.probe_url, timeout=timeout)
        except httpx.HTTPError as e:
            raise SourceUnavailable(f"Origin probe failed: {sanitize_error_message(e)}") from e
        if response.status_code >= 500:
            raise SourceUnavailable(f"Origin probe returned HTTP {response.status_code}")
        return (time.perf_counter() - start) * 1000

    async def _get_probe_client(self) -> httpx.AsyncClient:
        if self._probe_client is None:
            self._probe_client = httpx.AsyncClient(
                headers={"User-Agent": self.config.user_agent},
                follow_redirects=True,
            )
        return self._probe_client

    async def close(self) -> None:
        if self._probe_client is not None:
            await self._probe_client.aclose()
            self._probe_client = None


class HttpFetcher(Fetcher):
    """Plain HTTP fetcher for the origin's JSON stats endpoints."""

    def __init__(self, config: Optional[Settings] = None, client: Optional[httpx.AsyncClient] = None):
        super().__init__(config)
        self.base_url = self.config.source_api_base_url.rstrip("/")
        self._http_client = client

    @property
    def probe_url(self) -> str:
        return f"{self.base_url}/sports/1"

    def build_url(self, query: SourceQuery) -> str:
        params = self.build_params(query)
        return str(httpx.URL(f"{self.base_url}/stats", params=params))

    def build_params(self, query: SourceQuery) -> Dict[str, Any]:
        params: Dict[str, Any] = {
            "stats": "season",
            "group": query.stat_type,
            "season": self.season,
            "sportId": 1,
            "playerPool": "ALL",
            "limit": 2000,
        }
        if query.scope == TEAM_SCOPE:
            params["teamId"] = TEAMS[query.team].team_id
        return params

    async def _get_client(self) -> httpx.AsyncClient:
        if self._http_client is None:
            self._http_client = httpx.AsyncClient(
                timeout=self.timeout,
                headers={
                    "User-Agent": self.config.user_agent,
                    "Accept": "application/json",
                },
                follow_redirects=True,
            )
        return self._http_client

    async def _fetch_once(self, query: SourceQuery, url: str) -> RawPage:
        client = await self._get_client()
        try:
            response = await client.get(url, timeout=self.timeout)
        except (httpx.TimeoutException, httpx.TransportError) as e:
            raise RetryableFetchError(f"{type(e).__name__}: {e}") from e

        if response.status_code in RETRYABLE_STATUS:
            raise RetryableFetchError(f"HTTP {response.status_code}")
        if response.status_code >= 400:
            raise SourceUnavailable(
                f"Origin rejected request for {query.cache_key}: HTTP {response.status_code}",
                url=url,
            )

        return RawPage(
            query=query,
            url=url,
            body=response.text,
            content_type="json",
            fetched_at=datetime.now(timezone.utc),
            status_code=response.status_code,
        )

    async def close(self) -> None:
        if self._http_client is not None:
            await self._http_client.aclose()
            self._http_client = None
            logger.info("HttpFetcher HTTP client closed")
        await super().close()


class BrowserFetcher(Fetcher):
    """
    Headless-browser fetcher for the public stats pages.

    The stats tables on the site are rendered client-side, so each fetch
    opens a Chromium page, waits for the table rows to appear and returns the
    rendered DOM.
    """

    def __init__(self, config: Optional[Settings] = None):
        super().__init__(config)
        self.base_url = self.config.source_site_base_url.rstrip("/")
        self.headless = self.config.browser_headless
        self.wait_selector = self.config.browser_wait_selector

    @property
    def probe_url(self) -> str:
        return f"{self.base_url}/stats/"

    def build_url(self, query: SourceQuery) -> str:
        group = "pitching/" if query.stat_type == PITCHING else ""
        if query.scope == TEAM_SCOPE:
            return f"{self.base_url}/stats/{group}{TEAMS[query.team].slug}?playerPool=ALL"
        return f"{self.base_url}/stats/{group}?playerPool=ALL"

    async def _fetch_once(self, query: SourceQuery, url: str) -> RawPage:
        from playwright.async_api import async_playwright, Error as PlaywrightError

        timeout_ms = int(self.timeout * 1000)
        try:
            async with async_playwright() as p:
                browser = await p.chromium.launch(headless=self.headless)
                try:
                    context = await browser.new_context(user_agent=self.config.user_agent)
                    page = await context.new_page()
                    response = await page.goto(url, wait_until="domcontentloaded", timeout=timeout_ms)
                    status = response.status if response is not None else 200
                    if status in RETRYABLE_STATUS:
                        raise RetryableFetchError(f"HTTP {status}")
                    if status >= 400:
                        raise SourceUnavailable(
                            f"Origin rejected request for {query.cache_key}: HTTP {status}",
                            url=url,
                        )
                    await page.wait_for_selector(self.wait_selector, timeout=timeout_ms)
                    html = await page.content()
                finally:
                    await browser.close()
        except PlaywrightError as e:
            # Playwright's TimeoutError subclasses Error
            raise RetryableFetchError(f"{type(e).__name__}: {e}") from e

        if not html:
            raise RetryableFetchError("Empty page content")

        return RawPage(
            query=query,
            url=url,
            body=html,
            content_type="html",
            fetched_at=datetime.now(timezone.utc),
            status_code=status,
        )


def build_fetcher(config: Optional[Settings] = None) -> Fetcher:
    """Select the fetcher variant named by ``fetcher_backend``."""
    config = config or default_settings
    backend = config.fetcher_backend.lower()
    if backend == "http":
        return HttpFetcher(config)
    if backend == "browser":
        return BrowserFetcher(config)
    raise ValueError(f"Unknown fetcher_backend '{config.fetcher_backend}' (expected 'http' or 'browser')")
