"""
Error taxonomy for the roster stats service.

Every error a caller can see is a RosterStatsError subclass; raw httpx or
Playwright errors are translated before they leave the service layer.
"""
from typing import Optional


class RosterStatsError(Exception):
    """Base class carrying a client-safe message and an HTTP status."""

    status_code: int = 500

    def __init__(self, message: str, status_code: Optional[int] = None):
        super().__init__(message)
        self.message = message
        if status_code is not None:
            self.status_code = status_code


class InvalidArgument(RosterStatsError):
    """Malformed or missing query parameters. Never retried."""

    status_code = 400


class NotFound(RosterStatsError):
    """Requested entity is not in any reachable dataset."""

    status_code = 404


class SourceUnavailable(RosterStatsError):
    """Origin fetch failed or timed out after all retries."""

    status_code = 502

    def __init__(self, message: str, url: Optional[str] = None):
        super().__init__(message)
        self.url = url


class Overloaded(RosterStatsError):
    """Concurrent-fetch queue is full; caller should back off and retry."""

    status_code = 503

    def __init__(self, message: str, retry_after: int = 5):
        super().__init__(message)
        self.retry_after = retry_after
