"""
backend/oddsline/errors.py

Purpose:
    Failure taxonomy of the odds pipeline. Every class carries a
    machine-readable code and the HTTP status the API surfaces it with, so
    callers can tell quota, upstream and store problems apart.

    "No odds yet" is not an error (fetch returns ``available: False``), and
    a single malformed bookmaker entry is dropped, not raised.
"""

from __future__ import annotations


class OddslineError(Exception):
    code = "INTERNAL_ERROR"
    status_code = 500

    def __init__(self, message: str = "") -> None:
        super().__init__(message or self.code)
        self.message = message or self.code


class ConfigurationError(OddslineError):
    """Required configuration (e.g. the provider API key) is missing."""

    code = "CONFIGURATION_ERROR"
    status_code = 500


class UpstreamUnavailable(OddslineError):
    """The odds provider answered non-2xx, garbage, or not at all."""

    code = "UPSTREAM_UNAVAILABLE"
    status_code = 502

    def __init__(self, message: str = "", *, upstream_status: int | None = None) -> None:
        super().__init__(message)
        self.upstream_status = upstream_status


class RateLimitExceeded(OddslineError):
    code = "RATE_LIMITED"
    status_code = 429

    def __init__(self, feature: str, retry_after_seconds: int, current_count: int | None = None) -> None:
        super().__init__("Too many requests. Please wait a bit and try again.")
        self.feature = feature
        self.retry_after_seconds = retry_after_seconds
        self.current_count = current_count


class StoreFault(OddslineError):
    """The persistent store could not serve a cache or counter operation."""

    code = "STORE_UNAVAILABLE"
    status_code = 503
