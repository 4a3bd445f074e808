"""
backend/oddsline/providers/http_client.py

Purpose:
    Thin httpx transport for upstream odds calls. One attempt per request
    unless a RetryPolicy with retries is configured; the caller decides what
    a failed response means.

Dependencies:
    - httpx
"""

import asyncio
import logging
from dataclasses import dataclass
from typing import Optional
from urllib.parse import urlparse

import httpx

logger = logging.getLogger("oddsline.http_client")

_TRANSIENT_ERRORS = (httpx.TimeoutException, httpx.ConnectError, httpx.RemoteProtocolError)
_MAX_DELAY_SECONDS = 60.0


def safe_url(url: str) -> str:
    """Strip query params (may contain API keys) for safe logging."""
    parsed = urlparse(str(url))
    return f"{parsed.scheme}://{parsed.netloc}{parsed.path}"


@dataclass(frozen=True)
class RetryPolicy:
    max_retries: int = 0
    base_delay: float = 1.0
    retry_statuses: frozenset[int] = frozenset({429, 500, 502, 503, 504})

    @property
    def attempts(self) -> int:
        return max(0, self.max_retries) + 1

    def delay(self, attempt: int, response: Optional[httpx.Response] = None) -> float:
        """Seconds to wait before the next attempt; honours Retry-After."""
        hinted = _retry_after_seconds(response) if response is not None else None
        wait = hinted if hinted is not None else self.base_delay * (2 ** attempt)
        return min(wait, _MAX_DELAY_SECONDS)


def _retry_after_seconds(response: httpx.Response) -> Optional[float]:
    for header in ("retry-after", "x-ratelimit-retry-after"):
        raw = response.headers.get(header)
        if raw is None:
            continue
        try:
            return float(raw)
        except (TypeError, ValueError):
            continue
    return None


class ResilientClient:
    """httpx.AsyncClient with an optional retry policy."""

    def __init__(self, name: str, timeout: float = 15.0, max_retries: int = 0, base_delay: float = 1.0):
        self._client = httpx.AsyncClient(timeout=timeout)
        self._name = name
        self.policy = RetryPolicy(max_retries=int(max_retries), base_delay=base_delay)

    async def request(self, method: str, url: str, **kwargs) -> httpx.Response:
        attempts = self.policy.attempts
        for attempt in range(attempts):
            is_last = attempt == attempts - 1
            try:
                resp = await self._client.request(method, url, **kwargs)
            except _TRANSIENT_ERRORS as exc:
                logger.warning(
                    "[%s] %s %s failed (attempt %d/%d): %s",
                    self._name, method, safe_url(url), attempt + 1, attempts, exc,
                )
                if is_last:
                    raise
                await asyncio.sleep(self.policy.delay(attempt))
                continue

            if resp.status_code not in self.policy.retry_statuses or is_last:
                return resp
            logger.warning(
                "[%s] %s %s answered %d (attempt %d/%d), retrying",
                self._name, method, safe_url(url), resp.status_code, attempt + 1, attempts,
            )
            await asyncio.sleep(self.policy.delay(attempt, resp))

        raise RuntimeError("retry loop exited without a response")

    async def get(self, url: str, **kwargs) -> httpx.Response:
        return await self.request("GET", url, **kwargs)

    async def aclose(self) -> None:
        await self._client.aclose()
