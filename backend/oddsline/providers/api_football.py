"""
backend/oddsline/providers/api_football.py

Purpose:
    API-Football v3 odds provider (pre-match and live odds per fixture).
    The same product is sold directly by api-sports.io and through RapidAPI;
    the two differ in base host and auth headers.

    Issuer selection is explicit via API_FOOTBALL_KEY_ISSUER. With "auto" the
    key shape decides (RapidAPI keys are longer than 40 characters and
    usually contain "msh"). Nothing in a key authoritatively identifies its
    issuer, so "auto" can guess wrong; set the issuer explicitly in
    production.

Dependencies:
    - httpx (via oddsline.providers.http_client)
    - oddsline.config
"""

from __future__ import annotations

import logging
from dataclasses import dataclass, field
from typing import Any

import httpx

from oddsline.config import settings
from oddsline.errors import ConfigurationError, UpstreamUnavailable
from oddsline.monitoring.odds_metrics import METRIC_UPSTREAM_FAILURES
from oddsline.providers.base import BaseOddsProvider
from oddsline.providers.http_client import ResilientClient, safe_url

logger = logging.getLogger("oddsline.api_football")

ISSUER_RAPIDAPI = "rapidapi"
ISSUER_APISPORTS = "apisports"
_RAPIDAPI_KEY_MIN_LENGTH = 40
_RAPIDAPI_KEY_MARKER = "msh"


@dataclass(frozen=True)
class ProviderCredentials:
    issuer: str
    base_url: str
    headers: dict[str, str] = field(default_factory=dict)


def detect_key_issuer(api_key: str) -> str:
    """Guess the reseller from the key shape."""
    key = api_key.strip()
    if len(key) > _RAPIDAPI_KEY_MIN_LENGTH or _RAPIDAPI_KEY_MARKER in key:
        return ISSUER_RAPIDAPI
    return ISSUER_APISPORTS


def resolve_credentials(
    api_key: str | None = None,
    issuer: str | None = None,
) -> ProviderCredentials:
    key = str(settings.API_FOOTBALL_KEY if api_key is None else api_key).strip()
    if not key:
        raise ConfigurationError("API_FOOTBALL_KEY is not configured.")

    chosen = str(settings.API_FOOTBALL_KEY_ISSUER if issuer is None else issuer).strip().lower()
    if chosen in ("", "auto"):
        chosen = detect_key_issuer(key)
    if chosen not in (ISSUER_RAPIDAPI, ISSUER_APISPORTS):
        raise ConfigurationError(f"Unknown API_FOOTBALL_KEY_ISSUER: {chosen!r}")

    if chosen == ISSUER_RAPIDAPI:
        return ProviderCredentials(
            issuer=ISSUER_RAPIDAPI,
            base_url=settings.API_FOOTBALL_RAPIDAPI_BASE_URL.rstrip("/"),
            headers={
                "x-rapidapi-key": key,
                "x-rapidapi-host": settings.API_FOOTBALL_RAPIDAPI_HOST,
            },
        )
    return ProviderCredentials(
        issuer=ISSUER_APISPORTS,
        base_url=settings.API_FOOTBALL_APISPORTS_BASE_URL.rstrip("/"),
        headers={"x-apisports-key": key},
    )


class ApiFootballProvider(BaseOddsProvider):
    """HTTP adapter for the API-Football odds endpoints."""

    def __init__(self) -> None:
        self._client = ResilientClient(
            "api_football",
            timeout=settings.API_FOOTBALL_TIMEOUT_SECONDS,
            max_retries=settings.API_FOOTBALL_MAX_RETRIES,
        )

    def credentials(self) -> ProviderCredentials:
        return resolve_credentials()

    async def get_prematch_odds(self, fixture_id: int) -> dict[str, Any]:
        return await self._get("odds", {"fixture": int(fixture_id)}, source="prematch")

    async def get_live_odds(self, fixture_id: int) -> dict[str, Any]:
        return await self._get("odds/live", {"fixture": int(fixture_id)}, source="live")

    async def _get(self, path: str, params: dict[str, Any], *, source: str) -> dict[str, Any]:
        creds = self.credentials()
        url = f"{creds.base_url}/{path.lstrip('/')}"
        logger.info("API-Football call: GET %s fixture=%s (%s)", safe_url(url), params.get("fixture"), creds.issuer)

        try:
            resp = await self._client.get(url, params=params, headers=creds.headers)
        except httpx.HTTPError as exc:
            METRIC_UPSTREAM_FAILURES.labels(source=source).inc()
            logger.error("API-Football transport error on %s: %s", safe_url(url), exc)
            raise UpstreamUnavailable(f"Odds provider unreachable: {exc}") from exc

        if not 200 <= resp.status_code < 300:
            METRIC_UPSTREAM_FAILURES.labels(source=source).inc()
            logger.error("API-Football error %d on %s", resp.status_code, safe_url(url))
            raise UpstreamUnavailable(
                f"Odds provider returned HTTP {resp.status_code}",
                upstream_status=resp.status_code,
            )

        try:
            body = resp.json()
        except ValueError as exc:
            METRIC_UPSTREAM_FAILURES.labels(source=source).inc()
            logger.error("API-Football returned undecodable body on %s", safe_url(url))
            raise UpstreamUnavailable("Odds provider returned invalid JSON") from exc

        if not isinstance(body, dict):
            METRIC_UPSTREAM_FAILURES.labels(source=source).inc()
            raise UpstreamUnavailable("Odds provider returned an unexpected body")

        # API-Football reports auth/plan problems as HTTP 200 with an "errors" object.
        errors = body.get("errors")
        if errors:
            METRIC_UPSTREAM_FAILURES.labels(source=source).inc()
            logger.error("API-Football soft error on %s: %s", safe_url(url), errors)
            raise UpstreamUnavailable(f"Odds provider error: {errors}", upstream_status=resp.status_code)

        return body

    async def aclose(self) -> None:
        await self._client.aclose()


odds_provider = ApiFootballProvider()
