"""
backend/oddsline/routers/odds.py

Purpose:
    Odds API: refresh/fetch normalized odds for a fixture (rate limited per
    user) and report which markets a fixture's cached odds feed carries.

Dependencies:
    - oddsline.services.odds_service
    - oddsline.services.user_rate_limiter
"""

import logging

from fastapi import APIRouter, Depends, HTTPException, status

from oddsline.config import settings
from oddsline.models.odds import (
    AvailabilityRequest,
    AvailabilityResponse,
    FetchOddsRequest,
    FetchOddsResult,
)
from oddsline.services import odds_service as odds_service_module
from oddsline.services import user_rate_limiter as limiter_module
from oddsline.services.auth_service import get_current_user_id
from oddsline.services.market_detection_service import (
    league_skipped_markets,
    list_available_markets,
    load_league_coverage,
)

logger = logging.getLogger("oddsline.odds")

router = APIRouter(prefix="/api/odds", tags=["odds"])


@router.post("/fetch", response_model=FetchOddsResult)
async def fetch_odds(
    body: FetchOddsRequest,
    user_id: str = Depends(get_current_user_id),
):
    """Return normalized selections for a fixture, from cache or the provider."""
    await limiter_module.user_rate_limiter.enforce(user_id, settings.ODDS_FETCH_RATE_LIMIT_FEATURE)
    return await odds_service_module.odds_service.fetch_odds(
        body.fixture_id,
        live=body.live,
        force_refresh=body.force_refresh,
        guarded=body.guarded,
    )


@router.post("/availability", response_model=AvailabilityResponse)
async def market_availability(
    body: AvailabilityRequest,
    user_id: str = Depends(get_current_user_id),
):
    """Markets present in the cached odds of a fixture. Never calls the provider.

    With a leagueId, markets that league skips for thin stats coverage are
    removed from ``available`` and listed in ``leagueSkipped``.
    """
    payload = await odds_service_module.odds_service.cache.get(body.fixture_id)
    if payload is None:
        raise HTTPException(
            status_code=status.HTTP_404_NOT_FOUND,
            detail="No cached odds for this fixture.",
        )
    available = list_available_markets(payload)
    skipped: list[str] = []
    if body.league_id is not None:
        coverage = await load_league_coverage([body.league_id])
        skipped = sorted(m.value for m in league_skipped_markets(body.league_id, coverage))
        available = [m for m in available if m not in skipped]
    return AvailabilityResponse(
        fixture_id=body.fixture_id,
        available=available,
        captured_at=payload.captured_at,
        league_skipped=skipped,
    )
