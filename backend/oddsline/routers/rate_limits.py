"""Rate limit check API for feature endpoints hosted elsewhere."""

from fastapi import APIRouter, Depends, HTTPException, status

from oddsline.errors import RateLimitExceeded
from oddsline.models.rate_limit import RateLimitCheckRequest, RateLimitResult
from oddsline.services import user_rate_limiter as limiter_module
from oddsline.services.auth_service import get_current_user_id

router = APIRouter(prefix="/api/rate-limits", tags=["rate-limits"])


@router.post("/check", response_model=RateLimitResult, response_model_exclude_none=True)
async def check_rate_limit(
    body: RateLimitCheckRequest,
    user_id: str = Depends(get_current_user_id),
):
    """Count one request against the caller's quota; 429 when exhausted."""
    if body.user_id is not None and body.user_id != user_id:
        raise HTTPException(
            status_code=status.HTTP_403_FORBIDDEN,
            detail="Cannot check another user's quota.",
        )
    result = await limiter_module.user_rate_limiter.check_and_increment(
        user_id, body.feature, body.max_per_minute
    )
    if not result.allowed:
        raise RateLimitExceeded(
            body.feature.value,
            retry_after_seconds=result.retry_after_seconds or 60,
            current_count=result.current_count,
        )
    return result
