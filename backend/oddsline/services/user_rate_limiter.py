"""
backend/oddsline/services/user_rate_limiter.py

Purpose:
    Per-user, per-feature request quota on wall-clock minute windows, shared
    by every process through the ``user_rate_limits`` collection.

    Windows are truncated minutes, not a true sliding window: a burst at :59
    and another at :01 fall into different windows.

    Concurrency: two first requests in a fresh window may both see "no row"
    and both insert. The unique (user_id, feature, window_start) index
    rejects the second insert; the loser then increments instead. Increments
    are atomic ($inc), so no request is lost from the count.

    Store failures follow an explicit policy (RATE_LIMIT_ON_STORE_ERROR):
    "allow" fails open, "deny" fails closed.

Dependencies:
    - pymongo.errors
    - oddsline.services.rate_limit_repository
"""

from __future__ import annotations

import json
import logging

from pymongo.errors import DuplicateKeyError

from oddsline.config import settings
from oddsline.errors import RateLimitExceeded
from oddsline.models.rate_limit import RateLimitFeature, RateLimitResult, StoreErrorPolicy
from oddsline.monitoring.odds_metrics import METRIC_RATE_LIMIT_DECISIONS
from oddsline.services.rate_limit_repository import RateLimitRepository
from oddsline.utils import floor_to_minute, utcnow

logger = logging.getLogger("oddsline.rate_limit")

WINDOW_SECONDS = 60


def _log_decision(level: int, **fields) -> None:
    logger.log(level, json.dumps({"event": "rate_limit", **fields}, default=str))


class UserRateLimiter:
    def __init__(
        self,
        repository: RateLimitRepository | None = None,
        *,
        on_store_error: StoreErrorPolicy | str | None = None,
    ):
        self.repo = repository or RateLimitRepository()
        self.on_store_error = StoreErrorPolicy(on_store_error or settings.RATE_LIMIT_ON_STORE_ERROR)

    async def check_and_increment(
        self,
        user_id: str,
        feature: RateLimitFeature | str,
        max_per_minute: int,
    ) -> RateLimitResult:
        feature_key = RateLimitFeature(feature).value
        now = utcnow()
        window_start = floor_to_minute(now)
        retry_after = WINDOW_SECONDS - now.second

        try:
            existing = await self.repo.get_count(user_id, feature_key, window_start)
            current = existing or 0

            if current >= max_per_minute:
                return self._deny(user_id, feature_key, current, max_per_minute, retry_after)

            if existing is None:
                try:
                    await self.repo.insert_window(user_id, feature_key, window_start)
                    count = 1
                except DuplicateKeyError:
                    # Another invocation created the window first.
                    count = await self.repo.increment(user_id, feature_key, window_start)
            else:
                count = await self.repo.increment(user_id, feature_key, window_start)
        except Exception as exc:
            return self._store_error(user_id, feature_key, max_per_minute, retry_after, exc)

        if count > max_per_minute:
            # Concurrent requests raced past the read check.
            return self._deny(user_id, feature_key, count, max_per_minute, retry_after)

        METRIC_RATE_LIMIT_DECISIONS.labels(feature=feature_key, outcome="allowed").inc()
        _log_decision(
            logging.INFO,
            outcome="allowed",
            feature=feature_key,
            user_id=user_id,
            count=count,
            limit=max_per_minute,
        )
        return RateLimitResult(allowed=True, current_count=count)

    async def enforce(
        self,
        user_id: str,
        feature: RateLimitFeature | str,
        max_per_minute: int | None = None,
    ) -> RateLimitResult:
        """check_and_increment, raising RateLimitExceeded on denial."""
        feature_key = RateLimitFeature(feature).value
        limit = max_per_minute if max_per_minute is not None else settings.rate_limit_for(feature_key)
        result = await self.check_and_increment(user_id, feature_key, limit)
        if not result.allowed:
            raise RateLimitExceeded(
                feature_key,
                retry_after_seconds=result.retry_after_seconds or WINDOW_SECONDS,
                current_count=result.current_count,
            )
        return result

    def _deny(
        self, user_id: str, feature: str, count: int, limit: int, retry_after: int
    ) -> RateLimitResult:
        METRIC_RATE_LIMIT_DECISIONS.labels(feature=feature, outcome="denied").inc()
        _log_decision(
            logging.WARNING,
            outcome="denied",
            feature=feature,
            user_id=user_id,
            count=count,
            limit=limit,
            retry_after_seconds=retry_after,
        )
        return RateLimitResult(allowed=False, retry_after_seconds=retry_after, current_count=count)

    def _store_error(
        self, user_id: str, feature: str, limit: int, retry_after: int, exc: Exception
    ) -> RateLimitResult:
        allowed = self.on_store_error is StoreErrorPolicy.allow
        METRIC_RATE_LIMIT_DECISIONS.labels(feature=feature, outcome="store_error").inc()
        _log_decision(
            logging.ERROR,
            outcome="store_error",
            policy=self.on_store_error.value,
            allowed=allowed,
            feature=feature,
            user_id=user_id,
            count=None,
            limit=limit,
            error=f"{type(exc).__name__}: {exc}",
        )
        if allowed:
            return RateLimitResult(allowed=True)
        return RateLimitResult(allowed=False, retry_after_seconds=retry_after)


user_rate_limiter = UserRateLimiter()
