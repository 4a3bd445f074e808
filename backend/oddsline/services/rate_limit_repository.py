"""Persistence access for per-user, per-feature, per-minute request counters."""

from __future__ import annotations

from datetime import datetime

from pymongo import ReturnDocument

import oddsline.database as _db
from oddsline.models.rate_limit import RateLimitWindow


class RateLimitRepository:
    """Thin wrapper over ``user_rate_limits``.

    Errors are not translated here: the limiter decides what a store
    failure means, and it needs to see DuplicateKeyError as-is.
    """

    async def get_count(self, user_id: str, feature: str, window_start: datetime) -> int | None:
        doc = await _db.db.user_rate_limits.find_one(
            {"user_id": user_id, "feature": feature, "window_start": window_start},
            {"count": 1},
        )
        if doc is None:
            return None
        return int(doc.get("count") or 0)

    async def insert_window(self, user_id: str, feature: str, window_start: datetime) -> None:
        window = RateLimitWindow(user_id=user_id, feature=feature, window_start=window_start, count=1)
        await _db.db.user_rate_limits.insert_one(window.model_dump())

    async def increment(self, user_id: str, feature: str, window_start: datetime) -> int:
        """Atomically add one and return the new count."""
        doc = await _db.db.user_rate_limits.find_one_and_update(
            {"user_id": user_id, "feature": feature, "window_start": window_start},
            {"$inc": {"count": 1}},
            projection={"count": 1},
            return_document=ReturnDocument.AFTER,
        )
        if doc is None:
            raise LookupError(f"rate limit window vanished for {feature}/{user_id}")
        return int(doc.get("count") or 0)
