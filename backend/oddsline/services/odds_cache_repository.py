"""
backend/oddsline/services/odds_cache_repository.py

Purpose:
    Persistence access for cached pre-match odds payloads. One row per
    fixture in ``odds_cache``, replaced wholesale on every refresh.

Dependencies:
    - oddsline.database
"""

from __future__ import annotations

import logging

from pydantic import ValidationError
from pymongo.errors import PyMongoError

import oddsline.database as _db
from oddsline.errors import StoreFault
from oddsline.models.odds import OddsPayload
from oddsline.utils import ensure_utc

logger = logging.getLogger("oddsline.odds_cache_repository")


class OddsCacheRepository:
    async def get(self, fixture_id: int) -> OddsPayload | None:
        try:
            doc = await _db.db.odds_cache.find_one({"fixture_id": int(fixture_id)}, {"_id": 0})
        except PyMongoError as exc:
            logger.error("odds_cache read failed for fixture %s: %s", fixture_id, exc)
            raise StoreFault("Odds cache is unavailable.") from exc
        if not doc:
            return None
        try:
            payload = OddsPayload.model_validate(doc)
        except ValidationError:
            logger.warning("Ignoring malformed odds_cache row for fixture %s", fixture_id)
            return None
        return payload.model_copy(update={"captured_at": ensure_utc(payload.captured_at)})

    async def upsert(self, payload: OddsPayload) -> None:
        doc = payload.model_dump(mode="python")
        try:
            await _db.db.odds_cache.replace_one(
                {"fixture_id": payload.fixture_id},
                doc,
                upsert=True,
            )
        except PyMongoError as exc:
            logger.error("odds_cache write failed for fixture %s: %s", payload.fixture_id, exc)
            raise StoreFault("Odds cache is unavailable.") from exc
