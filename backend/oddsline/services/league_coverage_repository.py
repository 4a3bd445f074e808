"""
backend/oddsline/services/league_coverage_repository.py

Purpose:
    Read access to ``league_stats_coverage``: one row per league with
    skip_* flags for markets whose stats are too sparse to offer. Rows are
    maintained by the stats sync; this service only reads them.

    Coverage is advisory. A store failure or a malformed row means "no
    coverage data", which leaves every market enabled.

Dependencies:
    - oddsline.database
"""

from __future__ import annotations

import logging
from typing import Iterable

from pydantic import ValidationError
from pymongo.errors import PyMongoError

import oddsline.database as _db
from oddsline.models.odds import LeagueCoverage

logger = logging.getLogger("oddsline.league_coverage")

_PROJECTION = {
    "_id": 0,
    "league_id": 1,
    "skip_goals": 1,
    "skip_corners": 1,
    "skip_cards": 1,
    "skip_fouls": 1,
    "skip_offsides": 1,
}


class LeagueCoverageRepository:
    async def load(self, league_ids: Iterable[int] | None = None) -> dict[int, LeagueCoverage]:
        """Coverage rows keyed by league id, optionally limited to ``league_ids``."""
        query: dict = {}
        if league_ids is not None:
            query = {"league_id": {"$in": sorted({int(x) for x in league_ids})}}
        try:
            docs = await _db.db.league_stats_coverage.find(query, _PROJECTION).to_list(length=None)
        except PyMongoError as exc:
            logger.error("league_stats_coverage read failed: %s", exc)
            return {}

        coverage: dict[int, LeagueCoverage] = {}
        for doc in docs:
            try:
                row = LeagueCoverage.model_validate(doc)
            except ValidationError:
                logger.warning("Ignoring malformed league_stats_coverage row: %r", doc.get("league_id"))
                continue
            coverage[row.league_id] = row
        logger.debug("Loaded coverage data for %d leagues", len(coverage))
        return coverage
