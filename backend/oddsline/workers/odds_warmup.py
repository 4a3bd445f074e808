import logging
from datetime import timedelta

import oddsline.database as _db
from oddsline.config import settings
from oddsline.errors import ConfigurationError
from oddsline.services import odds_service as odds_service_module
from oddsline.utils import utcnow
from oddsline.workers._state import recently_synced, set_synced

logger = logging.getLogger("oddsline.odds_warmup")

_STATE_KEY = "odds_warmup"


async def _upcoming_fixture_ids(window_hours: int, limit: int) -> list[int]:
    """Fixture ids kicking off within the window, soonest first."""
    now_ts = int(utcnow().timestamp())
    end_ts = now_ts + window_hours * 3600
    docs = await _db.db.fixtures.find(
        {"timestamp": {"$gte": now_ts, "$lte": end_ts}},
        {"fixture_id": 1, "_id": 0},
    ).sort("timestamp", 1).limit(limit).to_list(length=limit)
    return [int(doc["fixture_id"]) for doc in docs if doc.get("fixture_id")]


async def warmup_odds(window_hours: int | None = None, max_fixtures: int | None = None) -> dict:
    """Prefetch pre-match odds for upcoming fixtures so user refreshes hit cache.

    Fresh cache rows are served without an upstream call, so repeated runs
    only spend provider quota on stale or missing fixtures.
    """
    window_hours = window_hours or settings.ODDS_WARMUP_WINDOW_HOURS
    max_fixtures = max_fixtures or settings.ODDS_WARMUP_MAX_FIXTURES
    counts = {"fixtures": 0, "fetched": 0, "cached": 0, "unavailable": 0, "failed": 0}

    half_interval = timedelta(minutes=settings.ODDS_WARMUP_INTERVAL_MINUTES / 2)
    if await recently_synced(_STATE_KEY, half_interval):
        logger.debug("Smart sleep: odds warmup ran recently, skipping")
        return {**counts, "skipped": True}

    fixture_ids = await _upcoming_fixture_ids(window_hours, max_fixtures)
    counts["fixtures"] = len(fixture_ids)
    service = odds_service_module.odds_service

    for fixture_id in fixture_ids:
        try:
            result = await service.fetch_odds(fixture_id, live=False, force_refresh=False)
        except ConfigurationError:
            logger.error("Odds warmup aborted: provider is not configured")
            raise
        except Exception as e:
            counts["failed"] += 1
            logger.error("Odds warmup failed for fixture %s: %s", fixture_id, e)
            continue

        if not result.available:
            counts["unavailable"] += 1
        elif result.cache_hit:
            counts["cached"] += 1
        else:
            counts["fetched"] += 1

    await set_synced(_STATE_KEY, metrics=counts)
    logger.info(
        "Odds warmup: %d fixtures (%d fetched, %d cached, %d unavailable, %d failed)",
        counts["fixtures"], counts["fetched"], counts["cached"], counts["unavailable"], counts["failed"],
    )
    return {**counts, "skipped": False}
