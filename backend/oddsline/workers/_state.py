"""Persistent worker state: last run per worker, kept across restarts.

Stops a freshly deployed instance from re-running a batch that another
instance just finished. Lives in the ``worker_state`` collection.
"""

from datetime import datetime, timedelta

import oddsline.database as _db
from oddsline.utils import ensure_utc, utcnow


async def get_synced_at(worker_id: str) -> datetime | None:
    """Get the last synced_at timestamp for a worker."""
    doc = await _db.db.worker_state.find_one({"_id": worker_id})
    return doc["synced_at"] if doc else None


async def set_synced(worker_id: str, metrics: dict | None = None) -> None:
    """Mark a worker as just synced, optionally storing run counters."""
    fields = {"synced_at": utcnow()}
    if metrics is not None:
        fields["last_metrics"] = metrics
    await _db.db.worker_state.update_one(
        {"_id": worker_id},
        {"$set": fields},
        upsert=True,
    )


async def recently_synced(worker_id: str, max_age: timedelta) -> bool:
    """Check if a worker synced within the given time window."""
    last = await get_synced_at(worker_id)
    if not last:
        return False
    return (utcnow() - ensure_utc(last)) < max_age
