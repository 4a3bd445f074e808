"""
backend/oddsline/database.py

Purpose:
    MongoDB connection bootstrap and index management. The unique indexes
    here are what keep concurrent invocations correct: one odds_cache row
    per fixture, one user_rate_limits row per (user, feature, minute).

Dependencies:
    - motor.motor_asyncio
    - oddsline.config
"""

import logging

from motor.motor_asyncio import AsyncIOMotorClient, AsyncIOMotorDatabase

from oddsline.config import settings

client: AsyncIOMotorClient = None
db: AsyncIOMotorDatabase = None

logger = logging.getLogger("oddsline.database")


async def connect_db() -> None:
    global client, db
    client = AsyncIOMotorClient(
        settings.MONGO_URI,
        maxPoolSize=25,
        minPoolSize=1,
    )
    db = client[settings.MONGO_DB]
    await _ensure_indexes()
    logger.info("Connected to MongoDB database %s", settings.MONGO_DB)


async def close_db() -> None:
    global client
    if client:
        client.close()


async def _ensure_indexes() -> None:
    """Create indexes on startup. Idempotent."""

    # ---- Odds cache (single row per fixture, last write wins) ----
    await db.odds_cache.create_index("fixture_id", unique=True)
    await db.odds_cache.create_index([("captured_at", -1)])

    # ---- Per-user rate limit windows ----
    await db.user_rate_limits.create_index(
        [("user_id", 1), ("feature", 1), ("window_start", 1)],
        unique=True,
    )

    # ---- Fixtures (owned by fixture sync; read by the odds warmup) ----
    await db.fixtures.create_index([("timestamp", 1)])

    # ---- League stats coverage (owned by stats sync; read by availability) ----
    await db.league_stats_coverage.create_index("league_id", unique=True)
