"""
backend/oddsline/main.py

Purpose:
    FastAPI application bootstrap, middleware/router wiring, error mapping and
    scheduler lifecycle for the odds ingestion service.

Dependencies:
    - oddsline.database
    - oddsline.workers.odds_warmup
"""

import logging
from contextlib import asynccontextmanager

from apscheduler.schedulers.asyncio import AsyncIOScheduler
from fastapi import FastAPI, Request
from fastapi.exceptions import RequestValidationError
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse, Response
from prometheus_client import CONTENT_TYPE_LATEST, generate_latest

import oddsline.database as _db
from oddsline.config import settings
from oddsline.database import close_db, connect_db
from oddsline.errors import OddslineError, RateLimitExceeded
from oddsline.middleware.logging import StructuredLoggingMiddleware, setup_logging
from oddsline.providers.api_football import odds_provider

logger = logging.getLogger("oddsline")
scheduler = AsyncIOScheduler()

_WARMUP_JOB_ID = "odds_warmup"


def _register_warmup_job() -> bool:
    from oddsline.workers.odds_warmup import warmup_odds

    if scheduler.get_job(_WARMUP_JOB_ID):
        return False
    scheduler.add_job(
        warmup_odds,
        "interval",
        id=_WARMUP_JOB_ID,
        replace_existing=True,
        minutes=settings.ODDS_WARMUP_INTERVAL_MINUTES,
    )
    return True


@asynccontextmanager
async def lifespan(app: FastAPI):
    setup_logging()
    await connect_db()

    scheduler.start()
    if settings.ODDS_WARMUP_ENABLED:
        _register_warmup_job()
        logger.info(
            "Odds warmup scheduled every %d minutes", settings.ODDS_WARMUP_INTERVAL_MINUTES
        )
    else:
        logger.info("Odds warmup disabled via config")
    logger.info("Background scheduler started")

    yield

    if scheduler.running:
        scheduler.shutdown(wait=False)
    await odds_provider.aclose()
    await close_db()


app = FastAPI(
    title="Oddsline",
    description="Odds ingestion, market detection and per-user quotas",
    version="0.1.0",
    lifespan=lifespan,
)

# CORS
app.add_middleware(
    CORSMiddleware,
    allow_origins=settings.BACKEND_CORS_ORIGINS.split(","),
    allow_credentials=True,
    allow_methods=["GET", "POST", "OPTIONS"],
    allow_headers=["Content-Type", "Authorization"],
)

# Structured logging
app.add_middleware(StructuredLoggingMiddleware)

# Routers
from oddsline.routers.odds import router as odds_router
from oddsline.routers.rate_limits import router as rate_limits_router

app.include_router(odds_router)
app.include_router(rate_limits_router)


@app.exception_handler(RateLimitExceeded)
async def rate_limit_handler(request: Request, exc: RateLimitExceeded):
    content = {
        "code": exc.code,
        "detail": exc.message,
        "feature": exc.feature,
        "retry_after_seconds": exc.retry_after_seconds,
    }
    if exc.current_count is not None:
        content["current_count"] = exc.current_count
    return JSONResponse(
        status_code=exc.status_code,
        content=content,
        headers={"Retry-After": str(exc.retry_after_seconds)},
    )


@app.exception_handler(OddslineError)
async def oddsline_error_handler(request: Request, exc: OddslineError):
    if exc.status_code >= 500:
        logger.error("%s on %s %s: %s", exc.code, request.method, request.url.path, exc.message)
    return JSONResponse(
        status_code=exc.status_code,
        content={"code": exc.code, "detail": exc.message},
    )


@app.exception_handler(RequestValidationError)
async def validation_error_handler(request: Request, exc: RequestValidationError):
    """Return clean validation errors without leaking internal field paths."""
    errors = []
    for err in exc.errors():
        loc = err.get("loc", ())
        # Strip the "body" / "query" prefix for cleaner messages
        field = ".".join(str(part) for part in loc[1:]) if len(loc) > 1 else str(loc[-1]) if loc else "unknown"
        errors.append({"field": field, "message": err.get("msg", "Invalid value.")})
    return JSONResponse(
        status_code=422,
        content={"code": "VALIDATION_ERROR", "detail": "Validation error.", "errors": errors},
    )


@app.exception_handler(Exception)
async def unhandled_exception_handler(request: Request, exc: Exception):
    """Catch-all: log the real error, return a safe generic message."""
    logger.exception("Unhandled exception on %s %s", request.method, request.url.path)
    return JSONResponse(
        status_code=500,
        content={"code": "INTERNAL_ERROR", "detail": "An internal error occurred."},
    )


@app.get("/health")
async def health():
    """Health check -- verifies the DB connection and warmup scheduling."""
    try:
        result = await _db.db.command("ping")
        db_ok = result.get("ok") == 1.0
    except Exception:
        db_ok = False

    return {
        "status": "healthy" if db_ok else "degraded",
        "db": "connected" if db_ok else "disconnected",
        "odds_warmup": scheduler.get_job(_WARMUP_JOB_ID) is not None,
    }


@app.get("/metrics")
async def metrics():
    return Response(content=generate_latest(), media_type=CONTENT_TYPE_LATEST)
