"""
backend/oddsline/services/odds_service.py

Purpose:
    Odds fetch & cache orchestration for one fixture: serve a fresh cached
    pre-match payload or fetch from the provider, flatten bookmaker/market/
    value triples into NormalizedSelection rows, and persist pre-match
    payloads for reuse. Live odds are never cached.

    Provider fetch, parse, flatten and cache write run strictly in sequence.
    Any upstream or store failure fails the whole request; there is no
    fallback to stale cache and no partial result.

Dependencies:
    - oddsline.providers.api_football
    - oddsline.services.odds_cache_repository
    - oddsline.services.odds_payload_parser
    - oddsline.services.market_map
    - oddsline.services.odds_normalization_service
"""

from __future__ import annotations

import logging
from collections import Counter
from datetime import datetime, timedelta

from oddsline.config import settings
from oddsline.models.odds import (
    FetchOddsResult,
    MarketType,
    NormalizedSelection,
    OddsPayload,
    SelectionKind,
)
from oddsline.monitoring.odds_metrics import (
    METRIC_ENTRIES_DROPPED,
    METRIC_FETCH_LATENCY,
    METRIC_FETCH_TOTAL,
    METRIC_SELECTIONS_EMITTED,
    METRIC_UNMATCHED_LABELS,
    observe_latency,
)
from oddsline.providers.api_football import odds_provider
from oddsline.providers.base import BaseOddsProvider
from oddsline.services.market_map import classify_market
from oddsline.services.odds_cache_repository import OddsCacheRepository
from oddsline.services.odds_normalization_service import (
    looks_like_total,
    parse_decimal_odds,
    parse_selection_value,
)
from oddsline.services.odds_payload_parser import parse_provider_response
from oddsline.services.suspicious_odds_guard import filter_suspicious_odds
from oddsline.utils import ensure_utc, utcnow

logger = logging.getLogger("oddsline.odds_service")

# Selection kinds a market type can legitimately offer.
_KINDS_BY_TYPE: dict[MarketType, frozenset[SelectionKind]] = {
    MarketType.ou: frozenset({SelectionKind.over, SelectionKind.under}),
    MarketType.one_x_two: frozenset({SelectionKind.one, SelectionKind.draw, SelectionKind.two}),
    MarketType.btts: frozenset({SelectionKind.yes, SelectionKind.no}),
}


def flatten_selections(payload: OddsPayload) -> list[NormalizedSelection]:
    """Flatten every bookmaker/market/value triple into typed selections.

    Triples with an unclassifiable market, an unparseable label, a label
    the market type cannot offer, or an unusable price are dropped.
    """
    selections: list[NormalizedSelection] = []
    skipped: Counter[str] = Counter()

    for bookmaker in payload.bookmakers:
        for market in bookmaker.markets:
            mapping = classify_market(market.id, market.name)
            allowed_kinds = _KINDS_BY_TYPE.get(mapping.type, frozenset())
            if not mapping.known or not allowed_kinds:
                skipped["market"] += len(market.values)
                continue

            for value in market.values:
                parsed = parse_selection_value(value.value)
                if parsed is None:
                    if looks_like_total(value.value):
                        METRIC_UNMATCHED_LABELS.labels(market=mapping.normalized.value).inc()
                        logger.debug(
                            "Unmatched over/under label %r (bookmaker=%s market=%s)",
                            value.value, bookmaker.name, market.name or market.id,
                        )
                        skipped["line"] += 1
                    else:
                        skipped["value"] += 1
                    continue
                if parsed.kind not in allowed_kinds:
                    skipped["value"] += 1
                    continue

                odds = parse_decimal_odds(value.odd)
                if odds is None:
                    skipped["odds"] += 1
                    continue

                selections.append(
                    NormalizedSelection(
                        fixture_id=payload.fixture_id,
                        market=mapping.normalized,
                        kind=parsed.kind,
                        line=parsed.line,
                        bookmaker=bookmaker.name,
                        odds=odds,
                        provider_market_id=market.id,
                    )
                )
                METRIC_SELECTIONS_EMITTED.labels(market=mapping.normalized.value).inc()

    for reason, count in skipped.items():
        METRIC_ENTRIES_DROPPED.labels(reason=reason).inc(count)

    logger.info(
        "Flattened %d selections from %d bookmakers for fixture %s (skipped: %s)",
        len(selections), len(payload.bookmakers), payload.fixture_id, dict(skipped) or "none",
    )
    return selections


class OddsService:
    def __init__(
        self,
        provider: BaseOddsProvider | None = None,
        cache: OddsCacheRepository | None = None,
        fresh_for: timedelta | None = None,
    ):
        self.provider = provider or odds_provider
        self.cache = cache or OddsCacheRepository()
        self.fresh_for = fresh_for or timedelta(minutes=settings.ODDS_CACHE_FRESH_MINUTES)

    def is_fresh(self, payload: OddsPayload, now: datetime) -> bool:
        return now - ensure_utc(payload.captured_at) <= self.fresh_for

    async def fetch_odds(
        self,
        fixture_id: int,
        *,
        live: bool = False,
        force_refresh: bool = False,
        guarded: bool = False,
    ) -> FetchOddsResult:
        source = "live" if live else "prematch"
        apply_guard = bool(guarded) or settings.ODDS_GUARD_ENABLED

        with observe_latency(METRIC_FETCH_LATENCY.labels(source=source)):
            now = utcnow()
            payload: OddsPayload | None = None
            cache_hit = False

            if not live and not force_refresh:
                cached = await self.cache.get(fixture_id)
                if cached is not None and self.is_fresh(cached, now):
                    age_min = (now - ensure_utc(cached.captured_at)).total_seconds() / 60
                    logger.info("Cache hit for fixture %s (age: %.0fmin)", fixture_id, age_min)
                    payload, cache_hit = cached, True
                elif cached is not None:
                    logger.info("Cache stale for fixture %s, refetching", fixture_id)
                else:
                    logger.info("Cache miss for fixture %s", fixture_id)

            if payload is None:
                body = await self.provider.get_odds(fixture_id, live=live)
                payload = parse_provider_response(body, fixture_id=fixture_id, source=source, captured_at=now)
                if payload is None:
                    METRIC_FETCH_TOTAL.labels(source=source, outcome="unavailable").inc()
                    logger.info("No %s odds available yet for fixture %s", source, fixture_id)
                    return FetchOddsResult(available=False, fixture_id=fixture_id, cache_hit=False, source=source)

            selections = flatten_selections(payload)
            if apply_guard:
                selections = filter_suspicious_odds(selections)

            if not cache_hit and not live:
                await self.cache.upsert(payload)

            METRIC_FETCH_TOTAL.labels(source=source, outcome="cache_hit" if cache_hit else "fetched").inc()
            return FetchOddsResult(
                available=True,
                fixture_id=fixture_id,
                bookmakers=payload.bookmakers,
                captured_at=payload.captured_at,
                cache_hit=cache_hit,
                source=source,
                selections=selections,
            )


odds_service = OddsService()
