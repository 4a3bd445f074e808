"""
backend/oddsline/services/odds_payload_parser.py

Purpose:
    Boundary conversion of the untyped API-Football odds body into the typed
    OddsPayload model. Anything that does not conform (non-object entries,
    markets without values, values without a label or price) is logged and
    skipped here so the normalization code only ever sees typed data.

    Pre-match entries carry ``bookmakers[].bets[].values[]``. Live entries
    carry a flat ``odds[]`` list without bookmakers; they are folded into a
    single synthetic bookmaker named "live". Live totals put the line in a
    separate ``handicap`` field ("Over" + "2.5"), which is merged back into
    the label. In-play bet ids do not line up with pre-match ids, so live
    markets keep only their name.

Dependencies:
    - oddsline.models.odds
"""

from __future__ import annotations

import logging
from datetime import datetime
from typing import Any

from oddsline.models.odds import Bookmaker, OddsPayload, OddsSource, RawMarket, RawValue
from oddsline.monitoring.odds_metrics import METRIC_ENTRIES_DROPPED
from oddsline.utils import as_int_id

logger = logging.getLogger("oddsline.odds_payload_parser")

LIVE_BOOKMAKER_ID = 0
LIVE_BOOKMAKER_NAME = "live"


def _label_text(value: Any) -> str:
    if value is None or isinstance(value, (dict, list)):
        return ""
    return str(value).strip()


def _parse_value(raw: Any, *, live: bool) -> RawValue | None:
    if not isinstance(raw, dict):
        return None
    if raw.get("suspended") is True:
        return None
    label = _label_text(raw.get("value"))
    odd = _label_text(raw.get("odd"))
    if not label or not odd:
        return None
    if live:
        handicap = _label_text(raw.get("handicap"))
        if handicap and not any(ch.isdigit() for ch in label):
            label = f"{label} {handicap}"
    return RawValue(value=label, odd=odd)


def _parse_market(raw: Any, *, live: bool) -> RawMarket | None:
    if not isinstance(raw, dict):
        return None
    raw_values = raw.get("values")
    if not isinstance(raw_values, list):
        return None
    values: list[RawValue] = []
    skipped = 0
    for raw_value in raw_values:
        parsed = _parse_value(raw_value, live=live)
        if parsed is None:
            skipped += 1
            continue
        values.append(parsed)
    if skipped:
        METRIC_ENTRIES_DROPPED.labels(reason="shape").inc(skipped)
    if not values:
        return None
    # In-play bet ids are numbered independently of pre-match ids; classify by name.
    market_id = None if live else as_int_id(raw.get("id"))
    return RawMarket(id=market_id, name=_label_text(raw.get("name")), values=values)


def _parse_markets(raw_markets: Any, *, live: bool) -> list[RawMarket]:
    if not isinstance(raw_markets, list):
        return []
    markets: list[RawMarket] = []
    for raw_market in raw_markets:
        market = _parse_market(raw_market, live=live)
        if market is None:
            METRIC_ENTRIES_DROPPED.labels(reason="shape").inc()
            continue
        markets.append(market)
    return markets


def _parse_bookmaker(raw: Any) -> Bookmaker | None:
    if not isinstance(raw, dict):
        return None
    bookmaker_id = as_int_id(raw.get("id"))
    markets = _parse_markets(raw.get("bets", raw.get("markets")), live=False)
    if not markets:
        return None
    name = _label_text(raw.get("name")) or f"Bookmaker {bookmaker_id}"
    return Bookmaker(id=bookmaker_id, name=name, markets=markets)


def _entry_fixture_id(entry: dict[str, Any]) -> int | None:
    fixture = entry.get("fixture")
    return as_int_id(fixture.get("id")) if isinstance(fixture, dict) else None


def _select_entry(entries: list[Any], fixture_id: int) -> dict[str, Any] | None:
    """The entry for ``fixture_id``, else the first entry that names no fixture.

    Entries stamped with another fixture are never taken.
    """
    candidates = [e for e in entries if isinstance(e, dict)]
    for entry in candidates:
        if _entry_fixture_id(entry) == fixture_id:
            return entry
    for entry in candidates:
        if _entry_fixture_id(entry) is None:
            return entry
    return None


def parse_provider_response(
    body: dict[str, Any],
    *,
    fixture_id: int,
    source: OddsSource,
    captured_at: datetime,
) -> OddsPayload | None:
    """Convert a provider body into an OddsPayload.

    Returns None when the provider has no odds for the fixture (empty
    ``response``), which callers report as "unavailable", not as an error.
    """
    entries = body.get("response")
    if not isinstance(entries, list) or not entries:
        return None

    entry = _select_entry(entries, fixture_id)
    if entry is None:
        logger.warning("Odds response for fixture %s has no usable entries", fixture_id)
        return None

    bookmakers: list[Bookmaker] = []
    if isinstance(entry.get("bookmakers"), list):
        for raw_bookmaker in entry["bookmakers"]:
            bookmaker = _parse_bookmaker(raw_bookmaker)
            if bookmaker is None:
                METRIC_ENTRIES_DROPPED.labels(reason="shape").inc()
                continue
            bookmakers.append(bookmaker)
    elif isinstance(entry.get("odds"), list):
        markets = _parse_markets(entry["odds"], live=True)
        if markets:
            bookmakers.append(Bookmaker(id=LIVE_BOOKMAKER_ID, name=LIVE_BOOKMAKER_NAME, markets=markets))

    if not bookmakers:
        logger.info("Odds response for fixture %s carried no conforming bookmakers", fixture_id)
        return None

    return OddsPayload(
        fixture_id=fixture_id,
        bookmakers=bookmakers,
        captured_at=captured_at,
        source=source,
    )
