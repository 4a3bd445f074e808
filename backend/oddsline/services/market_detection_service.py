"""
backend/oddsline/services/market_detection_service.py

Purpose:
    Detect which normalized markets a fixture's odds feed actually carries.
    Lower divisions often lack corners/cards odds; filtering selections by
    availability keeps unplaceable bets out of recommendations.

    League coverage is the second gate: a league can carry odds for a market
    whose stats are too sparse to settle on. Coverage maps are loaded per
    invocation and passed in; nothing is cached at module level.

Dependencies:
    - oddsline.services.market_map
    - oddsline.services.league_coverage_repository
"""

from __future__ import annotations

from typing import Any, Iterable, Mapping, TypeVar

from oddsline.models.odds import LeagueCoverage, MarketCategory, OddsPayload
from oddsline.services.league_coverage_repository import LeagueCoverageRepository
from oddsline.services.market_map import classify_market

T = TypeVar("T")


def _iter_raw_markets(payload: OddsPayload | Mapping[str, Any] | None) -> Iterable[tuple[Any, Any]]:
    """Yield (market_id, market_name) for every market of every bookmaker."""
    if isinstance(payload, OddsPayload):
        for bookmaker in payload.bookmakers:
            for market in bookmaker.markets:
                yield market.id, market.name
        return

    if not isinstance(payload, Mapping):
        return
    bookmakers = payload.get("bookmakers")
    if not isinstance(bookmakers, list):
        return
    for bookmaker in bookmakers:
        if not isinstance(bookmaker, Mapping):
            continue
        markets = bookmaker.get("markets") or bookmaker.get("bets")
        if not isinstance(markets, list):
            continue
        for market in markets:
            if isinstance(market, Mapping):
                yield market.get("id"), market.get("name")


def detect_available_markets(payload: OddsPayload | Mapping[str, Any] | None) -> set[MarketCategory]:
    available: set[MarketCategory] = set()
    for market_id, name in _iter_raw_markets(payload):
        mapping = classify_market(market_id, name)
        if mapping.known:
            available.add(mapping.normalized)
    return available


def is_market_available(payload: OddsPayload | Mapping[str, Any] | None, market: MarketCategory | str) -> bool:
    try:
        target = MarketCategory(market)
    except ValueError:
        return False
    return target in detect_available_markets(payload)


def list_available_markets(payload: OddsPayload | Mapping[str, Any] | None) -> list[str]:
    """Sorted market names, stable for display and comparisons."""
    return sorted(m.value for m in detect_available_markets(payload))


async def load_league_coverage(
    league_ids: Iterable[int] | None = None,
    repository: LeagueCoverageRepository | None = None,
) -> dict[int, LeagueCoverage]:
    """Coverage map for one invocation; pass it to the helpers below."""
    return await (repository or LeagueCoverageRepository()).load(league_ids)


def league_skipped_markets(league_id: int | None, coverage: Mapping[int, LeagueCoverage]) -> set[MarketCategory]:
    """Markets the league opts out of. Unknown leagues skip nothing."""
    if league_id is None:
        return set()
    row = coverage.get(league_id)
    return row.skipped_markets() if row is not None else set()


def should_skip_market(
    league_id: int | None,
    market: MarketCategory | str,
    coverage: Mapping[int, LeagueCoverage],
) -> bool:
    try:
        target = MarketCategory(market)
    except ValueError:
        return False
    return target in league_skipped_markets(league_id, coverage)


def filter_selections_by_availability(
    selections: Iterable[T],
    available: set[MarketCategory],
    *,
    league_id: int | None = None,
    coverage: Mapping[int, LeagueCoverage] | None = None,
) -> list[T]:
    """Keep selections whose market is in ``available``.

    With ``league_id`` and ``coverage``, markets the league skips are dropped
    too. Works for NormalizedSelection objects and plain dicts with a
    "market" key.
    """
    skipped = league_skipped_markets(league_id, coverage or {})
    allowed = {m.value if isinstance(m, MarketCategory) else str(m) for m in available}
    allowed -= {m.value for m in skipped}
    kept: list[T] = []
    for sel in selections:
        market = sel.get("market") if isinstance(sel, Mapping) else getattr(sel, "market", None)
        if isinstance(market, MarketCategory):
            market = market.value
        if market in allowed:
            kept.append(sel)
    return kept
