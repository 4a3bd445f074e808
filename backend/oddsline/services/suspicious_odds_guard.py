"""Reject obviously wrong over/under prices that indicate bookmaker data errors."""

from __future__ import annotations

import logging
from dataclasses import dataclass
from typing import Iterable

from oddsline.config import settings
from oddsline.models.odds import LINE_KINDS, MarketCategory, NormalizedSelection
from oddsline.monitoring.odds_metrics import METRIC_SUSPICIOUS_DROPPED

logger = logging.getLogger("oddsline.suspicious_odds_guard")


@dataclass(frozen=True)
class OddsGuard:
    market: MarketCategory
    line: float
    max_odds: float
    description: str


GUARDS: tuple[OddsGuard, ...] = (
    OddsGuard(MarketCategory.goals, 1.5, 3.8, "Goals O1.5 rarely exceeds 3.8"),
    OddsGuard(MarketCategory.goals, 2.5, 5.0, "Goals O2.5 rarely exceeds 5.0"),
    OddsGuard(MarketCategory.corners, 8.5, 6.0, "Corners O8.5 rarely exceeds 6.0"),
    OddsGuard(MarketCategory.corners, 9.5, 6.0, "Corners O9.5 rarely exceeds 6.0"),
    OddsGuard(MarketCategory.corners, 10.5, 6.0, "Corners O10.5 rarely exceeds 6.0"),
    OddsGuard(MarketCategory.corners, 11.5, 6.0, "Corners O11.5 rarely exceeds 6.0"),
    OddsGuard(MarketCategory.corners, 12.5, 6.0, "Corners O12.5 rarely exceeds 6.0"),
    OddsGuard(MarketCategory.cards, 2.5, 4.5, "Cards O2.5 rarely exceeds 4.5"),
)


def check_suspicious_odds(market: MarketCategory | str, line: float, odds: float) -> str | None:
    """Return a warning when the price looks wrong, None when it is plausible."""
    market_key = market.value if isinstance(market, MarketCategory) else str(market)
    if odds < settings.ODDS_GUARD_MIN:
        return f"Out of band: {market_key} {line} @ {odds:.2f} below minimum {settings.ODDS_GUARD_MIN}"
    if odds > settings.ODDS_GUARD_MAX:
        return f"Out of band: {market_key} {line} @ {odds:.2f} above maximum {settings.ODDS_GUARD_MAX}"

    for guard in GUARDS:
        if guard.market.value == market_key and abs(guard.line - line) < 0.01:
            if odds >= guard.max_odds:
                return (
                    f"Suspicious odds: {market_key} {line} @ {odds:.2f} exceeds threshold "
                    f"{guard.max_odds} ({guard.description})"
                )
            break
    return None


def filter_suspicious_odds(selections: Iterable[NormalizedSelection]) -> list[NormalizedSelection]:
    """Drop over/under selections with implausible prices. Other kinds pass through."""
    kept: list[NormalizedSelection] = []
    for sel in selections:
        if sel.kind in LINE_KINDS and sel.line is not None:
            warning = check_suspicious_odds(sel.market, sel.line, sel.odds)
            if warning:
                METRIC_SUSPICIOUS_DROPPED.labels(market=sel.market.value).inc()
                logger.warning("%s (bookmaker=%s fixture=%s) - DROPPED", warning, sel.bookmaker, sel.fixture_id)
                continue
        kept.append(sel)
    return kept
