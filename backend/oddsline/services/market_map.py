"""
backend/oddsline/services/market_map.py

Purpose:
    Map API-Football bet IDs/names to normalized market categories.
    ID lookup is authoritative; name matching is a best-effort substring
    scan and is flagged as heuristic on the result. Neither path raises:
    anything unknown resolves to ``other``.

Dependencies:
    - oddsline.models.odds
"""

from __future__ import annotations

from dataclasses import dataclass
from typing import Any

from oddsline.models.odds import MarketCategory, MarketType
from oddsline.utils import as_int_id


@dataclass(frozen=True)
class MarketMapping:
    normalized: MarketCategory
    type: MarketType
    heuristic: bool = False

    @property
    def known(self) -> bool:
        return self.normalized is not MarketCategory.other


_OTHER = MarketMapping(MarketCategory.other, MarketType.other)

# API-Football bet IDs (full match only)
MARKET_MAP: dict[int, MarketMapping] = {
    # Goals
    1: MarketMapping(MarketCategory.goals, MarketType.one_x_two),    # Match Winner
    5: MarketMapping(MarketCategory.goals, MarketType.ou),           # Goals Over/Under
    8: MarketMapping(MarketCategory.goals, MarketType.btts),         # Both Teams Score
    9: MarketMapping(MarketCategory.goals, MarketType.exact),        # Correct Score
    26: MarketMapping(MarketCategory.goals, MarketType.ou),          # Exact Goals Number
    # Corners
    12: MarketMapping(MarketCategory.corners, MarketType.ou),
    45: MarketMapping(MarketCategory.corners, MarketType.ou),        # Corners Over Under
    97: MarketMapping(MarketCategory.corners, MarketType.one_x_two), # Corners 1x2
    # Cards
    14: MarketMapping(MarketCategory.cards, MarketType.ou),
    15: MarketMapping(MarketCategory.cards, MarketType.ou),          # Player Cards
    80: MarketMapping(MarketCategory.cards, MarketType.ou),          # Cards Over/Under
}

# Checked in order; first substring hit wins.
MARKET_NAME_PATTERNS: tuple[tuple[str, MarketMapping], ...] = (
    ("goals over/under", MarketMapping(MarketCategory.goals, MarketType.ou, heuristic=True)),
    ("total goals", MarketMapping(MarketCategory.goals, MarketType.ou, heuristic=True)),
    ("match goals", MarketMapping(MarketCategory.goals, MarketType.ou, heuristic=True)),
    ("corners over/under", MarketMapping(MarketCategory.corners, MarketType.ou, heuristic=True)),
    ("corners over under", MarketMapping(MarketCategory.corners, MarketType.ou, heuristic=True)),
    ("total corners", MarketMapping(MarketCategory.corners, MarketType.ou, heuristic=True)),
    ("cards over/under", MarketMapping(MarketCategory.cards, MarketType.ou, heuristic=True)),
    ("total cards", MarketMapping(MarketCategory.cards, MarketType.ou, heuristic=True)),
    ("bookings", MarketMapping(MarketCategory.cards, MarketType.ou, heuristic=True)),
    ("over/under line", MarketMapping(MarketCategory.goals, MarketType.ou, heuristic=True)),
    ("match winner", MarketMapping(MarketCategory.goals, MarketType.one_x_two, heuristic=True)),
    ("fulltime result", MarketMapping(MarketCategory.goals, MarketType.one_x_two, heuristic=True)),
    ("both teams to score", MarketMapping(MarketCategory.goals, MarketType.btts, heuristic=True)),
    ("offsides", MarketMapping(MarketCategory.offsides, MarketType.ou, heuristic=True)),
    ("fouls", MarketMapping(MarketCategory.fouls, MarketType.ou, heuristic=True)),
)


def normalize_market_by_id(market_id: Any) -> MarketMapping:
    key = as_int_id(market_id)
    if key is None:
        return _OTHER
    return MARKET_MAP.get(key, _OTHER)


def normalize_market_by_name(name: Any) -> MarketMapping:
    lower_name = str(name or "").lower()
    if not lower_name:
        return MarketMapping(MarketCategory.other, MarketType.other, heuristic=True)
    for pattern, mapping in MARKET_NAME_PATTERNS:
        if pattern in lower_name:
            return mapping
    return MarketMapping(MarketCategory.other, MarketType.other, heuristic=True)


def classify_market(market_id: Any, name: Any) -> MarketMapping:
    """Classify by ID when it is a usable integer, otherwise by name."""
    if as_int_id(market_id) is not None:
        return normalize_market_by_id(market_id)
    return normalize_market_by_name(name)
