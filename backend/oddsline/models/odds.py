"""
backend/oddsline/models/odds.py

Purpose:
    Typed odds model: the provider snapshot (OddsPayload -> Bookmaker ->
    RawMarket -> RawValue), the flattened NormalizedSelection consumed by
    recommendation/ticket logic, and the fetch request/response shapes.

    API shapes use camelCase aliases; persistence uses field names.

Dependencies:
    - pydantic
"""

from __future__ import annotations

from datetime import datetime
from enum import Enum
from typing import Literal, Optional

from pydantic import BaseModel, ConfigDict, Field, model_validator
from pydantic.alias_generators import to_camel


class MarketCategory(str, Enum):
    goals = "goals"
    corners = "corners"
    cards = "cards"
    fouls = "fouls"
    offsides = "offsides"
    other = "other"


class MarketType(str, Enum):
    ou = "ou"
    one_x_two = "1x2"
    btts = "btts"
    handicap = "handicap"
    exact = "exact"
    other = "other"


class SelectionKind(str, Enum):
    over = "over"
    under = "under"
    yes = "yes"
    no = "no"
    one = "one"      # home win
    draw = "draw"
    two = "two"      # away win
    other = "other"


LINE_KINDS = frozenset({SelectionKind.over, SelectionKind.under})

OddsSource = Literal["prematch", "live"]


class _CamelModel(BaseModel):
    model_config = ConfigDict(alias_generator=to_camel, populate_by_name=True)


class RawValue(_CamelModel):
    value: str       # Bookmaker label, e.g. "Over 2.5", "O 2,5"
    odd: str         # Decimal odds as text


class RawMarket(_CamelModel):
    id: Optional[int] = None
    name: str = ""
    values: list[RawValue] = Field(default_factory=list)


class Bookmaker(_CamelModel):
    id: Optional[int] = None
    name: str = ""
    markets: list[RawMarket] = Field(default_factory=list)


class OddsPayload(_CamelModel):
    """One fixture's captured odds snapshot. Never mutated after capture."""

    model_config = ConfigDict(alias_generator=to_camel, populate_by_name=True, frozen=True)

    fixture_id: int
    bookmakers: list[Bookmaker] = Field(default_factory=list)
    captured_at: datetime
    source: OddsSource = "prematch"


class NormalizedSelection(_CamelModel):
    fixture_id: int
    market: MarketCategory
    kind: SelectionKind
    line: Optional[float] = None
    bookmaker: str
    odds: float = Field(gt=0)
    provider_market_id: Optional[int] = None

    @model_validator(mode="after")
    def _line_only_for_totals(self) -> "NormalizedSelection":
        if (self.kind in LINE_KINDS) != (self.line is not None):
            raise ValueError(f"line is required for over/under and forbidden for {self.kind.value}")
        return self


class FetchOddsRequest(_CamelModel):
    fixture_id: int = Field(gt=0)
    live: bool = False
    force_refresh: bool = False
    guarded: bool = False


class FetchOddsResult(_CamelModel):
    available: bool
    fixture_id: int
    bookmakers: Optional[list[Bookmaker]] = None
    captured_at: Optional[datetime] = None
    cache_hit: bool = False
    source: OddsSource = "prematch"
    selections: list[NormalizedSelection] = Field(default_factory=list)


class LeagueCoverage(_CamelModel):
    """Per-league flags for markets whose stats coverage is too thin to offer."""

    league_id: int
    skip_goals: bool = False
    skip_corners: bool = False
    skip_cards: bool = False
    skip_fouls: bool = False
    skip_offsides: bool = False

    def skipped_markets(self) -> set[MarketCategory]:
        return {
            market
            for market in MarketCategory
            if market is not MarketCategory.other and getattr(self, f"skip_{market.value}")
        }


class AvailabilityRequest(_CamelModel):
    fixture_id: int = Field(gt=0)
    league_id: Optional[int] = Field(default=None, gt=0)


class AvailabilityResponse(_CamelModel):
    fixture_id: int
    available: list[str]
    captured_at: datetime
    league_skipped: list[str] = Field(default_factory=list)
