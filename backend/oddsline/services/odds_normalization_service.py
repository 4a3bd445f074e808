"""
backend/oddsline/services/odds_normalization_service.py

Purpose:
    Canonicalize bookmaker value labels ("Total Over (2.5)", "O 2,5",
    "Over 2.5") into "{side} {line}" and parse them into typed selection
    sides. Pure functions, no I/O.

    Matching against a target pick is exact string equality on the
    normalized label. Label formats the rules below do not cover simply do
    not match; the fetch pipeline counts such labels separately
    (METRIC_UNMATCHED_LABELS) so they can be told apart from markets that
    are genuinely not offered.

Dependencies:
    - re
    - math
"""

from __future__ import annotations

import math
import re
from dataclasses import dataclass

from oddsline.models.odds import SelectionKind

_PARENS_RE = re.compile(r"[()]")
_TOTAL_RE = re.compile(r"\btotal\b", re.IGNORECASE)
_DECIMAL_COMMA_RE = re.compile(r"(?<=\d),(?=\d)")
_WHITESPACE_RE = re.compile(r"\s+")
_OVER_SHORT_RE = re.compile(r"\bo\b")
_UNDER_SHORT_RE = re.compile(r"\bu\b")

_NUMBER = r"(\d+(?:\.\d+)?)"
_OVER_RE = re.compile(rf"\b(?:over|o)\s*{_NUMBER}\b")
_UNDER_RE = re.compile(rf"\b(?:under|u)\s*{_NUMBER}\b")
_TOTAL_TOKEN_RE = re.compile(r"\b(?:over|under)\b")

# Totals scoped to a half, a single team or an asian line are different bets.
_SCOPED_QUALIFIERS = ("1st half", "2nd half", "1h", "2h", "asian", "team", "home", "away")

_LITERAL_KINDS = {
    "yes": SelectionKind.yes,
    "no": SelectionKind.no,
    "1": SelectionKind.one,
    "home": SelectionKind.one,
    "x": SelectionKind.draw,
    "draw": SelectionKind.draw,
    "2": SelectionKind.two,
    "away": SelectionKind.two,
}


@dataclass(frozen=True)
class ParsedValue:
    kind: SelectionKind
    line: float | None = None


def normalize_odds_value(raw: str | None) -> str:
    """Normalize a bookmaker label to canonical form.

    "Total Over (2.5)" -> "over 2.5", "O 2,5" -> "over 2.5".
    """
    if not raw:
        return ""
    normalized = str(raw).lower().strip()
    normalized = _PARENS_RE.sub("", normalized)
    normalized = _TOTAL_RE.sub("", normalized)
    normalized = _DECIMAL_COMMA_RE.sub(".", normalized)
    normalized = _WHITESPACE_RE.sub(" ", normalized).strip()
    normalized = _OVER_SHORT_RE.sub("over", normalized)
    normalized = _UNDER_SHORT_RE.sub("under", normalized)
    return normalized


def format_line(line: float | int) -> str:
    """Render a line the way labels carry it: 2.5 -> "2.5", 3.0 -> "3"."""
    value = float(line)
    if value.is_integer():
        return str(int(value))
    return str(value)


def build_target_string(side: str, line: float | int) -> str:
    return f"{side.lower()} {format_line(line)}"


def matches_target(normalized_value: str, side: str, line: float | int) -> bool:
    return normalized_value == build_target_string(side, line)


def parse_decimal_odds(raw: object) -> float | None:
    """Parse decimal odds text. Returns None unless the price is a finite number >= 1.0."""
    if raw is None or isinstance(raw, bool):
        return None
    text = str(raw).strip().replace(",", ".")
    if not text:
        return None
    try:
        value = float(text)
    except ValueError:
        return None
    if not math.isfinite(value) or value < 1.0:
        return None
    return value


def _parse_line(text: str) -> float | None:
    try:
        value = float(text)
    except ValueError:
        return None
    if not math.isfinite(value) or value < 0:
        return None
    return value


def parse_selection_value(raw_label: str | None) -> ParsedValue | None:
    """Parse a value label into (kind, line). None means not an offerable selection."""
    label = normalize_odds_value(raw_label)
    if not label:
        return None

    literal = _LITERAL_KINDS.get(label)
    if literal is not None:
        return ParsedValue(kind=literal)

    if any(q in label for q in _SCOPED_QUALIFIERS):
        return None

    for kind, pattern in ((SelectionKind.over, _OVER_RE), (SelectionKind.under, _UNDER_RE)):
        match = pattern.search(label)
        if match:
            line = _parse_line(match.group(1))
            if line is None:
                return None
            return ParsedValue(kind=kind, line=line)
    return None


def looks_like_total(raw_label: str | None) -> bool:
    """True if the label mentions over/under at all (used to spot unparsed formats)."""
    return bool(_TOTAL_TOKEN_RE.search(normalize_odds_value(raw_label)))
