"""
backend/tests/test_odds_payload_parser.py

Purpose:
    Boundary parsing of API-Football pre-match and live odds bodies.
"""

from __future__ import annotations

import json
from datetime import datetime, timezone

from oddsline.services.odds_payload_parser import LIVE_BOOKMAKER_NAME, parse_provider_response

CAPTURED = datetime(2026, 3, 1, 12, 0, tzinfo=timezone.utc)


def _parse(body, source="prematch", fixture_id=1001):
    return parse_provider_response(body, fixture_id=fixture_id, source=source, captured_at=CAPTURED)


def test_prematch_body_becomes_typed_payload():
    body = {
        "response": [
            {
                "fixture": {"id": 1001},
                "bookmakers": [
                    {
                        "id": 8,
                        "name": "Bet365",
                        "bets": [
                            {
                                "id": 5,
                                "name": "Goals Over/Under",
                                "values": [
                                    {"value": "Over 2.5", "odd": "1.85"},
                                    {"value": "Under 2.5", "odd": "1.95"},
                                    "garbage",
                                    {"value": "Over 3.5"},
                                ],
                            },
                            {"id": 45, "name": "Corners Over Under", "values": []},
                        ],
                    },
                    {"id": 11, "name": "Empty", "bets": []},
                    None,
                ],
            }
        ]
    }
    payload = _parse(body)

    assert payload is not None
    assert payload.fixture_id == 1001
    assert payload.source == "prematch"
    assert payload.captured_at == CAPTURED
    assert [b.name for b in payload.bookmakers] == ["Bet365"]
    markets = payload.bookmakers[0].markets
    assert [m.id for m in markets] == [5]
    assert [(v.value, v.odd) for v in markets[0].values] == [("Over 2.5", "1.85"), ("Under 2.5", "1.95")]


def test_entry_matching_the_fixture_is_preferred():
    body = {
        "response": [
            {"fixture": {"id": 5}, "bookmakers": [{"id": 1, "name": "Other", "bets": [
                {"id": 8, "values": [{"value": "Yes", "odd": "1.7"}]}]}]},
            {"fixture": {"id": 1001}, "bookmakers": [{"id": 2, "name": "Mine", "bets": [
                {"id": 8, "values": [{"value": "Yes", "odd": "1.6"}]}]}]},
        ]
    }
    assert _parse(body).bookmakers[0].name == "Mine"


def test_empty_or_nonconforming_response_is_unavailable():
    assert _parse({"response": []}) is None
    assert _parse({"results": 0}) is None
    assert _parse({"response": "nope"}) is None
    assert _parse({"response": ["x", 1]}) is None
    assert _parse({"response": [{"fixture": {"id": 1001}, "bookmakers": [{"id": 1, "bets": "x"}]}]}) is None


def test_live_odds_fold_into_one_bookmaker_and_merge_handicap():
    body = {
        "response": [
            {
                "fixture": {"id": 1001},
                "odds": [
                    {
                        "id": 36,
                        "name": "Over/Under Line",
                        "values": [
                            {"value": "Over", "odd": "1.9", "handicap": "2.5", "suspended": False},
                            {"value": "Under", "odd": "1.9", "handicap": "2.5", "suspended": True},
                            {"value": "Under 3.5", "odd": "1.4", "handicap": "3.5", "suspended": False},
                        ],
                    }
                ],
            }
        ]
    }
    payload = _parse(body, source="live")

    assert payload.source == "live"
    assert len(payload.bookmakers) == 1
    bookmaker = payload.bookmakers[0]
    assert bookmaker.name == LIVE_BOOKMAKER_NAME
    market = bookmaker.markets[0]
    assert market.id is None
    assert market.name == "Over/Under Line"
    assert [v.value for v in market.values] == ["Over 2.5", "Under 3.5"]


def test_infinite_or_fractional_ids_do_not_break_parsing():
    body = json.loads(
        '{"response": [{"fixture": {"id": 1001}, "bookmakers": [{"id": Infinity, "name": "Bet365", "bets": ['
        '{"id": Infinity, "name": "Goals Over/Under", "values": [{"value": "Over 2.5", "odd": "1.85"}]},'
        '{"id": 5.9, "name": "Cards Over/Under", "values": [{"value": "Over 4.5", "odd": "2.1"}]}]}]}]}'
    )
    payload = _parse(body)

    bookmaker = payload.bookmakers[0]
    assert bookmaker.id is None
    assert [m.id for m in bookmaker.markets] == [None, None]
    assert [m.name for m in bookmaker.markets] == ["Goals Over/Under", "Cards Over/Under"]


def test_entry_for_another_fixture_is_never_taken():
    other = {"fixture": {"id": 5}, "bookmakers": [{"id": 1, "name": "Other", "bets": [
        {"id": 8, "values": [{"value": "Yes", "odd": "1.7"}]}]}]}
    unstamped = {"bookmakers": [{"id": 2, "name": "Unstamped", "bets": [
        {"id": 8, "values": [{"value": "Yes", "odd": "1.6"}]}]}]}

    assert _parse({"response": [other]}) is None
    assert _parse({"response": [other, unstamped]}).bookmakers[0].name == "Unstamped"
