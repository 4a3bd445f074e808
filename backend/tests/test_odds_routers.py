"""
backend/tests/test_odds_routers.py

Purpose:
    HTTP contract of the odds and rate-limit endpoints: camelCase shapes,
    rate gating, error codes and caller identity.

Dependencies:
    - fastapi.testclient
    - oddsline.main
"""

from __future__ import annotations

from datetime import datetime, timezone
from types import SimpleNamespace

import jwt
import pytest
from fastapi.testclient import TestClient

import oddsline.services.auth_service as auth_module
import oddsline.services.league_coverage_repository as league_repo_module
import oddsline.services.odds_service as odds_service_module
import oddsline.services.rate_limit_repository as repo_module
import oddsline.services.user_rate_limiter as limiter_module
from oddsline.errors import UpstreamUnavailable
from oddsline.main import app
from oddsline.models.odds import (
    Bookmaker,
    FetchOddsResult,
    MarketCategory,
    NormalizedSelection,
    OddsPayload,
    RawMarket,
    RawValue,
    SelectionKind,
)
from oddsline.services.auth_service import get_current_user_id
from oddsline.services.user_rate_limiter import UserRateLimiter

from conftest import FakeCollection

CAPTURED = datetime(2026, 3, 1, 12, 0, tzinfo=timezone.utc)
NOW = datetime(2026, 3, 1, 12, 5, 20, tzinfo=timezone.utc)
SECRET = "test-secret-with-enough-length-for-hs256"


class _FakeCache:
    def __init__(self, payload=None):
        self.payload = payload

    async def get(self, fixture_id):
        if self.payload is not None and self.payload.fixture_id == fixture_id:
            return self.payload
        return None


class _FakeOddsService:
    def __init__(self, payload=None, error: Exception | None = None):
        self.cache = _FakeCache(payload)
        self.error = error
        self.calls: list[dict] = []

    async def fetch_odds(self, fixture_id, *, live=False, force_refresh=False, guarded=False):
        self.calls.append({"fixture_id": fixture_id, "live": live, "force_refresh": force_refresh, "guarded": guarded})
        if self.error is not None:
            raise self.error
        return FetchOddsResult(
            available=True,
            fixture_id=fixture_id,
            captured_at=CAPTURED,
            cache_hit=False,
            source="live" if live else "prematch",
            selections=[
                NormalizedSelection(
                    fixture_id=fixture_id,
                    market=MarketCategory.goals,
                    kind=SelectionKind.over,
                    line=2.5,
                    bookmaker="Bet365",
                    odds=1.85,
                    provider_market_id=5,
                )
            ],
        )


def _payload() -> OddsPayload:
    return OddsPayload(
        fixture_id=1001,
        captured_at=CAPTURED,
        bookmakers=[
            Bookmaker(
                id=8,
                name="Bet365",
                markets=[
                    RawMarket(id=80, name="Cards Over/Under", values=[RawValue(value="Over 4.5", odd="1.8")]),
                    RawMarket(id=5, name="Goals Over/Under", values=[RawValue(value="Over 2.5", odd="1.9")]),
                ],
            )
        ],
    )


@pytest.fixture
def service(monkeypatch):
    fake = _FakeOddsService(payload=_payload())
    monkeypatch.setattr(odds_service_module, "odds_service", fake)
    return fake


@pytest.fixture
def quota_store(monkeypatch):
    collection = FakeCollection(unique=("user_id", "feature", "window_start"))
    monkeypatch.setattr(repo_module._db, "db", SimpleNamespace(user_rate_limits=collection), raising=False)
    monkeypatch.setattr(limiter_module, "user_rate_limiter", UserRateLimiter(on_store_error="allow"))
    monkeypatch.setattr(limiter_module, "utcnow", lambda: NOW)
    return collection


@pytest.fixture
def client():
    app.dependency_overrides[get_current_user_id] = lambda: "user-1"
    yield TestClient(app)
    app.dependency_overrides.clear()


def test_fetch_returns_camel_case_result(client, service, quota_store):
    resp = client.post("/api/odds/fetch", json={"fixtureId": 1001, "forceRefresh": True})

    assert resp.status_code == 200
    body = resp.json()
    assert body["available"] is True
    assert body["fixtureId"] == 1001
    assert body["cacheHit"] is False
    assert body["source"] == "prematch"
    assert body["selections"][0]["kind"] == "over"
    assert body["selections"][0]["line"] == 2.5
    assert body["selections"][0]["providerMarketId"] == 5
    assert service.calls == [{"fixture_id": 1001, "live": False, "force_refresh": True, "guarded": False}]
    assert quota_store.docs[0]["feature"] == "analyzer"


def test_fetch_is_rate_limited_per_user(client, service, quota_store, monkeypatch):
    monkeypatch.setattr(limiter_module.settings, "RATE_LIMIT_ANALYZER_PER_MINUTE", 2)

    statuses = [client.post("/api/odds/fetch", json={"fixtureId": 1001}).status_code for _ in range(3)]
    denied = client.post("/api/odds/fetch", json={"fixtureId": 1001})

    assert statuses == [200, 200, 429]
    assert denied.json()["code"] == "RATE_LIMITED"
    assert denied.json()["feature"] == "analyzer"
    assert denied.headers["Retry-After"] == "40"
    assert len(service.calls) == 2


def test_fetch_rejects_invalid_fixture_id(client, service, quota_store):
    resp = client.post("/api/odds/fetch", json={"fixtureId": 0})

    assert resp.status_code == 422
    assert resp.json()["errors"][0]["field"] == "fixtureId"
    assert service.calls == []


def test_upstream_failure_maps_to_502(client, monkeypatch, quota_store):
    monkeypatch.setattr(
        odds_service_module, "odds_service", _FakeOddsService(error=UpstreamUnavailable("down", upstream_status=500))
    )

    resp = client.post("/api/odds/fetch", json={"fixtureId": 1001})

    assert resp.status_code == 502
    assert resp.json()["code"] == "UPSTREAM_UNAVAILABLE"


def test_availability_reads_cache_only(client, service):
    resp = client.post("/api/odds/availability", json={"fixtureId": 1001})

    assert resp.status_code == 200
    assert resp.json()["available"] == ["cards", "goals"]
    assert resp.json()["fixtureId"] == 1001
    assert service.calls == []

    missing = client.post("/api/odds/availability", json={"fixtureId": 42})
    assert missing.status_code == 404


def test_availability_drops_markets_the_league_skips(client, service, monkeypatch):
    coverage = FakeCollection([
        {"league_id": 39, "skip_goals": False, "skip_corners": True, "skip_cards": True,
         "skip_fouls": True, "skip_offsides": True},
        {"league_id": 140, "skip_goals": True},
    ])
    monkeypatch.setattr(league_repo_module._db, "db", SimpleNamespace(league_stats_coverage=coverage), raising=False)

    resp = client.post("/api/odds/availability", json={"fixtureId": 1001, "leagueId": 39})
    unknown = client.post("/api/odds/availability", json={"fixtureId": 1001, "leagueId": 999})

    assert resp.status_code == 200
    assert resp.json()["available"] == ["goals"]
    assert resp.json()["leagueSkipped"] == ["cards", "corners", "fouls", "offsides"]
    assert unknown.json()["available"] == ["cards", "goals"]
    assert unknown.json()["leagueSkipped"] == []


def test_rate_limit_check_endpoint(client, quota_store):
    first = client.post("/api/rate-limits/check", json={"feature": "ticket_creator", "maxPerMinute": 1})
    second = client.post("/api/rate-limits/check", json={"feature": "ticket_creator", "maxPerMinute": 1})

    assert first.status_code == 200
    assert first.json() == {"allowed": True, "currentCount": 1}
    assert second.status_code == 429
    assert second.json()["code"] == "RATE_LIMITED"
    assert second.json()["current_count"] == 1


def test_rate_limit_check_rejects_other_users(client, quota_store):
    resp = client.post(
        "/api/rate-limits/check",
        json={"userId": "someone-else", "feature": "analyzer", "maxPerMinute": 5},
    )

    assert resp.status_code == 403
    assert quota_store.docs == []


def test_requests_without_token_are_unauthorized(service, monkeypatch):
    monkeypatch.setattr(auth_module.settings, "JWT_SECRET", SECRET)
    anonymous = TestClient(app)

    assert anonymous.post("/api/odds/fetch", json={"fixtureId": 1001}).status_code == 401
    bad = anonymous.post(
        "/api/odds/availability",
        json={"fixtureId": 1001},
        headers={"Authorization": "Bearer not-a-jwt"},
    )
    assert bad.status_code == 401


def test_valid_token_resolves_subject(service, monkeypatch):
    monkeypatch.setattr(auth_module.settings, "JWT_SECRET", SECRET)
    token = jwt.encode({"sub": "user-9"}, SECRET, algorithm="HS256")

    resp = TestClient(app).post(
        "/api/odds/availability",
        json={"fixtureId": 1001},
        headers={"Authorization": f"Bearer {token}"},
    )

    assert resp.status_code == 200


def test_rotated_secret_still_accepts_old_tokens(monkeypatch):
    monkeypatch.setattr(auth_module.settings, "JWT_SECRET", SECRET)
    monkeypatch.setattr(auth_module.settings, "JWT_SECRET_OLD", "previous-secret-with-enough-length-too")
    token = jwt.encode({"sub": "user-9"}, "previous-secret-with-enough-length-too", algorithm="HS256")

    assert auth_module.decode_jwt(token)["sub"] == "user-9"
