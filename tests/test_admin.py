from __future__ import annotations

from entitlements.config import Settings
from entitlements.db import SessionLocal
from entitlements.dependencies import compute_signature
from entitlements.models import Event, Subscription, UsageLimits

settings = Settings()
HEADERS = {
    "X-API-Key": settings.api_key,
    "X-API-Ver": "v1",
    "X-User-ID": "1",
}
HMAC_SECRET = settings.hmac_secret


def _counter_sign(user_id: int, counter: str, value: int) -> str:
    return compute_signature(
        HMAC_SECRET, {"user_id": user_id, "counter": counter, "value": value}
    )


def test_reconcile_counter(client):
    for _ in range(3):
        client.post("/v1/usage/events/fridge_item_added", headers=HEADERS)
    resp = client.put(
        "/v1/admin/users/1/counters/fridge_items",
        headers={**HEADERS, "X-Sign": _counter_sign(1, "fridge_items", 12)},
        json={"value": 12},
    )
    assert resp.status_code == 200
    assert resp.json()["total_fridge_items"] == 12

    with SessionLocal() as db:
        events = [e.event for e in db.query(Event).filter_by(user_id=1)]
    assert "counter_reconciled:total_fridge_items" in events


def test_reconcile_counter_bad_signature(client):
    resp = client.put(
        "/v1/admin/users/1/counters/fridge_items",
        headers={**HEADERS, "X-Sign": _counter_sign(1, "fridge_items", 99)},
        json={"value": 12},
    )
    assert resp.status_code == 401


def test_reconcile_monthly_counter_rejected(client):
    resp = client.put(
        "/v1/admin/users/1/counters/recipes_generated",
        headers={**HEADERS, "X-Sign": _counter_sign(1, "recipes_generated", 0)},
        json={"value": 0},
    )
    assert resp.status_code == 400
    assert resp.json()["detail"]["code"] == "BAD_REQUEST"


def test_reconcile_negative_value(client):
    resp = client.put(
        "/v1/admin/users/1/counters/habits",
        headers={**HEADERS, "X-Sign": _counter_sign(1, "habits", -1)},
        json={"value": -1},
    )
    assert resp.status_code == 422


def test_delete_user(client):
    client.get("/v1/subscription", headers=HEADERS)
    client.post("/v1/usage/events/photo_analyzed", headers=HEADERS)
    resp = client.post(
        "/v1/dsr/delete_user",
        headers={**HEADERS, "X-Sign": compute_signature(HMAC_SECRET, {"user_id": 1})},
        json={"user_id": 1},
    )
    assert resp.status_code == 204
    with SessionLocal() as db:
        assert db.get(Subscription, 1) is None
        assert db.get(UsageLimits, 1) is None
        assert db.query(Event).filter_by(user_id=1).count() == 0


def test_delete_other_user_forbidden(client):
    resp = client.post(
        "/v1/dsr/delete_user",
        headers={**HEADERS, "X-Sign": compute_signature(HMAC_SECRET, {"user_id": 2})},
        json={"user_id": 2},
    )
    assert resp.status_code == 403


def test_delete_user_bad_signature(client):
    resp = client.post(
        "/v1/dsr/delete_user",
        headers={**HEADERS, "X-Sign": "bad"},
        json={"user_id": 1},
    )
    assert resp.status_code == 401


def test_delete_user_missing_id(client):
    resp = client.post(
        "/v1/dsr/delete_user",
        headers={**HEADERS, "X-Sign": "bad"},
        json={},
    )
    assert resp.status_code == 400
