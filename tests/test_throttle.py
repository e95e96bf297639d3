from __future__ import annotations

from datetime import datetime, timedelta, timezone

from entitlements.services import plan_limits
from entitlements.services.plan_limits import Plan, ThrottleFeature
from entitlements.services.throttle import (
    increment_throttle,
    reset_throttle,
    throttle_info,
    throttle_status,
    usage_today,
)

NOW = datetime(2025, 7, 15, 9, 30, tzinfo=timezone.utc)
TOMORROW = NOW + timedelta(days=1)


def test_increment_counts_per_feature(db):
    assert increment_throttle(db, user_id=1, feature="photo", now=NOW) == 1
    assert increment_throttle(db, user_id=1, feature="photo", now=NOW) == 2
    assert increment_throttle(db, user_id=1, feature=ThrottleFeature.CHAT, now=NOW) == 1
    assert usage_today(db, user_id=1, feature="photo", now=NOW) == 2
    assert usage_today(db, user_id=2, feature="photo", now=NOW) == 0


def test_previous_day_reads_as_zero(db):
    increment_throttle(db, user_id=1, feature="chat", now=NOW)
    increment_throttle(db, user_id=1, feature="chat", now=NOW)
    assert usage_today(db, user_id=1, feature="chat", now=TOMORROW) == 0
    assert increment_throttle(db, user_id=1, feature="chat", now=TOMORROW) == 1


def test_status_reports_remaining_and_reset(db):
    for _ in range(3):
        increment_throttle(db, user_id=1, feature="photo", now=NOW)
    status = throttle_status(db, user_id=1, feature="photo", tier=Plan.FREE, now=NOW)
    assert status.limit == 10
    assert status.used == 3
    assert status.remaining == 7
    assert status.allowed
    assert status.resets_at == datetime(2025, 7, 16, tzinfo=timezone.utc)


def test_status_denies_at_limit(db, monkeypatch):
    monkeypatch.setattr(plan_limits.settings, "free_daily_photo_analyses", 2)
    increment_throttle(db, user_id=1, feature="photo", now=NOW)
    increment_throttle(db, user_id=1, feature="photo", now=NOW)
    status = throttle_status(db, user_id=1, feature="photo", tier="free", now=NOW)
    assert not status.allowed
    assert status.remaining == 0


def test_throttle_info_covers_both_features(db):
    info = throttle_info(db, user_id=1, tier="premium", now=NOW)
    assert set(info) == {"photo", "chat"}
    assert info["chat"].limit == 999999


def test_reset_throttle(db):
    increment_throttle(db, user_id=1, feature="photo", now=NOW)
    increment_throttle(db, user_id=1, feature="chat", now=NOW)
    assert reset_throttle(db, user_id=1) == 2
    assert usage_today(db, user_id=1, feature="photo", now=NOW) == 0
