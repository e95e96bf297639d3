from __future__ import annotations

from datetime import datetime, timezone

from entitlements.services import periods
from entitlements.services.periods import (
    add_months,
    day_key,
    ensure_utc,
    month_key,
    next_day_start,
)


def test_month_and_day_keys_use_utc_by_default():
    dt = datetime(2025, 7, 31, 23, 30, tzinfo=timezone.utc)
    assert month_key(dt) == "2025-07"
    assert day_key(dt) == "2025-07-31"
    assert next_day_start(dt) == datetime(2025, 8, 1, tzinfo=timezone.utc)


def test_keys_follow_reference_timezone(monkeypatch):
    monkeypatch.setattr(periods.settings, "reference_timezone", "Europe/Berlin")
    dt = datetime(2025, 7, 31, 23, 30, tzinfo=timezone.utc)
    assert month_key(dt) == "2025-08"
    assert day_key(dt) == "2025-08-01"
    assert next_day_start(dt) == datetime(2025, 8, 1, 22, tzinfo=timezone.utc)


def test_ensure_utc_handles_naive_and_strings():
    naive = datetime(2025, 1, 2, 3, 4)
    assert ensure_utc(naive).tzinfo is timezone.utc
    assert ensure_utc("2025-01-02T03:04:00+00:00") == naive.replace(tzinfo=timezone.utc)
    assert ensure_utc(None) is None


def test_add_months_clamps_day():
    assert add_months(datetime(2025, 1, 31)) == datetime(2025, 2, 28)
    assert add_months(datetime(2024, 1, 31)) == datetime(2024, 2, 29)
    assert add_months(datetime(2025, 12, 15)) == datetime(2026, 1, 15)
    assert add_months(datetime(2025, 3, 10), 12) == datetime(2026, 3, 10)
