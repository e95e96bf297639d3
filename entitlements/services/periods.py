"""Calendar helpers for billing windows and counter rollover.

All instants are stored in UTC; month and day keys are computed in the
configured reference timezone so that every process agrees on boundaries.
"""
from __future__ import annotations

import calendar
from datetime import date, datetime, time, timedelta, timezone
from zoneinfo import ZoneInfo

from entitlements.config import Settings

settings = Settings()


def reference_tz() -> ZoneInfo:
    return ZoneInfo(settings.reference_timezone)


def utcnow() -> datetime:
    return datetime.now(timezone.utc)


def ensure_utc(value: datetime | str | None) -> datetime | None:
    """Normalize database values (naive on SQLite) to aware UTC datetimes."""
    if value is None:
        return None
    if isinstance(value, str):
        value = datetime.fromisoformat(value)
    if value.tzinfo is None:
        return value.replace(tzinfo=timezone.utc)
    return value.astimezone(timezone.utc)


def month_key(dt: datetime | None = None) -> str:
    """Get month key in format YYYY-MM (e.g., 2026-01)."""
    dt = ensure_utc(dt) or utcnow()
    return dt.astimezone(reference_tz()).strftime("%Y-%m")


def day_key(dt: datetime | None = None) -> str:
    """Get day key in format YYYY-MM-DD."""
    dt = ensure_utc(dt) or utcnow()
    return dt.astimezone(reference_tz()).strftime("%Y-%m-%d")


def next_day_start(dt: datetime | None = None) -> datetime:
    """UTC instant of the next local midnight in the reference timezone."""
    tz = reference_tz()
    local = (ensure_utc(dt) or utcnow()).astimezone(tz)
    tomorrow: date = local.date() + timedelta(days=1)
    return datetime.combine(tomorrow, time.min, tzinfo=tz).astimezone(timezone.utc)


def add_months(dt: datetime, months: int = 1) -> datetime:
    """Shift by calendar months, clamping the day to the target month length."""
    index = dt.month - 1 + months
    year = dt.year + index // 12
    month = index % 12 + 1
    day = min(dt.day, calendar.monthrange(year, month)[1])
    return dt.replace(year=year, month=month, day=day)
