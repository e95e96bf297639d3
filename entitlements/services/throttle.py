"""Daily throttle for chat messages and photo analyses.

Independent of the monthly quota: one ``{day, used}`` row per user and
feature. A row whose ``day`` is not today reads as zero and is only rewritten
by the next increment, so read-only checks never write.
"""
from __future__ import annotations

from datetime import datetime
from typing import NamedTuple

from sqlalchemy import text
from sqlalchemy.orm import Session

from entitlements.models import DailyThrottle
from entitlements.services.periods import day_key, ensure_utc, next_day_start, utcnow
from entitlements.services.plan_limits import Plan, ThrottleFeature, daily_limit


class ThrottleStatus(NamedTuple):
    """Usage info for one feature today."""
    feature: str
    limit: int
    used: int
    remaining: int
    resets_at: datetime

    @property
    def allowed(self) -> bool:
        return self.used < self.limit


def usage_today(
    db: Session,
    *,
    user_id: int,
    feature: ThrottleFeature | str,
    now: datetime | None = None,
) -> int:
    feature = ThrottleFeature(feature)
    row = db.execute(
        text(
            "SELECT day, used FROM daily_throttle "
            "WHERE user_id = :uid AND feature = :feature"
        ),
        {"uid": user_id, "feature": feature.value},
    ).first()
    if not row or row[0] != day_key(now):
        return 0
    return row[1] or 0


def increment_throttle(
    db: Session,
    *,
    user_id: int,
    feature: ThrottleFeature | str,
    now: datetime | None = None,
) -> int:
    """Record one use today. Returns new count."""
    feature = ThrottleFeature(feature)
    params = {"uid": user_id, "feature": feature.value, "day": day_key(now)}
    db.execute(
        text(
            "INSERT INTO daily_throttle (user_id, feature, day, used, updated_at) "
            "VALUES (:uid, :feature, :day, 1, CURRENT_TIMESTAMP) "
            "ON CONFLICT (user_id, feature) DO UPDATE "
            "SET used = CASE WHEN daily_throttle.day = excluded.day "
            "THEN daily_throttle.used + 1 ELSE 1 END, "
            "day = excluded.day, "
            "updated_at = CURRENT_TIMESTAMP"
        ),
        params,
    )
    db.commit()
    return db.execute(
        text(
            "SELECT used FROM daily_throttle "
            "WHERE user_id = :uid AND feature = :feature AND day = :day"
        ),
        params,
    ).scalar_one()


def throttle_status(
    db: Session,
    *,
    user_id: int,
    feature: ThrottleFeature | str,
    tier: Plan | str,
    now: datetime | None = None,
) -> ThrottleStatus:
    now = ensure_utc(now) or utcnow()
    feature = ThrottleFeature(feature)
    limit = daily_limit(tier, feature)
    used = usage_today(db, user_id=user_id, feature=feature, now=now)
    return ThrottleStatus(
        feature=feature.value,
        limit=limit,
        used=used,
        remaining=max(0, limit - used),
        resets_at=next_day_start(now),
    )


def throttle_info(
    db: Session,
    *,
    user_id: int,
    tier: Plan | str,
    now: datetime | None = None,
) -> dict[str, ThrottleStatus]:
    return {
        feature.value: throttle_status(
            db, user_id=user_id, feature=feature, tier=tier, now=now
        )
        for feature in ThrottleFeature
    }


def reset_throttle(db: Session, *, user_id: int) -> int:
    deleted = db.query(DailyThrottle).filter_by(user_id=user_id).delete()
    db.commit()
    return deleted


__all__ = [
    "ThrottleStatus",
    "usage_today",
    "increment_throttle",
    "throttle_status",
    "throttle_info",
    "reset_throttle",
]
