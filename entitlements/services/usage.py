"""Usage counter store.

Two counter families share one row per user:

* monthly quota counters, zeroed lazily the first time the row is touched in
  a new calendar month;
* absolute counters, the number of currently owned resources.

Every mutation is a single ``UPDATE`` applying a delta to the stored value,
never a write-back of a previously read snapshot, so concurrent trackers do
not lose updates.
"""
from __future__ import annotations

import logging
from datetime import datetime

from pydantic import BaseModel, ConfigDict, Field, field_validator
from sqlalchemy import case, update
from sqlalchemy.exc import IntegrityError
from sqlalchemy.orm import Session

from entitlements.metrics import monthly_reset_total, usage_tracked_total
from entitlements.models import Event, UsageLimits
from entitlements.services.periods import ensure_utc, month_key, utcnow
from entitlements.services.plan_limits import Plan, is_unlimited

logger = logging.getLogger(__name__)

usage_table = UsageLimits.__table__

MONTHLY_COUNTERS = {
    "recipes_generated": "recipes_generated_this_month",
    "photo_analyses": "photo_analyses_this_month",
    "ai_chat_messages": "ai_chat_messages_this_month",
}
ABSOLUTE_COUNTERS = {
    "saved_recipes": "total_saved_recipes",
    "fridge_items": "total_fridge_items",
    "habits": "total_habits",
    "routines": "total_routines",
}
COUNTER_COLUMNS = {**MONTHLY_COUNTERS, **ABSOLUTE_COUNTERS}


class UsageDelta(BaseModel):
    """Amounts to add to (or subtract from) each counter."""

    model_config = ConfigDict(extra="forbid")

    recipes_generated: int = Field(0, ge=0)
    photo_analyses: int = Field(0, ge=0)
    ai_chat_messages: int = Field(0, ge=0)
    saved_recipes: int = Field(0, ge=0)
    fridge_items: int = Field(0, ge=0)
    habits: int = Field(0, ge=0)
    routines: int = Field(0, ge=0)

    def columns(self) -> dict[str, int]:
        return {
            COUNTER_COLUMNS[name]: amount
            for name, amount in self.model_dump().items()
            if amount
        }


class UsageRecord(BaseModel):
    model_config = ConfigDict(from_attributes=True)

    user_id: int
    plan: Plan
    recipes_generated_this_month: int
    photo_analyses_this_month: int
    ai_chat_messages_this_month: int
    total_saved_recipes: int
    total_fridge_items: int
    total_habits: int
    total_routines: int
    last_reset_date: datetime
    reset_month: str

    @field_validator("last_reset_date", mode="before")
    @classmethod
    def _utc(cls, v):
        return ensure_utc(v)


def usage_percentage(current: int, limit: float) -> float:
    """Share of the budget consumed, for display only."""
    if is_unlimited(limit):
        return 0
    if limit <= 0:
        return 100
    return min(100, current / limit * 100)


def _load(db: Session, user_id: int) -> UsageRecord:
    row = db.get(UsageLimits, user_id, populate_existing=True)
    return UsageRecord.model_validate(row, from_attributes=True)


def _rollover(db: Session, user_id: int, now: datetime) -> bool:
    current = month_key(now)
    # YYYY-MM keys sort chronologically; only roll forward
    stmt = (
        update(usage_table)
        .where(usage_table.c.user_id == user_id)
        .where(usage_table.c.reset_month < current)
        .values(
            recipes_generated_this_month=0,
            photo_analyses_this_month=0,
            ai_chat_messages_this_month=0,
            last_reset_date=now,
            reset_month=current,
            updated_at=now,
        )
    )
    result = db.execute(stmt)
    db.commit()
    if result.rowcount:
        monthly_reset_total.inc()
        logger.info(
            "monthly counters reset for user %s (%s)",
            user_id,
            current,
            extra={"user_id": user_id},
        )
        return True
    return False


def get_or_create_usage(
    db: Session,
    *,
    user_id: int,
    plan: Plan | str = Plan.FREE,
    now: datetime | None = None,
) -> UsageRecord:
    """Return the user's counters with the monthly rollover already applied."""
    now = ensure_utc(now) or utcnow()
    if db.get(UsageLimits, user_id) is None:
        db.add(
            UsageLimits(
                user_id=user_id,
                plan=Plan(plan).value,
                recipes_generated_this_month=0,
                photo_analyses_this_month=0,
                ai_chat_messages_this_month=0,
                total_saved_recipes=0,
                total_fridge_items=0,
                total_habits=0,
                total_routines=0,
                last_reset_date=now,
                reset_month=month_key(now),
                updated_at=now,
            )
        )
        try:
            db.commit()
        except IntegrityError:
            db.rollback()
        return _load(db, user_id)

    _rollover(db, user_id, now)
    return _load(db, user_id)


def _apply(db: Session, user_id: int, values: dict, now: datetime) -> None:
    stmt = (
        update(usage_table)
        .where(usage_table.c.user_id == user_id)
        .values(**values, updated_at=now)
    )
    db.execute(stmt)
    db.commit()


def increment_usage(
    db: Session,
    *,
    user_id: int,
    delta: UsageDelta | dict,
    now: datetime | None = None,
) -> UsageRecord:
    if isinstance(delta, dict):
        delta = UsageDelta.model_validate(delta)
    now = ensure_utc(now) or utcnow()
    record = get_or_create_usage(db, user_id=user_id, now=now)
    columns = delta.columns()
    if not columns:
        return record
    _apply(
        db,
        user_id,
        {col: usage_table.c[col] + amount for col, amount in columns.items()},
        now,
    )
    for col in columns:
        usage_tracked_total.labels(counter=col, direction="up").inc()
    return _load(db, user_id)


def decrement_usage(
    db: Session,
    *,
    user_id: int,
    delta: UsageDelta | dict,
    now: datetime | None = None,
) -> UsageRecord:
    """Subtract from counters, flooring each at zero."""
    if isinstance(delta, dict):
        delta = UsageDelta.model_validate(delta)
    now = ensure_utc(now) or utcnow()
    record = get_or_create_usage(db, user_id=user_id, now=now)
    columns = delta.columns()
    if not columns:
        return record
    values = {}
    for col, amount in columns.items():
        column = usage_table.c[col]
        values[col] = case((column > amount, column - amount), else_=0)
    _apply(db, user_id, values, now)
    for col in columns:
        usage_tracked_total.labels(counter=col, direction="down").inc()
    return _load(db, user_id)


def increment_within_limit(
    db: Session,
    *,
    user_id: int,
    counter: str,
    limit: float,
    now: datetime | None = None,
) -> bool:
    """Add one to ``counter`` only while it is below ``limit``.

    The comparison and the increment run as one conditional ``UPDATE`` so
    concurrent callers can never push the counter past the ceiling.
    """
    column_name = COUNTER_COLUMNS.get(counter, counter)
    if column_name not in COUNTER_COLUMNS.values():
        raise ValueError(f"Unknown usage counter: {counter}")
    now = ensure_utc(now) or utcnow()
    get_or_create_usage(db, user_id=user_id, now=now)
    column = usage_table.c[column_name]
    stmt = (
        update(usage_table)
        .where(usage_table.c.user_id == user_id)
        .values({column_name: column + 1, "updated_at": now})
    )
    if not is_unlimited(limit):
        stmt = stmt.where(column < int(limit))
    result = db.execute(stmt)
    db.commit()
    if result.rowcount:
        usage_tracked_total.labels(counter=column_name, direction="up").inc()
        return True
    return False


def set_absolute_counter(
    db: Session,
    *,
    user_id: int,
    counter: str,
    value: int,
    now: datetime | None = None,
) -> UsageRecord:
    """Overwrite one absolute counter, used to repair drift."""
    column_name = ABSOLUTE_COUNTERS.get(counter, counter)
    if column_name not in ABSOLUTE_COUNTERS.values():
        raise ValueError(f"Not an absolute counter: {counter}")
    if value < 0:
        raise ValueError("Counter value must be non-negative")
    now = ensure_utc(now) or utcnow()
    before = getattr(get_or_create_usage(db, user_id=user_id, now=now), column_name)
    _apply(db, user_id, {column_name: value}, now)
    db.add(Event(user_id=user_id, event=f"counter_reconciled:{column_name}"))
    db.commit()
    usage_tracked_total.labels(counter=column_name, direction="set").inc()
    logger.info(
        "counter %s for user %s reconciled %s -> %s",
        column_name,
        user_id,
        before,
        value,
        extra={"user_id": user_id},
    )
    return _load(db, user_id)


def update_usage_plan(
    db: Session,
    *,
    user_id: int,
    plan: Plan | str,
    now: datetime | None = None,
) -> UsageRecord:
    """Change the mirrored plan only; counters are intentionally kept."""
    plan = Plan(plan)
    now = ensure_utc(now) or utcnow()
    get_or_create_usage(db, user_id=user_id, plan=plan, now=now)
    _apply(db, user_id, {"plan": plan.value}, now)
    return _load(db, user_id)


def reset_monthly_counters(
    db: Session, *, user_id: int, now: datetime | None = None
) -> UsageRecord:
    now = ensure_utc(now) or utcnow()
    get_or_create_usage(db, user_id=user_id, now=now)
    _apply(
        db,
        user_id,
        {
            "recipes_generated_this_month": 0,
            "photo_analyses_this_month": 0,
            "ai_chat_messages_this_month": 0,
            "last_reset_date": now,
            "reset_month": month_key(now),
        },
        now,
    )
    monthly_reset_total.inc()
    return _load(db, user_id)


def delete_usage(db: Session, *, user_id: int) -> bool:
    deleted = db.query(UsageLimits).filter_by(user_id=user_id).delete()
    db.commit()
    return bool(deleted)


__all__ = [
    "MONTHLY_COUNTERS",
    "ABSOLUTE_COUNTERS",
    "COUNTER_COLUMNS",
    "UsageDelta",
    "UsageRecord",
    "usage_percentage",
    "get_or_create_usage",
    "increment_usage",
    "decrement_usage",
    "increment_within_limit",
    "set_absolute_counter",
    "update_usage_plan",
    "reset_monthly_counters",
    "delete_usage",
]
