"""Subscription record store.

A subscription is created lazily on first access as a free-plan trial and is
afterwards changed only through ``update_subscription`` (billing webhooks),
``cancel_subscription`` and ``reactivate_subscription``. Cancellation is always
deferred to the end of the current period: it never touches ``status`` or
``plan`` by itself.
"""
from __future__ import annotations

import logging
import math
from datetime import datetime, timedelta
from typing import Literal

from pydantic import BaseModel, ConfigDict, field_validator
from sqlalchemy.exc import IntegrityError
from sqlalchemy.orm import Session

from entitlements.config import Settings
from entitlements.models import Event, Subscription
from entitlements.services.periods import add_months, ensure_utc, utcnow
from entitlements.services.plan_limits import Plan

settings = Settings()
logger = logging.getLogger(__name__)

SubscriptionStatus = Literal[
    "trialing",
    "active",
    "canceled",
    "past_due",
    "incomplete",
    "incomplete_expired",
]
BillingInterval = Literal["month", "year"]
PREMIUM_STATUSES = frozenset({"active", "trialing"})


class SubscriptionNotFoundError(LookupError):
    """Raised when updating a subscription that was never created."""


class SubscriptionRecord(BaseModel):
    """Detached snapshot of a subscription row."""

    model_config = ConfigDict(from_attributes=True)

    user_id: int
    plan: Plan
    status: SubscriptionStatus
    billing_interval: BillingInterval | None = None
    current_period_start: datetime
    current_period_end: datetime
    cancel_at_period_end: bool = False
    trial_end: datetime | None = None
    provider_customer_id: str | None = None
    provider_subscription_id: str | None = None
    created_at: datetime | None = None
    updated_at: datetime | None = None

    @field_validator(
        "current_period_start",
        "current_period_end",
        "trial_end",
        "created_at",
        "updated_at",
        mode="before",
    )
    @classmethod
    def _utc(cls, v):
        return ensure_utc(v)

    def is_premium(self) -> bool:
        return self.plan is Plan.PREMIUM and self.status in PREMIUM_STATUSES

    def is_in_trial(self, now: datetime | None = None) -> bool:
        if self.status != "trialing" or self.trial_end is None:
            return False
        return (ensure_utc(now) or utcnow()) < self.trial_end

    def trial_days_remaining(self, now: datetime | None = None) -> int:
        if self.status != "trialing" or self.trial_end is None:
            return 0
        remaining = self.trial_end - (ensure_utc(now) or utcnow())
        return max(0, math.ceil(remaining / timedelta(days=1)))


class SubscriptionUpdate(BaseModel):
    """Partial update; only explicitly set fields are applied."""

    model_config = ConfigDict(extra="forbid")

    plan: Plan | None = None
    status: SubscriptionStatus | None = None
    billing_interval: BillingInterval | None = None
    current_period_start: datetime | None = None
    current_period_end: datetime | None = None
    cancel_at_period_end: bool | None = None
    trial_end: datetime | None = None
    provider_customer_id: str | None = None
    provider_subscription_id: str | None = None

    @field_validator("plan", "status", "cancel_at_period_end")
    @classmethod
    def _not_null(cls, v, info):
        if v is None:
            raise ValueError(f"{info.field_name} cannot be cleared")
        return v


def _record(sub: Subscription) -> SubscriptionRecord:
    return SubscriptionRecord.model_validate(sub, from_attributes=True)


def get_subscription(db: Session, user_id: int) -> Subscription | None:
    return db.get(Subscription, user_id)


def find_by_provider_subscription_id(
    db: Session, provider_subscription_id: str
) -> Subscription | None:
    return (
        db.query(Subscription)
        .filter_by(provider_subscription_id=provider_subscription_id)
        .first()
    )


def get_or_create_subscription(
    db: Session, *, user_id: int, now: datetime | None = None
) -> SubscriptionRecord:
    """Return the user's subscription, creating the default trial if missing."""
    sub = db.get(Subscription, user_id)
    if sub is not None:
        return _record(sub)

    now = ensure_utc(now) or utcnow()
    sub = Subscription(
        user_id=user_id,
        plan=Plan.FREE.value,
        status="trialing",
        current_period_start=now,
        current_period_end=add_months(now, 1),
        cancel_at_period_end=False,
        trial_end=now + timedelta(days=settings.trial_days),
        created_at=now,
        updated_at=now,
    )
    db.add(sub)
    db.add(Event(user_id=user_id, event="subscription_created"))
    try:
        db.commit()
    except IntegrityError:
        # another request created it first
        db.rollback()
        sub = db.get(Subscription, user_id)
        if sub is None:
            raise
        return _record(sub)
    logger.info("subscription created for user %s", user_id, extra={"user_id": user_id})
    return _record(sub)


def update_subscription(
    db: Session, *, user_id: int, changes: SubscriptionUpdate | dict
) -> SubscriptionRecord:
    if isinstance(changes, dict):
        changes = SubscriptionUpdate.model_validate(changes)
    sub = db.get(Subscription, user_id)
    if sub is None:
        raise SubscriptionNotFoundError(f"No subscription for user {user_id}")

    data = changes.model_dump(exclude_unset=True)
    for key in ("current_period_start", "current_period_end", "trial_end"):
        if data.get(key) is not None:
            data[key] = ensure_utc(data[key])
    if isinstance(data.get("plan"), Plan):
        data["plan"] = data["plan"].value

    start = data.get("current_period_start", ensure_utc(sub.current_period_start))
    end = data.get("current_period_end", ensure_utc(sub.current_period_end))
    if start is None or end is None:
        raise ValueError("Billing period bounds cannot be cleared")
    if end < start:
        raise ValueError("current_period_end must not precede current_period_start")

    previous_status = sub.status
    for key, value in data.items():
        setattr(sub, key, value)
    if sub.status != "trialing":
        sub.trial_end = None
    sub.updated_at = utcnow()
    db.add(sub)
    if sub.status != previous_status:
        db.add(Event(user_id=user_id, event=f"subscription_{sub.status}"))
    db.commit()
    logger.info(
        "subscription updated for user %s: %s",
        user_id,
        sorted(data),
        extra={"user_id": user_id},
    )
    return _record(sub)


def _set_cancel_flag(db: Session, user_id: int, flag: bool, event: str) -> SubscriptionRecord:
    get_or_create_subscription(db, user_id=user_id)
    sub = db.get(Subscription, user_id)
    sub.cancel_at_period_end = flag
    sub.updated_at = utcnow()
    db.add(sub)
    db.add(Event(user_id=user_id, event=event))
    db.commit()
    return _record(sub)


def cancel_subscription(db: Session, *, user_id: int) -> SubscriptionRecord:
    """Request cancellation at period end; access continues until then."""
    return _set_cancel_flag(db, user_id, True, "subscription_cancel_requested")


def reactivate_subscription(db: Session, *, user_id: int) -> SubscriptionRecord:
    return _set_cancel_flag(db, user_id, False, "subscription_reactivated")


def delete_subscription(db: Session, *, user_id: int) -> bool:
    """Remove the record; only used when the whole account is deleted."""
    deleted = db.query(Subscription).filter_by(user_id=user_id).delete()
    db.commit()
    return bool(deleted)


__all__ = [
    "BillingInterval",
    "SubscriptionStatus",
    "SubscriptionNotFoundError",
    "SubscriptionRecord",
    "SubscriptionUpdate",
    "get_subscription",
    "find_by_provider_subscription_id",
    "get_or_create_subscription",
    "update_subscription",
    "cancel_subscription",
    "reactivate_subscription",
    "delete_subscription",
]
