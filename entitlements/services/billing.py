"""Apply billing collaborator events to the subscription and usage stores.

The payment provider owns checkout and invoicing; this module only mirrors
the resulting state. Any plan change is propagated to the usage record's
plan field so both stores agree.
"""
from __future__ import annotations

import logging
from datetime import datetime
from typing import Literal

from pydantic import BaseModel
from sqlalchemy.orm import Session

from entitlements.metrics import billing_webhook_total
from entitlements.services.plan_limits import Plan
from entitlements.services.subscriptions import (
    BillingInterval,
    SubscriptionNotFoundError,
    SubscriptionRecord,
    SubscriptionStatus,
    SubscriptionUpdate,
    find_by_provider_subscription_id,
    get_or_create_subscription,
    update_subscription,
)
from entitlements.services.usage import update_usage_plan

logger = logging.getLogger(__name__)

BillingEventType = Literal[
    "checkout.completed",
    "subscription.updated",
    "subscription.deleted",
    "invoice.paid",
    "invoice.payment_failed",
]


class BillingEvent(BaseModel):
    event: BillingEventType
    user_id: int | None = None
    provider_customer_id: str | None = None
    provider_subscription_id: str | None = None
    plan: Plan | None = None
    status: SubscriptionStatus | None = None
    billing_interval: BillingInterval | None = None
    current_period_start: datetime | None = None
    current_period_end: datetime | None = None
    trial_end: datetime | None = None
    cancel_at_period_end: bool | None = None


_PASSTHROUGH = (
    "provider_customer_id",
    "provider_subscription_id",
    "plan",
    "status",
    "billing_interval",
    "current_period_start",
    "current_period_end",
    "trial_end",
    "cancel_at_period_end",
)


def _resolve_user(db: Session, event: BillingEvent) -> int:
    if event.user_id is not None:
        return event.user_id
    if event.provider_subscription_id:
        sub = find_by_provider_subscription_id(db, event.provider_subscription_id)
        if sub is not None:
            return sub.user_id
    raise SubscriptionNotFoundError(
        f"Cannot resolve user for billing event {event.event}"
    )


def _changes_for(event: BillingEvent) -> dict:
    changes = {
        key: getattr(event, key)
        for key in _PASSTHROUGH
        if getattr(event, key) is not None
    }
    if event.event == "checkout.completed":
        changes.setdefault("plan", Plan.PREMIUM)
        changes.setdefault("status", "active")
        changes.setdefault("cancel_at_period_end", False)
    elif event.event == "subscription.deleted":
        changes["plan"] = Plan.FREE
        changes["status"] = "canceled"
        changes["cancel_at_period_end"] = False
    elif event.event == "invoice.paid":
        changes["status"] = "active"
    elif event.event == "invoice.payment_failed":
        changes = {"status": "past_due"}
    return changes


def apply_billing_event(
    db: Session, event: BillingEvent, now: datetime | None = None
) -> SubscriptionRecord:
    user_id = _resolve_user(db, event)
    current = get_or_create_subscription(db, user_id=user_id, now=now)
    changes = _changes_for(event)
    record = update_subscription(
        db, user_id=user_id, changes=SubscriptionUpdate(**changes)
    )
    if "plan" in changes:
        update_usage_plan(db, user_id=user_id, plan=record.plan, now=now)
    billing_webhook_total.labels(event=event.event).inc()
    logger.info(
        "billing event %s applied for user %s: %s/%s -> %s/%s",
        event.event,
        user_id,
        current.plan.value,
        current.status,
        record.plan.value,
        record.status,
        extra={"user_id": user_id, "event": event.event},
    )
    return record


__all__ = ["BillingEvent", "BillingEventType", "apply_billing_event"]
