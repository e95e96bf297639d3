"""Read-only usage summary for the presentation layer."""
from __future__ import annotations

from datetime import datetime

from pydantic import BaseModel
from sqlalchemy.orm import Session

from entitlements.services.periods import ensure_utc, utcnow
from entitlements.services.plan_limits import Plan, as_int_limit, limits_for
from entitlements.services.subscriptions import get_or_create_subscription
from entitlements.services.throttle import throttle_info
from entitlements.services.usage import get_or_create_usage, usage_percentage

# summary key -> (usage counter column, plan budget)
SUMMARY_FIELDS = {
    "recipes_generated": ("recipes_generated_this_month", "recipes_per_month"),
    "saved_recipes": ("total_saved_recipes", "saved_recipes"),
    "fridge_items": ("total_fridge_items", "fridge_items"),
    "photo_analyses": ("photo_analyses_this_month", "photo_analyses_per_month"),
    "ai_chat_messages": ("ai_chat_messages_this_month", "ai_chat_messages_per_month"),
    "habits": ("total_habits", "simultaneous_habits"),
    "routines": ("total_routines", "custom_routines"),
}


class FeatureUsage(BaseModel):
    current: int
    limit: int | None
    percentage: float


class DailyUsage(BaseModel):
    limit: int
    used: int
    remaining: int
    resets_at: datetime


class SubscriptionSummary(BaseModel):
    plan: Plan
    status: str
    is_premium: bool
    is_in_trial: bool
    trial_days_remaining: int
    current_period_end: datetime
    cancel_at_period_end: bool


class UsageSummary(BaseModel):
    subscription: SubscriptionSummary
    usage: dict[str, FeatureUsage]
    daily: dict[str, DailyUsage]


def get_daily_usage(
    db: Session, *, user_id: int, tier: Plan, now: datetime | None = None
) -> dict[str, DailyUsage]:
    return {
        name: DailyUsage(
            limit=status.limit,
            used=status.used,
            remaining=status.remaining,
            resets_at=status.resets_at,
        )
        for name, status in throttle_info(db, user_id=user_id, tier=tier, now=now).items()
    }


def get_daily_usage_for_user(
    db: Session, *, user_id: int, now: datetime | None = None
) -> dict[str, DailyUsage]:
    subscription = get_or_create_subscription(db, user_id=user_id, now=now)
    tier = Plan.PREMIUM if subscription.is_premium() else Plan.FREE
    return get_daily_usage(db, user_id=user_id, tier=tier, now=now)


def get_usage_summary(
    db: Session, *, user_id: int, now: datetime | None = None
) -> UsageSummary:
    now = ensure_utc(now) or utcnow()
    subscription = get_or_create_subscription(db, user_id=user_id, now=now)
    counters = get_or_create_usage(db, user_id=user_id, plan=subscription.plan, now=now)
    premium = subscription.is_premium()
    budgets = limits_for(Plan.PREMIUM if premium else Plan.FREE)

    usage = {}
    for key, (counter, budget) in SUMMARY_FIELDS.items():
        current = getattr(counters, counter)
        limit = getattr(budgets, budget)
        usage[key] = FeatureUsage(
            current=current,
            limit=as_int_limit(limit),
            percentage=usage_percentage(current, limit),
        )

    daily = get_daily_usage(
        db, user_id=user_id, tier=Plan.PREMIUM if premium else Plan.FREE, now=now
    )

    return UsageSummary(
        subscription=SubscriptionSummary(
            plan=subscription.plan,
            status=subscription.status,
            is_premium=premium,
            is_in_trial=subscription.is_in_trial(now),
            trial_days_remaining=subscription.trial_days_remaining(now),
            current_period_end=subscription.current_period_end,
            cancel_at_period_end=subscription.cancel_at_period_end,
        ),
        usage=usage,
        daily=daily,
    )
