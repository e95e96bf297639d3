from __future__ import annotations

from datetime import datetime, timedelta, timezone

from entitlements.services.subscriptions import (
    get_or_create_subscription,
    update_subscription,
)
from entitlements.services.summary import get_daily_usage_for_user, get_usage_summary
from entitlements.services.trackers import track_ai_chat_message, track_recipe_save
from entitlements.services.usage import increment_usage

NOW = datetime(2025, 7, 15, 12, 0, tzinfo=timezone.utc)


def test_summary_for_free_trial_user(db):
    get_or_create_subscription(db, user_id=1, now=NOW)
    increment_usage(db, user_id=1, delta={"recipes_generated": 5}, now=NOW)
    track_recipe_save(db, user_id=1, now=NOW)
    track_ai_chat_message(db, user_id=1, now=NOW)

    summary = get_usage_summary(db, user_id=1, now=NOW + timedelta(days=1))
    assert summary.subscription.plan.value == "free"
    assert summary.subscription.is_in_trial
    assert summary.subscription.trial_days_remaining == 6
    assert not summary.subscription.is_premium

    recipes = summary.usage["recipes_generated"]
    assert (recipes.current, recipes.limit, recipes.percentage) == (5, 10, 50)
    assert summary.usage["saved_recipes"].current == 1
    assert summary.usage["ai_chat_messages"].limit == 20
    assert summary.daily["chat"].limit == 50
    # throttle row is from the previous day
    assert summary.daily["chat"].used == 0


def test_summary_for_premium_user(db):
    get_or_create_subscription(db, user_id=1, now=NOW)
    update_subscription(db, user_id=1, changes={"plan": "premium", "status": "active"})
    increment_usage(db, user_id=1, delta={"fridge_items": 80}, now=NOW)

    summary = get_usage_summary(db, user_id=1, now=NOW)
    fridge = summary.usage["fridge_items"]
    assert fridge.current == 80
    assert fridge.limit is None
    assert fridge.percentage == 0
    assert summary.subscription.is_premium
    assert summary.subscription.trial_days_remaining == 0


def test_daily_usage_for_user(db):
    track_ai_chat_message(db, user_id=1, now=NOW)
    daily = get_daily_usage_for_user(db, user_id=1, now=NOW)
    assert daily["chat"].used == 1
    assert daily["chat"].remaining == 49
    assert daily["photo"].used == 0
