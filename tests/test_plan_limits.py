from __future__ import annotations

import math
from dataclasses import fields

import pytest

from entitlements.services import plan_limits
from entitlements.services.plan_limits import (
    FEATURE_RULES,
    PLAN_LIMITS,
    UNLIMITED,
    Feature,
    Plan,
    PlanBudgets,
    ThrottleFeature,
    as_int_limit,
    budget_for,
    daily_limit,
    is_unlimited,
    limits_for,
)


def test_free_plan_budgets():
    free = limits_for("free")
    assert free.fridge_items == 50
    assert free.recipes_per_month == 10
    assert free.saved_recipes == 20
    assert free.ai_chat_messages_per_month == 20
    assert free.photo_analyses_per_month == 5
    assert free.custom_routines == 1
    assert free.simultaneous_habits == 3
    assert free.meal_plan_days == 7
    assert free.workout_history_days == 30


def test_premium_budgets_are_unbounded():
    premium = limits_for(Plan.PREMIUM)
    for f in fields(PlanBudgets):
        assert is_unlimited(getattr(premium, f.name)), f.name


def test_every_feature_has_a_budget_on_every_plan():
    for plan in Plan:
        for feature in Feature:
            assert budget_for(plan, feature) > 0
    assert set(FEATURE_RULES) == set(Feature)
    assert set(PLAN_LIMITS) == set(Plan)


def test_monthly_flags_match_counters():
    monthly = {f for f, rule in FEATURE_RULES.items() if rule.monthly}
    assert monthly == {
        Feature.GENERATE_RECIPE,
        Feature.AI_CHAT_MESSAGE,
        Feature.PHOTO_ANALYSIS,
    }
    for feature in monthly:
        assert FEATURE_RULES[feature].counter.endswith("_this_month")


def test_only_ai_features_are_throttled():
    throttled = {f: r.throttle for f, r in FEATURE_RULES.items() if r.throttle}
    assert throttled == {
        Feature.AI_CHAT_MESSAGE: ThrottleFeature.CHAT,
        Feature.PHOTO_ANALYSIS: ThrottleFeature.PHOTO,
    }


def test_as_int_limit_renders_unbounded_as_none():
    assert as_int_limit(UNLIMITED) is None
    assert as_int_limit(10) == 10
    assert math.isinf(UNLIMITED)


def test_unknown_feature_rejected():
    with pytest.raises(ValueError):
        budget_for("free", "teleport")


def test_daily_limits_by_tier(monkeypatch):
    assert daily_limit("free", "photo") == 10
    assert daily_limit("free", "chat") == 50
    assert daily_limit("premium", "photo") == 999999
    monkeypatch.setattr(plan_limits.settings, "free_daily_chat_messages", 3)
    assert daily_limit(Plan.FREE, ThrottleFeature.CHAT) == 3


def test_validate_tables_rejects_missing_feature(monkeypatch):
    rules = dict(FEATURE_RULES)
    rules.pop(Feature.CREATE_HABIT)
    monkeypatch.setattr(plan_limits, "FEATURE_RULES", rules)
    with pytest.raises(plan_limits.PlanConfigurationError, match="create_habit"):
        plan_limits._validate_tables()
