"""Static plan budgets.

Single source of truth for monthly-quota and absolute-counter ceilings.
The daily throttle ceilings live in a separate, smaller table keyed by tier.
"""
from __future__ import annotations

import math
from dataclasses import dataclass, fields
from enum import Enum
from typing import NamedTuple

from entitlements.config import Settings

settings = Settings()

UNLIMITED = math.inf


class PlanConfigurationError(RuntimeError):
    """Raised when the limit table does not cover a metered feature."""


class Plan(str, Enum):
    FREE = "free"
    PREMIUM = "premium"


class Feature(str, Enum):
    GENERATE_RECIPE = "generate_recipe"
    SAVE_RECIPE = "save_recipe"
    ADD_FRIDGE_ITEM = "add_fridge_item"
    AI_CHAT_MESSAGE = "ai_chat_message"
    PHOTO_ANALYSIS = "photo_analysis"
    CREATE_HABIT = "create_habit"
    CREATE_ROUTINE = "create_routine"


class ThrottleFeature(str, Enum):
    PHOTO = "photo"
    CHAT = "chat"


class PremiumFeature(str, Enum):
    MEAL_PREP_PLANNING = "meal_prep_planning"
    WEARABLE_INTEGRATIONS = "wearable_integrations"
    DATA_EXPORT = "data_export"
    PDF_REPORTS = "pdf_reports"
    OFFLINE_MODE = "offline_mode"
    PRIORITY_SUPPORT = "priority_support"
    EARLY_ACCESS = "early_access"
    EXCLUSIVE_RECIPES = "exclusive_recipes"


@dataclass(frozen=True)
class PlanBudgets:
    fridge_items: float
    recipes_per_month: float
    saved_recipes: float
    ai_chat_messages_per_month: float
    photo_analyses_per_month: float
    custom_routines: float
    simultaneous_habits: float
    meal_plan_days: float
    workout_history_days: float


PLAN_LIMITS: dict[Plan, PlanBudgets] = {
    Plan.FREE: PlanBudgets(
        fridge_items=50,
        recipes_per_month=10,
        saved_recipes=20,
        ai_chat_messages_per_month=20,
        photo_analyses_per_month=5,
        custom_routines=1,
        simultaneous_habits=3,
        meal_plan_days=7,
        workout_history_days=30,
    ),
    Plan.PREMIUM: PlanBudgets(
        **{f.name: UNLIMITED for f in fields(PlanBudgets)}
    ),
}


class FeatureRule(NamedTuple):
    """How a feature is metered."""
    budget: str
    counter: str
    monthly: bool
    reason: str
    throttle: ThrottleFeature | None = None


FEATURE_RULES: dict[Feature, FeatureRule] = {
    Feature.GENERATE_RECIPE: FeatureRule(
        "recipes_per_month",
        "recipes_generated_this_month",
        True,
        "Monthly recipe generation limit reached",
    ),
    Feature.SAVE_RECIPE: FeatureRule(
        "saved_recipes",
        "total_saved_recipes",
        False,
        "Maximum saved recipes limit reached",
    ),
    Feature.ADD_FRIDGE_ITEM: FeatureRule(
        "fridge_items",
        "total_fridge_items",
        False,
        "Maximum fridge items limit reached",
    ),
    Feature.AI_CHAT_MESSAGE: FeatureRule(
        "ai_chat_messages_per_month",
        "ai_chat_messages_this_month",
        True,
        "Monthly AI chat messages limit reached",
        ThrottleFeature.CHAT,
    ),
    Feature.PHOTO_ANALYSIS: FeatureRule(
        "photo_analyses_per_month",
        "photo_analyses_this_month",
        True,
        "Monthly photo analysis limit reached",
        ThrottleFeature.PHOTO,
    ),
    Feature.CREATE_HABIT: FeatureRule(
        "simultaneous_habits",
        "total_habits",
        False,
        "Maximum simultaneous habits limit reached",
    ),
    Feature.CREATE_ROUTINE: FeatureRule(
        "custom_routines",
        "total_routines",
        False,
        "Maximum custom routines limit reached",
    ),
}


def limits_for(plan: Plan | str) -> PlanBudgets:
    return PLAN_LIMITS[Plan(plan)]


def budget_for(plan: Plan | str, feature: Feature | str) -> float:
    rule = FEATURE_RULES[Feature(feature)]
    return getattr(limits_for(plan), rule.budget)


def is_unlimited(limit: float | None) -> bool:
    return limit is None or limit == UNLIMITED


def as_int_limit(limit: float) -> int | None:
    """Render a budget for JSON: ``None`` stands for unbounded."""
    if is_unlimited(limit):
        return None
    return int(limit)


def daily_limit(tier: Plan | str, feature: ThrottleFeature | str) -> int:
    feature = ThrottleFeature(feature)
    if Plan(tier) is Plan.PREMIUM:
        if feature is ThrottleFeature.PHOTO:
            return settings.premium_daily_photo_analyses
        return settings.premium_daily_chat_messages
    if feature is ThrottleFeature.PHOTO:
        return settings.free_daily_photo_analyses
    return settings.free_daily_chat_messages


def _validate_tables() -> None:
    budget_names = {f.name for f in fields(PlanBudgets)}
    missing_plans = set(Plan) - set(PLAN_LIMITS)
    if missing_plans:
        raise PlanConfigurationError(
            f"No budgets configured for plans: {sorted(p.value for p in missing_plans)}"
        )
    missing = set(Feature) - set(FEATURE_RULES)
    if missing:
        raise PlanConfigurationError(
            f"No limit entry for features: {sorted(f.value for f in missing)}"
        )
    for feature, rule in FEATURE_RULES.items():
        if rule.budget not in budget_names:
            raise PlanConfigurationError(
                f"Feature {feature.value} refers to unknown budget {rule.budget}"
            )


_validate_tables()


__all__ = [
    "UNLIMITED",
    "Plan",
    "Feature",
    "ThrottleFeature",
    "PremiumFeature",
    "PlanBudgets",
    "PlanConfigurationError",
    "PLAN_LIMITS",
    "FeatureRule",
    "FEATURE_RULES",
    "limits_for",
    "budget_for",
    "is_unlimited",
    "as_int_limit",
    "daily_limit",
]
