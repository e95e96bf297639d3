"""Usage trackers.

Called after a domain action has succeeded, never before, so a failed write
elsewhere never books a counter. Trackers do not gate: the decision was made
by the access evaluator before the action ran.
"""
from __future__ import annotations

from datetime import datetime
from typing import Callable

from sqlalchemy.orm import Session

from entitlements.services.plan_limits import ThrottleFeature
from entitlements.services.throttle import increment_throttle
from entitlements.services.usage import UsageRecord, decrement_usage, increment_usage


def track_recipe_generation(
    db: Session, *, user_id: int, now: datetime | None = None
) -> UsageRecord:
    return increment_usage(db, user_id=user_id, delta={"recipes_generated": 1}, now=now)


def track_photo_analysis(
    db: Session, *, user_id: int, now: datetime | None = None
) -> UsageRecord:
    record = increment_usage(db, user_id=user_id, delta={"photo_analyses": 1}, now=now)
    increment_throttle(db, user_id=user_id, feature=ThrottleFeature.PHOTO, now=now)
    return record


def track_ai_chat_message(
    db: Session, *, user_id: int, now: datetime | None = None
) -> UsageRecord:
    record = increment_usage(db, user_id=user_id, delta={"ai_chat_messages": 1}, now=now)
    increment_throttle(db, user_id=user_id, feature=ThrottleFeature.CHAT, now=now)
    return record


def track_recipe_save(
    db: Session, *, user_id: int, now: datetime | None = None
) -> UsageRecord:
    return increment_usage(db, user_id=user_id, delta={"saved_recipes": 1}, now=now)


def track_recipe_delete(
    db: Session, *, user_id: int, now: datetime | None = None
) -> UsageRecord:
    return decrement_usage(db, user_id=user_id, delta={"saved_recipes": 1}, now=now)


def track_fridge_item_add(
    db: Session, *, user_id: int, now: datetime | None = None
) -> UsageRecord:
    return increment_usage(db, user_id=user_id, delta={"fridge_items": 1}, now=now)


def track_fridge_item_delete(
    db: Session, *, user_id: int, now: datetime | None = None
) -> UsageRecord:
    return decrement_usage(db, user_id=user_id, delta={"fridge_items": 1}, now=now)


def track_habit_create(
    db: Session, *, user_id: int, now: datetime | None = None
) -> UsageRecord:
    return increment_usage(db, user_id=user_id, delta={"habits": 1}, now=now)


def track_habit_delete(
    db: Session, *, user_id: int, now: datetime | None = None
) -> UsageRecord:
    return decrement_usage(db, user_id=user_id, delta={"habits": 1}, now=now)


def track_routine_create(
    db: Session, *, user_id: int, now: datetime | None = None
) -> UsageRecord:
    return increment_usage(db, user_id=user_id, delta={"routines": 1}, now=now)


def track_routine_delete(
    db: Session, *, user_id: int, now: datetime | None = None
) -> UsageRecord:
    return decrement_usage(db, user_id=user_id, delta={"routines": 1}, now=now)


TRACKERS: dict[str, Callable[..., UsageRecord]] = {
    "recipe_generated": track_recipe_generation,
    "photo_analyzed": track_photo_analysis,
    "ai_chat_message_sent": track_ai_chat_message,
    "recipe_saved": track_recipe_save,
    "recipe_deleted": track_recipe_delete,
    "fridge_item_added": track_fridge_item_add,
    "fridge_item_deleted": track_fridge_item_delete,
    "habit_created": track_habit_create,
    "habit_deleted": track_habit_delete,
    "routine_created": track_routine_create,
    "routine_deleted": track_routine_delete,
}


__all__ = [
    "TRACKERS",
    "track_recipe_generation",
    "track_photo_analysis",
    "track_ai_chat_message",
    "track_recipe_save",
    "track_recipe_delete",
    "track_fridge_item_add",
    "track_fridge_item_delete",
    "track_habit_create",
    "track_habit_delete",
    "track_routine_create",
    "track_routine_delete",
]
