from __future__ import annotations

from datetime import datetime, timezone

import pytest

from entitlements.services.throttle import usage_today
from entitlements.services.trackers import TRACKERS
from entitlements.services.usage import get_or_create_usage

NOW = datetime(2025, 7, 15, 12, 0, tzinfo=timezone.utc)


@pytest.mark.parametrize(
    "event,column",
    [
        ("recipe_generated", "recipes_generated_this_month"),
        ("photo_analyzed", "photo_analyses_this_month"),
        ("ai_chat_message_sent", "ai_chat_messages_this_month"),
        ("recipe_saved", "total_saved_recipes"),
        ("fridge_item_added", "total_fridge_items"),
        ("habit_created", "total_habits"),
        ("routine_created", "total_routines"),
    ],
)
def test_tracker_increments_counter(db, event, column):
    record = TRACKERS[event](db, user_id=1, now=NOW)
    assert getattr(record, column) == 1


@pytest.mark.parametrize(
    "add,remove,column",
    [
        ("recipe_saved", "recipe_deleted", "total_saved_recipes"),
        ("fridge_item_added", "fridge_item_deleted", "total_fridge_items"),
        ("habit_created", "habit_deleted", "total_habits"),
        ("routine_created", "routine_deleted", "total_routines"),
    ],
)
def test_delete_trackers_floor_at_zero(db, add, remove, column):
    TRACKERS[add](db, user_id=1, now=NOW)
    TRACKERS[remove](db, user_id=1, now=NOW)
    record = TRACKERS[remove](db, user_id=1, now=NOW)
    assert getattr(record, column) == 0


def test_ai_trackers_feed_daily_throttle(db):
    TRACKERS["photo_analyzed"](db, user_id=1, now=NOW)
    TRACKERS["ai_chat_message_sent"](db, user_id=1, now=NOW)
    TRACKERS["ai_chat_message_sent"](db, user_id=1, now=NOW)
    assert usage_today(db, user_id=1, feature="photo", now=NOW) == 1
    assert usage_today(db, user_id=1, feature="chat", now=NOW) == 2


def test_trackers_do_not_gate(db):
    for _ in range(12):
        TRACKERS["recipe_generated"](db, user_id=1, now=NOW)
    usage = get_or_create_usage(db, user_id=1, now=NOW)
    assert usage.recipes_generated_this_month == 12
