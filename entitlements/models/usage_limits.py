"""Per-user usage counters.

Monthly counters are zeroed lazily on the first touch after the current
``YYYY-MM`` key moves past ``reset_month``; an earlier key never resets.
Absolute counters track currently owned resources and only move with
create/delete events.
"""
from datetime import datetime, timezone

from sqlalchemy import BigInteger, Column, DateTime, Enum, Integer, String

from .base import Base
from .subscription import PLAN_VALUES


class UsageLimits(Base):
    __tablename__ = "usage_limits"

    user_id = Column(BigInteger, primary_key=True, autoincrement=False)
    plan = Column(Enum(*PLAN_VALUES, name="usage_plan"), nullable=False)

    recipes_generated_this_month = Column(
        Integer, nullable=False, default=0, server_default="0"
    )
    photo_analyses_this_month = Column(
        Integer, nullable=False, default=0, server_default="0"
    )
    ai_chat_messages_this_month = Column(
        Integer, nullable=False, default=0, server_default="0"
    )

    total_saved_recipes = Column(Integer, nullable=False, default=0, server_default="0")
    total_fridge_items = Column(Integer, nullable=False, default=0, server_default="0")
    total_habits = Column(Integer, nullable=False, default=0, server_default="0")
    total_routines = Column(Integer, nullable=False, default=0, server_default="0")

    last_reset_date = Column(DateTime(timezone=True), nullable=False)
    reset_month = Column(String(7), nullable=False)  # e.g. "2025-07"
    updated_at = Column(
        DateTime(timezone=True),
        default=lambda: datetime.now(timezone.utc),
        onupdate=lambda: datetime.now(timezone.utc),
    )


__all__ = ["UsageLimits"]
