from datetime import datetime, timezone

from sqlalchemy import BigInteger, Boolean, Column, DateTime, Enum, String

from .base import Base

PLAN_VALUES = ("free", "premium")
STATUS_VALUES = (
    "trialing",
    "active",
    "canceled",
    "past_due",
    "incomplete",
    "incomplete_expired",
)
BILLING_INTERVAL_VALUES = ("month", "year")


class Subscription(Base):
    """Commercial relationship of a user, one row per user."""

    __tablename__ = "subscriptions"

    user_id = Column(BigInteger, primary_key=True, autoincrement=False)
    plan = Column(Enum(*PLAN_VALUES, name="subscription_plan"), nullable=False)
    status = Column(
        Enum(*STATUS_VALUES, name="subscription_status"), nullable=False
    )
    billing_interval = Column(
        Enum(*BILLING_INTERVAL_VALUES, name="billing_interval"), nullable=True
    )
    current_period_start = Column(DateTime(timezone=True), nullable=False)
    current_period_end = Column(DateTime(timezone=True), nullable=False)
    cancel_at_period_end = Column(Boolean, nullable=False, default=False)
    trial_end = Column(DateTime(timezone=True), nullable=True)
    provider_customer_id = Column(String(128), nullable=True)
    provider_subscription_id = Column(String(128), nullable=True, index=True)
    created_at = Column(
        DateTime(timezone=True), default=lambda: datetime.now(timezone.utc)
    )
    updated_at = Column(
        DateTime(timezone=True),
        default=lambda: datetime.now(timezone.utc),
        onupdate=lambda: datetime.now(timezone.utc),
    )


__all__ = ["Subscription", "PLAN_VALUES", "STATUS_VALUES", "BILLING_INTERVAL_VALUES"]
