"""Feature access evaluator.

A decision is the outcome of an ordered list of budget checks: the plan
budget (monthly quota or absolute ceiling) first, then the daily throttle for
the high-frequency AI features. The first denial wins. Checks only read
counters; recording consumption is the trackers' job.
"""
from __future__ import annotations

import logging
from datetime import datetime
from typing import Callable, Literal, NamedTuple

from pydantic import BaseModel
from sqlalchemy.orm import Session

from entitlements.metrics import (
    access_checks_total,
    consume_conflict_total,
    quota_reject_total,
)
from entitlements.services.periods import ensure_utc, utcnow
from entitlements.services.plan_limits import (
    FEATURE_RULES,
    Feature,
    FeatureRule,
    Plan,
    PremiumFeature,
    as_int_limit,
    budget_for,
    is_unlimited,
)
from entitlements.services.subscriptions import (
    SubscriptionRecord,
    get_or_create_subscription,
)
from entitlements.services.throttle import increment_throttle, throttle_status
from entitlements.services.usage import get_or_create_usage, increment_within_limit

logger = logging.getLogger(__name__)

Budget = Literal["monthly", "absolute", "daily", "premium"]


class AccessResult(BaseModel):
    allowed: bool
    feature: str
    limit: int | None = None
    current: int | None = None
    remaining: int | None = None
    reason: str | None = None
    upgrade_required: bool = False
    budget: Budget | None = None


class _Request(NamedTuple):
    db: Session
    user_id: int
    feature: Feature
    rule: FeatureRule
    subscription: SubscriptionRecord
    now: datetime

    @property
    def tier(self) -> Plan:
        return Plan.PREMIUM if self.subscription.is_premium() else Plan.FREE


def _plan_budget(req: _Request) -> AccessResult:
    budget: Budget = "monthly" if req.rule.monthly else "absolute"
    if req.subscription.is_premium():
        return AccessResult(allowed=True, feature=req.feature.value)

    plan = req.tier
    limit = budget_for(plan, req.feature)
    if is_unlimited(limit):
        return AccessResult(allowed=True, feature=req.feature.value, budget=budget)

    usage = get_or_create_usage(
        req.db, user_id=req.user_id, plan=req.subscription.plan, now=req.now
    )
    current = getattr(usage, req.rule.counter)
    if current >= limit:
        return AccessResult(
            allowed=False,
            feature=req.feature.value,
            reason=req.rule.reason,
            limit=as_int_limit(limit),
            current=current,
            remaining=0,
            upgrade_required=True,
            budget=budget,
        )
    return AccessResult(
        allowed=True,
        feature=req.feature.value,
        limit=as_int_limit(limit),
        current=current,
        remaining=int(limit) - current,
        budget=budget,
    )


def _daily_throttle(req: _Request) -> AccessResult | None:
    if req.rule.throttle is None:
        return None
    status = throttle_status(
        req.db,
        user_id=req.user_id,
        feature=req.rule.throttle,
        tier=req.tier,
        now=req.now,
    )
    if status.allowed:
        return AccessResult(
            allowed=True,
            feature=req.feature.value,
            limit=status.limit,
            current=status.used,
            remaining=status.remaining,
            budget="daily",
        )
    return AccessResult(
        allowed=False,
        feature=req.feature.value,
        reason=f"Daily {req.rule.throttle.value} limit reached",
        limit=status.limit,
        current=status.used,
        remaining=0,
        upgrade_required=req.tier is Plan.FREE,
        budget="daily",
    )


BUDGET_CHECKS: tuple[Callable[[_Request], AccessResult | None], ...] = (
    _plan_budget,
    _daily_throttle,
)


def _evaluate(
    db: Session, user_id: int, feature: Feature | str, now: datetime | None
) -> tuple[AccessResult, _Request]:
    feature = Feature(feature)
    now = ensure_utc(now) or utcnow()
    subscription = get_or_create_subscription(db, user_id=user_id, now=now)
    req = _Request(db, user_id, feature, FEATURE_RULES[feature], subscription, now)

    decision: AccessResult | None = None
    for check in BUDGET_CHECKS:
        result = check(req)
        if result is None:
            continue
        if not result.allowed:
            access_checks_total.labels(feature=feature.value, outcome="denied").inc()
            quota_reject_total.labels(feature=feature.value, budget=result.budget).inc()
            logger.info(
                "access denied for user %s: %s",
                user_id,
                result.reason,
                extra={"user_id": user_id, "feature": feature.value},
            )
            return result, req
        if decision is None:
            decision = result

    access_checks_total.labels(feature=feature.value, outcome="allowed").inc()
    return decision, req


def check_feature_access(
    db: Session,
    *,
    user_id: int,
    feature: Feature | str,
    now: datetime | None = None,
) -> AccessResult:
    """Decide whether ``user_id`` may perform ``feature`` right now."""
    result, _ = _evaluate(db, user_id, feature, now)
    return result


def check_premium_feature(
    db: Session,
    *,
    user_id: int,
    feature: PremiumFeature | str,
    now: datetime | None = None,
) -> AccessResult:
    feature = PremiumFeature(feature)
    subscription = get_or_create_subscription(db, user_id=user_id, now=now)
    if subscription.is_premium():
        return AccessResult(allowed=True, feature=feature.value)
    quota_reject_total.labels(feature=feature.value, budget="premium").inc()
    return AccessResult(
        allowed=False,
        feature=feature.value,
        reason=f"{feature.value} is a premium-only feature",
        upgrade_required=True,
        budget="premium",
    )


def consume_feature(
    db: Session,
    *,
    user_id: int,
    feature: Feature | str,
    now: datetime | None = None,
) -> AccessResult:
    """Check and record one use with an exact ceiling.

    Unlike check-then-track, the plan budget is claimed with a conditional
    increment, so concurrent requests cannot overshoot it. The daily throttle
    stays a soft limit.
    """
    result, req = _evaluate(db, user_id, feature, now)
    if not result.allowed:
        return result

    limit = budget_for(req.tier, req.feature)
    claimed = increment_within_limit(
        db,
        user_id=user_id,
        counter=req.rule.counter,
        limit=limit,
        now=req.now,
    )
    if not claimed:
        consume_conflict_total.inc()
        usage = get_or_create_usage(db, user_id=user_id, now=req.now)
        current = getattr(usage, req.rule.counter)
        quota_reject_total.labels(
            feature=req.feature.value, budget=result.budget or "monthly"
        ).inc()
        return AccessResult(
            allowed=False,
            feature=req.feature.value,
            reason=req.rule.reason,
            limit=as_int_limit(limit),
            current=current,
            remaining=0,
            upgrade_required=True,
            budget="monthly" if req.rule.monthly else "absolute",
        )

    if req.rule.throttle is not None:
        increment_throttle(db, user_id=user_id, feature=req.rule.throttle, now=req.now)

    if result.current is None:
        return result
    return result.model_copy(
        update={
            "current": result.current + 1,
            "remaining": max(0, (result.remaining or 0) - 1),
        }
    )


__all__ = [
    "AccessResult",
    "BUDGET_CHECKS",
    "check_feature_access",
    "check_premium_feature",
    "consume_feature",
]
