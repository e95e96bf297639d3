from datetime import datetime

from fastapi import APIRouter, Depends
from pydantic import BaseModel

from entitlements.dependencies import ErrorResponse, rate_limit, run_store
from entitlements.services.periods import utcnow
from entitlements.services.plan_limits import Plan
from entitlements.services.subscriptions import (
    SubscriptionRecord,
    cancel_subscription,
    get_or_create_subscription,
    reactivate_subscription,
)

router = APIRouter(prefix="/subscription")


class SubscriptionResponse(BaseModel):
    plan: Plan
    status: str
    billing_interval: str | None = None
    current_period_start: datetime
    current_period_end: datetime
    cancel_at_period_end: bool
    trial_end: datetime | None = None
    is_premium: bool
    is_in_trial: bool
    trial_days_remaining: int


def _response(record: SubscriptionRecord) -> SubscriptionResponse:
    now = utcnow()
    return SubscriptionResponse(
        plan=record.plan,
        status=record.status,
        billing_interval=record.billing_interval,
        current_period_start=record.current_period_start,
        current_period_end=record.current_period_end,
        cancel_at_period_end=record.cancel_at_period_end,
        trial_end=record.trial_end,
        is_premium=record.is_premium(),
        is_in_trial=record.is_in_trial(now),
        trial_days_remaining=record.trial_days_remaining(now),
    )


@router.get(
    "",
    response_model=SubscriptionResponse,
    responses={503: {"model": ErrorResponse}},
)
async def subscription_status(user_id: int = Depends(rate_limit)):
    record = await run_store(get_or_create_subscription, user_id=user_id)
    return _response(record)


@router.post(
    "/cancel",
    response_model=SubscriptionResponse,
    responses={503: {"model": ErrorResponse}},
)
async def subscription_cancel(user_id: int = Depends(rate_limit)):
    """Cancel at period end; premium access continues until then."""
    record = await run_store(cancel_subscription, user_id=user_id)
    return _response(record)


@router.post(
    "/reactivate",
    response_model=SubscriptionResponse,
    responses={503: {"model": ErrorResponse}},
)
async def subscription_reactivate(user_id: int = Depends(rate_limit)):
    record = await run_store(reactivate_subscription, user_id=user_id)
    return _response(record)
