from fastapi import APIRouter, Depends
from fastapi.responses import JSONResponse

from entitlements.dependencies import ErrorResponse, http_error, rate_limit, run_store
from entitlements.models import ErrorCode
from entitlements.services.access import (
    AccessResult,
    check_feature_access,
    check_premium_feature,
    consume_feature,
)
from entitlements.services.plan_limits import Feature, PremiumFeature
from entitlements.services.summary import (
    DailyUsage,
    UsageSummary,
    get_daily_usage_for_user,
    get_usage_summary,
)
from entitlements.services.trackers import TRACKERS
from entitlements.services.usage import UsageRecord

router = APIRouter()


def _feature(value: str) -> Feature:
    try:
        return Feature(value)
    except ValueError as exc:
        raise http_error(404, ErrorCode.NOT_FOUND, f"Unknown feature {value}") from exc


def _premium_feature(value: str) -> PremiumFeature:
    try:
        return PremiumFeature(value)
    except ValueError as exc:
        raise http_error(404, ErrorCode.NOT_FOUND, f"Unknown feature {value}") from exc


@router.get(
    "/access/premium/{feature}",
    response_model=AccessResult,
    responses={404: {"model": ErrorResponse}, 503: {"model": ErrorResponse}},
)
async def premium_access(feature: str, user_id: int = Depends(rate_limit)):
    return await run_store(
        check_premium_feature, user_id=user_id, feature=_premium_feature(feature)
    )


@router.get(
    "/access/{feature}",
    response_model=AccessResult,
    responses={404: {"model": ErrorResponse}, 503: {"model": ErrorResponse}},
)
async def check_access(feature: str, user_id: int = Depends(rate_limit)):
    return await run_store(
        check_feature_access, user_id=user_id, feature=_feature(feature)
    )


@router.post(
    "/access/{feature}/consume",
    response_model=AccessResult,
    responses={
        402: {"description": "Limit reached"},
        404: {"model": ErrorResponse},
        503: {"model": ErrorResponse},
    },
)
async def consume_access(feature: str, user_id: int = Depends(rate_limit)):
    """Check and book one use in a single step."""
    result = await run_store(consume_feature, user_id=user_id, feature=_feature(feature))
    if not result.allowed:
        return JSONResponse(
            status_code=402,
            content={
                "error": "limit_reached",
                "code": ErrorCode.LIMIT_REACHED.value,
                **result.model_dump(),
            },
        )
    return result


@router.post(
    "/usage/events/{event}",
    response_model=UsageRecord,
    responses={404: {"model": ErrorResponse}, 503: {"model": ErrorResponse}},
)
async def track_event(event: str, user_id: int = Depends(rate_limit)):
    tracker = TRACKERS.get(event)
    if tracker is None:
        raise http_error(404, ErrorCode.NOT_FOUND, f"Unknown usage event {event}")
    return await run_store(tracker, user_id=user_id)


@router.get("/usage", response_model=UsageSummary)
async def usage_summary(user_id: int = Depends(rate_limit)):
    return await run_store(get_usage_summary, user_id=user_id)


@router.get("/usage/throttle", response_model=dict[str, DailyUsage])
async def usage_throttle(user_id: int = Depends(rate_limit)):
    return await run_store(get_daily_usage_for_user, user_id=user_id)
