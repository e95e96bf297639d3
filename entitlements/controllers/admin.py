import json

from fastapi import APIRouter, Depends, Header, Request
from pydantic import BaseModel, Field

from entitlements.dependencies import (
    ErrorResponse,
    http_error,
    rate_limit,
    run_store,
    verify_signed_payload,
)
from entitlements.models import ErrorCode
from entitlements.services.accounts import delete_account
from entitlements.services.usage import UsageRecord, set_absolute_counter

router = APIRouter()


class CounterValue(BaseModel):
    value: int = Field(..., ge=0)


@router.put(
    "/admin/users/{user_id}/counters/{counter}",
    response_model=UsageRecord,
    responses={
        400: {"model": ErrorResponse},
        401: {"model": ErrorResponse},
    },
)
async def reconcile_counter(
    user_id: int,
    counter: str,
    body: CounterValue,
    x_sign: str | None = Header(None, alias="X-Sign"),
    _: int = Depends(rate_limit),
):
    """Overwrite an absolute counter that drifted from the real item count."""
    verify_signed_payload(
        {"user_id": user_id, "counter": counter, "value": body.value}, x_sign
    )
    try:
        return await run_store(
            set_absolute_counter, user_id=user_id, counter=counter, value=body.value
        )
    except ValueError as exc:
        raise http_error(400, ErrorCode.BAD_REQUEST, str(exc)) from exc


@router.post(
    "/dsr/delete_user",
    status_code=204,
    responses={
        400: {"model": ErrorResponse},
        401: {"model": ErrorResponse},
        403: {"model": ErrorResponse},
    },
)
async def delete_user(
    request: Request,
    x_sign: str | None = Header(None, alias="X-Sign"),
    auth_user: int = Depends(rate_limit),
):
    try:
        payload = await request.json()
    except json.JSONDecodeError as err:
        raise http_error(400, ErrorCode.BAD_REQUEST, "Invalid JSON") from err
    if not isinstance(payload, dict) or payload.get("user_id") is None:
        raise http_error(400, ErrorCode.BAD_REQUEST, "Missing user_id")

    try:
        user_id = int(payload["user_id"])
    except (TypeError, ValueError) as err:
        raise http_error(400, ErrorCode.BAD_REQUEST, "user_id must be an integer") from err

    verify_signed_payload({"user_id": user_id}, x_sign)
    if user_id != auth_user:
        raise http_error(403, ErrorCode.FORBIDDEN, "Cannot delete other user")

    await run_store(delete_account, user_id=user_id)
    return None
