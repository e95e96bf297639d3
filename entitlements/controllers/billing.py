import hmac
import json
import logging

from fastapi import APIRouter, Depends, Header, Request
from pydantic import ValidationError

from entitlements.dependencies import (
    ErrorResponse,
    client_ip,
    compute_signature,
    http_error,
    rate_limit,
    run_store,
    settings,
)
from entitlements.metrics import webhook_forbidden_total
from entitlements.models import ErrorCode
from entitlements.services.billing import BillingEvent, apply_billing_event
from entitlements.services.hmac import verify_hmac
from entitlements.services.subscriptions import SubscriptionNotFoundError

logger = logging.getLogger(__name__)
HMAC_SECRET = settings.hmac_secret

router = APIRouter(prefix="/billing")


def _forbidden(message: str):
    webhook_forbidden_total.inc()
    return http_error(403, ErrorCode.FORBIDDEN, message)


@router.post(
    "/webhook",
    status_code=200,
    responses={
        400: {"model": ErrorResponse},
        401: {"model": ErrorResponse},
        403: {"model": ErrorResponse},
        404: {"model": ErrorResponse},
    },
)
async def billing_webhook(
    request: Request,
    _: int = Depends(rate_limit),
    x_sign: str | None = Header(None, alias="X-Sign"),
):
    """Mirror a payment provider event into the subscription store."""
    ip = client_ip(request)
    if ip not in settings.billing_ips:
        logger.warning("audit: forbidden ip %s", ip)
        raise _forbidden("IP address forbidden")

    raw_body = await request.body()
    if settings.secure_webhook and not verify_hmac(x_sign or "", raw_body, HMAC_SECRET):
        logger.warning("audit: invalid webhook signature")
        raise _forbidden("Invalid webhook signature")

    try:
        data = json.loads(raw_body)
    except (json.JSONDecodeError, TypeError) as exc:
        logger.exception("failed to parse webhook body as JSON")
        raise http_error(400, ErrorCode.BAD_REQUEST, "Malformed JSON body") from exc
    if not isinstance(data, dict):
        logger.warning("audit: non-object webhook payload")
        raise http_error(400, ErrorCode.BAD_REQUEST, "Payload must be a JSON object")

    provided_sign = data.pop("signature", "")
    expected_sign = compute_signature(HMAC_SECRET, data)
    if not isinstance(provided_sign, str) or not hmac.compare_digest(
        provided_sign, expected_sign
    ):
        logger.warning("audit: invalid payload signature")
        raise _forbidden("Invalid payload signature")

    try:
        event = BillingEvent(**data)
    except ValidationError as exc:
        raise http_error(400, ErrorCode.BAD_REQUEST, "Invalid webhook payload") from exc

    try:
        record = await run_store(apply_billing_event, event=event)
    except SubscriptionNotFoundError as exc:
        logger.warning("audit: billing event %s for unknown subscription", event.event)
        raise http_error(404, ErrorCode.NOT_FOUND, "Subscription not found") from exc
    except ValueError as exc:
        raise http_error(400, ErrorCode.BAD_REQUEST, str(exc)) from exc

    return {"user_id": record.user_id, "plan": record.plan, "status": record.status}
