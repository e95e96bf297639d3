from __future__ import annotations

import asyncio
import hmac
import logging
from typing import Any, Callable, TypeVar

import redis.asyncio as redis
from redis.exceptions import RedisError
from fastapi import Depends, Header, HTTPException, Request
from pydantic import BaseModel
from sqlalchemy.exc import SQLAlchemyError

from entitlements import db as db_module
from entitlements.config import Settings
from entitlements.metrics import store_unavailable_total
from entitlements.models import ErrorCode
from entitlements.services.hmac import compute_signature

settings = Settings()
redis_client = redis.from_url(settings.redis_url, encoding="utf-8", decode_responses=True)


logger = logging.getLogger(__name__)

T = TypeVar("T")


class ErrorResponse(BaseModel):
    code: str
    message: str


def http_error(status_code: int, code: ErrorCode, message: str) -> HTTPException:
    err = ErrorResponse(code=code.value, message=message)
    return HTTPException(status_code=status_code, detail=err.model_dump())


async def require_api_headers(
    x_api_key: str = Header(..., alias="X-API-Key"),
    x_api_ver: str | None = Header(None, alias="X-API-Ver"),
    x_user_id: int | None = Header(None, alias="X-User-ID"),
) -> int:
    if x_api_ver is None:
        raise http_error(426, ErrorCode.UPGRADE_REQUIRED, "Missing API version")

    if x_api_ver != "v1":
        raise http_error(426, ErrorCode.UPGRADE_REQUIRED, "Invalid API version")

    if x_api_key != settings.api_key:
        raise http_error(401, ErrorCode.UNAUTHORIZED, "Invalid API key")

    if x_user_id is None:
        raise http_error(401, ErrorCode.UNAUTHORIZED, "Missing user ID")

    return x_user_id


def client_ip(request: Request) -> str:
    """Peer address, or the first ``X-Forwarded-For`` hop behind trusted proxies."""
    client_host = request.client.host if request.client else ""
    xff = request.headers.get("X-Forwarded-For")
    if xff and client_host in settings.trusted_proxies:
        forwarded = [h.strip() for h in xff.split(",") if h.strip()]
        proxies = forwarded[1:] + [client_host]
        if forwarded and all(p in settings.trusted_proxies for p in proxies):
            return forwarded[0]
    return client_host


async def rate_limit(request: Request, user_id: int = Depends(require_api_headers)) -> int:
    """Throttle requests by IP and user via Redis."""
    ip = client_ip(request)
    ip_key = f"rate:ip:{ip}"
    user_key = f"rate:user:{user_id}"

    try:
        pipe = redis_client.pipeline()
        pipe.incr(ip_key)
        pipe.expire(ip_key, 60)
        pipe.incr(user_key)
        pipe.expire(user_key, 60)
        ip_count, _, user_count, _ = await pipe.execute()
    except RedisError as exc:
        logger.exception("Redis unavailable for rate limiting: %s", exc)
        raise http_error(
            503, ErrorCode.SERVICE_UNAVAILABLE, "Rate limiter unavailable"
        ) from exc
    if (
        ip_count > settings.rate_limit_ip_per_minute
        or user_count > settings.rate_limit_user_per_minute
    ):
        raise http_error(429, ErrorCode.TOO_MANY_REQUESTS, "Rate limit exceeded")

    return user_id


async def run_store(func: Callable[..., T], /, **kwargs: Any) -> T:
    """Run a store operation in a worker thread with its own session.

    Storage errors fail closed: the caller gets a retryable 503 and the
    action must not proceed.
    """

    def _call() -> T:
        with db_module.SessionLocal() as db:
            return func(db, **kwargs)

    try:
        return await asyncio.to_thread(_call)
    except SQLAlchemyError as exc:
        store_unavailable_total.inc()
        logger.exception("Entitlement store unavailable")
        raise http_error(
            503, ErrorCode.SERVICE_UNAVAILABLE, "Entitlement store unavailable"
        ) from exc


def verify_signed_payload(payload: dict, x_sign: str | None) -> None:
    """Reject admin requests whose ``X-Sign`` does not match the payload."""
    expected = compute_signature(settings.hmac_secret, payload)
    if not x_sign or not hmac.compare_digest(expected, x_sign):
        raise http_error(401, ErrorCode.UNAUTHORIZED, "Invalid signature")


__all__ = [
    "ErrorResponse",
    "client_ip",
    "compute_signature",
    "http_error",
    "rate_limit",
    "redis_client",
    "require_api_headers",
    "run_store",
    "settings",
    "verify_signed_payload",
]
