"""Data-subject deletion across every entitlement store."""
from __future__ import annotations

import logging

from sqlalchemy.orm import Session

from entitlements.models import Event
from entitlements.services.subscriptions import delete_subscription
from entitlements.services.throttle import reset_throttle
from entitlements.services.usage import delete_usage

logger = logging.getLogger(__name__)


def delete_account(db: Session, *, user_id: int) -> None:
    delete_subscription(db, user_id=user_id)
    delete_usage(db, user_id=user_id)
    reset_throttle(db, user_id=user_id)
    db.query(Event).filter_by(user_id=user_id).delete()
    db.commit()
    logger.info("audit: entitlement data deleted for user %s", user_id, extra={"user_id": user_id})


__all__ = ["delete_account"]
