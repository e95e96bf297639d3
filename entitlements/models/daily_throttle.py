from datetime import datetime, timezone

from sqlalchemy import BigInteger, Column, DateTime, Integer, String

from .base import Base


class DailyThrottle(Base):
    """Per-day usage of high-frequency AI features."""

    __tablename__ = "daily_throttle"

    user_id = Column(BigInteger, primary_key=True, autoincrement=False)
    feature = Column(String(16), primary_key=True)
    day = Column(String(10), nullable=False)  # YYYY-MM-DD
    used = Column(Integer, nullable=False, server_default="0")
    updated_at = Column(DateTime, default=lambda: datetime.now(timezone.utc))


__all__ = ["DailyThrottle"]
