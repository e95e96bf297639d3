from .base import Base
from .daily_throttle import DailyThrottle
from .error_code import ErrorCode
from .event import Event
from .subscription import Subscription
from .usage_limits import UsageLimits

__all__ = [
    "Base",
    "DailyThrottle",
    "ErrorCode",
    "Event",
    "Subscription",
    "UsageLimits",
]
