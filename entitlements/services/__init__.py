from .access import (
    AccessResult,
    check_feature_access,
    check_premium_feature,
    consume_feature,
)
from .summary import get_usage_summary
from .trackers import TRACKERS

__all__ = [
    "AccessResult",
    "check_feature_access",
    "check_premium_feature",
    "consume_feature",
    "get_usage_summary",
    "TRACKERS",
]
