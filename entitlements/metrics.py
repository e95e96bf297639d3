from prometheus_client import Counter
# Prometheus metrics definitions

# Access decisions by feature and outcome ("allowed" / "denied")
access_checks_total = Counter(
    "access_checks_total", "Feature access checks", ["feature", "outcome"]
)

# Denials split by the budget that rejected the request
# budget: monthly | absolute | daily | premium
quota_reject_total = Counter(
    "quota_reject_total", "Number of quota rejected requests", ["feature", "budget"]
)

# Strict consume requests that lost the race for the last unit of budget
consume_conflict_total = Counter(
    "consume_conflict_total", "Conditional increments rejected at the ceiling"
)

# Counter mutations recorded by trackers and reconciliation
usage_tracked_total = Counter(
    "usage_tracked_total", "Usage counter mutations", ["counter", "direction"]
)

# Lazy monthly rollovers actually applied
monthly_reset_total = Counter(
    "monthly_reset_total", "Monthly usage counter resets"
)

# Billing webhook outcomes
billing_webhook_total = Counter(
    "billing_webhook_total", "Billing webhook events", ["event"]
)

# Webhook rejects (IP or signature)
webhook_forbidden_total = Counter(
    "webhook_forbidden_total", "Total forbidden webhook requests"
)

# Storage failures surfaced to callers as 503
store_unavailable_total = Counter(
    "store_unavailable_total", "Requests failed closed on storage errors"
)

__all__ = [
    "access_checks_total",
    "quota_reject_total",
    "consume_conflict_total",
    "usage_tracked_total",
    "monthly_reset_total",
    "billing_webhook_total",
    "webhook_forbidden_total",
    "store_unavailable_total",
]
