"""Subscription status helpers"""

from datetime import datetime, timezone
from typing import Optional

# Stripe status -> (internal status, is_active)
STRIPE_STATUS_MAP = {
    "active": ("active", True),
    "past_due": ("past_due", True),  # still has access, flagged for follow-up
    "canceled": ("cancelled", False),
    "unpaid": ("unpaid", False),
    "paused": ("paused", False),
    "trialing": ("trialing", True),
    "incomplete": ("incomplete", False),
    "incomplete_expired": ("expired", False),
}

ADMIN_STATUSES = (
    "active",
    "paused",
    "cancelled",
    "cancelling",
    "pending",
    "past_due",
    "trialing",
    "incomplete",
    "expired",
)

ACTIVE_STATUSES = ("active", "trialing", "past_due", "cancelling")


def map_stripe_status(stripe_status: str) -> tuple[str, bool]:
    return STRIPE_STATUS_MAP.get(stripe_status, (stripe_status, False))


def is_active_status(status: str) -> bool:
    return status in ACTIVE_STATUSES


def from_unix(timestamp: Optional[int]) -> Optional[datetime]:
    """Stripe epoch seconds -> naive UTC datetime"""
    if not timestamp:
        return None
    return datetime.fromtimestamp(int(timestamp), tz=timezone.utc).replace(tzinfo=None)


def period_end(stripe_subscription: dict) -> Optional[int]:
    """current_period_end (top-level on older API versions, per item on newer ones)"""
    if stripe_subscription.get("current_period_end"):
        return stripe_subscription["current_period_end"]
    items = (stripe_subscription.get("items") or {}).get("data") or []
    return items[0].get("current_period_end") if items else None
