"""Stripe interval mapping and id validators for price sync"""

import logging
import math
from typing import Optional

logger = logging.getLogger(__name__)

STRIPE_MAX_MONTH_INTERVAL = 12


def billing_period_to_stripe_interval(billing_period: str, custom_months: Optional[int] = None) -> tuple[str, int]:
    """Map a CMS billing period to Stripe's (interval, interval_count)"""
    if billing_period == "monthly":
        return "month", 1
    if billing_period == "three_month":
        return "month", 3
    if billing_period == "six_month":
        return "month", 6
    if billing_period == "annually":
        return "year", 1
    if billing_period == "other":
        months = custom_months or 1
        if months > STRIPE_MAX_MONTH_INTERVAL:
            if months % 12 == 0:
                return "year", months // 12
            logger.warning(
                f"⚠️ Billing period of {months} months exceeds Stripe's limit. Capping at 12 months."
            )
            return "month", STRIPE_MAX_MONTH_INTERVAL
        return "month", months
    return "month", 1


def is_valid_price(price) -> bool:
    return (
        isinstance(price, (int, float))
        and not isinstance(price, bool)
        and math.isfinite(price)
        and price > 0
    )


def is_valid_stripe_price_id(price_id) -> bool:
    return isinstance(price_id, str) and price_id.startswith("price_") and len(price_id) > 8


def is_valid_stripe_product_id(product_id) -> bool:
    return isinstance(product_id, str) and product_id.startswith("prod_") and len(product_id) > 8


def item_key(subscription_id: str, variant_key: Optional[str] = None) -> str:
    return f"{subscription_id}-{variant_key or 'base'}"
