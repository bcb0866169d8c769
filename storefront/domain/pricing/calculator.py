"""Plan pricing math: per-month equivalents, best-value variant, discounts"""

from typing import Optional

# billing period -> months per charge ("other" uses the custom month count)
BILLING_PERIOD_MONTHS = {
    "monthly": 1,
    "three_month": 3,
    "six_month": 6,
    "annually": 12,
    "other": 1,
}


def billing_period_months(billing_period: str, custom_months: Optional[int] = None) -> int:
    if billing_period == "other":
        return custom_months or 1
    return BILLING_PERIOD_MONTHS.get(billing_period, 1)


def monthly_price(total_price: float, billing_period: str, custom_months: Optional[int] = None) -> float:
    return total_price / billing_period_months(billing_period, custom_months)


def best_monthly_pricing(variants: list[dict]) -> dict:
    """
    Pick the variant with the lowest per-month price.

    ``savingsPercentage`` compares it against the plain monthly variant and is
    only present when there is more than one variant, a monthly one exists and
    the winner is not itself monthly. An empty list prices at 0 with no winner.
    """
    if not variants:
        return {"lowestMonthlyPrice": 0, "bestVariant": None, "originalPrice": 0, "savingsPercentage": None}

    lowest = float("inf")
    best = None
    for variant in variants:
        per_month = monthly_price(
            variant["price"], variant.get("billingPeriod"), variant.get("customBillingPeriodMonths")
        )
        if per_month < lowest:
            lowest = per_month
            best = variant

    result = {
        "lowestMonthlyPrice": lowest,
        "bestVariant": best,
        "originalPrice": best["price"] if best else 0,
        "savingsPercentage": None,
    }

    if len(variants) > 1 and best and best.get("billingPeriod") != "monthly":
        monthly_variant = next((v for v in variants if v.get("billingPeriod") == "monthly"), None)
        if monthly_variant and monthly_variant["price"]:
            savings = monthly_variant["price"] - lowest
            result["savingsPercentage"] = round(savings / monthly_variant["price"] * 100)

    return result


def discount_percentage(original_price: float, discounted_price: float) -> int:
    if original_price <= discounted_price:
        return 0
    return round((original_price - discounted_price) / original_price * 100)


def apply_coupon_discount(price: float, discount_type: Optional[str], discount_value: float) -> dict:
    """Fixed discounts never go below zero; unknown discount types take nothing off"""
    if discount_type == "percentage":
        discount = price * discount_value / 100
    elif discount_type == "fixed":
        discount = discount_value
    else:
        discount = 0.0

    discounted = max(0.0, price - discount)
    actual = price - discounted
    return {
        "discountedPrice": discounted,
        "discountAmount": actual,
        "savingsPercentage": round(actual / price * 100) if price > 0 else 0,
    }


def format_amount(value: float) -> str:
    """29.99 -> "29.99", 30.0 -> "30" """
    value = float(value)
    return str(int(value)) if value.is_integer() else str(value)
