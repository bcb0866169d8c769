"""Coupon service - Business rules for applying CMS coupons to subscription plans"""

import logging
from datetime import datetime, timezone
from typing import Optional

from fastapi import HTTPException

from ...services.sanity_service import sanity_service
from ...shared.validators import parse_iso_datetime, to_number
from ..pricing.calculator import apply_coupon_discount
from .schemas import CouponValidateRequest, CouponValidateResponse

logger = logging.getLogger(__name__)


def _excluded_ids(subscription: dict) -> set[str]:
    excluded = set()
    for item in subscription.get("excludedCoupons") or []:
        if isinstance(item, dict):
            excluded.add(item.get("_id") or item.get("_ref"))
        elif item:
            excluded.add(item)
    return excluded


def resolve_plan_price(subscription: dict, variant_key: Optional[str]) -> Optional[float]:
    """Variant price when the plan has variants and the key matches, else the base price"""
    if subscription.get("hasVariants") and variant_key:
        for variant in subscription.get("variants") or []:
            if variant.get("_key") == variant_key:
                return to_number(variant.get("price"))
    return to_number(subscription.get("price"))


class CouponService:
    """Service layer for coupon validation"""

    def __init__(self):
        self.cms = sanity_service

    def _check_coupon_window(self, coupon: dict) -> None:
        if not coupon.get("isActive"):
            raise HTTPException(status_code=400, detail="This coupon is no longer active")

        now = datetime.now(timezone.utc)
        valid_from = parse_iso_datetime(coupon.get("validFrom"))
        valid_until = parse_iso_datetime(coupon.get("validUntil"))
        for field, raw, parsed in (
            ("validFrom", coupon.get("validFrom"), valid_from),
            ("validUntil", coupon.get("validUntil"), valid_until),
        ):
            if raw and parsed is None:
                logger.warning(f"⚠️ Ignoring unparseable {field} on coupon {coupon.get('code')}: {raw!r}")

        if valid_from and now < valid_from:
            raise HTTPException(status_code=400, detail="This coupon is not yet valid")
        if valid_until and now > valid_until:
            raise HTTPException(status_code=400, detail="This coupon has expired")

        usage_limit = coupon.get("usageLimit")
        if usage_limit and (coupon.get("usageCount") or 0) >= usage_limit:
            raise HTTPException(status_code=400, detail="This coupon has reached its usage limit")

    def _check_plan_restrictions(self, coupon: dict, subscription: dict, variant_key: Optional[str]) -> None:
        if subscription.get("allowCoupons") is False:
            raise HTTPException(status_code=400, detail="Coupons are not allowed for this subscription")

        if coupon.get("_id") in _excluded_ids(subscription):
            raise HTTPException(status_code=400, detail="This coupon cannot be used with this subscription")

        subscription_id = subscription.get("_id")
        application_type = coupon.get("applicationType")
        allowed_subscriptions = coupon.get("subscriptions") or []

        if application_type == "specific" or (application_type != "variants" and allowed_subscriptions):
            if not any(sub.get("_id") == subscription_id for sub in allowed_subscriptions):
                raise HTTPException(status_code=400, detail="This coupon is not valid for this subscription")

        if application_type == "variants":
            targets = coupon.get("variantTargets") or []
            if not any(
                target.get("subscriptionId") == subscription_id and target.get("variantKey") == variant_key
                for target in targets
            ):
                raise HTTPException(status_code=400, detail="This coupon is not valid for the selected plan")

    async def validate(self, data: CouponValidateRequest) -> CouponValidateResponse:
        """Validate a coupon code for a plan and price the discount"""
        if not data.code or not data.subscriptionId:
            raise HTTPException(status_code=400, detail="Missing required fields")

        code = data.code.strip().upper()
        logger.info(f"🔄 Validating coupon {code} for subscription {data.subscriptionId}")

        coupon = await self.cms.get_coupon_by_code(code)
        if not coupon:
            raise HTTPException(status_code=404, detail="Invalid coupon code")

        self._check_coupon_window(coupon)

        subscription = await self.cms.get_subscription(data.subscriptionId)
        if not subscription:
            raise HTTPException(status_code=404, detail="Subscription not found")

        self._check_plan_restrictions(coupon, subscription, data.variantKey)

        original_price = resolve_plan_price(subscription, data.variantKey) or 0.0

        minimum = to_number(coupon.get("minimumPurchaseAmount"))
        if minimum and original_price < minimum:
            raise HTTPException(status_code=400, detail=f"Minimum purchase amount of ${minimum:.2f} required")

        discount_value = to_number(coupon.get("discountValue")) or 0.0
        discount = apply_coupon_discount(original_price, coupon.get("discountType"), discount_value)
        discount_amount = round(discount["discountAmount"], 2)
        discounted_price = round(discount["discountedPrice"], 2)

        logger.info(f"✅ Coupon {code} valid: {original_price} -> {discounted_price}")
        return CouponValidateResponse(
            coupon={
                "_id": coupon.get("_id"),
                "code": coupon.get("code"),
                "discountType": coupon.get("discountType"),
                "discountValue": coupon.get("discountValue"),
            },
            originalPrice=round(original_price, 2),
            discountAmount=discount_amount,
            discountedPrice=discounted_price,
        )
