"""Subscription purchase - price a plan (coupon included) and open a Stripe checkout session"""

import logging
from typing import Optional

from fastapi import HTTPException
from sqlalchemy.orm import Session

from ... import config
from ...auth import CurrentUser
from ...services.sanity_service import sanity_service
from ...services.stripe_service import stripe_service
from ..appointment_access.utils import utc_now
from ..coupons.schemas import CouponValidateRequest
from ..coupons.service import CouponService
from ..pricing.calculator import discount_percentage, monthly_price
from ..pricing.service import PricingService
from ..pricing.utils import billing_period_to_stripe_interval, is_valid_price, is_valid_stripe_price_id
from .repository import SubscriptionRepository
from .schemas import CheckoutMetadata, CreateSubscriptionRequest, CreateSubscriptionResponse

logger = logging.getLogger(__name__)


class SubscriptionPurchaseService:
    """
    Creates the pending subscription records behind a Stripe checkout.

    The Stripe webhook activates the row once the session completes; until
    then it stays ``pending`` and inactive.
    """

    def __init__(self, db: Session):
        self.db = db
        self.repo = SubscriptionRepository()
        self.cms = sanity_service
        self.stripe = stripe_service
        self.coupons = CouponService()
        self.pricing = PricingService()

    async def _apply_coupon(
        self, plan: dict, data: CreateSubscriptionRequest, price: float
    ) -> tuple[Optional[dict], float, float]:
        """Return (coupon, price to charge, discount amount)"""
        if not data.couponCode:
            return None, price, 0.0
        if plan.get("allowCoupons") is False:
            logger.warning(f"⚠️ Ignoring coupon {data.couponCode}: plan {plan['_id']} does not allow coupons")
            return None, price, 0.0

        try:
            result = await self.coupons.validate(
                CouponValidateRequest(code=data.couponCode, subscriptionId=plan["_id"], variantKey=data.variantKey)
            )
        except HTTPException as e:
            raise HTTPException(status_code=400, detail=e.detail)
        return result.coupon, result.discountedPrice, result.discountAmount

    async def _resolve_price_id(
        self,
        plan: dict,
        variant: Optional[dict],
        product_id: str,
        coupon: Optional[dict],
        final_price: float,
    ) -> str:
        source = variant or plan
        variant_key = variant.get("_key") if variant else None

        if coupon and final_price < source["price"]:
            # One-off discounted price; the catalog price stays untouched
            interval, interval_count = billing_period_to_stripe_interval(
                source.get("billingPeriod"), source.get("customBillingPeriodMonths")
            )
            temp_price = await self.stripe.create_price(
                product_id=product_id,
                unit_amount=round(final_price * 100),
                interval=interval,
                interval_count=interval_count,
                metadata={
                    "sanityId": plan["_id"],
                    "variantKey": variant_key or "",
                    "couponCode": coupon.get("code") or "",
                    "tempPrice": "true",
                },
            )
            return temp_price["id"]

        if is_valid_stripe_price_id(source.get("stripePriceId")):
            return source["stripePriceId"]

        logger.info(f"🔄 No usable Stripe price for {plan['_id']}/{variant_key or 'base'}, creating one")
        return await self.pricing.create_plan_price(plan, variant_key, source, product_id)

    async def _create_cms_record(self, document: dict) -> Optional[str]:
        try:
            created = await self.cms.create({key: value for key, value in document.items() if value is not None})
            return created.get("_id")
        except Exception as e:
            logger.error(f"⚠️ Failed to create CMS user subscription for session {document.get('stripeSessionId')}: {e}")
            return None

    async def _count_coupon_use(self, coupon: dict) -> None:
        try:
            await self.cms.increment(coupon["_id"], "usageCount")
            logger.info(f"✅ Incremented usage count for coupon {coupon.get('code')}")
        except Exception as e:
            logger.warning(f"⚠️ Failed to increment usage for coupon {coupon.get('code')}: {e}")

    async def create_checkout(self, user: CurrentUser, data: CreateSubscriptionRequest) -> CreateSubscriptionResponse:
        subscription_id = (data.subscriptionId or "").strip()
        if not subscription_id:
            raise HTTPException(status_code=400, detail="Valid subscription ID is required")

        logger.info(f"🔄 Creating subscription checkout for user {user.id}, plan {subscription_id}")
        plan = await self.cms.get_subscription(subscription_id)
        if not plan:
            raise HTTPException(status_code=404, detail="Subscription plan not found")
        if not user.email:
            raise HTTPException(status_code=400, detail="User email is required")

        variant = None
        if data.variantKey:
            variant = next((v for v in plan.get("variants") or [] if v.get("_key") == data.variantKey), None)
            if variant is None:
                raise HTTPException(status_code=404, detail="Selected variant not found")

        source = variant or plan
        price = source.get("price")
        if not is_valid_price(price):
            raise HTTPException(status_code=400, detail="Invalid price value in CMS")
        billing_period = source.get("billingPeriod")
        custom_months = source.get("customBillingPeriodMonths")

        coupon, final_price, discount_amount = await self._apply_coupon(plan, data, price)

        try:
            customer = await self.stripe.get_or_create_customer(user.email, metadata={"userId": user.id})
        except Exception as e:
            logger.error(f"❌ Failed to set up Stripe customer for {user.email}: {e}")
            raise HTTPException(status_code=500, detail="Failed to set up customer account")

        product_id = await self.pricing.ensure_product(plan)
        price_id = await self._resolve_price_id(plan, variant, product_id, coupon, final_price)

        metadata = {
            "userId": user.id,
            "userEmail": user.email,
            "subscriptionId": plan["_id"],
            "variantKey": data.variantKey or "",
            "subscriptionType": "subscription",
        }
        if coupon:
            metadata.update(
                couponId=coupon.get("_id"),
                couponCode=coupon.get("code"),
                originalPrice=str(price),
                discountedPrice=str(final_price),
            )

        base_url = config.FRONTEND_URL.rstrip("/")
        session = await self.stripe.create_checkout_session(
            mode="subscription",
            customer=customer["id"],
            line_items=[{"price": price_id, "quantity": 1}],
            success_url=f"{base_url}/appointment?subscription_success=true&session_id={{CHECKOUT_SESSION_ID}}",
            cancel_url=f"{base_url}/subscriptions?canceled=true",
            metadata=metadata,
            client_reference_id=user.id,
        )

        now = utc_now()
        has_access = bool(plan.get("appointmentAccess"))
        document = {
            "_type": "userSubscription",
            "userId": user.id,
            "userEmail": user.email,
            "subscription": {"_type": "reference", "_ref": plan["_id"]},
            "variantKey": data.variantKey,
            "startDate": now.isoformat(),
            "isActive": False,
            "status": "pending",
            "stripeCustomerId": customer["id"],
            "stripeSessionId": session["id"],
            "billingPeriod": billing_period,
            "billingAmount": final_price,
            "hasAppointmentAccess": has_access,
            "appointmentDiscountPercentage": plan.get("appointmentDiscountPercentage") or 0,
        }
        if coupon:
            document.update(
                appliedCouponId=coupon.get("_id"),
                appliedCouponCode=coupon.get("code"),
                discountType=coupon.get("discountType"),
                discountValue=coupon.get("discountValue"),
                originalPrice=price,
            )
        sanity_id = await self._create_cms_record(document)

        row = self.repo.create(
            self.db,
            user_id=user.id,
            user_email=user.email,
            sanity_id=sanity_id,
            subscription_id=plan["_id"],
            variant_key=data.variantKey,
            plan_name=plan.get("title"),
            billing_period=billing_period,
            billing_amount=final_price,
            status="pending",
            is_active=False,
            stripe_session_id=session["id"],
            stripe_customer_id=customer["id"],
            start_date=now,
            has_appointment_access=has_access,
            coupon_code=coupon.get("code") if coupon else None,
            coupon_discount_type=coupon.get("discountType") if coupon else None,
            coupon_discount_value=coupon.get("discountValue") if coupon else None,
            original_price=price if coupon else None,
        )
        logger.info(f"✅ Created pending subscription {row.id} for checkout session {session['id']}")

        if coupon:
            await self._count_coupon_use(coupon)

        return CreateSubscriptionResponse(
            sessionId=session["id"],
            url=session.get("url"),
            metadata=CheckoutMetadata(
                subscriptionId=plan["_id"],
                variantKey=data.variantKey,
                price=final_price,
                billingPeriod=billing_period,
                monthlyEquivalent=round(monthly_price(final_price, billing_period, custom_months), 2),
                couponApplied=coupon is not None,
                couponCode=coupon.get("code") if coupon else None,
                originalPrice=price if coupon else None,
                discountedPrice=final_price if coupon else None,
                discountAmount=discount_amount if coupon else None,
                savingsPercentage=discount_percentage(price, final_price) if coupon else None,
            ),
        )
