"""Pricing service - compare CMS plan prices with Stripe and push fixes"""

import logging
from typing import Optional

from fastapi import HTTPException

from ...services.sanity_service import sanity_service
from ...services.stripe_service import stripe_service
from ...shared.validators import to_number
from .calculator import best_monthly_pricing, format_amount, monthly_price
from .schemas import (
    PlanPriceOption,
    PlanPricingResponse,
    PriceComparisonResponse,
    PriceComparisonRow,
    SyncPriceRequest,
    SyncPriceResponse,
)
from .utils import (
    billing_period_to_stripe_interval,
    is_valid_price,
    is_valid_stripe_price_id,
    is_valid_stripe_product_id,
    item_key,
)

logger = logging.getLogger(__name__)


class PricingService:
    """Keeps Stripe recurring prices in line with the plans edited in the CMS"""

    def __init__(self):
        self.cms = sanity_service
        self.stripe = stripe_service

    # ========================================================================
    # Comparison
    # ========================================================================

    @staticmethod
    def _row(
        subscription: dict,
        variant: Optional[dict],
        stripe_price: Optional[dict],
        error: Optional[str] = None,
    ) -> PriceComparisonRow:
        source = variant or subscription
        variant_key = variant.get("_key") if variant else None
        common = {
            "key": item_key(subscription["_id"], variant_key),
            "subscriptionId": subscription["_id"],
            "subscriptionTitle": subscription.get("title"),
            "variantKey": variant_key,
            "variantTitle": (variant.get("title") or f"Variant {variant_key}") if variant else "Base Plan",
            "cmsPrice": source.get("price"),
            "stripePriceId": source.get("stripePriceId"),
        }
        cms_price = source.get("price") or 0

        if error:
            return PriceComparisonRow(
                **common, status="ERROR", statusMessage=f"Error: {error}", needsAction=False, error=error
            )

        if not common["stripePriceId"]:
            return PriceComparisonRow(
                **common,
                status="MISSING",
                statusMessage="No Stripe Price ID in CMS",
                needsAction=True,
                action="create",
            )

        if stripe_price is None:
            malformed = not is_valid_stripe_price_id(common["stripePriceId"])
            return PriceComparisonRow(
                **common,
                status="NOT_FOUND",
                statusMessage="Stripe Price ID is malformed" if malformed else "Stripe Price ID not found or deleted",
                needsAction=True,
                action="create",
            )

        unit_amount = stripe_price.get("unit_amount")
        stripe_amount = unit_amount / 100 if unit_amount else 0

        if round(stripe_amount, 2) != round(float(cms_price), 2):
            return PriceComparisonRow(
                **common,
                stripePrice=stripe_amount,
                status="DIFFERENT",
                statusMessage=f"CMS: ${format_amount(cms_price)} | Stripe: ${format_amount(stripe_amount)}",
                needsAction=True,
                action="sync",
            )

        return PriceComparisonRow(
            **common,
            stripePrice=stripe_amount,
            status="OK",
            statusMessage=f"${format_amount(cms_price)} - Prices match",
            needsAction=False,
        )

    async def _compare(self, subscription: dict, variant: Optional[dict] = None) -> PriceComparisonRow:
        price_id = (variant or subscription).get("stripePriceId")
        if not price_id or not is_valid_stripe_price_id(price_id):
            return self._row(subscription, variant, None)
        try:
            stripe_price = await self.stripe.retrieve_price(price_id)
        except Exception as e:
            logger.error(f"❌ Error fetching Stripe price {price_id}: {e}")
            return self._row(subscription, variant, None, error=str(e))
        return self._row(subscription, variant, stripe_price)

    async def compare_prices(self) -> PriceComparisonResponse:
        logger.info("🔄 Starting price comparison...")
        subscriptions = await self.cms.get_active_subscriptions()
        logger.info(f"📋 Found {len(subscriptions)} subscriptions")

        rows = []
        for subscription in subscriptions:
            try:
                rows.append(await self._compare(subscription))
                if subscription.get("hasVariants"):
                    for variant in subscription.get("variants") or []:
                        rows.append(await self._compare(subscription, variant))
            except Exception as e:
                logger.error(f"❌ Error processing subscription {subscription.get('_id')}: {e}")
                rows.append(self._row(subscription, None, None, error=str(e)))

        logger.info(f"✅ Generated {len(rows)} comparison rows")
        return PriceComparisonResponse(rows=rows)

    # ========================================================================
    # Public plan pricing
    # ========================================================================

    async def plan_pricing(self, subscription_id: str) -> PlanPricingResponse:
        """Per-month price of every purchasable option of a plan and the best value among them"""
        subscription = await self.cms.get_subscription(subscription_id)
        if not subscription:
            raise HTTPException(status_code=404, detail="Subscription plan not found")

        candidates = [subscription]
        if subscription.get("hasVariants"):
            candidates += subscription.get("variants") or []

        priced = []
        for candidate in candidates:
            price = to_number(candidate.get("price"))
            if not is_valid_price(price):
                continue
            priced.append({**candidate, "price": price})

        options = [
            PlanPriceOption(
                variantKey=option.get("_key"),
                title=option.get("title") or "Base Plan",
                price=option["price"],
                billingPeriod=option.get("billingPeriod"),
                monthlyPrice=round(
                    monthly_price(option["price"], option.get("billingPeriod"), option.get("customBillingPeriodMonths")),
                    2,
                ),
            )
            for option in priced
        ]

        best = best_monthly_pricing(priced)
        best_variant = best["bestVariant"]
        return PlanPricingResponse(
            subscriptionId=subscription["_id"],
            title=subscription.get("title"),
            options=options,
            lowestMonthlyPrice=round(best["lowestMonthlyPrice"], 2),
            bestVariantKey=best_variant.get("_key") if best_variant else None,
            originalPrice=best["originalPrice"],
            savingsPercentage=best["savingsPercentage"],
        )

    # ========================================================================
    # Sync
    # ========================================================================

    async def ensure_product(self, subscription: dict) -> str:
        """Stripe product id of a plan, creating it (and writing it back to the CMS) when missing"""
        product_id = subscription.get("stripeProductId")
        if is_valid_stripe_product_id(product_id):
            return product_id
        if product_id:
            logger.warning(f"⚠️ Ignoring malformed Stripe product id {product_id} on {subscription['_id']}")

        logger.info("🔄 Creating new Stripe product...")
        product = await self.stripe.create_product(
            name=subscription.get("title"),
            description=f"{subscription.get('title')} subscription",
            metadata={"sanityId": subscription["_id"]},
        )
        await self.cms.patch(subscription["_id"], {"stripeProductId": product["id"]})
        return product["id"]

    async def create_plan_price(
        self, subscription: dict, variant_key: Optional[str], source: dict, product_id: str
    ) -> str:
        """Create the recurring price for a plan or variant and store its id in the CMS"""
        billing_period = source.get("billingPeriod")
        custom_months = source.get("customBillingPeriodMonths")
        interval, interval_count = billing_period_to_stripe_interval(billing_period, custom_months)

        new_price = await self.stripe.create_price(
            product_id=product_id,
            unit_amount=round(source["price"] * 100),
            interval=interval,
            interval_count=interval_count,
            metadata={
                "sanityId": subscription["_id"],
                "variantKey": variant_key or "",
                "billingPeriod": billing_period or "",
                "customBillingPeriodMonths": str(custom_months) if custom_months else "",
            },
        )
        new_price_id = new_price["id"]

        if variant_key:
            await self.cms.patch(
                subscription["_id"],
                {f'variants[_key=="{variant_key}"].stripePriceId': new_price_id},
                set_if_missing={"variants": []},
            )
        else:
            await self.cms.patch(subscription["_id"], {"stripePriceId": new_price_id})
        return new_price_id

    async def sync_price(self, data: SyncPriceRequest) -> SyncPriceResponse:
        if not data.subscriptionId or not data.action:
            raise HTTPException(status_code=400, detail="Missing required fields: subscriptionId and action")
        if data.action not in ("sync", "create"):
            raise HTTPException(status_code=400, detail='Invalid action. Must be "sync" or "create"')

        logger.info(
            f"🔄 Syncing price for subscription {data.subscriptionId}, "
            f"variant {data.variantKey or 'base'}, action: {data.action}"
        )

        subscription = await self.cms.get_subscription(data.subscriptionId)
        if not subscription:
            raise HTTPException(status_code=404, detail="Subscription not found")

        variant = None
        if data.variantKey:
            variant = next(
                (v for v in subscription.get("variants") or [] if v.get("_key") == data.variantKey), None
            )
            if variant is None:
                raise HTTPException(status_code=404, detail="Variant not found")

        source = variant or subscription
        target_price = source.get("price")
        current_price_id = source.get("stripePriceId")

        if not is_valid_price(target_price):
            raise HTTPException(status_code=400, detail="Invalid price value in CMS")

        product_id = await self.ensure_product(subscription)

        if data.action == "sync" and current_price_id:
            if not is_valid_stripe_price_id(current_price_id):
                logger.warning(f"⚠️ Not archiving malformed Stripe price id {current_price_id}")
            else:
                try:
                    await self.stripe.archive_price(current_price_id)
                    logger.info(f"✅ Archived old price: {current_price_id}")
                except Exception as e:
                    # Already archived or deleted upstream
                    logger.warning(f"⚠️ Failed to archive old price {current_price_id}: {e}")

        new_price_id = await self.create_plan_price(subscription, data.variantKey, source, product_id)

        action_text = "synced" if data.action == "sync" else "created"
        target_text = f'variant "{variant.get("title")}"' if variant else "base subscription"
        logger.info(f"✅ {action_text.capitalize()} price {new_price_id} for {item_key(subscription['_id'], data.variantKey)}")
        return SyncPriceResponse(
            message=f"Successfully {action_text} price for {target_text}: ${format_amount(target_price)}",
            newPriceId=new_price_id,
        )
