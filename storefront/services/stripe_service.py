"""
Stripe Service
Wrapper around the Stripe SDK for catalog prices, customers, checkout sessions and subscriptions
"""
import asyncio
import logging
from typing import Any, Optional

import stripe

from ..config import STRIPE_SECRET_KEY

logger = logging.getLogger(__name__)


def to_plain_dict(obj: Any) -> dict:
    """Convert a StripeObject (or an already-plain dict) into nested plain dicts"""
    if obj is None:
        return {}
    if hasattr(obj, "to_dict_recursive"):
        return obj.to_dict_recursive()
    if hasattr(obj, "to_dict"):
        return obj.to_dict()
    return dict(obj)


class StripeService:
    """Service for Stripe catalog, checkout and subscription operations"""

    def __init__(self):
        self.api_key = STRIPE_SECRET_KEY
        self.client = None

        if not self.api_key:
            logger.warning("⚠️ STRIPE_SECRET_KEY not configured - checkout and price sync disabled")
        else:
            try:
                stripe.api_key = self.api_key
                self.client = stripe
                logger.info("✅ Stripe client initialized")
            except Exception as e:
                logger.error(f"❌ Failed to initialize Stripe client: {e}")
                self.client = None

    def is_available(self) -> bool:
        return self.client is not None

    async def _call(self, operation, *args, **params) -> dict:
        """Run a blocking SDK call off the event loop and return a plain dict"""
        if not self.is_available():
            raise Exception("Stripe client not initialized - check STRIPE_SECRET_KEY")
        result = await asyncio.to_thread(operation, *args, api_key=self.api_key, **params)
        return to_plain_dict(result)

    # ========================================================================
    # Prices and products
    # ========================================================================

    async def retrieve_price(self, price_id: str) -> Optional[dict]:
        """Return the price or None when Stripe does not know it"""
        try:
            return await self._call(stripe.Price.retrieve, price_id)
        except stripe.InvalidRequestError as e:
            if e.code == "resource_missing":
                return None
            raise

    async def create_product(self, name: str, description: Optional[str] = None, metadata: Optional[dict] = None) -> dict:
        params = {"name": name, "metadata": metadata or {}}
        if description:
            params["description"] = description
        try:
            product = await self._call(stripe.Product.create, **params)
        except Exception as e:
            logger.error(f"❌ Failed to create Stripe product for {name}: {e}")
            raise
        logger.info(f"✅ Created Stripe product {product.get('id')} for {name}")
        return product

    async def archive_price(self, price_id: str) -> dict:
        return await self._call(stripe.Price.modify, price_id, active=False)

    async def create_price(
        self,
        product_id: str,
        unit_amount: int,
        interval: str,
        interval_count: int = 1,
        metadata: Optional[dict] = None,
        currency: str = "usd",
    ) -> dict:
        try:
            price = await self._call(
                stripe.Price.create,
                product=product_id,
                unit_amount=unit_amount,
                currency=currency,
                recurring={"interval": interval, "interval_count": interval_count},
                metadata=metadata or {},
            )
        except Exception as e:
            logger.error(f"❌ Failed to create Stripe price for {product_id}: {e}")
            raise
        logger.info(
            f"✅ Created Stripe price {price.get('id')}: {unit_amount} {currency} every {interval_count} {interval}"
        )
        return price

    # ========================================================================
    # Customers and checkout
    # ========================================================================

    async def get_or_create_customer(self, email: str, name: Optional[str] = None, metadata: Optional[dict] = None) -> dict:
        """Reuse the first customer registered with this email, else create one"""
        existing = await self._call(stripe.Customer.list, email=email, limit=1)
        customers = existing.get("data") or []
        if customers:
            return customers[0]

        params = {"email": email, "metadata": metadata or {}}
        if name:
            params["name"] = name
        customer = await self._call(stripe.Customer.create, **params)
        logger.info(f"✅ Created Stripe customer {customer.get('id')} for {email}")
        return customer

    async def create_checkout_session(self, **params) -> dict:
        try:
            session = await self._call(stripe.checkout.Session.create, **params)
        except Exception as e:
            logger.error(f"❌ Failed to create Stripe checkout session ({params.get('mode')}): {e}")
            raise
        logger.info(f"✅ Created Stripe checkout session {session.get('id')} ({params.get('mode')})")
        return session

    async def retrieve_checkout_session(self, session_id: str) -> dict:
        return await self._call(stripe.checkout.Session.retrieve, session_id)

    # ========================================================================
    # Subscriptions
    # ========================================================================

    async def retrieve_subscription(self, subscription_id: str) -> dict:
        return await self._call(stripe.Subscription.retrieve, subscription_id)

    async def update_subscription(self, subscription_id: str, **params) -> dict:
        return await self._call(stripe.Subscription.modify, subscription_id, **params)

    async def cancel_subscription(self, subscription_id: str) -> dict:
        return await self._call(stripe.Subscription.cancel, subscription_id)

    # ========================================================================
    # Webhooks
    # ========================================================================

    @staticmethod
    def construct_event(payload: bytes, signature: str, secret: str) -> dict:
        """
        Verify the Stripe-Signature header and parse the event.

        Raises ``stripe.SignatureVerificationError`` for a bad or stale
        signature and ``ValueError`` for a body that is not JSON.
        """
        event = stripe.Webhook.construct_event(payload, signature, secret)
        return to_plain_dict(event)


# Global instance
stripe_service = StripeService()
