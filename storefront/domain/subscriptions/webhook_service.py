"""
Stripe webhook processing.

Each handler updates the database first (source of truth for access checks)
and then mirrors the change to the CMS document when one is linked. CMS
mirror failures are logged and do not fail the webhook.
"""

import logging
from datetime import timedelta
from typing import Optional

from fastapi import HTTPException
from sqlalchemy.orm import Session

from ...cache import cache
from ...services.sanity_service import sanity_service
from ...services.stripe_service import stripe_service
from ..appointment_access.utils import utc_now
from .repository import SubscriptionRepository
from .utils import from_unix, map_stripe_status, period_end

logger = logging.getLogger(__name__)

PROCESSED_EVENT_TTL = 86400


def _invoice_subscription_id(invoice: dict) -> Optional[str]:
    """Subscription id of an invoice (top-level on older API versions, under parent on newer ones)"""
    subscription = invoice.get("subscription")
    if subscription:
        return subscription if isinstance(subscription, str) else subscription.get("id")
    details = (invoice.get("parent") or {}).get("subscription_details") or {}
    return details.get("subscription")


class StripeWebhookService:
    """Routes verified Stripe events to their handlers"""

    def __init__(self, db: Session):
        self.db = db
        self.repo = SubscriptionRepository()
        self.cms = sanity_service
        self.stripe = stripe_service

    async def _mirror(self, document_id: Optional[str], fields: dict) -> None:
        if not document_id:
            return
        try:
            await self.cms.patch(document_id, fields)
        except Exception as e:
            logger.error(f"⚠️ Failed to mirror update to CMS document {document_id}: {e}")

    async def handle_event(self, event: dict) -> dict:
        event_id = event.get("id")
        event_type = event.get("type")
        data = (event.get("data") or {}).get("object") or {}
        logger.info(f"⚡ Received Stripe webhook event: {event_type} ({event_id})")

        idempotency_key = f"stripe_event:{event_id}"
        if event_id and cache.get(idempotency_key):
            logger.info(f"🔄 Stripe event {event_id} already processed, skipping")
            return {"received": True, "duplicate": True}

        handlers = {
            "checkout.session.completed": self.handle_checkout_session,
            "invoice.payment_succeeded": self.handle_invoice_payment_succeeded,
            "invoice.payment_failed": self.handle_invoice_payment_failed,
            "customer.subscription.updated": self.handle_subscription_updated,
            "customer.subscription.deleted": self.handle_subscription_deleted,
            "payment_intent.succeeded": self.handle_payment_intent_succeeded,
            "payment_intent.payment_failed": self.handle_payment_intent_failed,
        }
        handler = handlers.get(event_type)
        if handler is None:
            logger.info(f"Ignoring unhandled event type: {event_type}")
            return {"received": True}

        result = await handler(data)
        if event_id:
            cache.set(idempotency_key, True, ttl=PROCESSED_EVENT_TTL)
        return result

    # ========================================================================
    # Checkout
    # ========================================================================

    async def handle_checkout_session(self, session: dict) -> dict:
        logger.info(f"🔍 Processing checkout session: {session.get('id')}")
        metadata = session.get("metadata") or {}
        customer_id = session.get("customer")

        if session.get("mode") == "subscription" and metadata.get("subscriptionId"):
            await self._activate_subscription_purchase(session, metadata.get("userId"))
        elif metadata.get("appointmentType") == "oneTime" and metadata.get("appointmentId"):
            await self._complete_appointment_purchase(
                session,
                from_subscription=metadata.get("fromSubscription") == "true",
                user_subscription_id=metadata.get("userSubscriptionId"),
                customer_id=customer_id,
            )
        elif metadata.get("orderId") or metadata.get("sanityId"):
            await self._complete_order_purchase(session, metadata.get("orderId"), metadata.get("sanityId"), customer_id)
        else:
            logger.warning(f"⚠️ Unidentified checkout session type or missing ID: {metadata}")

        return {"success": True, "message": "Checkout session processed successfully"}

    async def _activate_subscription_purchase(self, session: dict, user_id: Optional[str]) -> None:
        stripe_subscription = {}
        if session.get("subscription"):
            stripe_subscription = await self.stripe.retrieve_subscription(session["subscription"])
        stripe_subscription_id = stripe_subscription.get("id") or session.get("subscription")

        now = utc_now()
        end_date = from_unix(period_end(stripe_subscription)) or now + timedelta(days=30)

        subscription = self.repo.get_by_session_id(self.db, session.get("id"))
        if subscription:
            self.repo.update(
                self.db,
                subscription,
                status="active",
                is_active=True,
                stripe_subscription_id=stripe_subscription_id,
                stripe_customer_id=session.get("customer") or subscription.stripe_customer_id,
                start_date=now,
                end_date=end_date,
                next_billing_date=end_date,
            )
            logger.info(f"✅ Activated subscription {subscription.id}")
            await self._mirror(
                subscription.sanity_id,
                {
                    "isActive": True,
                    "status": "active",
                    "endDate": end_date.isoformat(),
                    "nextBillingDate": end_date.isoformat(),
                    "stripeSubscriptionId": stripe_subscription_id,
                },
            )
            return

        logger.error(f"❌ No user subscription found for session ID: {session.get('id')}")
        if not user_id:
            return

        latest = self.repo.get_latest_for_user(self.db, user_id)
        if not latest:
            logger.error(f"❌ No subscriptions found for user ID: {user_id}")
            return
        if latest.status != "active" or not latest.is_active:
            self.repo.update(
                self.db, latest, status="active", is_active=True, stripe_subscription_id=stripe_subscription_id
            )
            logger.info(f"✅ Activated fallback subscription {latest.id}")
            await self._mirror(
                latest.sanity_id,
                {"status": "active", "isActive": True, "stripeSubscriptionId": stripe_subscription_id},
            )

    async def _complete_appointment_purchase(
        self,
        session: dict,
        from_subscription: bool,
        user_subscription_id: Optional[str],
        customer_id: Optional[str],
    ) -> None:
        appointment = self.repo.get_appointment_by_session_id(self.db, session.get("id"))
        if not appointment:
            raise ValueError(f"No appointment found for session ID: {session.get('id')}")

        scheduled_date = utc_now() + timedelta(days=1)
        self.repo.update(
            self.db,
            appointment,
            status="scheduled",
            scheduled_date=scheduled_date,
            stripe_customer_id=customer_id,
            payment_status="paid",
            payment_method="stripe",
            qualiphy_exam_status="N/A",
            stripe_payment_intent_id=session.get("payment_intent"),
        )
        logger.info(f"✅ Appointment {appointment.id} paid and scheduled")
        await self._mirror(
            appointment.sanity_id,
            {
                "status": "scheduled",
                "scheduledDate": scheduled_date.isoformat(),
                "paymentStatus": "paid",
                "qualiphyExamStatus": "N/A",
            },
        )

        if from_subscription and user_subscription_id:
            subscription = self.repo.get_by_id(self.db, user_subscription_id)
            if not subscription:
                raise ValueError(f"Subscription not found: {user_subscription_id}")
            used = (subscription.appointments_used or 0) + 1
            self.repo.update(self.db, subscription, appointments_used=used)
            await self._mirror(subscription.sanity_id, {"appointmentsUsed": used})
            logger.info(f"✅ Updated subscription appointment usage: {used}")

    async def _complete_order_purchase(
        self, session: dict, order_id: Optional[str], sanity_id: Optional[str], customer_id: Optional[str]
    ) -> None:
        logger.info(f"🔄 Processing regular order for ID: {order_id or sanity_id}")
        if order_id:
            order = self.repo.get_order_by_id(self.db, order_id)
            if order:
                self.repo.update(
                    self.db,
                    order,
                    status="paid",
                    payment_status="paid",
                    payment_method="stripe",
                    stripe_session_id=session.get("id"),
                    stripe_payment_intent_id=session.get("payment_intent"),
                    stripe_customer_id=customer_id,
                )
            else:
                logger.warning(f"⚠️ Order {order_id} not found")
        await self._mirror(
            sanity_id,
            {
                "status": "paid",
                "paymentMethod": "stripe",
                "paymentStatus": "paid",
                "stripeSessionId": session.get("id"),
                "stripePaymentIntentId": session.get("payment_intent"),
                "stripeCustomerId": customer_id,
            },
        )

    # ========================================================================
    # Invoices
    # ========================================================================

    async def handle_invoice_payment_succeeded(self, invoice: dict) -> dict:
        stripe_subscription_id = _invoice_subscription_id(invoice)
        if not stripe_subscription_id:
            raise HTTPException(status_code=400, detail="No subscription ID in invoice")

        logger.info(f"🔄 Processing subscription renewal for {stripe_subscription_id}")
        stripe_subscription = await self.stripe.retrieve_subscription(stripe_subscription_id)

        subscription = self.repo.get_by_stripe_subscription_id(self.db, stripe_subscription_id)
        if not subscription:
            raise HTTPException(status_code=404, detail="Subscription not found")

        end_date = from_unix(period_end(stripe_subscription))
        self.repo.update(
            self.db,
            subscription,
            status="active",
            is_active=True,
            end_date=end_date,
            next_billing_date=end_date,
        )
        await self._mirror(
            subscription.sanity_id,
            {
                "endDate": end_date.isoformat() if end_date else None,
                "nextBillingDate": end_date.isoformat() if end_date else None,
                "status": "active",
                "isActive": True,
            },
        )
        return {"success": True, "message": "Invoice payment processed successfully"}

    async def handle_invoice_payment_failed(self, invoice: dict) -> dict:
        stripe_subscription_id = _invoice_subscription_id(invoice)
        if not stripe_subscription_id:
            raise HTTPException(status_code=400, detail="No subscription ID in invoice")

        logger.warning(f"⚠️ Payment failed for subscription {stripe_subscription_id}")
        subscription = self.repo.get_by_stripe_subscription_id(self.db, stripe_subscription_id)
        if not subscription:
            raise HTTPException(status_code=404, detail="Subscription not found")

        self.repo.update(self.db, subscription, status="past_due")
        await self._mirror(subscription.sanity_id, {"status": "past_due"})
        return {"success": True, "message": "Invoice payment failure handled"}

    # ========================================================================
    # Subscription lifecycle
    # ========================================================================

    async def handle_subscription_updated(self, stripe_subscription: dict) -> dict:
        status, is_active = map_stripe_status(stripe_subscription.get("status"))
        logger.info(f"🔄 Subscription {stripe_subscription.get('id')} status: {stripe_subscription.get('status')}")

        subscription = self.repo.get_by_stripe_subscription_id(self.db, stripe_subscription.get("id"))
        if not subscription:
            raise HTTPException(status_code=404, detail="Subscription not found")

        self.repo.update(self.db, subscription, status=status, is_active=is_active)
        await self._mirror(subscription.sanity_id, {"status": status, "isActive": is_active})
        return {"success": True, "message": f"Subscription updated to status: {status}"}

    async def handle_subscription_deleted(self, stripe_subscription: dict) -> dict:
        logger.info(f"🔄 Processing subscription deletion for {stripe_subscription.get('id')}")
        subscription = self.repo.get_by_stripe_subscription_id(self.db, stripe_subscription.get("id"))
        if not subscription:
            raise HTTPException(status_code=404, detail="Subscription not found")

        now = utc_now()
        self.repo.update(self.db, subscription, status="cancelled", is_active=False, end_date=now)
        await self._mirror(
            subscription.sanity_id, {"status": "cancelled", "isActive": False, "endDate": now.isoformat()}
        )
        return {"success": True, "message": "Subscription cancelled successfully"}

    # ========================================================================
    # Payment intents (one-off orders)
    # ========================================================================

    async def _update_order_payment(self, payment_intent: dict, payment_status: str) -> None:
        metadata = payment_intent.get("metadata") or {}
        order_id = metadata.get("orderId")
        fields = {"payment_status": payment_status, "stripe_payment_intent_id": payment_intent.get("id")}
        cms_fields = {"paymentStatus": payment_status, "stripePaymentIntentId": payment_intent.get("id")}
        if payment_status == "paid":
            fields["payment_method"] = "stripe"
            cms_fields["paymentMethod"] = "stripe"

        if order_id:
            order = self.repo.get_order_by_id(self.db, order_id)
            if order:
                self.repo.update(self.db, order, **fields)
            else:
                logger.warning(f"⚠️ Order {order_id} not found for payment intent {payment_intent.get('id')}")
        await self._mirror(metadata.get("sanityId"), cms_fields)

    async def handle_payment_intent_succeeded(self, payment_intent: dict) -> dict:
        logger.info(f"💰 Payment intent succeeded: {payment_intent.get('id')}")
        await self._update_order_payment(payment_intent, "paid")
        return {"success": True, "message": "Payment intent succeeded"}

    async def handle_payment_intent_failed(self, payment_intent: dict) -> dict:
        logger.warning(f"❌ Payment failed: {payment_intent.get('id')}")
        await self._update_order_payment(payment_intent, "failed")
        return {"success": True, "message": "Payment intent failure handled"}
