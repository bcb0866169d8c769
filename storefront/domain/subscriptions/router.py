"""Subscriptions router - checkout, user lifecycle actions, admin tools and the Stripe webhook"""

import logging

import stripe
from fastapi import APIRouter, Depends, HTTPException, Request
from fastapi.responses import JSONResponse
from sqlalchemy.orm import Session

from ... import config
from ...auth import CurrentUser, get_current_user, require_admin
from ...database import get_db
from ...services.stripe_service import stripe_service
from .purchase_service import SubscriptionPurchaseService
from .schemas import (
    AdminCancelRequest,
    CreateSubscriptionRequest,
    StatusSyncRequest,
    SubscriptionIdRequest,
    UpdateStatusRequest,
    UserSubscriptionsResponse,
)
from .service import SubscriptionService
from .webhook_service import StripeWebhookService

logger = logging.getLogger(__name__)

router = APIRouter(tags=["Subscriptions"])
checkout_router = APIRouter(prefix="/stripe/subscriptions", tags=["Subscriptions"])
admin_router = APIRouter(prefix="/admin/subscriptions", tags=["Admin"])
webhooks_router = APIRouter(prefix="/stripe", tags=["Webhooks"])


def get_subscription_service(db: Session = Depends(get_db)) -> SubscriptionService:
    """Dependency injection for SubscriptionService"""
    return SubscriptionService(db)


def get_purchase_service(db: Session = Depends(get_db)) -> SubscriptionPurchaseService:
    """Dependency injection for SubscriptionPurchaseService"""
    return SubscriptionPurchaseService(db)


def get_webhook_service(db: Session = Depends(get_db)) -> StripeWebhookService:
    """Dependency injection for StripeWebhookService"""
    return StripeWebhookService(db)


def _error(status_code: int, message: str) -> JSONResponse:
    return JSONResponse(status_code=status_code, content={"success": False, "error": message})


async def _run(action, failure_message: str):
    """Await a service call and turn failures into the error envelope"""
    try:
        return await action
    except HTTPException as e:
        return _error(e.status_code, e.detail)
    except stripe.StripeError as e:
        logger.error(f"❌ Stripe error: {e}")
        return _error(500, failure_message)
    except Exception as e:
        logger.error(f"❌ {failure_message}: {e}")
        return _error(500, failure_message)


# ============================================================================
# USER ENDPOINTS
# ============================================================================


@router.get("/user-subscriptions", response_model=UserSubscriptionsResponse)
async def list_user_subscriptions(
    current_user: CurrentUser = Depends(get_current_user),
    service: SubscriptionService = Depends(get_subscription_service),
):
    """The caller's subscriptions, newest first"""
    return service.list_user_subscriptions(current_user)


@checkout_router.post("")
async def create_subscription_checkout(
    data: CreateSubscriptionRequest,
    current_user: CurrentUser = Depends(get_current_user),
    service: SubscriptionPurchaseService = Depends(get_purchase_service),
):
    """Open a Stripe checkout session for a plan or one of its variants"""
    return await _run(service.create_checkout(current_user, data), "Failed to create subscription checkout")


@checkout_router.post("/cancel")
async def cancel_subscription(
    data: SubscriptionIdRequest,
    current_user: CurrentUser = Depends(get_current_user),
    service: SubscriptionService = Depends(get_subscription_service),
):
    return await _run(service.cancel(current_user, data), "Failed to cancel subscription")


@checkout_router.post("/reactivate")
async def reactivate_subscription(
    data: SubscriptionIdRequest,
    current_user: CurrentUser = Depends(get_current_user),
    service: SubscriptionService = Depends(get_subscription_service),
):
    return await _run(service.reactivate(current_user, data), "Failed to reactivate subscription")


@checkout_router.post("/status")
async def sync_subscription_status(
    data: StatusSyncRequest,
    current_user: CurrentUser = Depends(get_current_user),
    service: SubscriptionService = Depends(get_subscription_service),
):
    """Activate pending rows when the checkout webhook never arrived"""
    return await _run(service.sync_status(current_user, data), "Failed to update subscription status")


# ============================================================================
# ADMIN ENDPOINTS
# ============================================================================


@admin_router.post("/update-status")
async def update_subscription_status(
    data: UpdateStatusRequest,
    _admin: CurrentUser = Depends(require_admin),
    service: SubscriptionService = Depends(get_subscription_service),
):
    """Force a subscription status from the admin dashboard"""
    return await _run(service.update_status(data), "Failed to update subscription status")


@admin_router.post("/cancel")
async def admin_cancel_subscription(
    data: AdminCancelRequest,
    _admin: CurrentUser = Depends(require_admin),
    service: SubscriptionService = Depends(get_subscription_service),
):
    """Cancel now or at period end on behalf of a customer"""
    return await _run(service.admin_cancel(data), "Failed to cancel subscription")


# ============================================================================
# STRIPE WEBHOOK
# ============================================================================


@webhooks_router.post("/webhook")
async def stripe_webhook(request: Request, service: StripeWebhookService = Depends(get_webhook_service)):
    """
    Verify the Stripe-Signature header and dispatch the event.

    Signature and payload problems answer 400, handler lookups 404/400 and
    unexpected handler failures 500 so Stripe retries them.
    """
    payload = await request.body()
    signature = request.headers.get("stripe-signature")

    if not signature:
        return _error(400, "No Stripe signature found")
    if not config.STRIPE_WEBHOOK_SECRET:
        logger.error("❌ STRIPE_WEBHOOK_SECRET not configured")
        return _error(500, "Stripe webhook secret not configured")

    try:
        event = stripe_service.construct_event(payload, signature, config.STRIPE_WEBHOOK_SECRET)
    except stripe.SignatureVerificationError as e:
        logger.warning(f"🚫 Stripe webhook rejected: {e}")
        return _error(400, str(e))
    except ValueError:
        return _error(400, "Invalid JSON payload")

    try:
        return await service.handle_event(event)
    except HTTPException as e:
        return _error(e.status_code, e.detail)
    except Exception as e:
        logger.error(f"❌ Error processing Stripe event {event.get('type')}: {e}")
        return _error(500, str(e) or "Webhook handler failed")
