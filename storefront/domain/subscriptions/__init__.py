"""Subscriptions domain - checkout, subscription lifecycle and Stripe webhooks"""

from .router import admin_router, checkout_router, router, webhooks_router

__all__ = ["router", "checkout_router", "admin_router", "webhooks_router"]
