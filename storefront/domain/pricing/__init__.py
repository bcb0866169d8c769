"""Pricing domain - plan price math and CMS/Stripe price sync"""

from .router import public_router, router

__all__ = ["router", "public_router"]
