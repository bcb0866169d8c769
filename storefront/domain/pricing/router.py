"""Pricing router - admin price comparison and Stripe sync"""

import logging

import stripe
from fastapi import APIRouter, Depends, HTTPException
from fastapi.responses import JSONResponse

from ...auth import CurrentUser, require_admin
from .schemas import SyncPriceRequest
from .service import PricingService

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/admin", tags=["Admin"])


def get_pricing_service() -> PricingService:
    """Dependency injection for PricingService"""
    return PricingService()


@router.get("/price-comparison")
async def get_price_comparison(
    _admin: CurrentUser = Depends(require_admin),
    service: PricingService = Depends(get_pricing_service),
):
    """CMS vs Stripe price for every active plan and variant"""
    try:
        return await service.compare_prices()
    except Exception as e:
        logger.error(f"❌ Error in price comparison: {e}")
        return JSONResponse(
            status_code=500,
            content={"success": False, "rows": [], "error": str(e) or "Unknown error occurred"},
        )


@router.post("/sync-price")
async def sync_price(
    data: SyncPriceRequest,
    _admin: CurrentUser = Depends(require_admin),
    service: PricingService = Depends(get_pricing_service),
):
    """Create or replace the Stripe price of one plan or variant"""
    try:
        return await service.sync_price(data)
    except HTTPException as e:
        return JSONResponse(status_code=e.status_code, content={"success": False, "message": e.detail})
    except stripe.StripeError as e:
        logger.error(f"❌ Stripe error syncing price: {e}")
        return JSONResponse(
            status_code=500, content={"success": False, "message": "Stripe API error", "error": str(e)}
        )
    except Exception as e:
        logger.error(f"❌ Error syncing price: {e}")
        return JSONResponse(
            status_code=500, content={"success": False, "message": "Failed to sync price", "error": str(e)}
        )


# ============================================================================
# Public
# ============================================================================

public_router = APIRouter(prefix="/pricing", tags=["Pricing"])


@public_router.get("/{subscription_id}")
async def get_plan_pricing(subscription_id: str, service: PricingService = Depends(get_pricing_service)):
    """Monthly equivalents and the best-value option for one plan"""
    try:
        return await service.plan_pricing(subscription_id)
    except HTTPException as e:
        return JSONResponse(status_code=e.status_code, content={"success": False, "error": e.detail})
    except Exception as e:
        logger.error(f"❌ Error pricing plan {subscription_id}: {e}")
        return JSONResponse(status_code=500, content={"success": False, "error": "Failed to load plan pricing"})
