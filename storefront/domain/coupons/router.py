"""Coupon router - FastAPI endpoints for coupon validation"""

import logging

from fastapi import APIRouter, Depends, HTTPException
from fastapi.responses import JSONResponse

from .schemas import CouponValidateRequest
from .service import CouponService

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/coupons", tags=["Coupons"])


def get_coupon_service() -> CouponService:
    """Dependency injection for CouponService"""
    return CouponService()


def _error(status_code: int, message: str) -> JSONResponse:
    return JSONResponse(
        status_code=status_code,
        content={"success": False, "isValid": False, "error": message},
    )


@router.post("/validate")
async def validate_coupon(
    data: CouponValidateRequest,
    service: CouponService = Depends(get_coupon_service),
):
    """Validate a coupon code against a subscription plan"""
    try:
        return await service.validate(data)
    except HTTPException as e:
        logger.warning(f"⚠️ Coupon rejected: {e.detail}")
        return _error(e.status_code, e.detail)
    except Exception as e:
        logger.error(f"❌ Error validating coupon: {e}")
        return _error(500, "Failed to validate coupon")
