"""Coupon domain schemas - Pydantic models for validation"""

from typing import Optional

from pydantic import BaseModel


class CouponValidateRequest(BaseModel):
    """Schema for validating a coupon against a subscription plan"""

    code: Optional[str] = None
    subscriptionId: Optional[str] = None
    variantKey: Optional[str] = None


class CouponValidateResponse(BaseModel):
    """Successful validation; ``coupon`` carries the CMS ``_id`` key as-is"""

    success: bool = True
    isValid: bool = True
    coupon: dict
    originalPrice: float
    discountAmount: float
    discountedPrice: float
