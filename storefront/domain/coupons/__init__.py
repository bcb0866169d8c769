"""Coupons domain - coupon validation against subscription plans"""

from .router import router

__all__ = ["router"]
