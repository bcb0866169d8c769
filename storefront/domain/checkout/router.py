"""Checkout router - appointment payments, cart checkout and order lookups"""

import logging
from typing import Optional

import stripe
from fastapi import APIRouter, Depends, HTTPException, Query
from fastapi.responses import JSONResponse
from sqlalchemy.orm import Session

from ...auth import CurrentUser, get_current_user, get_optional_user
from ...database import get_db
from .schemas import AppointmentCheckoutRequest, OrderRequest
from .service import CheckoutService

logger = logging.getLogger(__name__)

router = APIRouter(tags=["Checkout"])


def get_checkout_service(db: Session = Depends(get_db)) -> CheckoutService:
    """Dependency injection for CheckoutService"""
    return CheckoutService(db)


def _error(status_code: int, message: str) -> JSONResponse:
    return JSONResponse(status_code=status_code, content={"success": False, "error": message})


async def _run(action, failure_message: str):
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


@router.post("/stripe/appointments")
async def create_appointment_checkout(
    data: AppointmentCheckoutRequest,
    current_user: CurrentUser = Depends(get_current_user),
    service: CheckoutService = Depends(get_checkout_service),
):
    """Pay for a one-off telehealth appointment"""
    return await _run(service.create_appointment_checkout(current_user, data), "Failed to create appointment checkout")


@router.post("/stripe/checkout")
async def create_cart_checkout(
    data: OrderRequest,
    current_user: Optional[CurrentUser] = Depends(get_optional_user),
    service: CheckoutService = Depends(get_checkout_service),
):
    """Card checkout for the shop cart; guests are allowed"""
    return await _run(service.create_cart_checkout(current_user, data), "Failed to create checkout session")


@router.post("/orders", status_code=201)
async def create_order(
    data: OrderRequest,
    current_user: Optional[CurrentUser] = Depends(get_optional_user),
    service: CheckoutService = Depends(get_checkout_service),
):
    return await _run(service.create_order(current_user, data), "Failed to create order")


@router.get("/orders/by-session")
async def get_order_by_session(
    sessionId: Optional[str] = Query(None),
    service: CheckoutService = Depends(get_checkout_service),
):
    """Resolve the order behind a completed checkout session"""
    return await _run(service.get_order_by_session(sessionId), "Failed to look up order")
