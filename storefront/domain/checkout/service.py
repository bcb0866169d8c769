"""Checkout service - Stripe payment sessions for appointments and cart orders"""

import logging
from typing import Optional

import stripe
from fastapi import HTTPException
from sqlalchemy.orm import Session

from ... import config
from ...auth import CurrentUser
from ...models import Order
from ...services.sanity_service import sanity_service
from ...services.stripe_service import stripe_service
from ...shared.validators import to_number
from ..pricing.utils import is_valid_price
from .repository import CheckoutRepository
from .schemas import AppointmentCheckoutRequest, OrderRequest
from .utils import SHIPPING_COST, cart_subtotal, is_uuid, missing_fields, to_cents

logger = logging.getLogger(__name__)

PAYMENT_PENDING_MESSAGE = (
    "Payment confirmed, but order details are still being processed. Please check your email for confirmation."
)


def _as_int(value) -> Optional[int]:
    number = to_number(value)
    return int(number) if number is not None else None


class CheckoutService:
    """Creates pending rows and the Stripe sessions that pay for them"""

    def __init__(self, db: Session):
        self.db = db
        self.repo = CheckoutRepository()
        self.cms = sanity_service
        self.stripe = stripe_service

    @property
    def base_url(self) -> str:
        return config.FRONTEND_URL.rstrip("/")

    # ========================================================================
    # Appointments
    # ========================================================================

    async def create_appointment_checkout(self, user: CurrentUser, data: AppointmentCheckoutRequest) -> dict:
        if not data.appointmentId or not user.email:
            raise HTTPException(status_code=400, detail="Missing required fields")
        if data.subscriptionId and not is_uuid(data.subscriptionId):
            raise HTTPException(
                status_code=400,
                detail=f"Invalid subscription ID format: {data.subscriptionId} is not a valid UUID",
            )

        appointment = await self.cms.get_appointment(data.appointmentId)
        if not appointment:
            raise HTTPException(status_code=404, detail="Appointment type not found")

        if appointment.get("requiresSubscription") and not data.subscriptionId:
            raise HTTPException(status_code=400, detail="This appointment requires an active subscription")

        subscription = None
        if data.subscriptionId:
            subscription = self.repo.get_active_subscription(self.db, user.id, data.subscriptionId)
            if not subscription:
                raise HTTPException(status_code=400, detail="Valid active subscription not found")

        price = to_number(appointment.get("price"))
        if not is_valid_price(price):
            raise HTTPException(status_code=400, detail="Invalid appointment price")

        row = self.repo.create_appointment(
            self.db,
            user_id=user.id,
            user_email=user.email,
            customer_name=data.userName or user.email.split("@")[0],
            treatment_name=appointment.get("title"),
            appointment_type_id=appointment["_id"],
            status="pending",
            payment_status="pending",
            subscription_id=subscription.sanity_id if subscription else None,
            is_from_subscription=subscription is not None,
            qualiphy_exam_id=_as_int(appointment.get("qualiphyExamId")),
            price=price,
            duration=_as_int(appointment.get("duration")),
        )

        session = await self.stripe.create_checkout_session(
            mode="payment",
            line_items=[
                {
                    "price_data": {
                        "currency": "usd",
                        "product_data": {
                            "name": appointment.get("title") or "Telehealth Consultation",
                            "description": appointment.get("description") or "Telehealth Consultation",
                        },
                        "unit_amount": to_cents(price),
                    },
                    "quantity": 1,
                }
            ],
            success_url=f"{self.base_url}/account/appointments?success=true&appointment_id={row.id}",
            cancel_url=f"{self.base_url}/appointments?cancelled=true",
            metadata={
                "appointmentType": "oneTime",
                "appointmentId": row.id,
                "userId": user.id,
                "userEmail": user.email,
                "fromSubscription": "true" if subscription else "false",
                "userSubscriptionId": subscription.id if subscription else "",
            },
            customer_email=user.email,
        )
        self.repo.update(self.db, row, stripe_session_id=session["id"])

        logger.info(f"✅ Appointment checkout {session['id']} for {row.id} ({appointment.get('title')})")
        return {"success": True, "appointmentId": row.id, "sessionId": session["id"], "url": session.get("url")}

    # ========================================================================
    # Orders
    # ========================================================================

    @staticmethod
    def _validate_order(data: OrderRequest, card_only: bool = False) -> None:
        missing = missing_fields(data)
        if missing:
            raise HTTPException(status_code=400, detail=f"Missing required fields: {', '.join(missing)}")
        if not data.cart:
            raise HTTPException(status_code=400, detail="Cart cannot be empty")
        for item in data.cart:
            if item.quantity < 1 or not is_valid_price(item.price):
                raise HTTPException(status_code=400, detail=f"Invalid cart item: {item.name or item.productId}")
        if card_only and data.paymentMethod != "card":
            raise HTTPException(status_code=400, detail="This endpoint only supports card payments")

    async def _create_order_records(self, user: Optional[CurrentUser], data: OrderRequest) -> tuple[Order, dict]:
        """CMS order document first, then the database row that points at it"""
        subtotal = cart_subtotal(data.cart)
        total = round(subtotal + SHIPPING_COST, 2)
        customer_name = f"{data.firstName} {data.lastName}".strip()
        items = [item.model_dump(exclude_none=True) for item in data.cart]
        address = {
            key: value
            for key, value in {
                "address": data.address,
                "apartment": data.apartment,
                "city": data.city,
                "country": data.country,
                "postalCode": data.postalCode,
            }.items()
            if value
        }

        document = {
            "_type": "order",
            "email": data.email,
            "customerName": customer_name,
            **address,
            "phone": data.phone,
            "paymentMethod": data.paymentMethod,
            "shippingMethod": data.shippingMethod,
            "cart": items,
            "status": "pending",
            "subtotal": subtotal,
            "shippingCost": SHIPPING_COST,
            "total": total,
        }
        created = await self.cms.create({key: value for key, value in document.items() if value is not None})

        order = self.repo.create_order(
            self.db,
            user_id=user.id if user else None,
            customer_email=data.email,
            customer_name=customer_name,
            phone=data.phone,
            sanity_id=created.get("_id"),
            status="pending",
            payment_status="pending",
            payment_method=data.paymentMethod,
            shipping_address=address,
            shipping_method=data.shippingMethod,
            items=items,
            subtotal=subtotal,
            shipping_cost=SHIPPING_COST,
            total=total,
        )
        logger.info(f"✅ Created order {order.id} (CMS {order.sanity_id}) total ${total}")
        return order, created

    async def create_order(self, user: Optional[CurrentUser], data: OrderRequest) -> dict:
        self._validate_order(data)
        order, created = await self._create_order_records(user, data)
        created_at = created.get("_createdAt") or (order.created_at.isoformat() if order.created_at else None)
        return {"success": True, "orderId": order.id, "sanityId": order.sanity_id, "createdAt": created_at}

    async def create_cart_checkout(self, user: Optional[CurrentUser], data: OrderRequest) -> dict:
        self._validate_order(data, card_only=True)
        order, _ = await self._create_order_records(user, data)

        line_items = []
        for item in data.cart:
            product_data = {"name": item.name or "Product"}
            if item.image:
                product_data["images"] = [item.image]
            line_items.append(
                {
                    "price_data": {"currency": "usd", "product_data": product_data, "unit_amount": to_cents(item.price)},
                    "quantity": item.quantity,
                }
            )
        if SHIPPING_COST > 0:
            line_items.append(
                {
                    "price_data": {
                        "currency": "usd",
                        "product_data": {"name": "Shipping"},
                        "unit_amount": to_cents(SHIPPING_COST),
                    },
                    "quantity": 1,
                }
            )

        metadata = {"orderId": order.id, "sanityId": order.sanity_id or ""}
        session = await self.stripe.create_checkout_session(
            mode="payment",
            line_items=line_items,
            success_url=f"{self.base_url}/checkout/order-confirmation?session_id={{CHECKOUT_SESSION_ID}}",
            cancel_url=f"{self.base_url}/checkout/cancel",
            metadata=metadata,
            payment_intent_data={"metadata": metadata},
            customer_email=data.email,
        )
        self.repo.update(self.db, order, stripe_session_id=session["id"])

        return {"success": True, "url": session.get("url"), "sessionId": session["id"], "orderId": order.id}

    async def get_order_by_session(self, session_id: Optional[str]) -> dict:
        if not session_id:
            raise HTTPException(status_code=400, detail="Session ID is required")

        order = self.repo.get_order_by_session_id(self.db, session_id)
        if order:
            return {
                "success": True,
                "orderId": order.id,
                "sanityId": order.sanity_id,
                "status": order.status,
                "paymentStatus": order.payment_status,
            }

        try:
            session = await self.stripe.retrieve_checkout_session(session_id)
        except stripe.InvalidRequestError as e:
            if e.code == "resource_missing":
                raise HTTPException(status_code=404, detail="Checkout session not found")
            raise

        if session.get("payment_status") != "paid":
            raise HTTPException(status_code=400, detail="Payment has not been completed for this session")
        return {"success": True, "orderId": None, "message": PAYMENT_PENDING_MESSAGE}
