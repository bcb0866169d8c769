"""Checkout repository - Database operations for pending orders and appointments"""

from typing import Optional

from sqlalchemy.orm import Session

from ...models import Order, UserAppointment, UserSubscription
from ..subscriptions.utils import ACTIVE_STATUSES


class CheckoutRepository:
    """Repository for rows created before a Stripe checkout completes"""

    @staticmethod
    def create_order(db: Session, **fields) -> Order:
        order = Order(**fields)
        db.add(order)
        db.commit()
        db.refresh(order)
        return order

    @staticmethod
    def get_order_by_session_id(db: Session, session_id: str) -> Optional[Order]:
        return (
            db.query(Order)
            .filter(Order.stripe_session_id == session_id, Order.is_deleted.is_(False))
            .first()
        )

    @staticmethod
    def create_appointment(db: Session, **fields) -> UserAppointment:
        appointment = UserAppointment(**fields)
        db.add(appointment)
        db.commit()
        db.refresh(appointment)
        return appointment

    @staticmethod
    def get_active_subscription(db: Session, user_id: str, subscription_id: str) -> Optional[UserSubscription]:
        return (
            db.query(UserSubscription)
            .filter(
                UserSubscription.id == subscription_id,
                UserSubscription.user_id == user_id,
                UserSubscription.is_active.is_(True),
                UserSubscription.status.in_(ACTIVE_STATUSES),
                UserSubscription.is_deleted.is_(False),
            )
            .first()
        )

    @staticmethod
    def update(db: Session, instance, **fields):
        for key, value in fields.items():
            setattr(instance, key, value)
        db.commit()
        db.refresh(instance)
        return instance
