"""Subscriptions repository - Database operations for subscriptions, appointments and orders"""

from typing import Optional

from sqlalchemy import or_
from sqlalchemy.orm import Session

from ...models import Order, UserAppointment, UserSubscription


class SubscriptionRepository:
    """Repository for subscription, appointment and order writes driven by billing events"""

    # ========================================================================
    # Subscriptions
    # ========================================================================

    @staticmethod
    def list_for_user(db: Session, user_id: str) -> list[UserSubscription]:
        return (
            db.query(UserSubscription)
            .filter(UserSubscription.user_id == user_id, UserSubscription.is_deleted.is_(False))
            .order_by(UserSubscription.created_at.desc())
            .all()
        )

    @staticmethod
    def get_by_id(db: Session, subscription_id: str) -> Optional[UserSubscription]:
        return db.query(UserSubscription).filter(UserSubscription.id == subscription_id).first()

    @staticmethod
    def get_by_session_id(db: Session, session_id: str) -> Optional[UserSubscription]:
        return db.query(UserSubscription).filter(UserSubscription.stripe_session_id == session_id).first()

    @staticmethod
    def get_by_stripe_subscription_id(db: Session, stripe_subscription_id: str) -> Optional[UserSubscription]:
        return (
            db.query(UserSubscription)
            .filter(UserSubscription.stripe_subscription_id == stripe_subscription_id)
            .first()
        )

    @staticmethod
    def get_by_id_or_stripe_id(db: Session, subscription_id: str) -> Optional[UserSubscription]:
        """Accepts either our row id or the Stripe subscription id"""
        return (
            db.query(UserSubscription)
            .filter(
                or_(
                    UserSubscription.id == subscription_id,
                    UserSubscription.stripe_subscription_id == subscription_id,
                ),
                UserSubscription.is_deleted.is_(False),
            )
            .first()
        )

    @staticmethod
    def find_for_status_sync(
        db: Session, user_id: str, session_id: Optional[str] = None, subscription_id: Optional[str] = None
    ) -> list[UserSubscription]:
        query = db.query(UserSubscription).filter(
            UserSubscription.user_id == user_id, UserSubscription.is_deleted.is_(False)
        )
        if session_id:
            query = query.filter(UserSubscription.stripe_session_id == session_id)
        if subscription_id:
            query = query.filter(UserSubscription.id == subscription_id)
        return query.order_by(UserSubscription.created_at.desc()).all()

    @staticmethod
    def create(db: Session, **fields) -> UserSubscription:
        subscription = UserSubscription(**fields)
        db.add(subscription)
        db.commit()
        db.refresh(subscription)
        return subscription

    @staticmethod
    def get_latest_for_user(db: Session, user_id: str) -> Optional[UserSubscription]:
        return (
            db.query(UserSubscription)
            .filter(UserSubscription.user_id == user_id)
            .order_by(UserSubscription.created_at.desc())
            .first()
        )

    # ========================================================================
    # Appointments and orders
    # ========================================================================

    @staticmethod
    def get_appointment_by_session_id(db: Session, session_id: str) -> Optional[UserAppointment]:
        return db.query(UserAppointment).filter(UserAppointment.stripe_session_id == session_id).first()

    @staticmethod
    def get_order_by_id(db: Session, order_id: str) -> Optional[Order]:
        return db.query(Order).filter(Order.id == order_id).first()

    @staticmethod
    def update(db: Session, instance, **fields):
        """Set attributes on any model instance and commit"""
        for key, value in fields.items():
            setattr(instance, key, value)
        db.commit()
        db.refresh(instance)
        return instance
