"""Appointment access repository - Database operations on subscription access windows"""

from datetime import datetime
from typing import Optional

from sqlalchemy import func
from sqlalchemy.orm import Session

from ...models import UserAppointment, UserSubscription

ACCESS_STATUSES = ("active", "trialing", "cancelling", "past_due")
GUARD_SUBSCRIPTION_STATUSES = ("active", "trialing", "cancelling")
GUARD_APPOINTMENT_STATUSES = ("scheduled", "confirmed", "pending")


class AppointmentAccessRepository:
    """Repository for appointment access queries"""

    @staticmethod
    def get_active_subscription(
        db: Session, user_id: str, subscription_id: Optional[str] = None
    ) -> Optional[UserSubscription]:
        """Newest active, non-deleted subscription for a user"""
        query = db.query(UserSubscription).filter(
            UserSubscription.user_id == user_id,
            UserSubscription.is_active.is_(True),
            UserSubscription.status.in_(ACCESS_STATUSES),
            UserSubscription.is_deleted.is_(False),
        )
        if subscription_id:
            query = query.filter(UserSubscription.id == subscription_id)
        return query.order_by(UserSubscription.created_at.desc()).first()

    @staticmethod
    def get_any_active_status_subscription(db: Session, user_id: str) -> Optional[UserSubscription]:
        """Fallback lookup: newest non-deleted subscription whose status is plain "active" """
        return (
            db.query(UserSubscription)
            .filter(
                UserSubscription.user_id == user_id,
                UserSubscription.status == "active",
                UserSubscription.is_deleted.is_(False),
            )
            .order_by(UserSubscription.created_at.desc())
            .first()
        )

    @staticmethod
    def stamp_first_access(db: Session, subscription_id: str, accessed_at: datetime) -> bool:
        """Record first access only while the column is still NULL; False if another request won"""
        updated = (
            db.query(UserSubscription)
            .filter(
                UserSubscription.id == subscription_id,
                UserSubscription.appointment_accessed_at.is_(None),
            )
            .update(
                {UserSubscription.appointment_accessed_at: accessed_at},
                synchronize_session=False,
            )
        )
        db.commit()
        return updated > 0

    @staticmethod
    def mark_expired(db: Session, subscription: UserSubscription) -> None:
        subscription.appointment_access_expired = True
        db.commit()

    @staticmethod
    def has_paid_appointment(db: Session, user_id: str) -> bool:
        return (
            db.query(UserAppointment.id)
            .filter(
                UserAppointment.user_id == user_id,
                UserAppointment.is_deleted.is_(False),
                UserAppointment.payment_status == "paid",
                UserAppointment.status.in_(GUARD_APPOINTMENT_STATUSES),
                UserAppointment.qualiphy_exam_status == "N/A",
            )
            .first()
            is not None
        )

    @staticmethod
    def has_subscription_with_access(db: Session, user_id: str) -> bool:
        return (
            db.query(UserSubscription.id)
            .filter(
                UserSubscription.user_id == user_id,
                UserSubscription.is_active.is_(True),
                UserSubscription.has_appointment_access.is_(True),
                UserSubscription.is_deleted.is_(False),
                UserSubscription.status.in_(GUARD_SUBSCRIPTION_STATUSES),
            )
            .first()
            is not None
        )

    # ========================================================================
    # Admin
    # ========================================================================

    @staticmethod
    def list_subscriptions(
        db: Session, status: str, offset: int, limit: int
    ) -> tuple[list[UserSubscription], int]:
        query = db.query(UserSubscription)

        if status == "expired":
            query = query.filter(UserSubscription.appointment_access_expired.is_(True))
        elif status == "active":
            query = query.filter(
                UserSubscription.appointment_accessed_at.isnot(None),
                UserSubscription.appointment_access_expired.is_(False),
            )
        elif status == "unused":
            query = query.filter(
                UserSubscription.appointment_accessed_at.is_(None),
                UserSubscription.appointment_access_expired.is_(False),
            )

        total = query.with_entities(func.count(UserSubscription.id)).scalar() or 0
        rows = (
            query.order_by(UserSubscription.updated_at.desc(), UserSubscription.created_at.desc())
            .offset(offset)
            .limit(limit)
            .all()
        )
        return rows, total

    @staticmethod
    def get_subscription_by_id(db: Session, subscription_id: str) -> Optional[UserSubscription]:
        return db.query(UserSubscription).filter(UserSubscription.id == subscription_id).first()

    @staticmethod
    def reset_access(db: Session, subscription: UserSubscription, duration: int) -> UserSubscription:
        subscription.appointment_accessed_at = None
        subscription.appointment_access_expired = False
        subscription.appointment_access_duration = duration
        db.commit()
        db.refresh(subscription)
        return subscription

    @staticmethod
    def update_access_fields(db: Session, subscription: UserSubscription, **updates) -> UserSubscription:
        for key, value in updates.items():
            setattr(subscription, key, value)
        db.commit()
        db.refresh(subscription)
        return subscription
