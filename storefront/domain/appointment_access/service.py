"""Appointment access service - Time-boxed access to the telehealth widget"""

import logging
import math
from typing import Optional

from fastapi import HTTPException
from sqlalchemy.orm import Session

from ...auth import CurrentUser
from ...models import UserSubscription
from .repository import AppointmentAccessRepository
from .schemas import (
    AccessEligibilityResponse,
    AccessListResponse,
    AppointmentAccessResponse,
    Pagination,
    ResetAccessRequest,
    UpdateAppointmentTimeRequest,
    UserAccessInfo,
)
from .utils import (
    DEFAULT_ACCESS_DURATION_SECONDS,
    ceil_seconds,
    is_valid_duration,
    minutes_label,
    remaining_seconds,
    to_naive_utc,
    utc_now,
)

logger = logging.getLogger(__name__)

DURATION_ERROR = "Duration must be between 60 seconds (1 minute) and 7200 seconds (2 hours)"


class AppointmentAccessService:
    """Service layer for the appointment access window"""

    def __init__(self, db: Session):
        self.db = db
        self.repo = AppointmentAccessRepository()

    def _find_subscription(self, user_id: str, subscription_id: Optional[str]) -> UserSubscription:
        subscription = self.repo.get_active_subscription(self.db, user_id, subscription_id)
        if not subscription:
            logger.warning(f"⚠️ No active subscription for {user_id}, trying status-only lookup")
            subscription = self.repo.get_any_active_status_subscription(self.db, user_id)
        if not subscription:
            logger.warning(f"🚫 No valid subscription found for user: {user_id}")
            raise HTTPException(status_code=403, detail="No active subscription found")
        return subscription

    def check_and_record_access(
        self, user: CurrentUser, subscription_id: Optional[str] = None
    ) -> AppointmentAccessResponse:
        """Open the access window on first use, then report what is left of it"""
        subscription = self._find_subscription(user.id, subscription_id)
        duration = subscription.appointment_access_duration or DEFAULT_ACCESS_DURATION_SECONDS

        if subscription.appointment_access_expired:
            logger.info(f"⏰ Access already expired for subscription: {subscription.id}")
            return AppointmentAccessResponse(
                hasAccess=False,
                accessExpired=True,
                subscriptionId=subscription.id,
                message="Your appointment access has expired. Please contact support.",
            )

        if subscription.appointment_accessed_at is None:
            if self.repo.stamp_first_access(self.db, subscription.id, utc_now()):
                logger.info(f"✅ First access recorded for {subscription.id}: {duration}s window")
                return AppointmentAccessResponse(
                    hasAccess=True,
                    isFirstTime=True,
                    timeRemaining=duration,
                    subscriptionId=subscription.id,
                    message=f"Welcome! You have {minutes_label(duration)} minutes to complete your appointment.",
                )
            # A concurrent request opened the window first
            self.db.refresh(subscription)

        remaining = remaining_seconds(subscription.appointment_accessed_at, duration)

        if remaining <= 0:
            logger.info(f"🚫 Time expired for subscription: {subscription.id}")
            try:
                self.repo.mark_expired(self.db, subscription)
            except Exception as e:
                self.db.rollback()
                logger.error(f"⚠️ Failed to mark {subscription.id} as expired: {e}")
            return AppointmentAccessResponse(
                hasAccess=False,
                accessExpired=True,
                subscriptionId=subscription.id,
                message="Your appointment access time has expired. Please contact support for assistance.",
            )

        seconds_left = ceil_seconds(remaining)
        return AppointmentAccessResponse(
            hasAccess=True,
            timeRemaining=seconds_left,
            subscriptionId=subscription.id,
            message=f"You have {math.ceil(seconds_left / 60)} minutes remaining.",
        )

    def get_access_status(self, user: CurrentUser):
        """Report the window without writing anything"""
        subscription = self.repo.get_active_subscription(self.db, user.id)
        if not subscription:
            return {"success": False, "error": "No valid subscription"}

        duration = subscription.appointment_access_duration or DEFAULT_ACCESS_DURATION_SECONDS

        if subscription.appointment_access_expired:
            return AppointmentAccessResponse(
                hasAccess=False, accessExpired=True, subscriptionId=subscription.id
            )

        if subscription.appointment_accessed_at is None:
            return AppointmentAccessResponse(
                hasAccess=True,
                isFirstTime=True,
                timeRemaining=duration,
                subscriptionId=subscription.id,
            )

        remaining = remaining_seconds(subscription.appointment_accessed_at, duration)
        return AppointmentAccessResponse(
            hasAccess=remaining > 0,
            timeRemaining=max(0, ceil_seconds(remaining)),
            accessExpired=remaining <= 0,
            subscriptionId=subscription.id,
        )

    def get_eligibility(self, user: CurrentUser) -> AccessEligibilityResponse:
        """Paid one-off appointment or an active subscription that includes appointments"""
        if self.repo.has_paid_appointment(self.db, user.id):
            return AccessEligibilityResponse(hasAccess=True, reason="appointment")
        if self.repo.has_subscription_with_access(self.db, user.id):
            return AccessEligibilityResponse(hasAccess=True, reason="subscription")
        return AccessEligibilityResponse(hasAccess=False, reason=None)

    # ========================================================================
    # Admin
    # ========================================================================

    @staticmethod
    def _describe(subscription: UserSubscription) -> UserAccessInfo:
        duration = subscription.appointment_access_duration or DEFAULT_ACCESS_DURATION_SECONDS
        time_remaining = None

        if subscription.appointment_accessed_at is None:
            access_status = "unused"
        elif subscription.appointment_access_expired:
            access_status = "expired"
        else:
            time_remaining = max(0, math.floor(remaining_seconds(subscription.appointment_accessed_at, duration)))
            access_status = "active" if time_remaining > 0 else "expired"

        return UserAccessInfo(
            subscriptionId=subscription.id,
            userId=subscription.user_id,
            userEmail=subscription.user_email,
            planName=subscription.plan_name,
            subscriptionStatus=subscription.status,
            appointmentAccessedAt=subscription.appointment_accessed_at,
            appointmentAccessExpired=bool(subscription.appointment_access_expired),
            appointmentAccessDuration=duration,
            timeRemaining=time_remaining,
            accessStatus=access_status,
        )

    def list_access(self, page: int, limit: int, status: str) -> AccessListResponse:
        page = max(1, page)
        limit = max(1, min(limit, 100))
        if status not in ("all", "expired", "active", "unused"):
            status = "all"

        rows, total = self.repo.list_subscriptions(self.db, status, (page - 1) * limit, limit)
        return AccessListResponse(
            users=[self._describe(row) for row in rows],
            pagination=Pagination(
                currentPage=page,
                totalPages=math.ceil(total / limit),
                totalUsers=total,
                limit=limit,
            ),
        )

    def reset_access(self, data: ResetAccessRequest) -> dict:
        if not data.userId:
            raise HTTPException(status_code=400, detail="User ID is required")
        if not is_valid_duration(data.newDuration):
            raise HTTPException(status_code=400, detail=DURATION_ERROR)

        subscription = self.repo.get_any_active_status_subscription(self.db, data.userId)
        if not subscription:
            raise HTTPException(status_code=404, detail="No active subscription found for this user")

        self.repo.reset_access(self.db, subscription, data.newDuration)
        logger.info(f"✅ Appointment access reset for {data.userId} ({data.newDuration}s)")
        return {
            "success": True,
            "message": f"Appointment access reset for user {subscription.user_email or data.userId}",
            "data": {
                "userId": data.userId,
                "subscriptionId": subscription.id,
                "resetAt": utc_now().isoformat(),
                "newDuration": data.newDuration,
            },
        }

    def update_appointment_time(self, data: UpdateAppointmentTimeRequest) -> dict:
        if not data.subscriptionId:
            raise HTTPException(status_code=400, detail="Subscription ID is required")
        if data.duration is not None and not is_valid_duration(data.duration):
            raise HTTPException(status_code=400, detail=DURATION_ERROR)

        subscription = self.repo.get_subscription_by_id(self.db, data.subscriptionId)
        if not subscription:
            raise HTTPException(status_code=404, detail="Subscription not found")

        updates = {}
        if data.clearAccessedAt:
            updates["appointment_accessed_at"] = None
        elif data.accessedAt is not None:
            updates["appointment_accessed_at"] = to_naive_utc(data.accessedAt)
        if data.expired is not None:
            updates["appointment_access_expired"] = data.expired
        if data.duration is not None:
            updates["appointment_access_duration"] = data.duration

        subscription = self.repo.update_access_fields(self.db, subscription, **updates)
        logger.info(f"✅ Admin updated appointment time for {subscription.id}: {list(updates.keys())}")
        return {
            "success": True,
            "message": "Appointment time updated successfully",
            "data": {
                "subscriptionId": subscription.id,
                "appointmentAccessedAt": subscription.appointment_accessed_at.isoformat()
                if subscription.appointment_accessed_at
                else None,
                "appointmentAccessExpired": subscription.appointment_access_expired,
                "appointmentAccessDuration": subscription.appointment_access_duration,
            },
        }
