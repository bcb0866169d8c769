"""Subscription service - listing, cancellation, reactivation and admin status changes"""

import logging
from typing import Optional

import stripe
from fastapi import HTTPException
from sqlalchemy.orm import Session

from ...auth import CurrentUser, is_admin_email
from ...models import UserSubscription
from ...services.sanity_service import sanity_service
from ...services.stripe_service import stripe_service
from ..appointment_access.utils import utc_now
from .repository import SubscriptionRepository
from .schemas import (
    AdminCancelRequest,
    StatusSyncRequest,
    SubscriptionIdRequest,
    UpdateStatusRequest,
    UserSubscriptionResponse,
    UserSubscriptionsResponse,
)
from .utils import ADMIN_STATUSES, from_unix, is_active_status, period_end

logger = logging.getLogger(__name__)


def _iso(value) -> Optional[str]:
    return value.isoformat() if value else None


class SubscriptionService:
    """Service layer for user subscriptions"""

    def __init__(self, db: Session):
        self.db = db
        self.repo = SubscriptionRepository()
        self.cms = sanity_service
        self.stripe = stripe_service

    async def _mirror(self, document_id: Optional[str], fields: dict) -> bool:
        """Copy a change to the CMS document; failures are logged, never raised"""
        if not document_id:
            return False
        try:
            await self.cms.patch(document_id, fields)
            return True
        except Exception as e:
            logger.error(f"⚠️ Updated database but failed to update CMS for {document_id}: {e}")
            return False

    @staticmethod
    def _check_owner(user: CurrentUser, subscription: UserSubscription) -> None:
        if subscription.user_id != user.id and not is_admin_email(user.email):
            raise HTTPException(status_code=403, detail="Unauthorized to modify this subscription")

    def list_user_subscriptions(self, user: CurrentUser) -> UserSubscriptionsResponse:
        rows = self.repo.list_for_user(self.db, user.id)
        return UserSubscriptionsResponse(
            subscriptions=[UserSubscriptionResponse.model_validate(row) for row in rows]
        )

    # ========================================================================
    # Cancel / reactivate
    # ========================================================================

    async def _schedule_cancellation(self, stripe_subscription_id: str) -> dict:
        """cancel_at_period_end on Stripe; a subscription Stripe no longer knows is tolerated"""
        try:
            return await self.stripe.update_subscription(stripe_subscription_id, cancel_at_period_end=True)
        except stripe.InvalidRequestError as e:
            if e.code != "resource_missing":
                raise
            logger.warning(f"⚠️ Stripe subscription {stripe_subscription_id} not found, cancelling locally")
            return {}

    async def cancel(self, user: CurrentUser, data: SubscriptionIdRequest) -> dict:
        """Cancel at the end of the billing period; access is kept until then"""
        if not data.subscriptionId:
            raise HTTPException(status_code=400, detail="Subscription ID is required")

        subscription = self.repo.get_by_id_or_stripe_id(self.db, data.subscriptionId)
        if not subscription:
            raise HTTPException(status_code=404, detail="Subscription not found")
        self._check_owner(user, subscription)

        now = utc_now()
        if not subscription.stripe_subscription_id:
            self.repo.update(
                self.db,
                subscription,
                status="cancelled",
                is_active=False,
                cancellation_date=now,
                end_date=now,
            )
            await self._mirror(
                subscription.sanity_id,
                {"status": "cancelled", "isActive": False, "cancellationDate": now.isoformat(), "endDate": now.isoformat()},
            )
            logger.info(f"✅ Cancelled subscription {subscription.id} locally (no Stripe subscription)")
            return {
                "success": True,
                "message": "Subscription cancelled successfully (no Stripe subscription found)",
            }

        stripe_subscription = await self._schedule_cancellation(subscription.stripe_subscription_id)
        end_date = from_unix(period_end(stripe_subscription)) or subscription.end_date

        self.repo.update(
            self.db,
            subscription,
            status="cancelling",
            is_active=True,
            cancellation_date=now,
            end_date=end_date,
        )
        await self._mirror(
            subscription.sanity_id,
            {
                "status": "cancelling",
                "isActive": True,
                "cancellationDate": now.isoformat(),
                "endDate": _iso(end_date),
            },
        )
        logger.info(f"✅ Subscription {subscription.id} will cancel at {end_date}")
        return {
            "success": True,
            "message": "Subscription cancelled successfully. You'll maintain access until the end of your billing period.",
        }

    async def reactivate(self, user: CurrentUser, data: SubscriptionIdRequest) -> dict:
        if not data.subscriptionId:
            raise HTTPException(status_code=400, detail="Subscription ID is required")

        subscription = self.repo.get_by_stripe_subscription_id(self.db, data.subscriptionId)
        if not subscription or subscription.is_deleted:
            raise HTTPException(status_code=404, detail="Subscription not found")
        self._check_owner(user, subscription)

        if subscription.status != "cancelling":
            raise HTTPException(
                status_code=400, detail="Only subscriptions in 'cancelling' status can be reactivated"
            )

        await self.stripe.update_subscription(subscription.stripe_subscription_id, cancel_at_period_end=False)
        self.repo.update(self.db, subscription, status="active", is_active=True, cancellation_date=None)
        await self._mirror(subscription.sanity_id, {"status": "active", "isActive": True, "cancellationDate": None})

        logger.info(f"✅ Reactivated subscription {subscription.id}")
        return {
            "success": True,
            "message": "Subscription reactivated successfully",
            "data": {"id": subscription.id, "status": "active"},
        }

    async def sync_status(self, user: CurrentUser, data: StatusSyncRequest) -> dict:
        """Force matching pending rows to active (used when a webhook was missed)"""
        if not data.userId:
            raise HTTPException(status_code=400, detail="User ID is required")
        if data.userId != user.id and not is_admin_email(user.email):
            raise HTTPException(status_code=403, detail="Unauthorized to modify this subscription")

        rows = self.repo.find_for_status_sync(self.db, data.userId, data.sessionId, data.subscriptionId)
        if not rows:
            raise HTTPException(status_code=404, detail="No matching subscriptions found")

        results = []
        for subscription in rows:
            if subscription.status == "active" and subscription.is_active:
                results.append({"id": subscription.id, "status": "active", "message": "Already active"})
                continue

            self.repo.update(self.db, subscription, status="active", is_active=True)
            await self._mirror(subscription.sanity_id, {"status": "active", "isActive": True})
            results.append({"id": subscription.id, "status": "active", "message": "Status updated to active"})

        logger.info(f"✅ Status sync for {data.userId}: {len(results)} subscription(s)")
        return {"success": True, "results": results}

    # ========================================================================
    # Admin
    # ========================================================================

    async def admin_cancel(self, data: AdminCancelRequest) -> dict:
        if not data.subscriptionId:
            raise HTTPException(status_code=400, detail="Subscription ID is required")

        subscription = self.repo.get_by_id_or_stripe_id(self.db, data.subscriptionId)
        if not subscription:
            raise HTTPException(status_code=404, detail="Subscription not found")
        if not subscription.stripe_subscription_id:
            raise HTTPException(status_code=400, detail="No Stripe subscription found")

        now = utc_now()
        if data.cancelImmediately:
            await self.stripe.cancel_subscription(subscription.stripe_subscription_id)
            status, is_active, end_date = "cancelled", False, now
            message = "Subscription cancelled immediately"
        else:
            stripe_subscription = await self.stripe.update_subscription(
                subscription.stripe_subscription_id, cancel_at_period_end=True
            )
            status, is_active = "cancelling", True
            end_date = from_unix(period_end(stripe_subscription)) or subscription.end_date
            message = "Subscription will cancel at period end"

        self.repo.update(
            self.db,
            subscription,
            status=status,
            is_active=is_active,
            cancellation_date=now,
            end_date=end_date,
        )
        await self._mirror(
            subscription.sanity_id,
            {
                "status": status,
                "isActive": is_active,
                "cancellationDate": now.isoformat(),
                "endDate": _iso(end_date),
            },
        )
        logger.info(f"✅ Admin cancel for {subscription.id}: {status}")
        return {
            "success": True,
            "message": message,
            "data": {"id": subscription.id, "status": status, "isActive": is_active, "endDate": _iso(end_date)},
        }

    async def update_status(self, data: UpdateStatusRequest) -> dict:
        if not data.subscriptionId:
            raise HTTPException(status_code=400, detail="Subscription ID is required")
        if not data.status:
            raise HTTPException(status_code=400, detail="Status is required")

        status = data.status.lower()
        if status not in ADMIN_STATUSES:
            raise HTTPException(status_code=400, detail="Invalid status value")

        subscription = self.repo.get_by_id(self.db, data.subscriptionId)
        if not subscription:
            raise HTTPException(status_code=404, detail="Subscription not found")

        is_active = is_active_status(status)
        subscription = self.repo.update(self.db, subscription, status=status, is_active=is_active)
        logger.info(f"✅ Subscription {subscription.id} status -> {status} (active={is_active})")

        cms_updated = await self._mirror(subscription.sanity_id, {"status": status, "isActive": is_active})

        return {
            "success": True,
            "message": "Subscription status updated successfully",
            "data": {
                "id": subscription.id,
                "status": status,
                "isActive": is_active,
                "updatedAt": _iso(subscription.updated_at),
                "cmsUpdated": cms_updated,
            },
        }
