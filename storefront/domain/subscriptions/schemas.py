"""Subscription schemas - Pydantic models for validation"""

from datetime import datetime
from typing import Optional

from pydantic import BaseModel, ConfigDict


class UserSubscriptionResponse(BaseModel):
    model_config = ConfigDict(from_attributes=True)

    id: str
    sanity_id: Optional[str] = None
    subscription_id: Optional[str] = None
    variant_key: Optional[str] = None
    plan_name: Optional[str] = None
    billing_period: Optional[str] = None
    billing_amount: Optional[float] = None
    status: str
    is_active: bool
    has_appointment_access: bool
    appointments_used: int
    start_date: Optional[datetime] = None
    end_date: Optional[datetime] = None
    next_billing_date: Optional[datetime] = None
    created_at: Optional[datetime] = None


class UserSubscriptionsResponse(BaseModel):
    success: bool = True
    subscriptions: list[UserSubscriptionResponse]


class UpdateStatusRequest(BaseModel):
    subscriptionId: Optional[str] = None
    status: Optional[str] = None


class CreateSubscriptionRequest(BaseModel):
    subscriptionId: Optional[str] = None
    variantKey: Optional[str] = None
    couponCode: Optional[str] = None


class CheckoutMetadata(BaseModel):
    subscriptionId: str
    variantKey: Optional[str] = None
    price: float
    billingPeriod: Optional[str] = None
    monthlyEquivalent: float
    couponApplied: bool = False
    couponCode: Optional[str] = None
    originalPrice: Optional[float] = None
    discountedPrice: Optional[float] = None
    discountAmount: Optional[float] = None
    savingsPercentage: Optional[int] = None


class CreateSubscriptionResponse(BaseModel):
    success: bool = True
    sessionId: str
    url: Optional[str] = None
    metadata: CheckoutMetadata


class SubscriptionIdRequest(BaseModel):
    """Our row id or the Stripe subscription id"""

    subscriptionId: Optional[str] = None


class StatusSyncRequest(BaseModel):
    userId: Optional[str] = None
    sessionId: Optional[str] = None
    subscriptionId: Optional[str] = None


class AdminCancelRequest(BaseModel):
    subscriptionId: Optional[str] = None
    cancelImmediately: bool = False
