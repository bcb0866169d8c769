"""Appointment access schemas - Pydantic models for validation"""

from datetime import datetime
from typing import Optional

from pydantic import BaseModel


class AppointmentAccessRequest(BaseModel):
    subscriptionId: Optional[str] = None


class AppointmentAccessResponse(BaseModel):
    """Access check result; ``timeRemaining`` is in seconds"""

    success: bool = True
    hasAccess: bool
    isFirstTime: bool = False
    timeRemaining: int = 0
    accessExpired: bool = False
    subscriptionId: Optional[str] = None
    message: Optional[str] = None


class AccessEligibilityResponse(BaseModel):
    success: bool = True
    hasAccess: bool
    reason: Optional[str] = None


class UserAccessInfo(BaseModel):
    subscriptionId: str
    userId: str
    userEmail: Optional[str] = None
    planName: Optional[str] = None
    subscriptionStatus: Optional[str] = None
    appointmentAccessedAt: Optional[datetime] = None
    appointmentAccessExpired: bool
    appointmentAccessDuration: int
    timeRemaining: Optional[int] = None
    accessStatus: str


class Pagination(BaseModel):
    currentPage: int
    totalPages: int
    totalUsers: int
    limit: int


class AccessListResponse(BaseModel):
    success: bool = True
    users: list[UserAccessInfo]
    pagination: Pagination


class ResetAccessRequest(BaseModel):
    userId: Optional[str] = None
    newDuration: int = 600


class UpdateAppointmentTimeRequest(BaseModel):
    """Direct edit of the access fields; omitted fields are left as they are"""

    subscriptionId: Optional[str] = None
    accessedAt: Optional[datetime] = None
    clearAccessedAt: bool = False
    expired: Optional[bool] = None
    duration: Optional[int] = None
