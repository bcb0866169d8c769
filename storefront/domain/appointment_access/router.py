"""Appointment access router - access window endpoints and admin tools"""

import logging
from typing import Optional

from fastapi import APIRouter, Body, Depends, HTTPException, Query
from fastapi.responses import JSONResponse
from sqlalchemy.orm import Session

from ...auth import CurrentUser, get_current_user, require_admin
from ...database import get_db
from .schemas import (
    AppointmentAccessRequest,
    ResetAccessRequest,
    UpdateAppointmentTimeRequest,
)
from .service import AppointmentAccessService

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/appointment-access", tags=["Appointment Access"])
admin_router = APIRouter(prefix="/admin", tags=["Admin"])


def get_access_service(db: Session = Depends(get_db)) -> AppointmentAccessService:
    """Dependency injection for AppointmentAccessService"""
    return AppointmentAccessService(db)


def _denied(status_code: int, message: str) -> JSONResponse:
    return JSONResponse(
        status_code=status_code,
        content={
            "success": False,
            "hasAccess": False,
            "isFirstTime": False,
            "timeRemaining": 0,
            "accessExpired": False,
            "error": message,
        },
    )


# ============================================================================
# USER ENDPOINTS
# ============================================================================


@router.post("")
async def check_appointment_access(
    data: Optional[AppointmentAccessRequest] = Body(default=None),
    current_user: CurrentUser = Depends(get_current_user),
    service: AppointmentAccessService = Depends(get_access_service),
):
    """Check access and start the countdown on first use; the body is optional"""
    logger.info(f"🔒 Checking appointment access for user: {current_user.id}")
    try:
        return service.check_and_record_access(current_user, data.subscriptionId if data else None)
    except HTTPException as e:
        return _denied(e.status_code, e.detail)
    except Exception as e:
        logger.error(f"❌ Appointment access error: {e}")
        return _denied(500, "Access verification failed")


@router.get("")
async def get_appointment_access_status(
    current_user: CurrentUser = Depends(get_current_user),
    service: AppointmentAccessService = Depends(get_access_service),
):
    """Current access status without modifying anything"""
    return service.get_access_status(current_user)


@router.get("/eligibility")
async def get_appointment_eligibility(
    current_user: CurrentUser = Depends(get_current_user),
    service: AppointmentAccessService = Depends(get_access_service),
):
    """Whether the user may open the appointment pages at all"""
    return service.get_eligibility(current_user)


# ============================================================================
# ADMIN ENDPOINTS
# ============================================================================


@admin_router.get("/appointment-access")
async def list_appointment_access(
    page: int = Query(1, ge=1),
    limit: int = Query(20, ge=1),
    status: str = Query("all"),
    _admin: CurrentUser = Depends(require_admin),
    service: AppointmentAccessService = Depends(get_access_service),
):
    """List subscriptions with their access window state"""
    return service.list_access(page, limit, status)


@admin_router.post("/appointment-access/reset")
async def reset_appointment_access(
    data: ResetAccessRequest,
    _admin: CurrentUser = Depends(require_admin),
    service: AppointmentAccessService = Depends(get_access_service),
):
    """Give a user a fresh access window"""
    return service.reset_access(data)


@admin_router.post("/subscriptions/update-appointment-time")
async def update_appointment_time(
    data: UpdateAppointmentTimeRequest,
    _admin: CurrentUser = Depends(require_admin),
    service: AppointmentAccessService = Depends(get_access_service),
):
    """Edit access fields on a single subscription"""
    return service.update_appointment_time(data)
