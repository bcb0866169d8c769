"""Scheduling router - Qualiphy exam booking and its webhook"""

import json
import logging

from fastapi import APIRouter, Depends, HTTPException, Request
from fastapi.responses import JSONResponse
from pydantic import ValidationError
from sqlalchemy.orm import Session

from ...database import get_db
from ...rate_limiter import create_rate_limiter
from .schemas import QualiphyWebhookPayload, ScheduleExamRequest
from .service import SchedulingService
from .webhook_service import QualiphyWebhookService

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/qualiphy", tags=["Scheduling"])

scheduling_rate_limit = create_rate_limiter(limit=10, window_seconds=3600, key_prefix="qualiphy")


def get_scheduling_service(db: Session = Depends(get_db)) -> SchedulingService:
    """Dependency injection for SchedulingService"""
    return SchedulingService(db)


def get_qualiphy_webhook_service(db: Session = Depends(get_db)) -> QualiphyWebhookService:
    """Dependency injection for QualiphyWebhookService"""
    return QualiphyWebhookService(db)


def _error(status_code: int, detail) -> JSONResponse:
    content = {"success": False}
    if isinstance(detail, dict):
        content.update(detail)
    else:
        content["error"] = detail
    return JSONResponse(status_code=status_code, content=content)


# ============================================================================
# Exam booking
# ============================================================================


@router.post("")
async def schedule_exam(
    data: ScheduleExamRequest,
    _: None = Depends(scheduling_rate_limit),
    service: SchedulingService = Depends(get_scheduling_service),
):
    """Book a telehealth exam and return the meeting link"""
    try:
        return await service.schedule_exam(data)
    except HTTPException as e:
        return _error(e.status_code, e.detail)
    except Exception as e:
        logger.error(f"❌ Unexpected error scheduling exam: {e}")
        return _error(500, "An unexpected error occurred. Please try again later.")


# ============================================================================
# Webhook
# ============================================================================


@router.post("/webhook")
async def qualiphy_webhook(
    request: Request,
    service: QualiphyWebhookService = Depends(get_qualiphy_webhook_service),
):
    """Consultation results (1), prescriptions (2) and tracking updates (3)"""
    try:
        payload = QualiphyWebhookPayload.model_validate(json.loads(await request.body()))
        return await service.handle_event(payload)
    except HTTPException as e:
        return _error(e.status_code, e.detail)
    except (json.JSONDecodeError, ValidationError) as e:
        logger.error(f"❌ Invalid Qualiphy webhook payload: {e}")
        return _error(400, "Invalid webhook payload")
    except Exception as e:
        logger.error(f"❌ Qualiphy webhook error: {e}")
        return _error(400, str(e) or "Webhook handler failed")
