"""CMS webhook router"""

import json
import logging

from fastapi import APIRouter, Depends, HTTPException, Request
from fastapi.responses import JSONResponse
from sqlalchemy.orm import Session

from ... import config
from ...database import get_db
from ...webhook_security import verify_sanity_secret
from .service import CmsWebhookService

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/sanity", tags=["Webhooks"])


def get_cms_webhook_service(db: Session = Depends(get_db)) -> CmsWebhookService:
    """Dependency injection for CmsWebhookService"""
    return CmsWebhookService(db)


@router.post("/webhook")
async def sanity_webhook(request: Request, service: CmsWebhookService = Depends(get_cms_webhook_service)):
    """Document change notifications from the CMS"""
    try:
        verify_sanity_secret(request, config.SANITY_WEBHOOK_SECRET)
        payload = json.loads(await request.body())
        return service.handle(payload)
    except HTTPException as e:
        return JSONResponse(status_code=e.status_code, content={"success": False, "error": e.detail})
    except Exception as e:
        logger.error(f"❌ Error processing CMS webhook: {e}")
        return JSONResponse(
            status_code=500,
            content={"success": False, "error": str(e) or "Unknown error processing webhook"},
        )
