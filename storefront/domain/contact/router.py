"""Contact router - public contact form"""

import json
import logging

from fastapi import APIRouter, Depends, HTTPException, Request
from fastapi.responses import JSONResponse
from pydantic import ValidationError

from ...rate_limiter import create_rate_limiter, get_client_ip
from .schemas import ContactForm
from .service import ContactService

logger = logging.getLogger(__name__)

router = APIRouter(tags=["Contact"])

# 5 submissions per 15 minutes per IP
contact_rate_limit = create_rate_limiter(limit=5, window_seconds=900, key_prefix="contact")


def get_contact_service() -> ContactService:
    """Dependency injection for ContactService"""
    return ContactService()


@router.post("/contact")
async def submit_contact_form(
    request: Request,
    _: None = Depends(contact_rate_limit),
    service: ContactService = Depends(get_contact_service),
):
    """Validate the form and email it to the clinic inbox"""
    try:
        form = ContactForm.model_validate(json.loads(await request.body()))
    except (json.JSONDecodeError, ValidationError) as e:
        details = e.errors(include_url=False, include_context=False) if isinstance(e, ValidationError) else []
        return JSONResponse(
            status_code=400,
            content={"success": False, "error": "Invalid form data", "details": details},
        )

    try:
        return await service.submit(form, get_client_ip(request))
    except HTTPException as e:
        return JSONResponse(status_code=e.status_code, content={"success": False, "error": e.detail})
    except Exception as e:
        logger.error(f"❌ Contact form error: {e}")
        return JSONResponse(
            status_code=500,
            content={"success": False, "error": "Failed to send message. Please try again."},
        )
