"""
Webhook Security Module

Shared-secret check for Sanity webhooks carried in the x-sanity-webhook-secret
header. Stripe events are verified by the Stripe SDK (see stripe_service).
"""

import hmac
import logging
from typing import Optional

from fastapi import HTTPException, Request

logger = logging.getLogger(__name__)


def constant_time_compare(a: Optional[str], b: Optional[str]) -> bool:
    """Compare two strings in constant time; empty values never match"""
    if not a or not b:
        return False
    return hmac.compare_digest(a, b)


def verify_sanity_secret(request: Request, secret: Optional[str]) -> None:
    """Shared-secret check for Sanity webhooks (401 on mismatch)"""
    received = request.headers.get("x-sanity-webhook-secret")
    if not constant_time_compare(received, secret):
        logger.warning("🚫 Sanity webhook rejected: secret mismatch")
        raise HTTPException(status_code=401, detail="Unauthorized")
