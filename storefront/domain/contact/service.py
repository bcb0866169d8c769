"""Contact service - forwards contact form submissions by email"""

import asyncio
import logging

from fastapi import HTTPException

from ... import email_service
from .schemas import ContactForm, ContactResponse

logger = logging.getLogger(__name__)

SUCCESS_MESSAGE = "Thank you for your message! We'll get back to you within 24 hours."


class ContactService:
    """Service layer for the public contact form"""

    def __init__(self):
        self.email = email_service

    async def submit(self, form: ContactForm, client_ip: str = "unknown") -> ContactResponse:
        if form.honeypot:
            # Pretend it worked so the bot moves on
            logger.warning(f"🚫 Spam submission blocked from {client_ip}")
            return ContactResponse(message=SUCCESS_MESSAGE)

        if not self.email.is_email_configured():
            logger.error("❌ RESEND_API_KEY not configured")
            raise HTTPException(status_code=500, detail="Email service not configured")

        try:
            result = await asyncio.to_thread(
                self.email.send_contact_notification, form.name, form.email, form.subject, form.message
            )
        except Exception as e:
            logger.error(f"❌ Failed to send contact notification from {form.email}: {e}")
            raise HTTPException(status_code=500, detail="Failed to send message. Please try again.")

        try:
            await asyncio.to_thread(self.email.send_contact_auto_reply, form.name, form.email)
        except Exception as e:
            logger.warning(f"⚠️ Auto-reply to {form.email} failed: {e}")

        message_id = result.get("id") if isinstance(result, dict) else None
        logger.info(f"✅ Contact form submitted by {form.email} ({message_id})")
        return ContactResponse(message=SUCCESS_MESSAGE, messageId=message_id)
