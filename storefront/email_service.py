"""
Email Service using Resend
Templates are written in MJML and compiled to HTML before sending
"""

import logging
from datetime import datetime, timezone
from typing import Optional, Union

import resend
from mjml import mjml_to_html

from . import config
from .email_templates import (
    contact_auto_reply_template,
    contact_auto_reply_text,
    contact_notification_template,
    contact_notification_text,
)

logger = logging.getLogger(__name__)

resend.api_key = config.RESEND_API_KEY


class EmailNotConfiguredError(Exception):
    """Raised when RESEND_API_KEY is missing"""

    pass


def is_email_configured() -> bool:
    return bool(config.RESEND_API_KEY)


def compile_mjml_to_html(mjml_content: str) -> str:
    """Compile MJML template to production-ready HTML"""
    try:
        result = mjml_to_html(mjml_content)
        # mjml_to_html returns a dict-like result with 'html' and 'errors'
        if isinstance(result, dict):
            if result.get("errors"):
                logger.warning(f"⚠️ MJML compilation warnings: {result['errors']}")
            return result.get("html", "")
        return getattr(result, "html", str(result))
    except Exception as e:
        logger.error(f"❌ MJML compilation error: {e}")
        raise Exception(f"Failed to compile MJML template: {str(e)}") from e


def send_email(
    to: Union[str, list[str]],
    subject: str,
    mjml_content: str,
    from_address: str,
    reply_to: Optional[str] = None,
    text: Optional[str] = None,
) -> dict:
    """
    Send an email through Resend

    Args:
        to: Recipient email(s)
        subject: Email subject line
        mjml_content: MJML template content (compiled to HTML here)
        from_address: Display name and address, e.g. "Lily's Contact Form <noreply@...>"
        reply_to: Optional Reply-To address
        text: Optional plain text alternative

    Returns:
        Resend response dict (contains the message ``id``)
    """
    if not is_email_configured():
        logger.error("❌ No email service configured - RESEND_API_KEY missing")
        raise EmailNotConfiguredError("Email service not configured")

    recipients = [to] if isinstance(to, str) else to
    email_data = {
        "from": from_address,
        "to": recipients,
        "subject": subject,
        "html": compile_mjml_to_html(mjml_content),
    }
    if reply_to:
        email_data["reply_to"] = reply_to
    if text:
        email_data["text"] = text

    try:
        logger.info(f"📧 Sending email via Resend to: {recipients}")
        response = resend.Emails.send(email_data)
        logger.info(f"✅ Email sent successfully via Resend: {response}")
        return response
    except Exception as e:
        logger.error(f"❌ Email send error to {recipients}: {e}")
        raise Exception(f"Failed to send email: {str(e)}") from e


def _received_at() -> str:
    return datetime.now(timezone.utc).strftime("%A, %B %d, %Y %I:%M %p UTC")


# ============================================
# Contact form emails
# ============================================


def send_contact_notification(name: str, email: str, subject: str, message: str) -> dict:
    """Forward a contact form submission to the clinic inbox"""
    received_at = _received_at()
    return send_email(
        to=config.CONTACT_EMAIL_TO,
        subject=f"Contact Form: {subject}",
        mjml_content=contact_notification_template(name, email, subject, message, received_at),
        from_address=f"Lily's Contact Form <{config.CONTACT_EMAIL_FROM}>",
        reply_to=email,
        text=contact_notification_text(name, email, subject, message, received_at),
    )


def send_contact_auto_reply(name: str, email: str) -> dict:
    """Thank the sender; callers treat failures as non-fatal"""
    return send_email(
        to=email,
        subject="Thank you for contacting Lily's Women's Health",
        mjml_content=contact_auto_reply_template(name),
        from_address=f"Lily's Women's Health <{config.CONTACT_EMAIL_FROM}>",
        text=contact_auto_reply_text(name),
    )
