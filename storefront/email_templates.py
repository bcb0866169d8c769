"""
MJML Email Templates
Contact form notification and auto-reply for Lily's Women's Health
"""

from html import escape
from typing import Optional

# Storefront theme colors - Rose/Pink color scheme
THEME = {
    "primary": "#fc4e87",
    "primary_light": "#f093fb",
    "background": "#f8f9fa",
    "card_bg": "#ffffff",
    "text_primary": "#333333",
    "text_secondary": "#333333",
    "text_muted": "#6c757d",
    "border": "#e1e5e9",
}

SITE_URL = "https://lilyswomenshealth.com"
SUPPORT_EMAIL = "cole@lilyswomenshealth.com"
SUPPORT_PHONE = "682-386-7827"


def get_base_template(
    title: str,
    preview_text: str,
    content_sections: str,
    subtitle: str = "Lily's Women's Health",
    cta_url: Optional[str] = None,
    cta_label: Optional[str] = None,
    footer: str = "",
) -> str:
    """Base MJML template wrapper for all emails"""

    cta_section = ""
    if cta_url and cta_label:
        cta_section = f"""
        <mj-section background-color="{THEME['card_bg']}" padding="0 0 20px 0">
          <mj-column>
            <mj-button
              href="{cta_url}"
              background-color="{THEME['primary']}"
              color="#ffffff"
              font-weight="600"
              border-radius="6px"
              padding="12px 24px">
              {cta_label}
            </mj-button>
          </mj-column>
        </mj-section>
        """

    return f"""
    <mjml>
      <mj-head>
        <mj-title>{title}</mj-title>
        <mj-preview>{preview_text}</mj-preview>
        <mj-attributes>
          <mj-all font-family="-apple-system, BlinkMacSystemFont, 'Segoe UI', Roboto, sans-serif" />
          <mj-text font-size="16px" line-height="1.6" color="{THEME['text_secondary']}" />
        </mj-attributes>
      </mj-head>
      <mj-body background-color="{THEME['background']}">
        <!-- Header -->
        <mj-section background-color="{THEME['primary']}" padding="30px 20px">
          <mj-column>
            <mj-text align="center" color="#ffffff" font-size="24px" font-weight="600" padding="0">
              {title}
            </mj-text>
            <mj-text align="center" color="#ffffff" padding="10px 0 0 0">
              {subtitle}
            </mj-text>
          </mj-column>
        </mj-section>

        <!-- Main Content -->
        <mj-section background-color="{THEME['card_bg']}" padding="30px">
          <mj-column>
            {content_sections}
          </mj-column>
        </mj-section>

        {cta_section}

        <!-- Footer -->
        <mj-section padding="20px">
          <mj-column>
            {footer}
          </mj-column>
        </mj-section>
      </mj-body>
    </mjml>
    """


def _field(label: str, value: str) -> str:
    return f"""
    <mj-text font-weight="600" color="{THEME['primary']}" padding="0 0 5px 0">{label}</mj-text>
    <mj-text container-background-color="{THEME['background']}" padding="12px" css-class="field-value">
      {value}
    </mj-text>
    <mj-spacer height="20px" />
    """


def contact_notification_template(
    name: str, email: str, subject: str, message: str, received_at: str
) -> str:
    """Internal notification for a new contact form submission"""
    safe_name = escape(name)
    safe_email = escape(email)
    content = (
        _field("From:", safe_name)
        + _field(
            "Email:",
            f'<a href="mailto:{safe_email}" style="color: {THEME["primary"]}; text-decoration: none;">{safe_email}</a>',
        )
        + _field("Subject:", escape(subject))
        + _field("Message:", escape(message).replace("\n", "<br/>"))
    )

    footer = f"""
    <mj-text align="center" font-size="12px" color="{THEME['text_muted']}">
      Received: {received_at}
    </mj-text>
    <mj-text align="center" font-size="14px" color="{THEME['text_muted']}">
      Reply directly to this email to respond to {safe_name}
    </mj-text>
    """

    return get_base_template(
        title="New Contact Form Submission",
        preview_text=f"New message from {safe_name}",
        content_sections=content,
        footer=footer,
    )


def contact_auto_reply_template(name: str) -> str:
    """Thank-you email sent back to the person who used the contact form"""
    content = f"""
    <mj-text>Hi {escape(name)},</mj-text>

    <mj-text>
      Thank you for reaching out to Lily's Women's Health. We've received your message
      and appreciate you taking the time to contact us.
    </mj-text>

    <mj-text font-weight="600">What happens next?</mj-text>

    <mj-text padding="0 0 0 20px">
      • Our team will review your message within 24 hours<br/>
      • You'll receive a personalized response from our team<br/>
      • For urgent matters, please call us at {SUPPORT_PHONE}
    </mj-text>

    <mj-text>
      In the meantime, feel free to explore our services or schedule an appointment:
    </mj-text>
    """

    footer = f"""
    <mj-text align="center" font-size="14px" color="{THEME['text_muted']}">
      <strong>Lily's Women's Health</strong><br/>
      Email: {SUPPORT_EMAIL} | Phone: {SUPPORT_PHONE}<br/>
      Available: Every day, 8AM - 9PM CST
    </mj-text>
    """

    return get_base_template(
        title="Thank You!",
        subtitle="We've received your message",
        preview_text="We've received your message",
        content_sections=content,
        cta_url=f"{SITE_URL}/appointment",
        cta_label="Schedule Appointment",
        footer=footer,
    )


def contact_notification_text(name: str, email: str, subject: str, message: str, received_at: str) -> str:
    return (
        f"New contact form submission from {name} ({email})\n\n"
        f"Subject: {subject}\n\n"
        f"Message:\n{message}\n\n"
        f"Received: {received_at}"
    )


def contact_auto_reply_text(name: str) -> str:
    return (
        f"Hi {name},\n\n"
        "Thank you for reaching out to Lily's Women's Health. We've received your message "
        "and appreciate you taking the time to contact us.\n\n"
        "Our team will review your message within 24 hours and you'll receive a personalized response.\n\n"
        f"For urgent matters, please call us at {SUPPORT_PHONE}.\n\n"
        "Best regards,\nThe Lily's Women's Health Team"
    )
