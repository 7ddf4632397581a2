"""
Email Service for inquiry notifications.
Renders the submitter confirmation and the internal admin alert, and hands
them to the configured Mailer adapter.
"""
import logging
import os
from datetime import datetime
from html import escape
from typing import Optional

from .adapters.base import Mailer

logger = logging.getLogger(__name__)

_mailer = None  # Singleton


def get_mailer() -> Optional[Mailer]:
    """
    Factory function that creates the mail adapter selected by MAIL_PROVIDER.
    Returns None if provider is 'none' or the adapter cannot be configured.
    """
    global _mailer
    if _mailer is not None:
        return _mailer

    provider = os.getenv("MAIL_PROVIDER", "smtp").lower()

    if provider == "smtp":
        try:
            from .adapters.smtp_mailer import SMTPMailer
            _mailer = SMTPMailer()
            return _mailer
        except Exception as e:
            logger.error(f"❌ Failed to init SMTP mailer: {e}")
            return None

    logger.info("ℹ️ MAIL_PROVIDER set to 'none' - email disabled")
    return None


def reset_mailer():
    """Drop the cached adapter so the next call re-reads the environment."""
    global _mailer
    _mailer = None


def _company_name() -> str:
    return os.getenv("COMPANY_NAME", "Our Team")


def _detail_rows(inquiry_data: dict, volume_label: str, message_label: str) -> str:
    rows = [
        ("Company", inquiry_data.get("company")),
        ("Contact Person", inquiry_data.get("name")),
        ("Email", inquiry_data.get("email")),
        ("Phone", inquiry_data.get("phone")),
        ("Product Interest", inquiry_data.get("interest")),
    ]
    if inquiry_data.get("volume"):
        rows.append((volume_label, f"{inquiry_data['volume']} tonnes/year"))
    if inquiry_data.get("message"):
        rows.append((message_label, inquiry_data["message"]))

    return "\n".join(
        f'<tr><td style="padding: 6px 12px; font-weight: bold; color: #0A1612;">{escape(label)}</td>'
        f'<td style="padding: 6px 12px;">{escape(str(value or "")).replace(chr(10), "<br>")}</td></tr>'
        for label, value in rows
    )


def _wrap(title: str, content: str) -> str:
    company = escape(_company_name())
    return f"""
    <html>
    <body style="font-family: Arial, sans-serif; line-height: 1.6; color: #333;">
        <div style="max-width: 640px; margin: 0 auto; padding: 20px;">
            <div style="background: #0A1612; padding: 20px; border-radius: 10px 10px 0 0;">
                <h2 style="color: white; margin: 0;">{escape(title)}</h2>
            </div>
            <div style="padding: 20px; background: #f9f9f9; border-radius: 0 0 10px 10px;
                        border: 1px solid #ddd; border-top: none;">
                {content}
            </div>
            <p style="font-size: 12px; color: #999; text-align: center; margin-top: 15px;">
                {company}
            </p>
        </div>
    </body>
    </html>
    """


def render_confirmation(inquiry_data: dict) -> dict:
    """Subject/HTML/text for the thank-you email sent to the submitter."""
    name = inquiry_data.get("name", "")
    content = f"""
        <p>Dear {escape(name)},</p>
        <p>We have received your inquiry and our team will review it shortly.
           Here are the details we received:</p>
        <table>{_detail_rows(inquiry_data, "Expected Volume", "Project Details")}</table>
        <p><strong>What happens next?</strong></p>
        <p>A member of our team will contact you within 1-2 business days.</p>
        <p style="font-size: 12px; color: #999;">
            This is an automated confirmation email. Please do not reply to this email.
        </p>
    """
    text = (
        f"Dear {name},\n\n"
        "We have received your inquiry and our team will review it shortly.\n"
        "A member of our team will contact you within 1-2 business days.\n"
    )
    return {
        "subject": f"Thank You for Your Inquiry - {_company_name()}",
        "html": _wrap("Thank You for Your Inquiry!", content),
        "text": text,
    }


def render_admin_alert(inquiry_data: dict) -> dict:
    """Subject/HTML/text for the internal new-inquiry alert."""
    submitted = datetime.utcnow().strftime("%Y-%m-%d %H:%M UTC")
    content = f"""
        <p><strong>A new business inquiry has been submitted through the website.</strong></p>
        <p>Submitted on: {submitted}</p>
        <table>{_detail_rows(inquiry_data, "Expected Annual Volume", "Project Details")}</table>
    """
    text = "\n".join(
        f"{key.title()}: {inquiry_data.get(key) or 'N/A'}"
        for key in ("company", "name", "email", "phone", "interest", "volume", "message")
    )
    return {
        "subject": f"🔔 New Inquiry: {inquiry_data.get('company')} - {inquiry_data.get('interest')}",
        "html": _wrap("🔔 New Inquiry Received", content),
        "text": f"New inquiry received ({submitted})\n\n{text}\n",
    }


def _send(to: Optional[str], rendered: dict) -> dict:
    if not to:
        return {"success": False, "message": "No recipient address."}
    mailer = get_mailer()
    if mailer is None:
        return {"success": False, "message": "Email not configured."}
    return mailer.send(to, rendered["subject"], rendered["html"], rendered["text"])


def send_inquiry_confirmation(inquiry_data: dict) -> dict:
    """Send the confirmation email to the submitter."""
    return _send(inquiry_data.get("email"), render_confirmation(inquiry_data))


def send_admin_notification(inquiry_data: dict) -> dict:
    """Send the new-inquiry alert to ADMIN_EMAIL."""
    return _send(os.getenv("ADMIN_EMAIL"), render_admin_alert(inquiry_data))
