"""
SMTP mail adapter.
Works with any STARTTLS-capable relay (Gmail App Password, SES SMTP, Mailgun...).
"""
import logging
import os
import smtplib
from email.mime.multipart import MIMEMultipart
from email.mime.text import MIMEText
from email.utils import formataddr
from typing import Optional

from .base import Mailer

logger = logging.getLogger(__name__)


class SMTPMailer(Mailer):
    """
    SMTP adapter.

    Requires env vars: EMAIL_HOST, EMAIL_USER, EMAIL_PASSWORD
    Optional: EMAIL_PORT (587), EMAIL_FROM, EMAIL_FROM_NAME, EMAIL_TIMEOUT (30)
    """

    provider = "smtp"

    def __init__(self):
        self.host = os.getenv("EMAIL_HOST")
        self.user = os.getenv("EMAIL_USER")
        self.password = os.getenv("EMAIL_PASSWORD")
        if not self.host or not self.user or not self.password:
            raise ValueError("EMAIL_HOST, EMAIL_USER and EMAIL_PASSWORD must be set")

        self.port = int(os.getenv("EMAIL_PORT", "587"))
        self.timeout = float(os.getenv("EMAIL_TIMEOUT", "30"))
        self.sender = os.getenv("EMAIL_FROM") or self.user
        self.sender_name = os.getenv("EMAIL_FROM_NAME", "")
        logger.info(f"✅ SMTP mailer initialized ({self.host}:{self.port})")

    def send(self, to: str, subject: str, html: str, text: Optional[str] = None) -> dict:
        try:
            msg = MIMEMultipart("alternative")
            msg["Subject"] = subject
            msg["From"] = formataddr((self.sender_name, self.sender))
            msg["To"] = to

            if text:
                msg.attach(MIMEText(text, "plain", "utf-8"))
            msg.attach(MIMEText(html, "html", "utf-8"))

            with smtplib.SMTP(self.host, self.port, timeout=self.timeout) as server:
                server.starttls()
                server.login(self.user, self.password)
                server.sendmail(self.sender, [to], msg.as_string())

            logger.info(f"✉️ Email sent to {to}: {subject}")
            return {"success": True, "message": f"Email sent to {to}"}

        except smtplib.SMTPAuthenticationError:
            logger.error("❌ SMTP auth failed. Check EMAIL_USER and EMAIL_PASSWORD.")
            return {"success": False, "message": "Email authentication failed. Check credentials."}
        except Exception as e:
            logger.error(f"❌ Email send error: {e}")
            return {"success": False, "message": f"Failed to send email: {str(e)}"}
