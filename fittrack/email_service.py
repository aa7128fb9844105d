# fittrack/email_service.py
"""
Outgoing mail for verification codes and password reset links.

Plain SMTP; delivery is only attempted when SMTP credentials are configured.
"""
import logging
import smtplib
from email.mime.text import MIMEText
from typing import Optional

from flask import current_app

logger = logging.getLogger(__name__)


class EmailDeliveryError(Exception):
    pass


class EmailService:
    """Service for sending emails"""

    def __init__(self, config=None):
        config = config if config is not None else current_app.config
        self.smtp_server = config.get("SMTP_SERVER", "localhost")
        self.smtp_port = config.get("SMTP_PORT", 587)
        self.smtp_username = config.get("SMTP_USERNAME")
        self.smtp_password = config.get("SMTP_PASSWORD")
        self.from_email = config.get("MAIL_FROM") or self.smtp_username
        self.reset_url = config.get("PASSWORD_RESET_URL")

    @property
    def enabled(self) -> bool:
        return bool(self.smtp_username and self.smtp_password)

    def send_email(self, to_email: str, subject: str, text_content: str) -> None:
        """
        Send a plain-text email.
        Raises EmailDeliveryError when mail is not configured or SMTP fails.
        """
        if not self.enabled:
            raise EmailDeliveryError("Email is not configured")

        msg = MIMEText(text_content, "plain")
        msg["Subject"] = subject
        msg["From"] = self.from_email
        msg["To"] = to_email

        try:
            with smtplib.SMTP(self.smtp_server, self.smtp_port, timeout=15) as server:
                server.starttls()
                server.login(self.smtp_username, self.smtp_password)
                server.send_message(msg)
        except (smtplib.SMTPException, OSError) as e:
            logger.error(f"Failed to send email to {to_email}: {e}")
            raise EmailDeliveryError(str(e)) from e

        logger.info(f"Email sent to {to_email}: {subject}")

    def send_verification_code(self, to_email: str, code: str, name: Optional[str] = None) -> None:
        greeting = f"Hi {name}," if name else "Hi,"
        self.send_email(
            to_email,
            "FitTrack - Email Verification Code",
            f"{greeting}\n\nYour FitTrack verification code is {code}.\n"
            "It expires in 10 minutes.\n",
        )

    def send_password_reset(self, to_email: str, token: str) -> None:
        link = f"{self.reset_url}?token={token}"
        self.send_email(
            to_email,
            "FitTrack - Password Reset Request",
            "We received a request to reset your FitTrack password.\n\n"
            f"Reset it here: {link}\n\n"
            "The link expires in one hour. If you did not ask for this, ignore this email.\n",
        )


def verification_enabled() -> bool:
    return bool(current_app.config.get("EMAIL_VERIFICATION_ENABLED")) and EmailService().enabled
