"""Signup notification email.

Sending is best-effort: signup never fails because of it.
"""

from __future__ import annotations

import logging
import smtplib
from email.message import EmailMessage

from placer.core.config import settings

logger = logging.getLogger(__name__)


def _build_signup_message(first_name: str, last_name: str, email: str, role: str) -> EmailMessage:
    message = EmailMessage()
    message["Subject"] = "New User Signup - Placer"
    message["From"] = settings.smtp_user or settings.notification_email
    message["To"] = settings.notification_email
    message.set_content(
        "A new user has signed up for Placer and is waiting for approval.\n\n"
        f"Name: {first_name} {last_name}\n"
        f"Email: {email}\n"
        f"Role: {role}\n"
    )
    return message


def send_signup_notification(first_name: str, last_name: str, email: str, role: str = "user") -> bool:
    """Notify the operator about a new signup. Returns False when skipped or failed."""
    if not settings.smtp_host or not settings.notification_email:
        logger.debug("signup notification skipped: SMTP not configured")
        return False
    try:
        message = _build_signup_message(first_name, last_name, email, role)
        with smtplib.SMTP(settings.smtp_host, settings.smtp_port, timeout=10) as smtp:
            smtp.starttls()
            if settings.smtp_user and settings.smtp_password:
                smtp.login(settings.smtp_user, settings.smtp_password)
            smtp.send_message(message)
    except Exception:  # noqa: BLE001
        logger.exception("failed to send signup notification for %s", email)
        return False
    logger.info("signup notification sent for %s", email)
    return True
