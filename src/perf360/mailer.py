"""Outbound mail: password reset links."""

import logging
import smtplib
from email.message import EmailMessage

from .config import Settings
from .logging_utils import redact_email

logger = logging.getLogger(__name__)

DEFAULT_FRONTEND_URL = "http://localhost:3000"
SMTP_TIMEOUT = 10


def reset_link(settings: Settings, token: str) -> str:
    base = (settings.frontend_url or DEFAULT_FRONTEND_URL).rstrip("/")
    return f"{base}/reset-password?token={token}"


def build_reset_message(
    settings: Settings, to_address: str, first_name: str, token: str
) -> EmailMessage:
    link = reset_link(settings, token)
    hours = settings.password_reset_expire_minutes // 60
    sender = settings.smtp_from_email or settings.smtp_user or "no-reply@localhost"

    message = EmailMessage()
    message["From"] = f"{settings.smtp_from_name} <{sender}>"
    message["To"] = to_address
    message["Subject"] = "Reset your Performance360 password"
    message.set_content(
        f"Hello {first_name},\n\n"
        "An administrator requested a password reset for your account.\n"
        f"Open this link to choose a new password (valid for {hours} hours):\n\n"
        f"{link}\n\n"
        "If you did not expect this email you can ignore it.\n"
    )
    message.add_alternative(
        f"<p>Hello {first_name},</p>"
        "<p>An administrator requested a password reset for your account.</p>"
        f'<p><a href="{link}">Choose a new password</a> (valid for {hours} hours).</p>'
        "<p>If you did not expect this email you can ignore it.</p>",
        subtype="html",
    )
    return message


def send_password_reset_email(
    settings: Settings, to_address: str, first_name: str, token: str
) -> bool:
    """Deliver a reset link over SMTP.

    Returns False when SMTP is not configured or delivery fails, so the
    caller can fall back to handing the token to the administrator.
    """
    if not settings.smtp_host:
        logger.error("cannot send reset email: SMTP_HOST is not configured")
        return False

    message = build_reset_message(settings, to_address, first_name, token)
    try:
        with smtplib.SMTP(settings.smtp_host, settings.smtp_port, timeout=SMTP_TIMEOUT) as smtp:
            if settings.smtp_tls:
                smtp.starttls()
            if settings.smtp_user:
                smtp.login(settings.smtp_user, settings.smtp_password or "")
            smtp.send_message(message)
    except (smtplib.SMTPException, OSError):
        logger.exception("failed to send reset email to %s", redact_email(to_address))
        return False

    logger.info("reset email sent to %s", redact_email(to_address))
    return True
