"""SMTP delivery for leave emails.

Messages are plain ``email.message.EmailMessage`` objects with a text body
and an optional HTML alternative. ``smtplib`` blocks, so ``send_email_async``
runs it in the default executor. Email is off until ``SMTP_HOST`` is set.
"""

import asyncio
import logging
import smtplib
from email.message import EmailMessage
from typing import Optional

from leavedesk.config import settings

logger = logging.getLogger(__name__)


class EmailDeliveryError(Exception):
    """The SMTP server could not be reached or refused the message."""


def email_enabled() -> bool:
    return bool(settings.SMTP_HOST)


def build_email(
    *,
    to: str,
    subject: str,
    body_text: str,
    body_html: Optional[str] = None,
) -> EmailMessage:
    message = EmailMessage()
    message["Subject"] = subject
    message["From"] = settings.EMAIL_FROM_ADDRESS
    message["To"] = to
    message.set_content(body_text)
    if body_html:
        message.add_alternative(body_html, subtype="html")
    return message


def send_email(message: EmailMessage) -> None:
    """Deliver *message* over SMTP; raises ``EmailDeliveryError`` on failure."""
    try:
        with smtplib.SMTP(
            settings.SMTP_HOST,
            settings.SMTP_PORT,
            timeout=settings.SMTP_TIMEOUT_SECONDS,
        ) as server:
            if settings.SMTP_USE_TLS:
                server.starttls()
            if settings.SMTP_USERNAME and settings.SMTP_PASSWORD:
                server.login(settings.SMTP_USERNAME, settings.SMTP_PASSWORD)
            server.send_message(message)
    except (smtplib.SMTPException, OSError) as exc:
        raise EmailDeliveryError(f"Failed to send email to {message['To']}: {exc}") from exc
    logger.info("Email %r sent to %s", message["Subject"], message["To"])


async def send_email_async(message: EmailMessage) -> None:
    loop = asyncio.get_running_loop()
    await loop.run_in_executor(None, send_email, message)
