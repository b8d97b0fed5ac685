"""
Verification email delivery.

Sends through SMTP when ``SMTP_HOST`` is configured; outside production
the link is logged at DEBUG instead so local development works without a
mail server. In production a missing SMTP_HOST means the email is not sent.
"""
from __future__ import annotations

import logging
import smtplib
import ssl
from email.message import EmailMessage
from urllib.parse import quote

from starlette.concurrency import run_in_threadpool

from community_connect.core.config import Settings

logger = logging.getLogger(__name__)

VERIFICATION_SUBJECT = "Verify your Community Connect account"


def build_verification_url(settings: Settings, email: str, token: str) -> str:
    origin = settings.APP_URL.rstrip("/")
    return f"{origin}/verify-email?token={token}&email={quote(email, safe='')}"


def build_verification_body(settings: Settings, verification_url: str) -> str:
    hours = settings.EMAIL_VERIFICATION_TTL_HOURS
    return (
        f"Welcome to {settings.APP_NAME}!\n\n"
        "Please verify your email address by clicking the link below:\n"
        f"{verification_url}\n\n"
        f"This link will expire in {hours} hours.\n\n"
        "If you didn't create an account, please ignore this email.\n"
    )


def _build_message(settings: Settings, to_email: str, subject: str, text_content: str) -> EmailMessage:
    message = EmailMessage()
    message["From"] = settings.SMTP_FROM_EMAIL
    message["To"] = to_email
    message["Subject"] = subject
    message.set_content(text_content)
    return message


def _send_smtp(settings: Settings, message: EmailMessage) -> None:
    with smtplib.SMTP(settings.SMTP_HOST, settings.SMTP_PORT, timeout=settings.SMTP_TIMEOUT_SECONDS) as server:
        server.ehlo()
        if settings.SMTP_USE_TLS:
            server.starttls(context=ssl.create_default_context())
            server.ehlo()
        if settings.SMTP_USERNAME:
            server.login(settings.SMTP_USERNAME, settings.SMTP_PASSWORD or "")
        server.send_message(message)


async def send_verification_email(settings: Settings, email: str, token: str) -> bool:
    """
    Deliver the verification link.

    Returns:
        True if the message was handed off; delivery failures are logged, not raised
    """
    verification_url = build_verification_url(settings, email, token)
    body = build_verification_body(settings, verification_url)

    if not settings.SMTP_HOST:
        if settings.is_production:
            logger.error(f"SMTP not configured; verification email for {email} not sent")
            return False
        # Local development only; the link carries a live token
        logger.debug(f"SMTP not configured; verification link for {email}: {verification_url}")
        return True

    message = _build_message(settings, email, VERIFICATION_SUBJECT, body)
    try:
        await run_in_threadpool(_send_smtp, settings, message)
    except (smtplib.SMTPException, OSError) as e:
        logger.error(f"Failed to send verification email to {email}: {e}")
        return False

    logger.info(f"Verification email sent to {email}")
    return True
