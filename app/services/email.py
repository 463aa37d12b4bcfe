"""
Async email sender using aiosmtplib with STARTTLS.

Reads EMAIL_HOST, EMAIL_PORT, EMAIL_USERNAME, EMAIL_PASSWORD and EMAIL_FROM
from Settings. If EMAIL_HOST is not configured, send_email() logs the message
and reports success so development runs behave like a delivered email.
"""
import logging
from email.mime.text import MIMEText

import aiosmtplib

from app.core.config import settings

logger = logging.getLogger(__name__)


async def send_email(to: str, subject: str, body: str) -> bool:
    if not settings.EMAIL_HOST:
        logger.warning("email: EMAIL_HOST not configured — logging '%s' for %s instead", subject, to)
        return True

    msg = MIMEText(body, "plain")
    msg["Subject"] = subject
    msg["From"] = settings.EMAIL_FROM
    msg["To"] = to

    try:
        await aiosmtplib.send(
            msg,
            hostname=settings.EMAIL_HOST,
            port=settings.EMAIL_PORT,
            username=settings.EMAIL_USERNAME or None,
            password=settings.EMAIL_PASSWORD or None,
            start_tls=True,
        )
    except (aiosmtplib.SMTPException, OSError) as exc:
        logger.error("email: failed to send '%s' to %s: %s", subject, to, exc)
        return False

    logger.info("email: sent '%s' to %s", subject, to)
    return True
