"""
SMS sender.

No carrier is wired up yet; messages are logged and reported as delivered.
"""
import logging

from app.core.config import settings

logger = logging.getLogger(__name__)


async def send_sms(phone_number: str, message: str) -> bool:
    # TODO: hand off to a carrier API (Twilio) using SMS_FROM_NUMBER as the sender
    logger.info(
        "sms: from %s to %s: %s", settings.SMS_FROM_NUMBER or "<unset>", phone_number, message
    )
    return True
