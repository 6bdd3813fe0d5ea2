from __future__ import annotations

import asyncio
from typing import Optional

from twilio.base.exceptions import TwilioException
from twilio.rest import Client

from discharger.config.settings import get_settings
from discharger.utils.logger import get_logger

logger = get_logger(__name__)


class SmsDeliveryError(RuntimeError):
    pass


def build_share_message(patient_name: str, role: str, access_url: str) -> str:
    return (
        f"Hi! You've been given access to {patient_name}'s discharge summary as their {role}. "
        f"View it here: {access_url}\n\n"
        "This link is secure and private. If you didn't expect this message, please ignore it."
    )


class SmsService:
    """Sends text messages through Twilio."""

    def __init__(self) -> None:
        settings = get_settings()
        self.from_number = settings.twilio_from_number
        if settings.twilio_account_sid and settings.twilio_auth_token:
            self.client = Client(settings.twilio_account_sid, settings.twilio_auth_token)
        else:
            logger.warning("sms.credentials_missing", detail="Twilio credentials not set, SMS will fail")
            self.client = None

    async def send(self, to: str, body: str) -> str:
        """Send ``body`` to an E.164 number and return the message SID."""
        if not self.client or not self.from_number:
            raise SmsDeliveryError("SMS provider is not configured")

        try:
            message = await asyncio.to_thread(
                self.client.messages.create,
                body=body,
                from_=self.from_number,
                to=to,
            )
        except TwilioException as e:
            logger.error("sms.send_failed", to=to, error=str(e))
            raise SmsDeliveryError(str(e)) from e

        logger.info("sms.sent", to=to, message_sid=message.sid)
        return message.sid


_sms_service: Optional[SmsService] = None


def get_sms_service() -> SmsService:
    global _sms_service
    if _sms_service is None:
        _sms_service = SmsService()
    return _sms_service
