# backend/app/services/sms_sender.py
import logging
import re
import secrets
from typing import Optional

import httpx

from backend.app.core.config import Settings, settings as default_settings

logger = logging.getLogger(__name__)

E164_PATTERN = re.compile(r"^\+[1-9]\d{1,14}$")


def format_phone_number(phone: str, default_country_code: str = "+1") -> str:
    """Strip everything but digits and '+', then add a country code if missing."""
    formatted = re.sub(r"[^\d+]", "", phone or "")
    if not formatted.startswith("+"):
        formatted = default_country_code + formatted
    return formatted


def is_valid_phone_number(phone: str) -> bool:
    return bool(E164_PATTERN.match(phone or ""))


def breach_alert_message(count: int) -> str:
    return (
        f"SECURITY ALERT: One of your passwords was found in a data breach "
        f"({count:,} times). Change it immediately. Open the app for details."
    )


def breach_digest_message(total: int) -> str:
    return (
        f"BREACH ALERT: {total} unacknowledged password breach(es) on your account. "
        f"Please check your dashboard. Reply STOP to opt out."
    )


class SmsSender:
    """
    Send SMS through the Twilio Messages API.

    Mock mode (USE_MOCK_SMS, or missing credentials outside production)
    only logs the message and reports success.
    """

    def __init__(
        self,
        config: Optional[Settings] = None,
        transport: Optional[httpx.AsyncBaseTransport] = None,
    ):
        self.config = config or default_settings
        self.transport = transport

    @property
    def use_mock_service(self) -> bool:
        if self.config.USE_MOCK_SMS:
            return True
        return not self.config.twilio_configured and not self.config.is_production

    async def send(self, phone_e164: str, message: str) -> bool:
        to = format_phone_number(phone_e164, self.config.DEFAULT_COUNTRY_CODE)
        if not is_valid_phone_number(to):
            logger.error("Refusing to send SMS to malformed number %s", to)
            return False

        if self.use_mock_service:
            return self._send_mock(to, message)

        if not self.config.twilio_configured:
            logger.error("Twilio configuration incomplete. SMS not sent.")
            return False

        url = (
            f"{self.config.TWILIO_API_URL.rstrip('/')}"
            f"/Accounts/{self.config.TWILIO_ACCOUNT_SID}/Messages.json"
        )
        try:
            async with httpx.AsyncClient(
                timeout=self.config.SMS_TIMEOUT_SECONDS, transport=self.transport
            ) as client:
                resp = await client.post(
                    url,
                    data={"To": to, "From": self.config.TWILIO_PHONE_NUMBER, "Body": message},
                    auth=(self.config.TWILIO_ACCOUNT_SID, self.config.TWILIO_AUTH_TOKEN),
                )
        except httpx.HTTPError as e:
            logger.error("SMS send failed to %s: %s", to, e)
            return False

        if not resp.is_success:
            logger.error("SMS send failed to %s: HTTP %s", to, resp.status_code)
            return False

        try:
            sid = resp.json().get("sid")
        except ValueError:
            sid = None
        if not sid:
            logger.error("SMS send to %s returned no message SID", to)
            return False

        logger.info("SMS sent to %s with SID %s", to, sid)
        return True

    def _send_mock(self, to: str, message: str) -> bool:
        fake_sid = "SM" + secrets.token_hex(16)
        logger.info(
            "MOCK SMS to=%s from=%s sid=%s length=%s",
            to,
            self.config.TWILIO_PHONE_NUMBER or "+15555555555",
            fake_sid,
            len(message),
        )
        return True
