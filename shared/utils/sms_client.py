"""Twilio SMS client used for phone one-time codes."""

import logging
from dataclasses import dataclass
from typing import Any, Dict, Optional

from twilio.base.exceptions import TwilioException
from twilio.http.http_client import TwilioHttpClient
from twilio.rest import Client

logger = logging.getLogger(__name__)


class SmsDeliveryError(RuntimeError):
    """Raised when Twilio rejects or never answers a send request."""


@dataclass(frozen=True)
class TwilioConfig:
    account_sid: str
    auth_token: str
    from_number: Optional[str] = None  # E.164 phone, e.g. +15551234567
    timeout: float = 10.0

    @property
    def is_configured(self) -> bool:
        return bool(self.account_sid and self.auth_token and self.from_number)


class SmsClient:
    """Thin wrapper over ``twilio.rest.Client`` with a bounded HTTP timeout."""

    def __init__(self, config: TwilioConfig, client: Optional[Any] = None):
        if not config.is_configured:
            raise SmsDeliveryError(
                "Twilio account_sid, auth_token and from_number are required")
        self.config = config
        self.client = client or Client(
            config.account_sid,
            config.auth_token,
            http_client=TwilioHttpClient(timeout=config.timeout),
        )

    def sender_params(self) -> Dict[str, str]:
        return {"from_": self.config.from_number}

    def send_sms(self, to: str, body: str) -> str:
        """Send ``body`` to ``to`` and return the Twilio message SID."""
        try:
            message = self.client.messages.create(
                to=to, body=body, **self.sender_params())
        except (TwilioException, OSError) as exc:
            logger.error("Twilio send to %s failed: %s", to, exc)
            raise SmsDeliveryError(str(exc)) from exc

        logger.info("SMS queued to %s (sid=%s)", to, getattr(message, "sid", None))
        return message.sid
