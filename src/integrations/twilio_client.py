from __future__ import annotations

import asyncio
import logging
from dataclasses import dataclass
from typing import Any

from calls.errors import ConfigurationError
from config.settings import get_settings

LOGGER = logging.getLogger(__name__)


@dataclass(frozen=True)
class TwilioConfig:
    account_sid: str
    auth_token: str
    application_sid: str | None
    public_base_url: str | None


def get_twilio_config() -> TwilioConfig:
    settings = get_settings()
    if not settings.twilio_account_sid or not settings.twilio_auth_token:
        raise ConfigurationError("Twilio credentials are not configured")

    return TwilioConfig(
        account_sid=settings.twilio_account_sid,
        auth_token=settings.twilio_auth_token,
        application_sid=settings.twilio_application_sid,
        public_base_url=settings.public_base_url.rstrip("/") if settings.public_base_url else None,
    )


def build_twilio_client(cfg: TwilioConfig | None = None):
    from twilio.rest import Client

    cfg = cfg or get_twilio_config()
    return Client(cfg.account_sid, cfg.auth_token)


class TwilioPhoneNumberClient:
    """Looks up the phone numbers routed to the configured TwiML application."""

    def __init__(self, config: TwilioConfig, client: Any = None) -> None:
        self._config = config
        self._client = client if client is not None else build_twilio_client(config)

    async def list_application_numbers(self) -> list[str]:
        application_sid = self._config.application_sid
        if not application_sid:
            raise ConfigurationError("TWILIO_APPLICATION_SID is required to look up caller IDs")

        # The REST client is blocking; keep it off the event loop.
        records = await asyncio.to_thread(self._client.incoming_phone_numbers.list)
        numbers = [
            record.phone_number
            for record in records
            if record.voice_application_sid == application_sid
        ]
        LOGGER.debug("Found %d phone number(s) for application %s", len(numbers), application_sid)
        return numbers
