"""Collaborators and settings threaded through registry, executor and document."""

from __future__ import annotations

from dataclasses import dataclass
from typing import Protocol

from calls.sources import ScriptSource
from telephony.constants import DEFAULT_TIMEOUT


class PhoneNumberDirectory(Protocol):
    """Lists the phone numbers owned by the configured Twilio application."""

    async def list_application_numbers(self) -> list[str]:  # pragma: no cover - protocol stub
        ...


@dataclass(frozen=True)
class ScriptRuntime:
    telephony_client: PhoneNumberDirectory
    script_source: ScriptSource | None = None
    voice_url: str = "/api/twilio/voice"
    voice_method: str = "POST"
    default_timeout: int = DEFAULT_TIMEOUT
    say_voice: str = "woman"
    say_language: str = "en-GB"
