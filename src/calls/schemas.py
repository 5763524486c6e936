"""Pydantic models describing webhook input and directive descriptors."""

from __future__ import annotations

from collections.abc import Mapping, Sequence
from typing import Any

from pydantic import BaseModel, ConfigDict, Field, field_validator

from telephony.constants import COMPLETED_CALL_STATUS


class CallRequest(BaseModel):
    """Fields of a Twilio voice or status webhook that call scripts care about.

    ``params`` keeps every raw field so resolver functions can read anything
    Twilio sent (``Digits``, ``SpeechResult``, ``RecordingUrl``...).
    """

    model_config = ConfigDict(frozen=True)

    call_sid: str = ""
    from_number: str | None = None
    to_number: str | None = None
    call_status: str | None = None
    account_sid: str | None = None
    application_sid: str | None = None
    digits: str | None = None
    speech_result: str | None = None
    params: dict[str, str] = Field(default_factory=dict)

    @field_validator("call_sid")
    @classmethod
    def strip_call_sid(cls, value: str) -> str:
        return value.strip()

    @property
    def is_completed(self) -> bool:
        return self.call_status == COMPLETED_CALL_STATUS

    @classmethod
    def from_params(cls, params: Mapping[str, Any]) -> CallRequest:
        values = {str(key): str(value) for key, value in params.items()}
        return cls(
            call_sid=values.get("CallSid", ""),
            from_number=values.get("From"),
            to_number=values.get("To"),
            call_status=values.get("CallStatus"),
            account_sid=values.get("AccountSid"),
            application_sid=values.get("ApplicationSid"),
            digits=values.get("Digits"),
            speech_result=values.get("SpeechResult"),
            params=values,
        )


class DirectiveDescriptor(BaseModel):
    """A resolved ``[name, optionsOrProducer]`` pair."""

    model_config = ConfigDict(frozen=True, arbitrary_types_allowed=True)

    name: str
    options: Any = None

    @classmethod
    def from_sequence(cls, value: Sequence[Any]) -> DirectiveDescriptor:
        name = value[0]
        options = value[1] if len(value) > 1 else None
        return cls(name=name, options=options)
