"""Application-wide configuration loading and validation."""

from __future__ import annotations

from functools import lru_cache
from typing import Literal

from pydantic import Field, field_validator
from pydantic_settings import BaseSettings, SettingsConfigDict


class Settings(BaseSettings):
    """Centralized environment configuration."""

    model_config = SettingsConfigDict(
        env_file=".env",
        env_file_encoding="utf-8",
        case_sensitive=False,
    )

    environment: Literal["local", "dev", "prod"] = Field(default="local")
    log_level: str = Field(default="INFO")

    # Twilio (Voice)
    twilio_account_sid: str | None = Field(default=None, description="Account SID, e.g. AC...")
    twilio_auth_token: str | None = Field(default=None)
    twilio_application_sid: str | None = Field(
        default=None,
        description="TwiML application SID (AP...) whose numbers are used as caller IDs.",
    )
    public_base_url: str | None = Field(
        default=None,
        description="Public base URL for Twilio webhooks (e.g. https://<ngrok>.ngrok-free.app).",
    )

    # Webhooks
    voice_url: str = Field(default="/api/twilio/voice", description="Path Twilio requests for TwiML.")
    voice_method: Literal["GET", "POST"] = Field(default="POST")
    status_url: str = Field(default="/api/twilio/status", description="Path for call status callbacks.")
    status_method: Literal["GET", "POST"] = Field(default="POST")
    allow_insecure: bool = Field(
        default=False,
        description="If true, skips webhook request verification (useful for local testing).",
    )

    # Call scripts
    call_script_source: str | None = Field(
        default=None,
        description="Import path of the call script source, e.g. 'scripts.reception:get_script'.",
    )
    default_timeout: int = Field(default=5, ge=0, description="Seconds to wait for <Gather>/<Dial>.")
    say_voice: str = Field(default="woman")
    say_language: str = Field(default="en-GB")

    @field_validator("twilio_account_sid")
    @classmethod
    def check_account_sid(cls, value: str | None) -> str | None:
        if value is not None and not value.startswith("AC"):
            raise ValueError("Twilio account SID must start with 'AC'")
        return value

    @field_validator("twilio_application_sid")
    @classmethod
    def check_application_sid(cls, value: str | None) -> str | None:
        if value is not None and not value.startswith("AP"):
            raise ValueError("Twilio application SID must start with 'AP'")
        return value

    @field_validator("voice_url", "status_url")
    @classmethod
    def check_webhook_path(cls, value: str) -> str:
        # Webhooks are mounted at these paths; PUBLIC_BASE_URL supplies the host.
        if not value.startswith("/"):
            raise ValueError("Webhook URLs must be absolute paths, e.g. '/api/twilio/voice'")
        return value

    @field_validator("call_script_source")
    @classmethod
    def check_script_source(cls, value: str | None) -> str | None:
        if value is not None and value.count(":") != 1:
            raise ValueError("Call script source must look like 'package.module:attribute'")
        return value


@lru_cache(maxsize=1)
def get_settings() -> Settings:
    """Return a cached Settings instance."""

    return Settings()
