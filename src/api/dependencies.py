"""Shared FastAPI dependencies.

Separated to avoid circular imports between route modules.
"""

from __future__ import annotations

import importlib
from functools import lru_cache

from calls.errors import ConfigurationError
from calls.registry import CallRegistry
from calls.runtime import ScriptRuntime
from calls.sources import ScriptSource
from config.settings import get_settings


def load_script_source(path: str) -> ScriptSource:
    """Import a call script source given as ``package.module:attribute``."""

    module_name, _, attribute = path.partition(":")
    try:
        module = importlib.import_module(module_name)
        source = getattr(module, attribute)
    except (ImportError, AttributeError) as exc:
        raise ConfigurationError(f'Unable to load call script source "{path}": {exc}') from exc

    if not callable(source):
        raise ConfigurationError(f'Call script source "{path}" is not callable.')
    return source


def _absolute(url: str, base_url: str | None) -> str:
    if base_url and url.startswith("/"):
        return f"{base_url.rstrip('/')}{url}"
    return url


@lru_cache(maxsize=1)
def get_runtime() -> ScriptRuntime:
    # Lazy import so tests can override the runtime without Twilio credentials.
    from integrations.twilio_client import TwilioPhoneNumberClient, get_twilio_config

    settings = get_settings()
    if not settings.call_script_source:
        raise ConfigurationError("CALL_SCRIPT_SOURCE is not configured")

    return ScriptRuntime(
        telephony_client=TwilioPhoneNumberClient(get_twilio_config()),
        script_source=load_script_source(settings.call_script_source),
        voice_url=_absolute(settings.voice_url, settings.public_base_url),
        voice_method=settings.voice_method,
        default_timeout=settings.default_timeout,
        say_voice=settings.say_voice,
        say_language=settings.say_language,
    )


@lru_cache(maxsize=1)
def _registry_factory() -> CallRegistry:
    return CallRegistry(get_runtime())


def get_registry() -> CallRegistry:
    return _registry_factory()
