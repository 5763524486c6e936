from __future__ import annotations

import asyncio
import os
import sys
from pathlib import Path

import pytest
from fastapi.testclient import TestClient

REPO_ROOT = Path(__file__).resolve().parents[1]
SRC_PATH = REPO_ROOT / "src"
if str(SRC_PATH) not in sys.path:
    sys.path.insert(0, str(SRC_PATH))

from calls.runtime import ScriptRuntime  # noqa: E402
from calls.schemas import CallRequest  # noqa: E402

ACCOUNT_SID = "AC00000000000000000000000000000000"
APPLICATION_SID = "AP00000000000000000000000000000000"
APP_NUMBER = "+15005550006"
CALLER_NUMBER = "+41441234567"


def run(coro):
    return asyncio.run(coro)


class FakePhoneNumberClient:
    def __init__(self, numbers: list[str] | None = None) -> None:
        self.numbers = [APP_NUMBER] if numbers is None else numbers
        self.calls = 0

    async def list_application_numbers(self) -> list[str]:
        self.calls += 1
        return list(self.numbers)


def make_request(call_sid: str = "CA111", **fields: str) -> CallRequest:
    params = {
        "CallSid": call_sid,
        "From": CALLER_NUMBER,
        "To": APP_NUMBER,
        "CallStatus": "in-progress",
        "AccountSid": ACCOUNT_SID,
        "ApplicationSid": APPLICATION_SID,
        **fields,
    }
    return CallRequest.from_params(params)


def make_runtime(
    script_source=None,
    numbers: list[str] | None = None,
    voice_url: str = "https://example.test/api/twilio/voice",
) -> ScriptRuntime:
    return ScriptRuntime(
        telephony_client=FakePhoneNumberClient(numbers),
        script_source=script_source,
        voice_url=voice_url,
        voice_method="POST",
    )


@pytest.fixture(scope="session")
def app():
    os.environ["TWILIO_ACCOUNT_SID"] = ACCOUNT_SID
    os.environ["TWILIO_APPLICATION_SID"] = APPLICATION_SID
    os.environ["ENVIRONMENT"] = "local"

    import importlib

    # Ensure clean import with the test settings.
    for module_name in [
        "config.settings",
        "api.dependencies",
        "api.twilio_routes",
        "main",
    ]:
        sys.modules.pop(module_name, None)

    main = importlib.import_module("main")
    return main.app


@pytest.fixture()
def client(app):
    with TestClient(app) as test_client:
        yield test_client

    app.dependency_overrides.clear()
