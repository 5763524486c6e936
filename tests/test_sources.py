from __future__ import annotations

import asyncio
import threading

import pytest

from calls.errors import ConfigurationError
from calls.sources import accepts_callback, call_with_context, fetch_call_script, positional_capacity
from conftest import CALLER_NUMBER, run

SCRIPT = [["say", {"value": "Hi"}]]


def test_positional_capacity():
    assert positional_capacity(lambda: None) == 0
    assert positional_capacity(lambda number: None) == 1
    assert positional_capacity(lambda number, callback: None) == 2
    assert positional_capacity(lambda *args: None) is None
    assert positional_capacity(lambda number, *, flag=False: None) == 1


def test_accepts_callback_only_with_room_for_it():
    assert not accepts_callback(lambda number: None)
    assert accepts_callback(lambda number, callback: None)
    assert accepts_callback(lambda *args: None)


def test_value_provider():
    seen = []

    def provider(number):
        seen.append(number)
        return SCRIPT

    assert run(fetch_call_script(provider, CALLER_NUMBER)) is SCRIPT
    assert seen == [CALLER_NUMBER]


def test_value_provider_may_return_nothing():
    assert run(fetch_call_script(lambda number: None, CALLER_NUMBER)) is None


def test_awaitable_provider():
    async def provider(number):
        await asyncio.sleep(0)
        return SCRIPT

    assert run(fetch_call_script(provider, CALLER_NUMBER)) is SCRIPT


def test_callback_provider():
    def provider(number, callback):
        callback(None, SCRIPT)

    assert run(fetch_call_script(provider, CALLER_NUMBER)) is SCRIPT


def test_callback_from_another_thread():
    def provider(number, callback):
        threading.Thread(target=callback, args=(None, SCRIPT)).start()

    assert run(fetch_call_script(provider, CALLER_NUMBER)) is SCRIPT


def test_callback_answer_does_not_wait_for_the_coroutine():
    async def provider(number, callback):
        callback(None, SCRIPT)
        await asyncio.Event().wait()

    assert run(asyncio.wait_for(fetch_call_script(provider, CALLER_NUMBER), timeout=1)) is SCRIPT


def test_async_callback_provider_returning_nothing_waits_for_the_callback():
    async def provider(number, callback):
        asyncio.get_running_loop().call_later(0.01, callback, None, SCRIPT)

    assert run(fetch_call_script(provider, CALLER_NUMBER)) is SCRIPT


def test_failing_coroutine_becomes_configuration_error():
    async def provider(number):
        await asyncio.sleep(0)
        raise LookupError(number)

    with pytest.raises(ConfigurationError, match="No call script found") as excinfo:
        run(fetch_call_script(provider, CALLER_NUMBER))

    assert isinstance(excinfo.value.__cause__, LookupError)


def test_first_result_wins():
    other = [["hangUp"]]

    def provider(number, callback):
        callback(None, SCRIPT)
        return other

    assert run(fetch_call_script(provider, CALLER_NUMBER)) is SCRIPT


def test_callback_error_is_raised():
    def provider(number, callback):
        callback(ValueError("lookup failed"))

    with pytest.raises(ValueError, match="lookup failed"):
        run(fetch_call_script(provider, CALLER_NUMBER))


def test_raising_provider_becomes_configuration_error():
    def provider(number):
        raise KeyError(number)

    with pytest.raises(ConfigurationError, match="No call script found") as excinfo:
        run(fetch_call_script(provider, CALLER_NUMBER))

    assert isinstance(excinfo.value.__cause__, KeyError)


def test_call_with_context_skips_context_for_zero_arg_functions():
    async def produce(request):
        return {"value": request}

    assert run(call_with_context(lambda: {"value": "x"}, "ctx")) == {"value": "x"}
    assert run(call_with_context(produce, "ctx")) == {"value": "ctx"}
