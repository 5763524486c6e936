"""Calling conventions for user-provided functions.

Script source providers are called with the caller's phone number and may
deliver a call script in one of three ways:

- ``VALUE``: return it.
- ``AWAITABLE``: return an awaitable resolving to it (e.g. an ``async def``).
- ``CALLBACK``: accept a second ``callback(error, script)`` argument and call it.

Whichever of these produces a result first wins; later results are discarded.
"""

from __future__ import annotations

import asyncio
import inspect
import logging
import threading
from enum import Enum
from typing import Any, Callable

from calls.errors import ConfigurationError

LOGGER = logging.getLogger(__name__)

ScriptSource = Callable[..., Any]


class SourceConvention(str, Enum):
    VALUE = "value"
    AWAITABLE = "awaitable"
    CALLBACK = "callback"


def positional_capacity(fn: Callable[..., Any]) -> int | None:
    """Return how many positional arguments ``fn`` accepts, or None if unbounded."""

    try:
        signature = inspect.signature(fn)
    except (TypeError, ValueError):
        return None

    count = 0
    for parameter in signature.parameters.values():
        if parameter.kind is inspect.Parameter.VAR_POSITIONAL:
            return None
        if parameter.kind in (
            inspect.Parameter.POSITIONAL_ONLY,
            inspect.Parameter.POSITIONAL_OR_KEYWORD,
        ):
            count += 1
    return count


def accepts_callback(provider: ScriptSource) -> bool:
    capacity = positional_capacity(provider)
    return capacity is None or capacity >= 2


async def call_with_context(fn: Callable[..., Any], context: Any) -> Any:
    """Call a resolver or options producer, awaiting its result if needed.

    Zero-argument functions are called without the request context.
    """

    capacity = positional_capacity(fn)
    result = fn(context) if capacity is None or capacity >= 1 else fn()
    if inspect.isawaitable(result):
        result = await result
    return result


# Provider coroutines may outlive the fetch once a callback has answered.
_PENDING_SOURCES: set[asyncio.Future] = set()


async def fetch_call_script(provider: ScriptSource, caller_id: str | None) -> Any:
    """Ask ``provider`` for the call script belonging to ``caller_id``."""

    loop = asyncio.get_running_loop()
    loop_thread = threading.get_ident()
    outcome: asyncio.Future = loop.create_future()
    with_callback = accepts_callback(provider)

    def settle(convention: SourceConvention, error: Any, value: Any) -> None:
        if outcome.done():
            LOGGER.debug("Discarding late %s result for %s", convention.value, caller_id)
            return
        LOGGER.debug("Call script for %s resolved via %s", caller_id, convention.value)
        if error is None:
            outcome.set_result(value)
        elif isinstance(error, BaseException):
            outcome.set_exception(error)
        else:
            outcome.set_exception(ConfigurationError(str(error)))

    def fail(convention: SourceConvention, exc: BaseException) -> None:
        if outcome.done():
            LOGGER.debug("Ignoring late %s failure for %s: %r", convention.value, caller_id, exc)
            return
        LOGGER.error("Call script source failed for %s: %r", caller_id, exc)
        error = ConfigurationError(f'No call script found for number "{caller_id}".')
        error.__cause__ = exc
        settle(convention, error, None)

    def deliver(convention: SourceConvention, value: Any) -> None:
        # A callback-style provider may still deliver after returning nothing.
        if value is not None or not with_callback:
            settle(convention, None, value)

    def callback(error: Any = None, value: Any = None) -> None:
        if threading.get_ident() == loop_thread:
            settle(SourceConvention.CALLBACK, error, value)
        else:
            loop.call_soon_threadsafe(settle, SourceConvention.CALLBACK, error, value)

    def on_provider_done(task: asyncio.Future) -> None:
        _PENDING_SOURCES.discard(task)
        if task.cancelled():
            fail(SourceConvention.AWAITABLE, asyncio.CancelledError())
        elif task.exception() is not None:
            fail(SourceConvention.AWAITABLE, task.exception())
        else:
            deliver(SourceConvention.AWAITABLE, task.result())

    try:
        returned = provider(caller_id, callback) if with_callback else provider(caller_id)
    except Exception as exc:
        fail(SourceConvention.VALUE, exc)
        return await outcome

    if inspect.isawaitable(returned):
        task = asyncio.ensure_future(returned)
        _PENDING_SOURCES.add(task)
        task.add_done_callback(on_provider_done)
    else:
        deliver(SourceConvention.VALUE, returned)

    return await outcome
