"""Per-call state machine driving a call script across webhook requests.

A CallExecutor is created for each incoming call. It retrieves the caller's
call script, resolves script items to directive descriptors, and applies them
to a fresh TwiMLDocument on every webhook until a terminal directive is
reached. The position in the script is remembered so the next webhook resumes
right after the directive that paused the call.
"""

from __future__ import annotations

import json
import logging
from collections.abc import Sequence
from dataclasses import dataclass
from enum import Enum
from typing import Any
from xml.etree.ElementTree import Element

from calls.call_script import CallScript, is_script_provider
from calls.directives import Directive
from calls.errors import (
    CallCompletedError,
    ConfigurationError,
    MissingScriptError,
    NestedScriptPausedError,
    ScriptTypeError,
    ScriptValidationError,
)
from calls.grammar import CALL_SCRIPT_SCHEMA, DIRECTIVE_DESCRIPTOR_SCHEMA
from calls.runtime import ScriptRuntime
from calls.schemas import CallRequest, DirectiveDescriptor
from calls.sources import call_with_context, fetch_call_script
from calls.validation import is_valid, validate
from telephony.twiml import TwiMLDocument, extract_response_body

LOGGER = logging.getLogger(__name__)


class SessionState(str, Enum):
    RUNNING = "running"
    PAUSED = "paused"
    COMPLETED = "completed"


@dataclass
class CallSession:
    """In-memory record of one call's progress through its script."""

    call_sid: str
    request: CallRequest
    script: list[Any] | None = None
    cursor: int = 0
    paused: bool = False
    completed: bool = False

    @property
    def state(self) -> SessionState:
        if self.completed:
            return SessionState.COMPLETED
        if self.paused:
            return SessionState.PAUSED
        return SessionState.RUNNING


def _type_name(value: Any) -> str:
    return type(value).__name__


class CallExecutor:
    """Manages script position and state for a single call.

    Use ``await CallExecutor.create(...)``; construction has to fetch and
    resolve the call script, which may suspend.
    """

    def __init__(self, request: CallRequest, runtime: ScriptRuntime) -> None:
        self._runtime = runtime
        self.session = CallSession(call_sid=request.call_sid, request=request)

    @classmethod
    async def create(
        cls,
        request: CallRequest,
        runtime: ScriptRuntime,
        script: Sequence[Any] | None = None,
    ) -> CallExecutor:
        executor = cls(request, runtime)

        if script is not None:
            await executor._set_call_script(script, request)
            LOGGER.debug("Created call executor from provided call script")
            return executor

        if runtime.script_source is None:
            raise ConfigurationError("No call script source has been configured.")

        raw_script = await fetch_call_script(runtime.script_source, request.from_number)
        if raw_script is None:
            raise ConfigurationError(f'No call script returned for "{request.from_number}".')

        await executor._set_call_script(raw_script, request)
        LOGGER.debug(
            "Created call executor for %s => %s",
            request.from_number,
            request.to_number or "N/A",
        )
        return executor

    def is_paused(self) -> bool:
        """True while the call awaits input via another webhook from Twilio."""

        return self.session.paused

    def is_completed(self) -> bool:
        """True once the end of the call script has been reached."""

        return self.session.completed

    async def _set_call_script(self, value: Any, request: CallRequest) -> None:
        if isinstance(value, type) and issubclass(value, CallScript):
            LOGGER.debug("Got CallScript class; instantiating it.")
            return await self._set_call_script(value(self._runtime.telephony_client), request)

        if is_script_provider(value):
            root = value.root
            if callable(root):
                LOGGER.debug("Got CallScript instance; recursing with the result of its root.")
                return await self._set_call_script(await call_with_context(root, request), request)
            if isinstance(root, (list, tuple)):
                LOGGER.debug("Got CallScript instance; recursing with its root list.")
                return await self._set_call_script(root, request)
            raise ScriptTypeError(
                f'CallScript "root" member must be callable or a list, got "{_type_name(root)}".'
            )

        if callable(value):
            LOGGER.debug("Got a function; recursing with its return value.")
            return await self._set_call_script(await call_with_context(value, request), request)

        if isinstance(value, str):
            LOGGER.debug("Got a string; recursing with its deserialized value.")
            try:
                parsed = json.loads(value)
            except json.JSONDecodeError as exc:
                raise ScriptTypeError(f"Call script string is not valid JSON: {exc}") from exc
            return await self._set_call_script(parsed, request)

        if isinstance(value, (list, tuple)):
            validate(CALL_SCRIPT_SCHEMA, value)
            self.session.script = list(value)
            LOGGER.debug("Set call script with %d item(s).", len(value))
            return None

        raise ScriptTypeError(
            "Expected call script to be a CallScript, function, string or list, "
            f'got "{_type_name(value)}".'
        )

    async def _resolve_item(self, value: Any, request: CallRequest) -> DirectiveDescriptor:
        if callable(value):
            LOGGER.debug("Got a function; recursing with its return value.")
            return await self._resolve_item(await call_with_context(value, request), request)

        if isinstance(value, str):
            LOGGER.debug("Got a string; recursing with its deserialized value.")
            try:
                parsed = json.loads(value)
            except json.JSONDecodeError as exc:
                raise ScriptTypeError("Call script item string is not valid JSON.") from exc
            return await self._resolve_item(parsed, request)

        if isinstance(value, (list, tuple)):
            if is_valid(DIRECTIVE_DESCRIPTOR_SCHEMA, value):
                return DirectiveDescriptor.from_sequence(value)

            # Not a descriptor: the list replaces the current script and
            # execution continues from its first item.
            LOGGER.debug("List is not a directive descriptor; setting it as the new call script.")
            try:
                await self._set_call_script(value, request)
            except ScriptValidationError as exc:
                raise ScriptValidationError(
                    "Item is neither a valid directive descriptor nor a valid call script.",
                    exc.violations,
                ) from exc

            self.session.cursor = 0
            if not self.session.script:
                raise ScriptTypeError("Nested call script is empty.")
            return await self._resolve_item(self.session.script[0], request)

        raise ScriptTypeError(
            "Expected call script item to be a function, string or list, "
            f'got "{_type_name(value)}".'
        )

    async def advance(self, request: CallRequest) -> str:
        """Apply script items to a new TwiML document until one is terminal.

        Returns the rendered document. If the script runs out without a
        terminal directive the call is marked completed; no <Hangup> is added
        so nested scripts can be evaluated with the same machinery.
        """

        session = self.session
        if session.script is None:
            raise MissingScriptError()
        if session.completed:
            raise CallCompletedError()

        session.paused = False
        document = TwiMLDocument(self._runtime, executor=self, request=request)

        while session.cursor < len(session.script):
            descriptor = await self._resolve_item(session.script[session.cursor], request)
            directive = Directive.from_name(descriptor.name)
            result = await document.apply(directive, descriptor.options)
            session.cursor += 1

            if result.terminal:
                session.paused = True
                break

        if not session.paused:
            session.completed = True
            LOGGER.debug("Reached the end of the call script for %s.", session.call_sid)

        return document.render()

    async def evaluate_immediately(self, script: Sequence[Any]) -> list[Element]:
        """Render a nested script (e.g. verbs inside <Gather>) without pausing.

        The script runs in a throwaway executor bound to this call's first
        request and must complete without reaching a terminal directive.
        """

        nested = await CallExecutor.create(self.session.request, self._runtime, script=script)
        markup = await nested.advance(self.session.request)

        if not nested.is_completed():
            raise NestedScriptPausedError()

        return extract_response_body(markup)
