"""TwiML document builder.

Each directive method ingests an options object (or a function producing one),
validates it, and adds markup to the document. A single TwiMLDocument answers
a single webhook request; once rendered, nothing more can be added.

There is typically a 1:1 relationship between a directive and a TwiML verb,
but some directives render several verbs (e.g. <Gather> is followed by a
<Redirect> so that a timeout resumes the script the same way input does).
"""

from __future__ import annotations

import logging
from collections.abc import Mapping
from dataclasses import dataclass
from typing import TYPE_CHECKING, Any, Awaitable, Callable
from xml.etree import ElementTree

from twilio.twiml import TwiML
from twilio.twiml.voice_response import VoiceResponse

from calls.directives import Directive
from calls.errors import (
    ConfigurationError,
    DocumentRenderedError,
    InvalidPhoneNumberError,
    MalformedMarkupError,
    MissingSourceAddressError,
    ScriptTypeError,
)
from calls.grammar import CALL_SCRIPT_SCHEMA
from calls.runtime import ScriptRuntime
from calls.sources import call_with_context
from calls.validation import validate
from telephony.constants import LANGUAGE_TAGS, RING_TONES, TWILIO_HTTP_METHODS
from telephony.phone_numbers import is_valid_phone_number

if TYPE_CHECKING:  # pragma: no cover
    from calls.executor import CallExecutor
    from calls.schemas import CallRequest

LOGGER = logging.getLogger(__name__)

_METHOD = {"type": "string", "enum": list(TWILIO_HTTP_METHODS)}
_TRIM = {"type": "string", "enum": ["trim-silence", "do-not-trim"]}


def _options_schema(domain: str, properties: dict[str, Any], **extra: Any) -> dict[str, Any]:
    return {
        "$meta": {"domain": f"TwiMLDocument::{domain}", "label": "options"},
        "type": "object",
        "properties": properties,
        "additionalProperties": False,
        **extra,
    }


SAY_SCHEMA = _options_schema(
    "say",
    {
        "value": {"type": "string"},
        "language": {"type": "string"},
        "voice": {"type": "string"},
        "loop": {"type": "number", "minimum": 0},
    },
    required=["value"],
)

# Either "value" or "digits", never both.
PLAY_SCHEMA = _options_schema(
    "play",
    {
        "value": {"type": "string"},
        "loop": {"type": "number", "minimum": 0},
        "digits": {"type": "string"},
    },
    oneOf=[{"required": ["value"]}, {"required": ["digits"]}],
)

SEND_DIGITS_SCHEMA = _options_schema(
    "sendDigits",
    {"value": {"type": "string", "pattern": "^[0-9wW*#]+$"}},
    required=["value"],
)

GATHER_SCHEMA = _options_schema(
    "gatherDigits",
    {
        "numDigits": {"type": "number", "minimum": 0},
        "action": {"type": "string"},
        "method": _METHOD,
        "finishOnKey": {"type": "string"},
        "hints": {"type": "string"},
        "input": {"type": "string", "enum": ["dtmf", "speech", "dtmf speech"]},
        "language": {"type": "string", "enum": list(LANGUAGE_TAGS)},
        "profanityFilter": {"type": "boolean"},
        "speechTimeout": {"type": "number"},
        "timeout": {"type": "number"},
        # Optional nested call script rendered inside <Gather>.
        "children": CALL_SCRIPT_SCHEMA,
    },
    required=["action", "method", "numDigits"],
)

DIAL_NOUNS = ("clients", "conference", "queue", "sim", "sip")

DIAL_SCHEMA = _options_schema(
    "dial",
    {
        # Number to dial.
        "value": {"type": "string"},
        "action": {"type": "string"},
        "method": _METHOD,
        "answerOnBridge": {"type": "boolean"},
        "callerId": {"type": "string"},
        "hangupOnStar": {"type": "boolean"},
        "record": {
            "type": "string",
            "enum": [
                "do-not-record",
                "record-from-answer",
                "record-from-ringing",
                "record-from-answer-dual",
                "record-from-ringing-dual",
            ],
        },
        "ringTone": {"type": "string", "enum": list(RING_TONES)},
        "timeLimit": {"type": "number", "minimum": 0},
        "timeout": {"type": "number"},
        "trim": _TRIM,
        "clients": {"type": "array", "maxItems": 10, "items": {"type": "string"}},
        "conference": {
            "type": "object",
            "properties": {
                # Name of the conference room to join or create.
                "value": {"type": "string"},
                "beep": {"type": "boolean"},
                "startConferenceOnEnter": {"type": "boolean"},
                "endConferenceOnExit": {"type": "boolean"},
                "waitUrl": {"type": "string"},
                "waitMethod": _METHOD,
                "maxParticipants": {"type": "number", "minimum": 2, "maximum": 250},
                "record": {"type": "string", "enum": ["record-from-start", "do-not-record"]},
                "region": {"type": "string", "enum": ["us1", "ie1", "de1", "sg1", "br1", "au1", "jp1"]},
                "trim": _TRIM,
                "coach": {"type": "string"},
            },
            "required": ["value"],
            "additionalProperties": False,
        },
        "queue": {
            "type": "object",
            "properties": {
                # Name of the queue to pull a waiting caller from.
                "value": {"type": "string"},
                "url": {"type": "string"},
                "method": _METHOD,
                "reservationSid": {"type": "string"},
                "postWorkActivitySid": {"type": "string"},
            },
            "required": ["value"],
            "additionalProperties": False,
        },
        "sim": {"type": "string"},
        "sip": {
            "type": "object",
            "properties": {
                # SIP endpoint to call.
                "value": {"type": "string"},
                "url": {"type": "string"},
                "method": _METHOD,
            },
            "required": ["value"],
            "additionalProperties": False,
        },
    },
    required=["value"],
)

SMS_SCHEMA = _options_schema(
    "sendSms",
    {
        # Body of the message.
        "value": {"type": "string"},
        "to": {"type": "string"},
        "from": {"type": "string"},
    },
    required=["value", "to"],
)

ENQUEUE_SCHEMA = _options_schema(
    "enqueue",
    {
        # Name of the queue to place the caller in.
        "value": {"type": "string"},
        "waitUrl": {"type": "string"},
        "waitUrlMethod": _METHOD,
    },
    required=["value"],
)

LEAVE_SCHEMA = _options_schema("leave", {})

PAUSE_SCHEMA = _options_schema(
    "pause",
    {"length": {"type": "number", "minimum": 0}},
    required=["length"],
)

REDIRECT_SCHEMA = _options_schema(
    "redirect",
    {
        # URL of the TwiML document to continue with.
        "value": {"type": "string"},
        "method": _METHOD,
    },
    required=["value"],
)

REJECT_SCHEMA = _options_schema(
    "reject",
    {"reason": {"type": "string", "enum": ["rejected", "busy"]}},
)

HANG_UP_SCHEMA = _options_schema("hangUp", {})


@dataclass(frozen=True)
class DirectiveResult:
    """Outcome of applying a directive; terminal directives pause the call."""

    terminal: bool


DirectiveHandler = Callable[[Any], Awaitable[DirectiveResult]]


def _without(options: Mapping[str, Any], *keys: str) -> dict[str, Any]:
    return {key: value for key, value in options.items() if key not in keys}


def _drop_none(options: Mapping[str, Any]) -> dict[str, Any]:
    return {key: value for key, value in options.items() if value is not None}


def extract_response_body(markup: str) -> list[ElementTree.Element]:
    """Return the verbs inside the <Response> envelope of a rendered document."""

    try:
        root = ElementTree.fromstring(markup.encode("utf-8"))
    except ElementTree.ParseError as exc:
        raise MalformedMarkupError(f"Encountered an error while parsing TwiML: {exc}") from exc

    if root.tag != "Response":
        raise MalformedMarkupError(f'Expected a <Response> envelope, got <{root.tag}>.')
    return list(root)


def _graft(parent: TwiML, element: ElementTree.Element) -> None:
    child = parent.add_child(element.tag, element.text, **element.attrib)
    for grandchild in element:
        _graft(child, grandchild)


class TwiMLDocument:
    """Builds the TwiML answer to one webhook request."""

    def __init__(
        self,
        runtime: ScriptRuntime,
        *,
        executor: CallExecutor | None = None,
        request: CallRequest | None = None,
    ) -> None:
        self._runtime = runtime
        self._executor = executor
        self._request = request
        self._response = VoiceResponse()
        self._rendered = False
        self._handlers: dict[Directive, DirectiveHandler] = {
            Directive.SAY: self.say,
            Directive.PLAY: self.play,
            Directive.SEND_DIGITS: self.send_digits,
            Directive.GATHER_DIGITS: self.gather_digits,
            Directive.DIAL: self.dial,
            Directive.SEND_SMS: self.send_sms,
            Directive.ENQUEUE: self.enqueue,
            Directive.LEAVE: self.leave,
            Directive.PAUSE: self.pause,
            Directive.REDIRECT: self.redirect,
            Directive.REJECT: self.reject,
            Directive.HANG_UP: self.hang_up,
        }

    @property
    def rendered(self) -> bool:
        return self._rendered

    async def apply(self, directive: Directive, options: Any = None) -> DirectiveResult:
        return await self._handlers[directive](options)

    def render(self) -> str:
        """Return the XML document. Nothing may be added afterwards."""

        self._render_check()
        self._rendered = True
        return self._response.to_xml()

    # ----- General -----------------------------------------------------------

    def _render_check(self) -> None:
        if self._rendered:
            raise DocumentRenderedError()

    async def _parse_options(
        self,
        options: Any,
        defaults: Mapping[str, Any] | None = None,
    ) -> dict[str, Any]:
        if callable(options):
            produced = await call_with_context(options, self._request)
            return await self._parse_options(produced, defaults)

        if options is None:
            options = {}
        if not isinstance(options, Mapping):
            raise ScriptTypeError(
                f'Directive options must be a mapping or a function, got "{type(options).__name__}".'
            )
        return {**_drop_none(defaults or {}), **_drop_none(options)}

    async def _compute_source_number(self, candidate: Any) -> str:
        """Pick the caller ID / From number used by <Dial> and <Sms>."""

        if is_valid_phone_number(candidate):
            return candidate

        numbers = await self._runtime.telephony_client.list_application_numbers()
        app_number = numbers[0] if numbers else None

        if app_number and is_valid_phone_number(app_number):
            LOGGER.warning(
                "Directive was not invoked with a valid source phone number; "
                "using the first number linked to the application (%s).",
                app_number,
            )
            return app_number

        raise MissingSourceAddressError("No suitable caller ID could be found; unable to forward call.")

    # ----- <Say> -------------------------------------------------------------

    async def say(self, options: Any = None) -> DirectiveResult:
        self._render_check()
        opts = await self._parse_options(
            options,
            {"voice": self._runtime.say_voice, "language": self._runtime.say_language},
        )
        validate(SAY_SCHEMA, opts)

        self._response.say(opts["value"], **_without(opts, "value"))

        LOGGER.info('Say: "%s"', opts["value"])
        LOGGER.debug("- Language: %s, voice: %s", opts.get("language"), opts.get("voice"))
        return DirectiveResult(terminal=False)

    # ----- <Play> ------------------------------------------------------------

    async def play(self, options: Any = None) -> DirectiveResult:
        self._render_check()
        opts = await self._parse_options(options)
        validate(PLAY_SCHEMA, opts)

        self._response.play(opts.get("value"), **_without(opts, "value"))

        if "value" in opts:
            LOGGER.info('Playing: "%s".', opts["value"])
        if "digits" in opts:
            LOGGER.info('Sending DTMF sequence: "%s".', opts["digits"])
        return DirectiveResult(terminal=False)

    async def send_digits(self, options: Any = None) -> DirectiveResult:
        """Play DTMF tones; a shorthand for <Play digits="...">."""

        self._render_check()
        opts = await self._parse_options(options)
        validate(SEND_DIGITS_SCHEMA, opts)
        return await self.play({"digits": opts["value"]})

    # ----- <Gather> ----------------------------------------------------------

    async def gather_digits(self, options: Any = None) -> DirectiveResult:
        """Wait for the caller to enter digits or speak.

        A <Redirect> to the voice URL follows the <Gather>, so a timeout makes
        Twilio request the same URL it would have requested with input. Scripts
        can then simply check for ``Digits`` in the next request.
        """

        self._render_check()
        runtime = self._runtime
        opts = await self._parse_options(
            options,
            {
                "action": runtime.voice_url,
                "method": runtime.voice_method,
                "timeout": runtime.default_timeout,
            },
        )
        validate(GATHER_SCHEMA, opts)

        gather = self._response.gather(**_without(opts, "children"))

        if opts.get("children"):
            if self._executor is None:
                raise ConfigurationError("Nested call scripts require a call executor.")
            for element in await self._executor.evaluate_immediately(opts["children"]):
                _graft(gather, element)

        self._response.redirect(runtime.voice_url, method=runtime.voice_method)

        LOGGER.info("Waiting for user input...")
        LOGGER.debug("- Maximum digits: %s, timeout: %ss", opts["numDigits"], opts.get("timeout"))
        return DirectiveResult(terminal=True)

    # ----- <Dial> ------------------------------------------------------------

    async def dial(self, options: Any = None) -> DirectiveResult:
        self._render_check()
        runtime = self._runtime
        opts = await self._parse_options(
            options,
            {
                "action": runtime.voice_url,
                "method": runtime.voice_method,
                "timeout": runtime.default_timeout,
            },
        )
        validate(DIAL_SCHEMA, opts)

        if not is_valid_phone_number(opts["value"]):
            raise InvalidPhoneNumberError(f'Provided value is not a valid phone number: "{opts["value"]}".')

        opts["callerId"] = await self._compute_source_number(opts.get("callerId"))

        dial = self._response.dial(**_without(opts, "value", *DIAL_NOUNS))
        dial.number(opts["value"])
        LOGGER.info('Dialing: "%s" (caller ID %s).', opts["value"], opts["callerId"])

        for client in opts.get("clients", []):
            dial.client(client)
            LOGGER.debug('- Client: "%s".', client)

        if "conference" in opts:
            conference = opts["conference"]
            dial.conference(conference["value"], **_without(conference, "value"))
            LOGGER.debug('- Conference: "%s".', conference["value"])

        if "queue" in opts:
            queue = opts["queue"]
            dial.queue(queue["value"], **_without(queue, "value"))
            LOGGER.debug('- Queue: "%s".', queue["value"])

        if "sim" in opts:
            dial.sim(opts["sim"])
            LOGGER.debug('- SIM: "%s".', opts["sim"])

        if "sip" in opts:
            sip = opts["sip"]
            dial.sip(sip["value"], **_without(sip, "value"))
            LOGGER.debug('- SIP: "%s".', sip["value"])

        # Twilio hangs up once the dialled party disconnects, so a <Dial> at
        # the end of a script ends the call.
        return DirectiveResult(terminal=True)

    # ----- <Sms> -------------------------------------------------------------

    async def send_sms(self, options: Any = None) -> DirectiveResult:
        self._render_check()
        opts = await self._parse_options(options)
        validate(SMS_SCHEMA, opts)

        if not is_valid_phone_number(opts["to"]):
            raise InvalidPhoneNumberError(f'"To" number is not a valid phone number: "{opts["to"]}".')

        source = await self._compute_source_number(opts.get("from"))
        self._response.add_child("Sms", opts["value"], to=opts["to"], from_=source)

        LOGGER.info('SMS: "%s"', opts["value"])
        LOGGER.debug("- To: %s, from: %s", opts["to"], source)
        return DirectiveResult(terminal=False)

    # ----- <Enqueue> ---------------------------------------------------------

    async def enqueue(self, options: Any = None) -> DirectiveResult:
        self._render_check()
        runtime = self._runtime
        opts = await self._parse_options(
            options,
            {"waitUrl": runtime.voice_url, "waitUrlMethod": runtime.voice_method},
        )
        validate(ENQUEUE_SCHEMA, opts)

        self._response.enqueue(opts["value"], **_without(opts, "value"))
        LOGGER.info('Enqueue: "%s"', opts["value"])

        await self.redirect({})
        return DirectiveResult(terminal=True)

    # ----- <Leave> -----------------------------------------------------------

    async def leave(self, options: Any = None) -> DirectiveResult:
        self._render_check()
        validate(LEAVE_SCHEMA, await self._parse_options(options))

        self._response.leave()

        LOGGER.info("Leaving current queue.")
        return DirectiveResult(terminal=True)

    # ----- <Pause> -----------------------------------------------------------

    async def pause(self, options: Any = None) -> DirectiveResult:
        self._render_check()
        opts = await self._parse_options(options)
        validate(PAUSE_SCHEMA, opts)

        self._response.pause(length=opts["length"])

        LOGGER.info("Pause: %ss", opts["length"])
        return DirectiveResult(terminal=False)

    # ----- <Redirect> --------------------------------------------------------

    async def redirect(self, options: Any = None) -> DirectiveResult:
        """Continue the call with the TwiML at another URL.

        Without a "value" Twilio re-requests the voice URL; since the directive
        is terminal, the script only moves on once that request arrives.
        """

        self._render_check()
        runtime = self._runtime
        opts = await self._parse_options(
            options,
            {"value": runtime.voice_url, "method": runtime.voice_method},
        )
        validate(REDIRECT_SCHEMA, opts)

        self._response.redirect(opts["value"], method=opts["method"])

        LOGGER.info('Redirect: "%s" (%s)', opts["value"], opts.get("method"))
        return DirectiveResult(terminal=True)

    # ----- <Reject> ----------------------------------------------------------

    async def reject(self, options: Any = None) -> DirectiveResult:
        """Reject the call without billing the Twilio account."""

        self._render_check()
        opts = await self._parse_options(options)
        validate(REJECT_SCHEMA, opts)

        self._response.reject(**opts)

        LOGGER.info("Rejecting call.")
        return DirectiveResult(terminal=True)

    # ----- <Hangup> ----------------------------------------------------------

    async def hang_up(self, options: Any = None) -> DirectiveResult:
        self._render_check()
        validate(HANG_UP_SCHEMA, await self._parse_options(options))

        # Hanging up immediately tends to cut off audio from a preceding
        # <Say> or <Play>.
        self._response.pause(length=1)
        self._response.hangup()

        LOGGER.info("Ending call.")
        return DirectiveResult(terminal=True)
