"""Directive names and helper functions for writing call scripts.

Helpers return ``[name, producer]`` descriptors:

    from calls import directives as d

    script = [
        d.say("Hello!"),
        d.gather_digits(4),
        lambda request: d.say(f"You pressed {request.digits}."),
        d.hang_up(),
    ]
"""

from __future__ import annotations

from enum import Enum
from typing import Any, Callable

from calls.errors import UnknownDirectiveError


class Directive(str, Enum):
    SAY = "say"
    PLAY = "play"
    SEND_DIGITS = "sendDigits"
    GATHER_DIGITS = "gatherDigits"
    DIAL = "dial"
    SEND_SMS = "sendSms"
    ENQUEUE = "enqueue"
    LEAVE = "leave"
    PAUSE = "pause"
    REDIRECT = "redirect"
    REJECT = "reject"
    HANG_UP = "hangUp"

    @classmethod
    def from_name(cls, name: str) -> Directive:
        try:
            return _DIRECTIVES_BY_NAME[name]
        except (KeyError, TypeError):
            raise UnknownDirectiveError(f'Invalid directive: "{name}".') from None


DIRECTIVE_ALIASES: dict[str, Directive] = {
    "speak": Directive.SAY,
    "playAudio": Directive.PLAY,
    "collectInput": Directive.GATHER_DIGITS,
    "connectCall": Directive.DIAL,
    "forwardCall": Directive.DIAL,
    "sendMessage": Directive.SEND_SMS,
    "leaveQueue": Directive.LEAVE,
    "redirectFlow": Directive.REDIRECT,
    "rejectCall": Directive.REJECT,
    "endCall": Directive.HANG_UP,
}

_DIRECTIVES_BY_NAME: dict[str, Directive] = {
    **{directive.value: directive for directive in Directive},
    **DIRECTIVE_ALIASES,
}


def _directive_factory(directive: Directive, default_key: str = "value") -> Callable[..., list]:
    def build(value: Any = None) -> list:
        def options(*_args: Any) -> dict[str, Any]:
            # Plain dicts are used as-is; anything else is stored under the
            # directive's default key.
            if isinstance(value, dict):
                return value
            return {default_key: value}

        return [directive.value, options]

    build.__name__ = directive.name.lower()
    build.__doc__ = f'Return a "{directive.value}" directive descriptor.'
    return build


dial = _directive_factory(Directive.DIAL)
enqueue = _directive_factory(Directive.ENQUEUE)
gather_digits = _directive_factory(Directive.GATHER_DIGITS, "numDigits")
hang_up = _directive_factory(Directive.HANG_UP)
leave = _directive_factory(Directive.LEAVE)
pause = _directive_factory(Directive.PAUSE, "length")
play = _directive_factory(Directive.PLAY)
redirect = _directive_factory(Directive.REDIRECT)
reject = _directive_factory(Directive.REJECT, "reason")
say = _directive_factory(Directive.SAY)
send_digits = _directive_factory(Directive.SEND_DIGITS)
send_sms = _directive_factory(Directive.SEND_SMS)
