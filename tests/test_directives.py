from __future__ import annotations

import pytest

from calls import directives as d
from calls.directives import Directive
from calls.errors import UnknownDirectiveError


def test_canonical_names_and_aliases_resolve():
    assert Directive.from_name("say") is Directive.SAY
    assert Directive.from_name("speak") is Directive.SAY
    assert Directive.from_name("endCall") is Directive.HANG_UP
    assert Directive.from_name("forwardCall") is Directive.DIAL
    assert Directive.from_name("collectInput") is Directive.GATHER_DIGITS


@pytest.mark.parametrize("name", ["shout", "", "SAY", None])
def test_unknown_directive(name):
    with pytest.raises(UnknownDirectiveError, match="Invalid directive"):
        Directive.from_name(name)


def test_helper_wraps_plain_values_under_default_key():
    name, producer = d.say("Hello")
    assert name == "say"
    assert producer(None) == {"value": "Hello"}

    assert d.gather_digits(4)[1](None) == {"numDigits": 4}
    assert d.pause(2)[1](None) == {"length": 2}
    assert d.reject("busy")[1](None) == {"reason": "busy"}


def test_helper_passes_dicts_through():
    options = {"value": "+15005550006", "timeLimit": 60}
    assert d.dial(options)[1](None) is options


def test_helper_without_argument():
    name, producer = d.hang_up()
    assert name == "hangUp"
    assert producer(None) == {"value": None}
