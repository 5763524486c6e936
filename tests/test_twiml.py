from __future__ import annotations

from xml.etree import ElementTree

import pytest

from calls.directives import Directive
from calls.errors import (
    DocumentRenderedError,
    InvalidPhoneNumberError,
    MalformedMarkupError,
    ScriptTypeError,
    ScriptValidationError,
)
from conftest import APP_NUMBER, make_request, make_runtime, run
from telephony.twiml import TwiMLDocument, extract_response_body


def _document(numbers=None):
    return TwiMLDocument(make_runtime(numbers=numbers), request=make_request())


def _render(document):
    return ElementTree.fromstring(document.render().encode())


def test_render_twice_fails():
    document = _document()
    run(document.say({"value": "hi"}))
    document.render()

    assert document.rendered
    with pytest.raises(DocumentRenderedError):
        document.render()
    with pytest.raises(DocumentRenderedError):
        run(document.say({"value": "again"}))


def test_apply_reports_terminality():
    document = _document()

    assert run(document.apply(Directive.SAY, {"value": "hi"})).terminal is False
    assert run(document.apply(Directive.REDIRECT, None)).terminal is True


def test_options_producer_receives_the_request():
    document = _document()

    async def produce(request):
        return {"value": request.call_sid}

    run(document.say(produce))

    assert _render(document)[0].text == "CA111"


def test_options_must_be_a_mapping():
    with pytest.raises(ScriptTypeError):
        run(_document().say("hi"))


def test_unknown_option_is_rejected():
    with pytest.raises(ScriptValidationError, match="TwiMLDocument::say"):
        run(_document().say({"value": "hi", "volume": 11}))


def test_play_value_and_digits_are_exclusive():
    with pytest.raises(ScriptValidationError):
        run(_document().play({"value": "https://example.test/a.mp3", "digits": "12"}))


def test_send_digits_plays_dtmf():
    document = _document()
    run(document.send_digits({"value": "1234#"}))

    play = _render(document)[0]
    assert play.tag == "Play"
    assert play.get("digits") == "1234#"
    assert play.text is None


def test_dial_uses_application_number_as_caller_id():
    document = _document()
    result = run(
        document.dial(
            {
                "value": "+14155550001",
                "clients": ["alice", "bob"],
                "conference": {"value": "room", "beep": False},
                "sip": {"value": "sip:desk@example.test"},
            }
        )
    )

    assert result.terminal
    dial = _render(document)[0]
    assert dial.get("callerId") == APP_NUMBER
    assert dial.get("timeout") == "5"
    assert [child.tag for child in dial] == ["Number", "Client", "Client", "Conference", "Sip"]
    assert dial[0].text == "+14155550001"
    assert dial[3].get("beep") == "false"


def test_dial_keeps_a_valid_caller_id():
    document = _document(numbers=[])
    run(document.dial({"value": "+14155550001", "callerId": "+14155550002"}))

    assert _render(document)[0].get("callerId") == "+14155550002"


def test_dial_rejects_malformed_numbers():
    with pytest.raises(InvalidPhoneNumberError):
        run(_document().dial({"value": "call me maybe"}))


def test_send_sms_resolves_from_number():
    document = _document()
    result = run(document.send_sms({"value": "Your code is 1234", "to": "+41791234567"}))

    assert not result.terminal
    sms = _render(document)[0]
    assert sms.tag == "Sms"
    assert sms.text == "Your code is 1234"
    assert sms.get("to") == "+41791234567"
    assert sms.get("from") == APP_NUMBER


def test_send_sms_rejects_malformed_recipient():
    with pytest.raises(InvalidPhoneNumberError):
        run(_document().send_sms({"value": "hi", "to": "0"}))


def test_enqueue_is_followed_by_redirect():
    document = _document()
    run(document.enqueue({"value": "support"}))

    root = _render(document)
    assert [child.tag for child in root] == ["Enqueue", "Redirect"]
    assert root[0].text == "support"
    assert root[0].get("waitUrl") == "https://example.test/api/twilio/voice"


def test_hang_up_pauses_first():
    document = _document()
    run(document.hang_up())

    root = _render(document)
    assert [child.tag for child in root] == ["Pause", "Hangup"]
    assert root[0].get("length") == "1"


def test_reject_reason_is_validated():
    document = _document()
    run(document.reject({"reason": "busy"}))
    assert _render(document)[0].get("reason") == "busy"

    with pytest.raises(ScriptValidationError):
        run(_document().reject({"reason": "nope"}))


def test_leave_accepts_no_options():
    with pytest.raises(ScriptValidationError):
        run(_document().leave({"queue": "support"}))


def test_extract_response_body():
    markup = '<?xml version="1.0" encoding="UTF-8"?><Response><Say>hi</Say><Pause length="1"/></Response>'

    assert [element.tag for element in extract_response_body(markup)] == ["Say", "Pause"]


@pytest.mark.parametrize("markup", ["<Response><Say>", "<Other><Say>hi</Say></Other>"])
def test_extract_response_body_rejects_bad_markup(markup):
    with pytest.raises(MalformedMarkupError):
        extract_response_body(markup)
