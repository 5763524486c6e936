from __future__ import annotations

import pytest

from telephony.phone_numbers import is_valid_phone_number


@pytest.mark.parametrize("value", ["+14155550001", "41441234567", "+12"])
def test_valid_phone_numbers(value):
    assert is_valid_phone_number(value)


@pytest.mark.parametrize("value", ["", "+", "+0441234567", "+1234567890123456", "+1 415 555", None, 14155550001])
def test_invalid_phone_numbers(value):
    assert not is_valid_phone_number(value)
