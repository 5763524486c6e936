from __future__ import annotations

import re
from typing import Any

E164_PATTERN = re.compile(r"\+?[1-9]\d{1,14}")


def is_valid_phone_number(value: Any) -> bool:
    """Return True if ``value`` looks like an E.164 phone number."""

    if not isinstance(value, str) or not value:
        return False
    return E164_PATTERN.fullmatch(value) is not None
