from __future__ import annotations

from typing import Any


class CallScript:
    """Base class for object-style call scripts.

    Subclasses provide a ``root`` entry point, either a method called with the
    current CallRequest or a plain list. When a script source returns the class
    itself, it is instantiated with the application's phone number client.
    """

    root: Any = None

    def __init__(self, telephony_client: Any = None) -> None:
        self.telephony_client = telephony_client


def is_script_provider(value: Any) -> bool:
    if isinstance(value, CallScript):
        return True
    if isinstance(value, (str, bytes, list, tuple, dict, type)):
        return False
    return hasattr(value, "root")
