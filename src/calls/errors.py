"""Domain-specific exceptions for call script execution.

These exceptions are safe to import from API layers; each carries the HTTP
status the route layer should answer with.
"""

from __future__ import annotations

from collections.abc import Iterable


class CallScriptError(Exception):
    status_code: int = 500
    default_detail: str = "Call script error."

    def __init__(self, detail: str | None = None) -> None:
        super().__init__(detail or self.default_detail)
        self.detail = detail or self.default_detail


class ConfigurationError(CallScriptError):
    default_detail = "Call script is missing or misconfigured."


class ScriptTypeError(CallScriptError, TypeError):
    default_detail = "Unsupported call script type."


class ScriptValidationError(CallScriptError):
    status_code = 422
    default_detail = "Invalid value."

    def __init__(self, detail: str | None = None, violations: Iterable[str] = ()) -> None:
        self.violations = list(violations)
        if detail and self.violations:
            detail = "\n".join([detail, *self.violations])
        super().__init__(detail)


class DomainError(CallScriptError):
    default_detail = "Call script operation not permitted."


class MissingScriptError(DomainError):
    default_detail = "No call script has been set."


class CallCompletedError(DomainError):
    default_detail = "Trying to advance a completed call."


class DocumentRenderedError(DomainError):
    default_detail = "TwiML document cannot be modified after being rendered."


class MissingSourceAddressError(DomainError):
    default_detail = "No suitable caller ID could be found."


class InvalidPhoneNumberError(DomainError):
    default_detail = "Value is not a valid phone number."


class UnknownDirectiveError(DomainError):
    default_detail = "Invalid directive."


class ProtocolError(CallScriptError):
    status_code = 400
    default_detail = "Unexpected webhook interaction."


class InvalidCallStatusError(ProtocolError):
    default_detail = 'CallStatus in request is not "completed".'


class NestedScriptPausedError(ProtocolError):
    status_code = 500
    default_detail = "Encountered a terminal directive before reaching the end of a nested call script."


class MalformedMarkupError(ProtocolError):
    status_code = 500
    default_detail = "Encountered an error while parsing nested TwiML."
