"""JSON-Schema validation shared by the executor and the TwiML builder.

Schemas are plain dicts. A schema may carry a ``$meta`` key with a ``domain``
and a ``label``; both are only used to format error messages. Compiled
validators are cached by schema identity, so schemas should be module-level
constants rather than dicts built per call.
"""

from __future__ import annotations

import logging
from collections.abc import Mapping
from dataclasses import dataclass
from typing import Any, TypeVar

from jsonschema import Draft7Validator, ValidationError, validators

from calls.errors import ScriptValidationError

LOGGER = logging.getLogger(__name__)

T = TypeVar("T")


def _is_sequence(checker, instance: Any) -> bool:
    return isinstance(instance, (list, tuple))


def _callable_keyword(validator, expected: bool, instance: Any, schema: Mapping[str, Any]):
    if expected and not callable(instance):
        yield ValidationError(f"{instance!r} is not callable")


# Scripts are Python objects, not JSON documents: tuples count as arrays and
# the extra "callable" keyword matches functions and coroutine functions.
ScriptSchemaValidator = validators.extend(
    Draft7Validator,
    validators={"callable": _callable_keyword},
    type_checker=Draft7Validator.TYPE_CHECKER.redefine("array", _is_sequence),
)


@dataclass(frozen=True)
class CompiledSchema:
    schema: Mapping[str, Any]
    validator: Any
    domain: str | None = None
    label: str = "value"

    def iter_violations(self, value: Any) -> list[str]:
        violations = []
        for index, error in enumerate(self.validator.iter_errors(value), start=1):
            violations.append(f"    {index}. Value at {_format_path(error)} {error.message}.")
        return violations

    def header(self) -> str:
        prefix = f"[{self.domain}] " if self.domain else ""
        return f"{prefix}Invalid {self.label}:"


_SCHEMA_CACHE: dict[int, CompiledSchema] = {}


def _format_path(error: ValidationError) -> str:
    if not error.absolute_path:
        return '"root"'
    return "/" + "/".join(str(part) for part in error.absolute_path)


def compile_schema(schema: Mapping[str, Any]) -> CompiledSchema:
    """Return the cached compiled form of ``schema``, compiling it on first use."""

    compiled = _SCHEMA_CACHE.get(id(schema))
    if compiled is None:
        meta = schema.get("$meta") or {}
        compiled = CompiledSchema(
            schema=schema,
            validator=ScriptSchemaValidator(schema),
            domain=meta.get("domain"),
            label=meta.get("label", "value"),
        )
        # The entry keeps a reference to the schema, so its id cannot be reused.
        _SCHEMA_CACHE[id(schema)] = compiled
        LOGGER.debug("Compiled schema for %s", compiled.domain or "anonymous schema")
    return compiled


def validate(schema: Mapping[str, Any], value: T) -> T:
    """Validate ``value`` against ``schema`` and return it unchanged.

    All violations are collected into a single ScriptValidationError. Errors
    are gathered per call, so no state carries over between validations that
    share a cached schema.
    """

    compiled = compile_schema(schema)
    violations = compiled.iter_violations(value)
    if violations:
        raise ScriptValidationError(compiled.header(), violations)
    return value


def is_valid(schema: Mapping[str, Any], value: Any) -> bool:
    return compile_schema(schema).validator.is_valid(value)
