"""JSON-Schema analogues of the call script grammar, checked at runtime.

A call script is a list of items. An item is a ``[name]`` or
``[name, optionsOrProducer]`` descriptor, a function returning an item, a JSON
string encoding an item, or a nested call script. Nested scripts are only
checked one level deep here; they are validated again when they are resolved.
"""

from __future__ import annotations

DIRECTIVE_DESCRIPTOR_SCHEMA = {
    "$meta": {"domain": "DirectiveDescriptor", "label": "directive descriptor"},
    "type": "array",
    "minItems": 1,
    "maxItems": 2,
    "items": [
        {"type": "string", "minLength": 1},
        {"oneOf": [{"type": "object"}, {"callable": True}]},
    ],
}

CALL_SCRIPT_SCHEMA = {
    "$meta": {"domain": "CallScript", "label": "call script"},
    "type": "array",
    "items": {
        "anyOf": [
            DIRECTIVE_DESCRIPTOR_SCHEMA,
            {"callable": True},
            {"type": "string"},
            {"type": "array"},
        ]
    },
}
