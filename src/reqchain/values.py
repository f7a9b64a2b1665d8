"""Variable values and their text serialization.

Values bound in the variable environment are JSON-like: strings, numbers,
booleans, null, lists and objects. Each kind has one fixed text form used
when it is substituted into a request:

- str: unchanged
- bool: ``true`` / ``false``
- int, float: ``str()``
- None: ``null``
- list, dict: compact JSON
"""

import json
from typing import Any

from pydantic import JsonValue

VariableValue = JsonValue


def to_json(value: Any) -> str:
    """Serialize a structured value to compact JSON text."""
    return json.dumps(value, separators=(",", ":"), ensure_ascii=False)


def render_value(value: Any) -> str:
    match value:
        case str():
            return value
        case bool():
            return "true" if value else "false"
        case int() | float():
            return str(value)
        case None:
            return "null"
        case list() | tuple() | dict():
            return to_json(value)
        case _:
            return str(value)


def encode_body(body: Any) -> str:
    """Encode a request body for sending: strings pass through, structures become JSON."""
    match body:
        case str():
            return body
        case list() | tuple() | dict():
            return to_json(body)
        case _:
            return render_value(body)
