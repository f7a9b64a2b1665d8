"""Template substitution functionality.

Placeholders have the form ``{{name}}`` where ``name`` is any run of
characters other than ``}``. The name is looked up verbatim, surrounding
whitespace included. Unknown names are left in place so partially bound
templates survive until their variables exist.

Substitution is a single left-to-right pass: text produced by a substituted
value is never scanned again.
"""

import re
from collections.abc import Mapping
from typing import Any

from reqchain.values import render_value

TEMPLATE_PATTERN = r"(?P<open>\{\{)(?P<name>[^}]+)(?P<close>\}\})"
TEMPLATE_REGEX = re.compile(TEMPLATE_PATTERN)


def contains_template(value: str) -> bool:
    """Check if a string contains at least one placeholder."""
    return TEMPLATE_REGEX.search(value) is not None


def find_placeholders(value: str) -> list[str]:
    """Return placeholder names in order of appearance."""
    return [match.group("name") for match in TEMPLATE_REGEX.finditer(value)]


def unresolved_placeholders(value: str, variables: Mapping[str, Any]) -> list[str]:
    """Return placeholder names that have no binding in ``variables``."""
    return [name for name in find_placeholders(value) if name not in variables]


def substitute(line: str, variables: Mapping[str, Any]) -> str:
    def _repl(match: re.Match[str]) -> str:
        name = match.group("name")
        if name not in variables:
            return match.group(0)
        return render_value(variables[name])

    return TEMPLATE_REGEX.sub(_repl, line)


def walk(obj: Any, variables: Mapping[str, Any]) -> Any:
    """Recursively substitute placeholders in every string of a JSON-like structure."""
    match obj:
        case str():
            return substitute(obj, variables)
        case dict():
            return {key: walk(value, variables) for key, value in obj.items()}
        case list() | tuple():
            return [walk(item, variables) for item in obj]
        case _:
            return obj
