"""Value extraction from JSON response bodies.

Path expressions use a deliberately small, closed grammar. This is not
JSONPath and is not meant to grow into it::

    path     := "$" | "$." | ["$."] segment ("." segment)*
    segment  := name | name "[" index "]"
    name     := one or more characters other than ".", "[" and "]"
    index    := decimal digits, zero-based

A bare ``name`` is an object key lookup. ``name[index]`` looks up ``name``,
which must hold an array, and then takes the element at ``index``. Empty
segments (``a..b``) are skipped. Anything else fails the whole extraction.
"""

import json
import logging
import re
from dataclasses import dataclass
from typing import Any

from reqchain.environment import VariableEnvironment
from reqchain.exceptions import ParseError, PathNotFoundError

logger = logging.getLogger(__name__)

ROOT_PATHS = frozenset({"$", "$."})
ROOT_PREFIX = "$."

SEGMENT_PATTERN = r"^(?P<name>[^.\[\]]+)(?:\[(?P<index>\d+)\])?$"
SEGMENT_REGEX = re.compile(SEGMENT_PATTERN)


@dataclass(frozen=True)
class Segment:
    name: str
    index: int | None = None

    def __str__(self) -> str:
        return self.name if self.index is None else f"{self.name}[{self.index}]"


def parse_path(path: str) -> list[Segment]:
    """Split a path expression into segments; the root path yields no segments.

    Raises:
        PathNotFoundError: If a segment does not fit the grammar
    """
    if path in ROOT_PATHS:
        return []

    if path.startswith(ROOT_PREFIX):
        path = path[len(ROOT_PREFIX) :]

    segments = []
    for part in path.split("."):
        if not part:
            continue
        match = SEGMENT_REGEX.match(part)
        if match is None:
            raise PathNotFoundError(f"Path segment '{part}' is not a field name or 'name[index]'")
        index = match.group("index")
        segments.append(Segment(name=match.group("name"), index=int(index) if index is not None else None))
    return segments


def extract(document: Any, path: str) -> Any:
    """Walk a decoded JSON document along ``path``.

    Raises:
        PathNotFoundError: At the first segment that cannot be resolved
    """
    value = document
    for segment in parse_path(path):
        if not isinstance(value, dict) or segment.name not in value:
            raise PathNotFoundError(f"Path not found in response: '{path}' (no field '{segment.name}')")
        value = value[segment.name]

        if segment.index is None:
            continue

        if not isinstance(value, list):
            raise PathNotFoundError(f"Path not found in response: '{path}' ('{segment.name}' is not an array)")
        if segment.index >= len(value):
            raise PathNotFoundError(f"Path not found in response: '{path}' (index {segment.index} out of bounds for '{segment.name}')")
        value = value[segment.index]

    return value


def extract_from_body(body: str, path: str) -> Any:
    """Decode a response body and extract ``path`` from it.

    Raises:
        ParseError: If the body is not valid JSON
        PathNotFoundError: If the path cannot be resolved
    """
    try:
        document = json.loads(body)
    except json.JSONDecodeError as e:
        raise ParseError(f"Cannot extract '{path}', response is not valid JSON: {str(e)}") from None

    return extract(document, path)


def bind(environment: VariableEnvironment, body: str, path: str, var_name: str) -> Any:
    """Extract ``path`` from ``body`` and bind it to ``var_name``.

    Nothing is written when extraction fails.
    """
    value = extract_from_body(body, path)
    environment.set(var_name, value)
    logger.info(f"Saved {var_name} = {value}")
    return value
