"""Formatting utilities for displaying responses and history.

Rendering is left to the host; these helpers only produce text.
"""

import json
from collections.abc import Iterable
from enum import StrEnum
from pathlib import Path

from reqchain.history import HistoryEntry
from reqchain.models import Response


class StatusClass(StrEnum):
    SUCCESS = "success"
    REDIRECT = "redirect"
    ERROR = "error"
    INFO = "info"


def classify_status(status_code: int) -> StatusClass:
    if 200 <= status_code < 300:
        return StatusClass.SUCCESS
    if 300 <= status_code < 400:
        return StatusClass.REDIRECT
    if status_code >= 400:
        return StatusClass.ERROR
    return StatusClass.INFO


def format_body(response: Response) -> str:
    if response.is_json:
        try:
            return json.dumps(json.loads(response.body), indent=2, ensure_ascii=False)
        except json.JSONDecodeError:
            return response.body
    return response.body


def format_response(response: Response, raw: bool = False) -> str:
    if raw:
        return response.body

    lines = [f"Status: {response.status_code}", "Headers:"]
    for key, value in response.headers.items():
        lines.append(f"  {key}: {value}")

    lines.append("")
    lines.append("Body:")
    lines.append(format_body(response))

    return "\n".join(lines)


def format_history(entries: Iterable[HistoryEntry]) -> list[str]:
    lines = []
    for i, entry in enumerate(entries, 1):
        line = f"{i}. {entry.request.method.value} {entry.request.url}"
        if entry.failed:
            line += f" (failed: {entry.error})"
        lines.append(line)
    return lines


def write_response_body(path: Path | str, response: Response) -> Path:
    """Save a response body to ``path`` as-is."""
    path = Path(path)
    path.write_text(response.body, encoding="utf-8")
    return path
