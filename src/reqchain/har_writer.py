"""HAR (HTTP Archive) format writer for reqchain.

This module converts history entries to HAR 1.2 format and writes them to
files for external analysis. HAR output is an export only; nothing reads it
back.
"""

import json
from collections.abc import Iterable, Mapping
from pathlib import Path
from typing import Any
from urllib.parse import parse_qs, urlparse

from reqchain.history import HistoryEntry
from reqchain.settings import get_version


def _format_headers(headers: Mapping[str, str]) -> list[dict[str, str]]:
    """Convert headers to HAR header format."""
    return [{"name": name, "value": value} for name, value in headers.items()]


def _header(headers: Mapping[str, str], name: str) -> str:
    for key, value in headers.items():
        if key.lower() == name:
            return value
    return ""


def _parse_cookie_header(cookie_header: str) -> list[dict[str, str]]:
    """Parse Cookie header string into HAR cookie format."""
    if not cookie_header:
        return []
    result = []
    for pair in cookie_header.split(";"):
        pair = pair.strip()
        if "=" in pair:
            name, value = pair.split("=", 1)
            result.append({"name": name.strip(), "value": value.strip()})
    return result


def _format_query_string(url: str) -> list[dict[str, str]]:
    """Extract query string parameters from URL."""
    params = parse_qs(urlparse(url).query, keep_blank_values=True)
    result = []
    for name, values in params.items():
        for value in values:
            result.append({"name": name, "value": value})
    return result


def _mime_type(headers: Mapping[str, str]) -> str:
    content_type = _header(headers, "content-type")
    return content_type.split(";")[0].strip() if content_type else "application/octet-stream"


def _calculate_headers_size(headers: Mapping[str, str]) -> int:
    """Calculate approximate size of headers in bytes."""
    size = 0
    for name, value in headers.items():
        size += len(name) + len(value) + 4
    return size


def history_entry_to_har_entry(entry: HistoryEntry) -> dict[str, Any]:
    """Convert a history entry to a HAR entry.

    Failed attempts get a response with status 0 and the failure in the
    entry comment, which is how browsers export aborted requests.
    """
    request = entry.request
    response = entry.response
    elapsed_ms = response.elapsed_ms if response is not None else 0

    har_request: dict[str, Any] = {
        "method": request.method.value,
        "url": request.url,
        "httpVersion": response.http_version if response is not None else "HTTP/1.1",
        "cookies": _parse_cookie_header(_header(request.headers, "cookie")),
        "headers": _format_headers(request.headers),
        "queryString": _format_query_string(request.url),
        "headersSize": _calculate_headers_size(request.headers),
        "bodySize": len(request.body.encode("utf-8")),
    }
    if request.body:
        har_request["postData"] = {"mimeType": _mime_type(request.headers), "text": request.body}

    if response is not None:
        har_response: dict[str, Any] = {
            "status": response.status_code,
            "statusText": response.reason_phrase,
            "httpVersion": response.http_version,
            "cookies": [],
            "headers": _format_headers(response.headers),
            "content": {
                "size": len(response.body.encode("utf-8")),
                "mimeType": _mime_type(response.headers),
                "text": response.body,
            },
            "redirectURL": _header(response.headers, "location"),
            "headersSize": _calculate_headers_size(response.headers),
            "bodySize": len(response.body.encode("utf-8")),
        }
    else:
        har_response = {
            "status": 0,
            "statusText": "",
            "httpVersion": "HTTP/1.1",
            "cookies": [],
            "headers": [],
            "content": {"size": 0, "mimeType": "application/octet-stream"},
            "redirectURL": "",
            "headersSize": -1,
            "bodySize": -1,
        }

    har_entry: dict[str, Any] = {
        "startedDateTime": entry.started_at.isoformat(),
        "time": elapsed_ms,
        "request": har_request,
        "response": har_response,
        "cache": {},
        "timings": {
            "send": -1,
            "wait": elapsed_ms if elapsed_ms > 0 else -1,
            "receive": -1,
        },
    }

    comments = []
    if entry.chain is not None:
        comments.append(f"chain '{entry.chain}' step {entry.step}")
    if entry.error is not None:
        comments.append(f"failed: {entry.error}")
    if comments:
        har_entry["comment"] = "; ".join(comments)

    return har_entry


def create_har_log(entries: list[dict[str, Any]], comment: str | None = None) -> dict[str, Any]:
    """Create a complete HAR log structure."""
    har: dict[str, Any] = {
        "log": {
            "version": "1.2",
            "creator": {
                "name": "reqchain",
                "version": get_version(),
            },
            "entries": entries,
        }
    }

    if comment:
        har["log"]["comment"] = comment

    return har


def write_har_file(path: Path | str, entries: Iterable[HistoryEntry], comment: str | None = None) -> Path:
    """Write history entries to a HAR file, creating parent directories.

    Pending entries (request sent, no outcome yet) are skipped.
    """
    path = Path(path)
    path.parent.mkdir(parents=True, exist_ok=True)

    har = create_har_log([history_entry_to_har_entry(entry) for entry in entries if not entry.pending], comment=comment)

    with open(path, "w", encoding="utf-8") as f:
        json.dump(har, f, indent=2, ensure_ascii=False)

    return path
