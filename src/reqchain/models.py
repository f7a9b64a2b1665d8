import json
from collections.abc import Iterable, Mapping
from dataclasses import dataclass, field
from http import HTTPMethod
from types import MappingProxyType
from typing import Any, Self

import httpx
import pydantic
from pydantic import BaseModel, ConfigDict, Field, JsonValue, field_validator, model_validator

from reqchain.exceptions import ParseError, ValidationError
from reqchain.templates import substitute, walk
from reqchain.types import Method, TemplateUrl, VariableName, has_http_scheme
from reqchain.values import encode_body


def parse_headers(header_string: str) -> dict[str, str]:
    """Parse ``Name: value`` lines into a header mapping, skipping malformed lines."""
    headers: dict[str, str] = {}
    for line in header_string.splitlines():
        name, sep, value = line.partition(":")
        name = name.strip()
        value = value.strip()
        if sep and name and value:
            headers[name] = value
    return headers


def merge_headers(pairs: Iterable[tuple[str, str]]) -> dict[str, str]:
    """Fold header pairs into a mapping, combining repeated names case-insensitively.

    Repeated values are joined with ``", "``. ``Set-Cookie`` values cannot be
    comma-joined, so they are joined with newlines instead.
    """
    headers: dict[str, str] = {}
    names: dict[str, str] = {}
    for name, value in pairs:
        key = name.lower()
        if key not in names:
            names[key] = name
            headers[name] = value
            continue
        separator = "\n" if key == "set-cookie" else ", "
        headers[names[key]] += separator + value
    return headers


def format_headers(headers: Mapping[str, str]) -> str:
    return "".join(f"{name}: {value}\n" for name, value in headers.items())


def format_validation_error(e: pydantic.ValidationError) -> str:
    error_details = []
    for error in e.errors():
        loc = " -> ".join(str(x) for x in error["loc"]) or "<root>"
        error_details.append(f"  - {loc}: {error['msg']}")
    return "\n".join(error_details)


class Extraction(BaseModel):
    """Where to find a value in the response body and which variable receives it."""

    path: str = Field(default="", description="Path expression, e.g. '$.items[0].id'.", examples=["$.id", "$.data.users[0]"])
    var: VariableName = Field(default="", description="Variable to bind the extracted value to.")
    model_config = ConfigDict(extra="forbid", frozen=True)

    @property
    def enabled(self) -> bool:
        return bool(self.path)

    @field_validator("path")
    @classmethod
    def strip_path(cls, v: str) -> str:
        return v.strip()

    @model_validator(mode="after")
    def validate_target(self) -> Self:
        if self.enabled and not self.var.strip():
            raise ValueError(f"Extraction path '{self.path}' has no target variable")
        return self


class RequestTemplate(BaseModel):
    """A chain step: an HTTP request whose strings may carry ``{{name}}`` placeholders."""

    url: TemplateUrl = Field(description="Request URL.", examples=["https://api.test/users/{{userId}}"])
    method: Method = Field(description="HTTP method, case-insensitive.")
    headers: dict[str, str] = Field(default_factory=dict)
    body: JsonValue = Field(default="", description="Raw text body or JSON structure.")
    extract: Extraction | None = Field(default=None, description="Optional value extraction from the response.")
    model_config = ConfigDict(extra="forbid", frozen=True)

    @classmethod
    def from_form(cls, fields: Mapping[str, str]) -> Self:
        """Build a template from the flat text fields a request form collects."""
        extraction = Extraction(path=fields.get("extract_path", ""), var=fields.get("extract_var", ""))
        return validate_template(
            {
                "url": fields.get("url"),
                "method": fields.get("method"),
                "headers": parse_headers(fields.get("headers", "")),
                "body": fields.get("body", ""),
                "extract": extraction if extraction.enabled else None,
            },
            model=cls,
        )

    def to_form(self) -> dict[str, str]:
        return {
            "url": self.url,
            "method": self.method.value,
            "headers": format_headers(self.headers),
            "body": encode_body(self.body),
            "extract_path": self.extract.path if self.extract else "",
            "extract_var": self.extract.var if self.extract else "",
        }

    def resolve(self, variables: Mapping[str, Any], default_headers: Mapping[str, str] | None = None) -> "ResolvedRequest":
        """Substitute variables into url, header values and body.

        Each field is resolved independently. ``default_headers`` apply only when
        the template declares no headers at all.

        Raises:
            ValidationError: If the resolved URL has no http(s) scheme
        """
        url = substitute(self.url, variables)
        if not has_http_scheme(url):
            raise ValidationError(f"Resolved URL must start with http:// or https://, got: {url!r}")

        headers = self.headers or dict(default_headers or {})

        return ResolvedRequest(
            method=self.method,
            url=url,
            headers={name: substitute(value, variables) for name, value in headers.items()},
            body=encode_body(walk(self.body, variables)),
            extract=self.extract if self.extract and self.extract.enabled else None,
        )


def validate_template(data: Any, model: type[RequestTemplate] = RequestTemplate) -> RequestTemplate:
    """Validate a template-like object, translating pydantic errors.

    Raises:
        ValidationError: If the template is structurally invalid
    """
    if isinstance(data, model):
        return data
    if isinstance(data, BaseModel):
        data = data.model_dump()

    try:
        return model.model_validate(data)
    except pydantic.ValidationError as e:
        raise ValidationError("Invalid request template:\n" + format_validation_error(e)) from None


@dataclass(frozen=True)
class ResolvedRequest:
    method: HTTPMethod
    url: str
    headers: Mapping[str, str] = field(default_factory=dict)
    body: str = ""
    extract: Extraction | None = None

    def __post_init__(self):
        object.__setattr__(self, "headers", MappingProxyType(dict(self.headers)))


@dataclass(frozen=True)
class Response:
    status_code: int
    headers: Mapping[str, str] = field(default_factory=dict)
    body: str = ""
    reason_phrase: str = ""
    http_version: str = "HTTP/1.1"
    elapsed_ms: float = 0.0

    def __post_init__(self):
        object.__setattr__(self, "headers", MappingProxyType(dict(self.headers)))

    @classmethod
    def from_httpx(cls, response: httpx.Response) -> Self:
        # header names keep the case they were received with
        encoding = response.headers.encoding
        headers = merge_headers((name.decode(encoding), value.decode(encoding)) for name, value in response.headers.raw)

        try:
            elapsed_ms = response.elapsed.total_seconds() * 1000
        except RuntimeError:
            elapsed_ms = 0.0

        return cls(
            status_code=response.status_code,
            headers=headers,
            body=response.text,
            reason_phrase=response.reason_phrase,
            http_version=response.http_version,
            elapsed_ms=elapsed_ms,
        )

    @property
    def content_type(self) -> str:
        for name, value in self.headers.items():
            if name.lower() == "content-type":
                return value
        return ""

    @property
    def is_json(self) -> bool:
        return "application/json" in self.content_type

    def json(self) -> Any:
        try:
            return json.loads(self.body)
        except json.JSONDecodeError as e:
            raise ParseError(f"Response body is not valid JSON: {str(e)}") from None
