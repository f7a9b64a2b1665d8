import re
from http import HTTPMethod
from typing import Annotated, Any

from pydantic import AfterValidator, BeforeValidator

from reqchain.templates import TEMPLATE_PATTERN

SUPPORTED_METHODS = frozenset(
    {
        HTTPMethod.GET,
        HTTPMethod.POST,
        HTTPMethod.PUT,
        HTTPMethod.DELETE,
        HTTPMethod.PATCH,
        HTTPMethod.HEAD,
        HTTPMethod.OPTIONS,
    }
)

URL_SCHEME_PATTERN = r"^https?://"
URL_SCHEME_REGEX = re.compile(URL_SCHEME_PATTERN)


def normalize_method(v: Any) -> HTTPMethod:
    if not isinstance(v, str):
        raise ValueError(f"HTTP method must be a string, got {type(v).__name__}")

    try:
        method = HTTPMethod(v.strip().upper())
    except ValueError:
        raise ValueError(f"Unsupported HTTP method: '{v}'") from None

    if method not in SUPPORTED_METHODS:
        raise ValueError(f"Unsupported HTTP method: '{v}'")
    return method


def has_http_scheme(url: str) -> bool:
    return URL_SCHEME_REGEX.match(url) is not None


def validate_url(v: str) -> str:
    if not v.strip():
        raise ValueError("URL cannot be empty")

    # scheme may come from a variable, e.g. '{{base_url}}/users'
    if has_http_scheme(v) or re.match(TEMPLATE_PATTERN, v):
        return v

    raise ValueError(f"URL must start with http:// or https://, got: {v!r}")


def validate_variable_name(v: str) -> str:
    if "}" in v:
        raise ValueError(f"Variable name cannot contain '}}': {v!r}")
    return v


Method = Annotated[HTTPMethod, BeforeValidator(normalize_method)]
TemplateUrl = Annotated[str, AfterValidator(validate_url)]
VariableName = Annotated[str, AfterValidator(validate_variable_name)]
