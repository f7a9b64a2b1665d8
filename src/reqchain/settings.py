from importlib.metadata import PackageNotFoundError, version
from typing import Annotated

from pydantic import AfterValidator, Field
from pydantic_settings import BaseSettings, SettingsConfigDict

from reqchain.constants import DEFAULT_TIMEOUT, ENV_PREFIX


def get_version() -> str:
    try:
        return version("reqchain")
    except PackageNotFoundError:
        return "unknown"


def validate_timeout(v: float) -> float:
    if v <= 0:
        raise ValueError("timeout must be a positive number of seconds")
    return v


def _default_headers() -> dict[str, str]:
    return {
        "User-Agent": f"reqchain/{get_version()}",
        "Accept": "application/json",
        "Content-Type": "application/json",
    }


class Settings(BaseSettings):
    timeout: Annotated[float, AfterValidator(validate_timeout)] = Field(default=DEFAULT_TIMEOUT, description="Transport timeout in seconds.")
    follow_redirects: bool = Field(default=True)
    verify_ssl: bool = Field(default=True)
    default_headers: dict[str, str] = Field(
        default_factory=_default_headers,
        description="Headers sent when a request template declares none.",
    )
    allow_concurrent_runs: bool = Field(
        default=False,
        description="Allow runs of different chains to overlap. A single chain never runs twice at once.",
    )

    model_config = SettingsConfigDict(env_prefix=ENV_PREFIX)
