"""Configuration module for authenticated REST clients.

This module provides the RequestOptions Pydantic model, the live transport
configuration shared between an authenticating client and its request
executor, plus a loader for TOML option files.

RequestOptions is mutable: the client writes the Authorization
header into ``headers`` before every call and the executor reads ``headers``
at send time. Overlapping calls on the same client therefore observe each
other's token refresh, and the header always carries the most recently
resolved token.
"""

import logging
import tomllib
from importlib.metadata import PackageNotFoundError, version
from pathlib import Path
from typing import Any

from pydantic import BaseModel, Field, ValidationError, field_validator

from auth_rest_client.api.exceptions import ArgumentError

logger = logging.getLogger(__name__)

AUTHORIZATION_HEADER = "Authorization"
REDACTED = "[REDACTED]"

_PROXY_SCHEMES = ("http://", "https://", "socks5://", "socks5h://")


def _default_user_agent() -> str:
    try:
        return f"auth-rest-client/{version('auth-rest-client')}"
    except PackageNotFoundError:
        return "auth-rest-client"


class RequestOptions(BaseModel):
    """Transport options for one resource endpoint.

    A single instance is owned by the client for its lifetime and handed to
    the request executor by reference, never copied.
    """

    headers: dict[str, str] = Field(
        default_factory=dict,
        description="Headers sent with every request; Authorization is injected per call",
    )

    proxy: str | None = Field(
        default=None,
        description="Proxy URL forwarded verbatim to the HTTP transport",
    )

    include_response_headers: bool = Field(
        default=False,
        description="Return ResponseWithHeaders(data, headers) instead of the bare payload",
    )

    timeout_connect: float = Field(
        default=5.0,
        ge=1.0,
        le=30.0,
        description="HTTP connection timeout in seconds",
    )

    timeout_read: float = Field(
        default=30.0,
        ge=5.0,
        le=120.0,
        description="HTTP read timeout in seconds",
    )

    user_agent: str = Field(
        default_factory=_default_user_agent,
        description="HTTP client User-Agent header",
    )

    @field_validator("proxy")
    @classmethod
    def validate_proxy_url(cls, v: str | None) -> str | None:
        """Validate that the proxy, when set, uses a scheme httpx can route through.

        Args:
            v: The proxy value to validate.

        Returns:
            str | None: The unchanged proxy value.

        Raises:
            ValueError: If the proxy uses an unsupported scheme.
        """
        if v is not None and not v.lower().startswith(_PROXY_SCHEMES):
            msg = "Proxy must be an http, https, socks5 or socks5h URL"
            raise ValueError(msg)
        return v

    def to_redacted_dict(self) -> dict[str, Any]:
        """Return a dictionary representation with the bearer token redacted.

        Returns:
            dict[str, Any]: Options dictionary safe for logging.
        """
        options_dict = self.model_dump()
        options_dict["headers"] = redact_headers(self.headers)
        return options_dict


def redact_headers(headers: dict[str, str]) -> dict[str, str]:
    """Return a copy of ``headers`` with any authorization value replaced.

    Args:
        headers: Header mapping to copy.

    Returns:
        dict[str, str]: New mapping; the input is left untouched.
    """
    return {
        name: REDACTED if name.lower() == "authorization" else value
        for name, value in headers.items()
    }


def coerce_options(options: RequestOptions | dict[str, Any]) -> RequestOptions:
    """Validate a mapping into RequestOptions, passing instances through untouched.

    Args:
        options: A RequestOptions instance or a plain mapping of option values.

    Returns:
        RequestOptions: The same instance, or a newly validated one.

    Raises:
        ArgumentError: If the mapping does not validate.
    """
    if isinstance(options, RequestOptions):
        return options
    try:
        return RequestOptions.model_validate(options)
    except ValidationError as error:
        msg = f"The provided options are invalid: {error.error_count()} validation error(s)"
        raise ArgumentError(msg) from error


def _get_known_option_fields() -> set[str]:
    """Get the set of option names accepted in TOML files."""
    return set(RequestOptions.model_fields)


def load_request_options(config_file: str | Path) -> RequestOptions:
    """Load RequestOptions from a TOML file.

    Args:
        config_file: Path to the TOML file.

    Returns:
        RequestOptions: Validated options.

    Raises:
        ArgumentError: If the file is missing, unreadable, not valid TOML,
            contains unknown keys, or fails validation.
    """
    config_path = Path(config_file)

    try:
        with config_path.open("rb") as f:
            file_config = tomllib.load(f)
    except tomllib.TOMLDecodeError as error:
        logger.exception("Failed to parse TOML options file %s", config_path)
        msg = f"Invalid TOML in options file {config_path}"
        raise ArgumentError(msg) from error
    except OSError as error:
        logger.exception("Failed to read options file %s", config_path)
        msg = f"Cannot read options file {config_path}"
        raise ArgumentError(msg) from error

    unknown_keys = set(file_config.keys()) - _get_known_option_fields()
    if unknown_keys:
        logger.error(
            "Unknown option keys in %s: %s",
            config_path,
            ", ".join(sorted(unknown_keys)),
        )
        msg = f"Unknown option keys: {', '.join(sorted(unknown_keys))}"
        raise ArgumentError(msg)

    options = coerce_options(file_config)
    logger.info("Loaded request options from %s", config_path)
    return options
