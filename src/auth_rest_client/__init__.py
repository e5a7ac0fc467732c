"""Auth REST Client - bearer-authenticated REST calls with credential-safe errors."""

from auth_rest_client.api.client import AuthenticatingRestClient, ResponseWithHeaders
from auth_rest_client.api.exceptions import (
    ArgumentError,
    TokenResolutionError,
    TransportError,
)
from auth_rest_client.api.executor import RequestExecutor
from auth_rest_client.api.token_providers import (
    CachingTokenProvider,
    ClientCredentialsTokenProvider,
    StaticTokenProvider,
)
from auth_rest_client.config import REDACTED, RequestOptions, load_request_options
from auth_rest_client.logging_config import configure_logging

__version__ = "0.1.0"

__all__ = [
    "REDACTED",
    "ArgumentError",
    "AuthenticatingRestClient",
    "CachingTokenProvider",
    "ClientCredentialsTokenProvider",
    "RequestExecutor",
    "RequestOptions",
    "ResponseWithHeaders",
    "StaticTokenProvider",
    "TokenResolutionError",
    "TransportError",
    "configure_logging",
    "load_request_options",
]
