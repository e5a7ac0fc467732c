"""Token providers for the authenticating REST client.

The client resolves a token before every single call and never caches it
itself. Caching belongs to the provider: wrap any provider in
CachingTokenProvider, or use ClientCredentialsTokenProvider, which keeps the
token it obtained until shortly before it expires.
"""

import asyncio
import logging
import time
import types
from dataclasses import dataclass
from typing import Any

import httpx

from auth_rest_client.api.exceptions import ArgumentError, TokenResolutionError
from auth_rest_client.api.protocols import TokenProvider

logger = logging.getLogger(__name__)


@dataclass(slots=True)
class _CachedToken:
    """Internal container for a token and the monotonic time it stops being usable."""

    value: str
    expires_at: float

    def is_fresh(self) -> bool:
        return time.monotonic() < self.expires_at


class StaticTokenProvider:
    """Provider returning the same token on every call."""

    def __init__(self, token: str) -> None:
        if not token:
            msg = "Must provide a non-empty token"
            raise ArgumentError(msg)
        self._token = token

    def __repr__(self) -> str:
        """Return repr without exposing the token."""
        return "StaticTokenProvider(token='***redacted***')"

    async def get_access_token(self) -> str:
        return self._token


class CachingTokenProvider:
    """Caches the token of another provider for a fixed time.

    Concurrent callers share a single refresh: the wrapped provider is only
    invoked by the first caller that finds the cache empty or stale.

    Args:
        provider: Provider whose tokens are cached
        ttl_seconds: How long a resolved token is reused (must be positive)

    Raises:
        ArgumentError: If ttl_seconds is not positive
    """

    def __init__(self, provider: TokenProvider, ttl_seconds: float) -> None:
        if ttl_seconds <= 0:
            msg = "ttl_seconds must be positive"
            raise ArgumentError(msg)
        self._provider = provider
        self._ttl_seconds = ttl_seconds
        self._cached: _CachedToken | None = None
        self._lock = asyncio.Lock()

    def __repr__(self) -> str:
        """Return repr without exposing the cached token."""
        return f"CachingTokenProvider(provider={self._provider!r}, ttl_seconds={self._ttl_seconds})"

    async def get_access_token(self) -> str:
        """Return the cached token, refreshing it from the wrapped provider when stale."""
        async with self._lock:
            if self._cached is None or not self._cached.is_fresh():
                token = await self._provider.get_access_token()
                self._cached = _CachedToken(token, time.monotonic() + self._ttl_seconds)
                logger.debug("Refreshed cached access token")
            return self._cached.value

    def invalidate(self) -> None:
        """Drop the cached token so the next call resolves a new one."""
        self._cached = None


class ClientCredentialsTokenProvider:
    """Obtains tokens with the OAuth2 client-credentials grant.

    Tokens are cached until ``expires_in - leeway_seconds`` after they were
    issued. A response without ``expires_in`` is used once and not cached.
    Error messages and logs never include the client secret.
    """

    def __init__(
        self,
        token_url: str,
        client_id: str,
        client_secret: str,
        audience: str | None = None,
        *,
        scope: str | None = None,
        leeway_seconds: float = 10.0,
        timeout: float = 10.0,
        transport: httpx.AsyncBaseTransport | None = None,
    ) -> None:
        """Initialize the client-credentials provider.

        Args:
            token_url: OAuth2 token endpoint
            client_id: Client identifier
            client_secret: Client secret
            audience: API audience requested, if the server needs one
            scope: Space separated scopes requested
            leeway_seconds: Seconds subtracted from ``expires_in`` before reuse stops
            timeout: HTTP timeout for token requests in seconds
            transport: Optional httpx transport (e.g. ``httpx.MockTransport``)

        Raises:
            ArgumentError: If token_url, client_id or client_secret is empty
        """
        for name, value in (
            ("token_url", token_url),
            ("client_id", client_id),
            ("client_secret", client_secret),
        ):
            if not value:
                msg = f"Must provide {name}"
                raise ArgumentError(msg)

        self._token_url = token_url
        self._client_id = client_id
        self._client_secret = client_secret
        self._audience = audience
        self._scope = scope
        self._leeway_seconds = leeway_seconds
        self._timeout = timeout
        self._transport = transport
        self._http_client: httpx.AsyncClient | None = None
        self._cached: _CachedToken | None = None
        self._lock = asyncio.Lock()

    def __repr__(self) -> str:
        """Return repr without exposing the client secret."""
        return (
            f"ClientCredentialsTokenProvider(token_url='{self._token_url}', "
            f"client_id='{self._client_id}', client_secret='***redacted***')"
        )

    async def __aenter__(self) -> "ClientCredentialsTokenProvider":
        """Async context manager entry."""
        return self

    async def __aexit__(
        self,
        exc_type: type[BaseException] | None,
        exc_val: BaseException | None,
        exc_tb: types.TracebackType | None,
    ) -> None:
        """Async context manager exit with cleanup."""
        await self.aclose()

    async def aclose(self) -> None:
        """Close the HTTP client used for token requests."""
        if self._http_client is not None:
            await self._http_client.aclose()
            self._http_client = None

    def _get_http_client(self) -> httpx.AsyncClient:
        if self._http_client is None:
            self._http_client = httpx.AsyncClient(
                timeout=self._timeout,
                transport=self._transport,
            )
        return self._http_client

    def _grant_payload(self) -> dict[str, str]:
        payload = {
            "grant_type": "client_credentials",
            "client_id": self._client_id,
            "client_secret": self._client_secret,
        }
        if self._audience is not None:
            payload["audience"] = self._audience
        if self._scope is not None:
            payload["scope"] = self._scope
        return payload

    async def get_access_token(self) -> str:
        """Return a cached token or request a new one.

        Returns:
            str: Access token

        Raises:
            TokenResolutionError: If the token endpoint fails or answers without a token
        """
        async with self._lock:
            if self._cached is not None and self._cached.is_fresh():
                return self._cached.value

            cached = await self._request_token()
            self._cached = cached
            return cached.value

    async def _request_token(self) -> _CachedToken:
        """Call the token endpoint.

        Errors are raised outside the httpx exception handlers so the request
        carrying the client secret is never attached to the raised error.
        """
        try:
            response = await self._get_http_client().post(
                self._token_url, data=self._grant_payload()
            )
        except httpx.HTTPError as error:
            logger.error(
                "Token request to %s failed: %s", self._token_url, type(error).__name__
            )
            failure = TokenResolutionError(
                f"Token request failed (url={self._token_url}, error={type(error).__name__})"
            )
        else:
            return self._parse_token_response(response)
        raise failure

    def _parse_token_response(self, response: httpx.Response) -> _CachedToken:
        if not response.is_success:
            logger.error(
                "Token endpoint %s answered with status %s",
                self._token_url,
                response.status_code,
            )
            raise TokenResolutionError.create_endpoint_error(self._token_url, response.status_code)

        try:
            body: Any = response.json()
        except ValueError:
            body = None

        token = body.get("access_token") if isinstance(body, dict) else None
        if not isinstance(token, str) or not token:
            logger.error("Token endpoint %s returned no access token", self._token_url)
            raise TokenResolutionError.create_malformed_response(self._token_url)

        expires_in = body.get("expires_in")
        if isinstance(expires_in, int | float) and expires_in > self._leeway_seconds:
            expires_at = time.monotonic() + expires_in - self._leeway_seconds
        else:
            expires_at = time.monotonic()

        logger.debug("Obtained access token from %s", self._token_url)
        return _CachedToken(token, expires_at)


__all__ = ["CachingTokenProvider", "ClientCredentialsTokenProvider", "StaticTokenProvider"]
