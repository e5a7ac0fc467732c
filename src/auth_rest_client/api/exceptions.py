"""Custom exceptions for authenticated REST operations.

This module defines the exception hierarchy raised by the authenticating
client, its request executor and the bundled token providers. Messages never
carry bearer tokens or client secrets.
"""

from typing import Any

import httpx


class ArgumentError(ValueError):
    """Raised synchronously when a client or provider is built with bad arguments."""


class TokenResolutionError(Exception):
    """Raised by the bundled token providers when no access token can be obtained.

    Providers supplied by the caller may raise anything; whatever they raise
    reaches the caller unchanged.
    """

    def __init__(self, message: str = "Failed to resolve access token") -> None:
        """Initialize token resolution error.

        Args:
            message: Error message (must not contain secrets)
        """
        super().__init__(message)

    @classmethod
    def create_endpoint_error(cls, token_url: str, status_code: int) -> "TokenResolutionError":
        """Create an error for a non-2xx answer from a token endpoint.

        Args:
            token_url: Token endpoint that was called
            status_code: HTTP status code returned

        Returns:
            TokenResolutionError with contextual message
        """
        return cls(f"Token endpoint rejected request (url={token_url}, status={status_code})")

    @classmethod
    def create_malformed_response(cls, token_url: str) -> "TokenResolutionError":
        """Create an error for a token response without a usable access token.

        Args:
            token_url: Token endpoint that was called

        Returns:
            TokenResolutionError with contextual message
        """
        return cls(f"Token endpoint returned no access token (url={token_url})")


class TransportError(Exception):
    """Base exception for every failure reported by the request executor.

    Carries the captured outgoing request so callers can inspect what was sent.
    The authenticating client redacts the ``authorization`` header of that
    request before the error is handed over.
    """

    def __init__(
        self,
        message: str,
        status_code: int | None = None,
        *,
        request: httpx.Request | None = None,
        response: httpx.Response | None = None,
        original_error: httpx.HTTPError | None = None,
        body: Any = None,
    ) -> None:
        """Initialize transport error.

        Args:
            message: Error message (must not contain bearer token)
            status_code: HTTP status code if applicable
            request: Outgoing request as captured by httpx
            response: Response received, if any
            original_error: Underlying httpx error
            body: Decoded response body, if any
        """
        self.status_code = status_code
        self.request = request
        self.response = response
        self.original_error = original_error
        self.body = body
        super().__init__(message)

    @classmethod
    def create_unexpected_error(cls, method: str, url: str) -> "TransportError":
        """Create an error for unexpected executor failures with safe context.

        Args:
            method: HTTP method used
            url: URL called

        Returns:
            TransportError with contextual message
        """
        safe_context = f"method={method}, url={url}, status_unknown"
        return cls(f"Unexpected transport error ({safe_context})")


class BadRequestError(TransportError):
    """Raised when request parameters are invalid (400 Bad Request)."""

    def __init__(self, message: str = "Bad request - invalid parameters", **kwargs: Any) -> None:
        super().__init__(message, status_code=400, **kwargs)


class AuthenticationError(TransportError):
    """Raised when the bearer token is rejected (401 Unauthorized)."""

    def __init__(self, message: str = "Authentication failed", **kwargs: Any) -> None:
        super().__init__(message, status_code=401, **kwargs)


class ForbiddenError(TransportError):
    """Raised when the token lacks permission for the resource (403 Forbidden)."""

    def __init__(self, message: str = "Insufficient scope for resource", **kwargs: Any) -> None:
        super().__init__(message, status_code=403, **kwargs)


class NotFoundError(TransportError):
    """Raised when a resource is not found (404 Not Found)."""

    def __init__(self, message: str = "Resource not found", **kwargs: Any) -> None:
        super().__init__(message, status_code=404, **kwargs)


class ConflictError(TransportError):
    """Raised when the resource state conflicts with the request (409 Conflict)."""

    def __init__(self, message: str = "Resource conflict", **kwargs: Any) -> None:
        super().__init__(message, status_code=409, **kwargs)


class ValidationError(TransportError):
    """Raised when the provided entity is not valid (422 Unprocessable Entity)."""

    def __init__(self, message: str = "Entity validation failed", **kwargs: Any) -> None:
        super().__init__(message, status_code=422, **kwargs)


class RateLimitError(TransportError):
    """Raised when the rate limit is exceeded (429 Too Many Requests)."""

    def __init__(self, message: str = "Rate limit exceeded", **kwargs: Any) -> None:
        super().__init__(message, status_code=429, **kwargs)


class ServerError(TransportError):
    """Raised when the server returns 5xx errors."""

    def __init__(self, message: str = "Server error", status_code: int = 500, **kwargs: Any) -> None:
        super().__init__(message, status_code=status_code, **kwargs)


class ServiceUnavailableError(ServerError):
    """Raised when the service is temporarily unavailable (503 Service Unavailable)."""

    def __init__(
        self, message: str = "Service temporarily unavailable", **kwargs: Any
    ) -> None:
        super().__init__(message, status_code=503, **kwargs)


class NetworkError(TransportError):
    """Raised when network operations fail before a response is received."""

    def __init__(self, message: str = "Network error occurred", **kwargs: Any) -> None:
        super().__init__(message, status_code=None, **kwargs)


class TransportTimeoutError(TransportError):
    """Raised when the request times out on the client side."""

    def __init__(self, message: str = "Request timeout", **kwargs: Any) -> None:
        super().__init__(message, status_code=None, **kwargs)
