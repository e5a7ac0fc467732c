"""Credential redaction for transport errors.

Errors raised by the request executor keep a reference to the outgoing
request, including its Authorization header. The helpers here build copies
of the request, the response and the httpx error with that header replaced
by ``[REDACTED]``, so error introspection, logs and crash reporters never
see the bearer token. The originals are left untouched.
"""

import copy

import httpx

from auth_rest_client.api.exceptions import TransportError
from auth_rest_client.config import REDACTED


def redact_request(request: httpx.Request) -> httpx.Request:
    """Return a copy of ``request`` whose authorization header is redacted.

    Args:
        request: Request as captured by httpx

    Returns:
        httpx.Request: New request with a copied header map
    """
    headers = httpx.Headers(request.headers)
    if "authorization" in headers:
        headers["authorization"] = REDACTED

    try:
        content: bytes | None = request.content
    except httpx.RequestNotRead:
        content = None

    return httpx.Request(
        request.method,
        request.url,
        headers=headers,
        content=content,
        extensions=request.extensions,
    )


def _redact_response(response: httpx.Response, request: httpx.Request) -> httpx.Response:
    redacted = copy.copy(response)
    redacted.request = request
    return redacted


def _redact_httpx_error(
    error: httpx.HTTPError,
    request: httpx.Request,
    response: httpx.Response | None,
) -> httpx.HTTPError:
    if isinstance(error, httpx.HTTPStatusError):
        if response is None:
            response = _redact_response(error.response, request)
        return httpx.HTTPStatusError(str(error), request=request, response=response)
    redacted = type(error)(str(error))
    redacted.request = request
    return redacted


def redact_error(error: TransportError) -> TransportError:
    """Return a copy of ``error`` with every captured credential redacted.

    The copy carries a redacted request, a response and original httpx error
    pointing at that request, and has the redacted httpx error as its
    ``__cause__``. Errors that captured no request are returned unchanged.

    Args:
        error: Error raised by the request executor

    Returns:
        TransportError: Sanitized error safe to hand to caller code
    """
    if error.request is None:
        return error

    request = redact_request(error.request)
    sanitized = copy.copy(error)
    sanitized.request = request
    sanitized.response = (
        _redact_response(error.response, request) if error.response is not None else None
    )
    sanitized.original_error = (
        _redact_httpx_error(error.original_error, request, sanitized.response)
        if error.original_error is not None
        else None
    )
    sanitized.__cause__ = sanitized.original_error
    return sanitized
