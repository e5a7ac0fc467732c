"""Request executor performing URL assembly and HTTP transport.

This module provides the RequestExecutor class: it expands a resource URL
template with a path parameter, sends every other parameter as a query
string, executes the request with httpx and maps failures onto the
TransportError hierarchy.
"""

import logging
import re
import types
from collections.abc import Mapping
from typing import Any, NoReturn
from urllib.parse import quote

import httpx

from auth_rest_client.api.exceptions import (
    AuthenticationError,
    BadRequestError,
    ConflictError,
    ForbiddenError,
    NetworkError,
    NotFoundError,
    RateLimitError,
    ServerError,
    ServiceUnavailableError,
    TransportError,
    TransportTimeoutError,
    ValidationError,
)
from auth_rest_client.api.protocols import ExecutorResponse
from auth_rest_client.config import RequestOptions, redact_headers

# HTTP status code constants
_HTTP_INTERNAL_SERVER_ERROR = 500
_HTTP_MAX_SERVER_ERROR = 600

_STATUS_ERRORS: dict[int, type[TransportError]] = {
    400: BadRequestError,
    401: AuthenticationError,
    403: ForbiddenError,
    404: NotFoundError,
    409: ConflictError,
    422: ValidationError,
    429: RateLimitError,
    503: ServiceUnavailableError,
}

# ":name" right after a slash; the scheme separator never matches
_PLACEHOLDER = re.compile(r"/:([A-Za-z_]\w*)")

logger = logging.getLogger(__name__)


def _captured_request(error: httpx.HTTPError) -> httpx.Request | None:
    """Return the request attached to an httpx error, if httpx recorded one."""
    try:
        return error.request
    except RuntimeError:
        return None


def _error_message(body: Any) -> str | None:
    """Pick a human readable message out of a decoded error body."""
    if isinstance(body, dict):
        for key in ("message", "error_description", "error"):
            value = body.get(key)
            if isinstance(value, str) and value:
                return value
    return None


class RequestExecutor:
    """Executes CRUD-style requests against one resource URL template.

    The executor keeps a reference to the caller's RequestOptions and reads
    its headers each time a request is sent, so header changes made between
    calls are picked up without rebuilding the executor.
    """

    def __init__(
        self,
        url_template: str,
        options: RequestOptions,
        *,
        transport: httpx.AsyncBaseTransport | None = None,
    ) -> None:
        """Initialize the request executor.

        Args:
            url_template: Resource URL, optionally containing one ``:name`` placeholder
            options: Live transport options, held by reference
            transport: Optional httpx transport (e.g. ``httpx.MockTransport``)
        """
        self.url_template = url_template
        self.options = options
        self._transport = transport
        self._http_client: httpx.AsyncClient | None = None

    def __repr__(self) -> str:
        """Return repr without exposing request headers."""
        return f"RequestExecutor(url_template='{self.url_template}')"

    async def __aenter__(self) -> "RequestExecutor":
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
        """Close the underlying HTTP client if one was created."""
        if self._http_client is not None:
            await self._http_client.aclose()
            self._http_client = None

    def _get_http_client(self) -> httpx.AsyncClient:
        """Get or create HTTP client with proper configuration.

        Returns:
            httpx.AsyncClient: Configured async HTTP client
        """
        if self._http_client is None:
            timeout = httpx.Timeout(
                connect=self.options.timeout_connect,
                read=self.options.timeout_read,
                write=10.0,
                pool=10.0,
            )

            limits = httpx.Limits(
                max_keepalive_connections=5,
                max_connections=10,
            )

            client_kwargs: dict[str, Any] = {
                "timeout": timeout,
                "limits": limits,
                "follow_redirects": True,
                "headers": {"User-Agent": self.options.user_agent},
            }
            if self.options.proxy is not None:
                client_kwargs["proxy"] = self.options.proxy
            if self._transport is not None:
                client_kwargs["transport"] = self._transport

            self._http_client = httpx.AsyncClient(**client_kwargs)

        return self._http_client

    def build_url(self, params: Mapping[str, Any]) -> tuple[str, dict[str, Any]]:
        """Split parameters between the path placeholder and the query string.

        The placeholder value is percent-encoded with no safe characters, so
        ``/`` and ``|`` are escaped. A placeholder without a value is removed
        along with its leading slash. Remaining non-None parameters are
        returned in their original order for query encoding.

        Args:
            params: Operation parameters

        Returns:
            tuple[str, dict[str, Any]]: Expanded URL and query parameters
        """
        query = dict(params)

        def substitute(match: re.Match[str]) -> str:
            value = query.pop(match.group(1), None)
            if value is None:
                return ""
            return "/" + quote(str(value), safe="")

        url = _PLACEHOLDER.sub(substitute, self.url_template)
        return url, {key: value for key, value in query.items() if value is not None}

    @staticmethod
    def _decode_body(response: httpx.Response) -> Any:
        """Decode a response body: JSON when declared, text otherwise, None when empty.

        Raises:
            ValueError: If the body is declared as JSON but cannot be parsed
        """
        if not response.content:
            return None
        content_type = response.headers.get("content-type", "")
        if "json" in content_type:
            return response.json()
        return response.text

    def _handle_http_error(self, error: httpx.HTTPStatusError) -> NoReturn:
        """Map an HTTP status error onto the TransportError hierarchy.

        Args:
            error: HTTP status error from httpx

        Raises:
            BadRequestError: For 400 Bad Request
            AuthenticationError: For 401 Unauthorized
            ForbiddenError: For 403 Forbidden
            NotFoundError: For 404 Not Found
            ConflictError: For 409 Conflict
            ValidationError: For 422 Unprocessable Entity
            RateLimitError: For 429 Too Many Requests
            ServiceUnavailableError: For 503 Service Unavailable
            ServerError: For other 5xx server errors
            TransportError: For other HTTP errors
        """
        response = error.response
        status_code = response.status_code
        try:
            body = self._decode_body(response)
        except ValueError:
            body = response.text
        message = _error_message(body)

        context: dict[str, Any] = {
            "request": _captured_request(error),
            "response": response,
            "original_error": error,
            "body": body,
        }
        logger.error("Request to %s failed with status %s", error.request.url, status_code)

        error_class = _STATUS_ERRORS.get(status_code)
        if error_class is not None:
            if message is None:
                raise error_class(**context) from error
            raise error_class(message, **context) from error
        if _HTTP_INTERNAL_SERVER_ERROR <= status_code < _HTTP_MAX_SERVER_ERROR:
            raise ServerError(message or "Server error", status_code, **context) from error
        raise TransportError(
            message or f"Request failed with status {status_code}", status_code, **context
        ) from error

    async def _request(
        self,
        method: str,
        params: Mapping[str, Any],
        data: Any = None,
    ) -> ExecutorResponse:
        """Send one request built from the URL template and the live options.

        Args:
            method: HTTP method (GET, POST, PUT, PATCH, DELETE)
            params: Path and query parameters
            data: JSON body, or None for no body

        Returns:
            ExecutorResponse: Decoded payload, lower-cased headers and status

        Raises:
            TransportError: Or one of its subclasses, for any failure
        """
        url, query = self.build_url(params)
        headers = dict(self.options.headers)

        logger.debug(
            "Making %s request to %s with headers: %s",
            method,
            url,
            redact_headers(headers),
        )

        try:
            http_client = self._get_http_client()
            response = await http_client.request(
                method=method,
                url=url,
                params=query or None,
                headers=headers,
                json=data,
            )
            response.raise_for_status()
        except httpx.HTTPStatusError as error:
            self._handle_http_error(error)
        except httpx.TimeoutException as error:
            logger.exception("Request timeout for %s %s", method, url)
            raise TransportTimeoutError(
                request=_captured_request(error), original_error=error
            ) from error
        except httpx.TransportError as error:
            logger.exception("Network error for %s %s", method, url)
            raise NetworkError(request=_captured_request(error), original_error=error) from error
        except Exception as error:
            logger.exception("Unexpected error during %s request", method)
            raise TransportError.create_unexpected_error(method, url) from error

        try:
            payload = self._decode_body(response)
        except ValueError as error:
            logger.exception("Failed to parse response from %s", url)
            msg = f"Failed to parse response (method={method}, url={url})"
            raise TransportError(
                msg, response.status_code, request=response.request, response=response
            ) from error

        logger.debug("Successful response: %s", response.status_code)
        return ExecutorResponse(
            data=payload,
            headers={name.lower(): value for name, value in response.headers.items()},
            status_code=response.status_code,
        )

    async def get(self, params: Mapping[str, Any]) -> ExecutorResponse:
        """Fetch a single resource."""
        return await self._request("GET", params)

    async def get_all(self, params: Mapping[str, Any]) -> ExecutorResponse:
        """Fetch a collection of resources."""
        return await self._request("GET", params)

    async def create(self, params: Mapping[str, Any], data: Any) -> ExecutorResponse:
        """Create a resource with a POST request."""
        return await self._request("POST", params, data)

    async def patch(self, params: Mapping[str, Any], data: Any) -> ExecutorResponse:
        """Partially update a resource."""
        return await self._request("PATCH", params, data)

    async def update(self, params: Mapping[str, Any], data: Any) -> ExecutorResponse:
        """Replace a resource with a PUT request."""
        return await self._request("PUT", params, data)

    async def delete(self, params: Mapping[str, Any]) -> ExecutorResponse:
        """Delete a resource."""
        return await self._request("DELETE", params)


__all__ = ["RequestExecutor"]
