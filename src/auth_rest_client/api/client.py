"""Authenticating REST client.

This module provides the AuthenticatingRestClient class, which wraps a
request executor for one resource endpoint. Every operation resolves a fresh
access token, injects it as a bearer credential into the shared request
options, delegates to the executor and redacts the credential from any
transport error before it reaches the caller.

Each operation can be awaited or given a ``callback(error, result)``.
"""

import asyncio
import inspect
import logging
import types
from collections.abc import Awaitable, Callable, Coroutine, Mapping
from typing import Any, NamedTuple

from auth_rest_client.api.exceptions import ArgumentError, TransportError
from auth_rest_client.api.executor import RequestExecutor
from auth_rest_client.api.protocols import (
    ExecutorResponse,
    RequestExecutorFactory,
    RequestExecutorProtocol,
    TokenProvider,
)
from auth_rest_client.api.redaction import redact_error
from auth_rest_client.config import AUTHORIZATION_HEADER, RequestOptions, coerce_options

logger = logging.getLogger(__name__)

Callback = Callable[[Exception | None, Any], Awaitable[None] | None]


class ResponseWithHeaders(NamedTuple):
    """Payload together with the lower-cased response headers."""

    data: Any
    headers: dict[str, str]


class AuthenticatingRestClient:
    """REST client that authenticates every call with a freshly resolved token.

    The client owns one RequestOptions instance and shares it, by reference,
    with its executor. ``options.headers["Authorization"]`` is overwritten on
    every call and never reset, so concurrent operations on one client see
    the most recently resolved token.
    """

    def __init__(
        self,
        resource_url: str | None = None,
        options: RequestOptions | dict[str, Any] | None = None,
        token_provider: TokenProvider | None = None,
        *,
        executor_factory: RequestExecutorFactory = RequestExecutor,
    ) -> None:
        """Initialize the authenticating client.

        Args:
            resource_url: Resource URL, optionally with one ``:name`` placeholder
            options: RequestOptions, or a mapping validated into one. An instance
                is used as-is and receives the Authorization header; a mapping
                is copied into a new instance, so only ``client.options`` is live
                and the caller's mapping is never updated
            token_provider: Supplier of access tokens
            executor_factory: Builds the executor from ``(resource_url, options)``

        Raises:
            ArgumentError: If the URL, options or token provider is missing or invalid
        """
        if resource_url is None:
            msg = "Must provide a Resource Url"
            raise ArgumentError(msg)
        if not isinstance(resource_url, str) or not resource_url.strip():
            msg = "The provided Resource Url is invalid"
            raise ArgumentError(msg)
        if options is None:
            msg = "Must provide options"
            raise ArgumentError(msg)
        self.options = coerce_options(options)
        if token_provider is None:
            msg = "Must provide a token provider"
            raise ArgumentError(msg)

        self.resource_url = resource_url
        self._token_provider = token_provider
        self.executor: RequestExecutorProtocol = executor_factory(resource_url, self.options)
        self._pending: set[asyncio.Task[Any]] = set()

    def __str__(self) -> str:
        """Return string representation without exposing the bearer token."""
        return f"AuthenticatingRestClient(resource_url={self.resource_url}, token=***redacted***)"

    def __repr__(self) -> str:
        """Return repr without exposing the bearer token."""
        return (
            f"AuthenticatingRestClient(resource_url='{self.resource_url}', "
            "token='***redacted***')"
        )

    async def __aenter__(self) -> "AuthenticatingRestClient":
        """Async context manager entry."""
        return self

    async def __aexit__(
        self,
        exc_type: type[BaseException] | None,
        exc_val: BaseException | None,
        exc_tb: types.TracebackType | None,
    ) -> None:
        """Async context manager exit closing the executor."""
        await self.aclose()

    async def aclose(self) -> None:
        """Close the underlying executor."""
        await self.executor.aclose()

    def get(
        self, params: Mapping[str, Any] | None = None, *, callback: Callback | None = None
    ) -> asyncio.Task[Any]:
        """Fetch a single resource."""
        return self._dispatch("get", params, callback=callback)

    def get_all(
        self, params: Mapping[str, Any] | None = None, *, callback: Callback | None = None
    ) -> asyncio.Task[Any]:
        """Fetch a collection of resources."""
        return self._dispatch("get_all", params, callback=callback)

    def create(
        self,
        params: Mapping[str, Any] | None = None,
        data: Any = None,
        *,
        callback: Callback | None = None,
    ) -> asyncio.Task[Any]:
        """Create a resource (POST)."""
        return self._dispatch("create", params, data, callback=callback)

    def patch(
        self,
        params: Mapping[str, Any] | None = None,
        data: Any = None,
        *,
        callback: Callback | None = None,
    ) -> asyncio.Task[Any]:
        """Partially update a resource (PATCH)."""
        return self._dispatch("patch", params, data, callback=callback)

    def update(
        self,
        params: Mapping[str, Any] | None = None,
        data: Any = None,
        *,
        callback: Callback | None = None,
    ) -> asyncio.Task[Any]:
        """Replace a resource (PUT)."""
        return self._dispatch("update", params, data, callback=callback)

    def delete(
        self, params: Mapping[str, Any] | None = None, *, callback: Callback | None = None
    ) -> asyncio.Task[Any]:
        """Delete a resource."""
        return self._dispatch("delete", params, callback=callback)

    def _dispatch(
        self,
        verb: str,
        params: Mapping[str, Any] | None,
        *body: Any,
        callback: Callback | None,
    ) -> asyncio.Task[Any]:
        """Schedule an operation and return its task.

        Without a callback the task resolves to the result or raises the
        error. With a callback the outcome is delivered as
        ``callback(error, result)`` and the task itself resolves to None.

        Raises:
            RuntimeError: If called outside a running event loop
        """
        loop = asyncio.get_running_loop()
        operation = self._perform(verb, {} if params is None else params, *body)
        coro: Coroutine[Any, Any, Any] = (
            operation if callback is None else self._notify(operation, callback)
        )
        task = loop.create_task(coro)
        self._pending.add(task)
        task.add_done_callback(self._pending.discard)
        return task

    @staticmethod
    async def _notify(operation: Coroutine[Any, Any, Any], callback: Callback) -> None:
        """Run ``operation`` and report its outcome to ``callback``."""
        error: Exception | None = None
        result: Any = None
        try:
            result = await operation
        except Exception as exc:
            error = exc

        outcome = callback(error, result)
        if inspect.isawaitable(outcome):
            await outcome

    async def _perform(self, verb: str, params: Mapping[str, Any], *body: Any) -> Any:
        """Resolve a token, inject it and delegate ``verb`` to the executor.

        Raises:
            TransportError: Redacted copy of any executor failure
            Exception: Whatever the token provider raised, unchanged
        """
        try:
            token = await self._token_provider.get_access_token()
        except Exception:
            logger.warning("Access token resolution failed before %s %s", verb, self.resource_url)
            raise

        self.options.headers[AUTHORIZATION_HEADER] = f"Bearer {token}"

        operation = getattr(self.executor, verb)
        try:
            response = await operation(params, *body)
        except TransportError as error:
            failure = error
        else:
            return self._shape(response)

        # Raised outside the handler so no unredacted error lingers in __context__.
        sanitized = redact_error(failure)
        if sanitized is failure:
            # Nothing was captured to redact; keep the executor's own cause chain.
            raise failure
        raise sanitized from sanitized.original_error

    def _shape(self, response: ExecutorResponse) -> Any:
        """Return the bare payload, or payload plus headers when configured."""
        if self.options.include_response_headers:
            return ResponseWithHeaders(
                data=response.data,
                headers={name.lower(): value for name, value in response.headers.items()},
            )
        return response.data


__all__ = ["AuthenticatingRestClient", "Callback", "ResponseWithHeaders"]
