"""Protocol definitions for the authenticating client's collaborators.

This module provides typing protocols for the token provider and the request
executor, so both can be substituted without inheriting from the bundled
implementations.
"""

from collections.abc import Mapping
from typing import Any, NamedTuple, Protocol

from auth_rest_client.config import RequestOptions


class ExecutorResponse(NamedTuple):
    """Decoded result of one executor call."""

    data: Any
    headers: dict[str, str]
    status_code: int


class TokenProvider(Protocol):
    """Supplier of bearer tokens."""

    async def get_access_token(self) -> str:
        """Return an access token.

        Returns:
            str: Token to send as ``Authorization: Bearer <token>``
        """
        ...


class RequestExecutorProtocol(Protocol):
    """Protocol defining the verbs the authenticating client delegates to.

    Implementations receive the client's RequestOptions by reference and must
    read ``options.headers`` when each request is sent.
    """

    options: RequestOptions

    async def get(self, params: Mapping[str, Any]) -> ExecutorResponse: ...

    async def get_all(self, params: Mapping[str, Any]) -> ExecutorResponse: ...

    async def create(self, params: Mapping[str, Any], data: Any) -> ExecutorResponse: ...

    async def patch(self, params: Mapping[str, Any], data: Any) -> ExecutorResponse: ...

    async def update(self, params: Mapping[str, Any], data: Any) -> ExecutorResponse: ...

    async def delete(self, params: Mapping[str, Any]) -> ExecutorResponse: ...

    async def aclose(self) -> None: ...


class RequestExecutorFactory(Protocol):
    """Callable building an executor from a URL template and live options."""

    def __call__(self, url_template: str, options: RequestOptions) -> RequestExecutorProtocol: ...
