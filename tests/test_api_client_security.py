"""Token injection and credential redaction tests for AuthenticatingRestClient."""

from __future__ import annotations

import asyncio
from typing import Any

import httpx
import pytest
from pytest_mock import MockerFixture, MockType

from auth_rest_client.api.client import AuthenticatingRestClient
from auth_rest_client.api.exceptions import (
    AuthenticationError,
    NetworkError,
    ServerError,
    TransportError,
)
from auth_rest_client.config import REDACTED
from tests.test_api_client_common import (
    ACCESS_TOKEN,
    HTTP_INTERNAL_SERVER_ERROR,
    HTTP_UNAUTHORIZED,
    RESOURCE_ID_URL,
    RESOURCE_URL,
    SECRET_TOKEN_HIDDEN,
    failing_transport,
    make_client,
    recording_transport,
)


class TestTokenInjection:
    """Test that every call resolves a token and injects it."""

    @pytest.mark.asyncio
    async def test_authorization_header_set_on_options(
        self, client: AuthenticatingRestClient
    ) -> None:
        """Test that the live options carry the bearer token after a call."""
        await client.get_all()

        assert client.options.headers["Authorization"] == f"Bearer {ACCESS_TOKEN}"
        assert client.executor.options.headers["Authorization"] == f"Bearer {ACCESS_TOKEN}"

    @pytest.mark.asyncio
    async def test_request_sent_with_bearer_token(
        self, client: AuthenticatingRestClient, recorded_requests: list[httpx.Request]
    ) -> None:
        """Test that the outgoing request carries the Authorization header."""
        await client.get_all()

        assert recorded_requests[0].headers["authorization"] == f"Bearer {ACCESS_TOKEN}"

    @pytest.mark.asyncio
    async def test_token_resolved_on_every_call(
        self, client: AuthenticatingRestClient, token_provider: MockType
    ) -> None:
        """Test that the provider is asked once per operation."""
        await client.get_all()
        await client.get({"id": "1"})
        await client.delete({"id": "1"})

        assert token_provider.get_access_token.await_count == 3

    @pytest.mark.asyncio
    async def test_header_reflects_latest_token(
        self, mocker: MockerFixture, recorded_requests: list[httpx.Request]
    ) -> None:
        """Test that overlapping calls each send their own token and the last one sticks."""
        provider = mocker.Mock()
        provider.get_access_token = mocker.AsyncMock(side_effect=["token-1", "token-2"])
        client = make_client(
            RESOURCE_URL, {"headers": {}}, provider, recording_transport(recorded_requests)
        )

        await asyncio.gather(client.get_all(), client.get_all())

        sent = {request.headers["authorization"] for request in recorded_requests}
        assert sent == {"Bearer token-1", "Bearer token-2"}
        assert client.options.headers["Authorization"] == "Bearer token-2"

    @pytest.mark.asyncio
    async def test_existing_headers_kept(
        self, token_provider: MockType, recorded_requests: list[httpx.Request]
    ) -> None:
        """Test that configured headers are sent alongside the token."""
        client = make_client(
            RESOURCE_URL,
            {"headers": {"X-Tenant": "acme"}},
            token_provider,
            recording_transport(recorded_requests),
        )

        await client.get_all()

        assert recorded_requests[0].headers["x-tenant"] == "acme"
        assert client.options.headers == {
            "X-Tenant": "acme",
            "Authorization": f"Bearer {ACCESS_TOKEN}",
        }

    @pytest.mark.asyncio
    async def test_mapping_options_are_copied(
        self, token_provider: MockType, recorded_requests: list[httpx.Request]
    ) -> None:
        """Test that a plain mapping is validated into new options the caller never sees."""
        headers: dict[str, str] = {}
        raw_options: dict[str, Any] = {"headers": headers}
        client = make_client(
            RESOURCE_URL, raw_options, token_provider, recording_transport(recorded_requests)
        )

        await client.get_all()

        assert headers == {}
        assert raw_options == {"headers": {}}
        assert client.options.headers["Authorization"] == f"Bearer {ACCESS_TOKEN}"


class TestTokenProviderFailures:
    """Test that provider failures short-circuit and propagate verbatim."""

    @pytest.mark.asyncio
    @pytest.mark.parametrize(
        ("verb", "args"),
        [
            ("get", ({"id": "1"},)),
            ("get_all", ()),
            ("create", ({}, {"name": "x"})),
            ("patch", ({"id": "1"}, {"name": "x"})),
            ("update", ({"id": "1"}, {"name": "x"})),
            ("delete", ({"id": "1"},)),
        ],
    )
    async def test_callback_receives_provider_error(
        self,
        failing_token_provider: MockType,
        recorded_requests: list[httpx.Request],
        verb: str,
        args: tuple[Any, ...],
    ) -> None:
        """Test that each verb reports the provider error and sends nothing."""
        client = make_client(
            RESOURCE_ID_URL,
            {"headers": {}},
            failing_token_provider,
            recording_transport(recorded_requests, status_code=HTTP_INTERNAL_SERVER_ERROR),
        )
        outcomes: list[tuple[Exception | None, Any]] = []

        await getattr(client, verb)(*args, callback=lambda err, data: outcomes.append((err, data)))

        error, data = outcomes[0]
        assert isinstance(error, RuntimeError)
        assert str(error) == "Some Error"
        assert error is failing_token_provider.get_access_token.side_effect
        assert data is None
        assert recorded_requests == []

    @pytest.mark.asyncio
    async def test_awaitable_raises_provider_error(
        self, failing_token_provider: MockType, mocker: MockerFixture
    ) -> None:
        """Test that the awaited task raises the provider error and skips the executor."""
        executor = mocker.AsyncMock()
        client = AuthenticatingRestClient(
            "/some-resource",
            {},
            failing_token_provider,
            executor_factory=mocker.Mock(return_value=executor),
        )

        with pytest.raises(RuntimeError, match="Some Error"):
            await client.get_all()

        executor.get_all.assert_not_called()
        assert "Authorization" not in client.options.headers


class TestErrorRedaction:
    """Test that transport errors never expose the bearer token."""

    @pytest.mark.asyncio
    async def test_unauthorized_error_is_redacted(
        self, token_provider: MockType, recorded_requests: list[httpx.Request]
    ) -> None:
        """Test that a 401 error carries ``[REDACTED]`` instead of the token."""
        client = make_client(
            RESOURCE_URL,
            {"headers": {}},
            token_provider,
            recording_transport(recorded_requests, status_code=HTTP_UNAUTHORIZED),
        )

        with pytest.raises(AuthenticationError) as exc_info:
            await client.get_all()

        error = exc_info.value
        assert error.status_code == HTTP_UNAUTHORIZED
        assert error.request is not None
        assert error.request.headers["authorization"] == REDACTED
        assert error.response is not None
        assert error.response.request.headers["authorization"] == REDACTED
        assert isinstance(error.original_error, httpx.HTTPStatusError)
        assert error.original_error.request.headers["authorization"] == REDACTED
        assert error.__cause__ is error.original_error
        assert error.__context__ is None or error.__context__ is error.original_error

    @pytest.mark.asyncio
    async def test_redaction_leaves_live_state_untouched(
        self, token_provider: MockType, recorded_requests: list[httpx.Request]
    ) -> None:
        """Test that redaction works on copies, not on options or the sent request."""
        client = make_client(
            RESOURCE_URL,
            {"headers": {}},
            token_provider,
            recording_transport(recorded_requests, status_code=HTTP_UNAUTHORIZED),
        )

        with pytest.raises(AuthenticationError):
            await client.get_all()

        assert client.options.headers["Authorization"] == f"Bearer {ACCESS_TOKEN}"
        assert recorded_requests[0].headers["authorization"] == f"Bearer {ACCESS_TOKEN}"

    @pytest.mark.asyncio
    async def test_callback_receives_redacted_error(
        self, token_provider: MockType, recorded_requests: list[httpx.Request]
    ) -> None:
        """Test that the callback convention also gets the sanitized error."""
        client = make_client(
            RESOURCE_URL,
            {"headers": {}},
            token_provider,
            recording_transport(recorded_requests, status_code=HTTP_INTERNAL_SERVER_ERROR),
        )
        outcomes: list[Exception | None] = []

        await client.get_all(callback=lambda err, _data: outcomes.append(err))

        error = outcomes[0]
        assert isinstance(error, ServerError)
        assert error.request is not None
        assert error.request.headers["authorization"] == REDACTED

    @pytest.mark.asyncio
    async def test_network_error_is_redacted(
        self, token_provider: MockType, recorded_requests: list[httpx.Request]
    ) -> None:
        """Test that errors raised before any response are sanitized too."""
        client = make_client(
            RESOURCE_URL,
            {"headers": {}},
            token_provider,
            failing_transport(recorded_requests, lambda _r: httpx.ConnectError("refused")),
        )

        with pytest.raises(NetworkError) as exc_info:
            await client.get_all()

        error = exc_info.value
        assert error.request is not None
        assert error.request.headers["authorization"] == REDACTED
        assert isinstance(error.original_error, httpx.ConnectError)
        assert error.original_error.request.headers["authorization"] == REDACTED

    @pytest.mark.asyncio
    async def test_token_not_in_error_text(self, mocker: MockerFixture) -> None:
        """Test that the token never appears in error messages."""
        provider = mocker.Mock()
        provider.get_access_token = mocker.AsyncMock(return_value=SECRET_TOKEN_HIDDEN)
        requests: list[httpx.Request] = []
        client = make_client(
            RESOURCE_URL,
            {"headers": {}},
            provider,
            recording_transport(requests, status_code=HTTP_UNAUTHORIZED),
        )

        with pytest.raises(TransportError) as exc_info:
            await client.get_all()

        assert SECRET_TOKEN_HIDDEN not in str(exc_info.value)
        assert SECRET_TOKEN_HIDDEN not in repr(exc_info.value)
        assert SECRET_TOKEN_HIDDEN not in str(exc_info.value.request.headers)  # type: ignore[union-attr]

    @pytest.mark.asyncio
    async def test_unexpected_error_keeps_root_cause(
        self, token_provider: MockType, recorded_requests: list[httpx.Request]
    ) -> None:
        """Test that a non-httpx failure in the transport stays chained for debugging."""
        client = make_client(
            RESOURCE_URL,
            {"headers": {}},
            token_provider,
            failing_transport(recorded_requests, lambda _r: KeyError("boom")),
        )

        with pytest.raises(TransportError) as exc_info:
            await client.get_all()

        error = exc_info.value
        assert "Unexpected transport error" in str(error)
        assert error.request is None
        assert isinstance(error.__cause__, KeyError)


class TestResponseHeaders:
    """Test the include_response_headers option."""

    @pytest.mark.asyncio
    async def test_awaitable_includes_headers(
        self, token_provider: MockType, recorded_requests: list[httpx.Request]
    ) -> None:
        """Test that awaited results carry data and lower-cased headers."""
        client = make_client(
            RESOURCE_URL,
            {"include_response_headers": True, "headers": {}},
            token_provider,
            recording_transport(recorded_requests, json={"data": "value"}),
        )

        data, headers = await client.get_all()

        assert data == {"data": "value"}
        assert headers["content-type"] == "application/json"
        assert all(name == name.lower() for name in headers)

    @pytest.mark.asyncio
    async def test_callback_includes_headers(
        self, token_provider: MockType, recorded_requests: list[httpx.Request]
    ) -> None:
        """Test that callback results carry data and headers."""
        client = make_client(
            RESOURCE_URL,
            {"include_response_headers": True, "headers": {}},
            token_provider,
            recording_transport(
                recorded_requests, json={"data": "value"}, headers={"X-Request-Id": "abc"}
            ),
        )
        outcomes: list[Any] = []

        await client.get_all(callback=lambda _err, result: outcomes.append(result))

        result = outcomes[0]
        assert result.data == {"data": "value"}
        assert result.headers["content-type"] == "application/json"
        assert result.headers["x-request-id"] == "abc"

    @pytest.mark.asyncio
    async def test_bare_payload_by_default(self, client: AuthenticatingRestClient) -> None:
        """Test that results are the bare payload when the option is off."""
        assert await client.get_all() == {"data": "value"}
