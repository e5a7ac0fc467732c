"""Pytest fixtures and configuration for the test suite."""

import httpx
import pytest
from pytest_mock import MockerFixture, MockType

from auth_rest_client.api.client import AuthenticatingRestClient
from auth_rest_client.config import RequestOptions
from tests.test_api_client_common import (
    ACCESS_TOKEN,
    DEFAULT_PAYLOAD,
    RESOURCE_URL,
    make_client,
    recording_transport,
)


@pytest.fixture
def token_provider(mocker: MockerFixture) -> MockType:
    """Provide a token provider double resolving ``ACCESS_TOKEN``.

    Returns:
        Mock: Object whose ``get_access_token`` is an AsyncMock.
    """
    provider = mocker.Mock()
    provider.get_access_token = mocker.AsyncMock(return_value=ACCESS_TOKEN)
    return provider


@pytest.fixture
def failing_token_provider(mocker: MockerFixture) -> MockType:
    """Provide a token provider double that always fails with ``Some Error``.

    Returns:
        Mock: Object whose ``get_access_token`` raises RuntimeError.
    """
    provider = mocker.Mock()
    provider.get_access_token = mocker.AsyncMock(side_effect=RuntimeError("Some Error"))
    return provider


@pytest.fixture
def recorded_requests() -> list[httpx.Request]:
    """Provide the list MockTransport handlers append sent requests to."""
    return []


@pytest.fixture
def options() -> RequestOptions:
    """Provide empty request options."""
    return RequestOptions(headers={})


@pytest.fixture
def client(
    options: RequestOptions,
    token_provider: MockType,
    recorded_requests: list[httpx.Request],
) -> AuthenticatingRestClient:
    """Provide a client for ``RESOURCE_URL`` answering 200 with ``DEFAULT_PAYLOAD``.

    Returns:
        AuthenticatingRestClient: Client backed by a recording MockTransport.
    """
    return make_client(
        RESOURCE_URL,
        options,
        token_provider,
        recording_transport(recorded_requests, json=DEFAULT_PAYLOAD),
    )
