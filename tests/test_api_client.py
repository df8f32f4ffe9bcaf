"""Tests for HTTP API client with retry logic."""

from __future__ import annotations

import base64
import json
from unittest.mock import AsyncMock, MagicMock, patch

import httpx
import pytest

from initflow.errors import (
    ApiError,
    AuthenticationError,
    MalformedEnvelopeError,
    NetworkError,
    WorkspaceNotFoundError,
)
from initflow.http import ApiClient, encode_path_segment
from initflow.types import ClientConfig


@pytest.fixture
def config() -> ClientConfig:
    """Create a test client configuration."""
    return ClientConfig(
        base_url="https://test.example.com",
        token="test-token",
        timeout=5000,
        max_retries=2,
        retry_delay=100,  # Short delay for testing
        retry_on_status_codes=(429, 503),
    )


@pytest.fixture
def api_client(config: ClientConfig) -> ApiClient:
    """Create an API client for testing."""
    return ApiClient(config)


def install_transport(api_client: ApiClient, handler) -> list[httpx.Request]:
    """Route the client's requests to a handler and record them."""
    requests: list[httpx.Request] = []

    def record(request: httpx.Request) -> httpx.Response:
        requests.append(request)
        return handler(request)

    api_client._client = httpx.AsyncClient(
        base_url=api_client.config.base_url,
        headers=api_client._headers(),
        transport=httpx.MockTransport(record),
    )
    return requests


def mock_responses(api_client: ApiClient, responses: list[httpx.Response]) -> list[int]:
    """Install a mock client returning responses in order."""
    calls = [0]

    async def mock_request(*args, **kwargs):
        response = responses[calls[0]]
        calls[0] += 1
        return response

    mock_client = MagicMock()
    mock_client.is_closed = False
    mock_client.request = mock_request
    api_client._client = mock_client
    return calls


class TestRetry:
    """Tests for retry behavior."""

    @pytest.mark.asyncio
    async def test_retry_on_429_status_code(self, api_client: ApiClient) -> None:
        """Test that 429 status code triggers retry with exponential backoff."""
        calls = mock_responses(
            api_client,
            [
                httpx.Response(429, text="Rate limited"),
                httpx.Response(429, text="Rate limited"),
                httpx.Response(200, json={"workspaces": []}),
            ],
        )

        with patch("asyncio.sleep", new_callable=AsyncMock) as mock_sleep:
            response = await api_client._request("GET", "/test")

        assert response.status_code == 200
        assert calls[0] == 3
        # delay * 2^attempt / 1000
        assert mock_sleep.call_count == 2
        mock_sleep.assert_any_call(0.1)
        mock_sleep.assert_any_call(0.2)

    @pytest.mark.asyncio
    async def test_exhausted_retries_on_status_code_raises_error(
        self, api_client: ApiClient
    ) -> None:
        """Test that exhausting retries on retryable status raises ApiError."""
        mock_responses(
            api_client,
            [httpx.Response(503, json={"message": "Unavailable"})] * 3,
        )

        with patch("asyncio.sleep", new_callable=AsyncMock), pytest.raises(ApiError) as exc_info:
            await api_client._request("GET", "/test")

        assert exc_info.value.status_code == 503
        assert exc_info.value.message == "Unavailable"

    @pytest.mark.asyncio
    async def test_network_error_retries_then_raises(self, api_client: ApiClient) -> None:
        """Test that persistent connection errors raise NetworkError."""

        async def mock_request(*args, **kwargs):
            raise httpx.ConnectError("connection refused")

        mock_client = MagicMock()
        mock_client.is_closed = False
        mock_client.request = mock_request
        api_client._client = mock_client

        with (
            patch("asyncio.sleep", new_callable=AsyncMock) as mock_sleep,
            pytest.raises(NetworkError, match="connection refused"),
        ):
            await api_client._request("GET", "/test")

        assert mock_sleep.call_count == 2

    @pytest.mark.asyncio
    async def test_network_error_recovers(self, api_client: ApiClient) -> None:
        """Test that a transient timeout is retried."""
        attempts = [0]

        async def mock_request(*args, **kwargs):
            attempts[0] += 1
            if attempts[0] == 1:
                raise httpx.ReadTimeout("slow")
            return httpx.Response(200, json={})

        mock_client = MagicMock()
        mock_client.is_closed = False
        mock_client.request = mock_request
        api_client._client = mock_client

        with patch("asyncio.sleep", new_callable=AsyncMock):
            response = await api_client._request("GET", "/test")

        assert response.status_code == 200
        assert attempts[0] == 2


class TestErrorMapping:
    """Tests for HTTP error classification."""

    @pytest.mark.asyncio
    async def test_401_raises_authentication_error(self, api_client: ApiClient) -> None:
        """Test that 401 maps to AuthenticationError."""
        mock_responses(api_client, [httpx.Response(401, json={"error": "token expired"})])

        with pytest.raises(AuthenticationError, match="token expired") as exc_info:
            await api_client._request("GET", "/test")
        assert exc_info.value.status_code == 401

    @pytest.mark.asyncio
    async def test_404_workspace_message(self, api_client: ApiClient) -> None:
        """Test that a workspace 404 maps to WorkspaceNotFoundError."""
        mock_responses(api_client, [httpx.Response(404, json={"message": "Workspace not found"})])

        with pytest.raises(WorkspaceNotFoundError):
            await api_client._request("GET", "/test")

    @pytest.mark.asyncio
    async def test_other_404_is_api_error(self, api_client: ApiClient) -> None:
        """Test that an unrelated 404 stays a plain ApiError."""
        mock_responses(api_client, [httpx.Response(404, text="Not Found")])

        with pytest.raises(ApiError) as exc_info:
            await api_client._request("GET", "/test")
        assert not isinstance(exc_info.value, WorkspaceNotFoundError)
        assert exc_info.value.message == "Not Found"

    @pytest.mark.asyncio
    async def test_empty_body_uses_status(self, api_client: ApiClient) -> None:
        """Test that an empty error body falls back to the status code."""
        mock_responses(api_client, [httpx.Response(500)])

        with patch("asyncio.sleep", new_callable=AsyncMock), pytest.raises(ApiError) as exc_info:
            await api_client._request("GET", "/test")
        assert exc_info.value.message == "HTTP 500"


class TestEndpoints:
    """Tests for request and response shapes."""

    @pytest.mark.asyncio
    async def test_bearer_token_header(self, api_client: ApiClient) -> None:
        """Test that requests carry the bearer token."""
        requests = install_transport(api_client, lambda r: httpx.Response(200, json=[]))

        await api_client.list_workspaces()

        assert requests[0].headers["Authorization"] == "Bearer test-token"

    @pytest.mark.asyncio
    async def test_login_installs_token(self, api_client: ApiClient) -> None:
        """Test that login posts credentials and switches the token."""

        def handler(request: httpx.Request) -> httpx.Response:
            if request.url.path == "/api/v1/auth/login":
                return httpx.Response(
                    200,
                    json={
                        "token": "new-token",
                        "user": {"id": 7, "email": "a@b.c", "name": "Ada", "surname": "L"},
                    },
                )
            return httpx.Response(200, json={"workspaces": []})

        requests = install_transport(api_client, handler)

        login = await api_client.login("a@b.c", "pw")
        await api_client.list_workspaces()

        assert json.loads(requests[0].content) == {"email": "a@b.c", "password": "pw"}
        assert login.token == "new-token"
        assert login.user.id == "7"
        assert login.user.name == "Ada"
        assert api_client.config.token == "new-token"
        assert requests[1].headers["Authorization"] == "Bearer new-token"

    @pytest.mark.asyncio
    async def test_list_workspaces(self, api_client: ApiClient) -> None:
        """Test that workspaces are parsed."""
        payload = {
            "workspaces": [
                {"id": "w1", "name": "Acme", "slug": "acme", "key_initialized": True,
                 "role": "owner"},
                {"id": 2, "name": "Beta", "slug": "beta"},
            ]
        }
        requests = install_transport(api_client, lambda r: httpx.Response(200, json=payload))

        workspaces = await api_client.list_workspaces()

        assert requests[0].method == "GET"
        assert requests[0].url.path == "/api/v1/workspaces"
        assert [w.slug for w in workspaces] == ["acme", "beta"]
        assert workspaces[0].key_initialized is True
        assert workspaces[0].role == "owner"
        assert workspaces[1].id == "2"
        assert workspaces[1].key_initialized is False

    @pytest.mark.asyncio
    async def test_get_workspace_by_slug_encodes_path(self, api_client: ApiClient) -> None:
        """Test that slugs are URL-encoded."""
        requests = install_transport(
            api_client,
            lambda r: httpx.Response(
                200, json={"id": "w1", "name": "A", "slug": "a/b", "key_initialized": False}
            ),
        )

        workspace = await api_client.get_workspace_by_slug("a/b")

        assert requests[0].url.raw_path == b"/api/v1/workspaces/a%2Fb"
        assert workspace.slug == "a/b"

    @pytest.mark.asyncio
    async def test_get_workspace_by_slug_404(self, api_client: ApiClient) -> None:
        """Test that any 404 on lookup is WorkspaceNotFoundError."""
        install_transport(api_client, lambda r: httpx.Response(404, text="Not Found"))

        with pytest.raises(WorkspaceNotFoundError, match="'missing' not found"):
            await api_client.get_workspace_by_slug("missing")

    @pytest.mark.asyncio
    async def test_initialize_workspace_key_sends_base64(self, api_client: ApiClient) -> None:
        """Test that the envelope is uploaded base64-encoded."""
        envelope = bytes(range(92))
        requests = install_transport(api_client, lambda r: httpx.Response(201, json={}))

        await api_client.initialize_workspace_key("w1", envelope)

        assert requests[0].method == "POST"
        assert requests[0].url.path == "/api/v1/workspaces/w1/key"
        body = json.loads(requests[0].content)
        assert base64.b64decode(body["wrapped_key"]) == envelope

    @pytest.mark.asyncio
    async def test_initialize_workspace_key_conflict(self, api_client: ApiClient) -> None:
        """Test that a second initialization surfaces the 409."""
        install_transport(
            api_client, lambda r: httpx.Response(409, json={"message": "already initialized"})
        )

        with pytest.raises(ApiError) as exc_info:
            await api_client.initialize_workspace_key("w1", bytes(92))
        assert exc_info.value.status_code == 409

    @pytest.mark.asyncio
    async def test_get_wrapped_workspace_key(self, api_client: ApiClient) -> None:
        """Test that the envelope is decoded from base64."""
        envelope = bytes(range(92))
        install_transport(
            api_client,
            lambda r: httpx.Response(
                200, json={"wrapped_key": base64.b64encode(envelope).decode()}
            ),
        )

        assert await api_client.get_wrapped_workspace_key("w1") == envelope

    @pytest.mark.asyncio
    async def test_get_wrapped_workspace_key_missing_field(self, api_client: ApiClient) -> None:
        """Test that a response without wrapped_key raises ApiError."""
        for response in (
            httpx.Response(200, json={}),
            httpx.Response(200, json=["wrapped_key"]),
            httpx.Response(200, text="<html>"),
        ):
            install_transport(api_client, lambda r, response=response: response)

            with pytest.raises(ApiError) as exc_info:
                await api_client.get_wrapped_workspace_key("w1")
            assert exc_info.value.status_code == 200

    @pytest.mark.asyncio
    async def test_get_wrapped_workspace_key_bad_base64(self, api_client: ApiClient) -> None:
        """Test that an undecodable wrapped_key raises MalformedEnvelopeError."""
        for value in ("not base64!", 12345):
            install_transport(
                api_client, lambda r, value=value: httpx.Response(200, json={"wrapped_key": value})
            )

            with pytest.raises(MalformedEnvelopeError, match="not valid base64"):
                await api_client.get_wrapped_workspace_key("w1")


class TestClientLifecycle:
    """Tests for client creation and teardown."""

    @pytest.mark.asyncio
    async def test_close(self, api_client: ApiClient) -> None:
        """Test that close releases the HTTP client."""
        client = await api_client._get_client()
        assert not client.is_closed
        await api_client.close()
        assert client.is_closed
        assert api_client._client is None

    def test_no_token_no_auth_header(self) -> None:
        """Test that no Authorization header is sent without a token."""
        client = ApiClient(ClientConfig())
        assert "Authorization" not in client._headers()

    def test_encode_path_segment(self) -> None:
        """Test URL encoding of path segments."""
        assert encode_path_segment("a b/c") == "a%20b%2Fc"
