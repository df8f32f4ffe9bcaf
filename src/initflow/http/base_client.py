"""Base HTTP client with retry logic for initflow."""

from __future__ import annotations

import asyncio
import json
import logging
import re
from typing import Any
from urllib.parse import quote

import httpx

from ..errors import ApiError, AuthenticationError, NetworkError, WorkspaceNotFoundError
from ..types import ClientConfig

logger = logging.getLogger("initflow")

_WORKSPACE_NOT_FOUND_PATTERN = re.compile(
    r"\bworkspace\b.*\b(not found|does not exist)\b", re.IGNORECASE
)


def encode_path_segment(value: str) -> str:
    """URL-encode a path segment for use in API URLs.

    Args:
        value: The value to encode.

    Returns:
        URL-encoded string safe for use in URL paths.
    """
    return quote(value, safe="")


class BaseApiClient:
    """Base HTTP client for the initflow API with automatic retry logic.

    Attributes:
        config: Client configuration.
    """

    def __init__(self, config: ClientConfig) -> None:
        """Initialize the base API client.

        Args:
            config: Client configuration with base URL, token and retry settings.
        """
        self.config = config
        self._client: httpx.AsyncClient | None = None

    def _headers(self) -> dict[str, str]:
        headers = {"Content-Type": "application/json", "Accept": "application/json"}
        if self.config.token:
            headers["Authorization"] = f"Bearer {self.config.token}"
        return headers

    async def _get_client(self) -> httpx.AsyncClient:
        """Get or create the HTTP client.

        Returns:
            The HTTP client instance.
        """
        if self._client is None or self._client.is_closed:
            self._client = httpx.AsyncClient(
                base_url=self.config.base_url,
                headers=self._headers(),
                timeout=httpx.Timeout(self.config.timeout / 1000),
            )
        return self._client

    def set_token(self, token: str | None) -> None:
        """Replace the bearer token used for subsequent requests.

        Args:
            token: The new token, or None to drop authentication.
        """
        self.config.token = token
        if self._client is not None and not self._client.is_closed:
            if token:
                self._client.headers["Authorization"] = f"Bearer {token}"
            else:
                self._client.headers.pop("Authorization", None)

    async def close(self) -> None:
        """Close the HTTP client."""
        if self._client is not None and not self._client.is_closed:
            await self._client.aclose()
            self._client = None

    async def _request(
        self,
        method: str,
        path: str,
        *,
        json: dict[str, Any] | None = None,
        params: dict[str, Any] | None = None,
    ) -> httpx.Response:
        """Make an HTTP request with retry logic.

        Args:
            method: HTTP method (GET, POST, DELETE, PATCH).
            path: API path.
            json: JSON body for the request.
            params: Query parameters.

        Returns:
            The HTTP response.

        Raises:
            ApiError: If the request fails after all retries.
            AuthenticationError: If the token is missing or rejected.
            WorkspaceNotFoundError: If the workspace is not found.
            NetworkError: If there's a network communication failure.
        """
        client = await self._get_client()
        last_error: Exception | None = None

        for attempt in range(self.config.max_retries + 1):
            try:
                response = await client.request(method, path, json=json, params=params)

                # Check if we should retry based on status code
                if (
                    response.status_code in self.config.retry_on_status_codes
                    and attempt < self.config.max_retries
                ):
                    delay = self.config.retry_delay * (2**attempt) / 1000
                    logger.debug(
                        "%s %s returned %d, retrying in %.2fs",
                        method,
                        path,
                        response.status_code,
                        delay,
                    )
                    await asyncio.sleep(delay)
                    continue

                if response.status_code >= 400:
                    self._handle_error_response(response)

                return response

            except (httpx.ConnectError, httpx.TimeoutException, httpx.NetworkError) as e:
                last_error = e
                if attempt < self.config.max_retries:
                    delay = self.config.retry_delay * (2**attempt) / 1000
                    logger.debug("%s %s failed (%s), retrying in %.2fs", method, path, e, delay)
                    await asyncio.sleep(delay)
                    continue
                raise NetworkError(f"Network error: {e}") from e

        if last_error:  # pragma: no cover
            raise NetworkError(
                f"Request failed after {self.config.max_retries} retries"
            ) from last_error
        raise NetworkError(
            f"Request failed after {self.config.max_retries} retries"
        )  # pragma: no cover

    def _handle_error_response(self, response: httpx.Response) -> None:
        """Handle HTTP error responses.

        Args:
            response: The HTTP response.

        Raises:
            AuthenticationError: For 401 responses.
            WorkspaceNotFoundError: If the workspace is not found.
            ApiError: For other API errors.
        """
        try:
            data = response.json()
            message = data.get("message", data.get("error", response.text))
        except (ValueError, json.JSONDecodeError, AttributeError):
            message = response.text or f"HTTP {response.status_code}"

        if response.status_code == 401:
            raise AuthenticationError(message)

        if response.status_code == 404 and _WORKSPACE_NOT_FOUND_PATTERN.search(message):
            raise WorkspaceNotFoundError(message)

        raise ApiError(response.status_code, message)
