"""InitflowClient - Main entry point for initflow."""

from __future__ import annotations

import logging
from pathlib import Path
from typing import Any

from .constants import (
    DEFAULT_BASE_URL,
    DEFAULT_MAX_RETRIES,
    DEFAULT_RETRY_DELAY_MS,
    DEFAULT_RETRY_STATUS_CODES,
    DEFAULT_TIMEOUT_MS,
)
from .crypto.random import RandomSource
from .errors import DeviceNotRegisteredError
from .http import ApiClient
from .storage import LocalStore
from .types import ClientConfig, InitResult, LoginResponse, Workspace
from .workspace import StageCallback, WorkspaceKeyService

logger = logging.getLogger("initflow")


class InitflowClient:
    """Main client for workspace key management.

    Wires the API client, the local credential store and the workspace key
    service together. Device key material is read from the store here and
    handed to the service explicitly.

    Example:
        ```python
        async with InitflowClient() as client:
            for workspace in await client.list_workspaces():
                print(workspace.slug, workspace.key_initialized)
            await client.init_workspace("acme")
        ```
    """

    def __init__(
        self,
        *,
        base_url: str = DEFAULT_BASE_URL,
        token: str | None = None,
        store: LocalStore | None = None,
        store_path: str | Path | None = None,
        timeout: int = DEFAULT_TIMEOUT_MS,
        max_retries: int = DEFAULT_MAX_RETRIES,
        retry_delay: int = DEFAULT_RETRY_DELAY_MS,
        retry_on_status_codes: tuple[int, ...] | None = None,
        random_source: RandomSource | None = None,
    ) -> None:
        """Initialize the client.

        Args:
            base_url: Base URL for the API server.
            token: Bearer token. Defaults to the token in the local store.
            store: Local credential store. Built from ``store_path`` if omitted.
            store_path: Credential file path used when ``store`` is omitted.
            timeout: HTTP request timeout in milliseconds.
            max_retries: Maximum number of retry attempts.
            retry_delay: Initial retry delay in milliseconds.
            retry_on_status_codes: HTTP status codes that trigger retries.
                Default: (408, 429, 500, 502, 503, 504)
            random_source: Entropy source for keys and envelopes.
        """
        self._store = store if store is not None else LocalStore(store_path)
        self._config = ClientConfig(
            base_url=base_url,
            token=token if token is not None else self._store.get_token(),
            timeout=timeout,
            max_retries=max_retries,
            retry_delay=retry_delay,
            retry_on_status_codes=retry_on_status_codes or DEFAULT_RETRY_STATUS_CODES,
        )
        self._api_client = ApiClient(self._config)
        self._service = WorkspaceKeyService(
            self._api_client, self._store, random_source=random_source
        )

    @property
    def store(self) -> LocalStore:
        """The local credential store."""
        return self._store

    async def __aenter__(self) -> InitflowClient:
        """Enter async context manager."""
        return self

    async def __aexit__(self, exc_type: Any, exc_val: Any, exc_tb: Any) -> None:
        """Exit async context manager."""
        await self.close()

    async def close(self) -> None:
        """Close the HTTP client."""
        await self._api_client.close()

    async def login(self, email: str, password: str) -> LoginResponse:
        """Log in and persist the returned token.

        Args:
            email: Account email.
            password: Account password.

        Returns:
            The login response.

        Raises:
            ValueError: If email or password is empty.
        """
        email = email.strip()
        if not email:
            raise ValueError("Email cannot be empty")
        if not password:
            raise ValueError("Password cannot be empty")

        response = await self._api_client.login(email, password)
        self._store.store_token(response.token)
        logger.info("Logged in as %s", email)
        return response

    async def list_workspaces(self) -> list[Workspace]:
        """List workspaces and their key initialization status.

        Raises:
            DeviceNotRegisteredError: If this device is not registered.
        """
        self._require_device()
        return await self._service.list_workspaces()

    async def init_workspace(
        self, workspace_slug: str, *, on_stage: StageCallback | None = None
    ) -> InitResult:
        """Initialize the workspace key with this device's key pair.

        Args:
            workspace_slug: The workspace slug.
            on_stage: Called with each initialization stage as it is entered.

        Returns:
            The initialization result.

        Raises:
            DeviceNotRegisteredError: If this device is not registered.
            WorkspaceKeyInitError: If initialization fails.
        """
        self._require_device()
        keypair = self._store.get_keypair()
        return await self._service.initialize(
            workspace_slug, keypair.public_key, keypair.private_key, on_stage=on_stage
        )

    async def recover_workspace_key(self, workspace_slug: str) -> bytes:
        """Fetch and open the workspace key sealed to this device.

        Raises:
            DeviceNotRegisteredError: If this device is not registered.
            AuthenticationFailedError: If the envelope does not open.
        """
        self._require_device()
        return await self._service.recover_workspace_key(
            workspace_slug, self._store.get_private_key()
        )

    def _require_device(self) -> None:
        if not self._store.has_device_id():
            raise DeviceNotRegisteredError(
                "Device not registered. Register this device before managing workspace keys"
            )
        if not self._store.has_own_keypair():
            raise DeviceNotRegisteredError("Device key pair missing from local store")
