"""Workspace key initialization and recovery for initflow."""

from __future__ import annotations

import hmac
import logging
from collections.abc import Callable
from typing import Any, Protocol

from .crypto.envelope import open_envelope, seal
from .crypto.random import RandomSource
from .crypto.workspace_key import generate_workspace_key
from .errors import (
    ApiError,
    CryptoError,
    InitflowError,
    UploadedButNotStoredLocallyError,
    WorkspaceKeyInitError,
)
from .types import InitResult, InitStage, InitStatus, Workspace

logger = logging.getLogger("initflow")

StageCallback = Callable[[InitStage], Any]


class WorkspaceBackend(Protocol):
    """Backend operations the workspace key service relies on."""

    async def list_workspaces(self) -> list[Workspace]: ...

    async def get_workspace_by_slug(self, slug: str) -> Workspace: ...

    async def initialize_workspace_key(self, workspace_id: str, wrapped_key: bytes) -> None: ...

    async def get_wrapped_workspace_key(self, workspace_id: str) -> bytes: ...


class WorkspaceKeyStore(Protocol):
    """Local persistence the workspace key service relies on."""

    def has_workspace_key(self, slug: str) -> bool: ...

    def store_workspace_key(self, slug: str, key: bytes) -> None: ...


class WorkspaceKeyService:
    """Creates, uploads and stores workspace keys for one device.

    Key material is always passed in explicitly; the service never reads the
    device identity from the store. It holds no per-workspace state, so one
    instance may serve several workspaces.

    Example:
        ```python
        service = WorkspaceKeyService(api_client, store)
        result = await service.initialize("acme", keypair.public_key, keypair.private_key)
        if result.already_initialized:
            print("nothing to do")
        ```
    """

    def __init__(
        self,
        backend: WorkspaceBackend,
        store: WorkspaceKeyStore,
        *,
        random_source: RandomSource | None = None,
    ) -> None:
        """Initialize the service.

        Args:
            backend: Client for the initflow API.
            store: Local store for unwrapped workspace keys.
            random_source: Entropy source for keys and envelopes.
                Defaults to the OS CSPRNG.
        """
        self._backend = backend
        self._store = store
        self._random_source = random_source

    async def list_workspaces(self) -> list[Workspace]:
        """List workspaces and their key initialization status."""
        return await self._backend.list_workspaces()

    async def initialize(
        self,
        workspace_slug: str,
        self_public_key: bytes,
        self_private_key: bytes,
        *,
        on_stage: StageCallback | None = None,
    ) -> InitResult:
        """Create the canonical key for a workspace.

        Runs ``UNINITIALIZED -> SEALING -> UPLOADING -> STORING -> READY``.
        A workspace that already has a key, locally or on the backend, is
        reported through ``InitResult.status`` rather than an error. The
        backend flag only prevents duplicate work; it is not a security check.

        Args:
            workspace_slug: The workspace slug.
            self_public_key: This device's X25519 public key.
            self_private_key: This device's X25519 private key, used only to
                check that the sealed key opens before it is uploaded and to
                recognize this device's own envelope after a 409.
            on_stage: Called with each stage as it is entered.

        Returns:
            The initialization result.

        Raises:
            WorkspaceKeyInitError: If sealing or uploading fails. Safe to retry.
            UploadedButNotStoredLocallyError: If the key was uploaded but could
                not be stored. Recover with ``recover_workspace_key``.
            WorkspaceNotFoundError: If the workspace does not exist.
        """

        def enter(stage: InitStage) -> None:
            logger.debug("Workspace %s: %s", workspace_slug, stage.value)
            if on_stage is not None:
                on_stage(stage)

        if self._store.has_workspace_key(workspace_slug):
            logger.info("Workspace key for %s already exists locally", workspace_slug)
            return InitResult(workspace_slug, InitStatus.ALREADY_INITIALIZED_LOCALLY)

        workspace = await self._backend.get_workspace_by_slug(workspace_slug)
        if workspace.key_initialized:
            logger.info("Workspace key for %s already initialized on backend", workspace_slug)
            return InitResult(
                workspace_slug,
                InitStatus.ALREADY_INITIALIZED_REMOTELY,
                stage=InitStage.UNINITIALIZED,
            )

        enter(InitStage.SEALING)
        try:
            workspace_key = generate_workspace_key(self._random_source)
            envelope = seal(workspace_key, self_public_key, self._random_source)
            opened = open_envelope(envelope, self_private_key)
            if not hmac.compare_digest(opened, workspace_key):  # pragma: no cover
                raise WorkspaceKeyInitError(InitStage.SEALING, "sealed key does not round-trip")
        except CryptoError as e:
            raise WorkspaceKeyInitError(InitStage.SEALING, str(e)) from e
        except ValueError as e:
            raise WorkspaceKeyInitError(InitStage.SEALING, f"invalid device key pair: {e}") from e

        enter(InitStage.UPLOADING)
        try:
            await self._backend.initialize_workspace_key(workspace.id, envelope.to_bytes())
        except ApiError as e:
            if e.status_code != 409:
                raise WorkspaceKeyInitError(InitStage.UPLOADING, str(e)) from e
            # A retried POST gets 409 when an earlier attempt was stored
            if not await self._holds_remote_key(workspace.id, workspace_key, self_private_key):
                logger.warning(
                    "Workspace %s was initialized by another device first; discarding local key",
                    workspace_slug,
                )
                return InitResult(
                    workspace_slug,
                    InitStatus.ALREADY_INITIALIZED_REMOTELY,
                    stage=InitStage.UNINITIALIZED,
                )
            logger.info("Backend already holds this device's key for %s", workspace_slug)
        except Exception as e:
            raise WorkspaceKeyInitError(InitStage.UPLOADING, str(e)) from e

        try:
            enter(InitStage.STORING)
            self._store.store_workspace_key(workspace_slug, workspace_key)
        except Exception as e:
            logger.warning(
                "Workspace key for %s uploaded but not stored locally: %s", workspace_slug, e
            )
            raise UploadedButNotStoredLocallyError(workspace_slug, str(e)) from e

        enter(InitStage.READY)
        logger.info("Workspace key for %s initialized", workspace_slug)
        return InitResult(workspace_slug, InitStatus.INITIALIZED)

    async def _holds_remote_key(
        self, workspace_id: str, workspace_key: bytes, self_private_key: bytes
    ) -> bool:
        """Check whether the backend's envelope is the one this call uploaded."""
        try:
            wrapped_key = await self._backend.get_wrapped_workspace_key(workspace_id)
        except InitflowError as e:
            raise WorkspaceKeyInitError(
                InitStage.UPLOADING, f"upload conflicted and stored key could not be fetched: {e}"
            ) from e
        try:
            remote_key = open_envelope(wrapped_key, self_private_key)
        except CryptoError:
            return False
        return hmac.compare_digest(remote_key, workspace_key)

    async def recover_workspace_key(self, workspace_slug: str, self_private_key: bytes) -> bytes:
        """Fetch, open and store the workspace key sealed to this device.

        This is the retry path after ``UploadedButNotStoredLocallyError`` and
        the way any device with an envelope addressed to it obtains the key.

        Args:
            workspace_slug: The workspace slug.
            self_private_key: This device's X25519 private key.

        Returns:
            The plaintext workspace key.

        Raises:
            WorkspaceNotFoundError: If the workspace does not exist.
            MalformedEnvelopeError: If the stored envelope is truncated.
            AuthenticationFailedError: If the envelope is not for this device
                or was tampered with.
        """
        workspace = await self._backend.get_workspace_by_slug(workspace_slug)
        wrapped_key = await self._backend.get_wrapped_workspace_key(workspace.id)
        workspace_key = open_envelope(wrapped_key, self_private_key)
        self._store.store_workspace_key(workspace_slug, workspace_key)
        logger.info("Recovered workspace key for %s", workspace_slug)
        return workspace_key
