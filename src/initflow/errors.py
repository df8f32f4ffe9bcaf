"""Error hierarchy for initflow."""

from __future__ import annotations

from typing import TYPE_CHECKING

if TYPE_CHECKING:
    from .types import InitStage


class InitflowError(Exception):
    """Base exception for all initflow errors."""

    pass


# Cryptographic errors


class CryptoError(InitflowError):
    """Base class for envelope encryption failures."""

    pass


class RandomnessUnavailableError(CryptoError):
    """The entropy source could not supply random bytes.

    Fatal: there is no fallback to a weaker source.
    """

    pass


class InvalidPublicKeyError(CryptoError):
    """A recipient public key is malformed or a low-order point.

    Retrying with the same key will fail again.
    """

    pass


class DerivationFailedError(CryptoError):
    """HKDF could not produce the wrap key."""

    pass


class AuthenticationFailedError(CryptoError):
    """An envelope failed authentication while opening.

    Raised for a wrong private key and for tampered or truncated envelopes
    alike; the message never says which.
    """

    def __init__(self) -> None:
        super().__init__("Envelope authentication failed")


class MalformedEnvelopeError(CryptoError):
    """An envelope is too short to contain its fixed-size header."""

    pass


# Orchestration errors


class WorkspaceKeyInitError(InitflowError):
    """Workspace key initialization failed at a given stage.

    Attributes:
        stage: The stage that failed.
        message: The error message.
    """

    def __init__(self, stage: InitStage, message: str) -> None:
        self.stage = stage
        self.message = message
        super().__init__(f"Workspace key initialization failed while {stage.value}: {message}")

    @property
    def retryable(self) -> bool:
        """Whether initialization can safely be retried from scratch."""
        from .types import InitStage

        return self.stage in (InitStage.SEALING, InitStage.UPLOADING)


class UploadedButNotStoredLocallyError(WorkspaceKeyInitError):
    """The wrapped key reached the backend but local storage failed.

    Upload and local storage are not transactional. Recover with
    ``WorkspaceKeyService.recover_workspace_key`` (fetch and open the
    uploaded envelope), never by sealing a new key.

    Attributes:
        workspace_slug: Slug of the affected workspace.
    """

    def __init__(self, workspace_slug: str, message: str) -> None:
        from .types import InitStage

        self.workspace_slug = workspace_slug
        super().__init__(InitStage.STORING, message)


# HTTP errors


class ApiError(InitflowError):
    """HTTP API error with status code.

    Attributes:
        status_code: The HTTP status code.
        message: The error message.
    """

    def __init__(self, status_code: int, message: str) -> None:
        self.status_code = status_code
        self.message = message
        super().__init__(f"API Error ({status_code}): {message}")


class AuthenticationError(ApiError):
    """Missing, invalid or expired bearer token (401)."""

    def __init__(self, message: str) -> None:
        super().__init__(401, message)


class WorkspaceNotFoundError(ApiError):
    """Workspace not found (404)."""

    def __init__(self, message: str) -> None:
        super().__init__(404, message)


class NetworkError(InitflowError):
    """Network communication failure."""

    pass


# Local store errors


class StorageError(InitflowError):
    """The local credential store could not be read or written."""

    pass


class KeyNotFoundError(StorageError):
    """A requested key is not present in the local store."""

    pass


class DeviceNotRegisteredError(StorageError):
    """This device has no registered identity or key pair."""

    pass
