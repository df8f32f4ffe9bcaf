"""Type definitions for initflow."""

from __future__ import annotations

from dataclasses import dataclass
from enum import Enum

from .constants import (
    DEFAULT_BASE_URL,
    DEFAULT_MAX_RETRIES,
    DEFAULT_RETRY_DELAY_MS,
    DEFAULT_RETRY_STATUS_CODES,
    DEFAULT_TIMEOUT_MS,
)


@dataclass
class ClientConfig:
    """Configuration for the initflow API client.

    Attributes:
        base_url: Base URL for the API server.
        token: Bearer token, or None before login.
        timeout: HTTP request timeout in milliseconds.
        max_retries: Maximum number of retry attempts.
        retry_delay: Initial retry delay in milliseconds.
        retry_on_status_codes: HTTP status codes to retry on.
    """

    base_url: str = DEFAULT_BASE_URL
    token: str | None = None
    timeout: int = DEFAULT_TIMEOUT_MS
    max_retries: int = DEFAULT_MAX_RETRIES
    retry_delay: int = DEFAULT_RETRY_DELAY_MS
    retry_on_status_codes: tuple[int, ...] = DEFAULT_RETRY_STATUS_CODES


@dataclass
class Workspace:
    """A workspace as reported by the backend.

    Attributes:
        id: Opaque workspace identifier.
        name: Display name.
        slug: Human-readable unique slug.
        key_initialized: Whether a wrapped workspace key exists on the backend.
        role: The current user's role in the workspace.
    """

    id: str
    name: str
    slug: str
    key_initialized: bool
    role: str = ""


@dataclass
class User:
    """Authenticated user details.

    Attributes:
        id: User identifier.
        email: Email address.
        name: Given name.
        surname: Family name.
    """

    id: str
    email: str
    name: str
    surname: str


@dataclass
class LoginResponse:
    """Result of a successful login.

    Attributes:
        token: Short-lived registration token.
        user: The authenticated user.
    """

    token: str
    user: User


class InitStage(str, Enum):
    """Workspace key initialization stages for a (workspace, device) pair."""

    UNINITIALIZED = "uninitialized"
    SEALING = "sealing"
    UPLOADING = "uploading"
    STORING = "storing"
    READY = "ready"


class InitStatus(str, Enum):
    """Outcome of a successful initialization call."""

    INITIALIZED = "initialized"
    ALREADY_INITIALIZED_LOCALLY = "already_initialized_locally"
    ALREADY_INITIALIZED_REMOTELY = "already_initialized_remotely"


@dataclass
class InitResult:
    """Result of ``WorkspaceKeyService.initialize``.

    Attributes:
        workspace_slug: The workspace slug.
        status: Whether a key was created or already existed.
        stage: The final stage reached.
    """

    workspace_slug: str
    status: InitStatus
    stage: InitStage = InitStage.READY

    @property
    def already_initialized(self) -> bool:
        """True when no new key was created."""
        return self.status is not InitStatus.INITIALIZED
