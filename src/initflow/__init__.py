"""initflow Python SDK.

Workspace key management for the initflow end-to-end encrypted secret store.
A device generates a 256-bit workspace key, seals it to an X25519 public key
(ephemeral ECDH, HKDF-SHA256, ChaCha20-Poly1305) and uploads only the sealed
envelope.

Example:
    ```python
    import asyncio
    from initflow import InitflowClient

    async def main():
        async with InitflowClient() as client:
            result = await client.init_workspace("acme")
            print(result.status)

    asyncio.run(main())
    ```
"""

from .client import InitflowClient
from .constants import (
    DEFAULT_BASE_URL,
    DEFAULT_MAX_RETRIES,
    DEFAULT_RETRY_DELAY_MS,
    DEFAULT_RETRY_STATUS_CODES,
    DEFAULT_TIMEOUT_MS,
)
from .crypto import (
    KeyPair,
    RandomSource,
    SystemRandomSource,
    WrappedEnvelope,
    generate_keypair,
    generate_workspace_key,
    open_envelope,
    seal,
)
from .errors import (
    ApiError,
    AuthenticationError,
    AuthenticationFailedError,
    CryptoError,
    DerivationFailedError,
    DeviceNotRegisteredError,
    InitflowError,
    InvalidPublicKeyError,
    KeyNotFoundError,
    MalformedEnvelopeError,
    NetworkError,
    RandomnessUnavailableError,
    StorageError,
    UploadedButNotStoredLocallyError,
    WorkspaceKeyInitError,
    WorkspaceNotFoundError,
)
from .storage import LocalStore
from .types import (
    ClientConfig,
    InitResult,
    InitStage,
    InitStatus,
    LoginResponse,
    User,
    Workspace,
)
from .workspace import WorkspaceKeyService

__version__ = "0.1.0"

__all__ = [
    # Main classes
    "InitflowClient",
    "LocalStore",
    "WorkspaceKeyService",
    # Constants
    "DEFAULT_BASE_URL",
    "DEFAULT_TIMEOUT_MS",
    "DEFAULT_RETRY_DELAY_MS",
    "DEFAULT_MAX_RETRIES",
    "DEFAULT_RETRY_STATUS_CODES",
    # Crypto
    "KeyPair",
    "RandomSource",
    "SystemRandomSource",
    "WrappedEnvelope",
    "generate_keypair",
    "generate_workspace_key",
    "open_envelope",
    "seal",
    # Data types
    "ClientConfig",
    "InitResult",
    "InitStage",
    "InitStatus",
    "LoginResponse",
    "User",
    "Workspace",
    # Errors
    "InitflowError",
    "CryptoError",
    "RandomnessUnavailableError",
    "InvalidPublicKeyError",
    "DerivationFailedError",
    "AuthenticationFailedError",
    "MalformedEnvelopeError",
    "WorkspaceKeyInitError",
    "UploadedButNotStoredLocallyError",
    "ApiError",
    "AuthenticationError",
    "WorkspaceNotFoundError",
    "NetworkError",
    "StorageError",
    "KeyNotFoundError",
    "DeviceNotRegisteredError",
    # Version
    "__version__",
]
