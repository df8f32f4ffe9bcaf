"""Local credential store for initflow.

Holds the device identity, bearer token, the device's X25519 key pair and
unwrapped workspace keys in one JSON file readable only by the owner.

WARNING: The file contains private keys and plaintext workspace keys.
"""

from __future__ import annotations

import json
import logging
import os
import threading
from pathlib import Path
from typing import Any

from .constants import DEFAULT_STORE_DIR, DEFAULT_STORE_FILENAME
from .crypto.constants import (
    WORKSPACE_KEY_SIZE,
    X25519_PRIVATE_KEY_SIZE,
    X25519_PUBLIC_KEY_SIZE,
)
from .crypto.keypair import KeyPair
from .crypto.utils import from_base64, to_base64
from .errors import DeviceNotRegisteredError, KeyNotFoundError, StorageError

logger = logging.getLogger("initflow")


def default_store_path() -> Path:
    """Return the default credential file location."""
    return Path(DEFAULT_STORE_DIR).expanduser() / DEFAULT_STORE_FILENAME


class LocalStore:
    """JSON-file backed store for device credentials and workspace keys.

    Every write replaces the whole file atomically with mode 0600.

    Attributes:
        path: Location of the credential file.
    """

    def __init__(self, path: str | Path | None = None) -> None:
        """Initialize the store.

        Args:
            path: Credential file path. Defaults to ``~/.initflow/credentials.json``.
        """
        self.path = Path(path).expanduser() if path is not None else default_store_path()
        self._lock = threading.Lock()

    def _load(self) -> dict[str, Any]:
        if not self.path.exists():
            return {}
        try:
            data = json.loads(self.path.read_text())
        except (OSError, json.JSONDecodeError) as e:
            raise StorageError(f"Failed to read credential store {self.path}: {e}") from e
        if not isinstance(data, dict):
            raise StorageError(f"Credential store {self.path} is not a JSON object")
        return data

    def _save(self, data: dict[str, Any]) -> None:
        tmp_path = self.path.with_name(self.path.name + ".tmp")
        try:
            self.path.parent.mkdir(mode=0o700, parents=True, exist_ok=True)
            fd = os.open(tmp_path, os.O_WRONLY | os.O_CREAT | os.O_TRUNC, 0o600)
            with os.fdopen(fd, "w") as f:
                json.dump(data, f, indent=2)
            os.replace(tmp_path, self.path)
        except OSError as e:
            raise StorageError(f"Failed to write credential store {self.path}: {e}") from e

    def _update(self, **values: Any) -> None:
        with self._lock:
            data = self._load()
            data.update(values)
            self._save(data)

    # Device identity

    def has_device_id(self) -> bool:
        """Check whether this device has been registered."""
        return bool(self._load().get("device_id"))

    def get_device_id(self) -> str:
        """Get the registered device ID.

        Raises:
            DeviceNotRegisteredError: If the device is not registered.
        """
        device_id = self._load().get("device_id")
        if not device_id:
            raise DeviceNotRegisteredError("Device not registered")
        return str(device_id)

    def store_device_id(self, device_id: str) -> None:
        """Persist the device ID assigned at registration."""
        self._update(device_id=device_id)

    # Bearer token

    def get_token(self) -> str | None:
        """Get the stored bearer token, if any."""
        token = self._load().get("token")
        return str(token) if token else None

    def store_token(self, token: str) -> None:
        """Persist the bearer token."""
        self._update(token=token)

    # Device key pair

    def has_own_keypair(self) -> bool:
        """Check whether the device's X25519 key pair is stored."""
        data = self._load()
        return bool(data.get("encryption_private_key")) and bool(
            data.get("encryption_public_key")
        )

    def store_keypair(self, keypair: KeyPair) -> None:
        """Persist the device's X25519 key pair.

        Args:
            keypair: The key pair generated at device registration.

        Raises:
            ValueError: If either key has invalid length.
        """
        if len(keypair.private_key) != X25519_PRIVATE_KEY_SIZE:
            raise ValueError(f"Invalid private key length: {len(keypair.private_key)}")
        if len(keypair.public_key) != X25519_PUBLIC_KEY_SIZE:
            raise ValueError(f"Invalid public key length: {len(keypair.public_key)}")
        self._update(
            encryption_private_key=to_base64(keypair.private_key),
            encryption_public_key=to_base64(keypair.public_key),
        )

    def _get_key(self, field: str, expected_size: int) -> bytes:
        encoded = self._load().get(field)
        if not encoded:
            raise KeyNotFoundError(f"No {field.replace('_', ' ')} stored")
        try:
            key = from_base64(encoded)
        except ValueError as e:
            raise StorageError(f"Corrupted {field.replace('_', ' ')}: {e}") from e
        if len(key) != expected_size:
            raise StorageError(
                f"Corrupted {field.replace('_', ' ')}: {len(key)} bytes, expected {expected_size}"
            )
        return key

    def get_private_key(self) -> bytes:
        """Get the device's X25519 private key.

        Raises:
            KeyNotFoundError: If no key pair is stored.
        """
        return self._get_key("encryption_private_key", X25519_PRIVATE_KEY_SIZE)

    def get_public_key(self) -> bytes:
        """Get the device's X25519 public key.

        Raises:
            KeyNotFoundError: If no key pair is stored.
        """
        return self._get_key("encryption_public_key", X25519_PUBLIC_KEY_SIZE)

    def get_keypair(self) -> KeyPair:
        """Get the device's key pair.

        Raises:
            KeyNotFoundError: If no key pair is stored.
        """
        return KeyPair(public_key=self.get_public_key(), private_key=self.get_private_key())

    # Workspace keys

    def has_workspace_key(self, slug: str) -> bool:
        """Check whether an unwrapped key for the workspace is stored."""
        return slug in self._load().get("workspace_keys", {})

    def get_workspace_key(self, slug: str) -> bytes:
        """Get the unwrapped workspace key.

        Raises:
            KeyNotFoundError: If no key is stored for the workspace.
            StorageError: If the stored key is corrupted.
        """
        encoded = self._load().get("workspace_keys", {}).get(slug)
        if encoded is None:
            raise KeyNotFoundError(f"No workspace key stored for {slug!r}")
        try:
            key = from_base64(encoded)
        except (ValueError, TypeError) as e:
            raise StorageError(f"Corrupted workspace key for {slug!r}: {e}") from e
        if len(key) != WORKSPACE_KEY_SIZE:
            raise StorageError(
                f"Corrupted workspace key for {slug!r}: {len(key)} bytes, "
                f"expected {WORKSPACE_KEY_SIZE}"
            )
        return key

    def store_workspace_key(self, slug: str, key: bytes) -> None:
        """Persist an unwrapped workspace key.

        Args:
            slug: The workspace slug.
            key: The 32-byte workspace key.

        Raises:
            ValueError: If the key has invalid length.
            StorageError: If the store cannot be written.
        """
        if len(key) != WORKSPACE_KEY_SIZE:
            raise ValueError(
                f"Invalid workspace key length: {len(key)}, expected {WORKSPACE_KEY_SIZE}"
            )
        with self._lock:
            data = self._load()
            keys = dict(data.get("workspace_keys", {}))
            keys[slug] = to_base64(key)
            data["workspace_keys"] = keys
            self._save(data)
        logger.debug("Stored workspace key for %s", slug)
