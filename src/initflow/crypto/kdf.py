"""HKDF-SHA256 derivation of envelope wrap keys."""

from __future__ import annotations

from cryptography.hazmat.primitives import hashes
from cryptography.hazmat.primitives.kdf.hkdf import HKDF

from ..errors import DerivationFailedError
from .constants import CHACHA20_KEY_SIZE, WRAP_KEY_INFO, WRAP_KEY_SALT

# X25519 shared secrets are always 32 bytes
SHARED_SECRET_SIZE = 32


def derive_wrap_key(shared_secret: bytes | bytearray) -> bytearray:
    """Derive a ChaCha20-Poly1305 key from an X25519 shared secret.

    HKDF-SHA256 with salt ``initflow.wrap`` and info ``workspace``. Both labels
    bind the output to workspace key wrapping and must not be reused for any
    other derivation.

    Args:
        shared_secret: The 32-byte ECDH shared secret.

    Returns:
        A 32-byte key in a wipeable buffer.

    Raises:
        DerivationFailedError: If the input is malformed or HKDF fails.
    """
    if len(shared_secret) != SHARED_SECRET_SIZE:
        raise DerivationFailedError(
            f"Invalid shared secret length: {len(shared_secret)}, expected {SHARED_SECRET_SIZE}"
        )

    hkdf = HKDF(
        algorithm=hashes.SHA256(),
        length=CHACHA20_KEY_SIZE,
        salt=WRAP_KEY_SALT,
        info=WRAP_KEY_INFO,
    )
    try:
        key = hkdf.derive(bytes(shared_secret))
    except Exception as e:
        raise DerivationFailedError(f"HKDF derivation failed: {e}") from e

    if len(key) != CHACHA20_KEY_SIZE:
        raise DerivationFailedError(f"HKDF produced {len(key)} bytes, expected {CHACHA20_KEY_SIZE}")
    return bytearray(key)
