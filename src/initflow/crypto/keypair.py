"""X25519 device key pairs for initflow."""

from __future__ import annotations

import hmac
from dataclasses import dataclass, field

from cryptography.hazmat.primitives.asymmetric.x25519 import X25519PrivateKey, X25519PublicKey

from ..errors import InvalidPublicKeyError
from .constants import X25519_PRIVATE_KEY_SIZE, X25519_PUBLIC_KEY_SIZE
from .random import RandomSource, read_random, wipe

_ZERO_SHARED_SECRET = bytes(32)


@dataclass
class KeyPair:
    """X25519 key pair owned by one device.

    Attributes:
        public_key: The 32-byte public point.
        private_key: The 32-byte private scalar. Never leaves the device.
    """

    public_key: bytes
    private_key: bytes = field(repr=False)


def _load_private_key(private_key: bytes | bytearray) -> X25519PrivateKey:
    if len(private_key) != X25519_PRIVATE_KEY_SIZE:
        raise ValueError(
            f"Invalid private key length: {len(private_key)}, expected {X25519_PRIVATE_KEY_SIZE}"
        )
    return X25519PrivateKey.from_private_bytes(bytes(private_key))


def derive_public_key(private_key: bytes | bytearray) -> bytes:
    """Derive the X25519 public key for a private scalar.

    Args:
        private_key: The 32-byte private scalar.

    Returns:
        The 32-byte public key.

    Raises:
        ValueError: If the private key has invalid length.
    """
    return _load_private_key(private_key).public_key().public_bytes_raw()


def generate_keypair(random_source: RandomSource | None = None) -> KeyPair:
    """Generate a new X25519 key pair.

    Args:
        random_source: Source for the private scalar. Defaults to the OS CSPRNG.

    Returns:
        A new KeyPair.

    Raises:
        RandomnessUnavailableError: If no entropy is available.
    """
    scalar = read_random(X25519_PRIVATE_KEY_SIZE, random_source)
    try:
        public_key = derive_public_key(scalar)
        return KeyPair(public_key=public_key, private_key=bytes(scalar))
    finally:
        wipe(scalar)


def validate_keypair(keypair: KeyPair) -> bool:
    """Check that a key pair has correct sizes and matching halves.

    Args:
        keypair: The key pair to validate.

    Returns:
        True if valid, False otherwise.
    """
    if len(keypair.public_key) != X25519_PUBLIC_KEY_SIZE:
        return False
    if len(keypair.private_key) != X25519_PRIVATE_KEY_SIZE:
        return False
    return hmac.compare_digest(derive_public_key(keypair.private_key), keypair.public_key)


def exchange(private_key: X25519PrivateKey, peer_public_key: bytes) -> bytearray:
    """Compute an X25519 shared secret, rejecting degenerate peer keys.

    Args:
        private_key: Our private key.
        peer_public_key: The peer's 32-byte public key.

    Returns:
        The 32-byte shared secret in a wipeable buffer.

    Raises:
        InvalidPublicKeyError: If the peer key has the wrong length or is a
            low-order point producing an all-zero shared secret.
    """
    if len(peer_public_key) != X25519_PUBLIC_KEY_SIZE:
        raise InvalidPublicKeyError(
            f"Invalid public key length: {len(peer_public_key)}, expected {X25519_PUBLIC_KEY_SIZE}"
        )
    try:
        peer = X25519PublicKey.from_public_bytes(bytes(peer_public_key))
        shared = bytearray(private_key.exchange(peer))
    except ValueError as e:
        # OpenSSL refuses low-order points itself
        raise InvalidPublicKeyError("Public key is a low-order point") from e

    if hmac.compare_digest(bytes(shared), _ZERO_SHARED_SECRET):
        wipe(shared)
        raise InvalidPublicKeyError("Public key is a low-order point")
    return shared
