"""Envelope encryption of workspace keys to a device public key.

An envelope seals a workspace key for one recipient X25519 public key:

1. Generate an ephemeral X25519 key pair.
2. ECDH between the ephemeral private key and the recipient public key.
3. HKDF-SHA256 (salt ``initflow.wrap``, info ``workspace``) to a 32-byte key.
4. ChaCha20-Poly1305 with a random 12-byte nonce and no associated data.

Wire format (flat, no length prefix)::

    ephemeral_public_key (32) || nonce (12) || ciphertext || tag (16)

A 32-byte workspace key therefore produces a 92-byte envelope.
"""

from __future__ import annotations

from dataclasses import dataclass

from cryptography.exceptions import InvalidTag
from cryptography.hazmat.primitives.asymmetric.x25519 import X25519PrivateKey
from cryptography.hazmat.primitives.ciphers.aead import ChaCha20Poly1305

from ..errors import (
    AuthenticationFailedError,
    InvalidPublicKeyError,
    MalformedEnvelopeError,
)
from .constants import (
    CHACHA20_NONCE_SIZE,
    ENVELOPE_HEADER_SIZE,
    POLY1305_TAG_SIZE,
    X25519_PRIVATE_KEY_SIZE,
    X25519_PUBLIC_KEY_SIZE,
)
from .kdf import derive_wrap_key
from .keypair import exchange
from .random import RandomSource, read_random, wipe


@dataclass(frozen=True)
class WrappedEnvelope:
    """A workspace key sealed to one recipient public key.

    Attributes:
        ephemeral_public_key: Single-use X25519 public key (32 bytes).
        nonce: ChaCha20-Poly1305 nonce (12 bytes).
        ciphertext: Encrypted key followed by the 16-byte tag.
    """

    ephemeral_public_key: bytes
    nonce: bytes
    ciphertext: bytes

    def to_bytes(self) -> bytes:
        """Serialize to the flat wire format."""
        return self.ephemeral_public_key + self.nonce + self.ciphertext

    @classmethod
    def from_bytes(cls, data: bytes) -> WrappedEnvelope:
        """Parse the flat wire format.

        Only the fixed-size header is checked here. A ciphertext too short to
        hold a tag is rejected when the envelope is opened.

        Args:
            data: Serialized envelope.

        Returns:
            The parsed envelope.

        Raises:
            MalformedEnvelopeError: If ``data`` is shorter than 44 bytes.
        """
        if len(data) < ENVELOPE_HEADER_SIZE:
            raise MalformedEnvelopeError(
                f"Envelope too short: {len(data)} bytes, expected at least {ENVELOPE_HEADER_SIZE}"
            )
        data = bytes(data)
        return cls(
            ephemeral_public_key=data[:X25519_PUBLIC_KEY_SIZE],
            nonce=data[X25519_PUBLIC_KEY_SIZE:ENVELOPE_HEADER_SIZE],
            ciphertext=data[ENVELOPE_HEADER_SIZE:],
        )

    def __len__(self) -> int:
        return len(self.ephemeral_public_key) + len(self.nonce) + len(self.ciphertext)


def seal(
    plaintext: bytes,
    recipient_public_key: bytes,
    random_source: RandomSource | None = None,
) -> WrappedEnvelope:
    """Seal a key for a recipient's X25519 public key.

    Every call uses a fresh ephemeral key pair and nonce, so sealing the same
    plaintext twice yields unrelated envelopes. The derived key encrypts
    exactly one message.

    Args:
        plaintext: The key material to seal.
        recipient_public_key: The recipient's 32-byte X25519 public key.
        random_source: Entropy source. Defaults to the OS CSPRNG.

    Returns:
        The sealed envelope.

    Raises:
        InvalidPublicKeyError: If the recipient key is malformed or low-order.
        RandomnessUnavailableError: If no entropy is available.
        DerivationFailedError: If key derivation fails.
    """
    if len(recipient_public_key) != X25519_PUBLIC_KEY_SIZE:
        raise InvalidPublicKeyError(
            f"Invalid public key length: {len(recipient_public_key)}, "
            f"expected {X25519_PUBLIC_KEY_SIZE}"
        )

    scalar = read_random(X25519_PRIVATE_KEY_SIZE, random_source)
    shared_secret = bytearray()
    wrap_key = bytearray()
    try:
        ephemeral = X25519PrivateKey.from_private_bytes(bytes(scalar))
        ephemeral_public_key = ephemeral.public_key().public_bytes_raw()

        shared_secret = exchange(ephemeral, recipient_public_key)
        del ephemeral
        wrap_key = derive_wrap_key(shared_secret)

        nonce = bytes(read_random(CHACHA20_NONCE_SIZE, random_source))
        ciphertext = ChaCha20Poly1305(bytes(wrap_key)).encrypt(nonce, plaintext, None)
    finally:
        wipe(scalar)
        wipe(shared_secret)
        wipe(wrap_key)

    return WrappedEnvelope(
        ephemeral_public_key=ephemeral_public_key,
        nonce=nonce,
        ciphertext=ciphertext,
    )


def open_envelope(
    envelope: WrappedEnvelope | bytes,
    recipient_private_key: bytes,
) -> bytes:
    """Recover a sealed key with the recipient's private key.

    All authentication problems (wrong key, tampered or truncated bytes, a
    degenerate ephemeral key) raise the same ``AuthenticationFailedError``.

    Args:
        envelope: The envelope, parsed or in wire format.
        recipient_private_key: The recipient's 32-byte X25519 private key.

    Returns:
        The plaintext key.

    Raises:
        MalformedEnvelopeError: If the wire format is shorter than 44 bytes.
        AuthenticationFailedError: If the envelope does not authenticate.
        ValueError: If the private key has invalid length.
    """
    if not isinstance(envelope, WrappedEnvelope):
        envelope = WrappedEnvelope.from_bytes(envelope)
    elif (
        len(envelope.ephemeral_public_key) != X25519_PUBLIC_KEY_SIZE
        or len(envelope.nonce) != CHACHA20_NONCE_SIZE
    ):
        raise MalformedEnvelopeError("Envelope header has invalid field sizes")

    if len(recipient_private_key) != X25519_PRIVATE_KEY_SIZE:
        raise ValueError(
            f"Invalid private key length: {len(recipient_private_key)}, "
            f"expected {X25519_PRIVATE_KEY_SIZE}"
        )

    # Canonical X25519 encodings never set bit 255; X25519 would ignore it.
    # Rejected envelopes still go through ECDH, HKDF and the AEAD.
    non_canonical = bool(envelope.ephemeral_public_key[-1] & 0x80)
    truncated = len(envelope.ciphertext) < POLY1305_TAG_SIZE
    ephemeral_public_key = envelope.ephemeral_public_key[:-1] + bytes(
        [envelope.ephemeral_public_key[-1] & 0x7F]
    )
    ciphertext = bytes(envelope.ciphertext).ljust(POLY1305_TAG_SIZE, b"\x00")

    private_key = X25519PrivateKey.from_private_bytes(bytes(recipient_private_key))
    shared_secret = bytearray()
    wrap_key = bytearray()
    try:
        try:
            shared_secret = exchange(private_key, ephemeral_public_key)
        except InvalidPublicKeyError:
            raise AuthenticationFailedError() from None
        wrap_key = derive_wrap_key(shared_secret)

        try:
            plaintext = ChaCha20Poly1305(bytes(wrap_key)).decrypt(
                envelope.nonce, ciphertext, None
            )
        except InvalidTag:
            raise AuthenticationFailedError() from None
        if non_canonical or truncated:
            raise AuthenticationFailedError()
        return plaintext
    finally:
        del private_key
        wipe(shared_secret)
        wipe(wrap_key)
