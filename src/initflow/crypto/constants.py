"""Cryptographic constants for initflow."""

# HKDF domain separation for wrapping workspace keys. Changing either value
# makes every stored envelope unreadable.
WRAP_KEY_SALT = b"initflow.wrap"
WRAP_KEY_INFO = b"workspace"

# X25519 key sizes
X25519_PRIVATE_KEY_SIZE = 32
X25519_PUBLIC_KEY_SIZE = 32

# ChaCha20-Poly1305 constants
CHACHA20_KEY_SIZE = 32
CHACHA20_NONCE_SIZE = 12
POLY1305_TAG_SIZE = 16

# Workspace key size (256 bits)
WORKSPACE_KEY_SIZE = 32

# Envelope layout: ephemeral_public_key || nonce || ciphertext_with_tag
ENVELOPE_HEADER_SIZE = X25519_PUBLIC_KEY_SIZE + CHACHA20_NONCE_SIZE
