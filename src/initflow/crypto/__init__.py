"""Cryptographic operations for initflow."""

from .constants import (
    ENVELOPE_HEADER_SIZE,
    WORKSPACE_KEY_SIZE,
    WRAP_KEY_INFO,
    WRAP_KEY_SALT,
)
from .envelope import WrappedEnvelope, open_envelope, seal
from .kdf import derive_wrap_key
from .keypair import KeyPair, derive_public_key, generate_keypair, validate_keypair
from .random import RandomSource, SystemRandomSource, default_random_source
from .utils import from_base64, to_base64
from .workspace_key import generate_workspace_key

__all__ = [
    "ENVELOPE_HEADER_SIZE",
    "WORKSPACE_KEY_SIZE",
    "WRAP_KEY_INFO",
    "WRAP_KEY_SALT",
    "KeyPair",
    "RandomSource",
    "SystemRandomSource",
    "WrappedEnvelope",
    "default_random_source",
    "derive_public_key",
    "derive_wrap_key",
    "from_base64",
    "generate_keypair",
    "generate_workspace_key",
    "open_envelope",
    "seal",
    "to_base64",
    "validate_keypair",
]
