"""Workspace key generation for initflow."""

from __future__ import annotations

from .constants import WORKSPACE_KEY_SIZE
from .random import RandomSource, read_random


def generate_workspace_key(random_source: RandomSource | None = None) -> bytes:
    """Generate a new 256-bit workspace key.

    The key is always drawn fresh from the random source and never derived
    from other key material.

    Args:
        random_source: Entropy source. Defaults to the OS CSPRNG.

    Returns:
        32 random bytes.

    Raises:
        RandomnessUnavailableError: If no entropy is available.
    """
    return bytes(read_random(WORKSPACE_KEY_SIZE, random_source))
