"""Cryptographically secure random source for initflow."""

from __future__ import annotations

import os
from typing import Protocol

from ..errors import RandomnessUnavailableError


class RandomSource(Protocol):
    """Source of cryptographically secure random bytes.

    Implementations must be safe for concurrent use. Tests may substitute a
    seeded source for reproducibility; production code always uses
    ``SystemRandomSource``.
    """

    def read(self, size: int) -> bytes:
        """Return exactly ``size`` random bytes."""
        ...


class SystemRandomSource:
    """Random source backed by the operating system CSPRNG."""

    def read(self, size: int) -> bytes:
        """Read random bytes from ``os.urandom``.

        Args:
            size: Number of bytes to read.

        Returns:
            ``size`` random bytes.

        Raises:
            RandomnessUnavailableError: If the OS cannot supply entropy.
        """
        try:
            return os.urandom(size)
        except (OSError, NotImplementedError) as e:
            raise RandomnessUnavailableError(f"OS entropy source unavailable: {e}") from e


_default_source = SystemRandomSource()


def default_random_source() -> RandomSource:
    """Return the process-wide system random source."""
    return _default_source


def read_random(size: int, random_source: RandomSource | None = None) -> bytearray:
    """Read exactly ``size`` bytes into a wipeable buffer.

    Args:
        size: Number of bytes to read.
        random_source: Source to draw from. Defaults to the system source.

    Returns:
        A mutable buffer holding the random bytes.

    Raises:
        RandomnessUnavailableError: If the source fails or returns a short read.
    """
    source = random_source if random_source is not None else _default_source
    try:
        data = source.read(size)
    except RandomnessUnavailableError:
        raise
    except Exception as e:
        raise RandomnessUnavailableError(f"Random source failed: {e}") from e

    if len(data) != size:
        raise RandomnessUnavailableError(
            f"Random source returned {len(data)} bytes, expected {size}"
        )
    return bytearray(data)


def wipe(buffer: bytearray) -> None:
    """Overwrite a buffer with zeros in place."""
    for i in range(len(buffer)):
        buffer[i] = 0
