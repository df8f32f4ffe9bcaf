"""Shared fixtures for initflow tests."""

from __future__ import annotations

import hashlib

import pytest

from initflow.crypto import KeyPair, generate_keypair


class SeededRandomSource:
    """Reproducible byte stream for tests. Never use for real keys."""

    def __init__(self, seed: bytes) -> None:
        self._seed = seed
        self._counter = 0
        self.bytes_read = 0

    def read(self, size: int) -> bytes:
        out = b""
        while len(out) < size:
            out += hashlib.sha256(self._seed + self._counter.to_bytes(8, "big")).digest()
            self._counter += 1
        self.bytes_read += size
        return out[:size]


@pytest.fixture
def seeded_random() -> type[SeededRandomSource]:
    """Factory for seeded random sources."""
    return SeededRandomSource


@pytest.fixture
def keypair() -> KeyPair:
    """A fresh device key pair."""
    return generate_keypair()
