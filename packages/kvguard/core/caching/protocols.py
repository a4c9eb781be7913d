"""Protocols for cache collaborators.

Defines the key-value store contract the engine builds on and the
compression codec contract used by the payload codec.
"""

from collections.abc import Callable
from typing import Any, Protocol

from kvguard.core.caching.models import CacheScope, FetchContext


class KeyValueStore(Protocol):
    """
    Protocol for the underlying key-value store.

    Each key carries its own TTL, enforced by the store. There is no
    listing, no cross-key transaction and no way to read a key's expiry.

    Implementations signal I/O failure with StoreError; the engine treats
    that as a miss.
    """

    def get(self, key: str) -> str | None:
        """
        Read a value.

        Args:
            key: Storage key

        Returns:
            Stored string, or None if absent or expired
        """
        ...

    def put(self, key: str, value: str, ttl_seconds: int | None) -> None:
        """
        Write a value with its own TTL.

        Args:
            key: Storage key
            value: String to store
            ttl_seconds: Lifetime in seconds, None for no expiry
        """
        ...

    def remove(self, key: str) -> None:
        """Remove a key. Removing an absent key is a no-op."""
        ...


class Compressor(Protocol):
    """
    Protocol for byte compression codecs.

    Both operations may raise CompressionError.
    """

    magic: bytes
    """Leading bytes that identify compressed output (may be empty)."""

    def compress(self, data: bytes) -> bytes:
        """Compress bytes."""
        ...

    def decompress(self, data: bytes) -> bytes:
        """Decompress bytes."""
        ...


FetchFunction = Callable[[str, CacheScope, FetchContext], Any]
"""Caller-supplied loader invoked on a miss: fetch_fn(path, scope, context)."""
