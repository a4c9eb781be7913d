"""Bundled key-value store implementations."""

from kvguard.core.caching.backends.fs import FileStore
from kvguard.core.caching.backends.memory import InMemoryStore
from kvguard.core.caching.backends.null import NullStore

__all__ = [
    "FileStore",
    "InMemoryStore",
    "NullStore",
]
