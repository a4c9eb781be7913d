"""Validated caching over a plain key-value store.

Each entry is stored as two keys (payload + metadata) and read back only
after checking:
- Expiry (epoch milliseconds in metadata, TTL in the store)
- Content fingerprint of the caller's validation content
- Transaction id written with the metadata
- Payload decodability (gzip/base64/JSON with fallbacks)

Writes are verified by reading both keys back and rolled back on mismatch.
"""

from kvguard.core.caching.backends import FileStore, InMemoryStore, NullStore
from kvguard.core.caching.codec import EncodedPayload, GzipCompressor, PayloadCodec
from kvguard.core.caching.duration import parse_duration
from kvguard.core.caching.engine import CacheEngine, content_matches
from kvguard.core.caching.errors import (
    CacheError,
    CompressionError,
    CorruptPayload,
    InvalidFormat,
    PayloadDecodeError,
    PayloadEncodeError,
    StoreError,
    UnrecoverablePayload,
    WriteVerificationFailed,
)
from kvguard.core.caching.fingerprint import compute_fingerprint, data_key, meta_key
from kvguard.core.caching.models import (
    CacheKeys,
    CacheMeta,
    CacheOptions,
    CacheScope,
    CleanupResult,
    FetchContext,
    FetchResult,
)
from kvguard.core.caching.protocols import Compressor, FetchFunction, KeyValueStore
from kvguard.core.caching.scopes import ScopedStores

__all__ = [
    # Core
    "CacheEngine",
    "CacheKeys",
    "CacheMeta",
    "CacheOptions",
    "CacheScope",
    "CleanupResult",
    "FetchContext",
    "FetchResult",
    "ScopedStores",
    "content_matches",
    # Protocols
    "Compressor",
    "FetchFunction",
    "KeyValueStore",
    # Backends
    "FileStore",
    "InMemoryStore",
    "NullStore",
    # Codec
    "EncodedPayload",
    "GzipCompressor",
    "PayloadCodec",
    # Errors
    "CacheError",
    "CompressionError",
    "CorruptPayload",
    "InvalidFormat",
    "PayloadDecodeError",
    "PayloadEncodeError",
    "StoreError",
    "UnrecoverablePayload",
    "WriteVerificationFailed",
    # Utils
    "compute_fingerprint",
    "data_key",
    "meta_key",
    "parse_duration",
]
