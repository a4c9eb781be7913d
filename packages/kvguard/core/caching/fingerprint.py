"""Fingerprinting utilities for cache keys and content validation.

The same digest serves two purposes: it names the storage keys for a path,
and it lets the engine compare caller-supplied validation content against
what was current at write time without storing the content itself.
"""

import hashlib

DATA_KEY_PREFIX = "cache_json_"
META_KEY_PREFIX = "cache_meta_"


def compute_fingerprint(content: str) -> str:
    """
    Compute a stable fingerprint of arbitrary string content.

    Args:
        content: Any string (a path, a document body, ...)

    Returns:
        SHA256 hex digest (64 lowercase chars)

    Example:
        >>> len(compute_fingerprint("reports/q3.json"))
        64
        >>> compute_fingerprint("a") == compute_fingerprint("a")
        True
    """
    return hashlib.sha256(content.encode("utf-8")).hexdigest()


def data_key(fingerprint: str) -> str:
    """Storage key for the encoded payload."""
    return f"{DATA_KEY_PREFIX}{fingerprint}"


def meta_key(fingerprint: str) -> str:
    """Storage key for the entry metadata."""
    return f"{META_KEY_PREFIX}{fingerprint}"
