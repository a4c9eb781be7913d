"""Models for cache system.

Provides scope, key, metadata, option and fetch-result models.
"""

from enum import Enum
import logging
from typing import Any

from pydantic import BaseModel, ConfigDict, Field
from pydantic.alias_generators import to_camel

from kvguard.core.caching.fingerprint import compute_fingerprint, data_key, meta_key

logger = logging.getLogger(__name__)


class CacheScope(str, Enum):
    """Logical partition of the cache keyspace."""

    USER = "USER"
    SCRIPT = "SCRIPT"
    DOCUMENT = "DOCUMENT"

    @classmethod
    def coerce(cls, token: "CacheScope | str | None") -> "CacheScope":
        """
        Resolve a scope token, falling back to DOCUMENT.

        Args:
            token: Enum member, case-insensitive name, or None

        Returns:
            Matching scope, or DOCUMENT for anything unrecognized
        """
        if isinstance(token, cls):
            return token
        if isinstance(token, str):
            try:
                return cls(token.strip().upper())
            except ValueError:
                logger.debug(f"Unknown cache scope {token!r}, using DOCUMENT")
        return cls.DOCUMENT


class CacheKeys(BaseModel):
    """
    Storage keys for one logical path.

    A path always maps to the same data/meta pair; the two keys live in
    distinct namespaces so neither can collide with the other.
    """

    model_config = ConfigDict(frozen=True)

    fingerprint: str = Field(description="SHA256 hex digest of the path")
    data_key: str = Field(description="Key holding the encoded payload")
    meta_key: str = Field(description="Key holding the CacheMeta JSON")

    @classmethod
    def for_path(cls, path: str) -> "CacheKeys":
        """Derive the key pair for a path."""
        fingerprint = compute_fingerprint(path)
        return cls(
            fingerprint=fingerprint,
            data_key=data_key(fingerprint),
            meta_key=meta_key(fingerprint),
        )

    def __str__(self) -> str:
        return f"{self.data_key}|{self.meta_key}"


class CacheMeta(BaseModel):
    """
    Metadata committed after the payload write (commit marker).

    Serialized with camelCase field names. Timestamps are epoch millis.
    """

    model_config = ConfigDict(alias_generator=to_camel, populate_by_name=True, extra="ignore")

    path: str = Field(default="", description="Logical path (informational)")
    created_at: int = Field(default=0, description="Creation time (epoch ms)")
    last_modified: int = Field(default=0, description="Last write or extension (epoch ms)")
    expires_at: int = Field(description="Absolute logical expiry (epoch ms)")
    size: int = Field(default=0, description="Length of the encoded payload")
    content_hash: str | None = Field(
        default=None, description="Fingerprint of the validation content at write time"
    )
    transaction_id: str | None = Field(
        default=None, description="Token regenerated on every successful write"
    )
    is_compressed: bool | None = Field(
        default=None,
        description="Compression flag; None for entries written before the flag existed",
    )

    def to_json(self) -> str:
        """Serialize for storage."""
        return self.model_dump_json(by_alias=True)


class CacheOptions(BaseModel):
    """
    Per-call cache behavior configuration.

    Accepts snake_case or camelCase field names.
    """

    model_config = ConfigDict(alias_generator=to_camel, populate_by_name=True, extra="forbid")

    expiration: str | int | float = Field(
        default="20m", description="Entry lifetime as a duration expression or seconds"
    )
    bypass_cache: bool = Field(
        default=False, description="Skip the read and always call the fetch function"
    )
    max_size_bytes: int = Field(
        default=100 * 1024, gt=0, description="Largest encoded payload that will be stored"
    )
    extend_cache_period: bool = Field(
        default=True, description="Push expiry forward on hits and rewrites"
    )
    strict_consistency: bool = Field(
        default=True, description="Require transaction ids and verify writes by read-back"
    )


class FetchContext(BaseModel):
    """Context handed to the caller's fetch function on a miss."""

    model_config = ConfigDict(frozen=True)

    cache_level: CacheScope
    existing_meta: CacheMeta | None = None
    expected_content: str | None = None
    extend_cache_period: bool = True


class FetchResult(BaseModel):
    """
    Optional envelope a fetch function may return instead of the bare value.

    ``content`` replaces the validation content for this write (None clears
    it) and ``expiration`` replaces the TTL for this write only. Fields that
    are not set leave the call's values untouched.
    """

    data: Any
    content: str | None = None
    expiration: str | int | float | None = None


class CleanupResult(BaseModel):
    """Outcome of a clean_expired_entries pass."""

    scope: CacheScope
    checked: int = 0
    removed: list[str] = Field(default_factory=list)
    reason: str | None = Field(default=None, description="Why nothing was checked, if so")
