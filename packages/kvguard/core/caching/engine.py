"""Validated two-key cache engine.

Every entry is a pair of keys in the underlying store: the encoded payload
under ``cache_json_<fp>`` and a CacheMeta record under ``cache_meta_<fp>``.
The store offers no cross-key transaction, so writes follow a compensating
pattern:

1. put the payload
2. put the metadata carrying a fresh transaction id
3. read both back and compare the transaction id
4. on any mismatch remove both keys

This detects torn writes after the fact; it does not prevent them. Between
steps 1 and 3 a concurrent reader can still observe one key without the
other. Readers re-check expiry, content hash and transaction id before
trusting a payload, so the worst outcome of a race is a spurious miss.

Store failures and undecodable payloads are never raised to the caller:
they remove the entry and fall through to the fetch function.
"""

from collections.abc import Callable, Iterable, Mapping
from dataclasses import dataclass
import logging
import math
import time
from typing import Any
import uuid

from pydantic import ValidationError

from kvguard.core.caching.codec import PayloadCodec
from kvguard.core.caching.duration import parse_duration
from kvguard.core.caching.errors import PayloadDecodeError, StoreError, WriteVerificationFailed
from kvguard.core.caching.fingerprint import compute_fingerprint
from kvguard.core.caching.models import (
    CacheKeys,
    CacheMeta,
    CacheOptions,
    CacheScope,
    CleanupResult,
    FetchContext,
    FetchResult,
)
from kvguard.core.caching.protocols import FetchFunction, KeyValueStore
from kvguard.core.caching.scopes import ScopedStores

logger = logging.getLogger(__name__)

OptionsInput = CacheOptions | Mapping[str, Any] | None
ScopeInput = CacheScope | str | None


def content_matches(
    meta: CacheMeta, content_hash: str | None, validation_requested: bool
) -> bool:
    """
    Decide whether stored metadata matches the caller's validation content.

    No validation request always matches. A request against metadata that
    carries no content hash is a mismatch, so an entry written without
    validation content can never satisfy a validated read.
    """
    if not validation_requested:
        return True
    if content_hash and meta.content_hash:
        return meta.content_hash == content_hash
    return False


def _unpack_fetch_result(result: Any, validation_content: str | None) -> tuple[Any, str | None, Any]:
    """Split a fetch result into (value, validation content, expiration override)."""
    if isinstance(result, FetchResult):
        content = result.content if "content" in result.model_fields_set else validation_content
        return result.data, content, result.expiration

    if isinstance(result, Mapping) and "data" in result:
        content = result["content"] if "content" in result else validation_content
        if content is not None and not isinstance(content, str):
            content = str(content)
        return result["data"], content, result.get("expiration")

    return result, validation_content, None


@dataclass(frozen=True)
class _CacheHit:
    meta: CacheMeta
    payload: str
    value: Any


class CacheEngine:
    """
    Cache layer adding validation, expiry extension and verified writes
    on top of a plain key-value store.

    The engine holds no per-entry state between calls; everything it knows
    about an entry is read back from the store.

    Example:
        >>> engine = CacheEngine()
        >>> engine.get_or_fetch("reports/q3", lambda path, scope, ctx: {"total": 42})
        {'total': 42}
        >>> engine.get_safe("reports/q3")
        {'total': 42}
    """

    def __init__(
        self,
        stores: ScopedStores | None = None,
        codec: PayloadCodec | None = None,
        defaults: CacheOptions | None = None,
        clock: Callable[[], float] = time.time,
        id_factory: Callable[[], str] | None = None,
    ) -> None:
        """
        Initialize cache engine.

        Args:
            stores: Scope-to-store selector (in-memory stores if omitted)
            codec: Payload codec (gzip + base64 if omitted)
            defaults: Option defaults merged under every call's options
            clock: Callable returning current epoch seconds
            id_factory: Transaction id generator (UUID4 hex if omitted)
        """
        self.stores = stores or ScopedStores(clock=clock)
        self.codec = codec or PayloadCodec()
        self.defaults = defaults or CacheOptions()
        self._clock = clock
        self._new_transaction_id = id_factory or (lambda: uuid.uuid4().hex)

    # ------------------------------------------------------------------
    # Public operations
    # ------------------------------------------------------------------

    def get_or_fetch(
        self,
        path: str,
        fetch_fn: FetchFunction | None = None,
        validation_content: str | None = None,
        scope: ScopeInput = CacheScope.DOCUMENT,
        options: OptionsInput = None,
    ) -> Any:
        """
        Return the cached value for path, fetching and storing it on a miss.

        Args:
            path: Logical identifier of the cached content
            fetch_fn: Called as fetch_fn(path, scope, context) on a miss.
                May return the value, a FetchResult, or a mapping with a
                "data" key and optional "content"/"expiration" keys.
            validation_content: Content whose fingerprint must match the
                stored one for a hit
            scope: Cache scope (unknown tokens fall back to DOCUMENT)
            options: CacheOptions or mapping of overrides

        Returns:
            Cached or freshly fetched value, or None on a miss without fetch_fn

        Raises:
            InvalidFormat: If an expiration cannot be parsed
            PayloadEncodeError: If the fetched value is not JSON serializable
            Exception: Anything raised by fetch_fn, unchanged
        """
        opts = self.resolve_options(options)
        expiration_seconds = parse_duration(opts.expiration)
        scope = CacheScope.coerce(scope)
        keys = CacheKeys.for_path(path)
        store = self.stores.select(scope)

        if not opts.bypass_cache:
            hit = self._lookup(
                store,
                keys,
                path,
                validation_content,
                strict=opts.strict_consistency,
            )
            if hit is not None:
                logger.debug(f'Cache hit for path "{path}"', extra=_log_context(path, scope))
                if opts.extend_cache_period:
                    self._extend_expiry(store, keys, hit, expiration_seconds, path)
                return hit.value

        if fetch_fn is None:
            return None

        return self._fetch_and_store(
            store, keys, path, scope, fetch_fn, validation_content, opts, expiration_seconds
        )

    def get(
        self,
        path: str,
        fetch_fn: FetchFunction | None = None,
        validation_content: str | None = None,
        scope: ScopeInput = CacheScope.DOCUMENT,
        options: OptionsInput = None,
    ) -> Any:
        """Shorthand for get_or_fetch."""
        return self.get_or_fetch(path, fetch_fn, validation_content, scope, options)

    def is_valid(
        self,
        path: str,
        validation_content: str | None = None,
        scope: ScopeInput = CacheScope.DOCUMENT,
        verify_consistency: bool = True,
    ) -> bool:
        """
        Check whether a usable entry exists, without modifying the store.

        Args:
            path: Logical identifier
            validation_content: Optional content to validate against
            scope: Cache scope
            verify_consistency: Also require a transaction id and a data key

        Returns:
            True if the entry is present, unexpired and matches
        """
        keys = CacheKeys.for_path(path)
        store = self.stores.select(scope)

        meta = self._load_meta(store, keys)
        if meta is None:
            return False

        if meta.expires_at <= self._now_ms():
            return False

        content_hash = _hash_or_none(validation_content)
        if not content_matches(meta, content_hash, validation_content is not None):
            return False

        if verify_consistency:
            if not meta.transaction_id:
                return False
            if self._read(store, keys.data_key) is None:
                return False

        return True

    def get_safe(
        self,
        path: str,
        validation_content: str | None = None,
        scope: ScopeInput = CacheScope.DOCUMENT,
    ) -> Any:
        """
        Return the cached value or None, never fetching.

        Runs the strict read path: invalid or undecodable entries are
        removed and reported as None.
        """
        keys = CacheKeys.for_path(path)
        store = self.stores.select(scope)

        hit = self._lookup(store, keys, path, validation_content, strict=True)
        return None if hit is None else hit.value

    def force_refresh(
        self,
        path: str,
        data_or_fn: Any,
        validation_content: str | None = None,
        scope: ScopeInput = CacheScope.DOCUMENT,
        options: OptionsInput = None,
    ) -> Any:
        """
        Replace the entry for path unconditionally.

        Args:
            path: Logical identifier
            data_or_fn: New value, or a callable invoked as data_or_fn(path)
            validation_content: Content to fingerprint with the new entry
            scope: Cache scope
            options: Options; bypass_cache and strict_consistency are forced

        Returns:
            The value that was stored (or would have been, if oversized)
        """
        opts = self.resolve_options(options, bypass_cache=False, strict_consistency=True)
        expiration_seconds = parse_duration(opts.expiration)
        scope = CacheScope.coerce(scope)
        keys = CacheKeys.for_path(path)
        store = self.stores.select(scope)

        self.clear_for_path(path, scope)

        value = data_or_fn(path) if callable(data_or_fn) else data_or_fn

        return self._fetch_and_store(
            store,
            keys,
            path,
            scope,
            lambda _path, _scope, _context: value,
            validation_content,
            opts,
            expiration_seconds,
        )

    def clear_for_path(self, path: str, scope: ScopeInput = CacheScope.DOCUMENT) -> None:
        """Remove both keys for path. Safe to call repeatedly."""
        keys = CacheKeys.for_path(path)
        self._evict(self.stores.select(scope), keys)
        logger.debug(f'Cleared cache for path "{path}"')

    def clean_expired_entries(
        self,
        scope: ScopeInput = CacheScope.DOCUMENT,
        path_list: Iterable[str] | None = None,
    ) -> CleanupResult:
        """
        Remove expired entries for an externally maintained list of paths.

        The store cannot enumerate keys, so without a path list nothing is
        checked and the result explains why.

        Args:
            scope: Cache scope
            path_list: Paths whose entries should be checked (a single path
                string is treated as a one-item list)

        Returns:
            CleanupResult listing removed paths
        """
        scope = CacheScope.coerce(scope)

        if path_list is None:
            reason = "No path list provided; the store cannot enumerate its keys"
            logger.info(reason)
            return CleanupResult(scope=scope, reason=reason)

        if isinstance(path_list, str):
            path_list = [path_list]

        store = self.stores.select(scope)
        now = self._now_ms()
        checked = 0
        removed: list[str] = []

        for path in path_list:
            checked += 1
            keys = CacheKeys.for_path(path)
            raw_meta = self._read(store, keys.meta_key)
            if raw_meta is None:
                continue

            try:
                meta = CacheMeta.model_validate_json(raw_meta)
            except ValidationError:
                logger.warning(f'Removing unreadable metadata for path "{path}"')
                self._evict(store, keys)
                removed.append(path)
                continue

            if meta.expires_at <= now:
                self._evict(store, keys)
                removed.append(path)
                logger.info(f"Removed expired cache entry for path: {path}")

        return CleanupResult(scope=scope, checked=checked, removed=removed)

    def resolve_options(self, options: OptionsInput = None, **overrides: Any) -> CacheOptions:
        """
        Merge per-call options over the engine defaults.

        Only fields the caller actually set override the defaults.

        Raises:
            ValidationError: If an option has the wrong type or is unknown
        """
        resolved = self.defaults
        if options is not None:
            parsed = (
                options if isinstance(options, CacheOptions) else CacheOptions.model_validate(options)
            )
            resolved = resolved.model_copy(
                update={name: getattr(parsed, name) for name in parsed.model_fields_set}
            )
        if overrides:
            resolved = resolved.model_copy(update=overrides)
        return resolved

    # ------------------------------------------------------------------
    # Read path
    # ------------------------------------------------------------------

    def _lookup(
        self,
        store: KeyValueStore,
        keys: CacheKeys,
        path: str,
        validation_content: str | None,
        strict: bool,
    ) -> _CacheHit | None:
        """Validated read. Removes the entry on anything but a clean hit."""
        raw_meta = self._read(store, keys.meta_key)
        if raw_meta is None:
            return None

        try:
            meta = CacheMeta.model_validate_json(raw_meta)
        except ValidationError as e:
            logger.error(f'Error parsing cache metadata for path "{path}": {e}')
            self._evict(store, keys)
            return None

        if meta.expires_at <= self._now_ms():
            logger.info(f'Cache entry for path "{path}" invalidated due to expiration')
            self._evict(store, keys)
            return None

        content_hash = _hash_or_none(validation_content)
        if not content_matches(meta, content_hash, validation_content is not None):
            logger.info(f'Cache entry for path "{path}" invalidated due to content mismatch')
            self._evict(store, keys)
            return None

        payload = self._read(store, keys.data_key)
        if payload is None:
            logger.info(
                f'Cache inconsistency detected for path "{path}": metadata exists but data missing'
            )
            self._evict(store, keys)
            return None

        if strict and not meta.transaction_id:
            logger.info(f'Cache entry for path "{path}" lacks transaction ID, treating as stale')
            self._evict(store, keys)
            return None

        if not payload.strip():
            logger.info(f'Cache entry for path "{path}" has empty data')
            self._evict(store, keys)
            return None

        try:
            value = self.codec.decode(payload, meta.is_compressed)
        except PayloadDecodeError as e:
            logger.warning(f'Discarding undecodable cache entry for path "{path}": {e}')
            self._evict(store, keys)
            return None

        return _CacheHit(meta=meta, payload=payload, value=value)

    def _extend_expiry(
        self,
        store: KeyValueStore,
        keys: CacheKeys,
        hit: _CacheHit,
        expiration_seconds: int,
        path: str,
    ) -> None:
        """Push a hit's expiry forward, refreshing the store TTL of both keys."""
        now = self._now_ms()
        expires_at = max(hit.meta.expires_at, now + expiration_seconds * 1000)
        ttl_seconds = math.ceil((expires_at - now) / 1000)
        meta = hit.meta.model_copy(update={"expires_at": expires_at, "last_modified": now})

        try:
            store.put(keys.data_key, hit.payload, ttl_seconds)
            store.put(keys.meta_key, meta.to_json(), ttl_seconds)
        except StoreError as e:
            logger.warning(f'Error extending cache expiry for path "{path}": {e}')
            return

        logger.debug(f'Extended cache expiry for path "{path}" by {ttl_seconds}s')

    # ------------------------------------------------------------------
    # Write path
    # ------------------------------------------------------------------

    def _fetch_and_store(
        self,
        store: KeyValueStore,
        keys: CacheKeys,
        path: str,
        scope: CacheScope,
        fetch_fn: FetchFunction,
        validation_content: str | None,
        opts: CacheOptions,
        expiration_seconds: int,
    ) -> Any:
        existing_meta = self._load_meta(store, keys) if opts.extend_cache_period else None
        context = FetchContext(
            cache_level=scope,
            existing_meta=existing_meta,
            expected_content=validation_content,
            extend_cache_period=opts.extend_cache_period,
        )

        try:
            result = fetch_fn(path, scope, context)
        except Exception:
            logger.error(f'Error fetching data for path "{path}"', extra=_log_context(path, scope))
            raise

        value, content, custom_expiration = _unpack_fetch_result(result, validation_content)

        if custom_expiration is not None:
            expiration_seconds = parse_duration(custom_expiration)
            logger.debug(
                f"Using custom expiration from fetch function: {custom_expiration} "
                f"({expiration_seconds} seconds)"
            )

        self._store(store, keys, path, value, _hash_or_none(content), opts, expiration_seconds)
        return value

    def _store(
        self,
        store: KeyValueStore,
        keys: CacheKeys,
        path: str,
        value: Any,
        content_hash: str | None,
        opts: CacheOptions,
        expiration_seconds: int,
    ) -> None:
        encoded = self.codec.encode(value)

        if encoded.size > opts.max_size_bytes:
            logger.info(
                f'Data for path "{path}" exceeds max size limit '
                f"({encoded.size} > {opts.max_size_bytes} bytes) and was not cached"
            )
            self._evict(store, keys)
            return

        now = self._now_ms()
        existing = self._load_meta(store, keys) if opts.extend_cache_period else None

        if existing is not None and existing.expires_at > now:
            expires_at = existing.expires_at
            if expiration_seconds > 0:
                expires_at = max(expires_at, now + expiration_seconds * 1000)
        else:
            expires_at = now + expiration_seconds * 1000

        ttl_seconds = math.ceil((expires_at - now) / 1000)
        if ttl_seconds <= 0:
            logger.info(f'Expiration for path "{path}" is not positive; data was not cached')
            self._evict(store, keys)
            return

        transaction_id = self._new_transaction_id()
        meta = CacheMeta(
            path=path,
            created_at=now,
            last_modified=now,
            expires_at=expires_at,
            size=encoded.size,
            content_hash=content_hash,
            transaction_id=transaction_id,
            is_compressed=encoded.is_compressed,
        )

        try:
            # Data first: fresh metadata must never point at stale or absent data
            store.put(keys.data_key, encoded.payload, ttl_seconds)
            store.put(keys.meta_key, meta.to_json(), ttl_seconds)

            if opts.strict_consistency:
                self._verify_write(store, keys, transaction_id)
        except (StoreError, WriteVerificationFailed) as e:
            logger.warning(f'Cache write or verification failed for path "{path}": {e}')
            self._evict(store, keys)
            return

        logger.debug(f'Stored cache entry for path "{path}" ({encoded.size} bytes, ttl {ttl_seconds}s)')

    def _verify_write(self, store: KeyValueStore, keys: CacheKeys, transaction_id: str) -> None:
        """Read both keys back and confirm the metadata is the one just written."""
        raw_meta = store.get(keys.meta_key)
        if raw_meta is None:
            raise WriteVerificationFailed("Failed to verify metadata write")

        if store.get(keys.data_key) is None:
            raise WriteVerificationFailed("Failed to verify data write")

        try:
            written = CacheMeta.model_validate_json(raw_meta)
        except ValidationError as e:
            raise WriteVerificationFailed(f"Metadata unreadable after write: {e}") from e

        if written.transaction_id != transaction_id:
            raise WriteVerificationFailed("Transaction ID mismatch in verification")

    # ------------------------------------------------------------------
    # Store helpers
    # ------------------------------------------------------------------

    def _now_ms(self) -> int:
        return int(self._clock() * 1000)

    def _read(self, store: KeyValueStore, key: str) -> str | None:
        try:
            return store.get(key)
        except StoreError as e:
            logger.warning(f"Store read failed for {key}: {e}")
            return None

    def _load_meta(self, store: KeyValueStore, keys: CacheKeys) -> CacheMeta | None:
        raw_meta = self._read(store, keys.meta_key)
        if raw_meta is None:
            return None
        try:
            return CacheMeta.model_validate_json(raw_meta)
        except ValidationError:
            return None

    def _evict(self, store: KeyValueStore, keys: CacheKeys) -> None:
        for key in (keys.data_key, keys.meta_key):
            try:
                store.remove(key)
            except StoreError as e:
                logger.warning(f"Store remove failed for {key}: {e}")


def _hash_or_none(content: str | None) -> str | None:
    return compute_fingerprint(content) if content is not None else None


def _log_context(path: str, scope: CacheScope) -> dict[str, str]:
    return {"cache_path": path, "scope": scope.value}
