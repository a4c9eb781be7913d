"""Scope-to-store selection.

Each CacheScope maps to its own key-value store. Scope is always passed
explicitly by the caller; there is no ambient "current scope".
"""

from collections.abc import Callable, Mapping
import logging
import threading
import time

from kvguard.core.caching.backends.memory import InMemoryStore
from kvguard.core.caching.models import CacheScope
from kvguard.core.caching.protocols import KeyValueStore

logger = logging.getLogger(__name__)

StoreFactory = Callable[[CacheScope], KeyValueStore]


class ScopedStores:
    """
    Resolve a scope token to a key-value store handle.

    Stores can be supplied up front per scope, built on demand by a
    factory, or both (explicit stores win). Without either, every scope
    gets its own InMemoryStore.

    Example:
        >>> stores = ScopedStores()
        >>> stores.select("user") is stores.select(CacheScope.USER)
        True
        >>> stores.select("bogus") is stores.select(CacheScope.DOCUMENT)
        True
    """

    def __init__(
        self,
        stores: Mapping[CacheScope, KeyValueStore] | None = None,
        factory: StoreFactory | None = None,
        clock: Callable[[], float] = time.time,
    ) -> None:
        """
        Initialize selector.

        Args:
            stores: Explicit store per scope
            factory: Builds a store for scopes missing from ``stores``
            clock: Clock for default in-memory stores
        """
        self._stores: dict[CacheScope, KeyValueStore] = dict(stores or {})
        self._factory: StoreFactory = factory or (lambda _scope: InMemoryStore(clock=clock))
        self._lock = threading.Lock()

    def select(self, scope: CacheScope | str | None) -> KeyValueStore:
        """
        Return the store for a scope.

        Args:
            scope: Scope member or token; unknown tokens map to DOCUMENT

        Returns:
            Store handle exposing get/put/remove
        """
        resolved = CacheScope.coerce(scope)
        with self._lock:
            store = self._stores.get(resolved)
            if store is None:
                logger.debug(f"Creating store for scope {resolved.value}")
                store = self._factory(resolved)
                self._stores[resolved] = store
            return store
