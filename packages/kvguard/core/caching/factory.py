"""Build a CacheEngine from application configuration."""

from collections.abc import Callable
import logging
from pathlib import Path
import time

from kvguard.core.caching.backends.fs import FileStore
from kvguard.core.caching.backends.memory import InMemoryStore
from kvguard.core.caching.backends.null import NullStore
from kvguard.core.caching.engine import CacheEngine
from kvguard.core.caching.models import CacheScope
from kvguard.core.caching.protocols import KeyValueStore
from kvguard.core.caching.scopes import ScopedStores, StoreFactory
from kvguard.core.config.models import AppConfig, StoreConfig

logger = logging.getLogger(__name__)


def build_store_factory(
    config: StoreConfig, clock: Callable[[], float] = time.time
) -> StoreFactory:
    """
    Return a factory producing one store per scope for the configured backend.

    The file backend keeps each scope in its own sub-directory of the root,
    so identical paths in different scopes never share records.

    Args:
        config: Store configuration
        clock: Clock shared by the produced stores

    Returns:
        Callable mapping a CacheScope to a store
    """
    if config.backend == "file":
        root = Path(config.root)

        def file_store(scope: CacheScope) -> KeyValueStore:
            return FileStore(root / scope.value.lower(), clock=clock)

        return file_store

    if config.backend == "null":
        return lambda _scope: NullStore()

    return lambda _scope: InMemoryStore(clock=clock)


def create_engine(
    config: AppConfig | None = None, clock: Callable[[], float] = time.time
) -> CacheEngine:
    """
    Create a cache engine wired according to config.

    Args:
        config: Application config (defaults if None)
        clock: Clock for stores and engine

    Returns:
        Configured CacheEngine

    Example:
        >>> engine = create_engine(AppConfig.model_validate({"store": {"backend": "null"}}))
        >>> engine.get_safe("anything") is None
        True
    """
    if config is None:
        config = AppConfig()

    logger.debug(f"Creating cache engine with {config.store.backend} backend")

    stores = ScopedStores(factory=build_store_factory(config.store, clock=clock))
    return CacheEngine(stores=stores, defaults=config.cache, clock=clock)
