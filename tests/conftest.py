"""Shared pytest fixtures for kvguard tests."""

from __future__ import annotations

import logging

import pytest

from kvguard.core.caching.backends.memory import InMemoryStore
from kvguard.core.caching.engine import CacheEngine
from kvguard.core.caching.models import CacheScope
from kvguard.core.caching.scopes import ScopedStores

# ============================================================================
# Clock Fixtures
# ============================================================================


class ManualClock:
    """Clock that only moves when told to (epoch seconds)."""

    def __init__(self, start: float = 1_700_000_000.0) -> None:
        self.now = start

    def __call__(self) -> float:
        return self.now

    def advance(self, seconds: float) -> None:
        self.now += seconds


@pytest.fixture
def clock() -> ManualClock:
    """Provide a manually advanced clock."""
    return ManualClock()


# ============================================================================
# Store / Engine Fixtures
# ============================================================================


@pytest.fixture
def document_store(clock: ManualClock) -> InMemoryStore:
    """Provide the in-memory store backing the DOCUMENT scope."""
    return InMemoryStore(clock=clock)


@pytest.fixture
def stores(clock: ManualClock, document_store: InMemoryStore) -> ScopedStores:
    """Provide scoped stores with an inspectable DOCUMENT store."""
    return ScopedStores(stores={CacheScope.DOCUMENT: document_store}, clock=clock)


@pytest.fixture
def engine(stores: ScopedStores, clock: ManualClock) -> CacheEngine:
    """Provide an engine driven by the manual clock."""
    return CacheEngine(stores=stores, clock=clock)


# ============================================================================
# Logging Fixtures
# ============================================================================


@pytest.fixture(autouse=True)
def restore_root_logger():
    """Drop handlers installed by configure_logging during a test."""
    root = logging.getLogger()
    saved_handlers = list(root.handlers)
    saved_level = root.level
    yield
    for handler in list(root.handlers):
        if handler not in saved_handlers:
            root.removeHandler(handler)
            handler.close()
    root.setLevel(saved_level)
