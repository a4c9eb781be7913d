"""Tests for building engines from configuration."""

from pathlib import Path

from kvguard.core.caching.backends.fs import FileStore
from kvguard.core.caching.backends.memory import InMemoryStore
from kvguard.core.caching.backends.null import NullStore
from kvguard.core.caching.factory import build_store_factory, create_engine
from kvguard.core.caching.models import CacheOptions, CacheScope
from kvguard.core.config.models import AppConfig, StoreConfig
from tests.conftest import ManualClock


class TestBuildStoreFactory:
    """Tests for build_store_factory."""

    def test_memory_backend(self):
        """Test the memory backend yields in-memory stores."""
        factory = build_store_factory(StoreConfig(backend="memory"))
        assert isinstance(factory(CacheScope.USER), InMemoryStore)

    def test_null_backend(self):
        """Test the null backend yields null stores."""
        factory = build_store_factory(StoreConfig(backend="null"))
        assert isinstance(factory(CacheScope.USER), NullStore)

    def test_file_backend_directory_per_scope(self, tmp_path: Path):
        """Test each scope gets its own sub-directory."""
        factory = build_store_factory(StoreConfig(backend="file", root=str(tmp_path)))

        user = factory(CacheScope.USER)
        document = factory(CacheScope.DOCUMENT)

        assert isinstance(user, FileStore)
        assert user.root == tmp_path / "user"
        assert document.root == tmp_path / "document"


class TestCreateEngine:
    """Tests for create_engine."""

    def test_defaults(self):
        """Test an engine with default config caches in memory."""
        engine = create_engine()
        engine.get_or_fetch("p", lambda path, scope, ctx: [1])
        assert engine.get_safe("p") == [1]

    def test_cache_defaults_applied(self):
        """Test config cache options become engine defaults."""
        config = AppConfig(cache=CacheOptions(expiration="1h"))
        assert create_engine(config).defaults.expiration == "1h"

    def test_null_backend_never_caches(self):
        """Test an engine over null stores always fetches."""
        engine = create_engine(AppConfig(store=StoreConfig(backend="null")))
        calls: list[str] = []

        def fetch(path, scope, ctx):
            calls.append(path)
            return 1

        engine.get_or_fetch("p", fetch)
        engine.get_or_fetch("p", fetch)
        assert len(calls) == 2

    def test_file_backend_persists(self, tmp_path: Path, clock: ManualClock):
        """Test entries written by one engine are read by another."""
        config = AppConfig(store=StoreConfig(backend="file", root=str(tmp_path)))

        create_engine(config, clock=clock).force_refresh("p", {"v": 1}, "body")
        assert create_engine(config, clock=clock).get_safe("p", "body") == {"v": 1}
