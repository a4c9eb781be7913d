"""Tests for bundled key-value stores."""

from pathlib import Path

import pytest

from kvguard.core.caching.backends.fs import FileStore, sanitize_key
from kvguard.core.caching.backends.memory import InMemoryStore
from kvguard.core.caching.backends.null import NullStore
from kvguard.core.caching.errors import StoreError
from tests.conftest import ManualClock


class TestInMemoryStore:
    """Tests for InMemoryStore."""

    def test_get_missing_returns_none(self, clock: ManualClock):
        """Test missing keys read as None."""
        assert InMemoryStore(clock=clock).get("k") is None

    def test_put_then_get(self, clock: ManualClock):
        """Test stored values are returned."""
        store = InMemoryStore(clock=clock)
        store.put("k", "v", 10)
        assert store.get("k") == "v"
        assert "k" in store
        assert len(store) == 1

    def test_expires_after_ttl(self, clock: ManualClock):
        """Test keys disappear once their TTL elapses."""
        store = InMemoryStore(clock=clock)
        store.put("k", "v", 10)

        clock.advance(9.9)
        assert store.get("k") == "v"

        clock.advance(0.1)
        assert store.get("k") is None
        assert len(store) == 0

    def test_ttl_is_per_key(self, clock: ManualClock):
        """Test keys expire independently."""
        store = InMemoryStore(clock=clock)
        store.put("short", "a", 1)
        store.put("long", "b", 100)

        clock.advance(2)
        assert store.get("short") is None
        assert store.get("long") == "b"

    def test_none_ttl_never_expires(self, clock: ManualClock):
        """Test a None TTL keeps the key forever."""
        store = InMemoryStore(clock=clock)
        store.put("k", "v", None)
        clock.advance(10**9)
        assert store.get("k") == "v"

    def test_remove_is_idempotent(self, clock: ManualClock):
        """Test removing absent keys is a no-op."""
        store = InMemoryStore(clock=clock)
        store.put("k", "v", 10)
        store.remove("k")
        store.remove("k")
        assert store.get("k") is None

    def test_clear(self, clock: ManualClock):
        """Test clear drops every key."""
        store = InMemoryStore(clock=clock)
        store.put("a", "1", 10)
        store.put("b", "2", 10)
        store.clear()
        assert len(store) == 0


class TestNullStore:
    """Tests for NullStore."""

    def test_never_stores(self):
        """Test writes are discarded."""
        store = NullStore()
        store.put("k", "v", 10)
        assert store.get("k") is None
        store.remove("k")


class TestFileStore:
    """Tests for FileStore."""

    @pytest.fixture
    def store(self, tmp_path: Path, clock: ManualClock) -> FileStore:
        """Provide file store rooted in a temp directory."""
        return FileStore(tmp_path / "cache", clock=clock)

    def test_get_missing_returns_none(self, store: FileStore):
        """Test missing keys read as None without creating the root."""
        assert store.get("k") is None
        assert not store.root.exists()

    def test_put_then_get(self, store: FileStore):
        """Test values persist to disk and read back."""
        store.put("cache_json_abc", "payload", 60)

        assert store.get("cache_json_abc") == "payload"
        assert (store.root / "cache_json_abc.json").exists()

    def test_survives_new_instance(self, tmp_path: Path, clock: ManualClock):
        """Test records are visible to a new store on the same root."""
        FileStore(tmp_path, clock=clock).put("k", "v", 60)
        assert FileStore(tmp_path, clock=clock).get("k") == "v"

    def test_expired_record_removed_on_read(self, store: FileStore, clock: ManualClock):
        """Test expired records read as None and are deleted."""
        store.put("k", "v", 5)
        clock.advance(5)

        assert store.get("k") is None
        assert not (store.root / "k.json").exists()

    def test_corrupt_record_is_miss(self, store: FileStore):
        """Test unreadable records are treated as missing and removed."""
        store.put("k", "v", 60)
        record = store.root / "k.json"
        record.write_text("{not json", encoding="utf-8")

        assert store.get("k") is None
        assert not record.exists()

    def test_no_temp_files_left(self, store: FileStore):
        """Test atomic writes leave only the final record."""
        store.put("k", "v1", 60)
        store.put("k", "v2", 60)

        assert store.get("k") == "v2"
        assert [p.name for p in store.root.iterdir()] == ["k.json"]

    def test_remove_is_idempotent(self, store: FileStore):
        """Test removing absent keys is a no-op."""
        store.put("k", "v", 60)
        store.remove("k")
        store.remove("k")
        assert store.get("k") is None

    def test_write_failure_raises_store_error(self, tmp_path: Path, clock: ManualClock):
        """Test OS errors on write surface as StoreError."""
        blocker = tmp_path / "file"
        blocker.write_text("x", encoding="utf-8")
        store = FileStore(blocker / "sub", clock=clock)

        with pytest.raises(StoreError):
            store.put("k", "v", 60)

    @pytest.mark.parametrize(
        ("key", "expected"),
        [("cache_json_abc", "cache_json_abc"), ("a/b c", "a_b_c"), ("", "_")],
    )
    def test_sanitize_key(self, key: str, expected: str):
        """Test keys are made filesystem-safe."""
        assert sanitize_key(key) == expected
