"""In-process key-value store with per-key TTL.

Default store for every scope. Expiry is checked lazily on read, using the
same clock the engine is given so tests can drive both with a fake clock.
"""

from collections.abc import Callable
import threading
import time


class InMemoryStore:
    """
    Thread-safe dict-backed store with independent per-key expiry.

    Entries are never evicted for space; an expired key disappears the next
    time it is read.
    """

    def __init__(self, clock: Callable[[], float] = time.time) -> None:
        """
        Initialize an empty store.

        Args:
            clock: Callable returning current epoch seconds
        """
        self._clock = clock
        self._entries: dict[str, tuple[str, float | None]] = {}
        self._lock = threading.Lock()

    def get(self, key: str) -> str | None:
        """Return the live value for key, or None."""
        with self._lock:
            entry = self._entries.get(key)
            if entry is None:
                return None

            value, expires_at = entry
            if expires_at is not None and self._clock() >= expires_at:
                del self._entries[key]
                return None

            return value

    def put(self, key: str, value: str, ttl_seconds: int | None) -> None:
        """Store value; ttl_seconds of None means no expiry."""
        expires_at = None if ttl_seconds is None else self._clock() + ttl_seconds
        with self._lock:
            self._entries[key] = (value, expires_at)

    def remove(self, key: str) -> None:
        """Remove key if present."""
        with self._lock:
            self._entries.pop(key, None)

    def clear(self) -> None:
        """Drop every entry."""
        with self._lock:
            self._entries.clear()

    def __contains__(self, key: object) -> bool:
        return isinstance(key, str) and self.get(key) is not None

    def __len__(self) -> int:
        with self._lock:
            now = self._clock()
            return sum(
                1 for _, expires_at in self._entries.values() if expires_at is None or now < expires_at
            )
