"""No-op store for development/testing.

Always reports a miss, discards all writes.
"""


class NullStore:
    """
    No-op key-value store.

    Every get misses, so an engine backed by it calls the fetch function
    on every request and the write verification always rolls back.
    """

    def get(self, key: str) -> str | None:
        """Always returns None."""
        return None

    def put(self, key: str, value: str, ttl_seconds: int | None) -> None:
        """Discard."""

    def remove(self, key: str) -> None:
        """No-op."""
