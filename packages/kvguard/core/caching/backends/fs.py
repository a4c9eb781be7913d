"""Filesystem-backed key-value store.

One JSON record per key under a root directory. Writes go to a temporary
file first and are moved into place, so a reader sees either the old record
or the new one, never a partial file.
"""

from collections.abc import Callable
import logging
import os
from pathlib import Path
import re
import tempfile
import time

from pydantic import BaseModel, ValidationError

from kvguard.core.caching.errors import StoreError

logger = logging.getLogger(__name__)

_UNSAFE_CHARS = re.compile(r"[^A-Za-z0-9._-]")


class StoredRecord(BaseModel):
    """On-disk record for one key."""

    value: str
    expires_at: float | None = None


def sanitize_key(key: str) -> str:
    """Make a storage key safe to use as a file name."""
    safe = _UNSAFE_CHARS.sub("_", key)
    return safe or "_"


class FileStore:
    """
    Key-value store persisting each key as ``<root>/<key>.json``.

    Expiry is enforced lazily: an expired record is deleted when read.
    Any OSError is re-raised as StoreError.
    """

    def __init__(self, root: Path | str, clock: Callable[[], float] = time.time) -> None:
        """
        Initialize file store.

        Args:
            root: Directory holding the records (created on first write)
            clock: Callable returning current epoch seconds
        """
        self.root = Path(root)
        self._clock = clock

    def _record_path(self, key: str) -> Path:
        return self.root / f"{sanitize_key(key)}.json"

    def get(self, key: str) -> str | None:
        """Return the live value for key, or None."""
        record_path = self._record_path(key)
        try:
            raw = record_path.read_text(encoding="utf-8")
        except FileNotFoundError:
            return None
        except OSError as e:
            raise StoreError(f"Failed to read {record_path}: {e}") from e

        try:
            record = StoredRecord.model_validate_json(raw)
        except ValidationError:
            # Corrupted record → treat as miss
            logger.warning(f"Discarding unreadable cache record {record_path}")
            self.remove(key)
            return None

        if record.expires_at is not None and self._clock() >= record.expires_at:
            self.remove(key)
            return None

        return record.value

    def put(self, key: str, value: str, ttl_seconds: int | None) -> None:
        """Write value atomically with its own TTL."""
        expires_at = None if ttl_seconds is None else self._clock() + ttl_seconds
        record = StoredRecord(value=value, expires_at=expires_at)
        record_path = self._record_path(key)

        try:
            self.root.mkdir(parents=True, exist_ok=True)
            fd, tmp_name = tempfile.mkstemp(dir=self.root, prefix=".tmp-", suffix=".json")
            try:
                with os.fdopen(fd, "w", encoding="utf-8") as f:
                    f.write(record.model_dump_json())
                os.replace(tmp_name, record_path)
            except BaseException:
                Path(tmp_name).unlink(missing_ok=True)
                raise
        except OSError as e:
            raise StoreError(f"Failed to write {record_path}: {e}") from e

    def remove(self, key: str) -> None:
        """Delete the record for key if it exists."""
        record_path = self._record_path(key)
        try:
            record_path.unlink(missing_ok=True)
        except OSError as e:
            raise StoreError(f"Failed to remove {record_path}: {e}") from e
