"""Payload codec: JSON -> gzip -> base64, with a defensive decoder.

The metadata ``isCompressed`` flag and the real encoding of a payload can
drift apart (entries written before the flag existed, or by a writer without
compression). Decoding therefore walks an ordered list of strategies and
returns the first one that yields a value.
"""

import base64
from collections.abc import Callable
from dataclasses import dataclass
from datetime import date, datetime
from enum import Enum
import gzip
import json
import logging
from pathlib import Path
from typing import Any
import zlib

from pydantic import BaseModel

from kvguard.core.caching.errors import (
    CompressionError,
    CorruptPayload,
    PayloadEncodeError,
    UnrecoverablePayload,
)
from kvguard.core.caching.protocols import Compressor

logger = logging.getLogger(__name__)

GZIP_MAGIC = b"\x1f\x8b"


class GzipCompressor:
    """Gzip compressor with deterministic output (mtime fixed at 0)."""

    magic = GZIP_MAGIC

    def __init__(self, level: int = 9) -> None:
        self.level = level

    def compress(self, data: bytes) -> bytes:
        try:
            return gzip.compress(data, compresslevel=self.level, mtime=0)
        except (OSError, ValueError, zlib.error) as e:
            raise CompressionError(f"gzip compression failed: {e}") from e

    def decompress(self, data: bytes) -> bytes:
        try:
            return gzip.decompress(data)
        except (OSError, EOFError, zlib.error) as e:
            raise CompressionError(f"gzip decompression failed: {e}") from e


def _json_default(obj: Any) -> Any:
    """JSON serializer for types not supported by default.

    Handles:
    - pydantic models -> JSON-mode dict
    - datetime/date -> ISO string
    - pathlib.Path -> str
    - Enum -> value
    - set/frozenset/tuple -> list
    """
    if isinstance(obj, BaseModel):
        return obj.model_dump(mode="json")
    if isinstance(obj, (datetime, date)):
        return obj.isoformat()
    if isinstance(obj, Path):
        return str(obj)
    if isinstance(obj, Enum):
        return obj.value
    if isinstance(obj, (set, frozenset, tuple)):
        return list(obj)

    raise TypeError(f"Object of type {type(obj).__name__} is not JSON serializable")


@dataclass(frozen=True)
class EncodedPayload:
    """Base64 payload ready for storage plus its compression flag."""

    payload: str
    is_compressed: bool

    @property
    def size(self) -> int:
        """Stored size in bytes (base64 text is ASCII)."""
        return len(self.payload)


@dataclass(frozen=True)
class DecodeState:
    """Inputs shared by every decode strategy."""

    raw: str
    data: bytes
    compressed: bool


@dataclass(frozen=True)
class DecodeStrategy:
    """One recovery step: run ``attempt`` when ``applies`` holds."""

    name: str
    applies: Callable[[DecodeState], bool]
    attempt: Callable[[DecodeState], Any]


class PayloadCodec:
    """
    Encode values for storage and decode them defensively.

    Example:
        >>> codec = PayloadCodec()
        >>> encoded = codec.encode({"rows": [1, 2, 3]})
        >>> encoded.is_compressed
        True
        >>> codec.decode(encoded.payload, encoded.is_compressed)
        {'rows': [1, 2, 3]}
    """

    def __init__(self, compressor: Compressor | None = None) -> None:
        """
        Initialize codec.

        Args:
            compressor: Compression codec (defaults to gzip)
        """
        self.compressor: Compressor = compressor or GzipCompressor()
        self._strategies: list[DecodeStrategy] = [
            DecodeStrategy("utf8-json", lambda s: True, self._parse_bytes),
            DecodeStrategy("decompress", lambda s: s.compressed, self._decompress_and_parse),
            DecodeStrategy("raw-json", lambda s: True, self._parse_raw),
        ]

    def encode(self, value: Any) -> EncodedPayload:
        """
        Serialize, compress and base64-encode a value.

        Compression failure is not fatal: the JSON bytes are stored as-is
        and the payload is flagged uncompressed.

        Args:
            value: JSON-serializable value (pydantic models allowed)

        Returns:
            Encoded payload and compression flag

        Raises:
            PayloadEncodeError: If the value cannot be represented as JSON
        """
        try:
            json_text = json.dumps(
                value, ensure_ascii=False, separators=(",", ":"), default=_json_default
            )
        except (TypeError, ValueError) as e:
            raise PayloadEncodeError(f"Value is not JSON serializable: {e}") from e

        json_bytes = json_text.encode("utf-8")

        try:
            body = self.compressor.compress(json_bytes)
            is_compressed = True
        except CompressionError as e:
            logger.info(f"Compression failed, storing uncompressed: {e}")
            body = json_bytes
            is_compressed = False

        return EncodedPayload(
            payload=base64.b64encode(body).decode("ascii"),
            is_compressed=is_compressed,
        )

    def decode(self, payload: str, is_compressed: bool | None = None) -> Any:
        """
        Reconstruct a value from a stored payload.

        Args:
            payload: Base64 string as stored
            is_compressed: Compression hint from metadata; None to infer it
                from the magic header

        Returns:
            Decoded value (JSON null decodes to None)

        A payload that is not base64 at all is only accepted if the raw
        string parses as JSON.

        Raises:
            CorruptPayload: If the payload is neither base64 nor raw JSON, or
                decodes to nothing
            UnrecoverablePayload: If every strategy fails
        """
        try:
            data = base64.b64decode(payload, validate=True)
        except ValueError as e:
            return self._decode_non_base64(payload, e)

        if not data:
            raise CorruptPayload("Base64 decoding resulted in empty data")

        if is_compressed is None:
            is_compressed = self._looks_compressed(data)

        state = DecodeState(raw=payload, data=data, compressed=is_compressed)

        for strategy in self._strategies:
            if not strategy.applies(state):
                continue
            try:
                value = strategy.attempt(state)
            except (ValueError, RecursionError, CompressionError) as e:
                logger.debug(f"Decode strategy {strategy.name} failed: {e}")
                continue
            logger.debug(f"Decoded payload with strategy {strategy.name}")
            return value

        raise UnrecoverablePayload("All data recovery methods failed")

    def _decode_non_base64(self, payload: str, error: ValueError) -> Any:
        try:
            value = json.loads(payload)
        except (ValueError, RecursionError):
            raise CorruptPayload(f"Base64 decoding failed: {error}") from error
        logger.debug("Decoded non-base64 payload as raw JSON")
        return value

    def _looks_compressed(self, data: bytes) -> bool:
        magic = self.compressor.magic
        return bool(magic) and len(data) > len(magic) and data.startswith(magic)

    def _parse_bytes(self, state: DecodeState) -> Any:
        return json.loads(state.data.decode("utf-8"))

    def _decompress_and_parse(self, state: DecodeState) -> Any:
        return json.loads(self.compressor.decompress(state.data).decode("utf-8"))

    def _parse_raw(self, state: DecodeState) -> Any:
        return json.loads(state.raw)
