"""Error taxonomy for the cache layer.

Only InvalidFormat and PayloadEncodeError reach callers. Everything else is
raised and handled inside the engine, where it turns into a cache miss or a
rollback of a half-written entry.
"""


class CacheError(Exception):
    """Base class for all cache layer errors."""


class InvalidFormat(CacheError, ValueError):
    """Duration expression does not match ``<number><unit>``."""


class PayloadDecodeError(CacheError):
    """Stored payload could not be turned back into a value."""


class CorruptPayload(PayloadDecodeError):
    """Payload is not valid base64 or decodes to zero bytes."""


class UnrecoverablePayload(PayloadDecodeError):
    """Every decode strategy failed."""


class PayloadEncodeError(CacheError, ValueError):
    """Value cannot be represented as JSON."""


class CompressionError(CacheError):
    """Compressor failed to compress or decompress a byte sequence."""


class StoreError(CacheError):
    """Underlying key-value store failed a get, put or remove."""


class WriteVerificationFailed(CacheError):
    """Read-back after a two-key write did not match what was written."""
