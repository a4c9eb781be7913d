"""Duration parsing for cache expiration settings."""

import math
import re

from kvguard.core.caching.errors import InvalidFormat

_DURATION_RE = re.compile(r"(\d*\.?\d+)([smhdw])")

UNIT_SECONDS: dict[str, int] = {
    "s": 1,
    "m": 60,
    "h": 60 * 60,
    "d": 24 * 60 * 60,
    "w": 7 * 24 * 60 * 60,
}


def _round_half_up(value: float) -> int:
    return int(math.floor(value + 0.5))


def parse_duration(duration: str | int | float) -> int:
    """
    Convert a duration expression into whole seconds.

    Accepts ``<number><unit>`` strings where unit is one of s, m, h, d, w
    (the number may be fractional), or a plain number of seconds.

    Args:
        duration: Duration string (e.g. "30m", "1.5h") or seconds

    Returns:
        Duration in seconds, rounded to the nearest second

    Raises:
        InvalidFormat: If the string does not match the grammar

    Example:
        >>> parse_duration("1.5h")
        5400
        >>> parse_duration(60)
        60
    """
    if isinstance(duration, bool):
        raise InvalidFormat(f"Invalid duration: {duration!r}")

    if isinstance(duration, (int, float)):
        if not math.isfinite(duration):
            raise InvalidFormat(f"Invalid duration: {duration!r}")
        return _round_half_up(duration)

    if not isinstance(duration, str):
        raise InvalidFormat(f"Invalid duration type: {type(duration).__name__}")

    match = _DURATION_RE.fullmatch(duration)
    if match is None:
        raise InvalidFormat(
            f'Invalid duration format: {duration}. Use formats like "30s", "5m", "2h", "1d", "1w"'
        )

    value = float(match.group(1))
    unit = match.group(2)

    return _round_half_up(value * UNIT_SECONDS[unit])
