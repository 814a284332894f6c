"""
Time parsing and formatting for the HTTP API and CLI.
"""

import re
from datetime import datetime, timedelta, timezone

from ..core.errors import InvalidQueryError

_DURATION_RE = re.compile(r'^\s*(\d+(?:\.\d+)?)\s*(us|µs|ms|s|m|h)?\s*$')

_UNITS = {
    'us': timedelta(microseconds=1),
    'µs': timedelta(microseconds=1),
    'ms': timedelta(milliseconds=1),
    's': timedelta(seconds=1),
    'm': timedelta(minutes=1),
    'h': timedelta(hours=1),
}

_EPOCH = datetime(1970, 1, 1)


def format_time(ms: float) -> str:
    """
    Format time in milliseconds to a human-readable string.

    Args:
        ms: Time in milliseconds

    Returns:
        Formatted time string (e.g., "123.45 ms", "2.34 s", "1m 30.50s")
    """
    if ms < 1000:
        return f"{ms:.2f} ms"
    elif ms < 60000:
        return f"{ms/1000:.2f} s"
    else:
        minutes = int(ms / 60000)
        seconds = (ms % 60000) / 1000
        return f"{minutes}m {seconds:.2f}s"


def format_duration(duration: timedelta) -> str:
    return format_time(duration / timedelta(milliseconds=1))


def parse_duration(value: str) -> timedelta:
    """
    Parse a duration such as "250us", "10ms", "1.5s" or "2m".

    A bare number is read as milliseconds.

    Raises:
        InvalidQueryError: If the value is not a duration
    """
    match = _DURATION_RE.match(value or '')
    if not match:
        raise InvalidQueryError(f"Invalid duration: {value!r}")
    amount, unit = match.groups()
    try:
        return float(amount) * _UNITS[unit or 'ms']
    except (OverflowError, ValueError):
        raise InvalidQueryError(f"Duration out of range: {value!r}") from None


def from_millis(value: int) -> timedelta:
    try:
        return timedelta(milliseconds=int(value))
    except OverflowError:
        raise InvalidQueryError(f"Duration out of range: {value}ms") from None


def from_epoch_micros(value: int) -> datetime:
    """
    Convert epoch microseconds to a naive UTC datetime (the store's time zone).

    Raises:
        InvalidQueryError: If the value falls outside the datetime range
    """
    try:
        return _EPOCH + timedelta(microseconds=int(value))
    except OverflowError:
        raise InvalidQueryError(f"Timestamp out of range: {value}us") from None


def to_epoch_micros(value: datetime) -> int:
    if value.tzinfo is not None:
        value = value.astimezone(timezone.utc).replace(tzinfo=None)
    return (value - _EPOCH) // timedelta(microseconds=1)
