"""Formatting and parsing utilities."""

from .time_formatter import (
    format_duration,
    format_time,
    from_epoch_micros,
    from_millis,
    parse_duration,
    to_epoch_micros,
)

__all__ = [
    "format_time",
    "format_duration",
    "parse_duration",
    "from_epoch_micros",
    "from_millis",
    "to_epoch_micros",
]
