"""Time-related utility functions."""

from datetime import datetime
from typing import Optional


# Tried in order; %f accepts 1-6 fractional digits (micro- and milliseconds)
TIMESTAMP_FORMATS = (
    "%Y-%m-%d %H:%M:%S.%f",
    "%Y-%m-%d %H:%M:%S",
)


def parse_log_timestamp(text: str) -> Optional[datetime]:
    """Parse a log timestamp, trying each known precision in turn.

    Args:
        text: String like "2025-10-23 17:27:09.123456"

    Returns:
        Naive datetime, or None if no format matches
    """
    value = text.strip()
    for fmt in TIMESTAMP_FORMATS:
        try:
            return datetime.strptime(value, fmt)
        except ValueError:
            continue
    return None


def format_duration(ms: Optional[int]) -> str:
    """Format a duration in milliseconds as a human-readable string.

    Args:
        ms: Duration in milliseconds, or None

    Returns:
        Formatted string like "2m 5s", "12.4s" or "-"
    """
    if ms is None:
        return "-"

    seconds = ms / 1000.0
    if seconds < 60:
        return f"{seconds:.1f}s"

    minutes = int(seconds // 60)
    remaining_seconds = int(seconds % 60)

    if minutes < 60:
        if remaining_seconds > 0:
            return f"{minutes}m {remaining_seconds}s"
        return f"{minutes}m"

    hours = minutes // 60
    remaining_minutes = minutes % 60

    if remaining_minutes > 0:
        return f"{hours}h {remaining_minutes}m"
    return f"{hours}h"
