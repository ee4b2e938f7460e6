"""Utility functions for the call-flow analyzer."""

from fs_callflow.utils.time_utils import (
    TIMESTAMP_FORMATS,
    format_duration,
    parse_log_timestamp,
)

__all__ = [
    "TIMESTAMP_FORMATS",
    "format_duration",
    "parse_log_timestamp",
]
