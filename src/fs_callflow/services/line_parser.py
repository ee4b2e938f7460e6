"""Line Parser - turns one raw switch log line into a StructuredRecord.

Responsible for:
- Matching the primary log grammar (optional leading channel id, timestamp,
  optional CPU figure, optional thread tag, level, optional module:line)
- Falling back to best-effort scanning when the grammar does not match
- Extracting the inline channel identifier and key=value pairs

No semantic interpretation happens here.
"""

import logging
import re
from typing import Optional

from fs_callflow.models import StructuredRecord
from fs_callflow.utils.time_utils import parse_log_timestamp

logger = logging.getLogger(__name__)

UUID_RE = r"[0-9a-fA-F]{8}-[0-9a-fA-F]{4}-[0-9a-fA-F]{4}-[0-9a-fA-F]{4}-[0-9a-fA-F]{12}"

# ---------------------------------------------------------------------------
# Compiled regex patterns
# ---------------------------------------------------------------------------

_LOG_LINE_RE = re.compile(
    rf"^(?:(?P<leading_id>{UUID_RE})\s+)?"
    r"(?P<date>\d{4}-\d{2}-\d{2})\s+"
    r"(?P<time>\d{2}:\d{2}:\d{2}(?:\.\d{1,6})?)\s+"
    r"(?:\d{1,3}(?:\.\d+)?%\s+)?"
    r"(?:\[[^\]]*\]\s+(?=\[))?"
    r"\[(?P<level>\w+)\]\s+"
    r"(?:(?P<module>[\w.\-]+):(?P<line>\d+)\s+)?"
    r"(?P<msg>.*)$"
)

_LOOSE_TIMESTAMP_RE = re.compile(
    r"\b\d{4}-\d{2}-\d{2} \d{2}:\d{2}:\d{2}(?:\.\d{1,6})?\b"
)

_TRAILING_ID_RE = re.compile(rf"\[({UUID_RE})\]\s*$")

ID_RE = re.compile(rf"\b({UUID_RE})\b")

_KV_RE = re.compile(
    r"\b([A-Za-z_][A-Za-z0-9_\-]*)="
    r"(\"[^\"]*\"|'[^']*'|\S+)"
)


def find_identifiers(text: str) -> list[str]:
    """All channel-identifier shaped substrings of ``text``, in order."""
    return ID_RE.findall(text)


def _strip_quotes(value: str) -> str:
    if len(value) >= 2 and value[0] == value[-1] and value[0] in ("'", '"'):
        return value[1:-1]
    return value


def extract_key_values(text: str) -> dict[str, str]:
    """Extract key=value pairs, stripping single or double quotes.

    A key seen twice keeps its last value.
    """
    return {key: _strip_quotes(value) for key, value in _KV_RE.findall(text)}


def _inline_id(line: str, leading_id: Optional[str]) -> Optional[str]:
    """Pick the line's own identifier: leading, trailing bracketed, first anywhere."""
    if leading_id:
        return leading_id
    trailing = _TRAILING_ID_RE.search(line)
    if trailing:
        return trailing.group(1)
    anywhere = ID_RE.search(line)
    return anywhere.group(1) if anywhere else None


def _parse_timestamp(text: str):
    ts = parse_log_timestamp(text)
    if ts is None:
        logger.debug("Unparseable timestamp: %s", text)
    return ts


def parse_line(line: Optional[str]) -> Optional[StructuredRecord]:
    """Parse a single log line into a StructuredRecord.

    Args:
        line: Raw log line, with or without a trailing newline

    Returns:
        StructuredRecord, or None for blank input. Lines matching no grammar
        still yield a record carrying the raw text.
    """
    if line is None:
        return None
    stripped = line.rstrip("\r\n")
    if not stripped.strip():
        return None

    m = _LOG_LINE_RE.match(stripped)
    if m:
        message = m.group("msg")
        return StructuredRecord(
            timestamp=_parse_timestamp(f"{m.group('date')} {m.group('time')}"),
            severity=m.group("level").upper(),
            module=m.group("module"),
            message=message,
            raw_line=stripped,
            inline_id=_inline_id(stripped, m.group("leading_id")),
            key_values=extract_key_values(message),
        )

    # Unknown layout: scan the whole line for whatever can be recovered
    loose = _LOOSE_TIMESTAMP_RE.search(stripped)
    return StructuredRecord(
        timestamp=_parse_timestamp(loose.group()) if loose else None,
        message=stripped,
        raw_line=stripped,
        inline_id=_inline_id(stripped, None),
        key_values=extract_key_values(stripped),
    )


class LineParser:
    """Parses switch log lines and counts how many fell back to scanning."""

    def __init__(self):
        self.lines_seen = 0
        self.fallback_lines = 0

    def parse(self, line: Optional[str]) -> Optional[StructuredRecord]:
        """Parse one line; see ``parse_line``."""
        record = parse_line(line)
        if record is not None:
            self.lines_seen += 1
            if not record.is_structured:
                self.fallback_lines += 1
        return record
