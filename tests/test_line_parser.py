"""Tests for the line parser."""

from datetime import datetime

import pytest

from fs_callflow.services.line_parser import (
    LineParser,
    extract_key_values,
    find_identifiers,
    parse_line,
)

CHANNEL = "ba75b4f2-1c2d-4e5f-8a9b-0c1d2e3f4a5b"
OTHER = "c0ffee00-1111-4222-8333-944455556666"


# =============================================================================
# Primary grammar
# =============================================================================

class TestPrimaryGrammar:
    """Lines in the usual switch log layout."""

    def test_leading_id_line(self):
        record = parse_line(
            f"{CHANNEL} 2025-10-23 17:27:09.123456 [NOTICE] switch_channel.c:1118 "
            "New Channel sofia/external/15849466429@10.101.1.131:5081"
        )

        assert record.timestamp == datetime(2025, 10, 23, 17, 27, 9, 123456)
        assert record.severity == "NOTICE"
        assert record.module == "switch_channel.c"
        assert record.message.startswith("New Channel sofia/external/")
        assert record.inline_id == CHANNEL
        assert record.is_structured

    def test_cpu_figure_is_skipped(self):
        record = parse_line(
            f"{CHANNEL} 2025-10-23 17:27:09.123456 95.97% [DEBUG] switch_cpp.cpp:1466 hello"
        )
        assert record.severity == "DEBUG"
        assert record.module == "switch_cpp.cpp"
        assert record.message == "hello"

    def test_thread_tag_is_skipped(self):
        record = parse_line("2025-10-23 17:27:09.123 [0x7f3a] [INFO] mod_sofia.c:10 hello")
        assert record.severity == "INFO"
        assert record.timestamp.microsecond == 123000
        assert record.message == "hello"

    def test_without_module(self):
        record = parse_line("2025-10-23 17:27:09 [ERR] something went wrong")
        assert record.module is None
        assert record.severity == "ERR"
        assert record.message == "something went wrong"

    def test_level_is_uppercased(self):
        record = parse_line("2025-10-23 17:27:09 [warning] mod_x.c:1 odd")
        assert record.severity == "WARNING"

    def test_trailing_newline_stripped(self):
        record = parse_line("2025-10-23 17:27:09 [INFO] mod_x.c:1 text\r\n")
        assert record.raw_line == "2025-10-23 17:27:09 [INFO] mod_x.c:1 text"
        assert record.message == "text"


# =============================================================================
# Fallback
# =============================================================================

class TestFallback:
    """Lines the primary grammar does not match."""

    def test_keeps_whole_line_as_message(self):
        line = "continuation of a multi-line dump call-id: abc@host"
        record = parse_line(line)

        assert record is not None
        assert record.message == line
        assert record.raw_line == line
        assert record.severity == ""
        assert not record.is_structured
        assert record.timestamp is None

    def test_recovers_timestamp_anywhere(self):
        record = parse_line("EXTRA 2025-10-23 17:27:09.5 something odd")
        assert record.timestamp == datetime(2025, 10, 23, 17, 27, 9, 500000)

    def test_recovers_identifier(self):
        record = parse_line(f"orphan text mentioning {CHANNEL} in passing")
        assert record.inline_id == CHANNEL

    @pytest.mark.parametrize("line", [None, "", "   ", "\n", "\r\n"])
    def test_blank_input(self, line):
        assert parse_line(line) is None


# =============================================================================
# Identifiers and key=value pairs
# =============================================================================

class TestInlineIdentifier:
    """Priority of the line's own channel identifier."""

    def test_leading_beats_others(self):
        record = parse_line(
            f"{CHANNEL} 2025-10-23 17:27:09 [INFO] mod_x.c:1 bridge to {OTHER} [{OTHER}]"
        )
        assert record.inline_id == CHANNEL

    def test_trailing_bracket_beats_first_anywhere(self):
        record = parse_line(
            f"2025-10-23 17:27:09 [INFO] mod_x.c:1 peer {OTHER} of [{CHANNEL}]"
        )
        assert record.inline_id == CHANNEL

    def test_first_anywhere(self):
        record = parse_line(f"2025-10-23 17:27:09 [INFO] mod_x.c:1 peer {OTHER} then {CHANNEL}")
        assert record.inline_id == OTHER

    def test_no_identifier(self):
        record = parse_line("2025-10-23 17:27:09 [INFO] mod_sofia.c:1 profile reloaded")
        assert record.inline_id is None

    def test_find_identifiers_in_order(self):
        assert find_identifiers(f"a {CHANNEL} b {OTHER}") == [CHANNEL, OTHER]
        assert find_identifiers("no ids here") == []


class TestKeyValues:
    """Tests for extract_key_values."""

    def test_quotes_stripped(self):
        kv = extract_key_values("a=1 b=\"two words\" c='x'")
        assert kv == {"a": "1", "b": "two words", "c": "x"}

    def test_last_value_wins(self):
        assert extract_key_values("a=1 a=3") == {"a": "3"}

    def test_parsed_from_message(self):
        record = parse_line(
            "2025-10-23 17:27:09 [INFO] mod_x.c:1 set callcenter_queue=sales@default"
        )
        assert record.key_values == {"callcenter_queue": "sales@default"}


class TestLineParserCounters:
    """Tests for the LineParser class."""

    def test_counts(self):
        parser = LineParser()
        parser.parse("2025-10-23 17:27:09 [INFO] mod_x.c:1 text")
        parser.parse("garbage")
        parser.parse("")

        assert parser.lines_seen == 2
        assert parser.fallback_lines == 1
