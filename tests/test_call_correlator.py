"""Tests for the union-find forest and call correlation."""

from datetime import datetime, timedelta

import pytest

from fs_callflow.models import Event, EventType
from fs_callflow.services.call_correlator import (
    CallCorrelator,
    CorrelationOptions,
    DisjointSet,
    correlate,
    sort_events,
)

LEG_A = "ba75b4f2-1c2d-4e5f-8a9b-0c1d2e3f4a5b"
LEG_B = "c0ffee00-1111-4222-8333-944455556666"
LEG_C = "0a1b2c3d-4e5f-4a6b-8c7d-9e0f1a2b3c4d"

BASE = datetime(2025, 10, 23, 17, 27, 0)


def make_event(etype, seconds=None, channel=None, raw="", **attrs):
    """Build an event with an optional offset from BASE."""
    return Event(
        timestamp=BASE + timedelta(seconds=seconds) if seconds is not None else None,
        source_channel_id=channel,
        type=etype,
        attributes=attrs,
        raw_line=raw,
    )


# =============================================================================
# DisjointSet
# =============================================================================

class TestDisjointSet:
    """Tests for the union-find forest."""

    def test_find_registers_singleton(self):
        forest = DisjointSet()
        assert forest.find("a") == "a"
        assert "a" in forest
        assert len(forest) == 1

    def test_union_and_connected(self):
        forest = DisjointSet()
        assert forest.union("a", "b")
        assert forest.union("c", "d")
        assert forest.connected("a", "b")
        assert not forest.connected("a", "c")

        assert forest.union("b", "d")
        assert forest.connected("a", "c")
        assert forest.find("a") == forest.find("d")

    def test_union_already_joined(self):
        forest = DisjointSet()
        forest.union("a", "b")
        assert not forest.union("b", "a")

    @pytest.mark.parametrize("a,b", [("a", None), (None, "b"), ("", "b"), ("a", "  ")])
    def test_blank_ignored(self, a, b):
        forest = DisjointSet()
        assert not forest.union(a, b)
        assert len(forest) == 0

    def test_union_by_size(self):
        """The smaller set is attached under the larger set's root."""
        forest = DisjointSet()
        forest.union("a", "b")
        forest.union("a", "c")
        big_root = forest.find("a")

        forest.union("z", "a")
        assert forest.find("z") == big_root

    def test_long_chain(self):
        forest = DisjointSet()
        for i in range(500):
            forest.union(f"n{i}", f"n{i + 1}")
        root = forest.find("n0")
        assert all(forest.find(f"n{i}") == root for i in range(501))

    def test_groups(self):
        forest = DisjointSet(["x"])
        forest.union("a", "b")
        groups = forest.groups()

        assert sorted(sorted(members) for members in groups.values()) == [["a", "b"], ["x"]]
        assert sorted(forest) == ["a", "b", "x"]


# =============================================================================
# Evidence passes
# =============================================================================

class TestCorrelation:
    """Tests for CallCorrelator and the module-level correlate."""

    def test_empty(self):
        assert correlate([]) == {}

    def test_separate_channels_stay_separate(self):
        events = [
            make_event(EventType.INVITE_INBOUND, 0, LEG_A),
            make_event(EventType.INVITE_INBOUND, 1, LEG_B),
        ]
        assert len(correlate(events)) == 2

    def test_shared_session_id_joins_legs(self):
        events = [
            make_event(EventType.INVITE_INBOUND, 0, LEG_A, sipCallId="8f2a@host"),
            make_event(EventType.INVITE_OUTBOUND, 1, LEG_B, sipCallId="8f2a@host"),
        ]
        groups = correlate(events)
        assert len(groups) == 1
        assert len(next(iter(groups.values()))) == 2

    def test_session_only_event_joins_its_channel(self):
        events = [
            make_event(EventType.INVITE_INBOUND, 0, LEG_A, callId="c-1"),
            make_event(EventType.HANGUP, 5, None, callId="c-1"),
        ]
        assert len(correlate(events)) == 1

    def test_cross_reference_joins_legs(self):
        events = [
            make_event(EventType.INVITE_INBOUND, 0, LEG_A),
            make_event(EventType.BRIDGE, 1, LEG_A, raw=f"{LEG_A} Bridge to uuid {LEG_B}"),
            make_event(EventType.HANGUP, 2, LEG_B),
        ]
        groups = correlate(events)
        assert len(groups) == 1
        assert next(iter(groups)) in (LEG_A, LEG_B)

    def test_business_ids_never_join_calls(self):
        events = [
            make_event(EventType.INVITE_INBOUND, 0, LEG_A, globalCallId="G-1"),
            make_event(EventType.INVITE_INBOUND, 1, LEG_B, globalCallId="G-1"),
        ]
        assert len(correlate(events)) == 2

    def test_events_sorted_within_group(self):
        events = [
            make_event(EventType.HANGUP, 9, LEG_A),
            make_event(EventType.OTHER, None, LEG_A),
            make_event(EventType.INVITE_INBOUND, 0, LEG_A),
        ]
        group = next(iter(correlate(events).values()))
        assert [e.type for e in group] == ["INVITE_INBOUND", "HANGUP", "OTHER"]

    def test_order_independent(self):
        events = [
            make_event(EventType.INVITE_INBOUND, 0, LEG_A),
            make_event(EventType.BRIDGE, 1, LEG_A, raw=f"uuid {LEG_B}"),
            make_event(EventType.HANGUP, 2, LEG_B),
            make_event(EventType.INVITE_INBOUND, 3, LEG_C),
        ]
        forward = correlate(events)
        backward = correlate(list(reversed(events)))

        def partition(groups):
            return sorted(sorted(e.raw_line + e.type for e in g) for g in groups.values())

        assert partition(forward) == partition(backward)


class TestWeakAnchorMerge:
    """Caller-number merging is off unless enabled."""

    @pytest.fixture
    def repeat_caller_events(self):
        return [
            make_event(EventType.INVITE_INBOUND, 0, LEG_A, callerNumber="15849466429"),
            make_event(EventType.HANGUP, 30, LEG_A),
            make_event(EventType.INVITE_INBOUND, 60, LEG_C, callerNumber="15849466429"),
            make_event(EventType.HANGUP, 90, LEG_C),
        ]

    def test_disabled_by_default(self, repeat_caller_events):
        assert CorrelationOptions().weak_anchor_merge_enabled is False
        assert len(correlate(repeat_caller_events)) == 2

    def test_enabled_merges(self, repeat_caller_events, caplog):
        with caplog.at_level("WARNING"):
            groups = correlate(repeat_caller_events, weak_anchor_merge_enabled=True)

        assert len(groups) == 1
        assert "Weak caller-number anchor" in caplog.text


class TestNoiseFiltering:
    """Groups without any identity or core signal are discarded."""

    def test_unidentified_non_signal_dropped(self):
        correlator = CallCorrelator()
        events = [
            make_event(EventType.INVITE_INBOUND, 0, LEG_A),
            make_event(EventType.OTHER, 1, None),
            make_event(EventType.RTP_EVENT, 2, None),
        ]
        groups = correlator.group_calls(events)

        assert [g.representative_id for g in groups] == [LEG_A]
        assert correlator.last_noise_groups == 1
        assert correlator.last_noise_events == 2

    def test_unidentified_core_signal_kept(self):
        events = [
            make_event(EventType.OTHER, 0, None),
            make_event(EventType.HANGUP, 1, None),
        ]
        groups = correlate(events)
        assert list(groups) == ["unknown"]
        assert len(groups["unknown"]) == 2

    def test_identified_non_signal_kept(self):
        events = [make_event(EventType.DTMF, 0, LEG_A, digit="5")]
        assert list(correlate(events)) == [LEG_A]


class TestSortEvents:
    """Tests for sort_events."""

    def test_untimed_last_and_stable(self):
        first = make_event(EventType.OTHER, None, LEG_A, raw="first")
        second = make_event(EventType.OTHER, None, LEG_A, raw="second")
        timed = make_event(EventType.OTHER, 1, LEG_A, raw="timed")

        assert [e.raw_line for e in sort_events([first, timed, second])] == [
            "timed", "first", "second",
        ]
