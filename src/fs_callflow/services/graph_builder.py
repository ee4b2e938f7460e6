"""Graph Builder - turns one correlated call into a CallGraph.

Responsible for:
- Emitting deduplicated edges between the fixed trunk/switch/agent nodes
- Aggregating DTMF digits and the final hangup into single edges
- Deriving the call summary (parties, direction, queue, timing)
- Evaluating the fixed diagnosis rules
"""

import logging
from dataclasses import dataclass, field
from typing import Optional, Sequence

from fs_callflow.models import (
    CallEdge,
    CallGraph,
    CallNode,
    CallSummary,
    Diagnosis,
    DiagnosisSeverity,
    Direction,
    Event,
    EventType,
    NodeId,
    ensure_utc,
)

logger = logging.getLogger(__name__)


FIXED_NODES: tuple[tuple[NodeId, str, str], ...] = (
    (NodeId.TRUNK, "PSTN", "Trunk"),
    (NodeId.SWITCH, "FS", "FreeSWITCH"),
    (NodeId.AGENT, "Agent", "Agent"),
)

# Event types that emit one edge on first occurrence: type -> (from, to)
FIRST_OCCURRENCE_EDGES: dict[EventType, tuple[NodeId, NodeId]] = {
    EventType.INVITE_INBOUND: (NodeId.TRUNK, NodeId.SWITCH),
    EventType.INVITE_OUTBOUND: (NodeId.SWITCH, NodeId.TRUNK),
    EventType.ANSWER: (NodeId.SWITCH, NodeId.AGENT),
    EventType.BRIDGE: (NodeId.SWITCH, NodeId.AGENT),
    EventType.CALLCENTER_EVENT: (NodeId.SWITCH, NodeId.AGENT),
}

# Attribute copied onto the edge of each type, when present
EDGE_ATTRIBUTE_KEYS: dict[EventType, tuple[str, ...]] = {
    EventType.INVITE_INBOUND: ("callerNumber",),
    EventType.INVITE_OUTBOUND: ("callerNumber", "calleeNumber"),
    EventType.ANSWER: ("agentId",),
    EventType.BRIDGE: ("agentId",),
    EventType.CALLCENTER_EVENT: ("queueName", "agentId"),
}

# Summary field -> attribute keys, in fallback priority order
CALLER_KEYS = ("callerNumber", "caller_id_number", "Caller-Caller-ID-Number", "ani")
CALLEE_KEYS = ("calleeNumber", "destination_number", "Caller-Destination-Number", "dnis")
AGENT_KEYS = ("agentId", "cc_agent", "agent")
HANGUP_CAUSE_KEYS = ("hangupCause", "hangup_cause", "Hangup-Cause")

QUEUE_BRIDGE_FLAG = "callcenterBridge"


@dataclass
class _ScanState:
    """Flags and accumulators gathered in one pass over a call's events."""

    edges: list[CallEdge] = field(default_factory=list)
    seen_types: set[EventType] = field(default_factory=set)
    answered: bool = False
    bridge_observed: bool = False
    queue_observed: bool = False
    queue_bridge_flag: bool = False
    queue_name_seen: bool = False
    has_inbound_invite: bool = False
    dtmf_digits: list[str] = field(default_factory=list)
    first_ms: Optional[int] = None
    last_ms: Optional[int] = None
    last_hangup_ms: Optional[int] = None
    last_hangup_event: Optional[Event] = None


def _first_attribute(events: Sequence[Event], keys: tuple[str, ...]) -> Optional[str]:
    """Value of the first event (in order) exposing any of ``keys``."""
    for event in events:
        for key in keys:
            value = event.attributes.get(key)
            if value is not None and value.strip():
                return value
    return None


def _iso_bounds(events: Sequence[Event]) -> tuple[Optional[str], Optional[str]]:
    """Earliest and latest timestamps as ISO-8601 UTC text."""
    timed = [ensure_utc(e.timestamp) for e in events if e.timestamp is not None]
    if not timed:
        return None, None
    return (
        min(timed).isoformat(timespec="microseconds"),
        max(timed).isoformat(timespec="microseconds"),
    )


class GraphBuilder:
    """Builds the flow graph, summary and diagnoses for one call."""

    def build(self, group_id: str, events: Sequence[Event]) -> CallGraph:
        """Build a CallGraph from a time-sorted group of events.

        Args:
            group_id: Representative identifier of the call group
            events: Events of the call, time-ascending (untimed last)

        Returns:
            CallGraph with exactly three nodes
        """
        if not group_id:
            raise ValueError("group_id must not be empty")

        state = self._scan(events)
        self._append_aggregate_edges(state)

        summary = self._build_summary(events, state)
        diagnoses = self._diagnose(summary, state)

        logger.debug(
            "Built graph %s: %d events, %d edges, %d diagnoses",
            group_id, len(events), len(state.edges), len(diagnoses),
        )

        return CallGraph(
            id=group_id,
            nodes=[CallNode(id=n, type=t, label=label) for n, t, label in FIXED_NODES],
            edges=state.edges,
            summary=summary,
            diagnoses=diagnoses,
            event_count=len(events),
            log_truncated_head=not (
                {EventType.INVITE_INBOUND, EventType.INVITE_OUTBOUND} & state.seen_types
            ),
            log_truncated_tail=EventType.HANGUP not in state.seen_types,
        )

    # ------------------------------------------------------------------
    # Scan
    # ------------------------------------------------------------------

    def _scan(self, events: Sequence[Event]) -> _ScanState:
        state = _ScanState()

        for event in events:
            etype = EventType(event.type)
            ms = event.epoch_ms

            if ms is not None:
                state.first_ms = ms if state.first_ms is None else min(state.first_ms, ms)
                state.last_ms = ms if state.last_ms is None else max(state.last_ms, ms)

            if event.attributes.get("queueName"):
                state.queue_name_seen = True
            if event.attributes.get(QUEUE_BRIDGE_FLAG) == "true":
                state.queue_bridge_flag = True

            if etype in FIRST_OCCURRENCE_EDGES and etype not in state.seen_types:
                from_id, to_id = FIRST_OCCURRENCE_EDGES[etype]
                state.edges.append(CallEdge(
                    from_id=from_id,
                    to_id=to_id,
                    type=etype.value,
                    start_time_ms=ms or 0,
                    attributes=self._edge_attributes(event, etype),
                ))

            if etype == EventType.INVITE_INBOUND:
                state.has_inbound_invite = True
            elif etype == EventType.ANSWER:
                state.answered = True
            elif etype == EventType.BRIDGE:
                state.bridge_observed = True
            elif etype == EventType.CALLCENTER_EVENT:
                state.queue_observed = True
            elif etype == EventType.DTMF:
                digit = event.attributes.get("digit")
                if digit:
                    state.dtmf_digits.append(digit.upper())
            elif etype == EventType.HANGUP:
                if state.last_hangup_event is None or (
                    ms is not None
                    and (state.last_hangup_ms is None or ms >= state.last_hangup_ms)
                ):
                    state.last_hangup_ms = ms
                    state.last_hangup_event = event

            state.seen_types.add(etype)

        return state

    @staticmethod
    def _edge_attributes(event: Event, etype: EventType) -> dict[str, str]:
        attrs = {}
        for key in EDGE_ATTRIBUTE_KEYS.get(etype, ()):
            value = event.attributes.get(key)
            if value:
                attrs[key] = value
        return attrs

    def _append_aggregate_edges(self, state: _ScanState) -> None:
        """DTMF and hangup each produce at most one edge, after the scan."""
        if state.dtmf_digits:
            state.edges.append(CallEdge(
                from_id=NodeId.AGENT,
                to_id=NodeId.SWITCH,
                type=EventType.DTMF.value,
                start_time_ms=state.first_ms or 0,
                attributes={"digits": "".join(state.dtmf_digits)},
            ))

        if state.last_hangup_event is not None:
            attrs = {}
            cause = _first_attribute([state.last_hangup_event], HANGUP_CAUSE_KEYS)
            if cause:
                attrs["hangupCause"] = cause
            state.edges.append(CallEdge(
                from_id=NodeId.SWITCH,
                to_id=NodeId.TRUNK,
                type=EventType.HANGUP.value,
                start_time_ms=state.last_hangup_ms or 0,
                attributes=attrs,
            ))

    # ------------------------------------------------------------------
    # Summary and diagnoses
    # ------------------------------------------------------------------

    def _build_summary(self, events: Sequence[Event], state: _ScanState) -> CallSummary:
        duration = None
        if state.first_ms is not None and state.last_ms is not None:
            duration = state.last_ms - state.first_ms

        start_time, end_time = _iso_bounds(events)

        hangup_cause = None
        if state.last_hangup_event is not None:
            hangup_cause = _first_attribute([state.last_hangup_event], HANGUP_CAUSE_KEYS)
        if hangup_cause is None:
            hangup_cause = _first_attribute(events, HANGUP_CAUSE_KEYS)

        return CallSummary(
            caller=_first_attribute(events, CALLER_KEYS),
            callee=_first_attribute(events, CALLEE_KEYS),
            agent_id=_first_attribute(events, AGENT_KEYS),
            direction=Direction.INBOUND if state.has_inbound_invite else Direction.OUTBOUND,
            answered=state.answered,
            queued=state.queue_observed or state.queue_name_seen or state.queue_bridge_flag,
            queue_name=_first_attribute(events, ("queueName",)),
            dtmf_sequence="".join(state.dtmf_digits) or None,
            hangup_cause=hangup_cause,
            start_time=start_time,
            end_time=end_time,
            start_time_ms=state.first_ms,
            end_time_ms=state.last_ms,
            duration_ms=duration,
        )

    def _diagnose(self, summary: CallSummary, state: _ScanState) -> list[Diagnosis]:
        """Evaluate every rule independently; several may fire at once."""
        diagnoses: list[Diagnosis] = []

        if not summary.queued:
            diagnoses.append(Diagnosis(
                type="QUEUE",
                severity=DiagnosisSeverity.WARNING,
                title="Call never entered queue",
                detail="No call-center queue activity was found for this call.",
                hints=[
                    "Check that the dialplan routes this number to the callcenter application",
                    "Verify the queue name exists in the callcenter configuration",
                ],
            ))

        if not (state.bridge_observed or state.queue_bridge_flag):
            diagnoses.append(Diagnosis(
                type="BRIDGE",
                severity=DiagnosisSeverity.WARNING,
                title="Call never bridged to an agent",
                detail="No bridge to an agent leg was found for this call.",
                hints=[
                    "Check agent status and availability in the queue",
                    "Look for caller abandonment before an agent was offered",
                ],
            ))

        if summary.dtmf_sequence:
            diagnoses.append(Diagnosis(
                type="DTMF",
                severity=DiagnosisSeverity.INFO,
                title="Caller pressed keys",
                detail=f"DTMF sequence: {summary.dtmf_sequence}",
            ))

        return diagnoses


def build_graph(group_id: str, events: Sequence[Event]) -> CallGraph:
    """Build a CallGraph for one call group; see ``GraphBuilder.build``."""
    return GraphBuilder().build(group_id, events)
