"""Call graph entities - per-call flow graph, summary and diagnoses."""

from dataclasses import dataclass, field
from enum import Enum
from typing import Optional

from pydantic import Field

from fs_callflow.models.base import CallFlowModel
from fs_callflow.models.event import Event


class NodeId(str, Enum):
    """The three fixed logical participants of every call graph."""
    TRUNK = "trunk"
    SWITCH = "switch"
    AGENT = "agent"


class Direction(str, Enum):
    """Call direction as seen from the switch."""
    INBOUND = "inbound"
    OUTBOUND = "outbound"


class DiagnosisSeverity(str, Enum):
    """Severity level for diagnoses."""
    INFO = "INFO"
    WARNING = "WARNING"
    ERROR = "ERROR"


@dataclass
class CallGroup:
    """Events the correlator decided belong to one real call.

    Created while bucketing and consumed right away by the graph builder.
    """

    representative_id: str
    events: list[Event] = field(default_factory=list)


class CallNode(CallFlowModel):
    """A logical participant in the call."""

    id: NodeId
    type: str
    label: str


class CallEdge(CallFlowModel):
    """A directed interaction between two nodes."""

    from_id: NodeId
    to_id: NodeId
    type: str
    start_time_ms: int = Field(0, description="0 when the event had no timestamp")
    attributes: dict[str, str] = Field(default_factory=dict)


class CallSummary(CallFlowModel):
    """Headline facts about one call."""

    caller: Optional[str] = None
    callee: Optional[str] = None
    agent_id: Optional[str] = None
    direction: Direction = Direction.OUTBOUND
    answered: bool = False
    queued: bool = False
    queue_name: Optional[str] = None
    dtmf_sequence: Optional[str] = None
    hangup_cause: Optional[str] = None
    start_time: Optional[str] = Field(None, description="ISO-8601 start time")
    end_time: Optional[str] = Field(None, description="ISO-8601 end time")
    start_time_ms: Optional[int] = None
    end_time_ms: Optional[int] = None
    duration_ms: Optional[int] = Field(None, ge=0)


class Diagnosis(CallFlowModel):
    """A rule-based finding about a call."""

    type: str
    severity: DiagnosisSeverity
    title: str
    detail: str = ""
    hints: list[str] = Field(default_factory=list)


class CallGraph(CallFlowModel):
    """Flow graph of a single call between trunk, switch and agent."""

    id: str
    nodes: list[CallNode] = Field(default_factory=list)
    edges: list[CallEdge] = Field(default_factory=list)
    summary: CallSummary = Field(default_factory=CallSummary)
    diagnoses: list[Diagnosis] = Field(default_factory=list)
    event_count: int = Field(0, ge=0)
    log_truncated_head: bool = Field(
        False, description="No invite seen; the log likely starts mid-call"
    )
    log_truncated_tail: bool = Field(
        False, description="No hangup seen; the log likely ends mid-call"
    )

    def edges_of_type(self, edge_type: str) -> list[CallEdge]:
        """Edges with the given type, in emission order."""
        return [e for e in self.edges if e.type == edge_type]

    def diagnoses_of_type(self, diagnosis_type: str) -> list[Diagnosis]:
        """Diagnoses with the given type."""
        return [d for d in self.diagnoses if d.type == diagnosis_type]


class AnalyzeResult(CallFlowModel):
    """A call graph paired with its rendered sequence diagram."""

    graph: CallGraph
    diagram: Optional[str] = None


class AnalysisStats(CallFlowModel):
    """Counters collected over one analysis run."""

    lines_read: int = 0
    records_parsed: int = 0
    events: int = 0
    groups: int = 0
    noise_groups: int = 0
    noise_events: int = 0


class AnalysisReport(CallFlowModel):
    """Everything one analysis run produced."""

    results: list[AnalyzeResult] = Field(default_factory=list)
    stats: AnalysisStats = Field(default_factory=AnalysisStats)

    @property
    def graphs(self) -> list[CallGraph]:
        """The call graphs, in result order."""
        return [r.graph for r in self.results]
