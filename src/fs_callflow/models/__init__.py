"""Data models for the call-flow analyzer.

All entities use Pydantic for validation and serialization, except the
short-lived CallGroup bucket which is a plain dataclass.
Node IDs are fixed: trunk, switch, agent.
"""

from fs_callflow.models.base import CallFlowModel, ensure_utc, to_epoch_ms
from fs_callflow.models.record import StructuredRecord
from fs_callflow.models.event import (
    BUSINESS_ID_KEYS,
    CORE_SIGNAL_TYPES,
    SESSION_ID_KEYS,
    UNKNOWN_ID,
    Event,
    EventCategory,
    EventType,
    first_non_blank,
)
from fs_callflow.models.graph import (
    AnalysisReport,
    AnalysisStats,
    AnalyzeResult,
    CallEdge,
    CallGraph,
    CallGroup,
    CallNode,
    CallSummary,
    Diagnosis,
    DiagnosisSeverity,
    Direction,
    NodeId,
)

__all__ = [
    # Base
    "CallFlowModel",
    "ensure_utc",
    "to_epoch_ms",
    # Record
    "StructuredRecord",
    # Event
    "Event",
    "EventCategory",
    "EventType",
    "BUSINESS_ID_KEYS",
    "CORE_SIGNAL_TYPES",
    "SESSION_ID_KEYS",
    "UNKNOWN_ID",
    "first_non_blank",
    # Graph
    "CallGroup",
    "CallNode",
    "CallEdge",
    "CallSummary",
    "CallGraph",
    "Diagnosis",
    "DiagnosisSeverity",
    "Direction",
    "NodeId",
    # Results
    "AnalyzeResult",
    "AnalysisStats",
    "AnalysisReport",
]
