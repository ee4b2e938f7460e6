"""Services for the call-flow analyzer.

Components:
- LineParser: Split raw log lines into structured records
- EventClassifier: Type records as call events and extract attributes
- resolve_display_id: Pick a display identifier per event
- CallCorrelator: Group events from many identifier spaces into calls
- GraphBuilder: Build the flow graph, summary and diagnoses of a call
- DiagramRenderer: Render call graphs as sequence diagrams
- CallFlowAnalyzer: Coordinate the full pipeline
"""

from fs_callflow.services.line_parser import LineParser, parse_line
from fs_callflow.services.event_classifier import EventClassifier, classify_event
from fs_callflow.services.call_id_resolver import resolve_display_id
from fs_callflow.services.call_correlator import (
    CallCorrelator,
    CorrelationOptions,
    DisjointSet,
    correlate,
)
from fs_callflow.services.graph_builder import GraphBuilder, build_graph
from fs_callflow.services.diagram_renderer import DiagramRenderer
from fs_callflow.services.pipeline import AnalysisOptions, CallFlowAnalyzer, analyze

__all__ = [
    "LineParser",
    "parse_line",
    "EventClassifier",
    "classify_event",
    "resolve_display_id",
    "CallCorrelator",
    "CorrelationOptions",
    "DisjointSet",
    "correlate",
    "GraphBuilder",
    "build_graph",
    "DiagramRenderer",
    "AnalysisOptions",
    "CallFlowAnalyzer",
    "analyze",
]
