"""Diagram Renderer - renders call graphs as Mermaid sequence diagrams.

Responsible for:
- Mapping the fixed node ids to display participants
- Labelling each edge, with overrides for DTMF and queue edges
- Rendering through a Jinja2 template, with an inline fallback
"""

from dataclasses import dataclass
from pathlib import Path
from typing import Optional

from jinja2 import Environment, FileSystemLoader

from fs_callflow.models import CallEdge, CallGraph, EventType, NodeId

TEMPLATE_NAME = "sequence.mmd.j2"

# node id -> (participant alias, display name)
PARTICIPANTS: dict[str, tuple[str, str]] = {
    NodeId.TRUNK.value: ("T", "Trunk"),
    NodeId.SWITCH.value: ("S", "FreeSWITCH"),
    NodeId.AGENT.value: ("A", "Agent"),
}


@dataclass
class DiagramLine:
    """One arrow of the sequence diagram."""

    source: str
    target: str
    label: str


def _node_key(node) -> str:
    """Node ids are stored as plain values; accept enum members too."""
    return node.value if hasattr(node, "value") else str(node)


def edge_label(edge: CallEdge) -> str:
    """Text shown on an edge's arrow."""
    if edge.type == EventType.DTMF.value and edge.attributes.get("digits"):
        return f"DTMF {edge.attributes['digits']}"
    if edge.type == EventType.CALLCENTER_EVENT.value and edge.attributes.get("queueName"):
        return f"QUEUE {edge.attributes['queueName']}"
    return edge.type


class DiagramRenderer:
    """Renders CallGraphs as Mermaid ``sequenceDiagram`` text."""

    def __init__(self, template_dir: Optional[str] = None):
        """Initialize the renderer.

        Args:
            template_dir: Optional directory containing diagram templates.
                         If None, uses package templates.
        """
        if template_dir:
            self.template_dir = Path(template_dir)
        else:
            self.template_dir = Path(__file__).parent.parent / "templates"

        if self.template_dir.exists():
            self.jinja_env = Environment(
                loader=FileSystemLoader(str(self.template_dir)),
                keep_trailing_newline=True,
                trim_blocks=True,
                lstrip_blocks=True,
            )
        else:
            self.jinja_env = None

    def render(self, graph: CallGraph) -> str:
        """Render a call graph.

        Args:
            graph: The CallGraph to render

        Returns:
            Mermaid sequence diagram text
        """
        participants = [PARTICIPANTS[_node_key(n.id)] for n in graph.nodes]
        lines = self.diagram_lines(graph)

        if self.jinja_env and self._template_exists(TEMPLATE_NAME):
            template = self.jinja_env.get_template(TEMPLATE_NAME)
            return template.render(graph=graph, participants=participants, lines=lines)

        return self._render_inline(graph, participants, lines)

    def diagram_lines(self, graph: CallGraph) -> list[DiagramLine]:
        """Arrows of the diagram, one per edge, in edge order."""
        return [
            DiagramLine(
                source=PARTICIPANTS[_node_key(e.from_id)][0],
                target=PARTICIPANTS[_node_key(e.to_id)][0],
                label=edge_label(e),
            )
            for e in graph.edges
        ]

    def _render_inline(
        self,
        graph: CallGraph,
        participants: list[tuple[str, str]],
        lines: list[DiagramLine],
    ) -> str:
        """Render without template (fallback)."""
        out = "sequenceDiagram\n"
        out += f"    %% call {graph.id}\n"
        for alias, name in participants:
            out += f"    participant {alias} as {name}\n"
        for line in lines:
            out += f"    {line.source}->>{line.target}: {line.label}\n"
        return out

    def _template_exists(self, template_name: str) -> bool:
        """Check if a template file exists."""
        if not self.template_dir or not self.template_dir.exists():
            return False
        return (self.template_dir / template_name).exists()
