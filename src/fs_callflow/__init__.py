"""FreeSWITCH Call Flow Analyzer.

Reconstructs per-call timelines from unstructured switch logs with:
- Tolerant line parsing and keyword-based event classification
- Call correlation across channel, session and cross-referenced identifiers
- Trunk/switch/agent flow graphs with summaries and diagnoses
- Mermaid sequence diagrams for each call
"""

__version__ = "0.1.0"
