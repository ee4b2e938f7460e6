"""Call Correlator - groups events from many identifier spaces into calls.

Responsible for:
- Fusing channel ids with session ids seen on the same line (pass 1)
- Fusing channel ids referenced verbatim in another leg's log text (pass 2)
- Optionally fusing calls that share a caller number (pass 3, off by default)
- Bucketing events by forest representative and dropping noise buckets

Each run builds its own DisjointSet; nothing is shared between runs.
"""

import logging
from dataclasses import dataclass
from typing import Iterable, Iterator, Optional, Sequence

from fs_callflow.models import UNKNOWN_ID, CallGroup, Event
from fs_callflow.services.line_parser import find_identifiers

logger = logging.getLogger(__name__)


class DisjointSet:
    """Union-find forest over arbitrary identifier strings.

    Uses path compression and union by size. ``find`` registers an unseen
    identifier as its own singleton set. Representatives are stable for
    the lifetime of one instance only.
    """

    def __init__(self, items: Optional[Iterable[str]] = None):
        self._parent: dict[str, str] = {}
        self._size: dict[str, int] = {}
        for item in items or ():
            self.find(item)

    def __contains__(self, item: str) -> bool:
        return item in self._parent

    def __len__(self) -> int:
        return len(self._parent)

    def __iter__(self) -> Iterator[str]:
        return iter(self._parent)

    def find(self, item: str) -> str:
        """Return the representative of ``item``'s set."""
        if item not in self._parent:
            self._parent[item] = item
            self._size[item] = 1
            return item

        root = item
        while self._parent[root] != root:
            root = self._parent[root]

        # Path compression
        while self._parent[item] != root:
            self._parent[item], item = root, self._parent[item]

        return root

    def union(self, a: Optional[str], b: Optional[str]) -> bool:
        """Merge the sets of ``a`` and ``b``.

        Blank or missing identifiers are ignored.

        Returns:
            True if two distinct sets were merged
        """
        if not a or not b or not a.strip() or not b.strip():
            return False
        root_a = self.find(a)
        root_b = self.find(b)
        if root_a == root_b:
            return False
        if self._size[root_a] > self._size[root_b]:
            root_a, root_b = root_b, root_a
        self._parent[root_a] = root_b
        self._size[root_b] += self._size[root_a]
        return True

    def connected(self, a: str, b: str) -> bool:
        """Whether ``a`` and ``b`` are in the same set."""
        return self.find(a) == self.find(b)

    def groups(self) -> dict[str, list[str]]:
        """All sets, keyed by representative, members in insertion order."""
        result: dict[str, list[str]] = {}
        for item in list(self._parent):
            result.setdefault(self.find(item), []).append(item)
        return result


@dataclass
class CorrelationOptions:
    """Policy switches for correlation."""

    # Merges unrelated sequential calls from the same caller; keep off
    # unless the log lacks stronger identifiers.
    weak_anchor_merge_enabled: bool = False


def sort_events(events: Sequence[Event]) -> list[Event]:
    """Sort by timestamp ascending; untimed events last, stable otherwise."""
    return sorted(
        events,
        key=lambda e: (e.timestamp is None, e.epoch_ms if e.timestamp is not None else 0),
    )


class CallCorrelator:
    """Groups events that belong to the same real-world call."""

    def __init__(self, options: Optional[CorrelationOptions] = None):
        """Initialize the correlator.

        Args:
            options: Correlation policy; weak anchor merging is off by default
        """
        self.options = options or CorrelationOptions()
        self.last_noise_groups = 0
        self.last_noise_events = 0

    def build_forest(self, events: Sequence[Event]) -> DisjointSet:
        """Run all evidence passes and return the resulting forest.

        Args:
            events: Classified events of one log

        Returns:
            A new DisjointSet holding every identifier observed
        """
        forest = DisjointSet()
        self._fuse_technical_ids(events, forest)
        self._fuse_cross_references(events, forest)
        if self.options.weak_anchor_merge_enabled:
            logger.warning(
                "Weak caller-number anchor merging is enabled; "
                "sequential calls from one caller may be merged"
            )
            self._fuse_weak_anchors(events, forest)
        return forest

    def group_calls(
        self,
        events: Sequence[Event],
        forest: Optional[DisjointSet] = None,
    ) -> list[CallGroup]:
        """Bucket events into calls and drop noise buckets.

        Args:
            events: Classified events of one log
            forest: Pre-built forest; built from ``events`` when omitted

        Returns:
            CallGroups in first-seen order, each with time-sorted events
        """
        self.last_noise_groups = 0
        self.last_noise_events = 0
        if not events:
            return []

        if forest is None:
            forest = self.build_forest(events)

        buckets: dict[str, list[Event]] = {}
        for event in events:
            root = forest.find(event.correlation_key)
            buckets.setdefault(root, []).append(event)

        groups: list[CallGroup] = []
        for root, bucket in buckets.items():
            if self._is_noise(root, bucket):
                self.last_noise_groups += 1
                self.last_noise_events += len(bucket)
                continue
            groups.append(CallGroup(representative_id=root, events=sort_events(bucket)))

        if self.last_noise_events:
            logger.info(
                "Discarded %d event(s) in %d group(s) with no call identity",
                self.last_noise_events,
                self.last_noise_groups,
            )
        logger.debug(
            "Correlated %d events into %d call(s) over %d identifiers",
            len(events), len(groups), len(forest),
        )
        return groups

    def correlate(self, events: Sequence[Event]) -> dict[str, list[Event]]:
        """Map of group id to time-sorted events for every surviving call."""
        return {g.representative_id: g.events for g in self.group_calls(events)}

    # ------------------------------------------------------------------
    # Evidence passes
    # ------------------------------------------------------------------

    def _fuse_technical_ids(self, events: Sequence[Event], forest: DisjointSet) -> None:
        """Pass 1: a channel id and a session id on the same line are one dialog."""
        for event in events:
            channel_id = event.channel_id
            session_id = event.session_id
            if channel_id and session_id:
                forest.union(channel_id, session_id)

    def _fuse_cross_references(self, events: Sequence[Event], forest: DisjointSet) -> None:
        """Pass 2: a line naming another leg's id ties the two legs together."""
        for event in events:
            channel_id = event.channel_id
            if not channel_id or not event.raw_line:
                continue
            for other in find_identifiers(event.raw_line):
                if other != channel_id:
                    forest.union(channel_id, other)

    def _fuse_weak_anchors(self, events: Sequence[Event], forest: DisjointSet) -> None:
        """Pass 3: events sharing a caller number join the first key seen for it."""
        anchors: dict[str, str] = {}
        for event in events:
            caller = (event.attributes.get("callerNumber") or "").strip()
            if not caller:
                continue
            key = event.correlation_key
            if key == UNKNOWN_ID:
                continue
            anchor = anchors.setdefault(caller, key)
            if anchor != key:
                forest.union(anchor, key)

    @staticmethod
    def _is_noise(root: str, bucket: Sequence[Event]) -> bool:
        return root == UNKNOWN_ID and not any(e.is_core_signal for e in bucket)


def correlate(
    events: Sequence[Event],
    weak_anchor_merge_enabled: bool = False,
) -> dict[str, list[Event]]:
    """Group events into calls.

    Args:
        events: Classified events of one log
        weak_anchor_merge_enabled: Also merge by caller number

    Returns:
        Mapping of group id to time-sorted events, noise groups removed
    """
    correlator = CallCorrelator(
        CorrelationOptions(weak_anchor_merge_enabled=weak_anchor_merge_enabled)
    )
    return correlator.correlate(events)
