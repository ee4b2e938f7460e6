"""Event Classifier - maps StructuredRecords to typed call Events.

Responsible for:
- Priority-ordered keyword classification (first matching rule wins)
- Identifier and number extraction common to every line
- Type-specific attribute extraction (DTMF digits, queue names, agents)
- Category and verb lookup from closed mapping tables
"""

import logging
import re
from dataclasses import dataclass
from typing import Callable, Optional

from fs_callflow.models import Event, EventCategory, EventType, StructuredRecord
from fs_callflow.services.line_parser import UUID_RE

logger = logging.getLogger(__name__)


# ---------------------------------------------------------------------------
# Extraction patterns
# ---------------------------------------------------------------------------

# sofia/external/15849466429@10.101.1.131:5081
_EXTERNAL_NUMBER_RE = re.compile(r"sofia/external/(\d+)@", re.IGNORECASE)
# sofia/internal/1003@10.37.200.4:5060
_INTERNAL_AGENT_RE = re.compile(r"sofia/internal/(\d+)@", re.IGNORECASE)

_SIP_CALL_ID_RE = re.compile(r"call-id\s*[:=]\s*(\S+)", re.IGNORECASE)

# Processing 15849466429 <15849466429>->3000 in context public
_PROCESSING_RE = re.compile(r"Processing\s+(\S+)\s+<(\d*)>")
_DESTINATION_RE = re.compile(r"->(\S+)\s+in\s+context\b")

_PEER_ID_RE = re.compile(r"Peer UUID:\s*([0-9a-fA-F\-]{36})")
_RECORDING_RE = re.compile(r"Stop recording file\s+(\S+\.wav)")
_HANGUP_CAUSE_RE = re.compile(r"cause:\s*([A-Z_]+)")

# DTMF 3:2560 / DTMF A:2560 / DTMF *:2560; the digit must end at ":", space or end
_DTMF_RE = re.compile(r"\bDTMF\s+([0-9A-D#*])(?=[:\s]|$)", re.IGNORECASE)
# digits 3 / digits 33
_DIGITS_RE = re.compile(r"digits\s+([0-9A-D#*]+)", re.IGNORECASE)

# Queue "office79@default"
_QUEUE_RE = re.compile(r"Queue\s+\"?([^\"\s]+)\"?", re.IGNORECASE)
# Member ... joining queue office79@default
_QUEUE_JOIN_RE = re.compile(r"joining\s+queue\s+(\S+)", re.IGNORECASE)
# callcenter_queue=office79@default,...
_QUEUE_VAR_RE = re.compile(r"callcenter_queue=([^,\s]+)", re.IGNORECASE)

# No word boundary: the identifier may be glued to the preceding text
_EMBEDDED_ID_RE = re.compile(UUID_RE)

# Not part of a hyphenated header such as User-Agent
_AGENT_RE = re.compile(r"(?<![\w\-])agent\s+([0-9a-zA-Z_\-]+)", re.IGNORECASE)

# Member "15849466429" 15849466429 is bridged to agent 1003
_CC_BRIDGE_RE = re.compile(
    r"Member\s+\"?(\d+)\"?\s+<?\1>?\s+is\s+bridged\s+to\s+agent\s+([\w\-]+)",
    re.IGNORECASE,
)


def sanitize_queue_name(raw: Optional[str]) -> Optional[str]:
    """Cut a queue name at the first embedded channel identifier.

    Greedy matches sometimes run a trailing identifier into the queue name
    (``office79@defaultba75b4f2-...``); everything from the identifier on is
    dropped.
    """
    if raw is None:
        return None
    m = _EMBEDDED_ID_RE.search(raw)
    if m:
        logger.debug("Queue name %r truncated at embedded identifier", raw)
        raw = raw[: m.start()]
    return raw.strip() or None


# ---------------------------------------------------------------------------
# Classification rules
# ---------------------------------------------------------------------------


@dataclass(frozen=True)
class RuleContext:
    """Lower-cased text a classification rule looks at."""

    message: str
    module: str

    @classmethod
    def from_record(cls, record: StructuredRecord) -> "RuleContext":
        # Pad with spaces so phrases at either end still match " word " forms
        return cls(
            message=f" {record.message.lower()} ",
            module=(record.module or "").lower(),
        )

    def has(self, *phrases: str) -> bool:
        """Whether any of the phrases occurs in the message."""
        return any(p in self.message for p in phrases)


@dataclass(frozen=True)
class ClassificationRule:
    """One (predicate, type) entry of the ordered rule table."""

    name: str
    event_type: EventType
    predicate: Callable[[RuleContext], bool]

    def matches(self, ctx: RuleContext) -> bool:
        return self.predicate(ctx)


def _is_invite(ctx: RuleContext) -> bool:
    return ctx.has(" new channel ", "receive invite", "receiving invite")


def _is_external_trunk(ctx: RuleContext) -> bool:
    return ctx.has("sofia/external", "external/")


def _is_queue(ctx: RuleContext) -> bool:
    return "mod_callcenter" in ctx.module or ctx.has(
        "callcenter::", " joining queue ", " leaving queue ", " callcenter_queue="
    )


CLASSIFICATION_RULES: tuple[ClassificationRule, ...] = (
    ClassificationRule(
        "invite-inbound", EventType.INVITE_INBOUND,
        lambda c: _is_invite(c) and _is_external_trunk(c),
    ),
    ClassificationRule("invite-outbound", EventType.INVITE_OUTBOUND, _is_invite),
    ClassificationRule(
        "answer", EventType.ANSWER,
        lambda c: c.has("answer") and not c.has("hangup"),
    ),
    ClassificationRule(
        "hangup", EventType.HANGUP, lambda c: c.has("hangup", "channel destroy")
    ),
    ClassificationRule(
        "dialplan", EventType.DIALPLAN_ACTION,
        lambda c: c.has("execute extension", "execute app"),
    ),
    ClassificationRule("callcenter", EventType.CALLCENTER_EVENT, _is_queue),
    ClassificationRule(
        "bridge", EventType.BRIDGE, lambda c: c.has("bridge") and c.has("uuid")
    ),
    ClassificationRule("dtmf", EventType.DTMF, lambda c: c.has("dtmf")),
    ClassificationRule(
        "http", EventType.HTTP_REQUEST, lambda c: c.has("http") and c.has("url")
    ),
    ClassificationRule(
        "script", EventType.SCRIPT_EXEC, lambda c: c.has("lua ", "python ", "script")
    ),
    ClassificationRule("rtp", EventType.RTP_EVENT, lambda c: c.has("rtcp", "rtp ")),
)


CATEGORY_BY_TYPE: dict[EventType, EventCategory] = {
    EventType.INVITE_INBOUND: EventCategory.SIGNAL,
    EventType.INVITE_OUTBOUND: EventCategory.SIGNAL,
    EventType.ANSWER: EventCategory.SIGNAL,
    EventType.HANGUP: EventCategory.SIGNAL,
    EventType.BRIDGE: EventCategory.SIGNAL,
    EventType.DIALPLAN_STEP: EventCategory.DIALPLAN,
    EventType.DIALPLAN_ACTION: EventCategory.DIALPLAN,
    EventType.CALLCENTER_EVENT: EventCategory.QUEUE,
    EventType.DTMF: EventCategory.MEDIA,
    EventType.RTP_EVENT: EventCategory.MEDIA,
    EventType.SCRIPT_EXEC: EventCategory.SCRIPT,
    EventType.HTTP_REQUEST: EventCategory.HTTP,
    EventType.OTHER: EventCategory.OTHER,
}

VERB_BY_TYPE: dict[EventType, str] = {
    EventType.INVITE_INBOUND: "INVITE",
    EventType.INVITE_OUTBOUND: "INVITE",
    EventType.ANSWER: "ANSWER",
    EventType.HANGUP: "HANGUP",
    EventType.BRIDGE: "BRIDGE",
    EventType.DIALPLAN_STEP: "DIALPLAN",
    EventType.DIALPLAN_ACTION: "DIALPLAN",
    EventType.CALLCENTER_EVENT: "QUEUE",
    EventType.DTMF: "DTMF",
    EventType.RTP_EVENT: "RTP",
    EventType.SCRIPT_EXEC: "SCRIPT",
    EventType.HTTP_REQUEST: "HTTP",
    EventType.OTHER: "OTHER",
}


def classify_type(ctx: RuleContext) -> EventType:
    """Return the type of the first rule that matches, else OTHER."""
    for rule in CLASSIFICATION_RULES:
        if rule.matches(ctx):
            return rule.event_type
    return EventType.OTHER


# ---------------------------------------------------------------------------
# Attribute extraction
# ---------------------------------------------------------------------------


def _extract_common(message: str, attrs: dict[str, str]) -> None:
    """Identifiers and numbers any line may carry. Never overrides key=values."""
    cid = _SIP_CALL_ID_RE.search(message)
    if cid:
        attrs.setdefault("sipCallId", cid.group(1))
    elif attrs.get("sip_call_id"):
        attrs.setdefault("sipCallId", attrs["sip_call_id"])

    external = _EXTERNAL_NUMBER_RE.search(message)
    if external:
        attrs.setdefault("callerNumber", external.group(1))

    processing = _PROCESSING_RE.search(message)
    if processing:
        attrs.setdefault("callerNumber", processing.group(2) or processing.group(1))
        destination = _DESTINATION_RE.search(message)
        if destination:
            attrs.setdefault("calleeNumber", destination.group(1))

    internal = _INTERNAL_AGENT_RE.search(message)
    if internal:
        attrs.setdefault("agentId", internal.group(1))

    peer = _PEER_ID_RE.search(message)
    if peer:
        attrs.setdefault("peerChannelId", peer.group(1))

    recording = _RECORDING_RE.search(message)
    if recording:
        attrs.setdefault("recordingPath", recording.group(1))

    cause = _HANGUP_CAUSE_RE.search(message)
    if cause:
        attrs.setdefault("hangupCause", cause.group(1))


def _extract_dtmf(message: str, attrs: dict[str, str]) -> None:
    m = _DTMF_RE.search(message) or _DIGITS_RE.search(message)
    if m:
        attrs["digit"] = m.group(1).upper()


def _extract_queue(message: str, attrs: dict[str, str]) -> None:
    raw_queue = None

    m = _QUEUE_RE.search(message)
    if m:
        raw_queue = m.group(1)

    if raw_queue is None:
        m = _QUEUE_JOIN_RE.search(message)
        if m:
            raw_queue = m.group(1)

    m = _QUEUE_VAR_RE.search(message)
    if m:
        # Raw variable value, before sanitizing
        attrs["callcenter_queue"] = m.group(1)
        if raw_queue is None:
            raw_queue = m.group(1)

    queue_name = sanitize_queue_name(raw_queue)
    if queue_name:
        attrs["queueName"] = queue_name

    agent = _AGENT_RE.search(message)
    if agent:
        attrs["agentId"] = agent.group(1)

    bridge = _CC_BRIDGE_RE.search(message)
    if bridge:
        attrs.setdefault("callerNumber", bridge.group(1))
        attrs["agentId"] = bridge.group(2)
        attrs["callcenterBridge"] = "true"


def classify_event(record: StructuredRecord) -> Event:
    """Turn a structured record into a typed Event.

    The display identifier is left at "unknown"; the call id resolver
    fills it in.

    Args:
        record: Parsed log line

    Returns:
        Event with type, category, verb and extracted attributes
    """
    message = record.message or ""
    attrs: dict[str, str] = dict(record.key_values)

    _extract_common(message, attrs)

    ctx = RuleContext.from_record(record)
    event_type = classify_type(ctx)

    if event_type == EventType.INVITE_INBOUND:
        attrs["direction"] = "inbound"
    elif event_type == EventType.INVITE_OUTBOUND:
        attrs["direction"] = "outbound"
    elif event_type == EventType.DTMF:
        _extract_dtmf(message, attrs)
    elif event_type == EventType.CALLCENTER_EVENT:
        _extract_queue(message, attrs)

    return Event(
        timestamp=record.timestamp,
        source_channel_id=record.inline_id,
        category=CATEGORY_BY_TYPE[event_type],
        type=event_type,
        verb=VERB_BY_TYPE[event_type],
        attributes=attrs,
        raw_line=record.raw_line,
    )


class EventClassifier:
    """Classifies records and keeps a per-type tally for the run."""

    def __init__(self):
        self.type_counts: dict[str, int] = {}

    def classify(self, record: StructuredRecord) -> Event:
        """Classify one record; see ``classify_event``."""
        event = classify_event(record)
        key = EventType(event.type).value
        self.type_counts[key] = self.type_counts.get(key, 0) + 1
        return event
