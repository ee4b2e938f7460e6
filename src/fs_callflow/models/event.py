"""Call event entity - a classified log record belonging to some call leg."""

from datetime import datetime
from enum import Enum
from typing import Optional

from pydantic import Field

from fs_callflow.models.base import CallFlowModel, to_epoch_ms


class EventType(str, Enum):
    """Closed set of event types recognized in switch logs.

    DIALPLAN_STEP is reserved: the classification rules never produce it,
    dialplan lines classify as DIALPLAN_ACTION. It keeps its category and
    verb mappings so stored events carrying it still validate.
    """
    INVITE_INBOUND = "INVITE_INBOUND"
    INVITE_OUTBOUND = "INVITE_OUTBOUND"
    ANSWER = "ANSWER"
    HANGUP = "HANGUP"
    DIALPLAN_STEP = "DIALPLAN_STEP"
    DIALPLAN_ACTION = "DIALPLAN_ACTION"
    DTMF = "DTMF"
    CALLCENTER_EVENT = "CALLCENTER_EVENT"
    BRIDGE = "BRIDGE"
    SCRIPT_EXEC = "SCRIPT_EXEC"
    HTTP_REQUEST = "HTTP_REQUEST"
    RTP_EVENT = "RTP_EVENT"
    OTHER = "OTHER"


class EventCategory(str, Enum):
    """Coarse grouping of event types."""
    SIGNAL = "SIGNAL"
    DIALPLAN = "DIALPLAN"
    QUEUE = "QUEUE"
    MEDIA = "MEDIA"
    SCRIPT = "SCRIPT"
    HTTP = "HTTP"
    OTHER = "OTHER"


# Types whose presence marks a group as a real call even without identifiers
CORE_SIGNAL_TYPES = frozenset(
    t.value
    for t in (
        EventType.INVITE_INBOUND,
        EventType.INVITE_OUTBOUND,
        EventType.ANSWER,
        EventType.HANGUP,
        EventType.BRIDGE,
    )
)

# Attribute keys, in priority order
BUSINESS_ID_KEYS = ("globalCallId", "bizId", "traceId")
SESSION_ID_KEYS = ("callId", "sipCallId")

UNKNOWN_ID = "unknown"


def first_non_blank(*values: Optional[str]) -> Optional[str]:
    """Return the first value that is not None and not whitespace."""
    for value in values:
        if value is not None and value.strip():
            return value
    return None


class Event(CallFlowModel):
    """A typed event extracted from one log line.

    ``attributes`` holds whatever identifiers and details were recoverable.
    A missing key means "not observed", never an error.
    """

    timestamp: Optional[datetime] = None
    source_channel_id: Optional[str] = Field(
        None, description="Channel (leg) identifier of the line"
    )
    category: EventCategory = EventCategory.OTHER
    type: EventType = EventType.OTHER
    verb: str = "OTHER"
    attributes: dict[str, str] = Field(default_factory=dict)
    raw_line: str = ""
    business_call_id: str = Field(
        UNKNOWN_ID, description="Display identifier; never used for grouping"
    )

    @property
    def session_id(self) -> Optional[str]:
        """Session-protocol identifier shared by all legs of one dialog."""
        return first_non_blank(*(self.attributes.get(k) for k in SESSION_ID_KEYS))

    @property
    def channel_id(self) -> Optional[str]:
        """Channel identifier, or None when blank."""
        return first_non_blank(self.source_channel_id)

    @property
    def correlation_key(self) -> str:
        """Key used to look the event up in the identity forest."""
        return first_non_blank(self.channel_id, self.session_id) or UNKNOWN_ID

    @property
    def is_core_signal(self) -> bool:
        """Whether this event is one of the core signaling types."""
        return EventType(self.type).value in CORE_SIGNAL_TYPES

    @property
    def epoch_ms(self) -> Optional[int]:
        """Timestamp in epoch milliseconds (UTC), if known."""
        return to_epoch_ms(self.timestamp)
