"""Call ID Resolver - picks a human-readable display identifier per event.

The identifier is cosmetic: it labels events for display and tracing and is
never used to decide which events form one call (see call_correlator).
"""

from fs_callflow.models import (
    BUSINESS_ID_KEYS,
    SESSION_ID_KEYS,
    UNKNOWN_ID,
    Event,
    first_non_blank,
)

# Attribute written on every resolved event, naming the tier that won
SOURCE_ATTRIBUTE = "callIdSource"

# (tier name, attribute keys) in priority order; the channel tier comes after
RESOLUTION_TIERS: tuple[tuple[str, tuple[str, ...]], ...] = (
    ("global", BUSINESS_ID_KEYS),
    ("sip", SESSION_ID_KEYS),
)


def resolve_display_id(event: Event) -> str:
    """Resolve the display identifier of an event.

    Priority: business/trace id, then session id, then channel id, then
    the literal "unknown". Records the winning tier in
    ``event.attributes["callIdSource"]``.

    Args:
        event: Event to resolve; its attributes are annotated in place

    Returns:
        Non-empty identifier string
    """
    attrs = event.attributes
    for tier, keys in RESOLUTION_TIERS:
        value = first_non_blank(*(attrs.get(k) for k in keys))
        if value is not None:
            attrs[SOURCE_ATTRIBUTE] = tier
            return value

    if event.channel_id is not None:
        attrs[SOURCE_ATTRIBUTE] = "leg"
        return event.channel_id

    attrs[SOURCE_ATTRIBUTE] = UNKNOWN_ID
    return UNKNOWN_ID


def apply_display_id(event: Event) -> Event:
    """Resolve and store the display identifier on the event."""
    event.business_call_id = resolve_display_id(event)
    return event
