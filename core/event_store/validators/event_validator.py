"""
Brickflow Event Store — Event Validator
========================================
Envelope checks run by the appender before a row is written.

This validator:
- Enforces the event type registry
- Enforces payload record type per event type
- Enforces the aggregate type registered for the event type

This validator does NOT:
- Check attribution (the appender downgrades that to a warning)
- Interpret payload content
- Write to the store

Any failure here is a programming error and raises EventSchemaError.
"""

from __future__ import annotations

from core.event_store.validators.registry import EventTypeRegistry
from core.events.errors import PayloadMismatch
from core.events.payload import EventPayload


def validate_event(
    *,
    event_type: str,
    aggregate_type: str,
    payload: EventPayload,
    registry: EventTypeRegistry,
) -> dict:
    """Validate the envelope and return the encoded wire payload."""
    spec = registry.spec_for(event_type)

    if spec.aggregate_type != aggregate_type:
        raise PayloadMismatch(
            f"{event_type} belongs to aggregate '{spec.aggregate_type}', "
            f"not '{aggregate_type}'."
        )

    return registry.encode(event_type, payload)
