"""
Brickflow Events — Public API
==============================
Envelope, aggregate vocabulary and tagged payload base.
"""

from core.events.envelope import AggregateType, EventRecord, SnapshotKind
from core.events.errors import (
    DuplicateEventType,
    EventSchemaError,
    PayloadFieldError,
    PayloadMismatch,
    UnknownEventType,
)
from core.events.payload import EventPayload, wire_field

__all__ = [
    "AggregateType",
    "EventRecord",
    "SnapshotKind",
    "EventPayload",
    "wire_field",
    "EventSchemaError",
    "UnknownEventType",
    "DuplicateEventType",
    "PayloadMismatch",
    "PayloadFieldError",
]
