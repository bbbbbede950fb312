"""
Brickflow Event Store — Event Type Registry
============================================
Maps every permitted event type to its payload shape and aggregate type.

Rules:
- Registry starts EMPTY
- Engines register their types when their service is built
- Re-registering the same (type, payload, aggregate) is a no-op
- Re-registering a type with a different shape is an error
- Event types are SCREAMING_SNAKE_CASE (e.g. CRUSH_RUN_STARTED)

The registry prefers to reject over accepting something unknown.
"""

from __future__ import annotations

from dataclasses import dataclass
from threading import Lock
from typing import Any, Dict, Mapping, Type

from core.events.envelope import AggregateType
from core.events.errors import DuplicateEventType, PayloadMismatch, UnknownEventType
from core.events.payload import EventPayload


@dataclass(frozen=True)
class EventTypeSpec:
    event_type: str
    payload_type: Type[EventPayload]
    aggregate_type: str


class EventTypeRegistry:
    """
    In-memory registry of permitted event types and their payload records.
    Thread-safe for concurrent registration and lookup.

    Usage:
        registry = EventTypeRegistry()
        registry.register("CRUSH_RUN_STARTED", CrushRunStarted, AggregateType.CRUSH_RUN)

        registry.encode("CRUSH_RUN_STARTED", payload)   # -> dict
        registry.decode("CRUSH_RUN_STARTED", stored)    # -> CrushRunStarted
    """

    def __init__(self):
        self._specs: Dict[str, EventTypeSpec] = {}
        self._lock = Lock()

    def register(
        self,
        event_type: str,
        payload_type: Type[EventPayload],
        aggregate_type: str,
    ) -> None:
        if not event_type or not isinstance(event_type, str):
            raise ValueError("Event type must be a non-empty string.")
        if event_type != event_type.upper() or " " in event_type:
            raise ValueError(
                f"Event type '{event_type}' must be SCREAMING_SNAKE_CASE."
            )
        if not (isinstance(payload_type, type) and issubclass(payload_type, EventPayload)):
            raise TypeError("payload_type must be an EventPayload subclass.")
        if aggregate_type not in AggregateType.ALL:
            raise ValueError(f"Unknown aggregate type '{aggregate_type}'.")

        spec = EventTypeSpec(event_type, payload_type, aggregate_type)
        with self._lock:
            existing = self._specs.get(event_type)
            if existing is not None and existing != spec:
                raise DuplicateEventType(event_type)
            self._specs[event_type] = spec

    def spec_for(self, event_type: str) -> EventTypeSpec:
        with self._lock:
            spec = self._specs.get(event_type)
        if spec is None:
            raise UnknownEventType(event_type)
        return spec

    def is_registered(self, event_type: str) -> bool:
        with self._lock:
            return event_type in self._specs

    def event_type_of(self, payload: EventPayload) -> str:
        """Reverse lookup: the single event type a payload record belongs to."""
        with self._lock:
            matches = [
                s.event_type for s in self._specs.values()
                if s.payload_type is type(payload)
            ]
        if len(matches) != 1:
            raise PayloadMismatch(
                f"{type(payload).__name__} maps to {len(matches)} event types."
            )
        return matches[0]

    def encode(self, event_type: str, payload: EventPayload) -> dict:
        spec = self.spec_for(event_type)
        if type(payload) is not spec.payload_type:
            raise PayloadMismatch(
                f"{event_type} expects {spec.payload_type.__name__}, "
                f"got {type(payload).__name__}."
            )
        return payload.to_dict()

    def decode(self, event_type: str, data: Mapping[str, Any]) -> EventPayload:
        return self.spec_for(event_type).payload_type.from_dict(data)

    def get_all_registered(self) -> frozenset[str]:
        with self._lock:
            return frozenset(self._specs)

    def count(self) -> int:
        with self._lock:
            return len(self._specs)
