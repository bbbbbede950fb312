"""
Brickflow Availability — Edge Registry
=======================================
One AvailabilityService per pipeline holds every edge by name.
Engines register the edges they own when their service is built.
"""

from __future__ import annotations

import uuid
from threading import Lock
from typing import Dict

from core.availability.calculator import Availability, AvailabilityEdge
from core.event_store.contracts import EventStore


class UnknownEdge(KeyError):
    def __init__(self, name: str):
        self.name = name
        super().__init__(f"No availability edge named '{name}'.")


class AvailabilityService:
    """
    Usage:
        availability = AvailabilityService(store.events)
        availability.register(MIX_TO_CRUSHING)
        availability.available("mix_to_crushing", tenant_id, batch_id)
    """

    def __init__(self, events: EventStore):
        self._events = events
        self._edges: Dict[str, AvailabilityEdge] = {}
        self._lock = Lock()

    def register(self, edge: AvailabilityEdge) -> None:
        with self._lock:
            existing = self._edges.get(edge.name)
            if existing is not None and existing != edge:
                raise ValueError(f"Edge '{edge.name}' already registered.")
            self._edges[edge.name] = edge

    def edge(self, name: str) -> AvailabilityEdge:
        with self._lock:
            edge = self._edges.get(name)
        if edge is None:
            raise UnknownEdge(name)
        return edge

    def edge_names(self) -> frozenset[str]:
        with self._lock:
            return frozenset(self._edges)

    def available(
        self, name: str, tenant_id: uuid.UUID, upstream_id: uuid.UUID,
    ) -> Availability:
        return self.edge(name).available(self._events, tenant_id, upstream_id)
