"""
Brickflow Availability — Edge Calculator
=========================================
Derives how much upstream output is still available downstream.

    available = produced + restored − consumed        (clamped at 0)

Outcomes are tri-state:
    Availability.of(q)     production data exists, q ≥ 0
    Availability.unknown() no production events yet (or gate not met)

Unknown is NOT zero. Callers choose: consumption guards call
``or_zero()`` and fail closed; reports may show "no data".

Rules:
- Always tenant-scoped; a missing tenant is a programming error
- Derived on demand from the event log, never stored
- Read-only: never appends or mutates
"""

from __future__ import annotations

import uuid
from dataclasses import dataclass
from typing import Optional, Tuple

from core.event_store.contracts import EventStore
from core.event_store.query_scope import require_tenant


# ══════════════════════════════════════════════════════════════
# TRI-STATE RESULT
# ══════════════════════════════════════════════════════════════

@dataclass(frozen=True)
class Availability:
    quantity: Optional[float]

    @classmethod
    def of(cls, quantity: float) -> "Availability":
        return cls(max(0.0, float(quantity)))

    @classmethod
    def unknown(cls) -> "Availability":
        return cls(None)

    @property
    def is_known(self) -> bool:
        return self.quantity is not None

    def or_zero(self) -> float:
        return self.quantity if self.quantity is not None else 0.0

    def __str__(self) -> str:
        return "unknown" if self.quantity is None else f"{self.quantity:g}"


# ══════════════════════════════════════════════════════════════
# EDGE DEFINITION
# ══════════════════════════════════════════════════════════════

@dataclass(frozen=True)
class Term:
    """
    One quantity source on an edge.

    With link_field None the events are recorded on the upstream
    aggregate itself. Otherwise they live on ``aggregate_type`` and
    reference the upstream id through ``payload[link_field]``.
    """

    aggregate_type: str
    event_type: str
    quantity_field: str
    link_field: Optional[str] = None


@dataclass(frozen=True)
class AvailabilityEdge:
    name: str
    upstream: str
    produced: Tuple[Term, ...]
    consumed: Tuple[Term, ...] = ()
    restored: Tuple[Term, ...] = ()
    gate: Optional[str] = None
    unit: str = "t"

    def __post_init__(self):
        if not self.produced:
            raise ValueError(f"Edge '{self.name}' needs at least one produced term.")
        for term in self.produced + self.restored:
            if term.link_field is None and term.aggregate_type != self.upstream:
                raise ValueError(
                    f"Edge '{self.name}': unlinked term {term.event_type} "
                    f"must be recorded on '{self.upstream}'."
                )

    def available(
        self,
        events: EventStore,
        tenant_id: uuid.UUID,
        upstream_id: uuid.UUID,
    ) -> Availability:
        require_tenant(tenant_id)

        produced_events = self._collect(events, tenant_id, upstream_id, self.produced)
        if not produced_events:
            return Availability.unknown()

        if self.gate is not None:
            gate_events = events.list_events(
                tenant_id,
                aggregate_type=self.upstream,
                aggregate_id=upstream_id,
                event_types=[self.gate],
            )
            if not gate_events:
                return Availability.unknown()

        produced = _sum(produced_events)
        restored = _sum(self._collect(events, tenant_id, upstream_id, self.restored))
        consumed = _sum(self._collect(events, tenant_id, upstream_id, self.consumed))
        return Availability.of(produced + restored - consumed)

    def _collect(self, events, tenant_id, upstream_id, terms):
        collected = []
        for term in terms:
            if term.link_field is None:
                rows = events.list_events(
                    tenant_id,
                    aggregate_type=term.aggregate_type,
                    aggregate_id=upstream_id,
                    event_types=[term.event_type],
                )
            else:
                rows = events.list_events(
                    tenant_id,
                    aggregate_type=term.aggregate_type,
                    event_types=[term.event_type],
                    link_key=term.link_field,
                    link_value=str(upstream_id),
                )
            collected.extend((row, term.quantity_field) for row in rows)
        return collected


def _sum(rows) -> float:
    return sum(row.quantity(field) for row, field in rows)
