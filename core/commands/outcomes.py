"""
Brickflow Command Layer — Execution Result
===========================================
What a handled command returns to its caller.

A successful command returns exactly one ExecutionResult. A failed
command raises a typed GuardError instead; there is no "rejected"
result object.
"""

from __future__ import annotations

import uuid
from dataclasses import dataclass, field
from typing import Any, Mapping, Optional, Tuple

from core.event_store.persistence.service import EventLogWarning
from core.events.envelope import EventRecord


@dataclass(frozen=True)
class ExecutionResult:
    """
    Fields:
        command_type:   The handled command type.
        aggregate_id:   Primary aggregate touched (created or mutated).
        status:         Aggregate status after the command, if any.
        events:         Events actually appended, in order.
        warnings:       Event-log warnings (append reported, not raised).
        correlation_id: Correlation shared by the appended events.
        totals:         Derived figures (availability, fulfilment, ...).
    """

    command_type: str
    aggregate_id: Optional[uuid.UUID]
    status: Optional[str] = None
    events: Tuple[EventRecord, ...] = ()
    warnings: Tuple[EventLogWarning, ...] = ()
    correlation_id: Optional[uuid.UUID] = None
    totals: Mapping[str, Any] = field(default_factory=dict)

    @property
    def event_types(self) -> Tuple[str, ...]:
        return tuple(event.event_type for event in self.events)

    @property
    def has_warnings(self) -> bool:
        return bool(self.warnings)
