"""
Brickflow Crushing Engine — Event Types and Payloads
=====================================================
Engine: Crushing

Crush runs consume completed mix batch output and record crushed
tonnes for extrusion.
"""

from __future__ import annotations

import uuid
from dataclasses import dataclass
from datetime import datetime
from typing import Optional

from core.events.envelope import AggregateType
from core.events.payload import EventPayload, wire_field


# ══════════════════════════════════════════════════════════════
# EVENT TYPE CONSTANTS
# ══════════════════════════════════════════════════════════════

CRUSH_RUN_CREATED = "CRUSH_RUN_CREATED"
CRUSH_COMPONENT_ADDED = "CRUSH_COMPONENT_ADDED"
CRUSH_RUN_STARTED = "CRUSH_RUN_STARTED"
CRUSH_RUN_PAUSED = "CRUSH_RUN_PAUSED"
CRUSH_RUN_RESUMED = "CRUSH_RUN_RESUMED"
CRUSH_RUN_DOWNTIME_LOGGED = "CRUSH_RUN_DOWNTIME_LOGGED"
CRUSH_RUN_OUTPUT_RECORDED = "CRUSH_RUN_OUTPUT_RECORDED"
CRUSH_RUN_COMPLETED = "CRUSH_RUN_COMPLETED"
CRUSH_RUN_CANCELLED = "CRUSH_RUN_CANCELLED"


# ══════════════════════════════════════════════════════════════
# PAYLOADS
# ══════════════════════════════════════════════════════════════

@dataclass(frozen=True)
class CrushRunCreated(EventPayload):
    run_id: uuid.UUID
    run_code: str
    target_tph: Optional[float] = wire_field("targetTPH")


@dataclass(frozen=True)
class CrushComponentAdded(EventPayload):
    run_id: uuid.UUID
    run_code: str
    mix_batch_id: uuid.UUID
    mix_batch_code: str
    quantity_tonnes: float
    reference: Optional[str] = None


@dataclass(frozen=True)
class CrushRunStarted(EventPayload):
    run_id: uuid.UUID
    run_code: str
    started_at: Optional[datetime] = None


@dataclass(frozen=True)
class CrushRunPaused(EventPayload):
    run_id: uuid.UUID
    run_code: str
    reason: Optional[str] = None


@dataclass(frozen=True)
class CrushRunResumed(EventPayload):
    run_id: uuid.UUID
    run_code: str


@dataclass(frozen=True)
class CrushRunDowntimeLogged(EventPayload):
    run_id: uuid.UUID
    run_code: str
    minutes: float
    reason: str


@dataclass(frozen=True)
class CrushRunOutputRecorded(EventPayload):
    run_id: uuid.UUID
    run_code: str
    output_tonnes: float
    fines_pct: Optional[float] = None


@dataclass(frozen=True)
class CrushRunCompleted(EventPayload):
    run_id: uuid.UUID
    run_code: str
    completed_at: Optional[datetime] = None


@dataclass(frozen=True)
class CrushRunCancelled(EventPayload):
    run_id: uuid.UUID
    run_code: str
    reason: Optional[str] = None


CRUSHING_EVENT_PAYLOADS = {
    CRUSH_RUN_CREATED: CrushRunCreated,
    CRUSH_COMPONENT_ADDED: CrushComponentAdded,
    CRUSH_RUN_STARTED: CrushRunStarted,
    CRUSH_RUN_PAUSED: CrushRunPaused,
    CRUSH_RUN_RESUMED: CrushRunResumed,
    CRUSH_RUN_DOWNTIME_LOGGED: CrushRunDowntimeLogged,
    CRUSH_RUN_OUTPUT_RECORDED: CrushRunOutputRecorded,
    CRUSH_RUN_COMPLETED: CrushRunCompleted,
    CRUSH_RUN_CANCELLED: CrushRunCancelled,
}


def register_crushing_event_types(event_type_registry) -> None:
    for event_type in sorted(CRUSHING_EVENT_PAYLOADS):
        event_type_registry.register(
            event_type,
            CRUSHING_EVENT_PAYLOADS[event_type],
            AggregateType.CRUSH_RUN,
        )
