"""
Brickflow Extrusion Engine — Event Types and Payloads
======================================================
Engine: Extrusion

Extrusion presses crushed clay into green bricks. Input is measured in
tonnes of crushed output, output in units handed on to the dry yard.
"""

from __future__ import annotations

import uuid
from dataclasses import dataclass
from datetime import datetime
from typing import Optional

from core.events.envelope import AggregateType
from core.events.payload import EventPayload


# ══════════════════════════════════════════════════════════════
# EVENT TYPE CONSTANTS
# ══════════════════════════════════════════════════════════════

EXTRUSION_RUN_CREATED = "EXTRUSION_RUN_CREATED"
EXTRUSION_INPUT_ADDED = "EXTRUSION_INPUT_ADDED"
EXTRUSION_RUN_STARTED = "EXTRUSION_RUN_STARTED"
EXTRUSION_RUN_PAUSED = "EXTRUSION_RUN_PAUSED"
EXTRUSION_RUN_RESUMED = "EXTRUSION_RUN_RESUMED"
EXTRUSION_OUTPUT_RECORDED = "EXTRUSION_OUTPUT_RECORDED"
EXTRUSION_SCRAP_RECORDED = "EXTRUSION_SCRAP_RECORDED"
EXTRUSION_DIE_CHANGED = "EXTRUSION_DIE_CHANGED"
EXTRUSION_RUN_COMPLETED = "EXTRUSION_RUN_COMPLETED"
EXTRUSION_RUN_CANCELLED = "EXTRUSION_RUN_CANCELLED"


# ══════════════════════════════════════════════════════════════
# PAYLOADS
# ══════════════════════════════════════════════════════════════

@dataclass(frozen=True)
class ExtrusionRunCreated(EventPayload):
    run_id: uuid.UUID
    run_code: str
    press_line: Optional[str] = None
    die_code: Optional[str] = None
    product_sku: Optional[str] = None
    target_units: Optional[float] = None


@dataclass(frozen=True)
class ExtrusionInputAdded(EventPayload):
    run_id: uuid.UUID
    run_code: str
    crush_run_id: uuid.UUID
    crush_run_code: str
    quantity_tonnes: float
    reference: Optional[str] = None


@dataclass(frozen=True)
class ExtrusionRunStarted(EventPayload):
    run_id: uuid.UUID
    run_code: str
    started_at: Optional[datetime] = None


@dataclass(frozen=True)
class ExtrusionRunPaused(EventPayload):
    run_id: uuid.UUID
    run_code: str
    minutes: float
    reason: Optional[str] = None


@dataclass(frozen=True)
class ExtrusionRunResumed(EventPayload):
    run_id: uuid.UUID
    run_code: str


@dataclass(frozen=True)
class ExtrusionOutputRecorded(EventPayload):
    run_id: uuid.UUID
    run_code: str
    output_units: float
    meters: Optional[float] = None
    weight_tonnes: Optional[float] = None


@dataclass(frozen=True)
class ExtrusionScrapRecorded(EventPayload):
    run_id: uuid.UUID
    run_code: str
    scrap_units: float
    reason: Optional[str] = None


@dataclass(frozen=True)
class ExtrusionDieChanged(EventPayload):
    run_id: uuid.UUID
    run_code: str
    die_code: str
    previous_die_code: Optional[str] = None


@dataclass(frozen=True)
class ExtrusionRunCompleted(EventPayload):
    run_id: uuid.UUID
    run_code: str
    completed_at: Optional[datetime] = None


@dataclass(frozen=True)
class ExtrusionRunCancelled(EventPayload):
    run_id: uuid.UUID
    run_code: str
    reason: Optional[str] = None


EXTRUSION_EVENT_PAYLOADS = {
    EXTRUSION_RUN_CREATED: ExtrusionRunCreated,
    EXTRUSION_INPUT_ADDED: ExtrusionInputAdded,
    EXTRUSION_RUN_STARTED: ExtrusionRunStarted,
    EXTRUSION_RUN_PAUSED: ExtrusionRunPaused,
    EXTRUSION_RUN_RESUMED: ExtrusionRunResumed,
    EXTRUSION_OUTPUT_RECORDED: ExtrusionOutputRecorded,
    EXTRUSION_SCRAP_RECORDED: ExtrusionScrapRecorded,
    EXTRUSION_DIE_CHANGED: ExtrusionDieChanged,
    EXTRUSION_RUN_COMPLETED: ExtrusionRunCompleted,
    EXTRUSION_RUN_CANCELLED: ExtrusionRunCancelled,
}


def register_extrusion_event_types(event_type_registry) -> None:
    for event_type in sorted(EXTRUSION_EVENT_PAYLOADS):
        event_type_registry.register(
            event_type,
            EXTRUSION_EVENT_PAYLOADS[event_type],
            AggregateType.EXTRUSION_RUN,
        )
