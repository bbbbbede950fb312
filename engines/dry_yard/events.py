"""
Brickflow Dry Yard Engine — Event Types and Payloads
=====================================================
Engine: Dry Yard

Green bricks from extrusion rest on racks until dry. Racks are master
data (snapshot rows only); loads carry the event history.
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

DRY_LOAD_CREATED = "DRY_LOAD_CREATED"
DRY_INPUT_ADDED = "DRY_INPUT_ADDED"
DRY_LOAD_STARTED = "DRY_LOAD_STARTED"
DRY_LOAD_PAUSED = "DRY_LOAD_PAUSED"
DRY_LOAD_RESUMED = "DRY_LOAD_RESUMED"
DRY_MOISTURE_RECORDED = "DRY_MOISTURE_RECORDED"
DRY_LOAD_MOVED = "DRY_LOAD_MOVED"
DRY_SCRAP_RECORDED = "DRY_SCRAP_RECORDED"
DRY_LOAD_COMPLETED = "DRY_LOAD_COMPLETED"
DRY_LOAD_CANCELLED = "DRY_LOAD_CANCELLED"


# ══════════════════════════════════════════════════════════════
# PAYLOADS
# ══════════════════════════════════════════════════════════════

@dataclass(frozen=True)
class DryLoadCreated(EventPayload):
    load_id: uuid.UUID
    load_code: str
    rack_id: uuid.UUID
    target_moisture_pct: Optional[float] = None


@dataclass(frozen=True)
class DryInputAdded(EventPayload):
    load_id: uuid.UUID
    load_code: str
    rack_id: uuid.UUID
    run_id: uuid.UUID
    run_code: str
    quantity_units: float
    reference: Optional[str] = None


@dataclass(frozen=True)
class DryLoadStarted(EventPayload):
    load_id: uuid.UUID
    load_code: str
    started_at: Optional[datetime] = None


@dataclass(frozen=True)
class DryLoadPaused(EventPayload):
    load_id: uuid.UUID
    load_code: str
    reason: Optional[str] = None


@dataclass(frozen=True)
class DryLoadResumed(EventPayload):
    load_id: uuid.UUID
    load_code: str


@dataclass(frozen=True)
class DryMoistureRecorded(EventPayload):
    load_id: uuid.UUID
    load_code: str
    moisture_pct: float
    method: Optional[str] = None


@dataclass(frozen=True)
class DryLoadMoved(EventPayload):
    load_id: uuid.UUID
    load_code: str
    from_rack_id: uuid.UUID
    to_rack_id: uuid.UUID


@dataclass(frozen=True)
class DryScrapRecorded(EventPayload):
    load_id: uuid.UUID
    load_code: str
    scrap_units: float
    reason: Optional[str] = None


@dataclass(frozen=True)
class DryLoadCompleted(EventPayload):
    load_id: uuid.UUID
    load_code: str
    completed_at: Optional[datetime] = None


@dataclass(frozen=True)
class DryLoadCancelled(EventPayload):
    load_id: uuid.UUID
    load_code: str
    reason: Optional[str] = None


DRY_YARD_EVENT_PAYLOADS = {
    DRY_LOAD_CREATED: DryLoadCreated,
    DRY_INPUT_ADDED: DryInputAdded,
    DRY_LOAD_STARTED: DryLoadStarted,
    DRY_LOAD_PAUSED: DryLoadPaused,
    DRY_LOAD_RESUMED: DryLoadResumed,
    DRY_MOISTURE_RECORDED: DryMoistureRecorded,
    DRY_LOAD_MOVED: DryLoadMoved,
    DRY_SCRAP_RECORDED: DryScrapRecorded,
    DRY_LOAD_COMPLETED: DryLoadCompleted,
    DRY_LOAD_CANCELLED: DryLoadCancelled,
}


def register_dry_yard_event_types(event_type_registry) -> None:
    for event_type in sorted(DRY_YARD_EVENT_PAYLOADS):
        event_type_registry.register(
            event_type,
            DRY_YARD_EVENT_PAYLOADS[event_type],
            AggregateType.DRY_LOAD,
        )
