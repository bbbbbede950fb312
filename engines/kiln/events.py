"""
Brickflow Kiln Engine — Event Types and Payloads
=================================================
Engine: Kiln

Kiln batches fire dried loads; fired units go on to packing.
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

KILN_BATCH_CREATED = "KILN_BATCH_CREATED"
KILN_INPUT_ADDED = "KILN_INPUT_ADDED"
KILN_BATCH_STARTED = "KILN_BATCH_STARTED"
KILN_BATCH_PAUSED = "KILN_BATCH_PAUSED"
KILN_BATCH_RESUMED = "KILN_BATCH_RESUMED"
KILN_ZONE_TEMP_RECORDED = "KILN_ZONE_TEMP_RECORDED"
KILN_FUEL_USAGE_RECORDED = "KILN_FUEL_USAGE_RECORDED"
KILN_OUTPUT_RECORDED = "KILN_OUTPUT_RECORDED"
KILN_BATCH_COMPLETED = "KILN_BATCH_COMPLETED"
KILN_BATCH_CANCELLED = "KILN_BATCH_CANCELLED"


# ══════════════════════════════════════════════════════════════
# PAYLOADS
# ══════════════════════════════════════════════════════════════

@dataclass(frozen=True)
class KilnBatchCreated(EventPayload):
    batch_id: uuid.UUID
    batch_code: str
    kiln_code: Optional[str] = None
    firing_curve_code: Optional[str] = None
    target_units: Optional[float] = None


@dataclass(frozen=True)
class KilnInputAdded(EventPayload):
    batch_id: uuid.UUID
    batch_code: str
    dry_load_id: uuid.UUID
    dry_load_code: str
    quantity_units: float
    reference: Optional[str] = None


@dataclass(frozen=True)
class KilnBatchStarted(EventPayload):
    batch_id: uuid.UUID
    batch_code: str
    started_at: Optional[datetime] = None


@dataclass(frozen=True)
class KilnBatchPaused(EventPayload):
    batch_id: uuid.UUID
    batch_code: str
    minutes: float
    reason: str


@dataclass(frozen=True)
class KilnBatchResumed(EventPayload):
    batch_id: uuid.UUID
    batch_code: str


@dataclass(frozen=True)
class KilnZoneTempRecorded(EventPayload):
    batch_id: uuid.UUID
    batch_code: str
    zone: str
    temperature_c: float = wire_field("temperatureC", required=True)


@dataclass(frozen=True)
class KilnFuelUsageRecorded(EventPayload):
    batch_id: uuid.UUID
    batch_code: str
    fuel_type: str
    amount: float
    unit: str


@dataclass(frozen=True)
class KilnOutputRecorded(EventPayload):
    batch_id: uuid.UUID
    batch_code: str
    fired_units: float
    shrinkage_pct: Optional[float] = None


@dataclass(frozen=True)
class KilnBatchCompleted(EventPayload):
    batch_id: uuid.UUID
    batch_code: str
    completed_at: Optional[datetime] = None


@dataclass(frozen=True)
class KilnBatchCancelled(EventPayload):
    batch_id: uuid.UUID
    batch_code: str
    reason: Optional[str] = None


KILN_EVENT_PAYLOADS = {
    KILN_BATCH_CREATED: KilnBatchCreated,
    KILN_INPUT_ADDED: KilnInputAdded,
    KILN_BATCH_STARTED: KilnBatchStarted,
    KILN_BATCH_PAUSED: KilnBatchPaused,
    KILN_BATCH_RESUMED: KilnBatchResumed,
    KILN_ZONE_TEMP_RECORDED: KilnZoneTempRecorded,
    KILN_FUEL_USAGE_RECORDED: KilnFuelUsageRecorded,
    KILN_OUTPUT_RECORDED: KilnOutputRecorded,
    KILN_BATCH_COMPLETED: KilnBatchCompleted,
    KILN_BATCH_CANCELLED: KilnBatchCancelled,
}


def register_kiln_event_types(event_type_registry) -> None:
    for event_type in sorted(KILN_EVENT_PAYLOADS):
        event_type_registry.register(
            event_type,
            KILN_EVENT_PAYLOADS[event_type],
            AggregateType.KILN_BATCH,
        )
