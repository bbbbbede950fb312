"""
Brickflow Mining Engine — Event Types and Payloads
===================================================
Engine: Mining

Operator shifts on haul vehicles. Each recorded load lands on a
stockpile as a STOCKPILE_RECEIPT_RECORDED sharing the load's
correlation id.
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

MINING_SHIFT_STARTED = "MINING_SHIFT_STARTED"
MINING_SHIFT_COMPLETED = "MINING_SHIFT_COMPLETED"
MINING_LOAD_RECORDED = "MINING_LOAD_RECORDED"


# ══════════════════════════════════════════════════════════════
# PAYLOADS
# ══════════════════════════════════════════════════════════════

@dataclass(frozen=True)
class MiningShiftStarted(EventPayload):
    shift_id: uuid.UUID
    vehicle_id: uuid.UUID
    vehicle_code: str
    operator_id: str
    operator_name: Optional[str] = None
    operator_role: Optional[str] = None
    started_at: Optional[datetime] = None


@dataclass(frozen=True)
class MiningShiftCompleted(EventPayload):
    shift_id: uuid.UUID
    vehicle_id: uuid.UUID
    operator_id: str
    operator_name: Optional[str] = None
    completed_at: Optional[datetime] = None


@dataclass(frozen=True)
class MiningLoadRecorded(EventPayload):
    load_id: uuid.UUID
    shift_id: uuid.UUID
    vehicle_id: uuid.UUID
    vehicle_code: str
    stockpile_id: uuid.UUID
    stockpile_code: str
    tonnage: float
    moisture_pct: Optional[float] = None
    notes: Optional[str] = None
    operator_id: Optional[str] = None
    recorded_at: Optional[datetime] = None


MINING_EVENT_PAYLOADS = {
    MINING_SHIFT_STARTED: MiningShiftStarted,
    MINING_SHIFT_COMPLETED: MiningShiftCompleted,
    MINING_LOAD_RECORDED: MiningLoadRecorded,
}


def register_mining_event_types(event_type_registry) -> None:
    for event_type in sorted(MINING_EVENT_PAYLOADS):
        event_type_registry.register(
            event_type,
            MINING_EVENT_PAYLOADS[event_type],
            AggregateType.MINING_SHIFT,
        )
