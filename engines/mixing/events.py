"""
Brickflow Mixing Engine — Event Types and Payloads
===================================================
Engine: Mixing

A mix batch draws clay from stockpiles and, once completed, offers
its output tonnes to crushing.

Event types:
    MIX_BATCH_CREATED, MIX_COMPONENT_ADDED, MIX_COMPONENT_REMOVED,
    MIX_BATCH_STARTED, MIX_BATCH_PAUSED, MIX_BATCH_RESUMED,
    MIX_BATCH_COMPLETED, MIX_BATCH_CANCELLED
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

MIX_BATCH_CREATED = "MIX_BATCH_CREATED"
MIX_COMPONENT_ADDED = "MIX_COMPONENT_ADDED"
MIX_COMPONENT_REMOVED = "MIX_COMPONENT_REMOVED"
MIX_BATCH_STARTED = "MIX_BATCH_STARTED"
MIX_BATCH_PAUSED = "MIX_BATCH_PAUSED"
MIX_BATCH_RESUMED = "MIX_BATCH_RESUMED"
MIX_BATCH_COMPLETED = "MIX_BATCH_COMPLETED"
MIX_BATCH_CANCELLED = "MIX_BATCH_CANCELLED"


# ══════════════════════════════════════════════════════════════
# PAYLOADS
# ══════════════════════════════════════════════════════════════

@dataclass(frozen=True)
class MixBatchCreated(EventPayload):
    batch_id: uuid.UUID
    batch_code: str
    target_output_tonnes: Optional[float] = None


@dataclass(frozen=True)
class MixComponentAdded(EventPayload):
    batch_id: uuid.UUID
    batch_code: str
    stockpile_id: uuid.UUID
    stockpile_code: str
    material_type: str
    quantity_tonnes: float
    reference: Optional[str] = None


@dataclass(frozen=True)
class MixComponentRemoved(EventPayload):
    batch_id: uuid.UUID
    batch_code: str
    stockpile_id: uuid.UUID
    stockpile_code: str
    quantity_tonnes: float
    reference: Optional[str] = None


@dataclass(frozen=True)
class MixBatchStarted(EventPayload):
    batch_id: uuid.UUID
    batch_code: str
    started_at: Optional[datetime] = None


@dataclass(frozen=True)
class MixBatchPaused(EventPayload):
    batch_id: uuid.UUID
    batch_code: str
    reason: Optional[str] = None


@dataclass(frozen=True)
class MixBatchResumed(EventPayload):
    batch_id: uuid.UUID
    batch_code: str


@dataclass(frozen=True)
class MixBatchCompleted(EventPayload):
    batch_id: uuid.UUID
    batch_code: str
    output_tonnes: Optional[float] = None
    moisture_pct: Optional[float] = None
    completed_at: Optional[datetime] = None


@dataclass(frozen=True)
class MixBatchCancelled(EventPayload):
    batch_id: uuid.UUID
    batch_code: str
    reason: Optional[str] = None


MIXING_EVENT_PAYLOADS = {
    MIX_BATCH_CREATED: MixBatchCreated,
    MIX_COMPONENT_ADDED: MixComponentAdded,
    MIX_COMPONENT_REMOVED: MixComponentRemoved,
    MIX_BATCH_STARTED: MixBatchStarted,
    MIX_BATCH_PAUSED: MixBatchPaused,
    MIX_BATCH_RESUMED: MixBatchResumed,
    MIX_BATCH_COMPLETED: MixBatchCompleted,
    MIX_BATCH_CANCELLED: MixBatchCancelled,
}


def register_mixing_event_types(event_type_registry) -> None:
    for event_type in sorted(MIXING_EVENT_PAYLOADS):
        event_type_registry.register(
            event_type,
            MIXING_EVENT_PAYLOADS[event_type],
            AggregateType.MIX_BATCH,
        )
