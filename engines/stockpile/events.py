"""
Brickflow Stockpile Engine — Event Types and Payloads
======================================================
Engine: Stockpile

Raw clay/shale stockpiles. Tonnage is never stored as a balance:
availability is derived from receipts, transfers and adjustments.

Mining and mixing also append stockpile events (receipts from loads,
transfers out to mix batches) so they register these types as well.
"""

from __future__ import annotations

import uuid
from dataclasses import dataclass
from typing import Optional

from core.events.envelope import AggregateType
from core.events.payload import EventPayload


# ══════════════════════════════════════════════════════════════
# EVENT TYPE CONSTANTS
# ══════════════════════════════════════════════════════════════

STOCKPILE_CREATED = "STOCKPILE_CREATED"
STOCKPILE_RECEIPT_RECORDED = "STOCKPILE_RECEIPT_RECORDED"
STOCKPILE_TRANSFERRED_OUT = "STOCKPILE_TRANSFERRED_OUT"
STOCKPILE_TRANSFERRED_IN = "STOCKPILE_TRANSFERRED_IN"
STOCKPILE_ADJUSTED_IN = "STOCKPILE_ADJUSTED_IN"
STOCKPILE_ADJUSTED_OUT = "STOCKPILE_ADJUSTED_OUT"
STOCKPILE_SAMPLE_TAKEN = "STOCKPILE_SAMPLE_TAKEN"
STOCKPILE_QUALITY_RECORDED = "STOCKPILE_QUALITY_RECORDED"


# ══════════════════════════════════════════════════════════════
# PAYLOADS
# ══════════════════════════════════════════════════════════════

@dataclass(frozen=True)
class StockpileCreated(EventPayload):
    stockpile_id: uuid.UUID
    code: str
    name: Optional[str] = None
    location: Optional[str] = None
    material_type: Optional[str] = None


@dataclass(frozen=True)
class StockpileReceiptRecorded(EventPayload):
    stockpile_id: uuid.UUID
    code: str
    quantity_tonnes: float
    reference: Optional[str] = None
    notes: Optional[str] = None
    shift_id: Optional[uuid.UUID] = None


@dataclass(frozen=True)
class StockpileTransferredOut(EventPayload):
    stockpile_id: uuid.UUID
    code: str
    quantity_tonnes: float
    to_stockpile_id: Optional[uuid.UUID] = None
    mix_batch_id: Optional[uuid.UUID] = None
    reference: Optional[str] = None


@dataclass(frozen=True)
class StockpileTransferredIn(EventPayload):
    stockpile_id: uuid.UUID
    code: str
    quantity_tonnes: float
    from_stockpile_id: Optional[uuid.UUID] = None
    mix_batch_id: Optional[uuid.UUID] = None
    reference: Optional[str] = None


@dataclass(frozen=True)
class StockpileAdjustedIn(EventPayload):
    stockpile_id: uuid.UUID
    code: str
    quantity_tonnes: float
    reason: str


@dataclass(frozen=True)
class StockpileAdjustedOut(EventPayload):
    stockpile_id: uuid.UUID
    code: str
    quantity_tonnes: float
    reason: str


@dataclass(frozen=True)
class StockpileSampleTaken(EventPayload):
    stockpile_id: uuid.UUID
    code: str
    sample_code: Optional[str] = None


@dataclass(frozen=True)
class StockpileQualityRecorded(EventPayload):
    stockpile_id: uuid.UUID
    code: str
    moisture_pct: float


STOCKPILE_EVENT_PAYLOADS = {
    STOCKPILE_CREATED: StockpileCreated,
    STOCKPILE_RECEIPT_RECORDED: StockpileReceiptRecorded,
    STOCKPILE_TRANSFERRED_OUT: StockpileTransferredOut,
    STOCKPILE_TRANSFERRED_IN: StockpileTransferredIn,
    STOCKPILE_ADJUSTED_IN: StockpileAdjustedIn,
    STOCKPILE_ADJUSTED_OUT: StockpileAdjustedOut,
    STOCKPILE_SAMPLE_TAKEN: StockpileSampleTaken,
    STOCKPILE_QUALITY_RECORDED: StockpileQualityRecorded,
}


def register_stockpile_event_types(event_type_registry) -> None:
    for event_type in sorted(STOCKPILE_EVENT_PAYLOADS):
        event_type_registry.register(
            event_type,
            STOCKPILE_EVENT_PAYLOADS[event_type],
            AggregateType.STOCKPILE,
        )
