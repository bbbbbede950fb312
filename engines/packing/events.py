"""
Brickflow Packing Engine — Event Types and Payloads
====================================================
Engine: Packing

Pallets collect fired units from kiln batches. Units on a pallet are
reserved by sales orders and shipment picks, and leave the pallet when
a shipment is dispatched.

Inventory-side reservation events:
    PACK_PALLET_RESERVED
    PACK_PALLET_RESERVATION_RELEASED
    PACK_PALLET_UNITS_DISPATCHED
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

PACK_PALLET_CREATED = "PACK_PALLET_CREATED"
PACK_INPUT_ADDED = "PACK_INPUT_ADDED"
PACK_PALLET_GRADED = "PACK_PALLET_GRADED"
PACK_PALLET_MOVED = "PACK_PALLET_MOVED"
PACK_LABEL_PRINTED = "PACK_LABEL_PRINTED"
PACK_PALLET_RESERVED = "PACK_PALLET_RESERVED"
PACK_PALLET_RESERVATION_RELEASED = "PACK_PALLET_RESERVATION_RELEASED"
PACK_PALLET_UNITS_DISPATCHED = "PACK_PALLET_UNITS_DISPATCHED"
PACK_SCRAP_RECORDED = "PACK_SCRAP_RECORDED"
PACK_PALLET_CLOSED = "PACK_PALLET_CLOSED"
PACK_PALLET_CANCELLED = "PACK_PALLET_CANCELLED"


# ══════════════════════════════════════════════════════════════
# PAYLOADS
# ══════════════════════════════════════════════════════════════

@dataclass(frozen=True)
class PackPalletCreated(EventPayload):
    pallet_id: uuid.UUID
    pallet_code: str
    product_sku: str
    grade: str
    capacity_units: Optional[float] = None
    location_id: Optional[uuid.UUID] = None


@dataclass(frozen=True)
class PackInputAdded(EventPayload):
    pallet_id: uuid.UUID
    pallet_code: str
    kiln_batch_id: uuid.UUID
    kiln_batch_code: str
    quantity_units: float
    reference: Optional[str] = None


@dataclass(frozen=True)
class PackPalletGraded(EventPayload):
    pallet_id: uuid.UUID
    pallet_code: str
    grade: str
    previous_grade: Optional[str] = None


@dataclass(frozen=True)
class PackPalletMoved(EventPayload):
    pallet_id: uuid.UUID
    pallet_code: str
    to_location_id: uuid.UUID
    from_location_id: Optional[uuid.UUID] = None


@dataclass(frozen=True)
class PackLabelPrinted(EventPayload):
    pallet_id: uuid.UUID
    pallet_code: str
    label_type: Optional[str] = None


@dataclass(frozen=True)
class PackPalletReserved(EventPayload):
    pallet_id: uuid.UUID
    pallet_code: str
    quantity_units: float
    consumer_type: str
    consumer_id: uuid.UUID
    order_id: Optional[uuid.UUID] = None


@dataclass(frozen=True)
class PackPalletReservationReleased(EventPayload):
    pallet_id: uuid.UUID
    pallet_code: str
    quantity_units: float
    consumer_type: str
    consumer_id: uuid.UUID
    order_id: Optional[uuid.UUID] = None


@dataclass(frozen=True)
class PackPalletUnitsDispatched(EventPayload):
    pallet_id: uuid.UUID
    pallet_code: str
    quantity_units: float
    shipment_id: uuid.UUID
    order_id: Optional[uuid.UUID] = None


@dataclass(frozen=True)
class PackScrapRecorded(EventPayload):
    pallet_id: uuid.UUID
    pallet_code: str
    scrap_units: float
    reason: Optional[str] = None


@dataclass(frozen=True)
class PackPalletClosed(EventPayload):
    pallet_id: uuid.UUID
    pallet_code: str
    closed_at: Optional[datetime] = None


@dataclass(frozen=True)
class PackPalletCancelled(EventPayload):
    pallet_id: uuid.UUID
    pallet_code: str
    reason: Optional[str] = None


PACKING_EVENT_PAYLOADS = {
    PACK_PALLET_CREATED: PackPalletCreated,
    PACK_INPUT_ADDED: PackInputAdded,
    PACK_PALLET_GRADED: PackPalletGraded,
    PACK_PALLET_MOVED: PackPalletMoved,
    PACK_LABEL_PRINTED: PackLabelPrinted,
    PACK_PALLET_RESERVED: PackPalletReserved,
    PACK_PALLET_RESERVATION_RELEASED: PackPalletReservationReleased,
    PACK_PALLET_UNITS_DISPATCHED: PackPalletUnitsDispatched,
    PACK_SCRAP_RECORDED: PackScrapRecorded,
    PACK_PALLET_CLOSED: PackPalletClosed,
    PACK_PALLET_CANCELLED: PackPalletCancelled,
}


def register_packing_event_types(event_type_registry) -> None:
    for event_type in sorted(PACKING_EVENT_PAYLOADS):
        event_type_registry.register(
            event_type,
            PACKING_EVENT_PAYLOADS[event_type],
            AggregateType.PALLET,
        )
