"""
Brickflow Dispatch Engine — Event Types and Payloads
=====================================================
Engine: Dispatch

Shipments pick pallet units (reservation protocol, shipment as the
consumer), pass the weighbridge and are finally dispatched.
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

SHIPMENT_CREATED = "SHIPMENT_CREATED"
SHIPMENT_CARRIER_SET = "SHIPMENT_CARRIER_SET"
SHIPMENT_ADDRESS_SET = "SHIPMENT_ADDRESS_SET"
SHIPMENT_PICKLIST_CREATED = "SHIPMENT_PICKLIST_CREATED"
SHIPMENT_PICK_ADDED = "SHIPMENT_PICK_ADDED"
SHIPMENT_PICK_REMOVED = "SHIPMENT_PICK_REMOVED"
SHIPMENT_WEIGHBRIDGE_IN = "SHIPMENT_WEIGHBRIDGE_IN"
SHIPMENT_WEIGHBRIDGE_OUT = "SHIPMENT_WEIGHBRIDGE_OUT"
SHIPMENT_DISPATCHED = "SHIPMENT_DISPATCHED"
SHIPMENT_CANCELLED = "SHIPMENT_CANCELLED"


# ══════════════════════════════════════════════════════════════
# PAYLOADS
# ══════════════════════════════════════════════════════════════

@dataclass(frozen=True)
class ShipmentCreated(EventPayload):
    shipment_id: uuid.UUID
    shipment_code: str
    customer_code: Optional[str] = None
    customer_name: Optional[str] = None


@dataclass(frozen=True)
class ShipmentCarrierSet(EventPayload):
    shipment_id: uuid.UUID
    shipment_code: str
    carrier: str
    vehicle_reg: Optional[str] = None
    trailer_reg: Optional[str] = None
    seal_no: Optional[str] = None


@dataclass(frozen=True)
class ShipmentAddressSet(EventPayload):
    shipment_id: uuid.UUID
    shipment_code: str


@dataclass(frozen=True)
class ShipmentPicklistCreated(EventPayload):
    shipment_id: uuid.UUID
    shipment_code: str


@dataclass(frozen=True)
class ShipmentPickAdded(EventPayload):
    shipment_id: uuid.UUID
    pallet_id: uuid.UUID
    quantity_units: float
    pallet_code: Optional[str] = None
    product_sku: Optional[str] = None
    grade: Optional[str] = None
    order_id: Optional[uuid.UUID] = None


@dataclass(frozen=True)
class ShipmentPickRemoved(EventPayload):
    shipment_id: uuid.UUID
    pallet_id: uuid.UUID
    quantity_units: float
    pallet_code: Optional[str] = None
    order_id: Optional[uuid.UUID] = None


@dataclass(frozen=True)
class ShipmentWeighbridgeIn(EventPayload):
    shipment_id: uuid.UUID
    shipment_code: str
    gross_kg: float
    tare_kg: Optional[float] = None


@dataclass(frozen=True)
class ShipmentWeighbridgeOut(EventPayload):
    shipment_id: uuid.UUID
    shipment_code: str
    gross_kg: float
    tare_kg: Optional[float] = None


@dataclass(frozen=True)
class ShipmentDispatched(EventPayload):
    shipment_id: uuid.UUID
    shipment_code: str
    total_units: float
    dispatched_at: Optional[datetime] = None


@dataclass(frozen=True)
class ShipmentCancelled(EventPayload):
    shipment_id: uuid.UUID
    shipment_code: str
    reason: Optional[str] = None


DISPATCH_EVENT_PAYLOADS = {
    SHIPMENT_CREATED: ShipmentCreated,
    SHIPMENT_CARRIER_SET: ShipmentCarrierSet,
    SHIPMENT_ADDRESS_SET: ShipmentAddressSet,
    SHIPMENT_PICKLIST_CREATED: ShipmentPicklistCreated,
    SHIPMENT_PICK_ADDED: ShipmentPickAdded,
    SHIPMENT_PICK_REMOVED: ShipmentPickRemoved,
    SHIPMENT_WEIGHBRIDGE_IN: ShipmentWeighbridgeIn,
    SHIPMENT_WEIGHBRIDGE_OUT: ShipmentWeighbridgeOut,
    SHIPMENT_DISPATCHED: ShipmentDispatched,
    SHIPMENT_CANCELLED: ShipmentCancelled,
}


def register_dispatch_event_types(event_type_registry) -> None:
    for event_type in sorted(DISPATCH_EVENT_PAYLOADS):
        event_type_registry.register(
            event_type,
            DISPATCH_EVENT_PAYLOADS[event_type],
            AggregateType.SHIPMENT,
        )
