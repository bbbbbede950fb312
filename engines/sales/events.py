"""
Brickflow Sales Engine — Event Types and Payloads
==================================================
Engine: Sales

Sales orders and their pallet reservations. Customers, products and
prices are master data held in snapshot rows.

Consumer-side reservation events:
    SALES_ORDER_RESERVED
    SALES_ORDER_RESERVATION_RELEASED
"""

from __future__ import annotations

import uuid
from dataclasses import dataclass
from datetime import datetime
from decimal import Decimal
from typing import Optional

from core.events.envelope import AggregateType
from core.events.payload import EventPayload


# ══════════════════════════════════════════════════════════════
# EVENT TYPE CONSTANTS
# ══════════════════════════════════════════════════════════════

SALES_ORDER_CREATED = "SALES_ORDER_CREATED"
SALES_ORDER_LINE_ADDED = "SALES_ORDER_LINE_ADDED"
SALES_ORDER_LINE_REMOVED = "SALES_ORDER_LINE_REMOVED"
SALES_ORDER_CONFIRMED = "SALES_ORDER_CONFIRMED"
SALES_ORDER_RESERVED = "SALES_ORDER_RESERVED"
SALES_ORDER_RESERVATION_RELEASED = "SALES_ORDER_RESERVATION_RELEASED"
SALES_ORDER_CANCELLED = "SALES_ORDER_CANCELLED"
SALES_ORDER_FULFILLED = "SALES_ORDER_FULFILLED"


# ══════════════════════════════════════════════════════════════
# PAYLOADS
# ══════════════════════════════════════════════════════════════

@dataclass(frozen=True)
class SalesOrderCreated(EventPayload):
    order_id: uuid.UUID
    order_code: str
    customer_id: uuid.UUID
    customer_code: str


@dataclass(frozen=True)
class SalesOrderLineAdded(EventPayload):
    order_id: uuid.UUID
    line_id: uuid.UUID
    product_id: uuid.UUID
    sku: str
    quantity_units: float
    unit_price: Decimal
    currency: str


@dataclass(frozen=True)
class SalesOrderLineRemoved(EventPayload):
    order_id: uuid.UUID
    line_id: uuid.UUID
    product_id: uuid.UUID
    sku: str
    quantity_units: float
    unit_price: Decimal
    currency: str


@dataclass(frozen=True)
class SalesOrderConfirmed(EventPayload):
    order_id: uuid.UUID
    confirmed_at: Optional[datetime] = None


@dataclass(frozen=True)
class SalesOrderReserved(EventPayload):
    order_id: uuid.UUID
    pallet_id: uuid.UUID
    quantity_units: float
    pallet_code: Optional[str] = None
    product_sku: Optional[str] = None
    grade: Optional[str] = None


@dataclass(frozen=True)
class SalesOrderReservationReleased(EventPayload):
    order_id: uuid.UUID
    pallet_id: uuid.UUID
    quantity_units: float
    pallet_code: Optional[str] = None


@dataclass(frozen=True)
class SalesOrderCancelled(EventPayload):
    order_id: uuid.UUID
    reason: Optional[str] = None
    cancelled_at: Optional[datetime] = None


@dataclass(frozen=True)
class SalesOrderFulfilled(EventPayload):
    order_id: uuid.UUID
    shipped_units: float
    fulfilled_at: Optional[datetime] = None


SALES_EVENT_PAYLOADS = {
    SALES_ORDER_CREATED: SalesOrderCreated,
    SALES_ORDER_LINE_ADDED: SalesOrderLineAdded,
    SALES_ORDER_LINE_REMOVED: SalesOrderLineRemoved,
    SALES_ORDER_CONFIRMED: SalesOrderConfirmed,
    SALES_ORDER_RESERVED: SalesOrderReserved,
    SALES_ORDER_RESERVATION_RELEASED: SalesOrderReservationReleased,
    SALES_ORDER_CANCELLED: SalesOrderCancelled,
    SALES_ORDER_FULFILLED: SalesOrderFulfilled,
}


def register_sales_event_types(event_type_registry) -> None:
    for event_type in sorted(SALES_EVENT_PAYLOADS):
        event_type_registry.register(
            event_type,
            SALES_EVENT_PAYLOADS[event_type],
            AggregateType.SALES_ORDER,
        )
