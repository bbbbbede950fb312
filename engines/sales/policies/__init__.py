"""
Brickflow Sales Engine — Policies
==================================
Sales order lifecycle, price selection and the consumer side of the
reservation protocol.

    draft → confirmed → fulfilled
    cancelled from draft or confirmed

Confirm and cancel are idempotent: repeating them is a no-op.
"""

from __future__ import annotations

from datetime import datetime
from typing import Iterable, Mapping, Optional

from core.events.envelope import AggregateType
from core.lifecycle.machine import Activity, AggregateConfig, Transition
from core.reservations.protocol import ConsumerBinding, ReservationLine
from engines.sales.events import (
    SALES_ORDER_RESERVATION_RELEASED,
    SALES_ORDER_RESERVED,
    SalesOrderReservationReleased,
    SalesOrderReserved,
)

ORDER_DRAFT = "draft"
ORDER_CONFIRMED = "confirmed"
ORDER_FULFILLED = "fulfilled"
ORDER_CANCELLED = "cancelled"

ORDER_MUTABLE = frozenset({ORDER_DRAFT, ORDER_CONFIRMED})

MASTER_ACTIVE = "active"
MASTER_INACTIVE = "inactive"
PRODUCT_STATUSES = frozenset({MASTER_ACTIVE, MASTER_INACTIVE})

_LOCKED = {
    ORDER_CANCELLED: "Order is cancelled.",
    ORDER_FULFILLED: "Order already fulfilled.",
}

SALES_ORDER_LIFECYCLE = AggregateConfig(
    aggregate_type=AggregateType.SALES_ORDER,
    label="Sales order",
    initial_status=ORDER_DRAFT,
    terminal=frozenset({ORDER_FULFILLED, ORDER_CANCELLED}),
    transitions=(
        Transition(
            "confirm", {ORDER_DRAFT}, ORDER_CONFIRMED,
            idempotent_from={ORDER_CONFIRMED},
            blocked={
                ORDER_CANCELLED: "Cannot confirm a cancelled order.",
                ORDER_FULFILLED: "Order already fulfilled.",
            },
        ),
        Transition(
            "fulfil", {ORDER_CONFIRMED}, ORDER_FULFILLED,
            stamp="completed_at",
            message="Only confirmed orders can be fulfilled.",
            blocked=_LOCKED,
        ),
        Transition(
            "cancel", ORDER_MUTABLE, ORDER_CANCELLED,
            idempotent_from={ORDER_CANCELLED},
            blocked={ORDER_FULFILLED: "Order already fulfilled."},
        ),
    ),
    activities=(
        Activity("add_line", ORDER_MUTABLE, blocked=_LOCKED),
        Activity("remove_line", ORDER_MUTABLE, blocked=_LOCKED),
    ),
    edges=("pallet_inventory",),
)


# ══════════════════════════════════════════════════════════════
# RESERVATION PROTOCOL: CONSUMER SIDE
# ══════════════════════════════════════════════════════════════

def _reserved(line: ReservationLine) -> SalesOrderReserved:
    return SalesOrderReserved(
        order_id=line.consumer_id,
        pallet_id=line.pallet_id,
        quantity_units=line.quantity,
        pallet_code=line.pallet_code,
        product_sku=line.product_sku,
        grade=line.grade,
    )


def _released(line: ReservationLine) -> SalesOrderReservationReleased:
    return SalesOrderReservationReleased(
        order_id=line.consumer_id,
        pallet_id=line.pallet_id,
        quantity_units=line.quantity,
        pallet_code=line.pallet_code,
    )


SALES_ORDER_BINDING = ConsumerBinding(
    aggregate_type=AggregateType.SALES_ORDER,
    label="Sales order",
    open_statuses=ORDER_MUTABLE,
    reserved_event=SALES_ORDER_RESERVED,
    released_event=SALES_ORDER_RESERVATION_RELEASED,
    reserved=_reserved,
    released=_released,
)


# ══════════════════════════════════════════════════════════════
# PRICING
# ══════════════════════════════════════════════════════════════

def current_price(
    prices: Iterable[Mapping], now: datetime,
) -> Optional[Mapping]:
    """
    Latest price whose ``effectiveFrom`` is not in the future.
    Ties go to the price recorded last.
    """
    best = None
    best_from = None
    for price in prices:
        effective_from = datetime.fromisoformat(price["effectiveFrom"])
        if effective_from > now:
            continue
        if best_from is None or effective_from >= best_from:
            best, best_from = price, effective_from
    return best


NO_ACTIVE_PRICE = "No active price configured for this product."
PRODUCT_INACTIVE = "Product is inactive."
NOT_FULLY_SHIPPED = "Order cannot be fulfilled: {shipped:.0f} of {ordered:.0f} units shipped."
