"""
Brickflow Packing Engine — Policies
====================================
Pallet lifecycle, the kiln → packing edge, the two pallet edges and
the inventory side of the reservation protocol.

Pallet edges:
    pallet_units        physical units on the pallet
                        = inputs − scrap − dispatched
    pallet_inventory    units free to reserve
                        = inputs − scrap − reserved + released − dispatched

Dispatching a reservation emits a release and a units-dispatched event
together, so reserved units leave pallet_inventory exactly once.
"""

from __future__ import annotations

from core.availability.calculator import AvailabilityEdge, Term
from core.events.envelope import AggregateType
from core.lifecycle.machine import Activity, AggregateConfig, Transition
from core.reservations.protocol import InventoryBinding, ReservationLine
from engines.kiln.events import KILN_OUTPUT_RECORDED
from engines.packing.events import (
    PACK_INPUT_ADDED,
    PACK_PALLET_RESERVATION_RELEASED,
    PACK_PALLET_RESERVED,
    PACK_PALLET_UNITS_DISPATCHED,
    PACK_SCRAP_RECORDED,
    PackPalletReservationReleased,
    PackPalletReserved,
    PackPalletUnitsDispatched,
)

PALLET_OPEN = "open"
PALLET_CLOSED = "closed"
PALLET_CANCELLED = "cancelled"

LOCATION_ACTIVE = "active"

ONLY_OPEN = "This action is only allowed on open pallets."

PALLET_LIFECYCLE = AggregateConfig(
    aggregate_type=AggregateType.PALLET,
    label="Pallet",
    initial_status=PALLET_OPEN,
    terminal=frozenset({PALLET_CLOSED, PALLET_CANCELLED}),
    transitions=(
        Transition("close", {PALLET_OPEN}, PALLET_CLOSED,
                   stamp="completed_at", message=ONLY_OPEN),
        Transition("cancel", {PALLET_OPEN}, PALLET_CANCELLED, message=ONLY_OPEN),
    ),
    activities=(
        Activity("add_input", {PALLET_OPEN}, message=ONLY_OPEN),
        Activity("grade", {PALLET_OPEN}, message=ONLY_OPEN),
        Activity("move", {PALLET_OPEN}, message=ONLY_OPEN),
        Activity("record_scrap", {PALLET_OPEN}, message=ONLY_OPEN),
        Activity("print_label", {PALLET_OPEN, PALLET_CLOSED}),
    ),
    edges=("kiln_to_packing", "pallet_units", "pallet_inventory"),
)


# ══════════════════════════════════════════════════════════════
# EDGES
# ══════════════════════════════════════════════════════════════

def _own(event_type: str, quantity_field: str = "quantityUnits") -> Term:
    return Term(AggregateType.PALLET, event_type, quantity_field)


KILN_TO_PACKING = AvailabilityEdge(
    name="kiln_to_packing",
    upstream=AggregateType.KILN_BATCH,
    produced=(
        Term(AggregateType.KILN_BATCH, KILN_OUTPUT_RECORDED, "firedUnits"),
    ),
    consumed=(
        Term(AggregateType.PALLET, PACK_INPUT_ADDED, "quantityUnits",
             link_field="kilnBatchId"),
    ),
    unit="units",
)

PALLET_UNITS = AvailabilityEdge(
    name="pallet_units",
    upstream=AggregateType.PALLET,
    produced=(_own(PACK_INPUT_ADDED),),
    consumed=(
        _own(PACK_SCRAP_RECORDED, "scrapUnits"),
        _own(PACK_PALLET_UNITS_DISPATCHED),
    ),
    unit="units",
)

PALLET_INVENTORY = AvailabilityEdge(
    name="pallet_inventory",
    upstream=AggregateType.PALLET,
    produced=(_own(PACK_INPUT_ADDED),),
    consumed=(
        _own(PACK_SCRAP_RECORDED, "scrapUnits"),
        _own(PACK_PALLET_RESERVED),
        _own(PACK_PALLET_UNITS_DISPATCHED),
    ),
    restored=(_own(PACK_PALLET_RESERVATION_RELEASED),),
    unit="units",
)


# ══════════════════════════════════════════════════════════════
# RESERVATION PROTOCOL: INVENTORY SIDE
# ══════════════════════════════════════════════════════════════

def _reserved(line: ReservationLine) -> PackPalletReserved:
    return PackPalletReserved(
        pallet_id=line.pallet_id,
        pallet_code=line.pallet_code,
        quantity_units=line.quantity,
        consumer_type=line.consumer_type,
        consumer_id=line.consumer_id,
        order_id=line.order_id,
    )


def _released(line: ReservationLine) -> PackPalletReservationReleased:
    return PackPalletReservationReleased(
        pallet_id=line.pallet_id,
        pallet_code=line.pallet_code,
        quantity_units=line.quantity,
        consumer_type=line.consumer_type,
        consumer_id=line.consumer_id,
        order_id=line.order_id,
    )


def _dispatched(line: ReservationLine) -> PackPalletUnitsDispatched:
    return PackPalletUnitsDispatched(
        pallet_id=line.pallet_id,
        pallet_code=line.pallet_code,
        quantity_units=line.quantity,
        shipment_id=line.consumer_id,
        order_id=line.order_id,
    )


PALLET_BINDING = InventoryBinding(
    aggregate_type=AggregateType.PALLET,
    label="Pallet",
    edge=PALLET_INVENTORY.name,
    open_status=PALLET_OPEN,
    reserved=_reserved,
    released=_released,
    dispatched=_dispatched,
)

INSUFFICIENT_KILN = "Only {available:.0f} units available from kiln batch {code}."
PALLET_CAPACITY_EXCEEDED = "Pallet {code} capacity exceeded. Available: {available:.0f} units."
INSUFFICIENT_PALLET = "Only {available:.0f} units available on pallet {code}."
