"""
Brickflow Dispatch Engine — Policies
=====================================
Shipment lifecycle and the consumer side of the reservation protocol.

    planned → picking → weigh_in → weigh_out → dispatched
    cancelled from any status except dispatched

The weighbridge may be re-read (weigh_in → weigh_in). Picks may change
until the shipment is dispatched or cancelled.
"""

from __future__ import annotations

from core.events.envelope import AggregateType
from core.lifecycle.machine import Activity, AggregateConfig, Transition
from core.reservations.protocol import ConsumerBinding, ReservationLine
from engines.dispatch.events import (
    SHIPMENT_PICK_ADDED,
    SHIPMENT_PICK_REMOVED,
    ShipmentPickAdded,
    ShipmentPickRemoved,
)

SHIPMENT_PLANNED = "planned"
SHIPMENT_PICKING = "picking"
SHIPMENT_WEIGH_IN = "weigh_in"
SHIPMENT_WEIGH_OUT = "weigh_out"
SHIPMENT_DISPATCHED = "dispatched"
SHIPMENT_CANCELLED = "cancelled"

SHIPMENT_MUTABLE = frozenset({
    SHIPMENT_PLANNED, SHIPMENT_PICKING, SHIPMENT_WEIGH_IN, SHIPMENT_WEIGH_OUT,
})

_LOCKED = {
    SHIPMENT_DISPATCHED: "Shipment already dispatched.",
    SHIPMENT_CANCELLED: "Shipment is cancelled.",
}

SHIPMENT_LIFECYCLE = AggregateConfig(
    aggregate_type=AggregateType.SHIPMENT,
    label="Shipment",
    initial_status=SHIPMENT_PLANNED,
    terminal=frozenset({SHIPMENT_DISPATCHED, SHIPMENT_CANCELLED}),
    transitions=(
        Transition(
            "create_picklist", {SHIPMENT_PLANNED}, SHIPMENT_PICKING,
            idempotent_from={SHIPMENT_PICKING},
            message="Picklist can only be created for planned shipments.",
            blocked=_LOCKED,
        ),
        Transition(
            "weigh_in", {SHIPMENT_PLANNED, SHIPMENT_PICKING, SHIPMENT_WEIGH_IN},
            SHIPMENT_WEIGH_IN,
            message="Shipment has already been weighed out.",
            blocked=_LOCKED,
        ),
        Transition(
            "weigh_out", {SHIPMENT_WEIGH_IN, SHIPMENT_WEIGH_OUT}, SHIPMENT_WEIGH_OUT,
            message="Record weighbridge in before weighing out.",
            blocked=_LOCKED,
        ),
        Transition(
            "dispatch", SHIPMENT_MUTABLE, SHIPMENT_DISPATCHED,
            stamp="completed_at",
            blocked=_LOCKED,
        ),
        Transition(
            "cancel", SHIPMENT_MUTABLE, SHIPMENT_CANCELLED,
            idempotent_from={SHIPMENT_CANCELLED},
            blocked={SHIPMENT_DISPATCHED: "Cannot cancel a dispatched shipment."},
        ),
    ),
    activities=(
        Activity("set_carrier", SHIPMENT_MUTABLE, blocked=_LOCKED),
        Activity("set_address", SHIPMENT_MUTABLE, blocked=_LOCKED),
        Activity("add_pick", SHIPMENT_MUTABLE, blocked=_LOCKED),
        Activity("remove_pick", SHIPMENT_MUTABLE, blocked=_LOCKED),
    ),
    edges=("pallet_inventory",),
)


# ══════════════════════════════════════════════════════════════
# RESERVATION PROTOCOL: CONSUMER SIDE
# ══════════════════════════════════════════════════════════════

def _pick_added(line: ReservationLine) -> ShipmentPickAdded:
    return ShipmentPickAdded(
        shipment_id=line.consumer_id,
        pallet_id=line.pallet_id,
        quantity_units=line.quantity,
        pallet_code=line.pallet_code,
        product_sku=line.product_sku,
        grade=line.grade,
        order_id=line.order_id,
    )


def _pick_removed(line: ReservationLine) -> ShipmentPickRemoved:
    return ShipmentPickRemoved(
        shipment_id=line.consumer_id,
        pallet_id=line.pallet_id,
        quantity_units=line.quantity,
        pallet_code=line.pallet_code,
        order_id=line.order_id,
    )


SHIPMENT_BINDING = ConsumerBinding(
    aggregate_type=AggregateType.SHIPMENT,
    label="Shipment",
    open_statuses=SHIPMENT_MUTABLE,
    reserved_event=SHIPMENT_PICK_ADDED,
    released_event=SHIPMENT_PICK_REMOVED,
    reserved=_pick_added,
    released=_pick_removed,
)

NO_PICKED_UNITS = "Shipment has no picked units to dispatch."
PICK_REMOVE_EXCEEDS = (
    "Cannot remove {requested:.0f} units, only {picked:.0f} picked from this pallet."
)
