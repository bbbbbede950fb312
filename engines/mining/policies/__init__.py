"""
Brickflow Mining Engine — Policies
===================================
A shift starts ``active`` and ends ``completed``.

One active shift per operator and one per vehicle. Only the operator
who started a shift may end it or record loads on it; another
operator's shift reads as not found.
"""

from __future__ import annotations

from core.events.envelope import AggregateType
from core.lifecycle.machine import Activity, AggregateConfig, Transition
from core.lifecycle.standard import ACTIVE, COMPLETED

VEHICLE_ACTIVE = "active"
VEHICLE_MAINTENANCE = "maintenance"
VEHICLE_RETIRED = "retired"
VEHICLE_STATUSES = frozenset({VEHICLE_ACTIVE, VEHICLE_MAINTENANCE, VEHICLE_RETIRED})

SHIFT_NOT_ACTIVE = "Shift is not active."

MINING_SHIFT_LIFECYCLE = AggregateConfig(
    aggregate_type=AggregateType.MINING_SHIFT,
    label="Shift",
    initial_status=ACTIVE,
    terminal=frozenset({COMPLETED}),
    transitions=(
        Transition("end", {ACTIVE}, COMPLETED, stamp="completed_at",
                   message=SHIFT_NOT_ACTIVE),
    ),
    activities=(
        Activity("record_load", {ACTIVE}, message=SHIFT_NOT_ACTIVE),
    ),
)

VEHICLE_UNAVAILABLE = "Vehicle is not available for assignment."
OPERATOR_HAS_SHIFT = "You already have an active shift."
VEHICLE_ASSIGNED = "Vehicle currently assigned to {operator}."
