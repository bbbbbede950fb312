"""
Brickflow Dry Yard Engine — Policies
=====================================
Dry load lifecycle, rack capacity messages and the extrusion → dry
edge.

Rack occupancy is the sum of (inputs − scrap) over every open load on
the rack. Completed and cancelled loads no longer occupy space.
"""

from __future__ import annotations

from core.availability.calculator import AvailabilityEdge, Term
from core.events.envelope import AggregateType
from core.lifecycle.machine import Activity
from core.lifecycle.standard import OPEN_STATUSES, run_lifecycle
from engines.dry_yard.events import DRY_INPUT_ADDED
from engines.extrusion.events import EXTRUSION_OUTPUT_RECORDED

RACK_ACTIVE = "active"

_CLOSED_LOAD = "Cannot {action} a completed or cancelled load."

DRY_LOAD_LIFECYCLE = run_lifecycle(
    AggregateType.DRY_LOAD,
    "Dry load",
    activities=(
        Activity("add_input", OPEN_STATUSES,
                 message="Cannot add inputs to a completed or cancelled load."),
        Activity("record_moisture", OPEN_STATUSES,
                 message=_CLOSED_LOAD.format(action="record moisture on")),
        Activity("move", OPEN_STATUSES,
                 message=_CLOSED_LOAD.format(action="move")),
        Activity("record_scrap", OPEN_STATUSES,
                 message=_CLOSED_LOAD.format(action="record scrap on")),
    ),
    edges=("extrusion_to_dry", "dry_to_kiln"),
    messages={"start": "Load already closed or started."},
)

EXTRUSION_TO_DRY = AvailabilityEdge(
    name="extrusion_to_dry",
    upstream=AggregateType.EXTRUSION_RUN,
    produced=(
        Term(AggregateType.EXTRUSION_RUN, EXTRUSION_OUTPUT_RECORDED, "outputUnits"),
    ),
    consumed=(
        Term(AggregateType.DRY_LOAD, DRY_INPUT_ADDED, "quantityUnits",
             link_field="runId"),
    ),
    unit="units",
)

RACK_REQUIRED = "Assign the load to a rack before adding inputs."
RACK_CAPACITY_EXCEEDED = "Rack {code} capacity exceeded. Available: {available:.0f} units."
RACK_CANNOT_ACCEPT = "Rack {code} cannot accept this load; insufficient capacity."
ALREADY_ON_RACK = "Load is already on the selected rack."
INSUFFICIENT_EXTRUSION = "Extrusion run only has {available:.0f} units available."
SCRAP_EXCEEDS_LOAD = "Only {available:.0f} units on this load."
