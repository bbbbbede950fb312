"""
Brickflow Kiln Engine — Policies
=================================
Kiln batch lifecycle and the dry load → kiln edge.

A dry load offers (inputs − scrap − units already fed to kilns), and
only after DRY_LOAD_COMPLETED; before that its output is unknown.
"""

from __future__ import annotations

from core.availability.calculator import AvailabilityEdge, Term
from core.events.envelope import AggregateType
from core.lifecycle.machine import Activity
from core.lifecycle.standard import ACTIVE, OPEN_STATUSES, PAUSED, run_lifecycle
from engines.dry_yard.events import DRY_INPUT_ADDED, DRY_LOAD_COMPLETED, DRY_SCRAP_RECORDED
from engines.kiln.events import KILN_INPUT_ADDED

KILN_BATCH_LIFECYCLE = run_lifecycle(
    AggregateType.KILN_BATCH,
    "Kiln batch",
    activities=(
        Activity("add_input", OPEN_STATUSES,
                 message="Cannot add input to a closed batch."),
        Activity("record_zone_temp", {ACTIVE, PAUSED}),
        Activity("record_fuel_usage", {ACTIVE, PAUSED}),
        Activity("record_output", {ACTIVE},
                 message="Output can only be recorded on active batches."),
    ),
    edges=("dry_to_kiln", "kiln_to_packing"),
    messages={
        "start": "Batch already closed or started.",
        "pause": "Only active batches can be paused.",
        "resume": "Only paused batches can be resumed.",
    },
)

DRY_TO_KILN = AvailabilityEdge(
    name="dry_to_kiln",
    upstream=AggregateType.DRY_LOAD,
    produced=(
        Term(AggregateType.DRY_LOAD, DRY_INPUT_ADDED, "quantityUnits"),
    ),
    consumed=(
        Term(AggregateType.DRY_LOAD, DRY_SCRAP_RECORDED, "scrapUnits"),
        Term(AggregateType.KILN_BATCH, KILN_INPUT_ADDED, "quantityUnits",
             link_field="dryLoadId"),
    ),
    gate=DRY_LOAD_COMPLETED,
    unit="units",
)

DRY_LOAD_NOT_COMPLETED = "Dry load must be completed before feeding kiln."
INSUFFICIENT_DRY = "Dry load only has {available:.0f} units available."
