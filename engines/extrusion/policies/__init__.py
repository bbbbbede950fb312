"""
Brickflow Extrusion Engine — Policies
======================================
Extrusion run lifecycle and the crushing → extrusion edge.
"""

from __future__ import annotations

from core.availability.calculator import AvailabilityEdge, Term
from core.events.envelope import AggregateType
from core.lifecycle.machine import Activity
from core.lifecycle.standard import ACTIVE, OPEN_STATUSES, PAUSED, run_lifecycle
from engines.crushing.events import CRUSH_RUN_OUTPUT_RECORDED
from engines.extrusion.events import EXTRUSION_INPUT_ADDED

EXTRUSION_RUN_LIFECYCLE = run_lifecycle(
    AggregateType.EXTRUSION_RUN,
    "Extrusion run",
    activities=(
        Activity("add_input", OPEN_STATUSES),
        Activity("record_output", {ACTIVE},
                 message="Output can only be recorded on active runs."),
        Activity("record_scrap", {ACTIVE, PAUSED}),
        Activity("change_die", OPEN_STATUSES),
    ),
    edges=("crush_to_extrusion", "extrusion_to_dry"),
)

CRUSH_TO_EXTRUSION = AvailabilityEdge(
    name="crush_to_extrusion",
    upstream=AggregateType.CRUSH_RUN,
    produced=(
        Term(AggregateType.CRUSH_RUN, CRUSH_RUN_OUTPUT_RECORDED, "outputTonnes"),
    ),
    consumed=(
        Term(AggregateType.EXTRUSION_RUN, EXTRUSION_INPUT_ADDED, "quantityTonnes",
             link_field="crushRunId"),
    ),
    unit="t",
)

CRUSH_NOT_PRODUCED = "Crushing run has not produced output yet."
INSUFFICIENT_CRUSHED = "Insufficient crushed output. {available:.2f} t remaining."
