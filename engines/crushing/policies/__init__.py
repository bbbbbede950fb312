"""
Brickflow Crushing Engine — Policies
=====================================
Crush run lifecycle and the mix batch → crushing availability edge.

Mix output is the ``outputTonnes`` of MIX_BATCH_COMPLETED; every
CRUSH_COMPONENT_ADDED naming the batch consumes from it. A batch that
has not completed has no known output.
"""

from __future__ import annotations

from core.availability.calculator import AvailabilityEdge, Term
from core.events.envelope import AggregateType
from core.lifecycle.machine import Activity
from core.lifecycle.standard import ACTIVE, OPEN_STATUSES, PAUSED, run_lifecycle
from engines.crushing.events import CRUSH_COMPONENT_ADDED
from engines.mixing.events import MIX_BATCH_COMPLETED

CRUSH_RUN_LIFECYCLE = run_lifecycle(
    AggregateType.CRUSH_RUN,
    "Crushing run",
    activities=(
        Activity("add_input", OPEN_STATUSES),
        Activity("log_downtime", {ACTIVE, PAUSED}),
        Activity("record_output", {ACTIVE},
                 message="Output can only be recorded on active runs."),
    ),
    edges=("mix_to_crushing", "crush_to_extrusion"),
    messages={
        "start": "Only planned runs can be started.",
        "complete": "Only active runs can be completed.",
    },
)

MIX_TO_CRUSHING = AvailabilityEdge(
    name="mix_to_crushing",
    upstream=AggregateType.MIX_BATCH,
    produced=(
        Term(AggregateType.MIX_BATCH, MIX_BATCH_COMPLETED, "outputTonnes"),
    ),
    consumed=(
        Term(AggregateType.CRUSH_RUN, CRUSH_COMPONENT_ADDED, "quantityTonnes",
             link_field="mixBatchId"),
    ),
    unit="t",
)

INSUFFICIENT_MIX = "Insufficient mix batch availability. {available:.2f} t remaining."
MIX_NOT_COMPLETED = "Only completed mix batches can supply crushing input."
