"""
Brickflow Mixing Engine — Policies
===================================
Mix batch lifecycle. Components may be added or removed while the
batch is open; output only counts for crushing once completed.
"""

from __future__ import annotations

from core.events.envelope import AggregateType
from core.lifecycle.machine import Activity
from core.lifecycle.standard import OPEN_STATUSES, run_lifecycle

MIX_BATCH_LIFECYCLE = run_lifecycle(
    AggregateType.MIX_BATCH,
    "Mix batch",
    activities=(
        Activity("add_component", OPEN_STATUSES,
                 message="Components can only be added to open batches."),
        Activity("remove_component", OPEN_STATUSES,
                 message="Components can only be removed from open batches."),
    ),
    edges=("stockpile_to_mixing", "mix_to_crushing"),
    messages={
        "start": "Only planned batches can be started.",
        "pause": "Only active batches can be paused.",
        "resume": "Only paused batches can be resumed.",
        "complete": "Only active batches can be completed.",
    },
)

COMPONENT_NOT_IN_BATCH = (
    "Only {available:.2f} t from this stockpile is in the batch."
)
