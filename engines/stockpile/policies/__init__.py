"""
Brickflow Stockpile Engine — Policies
======================================
Lifecycle table and the stockpile → mixing availability edge.
"""

from __future__ import annotations

from core.availability.calculator import AvailabilityEdge, Term
from core.events.envelope import AggregateType
from core.lifecycle.machine import Activity, AggregateConfig
from engines.stockpile.events import (
    STOCKPILE_ADJUSTED_IN,
    STOCKPILE_ADJUSTED_OUT,
    STOCKPILE_RECEIPT_RECORDED,
    STOCKPILE_TRANSFERRED_IN,
    STOCKPILE_TRANSFERRED_OUT,
)

STOCKPILE_ACTIVE = "active"

STOCKPILE_LIFECYCLE = AggregateConfig(
    aggregate_type=AggregateType.STOCKPILE,
    label="Stockpile",
    initial_status=STOCKPILE_ACTIVE,
    terminal=frozenset(),
    transitions=(),
    activities=(
        Activity("record_receipt", {STOCKPILE_ACTIVE}),
        Activity("transfer_out", {STOCKPILE_ACTIVE}),
        Activity("transfer_in", {STOCKPILE_ACTIVE}),
        Activity("adjust", {STOCKPILE_ACTIVE}),
        Activity("take_sample", {STOCKPILE_ACTIVE}),
        Activity("record_quality", {STOCKPILE_ACTIVE}),
    ),
    edges=("stockpile_to_mixing",),
)


def _own(event_type: str) -> Term:
    return Term(AggregateType.STOCKPILE, event_type, "quantityTonnes")


STOCKPILE_TO_MIXING = AvailabilityEdge(
    name="stockpile_to_mixing",
    upstream=AggregateType.STOCKPILE,
    produced=(
        _own(STOCKPILE_RECEIPT_RECORDED),
        _own(STOCKPILE_TRANSFERRED_IN),
        _own(STOCKPILE_ADJUSTED_IN),
    ),
    consumed=(
        _own(STOCKPILE_TRANSFERRED_OUT),
        _own(STOCKPILE_ADJUSTED_OUT),
    ),
    unit="t",
)

INSUFFICIENT_STOCKPILE = (
    "Insufficient stockpile inventory. "
    "Available {available:.2f} t, requested {requested:.2f} t."
)
