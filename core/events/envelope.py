"""
Brickflow Events — Envelope
============================
The stored shape of one event and the closed aggregate-type vocabulary.

The envelope never interprets payload meaning. Payloads are kept in
their wire form (a plain mapping) so availability calculators can sum
quantities without decoding every variant.
"""

from __future__ import annotations

import uuid
from dataclasses import dataclass, field
from datetime import datetime
from decimal import Decimal
from typing import Any, Mapping, Optional


class AggregateType:
    """Aggregate types that may appear on an event."""

    STOCKPILE = "stockpile"
    MIX_BATCH = "mix_batch"
    CRUSH_RUN = "crush_run"
    EXTRUSION_RUN = "extrusion_run"
    DRY_LOAD = "dry_load"
    KILN_BATCH = "kiln_batch"
    PALLET = "pallet"
    SHIPMENT = "shipment"
    SALES_ORDER = "sales_order"
    INVOICE = "invoice"
    PAYMENT = "payment"
    MINING_SHIFT = "mining_shift"
    ADMIN = "admin"

    ALL = frozenset({
        STOCKPILE, MIX_BATCH, CRUSH_RUN, EXTRUSION_RUN, DRY_LOAD,
        KILN_BATCH, PALLET, SHIPMENT, SALES_ORDER, INVOICE, PAYMENT,
        MINING_SHIFT, ADMIN,
    })


class SnapshotKind:
    """Master-data rows kept in the snapshot table without their own events."""

    MINING_VEHICLE = "mining_vehicle"
    DRY_RACK = "dry_rack"
    PACK_LOCATION = "pack_location"
    CUSTOMER = "customer"
    PRODUCT = "product"
    PAYMENT_APPLICATION = "payment_application"

    ALL = frozenset({
        MINING_VEHICLE, DRY_RACK, PACK_LOCATION, CUSTOMER, PRODUCT,
        PAYMENT_APPLICATION,
    })


@dataclass(frozen=True)
class EventRecord:
    """One immutable, tenant-scoped fact about an aggregate."""

    event_id: uuid.UUID
    tenant_id: uuid.UUID
    actor_id: str
    actor_role: Optional[str]
    aggregate_type: str
    aggregate_id: uuid.UUID
    event_type: str
    payload: Mapping[str, Any]
    source: str
    occurred_at: datetime
    correlation_id: Optional[uuid.UUID] = None
    causation_id: Optional[uuid.UUID] = None
    recorded_at: Optional[datetime] = field(default=None, compare=False)

    def quantity(self, key: str) -> float:
        """Numeric payload value; absent or null counts as zero."""
        value = self.payload.get(key)
        if value is None:
            return 0.0
        return float(value)

    def amount(self, key: str) -> Decimal:
        """Money payload value as an exact Decimal; absent counts as zero."""
        return Decimal(str(self.payload.get(key, 0) or 0))
