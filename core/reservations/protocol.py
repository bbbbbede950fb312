"""
Brickflow Reservations — Reserve/Release Protocol
==================================================
Links packed inventory (pallets) to the aggregates that consume it
(sales orders, shipments).

Every reservation is a PAIR of events sharing one correlation id:

    consumer side   SALES_ORDER_RESERVED | SHIPMENT_PICK_ADDED        (first)
    inventory side  PACK_PALLET_RESERVED                              (second)

Release is symmetric:

    consumer side   SALES_ORDER_RESERVATION_RELEASED | SHIPMENT_PICK_REMOVED
    inventory side  PACK_PALLET_RESERVATION_RELEASED

The correlation id IS the reservation identity. Outstanding amounts are
folded per correlation from the consumer's events, so a release always
carries the correlation of the reservation it frees.

Rules:
- reserve needs a consumer in one of its open statuses
- reserve needs an open pallet with enough live availability
- the pallet snapshot is locked for the check-then-act sequence
- release never frees more than is outstanding
- release_all / finalize_dispatch walk every outstanding reservation

Callers run every method inside ``store.atomic()``.
"""

from __future__ import annotations

import logging
import uuid
from dataclasses import dataclass, replace
from typing import Callable, Dict, FrozenSet, List, Optional, Protocol

from core.availability.guards import QUANTITY_EPSILON, require_available
from core.availability.service import AvailabilityService
from core.event_store.contracts import Snapshot, Store
from core.events.envelope import EventRecord
from core.events.payload import EventPayload
from core.guards.errors import (
    IllegalStateTransition,
    InsufficientAvailability,
    NotFoundError,
)

logger = logging.getLogger("brickflow.reservations")


# ══════════════════════════════════════════════════════════════
# RESERVATION LINE
# ══════════════════════════════════════════════════════════════

@dataclass(frozen=True)
class ReservationLine:
    """One reservation (or the slice of one being released)."""

    consumer_type: str
    consumer_id: uuid.UUID
    pallet_id: uuid.UUID
    quantity: float
    correlation_id: uuid.UUID
    pallet_code: Optional[str] = None
    product_sku: Optional[str] = None
    grade: Optional[str] = None
    order_id: Optional[uuid.UUID] = None


PayloadFactory = Callable[[ReservationLine], EventPayload]


# ══════════════════════════════════════════════════════════════
# BINDINGS
# ══════════════════════════════════════════════════════════════

@dataclass(frozen=True)
class InventoryBinding:
    aggregate_type: str
    label: str
    edge: str
    open_status: str
    reserved: PayloadFactory
    released: PayloadFactory
    dispatched: PayloadFactory


@dataclass(frozen=True)
class ConsumerBinding:
    aggregate_type: str
    label: str
    open_statuses: FrozenSet[str]
    reserved_event: str
    released_event: str
    reserved: PayloadFactory
    released: PayloadFactory


class EventEmitter(Protocol):
    def emit(
        self,
        aggregate_type: str,
        aggregate_id: uuid.UUID,
        payload: EventPayload,
        *,
        correlation_id: Optional[uuid.UUID] = None,
        causation_id: Optional[uuid.UUID] = None,
        required: bool = False,
    ) -> Optional[EventRecord]:
        ...


class UnboundReservationSide(LookupError):
    pass


# ══════════════════════════════════════════════════════════════
# PROTOCOL
# ══════════════════════════════════════════════════════════════

class ReservationProtocol:
    """
    Usage:
        protocol = ReservationProtocol(store=store, availability=availability)
        protocol.bind_inventory(PALLET_BINDING)
        protocol.bind_consumer(SALES_ORDER_BINDING)

        with store.atomic():
            line = protocol.reserve(batch, consumer=order, pallet_id=pid, quantity=500)
    """

    def __init__(self, *, store: Store, availability: AvailabilityService):
        self._store = store
        self._availability = availability
        self._inventory: Optional[InventoryBinding] = None
        self._consumers: Dict[str, ConsumerBinding] = {}

    # ── wiring ────────────────────────────────────────────────

    def bind_inventory(self, binding: InventoryBinding) -> None:
        self._inventory = binding

    def bind_consumer(self, binding: ConsumerBinding) -> None:
        self._consumers[binding.aggregate_type] = binding

    @property
    def inventory(self) -> InventoryBinding:
        if self._inventory is None:
            raise UnboundReservationSide("No inventory binding registered.")
        return self._inventory

    def consumer(self, aggregate_type: str) -> ConsumerBinding:
        binding = self._consumers.get(aggregate_type)
        if binding is None:
            raise UnboundReservationSide(
                f"No consumer binding for '{aggregate_type}'."
            )
        return binding

    # ── reads ─────────────────────────────────────────────────

    def outstanding(
        self,
        tenant_id: uuid.UUID,
        consumer_type: str,
        consumer_id: uuid.UUID,
        *,
        pallet_id: Optional[uuid.UUID] = None,
    ) -> List[ReservationLine]:
        """Open reservations of one consumer, oldest first."""
        binding = self.consumer(consumer_type)
        rows = self._store.events.list_events(
            tenant_id,
            aggregate_type=consumer_type,
            aggregate_id=consumer_id,
            event_types=[binding.reserved_event, binding.released_event],
        )

        lines: Dict[uuid.UUID, ReservationLine] = {}
        for row in rows:
            if row.correlation_id is None:
                continue
            quantity = row.quantity("quantityUnits")
            if row.event_type == binding.reserved_event:
                existing = lines.get(row.correlation_id)
                if existing is not None:
                    lines[row.correlation_id] = replace(
                        existing, quantity=existing.quantity + quantity
                    )
                    continue
                lines[row.correlation_id] = ReservationLine(
                    consumer_type=consumer_type,
                    consumer_id=consumer_id,
                    pallet_id=uuid.UUID(str(row.payload["palletId"])),
                    quantity=quantity,
                    correlation_id=row.correlation_id,
                    pallet_code=row.payload.get("palletCode"),
                    product_sku=row.payload.get("productSku"),
                    grade=row.payload.get("grade"),
                    order_id=_optional_uuid(row.payload.get("orderId")),
                )
            else:
                existing = lines.get(row.correlation_id)
                if existing is not None:
                    lines[row.correlation_id] = replace(
                        existing, quantity=existing.quantity - quantity
                    )

        result = [
            line for line in lines.values()
            if line.quantity > QUANTITY_EPSILON
        ]
        if pallet_id is not None:
            result = [line for line in result if line.pallet_id == pallet_id]
        return result

    def outstanding_units(
        self,
        tenant_id: uuid.UUID,
        consumer_type: str,
        consumer_id: uuid.UUID,
        *,
        pallet_id: Optional[uuid.UUID] = None,
    ) -> float:
        return sum(
            line.quantity for line in self.outstanding(
                tenant_id, consumer_type, consumer_id, pallet_id=pallet_id,
            )
        )

    # ── writes ────────────────────────────────────────────────

    def reserve(
        self,
        emitter: EventEmitter,
        *,
        consumer: Snapshot,
        pallet_id: uuid.UUID,
        quantity: float,
        correlation_id: Optional[uuid.UUID] = None,
        product_sku: Optional[str] = None,
        grade: Optional[str] = None,
        order_id: Optional[uuid.UUID] = None,
    ) -> ReservationLine:
        inventory = self.inventory
        binding = self.consumer(consumer.kind)
        if consumer.status not in binding.open_statuses:
            raise IllegalStateTransition(
                f"Cannot reserve units for {binding.label.lower()} "
                f"in status '{consumer.status}'.",
                current_status=consumer.status,
                action="reserve",
                rule=f"{consumer.kind}.reserve",
            )

        pallet = self._store.snapshots.get(
            consumer.tenant_id, inventory.aggregate_type, pallet_id, for_update=True,
        )
        if pallet is None:
            raise NotFoundError(f"{inventory.label} not found.", rule="tenant_scope")
        if pallet.status != inventory.open_status:
            raise IllegalStateTransition(
                f"Reservations allowed only on {inventory.open_status} "
                f"{inventory.label.lower()}s.",
                current_status=pallet.status,
                action="reserve",
                rule="reservation.open_inventory",
            )

        require_available(
            self._availability.available(inventory.edge, consumer.tenant_id, pallet_id),
            quantity,
            "Only {available:.0f} units available on "
            f"{inventory.label.lower()} {pallet.code}.",
            rule="reservation.availability",
        )

        line = ReservationLine(
            consumer_type=consumer.kind,
            consumer_id=consumer.aggregate_id,
            pallet_id=pallet_id,
            quantity=quantity,
            correlation_id=correlation_id or uuid.uuid4(),
            pallet_code=pallet.code,
            product_sku=product_sku or pallet.attr("product_sku"),
            grade=grade or pallet.attr("grade"),
            order_id=order_id,
        )
        self._emit_pair(emitter, binding.aggregate_type, binding.reserved(line),
                        inventory.reserved(line), line)
        logger.info(
            "Reserved %s units on %s %s for %s %s (correlation %s)",
            quantity, inventory.aggregate_type, pallet.code,
            consumer.kind, consumer.code, line.correlation_id,
        )
        return line

    def release(
        self,
        emitter: EventEmitter,
        *,
        consumer: Snapshot,
        pallet_id: uuid.UUID,
        quantity: float,
        correlation_id: Optional[uuid.UUID] = None,
    ) -> List[ReservationLine]:
        """
        Release ``quantity`` units. With a correlation id only that
        reservation is touched; otherwise the oldest reservations on the
        pallet are freed first.
        """
        binding = self.consumer(consumer.kind)
        open_lines = self.outstanding(
            consumer.tenant_id, consumer.kind, consumer.aggregate_id,
            pallet_id=pallet_id,
        )
        if correlation_id is not None:
            open_lines = [
                line for line in open_lines
                if line.correlation_id == correlation_id
            ]

        outstanding = sum(line.quantity for line in open_lines)
        if quantity > outstanding + QUANTITY_EPSILON:
            raise InsufficientAvailability(
                f"Only {outstanding:.0f} units reserved on this pallet.",
                available=outstanding,
                requested=quantity,
                rule="reservation.release_bound",
            )

        released = []
        remaining = quantity
        for line in open_lines:
            if remaining <= QUANTITY_EPSILON:
                break
            portion = min(line.quantity, remaining)
            piece = replace(line, quantity=portion)
            self._emit_pair(
                emitter, binding.aggregate_type, binding.released(piece),
                self.inventory.released(piece), piece,
            )
            released.append(piece)
            remaining -= portion
        return released

    def release_all(
        self, emitter: EventEmitter, *, consumer: Snapshot,
    ) -> List[ReservationLine]:
        """Emit one release pair per outstanding reservation."""
        binding = self.consumer(consumer.kind)
        lines = self.outstanding(consumer.tenant_id, consumer.kind, consumer.aggregate_id)
        for line in lines:
            self._emit_pair(
                emitter, binding.aggregate_type, binding.released(line),
                self.inventory.released(line), line,
            )
        if lines:
            logger.info(
                "Released %d reservation(s) of %s %s",
                len(lines), consumer.kind, consumer.code,
            )
        return lines

    def finalize_dispatch(
        self, emitter: EventEmitter, *, consumer: Snapshot,
    ) -> List[ReservationLine]:
        """
        Convert every outstanding reservation into shipped units:
        inventory-side release plus units-dispatched, both carrying the
        reservation's correlation id.
        """
        inventory = self.inventory
        lines = self.outstanding(consumer.tenant_id, consumer.kind, consumer.aggregate_id)
        for line in lines:
            release = emitter.emit(
                inventory.aggregate_type, line.pallet_id, inventory.released(line),
                correlation_id=line.correlation_id,
                required=True,
            )
            emitter.emit(
                inventory.aggregate_type, line.pallet_id, inventory.dispatched(line),
                correlation_id=line.correlation_id,
                causation_id=release.event_id,
                required=True,
            )
        return lines

    # ── internals ─────────────────────────────────────────────

    def _emit_pair(
        self,
        emitter: EventEmitter,
        consumer_type: str,
        consumer_payload: EventPayload,
        inventory_payload: EventPayload,
        line: ReservationLine,
    ) -> None:
        # both halves or neither: a lost half would strand units
        first = emitter.emit(
            consumer_type, line.consumer_id, consumer_payload,
            correlation_id=line.correlation_id,
            required=True,
        )
        emitter.emit(
            self.inventory.aggregate_type, line.pallet_id, inventory_payload,
            correlation_id=line.correlation_id,
            causation_id=first.event_id,
            required=True,
        )


def _optional_uuid(value) -> Optional[uuid.UUID]:
    if value in (None, ""):
        return None
    return uuid.UUID(str(value))
