"""
Brickflow Packing Engine — Application Service
===============================================
Pack locations, pallets and pallet reservations.

add_input order:
    pallet exists → pallet open → kiln batch exists →
    pallet capacity → kiln availability

Reserve / release for sales orders go through the shared
ReservationProtocol; the sales order is the consumer.
"""

from __future__ import annotations

import logging
import uuid

from core.availability.calculator import Availability
from core.availability.guards import QUANTITY_EPSILON
from core.commands.base import Command
from core.commands.outcomes import ExecutionResult
from core.context.actor_context import ActorContext
from core.engines.service import PipelineService
from core.events.envelope import AggregateType, SnapshotKind
from core.guards.errors import InsufficientAvailability, NotFoundError
from core.lifecycle.machine import LifecycleMachine
from core.reservations.protocol import ReservationProtocol
from engines.kiln.events import register_kiln_event_types
from engines.packing.commands import (
    PACK_ADD_INPUT_REQUEST,
    PACK_CANCEL_REQUEST,
    PACK_CLOSE_REQUEST,
    PACK_GRADE_REQUEST,
    PACK_LOCATION_CREATE_REQUEST,
    PACK_MOVE_REQUEST,
    PACK_PALLET_CREATE_REQUEST,
    PACK_PRINT_LABEL_REQUEST,
    PACK_RELEASE_REQUEST,
    PACK_RESERVE_REQUEST,
    PACK_SCRAP_REQUEST,
)
from engines.packing.events import (
    PackInputAdded,
    PackLabelPrinted,
    PackPalletCancelled,
    PackPalletClosed,
    PackPalletCreated,
    PackPalletGraded,
    PackPalletMoved,
    PackScrapRecorded,
    register_packing_event_types,
)
from engines.packing.policies import (
    INSUFFICIENT_KILN,
    INSUFFICIENT_PALLET,
    KILN_TO_PACKING,
    LOCATION_ACTIVE,
    PALLET_BINDING,
    PALLET_CAPACITY_EXCEEDED,
    PALLET_INVENTORY,
    PALLET_LIFECYCLE,
    PALLET_OPEN,
    PALLET_UNITS,
)
from engines.sales.events import register_sales_event_types
from engines.sales.policies import SALES_ORDER_BINDING

logger = logging.getLogger("brickflow.packing")


class PackingService(PipelineService):
    engine = "packing"

    def __init__(self, *, reservations: ReservationProtocol, **deps):
        self._machine = LifecycleMachine(PALLET_LIFECYCLE)
        self.reservations = reservations
        reservations.bind_inventory(PALLET_BINDING)
        reservations.bind_consumer(SALES_ORDER_BINDING)
        super().__init__(**deps)

    def _register_event_types(self, registry) -> None:
        register_packing_event_types(registry)
        register_kiln_event_types(registry)
        register_sales_event_types(registry)

    def _register_edges(self, availability) -> None:
        availability.register(KILN_TO_PACKING)
        availability.register(PALLET_UNITS)
        availability.register(PALLET_INVENTORY)

    def _command_handlers(self):
        return {
            PACK_LOCATION_CREATE_REQUEST: self._create_location,
            PACK_PALLET_CREATE_REQUEST: self._create_pallet,
            PACK_ADD_INPUT_REQUEST: self._add_input,
            PACK_GRADE_REQUEST: self._grade,
            PACK_MOVE_REQUEST: self._move,
            PACK_PRINT_LABEL_REQUEST: self._print_label,
            PACK_RESERVE_REQUEST: self._reserve,
            PACK_RELEASE_REQUEST: self._release,
            PACK_SCRAP_REQUEST: self._record_scrap,
            PACK_CLOSE_REQUEST: self._close,
            PACK_CANCEL_REQUEST: self._cancel,
        }

    # ══════════════════════════════════════════════════════════
    # QUERIES
    # ══════════════════════════════════════════════════════════

    def available(self, context: ActorContext, pallet_id: uuid.UUID) -> Availability:
        """Units free to reserve on a pallet."""
        return self._pallet_edge(context, PALLET_INVENTORY.name, pallet_id)

    def units_on_pallet(self, context: ActorContext, pallet_id: uuid.UUID) -> Availability:
        """Physical units on a pallet, reserved or not."""
        return self._pallet_edge(context, PALLET_UNITS.name, pallet_id)

    def kiln_available(self, context: ActorContext, batch_id: uuid.UUID) -> Availability:
        tenant_id = context.require_attribution()
        if self.store.snapshots.get(tenant_id, AggregateType.KILN_BATCH, batch_id) is None:
            raise NotFoundError("Kiln batch not found.", rule="tenant_scope")
        return self.availability.available(KILN_TO_PACKING.name, tenant_id, batch_id)

    def _pallet_edge(self, context, edge, pallet_id):
        tenant_id = context.require_attribution()
        if self.store.snapshots.get(tenant_id, AggregateType.PALLET, pallet_id) is None:
            raise NotFoundError("Pallet not found.", rule="tenant_scope")
        return self.availability.available(edge, tenant_id, pallet_id)

    # ══════════════════════════════════════════════════════════
    # LOCATIONS (master data)
    # ══════════════════════════════════════════════════════════

    def _create_location(self, command: Command) -> ExecutionResult:
        request = command.request
        batch = self._batch(command)
        with self.store.atomic():
            self._require_new_code(
                command, SnapshotKind.PACK_LOCATION, request.code, "Location",
            )
            location = self._new_snapshot(
                command, SnapshotKind.PACK_LOCATION, request.code, LOCATION_ACTIVE,
                location_type=request.location_type,
                capacity_pallets=request.capacity_pallets,
            )
        return batch.result(location.aggregate_id, location.status)

    # ══════════════════════════════════════════════════════════
    # PALLETS
    # ══════════════════════════════════════════════════════════

    def _create_pallet(self, command: Command) -> ExecutionResult:
        request = command.request
        batch = self._batch(command)
        with self.store.atomic():
            if request.location_id is not None:
                self._load(
                    command, SnapshotKind.PACK_LOCATION, request.location_id, "Location",
                )
            self._require_new_code(command, AggregateType.PALLET, request.code, "Pallet")
            pallet = self._new_snapshot(
                command, AggregateType.PALLET, request.code, PALLET_OPEN,
                product_sku=request.product_sku,
                grade=request.grade,
                capacity_units=request.capacity_units,
                location_id=request.location_id,
            )
            batch.emit(
                AggregateType.PALLET,
                pallet.aggregate_id,
                PackPalletCreated(
                    pallet_id=pallet.aggregate_id,
                    pallet_code=pallet.code,
                    product_sku=request.product_sku,
                    grade=request.grade,
                    capacity_units=request.capacity_units,
                    location_id=request.location_id,
                ),
            )
        return batch.result(pallet.aggregate_id, pallet.status)

    def _add_input(self, command: Command) -> ExecutionResult:
        request = command.request
        batch = self._batch(command)
        with self.store.atomic():
            pallet = self._load(
                command, AggregateType.PALLET, request.pallet_id, "Pallet",
                for_update=True,
            )
            self._machine.require_activity(pallet.status, "add_input")
            kiln = self._load(
                command, AggregateType.KILN_BATCH, request.kiln_batch_id, "Kiln batch",
                for_update=True,
            )

            capacity = pallet.attr("capacity_units")
            if capacity is not None:
                on_pallet = self.availability.available(
                    PALLET_UNITS.name, command.tenant_id, pallet.aggregate_id,
                ).or_zero()
                _require_units(
                    float(capacity) - on_pallet,
                    request.quantity_units,
                    PALLET_CAPACITY_EXCEEDED,
                    code=pallet.code,
                    rule="pallet.capacity",
                )

            _require_units(
                self.availability.available(
                    KILN_TO_PACKING.name, command.tenant_id, kiln.aggregate_id,
                ).or_zero(),
                request.quantity_units,
                INSUFFICIENT_KILN,
                code=kiln.code,
                rule="kiln_batch.availability",
            )

            batch.emit(
                AggregateType.PALLET,
                pallet.aggregate_id,
                PackInputAdded(
                    pallet_id=pallet.aggregate_id,
                    pallet_code=pallet.code,
                    kiln_batch_id=kiln.aggregate_id,
                    kiln_batch_code=kiln.code,
                    quantity_units=request.quantity_units,
                    reference=request.reference,
                ),
            )
        return batch.result(pallet.aggregate_id, pallet.status)

    def _grade(self, command: Command) -> ExecutionResult:
        request = command.request
        batch = self._batch(command)
        with self.store.atomic():
            pallet = self._load(
                command, AggregateType.PALLET, request.pallet_id, "Pallet",
                for_update=True,
            )
            self._machine.require_activity(pallet.status, "grade")
            previous = pallet.attr("grade")
            self._update(pallet, grade=request.grade)
            batch.emit(
                AggregateType.PALLET,
                pallet.aggregate_id,
                PackPalletGraded(
                    pallet_id=pallet.aggregate_id,
                    pallet_code=pallet.code,
                    grade=request.grade,
                    previous_grade=previous,
                ),
            )
        return batch.result(pallet.aggregate_id, pallet.status)

    def _move(self, command: Command) -> ExecutionResult:
        request = command.request
        batch = self._batch(command)
        with self.store.atomic():
            pallet = self._load(
                command, AggregateType.PALLET, request.pallet_id, "Pallet",
                for_update=True,
            )
            self._machine.require_activity(pallet.status, "move")
            destination = self._load(
                command, SnapshotKind.PACK_LOCATION, request.to_location_id, "Location",
            )
            previous = pallet.attr("location_id")
            self._update(pallet, location_id=destination.aggregate_id)
            batch.emit(
                AggregateType.PALLET,
                pallet.aggregate_id,
                PackPalletMoved(
                    pallet_id=pallet.aggregate_id,
                    pallet_code=pallet.code,
                    to_location_id=destination.aggregate_id,
                    from_location_id=uuid.UUID(previous) if previous else None,
                ),
            )
        return batch.result(pallet.aggregate_id, pallet.status)

    def _print_label(self, command: Command) -> ExecutionResult:
        request = command.request
        return self._activity(
            command, self._machine, request.pallet_id, "print_label",
            lambda pallet: PackLabelPrinted(
                pallet_id=pallet.aggregate_id,
                pallet_code=pallet.code,
                label_type=request.label_type,
            ),
        )

    def _record_scrap(self, command: Command) -> ExecutionResult:
        request = command.request
        batch = self._batch(command)
        with self.store.atomic():
            pallet = self._load(
                command, AggregateType.PALLET, request.pallet_id, "Pallet",
                for_update=True,
            )
            self._machine.require_activity(pallet.status, "record_scrap")
            _require_units(
                self.availability.available(
                    PALLET_INVENTORY.name, command.tenant_id, pallet.aggregate_id,
                ).or_zero(),
                request.scrap_units,
                INSUFFICIENT_PALLET,
                code=pallet.code,
                rule="pallet.scrap_bound",
            )
            batch.emit(
                AggregateType.PALLET,
                pallet.aggregate_id,
                PackScrapRecorded(
                    pallet_id=pallet.aggregate_id,
                    pallet_code=pallet.code,
                    scrap_units=request.scrap_units,
                    reason=request.reason,
                ),
            )
        return batch.result(pallet.aggregate_id, pallet.status)

    def _close(self, command: Command) -> ExecutionResult:
        return self._transition(
            command, self._machine, command.request.pallet_id, "close",
            lambda pallet: PackPalletClosed(
                pallet_id=pallet.aggregate_id,
                pallet_code=pallet.code,
                closed_at=pallet.completed_at,
            ),
        )

    def _cancel(self, command: Command) -> ExecutionResult:
        request = command.request
        return self._transition(
            command, self._machine, request.pallet_id, "cancel",
            lambda pallet: PackPalletCancelled(
                pallet_id=pallet.aggregate_id,
                pallet_code=pallet.code,
                reason=request.reason,
            ),
        )

    # ══════════════════════════════════════════════════════════
    # RESERVATIONS
    # ══════════════════════════════════════════════════════════

    def _reserve(self, command: Command) -> ExecutionResult:
        request = command.request
        batch = self._batch(command)
        with self.store.atomic():
            order = self._load(
                command, AggregateType.SALES_ORDER, request.order_id, "Sales order",
                for_update=True,
            )
            line = self.reservations.reserve(
                batch,
                consumer=order,
                pallet_id=request.pallet_id,
                quantity=request.quantity_units,
                correlation_id=batch.correlation_id,
                order_id=order.aggregate_id,
            )
            remaining = self.availability.available(
                PALLET_INVENTORY.name, command.tenant_id, request.pallet_id,
            )
        return batch.result(
            request.pallet_id,
            PALLET_OPEN,
            totals={
                "reservation_id": str(line.correlation_id),
                "available_units": remaining.or_zero(),
            },
        )

    def _release(self, command: Command) -> ExecutionResult:
        request = command.request
        batch = self._batch(command)
        with self.store.atomic():
            order = self._load(
                command, AggregateType.SALES_ORDER, request.order_id, "Sales order",
                for_update=True,
            )
            pallet = self._load(command, AggregateType.PALLET, request.pallet_id, "Pallet")
            released = self.reservations.release(
                batch,
                consumer=order,
                pallet_id=pallet.aggregate_id,
                quantity=request.quantity_units,
                correlation_id=request.correlation_id,
            )
        logger.info(
            "Released %s units on pallet %s from order %s in %d slice(s)",
            request.quantity_units, pallet.code, order.code, len(released),
        )
        return batch.result(pallet.aggregate_id, pallet.status)


def _require_units(available, requested, message, *, code, rule) -> None:
    """Bound check whose message also names the upstream code."""
    available = max(0.0, available)
    if requested > available + QUANTITY_EPSILON:
        raise InsufficientAvailability(
            message.format(code=code, available=available),
            available=available,
            requested=requested,
            rule=rule,
        )
