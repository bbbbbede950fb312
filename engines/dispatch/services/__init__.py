"""
Brickflow Dispatch Engine — Application Service
================================================
Shipment commands → snapshot + events.

Picks are reservations with the shipment as consumer. Finalizing a
shipment converts every outstanding pick into shipped pallet units;
cancelling releases every outstanding pick.
"""

from __future__ import annotations

import logging
import uuid
from typing import List

from core.availability.guards import QUANTITY_EPSILON
from core.commands.base import Command
from core.commands.outcomes import ExecutionResult
from core.context.actor_context import ActorContext
from core.engines.service import PipelineService
from core.events.envelope import AggregateType
from core.guards.errors import InsufficientAvailability, NotFoundError, ValidationError
from core.lifecycle.machine import LifecycleMachine
from core.reservations.protocol import ReservationLine, ReservationProtocol
from engines.dispatch.commands import (
    SHIPMENT_ADD_PICK_REQUEST,
    SHIPMENT_CANCEL_REQUEST,
    SHIPMENT_CREATE_REQUEST,
    SHIPMENT_FINALIZE_REQUEST,
    SHIPMENT_PICKLIST_REQUEST,
    SHIPMENT_REMOVE_PICK_REQUEST,
    SHIPMENT_SET_ADDRESS_REQUEST,
    SHIPMENT_SET_CARRIER_REQUEST,
    SHIPMENT_WEIGH_IN_REQUEST,
    SHIPMENT_WEIGH_OUT_REQUEST,
)
from engines.dispatch.events import (
    ShipmentAddressSet,
    ShipmentCancelled,
    ShipmentCarrierSet,
    ShipmentCreated,
    ShipmentDispatched,
    ShipmentPicklistCreated,
    ShipmentWeighbridgeIn,
    ShipmentWeighbridgeOut,
    register_dispatch_event_types,
)
from engines.dispatch.policies import (
    NO_PICKED_UNITS,
    PICK_REMOVE_EXCEEDS,
    SHIPMENT_BINDING,
    SHIPMENT_LIFECYCLE,
    SHIPMENT_PLANNED,
)
from engines.packing.events import register_packing_event_types
from engines.packing.policies import PALLET_BINDING, PALLET_INVENTORY

logger = logging.getLogger("brickflow.dispatch")


class DispatchService(PipelineService):
    engine = "dispatch"

    def __init__(self, *, reservations: ReservationProtocol, **deps):
        self._machine = LifecycleMachine(SHIPMENT_LIFECYCLE)
        self.reservations = reservations
        reservations.bind_inventory(PALLET_BINDING)
        reservations.bind_consumer(SHIPMENT_BINDING)
        super().__init__(**deps)

    def _register_event_types(self, registry) -> None:
        register_dispatch_event_types(registry)
        register_packing_event_types(registry)

    def _register_edges(self, availability) -> None:
        availability.register(PALLET_INVENTORY)

    def _command_handlers(self):
        return {
            SHIPMENT_CREATE_REQUEST: self._create,
            SHIPMENT_SET_CARRIER_REQUEST: self._set_carrier,
            SHIPMENT_SET_ADDRESS_REQUEST: self._set_address,
            SHIPMENT_PICKLIST_REQUEST: self._create_picklist,
            SHIPMENT_ADD_PICK_REQUEST: self._add_pick,
            SHIPMENT_REMOVE_PICK_REQUEST: self._remove_pick,
            SHIPMENT_WEIGH_IN_REQUEST: self._weigh_in,
            SHIPMENT_WEIGH_OUT_REQUEST: self._weigh_out,
            SHIPMENT_FINALIZE_REQUEST: self._finalize,
            SHIPMENT_CANCEL_REQUEST: self._cancel,
        }

    # ══════════════════════════════════════════════════════════
    # QUERIES
    # ══════════════════════════════════════════════════════════

    def picks(self, context: ActorContext, shipment_id: uuid.UUID) -> List[ReservationLine]:
        """Picked lines of a shipment; they stay listed once dispatched."""
        tenant_id = context.require_attribution()
        if self.store.snapshots.get(tenant_id, AggregateType.SHIPMENT, shipment_id) is None:
            raise NotFoundError("Shipment not found.", rule="tenant_scope")
        return self.reservations.outstanding(
            tenant_id, AggregateType.SHIPMENT, shipment_id,
        )

    # ══════════════════════════════════════════════════════════
    # HANDLERS
    # ══════════════════════════════════════════════════════════

    def _create(self, command: Command) -> ExecutionResult:
        request = command.request
        batch = self._batch(command)
        with self.store.atomic():
            self._require_new_code(command, AggregateType.SHIPMENT, request.code, "Shipment")
            shipment = self._new_snapshot(
                command, AggregateType.SHIPMENT, request.code, SHIPMENT_PLANNED,
                customer_code=request.customer_code,
                customer_name=request.customer_name,
                delivery_address=request.delivery_address,
            )
            batch.emit(
                AggregateType.SHIPMENT,
                shipment.aggregate_id,
                ShipmentCreated(
                    shipment_id=shipment.aggregate_id,
                    shipment_code=shipment.code,
                    customer_code=request.customer_code,
                    customer_name=request.customer_name,
                ),
            )
        return batch.result(shipment.aggregate_id, shipment.status)

    def _set_carrier(self, command: Command) -> ExecutionResult:
        request = command.request
        batch = self._batch(command)
        with self.store.atomic():
            shipment = self._lock(command, request.shipment_id)
            self._machine.require_activity(shipment.status, "set_carrier")
            self._update(
                shipment,
                carrier=request.carrier,
                vehicle_reg=request.vehicle_reg,
                trailer_reg=request.trailer_reg,
                seal_no=request.seal_no,
            )
            batch.emit(
                AggregateType.SHIPMENT,
                shipment.aggregate_id,
                ShipmentCarrierSet(
                    shipment_id=shipment.aggregate_id,
                    shipment_code=shipment.code,
                    carrier=request.carrier,
                    vehicle_reg=request.vehicle_reg,
                    trailer_reg=request.trailer_reg,
                    seal_no=request.seal_no,
                ),
            )
        return batch.result(shipment.aggregate_id, shipment.status)

    def _set_address(self, command: Command) -> ExecutionResult:
        request = command.request
        batch = self._batch(command)
        with self.store.atomic():
            shipment = self._lock(command, request.shipment_id)
            self._machine.require_activity(shipment.status, "set_address")
            self._update(shipment, delivery_address=request.delivery_address)
            batch.emit(
                AggregateType.SHIPMENT,
                shipment.aggregate_id,
                ShipmentAddressSet(
                    shipment_id=shipment.aggregate_id, shipment_code=shipment.code,
                ),
            )
        return batch.result(shipment.aggregate_id, shipment.status)

    def _create_picklist(self, command: Command) -> ExecutionResult:
        return self._transition(
            command, self._machine, command.request.shipment_id, "create_picklist",
            lambda shipment: ShipmentPicklistCreated(
                shipment_id=shipment.aggregate_id, shipment_code=shipment.code,
            ),
        )

    def _add_pick(self, command: Command) -> ExecutionResult:
        request = command.request
        batch = self._batch(command)
        with self.store.atomic():
            shipment = self._lock(command, request.shipment_id)
            self._machine.require_activity(shipment.status, "add_pick")
            if request.order_id is not None:
                self._load(
                    command, AggregateType.SALES_ORDER, request.order_id, "Sales order",
                )
            line = self.reservations.reserve(
                batch,
                consumer=shipment,
                pallet_id=request.pallet_id,
                quantity=request.quantity_units,
                correlation_id=batch.correlation_id,
                product_sku=request.product_sku,
                grade=request.grade,
                order_id=request.order_id,
            )
        return batch.result(
            shipment.aggregate_id, shipment.status,
            totals={
                "pick_id": str(line.correlation_id),
                "picked_units": self.reservations.outstanding_units(
                    command.tenant_id, AggregateType.SHIPMENT, shipment.aggregate_id,
                ),
            },
        )

    def _remove_pick(self, command: Command) -> ExecutionResult:
        request = command.request
        batch = self._batch(command)
        with self.store.atomic():
            shipment = self._lock(command, request.shipment_id)
            self._machine.require_activity(shipment.status, "remove_pick")
            picked = sum(
                line.quantity
                for line in self.reservations.outstanding(
                    command.tenant_id, AggregateType.SHIPMENT, shipment.aggregate_id,
                    pallet_id=request.pallet_id,
                )
                if request.correlation_id is None
                or line.correlation_id == request.correlation_id
            )
            if request.quantity_units > picked + QUANTITY_EPSILON:
                raise InsufficientAvailability(
                    PICK_REMOVE_EXCEEDS.format(
                        requested=request.quantity_units, picked=picked,
                    ),
                    available=picked,
                    requested=request.quantity_units,
                    rule="shipment.pick_bound",
                )
            self.reservations.release(
                batch,
                consumer=shipment,
                pallet_id=request.pallet_id,
                quantity=request.quantity_units,
                correlation_id=request.correlation_id,
            )
        return batch.result(shipment.aggregate_id, shipment.status)

    def _weigh_in(self, command: Command) -> ExecutionResult:
        request = command.request
        return self._transition(
            command, self._machine, request.shipment_id, "weigh_in",
            lambda shipment: ShipmentWeighbridgeIn(
                shipment_id=shipment.aggregate_id,
                shipment_code=shipment.code,
                gross_kg=request.gross_kg,
                tare_kg=request.tare_kg,
            ),
            attributes={"gross_in_kg": request.gross_kg, "tare_in_kg": request.tare_kg},
        )

    def _weigh_out(self, command: Command) -> ExecutionResult:
        request = command.request
        return self._transition(
            command, self._machine, request.shipment_id, "weigh_out",
            lambda shipment: ShipmentWeighbridgeOut(
                shipment_id=shipment.aggregate_id,
                shipment_code=shipment.code,
                gross_kg=request.gross_kg,
                tare_kg=request.tare_kg,
            ),
            attributes={"gross_out_kg": request.gross_kg, "tare_out_kg": request.tare_kg},
        )

    def _finalize(self, command: Command) -> ExecutionResult:
        request = command.request
        batch = self._batch(command)
        with self.store.atomic():
            shipment = self._lock(command, request.shipment_id)
            updated = self._machine.apply(shipment, "dispatch", self._now())
            total_units = self.reservations.outstanding_units(
                command.tenant_id, AggregateType.SHIPMENT, shipment.aggregate_id,
            )
            if total_units <= QUANTITY_EPSILON:
                raise ValidationError(NO_PICKED_UNITS, rule="shipment.picked_units")
            lines = self.reservations.finalize_dispatch(batch, consumer=shipment)
            self.store.snapshots.save(updated)
            batch.emit(
                AggregateType.SHIPMENT,
                shipment.aggregate_id,
                ShipmentDispatched(
                    shipment_id=shipment.aggregate_id,
                    shipment_code=shipment.code,
                    total_units=total_units,
                    dispatched_at=updated.completed_at,
                ),
            )
        logger.info(
            "Dispatched shipment %s: %s units from %d pick(s)",
            shipment.code, total_units, len(lines),
        )
        return batch.result(
            shipment.aggregate_id, updated.status, totals={"total_units": total_units},
        )

    def _cancel(self, command: Command) -> ExecutionResult:
        request = command.request
        batch = self._batch(command)
        with self.store.atomic():
            shipment = self._lock(command, request.shipment_id)
            updated = self._machine.apply(shipment, "cancel", self._now())
            if updated is None:
                return batch.result(shipment.aggregate_id, shipment.status)
            self.reservations.release_all(batch, consumer=shipment)
            self.store.snapshots.save(updated)
            batch.emit(
                AggregateType.SHIPMENT,
                shipment.aggregate_id,
                ShipmentCancelled(
                    shipment_id=shipment.aggregate_id,
                    shipment_code=shipment.code,
                    reason=request.reason,
                ),
            )
        return batch.result(shipment.aggregate_id, updated.status)

    def _lock(self, command: Command, shipment_id: uuid.UUID):
        return self._load(
            command, AggregateType.SHIPMENT, shipment_id, "Shipment", for_update=True,
        )
