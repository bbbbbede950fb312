"""
Brickflow Mining Engine — Application Service
==============================================
Vehicle master data, operator shifts and haul loads.

A recorded load appends two events in one transaction: the load on
the shift, then the receipt on the destination stockpile, caused by
the load and sharing its correlation id.
"""

from __future__ import annotations

import logging
import uuid
from typing import List, Optional

from core.commands.base import Command
from core.commands.outcomes import ExecutionResult
from core.context.actor_context import ActorContext
from core.engines.service import PipelineService
from core.event_store.contracts import Snapshot
from core.events.envelope import AggregateType, SnapshotKind
from core.guards.errors import IllegalStateTransition, NotFoundError
from core.lifecycle.machine import LifecycleMachine
from core.lifecycle.standard import ACTIVE
from engines.mining.commands import (
    MINING_LOAD_RECORD_REQUEST,
    MINING_SHIFT_END_REQUEST,
    MINING_SHIFT_START_REQUEST,
    MINING_VEHICLE_CREATE_REQUEST,
    MINING_VEHICLE_STATUS_REQUEST,
)
from engines.mining.events import (
    MiningLoadRecorded,
    MiningShiftCompleted,
    MiningShiftStarted,
    register_mining_event_types,
)
from engines.mining.policies import (
    MINING_SHIFT_LIFECYCLE,
    OPERATOR_HAS_SHIFT,
    VEHICLE_ACTIVE,
    VEHICLE_ASSIGNED,
    VEHICLE_UNAVAILABLE,
)
from engines.stockpile.events import StockpileReceiptRecorded, register_stockpile_event_types
from engines.stockpile.policies import STOCKPILE_LIFECYCLE

logger = logging.getLogger("brickflow.mining")


class MiningService(PipelineService):
    engine = "mining"

    def __init__(self, **deps):
        self._machine = LifecycleMachine(MINING_SHIFT_LIFECYCLE)
        self._stockpiles = LifecycleMachine(STOCKPILE_LIFECYCLE)
        super().__init__(**deps)

    def _register_event_types(self, registry) -> None:
        register_mining_event_types(registry)
        register_stockpile_event_types(registry)

    def _command_handlers(self):
        return {
            MINING_VEHICLE_CREATE_REQUEST: self._create_vehicle,
            MINING_VEHICLE_STATUS_REQUEST: self._set_vehicle_status,
            MINING_SHIFT_START_REQUEST: self._start_shift,
            MINING_SHIFT_END_REQUEST: self._end_shift,
            MINING_LOAD_RECORD_REQUEST: self._record_load,
        }

    # ══════════════════════════════════════════════════════════
    # QUERIES
    # ══════════════════════════════════════════════════════════

    def active_shift(self, context: ActorContext) -> Optional[Snapshot]:
        """The caller's own active shift, if any."""
        tenant_id = context.require_attribution()
        return self._operator_shift(tenant_id, context.actor_id)

    def shifts(self, context: ActorContext) -> List[Snapshot]:
        tenant_id = context.require_attribution()
        return [
            shift
            for shift in self.store.snapshots.list(tenant_id, AggregateType.MINING_SHIFT)
            if shift.attr("operator_id") == context.actor_id
        ]

    # ══════════════════════════════════════════════════════════
    # HANDLERS
    # ══════════════════════════════════════════════════════════

    def _create_vehicle(self, command: Command) -> ExecutionResult:
        request = command.request
        batch = self._batch(command)
        with self.store.atomic():
            self._require_new_code(
                command, SnapshotKind.MINING_VEHICLE, request.code, "Vehicle",
            )
            vehicle = self._new_snapshot(
                command, SnapshotKind.MINING_VEHICLE, request.code, VEHICLE_ACTIVE,
                name=request.name,
                capacity_tonnes=request.capacity_tonnes,
            )
        return batch.result(vehicle.aggregate_id, vehicle.status)

    def _set_vehicle_status(self, command: Command) -> ExecutionResult:
        request = command.request
        batch = self._batch(command)
        with self.store.atomic():
            vehicle = self._load(
                command, SnapshotKind.MINING_VEHICLE, request.vehicle_id, "Vehicle",
                for_update=True,
            )
            vehicle = self.store.snapshots.save(
                vehicle.with_changes(status=request.status, updated_at=self._now()),
            )
        return batch.result(vehicle.aggregate_id, vehicle.status)

    def _start_shift(self, command: Command) -> ExecutionResult:
        request = command.request
        batch = self._batch(command)
        with self.store.atomic():
            vehicle = self._load(
                command, SnapshotKind.MINING_VEHICLE, request.vehicle_id, "Vehicle",
                for_update=True,
            )
            self._require_status(
                vehicle, {VEHICLE_ACTIVE}, VEHICLE_UNAVAILABLE, action="start_shift",
            )
            if self._operator_shift(command.tenant_id, command.actor_id) is not None:
                raise IllegalStateTransition(
                    OPERATOR_HAS_SHIFT,
                    current_status=ACTIVE,
                    action="start_shift",
                    rule="mining_shift.one_per_operator",
                )
            busy = self._vehicle_shift(command.tenant_id, vehicle.aggregate_id)
            if busy is not None:
                raise IllegalStateTransition(
                    VEHICLE_ASSIGNED.format(
                        operator=busy.attr("operator_name") or "another operator",
                    ),
                    current_status=ACTIVE,
                    action="start_shift",
                    rule="mining_shift.one_per_vehicle",
                )

            now = self._now()
            shift_id = uuid.uuid4()
            shift = self._new_snapshot(
                command, AggregateType.MINING_SHIFT, str(shift_id), ACTIVE,
                aggregate_id=shift_id,
                vehicle_id=vehicle.aggregate_id,
                vehicle_code=vehicle.code,
                operator_id=command.actor_id,
                operator_name=command.actor_name,
                operator_role=command.actor_role,
                started_at=now,
            )
            batch.emit(
                AggregateType.MINING_SHIFT,
                shift_id,
                MiningShiftStarted(
                    shift_id=shift_id,
                    vehicle_id=vehicle.aggregate_id,
                    vehicle_code=vehicle.code,
                    operator_id=command.actor_id,
                    operator_name=command.actor_name,
                    operator_role=command.actor_role,
                    started_at=now,
                ),
            )
        logger.info("Shift %s started on vehicle %s", shift_id, vehicle.code)
        return batch.result(shift.aggregate_id, shift.status)

    def _end_shift(self, command: Command) -> ExecutionResult:
        request = command.request
        batch = self._batch(command)
        with self.store.atomic():
            shift = self._own_shift(command, request.shift_id)
            updated = self._machine.apply(shift, "end", self._now())
            self.store.snapshots.save(updated)
            batch.emit(
                AggregateType.MINING_SHIFT,
                shift.aggregate_id,
                MiningShiftCompleted(
                    shift_id=shift.aggregate_id,
                    vehicle_id=uuid.UUID(shift.attr("vehicle_id")),
                    operator_id=command.actor_id,
                    operator_name=command.actor_name,
                    completed_at=updated.completed_at,
                ),
            )
        return batch.result(shift.aggregate_id, updated.status)

    def _record_load(self, command: Command) -> ExecutionResult:
        request = command.request
        batch = self._batch(command)
        with self.store.atomic():
            shift = self._own_shift(command, request.shift_id)
            self._machine.require_activity(shift.status, "record_load")
            pile = self._load(
                command, AggregateType.STOCKPILE, request.stockpile_id, "Stockpile",
                for_update=True,
            )
            self._stockpiles.require_activity(pile.status, "record_receipt")

            load_id = uuid.uuid4()
            load = batch.emit(
                AggregateType.MINING_SHIFT,
                shift.aggregate_id,
                MiningLoadRecorded(
                    load_id=load_id,
                    shift_id=shift.aggregate_id,
                    vehicle_id=uuid.UUID(shift.attr("vehicle_id")),
                    vehicle_code=shift.attr("vehicle_code"),
                    stockpile_id=pile.aggregate_id,
                    stockpile_code=pile.code,
                    tonnage=request.tonnage,
                    moisture_pct=request.moisture_pct,
                    notes=request.notes,
                    operator_id=command.actor_id,
                    recorded_at=self._now(),
                ),
                required=True,
            )
            batch.emit(
                AggregateType.STOCKPILE,
                pile.aggregate_id,
                StockpileReceiptRecorded(
                    stockpile_id=pile.aggregate_id,
                    code=pile.code,
                    quantity_tonnes=request.tonnage,
                    reference=shift.attr("vehicle_code"),
                    notes=request.notes,
                    shift_id=shift.aggregate_id,
                ),
                causation_id=load.event_id,
                required=True,
            )
        logger.info(
            "Load %s: %s t from vehicle %s to stockpile %s",
            load_id, request.tonnage, shift.attr("vehicle_code"), pile.code,
        )
        return batch.result(
            shift.aggregate_id, shift.status,
            totals={"load_id": str(load_id), "tonnage": request.tonnage},
        )

    # ── lookups ───────────────────────────────────────────────

    def _own_shift(self, command: Command, shift_id: uuid.UUID) -> Snapshot:
        shift = self.store.snapshots.get(
            command.tenant_id, AggregateType.MINING_SHIFT, shift_id, for_update=True,
        )
        if shift is None or shift.attr("operator_id") != command.actor_id:
            raise NotFoundError("Shift not found.", rule="mining_shift.owner")
        return shift

    def _operator_shift(self, tenant_id, operator_id) -> Optional[Snapshot]:
        for shift in self.store.snapshots.list(
            tenant_id, AggregateType.MINING_SHIFT, statuses=[ACTIVE],
        ):
            if shift.attr("operator_id") == operator_id:
                return shift
        return None

    def _vehicle_shift(self, tenant_id, vehicle_id: uuid.UUID) -> Optional[Snapshot]:
        for shift in self.store.snapshots.list(
            tenant_id, AggregateType.MINING_SHIFT, statuses=[ACTIVE],
        ):
            if shift.attr("vehicle_id") == str(vehicle_id):
                return shift
        return None
