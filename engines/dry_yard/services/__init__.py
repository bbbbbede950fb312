"""
Brickflow Dry Yard Engine — Application Service
================================================
Rack and dry load commands → snapshot + events.

add_input order:
    load exists → load open → rack assigned → extrusion run exists →
    rack capacity → extrusion availability

The rack snapshot is locked for every capacity check so two loads
cannot fill the same free space.
"""

from __future__ import annotations

import uuid

from core.availability.calculator import Availability
from core.availability.guards import QUANTITY_EPSILON, require_available
from core.commands.base import Command
from core.commands.outcomes import ExecutionResult
from core.context.actor_context import ActorContext
from core.engines.service import PipelineService
from core.events.envelope import AggregateType, SnapshotKind
from core.guards.errors import InsufficientAvailability, NotFoundError, ValidationError
from core.lifecycle.machine import LifecycleMachine
from core.lifecycle.standard import OPEN_STATUSES, PLANNED
from engines.dry_yard.commands import (
    DRY_ADD_INPUT_REQUEST,
    DRY_CANCEL_REQUEST,
    DRY_COMPLETE_REQUEST,
    DRY_LOAD_CREATE_REQUEST,
    DRY_MOISTURE_REQUEST,
    DRY_MOVE_REQUEST,
    DRY_PAUSE_REQUEST,
    DRY_RACK_CREATE_REQUEST,
    DRY_RESUME_REQUEST,
    DRY_SCRAP_REQUEST,
    DRY_START_REQUEST,
)
from engines.dry_yard.events import (
    DRY_INPUT_ADDED,
    DRY_SCRAP_RECORDED,
    DryInputAdded,
    DryLoadCancelled,
    DryLoadCompleted,
    DryLoadCreated,
    DryLoadMoved,
    DryLoadPaused,
    DryLoadResumed,
    DryLoadStarted,
    DryMoistureRecorded,
    DryScrapRecorded,
    register_dry_yard_event_types,
)
from engines.dry_yard.policies import (
    ALREADY_ON_RACK,
    DRY_LOAD_LIFECYCLE,
    EXTRUSION_TO_DRY,
    INSUFFICIENT_EXTRUSION,
    RACK_ACTIVE,
    RACK_CANNOT_ACCEPT,
    RACK_CAPACITY_EXCEEDED,
    RACK_REQUIRED,
    SCRAP_EXCEEDS_LOAD,
)
from engines.extrusion.events import register_extrusion_event_types


class DryYardService(PipelineService):
    engine = "dry_yard"

    def __init__(self, **deps):
        self._machine = LifecycleMachine(DRY_LOAD_LIFECYCLE)
        super().__init__(**deps)

    def _register_event_types(self, registry) -> None:
        register_dry_yard_event_types(registry)
        register_extrusion_event_types(registry)

    def _register_edges(self, availability) -> None:
        availability.register(EXTRUSION_TO_DRY)

    def _command_handlers(self):
        return {
            DRY_RACK_CREATE_REQUEST: self._create_rack,
            DRY_LOAD_CREATE_REQUEST: self._create_load,
            DRY_ADD_INPUT_REQUEST: self._add_input,
            DRY_START_REQUEST: self._start,
            DRY_PAUSE_REQUEST: self._pause,
            DRY_RESUME_REQUEST: self._resume,
            DRY_MOISTURE_REQUEST: self._record_moisture,
            DRY_MOVE_REQUEST: self._move,
            DRY_SCRAP_REQUEST: self._record_scrap,
            DRY_COMPLETE_REQUEST: self._complete,
            DRY_CANCEL_REQUEST: self._cancel,
        }

    # ══════════════════════════════════════════════════════════
    # QUERIES
    # ══════════════════════════════════════════════════════════

    def load_units(self, tenant_id: uuid.UUID, load_id: uuid.UUID) -> float:
        """Units on a load: inputs minus scrap."""
        rows = self.store.events.list_events(
            tenant_id,
            aggregate_type=AggregateType.DRY_LOAD,
            aggregate_id=load_id,
            event_types=[DRY_INPUT_ADDED, DRY_SCRAP_RECORDED],
        )
        total = 0.0
        for row in rows:
            if row.event_type == DRY_INPUT_ADDED:
                total += row.quantity("quantityUnits")
            else:
                total -= row.quantity("scrapUnits")
        return max(0.0, total)

    def rack_occupancy(self, tenant_id: uuid.UUID, rack_id: uuid.UUID) -> float:
        loads = self.store.snapshots.list(
            tenant_id, AggregateType.DRY_LOAD, statuses=OPEN_STATUSES,
        )
        return sum(
            self.load_units(tenant_id, load.aggregate_id)
            for load in loads
            if load.attr("rack_id") == str(rack_id)
        )

    def extrusion_available(self, context: ActorContext, run_id: uuid.UUID) -> Availability:
        tenant_id = context.require_attribution()
        if self.store.snapshots.get(tenant_id, AggregateType.EXTRUSION_RUN, run_id) is None:
            raise NotFoundError("Extrusion run not found.", rule="tenant_scope")
        return self.availability.available(EXTRUSION_TO_DRY.name, tenant_id, run_id)

    # ══════════════════════════════════════════════════════════
    # RACKS (master data)
    # ══════════════════════════════════════════════════════════

    def _create_rack(self, command: Command) -> ExecutionResult:
        request = command.request
        batch = self._batch(command)
        with self.store.atomic():
            self._require_new_code(command, SnapshotKind.DRY_RACK, request.code, "Rack")
            rack = self._new_snapshot(
                command, SnapshotKind.DRY_RACK, request.code, RACK_ACTIVE,
                bay=request.bay,
                capacity_units=request.capacity_units,
            )
        return batch.result(rack.aggregate_id, rack.status)

    # ══════════════════════════════════════════════════════════
    # LOADS
    # ══════════════════════════════════════════════════════════

    def _create_load(self, command: Command) -> ExecutionResult:
        request = command.request
        batch = self._batch(command)
        with self.store.atomic():
            rack = self._load(command, SnapshotKind.DRY_RACK, request.rack_id, "Rack")
            self._require_new_code(command, AggregateType.DRY_LOAD, request.code, "Load")
            load = self._new_snapshot(
                command, AggregateType.DRY_LOAD, request.code, PLANNED,
                rack_id=rack.aggregate_id,
                target_moisture_pct=request.target_moisture_pct,
            )
            batch.emit(
                AggregateType.DRY_LOAD,
                load.aggregate_id,
                DryLoadCreated(
                    load_id=load.aggregate_id,
                    load_code=load.code,
                    rack_id=rack.aggregate_id,
                    target_moisture_pct=request.target_moisture_pct,
                ),
            )
        return batch.result(load.aggregate_id, load.status)

    def _add_input(self, command: Command) -> ExecutionResult:
        request = command.request
        batch = self._batch(command)
        with self.store.atomic():
            load = self._load(
                command, AggregateType.DRY_LOAD, request.load_id, "Dry load",
                for_update=True,
            )
            self._machine.require_activity(load.status, "add_input")
            if not load.attr("rack_id"):
                raise ValidationError(RACK_REQUIRED, rule="dry_load.rack_assigned")
            run = self._load(
                command, AggregateType.EXTRUSION_RUN, request.extrusion_run_id,
                "Extrusion run", for_update=True,
            )

            # ── rack capacity ──
            rack_id = uuid.UUID(load.attr("rack_id"))
            rack = self._load(command, SnapshotKind.DRY_RACK, rack_id, "Rack", for_update=True)
            free = float(rack.attr("capacity_units", 0)) - self.rack_occupancy(
                command.tenant_id, rack_id,
            )
            if request.quantity_units > free + QUANTITY_EPSILON:
                raise InsufficientAvailability(
                    RACK_CAPACITY_EXCEEDED.format(code=rack.code, available=max(0.0, free)),
                    available=max(0.0, free),
                    requested=request.quantity_units,
                    rule="dry_rack.capacity",
                )

            # ── extrusion availability ──
            require_available(
                self.availability.available(
                    EXTRUSION_TO_DRY.name, command.tenant_id, run.aggregate_id,
                ),
                request.quantity_units,
                INSUFFICIENT_EXTRUSION,
                rule="extrusion_run.availability",
            )

            batch.emit(
                AggregateType.DRY_LOAD,
                load.aggregate_id,
                DryInputAdded(
                    load_id=load.aggregate_id,
                    load_code=load.code,
                    rack_id=rack_id,
                    run_id=run.aggregate_id,
                    run_code=run.code,
                    quantity_units=request.quantity_units,
                    reference=request.reference,
                ),
            )
        return batch.result(load.aggregate_id, load.status)

    def _start(self, command: Command) -> ExecutionResult:
        return self._transition(
            command, self._machine, command.request.load_id, "start",
            lambda load: DryLoadStarted(
                load_id=load.aggregate_id, load_code=load.code, started_at=load.started_at,
            ),
        )

    def _pause(self, command: Command) -> ExecutionResult:
        request = command.request
        return self._transition(
            command, self._machine, request.load_id, "pause",
            lambda load: DryLoadPaused(
                load_id=load.aggregate_id, load_code=load.code, reason=request.reason,
            ),
        )

    def _resume(self, command: Command) -> ExecutionResult:
        return self._transition(
            command, self._machine, command.request.load_id, "resume",
            lambda load: DryLoadResumed(load_id=load.aggregate_id, load_code=load.code),
        )

    def _record_moisture(self, command: Command) -> ExecutionResult:
        request = command.request
        return self._activity(
            command, self._machine, request.load_id, "record_moisture",
            lambda load: DryMoistureRecorded(
                load_id=load.aggregate_id,
                load_code=load.code,
                moisture_pct=request.moisture_pct,
                method=request.method,
            ),
        )

    def _move(self, command: Command) -> ExecutionResult:
        request = command.request
        batch = self._batch(command)
        with self.store.atomic():
            load = self._load(
                command, AggregateType.DRY_LOAD, request.load_id, "Dry load",
                for_update=True,
            )
            self._machine.require_activity(load.status, "move")
            if load.attr("rack_id") == str(request.to_rack_id):
                raise ValidationError(ALREADY_ON_RACK, rule="dry_load.move_target")
            destination = self._load(
                command, SnapshotKind.DRY_RACK, request.to_rack_id, "Rack",
                for_update=True,
            )
            units = self.load_units(command.tenant_id, load.aggregate_id)
            free = float(destination.attr("capacity_units", 0)) - self.rack_occupancy(
                command.tenant_id, destination.aggregate_id,
            )
            if units > free + QUANTITY_EPSILON:
                raise InsufficientAvailability(
                    RACK_CANNOT_ACCEPT.format(code=destination.code),
                    available=max(0.0, free),
                    requested=units,
                    rule="dry_rack.capacity",
                )

            from_rack = load.attr("rack_id")
            load = self._update(load, rack_id=destination.aggregate_id)
            batch.emit(
                AggregateType.DRY_LOAD,
                load.aggregate_id,
                DryLoadMoved(
                    load_id=load.aggregate_id,
                    load_code=load.code,
                    from_rack_id=uuid.UUID(from_rack),
                    to_rack_id=destination.aggregate_id,
                ),
            )
        return batch.result(load.aggregate_id, load.status)

    def _record_scrap(self, command: Command) -> ExecutionResult:
        request = command.request
        batch = self._batch(command)
        with self.store.atomic():
            load = self._load(
                command, AggregateType.DRY_LOAD, request.load_id, "Dry load",
                for_update=True,
            )
            self._machine.require_activity(load.status, "record_scrap")
            require_available(
                Availability.of(self.load_units(command.tenant_id, load.aggregate_id)),
                request.scrap_units,
                SCRAP_EXCEEDS_LOAD,
                rule="dry_load.scrap_bound",
            )
            batch.emit(
                AggregateType.DRY_LOAD,
                load.aggregate_id,
                DryScrapRecorded(
                    load_id=load.aggregate_id,
                    load_code=load.code,
                    scrap_units=request.scrap_units,
                    reason=request.reason,
                ),
            )
        return batch.result(load.aggregate_id, load.status)

    def _complete(self, command: Command) -> ExecutionResult:
        return self._transition(
            command, self._machine, command.request.load_id, "complete",
            lambda load: DryLoadCompleted(
                load_id=load.aggregate_id, load_code=load.code,
                completed_at=load.completed_at,
            ),
        )

    def _cancel(self, command: Command) -> ExecutionResult:
        request = command.request
        return self._transition(
            command, self._machine, request.load_id, "cancel",
            lambda load: DryLoadCancelled(
                load_id=load.aggregate_id, load_code=load.code, reason=request.reason,
            ),
        )
