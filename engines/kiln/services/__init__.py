"""
Brickflow Kiln Engine — Application Service
============================================
Kiln batch commands → snapshot + events.
"""

from __future__ import annotations

import uuid

from core.availability.calculator import Availability
from core.availability.guards import require_available
from core.commands.base import Command
from core.commands.outcomes import ExecutionResult
from core.context.actor_context import ActorContext
from core.engines.service import PipelineService
from core.events.envelope import AggregateType
from core.guards.errors import NotFoundError
from core.lifecycle.machine import LifecycleMachine
from core.lifecycle.standard import COMPLETED, PLANNED
from engines.dry_yard.events import register_dry_yard_event_types
from engines.kiln.commands import (
    KILN_ADD_INPUT_REQUEST,
    KILN_CANCEL_REQUEST,
    KILN_COMPLETE_REQUEST,
    KILN_CREATE_REQUEST,
    KILN_FUEL_USAGE_REQUEST,
    KILN_OUTPUT_REQUEST,
    KILN_PAUSE_REQUEST,
    KILN_RESUME_REQUEST,
    KILN_START_REQUEST,
    KILN_ZONE_TEMP_REQUEST,
)
from engines.kiln.events import (
    KilnBatchCancelled,
    KilnBatchCompleted,
    KilnBatchCreated,
    KilnBatchPaused,
    KilnBatchResumed,
    KilnBatchStarted,
    KilnFuelUsageRecorded,
    KilnInputAdded,
    KilnOutputRecorded,
    KilnZoneTempRecorded,
    register_kiln_event_types,
)
from engines.kiln.policies import (
    DRY_LOAD_NOT_COMPLETED,
    DRY_TO_KILN,
    INSUFFICIENT_DRY,
    KILN_BATCH_LIFECYCLE,
)


class KilnService(PipelineService):
    engine = "kiln"

    def __init__(self, **deps):
        self._machine = LifecycleMachine(KILN_BATCH_LIFECYCLE)
        super().__init__(**deps)

    def _register_event_types(self, registry) -> None:
        register_kiln_event_types(registry)
        register_dry_yard_event_types(registry)

    def _register_edges(self, availability) -> None:
        availability.register(DRY_TO_KILN)

    def _command_handlers(self):
        return {
            KILN_CREATE_REQUEST: self._create,
            KILN_ADD_INPUT_REQUEST: self._add_input,
            KILN_START_REQUEST: self._start,
            KILN_PAUSE_REQUEST: self._pause,
            KILN_RESUME_REQUEST: self._resume,
            KILN_ZONE_TEMP_REQUEST: self._record_zone_temp,
            KILN_FUEL_USAGE_REQUEST: self._record_fuel_usage,
            KILN_OUTPUT_REQUEST: self._record_output,
            KILN_COMPLETE_REQUEST: self._complete,
            KILN_CANCEL_REQUEST: self._cancel,
        }

    def dry_available(self, context: ActorContext, load_id: uuid.UUID) -> Availability:
        tenant_id = context.require_attribution()
        if self.store.snapshots.get(tenant_id, AggregateType.DRY_LOAD, load_id) is None:
            raise NotFoundError("Dry load not found.", rule="tenant_scope")
        return self.availability.available(DRY_TO_KILN.name, tenant_id, load_id)

    # ══════════════════════════════════════════════════════════
    # HANDLERS
    # ══════════════════════════════════════════════════════════

    def _create(self, command: Command) -> ExecutionResult:
        request = command.request
        batch = self._batch(command)
        with self.store.atomic():
            self._require_new_code(command, AggregateType.KILN_BATCH, request.code, "Batch")
            kiln = self._new_snapshot(
                command, AggregateType.KILN_BATCH, request.code, PLANNED,
                kiln_code=request.kiln_code,
                firing_curve_code=request.firing_curve_code,
                target_units=request.target_units,
            )
            batch.emit(
                AggregateType.KILN_BATCH,
                kiln.aggregate_id,
                KilnBatchCreated(
                    batch_id=kiln.aggregate_id,
                    batch_code=kiln.code,
                    kiln_code=request.kiln_code,
                    firing_curve_code=request.firing_curve_code,
                    target_units=request.target_units,
                ),
            )
        return batch.result(kiln.aggregate_id, kiln.status)

    def _add_input(self, command: Command) -> ExecutionResult:
        request = command.request
        batch = self._batch(command)
        with self.store.atomic():
            kiln = self._load(
                command, AggregateType.KILN_BATCH, request.batch_id, "Kiln batch",
                for_update=True,
            )
            self._machine.require_activity(kiln.status, "add_input")
            load = self._load(
                command, AggregateType.DRY_LOAD, request.dry_load_id, "Dry load",
                for_update=True,
            )
            self._require_status(load, {COMPLETED}, DRY_LOAD_NOT_COMPLETED, action="feed_kiln")
            require_available(
                self.availability.available(
                    DRY_TO_KILN.name, command.tenant_id, load.aggregate_id,
                ),
                request.quantity_units,
                INSUFFICIENT_DRY,
                rule="dry_load.availability",
            )
            batch.emit(
                AggregateType.KILN_BATCH,
                kiln.aggregate_id,
                KilnInputAdded(
                    batch_id=kiln.aggregate_id,
                    batch_code=kiln.code,
                    dry_load_id=load.aggregate_id,
                    dry_load_code=load.code,
                    quantity_units=request.quantity_units,
                    reference=request.reference,
                ),
            )
        return batch.result(kiln.aggregate_id, kiln.status)

    def _start(self, command: Command) -> ExecutionResult:
        return self._transition(
            command, self._machine, command.request.batch_id, "start",
            lambda kiln: KilnBatchStarted(
                batch_id=kiln.aggregate_id, batch_code=kiln.code, started_at=kiln.started_at,
            ),
        )

    def _pause(self, command: Command) -> ExecutionResult:
        request = command.request
        return self._transition(
            command, self._machine, request.batch_id, "pause",
            lambda kiln: KilnBatchPaused(
                batch_id=kiln.aggregate_id,
                batch_code=kiln.code,
                minutes=request.minutes,
                reason=request.reason,
            ),
        )

    def _resume(self, command: Command) -> ExecutionResult:
        return self._transition(
            command, self._machine, command.request.batch_id, "resume",
            lambda kiln: KilnBatchResumed(batch_id=kiln.aggregate_id, batch_code=kiln.code),
        )

    def _record_zone_temp(self, command: Command) -> ExecutionResult:
        request = command.request
        return self._activity(
            command, self._machine, request.batch_id, "record_zone_temp",
            lambda kiln: KilnZoneTempRecorded(
                batch_id=kiln.aggregate_id,
                batch_code=kiln.code,
                zone=request.zone,
                temperature_c=request.temperature_c,
            ),
        )

    def _record_fuel_usage(self, command: Command) -> ExecutionResult:
        request = command.request
        return self._activity(
            command, self._machine, request.batch_id, "record_fuel_usage",
            lambda kiln: KilnFuelUsageRecorded(
                batch_id=kiln.aggregate_id,
                batch_code=kiln.code,
                fuel_type=request.fuel_type,
                amount=request.amount,
                unit=request.unit,
            ),
        )

    def _record_output(self, command: Command) -> ExecutionResult:
        request = command.request
        return self._activity(
            command, self._machine, request.batch_id, "record_output",
            lambda kiln: KilnOutputRecorded(
                batch_id=kiln.aggregate_id,
                batch_code=kiln.code,
                fired_units=request.fired_units,
                shrinkage_pct=request.shrinkage_pct,
            ),
        )

    def _complete(self, command: Command) -> ExecutionResult:
        return self._transition(
            command, self._machine, command.request.batch_id, "complete",
            lambda kiln: KilnBatchCompleted(
                batch_id=kiln.aggregate_id, batch_code=kiln.code,
                completed_at=kiln.completed_at,
            ),
        )

    def _cancel(self, command: Command) -> ExecutionResult:
        request = command.request
        return self._transition(
            command, self._machine, request.batch_id, "cancel",
            lambda kiln: KilnBatchCancelled(
                batch_id=kiln.aggregate_id, batch_code=kiln.code, reason=request.reason,
            ),
        )
