"""
Brickflow Crushing Engine — Application Service
================================================
Crush run commands → snapshot + events.

add_input order:
    run exists → run open → mix batch exists → mix batch completed →
    mix output available
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
from engines.crushing.commands import (
    CRUSHING_ADD_INPUT_REQUEST,
    CRUSHING_CANCEL_REQUEST,
    CRUSHING_COMPLETE_REQUEST,
    CRUSHING_CREATE_REQUEST,
    CRUSHING_DOWNTIME_REQUEST,
    CRUSHING_OUTPUT_REQUEST,
    CRUSHING_PAUSE_REQUEST,
    CRUSHING_RESUME_REQUEST,
    CRUSHING_START_REQUEST,
)
from engines.crushing.events import (
    CrushComponentAdded,
    CrushRunCancelled,
    CrushRunCompleted,
    CrushRunCreated,
    CrushRunDowntimeLogged,
    CrushRunOutputRecorded,
    CrushRunPaused,
    CrushRunResumed,
    CrushRunStarted,
    register_crushing_event_types,
)
from engines.crushing.policies import (
    CRUSH_RUN_LIFECYCLE,
    INSUFFICIENT_MIX,
    MIX_NOT_COMPLETED,
    MIX_TO_CRUSHING,
)
from engines.mixing.events import register_mixing_event_types


class CrushingService(PipelineService):
    engine = "crushing"

    def __init__(self, **deps):
        self._machine = LifecycleMachine(CRUSH_RUN_LIFECYCLE)
        super().__init__(**deps)

    def _register_event_types(self, registry) -> None:
        register_crushing_event_types(registry)
        register_mixing_event_types(registry)

    def _register_edges(self, availability) -> None:
        availability.register(MIX_TO_CRUSHING)

    def _command_handlers(self):
        return {
            CRUSHING_CREATE_REQUEST: self._create,
            CRUSHING_ADD_INPUT_REQUEST: self._add_input,
            CRUSHING_START_REQUEST: self._start,
            CRUSHING_PAUSE_REQUEST: self._pause,
            CRUSHING_RESUME_REQUEST: self._resume,
            CRUSHING_DOWNTIME_REQUEST: self._log_downtime,
            CRUSHING_OUTPUT_REQUEST: self._record_output,
            CRUSHING_COMPLETE_REQUEST: self._complete,
            CRUSHING_CANCEL_REQUEST: self._cancel,
        }

    def mix_available(self, context: ActorContext, batch_id: uuid.UUID) -> Availability:
        """Completed mix output not yet fed to crushing."""
        tenant_id = context.require_attribution()
        if self.store.snapshots.get(tenant_id, AggregateType.MIX_BATCH, batch_id) is None:
            raise NotFoundError("Mix batch not found.", rule="tenant_scope")
        return self.availability.available(MIX_TO_CRUSHING.name, tenant_id, batch_id)

    # ══════════════════════════════════════════════════════════
    # HANDLERS
    # ══════════════════════════════════════════════════════════

    def _create(self, command: Command) -> ExecutionResult:
        request = command.request
        batch = self._batch(command)
        with self.store.atomic():
            self._require_new_code(command, AggregateType.CRUSH_RUN, request.code, "Run")
            run = self._new_snapshot(
                command, AggregateType.CRUSH_RUN, request.code, PLANNED,
                target_tph=request.target_tph,
            )
            batch.emit(
                AggregateType.CRUSH_RUN,
                run.aggregate_id,
                CrushRunCreated(
                    run_id=run.aggregate_id,
                    run_code=run.code,
                    target_tph=request.target_tph,
                ),
            )
        return batch.result(run.aggregate_id, run.status)

    def _add_input(self, command: Command) -> ExecutionResult:
        request = command.request
        batch = self._batch(command)
        with self.store.atomic():
            run = self._load(
                command, AggregateType.CRUSH_RUN, request.run_id, "Crushing run",
                for_update=True,
            )
            self._machine.require_activity(run.status, "add_input")
            mix = self._load(
                command, AggregateType.MIX_BATCH, request.mix_batch_id, "Mix batch",
                for_update=True,
            )
            self._require_status(mix, {COMPLETED}, MIX_NOT_COMPLETED, action="supply_crushing")
            require_available(
                self.availability.available(
                    MIX_TO_CRUSHING.name, command.tenant_id, mix.aggregate_id,
                ),
                request.quantity_tonnes,
                INSUFFICIENT_MIX,
                rule="mix_batch.availability",
            )
            batch.emit(
                AggregateType.CRUSH_RUN,
                run.aggregate_id,
                CrushComponentAdded(
                    run_id=run.aggregate_id,
                    run_code=run.code,
                    mix_batch_id=mix.aggregate_id,
                    mix_batch_code=mix.code,
                    quantity_tonnes=request.quantity_tonnes,
                    reference=request.reference,
                ),
            )
            remaining = self.availability.available(
                MIX_TO_CRUSHING.name, command.tenant_id, mix.aggregate_id,
            )
        return batch.result(
            run.aggregate_id, run.status,
            {"mix_available_tonnes": remaining.or_zero()},
        )

    def _start(self, command: Command) -> ExecutionResult:
        return self._transition(
            command, self._machine, command.request.run_id, "start",
            lambda run: CrushRunStarted(
                run_id=run.aggregate_id, run_code=run.code, started_at=run.started_at,
            ),
        )

    def _pause(self, command: Command) -> ExecutionResult:
        request = command.request
        return self._transition(
            command, self._machine, request.run_id, "pause",
            lambda run: CrushRunPaused(
                run_id=run.aggregate_id, run_code=run.code, reason=request.reason,
            ),
        )

    def _resume(self, command: Command) -> ExecutionResult:
        return self._transition(
            command, self._machine, command.request.run_id, "resume",
            lambda run: CrushRunResumed(run_id=run.aggregate_id, run_code=run.code),
        )

    def _log_downtime(self, command: Command) -> ExecutionResult:
        request = command.request
        return self._activity(
            command, self._machine, request.run_id, "log_downtime",
            lambda run: CrushRunDowntimeLogged(
                run_id=run.aggregate_id,
                run_code=run.code,
                minutes=request.minutes,
                reason=request.reason,
            ),
        )

    def _record_output(self, command: Command) -> ExecutionResult:
        request = command.request
        return self._activity(
            command, self._machine, request.run_id, "record_output",
            lambda run: CrushRunOutputRecorded(
                run_id=run.aggregate_id,
                run_code=run.code,
                output_tonnes=request.output_tonnes,
                fines_pct=request.fines_pct,
            ),
        )

    def _complete(self, command: Command) -> ExecutionResult:
        return self._transition(
            command, self._machine, command.request.run_id, "complete",
            lambda run: CrushRunCompleted(
                run_id=run.aggregate_id, run_code=run.code, completed_at=run.completed_at,
            ),
        )

    def _cancel(self, command: Command) -> ExecutionResult:
        request = command.request
        return self._transition(
            command, self._machine, request.run_id, "cancel",
            lambda run: CrushRunCancelled(
                run_id=run.aggregate_id, run_code=run.code, reason=request.reason,
            ),
        )
