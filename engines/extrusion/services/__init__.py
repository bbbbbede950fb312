"""
Brickflow Extrusion Engine — Application Service
=================================================
Extrusion run commands → snapshot + events.

Crushed input is only accepted from a crush run that has recorded
output; the remaining tonnes bound each draw.
"""

from __future__ import annotations

import uuid

from core.availability.calculator import Availability
from core.availability.guards import QUANTITY_EPSILON, require_available
from core.commands.base import Command
from core.commands.outcomes import ExecutionResult
from core.context.actor_context import ActorContext
from core.engines.service import PipelineService
from core.events.envelope import AggregateType
from core.guards.errors import InsufficientAvailability, NotFoundError
from core.lifecycle.machine import LifecycleMachine
from core.lifecycle.standard import PLANNED
from engines.crushing.events import CRUSH_RUN_OUTPUT_RECORDED, register_crushing_event_types
from engines.extrusion.commands import (
    EXTRUSION_ADD_INPUT_REQUEST,
    EXTRUSION_CANCEL_REQUEST,
    EXTRUSION_CHANGE_DIE_REQUEST,
    EXTRUSION_COMPLETE_REQUEST,
    EXTRUSION_CREATE_REQUEST,
    EXTRUSION_OUTPUT_REQUEST,
    EXTRUSION_PAUSE_REQUEST,
    EXTRUSION_RESUME_REQUEST,
    EXTRUSION_SCRAP_REQUEST,
    EXTRUSION_START_REQUEST,
)
from engines.extrusion.events import (
    ExtrusionDieChanged,
    ExtrusionInputAdded,
    ExtrusionOutputRecorded,
    ExtrusionRunCancelled,
    ExtrusionRunCompleted,
    ExtrusionRunCreated,
    ExtrusionRunPaused,
    ExtrusionRunResumed,
    ExtrusionRunStarted,
    ExtrusionScrapRecorded,
    register_extrusion_event_types,
)
from engines.extrusion.policies import (
    CRUSH_NOT_PRODUCED,
    CRUSH_TO_EXTRUSION,
    EXTRUSION_RUN_LIFECYCLE,
    INSUFFICIENT_CRUSHED,
)


class ExtrusionService(PipelineService):
    engine = "extrusion"

    def __init__(self, **deps):
        self._machine = LifecycleMachine(EXTRUSION_RUN_LIFECYCLE)
        super().__init__(**deps)

    def _register_event_types(self, registry) -> None:
        register_extrusion_event_types(registry)
        register_crushing_event_types(registry)

    def _register_edges(self, availability) -> None:
        availability.register(CRUSH_TO_EXTRUSION)

    def _command_handlers(self):
        return {
            EXTRUSION_CREATE_REQUEST: self._create,
            EXTRUSION_ADD_INPUT_REQUEST: self._add_input,
            EXTRUSION_START_REQUEST: self._start,
            EXTRUSION_PAUSE_REQUEST: self._pause,
            EXTRUSION_RESUME_REQUEST: self._resume,
            EXTRUSION_OUTPUT_REQUEST: self._record_output,
            EXTRUSION_SCRAP_REQUEST: self._record_scrap,
            EXTRUSION_CHANGE_DIE_REQUEST: self._change_die,
            EXTRUSION_COMPLETE_REQUEST: self._complete,
            EXTRUSION_CANCEL_REQUEST: self._cancel,
        }

    # ══════════════════════════════════════════════════════════
    # QUERIES
    # ══════════════════════════════════════════════════════════

    def crushed_available(self, context: ActorContext, crush_run_id: uuid.UUID) -> Availability:
        tenant_id = context.require_attribution()
        if self.store.snapshots.get(tenant_id, AggregateType.CRUSH_RUN, crush_run_id) is None:
            raise NotFoundError("Crushing run not found.", rule="tenant_scope")
        return self.availability.available(CRUSH_TO_EXTRUSION.name, tenant_id, crush_run_id)

    def _crush_output_tonnes(self, tenant_id: uuid.UUID, crush_run_id: uuid.UUID) -> float:
        rows = self.store.events.list_events(
            tenant_id,
            aggregate_type=AggregateType.CRUSH_RUN,
            aggregate_id=crush_run_id,
            event_types=[CRUSH_RUN_OUTPUT_RECORDED],
        )
        return sum(row.quantity("outputTonnes") for row in rows)

    # ══════════════════════════════════════════════════════════
    # HANDLERS
    # ══════════════════════════════════════════════════════════

    def _create(self, command: Command) -> ExecutionResult:
        request = command.request
        batch = self._batch(command)
        with self.store.atomic():
            self._require_new_code(
                command, AggregateType.EXTRUSION_RUN, request.code, "Run",
            )
            run = self._new_snapshot(
                command, AggregateType.EXTRUSION_RUN, request.code, PLANNED,
                press_line=request.press_line,
                die_code=request.die_code,
                product_sku=request.product_sku,
                target_units=request.target_units,
            )
            batch.emit(
                AggregateType.EXTRUSION_RUN,
                run.aggregate_id,
                ExtrusionRunCreated(
                    run_id=run.aggregate_id,
                    run_code=run.code,
                    press_line=request.press_line,
                    die_code=request.die_code,
                    product_sku=request.product_sku,
                    target_units=request.target_units,
                ),
            )
        return batch.result(run.aggregate_id, run.status)

    def _add_input(self, command: Command) -> ExecutionResult:
        request = command.request
        batch = self._batch(command)
        with self.store.atomic():
            run = self._load(
                command, AggregateType.EXTRUSION_RUN, request.run_id, "Extrusion run",
                for_update=True,
            )
            self._machine.require_activity(run.status, "add_input")
            crush = self._load(
                command, AggregateType.CRUSH_RUN, request.crush_run_id, "Crushing run",
                for_update=True,
            )
            if self._crush_output_tonnes(command.tenant_id, crush.aggregate_id) <= QUANTITY_EPSILON:
                raise InsufficientAvailability(
                    CRUSH_NOT_PRODUCED,
                    available=0.0,
                    requested=request.quantity_tonnes,
                    rule="crush_run.output_recorded",
                )
            require_available(
                self.availability.available(
                    CRUSH_TO_EXTRUSION.name, command.tenant_id, crush.aggregate_id,
                ),
                request.quantity_tonnes,
                INSUFFICIENT_CRUSHED,
                rule="crush_run.availability",
            )
            batch.emit(
                AggregateType.EXTRUSION_RUN,
                run.aggregate_id,
                ExtrusionInputAdded(
                    run_id=run.aggregate_id,
                    run_code=run.code,
                    crush_run_id=crush.aggregate_id,
                    crush_run_code=crush.code,
                    quantity_tonnes=request.quantity_tonnes,
                    reference=request.reference,
                ),
            )
        return batch.result(run.aggregate_id, run.status)

    def _start(self, command: Command) -> ExecutionResult:
        return self._transition(
            command, self._machine, command.request.run_id, "start",
            lambda run: ExtrusionRunStarted(
                run_id=run.aggregate_id, run_code=run.code, started_at=run.started_at,
            ),
        )

    def _pause(self, command: Command) -> ExecutionResult:
        request = command.request
        return self._transition(
            command, self._machine, request.run_id, "pause",
            lambda run: ExtrusionRunPaused(
                run_id=run.aggregate_id,
                run_code=run.code,
                minutes=request.minutes,
                reason=request.reason,
            ),
        )

    def _resume(self, command: Command) -> ExecutionResult:
        return self._transition(
            command, self._machine, command.request.run_id, "resume",
            lambda run: ExtrusionRunResumed(run_id=run.aggregate_id, run_code=run.code),
        )

    def _record_output(self, command: Command) -> ExecutionResult:
        request = command.request
        return self._activity(
            command, self._machine, request.run_id, "record_output",
            lambda run: ExtrusionOutputRecorded(
                run_id=run.aggregate_id,
                run_code=run.code,
                output_units=request.output_units,
                meters=request.meters,
                weight_tonnes=request.weight_tonnes,
            ),
        )

    def _record_scrap(self, command: Command) -> ExecutionResult:
        request = command.request
        return self._activity(
            command, self._machine, request.run_id, "record_scrap",
            lambda run: ExtrusionScrapRecorded(
                run_id=run.aggregate_id,
                run_code=run.code,
                scrap_units=request.scrap_units,
                reason=request.reason,
            ),
        )

    def _change_die(self, command: Command) -> ExecutionResult:
        request = command.request
        batch = self._batch(command)
        with self.store.atomic():
            run = self._load(
                command, AggregateType.EXTRUSION_RUN, request.run_id, "Extrusion run",
                for_update=True,
            )
            self._machine.require_activity(run.status, "change_die")
            previous = run.attr("die_code")
            run = self._update(run, die_code=request.die_code)
            batch.emit(
                AggregateType.EXTRUSION_RUN,
                run.aggregate_id,
                ExtrusionDieChanged(
                    run_id=run.aggregate_id,
                    run_code=run.code,
                    die_code=request.die_code,
                    previous_die_code=previous,
                ),
            )
        return batch.result(run.aggregate_id, run.status)

    def _complete(self, command: Command) -> ExecutionResult:
        return self._transition(
            command, self._machine, command.request.run_id, "complete",
            lambda run: ExtrusionRunCompleted(
                run_id=run.aggregate_id, run_code=run.code, completed_at=run.completed_at,
            ),
        )

    def _cancel(self, command: Command) -> ExecutionResult:
        request = command.request
        return self._transition(
            command, self._machine, request.run_id, "cancel",
            lambda run: ExtrusionRunCancelled(
                run_id=run.aggregate_id, run_code=run.code, reason=request.reason,
            ),
        )
