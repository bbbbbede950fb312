"""
Brickflow Mixing Engine — Application Service
==============================================
Mix batch commands → snapshot + events.

Adding a component appends MIX_COMPONENT_ADDED on the batch and then
STOCKPILE_TRANSFERRED_OUT on the stockpile, one correlation id, the
stockpile event caused by the batch event. Removing is the mirror
image (MIX_COMPONENT_REMOVED + STOCKPILE_TRANSFERRED_IN).
"""

from __future__ import annotations

import uuid

from core.availability.calculator import Availability
from core.availability.guards import require_available
from core.commands.base import Command
from core.commands.outcomes import ExecutionResult
from core.engines.service import PipelineService
from core.events.envelope import AggregateType
from core.lifecycle.machine import LifecycleMachine
from core.lifecycle.standard import PLANNED
from engines.mixing.commands import (
    MIXING_ADD_COMPONENT_REQUEST,
    MIXING_CANCEL_REQUEST,
    MIXING_COMPLETE_REQUEST,
    MIXING_CREATE_REQUEST,
    MIXING_PAUSE_REQUEST,
    MIXING_REMOVE_COMPONENT_REQUEST,
    MIXING_RESUME_REQUEST,
    MIXING_START_REQUEST,
)
from engines.mixing.events import (
    MIX_COMPONENT_ADDED,
    MIX_COMPONENT_REMOVED,
    MixBatchCancelled,
    MixBatchCompleted,
    MixBatchCreated,
    MixBatchPaused,
    MixBatchResumed,
    MixBatchStarted,
    MixComponentAdded,
    MixComponentRemoved,
    register_mixing_event_types,
)
from engines.mixing.policies import COMPONENT_NOT_IN_BATCH, MIX_BATCH_LIFECYCLE
from engines.stockpile.events import (
    StockpileTransferredIn,
    StockpileTransferredOut,
    register_stockpile_event_types,
)
from engines.stockpile.policies import INSUFFICIENT_STOCKPILE, STOCKPILE_TO_MIXING


class MixingService(PipelineService):
    engine = "mixing"

    def __init__(self, **deps):
        self._machine = LifecycleMachine(MIX_BATCH_LIFECYCLE)
        super().__init__(**deps)

    def _register_event_types(self, registry) -> None:
        register_mixing_event_types(registry)
        register_stockpile_event_types(registry)

    def _register_edges(self, availability) -> None:
        availability.register(STOCKPILE_TO_MIXING)

    def _command_handlers(self):
        return {
            MIXING_CREATE_REQUEST: self._create,
            MIXING_ADD_COMPONENT_REQUEST: self._add_component,
            MIXING_REMOVE_COMPONENT_REQUEST: self._remove_component,
            MIXING_START_REQUEST: self._start,
            MIXING_PAUSE_REQUEST: self._pause,
            MIXING_RESUME_REQUEST: self._resume,
            MIXING_COMPLETE_REQUEST: self._complete,
            MIXING_CANCEL_REQUEST: self._cancel,
        }

    # ══════════════════════════════════════════════════════════
    # QUERIES
    # ══════════════════════════════════════════════════════════

    def components_from(
        self, tenant_id: uuid.UUID, batch_id: uuid.UUID, stockpile_id: uuid.UUID,
    ) -> float:
        """Net tonnes drawn from one stockpile into one batch."""
        rows = self.store.events.list_events(
            tenant_id,
            aggregate_type=AggregateType.MIX_BATCH,
            aggregate_id=batch_id,
            event_types=[MIX_COMPONENT_ADDED, MIX_COMPONENT_REMOVED],
            link_key="stockpileId",
            link_value=str(stockpile_id),
        )
        total = 0.0
        for row in rows:
            quantity = row.quantity("quantityTonnes")
            total += quantity if row.event_type == MIX_COMPONENT_ADDED else -quantity
        return max(0.0, total)

    # ══════════════════════════════════════════════════════════
    # HANDLERS
    # ══════════════════════════════════════════════════════════

    def _create(self, command: Command) -> ExecutionResult:
        request = command.request
        batch = self._batch(command)
        with self.store.atomic():
            self._require_new_code(command, AggregateType.MIX_BATCH, request.code, "Batch")
            snapshot = self._new_snapshot(
                command,
                AggregateType.MIX_BATCH,
                request.code,
                PLANNED,
                target_output_tonnes=request.target_output_tonnes,
            )
            batch.emit(
                AggregateType.MIX_BATCH,
                snapshot.aggregate_id,
                MixBatchCreated(
                    batch_id=snapshot.aggregate_id,
                    batch_code=snapshot.code,
                    target_output_tonnes=request.target_output_tonnes,
                ),
            )
        return batch.result(snapshot.aggregate_id, snapshot.status)

    def _add_component(self, command: Command) -> ExecutionResult:
        request = command.request
        batch = self._batch(command)
        with self.store.atomic():
            mix = self._load(
                command, AggregateType.MIX_BATCH, request.batch_id, "Batch",
                for_update=True,
            )
            pile = self._load(
                command, AggregateType.STOCKPILE, request.stockpile_id, "Stockpile",
                for_update=True,
            )
            self._machine.require_activity(mix.status, "add_component")
            require_available(
                self.availability.available(
                    STOCKPILE_TO_MIXING.name, command.tenant_id, pile.aggregate_id,
                ),
                request.quantity_tonnes,
                INSUFFICIENT_STOCKPILE,
                rule="stockpile.availability",
            )

            # ── consumer side first, stockpile side caused by it ──
            added = batch.emit(
                AggregateType.MIX_BATCH,
                mix.aggregate_id,
                MixComponentAdded(
                    batch_id=mix.aggregate_id,
                    batch_code=mix.code,
                    stockpile_id=pile.aggregate_id,
                    stockpile_code=pile.code,
                    material_type=request.material_type,
                    quantity_tonnes=request.quantity_tonnes,
                    reference=request.reference,
                ),
                required=True,
            )
            batch.emit(
                AggregateType.STOCKPILE,
                pile.aggregate_id,
                StockpileTransferredOut(
                    stockpile_id=pile.aggregate_id,
                    code=pile.code,
                    quantity_tonnes=request.quantity_tonnes,
                    mix_batch_id=mix.aggregate_id,
                    reference=request.reference,
                ),
                causation_id=added.event_id,
                required=True,
            )
            remaining = self.availability.available(
                STOCKPILE_TO_MIXING.name, command.tenant_id, pile.aggregate_id,
            )
        return batch.result(
            mix.aggregate_id, mix.status,
            {"stockpile_available_tonnes": remaining.or_zero()},
        )

    def _remove_component(self, command: Command) -> ExecutionResult:
        request = command.request
        batch = self._batch(command)
        with self.store.atomic():
            mix = self._load(
                command, AggregateType.MIX_BATCH, request.batch_id, "Batch",
                for_update=True,
            )
            pile = self._load(
                command, AggregateType.STOCKPILE, request.stockpile_id, "Stockpile",
                for_update=True,
            )
            self._machine.require_activity(mix.status, "remove_component")
            drawn = self.components_from(
                command.tenant_id, mix.aggregate_id, pile.aggregate_id,
            )
            require_available(
                Availability.of(drawn),
                request.quantity_tonnes,
                COMPONENT_NOT_IN_BATCH,
                rule="mix_batch.component_bound",
            )

            removed = batch.emit(
                AggregateType.MIX_BATCH,
                mix.aggregate_id,
                MixComponentRemoved(
                    batch_id=mix.aggregate_id,
                    batch_code=mix.code,
                    stockpile_id=pile.aggregate_id,
                    stockpile_code=pile.code,
                    quantity_tonnes=request.quantity_tonnes,
                    reference=request.reference,
                ),
                required=True,
            )
            batch.emit(
                AggregateType.STOCKPILE,
                pile.aggregate_id,
                StockpileTransferredIn(
                    stockpile_id=pile.aggregate_id,
                    code=pile.code,
                    quantity_tonnes=request.quantity_tonnes,
                    mix_batch_id=mix.aggregate_id,
                    reference=request.reference,
                ),
                causation_id=removed.event_id,
                required=True,
            )
        return batch.result(mix.aggregate_id, mix.status)

    def _start(self, command: Command) -> ExecutionResult:
        return self._transition(
            command, self._machine, command.request.batch_id, "start",
            lambda mix: MixBatchStarted(
                batch_id=mix.aggregate_id,
                batch_code=mix.code,
                started_at=mix.started_at,
            ),
        )

    def _pause(self, command: Command) -> ExecutionResult:
        request = command.request
        return self._transition(
            command, self._machine, request.batch_id, "pause",
            lambda mix: MixBatchPaused(
                batch_id=mix.aggregate_id, batch_code=mix.code, reason=request.reason,
            ),
        )

    def _resume(self, command: Command) -> ExecutionResult:
        return self._transition(
            command, self._machine, command.request.batch_id, "resume",
            lambda mix: MixBatchResumed(batch_id=mix.aggregate_id, batch_code=mix.code),
        )

    def _complete(self, command: Command) -> ExecutionResult:
        request = command.request
        return self._transition(
            command, self._machine, request.batch_id, "complete",
            lambda mix: MixBatchCompleted(
                batch_id=mix.aggregate_id,
                batch_code=mix.code,
                output_tonnes=request.output_tonnes,
                moisture_pct=request.moisture_pct,
                completed_at=mix.completed_at,
            ),
            attributes={
                "output_tonnes": request.output_tonnes,
                "moisture_pct": request.moisture_pct,
            },
        )

    def _cancel(self, command: Command) -> ExecutionResult:
        request = command.request
        return self._transition(
            command, self._machine, request.batch_id, "cancel",
            lambda mix: MixBatchCancelled(
                batch_id=mix.aggregate_id, batch_code=mix.code, reason=request.reason,
            ),
        )
