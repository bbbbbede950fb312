"""
Brickflow Stockpile Engine — Application Service
=================================================
Stockpile commands → snapshot + events.
"""

from __future__ import annotations

import uuid

from core.availability.calculator import Availability
from core.availability.guards import require_available
from core.availability.service import AvailabilityService
from core.commands.base import Command
from core.commands.outcomes import ExecutionResult
from core.context.actor_context import ActorContext
from core.engines.service import PipelineService
from core.events.envelope import AggregateType
from core.guards.errors import NotFoundError
from core.lifecycle.machine import LifecycleMachine
from engines.stockpile.commands import (
    STOCKPILE_ADJUST_REQUEST,
    STOCKPILE_CREATE_REQUEST,
    STOCKPILE_QUALITY_REQUEST,
    STOCKPILE_RECEIPT_REQUEST,
    STOCKPILE_SAMPLE_REQUEST,
    STOCKPILE_TRANSFER_IN_REQUEST,
    STOCKPILE_TRANSFER_OUT_REQUEST,
)
from engines.stockpile.events import (
    StockpileAdjustedIn,
    StockpileAdjustedOut,
    StockpileCreated,
    StockpileQualityRecorded,
    StockpileReceiptRecorded,
    StockpileSampleTaken,
    StockpileTransferredIn,
    StockpileTransferredOut,
    register_stockpile_event_types,
)
from engines.stockpile.policies import (
    INSUFFICIENT_STOCKPILE,
    STOCKPILE_ACTIVE,
    STOCKPILE_LIFECYCLE,
    STOCKPILE_TO_MIXING,
)


class StockpileService(PipelineService):
    """
    Stockpile Engine application service.

    Outbound movements (transfer out, negative adjustment) are bounded
    by derived availability; inbound movements are not.
    """

    engine = "stockpile"

    def __init__(self, **deps):
        self._machine = LifecycleMachine(STOCKPILE_LIFECYCLE)
        super().__init__(**deps)

    def _register_event_types(self, registry) -> None:
        register_stockpile_event_types(registry)

    def _register_edges(self, availability: AvailabilityService) -> None:
        availability.register(STOCKPILE_TO_MIXING)

    def _command_handlers(self):
        return {
            STOCKPILE_CREATE_REQUEST: self._create,
            STOCKPILE_RECEIPT_REQUEST: self._record_receipt,
            STOCKPILE_TRANSFER_OUT_REQUEST: self._transfer_out,
            STOCKPILE_TRANSFER_IN_REQUEST: self._transfer_in,
            STOCKPILE_ADJUST_REQUEST: self._adjust,
            STOCKPILE_SAMPLE_REQUEST: self._take_sample,
            STOCKPILE_QUALITY_REQUEST: self._record_quality,
        }

    # ══════════════════════════════════════════════════════════
    # QUERIES
    # ══════════════════════════════════════════════════════════

    def available(self, context: ActorContext, stockpile_id: uuid.UUID) -> Availability:
        tenant_id = context.require_attribution()
        if self.store.snapshots.get(tenant_id, AggregateType.STOCKPILE, stockpile_id) is None:
            raise NotFoundError("Stockpile not found.", rule="tenant_scope")
        return self.availability.available(STOCKPILE_TO_MIXING.name, tenant_id, stockpile_id)

    # ══════════════════════════════════════════════════════════
    # HANDLERS
    # ══════════════════════════════════════════════════════════

    def _create(self, command: Command) -> ExecutionResult:
        request = command.request
        batch = self._batch(command)
        with self.store.atomic():
            existing = self.store.snapshots.find_by_code(
                command.tenant_id, AggregateType.STOCKPILE, request.code,
            )
            if existing is not None:
                return batch.result(existing.aggregate_id, existing.status)

            snapshot = self._new_snapshot(
                command,
                AggregateType.STOCKPILE,
                request.code,
                STOCKPILE_ACTIVE,
                name=request.name,
                location=request.location,
                material_type=request.material_type,
            )
            batch.emit(
                AggregateType.STOCKPILE,
                snapshot.aggregate_id,
                StockpileCreated(
                    stockpile_id=snapshot.aggregate_id,
                    code=snapshot.code,
                    name=request.name,
                    location=request.location,
                    material_type=request.material_type,
                ),
            )
        return batch.result(snapshot.aggregate_id, snapshot.status)

    def _record_receipt(self, command: Command) -> ExecutionResult:
        request = command.request
        return self._activity(
            command, self._machine, request.stockpile_id, "record_receipt",
            lambda pile: StockpileReceiptRecorded(
                stockpile_id=pile.aggregate_id,
                code=pile.code,
                quantity_tonnes=request.quantity_tonnes,
                reference=request.reference,
                notes=request.notes,
            ),
        )

    def _transfer_in(self, command: Command) -> ExecutionResult:
        request = command.request
        return self._activity(
            command, self._machine, request.stockpile_id, "transfer_in",
            lambda pile: StockpileTransferredIn(
                stockpile_id=pile.aggregate_id,
                code=pile.code,
                quantity_tonnes=request.quantity_tonnes,
                from_stockpile_id=request.from_stockpile_id,
                reference=request.reference,
            ),
        )

    def _transfer_out(self, command: Command) -> ExecutionResult:
        request = command.request
        return self._outbound(
            command, request.stockpile_id, "transfer_out", request.quantity_tonnes,
            lambda pile: StockpileTransferredOut(
                stockpile_id=pile.aggregate_id,
                code=pile.code,
                quantity_tonnes=request.quantity_tonnes,
                to_stockpile_id=request.to_stockpile_id,
                reference=request.reference,
            ),
        )

    def _adjust(self, command: Command) -> ExecutionResult:
        request = command.request
        if request.quantity_tonnes == 0:
            with self.store.atomic():
                pile = self._load(
                    command, AggregateType.STOCKPILE, request.stockpile_id, "Stockpile",
                )
            return self._batch(command).result(pile.aggregate_id, pile.status)

        quantity = abs(request.quantity_tonnes)
        if request.quantity_tonnes > 0:
            return self._activity(
                command, self._machine, request.stockpile_id, "adjust",
                lambda pile: StockpileAdjustedIn(
                    stockpile_id=pile.aggregate_id,
                    code=pile.code,
                    quantity_tonnes=quantity,
                    reason=request.reason,
                ),
            )
        return self._outbound(
            command, request.stockpile_id, "adjust", quantity,
            lambda pile: StockpileAdjustedOut(
                stockpile_id=pile.aggregate_id,
                code=pile.code,
                quantity_tonnes=quantity,
                reason=request.reason,
            ),
        )

    def _take_sample(self, command: Command) -> ExecutionResult:
        request = command.request
        return self._activity(
            command, self._machine, request.stockpile_id, "take_sample",
            lambda pile: StockpileSampleTaken(
                stockpile_id=pile.aggregate_id,
                code=pile.code,
                sample_code=request.sample_code,
            ),
        )

    def _record_quality(self, command: Command) -> ExecutionResult:
        request = command.request
        return self._activity(
            command, self._machine, request.stockpile_id, "record_quality",
            lambda pile: StockpileQualityRecorded(
                stockpile_id=pile.aggregate_id,
                code=pile.code,
                moisture_pct=request.moisture_pct,
            ),
        )

    # ── outbound movement: availability-checked ───────────────

    def _outbound(self, command, stockpile_id, activity, quantity, payload) -> ExecutionResult:
        batch = self._batch(command)
        with self.store.atomic():
            pile = self._load(
                command, AggregateType.STOCKPILE, stockpile_id, "Stockpile",
                for_update=True,
            )
            self._machine.require_activity(pile.status, activity)
            require_available(
                self.availability.available(
                    STOCKPILE_TO_MIXING.name, command.tenant_id, stockpile_id,
                ),
                quantity,
                INSUFFICIENT_STOCKPILE,
                rule="stockpile.availability",
            )
            batch.emit(AggregateType.STOCKPILE, stockpile_id, payload(pile))
        available = self.availability.available(
            STOCKPILE_TO_MIXING.name, command.tenant_id, stockpile_id,
        )
        return batch.result(stockpile_id, pile.status, {"available_tonnes": available.or_zero()})
