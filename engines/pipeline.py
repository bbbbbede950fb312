"""
Brickflow Engines — Pipeline Wiring
===================================
Builds every engine service over one store, one event-type registry,
one availability service and one reservation protocol, and routes
typed requests through the command bus.

Usage:
    pipeline = Pipeline.in_memory(clock=FixedClock(NOW))
    result = pipeline.execute(context, CreateMixBatchRequest(code="MB-1"))

    pipeline = Pipeline.django()          # ORM-backed store

Every service registers its command handlers on the shared bus, so
``execute`` needs no knowledge of which engine owns a request.
"""

from __future__ import annotations

import uuid
from typing import Optional

from core.availability.service import AvailabilityService
from core.commands.base import Request
from core.commands.bus import CommandBus
from core.commands.outcomes import ExecutionResult
from core.config.rules import PipelineRules
from core.context.actor_context import ActorContext
from core.event_store.contracts import Store
from core.event_store.memory import InMemoryStore
from core.event_store.validators.registry import EventTypeRegistry
from core.reservations.protocol import ReservationProtocol
from core.time.clock import Clock, SystemClock
from engines.crushing.services import CrushingService
from engines.dispatch.services import DispatchService
from engines.dry_yard.services import DryYardService
from engines.extrusion.services import ExtrusionService
from engines.finance.services import FinanceService
from engines.kiln.services import KilnService
from engines.mining.services import MiningService
from engines.mixing.services import MixingService
from engines.packing.services import PackingService
from engines.sales.services import SalesService
from engines.stockpile.services import StockpileService


class Pipeline:
    """All engines of one plant deployment, sharing store and bus."""

    def __init__(
        self,
        *,
        store: Store,
        clock: Optional[Clock] = None,
        rules: Optional[PipelineRules] = None,
    ):
        self.store = store
        self.clock = clock or SystemClock()
        self.rules = rules or PipelineRules()
        self.registry = EventTypeRegistry()
        self.availability = AvailabilityService(store.events)
        self.command_bus = CommandBus(rules=self.rules)
        self.reservations = ReservationProtocol(
            store=store, availability=self.availability,
        )

        deps = dict(
            store=store,
            registry=self.registry,
            availability=self.availability,
            command_bus=self.command_bus,
            clock=self.clock,
            rules=self.rules,
        )
        self.mining = MiningService(**deps)
        self.stockpile = StockpileService(**deps)
        self.mixing = MixingService(**deps)
        self.crushing = CrushingService(**deps)
        self.extrusion = ExtrusionService(**deps)
        self.dry_yard = DryYardService(**deps)
        self.kiln = KilnService(**deps)
        self.packing = PackingService(reservations=self.reservations, **deps)
        self.sales = SalesService(reservations=self.reservations, **deps)
        self.dispatch = DispatchService(reservations=self.reservations, **deps)
        self.finance = FinanceService(reservations=self.reservations, **deps)

    @classmethod
    def in_memory(
        cls,
        *,
        clock: Optional[Clock] = None,
        rules: Optional[PipelineRules] = None,
    ) -> "Pipeline":
        return cls(store=InMemoryStore(), clock=clock, rules=rules)

    @classmethod
    def django(
        cls,
        *,
        clock: Optional[Clock] = None,
        rules: Optional[PipelineRules] = None,
    ) -> "Pipeline":
        """ORM-backed pipeline; rules default to ``settings.BRICKFLOW_RULES``."""
        from core.config.rules import rules_from_settings
        from core.event_store.persistence.repository import DjangoStore

        return cls(
            store=DjangoStore(),
            clock=clock,
            rules=rules or rules_from_settings(),
        )

    def execute(
        self,
        context: ActorContext,
        request: Request,
        *,
        correlation_id: Optional[uuid.UUID] = None,
    ) -> ExecutionResult:
        command = request.to_command(
            context=context,
            command_id=uuid.uuid4(),
            correlation_id=correlation_id or uuid.uuid4(),
            issued_at=self.clock.now_utc(),
        )
        return self.command_bus.handle(command)
