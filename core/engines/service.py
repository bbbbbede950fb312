"""
Brickflow Engines — Shared Service Base
========================================
Every pipeline engine (mixing, kiln, dispatch, ...) is a PipelineService.

A service:
- registers its event types, availability edges and command handlers
  when it is built
- runs each command as ONE store transaction:
      load snapshot (tenant-scoped, locked) → check status →
      check availability → write snapshot → append events
- returns an ExecutionResult carrying appended events and the
  event-log warning list

A service does NOT:
- Check attribution or roles (the command bus does)
- Swallow guard failures
- Read the wall clock directly (Clock is injected)
"""

from __future__ import annotations

import uuid
from typing import Any, Callable, ClassVar, Dict, List, Mapping, Optional

from core.availability.service import AvailabilityService
from core.commands.base import Command
from core.commands.bus import CommandBus
from core.commands.outcomes import ExecutionResult
from core.config.rules import PipelineRules
from core.event_store.contracts import Snapshot, Store
from core.event_store.persistence.errors import EventLogFailure
from core.event_store.persistence.service import EventLogWarning, append_event
from core.event_store.validators.registry import EventTypeRegistry
from core.events.envelope import EventRecord
from core.events.payload import EventPayload
from core.guards.errors import IllegalStateTransition, NotFoundError, ValidationError
from core.lifecycle.machine import LifecycleMachine
from core.time.clock import Clock


# ══════════════════════════════════════════════════════════════
# EVENT BATCH
# ══════════════════════════════════════════════════════════════

class EventBatch:
    """Collects the events and warnings appended while handling one command."""

    def __init__(self, service: "PipelineService", command: Command):
        self._service = service
        self.command = command
        self.correlation_id = command.correlation_id
        self.events: List[EventRecord] = []
        self.warnings: List[EventLogWarning] = []

    def emit(
        self,
        aggregate_type: str,
        aggregate_id: uuid.UUID,
        payload: EventPayload,
        *,
        correlation_id: Optional[uuid.UUID] = None,
        causation_id: Optional[uuid.UUID] = None,
        required: bool = False,
    ) -> Optional[EventRecord]:
        """
        Append one event. A failed append is collected as a warning, or
        raised as EventLogFailure when ``required`` (paired events).
        """
        service = self._service
        result = append_event(
            events=service.store.events,
            registry=service.registry,
            context=self.command.context,
            aggregate_type=aggregate_type,
            aggregate_id=aggregate_id,
            payload=payload,
            occurred_at=service.clock.now_utc(),
            source=service.rules.event_source,
            correlation_id=correlation_id or self.correlation_id,
            causation_id=causation_id,
        )
        if required and result.event is None:
            raise EventLogFailure(result.warnings[0])
        self.warnings.extend(result.warnings)
        if result.event is not None:
            self.events.append(result.event)
        return result.event

    def result(
        self,
        aggregate_id: Optional[uuid.UUID],
        status: Optional[str] = None,
        totals: Optional[Mapping[str, Any]] = None,
    ) -> ExecutionResult:
        return ExecutionResult(
            command_type=self.command.command_type,
            aggregate_id=aggregate_id,
            status=status,
            events=tuple(self.events),
            warnings=tuple(self.warnings),
            correlation_id=self.correlation_id,
            totals=dict(totals or {}),
        )


# ══════════════════════════════════════════════════════════════
# COMMAND HANDLER
# ══════════════════════════════════════════════════════════════

class _EngineCommandHandler:
    def __init__(self, service: "PipelineService"):
        self._service = service

    def execute(self, command: Command) -> ExecutionResult:
        return self._service._execute_command(command)


# ══════════════════════════════════════════════════════════════
# SERVICE BASE
# ══════════════════════════════════════════════════════════════

class PipelineService:
    """
    Subclasses set ``engine`` and implement:
        _register_event_types(registry)
        _register_edges(availability)       (optional)
        _command_handlers() -> {command_type: callable(command)}
    """

    engine: ClassVar[str] = ""

    def __init__(
        self,
        *,
        store: Store,
        registry: EventTypeRegistry,
        availability: AvailabilityService,
        command_bus: CommandBus,
        clock: Clock,
        rules: Optional[PipelineRules] = None,
    ):
        self.store = store
        self.registry = registry
        self.availability = availability
        self.command_bus = command_bus
        self.clock = clock
        self.rules = rules or command_bus.rules

        self._register_event_types(self.registry)
        self._register_edges(self.availability)
        self._handlers = self._command_handlers()
        self._register_handlers()

    # ── wiring hooks ──────────────────────────────────────────

    def _register_event_types(self, registry: EventTypeRegistry) -> None:
        raise NotImplementedError

    def _register_edges(self, availability: AvailabilityService) -> None:
        pass

    def _command_handlers(self) -> Dict[str, Callable[[Command], ExecutionResult]]:
        raise NotImplementedError

    def _register_handlers(self) -> None:
        handler = _EngineCommandHandler(self)
        for command_type in sorted(self._handlers):
            self.command_bus.register_handler(command_type, handler)

    def _execute_command(self, command: Command) -> ExecutionResult:
        handler = self._handlers.get(command.command_type)
        if handler is None:
            raise ValueError(
                f"Unsupported {self.engine} command type: {command.command_type}"
            )
        return handler(command)

    # ── helpers for handlers ──────────────────────────────────

    def _batch(self, command: Command) -> EventBatch:
        return EventBatch(self, command)

    def _now(self):
        return self.clock.now_utc()

    def _load(
        self,
        command: Command,
        kind: str,
        aggregate_id: uuid.UUID,
        label: str,
        *,
        for_update: bool = False,
    ) -> Snapshot:
        """Snapshot in the caller's tenant, or NotFoundError."""
        snapshot = self.store.snapshots.get(
            command.tenant_id, kind, aggregate_id, for_update=for_update,
        )
        if snapshot is None:
            raise NotFoundError(f"{label} not found.", rule="tenant_scope")
        return snapshot

    def _require_new_code(
        self, command: Command, kind: str, code: str, label: str,
    ) -> None:
        if self.store.snapshots.find_by_code(command.tenant_id, kind, code) is not None:
            raise ValidationError(
                f"{label} code '{code}' already exists.", rule="unique_code",
            )

    def _require_status(
        self, snapshot: Snapshot, allowed, message: str, *, action: str,
    ) -> None:
        """Status check on an aggregate other than the one being transitioned."""
        if snapshot.status not in allowed:
            raise IllegalStateTransition(
                message,
                current_status=snapshot.status,
                action=action,
                rule=f"{snapshot.kind}.{action}",
            )

    def _update(self, snapshot: Snapshot, **attributes: Any) -> Snapshot:
        """Save changed snapshot attributes (status untouched)."""
        updated = snapshot.with_attributes(**attributes).with_changes(
            updated_at=self._now(),
        )
        return self.store.snapshots.save(updated)

    def _new_snapshot(
        self,
        command: Command,
        kind: str,
        code: str,
        status: str,
        *,
        aggregate_id: Optional[uuid.UUID] = None,
        **attributes: Any,
    ) -> Snapshot:
        now = self._now()
        return self.store.snapshots.insert(
            Snapshot(
                tenant_id=command.tenant_id,
                kind=kind,
                aggregate_id=aggregate_id or uuid.uuid4(),
                code=code,
                status=status,
                attributes=attributes,
                created_at=now,
                updated_at=now,
            )
        )

    def _transition(
        self,
        command: Command,
        machine: LifecycleMachine,
        aggregate_id: uuid.UUID,
        name: str,
        payload: Callable[[Snapshot], EventPayload],
        *,
        attributes: Optional[Mapping[str, Any]] = None,
    ) -> ExecutionResult:
        """
        Run one configured lifecycle transition: lock, check, save, emit.
        An idempotent no-op returns the current status with no events.
        """
        config = machine.config
        batch = self._batch(command)
        with self.store.atomic():
            snapshot = self._load(
                command, config.aggregate_type, aggregate_id, config.label,
                for_update=True,
            )
            updated = machine.apply(snapshot, name, self._now())
            if updated is None:
                return batch.result(aggregate_id, snapshot.status)
            if attributes:
                updated = updated.with_attributes(**attributes)
            self.store.snapshots.save(updated)
            batch.emit(config.aggregate_type, aggregate_id, payload(updated))
        return batch.result(aggregate_id, updated.status)

    def _activity(
        self,
        command: Command,
        machine: LifecycleMachine,
        aggregate_id: uuid.UUID,
        name: str,
        payload: Callable[[Snapshot], EventPayload],
    ) -> ExecutionResult:
        """Status-preserving operation that appends one event."""
        config = machine.config
        batch = self._batch(command)
        with self.store.atomic():
            snapshot = self._load(
                command, config.aggregate_type, aggregate_id, config.label,
                for_update=True,
            )
            machine.require_activity(snapshot.status, name)
            batch.emit(config.aggregate_type, aggregate_id, payload(snapshot))
        return batch.result(aggregate_id, snapshot.status)
