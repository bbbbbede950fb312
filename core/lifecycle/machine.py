"""
Brickflow Lifecycle — Generic State Machine
============================================
One engine, driven by a per-aggregate configuration table.

An AggregateConfig declares:
    - the initial and terminal statuses
    - named transitions   (source statuses → target status, timestamp)
    - named activities    (operations that keep the status, e.g.
                           add_input, record_output, allowed statuses)

The machine only answers "is this legal?" and produces the next
snapshot. It never appends events and never reads availability.

Terminal statuses are one-way: no transition or activity leaves them
unless a transition explicitly lists them as idempotent.
"""

from __future__ import annotations

from dataclasses import dataclass, field
from datetime import datetime
from typing import FrozenSet, Mapping, Optional, Tuple

from core.event_store.contracts import Snapshot
from core.guards.errors import IllegalStateTransition

STAMP_FIELDS = frozenset({"started_at", "completed_at"})


# ══════════════════════════════════════════════════════════════
# CONFIGURATION TABLE ROWS
# ══════════════════════════════════════════════════════════════

@dataclass(frozen=True)
class Transition:
    """
    name:            operation name, e.g. "start"
    sources:         statuses that accept the transition
    target:          status after the transition
    stamp:           snapshot timestamp set on success
    message:         override for the generic rejection text
    blocked:         per-status rejection text (status → message)
    idempotent_from: statuses where the call succeeds as a no-op
    """

    name: str
    sources: FrozenSet[str]
    target: str
    stamp: Optional[str] = None
    message: Optional[str] = None
    blocked: Mapping[str, str] = field(default_factory=dict)
    idempotent_from: FrozenSet[str] = frozenset()

    def __post_init__(self):
        object.__setattr__(self, "sources", frozenset(self.sources))
        object.__setattr__(self, "idempotent_from", frozenset(self.idempotent_from))
        if self.stamp is not None and self.stamp not in STAMP_FIELDS:
            raise ValueError(f"Unknown stamp field '{self.stamp}'.")
        if not self.sources:
            raise ValueError(f"Transition '{self.name}' has no source status.")


@dataclass(frozen=True)
class Activity:
    name: str
    allowed: FrozenSet[str]
    message: Optional[str] = None
    blocked: Mapping[str, str] = field(default_factory=dict)

    def __post_init__(self):
        object.__setattr__(self, "allowed", frozenset(self.allowed))


@dataclass(frozen=True)
class AggregateConfig:
    aggregate_type: str
    label: str
    initial_status: str
    terminal: FrozenSet[str]
    transitions: Tuple[Transition, ...]
    activities: Tuple[Activity, ...] = ()
    edges: Tuple[str, ...] = ()

    def __post_init__(self):
        object.__setattr__(self, "terminal", frozenset(self.terminal))
        names = [t.name for t in self.transitions] + [a.name for a in self.activities]
        duplicates = sorted({n for n in names if names.count(n) > 1})
        if duplicates:
            raise ValueError(
                f"{self.label}: duplicate operation(s) {', '.join(duplicates)}."
            )
        for transition in self.transitions:
            leaking = transition.sources & self.terminal
            if leaking:
                raise ValueError(
                    f"{self.label}: '{transition.name}' leaves terminal "
                    f"status {sorted(leaking)}."
                )

    def transition(self, name: str) -> Transition:
        for transition in self.transitions:
            if transition.name == name:
                return transition
        raise KeyError(f"{self.label} has no transition '{name}'.")

    def activity(self, name: str) -> Activity:
        for activity in self.activities:
            if activity.name == name:
                return activity
        raise KeyError(f"{self.label} has no activity '{name}'.")

    @property
    def statuses(self) -> FrozenSet[str]:
        found = {self.initial_status} | set(self.terminal)
        for transition in self.transitions:
            found |= transition.sources
            found.add(transition.target)
        return frozenset(found)


# ══════════════════════════════════════════════════════════════
# MACHINE
# ══════════════════════════════════════════════════════════════

class LifecycleMachine:
    """
    Usage:
        machine = LifecycleMachine(MIX_BATCH_LIFECYCLE)
        machine.require_activity(snapshot.status, "add_component")
        updated = machine.apply(snapshot, "start", now)   # None → no-op
    """

    def __init__(self, config: AggregateConfig):
        self.config = config

    def _illegal(self, status, action, message, rule) -> IllegalStateTransition:
        return IllegalStateTransition(
            message or (
                f"Cannot {action.replace('_', ' ')} {self.config.label.lower()} "
                f"in status '{status}'."
            ),
            current_status=status,
            action=action,
            rule=rule,
        )

    def check_transition(self, status: str, name: str) -> Optional[Transition]:
        """
        Return the transition to apply, or None when the call is an
        idempotent no-op. Raise IllegalStateTransition otherwise.
        """
        transition = self.config.transition(name)
        if status in transition.idempotent_from:
            return None
        if status in transition.blocked:
            raise self._illegal(
                status, name, transition.blocked[status],
                f"{self.config.aggregate_type}.{name}",
            )
        if status not in transition.sources:
            raise self._illegal(
                status, name, transition.message,
                f"{self.config.aggregate_type}.{name}",
            )
        return transition

    def require_activity(self, status: str, name: str) -> None:
        activity = self.config.activity(name)
        if status in activity.allowed:
            return
        raise self._illegal(
            status,
            name,
            activity.blocked.get(status, activity.message),
            f"{self.config.aggregate_type}.{name}",
        )

    def apply(self, snapshot: Snapshot, name: str, now: datetime) -> Optional[Snapshot]:
        """Next snapshot for transition ``name``, or None for a no-op."""
        transition = self.check_transition(snapshot.status, name)
        if transition is None:
            return None
        changes = {"status": transition.target, "updated_at": now}
        if transition.stamp is not None:
            changes[transition.stamp] = now
        return snapshot.with_changes(**changes)

    def is_terminal(self, status: str) -> bool:
        return status in self.config.terminal
