"""
Brickflow Lifecycle — Standard Production Run
==============================================
The shared skeleton of every production aggregate:

    planned → active ⇄ paused → completed
    cancelled from planned, active or paused

Engines add their own activities (add_input, record_output, ...)
and may override the rejection text of any standard transition.
"""

from __future__ import annotations

from typing import Iterable, Mapping, Optional, Tuple

from core.lifecycle.machine import Activity, AggregateConfig, Transition

PLANNED = "planned"
ACTIVE = "active"
PAUSED = "paused"
COMPLETED = "completed"
CANCELLED = "cancelled"

OPEN_STATUSES = frozenset({PLANNED, ACTIVE, PAUSED})
RUN_TERMINAL = frozenset({COMPLETED, CANCELLED})


def run_transitions(
    messages: Optional[Mapping[str, str]] = None,
) -> Tuple[Transition, ...]:
    messages = dict(messages or {})
    return (
        Transition("start", {PLANNED}, ACTIVE, stamp="started_at",
                   message=messages.get("start")),
        Transition("pause", {ACTIVE}, PAUSED, message=messages.get("pause")),
        Transition("resume", {PAUSED}, ACTIVE, message=messages.get("resume")),
        Transition("complete", {ACTIVE}, COMPLETED, stamp="completed_at",
                   message=messages.get("complete")),
        Transition("cancel", OPEN_STATUSES, CANCELLED, message=messages.get("cancel")),
    )


def run_lifecycle(
    aggregate_type: str,
    label: str,
    *,
    activities: Iterable[Activity] = (),
    edges: Iterable[str] = (),
    messages: Optional[Mapping[str, str]] = None,
) -> AggregateConfig:
    return AggregateConfig(
        aggregate_type=aggregate_type,
        label=label,
        initial_status=PLANNED,
        terminal=RUN_TERMINAL,
        transitions=run_transitions(messages),
        activities=tuple(activities),
        edges=tuple(edges),
    )
