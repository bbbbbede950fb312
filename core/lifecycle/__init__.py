"""
Brickflow Lifecycle — Public API
=================================
"""

from core.lifecycle.machine import (
    Activity,
    AggregateConfig,
    LifecycleMachine,
    Transition,
)
from core.lifecycle.standard import (
    ACTIVE,
    CANCELLED,
    COMPLETED,
    OPEN_STATUSES,
    PAUSED,
    PLANNED,
    RUN_TERMINAL,
    run_lifecycle,
    run_transitions,
)

__all__ = [
    "Activity",
    "AggregateConfig",
    "LifecycleMachine",
    "Transition",
    "PLANNED",
    "ACTIVE",
    "PAUSED",
    "COMPLETED",
    "CANCELLED",
    "OPEN_STATUSES",
    "RUN_TERMINAL",
    "run_lifecycle",
    "run_transitions",
]
