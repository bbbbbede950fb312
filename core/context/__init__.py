"""
Brickflow Context - Public API
==============================
Explicit actor/tenant context.
"""

from core.context.actor_context import (
    ACTOR_HUMAN,
    ACTOR_SYSTEM,
    VALID_ACTOR_TYPES,
    ActorContext,
)

__all__ = [
    "ACTOR_HUMAN",
    "ACTOR_SYSTEM",
    "VALID_ACTOR_TYPES",
    "ActorContext",
]
