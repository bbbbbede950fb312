"""
Brickflow Context - ActorContext
================================
Explicit (actor, tenant, role) context passed to every core operation.

There is no ambient session: callers resolve the authenticated actor and
hand the result in. A context with a missing actor or tenant is allowed to
exist so the command layer can reject it with AttributionMissing.
"""

from __future__ import annotations

import uuid
from dataclasses import dataclass
from typing import Optional

from core.guards.errors import AttributionMissing

ACTOR_HUMAN = "HUMAN"
ACTOR_SYSTEM = "SYSTEM"

VALID_ACTOR_TYPES = frozenset({ACTOR_HUMAN, ACTOR_SYSTEM})


@dataclass(frozen=True)
class ActorContext:
    """
    Canonical actor identity for one operation call.

    actor_role is the tenant membership role (e.g. "kiln_operator").
    actor_name is optional display text copied into some payloads.
    """

    actor_id: Optional[str]
    tenant_id: Optional[uuid.UUID]
    actor_role: Optional[str] = None
    actor_type: str = ACTOR_HUMAN
    actor_name: Optional[str] = None

    def __post_init__(self):
        if self.actor_type not in VALID_ACTOR_TYPES:
            raise ValueError(
                f"actor_type '{self.actor_type}' not valid."
            )
        if self.tenant_id is not None and not isinstance(self.tenant_id, uuid.UUID):
            raise ValueError("tenant_id must be a UUID.")

    def has_attribution(self) -> bool:
        return bool(self.actor_id) and self.tenant_id is not None

    def require_attribution(self) -> uuid.UUID:
        """Return the tenant id, or raise AttributionMissing."""
        if not self.actor_id:
            raise AttributionMissing(
                "An authenticated actor is required.",
                rule="actor_attribution",
            )
        if self.tenant_id is None:
            raise AttributionMissing(
                "A resolved tenant is required.",
                rule="tenant_attribution",
            )
        return self.tenant_id
