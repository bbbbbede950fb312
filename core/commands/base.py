"""
Brickflow Command Layer — Command Base Contract
================================================
Every operation begins as a typed request that becomes a Command.

A Command is a frozen declaration of intent. It carries identity,
the explicit actor context and the typed request, nothing else.

Rules:
- Immutable once created (frozen dataclass)
- No business logic inside
- No store interaction
- command_type follows engine.domain.action.request format

Attribution (actor + tenant) is NOT checked here. A command without
attribution can exist so the bus can reject it with AttributionMissing
before any handler runs.
"""

from __future__ import annotations

import uuid
from dataclasses import dataclass
from datetime import datetime
from typing import Any, ClassVar, Optional

from core.context.actor_context import ACTOR_HUMAN, ActorContext


# ══════════════════════════════════════════════════════════════
# CANONICAL COMMAND
# ══════════════════════════════════════════════════════════════

@dataclass(frozen=True)
class Command:
    """
    Canonical Brickflow Command.

    Fields:
        command_id:     Unique identifier (UUID).
        command_type:   'mixing.batch.add_component.request' etc.
        tenant_id:      Tenant boundary (None only when unattributed).
        actor_id:       Authenticated actor.
        actor_role:     Tenant membership role.
        request:        The typed request object.
        issued_at:      When the command was issued.
        correlation_id: Shared by every event the command appends
                        unless the handler pairs events itself.
        source_engine:  First segment of command_type.
    """

    command_id: uuid.UUID
    command_type: str
    tenant_id: Optional[uuid.UUID]
    actor_id: Optional[str]
    actor_role: Optional[str]
    request: Any
    issued_at: datetime
    correlation_id: uuid.UUID
    source_engine: str
    actor_type: str = ACTOR_HUMAN
    actor_name: Optional[str] = None

    def __post_init__(self):
        # ── command_id must be UUID ───────────────────────────
        if not isinstance(self.command_id, uuid.UUID):
            raise ValueError(
                f"command_id must be UUID, got {type(self.command_id).__name__}"
            )

        # ── command_type format ───────────────────────────────
        if not self.command_type or not isinstance(self.command_type, str):
            raise ValueError("command_type must be a non-empty string.")

        if not self.command_type.endswith(".request"):
            raise ValueError(
                f"command_type '{self.command_type}' must end with '.request'."
            )

        parts = self.command_type.split(".")
        if len(parts) < 4:
            raise ValueError(
                f"command_type '{self.command_type}' must follow "
                f"engine.domain.action.request format."
            )

        if parts[0] != self.source_engine:
            raise ValueError(
                f"command_type namespace '{parts[0]}' does not match "
                f"source_engine '{self.source_engine}'."
            )

        # ── correlation + time ────────────────────────────────
        if not isinstance(self.correlation_id, uuid.UUID):
            raise ValueError("correlation_id must be UUID.")

        if not isinstance(self.issued_at, datetime) or self.issued_at.tzinfo is None:
            raise ValueError("issued_at must be a timezone-aware datetime.")

    @property
    def context(self) -> ActorContext:
        return ActorContext(
            actor_id=self.actor_id,
            tenant_id=self.tenant_id,
            actor_role=self.actor_role,
            actor_type=self.actor_type,
            actor_name=self.actor_name,
        )


# ══════════════════════════════════════════════════════════════
# REQUEST BASE
# ══════════════════════════════════════════════════════════════

@dataclass(frozen=True)
class Request:
    """
    Base for typed operation requests.

    Subclasses are frozen dataclasses that validate numeric and text
    preconditions in ``__post_init__`` and declare ``command_type``.
    """

    command_type: ClassVar[str] = ""

    def to_command(
        self,
        *,
        context: ActorContext,
        command_id: uuid.UUID,
        correlation_id: uuid.UUID,
        issued_at: datetime,
    ) -> Command:
        return Command(
            command_id=command_id,
            command_type=self.command_type,
            tenant_id=context.tenant_id,
            actor_id=context.actor_id,
            actor_role=context.actor_role,
            request=self,
            issued_at=issued_at,
            correlation_id=correlation_id,
            source_engine=derive_source_engine(self.command_type),
            actor_type=context.actor_type,
            actor_name=context.actor_name,
        )


def derive_source_engine(command_type: str) -> str:
    """
    Extract source engine from command type.

    mixing.batch.add_component.request → mixing
    """
    return command_type.split(".")[0]
