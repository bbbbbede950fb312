"""
Brickflow Event Store — Event Log Appender
===========================================
The single write path for events:

    append_event(events, registry, context, aggregate_type, aggregate_id,
                 payload, occurred_at, ...)

Write flow:
    1. Validate envelope against the registry   (raises: programming error)
    2. Check attribution                        (reported as a warning)
    3. Append one immutable row                 (failure reported as a warning)

Steps 2 and 3 never raise into the caller's transaction. A guarded
state change that already passed validation is not rolled back because
its audit row could not be written; instead the result carries an
explicit warning list that callers and tests can assert on.

This service does NOT:
- Check aggregate status or availability (core.lifecycle, core.availability)
- Retry on failure
- Write snapshots
"""

from __future__ import annotations

import logging
import uuid
from dataclasses import dataclass
from datetime import datetime
from typing import Optional, Tuple

from core.context.actor_context import ActorContext
from core.event_store.contracts import EventStore
from core.event_store.persistence.errors import EventLogWarningCode
from core.event_store.validators import EventTypeRegistry, validate_event
from core.events.envelope import EventRecord
from core.events.payload import EventPayload

logger = logging.getLogger("brickflow.events")


@dataclass(frozen=True)
class EventLogWarning:
    code: str
    message: str
    event_type: str
    aggregate_id: Optional[uuid.UUID] = None

    def to_dict(self) -> dict:
        return {
            "code": self.code,
            "message": self.message,
            "event_type": self.event_type,
            "aggregate_id": str(self.aggregate_id) if self.aggregate_id else None,
        }


@dataclass(frozen=True)
class AppendResult:
    """Stored event (or None) plus any warnings raised while appending."""

    event: Optional[EventRecord]
    warnings: Tuple[EventLogWarning, ...] = ()

    @property
    def appended(self) -> bool:
        return self.event is not None


def append_event(
    *,
    events: EventStore,
    registry: EventTypeRegistry,
    context: ActorContext,
    aggregate_type: str,
    aggregate_id: uuid.UUID,
    payload: EventPayload,
    occurred_at: datetime,
    source: str = "web",
    correlation_id: Optional[uuid.UUID] = None,
    causation_id: Optional[uuid.UUID] = None,
    event_id: Optional[uuid.UUID] = None,
) -> AppendResult:
    """
    Append one event and report, rather than raise, append failures.

    Raises:
        UnknownEventType / PayloadMismatch when the payload is not a
        registered variant for aggregate_type. These are programming
        errors, not runtime conditions.
    """

    # ── Step 1: Envelope validation ───────────────────────────
    event_type = registry.event_type_of(payload)
    wire_payload = validate_event(
        event_type=event_type,
        aggregate_type=aggregate_type,
        payload=payload,
        registry=registry,
    )

    # ── Step 2: Attribution ───────────────────────────────────
    if not context.has_attribution():
        message = "Event not logged: actor or tenant missing."
        logger.warning(
            "%s event_type=%s aggregate_id=%s",
            message, event_type, aggregate_id,
        )
        return AppendResult(
            event=None,
            warnings=(
                EventLogWarning(
                    code=EventLogWarningCode.ATTRIBUTION_MISSING,
                    message=message,
                    event_type=event_type,
                    aggregate_id=aggregate_id,
                ),
            ),
        )

    record = EventRecord(
        event_id=event_id or uuid.uuid4(),
        tenant_id=context.tenant_id,
        actor_id=context.actor_id,
        actor_role=context.actor_role,
        aggregate_type=aggregate_type,
        aggregate_id=aggregate_id,
        event_type=event_type,
        payload=wire_payload,
        source=source,
        occurred_at=occurred_at,
        correlation_id=correlation_id,
        causation_id=causation_id,
    )

    # ── Step 3: Persist ───────────────────────────────────────
    try:
        stored = events.append(record)
    except Exception as exc:
        logger.error(
            "Event append failed event_type=%s aggregate_id=%s: %s",
            event_type, aggregate_id, exc,
            exc_info=True,
        )
        return AppendResult(
            event=None,
            warnings=(
                EventLogWarning(
                    code=EventLogWarningCode.PERSISTENCE_FAILED,
                    message=f"Event not logged: {exc}",
                    event_type=event_type,
                    aggregate_id=aggregate_id,
                ),
            ),
        )

    return AppendResult(event=stored)
