"""
Brickflow Event Store — Store Contracts
========================================
The interfaces every persistence backend must satisfy, plus the
snapshot record shape.

Two backends exist:
    core.event_store.memory.InMemoryStore         (tests, embedding)
    core.event_store.persistence.DjangoStore      (Django ORM)

A guarded operation runs entirely inside ``store.atomic()``:
read snapshot/availability → validate → write snapshot → append events.
"""

from __future__ import annotations

import uuid
from contextlib import AbstractContextManager
from dataclasses import dataclass, field, replace
from datetime import datetime
from typing import Any, Iterable, List, Mapping, Optional, Protocol

from core.events.envelope import EventRecord


@dataclass(frozen=True)
class Snapshot:
    """
    Materialized current state of one aggregate (or master-data row).

    The event log stays authoritative; a snapshot only makes
    "find by id / code / status" cheap. Snapshots are never deleted:
    completed/cancelled are terminal statuses.
    """

    tenant_id: uuid.UUID
    kind: str
    aggregate_id: uuid.UUID
    code: str
    status: str
    attributes: Mapping[str, Any] = field(default_factory=dict)
    created_at: Optional[datetime] = None
    started_at: Optional[datetime] = None
    completed_at: Optional[datetime] = None
    updated_at: Optional[datetime] = None

    def attr(self, key: str, default: Any = None) -> Any:
        return self.attributes.get(key, default)

    def with_changes(self, **changes: Any) -> "Snapshot":
        return replace(self, **changes)

    def with_attributes(self, **attributes: Any) -> "Snapshot":
        merged = dict(self.attributes)
        merged.update(attributes)
        return replace(self, attributes=merged)


class EventStore(Protocol):
    def append(self, record: EventRecord) -> EventRecord:
        ...  # pragma: no cover

    def list_events(
        self,
        tenant_id: uuid.UUID,
        *,
        aggregate_type: str,
        aggregate_id: Optional[uuid.UUID] = None,
        event_types: Optional[Iterable[str]] = None,
        link_key: Optional[str] = None,
        link_value: Optional[str] = None,
    ) -> List[EventRecord]:
        """
        Events of one aggregate type within a tenant, in append order.

        link_key/link_value filter on a payload reference, e.g.
        ("mixBatchId", "<uuid>") on crush_run events.
        """
        ...  # pragma: no cover


class SnapshotStore(Protocol):
    def get(
        self,
        tenant_id: uuid.UUID,
        kind: str,
        aggregate_id: uuid.UUID,
        *,
        for_update: bool = False,
    ) -> Optional[Snapshot]:
        ...  # pragma: no cover

    def find_by_code(
        self, tenant_id: uuid.UUID, kind: str, code: str,
    ) -> Optional[Snapshot]:
        ...  # pragma: no cover

    def list(
        self,
        tenant_id: uuid.UUID,
        kind: str,
        *,
        statuses: Optional[Iterable[str]] = None,
    ) -> List[Snapshot]:
        ...  # pragma: no cover

    def insert(self, snapshot: Snapshot) -> Snapshot:
        ...  # pragma: no cover

    def save(self, snapshot: Snapshot) -> Snapshot:
        ...  # pragma: no cover


class Store(Protocol):
    events: EventStore
    snapshots: SnapshotStore

    def atomic(self) -> AbstractContextManager:
        ...  # pragma: no cover
