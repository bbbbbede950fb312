"""
Brickflow Event Store - Django Repository
=========================================
ORM-backed implementation of the store contracts.

Transaction rules:
    - ``DjangoStore.atomic()`` wraps one guarded operation
    - every append and snapshot write runs in its own savepoint, so a
      failed append can be reported without poisoning the outer
      transaction
    - ``snapshots.get(..., for_update=True)`` issues SELECT ... FOR UPDATE
      on the snapshot row, the lock boundary for concurrent writers
"""

from __future__ import annotations

import uuid
from typing import Iterable, List, Optional

from django.db import IntegrityError, transaction

from core.event_store.contracts import Snapshot
from core.event_store.errors import (
    DuplicateEventError,
    DuplicateSnapshotError,
    SnapshotMissingError,
)
from core.event_store.models import AggregateSnapshot, Event
from core.event_store.query_scope import require_tenant
from core.events.envelope import EventRecord
from core.events.payload import encode_value


def _to_record(row: Event) -> EventRecord:
    return EventRecord(
        event_id=row.event_id,
        tenant_id=row.tenant_id,
        actor_id=row.actor_id,
        actor_role=row.actor_role,
        aggregate_type=row.aggregate_type,
        aggregate_id=row.aggregate_id,
        event_type=row.event_type,
        payload=row.payload,
        source=row.source,
        occurred_at=row.occurred_at,
        correlation_id=row.correlation_id,
        causation_id=row.causation_id,
        recorded_at=row.recorded_at,
    )


def _to_snapshot(row: AggregateSnapshot) -> Snapshot:
    return Snapshot(
        tenant_id=row.tenant_id,
        kind=row.kind,
        aggregate_id=row.aggregate_id,
        code=row.code,
        status=row.status,
        attributes=row.attributes or {},
        created_at=row.created_at,
        started_at=row.started_at,
        completed_at=row.completed_at,
        updated_at=row.updated_at,
    )


def _snapshot_fields(snapshot: Snapshot) -> dict:
    return {
        "code": snapshot.code,
        "status": snapshot.status,
        "attributes": encode_value(dict(snapshot.attributes)),
        "created_at": snapshot.created_at,
        "started_at": snapshot.started_at,
        "completed_at": snapshot.completed_at,
        "updated_at": snapshot.updated_at,
    }


class DjangoEventStore:
    def append(self, record: EventRecord) -> EventRecord:
        require_tenant(record.tenant_id, operation="write")
        try:
            with transaction.atomic():
                row = Event.objects.create(
                    event_id=record.event_id,
                    tenant_id=record.tenant_id,
                    actor_id=record.actor_id,
                    actor_role=record.actor_role,
                    aggregate_type=record.aggregate_type,
                    aggregate_id=record.aggregate_id,
                    event_type=record.event_type,
                    payload=dict(record.payload),
                    source=record.source,
                    correlation_id=record.correlation_id,
                    causation_id=record.causation_id,
                    occurred_at=record.occurred_at,
                )
        except IntegrityError as exc:
            if Event.objects.filter(event_id=record.event_id).exists():
                raise DuplicateEventError(record.event_id) from exc
            raise
        return _to_record(row)

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
        require_tenant(tenant_id)
        query = Event.objects.filter(
            tenant_id=tenant_id,
            aggregate_type=aggregate_type,
        )
        if aggregate_id is not None:
            query = query.filter(aggregate_id=aggregate_id)
        if event_types is not None:
            query = query.filter(event_type__in=list(event_types))
        if link_key is not None:
            query = query.filter(**{f"payload__{link_key}": str(link_value)})
        return [_to_record(row) for row in query.order_by("id")]


class DjangoSnapshotStore:
    def get(
        self,
        tenant_id: uuid.UUID,
        kind: str,
        aggregate_id: uuid.UUID,
        *,
        for_update: bool = False,
    ) -> Optional[Snapshot]:
        require_tenant(tenant_id)
        query = AggregateSnapshot.objects.filter(
            tenant_id=tenant_id, kind=kind, aggregate_id=aggregate_id,
        )
        if for_update:
            query = query.select_for_update()
        row = query.first()
        return _to_snapshot(row) if row is not None else None

    def find_by_code(
        self, tenant_id: uuid.UUID, kind: str, code: str,
    ) -> Optional[Snapshot]:
        require_tenant(tenant_id)
        row = AggregateSnapshot.objects.filter(
            tenant_id=tenant_id, kind=kind, code=code,
        ).first()
        return _to_snapshot(row) if row is not None else None

    def list(
        self,
        tenant_id: uuid.UUID,
        kind: str,
        *,
        statuses: Optional[Iterable[str]] = None,
    ) -> List[Snapshot]:
        require_tenant(tenant_id)
        query = AggregateSnapshot.objects.filter(tenant_id=tenant_id, kind=kind)
        if statuses is not None:
            query = query.filter(status__in=list(statuses))
        return [_to_snapshot(row) for row in query.order_by("code")]

    def insert(self, snapshot: Snapshot) -> Snapshot:
        require_tenant(snapshot.tenant_id, operation="write")
        try:
            with transaction.atomic():
                row = AggregateSnapshot.objects.create(
                    tenant_id=snapshot.tenant_id,
                    kind=snapshot.kind,
                    aggregate_id=snapshot.aggregate_id,
                    **_snapshot_fields(snapshot),
                )
        except IntegrityError as exc:
            raise DuplicateSnapshotError(
                f"{snapshot.kind} {snapshot.code} already exists."
            ) from exc
        return _to_snapshot(row)

    def save(self, snapshot: Snapshot) -> Snapshot:
        require_tenant(snapshot.tenant_id, operation="write")
        with transaction.atomic():
            updated = AggregateSnapshot.objects.filter(
                tenant_id=snapshot.tenant_id,
                kind=snapshot.kind,
                aggregate_id=snapshot.aggregate_id,
            ).update(**_snapshot_fields(snapshot))
        if updated == 0:
            raise SnapshotMissingError(
                f"{snapshot.kind} {snapshot.aggregate_id} was never inserted."
            )
        return self.get(snapshot.tenant_id, snapshot.kind, snapshot.aggregate_id)


class DjangoStore:
    """Event log and snapshot table in the configured Django database."""

    def __init__(self):
        self.events = DjangoEventStore()
        self.snapshots = DjangoSnapshotStore()

    def atomic(self):
        return transaction.atomic()
