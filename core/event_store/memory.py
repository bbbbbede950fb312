"""
Brickflow Event Store — In-Memory Backend
==========================================
Process-local store for tests and embedding.

Concurrency model:
    One re-entrant lock is held for the whole ``atomic()`` block, so
    every read-validate-write sequence is serialized. Two concurrent
    consumers can never both observe the same availability.

Rollback:
    If the outermost ``atomic()`` block raises, appended events and
    snapshot writes made inside it are discarded.
"""

from __future__ import annotations

import threading
import uuid
from contextlib import contextmanager
from dataclasses import replace
from typing import Dict, Iterable, Iterator, List, Optional, Tuple

from core.event_store.contracts import Snapshot
from core.event_store.errors import (
    DuplicateEventError,
    DuplicateSnapshotError,
    SnapshotMissingError,
)
from core.event_store.query_scope import require_tenant
from core.events.envelope import EventRecord
from core.events.payload import encode_value

SnapshotKey = Tuple[uuid.UUID, str, uuid.UUID]


def _normalized(snapshot: Snapshot) -> Snapshot:
    # Same JSON shape the Django backend returns (ids as str, tuples as lists).
    return replace(snapshot, attributes=encode_value(dict(snapshot.attributes)))


class InMemoryEventStore:
    def __init__(self, owner: "InMemoryStore"):
        self._owner = owner

    def append(self, record: EventRecord) -> EventRecord:
        require_tenant(record.tenant_id, operation="write")
        with self._owner._lock:
            if record.event_id in self._owner._event_ids:
                raise DuplicateEventError(record.event_id)
            if record.recorded_at is None:
                record = replace(record, recorded_at=record.occurred_at)
            self._owner._events.append(record)
            self._owner._event_ids.add(record.event_id)
            return record

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
        wanted = set(event_types) if event_types is not None else None
        with self._owner._lock:
            rows = list(self._owner._events)
        result = []
        for record in rows:
            if record.tenant_id != tenant_id:
                continue
            if record.aggregate_type != aggregate_type:
                continue
            if aggregate_id is not None and record.aggregate_id != aggregate_id:
                continue
            if wanted is not None and record.event_type not in wanted:
                continue
            if link_key is not None and str(record.payload.get(link_key)) != str(link_value):
                continue
            result.append(record)
        return result

    def all(self) -> List[EventRecord]:
        """Every stored event in append order."""
        with self._owner._lock:
            return list(self._owner._events)


class InMemorySnapshotStore:
    def __init__(self, owner: "InMemoryStore"):
        self._owner = owner

    def get(
        self,
        tenant_id: uuid.UUID,
        kind: str,
        aggregate_id: uuid.UUID,
        *,
        for_update: bool = False,
    ) -> Optional[Snapshot]:
        # for_update is implicit: atomic() already holds the store lock.
        require_tenant(tenant_id)
        with self._owner._lock:
            return self._owner._snapshots.get((tenant_id, kind, aggregate_id))

    def find_by_code(
        self, tenant_id: uuid.UUID, kind: str, code: str,
    ) -> Optional[Snapshot]:
        require_tenant(tenant_id)
        with self._owner._lock:
            for snapshot in self._owner._snapshots.values():
                if (
                    snapshot.tenant_id == tenant_id
                    and snapshot.kind == kind
                    and snapshot.code == code
                ):
                    return snapshot
        return None

    def list(
        self,
        tenant_id: uuid.UUID,
        kind: str,
        *,
        statuses: Optional[Iterable[str]] = None,
    ) -> List[Snapshot]:
        require_tenant(tenant_id)
        wanted = set(statuses) if statuses is not None else None
        with self._owner._lock:
            rows = [
                s for s in self._owner._snapshots.values()
                if s.tenant_id == tenant_id and s.kind == kind
                and (wanted is None or s.status in wanted)
            ]
        return sorted(rows, key=lambda s: s.code)

    def insert(self, snapshot: Snapshot) -> Snapshot:
        require_tenant(snapshot.tenant_id, operation="write")
        snapshot = _normalized(snapshot)
        key = (snapshot.tenant_id, snapshot.kind, snapshot.aggregate_id)
        with self._owner._lock:
            if key in self._owner._snapshots:
                raise DuplicateSnapshotError(
                    f"{snapshot.kind} {snapshot.aggregate_id} already exists."
                )
            if self.find_by_code(snapshot.tenant_id, snapshot.kind, snapshot.code):
                raise DuplicateSnapshotError(
                    f"{snapshot.kind} code {snapshot.code} already exists."
                )
            self._owner._snapshots[key] = snapshot
        return snapshot

    def save(self, snapshot: Snapshot) -> Snapshot:
        require_tenant(snapshot.tenant_id, operation="write")
        snapshot = _normalized(snapshot)
        key = (snapshot.tenant_id, snapshot.kind, snapshot.aggregate_id)
        with self._owner._lock:
            if key not in self._owner._snapshots:
                raise SnapshotMissingError(
                    f"{snapshot.kind} {snapshot.aggregate_id} was never inserted."
                )
            self._owner._snapshots[key] = snapshot
        return snapshot


class InMemoryStore:
    """Event log plus snapshot table held in process memory."""

    def __init__(self):
        self._lock = threading.RLock()
        self._events: List[EventRecord] = []
        self._event_ids: set = set()
        self._snapshots: Dict[SnapshotKey, Snapshot] = {}
        self._depth = 0
        self.events = InMemoryEventStore(self)
        self.snapshots = InMemorySnapshotStore(self)

    @contextmanager
    def atomic(self) -> Iterator["InMemoryStore"]:
        with self._lock:
            if self._depth == 0:
                mark = (
                    len(self._events),
                    set(self._event_ids),
                    dict(self._snapshots),
                )
            self._depth += 1
            try:
                yield self
            except BaseException:
                if self._depth == 1:
                    del self._events[mark[0]:]
                    self._event_ids = mark[1]
                    self._snapshots = mark[2]
                raise
            finally:
                self._depth -= 1
