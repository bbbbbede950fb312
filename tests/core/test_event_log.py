"""
Tests for the event log: payload encoding, the type registry, the
appender's warning path and the in-memory store.
"""

import uuid
from dataclasses import dataclass
from datetime import datetime, timezone
from typing import Optional

import pytest

from core.context.actor_context import ActorContext
from core.event_store.contracts import Snapshot
from core.event_store.errors import (
    DuplicateEventError,
    DuplicateSnapshotError,
    SnapshotMissingError,
    TenantScopeError,
)
from core.event_store.memory import InMemoryStore
from core.event_store.persistence.errors import EventLogWarningCode
from core.event_store.persistence.service import append_event
from core.event_store.validators.registry import EventTypeRegistry
from core.events.envelope import AggregateType
from core.events.errors import (
    DuplicateEventType,
    PayloadFieldError,
    PayloadMismatch,
    UnknownEventType,
)
from core.events.payload import EventPayload, wire_field

TENANT = uuid.uuid4()
NOW = datetime(2026, 3, 2, 8, 0, tzinfo=timezone.utc)


@dataclass(frozen=True)
class SampleTaken(EventPayload):
    stockpile_id: uuid.UUID
    sample_code: str
    taken_at: datetime
    target_tph: Optional[float] = wire_field("targetTPH")


@dataclass(frozen=True)
class SampleDiscarded(EventPayload):
    stockpile_id: uuid.UUID


class BrokenEvents:
    def append(self, record):
        raise RuntimeError("disk full")


@pytest.fixture
def registry():
    registry = EventTypeRegistry()
    registry.register("SAMPLE_TAKEN", SampleTaken, AggregateType.STOCKPILE)
    return registry


def sample(pile_id=None):
    return SampleTaken(
        stockpile_id=pile_id or uuid.uuid4(), sample_code="S-1", taken_at=NOW, target_tph=42.0,
    )


def append(events, registry, context, payload, aggregate_type=AggregateType.STOCKPILE):
    return append_event(
        events=events,
        registry=registry,
        context=context,
        aggregate_type=aggregate_type,
        aggregate_id=payload.stockpile_id,
        payload=payload,
        occurred_at=NOW,
        source="test",
    )


# ── Payload encoding ─────────────────────────────────────────

class TestPayloadEncoding:
    def test_wire_form_is_camel_case(self):
        payload = sample()

        wire = payload.to_dict()

        assert wire == {
            "stockpileId": str(payload.stockpile_id),
            "sampleCode": "S-1",
            "takenAt": NOW.isoformat(),
            "targetTPH": 42.0,
        }

    def test_decode_rejects_unknown_keys(self):
        with pytest.raises(PayloadFieldError, match="unknown field"):
            SampleDiscarded.from_dict({"stockpileId": "x", "colour": "red"})

    def test_decode_rejects_missing_required(self):
        with pytest.raises(PayloadFieldError, match="missing required field 'stockpileId'"):
            SampleDiscarded.from_dict({})


# ── Registry ─────────────────────────────────────────────────

class TestEventTypeRegistry:
    def test_same_registration_is_a_no_op(self, registry):
        registry.register("SAMPLE_TAKEN", SampleTaken, AggregateType.STOCKPILE)
        assert registry.count() == 1

    def test_conflicting_registration_rejected(self, registry):
        with pytest.raises(DuplicateEventType):
            registry.register("SAMPLE_TAKEN", SampleDiscarded, AggregateType.STOCKPILE)

    def test_event_type_must_be_screaming_snake(self, registry):
        with pytest.raises(ValueError, match="SCREAMING_SNAKE_CASE"):
            registry.register("sample_discarded", SampleDiscarded, AggregateType.STOCKPILE)

    def test_unknown_aggregate_type_rejected(self, registry):
        with pytest.raises(ValueError, match="Unknown aggregate type"):
            registry.register("SAMPLE_DISCARDED", SampleDiscarded, "quarry")

    def test_unknown_event_type(self, registry):
        with pytest.raises(UnknownEventType):
            registry.spec_for("SAMPLE_LOST")

    def test_decode_round_trip(self, registry):
        payload = sample()
        decoded = registry.decode("SAMPLE_TAKEN", payload.to_dict())
        assert decoded.sample_code == "S-1"
        assert decoded.target_tph == 42.0


# ── Appender ─────────────────────────────────────────────────

class TestAppendEvent:
    def test_appends_attributed_event(self, registry):
        store = InMemoryStore()
        context = ActorContext(actor_id="lab-1", tenant_id=TENANT, actor_role="admin")

        result = append(store.events, registry, context, sample())

        assert result.appended
        assert result.warnings == ()
        assert result.event.event_type == "SAMPLE_TAKEN"
        assert result.event.actor_id == "lab-1"
        assert result.event.recorded_at == NOW
        assert store.events.all() == [result.event]

    def test_missing_attribution_is_a_warning(self, registry):
        store = InMemoryStore()
        context = ActorContext(actor_id=None, tenant_id=TENANT)

        result = append(store.events, registry, context, sample())

        assert not result.appended
        (warning,) = result.warnings
        assert warning.code == EventLogWarningCode.ATTRIBUTION_MISSING
        assert warning.event_type == "SAMPLE_TAKEN"
        assert store.events.all() == []

    def test_store_failure_is_a_warning(self, registry):
        context = ActorContext(actor_id="lab-1", tenant_id=TENANT)

        result = append(BrokenEvents(), registry, context, sample())

        assert not result.appended
        (warning,) = result.warnings
        assert warning.code == EventLogWarningCode.PERSISTENCE_FAILED
        assert "disk full" in warning.message
        assert warning.to_dict()["code"] == "PERSISTENCE_FAILED"

    def test_unregistered_payload_raises(self, registry):
        context = ActorContext(actor_id="lab-1", tenant_id=TENANT)

        with pytest.raises(PayloadMismatch):
            append(InMemoryStore().events, registry, context, SampleDiscarded(uuid.uuid4()))

    def test_wrong_aggregate_type_raises(self, registry):
        context = ActorContext(actor_id="lab-1", tenant_id=TENANT)

        with pytest.raises(PayloadMismatch, match="belongs to aggregate 'stockpile'"):
            append(
                InMemoryStore().events, registry, context, sample(),
                aggregate_type=AggregateType.KILN_BATCH,
            )


# ── In-memory store ──────────────────────────────────────────

def pile(code="SP-1", tenant=TENANT):
    return Snapshot(
        tenant_id=tenant, kind=AggregateType.STOCKPILE, aggregate_id=uuid.uuid4(),
        code=code, status="active", attributes={"owner_id": uuid.uuid4()},
    )


class TestInMemoryStore:
    def test_attributes_normalized_to_json_shape(self):
        store = InMemoryStore()
        saved = store.snapshots.insert(pile())

        assert isinstance(saved.attr("owner_id"), str)

    def test_duplicate_code_rejected(self):
        store = InMemoryStore()
        store.snapshots.insert(pile("SP-1"))

        with pytest.raises(DuplicateSnapshotError):
            store.snapshots.insert(pile("SP-1"))

    def test_same_code_in_other_tenant_allowed(self):
        store = InMemoryStore()
        store.snapshots.insert(pile("SP-1"))
        store.snapshots.insert(pile("SP-1", tenant=uuid.uuid4()))

        assert len(store.snapshots.list(TENANT, AggregateType.STOCKPILE)) == 1

    def test_save_requires_insert(self):
        with pytest.raises(SnapshotMissingError):
            InMemoryStore().snapshots.save(pile())

    def test_duplicate_event_id_rejected(self, registry):
        store = InMemoryStore()
        context = ActorContext(actor_id="lab-1", tenant_id=TENANT)
        stored = append(store.events, registry, context, sample()).event

        with pytest.raises(DuplicateEventError):
            store.events.append(stored)

    def test_atomic_rolls_back_on_error(self, registry):
        store = InMemoryStore()
        context = ActorContext(actor_id="lab-1", tenant_id=TENANT)
        kept = store.snapshots.insert(pile("SP-1"))

        with pytest.raises(RuntimeError):
            with store.atomic():
                store.snapshots.save(kept.with_changes(status="closed"))
                store.snapshots.insert(pile("SP-2"))
                append(store.events, registry, context, sample(kept.aggregate_id))
                raise RuntimeError("guard failed")

        assert store.events.all() == []
        assert store.snapshots.get(TENANT, AggregateType.STOCKPILE, kept.aggregate_id).status == "active"
        assert store.snapshots.find_by_code(TENANT, AggregateType.STOCKPILE, "SP-2") is None

    def test_nested_atomic_rolls_back_with_outer_block(self, registry):
        store = InMemoryStore()
        context = ActorContext(actor_id="lab-1", tenant_id=TENANT)

        with pytest.raises(RuntimeError):
            with store.atomic():
                with store.atomic():
                    append(store.events, registry, context, sample())
                raise RuntimeError("outer failed")

        assert store.events.all() == []

    def test_reads_require_tenant(self):
        with pytest.raises(TenantScopeError):
            InMemoryStore().events.list_events(None, aggregate_type=AggregateType.STOCKPILE)
