"""
Tests for core.lifecycle — configuration tables and the generic machine.
"""

import uuid
from datetime import datetime, timezone

import pytest

from core.event_store.contracts import Snapshot
from core.guards.errors import IllegalStateTransition
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
    PAUSED,
    PLANNED,
    run_lifecycle,
)

NOW = datetime(2026, 3, 2, 8, 0, tzinfo=timezone.utc)


def snapshot(status, kind="mix_batch"):
    return Snapshot(
        tenant_id=uuid.uuid4(),
        kind=kind,
        aggregate_id=uuid.uuid4(),
        code="MB-1",
        status=status,
    )


@pytest.fixture
def machine():
    return LifecycleMachine(run_lifecycle(
        "mix_batch", "Mix batch",
        activities=[Activity("add_component", {PLANNED, ACTIVE})],
        messages={"start": "Only planned batches can be started."},
    ))


# ── Configuration tables ─────────────────────────────────────

class TestAggregateConfig:
    def test_terminal_status_cannot_be_a_source(self):
        with pytest.raises(ValueError, match="leaves terminal"):
            AggregateConfig(
                aggregate_type="kiln_batch",
                label="Kiln batch",
                initial_status=PLANNED,
                terminal={COMPLETED},
                transitions=(Transition("reopen", {COMPLETED}, ACTIVE),),
            )

    def test_duplicate_operation_names_rejected(self):
        with pytest.raises(ValueError, match="duplicate operation"):
            AggregateConfig(
                aggregate_type="kiln_batch",
                label="Kiln batch",
                initial_status=PLANNED,
                terminal={COMPLETED},
                transitions=(Transition("start", {PLANNED}, ACTIVE),),
                activities=(Activity("start", {ACTIVE}),),
            )

    def test_unknown_stamp_rejected(self):
        with pytest.raises(ValueError, match="Unknown stamp field"):
            Transition("start", {PLANNED}, ACTIVE, stamp="fired_at")

    def test_standard_run_statuses(self):
        config = run_lifecycle("crush_run", "Crush run")
        assert config.statuses == {PLANNED, ACTIVE, PAUSED, COMPLETED, CANCELLED}
        assert config.terminal == {COMPLETED, CANCELLED}


# ── Transitions ──────────────────────────────────────────────

class TestTransitions:
    def test_start_stamps_started_at(self, machine):
        updated = machine.apply(snapshot(PLANNED), "start", NOW)

        assert updated.status == ACTIVE
        assert updated.started_at == NOW
        assert updated.updated_at == NOW
        assert updated.completed_at is None

    def test_complete_stamps_completed_at(self, machine):
        updated = machine.apply(snapshot(ACTIVE), "complete", NOW)

        assert updated.status == COMPLETED
        assert updated.completed_at == NOW

    def test_pause_and_resume(self, machine):
        paused = machine.apply(snapshot(ACTIVE), "pause", NOW)
        resumed = machine.apply(paused, "resume", NOW)

        assert (paused.status, resumed.status) == (PAUSED, ACTIVE)

    def test_custom_message_is_used(self, machine):
        with pytest.raises(IllegalStateTransition, match="Only planned batches can be started."):
            machine.apply(snapshot(ACTIVE), "start", NOW)

    def test_generic_message_names_status(self, machine):
        with pytest.raises(IllegalStateTransition) as exc:
            machine.apply(snapshot(PLANNED), "pause", NOW)

        assert str(exc.value) == "Cannot pause mix batch in status 'planned'."
        assert exc.value.current_status == PLANNED
        assert exc.value.action == "pause"
        assert exc.value.rule == "mix_batch.pause"

    @pytest.mark.parametrize("terminal", [COMPLETED, CANCELLED])
    def test_terminal_statuses_are_one_way(self, machine, terminal):
        for name in ("start", "pause", "resume", "complete", "cancel"):
            with pytest.raises(IllegalStateTransition):
                machine.apply(snapshot(terminal), name, NOW)

    def test_idempotent_transition_returns_none(self):
        machine = LifecycleMachine(AggregateConfig(
            aggregate_type="sales_order",
            label="Sales order",
            initial_status="draft",
            terminal={"cancelled"},
            transitions=(
                Transition("confirm", {"draft"}, "confirmed", idempotent_from={"confirmed"}),
                Transition("cancel", {"draft", "confirmed"}, "cancelled",
                           idempotent_from={"cancelled"}),
            ),
        ))

        assert machine.apply(snapshot("confirmed", "sales_order"), "confirm", NOW) is None
        assert machine.apply(snapshot("cancelled", "sales_order"), "cancel", NOW) is None

    def test_blocked_message_wins_over_generic(self):
        machine = LifecycleMachine(AggregateConfig(
            aggregate_type="shipment",
            label="Shipment",
            initial_status="planned",
            terminal={"dispatched"},
            transitions=(
                Transition("cancel", {"planned"}, "cancelled",
                           blocked={"dispatched": "Cannot cancel a dispatched shipment."}),
            ),
        ))

        with pytest.raises(IllegalStateTransition, match="Cannot cancel a dispatched shipment."):
            machine.check_transition("dispatched", "cancel")

    def test_unknown_transition_is_a_programming_error(self, machine):
        with pytest.raises(KeyError):
            machine.apply(snapshot(PLANNED), "fire", NOW)


# ── Activities ───────────────────────────────────────────────

class TestActivities:
    def test_allowed_status_passes(self, machine):
        machine.require_activity(ACTIVE, "add_component")

    def test_disallowed_status_raises(self, machine):
        with pytest.raises(IllegalStateTransition) as exc:
            machine.require_activity(COMPLETED, "add_component")

        assert exc.value.action == "add_component"
        assert exc.value.current_status == COMPLETED

    def test_is_terminal(self, machine):
        assert machine.is_terminal(CANCELLED)
        assert not machine.is_terminal(PAUSED)
