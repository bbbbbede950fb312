"""
Tests for the command layer: Command contract, validator, bus and
engine access control.
"""

from __future__ import annotations

import uuid
from datetime import datetime, timezone

import pytest

from core.commands.base import Command, derive_source_engine
from core.commands.bus import CommandBus, DuplicateHandler, NoHandlerRegistered
from core.commands.outcomes import ExecutionResult
from core.config.rules import PipelineRules
from core.guards.errors import AttributionMissing, PermissionDenied, ValidationError
from core.security.access import ENGINE_ROLES, Role, check_access

TENANT = uuid.uuid4()
NOW = datetime(2026, 3, 2, 8, 0, tzinfo=timezone.utc)


# ══════════════════════════════════════════════════════════════
# TEST INFRASTRUCTURE: STUBS
# ══════════════════════════════════════════════════════════════

def make_command(
    command_type="kiln.batch.start.request",
    actor_id="op-1",
    tenant_id=TENANT,
    actor_role=Role.ADMIN,
    **overrides,
) -> Command:
    fields = dict(
        command_id=uuid.uuid4(),
        command_type=command_type,
        tenant_id=tenant_id,
        actor_id=actor_id,
        actor_role=actor_role,
        request=None,
        issued_at=NOW,
        correlation_id=uuid.uuid4(),
        source_engine=derive_source_engine(command_type),
    )
    fields.update(overrides)
    return Command(**fields)


class RecordingHandler:
    def __init__(self):
        self.seen = []

    def execute(self, command):
        self.seen.append(command)
        return ExecutionResult(
            command_type=command.command_type,
            aggregate_id=uuid.uuid4(),
            status="active",
            correlation_id=command.correlation_id,
        )


class RejectingHandler:
    def execute(self, command):
        raise ValidationError("Quantity must be greater than zero.", rule="positive_quantity")


# ══════════════════════════════════════════════════════════════
# COMMAND CONTRACT
# ══════════════════════════════════════════════════════════════

class TestCommandContract:
    def test_valid_command(self):
        command = make_command()
        assert command.source_engine == "kiln"
        assert command.context.require_attribution() == TENANT

    def test_type_must_end_with_request(self):
        with pytest.raises(ValueError, match="must end with '.request'"):
            make_command(command_type="kiln.batch.start", source_engine="kiln")

    def test_type_needs_four_segments(self):
        with pytest.raises(ValueError, match="engine.domain.action.request"):
            make_command(command_type="kiln.start.request", source_engine="kiln")

    def test_namespace_must_match_engine(self):
        with pytest.raises(ValueError, match="does not match"):
            make_command(source_engine="packing")

    def test_naive_issued_at_rejected(self):
        with pytest.raises(ValueError, match="timezone-aware"):
            make_command(issued_at=datetime(2026, 3, 2))

    def test_command_is_frozen(self):
        command = make_command()
        with pytest.raises(AttributeError):
            command.actor_id = "someone-else"

    def test_unattributed_command_can_exist(self):
        assert make_command(actor_id=None).actor_id is None


# ══════════════════════════════════════════════════════════════
# BUS
# ══════════════════════════════════════════════════════════════

class TestCommandBus:
    def test_routes_to_registered_handler(self):
        bus = CommandBus()
        handler = RecordingHandler()
        bus.register_handler("kiln.batch.start.request", handler)

        result = bus.handle(make_command())

        assert result.status == "active"
        assert len(handler.seen) == 1

    def test_missing_handler(self):
        with pytest.raises(NoHandlerRegistered):
            CommandBus().handle(make_command())

    def test_second_handler_for_same_type_rejected(self):
        bus = CommandBus()
        bus.register_handler("kiln.batch.start.request", RecordingHandler())

        with pytest.raises(DuplicateHandler):
            bus.register_handler("kiln.batch.start.request", RecordingHandler())

    def test_handler_needs_execute(self):
        with pytest.raises(TypeError):
            CommandBus().register_handler("kiln.batch.start.request", object())

    def test_missing_actor_rejected_before_handler(self):
        bus = CommandBus()
        handler = RecordingHandler()
        bus.register_handler("kiln.batch.start.request", handler)

        with pytest.raises(AttributionMissing, match="authenticated actor"):
            bus.handle(make_command(actor_id=None))
        with pytest.raises(AttributionMissing, match="resolved tenant"):
            bus.handle(make_command(tenant_id=None))
        assert handler.seen == []

    def test_guard_failure_propagates(self):
        bus = CommandBus()
        bus.register_handler("kiln.batch.start.request", RejectingHandler())

        with pytest.raises(ValidationError, match="greater than zero"):
            bus.handle(make_command())

    def test_non_command_rejected(self):
        with pytest.raises(ValidationError, match="Expected Command, got str."):
            CommandBus().handle("kiln.batch.start.request")


# ══════════════════════════════════════════════════════════════
# ACCESS CONTROL
# ══════════════════════════════════════════════════════════════

class TestEngineAccess:
    def test_enforced_engine_requires_operator_role(self):
        bus = CommandBus(rules=PipelineRules(role_enforced_engines={"kiln"}))
        bus.register_handler("kiln.batch.start.request", RecordingHandler())

        with pytest.raises(PermissionDenied, match="may not perform kiln operations"):
            bus.handle(make_command(actor_role=Role.PACKING_OPERATOR))

        assert bus.handle(make_command(actor_role=Role.KILN_OPERATOR)).status == "active"

    @pytest.mark.parametrize("role", [Role.ADMIN, Role.PLATFORM_ADMIN])
    def test_admin_roles_drive_every_engine(self, role):
        for engine in ENGINE_ROLES:
            assert check_access("a-1", role, engine, set(ENGINE_ROLES)).granted

    def test_unenforced_engine_accepts_any_role(self):
        decision = check_access("v-1", Role.VIEWER, "kiln", {"mining"})
        assert decision.granted
        assert decision.reason == "engine not enforced"

    def test_default_rules_enforce_mining_only(self):
        assert PipelineRules().role_enforced_engines == {"mining"}
