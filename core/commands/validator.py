"""
Brickflow Command Layer — Command Validator
============================================
Checks run by the bus before any handler executes.

It only checks:
- Command is a Command instance
- Actor and tenant are present (AttributionMissing)
- The actor's role may drive the engine (PermissionDenied)

This validator does NOT:
- Validate request fields (requests do that in __post_init__)
- Read aggregates or availability
- Write anything
"""

from __future__ import annotations

from core.commands.base import Command
from core.config.rules import PipelineRules
from core.guards.errors import ValidationError
from core.security.access import require_access


def validate_command(command: Command, rules: PipelineRules) -> None:
    """
    Raises:
        ValidationError:     not a Command.
        AttributionMissing:  actor or tenant missing.
        PermissionDenied:    role not allowed for the engine.

    Returns:
        None — success is silent. Failure is loud.
    """

    # ── 1. Type check ─────────────────────────────────────────
    if not isinstance(command, Command):
        raise ValidationError(
            f"Expected Command, got {type(command).__name__}.",
            rule="command_structure",
        )

    # ── 2. Attribution ────────────────────────────────────────
    command.context.require_attribution()

    # ── 3. Engine role ────────────────────────────────────────
    require_access(
        command.actor_id,
        command.actor_role,
        command.source_engine,
        rules.role_enforced_engines,
    )
