"""
Brickflow Command Layer — Command Bus
======================================
Routes validated commands to engine handlers.

Flow:
    1. validate_command()   attribution + role
    2. look up handler      NoHandlerRegistered if missing
    3. handler.execute()    guarded read-validate-write in one transaction
    4. return ExecutionResult, or re-raise the handler's GuardError

The CommandBus:
- Orchestrates, does not decide
- Contains no engine-specific logic
- Never swallows a guard failure
"""

from __future__ import annotations

import logging
from typing import Any, Dict, Protocol

from core.commands.base import Command
from core.commands.outcomes import ExecutionResult
from core.commands.validator import validate_command
from core.config.rules import PipelineRules
from core.guards.errors import GuardError

logger = logging.getLogger("brickflow.commands")


# ══════════════════════════════════════════════════════════════
# ENGINE SERVICE PROTOCOL
# ══════════════════════════════════════════════════════════════

class EngineHandlerProtocol(Protocol):
    """Each engine registers one handler per command type it owns."""

    def execute(self, command: Command) -> ExecutionResult:
        ...


# ══════════════════════════════════════════════════════════════
# COMMAND BUS ERRORS
# ══════════════════════════════════════════════════════════════

class CommandBusError(Exception):
    """Base error for command bus operations."""
    pass


class NoHandlerRegistered(CommandBusError):
    """No engine handler registered for command type."""

    def __init__(self, command_type: str):
        self.command_type = command_type
        super().__init__(
            f"No engine handler registered for command type '{command_type}'."
        )


class DuplicateHandler(CommandBusError):
    """A second handler was registered for the same command type."""

    def __init__(self, command_type: str):
        self.command_type = command_type
        super().__init__(f"Handler already registered for '{command_type}'.")


# ══════════════════════════════════════════════════════════════
# COMMAND BUS
# ══════════════════════════════════════════════════════════════

class CommandBus:
    """
    Usage:
        bus = CommandBus(rules=PipelineRules())
        bus.register_handler("mixing.batch.create.request", handler)
        result = bus.handle(command)
    """

    def __init__(self, rules: PipelineRules | None = None):
        self._rules = rules or PipelineRules()
        self._handlers: Dict[str, Any] = {}

    @property
    def rules(self) -> PipelineRules:
        return self._rules

    # ══════════════════════════════════════════════════════════
    # HANDLER REGISTRATION
    # ══════════════════════════════════════════════════════════

    def register_handler(self, command_type: str, handler: Any) -> None:
        if not command_type.endswith(".request"):
            raise ValueError(
                f"command_type '{command_type}' must end with '.request'."
            )
        if not hasattr(handler, "execute") or not callable(handler.execute):
            raise TypeError("Handler must have callable .execute() method.")
        existing = self._handlers.get(command_type)
        if existing is not None and existing is not handler:
            raise DuplicateHandler(command_type)

        self._handlers[command_type] = handler
        logger.debug("Handler registered: %s", command_type)

    def registered_command_types(self) -> frozenset[str]:
        return frozenset(self._handlers)

    # ══════════════════════════════════════════════════════════
    # HANDLE
    # ══════════════════════════════════════════════════════════

    def handle(self, command: Command) -> ExecutionResult:
        try:
            validate_command(command, self._rules)

            handler = self._handlers.get(command.command_type)
            if handler is None:
                raise NoHandlerRegistered(command.command_type)

            result = handler.execute(command)
        except GuardError as exc:
            logger.info(
                "Command %s (%s) rejected: [%s] %s",
                getattr(command, "command_id", None),
                getattr(command, "command_type", type(command).__name__),
                exc.code, exc.message,
            )
            raise

        logger.info(
            "Command %s (%s) executed: %d event(s), %d warning(s)",
            command.command_id, command.command_type,
            len(result.events), len(result.warnings),
        )
        for warning in result.warnings:
            logger.warning(
                "Command %s event-log warning [%s] %s",
                command.command_id, warning.code, warning.message,
            )
        return result
