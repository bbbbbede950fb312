"""
Brickflow Command Layer — Public API
=====================================
"""

from core.commands.base import Command, Request, derive_source_engine
from core.commands.bus import (
    CommandBus,
    CommandBusError,
    DuplicateHandler,
    NoHandlerRegistered,
)
from core.commands.outcomes import ExecutionResult
from core.commands.validator import validate_command

__all__ = [
    "Command",
    "Request",
    "derive_source_engine",
    "CommandBus",
    "CommandBusError",
    "DuplicateHandler",
    "NoHandlerRegistered",
    "ExecutionResult",
    "validate_command",
]
