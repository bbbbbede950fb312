"""
Brickflow Event Store — Validators Public API
==============================================
"""

from core.event_store.validators.registry import EventTypeRegistry, EventTypeSpec
from core.event_store.validators.event_validator import validate_event

__all__ = [
    "validate_event",
    "EventTypeRegistry",
    "EventTypeSpec",
]
