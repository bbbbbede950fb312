"""
Brickflow Event Store persistence public API.

The Django-backed store lives in
``core.event_store.persistence.repository`` and is imported only once
Django settings are configured.
"""

from core.event_store.persistence.service import (
    AppendResult,
    EventLogWarning,
    append_event,
)

__all__ = ["AppendResult", "EventLogWarning", "append_event"]
