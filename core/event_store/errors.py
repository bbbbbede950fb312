"""
Brickflow Event Store — Store Errors
=====================================
Errors raised by store implementations (in-memory and Django).
"""


class StoreError(Exception):
    """Base error for event/snapshot store operations."""
    pass


class TenantScopeError(StoreError, ValueError):
    """A read or write was attempted without a tenant filter."""
    pass


class DuplicateEventError(StoreError):
    """An event with the same event_id already exists."""

    def __init__(self, event_id):
        self.event_id = event_id
        super().__init__(f"Event {event_id} already persisted.")


class DuplicateSnapshotError(StoreError):
    """Snapshot id or code already taken within the tenant."""
    pass


class SnapshotMissingError(StoreError):
    """save() called for a snapshot that was never inserted."""
    pass
