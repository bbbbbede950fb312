"""
Brickflow Event Store — Query Scope Guards
===========================================
Default-safe helpers for tenant-scoped reads and writes.

Querying without a tenant is a programming error, never a valid state.
"""

from __future__ import annotations

import uuid
from typing import Any

from core.event_store.errors import TenantScopeError


def require_tenant(tenant_id: Any, *, operation: str = "read") -> uuid.UUID:
    """Fail fast when a store call arrives without a tenant filter."""
    if tenant_id is None:
        raise TenantScopeError(
            f"tenant_id is required for every store {operation}."
        )
    if not isinstance(tenant_id, uuid.UUID):
        raise TenantScopeError("tenant_id must be a UUID.")
    return tenant_id
