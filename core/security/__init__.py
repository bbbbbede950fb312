"""
Brickflow Core Security — Public API
=====================================
Role vocabulary and engine access checks.
"""

from core.security.access import (
    ADMIN_ROLES,
    ENGINE_ROLES,
    AccessDecision,
    Role,
    check_access,
    require_access,
)

__all__ = [
    "Role",
    "ADMIN_ROLES",
    "ENGINE_ROLES",
    "AccessDecision",
    "check_access",
    "require_access",
]
