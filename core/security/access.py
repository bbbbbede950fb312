"""
Brickflow Core Security — Access Control
=========================================
Role vocabulary and the engine → operator role table.

Rules:
- admin and platform_admin may drive every engine
- an engine listed in PipelineRules.role_enforced_engines accepts only
  its operator role (plus the admin roles)
- engines not listed accept any attributed actor
"""

from __future__ import annotations

from dataclasses import dataclass
from typing import Iterable, Optional

from core.guards.errors import PermissionDenied


# ══════════════════════════════════════════════════════════════
# ROLE CONSTANTS
# ══════════════════════════════════════════════════════════════

class Role:
    ADMIN = "admin"
    PLATFORM_ADMIN = "platform_admin"
    MINING_OPERATOR = "mining_operator"
    STOCKPILE_OPERATOR = "stockpile_operator"
    MIXING_OPERATOR = "mixing_operator"
    CRUSHING_OPERATOR = "crushing_operator"
    EXTRUSION_OPERATOR = "extrusion_operator"
    DRYYARD_OPERATOR = "dryyard_operator"
    KILN_OPERATOR = "kiln_operator"
    PACKING_OPERATOR = "packing_operator"
    DISPATCH_CLERK = "dispatch_clerk"
    SALES_REP = "sales_rep"
    FINANCE = "finance"
    VIEWER = "viewer"


ADMIN_ROLES = frozenset({Role.ADMIN, Role.PLATFORM_ADMIN})

ENGINE_ROLES = {
    "mining": Role.MINING_OPERATOR,
    "stockpile": Role.STOCKPILE_OPERATOR,
    "mixing": Role.MIXING_OPERATOR,
    "crushing": Role.CRUSHING_OPERATOR,
    "extrusion": Role.EXTRUSION_OPERATOR,
    "dry_yard": Role.DRYYARD_OPERATOR,
    "kiln": Role.KILN_OPERATOR,
    "packing": Role.PACKING_OPERATOR,
    "dispatch": Role.DISPATCH_CLERK,
    "sales": Role.SALES_REP,
    "finance": Role.FINANCE,
}


# ══════════════════════════════════════════════════════════════
# ACCESS DECISION
# ══════════════════════════════════════════════════════════════

@dataclass(frozen=True)
class AccessDecision:
    actor_id: Optional[str]
    engine: str
    role: Optional[str]
    granted: bool
    reason: str = ""


def check_access(
    actor_id: Optional[str],
    role: Optional[str],
    engine: str,
    enforced_engines: Iterable[str],
) -> AccessDecision:
    """Decide whether ``role`` may drive ``engine``."""
    if role in ADMIN_ROLES:
        return AccessDecision(actor_id, engine, role, True, "admin role")

    if engine not in set(enforced_engines):
        return AccessDecision(actor_id, engine, role, True, "engine not enforced")

    required = ENGINE_ROLES.get(engine)
    if required is not None and role == required:
        return AccessDecision(actor_id, engine, role, True, "operator role")

    return AccessDecision(
        actor_id, engine, role, False,
        f"Role '{role}' may not perform {engine} operations.",
    )


def require_access(
    actor_id: Optional[str],
    role: Optional[str],
    engine: str,
    enforced_engines: Iterable[str],
) -> AccessDecision:
    decision = check_access(actor_id, role, engine, enforced_engines)
    if not decision.granted:
        raise PermissionDenied(decision.reason, rule="engine_role")
    return decision
