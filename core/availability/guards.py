"""
Brickflow Availability — Consumption Guard
===========================================
Step (d) of a guarded operation. Unknown availability fails closed.
"""

from __future__ import annotations

from typing import Optional

from core.availability.calculator import Availability
from core.guards.errors import InsufficientAvailability

QUANTITY_EPSILON = 1e-6


def require_available(
    availability: Availability,
    requested: float,
    message: str,
    *,
    rule: Optional[str] = None,
) -> float:
    """
    Raise InsufficientAvailability when ``requested`` exceeds what is
    available. ``message`` is formatted with ``available`` and
    ``requested``, e.g. "{available:.2f} t remaining."
    """
    available = availability.or_zero()
    if requested > available + QUANTITY_EPSILON:
        raise InsufficientAvailability(
            message.format(available=available, requested=requested),
            available=available,
            requested=requested,
            rule=rule,
        )
    return available
