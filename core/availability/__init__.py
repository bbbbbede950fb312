"""
Brickflow Availability — Public API
====================================
"""

from core.availability.calculator import Availability, AvailabilityEdge, Term
from core.availability.guards import QUANTITY_EPSILON, require_available
from core.availability.service import AvailabilityService, UnknownEdge

__all__ = [
    "Availability",
    "AvailabilityEdge",
    "Term",
    "AvailabilityService",
    "UnknownEdge",
    "QUANTITY_EPSILON",
    "require_available",
]
