"""
Brickflow Guards — Public API
==============================
Typed error taxonomy and input validators.
"""

from core.guards.errors import (
    AttributionMissing,
    GuardError,
    IllegalStateTransition,
    InsufficientAvailability,
    NotFoundError,
    PermissionDenied,
    ReasonCode,
    ValidationError,
)
from core.guards.validators import (
    clean_text,
    optional_finite,
    optional_id,
    optional_non_negative,
    optional_percentage,
    require_finite,
    require_id,
    require_non_negative,
    require_percentage,
    require_positive,
    require_text,
)

__all__ = [
    "AttributionMissing",
    "GuardError",
    "IllegalStateTransition",
    "InsufficientAvailability",
    "NotFoundError",
    "PermissionDenied",
    "ReasonCode",
    "ValidationError",
    "clean_text",
    "optional_finite",
    "optional_id",
    "optional_non_negative",
    "optional_percentage",
    "require_finite",
    "require_id",
    "require_non_negative",
    "require_percentage",
    "require_positive",
    "require_text",
]
