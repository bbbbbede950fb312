"""
Brickflow Guards — Error Taxonomy
==================================
Typed failures raised by guard/validator checks before any mutation.

Every guard error carries:
- code     machine-readable reason (SCREAMING_SNAKE_CASE)
- message  human-readable text, surfaced verbatim to the caller
- rule     the guard that failed (for audit logs)

A guard error aborts the whole operation. Nothing is written:
no snapshot change, no event.
"""

from __future__ import annotations

from typing import Optional


class ReasonCode:
    """Known guard failure codes."""

    VALIDATION_FAILED = "VALIDATION_FAILED"
    NOT_FOUND = "NOT_FOUND"
    ILLEGAL_STATE_TRANSITION = "ILLEGAL_STATE_TRANSITION"
    INSUFFICIENT_AVAILABILITY = "INSUFFICIENT_AVAILABILITY"
    ATTRIBUTION_MISSING = "ATTRIBUTION_MISSING"
    PERMISSION_DENIED = "PERMISSION_DENIED"


class GuardError(Exception):
    """Base class for every typed operation failure."""

    code: str = ReasonCode.VALIDATION_FAILED

    def __init__(self, message: str, *, rule: Optional[str] = None):
        self.message = message
        self.rule = rule
        super().__init__(message)

    def to_dict(self) -> dict:
        return {
            "code": self.code,
            "message": self.message,
            "rule": self.rule,
        }


class ValidationError(GuardError, ValueError):
    """Bad input: non-positive quantity, out-of-range percentage, missing code."""

    code = ReasonCode.VALIDATION_FAILED


class NotFoundError(GuardError):
    """Aggregate id not found within the caller's tenant."""

    code = ReasonCode.NOT_FOUND


class IllegalStateTransition(GuardError):
    """Operation not valid for the aggregate's current status."""

    code = ReasonCode.ILLEGAL_STATE_TRANSITION

    def __init__(
        self,
        message: str,
        *,
        current_status: Optional[str] = None,
        action: Optional[str] = None,
        rule: Optional[str] = None,
    ):
        self.current_status = current_status
        self.action = action
        super().__init__(message, rule=rule)

    def to_dict(self) -> dict:
        data = super().to_dict()
        data["current_status"] = self.current_status
        data["action"] = self.action
        return data


class InsufficientAvailability(GuardError):
    """Requested quantity exceeds what the calculator reports as available."""

    code = ReasonCode.INSUFFICIENT_AVAILABILITY

    def __init__(
        self,
        message: str,
        *,
        available: float,
        requested: float,
        rule: Optional[str] = None,
    ):
        self.available = available
        self.requested = requested
        super().__init__(message, rule=rule)

    def to_dict(self) -> dict:
        data = super().to_dict()
        data["available"] = self.available
        data["requested"] = self.requested
        return data


class AttributionMissing(GuardError):
    """No authenticated actor or tenant on the operation context."""

    code = ReasonCode.ATTRIBUTION_MISSING


class PermissionDenied(GuardError):
    """Actor role is not allowed to drive this engine."""

    code = ReasonCode.PERMISSION_DENIED
