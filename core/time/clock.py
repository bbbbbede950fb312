"""
Brickflow Core Time — Explicit Clock
=====================================
No datetime.now() inside engine logic. Services receive a Clock and
stamp occurred_at / started_at / completed_at from it.
"""

from __future__ import annotations

from datetime import date, datetime, timedelta, timezone
from typing import Protocol


# ══════════════════════════════════════════════════════════════
# CLOCK PROTOCOL
# ══════════════════════════════════════════════════════════════

class Clock(Protocol):
    """Injectable time source."""

    def now_utc(self) -> datetime:
        ...  # pragma: no cover


# ══════════════════════════════════════════════════════════════
# IMPLEMENTATIONS
# ══════════════════════════════════════════════════════════════

class SystemClock:
    """Production clock — real system time."""

    def now_utc(self) -> datetime:
        return datetime.now(timezone.utc)


class FixedClock:
    """
    Test clock — returns a fixed timestamp until advanced.

    Usage:
        clock = FixedClock(datetime(2026, 2, 20, tzinfo=timezone.utc))
        clock.advance(minutes=5)
    """

    def __init__(self, fixed_dt: datetime) -> None:
        if fixed_dt.tzinfo is None:
            raise ValueError("FixedClock requires timezone-aware datetime.")
        self._fixed_dt = fixed_dt

    def now_utc(self) -> datetime:
        return self._fixed_dt

    def advance(self, **delta: float) -> datetime:
        self._fixed_dt = self._fixed_dt + timedelta(**delta)
        return self._fixed_dt


def add_days(day: date, days: int) -> date:
    """Calendar offset used for invoice due dates."""
    return day + timedelta(days=days)
