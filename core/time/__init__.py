"""
Brickflow Core Time — Public API
=================================
"""

from core.time.clock import Clock, FixedClock, SystemClock, add_days

__all__ = [
    "Clock",
    "FixedClock",
    "SystemClock",
    "add_days",
]
