"""
Brickflow Reservations — Public API
====================================
"""

from core.reservations.protocol import (
    ConsumerBinding,
    InventoryBinding,
    ReservationLine,
    ReservationProtocol,
    UnboundReservationSide,
)

__all__ = [
    "ConsumerBinding",
    "InventoryBinding",
    "ReservationLine",
    "ReservationProtocol",
    "UnboundReservationSide",
]
