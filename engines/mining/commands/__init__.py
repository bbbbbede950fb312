"""
Brickflow Mining Engine — Request Commands
===========================================
"""

from __future__ import annotations

import uuid
from dataclasses import dataclass
from typing import ClassVar, Optional

from core.commands.base import Request
from core.guards.errors import ValidationError
from core.guards.validators import (
    clean_text,
    optional_non_negative,
    optional_percentage,
    require_id,
    require_positive,
    require_text,
)
from engines.mining.policies import VEHICLE_STATUSES

MINING_VEHICLE_CREATE_REQUEST = "mining.vehicle.create.request"
MINING_VEHICLE_STATUS_REQUEST = "mining.vehicle.set_status.request"
MINING_SHIFT_START_REQUEST = "mining.shift.start.request"
MINING_SHIFT_END_REQUEST = "mining.shift.end.request"
MINING_LOAD_RECORD_REQUEST = "mining.shift.record_load.request"

MINING_COMMAND_TYPES = frozenset({
    MINING_VEHICLE_CREATE_REQUEST,
    MINING_VEHICLE_STATUS_REQUEST,
    MINING_SHIFT_START_REQUEST,
    MINING_SHIFT_END_REQUEST,
    MINING_LOAD_RECORD_REQUEST,
})


@dataclass(frozen=True)
class CreateVehicleRequest(Request):
    command_type: ClassVar[str] = MINING_VEHICLE_CREATE_REQUEST

    code: str
    name: Optional[str] = None
    capacity_tonnes: Optional[float] = None

    def __post_init__(self):
        object.__setattr__(self, "code", require_text(self.code, "Vehicle code"))
        object.__setattr__(self, "name", clean_text(self.name))
        optional_non_negative(self.capacity_tonnes, "Capacity")


@dataclass(frozen=True)
class SetVehicleStatusRequest(Request):
    command_type: ClassVar[str] = MINING_VEHICLE_STATUS_REQUEST

    vehicle_id: uuid.UUID
    status: str

    def __post_init__(self):
        require_id(self.vehicle_id, "Vehicle")
        if self.status not in VEHICLE_STATUSES:
            raise ValidationError(
                f"Unknown vehicle status '{self.status}'.", rule="vehicle_status",
            )


@dataclass(frozen=True)
class StartShiftRequest(Request):
    command_type: ClassVar[str] = MINING_SHIFT_START_REQUEST

    vehicle_id: uuid.UUID

    def __post_init__(self):
        require_id(self.vehicle_id, "Vehicle")


@dataclass(frozen=True)
class EndShiftRequest(Request):
    command_type: ClassVar[str] = MINING_SHIFT_END_REQUEST

    shift_id: uuid.UUID

    def __post_init__(self):
        require_id(self.shift_id, "Shift")


@dataclass(frozen=True)
class RecordLoadRequest(Request):
    command_type: ClassVar[str] = MINING_LOAD_RECORD_REQUEST

    shift_id: uuid.UUID
    stockpile_id: uuid.UUID
    tonnage: float
    moisture_pct: Optional[float] = None
    notes: Optional[str] = None

    def __post_init__(self):
        require_id(self.shift_id, "Shift")
        require_id(self.stockpile_id, "Stockpile")
        require_positive(self.tonnage, "Tonnage")
        optional_percentage(self.moisture_pct, "Moisture")
        object.__setattr__(self, "notes", clean_text(self.notes))
