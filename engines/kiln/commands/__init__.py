"""
Brickflow Kiln Engine — Request Commands
=========================================
"""

from __future__ import annotations

import uuid
from dataclasses import dataclass
from typing import ClassVar, Optional

from core.commands.base import Request
from core.guards.validators import (
    clean_text,
    optional_non_negative,
    optional_percentage,
    require_id,
    require_non_negative,
    require_positive,
    require_text,
)

KILN_CREATE_REQUEST = "kiln.batch.create.request"
KILN_ADD_INPUT_REQUEST = "kiln.batch.add_input.request"
KILN_START_REQUEST = "kiln.batch.start.request"
KILN_PAUSE_REQUEST = "kiln.batch.pause.request"
KILN_RESUME_REQUEST = "kiln.batch.resume.request"
KILN_ZONE_TEMP_REQUEST = "kiln.batch.record_zone_temp.request"
KILN_FUEL_USAGE_REQUEST = "kiln.batch.record_fuel_usage.request"
KILN_OUTPUT_REQUEST = "kiln.batch.record_output.request"
KILN_COMPLETE_REQUEST = "kiln.batch.complete.request"
KILN_CANCEL_REQUEST = "kiln.batch.cancel.request"

KILN_COMMAND_TYPES = frozenset({
    KILN_CREATE_REQUEST,
    KILN_ADD_INPUT_REQUEST,
    KILN_START_REQUEST,
    KILN_PAUSE_REQUEST,
    KILN_RESUME_REQUEST,
    KILN_ZONE_TEMP_REQUEST,
    KILN_FUEL_USAGE_REQUEST,
    KILN_OUTPUT_REQUEST,
    KILN_COMPLETE_REQUEST,
    KILN_CANCEL_REQUEST,
})


@dataclass(frozen=True)
class CreateKilnBatchRequest(Request):
    command_type: ClassVar[str] = KILN_CREATE_REQUEST

    code: str
    kiln_code: Optional[str] = None
    firing_curve_code: Optional[str] = None
    target_units: Optional[float] = None

    def __post_init__(self):
        object.__setattr__(self, "code", require_text(self.code, "Batch code"))
        object.__setattr__(self, "kiln_code", clean_text(self.kiln_code))
        object.__setattr__(self, "firing_curve_code", clean_text(self.firing_curve_code))
        optional_non_negative(self.target_units, "Target units")


@dataclass(frozen=True)
class AddKilnInputRequest(Request):
    command_type: ClassVar[str] = KILN_ADD_INPUT_REQUEST

    batch_id: uuid.UUID
    dry_load_id: uuid.UUID
    quantity_units: float
    reference: Optional[str] = None

    def __post_init__(self):
        require_id(self.batch_id, "Batch")
        require_id(self.dry_load_id, "Dry load")
        require_positive(self.quantity_units, "Quantity")
        object.__setattr__(self, "reference", clean_text(self.reference))


@dataclass(frozen=True)
class StartKilnBatchRequest(Request):
    command_type: ClassVar[str] = KILN_START_REQUEST

    batch_id: uuid.UUID

    def __post_init__(self):
        require_id(self.batch_id, "Batch")


@dataclass(frozen=True)
class PauseKilnBatchRequest(Request):
    command_type: ClassVar[str] = KILN_PAUSE_REQUEST

    batch_id: uuid.UUID
    minutes: float
    reason: str

    def __post_init__(self):
        require_id(self.batch_id, "Batch")
        require_positive(self.minutes, "Pause minutes")
        object.__setattr__(self, "reason", require_text(self.reason, "Pause reason"))


@dataclass(frozen=True)
class ResumeKilnBatchRequest(Request):
    command_type: ClassVar[str] = KILN_RESUME_REQUEST

    batch_id: uuid.UUID

    def __post_init__(self):
        require_id(self.batch_id, "Batch")


@dataclass(frozen=True)
class RecordZoneTempRequest(Request):
    command_type: ClassVar[str] = KILN_ZONE_TEMP_REQUEST

    batch_id: uuid.UUID
    zone: str
    temperature_c: float

    def __post_init__(self):
        require_id(self.batch_id, "Batch")
        object.__setattr__(self, "zone", require_text(self.zone, "Zone"))
        require_positive(self.temperature_c, "Temperature")


@dataclass(frozen=True)
class RecordFuelUsageRequest(Request):
    command_type: ClassVar[str] = KILN_FUEL_USAGE_REQUEST

    batch_id: uuid.UUID
    fuel_type: str
    amount: float
    unit: str

    def __post_init__(self):
        require_id(self.batch_id, "Batch")
        object.__setattr__(self, "fuel_type", require_text(self.fuel_type, "Fuel type"))
        require_positive(self.amount, "Fuel amount")
        object.__setattr__(self, "unit", require_text(self.unit, "Fuel unit"))


@dataclass(frozen=True)
class RecordKilnOutputRequest(Request):
    command_type: ClassVar[str] = KILN_OUTPUT_REQUEST

    batch_id: uuid.UUID
    fired_units: float
    shrinkage_pct: Optional[float] = None

    def __post_init__(self):
        require_id(self.batch_id, "Batch")
        require_non_negative(self.fired_units, "Fired units")
        optional_percentage(self.shrinkage_pct, "Shrinkage")


@dataclass(frozen=True)
class CompleteKilnBatchRequest(Request):
    command_type: ClassVar[str] = KILN_COMPLETE_REQUEST

    batch_id: uuid.UUID

    def __post_init__(self):
        require_id(self.batch_id, "Batch")


@dataclass(frozen=True)
class CancelKilnBatchRequest(Request):
    command_type: ClassVar[str] = KILN_CANCEL_REQUEST

    batch_id: uuid.UUID
    reason: Optional[str] = None

    def __post_init__(self):
        require_id(self.batch_id, "Batch")
        object.__setattr__(self, "reason", clean_text(self.reason))
