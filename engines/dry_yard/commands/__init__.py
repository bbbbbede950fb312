"""
Brickflow Dry Yard Engine — Request Commands
=============================================
"""

from __future__ import annotations

import uuid
from dataclasses import dataclass
from typing import ClassVar, Optional

from core.commands.base import Request
from core.guards.validators import (
    clean_text,
    optional_percentage,
    require_id,
    require_percentage,
    require_positive,
    require_text,
)

DRY_RACK_CREATE_REQUEST = "dry_yard.rack.create.request"
DRY_LOAD_CREATE_REQUEST = "dry_yard.load.create.request"
DRY_ADD_INPUT_REQUEST = "dry_yard.load.add_input.request"
DRY_START_REQUEST = "dry_yard.load.start.request"
DRY_PAUSE_REQUEST = "dry_yard.load.pause.request"
DRY_RESUME_REQUEST = "dry_yard.load.resume.request"
DRY_MOISTURE_REQUEST = "dry_yard.load.record_moisture.request"
DRY_MOVE_REQUEST = "dry_yard.load.move.request"
DRY_SCRAP_REQUEST = "dry_yard.load.record_scrap.request"
DRY_COMPLETE_REQUEST = "dry_yard.load.complete.request"
DRY_CANCEL_REQUEST = "dry_yard.load.cancel.request"

DRY_YARD_COMMAND_TYPES = frozenset({
    DRY_RACK_CREATE_REQUEST,
    DRY_LOAD_CREATE_REQUEST,
    DRY_ADD_INPUT_REQUEST,
    DRY_START_REQUEST,
    DRY_PAUSE_REQUEST,
    DRY_RESUME_REQUEST,
    DRY_MOISTURE_REQUEST,
    DRY_MOVE_REQUEST,
    DRY_SCRAP_REQUEST,
    DRY_COMPLETE_REQUEST,
    DRY_CANCEL_REQUEST,
})


@dataclass(frozen=True)
class CreateRackRequest(Request):
    command_type: ClassVar[str] = DRY_RACK_CREATE_REQUEST

    code: str
    capacity_units: float
    bay: Optional[str] = None

    def __post_init__(self):
        object.__setattr__(self, "code", require_text(self.code, "Rack code"))
        require_positive(self.capacity_units, "Capacity")
        object.__setattr__(self, "bay", clean_text(self.bay))


@dataclass(frozen=True)
class CreateDryLoadRequest(Request):
    command_type: ClassVar[str] = DRY_LOAD_CREATE_REQUEST

    code: str
    rack_id: uuid.UUID
    target_moisture_pct: Optional[float] = None

    def __post_init__(self):
        object.__setattr__(self, "code", require_text(self.code, "Load code"))
        require_id(self.rack_id, "Rack")
        optional_percentage(self.target_moisture_pct, "Target moisture")


@dataclass(frozen=True)
class AddDryInputRequest(Request):
    command_type: ClassVar[str] = DRY_ADD_INPUT_REQUEST

    load_id: uuid.UUID
    extrusion_run_id: uuid.UUID
    quantity_units: float
    reference: Optional[str] = None

    def __post_init__(self):
        require_id(self.load_id, "Load")
        require_id(self.extrusion_run_id, "Extrusion run")
        require_positive(self.quantity_units, "Quantity")
        object.__setattr__(self, "reference", clean_text(self.reference))


@dataclass(frozen=True)
class StartDryLoadRequest(Request):
    command_type: ClassVar[str] = DRY_START_REQUEST

    load_id: uuid.UUID

    def __post_init__(self):
        require_id(self.load_id, "Load")


@dataclass(frozen=True)
class PauseDryLoadRequest(Request):
    command_type: ClassVar[str] = DRY_PAUSE_REQUEST

    load_id: uuid.UUID
    reason: Optional[str] = None

    def __post_init__(self):
        require_id(self.load_id, "Load")
        object.__setattr__(self, "reason", clean_text(self.reason))


@dataclass(frozen=True)
class ResumeDryLoadRequest(Request):
    command_type: ClassVar[str] = DRY_RESUME_REQUEST

    load_id: uuid.UUID

    def __post_init__(self):
        require_id(self.load_id, "Load")


@dataclass(frozen=True)
class RecordMoistureRequest(Request):
    command_type: ClassVar[str] = DRY_MOISTURE_REQUEST

    load_id: uuid.UUID
    moisture_pct: float
    method: Optional[str] = None

    def __post_init__(self):
        require_id(self.load_id, "Load")
        require_percentage(self.moisture_pct, "Moisture")
        object.__setattr__(self, "method", clean_text(self.method))


@dataclass(frozen=True)
class MoveDryLoadRequest(Request):
    command_type: ClassVar[str] = DRY_MOVE_REQUEST

    load_id: uuid.UUID
    to_rack_id: uuid.UUID

    def __post_init__(self):
        require_id(self.load_id, "Load")
        require_id(self.to_rack_id, "Destination rack")


@dataclass(frozen=True)
class RecordDryScrapRequest(Request):
    command_type: ClassVar[str] = DRY_SCRAP_REQUEST

    load_id: uuid.UUID
    scrap_units: float
    reason: Optional[str] = None

    def __post_init__(self):
        require_id(self.load_id, "Load")
        require_positive(self.scrap_units, "Scrap units")
        object.__setattr__(self, "reason", clean_text(self.reason))


@dataclass(frozen=True)
class CompleteDryLoadRequest(Request):
    command_type: ClassVar[str] = DRY_COMPLETE_REQUEST

    load_id: uuid.UUID

    def __post_init__(self):
        require_id(self.load_id, "Load")


@dataclass(frozen=True)
class CancelDryLoadRequest(Request):
    command_type: ClassVar[str] = DRY_CANCEL_REQUEST

    load_id: uuid.UUID
    reason: Optional[str] = None

    def __post_init__(self):
        require_id(self.load_id, "Load")
        object.__setattr__(self, "reason", clean_text(self.reason))
