"""
Brickflow Extrusion Engine — Request Commands
==============================================
"""

from __future__ import annotations

import uuid
from dataclasses import dataclass
from typing import ClassVar, Optional

from core.commands.base import Request
from core.guards.validators import (
    clean_text,
    optional_non_negative,
    require_id,
    require_non_negative,
    require_positive,
    require_text,
)

EXTRUSION_CREATE_REQUEST = "extrusion.run.create.request"
EXTRUSION_ADD_INPUT_REQUEST = "extrusion.run.add_input.request"
EXTRUSION_START_REQUEST = "extrusion.run.start.request"
EXTRUSION_PAUSE_REQUEST = "extrusion.run.pause.request"
EXTRUSION_RESUME_REQUEST = "extrusion.run.resume.request"
EXTRUSION_OUTPUT_REQUEST = "extrusion.run.record_output.request"
EXTRUSION_SCRAP_REQUEST = "extrusion.run.record_scrap.request"
EXTRUSION_CHANGE_DIE_REQUEST = "extrusion.run.change_die.request"
EXTRUSION_COMPLETE_REQUEST = "extrusion.run.complete.request"
EXTRUSION_CANCEL_REQUEST = "extrusion.run.cancel.request"

EXTRUSION_COMMAND_TYPES = frozenset({
    EXTRUSION_CREATE_REQUEST,
    EXTRUSION_ADD_INPUT_REQUEST,
    EXTRUSION_START_REQUEST,
    EXTRUSION_PAUSE_REQUEST,
    EXTRUSION_RESUME_REQUEST,
    EXTRUSION_OUTPUT_REQUEST,
    EXTRUSION_SCRAP_REQUEST,
    EXTRUSION_CHANGE_DIE_REQUEST,
    EXTRUSION_COMPLETE_REQUEST,
    EXTRUSION_CANCEL_REQUEST,
})


@dataclass(frozen=True)
class CreateExtrusionRunRequest(Request):
    command_type: ClassVar[str] = EXTRUSION_CREATE_REQUEST

    code: str
    press_line: Optional[str] = None
    die_code: Optional[str] = None
    product_sku: Optional[str] = None
    target_units: Optional[float] = None

    def __post_init__(self):
        object.__setattr__(self, "code", require_text(self.code, "Run code"))
        object.__setattr__(self, "press_line", clean_text(self.press_line))
        object.__setattr__(self, "die_code", clean_text(self.die_code))
        object.__setattr__(self, "product_sku", clean_text(self.product_sku))
        optional_non_negative(self.target_units, "Target units")


@dataclass(frozen=True)
class AddExtrusionInputRequest(Request):
    command_type: ClassVar[str] = EXTRUSION_ADD_INPUT_REQUEST

    run_id: uuid.UUID
    crush_run_id: uuid.UUID
    quantity_tonnes: float
    reference: Optional[str] = None

    def __post_init__(self):
        require_id(self.run_id, "Run")
        require_id(self.crush_run_id, "Crushing run")
        require_positive(self.quantity_tonnes, "Quantity")
        object.__setattr__(self, "reference", clean_text(self.reference))


@dataclass(frozen=True)
class StartExtrusionRunRequest(Request):
    command_type: ClassVar[str] = EXTRUSION_START_REQUEST

    run_id: uuid.UUID

    def __post_init__(self):
        require_id(self.run_id, "Run")


@dataclass(frozen=True)
class PauseExtrusionRunRequest(Request):
    command_type: ClassVar[str] = EXTRUSION_PAUSE_REQUEST

    run_id: uuid.UUID
    minutes: float
    reason: Optional[str] = None

    def __post_init__(self):
        require_id(self.run_id, "Run")
        require_positive(self.minutes, "Pause minutes")
        object.__setattr__(self, "reason", clean_text(self.reason))


@dataclass(frozen=True)
class ResumeExtrusionRunRequest(Request):
    command_type: ClassVar[str] = EXTRUSION_RESUME_REQUEST

    run_id: uuid.UUID

    def __post_init__(self):
        require_id(self.run_id, "Run")


@dataclass(frozen=True)
class RecordExtrusionOutputRequest(Request):
    command_type: ClassVar[str] = EXTRUSION_OUTPUT_REQUEST

    run_id: uuid.UUID
    output_units: float
    meters: Optional[float] = None
    weight_tonnes: Optional[float] = None

    def __post_init__(self):
        require_id(self.run_id, "Run")
        require_non_negative(self.output_units, "Output units")
        optional_non_negative(self.meters, "Meters")
        optional_non_negative(self.weight_tonnes, "Weight")


@dataclass(frozen=True)
class RecordExtrusionScrapRequest(Request):
    command_type: ClassVar[str] = EXTRUSION_SCRAP_REQUEST

    run_id: uuid.UUID
    scrap_units: float
    reason: Optional[str] = None

    def __post_init__(self):
        require_id(self.run_id, "Run")
        require_positive(self.scrap_units, "Scrap units")
        object.__setattr__(self, "reason", clean_text(self.reason))


@dataclass(frozen=True)
class ChangeDieRequest(Request):
    command_type: ClassVar[str] = EXTRUSION_CHANGE_DIE_REQUEST

    run_id: uuid.UUID
    die_code: str

    def __post_init__(self):
        require_id(self.run_id, "Run")
        object.__setattr__(self, "die_code", require_text(self.die_code, "Die code"))


@dataclass(frozen=True)
class CompleteExtrusionRunRequest(Request):
    command_type: ClassVar[str] = EXTRUSION_COMPLETE_REQUEST

    run_id: uuid.UUID

    def __post_init__(self):
        require_id(self.run_id, "Run")


@dataclass(frozen=True)
class CancelExtrusionRunRequest(Request):
    command_type: ClassVar[str] = EXTRUSION_CANCEL_REQUEST

    run_id: uuid.UUID
    reason: Optional[str] = None

    def __post_init__(self):
        require_id(self.run_id, "Run")
        object.__setattr__(self, "reason", clean_text(self.reason))
