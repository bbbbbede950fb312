"""
Brickflow Crushing Engine — Request Commands
=============================================
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

CRUSHING_CREATE_REQUEST = "crushing.run.create.request"
CRUSHING_ADD_INPUT_REQUEST = "crushing.run.add_input.request"
CRUSHING_START_REQUEST = "crushing.run.start.request"
CRUSHING_PAUSE_REQUEST = "crushing.run.pause.request"
CRUSHING_RESUME_REQUEST = "crushing.run.resume.request"
CRUSHING_DOWNTIME_REQUEST = "crushing.run.log_downtime.request"
CRUSHING_OUTPUT_REQUEST = "crushing.run.record_output.request"
CRUSHING_COMPLETE_REQUEST = "crushing.run.complete.request"
CRUSHING_CANCEL_REQUEST = "crushing.run.cancel.request"

CRUSHING_COMMAND_TYPES = frozenset({
    CRUSHING_CREATE_REQUEST,
    CRUSHING_ADD_INPUT_REQUEST,
    CRUSHING_START_REQUEST,
    CRUSHING_PAUSE_REQUEST,
    CRUSHING_RESUME_REQUEST,
    CRUSHING_DOWNTIME_REQUEST,
    CRUSHING_OUTPUT_REQUEST,
    CRUSHING_COMPLETE_REQUEST,
    CRUSHING_CANCEL_REQUEST,
})


@dataclass(frozen=True)
class CreateCrushRunRequest(Request):
    command_type: ClassVar[str] = CRUSHING_CREATE_REQUEST

    code: str
    target_tph: Optional[float] = None

    def __post_init__(self):
        object.__setattr__(self, "code", require_text(self.code, "Run code"))
        optional_non_negative(self.target_tph, "Target TPH")


@dataclass(frozen=True)
class AddCrushInputRequest(Request):
    """Feed tonnes from a completed mix batch."""
    command_type: ClassVar[str] = CRUSHING_ADD_INPUT_REQUEST

    run_id: uuid.UUID
    mix_batch_id: uuid.UUID
    quantity_tonnes: float
    reference: Optional[str] = None

    def __post_init__(self):
        require_id(self.run_id, "Run")
        require_id(self.mix_batch_id, "Mix batch")
        require_positive(self.quantity_tonnes, "Quantity")
        object.__setattr__(self, "reference", clean_text(self.reference))


@dataclass(frozen=True)
class StartCrushRunRequest(Request):
    command_type: ClassVar[str] = CRUSHING_START_REQUEST

    run_id: uuid.UUID

    def __post_init__(self):
        require_id(self.run_id, "Run")


@dataclass(frozen=True)
class PauseCrushRunRequest(Request):
    command_type: ClassVar[str] = CRUSHING_PAUSE_REQUEST

    run_id: uuid.UUID
    reason: Optional[str] = None

    def __post_init__(self):
        require_id(self.run_id, "Run")
        object.__setattr__(self, "reason", clean_text(self.reason))


@dataclass(frozen=True)
class ResumeCrushRunRequest(Request):
    command_type: ClassVar[str] = CRUSHING_RESUME_REQUEST

    run_id: uuid.UUID

    def __post_init__(self):
        require_id(self.run_id, "Run")


@dataclass(frozen=True)
class LogDowntimeRequest(Request):
    command_type: ClassVar[str] = CRUSHING_DOWNTIME_REQUEST

    run_id: uuid.UUID
    minutes: float
    reason: str

    def __post_init__(self):
        require_id(self.run_id, "Run")
        require_positive(self.minutes, "Downtime minutes")
        object.__setattr__(self, "reason", require_text(self.reason, "Downtime reason"))


@dataclass(frozen=True)
class RecordCrushOutputRequest(Request):
    command_type: ClassVar[str] = CRUSHING_OUTPUT_REQUEST

    run_id: uuid.UUID
    output_tonnes: float
    fines_pct: Optional[float] = None

    def __post_init__(self):
        require_id(self.run_id, "Run")
        require_non_negative(self.output_tonnes, "Output")
        optional_percentage(self.fines_pct, "Fines percent")


@dataclass(frozen=True)
class CompleteCrushRunRequest(Request):
    command_type: ClassVar[str] = CRUSHING_COMPLETE_REQUEST

    run_id: uuid.UUID

    def __post_init__(self):
        require_id(self.run_id, "Run")


@dataclass(frozen=True)
class CancelCrushRunRequest(Request):
    command_type: ClassVar[str] = CRUSHING_CANCEL_REQUEST

    run_id: uuid.UUID
    reason: Optional[str] = None

    def __post_init__(self):
        require_id(self.run_id, "Run")
        object.__setattr__(self, "reason", clean_text(self.reason))
