"""
Brickflow Mixing Engine — Request Commands
===========================================
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
    require_positive,
    require_text,
)

MIXING_CREATE_REQUEST = "mixing.batch.create.request"
MIXING_ADD_COMPONENT_REQUEST = "mixing.batch.add_component.request"
MIXING_REMOVE_COMPONENT_REQUEST = "mixing.batch.remove_component.request"
MIXING_START_REQUEST = "mixing.batch.start.request"
MIXING_PAUSE_REQUEST = "mixing.batch.pause.request"
MIXING_RESUME_REQUEST = "mixing.batch.resume.request"
MIXING_COMPLETE_REQUEST = "mixing.batch.complete.request"
MIXING_CANCEL_REQUEST = "mixing.batch.cancel.request"

MIXING_COMMAND_TYPES = frozenset({
    MIXING_CREATE_REQUEST,
    MIXING_ADD_COMPONENT_REQUEST,
    MIXING_REMOVE_COMPONENT_REQUEST,
    MIXING_START_REQUEST,
    MIXING_PAUSE_REQUEST,
    MIXING_RESUME_REQUEST,
    MIXING_COMPLETE_REQUEST,
    MIXING_CANCEL_REQUEST,
})


@dataclass(frozen=True)
class CreateMixBatchRequest(Request):
    command_type: ClassVar[str] = MIXING_CREATE_REQUEST

    code: str
    target_output_tonnes: Optional[float] = None

    def __post_init__(self):
        object.__setattr__(self, "code", require_text(self.code, "Batch code"))
        optional_non_negative(self.target_output_tonnes, "Target output")


@dataclass(frozen=True)
class AddComponentRequest(Request):
    """Draw tonnes from a stockpile into the batch."""
    command_type: ClassVar[str] = MIXING_ADD_COMPONENT_REQUEST

    batch_id: uuid.UUID
    stockpile_id: uuid.UUID
    quantity_tonnes: float
    material_type: str
    reference: Optional[str] = None

    def __post_init__(self):
        require_id(self.batch_id, "Batch")
        require_id(self.stockpile_id, "Stockpile")
        require_positive(self.quantity_tonnes, "Quantity")
        object.__setattr__(
            self, "material_type", require_text(self.material_type, "Material type"),
        )
        object.__setattr__(self, "reference", clean_text(self.reference))


@dataclass(frozen=True)
class RemoveComponentRequest(Request):
    """Return tonnes from the batch to the stockpile they came from."""
    command_type: ClassVar[str] = MIXING_REMOVE_COMPONENT_REQUEST

    batch_id: uuid.UUID
    stockpile_id: uuid.UUID
    quantity_tonnes: float
    reference: Optional[str] = None

    def __post_init__(self):
        require_id(self.batch_id, "Batch")
        require_id(self.stockpile_id, "Stockpile")
        require_positive(self.quantity_tonnes, "Quantity")
        object.__setattr__(self, "reference", clean_text(self.reference))


@dataclass(frozen=True)
class StartMixBatchRequest(Request):
    command_type: ClassVar[str] = MIXING_START_REQUEST

    batch_id: uuid.UUID

    def __post_init__(self):
        require_id(self.batch_id, "Batch")


@dataclass(frozen=True)
class PauseMixBatchRequest(Request):
    command_type: ClassVar[str] = MIXING_PAUSE_REQUEST

    batch_id: uuid.UUID
    reason: Optional[str] = None

    def __post_init__(self):
        require_id(self.batch_id, "Batch")
        object.__setattr__(self, "reason", clean_text(self.reason))


@dataclass(frozen=True)
class ResumeMixBatchRequest(Request):
    command_type: ClassVar[str] = MIXING_RESUME_REQUEST

    batch_id: uuid.UUID

    def __post_init__(self):
        require_id(self.batch_id, "Batch")


@dataclass(frozen=True)
class CompleteMixBatchRequest(Request):
    command_type: ClassVar[str] = MIXING_COMPLETE_REQUEST

    batch_id: uuid.UUID
    output_tonnes: Optional[float] = None
    moisture_pct: Optional[float] = None

    def __post_init__(self):
        require_id(self.batch_id, "Batch")
        optional_non_negative(self.output_tonnes, "Output")
        optional_percentage(self.moisture_pct, "Moisture")


@dataclass(frozen=True)
class CancelMixBatchRequest(Request):
    command_type: ClassVar[str] = MIXING_CANCEL_REQUEST

    batch_id: uuid.UUID
    reason: Optional[str] = None

    def __post_init__(self):
        require_id(self.batch_id, "Batch")
        object.__setattr__(self, "reason", clean_text(self.reason))
