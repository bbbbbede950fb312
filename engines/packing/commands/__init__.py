"""
Brickflow Packing Engine — Request Commands
============================================
"""

from __future__ import annotations

import uuid
from dataclasses import dataclass
from typing import ClassVar, Optional

from core.commands.base import Request
from core.guards.validators import (
    clean_text,
    optional_id,
    require_id,
    require_positive,
    require_text,
)

PACK_LOCATION_CREATE_REQUEST = "packing.location.create.request"
PACK_PALLET_CREATE_REQUEST = "packing.pallet.create.request"
PACK_ADD_INPUT_REQUEST = "packing.pallet.add_input.request"
PACK_GRADE_REQUEST = "packing.pallet.grade.request"
PACK_MOVE_REQUEST = "packing.pallet.move.request"
PACK_PRINT_LABEL_REQUEST = "packing.pallet.print_label.request"
PACK_RESERVE_REQUEST = "packing.pallet.reserve.request"
PACK_RELEASE_REQUEST = "packing.pallet.release.request"
PACK_SCRAP_REQUEST = "packing.pallet.record_scrap.request"
PACK_CLOSE_REQUEST = "packing.pallet.close.request"
PACK_CANCEL_REQUEST = "packing.pallet.cancel.request"

PACKING_COMMAND_TYPES = frozenset({
    PACK_LOCATION_CREATE_REQUEST,
    PACK_PALLET_CREATE_REQUEST,
    PACK_ADD_INPUT_REQUEST,
    PACK_GRADE_REQUEST,
    PACK_MOVE_REQUEST,
    PACK_PRINT_LABEL_REQUEST,
    PACK_RESERVE_REQUEST,
    PACK_RELEASE_REQUEST,
    PACK_SCRAP_REQUEST,
    PACK_CLOSE_REQUEST,
    PACK_CANCEL_REQUEST,
})


@dataclass(frozen=True)
class CreateLocationRequest(Request):
    command_type: ClassVar[str] = PACK_LOCATION_CREATE_REQUEST

    code: str
    location_type: Optional[str] = None
    capacity_pallets: Optional[int] = None

    def __post_init__(self):
        object.__setattr__(self, "code", require_text(self.code, "Location code"))
        object.__setattr__(self, "location_type", clean_text(self.location_type))
        if self.capacity_pallets is not None:
            require_positive(self.capacity_pallets, "Pallet capacity")


@dataclass(frozen=True)
class CreatePalletRequest(Request):
    command_type: ClassVar[str] = PACK_PALLET_CREATE_REQUEST

    code: str
    product_sku: str
    grade: str
    capacity_units: Optional[float] = None
    location_id: Optional[uuid.UUID] = None

    def __post_init__(self):
        object.__setattr__(self, "code", require_text(self.code, "Pallet code"))
        object.__setattr__(self, "product_sku", require_text(self.product_sku, "Product SKU"))
        object.__setattr__(self, "grade", require_text(self.grade, "Grade"))
        if self.capacity_units is not None:
            require_positive(self.capacity_units, "Capacity")
        optional_id(self.location_id, "Location")


@dataclass(frozen=True)
class AddPackInputRequest(Request):
    command_type: ClassVar[str] = PACK_ADD_INPUT_REQUEST

    pallet_id: uuid.UUID
    kiln_batch_id: uuid.UUID
    quantity_units: float
    reference: Optional[str] = None

    def __post_init__(self):
        require_id(self.pallet_id, "Pallet")
        require_id(self.kiln_batch_id, "Kiln batch")
        require_positive(self.quantity_units, "Quantity")
        object.__setattr__(self, "reference", clean_text(self.reference))


@dataclass(frozen=True)
class GradePalletRequest(Request):
    command_type: ClassVar[str] = PACK_GRADE_REQUEST

    pallet_id: uuid.UUID
    grade: str

    def __post_init__(self):
        require_id(self.pallet_id, "Pallet")
        object.__setattr__(self, "grade", require_text(self.grade, "Grade"))


@dataclass(frozen=True)
class MovePalletRequest(Request):
    command_type: ClassVar[str] = PACK_MOVE_REQUEST

    pallet_id: uuid.UUID
    to_location_id: uuid.UUID

    def __post_init__(self):
        require_id(self.pallet_id, "Pallet")
        require_id(self.to_location_id, "Destination location")


@dataclass(frozen=True)
class PrintLabelRequest(Request):
    command_type: ClassVar[str] = PACK_PRINT_LABEL_REQUEST

    pallet_id: uuid.UUID
    label_type: Optional[str] = None

    def __post_init__(self):
        require_id(self.pallet_id, "Pallet")
        object.__setattr__(self, "label_type", clean_text(self.label_type))


@dataclass(frozen=True)
class ReservePalletRequest(Request):
    """Reserve pallet units for a sales order."""
    command_type: ClassVar[str] = PACK_RESERVE_REQUEST

    pallet_id: uuid.UUID
    order_id: uuid.UUID
    quantity_units: float

    def __post_init__(self):
        require_id(self.pallet_id, "Pallet")
        require_id(self.order_id, "Order reference")
        require_positive(self.quantity_units, "Quantity")


@dataclass(frozen=True)
class ReleasePalletRequest(Request):
    command_type: ClassVar[str] = PACK_RELEASE_REQUEST

    pallet_id: uuid.UUID
    order_id: uuid.UUID
    quantity_units: float
    correlation_id: Optional[uuid.UUID] = None

    def __post_init__(self):
        require_id(self.pallet_id, "Pallet")
        require_id(self.order_id, "Order reference")
        require_positive(self.quantity_units, "Quantity")
        optional_id(self.correlation_id, "Reservation")


@dataclass(frozen=True)
class RecordPackScrapRequest(Request):
    command_type: ClassVar[str] = PACK_SCRAP_REQUEST

    pallet_id: uuid.UUID
    scrap_units: float
    reason: Optional[str] = None

    def __post_init__(self):
        require_id(self.pallet_id, "Pallet")
        require_positive(self.scrap_units, "Scrap units")
        object.__setattr__(self, "reason", clean_text(self.reason))


@dataclass(frozen=True)
class ClosePalletRequest(Request):
    command_type: ClassVar[str] = PACK_CLOSE_REQUEST

    pallet_id: uuid.UUID

    def __post_init__(self):
        require_id(self.pallet_id, "Pallet")


@dataclass(frozen=True)
class CancelPalletRequest(Request):
    command_type: ClassVar[str] = PACK_CANCEL_REQUEST

    pallet_id: uuid.UUID
    reason: Optional[str] = None

    def __post_init__(self):
        require_id(self.pallet_id, "Pallet")
        object.__setattr__(self, "reason", clean_text(self.reason))
