"""
Brickflow Stockpile Engine — Request Commands
==============================================
Typed stockpile requests that convert into canonical Command objects.
"""

from __future__ import annotations

import uuid
from dataclasses import dataclass
from typing import ClassVar, Optional

from core.commands.base import Request
from core.guards.validators import (
    optional_id,
    require_finite,
    require_id,
    require_percentage,
    require_positive,
    require_text,
)


# ══════════════════════════════════════════════════════════════
# COMMAND TYPE CONSTANTS
# ══════════════════════════════════════════════════════════════

STOCKPILE_CREATE_REQUEST = "stockpile.pile.create.request"
STOCKPILE_RECEIPT_REQUEST = "stockpile.pile.record_receipt.request"
STOCKPILE_TRANSFER_OUT_REQUEST = "stockpile.pile.transfer_out.request"
STOCKPILE_TRANSFER_IN_REQUEST = "stockpile.pile.transfer_in.request"
STOCKPILE_ADJUST_REQUEST = "stockpile.pile.adjust.request"
STOCKPILE_SAMPLE_REQUEST = "stockpile.pile.take_sample.request"
STOCKPILE_QUALITY_REQUEST = "stockpile.pile.record_quality.request"

STOCKPILE_COMMAND_TYPES = frozenset({
    STOCKPILE_CREATE_REQUEST,
    STOCKPILE_RECEIPT_REQUEST,
    STOCKPILE_TRANSFER_OUT_REQUEST,
    STOCKPILE_TRANSFER_IN_REQUEST,
    STOCKPILE_ADJUST_REQUEST,
    STOCKPILE_SAMPLE_REQUEST,
    STOCKPILE_QUALITY_REQUEST,
})


# ══════════════════════════════════════════════════════════════
# REQUEST COMMANDS
# ══════════════════════════════════════════════════════════════

@dataclass(frozen=True)
class CreateStockpileRequest(Request):
    """Create a stockpile, or return the existing one with the same code."""
    command_type: ClassVar[str] = STOCKPILE_CREATE_REQUEST

    code: str
    name: Optional[str] = None
    location: Optional[str] = None
    material_type: Optional[str] = None

    def __post_init__(self):
        object.__setattr__(self, "code", require_text(self.code, "Stockpile code"))


@dataclass(frozen=True)
class RecordReceiptRequest(Request):
    command_type: ClassVar[str] = STOCKPILE_RECEIPT_REQUEST

    stockpile_id: uuid.UUID
    quantity_tonnes: float
    reference: Optional[str] = None
    notes: Optional[str] = None

    def __post_init__(self):
        require_id(self.stockpile_id, "Stockpile")
        require_positive(self.quantity_tonnes, "Quantity")


@dataclass(frozen=True)
class TransferOutRequest(Request):
    command_type: ClassVar[str] = STOCKPILE_TRANSFER_OUT_REQUEST

    stockpile_id: uuid.UUID
    quantity_tonnes: float
    to_stockpile_id: Optional[uuid.UUID] = None
    reference: Optional[str] = None

    def __post_init__(self):
        require_id(self.stockpile_id, "Stockpile")
        require_positive(self.quantity_tonnes, "Quantity")
        optional_id(self.to_stockpile_id, "Destination stockpile")


@dataclass(frozen=True)
class TransferInRequest(Request):
    command_type: ClassVar[str] = STOCKPILE_TRANSFER_IN_REQUEST

    stockpile_id: uuid.UUID
    quantity_tonnes: float
    from_stockpile_id: Optional[uuid.UUID] = None
    reference: Optional[str] = None

    def __post_init__(self):
        require_id(self.stockpile_id, "Stockpile")
        require_positive(self.quantity_tonnes, "Quantity")
        optional_id(self.from_stockpile_id, "Source stockpile")


@dataclass(frozen=True)
class AdjustStockpileRequest(Request):
    """Signed adjustment: positive adds tonnes, negative removes, zero is a no-op."""
    command_type: ClassVar[str] = STOCKPILE_ADJUST_REQUEST

    stockpile_id: uuid.UUID
    quantity_tonnes: float
    reason: str

    def __post_init__(self):
        require_id(self.stockpile_id, "Stockpile")
        require_finite(self.quantity_tonnes, "Quantity")
        object.__setattr__(self, "reason", require_text(self.reason, "Reason"))


@dataclass(frozen=True)
class TakeSampleRequest(Request):
    command_type: ClassVar[str] = STOCKPILE_SAMPLE_REQUEST

    stockpile_id: uuid.UUID
    sample_code: Optional[str] = None

    def __post_init__(self):
        require_id(self.stockpile_id, "Stockpile")


@dataclass(frozen=True)
class RecordQualityRequest(Request):
    command_type: ClassVar[str] = STOCKPILE_QUALITY_REQUEST

    stockpile_id: uuid.UUID
    moisture_pct: float

    def __post_init__(self):
        require_id(self.stockpile_id, "Stockpile")
        require_percentage(self.moisture_pct, "Moisture")
