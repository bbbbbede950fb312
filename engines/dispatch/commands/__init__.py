"""
Brickflow Dispatch Engine — Request Commands
=============================================
"""

from __future__ import annotations

import uuid
from dataclasses import dataclass
from typing import Any, ClassVar, Dict, Mapping, Optional

from core.commands.base import Request
from core.guards.errors import ValidationError
from core.guards.validators import (
    clean_text,
    optional_finite,
    optional_id,
    require_id,
    require_positive,
    require_text,
)

SHIPMENT_CREATE_REQUEST = "dispatch.shipment.create.request"
SHIPMENT_SET_CARRIER_REQUEST = "dispatch.shipment.set_carrier.request"
SHIPMENT_SET_ADDRESS_REQUEST = "dispatch.shipment.set_address.request"
SHIPMENT_PICKLIST_REQUEST = "dispatch.shipment.create_picklist.request"
SHIPMENT_ADD_PICK_REQUEST = "dispatch.shipment.add_pick.request"
SHIPMENT_REMOVE_PICK_REQUEST = "dispatch.shipment.remove_pick.request"
SHIPMENT_WEIGH_IN_REQUEST = "dispatch.shipment.weigh_in.request"
SHIPMENT_WEIGH_OUT_REQUEST = "dispatch.shipment.weigh_out.request"
SHIPMENT_FINALIZE_REQUEST = "dispatch.shipment.finalize.request"
SHIPMENT_CANCEL_REQUEST = "dispatch.shipment.cancel.request"

DISPATCH_COMMAND_TYPES = frozenset({
    SHIPMENT_CREATE_REQUEST,
    SHIPMENT_SET_CARRIER_REQUEST,
    SHIPMENT_SET_ADDRESS_REQUEST,
    SHIPMENT_PICKLIST_REQUEST,
    SHIPMENT_ADD_PICK_REQUEST,
    SHIPMENT_REMOVE_PICK_REQUEST,
    SHIPMENT_WEIGH_IN_REQUEST,
    SHIPMENT_WEIGH_OUT_REQUEST,
    SHIPMENT_FINALIZE_REQUEST,
    SHIPMENT_CANCEL_REQUEST,
})


def _address(value: Optional[Mapping[str, Any]]) -> Optional[Dict[str, Any]]:
    if value is None:
        return None
    if not isinstance(value, Mapping):
        raise ValidationError("Delivery address is invalid.", rule="address")
    return dict(value)


@dataclass(frozen=True)
class CreateShipmentRequest(Request):
    command_type: ClassVar[str] = SHIPMENT_CREATE_REQUEST

    code: str
    customer_code: Optional[str] = None
    customer_name: Optional[str] = None
    delivery_address: Optional[Mapping[str, Any]] = None

    def __post_init__(self):
        object.__setattr__(self, "code", require_text(self.code, "Shipment code"))
        object.__setattr__(self, "customer_code", clean_text(self.customer_code))
        object.__setattr__(self, "customer_name", clean_text(self.customer_name))
        object.__setattr__(self, "delivery_address", _address(self.delivery_address))


@dataclass(frozen=True)
class SetCarrierRequest(Request):
    command_type: ClassVar[str] = SHIPMENT_SET_CARRIER_REQUEST

    shipment_id: uuid.UUID
    carrier: str
    vehicle_reg: Optional[str] = None
    trailer_reg: Optional[str] = None
    seal_no: Optional[str] = None

    def __post_init__(self):
        require_id(self.shipment_id, "Shipment")
        object.__setattr__(self, "carrier", require_text(self.carrier, "Carrier"))
        object.__setattr__(self, "vehicle_reg", clean_text(self.vehicle_reg))
        object.__setattr__(self, "trailer_reg", clean_text(self.trailer_reg))
        object.__setattr__(self, "seal_no", clean_text(self.seal_no))


@dataclass(frozen=True)
class SetAddressRequest(Request):
    command_type: ClassVar[str] = SHIPMENT_SET_ADDRESS_REQUEST

    shipment_id: uuid.UUID
    delivery_address: Optional[Mapping[str, Any]] = None

    def __post_init__(self):
        require_id(self.shipment_id, "Shipment")
        object.__setattr__(self, "delivery_address", _address(self.delivery_address))


@dataclass(frozen=True)
class CreatePicklistRequest(Request):
    command_type: ClassVar[str] = SHIPMENT_PICKLIST_REQUEST

    shipment_id: uuid.UUID

    def __post_init__(self):
        require_id(self.shipment_id, "Shipment")


@dataclass(frozen=True)
class AddPickRequest(Request):
    command_type: ClassVar[str] = SHIPMENT_ADD_PICK_REQUEST

    shipment_id: uuid.UUID
    pallet_id: uuid.UUID
    quantity_units: float
    product_sku: Optional[str] = None
    grade: Optional[str] = None
    order_id: Optional[uuid.UUID] = None

    def __post_init__(self):
        require_id(self.shipment_id, "Shipment")
        require_id(self.pallet_id, "Pallet")
        require_positive(self.quantity_units, "Quantity")
        object.__setattr__(self, "product_sku", clean_text(self.product_sku))
        object.__setattr__(self, "grade", clean_text(self.grade))
        optional_id(self.order_id, "Order")


@dataclass(frozen=True)
class RemovePickRequest(Request):
    command_type: ClassVar[str] = SHIPMENT_REMOVE_PICK_REQUEST

    shipment_id: uuid.UUID
    pallet_id: uuid.UUID
    quantity_units: float
    correlation_id: Optional[uuid.UUID] = None

    def __post_init__(self):
        require_id(self.shipment_id, "Shipment")
        require_id(self.pallet_id, "Pallet")
        require_positive(self.quantity_units, "Quantity")
        optional_id(self.correlation_id, "Pick")


@dataclass(frozen=True)
class WeighRequest(Request):
    """Weighbridge reading. Gross must be positive; tare, when given, finite."""

    shipment_id: uuid.UUID
    gross_kg: float
    tare_kg: Optional[float] = None

    def __post_init__(self):
        require_id(self.shipment_id, "Shipment")
        require_positive(self.gross_kg, "Gross weight")
        optional_finite(self.tare_kg, "Tare weight")


@dataclass(frozen=True)
class WeighInRequest(WeighRequest):
    command_type: ClassVar[str] = SHIPMENT_WEIGH_IN_REQUEST


@dataclass(frozen=True)
class WeighOutRequest(WeighRequest):
    command_type: ClassVar[str] = SHIPMENT_WEIGH_OUT_REQUEST


@dataclass(frozen=True)
class FinalizeDispatchRequest(Request):
    command_type: ClassVar[str] = SHIPMENT_FINALIZE_REQUEST

    shipment_id: uuid.UUID

    def __post_init__(self):
        require_id(self.shipment_id, "Shipment")


@dataclass(frozen=True)
class CancelShipmentRequest(Request):
    command_type: ClassVar[str] = SHIPMENT_CANCEL_REQUEST

    shipment_id: uuid.UUID
    reason: Optional[str] = None

    def __post_init__(self):
        require_id(self.shipment_id, "Shipment")
        object.__setattr__(self, "reason", clean_text(self.reason))
