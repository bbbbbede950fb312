"""
Brickflow Sales Engine — Request Commands
==========================================
Customers, products, prices and sales orders.
"""

from __future__ import annotations

import uuid
from dataclasses import dataclass
from datetime import datetime
from decimal import Decimal
from typing import ClassVar, Optional

from core.commands.base import Request
from core.guards.errors import ValidationError
from core.guards.validators import (
    UNIT_PRICE_PLACES,
    clean_text,
    optional_id,
    optional_non_negative,
    require_id,
    require_money,
    require_positive,
    require_text,
)
from engines.sales.policies import PRODUCT_STATUSES

SALES_CUSTOMER_CREATE_REQUEST = "sales.customer.create.request"
SALES_PRODUCT_CREATE_REQUEST = "sales.product.create.request"
SALES_PRODUCT_STATUS_REQUEST = "sales.product.set_status.request"
SALES_PRODUCT_PRICE_REQUEST = "sales.product.set_price.request"
SALES_ORDER_CREATE_REQUEST = "sales.order.create.request"
SALES_ORDER_ADD_LINE_REQUEST = "sales.order.add_line.request"
SALES_ORDER_REMOVE_LINE_REQUEST = "sales.order.remove_line.request"
SALES_ORDER_CONFIRM_REQUEST = "sales.order.confirm.request"
SALES_ORDER_RESERVE_REQUEST = "sales.order.reserve.request"
SALES_ORDER_RELEASE_REQUEST = "sales.order.release.request"
SALES_ORDER_CANCEL_REQUEST = "sales.order.cancel.request"
SALES_ORDER_FULFIL_REQUEST = "sales.order.fulfil.request"

SALES_COMMAND_TYPES = frozenset({
    SALES_CUSTOMER_CREATE_REQUEST,
    SALES_PRODUCT_CREATE_REQUEST,
    SALES_PRODUCT_STATUS_REQUEST,
    SALES_PRODUCT_PRICE_REQUEST,
    SALES_ORDER_CREATE_REQUEST,
    SALES_ORDER_ADD_LINE_REQUEST,
    SALES_ORDER_REMOVE_LINE_REQUEST,
    SALES_ORDER_CONFIRM_REQUEST,
    SALES_ORDER_RESERVE_REQUEST,
    SALES_ORDER_RELEASE_REQUEST,
    SALES_ORDER_CANCEL_REQUEST,
    SALES_ORDER_FULFIL_REQUEST,
})


# ══════════════════════════════════════════════════════════════
# MASTER DATA
# ══════════════════════════════════════════════════════════════

@dataclass(frozen=True)
class CreateCustomerRequest(Request):
    command_type: ClassVar[str] = SALES_CUSTOMER_CREATE_REQUEST

    code: str
    name: str
    email: Optional[str] = None
    phone: Optional[str] = None
    billing_address: Optional[str] = None
    credit_limit: Optional[float] = None

    def __post_init__(self):
        object.__setattr__(self, "code", require_text(self.code, "Customer code"))
        object.__setattr__(self, "name", require_text(self.name, "Customer name"))
        object.__setattr__(self, "email", clean_text(self.email))
        object.__setattr__(self, "phone", clean_text(self.phone))
        object.__setattr__(self, "billing_address", clean_text(self.billing_address))
        optional_non_negative(self.credit_limit, "Credit limit")


@dataclass(frozen=True)
class CreateProductRequest(Request):
    command_type: ClassVar[str] = SALES_PRODUCT_CREATE_REQUEST

    sku: str
    name: str
    uom: str = "units"

    def __post_init__(self):
        object.__setattr__(self, "sku", require_text(self.sku, "SKU"))
        object.__setattr__(self, "name", require_text(self.name, "Product name"))
        object.__setattr__(self, "uom", clean_text(self.uom) or "units")


@dataclass(frozen=True)
class SetProductStatusRequest(Request):
    command_type: ClassVar[str] = SALES_PRODUCT_STATUS_REQUEST

    product_id: uuid.UUID
    status: str

    def __post_init__(self):
        require_id(self.product_id, "Product")
        if self.status not in PRODUCT_STATUSES:
            raise ValidationError(
                f"Unknown product status '{self.status}'.",
                rule="product_status",
            )


@dataclass(frozen=True)
class SetPriceRequest(Request):
    """Add a price to the product's price list. Currency defaults per plant rules."""
    command_type: ClassVar[str] = SALES_PRODUCT_PRICE_REQUEST

    product_id: uuid.UUID
    unit_price: Decimal
    currency: Optional[str] = None
    effective_from: Optional[datetime] = None

    def __post_init__(self):
        require_id(self.product_id, "Product")
        object.__setattr__(self, "unit_price", require_money(
            self.unit_price, "Unit price", places=UNIT_PRICE_PLACES,
        ))
        currency = clean_text(self.currency)
        if currency is not None:
            if len(currency) != 3:
                raise ValidationError("Currency must be a 3-letter code.", rule="currency")
            currency = currency.upper()
        object.__setattr__(self, "currency", currency)
        if self.effective_from is not None and self.effective_from.tzinfo is None:
            raise ValidationError(
                "Effective date must be timezone-aware.", rule="aware_datetime",
            )


# ══════════════════════════════════════════════════════════════
# ORDERS
# ══════════════════════════════════════════════════════════════

@dataclass(frozen=True)
class CreateOrderRequest(Request):
    command_type: ClassVar[str] = SALES_ORDER_CREATE_REQUEST

    code: str
    customer_id: uuid.UUID

    def __post_init__(self):
        object.__setattr__(self, "code", require_text(self.code, "Order code"))
        require_id(self.customer_id, "Customer")


@dataclass(frozen=True)
class AddOrderLineRequest(Request):
    command_type: ClassVar[str] = SALES_ORDER_ADD_LINE_REQUEST

    order_id: uuid.UUID
    product_id: uuid.UUID
    quantity_units: float

    def __post_init__(self):
        require_id(self.order_id, "Order")
        require_id(self.product_id, "Product")
        require_positive(self.quantity_units, "Quantity")


@dataclass(frozen=True)
class RemoveOrderLineRequest(Request):
    command_type: ClassVar[str] = SALES_ORDER_REMOVE_LINE_REQUEST

    order_id: uuid.UUID
    line_id: uuid.UUID

    def __post_init__(self):
        require_id(self.order_id, "Order")
        require_id(self.line_id, "Line")


@dataclass(frozen=True)
class ConfirmOrderRequest(Request):
    command_type: ClassVar[str] = SALES_ORDER_CONFIRM_REQUEST

    order_id: uuid.UUID

    def __post_init__(self):
        require_id(self.order_id, "Order")


@dataclass(frozen=True)
class ReserveOrderRequest(Request):
    command_type: ClassVar[str] = SALES_ORDER_RESERVE_REQUEST

    order_id: uuid.UUID
    pallet_id: uuid.UUID
    quantity_units: float

    def __post_init__(self):
        require_id(self.order_id, "Order")
        require_id(self.pallet_id, "Pallet")
        require_positive(self.quantity_units, "Quantity")


@dataclass(frozen=True)
class ReleaseOrderRequest(Request):
    command_type: ClassVar[str] = SALES_ORDER_RELEASE_REQUEST

    order_id: uuid.UUID
    pallet_id: uuid.UUID
    quantity_units: float
    correlation_id: Optional[uuid.UUID] = None

    def __post_init__(self):
        require_id(self.order_id, "Order")
        require_id(self.pallet_id, "Pallet")
        require_positive(self.quantity_units, "Quantity")
        optional_id(self.correlation_id, "Reservation")


@dataclass(frozen=True)
class CancelOrderRequest(Request):
    command_type: ClassVar[str] = SALES_ORDER_CANCEL_REQUEST

    order_id: uuid.UUID
    reason: Optional[str] = None

    def __post_init__(self):
        require_id(self.order_id, "Order")
        object.__setattr__(self, "reason", clean_text(self.reason))


@dataclass(frozen=True)
class FulfilOrderRequest(Request):
    command_type: ClassVar[str] = SALES_ORDER_FULFIL_REQUEST

    order_id: uuid.UUID

    def __post_init__(self):
        require_id(self.order_id, "Order")
