"""
Brickflow Finance Engine — Request Commands
============================================
"""

from __future__ import annotations

import uuid
from dataclasses import dataclass
from datetime import date, datetime
from decimal import Decimal
from typing import ClassVar, Optional

from core.commands.base import Request
from core.guards.errors import ValidationError
from core.guards.validators import (
    UNIT_PRICE_PLACES,
    clean_text,
    require_id,
    require_money,
    require_non_negative,
    require_positive,
    require_text,
)

INVOICE_CREATE_REQUEST = "finance.invoice.create.request"
INVOICE_ADD_LINE_REQUEST = "finance.invoice.add_line.request"
INVOICE_REMOVE_LINE_REQUEST = "finance.invoice.remove_line.request"
INVOICE_ISSUE_REQUEST = "finance.invoice.issue.request"
INVOICE_VOID_REQUEST = "finance.invoice.void.request"
INVOICE_FROM_SHIPMENT_REQUEST = "finance.invoice.from_shipment.request"
PAYMENT_RECEIVE_REQUEST = "finance.payment.receive.request"
PAYMENT_APPLY_REQUEST = "finance.payment.apply.request"
PAYMENT_UNAPPLY_REQUEST = "finance.payment.unapply.request"
PAYMENT_REVERSE_REQUEST = "finance.payment.reverse.request"

FINANCE_COMMAND_TYPES = frozenset({
    INVOICE_CREATE_REQUEST,
    INVOICE_ADD_LINE_REQUEST,
    INVOICE_REMOVE_LINE_REQUEST,
    INVOICE_ISSUE_REQUEST,
    INVOICE_VOID_REQUEST,
    INVOICE_FROM_SHIPMENT_REQUEST,
    PAYMENT_RECEIVE_REQUEST,
    PAYMENT_APPLY_REQUEST,
    PAYMENT_UNAPPLY_REQUEST,
    PAYMENT_REVERSE_REQUEST,
})


def _currency(value: Optional[str]) -> Optional[str]:
    currency = clean_text(value)
    if currency is None:
        return None
    if len(currency) != 3:
        raise ValidationError("Currency must be a 3-letter code.", rule="currency")
    return currency.upper()


def _tax_rate(value) -> Decimal:
    try:
        rate = require_money(value, "Tax rate", places=UNIT_PRICE_PLACES, allow_zero=True)
    except ValidationError:
        rate = None
    if rate is None or rate > 1:
        raise ValidationError("Tax rate must be between 0 and 1.", rule="tax_rate_bounds")
    return rate


# ══════════════════════════════════════════════════════════════
# INVOICES
# ══════════════════════════════════════════════════════════════

@dataclass(frozen=True)
class CreateInvoiceRequest(Request):
    command_type: ClassVar[str] = INVOICE_CREATE_REQUEST

    code: str
    customer_id: uuid.UUID
    currency: Optional[str] = None

    def __post_init__(self):
        object.__setattr__(self, "code", require_text(self.code, "Invoice code"))
        require_id(self.customer_id, "Customer")
        object.__setattr__(self, "currency", _currency(self.currency))


@dataclass(frozen=True)
class AddInvoiceLineRequest(Request):
    command_type: ClassVar[str] = INVOICE_ADD_LINE_REQUEST

    invoice_id: uuid.UUID
    product_id: uuid.UUID
    quantity_units: float
    unit_price: Decimal
    tax_rate: Decimal = Decimal(0)
    sku: Optional[str] = None

    def __post_init__(self):
        require_id(self.invoice_id, "Invoice")
        require_id(self.product_id, "Product")
        require_positive(self.quantity_units, "Quantity")
        object.__setattr__(self, "unit_price", require_money(
            self.unit_price, "Unit price", places=UNIT_PRICE_PLACES, allow_zero=True,
        ))
        object.__setattr__(self, "tax_rate", _tax_rate(self.tax_rate))
        object.__setattr__(self, "sku", clean_text(self.sku))


@dataclass(frozen=True)
class RemoveInvoiceLineRequest(Request):
    command_type: ClassVar[str] = INVOICE_REMOVE_LINE_REQUEST

    invoice_id: uuid.UUID
    line_id: uuid.UUID

    def __post_init__(self):
        require_id(self.invoice_id, "Invoice")
        require_id(self.line_id, "Line")


@dataclass(frozen=True)
class IssueInvoiceRequest(Request):
    """terms_days defaults to the plant rules; issue_date to today (UTC)."""
    command_type: ClassVar[str] = INVOICE_ISSUE_REQUEST

    invoice_id: uuid.UUID
    terms_days: Optional[int] = None
    issue_date: Optional[date] = None

    def __post_init__(self):
        require_id(self.invoice_id, "Invoice")
        if self.terms_days is not None:
            if isinstance(self.terms_days, bool) or not isinstance(self.terms_days, int):
                raise ValidationError("Terms days is invalid.", rule="terms_days")
            require_non_negative(self.terms_days, "Terms days")
        if self.issue_date is not None and not isinstance(self.issue_date, date):
            raise ValidationError("Issue date is invalid.", rule="issue_date")
        if isinstance(self.issue_date, datetime):
            object.__setattr__(self, "issue_date", self.issue_date.date())


@dataclass(frozen=True)
class VoidInvoiceRequest(Request):
    command_type: ClassVar[str] = INVOICE_VOID_REQUEST

    invoice_id: uuid.UUID
    reason: Optional[str] = None

    def __post_init__(self):
        require_id(self.invoice_id, "Invoice")
        object.__setattr__(self, "reason", clean_text(self.reason))


@dataclass(frozen=True)
class InvoiceFromShipmentRequest(Request):
    command_type: ClassVar[str] = INVOICE_FROM_SHIPMENT_REQUEST

    shipment_id: uuid.UUID
    code: str
    customer_id: uuid.UUID
    currency: Optional[str] = None

    def __post_init__(self):
        require_id(self.shipment_id, "Shipment")
        object.__setattr__(self, "code", require_text(self.code, "Invoice code"))
        require_id(self.customer_id, "Customer")
        object.__setattr__(self, "currency", _currency(self.currency))


# ══════════════════════════════════════════════════════════════
# PAYMENTS
# ══════════════════════════════════════════════════════════════

@dataclass(frozen=True)
class ReceivePaymentRequest(Request):
    command_type: ClassVar[str] = PAYMENT_RECEIVE_REQUEST

    code: str
    customer_id: uuid.UUID
    amount: Decimal
    currency: Optional[str] = None
    method: Optional[str] = None
    reference: Optional[str] = None
    received_at: Optional[datetime] = None

    def __post_init__(self):
        object.__setattr__(self, "code", require_text(self.code, "Payment code"))
        require_id(self.customer_id, "Customer")
        object.__setattr__(self, "amount", require_money(self.amount, "Payment amount"))
        object.__setattr__(self, "currency", _currency(self.currency))
        object.__setattr__(self, "method", clean_text(self.method))
        object.__setattr__(self, "reference", clean_text(self.reference))
        if self.received_at is not None and self.received_at.tzinfo is None:
            raise ValidationError(
                "Received date must be timezone-aware.", rule="aware_datetime",
            )


@dataclass(frozen=True)
class ApplyPaymentRequest(Request):
    command_type: ClassVar[str] = PAYMENT_APPLY_REQUEST

    payment_id: uuid.UUID
    invoice_id: uuid.UUID
    amount: Decimal

    def __post_init__(self):
        require_id(self.payment_id, "Payment")
        require_id(self.invoice_id, "Invoice")
        object.__setattr__(self, "amount", require_money(self.amount, "Applied amount"))


@dataclass(frozen=True)
class UnapplyPaymentRequest(Request):
    command_type: ClassVar[str] = PAYMENT_UNAPPLY_REQUEST

    application_id: uuid.UUID

    def __post_init__(self):
        require_id(self.application_id, "Payment application")


@dataclass(frozen=True)
class ReversePaymentRequest(Request):
    command_type: ClassVar[str] = PAYMENT_REVERSE_REQUEST

    payment_id: uuid.UUID
    reason: Optional[str] = None

    def __post_init__(self):
        require_id(self.payment_id, "Payment")
        object.__setattr__(self, "reason", clean_text(self.reason))
