"""
Brickflow Finance Engine — Event Types and Payloads
====================================================
Engine: Finance

Two aggregates:
    invoice     INVOICE_*
    payment     PAYMENT_*

Payment applications are snapshot rows; the APPLIED / UNAPPLIED
events on the payment carry the invoice id so invoice balances can be
folded from the log.

Money fields are Decimals and travel as decimal strings.
"""

from __future__ import annotations

import uuid
from dataclasses import dataclass
from datetime import date, datetime
from decimal import Decimal
from typing import Optional

from core.events.envelope import AggregateType
from core.events.payload import EventPayload


# ══════════════════════════════════════════════════════════════
# EVENT TYPE CONSTANTS
# ══════════════════════════════════════════════════════════════

INVOICE_CREATED = "INVOICE_CREATED"
INVOICE_LINE_ADDED = "INVOICE_LINE_ADDED"
INVOICE_LINE_REMOVED = "INVOICE_LINE_REMOVED"
INVOICE_ISSUED = "INVOICE_ISSUED"
INVOICE_VOIDED = "INVOICE_VOIDED"

PAYMENT_RECEIVED = "PAYMENT_RECEIVED"
PAYMENT_APPLIED = "PAYMENT_APPLIED"
PAYMENT_UNAPPLIED_ADJUSTED = "PAYMENT_UNAPPLIED_ADJUSTED"
PAYMENT_REVERSED = "PAYMENT_REVERSED"


# ══════════════════════════════════════════════════════════════
# INVOICE PAYLOADS
# ══════════════════════════════════════════════════════════════

@dataclass(frozen=True)
class InvoiceCreated(EventPayload):
    invoice_id: uuid.UUID
    invoice_code: str
    customer_id: uuid.UUID
    currency: str
    shipment_id: Optional[uuid.UUID] = None


@dataclass(frozen=True)
class InvoiceLineAdded(EventPayload):
    invoice_id: uuid.UUID
    line_id: uuid.UUID
    product_id: uuid.UUID
    sku: str
    quantity_units: float
    unit_price: Decimal
    tax_rate: Decimal = Decimal(0)


@dataclass(frozen=True)
class InvoiceLineRemoved(EventPayload):
    invoice_id: uuid.UUID
    line_id: uuid.UUID
    product_id: uuid.UUID
    sku: str
    quantity_units: float
    unit_price: Decimal
    tax_rate: Decimal = Decimal(0)


@dataclass(frozen=True)
class InvoiceIssued(EventPayload):
    invoice_id: uuid.UUID
    issue_date: date
    due_date: date
    terms_days: int


@dataclass(frozen=True)
class InvoiceVoided(EventPayload):
    invoice_id: uuid.UUID
    reason: Optional[str] = None


# ══════════════════════════════════════════════════════════════
# PAYMENT PAYLOADS
# ══════════════════════════════════════════════════════════════

@dataclass(frozen=True)
class PaymentReceived(EventPayload):
    payment_id: uuid.UUID
    payment_code: str
    customer_id: uuid.UUID
    amount: Decimal
    currency: str
    method: Optional[str] = None
    reference: Optional[str] = None
    received_at: Optional[datetime] = None


@dataclass(frozen=True)
class PaymentApplied(EventPayload):
    payment_id: uuid.UUID
    invoice_id: uuid.UUID
    application_id: uuid.UUID
    amount: Decimal


@dataclass(frozen=True)
class PaymentUnappliedAdjusted(EventPayload):
    payment_id: uuid.UUID
    invoice_id: uuid.UUID
    application_id: uuid.UUID
    amount: Decimal


@dataclass(frozen=True)
class PaymentReversed(EventPayload):
    payment_id: uuid.UUID
    reason: Optional[str] = None


INVOICE_EVENT_PAYLOADS = {
    INVOICE_CREATED: InvoiceCreated,
    INVOICE_LINE_ADDED: InvoiceLineAdded,
    INVOICE_LINE_REMOVED: InvoiceLineRemoved,
    INVOICE_ISSUED: InvoiceIssued,
    INVOICE_VOIDED: InvoiceVoided,
}

PAYMENT_EVENT_PAYLOADS = {
    PAYMENT_RECEIVED: PaymentReceived,
    PAYMENT_APPLIED: PaymentApplied,
    PAYMENT_UNAPPLIED_ADJUSTED: PaymentUnappliedAdjusted,
    PAYMENT_REVERSED: PaymentReversed,
}


def register_finance_event_types(event_type_registry) -> None:
    for event_type in sorted(INVOICE_EVENT_PAYLOADS):
        event_type_registry.register(
            event_type, INVOICE_EVENT_PAYLOADS[event_type], AggregateType.INVOICE,
        )
    for event_type in sorted(PAYMENT_EVENT_PAYLOADS):
        event_type_registry.register(
            event_type, PAYMENT_EVENT_PAYLOADS[event_type], AggregateType.PAYMENT,
        )
