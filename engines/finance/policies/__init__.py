"""
Brickflow Finance Engine — Policies
====================================
Invoice:  draft → issued;  void from draft or issued (idempotent)
Payment:  open ⇄ applied;  reversed from open or applied (idempotent)

A payment is ``applied`` once its applications cover the full amount
and drops back to ``open`` when an application is undone.
"""

from __future__ import annotations

from core.events.envelope import AggregateType
from core.lifecycle.machine import Activity, AggregateConfig, Transition

INVOICE_DRAFT = "draft"
INVOICE_ISSUED = "issued"
INVOICE_VOID = "void"

PAYMENT_OPEN = "open"
PAYMENT_APPLIED = "applied"
PAYMENT_REVERSED = "reversed"

APPLICATION_ACTIVE = "active"
APPLICATION_UNAPPLIED = "unapplied"

INVOICE_LIFECYCLE = AggregateConfig(
    aggregate_type=AggregateType.INVOICE,
    label="Invoice",
    initial_status=INVOICE_DRAFT,
    terminal=frozenset({INVOICE_VOID}),
    transitions=(
        Transition(
            "issue", {INVOICE_DRAFT}, INVOICE_ISSUED,
            message="Only draft invoices can be issued.",
        ),
        Transition(
            "void", {INVOICE_DRAFT, INVOICE_ISSUED}, INVOICE_VOID,
            stamp="completed_at",
            idempotent_from={INVOICE_VOID},
        ),
    ),
    activities=(
        Activity(
            "add_line", {INVOICE_DRAFT, INVOICE_ISSUED},
            message="Cannot modify lines on cancelled or void invoices.",
        ),
        Activity(
            "remove_line", {INVOICE_DRAFT},
            message="Can only remove lines from draft invoices.",
        ),
        Activity(
            "receive_application", {INVOICE_ISSUED},
            message="Payments can only be applied to issued invoices.",
        ),
    ),
)

PAYMENT_LIFECYCLE = AggregateConfig(
    aggregate_type=AggregateType.PAYMENT,
    label="Payment",
    initial_status=PAYMENT_OPEN,
    terminal=frozenset({PAYMENT_REVERSED}),
    transitions=(
        Transition("settle", {PAYMENT_OPEN}, PAYMENT_APPLIED),
        Transition("reopen", {PAYMENT_APPLIED}, PAYMENT_OPEN),
        Transition(
            "reverse", {PAYMENT_OPEN, PAYMENT_APPLIED}, PAYMENT_REVERSED,
            stamp="completed_at",
            idempotent_from={PAYMENT_REVERSED},
        ),
    ),
    activities=(
        Activity(
            "apply", {PAYMENT_OPEN, PAYMENT_APPLIED},
            message="Cannot apply a reversed payment.",
        ),
        Activity(
            "unapply", {PAYMENT_OPEN, PAYMENT_APPLIED},
            message="Cannot unapply a reversed payment.",
        ),
    ),
)

VOID_WITH_PAYMENTS = "Cannot void an invoice with applied payments."
OVER_APPLICATION = "Only {available:.2f} unapplied on this payment."
NO_PICKED_UNITS = "No picked units found for this shipment."
