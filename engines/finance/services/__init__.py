"""
Brickflow Finance Engine — Application Service
===============================================
Invoices, payments and payment applications.

Money totals are folded from the event log:
    invoice lines      INVOICE_LINE_ADDED − INVOICE_LINE_REMOVED
    applied amounts    PAYMENT_APPLIED − PAYMENT_UNAPPLIED_ADJUSTED
                       (linked to the invoice through ``invoiceId``)

Application rows (snapshot kind ``payment_application``) only make
"unapply this application" addressable.

Money is exact: amounts are Decimals and totals round half-up to cents.
"""

from __future__ import annotations

import logging
import uuid
from collections import OrderedDict
from dataclasses import dataclass
from datetime import timedelta
from decimal import Decimal
from typing import Dict, List

from core.commands.base import Command
from core.commands.outcomes import ExecutionResult
from core.context.actor_context import ActorContext
from core.engines.service import PipelineService
from core.events.envelope import AggregateType, SnapshotKind
from core.guards.errors import (
    IllegalStateTransition,
    InsufficientAvailability,
    NotFoundError,
    ValidationError,
)
from core.guards.validators import quantize_money, to_decimal
from core.lifecycle.machine import LifecycleMachine
from core.reservations.protocol import ReservationProtocol
from engines.dispatch.events import register_dispatch_event_types
from engines.dispatch.policies import SHIPMENT_BINDING
from engines.finance.commands import (
    INVOICE_ADD_LINE_REQUEST,
    INVOICE_CREATE_REQUEST,
    INVOICE_FROM_SHIPMENT_REQUEST,
    INVOICE_ISSUE_REQUEST,
    INVOICE_REMOVE_LINE_REQUEST,
    INVOICE_VOID_REQUEST,
    PAYMENT_APPLY_REQUEST,
    PAYMENT_RECEIVE_REQUEST,
    PAYMENT_REVERSE_REQUEST,
    PAYMENT_UNAPPLY_REQUEST,
)
from engines.finance.events import (
    INVOICE_LINE_ADDED,
    INVOICE_LINE_REMOVED,
    PAYMENT_APPLIED,
    PAYMENT_UNAPPLIED_ADJUSTED,
    InvoiceCreated,
    InvoiceIssued,
    InvoiceLineAdded,
    InvoiceLineRemoved,
    InvoiceVoided,
    PaymentApplied,
    PaymentReceived,
    PaymentReversed,
    PaymentUnappliedAdjusted,
    register_finance_event_types,
)
from engines.finance.policies import (
    APPLICATION_ACTIVE,
    APPLICATION_UNAPPLIED,
    INVOICE_DRAFT,
    INVOICE_LIFECYCLE,
    NO_PICKED_UNITS,
    OVER_APPLICATION,
    PAYMENT_APPLIED as PAYMENT_STATUS_APPLIED,
    PAYMENT_LIFECYCLE,
    PAYMENT_OPEN,
    VOID_WITH_PAYMENTS,
)
from engines.sales.policies import current_price

logger = logging.getLogger("brickflow.finance")


@dataclass(frozen=True)
class InvoiceLine:
    line_id: uuid.UUID
    product_id: uuid.UUID
    sku: str
    quantity_units: float
    unit_price: Decimal
    tax_rate: Decimal

    @property
    def net(self) -> Decimal:
        return to_decimal(self.quantity_units) * self.unit_price

    @property
    def tax(self) -> Decimal:
        return self.net * self.tax_rate


@dataclass(frozen=True)
class InvoiceTotals:
    subtotal: Decimal
    tax: Decimal
    grand_total: Decimal
    applied: Decimal
    balance: Decimal

    def to_dict(self) -> dict:
        return {
            "subtotal": self.subtotal,
            "tax": self.tax,
            "grand_total": self.grand_total,
            "applied": self.applied,
            "balance": self.balance,
        }


class FinanceService(PipelineService):
    engine = "finance"

    def __init__(self, *, reservations: ReservationProtocol, **deps):
        self._invoices = LifecycleMachine(INVOICE_LIFECYCLE)
        self._payments = LifecycleMachine(PAYMENT_LIFECYCLE)
        self.reservations = reservations
        reservations.bind_consumer(SHIPMENT_BINDING)
        super().__init__(**deps)

    def _register_event_types(self, registry) -> None:
        register_finance_event_types(registry)
        register_dispatch_event_types(registry)

    def _command_handlers(self):
        return {
            INVOICE_CREATE_REQUEST: self._create_invoice,
            INVOICE_ADD_LINE_REQUEST: self._add_line,
            INVOICE_REMOVE_LINE_REQUEST: self._remove_line,
            INVOICE_ISSUE_REQUEST: self._issue,
            INVOICE_VOID_REQUEST: self._void,
            INVOICE_FROM_SHIPMENT_REQUEST: self._invoice_from_shipment,
            PAYMENT_RECEIVE_REQUEST: self._receive_payment,
            PAYMENT_APPLY_REQUEST: self._apply_payment,
            PAYMENT_UNAPPLY_REQUEST: self._unapply_payment,
            PAYMENT_REVERSE_REQUEST: self._reverse_payment,
        }

    # ══════════════════════════════════════════════════════════
    # QUERIES
    # ══════════════════════════════════════════════════════════

    def invoice_lines(self, tenant_id: uuid.UUID, invoice_id: uuid.UUID) -> List[InvoiceLine]:
        rows = self.store.events.list_events(
            tenant_id,
            aggregate_type=AggregateType.INVOICE,
            aggregate_id=invoice_id,
            event_types=[INVOICE_LINE_ADDED, INVOICE_LINE_REMOVED],
        )
        lines: Dict[str, InvoiceLine] = {}
        for row in rows:
            line_id = row.payload["lineId"]
            if row.event_type == INVOICE_LINE_REMOVED:
                lines.pop(line_id, None)
                continue
            lines[line_id] = InvoiceLine(
                line_id=uuid.UUID(line_id),
                product_id=uuid.UUID(row.payload["productId"]),
                sku=row.payload["sku"],
                quantity_units=row.quantity("quantityUnits"),
                unit_price=row.amount("unitPrice"),
                tax_rate=row.amount("taxRate"),
            )
        return list(lines.values())

    def applied_to_invoice(self, tenant_id: uuid.UUID, invoice_id: uuid.UUID) -> Decimal:
        total = Decimal(0)
        for event_type, sign in ((PAYMENT_APPLIED, 1), (PAYMENT_UNAPPLIED_ADJUSTED, -1)):
            rows = self.store.events.list_events(
                tenant_id,
                aggregate_type=AggregateType.PAYMENT,
                event_types=[event_type],
                link_key="invoiceId",
                link_value=str(invoice_id),
            )
            total += sign * sum((row.amount("amount") for row in rows), Decimal(0))
        return max(Decimal(0), total)

    def applied_from_payment(self, tenant_id: uuid.UUID, payment_id: uuid.UUID) -> Decimal:
        rows = self.store.events.list_events(
            tenant_id,
            aggregate_type=AggregateType.PAYMENT,
            aggregate_id=payment_id,
            event_types=[PAYMENT_APPLIED, PAYMENT_UNAPPLIED_ADJUSTED],
        )
        total = Decimal(0)
        for row in rows:
            amount = row.amount("amount")
            total += amount if row.event_type == PAYMENT_APPLIED else -amount
        return max(Decimal(0), total)

    def invoice_totals(self, context: ActorContext, invoice_id: uuid.UUID) -> InvoiceTotals:
        tenant_id = context.require_attribution()
        if self.store.snapshots.get(tenant_id, AggregateType.INVOICE, invoice_id) is None:
            raise NotFoundError("Invoice not found.", rule="tenant_scope")
        return self._totals(tenant_id, invoice_id)

    def payment_balance(self, context: ActorContext, payment_id: uuid.UUID) -> dict:
        tenant_id = context.require_attribution()
        payment = self.store.snapshots.get(tenant_id, AggregateType.PAYMENT, payment_id)
        if payment is None:
            raise NotFoundError("Payment not found.", rule="tenant_scope")
        amount = to_decimal(payment.attr("amount"))
        applied = self.applied_from_payment(tenant_id, payment_id)
        return {
            "status": payment.status,
            "amount": quantize_money(amount),
            "applied": quantize_money(applied),
            "unapplied": quantize_money(max(Decimal(0), amount - applied)),
        }

    def _totals(self, tenant_id, invoice_id) -> InvoiceTotals:
        lines = self.invoice_lines(tenant_id, invoice_id)
        subtotal = quantize_money(sum((line.net for line in lines), Decimal(0)))
        tax = quantize_money(sum((line.tax for line in lines), Decimal(0)))
        applied = quantize_money(self.applied_to_invoice(tenant_id, invoice_id))
        return InvoiceTotals(
            subtotal=subtotal,
            tax=tax,
            grand_total=subtotal + tax,
            applied=applied,
            balance=subtotal + tax - applied,
        )

    # ══════════════════════════════════════════════════════════
    # INVOICES
    # ══════════════════════════════════════════════════════════

    def _create_invoice(self, command: Command) -> ExecutionResult:
        request = command.request
        batch = self._batch(command)
        with self.store.atomic():
            invoice = self._open_invoice(batch, request.code, request.customer_id, request.currency)
        return batch.result(invoice.aggregate_id, invoice.status)

    def _open_invoice(self, batch, code, customer_id, currency, *, shipment_id=None):
        command = batch.command
        customer = self._load(command, SnapshotKind.CUSTOMER, customer_id, "Customer")
        self._require_new_code(command, AggregateType.INVOICE, code, "Invoice")
        currency = currency or self.rules.default_currency
        invoice = self._new_snapshot(
            command, AggregateType.INVOICE, code, INVOICE_DRAFT,
            customer_id=customer.aggregate_id,
            currency=currency,
            shipment_id=shipment_id,
        )
        batch.emit(
            AggregateType.INVOICE,
            invoice.aggregate_id,
            InvoiceCreated(
                invoice_id=invoice.aggregate_id,
                invoice_code=invoice.code,
                customer_id=customer.aggregate_id,
                currency=currency,
                shipment_id=shipment_id,
            ),
        )
        return invoice

    def _add_line(self, command: Command) -> ExecutionResult:
        request = command.request
        batch = self._batch(command)
        with self.store.atomic():
            invoice = self._lock_invoice(command, request.invoice_id)
            self._invoices.require_activity(invoice.status, "add_line")
            product = self._load(command, SnapshotKind.PRODUCT, request.product_id, "Product")
            line_id = uuid.uuid4()
            batch.emit(
                AggregateType.INVOICE,
                invoice.aggregate_id,
                InvoiceLineAdded(
                    invoice_id=invoice.aggregate_id,
                    line_id=line_id,
                    product_id=product.aggregate_id,
                    sku=request.sku or product.code,
                    quantity_units=request.quantity_units,
                    unit_price=request.unit_price,
                    tax_rate=request.tax_rate,
                ),
            )
            totals = self._totals(command.tenant_id, invoice.aggregate_id)
        return batch.result(
            invoice.aggregate_id, invoice.status,
            totals=dict(totals.to_dict(), line_id=str(line_id)),
        )

    def _remove_line(self, command: Command) -> ExecutionResult:
        request = command.request
        batch = self._batch(command)
        with self.store.atomic():
            invoice = self._lock_invoice(command, request.invoice_id)
            self._invoices.require_activity(invoice.status, "remove_line")
            line = next(
                (
                    line for line in self.invoice_lines(command.tenant_id, invoice.aggregate_id)
                    if line.line_id == request.line_id
                ),
                None,
            )
            if line is None:
                raise NotFoundError("Invoice line not found.", rule="invoice.line")
            batch.emit(
                AggregateType.INVOICE,
                invoice.aggregate_id,
                InvoiceLineRemoved(
                    invoice_id=invoice.aggregate_id,
                    line_id=line.line_id,
                    product_id=line.product_id,
                    sku=line.sku,
                    quantity_units=line.quantity_units,
                    unit_price=line.unit_price,
                    tax_rate=line.tax_rate,
                ),
            )
            totals = self._totals(command.tenant_id, invoice.aggregate_id)
        return batch.result(invoice.aggregate_id, invoice.status, totals=totals.to_dict())

    def _issue(self, command: Command) -> ExecutionResult:
        request = command.request
        terms_days = (
            request.terms_days if request.terms_days is not None
            else self.rules.default_terms_days
        )
        issue_date = request.issue_date or self._now().date()
        due_date = issue_date + timedelta(days=terms_days)
        return self._transition(
            command, self._invoices, request.invoice_id, "issue",
            lambda invoice: InvoiceIssued(
                invoice_id=invoice.aggregate_id,
                issue_date=issue_date,
                due_date=due_date,
                terms_days=terms_days,
            ),
            attributes={
                "issue_date": issue_date,
                "due_date": due_date,
                "terms_days": terms_days,
            },
        )

    def _void(self, command: Command) -> ExecutionResult:
        request = command.request
        batch = self._batch(command)
        with self.store.atomic():
            invoice = self._lock_invoice(command, request.invoice_id)
            updated = self._invoices.apply(invoice, "void", self._now())
            if updated is None:
                return batch.result(invoice.aggregate_id, invoice.status)
            if self.applied_to_invoice(command.tenant_id, invoice.aggregate_id) > 0:
                raise IllegalStateTransition(
                    VOID_WITH_PAYMENTS,
                    current_status=invoice.status,
                    action="void",
                    rule="invoice.void_applied",
                )
            self.store.snapshots.save(updated)
            batch.emit(
                AggregateType.INVOICE,
                invoice.aggregate_id,
                InvoiceVoided(invoice_id=invoice.aggregate_id, reason=request.reason),
            )
        return batch.result(invoice.aggregate_id, updated.status)

    def _invoice_from_shipment(self, command: Command) -> ExecutionResult:
        """Draft invoice with one line per picked SKU at its current price."""
        request = command.request
        batch = self._batch(command)
        with self.store.atomic():
            shipment = self._load(
                command, AggregateType.SHIPMENT, request.shipment_id, "Shipment",
            )
            units_by_sku: Dict[str, float] = OrderedDict()
            for line in self.reservations.outstanding(
                command.tenant_id, AggregateType.SHIPMENT, shipment.aggregate_id,
            ):
                if line.product_sku:
                    units_by_sku[line.product_sku] = (
                        units_by_sku.get(line.product_sku, 0.0) + line.quantity
                    )
            if not units_by_sku:
                raise ValidationError(NO_PICKED_UNITS, rule="invoice.shipment_picks")

            invoice = self._open_invoice(
                batch, request.code, request.customer_id, request.currency,
                shipment_id=shipment.aggregate_id,
            )
            now = self._now()
            for sku, quantity in units_by_sku.items():
                product = self.store.snapshots.find_by_code(
                    command.tenant_id, SnapshotKind.PRODUCT, sku,
                )
                if product is None:
                    logger.warning("Invoice %s: no product for SKU %s", invoice.code, sku)
                    continue
                price = current_price(product.attr("prices", []), now)
                if price is None or to_decimal(price["unitPrice"]) <= 0:
                    logger.warning("Invoice %s: no price for product %s", invoice.code, sku)
                    continue
                batch.emit(
                    AggregateType.INVOICE,
                    invoice.aggregate_id,
                    InvoiceLineAdded(
                        invoice_id=invoice.aggregate_id,
                        line_id=uuid.uuid4(),
                        product_id=product.aggregate_id,
                        sku=sku,
                        quantity_units=quantity,
                        unit_price=to_decimal(price["unitPrice"]),
                        tax_rate=Decimal(0),
                    ),
                )
            totals = self._totals(command.tenant_id, invoice.aggregate_id)
        return batch.result(invoice.aggregate_id, invoice.status, totals=totals.to_dict())

    def _lock_invoice(self, command: Command, invoice_id: uuid.UUID):
        return self._load(
            command, AggregateType.INVOICE, invoice_id, "Invoice", for_update=True,
        )

    # ══════════════════════════════════════════════════════════
    # PAYMENTS
    # ══════════════════════════════════════════════════════════

    def _receive_payment(self, command: Command) -> ExecutionResult:
        request = command.request
        batch = self._batch(command)
        with self.store.atomic():
            customer = self._load(
                command, SnapshotKind.CUSTOMER, request.customer_id, "Customer",
            )
            self._require_new_code(command, AggregateType.PAYMENT, request.code, "Payment")
            currency = request.currency or self.rules.default_currency
            received_at = request.received_at or self._now()
            payment = self._new_snapshot(
                command, AggregateType.PAYMENT, request.code, PAYMENT_OPEN,
                customer_id=customer.aggregate_id,
                amount=request.amount,
                currency=currency,
                method=request.method,
                reference=request.reference,
                received_at=received_at,
            )
            batch.emit(
                AggregateType.PAYMENT,
                payment.aggregate_id,
                PaymentReceived(
                    payment_id=payment.aggregate_id,
                    payment_code=payment.code,
                    customer_id=customer.aggregate_id,
                    amount=request.amount,
                    currency=currency,
                    method=request.method,
                    reference=request.reference,
                    received_at=received_at,
                ),
            )
        return batch.result(payment.aggregate_id, payment.status)

    def _apply_payment(self, command: Command) -> ExecutionResult:
        request = command.request
        batch = self._batch(command)
        with self.store.atomic():
            payment = self._lock_payment(command, request.payment_id)
            self._payments.require_activity(payment.status, "apply")
            invoice = self._lock_invoice(command, request.invoice_id)
            self._invoices.require_activity(invoice.status, "receive_application")

            amount = to_decimal(payment.attr("amount"))
            applied = self.applied_from_payment(command.tenant_id, payment.aggregate_id)
            unapplied = max(Decimal(0), amount - applied)
            if request.amount > unapplied:
                raise InsufficientAvailability(
                    OVER_APPLICATION.format(available=unapplied),
                    available=unapplied,
                    requested=request.amount,
                    rule="payment.unapplied",
                )

            application_id = uuid.uuid4()
            application = self._new_snapshot(
                command, SnapshotKind.PAYMENT_APPLICATION, str(application_id),
                APPLICATION_ACTIVE,
                aggregate_id=application_id,
                payment_id=payment.aggregate_id,
                invoice_id=invoice.aggregate_id,
                amount=request.amount,
            )
            batch.emit(
                AggregateType.PAYMENT,
                payment.aggregate_id,
                PaymentApplied(
                    payment_id=payment.aggregate_id,
                    invoice_id=invoice.aggregate_id,
                    application_id=application.aggregate_id,
                    amount=request.amount,
                ),
            )
            status = self._settle(payment, applied + request.amount)
        return batch.result(
            payment.aggregate_id, status,
            totals={
                "application_id": str(application.aggregate_id),
                "unapplied": quantize_money(unapplied - request.amount),
            },
        )

    def _unapply_payment(self, command: Command) -> ExecutionResult:
        request = command.request
        batch = self._batch(command)
        with self.store.atomic():
            application = self._load(
                command, SnapshotKind.PAYMENT_APPLICATION, request.application_id,
                "Payment application", for_update=True,
            )
            self._require_status(
                application, {APPLICATION_ACTIVE},
                "Payment application already unapplied.", action="unapply",
            )
            payment = self._lock_payment(command, uuid.UUID(application.attr("payment_id")))
            self._payments.require_activity(payment.status, "unapply")
            self._undo_application(batch, payment, application)
            status = self._settle(
                payment, self.applied_from_payment(command.tenant_id, payment.aggregate_id),
            )
        return batch.result(payment.aggregate_id, status)

    def _reverse_payment(self, command: Command) -> ExecutionResult:
        """Reverse a payment; its live applications are undone first."""
        request = command.request
        batch = self._batch(command)
        with self.store.atomic():
            payment = self._lock_payment(command, request.payment_id)
            updated = self._payments.apply(payment, "reverse", self._now())
            if updated is None:
                return batch.result(payment.aggregate_id, payment.status)
            for application in self._active_applications(command.tenant_id, payment.aggregate_id):
                self._undo_application(batch, payment, application)
            self.store.snapshots.save(updated)
            batch.emit(
                AggregateType.PAYMENT,
                payment.aggregate_id,
                PaymentReversed(payment_id=payment.aggregate_id, reason=request.reason),
            )
        return batch.result(payment.aggregate_id, updated.status)

    # ── payment helpers ───────────────────────────────────────

    def _lock_payment(self, command: Command, payment_id: uuid.UUID):
        return self._load(
            command, AggregateType.PAYMENT, payment_id, "Payment", for_update=True,
        )

    def _active_applications(self, tenant_id, payment_id):
        return [
            row for row in self.store.snapshots.list(
                tenant_id, SnapshotKind.PAYMENT_APPLICATION, statuses={APPLICATION_ACTIVE},
            )
            if row.attr("payment_id") == str(payment_id)
        ]

    def _undo_application(self, batch, payment, application) -> None:
        self.store.snapshots.save(
            application.with_changes(status=APPLICATION_UNAPPLIED, updated_at=self._now())
        )
        batch.emit(
            AggregateType.PAYMENT,
            payment.aggregate_id,
            PaymentUnappliedAdjusted(
                payment_id=payment.aggregate_id,
                invoice_id=uuid.UUID(application.attr("invoice_id")),
                application_id=application.aggregate_id,
                amount=to_decimal(application.attr("amount")),
            ),
        )

    def _settle(self, payment, applied: Decimal) -> str:
        """Move the payment between open and applied; returns the new status."""
        fully_applied = applied >= to_decimal(payment.attr("amount"))
        if fully_applied and payment.status == PAYMENT_OPEN:
            name = "settle"
        elif not fully_applied and payment.status == PAYMENT_STATUS_APPLIED:
            name = "reopen"
        else:
            return payment.status
        updated = self._payments.apply(payment, name, self._now())
        self.store.snapshots.save(updated)
        return updated.status
