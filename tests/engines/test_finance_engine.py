"""Finance engine: invoices, payments and payment applications."""

from datetime import date
from decimal import Decimal

import pytest

from core.guards.errors import (
    IllegalStateTransition,
    InsufficientAvailability,
    NotFoundError,
    ValidationError,
)


@pytest.fixture
def customer_id(plant):
    from engines.sales.commands import CreateCustomerRequest

    return plant.run(CreateCustomerRequest(code="C-1", name="Build Co")).aggregate_id


@pytest.fixture
def product_id(plant):
    from engines.sales.commands import CreateProductRequest, SetPriceRequest

    product_id = plant.run(CreateProductRequest(sku="FB-RED", name="Face brick red")).aggregate_id
    plant.run(SetPriceRequest(product_id=product_id, unit_price=2.5))
    return product_id


@pytest.fixture
def invoice_id(plant, customer_id, product_id):
    """Draft invoice worth 4375.00 including tax."""
    from engines.finance.commands import AddInvoiceLineRequest, CreateInvoiceRequest

    invoice_id = plant.run(CreateInvoiceRequest(code="INV-1", customer_id=customer_id)).aggregate_id
    plant.run(AddInvoiceLineRequest(
        invoice_id=invoice_id, product_id=product_id,
        quantity_units=1000, unit_price=2.5, tax_rate=0.15,
    ))
    plant.run(AddInvoiceLineRequest(
        invoice_id=invoice_id, product_id=product_id,
        quantity_units=500, unit_price=3.0,
    ))
    return invoice_id


def issue(plant, invoice_id):
    from engines.finance.commands import IssueInvoiceRequest

    return plant.run(IssueInvoiceRequest(invoice_id=invoice_id))


def receive(plant, customer_id, amount, code="PAY-1"):
    from engines.finance.commands import ReceivePaymentRequest

    return plant.run(ReceivePaymentRequest(
        code=code, customer_id=customer_id, amount=amount, method="eft",
    )).aggregate_id


def apply(plant, payment_id, invoice_id, amount):
    from engines.finance.commands import ApplyPaymentRequest

    return plant.run(ApplyPaymentRequest(
        payment_id=payment_id, invoice_id=invoice_id, amount=amount,
    ))


class TestFinanceRequests:
    def test_tax_rate_bounds(self):
        import uuid

        from engines.finance.commands import AddInvoiceLineRequest

        with pytest.raises(ValidationError, match="Tax rate must be between 0 and 1."):
            AddInvoiceLineRequest(
                invoice_id=uuid.uuid4(), product_id=uuid.uuid4(),
                quantity_units=10, unit_price=2, tax_rate=15,
            )

    def test_terms_days_must_be_whole(self):
        import uuid

        from engines.finance.commands import IssueInvoiceRequest

        with pytest.raises(ValidationError, match="Terms days is invalid."):
            IssueInvoiceRequest(invoice_id=uuid.uuid4(), terms_days=7.5)

    def test_payment_amount_positive(self):
        import uuid

        from engines.finance.commands import ReceivePaymentRequest

        with pytest.raises(ValidationError):
            ReceivePaymentRequest(code="PAY-1", customer_id=uuid.uuid4(), amount=0)


    def test_amounts_round_half_up_to_cents(self):
        import uuid

        from engines.finance.commands import ReceivePaymentRequest

        request = ReceivePaymentRequest(code="PAY-1", customer_id=uuid.uuid4(), amount=0.1 + 0.2)

        assert request.amount == Decimal("0.30")
        assert ReceivePaymentRequest(
            code="PAY-2", customer_id=uuid.uuid4(), amount="12.345",
        ).amount == Decimal("12.35")
        with pytest.raises(ValidationError, match="Payment amount is invalid."):
            ReceivePaymentRequest(code="PAY-3", customer_id=uuid.uuid4(), amount="twelve")


class TestInvoices:
    def test_totals_fold_lines_and_tax(self, plant, pipeline, invoice_id):
        totals = pipeline.finance.invoice_totals(plant.context, invoice_id)

        assert totals.to_dict() == {
            "subtotal": Decimal("4000.00"),
            "tax": Decimal("375.00"),
            "grand_total": Decimal("4375.00"),
            "applied": Decimal("0.00"),
            "balance": Decimal("4375.00"),
        }

    def test_line_money_is_exact_on_the_wire(self, plant, customer_id, product_id):
        from engines.finance.commands import AddInvoiceLineRequest, CreateInvoiceRequest

        invoice_id = plant.run(CreateInvoiceRequest(code="INV-2", customer_id=customer_id)).aggregate_id

        result = plant.run(AddInvoiceLineRequest(
            invoice_id=invoice_id, product_id=product_id,
            quantity_units=3, unit_price=0.3333, tax_rate=0.15,
        ))

        (event,) = result.events
        assert event.payload["unitPrice"] == "0.3333"
        assert event.payload["taxRate"] == "0.1500"
        assert result.totals["subtotal"] == Decimal("1.00")
        assert result.totals["tax"] == Decimal("0.15")
        assert result.totals["grand_total"] == Decimal("1.15")

    def test_remove_line_updates_totals(self, plant, pipeline, invoice_id):
        import uuid

        from engines.finance.commands import RemoveInvoiceLineRequest

        first = pipeline.finance.invoice_lines(plant.context.tenant_id, invoice_id)[0]

        result = plant.run(RemoveInvoiceLineRequest(invoice_id=invoice_id, line_id=first.line_id))

        assert result.totals["grand_total"] == Decimal("1500.00")
        with pytest.raises(NotFoundError, match="Invoice line not found."):
            plant.run(RemoveInvoiceLineRequest(invoice_id=invoice_id, line_id=uuid.uuid4()))

    def test_issue_sets_due_date_from_terms(self, plant, invoice_id):
        from engines.finance.commands import IssueInvoiceRequest

        result = plant.run(IssueInvoiceRequest(
            invoice_id=invoice_id, terms_days=14, issue_date=date(2026, 3, 2),
        ))

        assert result.status == "issued"
        (event,) = result.events
        assert event.payload["dueDate"] == "2026-03-16"
        assert event.payload["termsDays"] == 14

    def test_issue_defaults_to_plant_terms(self, plant, invoice_id):
        result = issue(plant, invoice_id)

        assert result.events[0].payload["dueDate"] == "2026-04-01"

    def test_issued_invoice_lines(self, plant, invoice_id, product_id):
        import uuid

        from engines.finance.commands import AddInvoiceLineRequest, RemoveInvoiceLineRequest

        issue(plant, invoice_id)
        added = plant.run(AddInvoiceLineRequest(
            invoice_id=invoice_id, product_id=product_id, quantity_units=10, unit_price=2.5,
        ))

        assert added.totals["subtotal"] == Decimal("4025.00")
        with pytest.raises(IllegalStateTransition, match="Can only remove lines from draft invoices."):
            plant.run(RemoveInvoiceLineRequest(invoice_id=invoice_id, line_id=uuid.uuid4()))

    def test_issue_twice_rejected(self, plant, invoice_id):
        issue(plant, invoice_id)

        with pytest.raises(IllegalStateTransition, match="Only draft invoices can be issued."):
            issue(plant, invoice_id)

    def test_void_is_idempotent_and_locks_lines(self, plant, invoice_id, product_id):
        from engines.finance.commands import AddInvoiceLineRequest, VoidInvoiceRequest

        voided = plant.run(VoidInvoiceRequest(invoice_id=invoice_id, reason="duplicate"))
        again = plant.run(VoidInvoiceRequest(invoice_id=invoice_id))

        assert voided.event_types == ("INVOICE_VOIDED",)
        assert again.events == ()
        with pytest.raises(IllegalStateTransition, match="Cannot modify lines on cancelled or void invoices."):
            plant.run(AddInvoiceLineRequest(
                invoice_id=invoice_id, product_id=product_id, quantity_units=1, unit_price=1,
            ))

    def test_invoice_from_shipment_groups_by_sku(self, plant, pipeline, customer_id, product_id):
        from engines.dispatch.commands import AddPickRequest, CreateShipmentRequest
        from engines.finance.commands import InvoiceFromShipmentRequest

        pal_1 = plant.pallet("PAL-1", units=300)
        pal_2 = plant.pallet("PAL-2", units=300)
        shipment_id = plant.run(CreateShipmentRequest(code="SH-1")).aggregate_id
        plant.run(AddPickRequest(shipment_id=shipment_id, pallet_id=pal_1, quantity_units=200))
        plant.run(AddPickRequest(shipment_id=shipment_id, pallet_id=pal_2, quantity_units=100))

        result = plant.run(InvoiceFromShipmentRequest(
            shipment_id=shipment_id, code="INV-7", customer_id=customer_id,
        ))

        assert result.event_types == ("INVOICE_CREATED", "INVOICE_LINE_ADDED")
        (line,) = pipeline.finance.invoice_lines(plant.context.tenant_id, result.aggregate_id)
        assert line.sku == "FB-RED"
        assert line.quantity_units == pytest.approx(300)
        assert result.totals["grand_total"] == Decimal("750.00")

    def test_invoice_from_empty_shipment(self, plant, customer_id):
        from engines.dispatch.commands import CreateShipmentRequest
        from engines.finance.commands import InvoiceFromShipmentRequest

        shipment_id = plant.run(CreateShipmentRequest(code="SH-1")).aggregate_id

        with pytest.raises(ValidationError, match="No picked units found for this shipment."):
            plant.run(InvoiceFromShipmentRequest(
                shipment_id=shipment_id, code="INV-7", customer_id=customer_id,
            ))


class TestPayments:
    def test_payments_apply_only_to_issued_invoices(self, plant, customer_id, invoice_id):
        payment_id = receive(plant, customer_id, 1000)

        with pytest.raises(IllegalStateTransition, match="Payments can only be applied to issued invoices."):
            apply(plant, payment_id, invoice_id, 500)

    def test_partial_then_full_application(self, plant, pipeline, customer_id, invoice_id):
        issue(plant, invoice_id)
        payment_id = receive(plant, customer_id, 3000)

        partial = apply(plant, payment_id, invoice_id, 2000)
        assert partial.status == "open"
        assert partial.totals["unapplied"] == Decimal("1000.00")

        with pytest.raises(InsufficientAvailability, match="Only 1000.00 unapplied on this payment."):
            apply(plant, payment_id, invoice_id, 1500)

        full = apply(plant, payment_id, invoice_id, 1000)
        assert full.status == "applied"
        assert pipeline.finance.payment_balance(plant.context, payment_id) == {
            "status": "applied",
            "amount": Decimal("3000.00"),
            "applied": Decimal("3000.00"),
            "unapplied": Decimal("0.00"),
        }
        totals = pipeline.finance.invoice_totals(plant.context, invoice_id)
        assert totals.applied == Decimal("3000.00")
        assert totals.balance == Decimal("1375.00")

    def test_cent_applications_settle_exactly(self, plant, pipeline, customer_id, invoice_id):
        issue(plant, invoice_id)
        payment_id = receive(plant, customer_id, 0.3)

        apply(plant, payment_id, invoice_id, 0.1)
        settled = apply(plant, payment_id, invoice_id, 0.2)

        assert settled.status == "applied"
        assert settled.totals["unapplied"] == Decimal("0.00")
        assert pipeline.finance.applied_from_payment(
            plant.context.tenant_id, payment_id,
        ) == Decimal("0.30")
        with pytest.raises(InsufficientAvailability, match="Only 0.00 unapplied on this payment."):
            apply(plant, payment_id, invoice_id, 0.01)

    def test_void_blocked_while_payments_applied(self, plant, customer_id, invoice_id):
        from engines.finance.commands import VoidInvoiceRequest

        issue(plant, invoice_id)
        apply(plant, receive(plant, customer_id, 500), invoice_id, 500)
        before = plant.event_count()

        with pytest.raises(IllegalStateTransition, match="Cannot void an invoice with applied payments."):
            plant.run(VoidInvoiceRequest(invoice_id=invoice_id))
        assert plant.event_count() == before

    def test_unapply_reopens_payment(self, plant, pipeline, customer_id, invoice_id):
        import uuid

        from engines.finance.commands import UnapplyPaymentRequest

        issue(plant, invoice_id)
        payment_id = receive(plant, customer_id, 800)
        applied = apply(plant, payment_id, invoice_id, 800)
        application_id = uuid.UUID(applied.totals["application_id"])

        result = plant.run(UnapplyPaymentRequest(application_id=application_id))

        assert result.status == "open"
        assert result.event_types == ("PAYMENT_UNAPPLIED_ADJUSTED",)
        assert pipeline.finance.invoice_totals(plant.context, invoice_id).balance == Decimal("4375.00")
        with pytest.raises(IllegalStateTransition, match="Payment application already unapplied."):
            plant.run(UnapplyPaymentRequest(application_id=application_id))

    def test_reverse_undoes_live_applications(self, plant, pipeline, customer_id, invoice_id):
        from engines.finance.commands import ReversePaymentRequest, VoidInvoiceRequest

        issue(plant, invoice_id)
        payment_id = receive(plant, customer_id, 1000)
        apply(plant, payment_id, invoice_id, 600)
        apply(plant, payment_id, invoice_id, 400)

        result = plant.run(ReversePaymentRequest(payment_id=payment_id, reason="bounced"))

        assert result.status == "reversed"
        assert result.event_types == (
            "PAYMENT_UNAPPLIED_ADJUSTED", "PAYMENT_UNAPPLIED_ADJUSTED", "PAYMENT_REVERSED",
        )
        assert pipeline.finance.invoice_totals(plant.context, invoice_id).applied == Decimal("0.00")
        assert plant.run(ReversePaymentRequest(payment_id=payment_id)).events == ()
        assert plant.run(VoidInvoiceRequest(invoice_id=invoice_id)).status == "void"

    def test_reversed_payment_cannot_be_applied(self, plant, customer_id, invoice_id):
        from engines.finance.commands import ReversePaymentRequest

        issue(plant, invoice_id)
        payment_id = receive(plant, customer_id, 1000)
        plant.run(ReversePaymentRequest(payment_id=payment_id))

        with pytest.raises(IllegalStateTransition, match="Cannot apply a reversed payment."):
            apply(plant, payment_id, invoice_id, 10)

    def test_duplicate_payment_code(self, plant, customer_id):
        receive(plant, customer_id, 100, code="PAY-1")

        with pytest.raises(ValidationError, match="Payment code 'PAY-1' already exists."):
            receive(plant, customer_id, 100, code="PAY-1")
