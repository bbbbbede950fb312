"""
Brickflow Sales Engine — Application Service
=============================================
Customers, products and price lists are master data (snapshot rows,
no events). Sales orders are event-sourced aggregates that consume
pallet inventory through the reservation protocol.

Order lines are folded from LINE_ADDED / LINE_REMOVED events; shipped
units are folded from PACK_PALLET_UNITS_DISPATCHED events that carry
the order id.
"""

from __future__ import annotations

import logging
import uuid
from dataclasses import dataclass
from decimal import Decimal
from typing import Dict, List

from core.availability.guards import QUANTITY_EPSILON
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
from engines.packing.events import PACK_PALLET_UNITS_DISPATCHED, register_packing_event_types
from engines.packing.policies import PALLET_BINDING, PALLET_INVENTORY
from engines.sales.commands import (
    SALES_CUSTOMER_CREATE_REQUEST,
    SALES_ORDER_ADD_LINE_REQUEST,
    SALES_ORDER_CANCEL_REQUEST,
    SALES_ORDER_CONFIRM_REQUEST,
    SALES_ORDER_CREATE_REQUEST,
    SALES_ORDER_FULFIL_REQUEST,
    SALES_ORDER_RELEASE_REQUEST,
    SALES_ORDER_REMOVE_LINE_REQUEST,
    SALES_ORDER_RESERVE_REQUEST,
    SALES_PRODUCT_CREATE_REQUEST,
    SALES_PRODUCT_PRICE_REQUEST,
    SALES_PRODUCT_STATUS_REQUEST,
)
from engines.sales.events import (
    SALES_ORDER_LINE_ADDED,
    SALES_ORDER_LINE_REMOVED,
    SalesOrderCancelled,
    SalesOrderConfirmed,
    SalesOrderCreated,
    SalesOrderFulfilled,
    SalesOrderLineAdded,
    SalesOrderLineRemoved,
    register_sales_event_types,
)
from engines.sales.policies import (
    MASTER_ACTIVE,
    NO_ACTIVE_PRICE,
    NOT_FULLY_SHIPPED,
    ORDER_DRAFT,
    PRODUCT_INACTIVE,
    SALES_ORDER_BINDING,
    SALES_ORDER_LIFECYCLE,
    current_price,
)

logger = logging.getLogger("brickflow.sales")


@dataclass(frozen=True)
class OrderLine:
    line_id: uuid.UUID
    product_id: uuid.UUID
    sku: str
    quantity_units: float
    unit_price: Decimal
    currency: str

    @property
    def value(self) -> Decimal:
        return to_decimal(self.quantity_units) * self.unit_price


@dataclass(frozen=True)
class FulfilmentSummary:
    order_id: uuid.UUID
    status: str
    total_units: float
    total_value: Decimal
    reserved_units: float
    shipped_units: float
    fulfilment_pct: float

    def to_dict(self) -> dict:
        return {
            "order_id": str(self.order_id),
            "status": self.status,
            "total_units": self.total_units,
            "total_value": self.total_value,
            "reserved_units": self.reserved_units,
            "shipped_units": self.shipped_units,
            "fulfilment_pct": self.fulfilment_pct,
        }


class SalesService(PipelineService):
    engine = "sales"

    def __init__(self, *, reservations: ReservationProtocol, **deps):
        self._machine = LifecycleMachine(SALES_ORDER_LIFECYCLE)
        self.reservations = reservations
        reservations.bind_inventory(PALLET_BINDING)
        reservations.bind_consumer(SALES_ORDER_BINDING)
        super().__init__(**deps)

    def _register_event_types(self, registry) -> None:
        register_sales_event_types(registry)
        register_packing_event_types(registry)

    def _register_edges(self, availability) -> None:
        availability.register(PALLET_INVENTORY)

    def _command_handlers(self):
        return {
            SALES_CUSTOMER_CREATE_REQUEST: self._create_customer,
            SALES_PRODUCT_CREATE_REQUEST: self._create_product,
            SALES_PRODUCT_STATUS_REQUEST: self._set_product_status,
            SALES_PRODUCT_PRICE_REQUEST: self._set_price,
            SALES_ORDER_CREATE_REQUEST: self._create_order,
            SALES_ORDER_ADD_LINE_REQUEST: self._add_line,
            SALES_ORDER_REMOVE_LINE_REQUEST: self._remove_line,
            SALES_ORDER_CONFIRM_REQUEST: self._confirm,
            SALES_ORDER_RESERVE_REQUEST: self._reserve,
            SALES_ORDER_RELEASE_REQUEST: self._release,
            SALES_ORDER_CANCEL_REQUEST: self._cancel,
            SALES_ORDER_FULFIL_REQUEST: self._fulfil,
        }

    # ══════════════════════════════════════════════════════════
    # QUERIES
    # ══════════════════════════════════════════════════════════

    def order_lines(self, tenant_id: uuid.UUID, order_id: uuid.UUID) -> List[OrderLine]:
        rows = self.store.events.list_events(
            tenant_id,
            aggregate_type=AggregateType.SALES_ORDER,
            aggregate_id=order_id,
            event_types=[SALES_ORDER_LINE_ADDED, SALES_ORDER_LINE_REMOVED],
        )
        lines: Dict[str, OrderLine] = {}
        for row in rows:
            line_id = row.payload["lineId"]
            if row.event_type == SALES_ORDER_LINE_REMOVED:
                lines.pop(line_id, None)
                continue
            lines[line_id] = OrderLine(
                line_id=uuid.UUID(line_id),
                product_id=uuid.UUID(row.payload["productId"]),
                sku=row.payload["sku"],
                quantity_units=row.quantity("quantityUnits"),
                unit_price=row.amount("unitPrice"),
                currency=row.payload["currency"],
            )
        return list(lines.values())

    def shipped_units(self, tenant_id: uuid.UUID, order_id: uuid.UUID) -> float:
        rows = self.store.events.list_events(
            tenant_id,
            aggregate_type=AggregateType.PALLET,
            event_types=[PACK_PALLET_UNITS_DISPATCHED],
            link_key="orderId",
            link_value=str(order_id),
        )
        return sum(row.quantity("quantityUnits") for row in rows)

    def fulfilment(self, context: ActorContext, order_id: uuid.UUID) -> FulfilmentSummary:
        tenant_id = context.require_attribution()
        order = self.store.snapshots.get(tenant_id, AggregateType.SALES_ORDER, order_id)
        if order is None:
            raise NotFoundError("Sales order not found.", rule="tenant_scope")

        lines = self.order_lines(tenant_id, order_id)
        total_units = sum(line.quantity_units for line in lines)
        shipped = self.shipped_units(tenant_id, order_id)
        return FulfilmentSummary(
            order_id=order_id,
            status=order.status,
            total_units=total_units,
            total_value=quantize_money(sum((line.value for line in lines), Decimal(0))),
            reserved_units=self.reservations.outstanding_units(
                tenant_id, AggregateType.SALES_ORDER, order_id,
            ),
            shipped_units=shipped,
            fulfilment_pct=round(shipped / total_units * 100, 2) if total_units else 0.0,
        )

    def price_for(self, context: ActorContext, product_id: uuid.UUID):
        """Current price row of a product, or None."""
        tenant_id = context.require_attribution()
        product = self.store.snapshots.get(tenant_id, SnapshotKind.PRODUCT, product_id)
        if product is None:
            raise NotFoundError("Product not found.", rule="tenant_scope")
        price = current_price(product.attr("prices", []), self._now())
        if price is None:
            return None
        return dict(price, unitPrice=to_decimal(price["unitPrice"]))

    # ══════════════════════════════════════════════════════════
    # MASTER DATA
    # ══════════════════════════════════════════════════════════

    def _create_customer(self, command: Command) -> ExecutionResult:
        request = command.request
        batch = self._batch(command)
        with self.store.atomic():
            self._require_new_code(command, SnapshotKind.CUSTOMER, request.code, "Customer")
            customer = self._new_snapshot(
                command, SnapshotKind.CUSTOMER, request.code, MASTER_ACTIVE,
                name=request.name,
                email=request.email,
                phone=request.phone,
                billing_address=request.billing_address,
                credit_limit=request.credit_limit,
            )
        return batch.result(customer.aggregate_id, customer.status)

    def _create_product(self, command: Command) -> ExecutionResult:
        request = command.request
        batch = self._batch(command)
        with self.store.atomic():
            self._require_new_code(command, SnapshotKind.PRODUCT, request.sku, "Product")
            product = self._new_snapshot(
                command, SnapshotKind.PRODUCT, request.sku, MASTER_ACTIVE,
                name=request.name,
                uom=request.uom,
                prices=[],
            )
        return batch.result(product.aggregate_id, product.status)

    def _set_product_status(self, command: Command) -> ExecutionResult:
        request = command.request
        batch = self._batch(command)
        with self.store.atomic():
            product = self._load(
                command, SnapshotKind.PRODUCT, request.product_id, "Product",
                for_update=True,
            )
            product = self.store.snapshots.save(
                product.with_changes(status=request.status, updated_at=self._now())
            )
        return batch.result(product.aggregate_id, product.status)

    def _set_price(self, command: Command) -> ExecutionResult:
        request = command.request
        batch = self._batch(command)
        with self.store.atomic():
            product = self._load(
                command, SnapshotKind.PRODUCT, request.product_id, "Product",
                for_update=True,
            )
            price = {
                "unitPrice": request.unit_price,
                "currency": request.currency or self.rules.default_currency,
                "effectiveFrom": request.effective_from or self._now(),
            }
            prices = list(product.attr("prices", [])) + [price]
            self._update(product, prices=prices)
        return batch.result(
            product.aggregate_id, product.status,
            totals={"unit_price": price["unitPrice"], "currency": price["currency"]},
        )

    # ══════════════════════════════════════════════════════════
    # ORDERS
    # ══════════════════════════════════════════════════════════

    def _create_order(self, command: Command) -> ExecutionResult:
        request = command.request
        batch = self._batch(command)
        with self.store.atomic():
            customer = self._load(
                command, SnapshotKind.CUSTOMER, request.customer_id, "Customer",
            )
            self._require_new_code(
                command, AggregateType.SALES_ORDER, request.code, "Order",
            )
            order = self._new_snapshot(
                command, AggregateType.SALES_ORDER, request.code, ORDER_DRAFT,
                customer_id=customer.aggregate_id,
                customer_code=customer.code,
            )
            batch.emit(
                AggregateType.SALES_ORDER,
                order.aggregate_id,
                SalesOrderCreated(
                    order_id=order.aggregate_id,
                    order_code=order.code,
                    customer_id=customer.aggregate_id,
                    customer_code=customer.code,
                ),
            )
        return batch.result(order.aggregate_id, order.status)

    def _add_line(self, command: Command) -> ExecutionResult:
        request = command.request
        batch = self._batch(command)
        with self.store.atomic():
            order = self._load(
                command, AggregateType.SALES_ORDER, request.order_id, "Sales order",
                for_update=True,
            )
            self._machine.require_activity(order.status, "add_line")
            product = self._load(
                command, SnapshotKind.PRODUCT, request.product_id, "Product",
            )
            if product.status != MASTER_ACTIVE:
                raise ValidationError(PRODUCT_INACTIVE, rule="product.active")
            price = current_price(product.attr("prices", []), self._now())
            if price is None:
                raise ValidationError(NO_ACTIVE_PRICE, rule="product.price")

            line_id = uuid.uuid4()
            batch.emit(
                AggregateType.SALES_ORDER,
                order.aggregate_id,
                SalesOrderLineAdded(
                    order_id=order.aggregate_id,
                    line_id=line_id,
                    product_id=product.aggregate_id,
                    sku=product.code,
                    quantity_units=request.quantity_units,
                    unit_price=to_decimal(price["unitPrice"]),
                    currency=price["currency"],
                ),
            )
        return batch.result(
            order.aggregate_id, order.status, totals={"line_id": str(line_id)},
        )

    def _remove_line(self, command: Command) -> ExecutionResult:
        request = command.request
        batch = self._batch(command)
        with self.store.atomic():
            order = self._load(
                command, AggregateType.SALES_ORDER, request.order_id, "Sales order",
                for_update=True,
            )
            self._machine.require_activity(order.status, "remove_line")
            line = next(
                (
                    line for line in self.order_lines(command.tenant_id, order.aggregate_id)
                    if line.line_id == request.line_id
                ),
                None,
            )
            if line is None:
                raise NotFoundError("Order line not found.", rule="sales_order.line")
            batch.emit(
                AggregateType.SALES_ORDER,
                order.aggregate_id,
                SalesOrderLineRemoved(
                    order_id=order.aggregate_id,
                    line_id=line.line_id,
                    product_id=line.product_id,
                    sku=line.sku,
                    quantity_units=line.quantity_units,
                    unit_price=line.unit_price,
                    currency=line.currency,
                ),
            )
        return batch.result(order.aggregate_id, order.status)

    def _confirm(self, command: Command) -> ExecutionResult:
        return self._transition(
            command, self._machine, command.request.order_id, "confirm",
            lambda order: SalesOrderConfirmed(
                order_id=order.aggregate_id, confirmed_at=order.updated_at,
            ),
        )

    def _reserve(self, command: Command) -> ExecutionResult:
        request = command.request
        batch = self._batch(command)
        with self.store.atomic():
            order = self._load(
                command, AggregateType.SALES_ORDER, request.order_id, "Sales order",
                for_update=True,
            )
            line = self.reservations.reserve(
                batch,
                consumer=order,
                pallet_id=request.pallet_id,
                quantity=request.quantity_units,
                correlation_id=batch.correlation_id,
                order_id=order.aggregate_id,
            )
        return batch.result(
            order.aggregate_id, order.status,
            totals={
                "reservation_id": str(line.correlation_id),
                "reserved_units": self.reservations.outstanding_units(
                    command.tenant_id, AggregateType.SALES_ORDER, order.aggregate_id,
                ),
            },
        )

    def _release(self, command: Command) -> ExecutionResult:
        request = command.request
        batch = self._batch(command)
        with self.store.atomic():
            order = self._load(
                command, AggregateType.SALES_ORDER, request.order_id, "Sales order",
                for_update=True,
            )
            self.reservations.release(
                batch,
                consumer=order,
                pallet_id=request.pallet_id,
                quantity=request.quantity_units,
                correlation_id=request.correlation_id,
            )
        return batch.result(order.aggregate_id, order.status)

    def _cancel(self, command: Command) -> ExecutionResult:
        """Release every outstanding reservation, then cancel."""
        request = command.request
        batch = self._batch(command)
        with self.store.atomic():
            order = self._load(
                command, AggregateType.SALES_ORDER, request.order_id, "Sales order",
                for_update=True,
            )
            updated = self._machine.apply(order, "cancel", self._now())
            if updated is None:
                return batch.result(order.aggregate_id, order.status)
            released = self.reservations.release_all(batch, consumer=order)
            self.store.snapshots.save(updated)
            batch.emit(
                AggregateType.SALES_ORDER,
                order.aggregate_id,
                SalesOrderCancelled(
                    order_id=order.aggregate_id,
                    reason=request.reason,
                    cancelled_at=updated.updated_at,
                ),
            )
        logger.info(
            "Cancelled sales order %s; released %d reservation(s)",
            order.code, len(released),
        )
        return batch.result(order.aggregate_id, updated.status)

    def _fulfil(self, command: Command) -> ExecutionResult:
        """Close a fully shipped order and free whatever is still reserved."""
        request = command.request
        batch = self._batch(command)
        with self.store.atomic():
            order = self._load(
                command, AggregateType.SALES_ORDER, request.order_id, "Sales order",
                for_update=True,
            )
            updated = self._machine.apply(order, "fulfil", self._now())
            ordered = sum(
                line.quantity_units
                for line in self.order_lines(command.tenant_id, order.aggregate_id)
            )
            shipped = self.shipped_units(command.tenant_id, order.aggregate_id)
            if ordered <= QUANTITY_EPSILON:
                raise IllegalStateTransition(
                    "Order has no lines to fulfil.",
                    current_status=order.status,
                    action="fulfil",
                    rule="sales_order.fulfil",
                )
            if shipped + QUANTITY_EPSILON < ordered:
                raise InsufficientAvailability(
                    NOT_FULLY_SHIPPED.format(shipped=shipped, ordered=ordered),
                    available=shipped,
                    requested=ordered,
                    rule="sales_order.shipped",
                )
            self.reservations.release_all(batch, consumer=order)
            self.store.snapshots.save(updated)
            batch.emit(
                AggregateType.SALES_ORDER,
                order.aggregate_id,
                SalesOrderFulfilled(
                    order_id=order.aggregate_id,
                    shipped_units=shipped,
                    fulfilled_at=updated.completed_at,
                ),
            )
        return batch.result(
            order.aggregate_id, updated.status, totals={"shipped_units": shipped},
        )
