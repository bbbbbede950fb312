"""
Tenant isolation across engines.

Another tenant's aggregates are invisible: commands fail with
NotFoundError, queries refuse to answer, and each tenant's codes are
its own.
"""

import pytest

from core.guards.errors import NotFoundError


class TestCrossTenantCommands:
    def test_stockpile_receipt_from_other_tenant(self, plant, other_tenant):
        from engines.stockpile.commands import RecordReceiptRequest

        pile_id = plant.stockpile("SP-1", tonnes=10)

        with pytest.raises(NotFoundError, match="Stockpile not found."):
            plant.run(RecordReceiptRequest(stockpile_id=pile_id, quantity_tonnes=5), other_tenant)
        assert plant.event_count(tenant=other_tenant.tenant_id) == 0

    def test_reserve_foreign_pallet(self, plant, other_tenant):
        from engines.sales.commands import (
            CreateCustomerRequest,
            CreateOrderRequest,
            ReserveOrderRequest,
        )

        pallet_id = plant.pallet("PAL-1", units=100)
        customer_id = plant.run(CreateCustomerRequest(code="C-B", name="Other"), other_tenant).aggregate_id
        order_id = plant.run(CreateOrderRequest(code="SO-B", customer_id=customer_id), other_tenant).aggregate_id

        with pytest.raises(NotFoundError):
            plant.run(
                ReserveOrderRequest(order_id=order_id, pallet_id=pallet_id, quantity_units=10),
                other_tenant,
            )

    def test_cancel_foreign_order(self, plant, other_tenant):
        from engines.sales.commands import CancelOrderRequest

        order_id = plant.sales_order("SO-1")

        with pytest.raises(NotFoundError, match="Sales order not found."):
            plant.run(CancelOrderRequest(order_id=order_id), other_tenant)


class TestCrossTenantQueries:
    def test_pallet_availability_hidden(self, plant, pipeline, other_tenant):
        pallet_id = plant.pallet("PAL-1", units=100)

        with pytest.raises(NotFoundError, match="Pallet not found."):
            pipeline.packing.available(other_tenant, pallet_id)

    def test_stockpile_availability_hidden(self, plant, pipeline, other_tenant):
        pile_id = plant.stockpile("SP-1", tonnes=10)

        with pytest.raises(NotFoundError):
            pipeline.stockpile.available(other_tenant, pile_id)


class TestCodesPerTenant:
    def test_same_code_in_two_tenants(self, plant, other_tenant):
        from engines.mixing.commands import CreateMixBatchRequest

        ours = plant.run(CreateMixBatchRequest(code="MB-1"))
        theirs = plant.run(CreateMixBatchRequest(code="MB-1"), other_tenant)

        assert ours.aggregate_id != theirs.aggregate_id
        assert theirs.status == "planned"
