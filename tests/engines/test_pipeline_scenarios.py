"""End-to-end plant flows: stockpile draw-down, mix shortfall, pallet reservations."""

import pytest

from core.events.envelope import AggregateType
from core.guards.errors import IllegalStateTransition, InsufficientAvailability


class TestStockpileToMixing:
    def test_adding_component_draws_down_stockpile(self, plant, pipeline):
        from engines.mixing.commands import AddComponentRequest, CreateMixBatchRequest

        pile_id = plant.stockpile("SP-1", tonnes=15)
        batch_id = plant.run(CreateMixBatchRequest(code="MB-1")).aggregate_id

        result = plant.run(AddComponentRequest(
            batch_id=batch_id, stockpile_id=pile_id,
            quantity_tonnes=10, material_type="clay",
        ))

        assert result.event_types == ("MIX_COMPONENT_ADDED", "STOCKPILE_TRANSFERRED_OUT")
        assert result.totals["stockpile_available_tonnes"] == pytest.approx(5.0)
        assert pipeline.stockpile.available(plant.context, pile_id).quantity == pytest.approx(5.0)

    def test_stockpile_draw_shares_correlation_and_causation(self, plant):
        from engines.mixing.commands import AddComponentRequest, CreateMixBatchRequest

        pile_id = plant.stockpile("SP-1", tonnes=15)
        batch_id = plant.run(CreateMixBatchRequest(code="MB-1")).aggregate_id
        added, drawn = plant.run(AddComponentRequest(
            batch_id=batch_id, stockpile_id=pile_id,
            quantity_tonnes=4, material_type="shale",
        )).events

        assert added.correlation_id == drawn.correlation_id
        assert drawn.causation_id == added.event_id


class TestCrushingShortfall:
    def test_input_beyond_mix_output_reports_remaining_tonnes(self, plant):
        from engines.crushing.commands import (
            AddCrushInputRequest,
            CreateCrushRunRequest,
            StartCrushRunRequest,
        )

        mix_id = plant.mix_batch("MB-1", output_tonnes=9.0, feed_tonnes=10.0)
        run_id = plant.run(CreateCrushRunRequest(code="CR-1")).aggregate_id
        plant.run(StartCrushRunRequest(run_id=run_id))
        before = plant.event_count()

        with pytest.raises(InsufficientAvailability, match="9.00 t remaining") as exc:
            plant.run(AddCrushInputRequest(run_id=run_id, mix_batch_id=mix_id, quantity_tonnes=12))

        assert exc.value.available == pytest.approx(9.0)
        assert plant.event_count() == before


class TestPalletReservations:
    def test_reserve_reject_release_reserve(self, plant, pipeline):
        from engines.sales.commands import ReleaseOrderRequest, ReserveOrderRequest

        pallet_id = plant.pallet("PAL-1", units=800)
        order_id = plant.sales_order("SO-1")

        first = plant.run(ReserveOrderRequest(order_id=order_id, pallet_id=pallet_id, quantity_units=500))
        assert first.event_types == ("SALES_ORDER_RESERVED", "PACK_PALLET_RESERVED")
        assert pipeline.packing.available(plant.context, pallet_id).quantity == pytest.approx(300)

        before = plant.event_count()
        with pytest.raises(InsufficientAvailability, match="Only 300 units available on pallet PAL-1"):
            plant.run(ReserveOrderRequest(order_id=order_id, pallet_id=pallet_id, quantity_units=400))
        assert plant.event_count() == before

        released = plant.run(ReleaseOrderRequest(order_id=order_id, pallet_id=pallet_id, quantity_units=200))
        assert released.event_types == (
            "SALES_ORDER_RESERVATION_RELEASED", "PACK_PALLET_RESERVATION_RELEASED",
        )

        again = plant.run(ReserveOrderRequest(order_id=order_id, pallet_id=pallet_id, quantity_units=400))
        assert again.totals["reserved_units"] == pytest.approx(700)
        assert pipeline.packing.available(plant.context, pallet_id).quantity == pytest.approx(100)

    def test_cancel_order_releases_each_outstanding_reservation(self, plant, pipeline):
        from engines.sales.commands import CancelOrderRequest, ReserveOrderRequest

        pal_1 = plant.pallet("PAL-1", units=800)
        pal_2 = plant.pallet("PAL-2", units=400)
        order_id = plant.sales_order("SO-1")
        r1 = plant.run(ReserveOrderRequest(order_id=order_id, pallet_id=pal_1, quantity_units=200))
        r2 = plant.run(ReserveOrderRequest(order_id=order_id, pallet_id=pal_2, quantity_units=100))

        result = plant.run(CancelOrderRequest(order_id=order_id, reason="customer withdrew"))

        assert result.status == "cancelled"
        assert result.event_types == (
            "SALES_ORDER_RESERVATION_RELEASED", "PACK_PALLET_RESERVATION_RELEASED",
            "SALES_ORDER_RESERVATION_RELEASED", "PACK_PALLET_RESERVATION_RELEASED",
            "SALES_ORDER_CANCELLED",
        )
        inventory_side = [e for e in result.events if e.aggregate_type == AggregateType.PALLET]
        assert {e.aggregate_id for e in inventory_side} == {pal_1, pal_2}
        assert {e.correlation_id for e in inventory_side} == {r1.correlation_id, r2.correlation_id}
        assert pipeline.packing.available(plant.context, pal_1).quantity == pytest.approx(800)
        assert pipeline.packing.available(plant.context, pal_2).quantity == pytest.approx(400)

    def test_cancel_again_is_a_no_op(self, plant):
        from engines.sales.commands import CancelOrderRequest, ReserveOrderRequest

        pallet_id = plant.pallet("PAL-1", units=100)
        order_id = plant.sales_order("SO-1")
        plant.run(ReserveOrderRequest(order_id=order_id, pallet_id=pallet_id, quantity_units=50))
        plant.run(CancelOrderRequest(order_id=order_id))

        repeat = plant.run(CancelOrderRequest(order_id=order_id))

        assert repeat.status == "cancelled"
        assert repeat.events == ()


class TestTerminalRuns:
    def test_completing_cancelled_batch_fails_without_events(self, plant):
        from engines.mixing.commands import (
            CancelMixBatchRequest,
            CompleteMixBatchRequest,
            CreateMixBatchRequest,
        )

        batch_id = plant.run(CreateMixBatchRequest(code="MB-9")).aggregate_id
        plant.run(CancelMixBatchRequest(batch_id=batch_id, reason="wrong recipe"))
        before = plant.event_count()

        with pytest.raises(IllegalStateTransition) as exc:
            plant.run(CompleteMixBatchRequest(batch_id=batch_id, output_tonnes=3))

        assert exc.value.current_status == "cancelled"
        assert plant.event_count() == before
