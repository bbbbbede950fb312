"""
Paired events are written together or not at all. When either half of
a reservation pair or a stockpile draw cannot be appended, the whole
operation rolls back and nothing is left stranded.
"""

import pytest

from core.event_store.persistence.errors import EventLogFailure, EventLogWarningCode
from core.events.envelope import AggregateType


def fail_on(monkeypatch, pipeline, event_type):
    """Make the event log reject one event type."""
    events = pipeline.store.events
    real_append = events.append

    def append(record):
        if record.event_type == event_type:
            raise RuntimeError("disk full")
        return real_append(record)

    monkeypatch.setattr(events, "append", append)


class TestReservationPairs:
    @pytest.mark.parametrize("lost", ["SALES_ORDER_RESERVED", "PACK_PALLET_RESERVED"])
    def test_lost_half_rolls_back_reservation(self, plant, pipeline, monkeypatch, lost):
        from engines.sales.commands import ReserveOrderRequest

        pallet_id = plant.pallet("PAL-1", units=800)
        order_id = plant.sales_order("SO-1")
        before = plant.event_count()
        fail_on(monkeypatch, pipeline, lost)

        with pytest.raises(EventLogFailure, match="disk full") as exc:
            plant.run(ReserveOrderRequest(order_id=order_id, pallet_id=pallet_id, quantity_units=500))

        assert exc.value.warning.code == EventLogWarningCode.PERSISTENCE_FAILED
        assert exc.value.warning.event_type == lost
        assert plant.event_count() == before
        assert pipeline.packing.available(plant.context, pallet_id).quantity == pytest.approx(800)
        assert pipeline.reservations.outstanding(
            plant.context.tenant_id, AggregateType.SALES_ORDER, order_id,
        ) == []

    def test_failed_cancel_keeps_reservation_intact(self, plant, pipeline, monkeypatch):
        from engines.sales.commands import CancelOrderRequest, ReserveOrderRequest

        pallet_id = plant.pallet("PAL-1", units=800)
        order_id = plant.sales_order("SO-1")
        plant.run(ReserveOrderRequest(order_id=order_id, pallet_id=pallet_id, quantity_units=500))
        fail_on(monkeypatch, pipeline, "PACK_PALLET_RESERVATION_RELEASED")

        with pytest.raises(EventLogFailure):
            plant.run(CancelOrderRequest(order_id=order_id, reason="customer withdrew"))

        monkeypatch.undo()
        assert pipeline.packing.available(plant.context, pallet_id).quantity == pytest.approx(300)

        result = plant.run(CancelOrderRequest(order_id=order_id, reason="customer withdrew"))

        assert result.event_types[:2] == (
            "SALES_ORDER_RESERVATION_RELEASED", "PACK_PALLET_RESERVATION_RELEASED",
        )
        assert pipeline.packing.available(plant.context, pallet_id).quantity == pytest.approx(800)

    def test_lost_pick_half_rolls_back(self, plant, pipeline, monkeypatch):
        from engines.dispatch.commands import AddPickRequest, CreateShipmentRequest

        pallet_id = plant.pallet("PAL-1", units=800)
        shipment_id = plant.run(CreateShipmentRequest(code="SH-1")).aggregate_id
        fail_on(monkeypatch, pipeline, "SHIPMENT_PICK_ADDED")

        with pytest.raises(EventLogFailure):
            plant.run(AddPickRequest(shipment_id=shipment_id, pallet_id=pallet_id, quantity_units=200))

        assert pipeline.packing.available(plant.context, pallet_id).quantity == pytest.approx(800)


class TestStockpileDraws:
    def test_lost_draw_rolls_back_component(self, plant, pipeline, monkeypatch):
        from engines.mixing.commands import AddComponentRequest, CreateMixBatchRequest

        pile_id = plant.stockpile("SP-1", tonnes=15)
        batch_id = plant.run(CreateMixBatchRequest(code="MB-1")).aggregate_id
        before = plant.event_count()
        fail_on(monkeypatch, pipeline, "STOCKPILE_TRANSFERRED_OUT")

        with pytest.raises(EventLogFailure):
            plant.run(AddComponentRequest(
                batch_id=batch_id, stockpile_id=pile_id, quantity_tonnes=10, material_type="clay",
            ))

        assert plant.event_count() == before
        assert pipeline.mixing.components_from(plant.context.tenant_id, batch_id, pile_id) == 0
        assert pipeline.stockpile.available(plant.context, pile_id).quantity == pytest.approx(15)

    def test_lost_return_keeps_component(self, plant, pipeline, monkeypatch):
        from engines.mixing.commands import (
            AddComponentRequest,
            CreateMixBatchRequest,
            RemoveComponentRequest,
        )

        pile_id = plant.stockpile("SP-1", tonnes=15)
        batch_id = plant.run(CreateMixBatchRequest(code="MB-1")).aggregate_id
        plant.run(AddComponentRequest(
            batch_id=batch_id, stockpile_id=pile_id, quantity_tonnes=10, material_type="clay",
        ))
        fail_on(monkeypatch, pipeline, "STOCKPILE_TRANSFERRED_IN")

        with pytest.raises(EventLogFailure):
            plant.run(RemoveComponentRequest(batch_id=batch_id, stockpile_id=pile_id, quantity_tonnes=4))

        assert pipeline.mixing.components_from(plant.context.tenant_id, batch_id, pile_id) == pytest.approx(10)
        assert pipeline.stockpile.available(plant.context, pile_id).quantity == pytest.approx(5)



def test_lost_receipt_rolls_back_haul_load(plant, pipeline, monkeypatch):
    from core.context.actor_context import ActorContext
    from engines.mining.commands import CreateVehicleRequest, RecordLoadRequest, StartShiftRequest

    op = ActorContext(
        actor_id="op-1", tenant_id=plant.context.tenant_id, actor_role="mining_operator",
    )
    vehicle_id = plant.run(CreateVehicleRequest(code="HT-01", capacity_tonnes=30)).aggregate_id
    shift_id = plant.run(StartShiftRequest(vehicle_id=vehicle_id), op).aggregate_id
    pile_id = plant.stockpile("SP-1", tonnes=0)
    before = plant.event_count()
    fail_on(monkeypatch, pipeline, "STOCKPILE_RECEIPT_RECORDED")

    with pytest.raises(EventLogFailure):
        plant.run(RecordLoadRequest(shift_id=shift_id, stockpile_id=pile_id, tonnage=28.5), op)

    assert plant.event_count() == before
    assert pipeline.stockpile.available(op, pile_id).quantity == pytest.approx(0)


def test_unpaired_event_failure_stays_a_warning(plant, pipeline, monkeypatch):
    from engines.stockpile.commands import CreateStockpileRequest

    fail_on(monkeypatch, pipeline, "STOCKPILE_CREATED")

    result = plant.run(CreateStockpileRequest(code="SP-1"))

    assert result.events == ()
    assert [w.code for w in result.warnings] == [EventLogWarningCode.PERSISTENCE_FAILED]
