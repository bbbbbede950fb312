"""Dispatch engine: shipments, picks, weighbridge and final dispatch."""

import pytest

from core.guards.errors import (
    IllegalStateTransition,
    InsufficientAvailability,
    ValidationError,
)


def shipment(plant, code="SH-1"):
    from engines.dispatch.commands import CreateShipmentRequest

    return plant.run(CreateShipmentRequest(
        code=code, customer_code="C-1", customer_name="Build Co",
    )).aggregate_id


def pick(plant, shipment_id, pallet_id, units):
    from engines.dispatch.commands import AddPickRequest

    return plant.run(AddPickRequest(
        shipment_id=shipment_id, pallet_id=pallet_id, quantity_units=units,
    ))


class TestDispatchRequests:
    def test_negative_weight_rejected(self):
        import uuid

        from engines.dispatch.commands import WeighInRequest

        with pytest.raises(ValidationError):
            WeighInRequest(shipment_id=uuid.uuid4(), gross_kg=-10)

    def test_blank_carrier_rejected(self):
        import uuid

        from engines.dispatch.commands import SetCarrierRequest

        with pytest.raises(ValidationError):
            SetCarrierRequest(shipment_id=uuid.uuid4(), carrier=" ")


class TestShipmentSetup:
    def test_create_and_set_carrier(self, plant):
        from engines.dispatch.commands import SetCarrierRequest

        shipment_id = shipment(plant)

        result = plant.run(SetCarrierRequest(
            shipment_id=shipment_id, carrier="Road Haul", vehicle_reg="ND 123-456",
        ))

        assert result.status == "planned"
        (event,) = result.events
        assert event.event_type == "SHIPMENT_CARRIER_SET"
        assert event.payload["carrier"] == "Road Haul"
        assert event.payload["vehicleReg"] == "ND 123-456"

    def test_picklist_only_from_planned(self, plant):
        from engines.dispatch.commands import CreatePicklistRequest, WeighInRequest

        shipment_id = shipment(plant)
        first = plant.run(CreatePicklistRequest(shipment_id=shipment_id))
        again = plant.run(CreatePicklistRequest(shipment_id=shipment_id))

        assert first.status == "picking"
        assert again.events == ()

        plant.run(WeighInRequest(shipment_id=shipment_id, gross_kg=14000))
        with pytest.raises(
            IllegalStateTransition,
            match="Picklist can only be created for planned shipments.",
        ):
            plant.run(CreatePicklistRequest(shipment_id=shipment_id))


class TestPicks:
    def test_pick_reserves_pallet_units(self, plant, pipeline):
        pallet_id = plant.pallet("PAL-1", units=500)
        shipment_id = shipment(plant)

        result = pick(plant, shipment_id, pallet_id, 120)

        assert result.event_types == ("SHIPMENT_PICK_ADDED", "PACK_PALLET_RESERVED")
        assert result.totals["picked_units"] == pytest.approx(120)
        assert pipeline.packing.available(plant.context, pallet_id).quantity == pytest.approx(380)

    def test_pick_beyond_pallet_rejected(self, plant):
        pallet_id = plant.pallet("PAL-1", units=100)
        shipment_id = shipment(plant)

        with pytest.raises(InsufficientAvailability, match="Only 100 units available on pallet PAL-1."):
            pick(plant, shipment_id, pallet_id, 101)

    def test_remove_pick_bounded_by_picked_units(self, plant, pipeline):
        from engines.dispatch.commands import RemovePickRequest

        pallet_id = plant.pallet("PAL-1", units=500)
        shipment_id = shipment(plant)
        pick(plant, shipment_id, pallet_id, 100)

        with pytest.raises(
            InsufficientAvailability,
            match="Cannot remove 150 units, only 100 picked from this pallet.",
        ):
            plant.run(RemovePickRequest(shipment_id=shipment_id, pallet_id=pallet_id, quantity_units=150))

        removed = plant.run(RemovePickRequest(
            shipment_id=shipment_id, pallet_id=pallet_id, quantity_units=40,
        ))
        assert removed.event_types == ("SHIPMENT_PICK_REMOVED", "PACK_PALLET_RESERVATION_RELEASED")
        assert [line.quantity for line in pipeline.dispatch.picks(plant.context, shipment_id)] == [60]
        assert pipeline.packing.available(plant.context, pallet_id).quantity == pytest.approx(440)


class TestWeighbridge:
    def test_weigh_out_requires_weigh_in(self, plant):
        from engines.dispatch.commands import WeighOutRequest

        shipment_id = shipment(plant)

        with pytest.raises(IllegalStateTransition, match="Record weighbridge in before weighing out."):
            plant.run(WeighOutRequest(shipment_id=shipment_id, gross_kg=30000))

    def test_weigh_in_after_weigh_out_rejected(self, plant):
        from engines.dispatch.commands import WeighInRequest, WeighOutRequest

        shipment_id = shipment(plant)
        plant.run(WeighInRequest(shipment_id=shipment_id, gross_kg=14000, tare_kg=14000))
        out = plant.run(WeighOutRequest(shipment_id=shipment_id, gross_kg=31000))

        assert out.status == "weigh_out"
        with pytest.raises(IllegalStateTransition, match="Shipment has already been weighed out."):
            plant.run(WeighInRequest(shipment_id=shipment_id, gross_kg=14000))

    def test_weigh_in_can_be_repeated(self, plant):
        from engines.dispatch.commands import WeighInRequest

        shipment_id = shipment(plant)
        plant.run(WeighInRequest(shipment_id=shipment_id, gross_kg=14000))
        again = plant.run(WeighInRequest(shipment_id=shipment_id, gross_kg=14200))

        assert again.event_types == ("SHIPMENT_WEIGHBRIDGE_IN",)
        assert again.events[0].payload["grossKg"] == 14200


class TestFinalizeDispatch:
    def test_shipment_without_picks_cannot_dispatch(self, plant):
        from engines.dispatch.commands import FinalizeDispatchRequest

        shipment_id = shipment(plant)
        before = plant.event_count()

        with pytest.raises(ValidationError, match="Shipment has no picked units to dispatch."):
            plant.run(FinalizeDispatchRequest(shipment_id=shipment_id))
        assert plant.event_count() == before

    def test_dispatch_converts_picks_into_shipped_units(self, plant, pipeline):
        from engines.dispatch.commands import FinalizeDispatchRequest

        pal_1 = plant.pallet("PAL-1", units=500)
        pal_2 = plant.pallet("PAL-2", units=300)
        shipment_id = shipment(plant)
        first = pick(plant, shipment_id, pal_1, 200)
        pick(plant, shipment_id, pal_2, 300)

        result = plant.run(FinalizeDispatchRequest(shipment_id=shipment_id))

        assert result.status == "dispatched"
        assert result.totals["total_units"] == pytest.approx(500)
        assert result.event_types == (
            "PACK_PALLET_RESERVATION_RELEASED", "PACK_PALLET_UNITS_DISPATCHED",
            "PACK_PALLET_RESERVATION_RELEASED", "PACK_PALLET_UNITS_DISPATCHED",
            "SHIPMENT_DISPATCHED",
        )
        released, shipped = result.events[:2]
        assert shipped.causation_id == released.event_id
        assert released.correlation_id == first.correlation_id
        assert pipeline.packing.units_on_pallet(plant.context, pal_1).quantity == pytest.approx(300)
        assert pipeline.packing.available(plant.context, pal_1).quantity == pytest.approx(300)
        assert pipeline.packing.available(plant.context, pal_2).quantity == pytest.approx(0)
        assert [line.quantity for line in pipeline.dispatch.picks(plant.context, shipment_id)] == [200, 300]

    def test_dispatched_shipment_is_locked(self, plant):
        from engines.dispatch.commands import (
            CancelShipmentRequest,
            FinalizeDispatchRequest,
            SetCarrierRequest,
        )

        pallet_id = plant.pallet("PAL-1", units=100)
        shipment_id = shipment(plant)
        pick(plant, shipment_id, pallet_id, 100)
        plant.run(FinalizeDispatchRequest(shipment_id=shipment_id))

        with pytest.raises(IllegalStateTransition, match="Shipment already dispatched."):
            plant.run(SetCarrierRequest(shipment_id=shipment_id, carrier="Other"))
        with pytest.raises(IllegalStateTransition, match="Cannot cancel a dispatched shipment."):
            plant.run(CancelShipmentRequest(shipment_id=shipment_id))


class TestCancelShipment:
    def test_cancel_releases_every_pick(self, plant, pipeline):
        from engines.dispatch.commands import CancelShipmentRequest

        pallet_id = plant.pallet("PAL-1", units=500)
        shipment_id = shipment(plant)
        pick(plant, shipment_id, pallet_id, 150)
        pick(plant, shipment_id, pallet_id, 50)

        result = plant.run(CancelShipmentRequest(shipment_id=shipment_id, reason="truck broke down"))

        assert result.status == "cancelled"
        assert result.event_types == (
            "SHIPMENT_PICK_REMOVED", "PACK_PALLET_RESERVATION_RELEASED",
            "SHIPMENT_PICK_REMOVED", "PACK_PALLET_RESERVATION_RELEASED",
            "SHIPMENT_CANCELLED",
        )
        assert pipeline.packing.available(plant.context, pallet_id).quantity == pytest.approx(500)
        assert pipeline.dispatch.picks(plant.context, shipment_id) == []

    def test_cancelled_shipment_rejects_picks(self, plant):
        from engines.dispatch.commands import CancelShipmentRequest

        pallet_id = plant.pallet("PAL-1", units=500)
        shipment_id = shipment(plant)
        plant.run(CancelShipmentRequest(shipment_id=shipment_id))

        with pytest.raises(IllegalStateTransition):
            pick(plant, shipment_id, pallet_id, 10)
