"""Mining engine: operator shifts, vehicle assignment and haul loads."""

import pytest

from core.guards.errors import (
    IllegalStateTransition,
    NotFoundError,
    PermissionDenied,
    ValidationError,
)


def operator(plant, actor="op-1", name="Sipho"):
    from core.context.actor_context import ActorContext

    return ActorContext(
        actor_id=actor,
        tenant_id=plant.context.tenant_id,
        actor_role="mining_operator",
        actor_name=name,
    )


def vehicle(plant, code="HT-01"):
    from engines.mining.commands import CreateVehicleRequest

    return plant.run(CreateVehicleRequest(code=code, capacity_tonnes=30)).aggregate_id


def start(plant, vehicle_id, context):
    from engines.mining.commands import StartShiftRequest

    return plant.run(StartShiftRequest(vehicle_id=vehicle_id), context)


class TestMiningRequests:
    def test_zero_tonnage_rejected(self):
        import uuid

        from engines.mining.commands import RecordLoadRequest

        with pytest.raises(ValidationError, match="Tonnage must be greater than zero."):
            RecordLoadRequest(shift_id=uuid.uuid4(), stockpile_id=uuid.uuid4(), tonnage=0)

    def test_moisture_outside_percentage_rejected(self):
        import uuid

        from engines.mining.commands import RecordLoadRequest

        with pytest.raises(ValidationError):
            RecordLoadRequest(
                shift_id=uuid.uuid4(), stockpile_id=uuid.uuid4(),
                tonnage=12, moisture_pct=140,
            )

    def test_unknown_vehicle_status_rejected(self):
        import uuid

        from engines.mining.commands import SetVehicleStatusRequest

        with pytest.raises(ValidationError, match="Unknown vehicle status"):
            SetVehicleStatusRequest(vehicle_id=uuid.uuid4(), status="scrapped")


class TestShifts:
    def test_start_shift_records_operator(self, plant):
        vehicle_id = vehicle(plant)

        result = start(plant, vehicle_id, operator(plant))

        assert result.status == "active"
        (event,) = result.events
        assert event.event_type == "MINING_SHIFT_STARTED"
        assert event.payload["vehicleCode"] == "HT-01"
        assert event.payload["operatorName"] == "Sipho"
        assert event.payload["operatorRole"] == "mining_operator"

    def test_operator_cannot_hold_two_shifts(self, plant):
        op = operator(plant)
        start(plant, vehicle(plant, "HT-01"), op)

        with pytest.raises(IllegalStateTransition, match="You already have an active shift."):
            start(plant, vehicle(plant, "HT-02"), op)

    def test_vehicle_busy_names_current_operator(self, plant):
        vehicle_id = vehicle(plant)
        start(plant, vehicle_id, operator(plant))

        with pytest.raises(IllegalStateTransition, match="Vehicle currently assigned to Sipho."):
            start(plant, vehicle_id, operator(plant, actor="op-2", name="Lerato"))

    def test_vehicle_busy_without_operator_name(self, plant):
        vehicle_id = vehicle(plant)
        start(plant, vehicle_id, operator(plant, name=None))

        with pytest.raises(IllegalStateTransition, match="assigned to another operator"):
            start(plant, vehicle_id, operator(plant, actor="op-2"))

    def test_vehicle_in_maintenance_not_assignable(self, plant):
        from engines.mining.commands import SetVehicleStatusRequest

        vehicle_id = vehicle(plant)
        plant.run(SetVehicleStatusRequest(vehicle_id=vehicle_id, status="maintenance"))

        with pytest.raises(IllegalStateTransition, match="Vehicle is not available for assignment."):
            start(plant, vehicle_id, operator(plant))

    def test_end_shift_frees_vehicle(self, plant):
        from engines.mining.commands import EndShiftRequest

        vehicle_id = vehicle(plant)
        op = operator(plant)
        shift_id = start(plant, vehicle_id, op).aggregate_id

        ended = plant.run(EndShiftRequest(shift_id=shift_id), op)

        assert ended.status == "completed"
        assert ended.event_types == ("MINING_SHIFT_COMPLETED",)
        assert start(plant, vehicle_id, operator(plant, actor="op-2")).status == "active"

    def test_end_shift_twice_fails(self, plant):
        from engines.mining.commands import EndShiftRequest

        op = operator(plant)
        shift_id = start(plant, vehicle(plant), op).aggregate_id
        plant.run(EndShiftRequest(shift_id=shift_id), op)

        with pytest.raises(IllegalStateTransition, match="Shift is not active."):
            plant.run(EndShiftRequest(shift_id=shift_id), op)

    def test_other_operators_shift_is_not_found(self, plant):
        from engines.mining.commands import EndShiftRequest

        shift_id = start(plant, vehicle(plant), operator(plant)).aggregate_id

        with pytest.raises(NotFoundError, match="Shift not found."):
            plant.run(EndShiftRequest(shift_id=shift_id), operator(plant, actor="op-2"))

    def test_active_shift_query(self, plant, pipeline):
        op = operator(plant)
        assert pipeline.mining.active_shift(op) is None

        shift_id = start(plant, vehicle(plant), op).aggregate_id

        assert pipeline.mining.active_shift(op).aggregate_id == shift_id
        assert [s.aggregate_id for s in pipeline.mining.shifts(op)] == [shift_id]


class TestLoads:
    def test_load_lands_on_stockpile(self, plant, pipeline):
        from engines.mining.commands import RecordLoadRequest

        op = operator(plant)
        shift_id = start(plant, vehicle(plant), op).aggregate_id
        pile_id = plant.stockpile("SP-1", tonnes=0)

        result = plant.run(
            RecordLoadRequest(shift_id=shift_id, stockpile_id=pile_id, tonnage=28.5, moisture_pct=11),
            op,
        )

        load, receipt = result.events
        assert (load.event_type, receipt.event_type) == (
            "MINING_LOAD_RECORDED", "STOCKPILE_RECEIPT_RECORDED",
        )
        assert load.correlation_id == receipt.correlation_id
        assert receipt.causation_id == load.event_id
        assert receipt.payload["reference"] == "HT-01"
        assert receipt.payload["shiftId"] == str(shift_id)
        assert pipeline.stockpile.available(op, pile_id).quantity == pytest.approx(28.5)

    def test_load_after_shift_end_rejected(self, plant):
        from engines.mining.commands import EndShiftRequest, RecordLoadRequest

        op = operator(plant)
        shift_id = start(plant, vehicle(plant), op).aggregate_id
        pile_id = plant.stockpile("SP-1", tonnes=0)
        plant.run(EndShiftRequest(shift_id=shift_id), op)
        before = plant.event_count()

        with pytest.raises(IllegalStateTransition, match="Shift is not active."):
            plant.run(RecordLoadRequest(shift_id=shift_id, stockpile_id=pile_id, tonnage=10), op)
        assert plant.event_count() == before


class TestMiningAccess:
    def test_viewer_cannot_start_shift(self, plant):
        from core.context.actor_context import ActorContext

        viewer = ActorContext(actor_id="v-1", tenant_id=plant.context.tenant_id, actor_role="viewer")

        with pytest.raises(PermissionDenied):
            start(plant, vehicle(plant), viewer)

    def test_unenforced_engine_accepts_any_role(self, plant):
        from core.context.actor_context import ActorContext
        from engines.stockpile.commands import CreateStockpileRequest

        viewer = ActorContext(actor_id="v-1", tenant_id=plant.context.tenant_id, actor_role="viewer")

        assert plant.run(CreateStockpileRequest(code="SP-9"), viewer).status == "active"
