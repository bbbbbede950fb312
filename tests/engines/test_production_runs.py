"""Mixing → crushing → extrusion → dry yard → kiln: lifecycles and stage gates."""

import pytest

from core.guards.errors import IllegalStateTransition, InsufficientAvailability, ValidationError


# ══════════════════════════════════════════════════════════════
# LIFECYCLE LEGALITY (shared run machine, exercised through mixing)
# ══════════════════════════════════════════════════════════════

class TestRunLifecycle:
    def _batch(self, plant, code="MB-1"):
        from engines.mixing.commands import CreateMixBatchRequest

        return plant.run(CreateMixBatchRequest(code=code)).aggregate_id

    def test_full_legal_path(self, plant):
        from engines.mixing.commands import (
            CompleteMixBatchRequest,
            PauseMixBatchRequest,
            ResumeMixBatchRequest,
            StartMixBatchRequest,
        )

        batch_id = self._batch(plant)
        statuses = [
            plant.run(StartMixBatchRequest(batch_id=batch_id)).status,
            plant.run(PauseMixBatchRequest(batch_id=batch_id, reason="belt jam")).status,
            plant.run(ResumeMixBatchRequest(batch_id=batch_id)).status,
            plant.run(CompleteMixBatchRequest(batch_id=batch_id, output_tonnes=4)).status,
        ]

        assert statuses == ["active", "paused", "active", "completed"]

    def test_start_stamps_started_at(self, plant, pipeline, clock):
        from core.events.envelope import AggregateType
        from engines.mixing.commands import StartMixBatchRequest

        batch_id = self._batch(plant)
        plant.run(StartMixBatchRequest(batch_id=batch_id))

        snapshot = pipeline.store.snapshots.get(
            plant.context.tenant_id, AggregateType.MIX_BATCH, batch_id,
        )
        assert snapshot.started_at == clock.now_utc()
        assert snapshot.completed_at is None

    def test_starting_active_batch_fails(self, plant):
        from engines.mixing.commands import StartMixBatchRequest

        batch_id = self._batch(plant)
        plant.run(StartMixBatchRequest(batch_id=batch_id))

        with pytest.raises(IllegalStateTransition, match="Only planned batches can be started."):
            plant.run(StartMixBatchRequest(batch_id=batch_id))

    def test_completing_planned_batch_fails(self, plant):
        from engines.mixing.commands import CompleteMixBatchRequest

        batch_id = self._batch(plant)

        with pytest.raises(IllegalStateTransition) as exc:
            plant.run(CompleteMixBatchRequest(batch_id=batch_id, output_tonnes=1))
        assert exc.value.current_status == "planned"
        assert exc.value.action == "complete"

    def test_pausing_planned_batch_fails(self, plant):
        from engines.mixing.commands import PauseMixBatchRequest

        with pytest.raises(IllegalStateTransition, match="Only active batches can be paused."):
            plant.run(PauseMixBatchRequest(batch_id=self._batch(plant)))

    def test_cancel_allowed_from_paused(self, plant):
        from engines.mixing.commands import (
            CancelMixBatchRequest,
            PauseMixBatchRequest,
            StartMixBatchRequest,
        )

        batch_id = self._batch(plant)
        plant.run(StartMixBatchRequest(batch_id=batch_id))
        plant.run(PauseMixBatchRequest(batch_id=batch_id))

        assert plant.run(CancelMixBatchRequest(batch_id=batch_id)).status == "cancelled"

    def test_completed_batch_cannot_be_cancelled(self, plant):
        from engines.mixing.commands import (
            CancelMixBatchRequest,
            CompleteMixBatchRequest,
            StartMixBatchRequest,
        )

        batch_id = self._batch(plant)
        plant.run(StartMixBatchRequest(batch_id=batch_id))
        plant.run(CompleteMixBatchRequest(batch_id=batch_id, output_tonnes=2))

        with pytest.raises(IllegalStateTransition):
            plant.run(CancelMixBatchRequest(batch_id=batch_id))

    def test_duplicate_batch_code_rejected(self, plant):
        self._batch(plant, "MB-1")

        with pytest.raises(ValidationError, match="already exists"):
            self._batch(plant, "MB-1")


# ══════════════════════════════════════════════════════════════
# MIXING
# ══════════════════════════════════════════════════════════════

class TestMixing:
    def test_over_draw_leaves_log_untouched(self, plant, pipeline):
        from engines.mixing.commands import AddComponentRequest, CreateMixBatchRequest

        pile_id = plant.stockpile("SP-1", tonnes=3)
        batch_id = plant.run(CreateMixBatchRequest(code="MB-1")).aggregate_id
        before = plant.event_count()

        with pytest.raises(InsufficientAvailability):
            plant.run(AddComponentRequest(
                batch_id=batch_id, stockpile_id=pile_id, quantity_tonnes=3.5, material_type="clay",
            ))

        assert plant.event_count() == before
        assert pipeline.stockpile.available(plant.context, pile_id).quantity == pytest.approx(3)

    def test_remove_component_returns_tonnes(self, plant, pipeline):
        from engines.mixing.commands import (
            AddComponentRequest,
            CreateMixBatchRequest,
            RemoveComponentRequest,
        )

        pile_id = plant.stockpile("SP-1", tonnes=10)
        batch_id = plant.run(CreateMixBatchRequest(code="MB-1")).aggregate_id
        plant.run(AddComponentRequest(
            batch_id=batch_id, stockpile_id=pile_id, quantity_tonnes=6, material_type="clay",
        ))

        result = plant.run(RemoveComponentRequest(batch_id=batch_id, stockpile_id=pile_id, quantity_tonnes=2))

        assert result.event_types == ("MIX_COMPONENT_REMOVED", "STOCKPILE_TRANSFERRED_IN")
        assert pipeline.mixing.components_from(plant.context.tenant_id, batch_id, pile_id) == pytest.approx(4)
        assert pipeline.stockpile.available(plant.context, pile_id).quantity == pytest.approx(6)

    def test_cannot_remove_more_than_drawn(self, plant):
        from engines.mixing.commands import (
            AddComponentRequest,
            CreateMixBatchRequest,
            RemoveComponentRequest,
        )

        pile_id = plant.stockpile("SP-1", tonnes=10)
        batch_id = plant.run(CreateMixBatchRequest(code="MB-1")).aggregate_id
        plant.run(AddComponentRequest(
            batch_id=batch_id, stockpile_id=pile_id, quantity_tonnes=1, material_type="clay",
        ))

        with pytest.raises(InsufficientAvailability, match="Only 1.00 t from this stockpile"):
            plant.run(RemoveComponentRequest(batch_id=batch_id, stockpile_id=pile_id, quantity_tonnes=2))

    def test_components_locked_after_completion(self, plant):
        from engines.mixing.commands import AddComponentRequest

        batch_id = plant.mix_batch("MB-1", output_tonnes=5)
        pile_id = plant.stockpile("SP-2", tonnes=5)

        with pytest.raises(IllegalStateTransition, match="Components can only be added to open batches."):
            plant.run(AddComponentRequest(
                batch_id=batch_id, stockpile_id=pile_id, quantity_tonnes=1, material_type="clay",
            ))


# ══════════════════════════════════════════════════════════════
# CRUSHING
# ══════════════════════════════════════════════════════════════

class TestCrushing:
    def test_open_mix_batch_cannot_feed_crusher(self, plant):
        from engines.crushing.commands import AddCrushInputRequest, CreateCrushRunRequest
        from engines.mixing.commands import CreateMixBatchRequest

        mix_id = plant.run(CreateMixBatchRequest(code="MB-1")).aggregate_id
        run_id = plant.run(CreateCrushRunRequest(code="CR-1")).aggregate_id

        with pytest.raises(IllegalStateTransition, match="Only completed mix batches"):
            plant.run(AddCrushInputRequest(run_id=run_id, mix_batch_id=mix_id, quantity_tonnes=1))

    def test_output_counts_once_after_completion(self, plant, pipeline):
        from engines.crushing.commands import CompleteCrushRunRequest

        run_id = plant.crush_run("CR-1", output_tonnes=8)
        plant.run(CompleteCrushRunRequest(run_id=run_id))

        first = pipeline.extrusion.crushed_available(plant.context, run_id)
        second = pipeline.extrusion.crushed_available(plant.context, run_id)

        assert first.quantity == pytest.approx(8)
        assert second == first

    def test_mix_availability_after_partial_feed(self, plant, pipeline):
        from engines.crushing.commands import AddCrushInputRequest, CreateCrushRunRequest

        mix_id = plant.mix_batch("MB-1", output_tonnes=9)
        run_id = plant.run(CreateCrushRunRequest(code="CR-1")).aggregate_id

        result = plant.run(AddCrushInputRequest(run_id=run_id, mix_batch_id=mix_id, quantity_tonnes=4))

        assert result.totals["mix_available_tonnes"] == pytest.approx(5)
        assert pipeline.crushing.mix_available(plant.context, mix_id).quantity == pytest.approx(5)

    def test_output_only_on_active_run(self, plant):
        from engines.crushing.commands import CreateCrushRunRequest, RecordCrushOutputRequest

        run_id = plant.run(CreateCrushRunRequest(code="CR-1")).aggregate_id

        with pytest.raises(IllegalStateTransition, match="Output can only be recorded on active runs."):
            plant.run(RecordCrushOutputRequest(run_id=run_id, output_tonnes=3))

    def test_fines_percentage_validated(self):
        import uuid

        from engines.crushing.commands import RecordCrushOutputRequest

        with pytest.raises(ValidationError):
            RecordCrushOutputRequest(run_id=uuid.uuid4(), output_tonnes=3, fines_pct=101)


# ══════════════════════════════════════════════════════════════
# EXTRUSION
# ══════════════════════════════════════════════════════════════

class TestExtrusion:
    def test_crush_run_without_output_cannot_feed(self, plant):
        from engines.crushing.commands import CreateCrushRunRequest
        from engines.extrusion.commands import AddExtrusionInputRequest, CreateExtrusionRunRequest

        crush_id = plant.run(CreateCrushRunRequest(code="CR-1")).aggregate_id
        run_id = plant.run(CreateExtrusionRunRequest(code="EX-1")).aggregate_id

        with pytest.raises(InsufficientAvailability, match="has not produced output yet"):
            plant.run(AddExtrusionInputRequest(run_id=run_id, crush_run_id=crush_id, quantity_tonnes=1))

    def test_input_beyond_crushed_output(self, plant):
        from engines.extrusion.commands import AddExtrusionInputRequest, CreateExtrusionRunRequest

        crush_id = plant.crush_run("CR-1", output_tonnes=5)
        run_id = plant.run(CreateExtrusionRunRequest(code="EX-1")).aggregate_id

        with pytest.raises(InsufficientAvailability, match="5.00 t remaining"):
            plant.run(AddExtrusionInputRequest(run_id=run_id, crush_run_id=crush_id, quantity_tonnes=6))

    def test_output_feeds_dry_yard(self, plant, pipeline):
        run_id = plant.extrusion_run("EX-1", output_units=1500)

        assert pipeline.dry_yard.extrusion_available(plant.context, run_id).quantity == pytest.approx(1500)


# ══════════════════════════════════════════════════════════════
# DRY YARD
# ══════════════════════════════════════════════════════════════

class TestDryYard:
    def _rack(self, plant, code, capacity):
        from engines.dry_yard.commands import CreateRackRequest

        return plant.run(CreateRackRequest(code=code, capacity_units=capacity)).aggregate_id

    def test_rack_capacity_enforced(self, plant):
        from engines.dry_yard.commands import AddDryInputRequest, CreateDryLoadRequest

        run_id = plant.extrusion_run("EX-1", output_units=1000)
        rack_id = self._rack(plant, "RK-1", 600)
        load_id = plant.run(CreateDryLoadRequest(code="DL-1", rack_id=rack_id)).aggregate_id

        with pytest.raises(InsufficientAvailability, match="Rack RK-1 capacity exceeded. Available: 600 units."):
            plant.run(AddDryInputRequest(load_id=load_id, extrusion_run_id=run_id, quantity_units=700))

    def test_extrusion_shortfall(self, plant):
        from engines.dry_yard.commands import AddDryInputRequest, CreateDryLoadRequest

        run_id = plant.extrusion_run("EX-1", output_units=300)
        rack_id = self._rack(plant, "RK-1", 5000)
        load_id = plant.run(CreateDryLoadRequest(code="DL-1", rack_id=rack_id)).aggregate_id

        with pytest.raises(InsufficientAvailability, match="Extrusion run only has 300 units available."):
            plant.run(AddDryInputRequest(load_id=load_id, extrusion_run_id=run_id, quantity_units=301))

    def test_move_to_same_rack_rejected(self, plant):
        from engines.dry_yard.commands import CreateDryLoadRequest, MoveDryLoadRequest

        rack_id = self._rack(plant, "RK-1", 100)
        load_id = plant.run(CreateDryLoadRequest(code="DL-1", rack_id=rack_id)).aggregate_id

        with pytest.raises(ValidationError, match="already on the selected rack"):
            plant.run(MoveDryLoadRequest(load_id=load_id, to_rack_id=rack_id))

    def test_move_checks_destination_capacity(self, plant):
        from engines.dry_yard.commands import MoveDryLoadRequest

        load_id = plant.dry_load("DL-1", units=500, complete=False)
        small = self._rack(plant, "RK-S", 100)
        large = self._rack(plant, "RK-L", 1000)

        with pytest.raises(InsufficientAvailability, match="Rack RK-S cannot accept this load"):
            plant.run(MoveDryLoadRequest(load_id=load_id, to_rack_id=small))

        moved = plant.run(MoveDryLoadRequest(load_id=load_id, to_rack_id=large))
        assert moved.event_types == ("DRY_LOAD_MOVED",)

    def test_kiln_waits_for_completed_load(self, plant):
        from engines.kiln.commands import AddKilnInputRequest, CreateKilnBatchRequest

        load_id = plant.dry_load("DL-1", units=500, complete=False)
        batch_id = plant.run(CreateKilnBatchRequest(code="KB-1")).aggregate_id

        with pytest.raises(IllegalStateTransition, match="Dry load must be completed before feeding kiln."):
            plant.run(AddKilnInputRequest(batch_id=batch_id, dry_load_id=load_id, quantity_units=10))

    def test_scrap_reduces_units_for_kiln(self, plant, pipeline):
        from engines.dry_yard.commands import (
            CompleteDryLoadRequest,
            RecordDryScrapRequest,
            StartDryLoadRequest,
        )

        load_id = plant.dry_load("DL-1", units=500, complete=False)
        plant.run(StartDryLoadRequest(load_id=load_id))
        plant.run(RecordDryScrapRequest(load_id=load_id, scrap_units=40, reason="cracked"))
        plant.run(CompleteDryLoadRequest(load_id=load_id))

        assert pipeline.kiln.dry_available(plant.context, load_id).quantity == pytest.approx(460)


# ══════════════════════════════════════════════════════════════
# KILN
# ══════════════════════════════════════════════════════════════

class TestKiln:
    def test_kiln_input_bounded_by_dry_units(self, plant):
        from engines.kiln.commands import AddKilnInputRequest, CreateKilnBatchRequest

        load_id = plant.dry_load("DL-1", units=500)
        batch_id = plant.run(CreateKilnBatchRequest(code="KB-1")).aggregate_id

        with pytest.raises(InsufficientAvailability, match="Dry load only has 500 units available."):
            plant.run(AddKilnInputRequest(batch_id=batch_id, dry_load_id=load_id, quantity_units=501))

    def test_fired_units_reach_packing(self, plant, pipeline):
        batch_id = plant.kiln_batch("KB-1", fired_units=1200)

        assert pipeline.packing.kiln_available(plant.context, batch_id).quantity == pytest.approx(1200)

    def test_output_requires_active_batch(self, plant):
        from engines.kiln.commands import CreateKilnBatchRequest, RecordKilnOutputRequest

        batch_id = plant.run(CreateKilnBatchRequest(code="KB-1")).aggregate_id

        with pytest.raises(IllegalStateTransition, match="Output can only be recorded on active batches."):
            plant.run(RecordKilnOutputRequest(batch_id=batch_id, fired_units=10))
