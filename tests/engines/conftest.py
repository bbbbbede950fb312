"""Shared pipeline fixtures: a fresh in-memory plant per test."""

import uuid
from datetime import datetime, timezone

import pytest

TENANT_A = uuid.uuid4()
TENANT_B = uuid.uuid4()
NOW = datetime(2026, 3, 2, 7, 30, 0, tzinfo=timezone.utc)


def ctx(tenant=TENANT_A, actor="plant-admin", role="admin", name=None):
    from core.context.actor_context import ActorContext

    return ActorContext(actor_id=actor, tenant_id=tenant, actor_role=role, actor_name=name)


class Plant:
    """Drives a pipeline through upstream stages so a test can start mid-line."""

    def __init__(self, pipeline, context):
        self.pipeline = pipeline
        self.context = context

    def run(self, request, context=None):
        return self.pipeline.execute(context or self.context, request)

    def events(self, aggregate_type, aggregate_id=None, tenant=None):
        return self.pipeline.store.events.list_events(
            tenant or self.context.tenant_id,
            aggregate_type=aggregate_type,
            aggregate_id=aggregate_id,
        )

    def event_count(self, tenant=None):
        from core.events.envelope import AggregateType

        return sum(
            len(self.events(aggregate_type, tenant=tenant))
            for aggregate_type in AggregateType.ALL
        )

    def stockpile(self, code="SP-1", tonnes=15.0):
        from engines.stockpile.commands import CreateStockpileRequest, RecordReceiptRequest

        pile_id = self.run(CreateStockpileRequest(code=code)).aggregate_id
        if tonnes:
            self.run(RecordReceiptRequest(stockpile_id=pile_id, quantity_tonnes=tonnes))
        return pile_id

    def mix_batch(self, code="MB-1", output_tonnes=9.0, feed_tonnes=10.0):
        from engines.mixing.commands import (
            AddComponentRequest,
            CompleteMixBatchRequest,
            CreateMixBatchRequest,
            StartMixBatchRequest,
        )

        pile_id = self.stockpile(code=f"SP-{code}", tonnes=feed_tonnes)
        batch_id = self.run(CreateMixBatchRequest(code=code)).aggregate_id
        self.run(AddComponentRequest(
            batch_id=batch_id, stockpile_id=pile_id,
            quantity_tonnes=feed_tonnes, material_type="clay",
        ))
        self.run(StartMixBatchRequest(batch_id=batch_id))
        self.run(CompleteMixBatchRequest(batch_id=batch_id, output_tonnes=output_tonnes))
        return batch_id

    def crush_run(self, code="CR-1", output_tonnes=8.0):
        from engines.crushing.commands import (
            AddCrushInputRequest,
            CreateCrushRunRequest,
            RecordCrushOutputRequest,
            StartCrushRunRequest,
        )

        mix_id = self.mix_batch(code=f"MB-{code}", output_tonnes=output_tonnes + 1)
        run_id = self.run(CreateCrushRunRequest(code=code)).aggregate_id
        self.run(AddCrushInputRequest(
            run_id=run_id, mix_batch_id=mix_id, quantity_tonnes=output_tonnes + 1,
        ))
        self.run(StartCrushRunRequest(run_id=run_id))
        self.run(RecordCrushOutputRequest(run_id=run_id, output_tonnes=output_tonnes))
        return run_id

    def extrusion_run(self, code="EX-1", output_units=2000):
        from engines.extrusion.commands import (
            AddExtrusionInputRequest,
            CreateExtrusionRunRequest,
            RecordExtrusionOutputRequest,
            StartExtrusionRunRequest,
        )

        crush_id = self.crush_run(code=f"CR-{code}")
        run_id = self.run(CreateExtrusionRunRequest(code=code, product_sku="FB-RED")).aggregate_id
        self.run(AddExtrusionInputRequest(run_id=run_id, crush_run_id=crush_id, quantity_tonnes=6))
        self.run(StartExtrusionRunRequest(run_id=run_id))
        self.run(RecordExtrusionOutputRequest(run_id=run_id, output_units=output_units))
        return run_id

    def dry_load(self, code="DL-1", units=2000, complete=True):
        from engines.dry_yard.commands import (
            AddDryInputRequest,
            CompleteDryLoadRequest,
            CreateDryLoadRequest,
            CreateRackRequest,
            StartDryLoadRequest,
        )

        run_id = self.extrusion_run(code=f"EX-{code}", output_units=units)
        rack_id = self.run(CreateRackRequest(code=f"RK-{code}", capacity_units=units * 2)).aggregate_id
        load_id = self.run(CreateDryLoadRequest(code=code, rack_id=rack_id)).aggregate_id
        self.run(AddDryInputRequest(load_id=load_id, extrusion_run_id=run_id, quantity_units=units))
        if complete:
            self.run(StartDryLoadRequest(load_id=load_id))
            self.run(CompleteDryLoadRequest(load_id=load_id))
        return load_id

    def kiln_batch(self, code="KB-1", fired_units=2000):
        from engines.kiln.commands import (
            AddKilnInputRequest,
            CreateKilnBatchRequest,
            RecordKilnOutputRequest,
            StartKilnBatchRequest,
        )

        load_id = self.dry_load(code=f"DL-{code}", units=fired_units)
        batch_id = self.run(CreateKilnBatchRequest(code=code)).aggregate_id
        self.run(AddKilnInputRequest(batch_id=batch_id, dry_load_id=load_id, quantity_units=fired_units))
        self.run(StartKilnBatchRequest(batch_id=batch_id))
        self.run(RecordKilnOutputRequest(batch_id=batch_id, fired_units=fired_units))
        return batch_id

    def pallet(self, code="PAL-1", units=800, kiln_batch_id=None, sku="FB-RED", grade="A"):
        from engines.packing.commands import AddPackInputRequest, CreatePalletRequest

        if kiln_batch_id is None:
            kiln_batch_id = self.kiln_batch(code=f"KB-{code}", fired_units=units)
        pallet_id = self.run(CreatePalletRequest(code=code, product_sku=sku, grade=grade)).aggregate_id
        self.run(AddPackInputRequest(
            pallet_id=pallet_id, kiln_batch_id=kiln_batch_id, quantity_units=units,
        ))
        return pallet_id

    def sales_order(self, code="SO-1", customer=None):
        from engines.sales.commands import CreateCustomerRequest, CreateOrderRequest

        customer_id = self.run(CreateCustomerRequest(
            code=customer or f"C-{code}", name="Build Co",
        )).aggregate_id
        return self.run(CreateOrderRequest(code=code, customer_id=customer_id)).aggregate_id


@pytest.fixture
def clock():
    from core.time.clock import FixedClock

    return FixedClock(NOW)


@pytest.fixture
def pipeline(clock):
    from engines.pipeline import Pipeline

    return Pipeline.in_memory(clock=clock)


@pytest.fixture
def plant(pipeline):
    return Plant(pipeline, ctx())


@pytest.fixture
def other_tenant():
    return ctx(tenant=TENANT_B, actor="other-admin")
