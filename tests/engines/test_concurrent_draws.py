"""
Concurrent consumers of one pallet or one mix batch. The check-then-act
sequence runs under the store lock, so only one of two competing draws
that together exceed availability can succeed.
"""

import threading

import pytest

from core.guards.errors import InsufficientAvailability


def race(*calls):
    """Start every call at once; return (results, errors)."""
    barrier = threading.Barrier(len(calls))
    results, errors = [], []

    def run(call):
        barrier.wait()
        try:
            results.append(call())
        except InsufficientAvailability as exc:
            errors.append(exc)

    threads = [threading.Thread(target=run, args=(call,)) for call in calls]
    for thread in threads:
        thread.start()
    for thread in threads:
        thread.join(timeout=10)
    return results, errors


def test_two_orders_cannot_overcommit_a_pallet(plant, pipeline):
    from engines.sales.commands import ReserveOrderRequest

    pallet_id = plant.pallet("PAL-1", units=800)
    orders = [plant.sales_order("SO-1"), plant.sales_order("SO-2")]

    results, errors = race(*[
        lambda order_id=order_id: plant.run(ReserveOrderRequest(
            order_id=order_id, pallet_id=pallet_id, quantity_units=500,
        ))
        for order_id in orders
    ])

    assert len(results) == 1
    assert len(errors) == 1
    assert errors[0].available == pytest.approx(300)
    assert pipeline.packing.available(plant.context, pallet_id).quantity == pytest.approx(300)


def test_order_and_pick_race_for_the_same_units(plant, pipeline):
    from engines.dispatch.commands import AddPickRequest, CreateShipmentRequest
    from engines.sales.commands import ReserveOrderRequest

    pallet_id = plant.pallet("PAL-1", units=800)
    order_id = plant.sales_order("SO-1")
    shipment_id = plant.run(CreateShipmentRequest(code="SH-1")).aggregate_id

    results, errors = race(
        lambda: plant.run(ReserveOrderRequest(order_id=order_id, pallet_id=pallet_id, quantity_units=500)),
        lambda: plant.run(AddPickRequest(shipment_id=shipment_id, pallet_id=pallet_id, quantity_units=500)),
    )

    assert (len(results), len(errors)) == (1, 1)
    assert pipeline.packing.available(plant.context, pallet_id).quantity == pytest.approx(300)


def test_two_crush_runs_cannot_overdraw_a_mix_batch(plant, pipeline):
    from engines.crushing.commands import AddCrushInputRequest, CreateCrushRunRequest

    batch_id = plant.mix_batch("MB-1", output_tonnes=9.0)
    runs = [
        plant.run(CreateCrushRunRequest(code=code)).aggregate_id
        for code in ("CR-1", "CR-2")
    ]

    results, errors = race(*[
        lambda run_id=run_id: plant.run(AddCrushInputRequest(
            run_id=run_id, mix_batch_id=batch_id, quantity_tonnes=6,
        ))
        for run_id in runs
    ])

    assert (len(results), len(errors)) == (1, 1)
    assert pipeline.crushing.mix_available(plant.context, batch_id).quantity == pytest.approx(3.0)
