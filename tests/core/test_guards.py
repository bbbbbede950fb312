"""Input validators and the guard error taxonomy."""

import uuid
from decimal import Decimal

import pytest

from core.guards.errors import IllegalStateTransition, NotFoundError, ReasonCode, ValidationError
from core.guards.validators import (
    clean_text,
    optional_percentage,
    quantize_money,
    require_id,
    require_money,
    require_non_negative,
    require_percentage,
    require_positive,
    require_text,
)


@pytest.mark.parametrize("value", [0, -1, float("nan"), float("inf"), True, "5"])
def test_positive_rejects(value):
    with pytest.raises(ValidationError, match="Quantity must be greater than zero."):
        require_positive(value, "Quantity")


def test_positive_returns_float():
    assert require_positive(3, "Quantity") == 3.0


def test_non_negative_allows_zero():
    assert require_non_negative(0, "Moisture") == 0.0
    with pytest.raises(ValidationError, match="cannot be negative"):
        require_non_negative(-0.1, "Moisture")


@pytest.mark.parametrize("value", [0, 37.5, 100])
def test_percentage_bounds_inclusive(value):
    assert require_percentage(value, "Fines") == value


def test_percentage_out_of_range():
    with pytest.raises(ValidationError, match="Fines must be between 0 and 100.") as exc:
        require_percentage(100.5, "Fines")
    assert exc.value.rule == "percentage_bounds"


def test_optional_percentage_passes_none():
    assert optional_percentage(None, "Fines") is None


def test_money_is_decimal_rounded_half_up():
    assert require_money(0.1 + 0.2, "Amount") == Decimal("0.30")
    assert require_money(Decimal("2.005"), "Amount") == Decimal("2.01")
    assert require_money("1.23456", "Unit price", places=4) == Decimal("1.2346")
    assert require_money(0, "Tax", allow_zero=True) == Decimal("0.00")


@pytest.mark.parametrize("value", [True, None, "abc", float("nan"), float("inf"), [1]])
def test_money_rejects_non_numbers(value):
    with pytest.raises(ValidationError, match="Amount is invalid.") as exc:
        require_money(value, "Amount")
    assert exc.value.rule == "money"


def test_money_sign_rules():
    with pytest.raises(ValidationError, match="Amount must be greater than zero."):
        require_money(0.004, "Amount")
    with pytest.raises(ValidationError, match="Tax cannot be negative."):
        require_money(-1, "Tax", allow_zero=True)


def test_quantize_money_treats_none_as_zero():
    assert quantize_money(None) == Decimal("0.00")
    assert quantize_money("4374.995") == Decimal("4375.00")


def test_text_is_trimmed():
    assert require_text("  SP-1 ", "Code") == "SP-1"
    with pytest.raises(ValidationError, match="Code is required."):
        require_text("   ", "Code")


def test_clean_text_blank_is_none():
    assert clean_text("   ") is None
    assert clean_text(" wet ") == "wet"


def test_require_id():
    pile_id = uuid.uuid4()
    assert require_id(pile_id, "Stockpile") is pile_id
    with pytest.raises(ValidationError, match="Stockpile is required."):
        require_id(None, "Stockpile")
    with pytest.raises(ValidationError, match="Stockpile is invalid."):
        require_id(str(pile_id), "Stockpile")


def test_error_serialization():
    error = IllegalStateTransition(
        "Cannot start kiln batch in status 'completed'.",
        current_status="completed", action="start", rule="kiln_batch.start",
    )

    assert error.to_dict() == {
        "code": ReasonCode.ILLEGAL_STATE_TRANSITION,
        "message": "Cannot start kiln batch in status 'completed'.",
        "rule": "kiln_batch.start",
        "current_status": "completed",
        "action": "start",
    }
    assert NotFoundError("Pallet not found.").code == "NOT_FOUND"
    assert isinstance(ValidationError("bad"), ValueError)
