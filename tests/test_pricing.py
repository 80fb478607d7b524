from decimal import Decimal

import pytest

from posledger.errors import ValidationError
from posledger.models.price_adjustment import AdjustmentKind
from posledger.services.pricing import MAX_PRICE, MAX_RULE_VALUE, compute_new_price, round_price, rule_value


@pytest.mark.parametrize(
    "price, kind, value, expected",
    [
        ("100", AdjustmentKind.PERCENTAGE, "20", "120.00"),
        ("100", AdjustmentKind.PERCENTAGE, "-15", "85.00"),
        ("120", AdjustmentKind.FIXED, "-50", "70.00"),
        ("19.99", AdjustmentKind.FIXED, "0.01", "20.00"),
        ("0", AdjustmentKind.PERCENTAGE, "50", "0.00"),
    ],
)
def test_rules(price, kind, value, expected):
    assert compute_new_price(Decimal(price), kind, Decimal(value)) == Decimal(expected)


def test_accepts_wire_kind_names():
    assert compute_new_price(Decimal("10"), "porcentaje", 10) == Decimal("11.00")
    assert compute_new_price(Decimal("10"), "valor", 2.5) == Decimal("12.50")


def test_result_is_floored_at_zero():
    assert compute_new_price(Decimal("30"), AdjustmentKind.FIXED, Decimal("-50")) == Decimal("0.00")
    assert compute_new_price(Decimal("30"), AdjustmentKind.PERCENTAGE, Decimal("-250")) == Decimal("0.00")


def test_floor_never_yields_negative_zero():
    result = compute_new_price(Decimal("0"), AdjustmentKind.PERCENTAGE, Decimal("-150"))
    assert result == 0
    assert not result.is_signed()


def test_rounds_half_to_even():
    # 11.275 -> 11.28, 0.625 -> 0.62, 0.105 -> 0.10, 0.115 -> 0.12
    assert compute_new_price(Decimal("10.25"), AdjustmentKind.PERCENTAGE, Decimal("10")) == Decimal("11.28")
    assert compute_new_price(Decimal("0.50"), AdjustmentKind.PERCENTAGE, Decimal("25")) == Decimal("0.62")
    assert compute_new_price(Decimal("0.10"), AdjustmentKind.FIXED, Decimal("0.005")) == Decimal("0.10")
    assert compute_new_price(Decimal("0.10"), AdjustmentKind.FIXED, Decimal("0.015")) == Decimal("0.12")


def test_float_values_do_not_leak_binary_noise():
    assert compute_new_price(Decimal("0.70"), AdjustmentKind.FIXED, 0.1) == Decimal("0.80")


@pytest.mark.parametrize("value", [None, "abc", float("nan"), float("inf"), True])
def test_rejects_non_numeric_values(value):
    with pytest.raises(ValidationError):
        compute_new_price(Decimal("10"), AdjustmentKind.FIXED, value)


def test_rejects_unknown_kind():
    with pytest.raises(ValidationError):
        compute_new_price(Decimal("10"), "descuento", Decimal("1"))


def test_rule_value_must_fit_its_column():
    assert rule_value(MAX_RULE_VALUE) == MAX_RULE_VALUE
    assert rule_value(-MAX_RULE_VALUE) == -MAX_RULE_VALUE
    for value in (Decimal("1e27"), MAX_RULE_VALUE + Decimal("0.0001"), -Decimal("1e9")):
        with pytest.raises(ValidationError):
            rule_value(value)


def test_huge_results_are_validation_errors():
    with pytest.raises(ValidationError):
        compute_new_price(Decimal("100"), AdjustmentKind.FIXED, Decimal("1e27"))
    with pytest.raises(ValidationError):
        round_price(Decimal("1e40"))


def test_result_above_price_column_is_rejected():
    assert compute_new_price(MAX_PRICE, AdjustmentKind.FIXED, Decimal("0")) == MAX_PRICE
    with pytest.raises(ValidationError):
        compute_new_price(MAX_PRICE, AdjustmentKind.FIXED, Decimal("0.01"))
