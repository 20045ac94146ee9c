from decimal import Decimal

import pytest

from budget_mate.db.enums import Frequency
from budget_mate.errors import ValidationError
from budget_mate.services.allocation_logic.cycles import (
    annualize,
    cycles_per_year,
    days_per_cycle,
    normalize_to_pay_cycle,
    parse_frequency,
    per_cycle,
    quantize_money,
    to_decimal,
)


def test_cycles_per_year_table():
    assert cycles_per_year(Frequency.WEEKLY) == 52
    assert cycles_per_year("fortnightly") == 26
    assert cycles_per_year("twice_monthly") == 24
    assert cycles_per_year(Frequency.MONTHLY) == 12
    assert cycles_per_year(Frequency.QUARTERLY) == 4
    assert cycles_per_year(Frequency.ANNUALLY) == 1
    assert cycles_per_year(Frequency.NONE) == 0


def test_parse_frequency_accepts_stored_values_and_alias():
    assert parse_frequency(Frequency.WEEKLY) is Frequency.WEEKLY
    assert parse_frequency(" Monthly ") is Frequency.MONTHLY
    assert parse_frequency("annual") is Frequency.ANNUALLY


@pytest.mark.parametrize("value", ["hourly", "", None, 12])
def test_parse_frequency_rejects_unknown(value):
    with pytest.raises(ValidationError):
        parse_frequency(value)


def test_annualize_and_per_cycle():
    assert annualize(Decimal("100"), Frequency.WEEKLY) == Decimal("5200")
    assert per_cycle(Decimal("2600"), Frequency.FORTNIGHTLY) == Decimal("100")
    # no cycles per year: zero instead of a division error
    assert per_cycle(Decimal("1200"), Frequency.NONE) == Decimal("0")


def test_days_per_cycle():
    assert days_per_cycle(Frequency.FORTNIGHTLY) == Decimal("14")
    assert days_per_cycle("twice_monthly") == Decimal("15.2")
    assert days_per_cycle(Frequency.MONTHLY) == Decimal("30.42")
    with pytest.raises(ValidationError):
        days_per_cycle(Frequency.NONE)


def test_normalize_to_pay_cycle():
    # 3000 * 12 / 26 = 1384.615...
    assert normalize_to_pay_cycle(Decimal("3000"), Frequency.MONTHLY, Frequency.FORTNIGHTLY) == Decimal("1384.62")
    assert normalize_to_pay_cycle(Decimal("500"), Frequency.WEEKLY, Frequency.WEEKLY) == Decimal("500.00")


def test_money_helpers():
    assert quantize_money(Decimal("2.345")) == Decimal("2.35")
    assert quantize_money(Decimal("2.344")) == Decimal("2.34")
    assert to_decimal(0.1) == Decimal("0.1")
    assert to_decimal("12.50") == Decimal("12.50")
    assert to_decimal(7) == Decimal("7")


@pytest.mark.parametrize("value", ["abc", Decimal("NaN"), Decimal("Infinity"), True, None, [1]])
def test_to_decimal_rejects_garbage(value):
    with pytest.raises(ValidationError):
        to_decimal(value, "amount")
