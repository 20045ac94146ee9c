from datetime import date, timedelta
from decimal import Decimal

import pytest

from budget_mate.db.enums import Frequency
from budget_mate.errors import ValidationError
from budget_mate.services.allocation_logic.opening_balance import calculate_opening_balance, resolve_due_date

NOW = date(2025, 1, 1)


def test_ninety_days_out_on_fortnightly_pay():
    result = calculate_opening_balance(
        Decimal("2200"), NOW + timedelta(days=90), Decimal("200"), Frequency.FORTNIGHTLY, NOW
    )

    assert result.target_date == date(2025, 4, 1)
    assert result.days_until_due == 90
    assert result.cycles_until_due == 7  # ceil(90 / 14)
    assert result.projected_accumulation == Decimal("1400.00")
    assert result.opening_balance_needed == Decimal("800.00")
    assert result.is_fully_funded is False


def test_accrual_covering_target_is_fully_funded():
    result = calculate_opening_balance(
        Decimal("1000"), NOW + timedelta(days=90), Decimal("200"), Frequency.FORTNIGHTLY, NOW
    )

    assert result.opening_balance_needed == Decimal("0.00")
    assert result.is_fully_funded is True


def test_zero_target_short_circuits():
    result = calculate_opening_balance(Decimal("0"), NOW + timedelta(days=30), Decimal("-5"), Frequency.WEEKLY, NOW)

    assert result.is_fully_funded
    assert result.opening_balance_needed == Decimal("0.00")
    assert result.target_date is None


def test_missing_due_date_needs_nothing():
    result = calculate_opening_balance(Decimal("500"), None, Decimal("10"), Frequency.WEEKLY, NOW)

    assert result.is_fully_funded
    assert result.opening_balance_needed == Decimal("0.00")


def test_past_due_date_still_counts_one_cycle():
    result = calculate_opening_balance(
        Decimal("500"), NOW - timedelta(days=3), Decimal("100"), Frequency.FORTNIGHTLY, NOW
    )

    assert result.days_until_due == 0
    assert result.cycles_until_due == 1
    assert result.opening_balance_needed == Decimal("400.00")


def test_due_day_of_month():
    result = calculate_opening_balance(Decimal("500"), 15, Decimal("100"), Frequency.FORTNIGHTLY, NOW)

    assert result.target_date == date(2025, 1, 15)
    assert result.cycles_until_due == 1
    assert result.opening_balance_needed == Decimal("400.00")


def test_higher_accrual_never_needs_more():
    previous = None
    for per_cycle in ["0", "50", "100", "199.99", "200", "400", "1000"]:
        needed = calculate_opening_balance(
            Decimal("2200"), NOW + timedelta(days=90), Decimal(per_cycle), Frequency.FORTNIGHTLY, NOW
        ).opening_balance_needed
        if previous is not None:
            assert needed <= previous
        previous = needed


def test_negative_per_cycle_is_rejected():
    with pytest.raises(ValidationError):
        calculate_opening_balance(Decimal("500"), NOW + timedelta(days=30), Decimal("-1"), Frequency.WEEKLY, NOW)


@pytest.mark.parametrize(
    "now, day, expected",
    [
        (date(2025, 1, 10), 15, date(2025, 1, 15)),
        (date(2025, 1, 10), 10, date(2025, 1, 10)),
        (date(2025, 1, 10), 5, date(2025, 2, 5)),
        (date(2025, 2, 10), 31, date(2025, 2, 28)),
        (date(2025, 1, 31), 30, date(2025, 2, 28)),
        (date(2024, 12, 20), 1, date(2025, 1, 1)),
    ],
)
def test_resolve_due_day(now, day, expected):
    assert resolve_due_date(day, now) == expected


def test_resolve_absolute_date_is_unchanged():
    assert resolve_due_date(date(2025, 7, 4), NOW) == date(2025, 7, 4)


@pytest.mark.parametrize("day", [0, 32, -1, True])
def test_resolve_rejects_bad_days(day):
    with pytest.raises(ValidationError):
        resolve_due_date(day, NOW)
