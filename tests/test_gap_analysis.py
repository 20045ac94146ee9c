from datetime import date
from decimal import Decimal

import pytest

from budget_mate.db.enums import Frequency, GapStatus
from budget_mate.errors import ValidationError
from budget_mate.services.allocation_logic.gap_analysis import analyze_gap, calculate_pay_cycles_elapsed

START = date(2025, 1, 1)
NOW = date(2025, 3, 1)  # 59 days later: 4 whole fortnights


def gap_for(current, opening="50", ideal="100", start=START, now=NOW, pay_cycle=Frequency.FORTNIGHTLY):
    return analyze_gap(Decimal(current), Decimal(opening), Decimal(ideal), start, now, pay_cycle)


def test_on_schedule_envelope():
    result = gap_for("400")

    assert result.pay_cycles_elapsed == 4
    assert result.expected_balance == Decimal("450.00")
    assert result.actual_balance == Decimal("450.00")
    assert result.gap == Decimal("0.00")
    assert result.status is GapStatus.ON_TRACK
    assert result.has_schedule


def test_ahead_and_behind():
    ahead = gap_for("460")
    assert ahead.gap == Decimal("60.00")
    assert ahead.status is GapStatus.AHEAD

    behind = gap_for("250")
    assert behind.gap == Decimal("-150.00")
    assert behind.status is GapStatus.BEHIND


@pytest.mark.parametrize(
    "current, status",
    [
        ("400.01", GapStatus.ON_TRACK),  # gap +0.01
        ("400.02", GapStatus.AHEAD),
        ("399.99", GapStatus.ON_TRACK),  # gap -0.01
        ("399.98", GapStatus.BEHIND),
    ],
)
def test_one_cent_boundary(current, status):
    assert gap_for(current).status is status


def test_start_in_future_has_no_elapsed_cycles():
    result = gap_for("0", start=date(2025, 6, 1))

    assert result.pay_cycles_elapsed == 0
    assert result.expected_balance == Decimal("50.00")


def test_missing_start_date_is_flagged():
    result = gap_for("900", start=None)

    assert result.expected_balance == Decimal("0.00")
    assert result.gap == result.actual_balance == Decimal("950.00")
    assert result.pay_cycles_elapsed == 0
    assert result.status is GapStatus.ON_TRACK
    assert result.has_schedule is False


def test_negative_ideal_is_rejected():
    with pytest.raises(ValidationError):
        gap_for("100", ideal="-1")


def test_pay_cycle_none_is_rejected():
    with pytest.raises(ValidationError):
        gap_for("100", pay_cycle=Frequency.NONE)


def test_elapsed_cycles_are_floored():
    # 364 days / 30.42 = 11.97
    assert calculate_pay_cycles_elapsed(date(2025, 1, 1), date(2025, 12, 31), Frequency.MONTHLY) == 11
    # 30 days / 15.2 = 1.97
    assert calculate_pay_cycles_elapsed(date(2025, 1, 1), date(2025, 1, 31), Frequency.TWICE_MONTHLY) == 1
    assert calculate_pay_cycles_elapsed(date(2025, 1, 1), date(2025, 1, 1), Frequency.WEEKLY) == 0
    assert calculate_pay_cycles_elapsed(date(2025, 2, 1), date(2025, 1, 1), Frequency.WEEKLY) == 0
