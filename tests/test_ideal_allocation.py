from decimal import Decimal

import pytest

from budget_mate.db.enums import Frequency
from budget_mate.errors import ValidationError
from budget_mate.schemas.allocation import IncomeAllocationShare
from budget_mate.schemas.records import IncomeAllocationSnapshot, IncomeStreamSnapshot
from budget_mate.services.allocation_logic.ideal_allocation import (
    calculate_envelope_ideal,
    calculate_ideal_allocation,
    ideal_per_cycle_by_envelope,
)


def make_share(source, amount, frequency):
    return IncomeAllocationShare(
        income_source_id=source,
        allocation_amount=Decimal(amount),
        income_frequency=frequency,
    )


def test_empty_shares_give_zero():
    assert calculate_ideal_allocation([], Frequency.FORTNIGHTLY) == Decimal("0.00")


def test_single_income_on_household_cycle():
    shares = [make_share("salary", "100", Frequency.FORTNIGHTLY)]
    assert calculate_ideal_allocation(shares, Frequency.FORTNIGHTLY) == Decimal("100.00")


def test_multiple_incomes_are_annualized_then_rounded_once():
    shares = [
        make_share("salary", "500", Frequency.MONTHLY),   # 6000 / year
        make_share("side-job", "50", Frequency.WEEKLY),   # 2600 / year
    ]
    # 8600 / 26 = 330.769...
    assert calculate_ideal_allocation(shares, Frequency.FORTNIGHTLY) == Decimal("330.77")
    assert calculate_ideal_allocation(list(reversed(shares)), Frequency.FORTNIGHTLY) == Decimal("330.77")


def test_household_cycle_none_gives_zero():
    shares = [make_share("salary", "500", Frequency.MONTHLY)]
    assert calculate_ideal_allocation(shares, Frequency.NONE) == Decimal("0.00")


def test_negative_share_is_rejected():
    with pytest.raises(ValidationError):
        calculate_ideal_allocation([make_share("salary", "-1", Frequency.MONTHLY)], Frequency.FORTNIGHTLY)


def test_monotonic_in_each_amount():
    previous = Decimal("-1")
    for amount in ["0", "10", "10.01", "250", "1000"]:
        shares = [
            make_share("salary", amount, Frequency.MONTHLY),
            make_share("bonus", "75", Frequency.QUARTERLY),
        ]
        ideal = calculate_ideal_allocation(shares, Frequency.WEEKLY)
        assert ideal >= previous
        previous = ideal


def test_envelope_ideal_for_single_bill():
    assert calculate_envelope_ideal(Decimal("1000"), Frequency.ANNUALLY, Frequency.FORTNIGHTLY) == Decimal("38.46")
    assert calculate_envelope_ideal(Decimal("200"), Frequency.MONTHLY, Frequency.FORTNIGHTLY) == Decimal("92.31")
    assert calculate_envelope_ideal(Decimal("0"), Frequency.MONTHLY, Frequency.FORTNIGHTLY) == Decimal("0.00")


def test_ideal_per_cycle_grouped_by_envelope():
    streams = [
        IncomeStreamSnapshot(
            id="salary",
            amount=Decimal("2500"),
            frequency=Frequency.FORTNIGHTLY,
            allocations=[
                IncomeAllocationSnapshot(envelope_id="rent", amount=Decimal("100")),
                IncomeAllocationSnapshot(envelope_id="power", amount=Decimal("50")),
            ],
        ),
        IncomeStreamSnapshot(
            id="rental-income",
            amount=Decimal("800"),
            frequency=Frequency.MONTHLY,
            allocations=[IncomeAllocationSnapshot(envelope_id="rent", amount=Decimal("260"))],
        ),
    ]

    ideal = ideal_per_cycle_by_envelope(streams, Frequency.FORTNIGHTLY)

    # rent: (100 * 26 + 260 * 12) / 26 = 220
    assert ideal == {"rent": Decimal("220.00"), "power": Decimal("50.00")}
