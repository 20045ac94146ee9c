from collections import defaultdict
from decimal import Decimal
from typing import Dict, Iterable, List

from ...errors import ValidationError
from ...schemas.allocation import IncomeAllocationShare
from .cycles import FrequencyLike, annualize, per_cycle, quantize_money, to_decimal


def calculate_ideal_allocation(
    shares: Iterable[IncomeAllocationShare],
    household_cycle: FrequencyLike,
) -> Decimal:
    """
    Calculates the ideal amount that should flow into one envelope every household pay cycle,
    given the slices of every income source earmarked for it.

    Each share is annualized from its own income frequency, the yearly amounts are summed,
    and the sum is converted back to the household cycle. Rounding to cents happens once,
    at the end, so the result does not depend on the order of the shares.

    Args:
        shares: Allocations towards the envelope, one per income source.
        household_cycle: The household's primary pay cycle.

    Returns:
        Ideal per-household-cycle amount. Zero for an empty list.
    """
    total_annual = Decimal("0")

    for share in shares:
        amount = to_decimal(share.allocation_amount, "allocation_amount")
        if amount < 0:
            raise ValidationError(
                f"Allocation from income source {share.income_source_id} cannot be negative ({amount})."
            )
        total_annual += annualize(amount, share.income_frequency)

    return quantize_money(per_cycle(total_annual, household_cycle))


def calculate_envelope_ideal(
    target_amount,
    bill_frequency: FrequencyLike,
    pay_cycle: FrequencyLike,
) -> Decimal:
    """
    Steady-state per-pay amount for a single bill: what has to be set aside every pay
    so that each occurrence of the bill is covered.

    Example:
        Annual $1,000 bill, fortnightly pay -> 1000 * 1 / 26 = 38.46
        Monthly $200 bill, fortnightly pay  -> 200 * 12 / 26 = 92.31
    """
    target = to_decimal(target_amount, "target_amount")
    if target <= 0:
        return Decimal("0.00")
    return quantize_money(per_cycle(annualize(target, bill_frequency), pay_cycle))


def ideal_per_cycle_by_envelope(streams, household_cycle: FrequencyLike) -> Dict[str, Decimal]:
    """
    Groups the allocations of every income stream by envelope and runs the
    multi-income calculator for each envelope.

    Args:
        streams: IncomeStreamSnapshot-like objects (id, frequency, allocations[envelope_id, amount]).
        household_cycle: The household's primary pay cycle.
    """
    shares_by_envelope: Dict[str, List[IncomeAllocationShare]] = defaultdict(list)

    for stream in streams:
        for allocation in stream.allocations:
            shares_by_envelope[allocation.envelope_id].append(
                IncomeAllocationShare(
                    income_source_id=stream.id,
                    allocation_amount=allocation.amount,
                    income_frequency=stream.frequency,
                )
            )

    return {
        envelope_id: calculate_ideal_allocation(shares, household_cycle)
        for envelope_id, shares in shares_by_envelope.items()
    }
