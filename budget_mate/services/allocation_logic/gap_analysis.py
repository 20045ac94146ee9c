import math
from datetime import date
from decimal import Decimal
from typing import Optional

from ...db.enums import GapStatus
from ...errors import ValidationError
from ...schemas.allocation import GapResult
from .cycles import FrequencyLike, days_per_cycle, quantize_money, to_decimal

# Gaps within one cent either side of zero count as on track.
# A gap of exactly +0.01 or -0.01 is on track.
GAP_EPSILON = Decimal("0.01")


def calculate_pay_cycles_elapsed(start_date: date, now: date, pay_cycle: FrequencyLike) -> int:
    """Whole pay cycles between start_date and now, never negative."""
    days_elapsed = (now - start_date).days
    if days_elapsed <= 0:
        return 0
    return max(0, math.floor(Decimal(days_elapsed) / days_per_cycle(pay_cycle)))


def classify_gap(gap: Decimal) -> GapStatus:
    if gap > GAP_EPSILON:
        return GapStatus.AHEAD
    if gap < -GAP_EPSILON:
        return GapStatus.BEHIND
    return GapStatus.ON_TRACK


def analyze_gap(
    current_balance,
    opening_balance,
    ideal_per_cycle,
    bill_cycle_start_date: Optional[date],
    now: date,
    pay_cycle: FrequencyLike,
) -> GapResult:
    """
    Compares an envelope's balance with what it should hold after the pay cycles
    elapsed since its bill cycle started.

        expected = opening + ideal_per_cycle * elapsed
        actual   = current + opening
        gap      = actual - expected     (positive = ahead)

    Without a bill cycle start date there is no schedule to compare against: expected is
    reported as zero and status as on_track, with has_schedule=False.
    """
    current = to_decimal(current_balance, "current_balance")
    opening = to_decimal(opening_balance, "opening_balance")
    ideal = to_decimal(ideal_per_cycle, "ideal_per_cycle")
    if ideal < 0:
        raise ValidationError(f"Ideal per-cycle amount cannot be negative ({ideal}).")

    actual = quantize_money(current + opening)

    if bill_cycle_start_date is None:
        return GapResult(
            expected_balance=Decimal("0.00"),
            actual_balance=actual,
            gap=actual,
            pay_cycles_elapsed=0,
            status=GapStatus.ON_TRACK,
            has_schedule=False,
        )

    elapsed = calculate_pay_cycles_elapsed(bill_cycle_start_date, now, pay_cycle)
    expected = quantize_money(opening + ideal * elapsed)
    gap = actual - expected

    return GapResult(
        expected_balance=expected,
        actual_balance=actual,
        gap=gap,
        pay_cycles_elapsed=elapsed,
        status=classify_gap(gap),
    )
