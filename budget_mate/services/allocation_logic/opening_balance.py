import calendar
import math
from datetime import date
from decimal import Decimal
from typing import Optional, Union

from dateutil.relativedelta import relativedelta

from ...errors import ValidationError
from ...schemas.allocation import OpeningBalanceResult
from .cycles import FrequencyLike, days_per_cycle, quantize_money, to_decimal

DueDate = Union[date, int]


def resolve_due_date(due: DueDate, now: date) -> date:
    """
    Resolves a due date to a calendar date.

    An absolute date is returned unchanged. A day of month (1-31) resolves to its next
    occurrence on or after `now`: this month if the day has not passed yet, otherwise
    next month. Days beyond the end of the resolved month clamp to its last day.
    """
    if isinstance(due, date):
        return due

    if isinstance(due, bool) or not isinstance(due, int) or not 1 <= due <= 31:
        raise ValidationError(f"Due day must be a day of month between 1 and 31, got {due!r}.")

    if now.day <= due:
        month_start = now.replace(day=1)
    else:
        month_start = now.replace(day=1) + relativedelta(months=1)

    last_day = calendar.monthrange(month_start.year, month_start.month)[1]
    return month_start.replace(day=min(due, last_day))


def calculate_pay_cycles_until_due(days_until_due: int, pay_cycle: FrequencyLike) -> int:
    """Pay cycles left before the due date, at least one."""
    return max(1, math.ceil(Decimal(days_until_due) / days_per_cycle(pay_cycle)))


def calculate_opening_balance(
    target_amount,
    due_date: Optional[DueDate],
    per_cycle_allocation,
    pay_cycle: FrequencyLike,
    now: date,
) -> OpeningBalanceResult:
    """
    Works backward from a due date to the balance an envelope must already hold today,
    given what it will accrue every pay cycle until then.

        cycles_until_due       = max(1, ceil(days_until_due / days_per_cycle))
        projected_accumulation = per_cycle_allocation * cycles_until_due
        opening_balance_needed = max(0, target_amount - projected_accumulation)

    Args:
        target_amount: Amount that must be in the envelope on the due date.
        due_date: Absolute date or day of month.
        per_cycle_allocation: What the envelope receives each pay cycle.
        pay_cycle: Household pay cycle.
        now: Point in time the calculation is made for.

    Returns:
        OpeningBalanceResult. A target of zero or less, or a missing due date, is fully
        funded with nothing needed.
    """
    target = to_decimal(target_amount, "target_amount")

    # No target, or no due date to work back from: nothing is needed up front
    if target <= 0 or due_date is None:
        return OpeningBalanceResult(
            opening_balance_needed=Decimal("0.00"),
            projected_accumulation=Decimal("0.00"),
            is_fully_funded=True,
        )

    per_cycle_amount = to_decimal(per_cycle_allocation, "per_cycle_allocation")
    if per_cycle_amount < 0:
        raise ValidationError(f"Per-cycle allocation cannot be negative ({per_cycle_amount}).")

    target_date = resolve_due_date(due_date, now)
    days_until_due = max(0, (target_date - now).days)
    cycles_until_due = calculate_pay_cycles_until_due(days_until_due, pay_cycle)

    projected = per_cycle_amount * cycles_until_due
    needed = quantize_money(max(Decimal("0"), target - projected))

    return OpeningBalanceResult(
        target_date=target_date,
        days_until_due=days_until_due,
        cycles_until_due=cycles_until_due,
        projected_accumulation=quantize_money(projected),
        opening_balance_needed=needed,
        is_fully_funded=needed == 0,
    )
