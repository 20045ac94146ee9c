from decimal import Decimal, ROUND_HALF_UP
from typing import Union

from ...db.enums import Frequency
from ...errors import ValidationError

CENT = Decimal("0.01")

# --- CYCLE CONSTANTS ---
# Fixed number of occurrences per year for each frequency.
CYCLES_PER_YEAR: dict[Frequency, int] = {
    Frequency.WEEKLY: 52,
    Frequency.FORTNIGHTLY: 26,
    Frequency.TWICE_MONTHLY: 24,
    Frequency.MONTHLY: 12,
    Frequency.QUARTERLY: 4,
    Frequency.ANNUALLY: 1,
    Frequency.NONE: 0,
}

# Calendar length of one cycle, used to turn elapsed / remaining days into whole cycles.
# Twice-monthly and monthly use the 365-day year approximations (365/24, 365/12).
DAYS_PER_CYCLE: dict[Frequency, Decimal] = {
    Frequency.WEEKLY: Decimal("7"),
    Frequency.FORTNIGHTLY: Decimal("14"),
    Frequency.TWICE_MONTHLY: Decimal("15.2"),
    Frequency.MONTHLY: Decimal("30.42"),
    Frequency.QUARTERLY: Decimal("91.25"),
    Frequency.ANNUALLY: Decimal("365"),
}

# Older rows store the yearly cadence as 'annual'
_FREQUENCY_ALIASES = {"annual": Frequency.ANNUALLY}

FrequencyLike = Union[Frequency, str]


def quantize_money(amount: Decimal) -> Decimal:
    return amount.quantize(CENT, rounding=ROUND_HALF_UP)


def to_decimal(value, field_name: str = "amount") -> Decimal:
    """Coerces ints, strings and Decimals; floats go through str() to avoid binary noise."""
    if isinstance(value, Decimal):
        result = value
    elif isinstance(value, (int, str)) and not isinstance(value, bool):
        try:
            result = Decimal(value)
        except ArithmeticError:
            raise ValidationError(f"{field_name} is not a valid decimal: {value!r}")
    elif isinstance(value, float):
        result = Decimal(str(value))
    else:
        raise ValidationError(f"{field_name} is not a valid decimal: {value!r}")

    if not result.is_finite():
        raise ValidationError(f"{field_name} must be a finite number.")
    return result


def parse_frequency(value: FrequencyLike) -> Frequency:
    """
    Resolves a Frequency from an enum member or its stored string value.

    Raises:
        ValidationError: for anything that is not a known frequency.
    """
    if isinstance(value, Frequency):
        return value
    if isinstance(value, str):
        key = value.strip().lower()
        if key in _FREQUENCY_ALIASES:
            return _FREQUENCY_ALIASES[key]
        try:
            return Frequency(key)
        except ValueError:
            pass
    raise ValidationError(f"Malformed frequency: {value!r}")


def cycles_per_year(frequency: FrequencyLike) -> int:
    return CYCLES_PER_YEAR[parse_frequency(frequency)]


def annualize(amount, frequency: FrequencyLike) -> Decimal:
    """Per-occurrence amount -> yearly amount. Full precision, no rounding."""
    return to_decimal(amount) * cycles_per_year(frequency)


def per_cycle(annual_amount, target_frequency: FrequencyLike) -> Decimal:
    """
    Yearly amount -> amount per target cycle. Full precision, no rounding.
    A target with no cycles per year ('none') yields zero rather than dividing by zero.
    """
    cycles = cycles_per_year(target_frequency)
    if cycles == 0:
        return Decimal("0")
    return to_decimal(annual_amount) / cycles


def days_per_cycle(frequency: FrequencyLike) -> Decimal:
    """
    Raises:
        ValidationError: for 'none', which has no cycle length.
    """
    frequency = parse_frequency(frequency)
    if frequency is Frequency.NONE:
        raise ValidationError("Frequency 'none' has no cycle length and cannot be used for per-cycle math.")
    return DAYS_PER_CYCLE[frequency]


def normalize_to_pay_cycle(amount, source_frequency: FrequencyLike, pay_cycle: FrequencyLike) -> Decimal:
    """
    Converts one per-occurrence amount into the household pay cycle, rounded to cents.

    Example:
        Monthly $3000 income on a fortnightly household: 3000 * 12 / 26 = 1384.62
    """
    return quantize_money(per_cycle(annualize(amount, source_frequency), pay_cycle))
