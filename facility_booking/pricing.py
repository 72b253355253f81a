from __future__ import annotations

from decimal import ROUND_HALF_UP, Decimal, InvalidOperation
from fractions import Fraction

from .errors import ValidationError

MINUTES_PER_HOUR = 60
_CENT = Decimal("0.01")


def duration_hours(duration_minutes: int) -> Fraction:
    return Fraction(duration_minutes, MINUTES_PER_HOUR)


def price_for_duration(duration_minutes: int, hourly_rate_cents: int) -> int:
    """Total price in cents for ``duration_minutes`` at ``hourly_rate_cents``.

    The product is computed exactly; a fractional cent (only possible for
    durations that are not a divisor-friendly number of minutes) is rounded
    half-up.
    """
    if duration_minutes <= 0:
        raise ValidationError("duration must be greater than zero")
    if hourly_rate_cents < 0:
        raise ValidationError("hourly rate cannot be negative")

    exact = duration_hours(duration_minutes) * hourly_rate_cents
    whole, remainder = divmod(exact.numerator, exact.denominator)
    if remainder * 2 >= exact.denominator:
        whole += 1
    return whole


def to_major_units(cents: int) -> Decimal:
    return (Decimal(cents) / 100).quantize(_CENT, rounding=ROUND_HALF_UP)


def parse_money(value: str | int | Decimal) -> int:
    """Convert a major-unit amount ("12.50", 100, Decimal) into cents."""
    if isinstance(value, bool) or isinstance(value, float):
        raise ValidationError("money amounts must be given as int, str or Decimal")
    try:
        amount = Decimal(str(value).strip())
    except InvalidOperation as error:
        raise ValidationError(f"invalid money amount: {value!r}") from error

    if not amount.is_finite() or amount < 0:
        raise ValidationError(f"money amount must be a non-negative number: {value!r}")
    cents = amount * 100
    if cents != cents.to_integral_value():
        raise ValidationError(f"money amount has sub-cent precision: {value!r}")
    return int(cents)


def format_money(cents: int) -> str:
    return str(to_major_units(cents))
