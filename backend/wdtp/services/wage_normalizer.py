"""Wage normalization: converts any pay period to integer cents per hour.

All arithmetic is integer-only; division truncates toward zero. Bounds
(MIN_HOURLY_CENTS / MAX_HOURLY_CENTS) are not enforced here, the sanity
scorer's global-bounds tier owns that decision.
"""

from wdtp.models.enums import WagePeriod
from wdtp.services.errors import NormalizationError

DEFAULT_HOURS_PER_WEEK = 40
DEFAULT_SHIFT_HOURS = 8  # shift length is not user-suppliable

MIN_HOURLY_CENTS = 200  # $2.00/hour
MAX_HOURLY_CENTS = 20000  # $200.00/hour

WEEKS_PER_YEAR = 52
MONTHS_PER_YEAR = 12


def _coerce_period(period: WagePeriod | str) -> WagePeriod:
    try:
        return WagePeriod(period)
    except ValueError:
        raise NormalizationError(f"Invalid wage period: {period!r}") from None


def _truncating_div(numerator: int, denominator: int) -> int:
    # Operands are positive after validation, so floor division equals truncation
    result = numerator // denominator
    if result == 0:
        raise NormalizationError(f"{numerator} / {denominator} truncates to zero cents per hour")
    return result


def normalize_to_hourly(
    amount_cents: int,
    period: WagePeriod | str,
    hours_per_week: int | None = None,
) -> int:
    """Return ``amount_cents`` per ``period`` expressed as cents per hour.

    ``hours_per_week`` defaults to 40 for weekly, biweekly, monthly and yearly
    periods. Per-shift amounts always use an 8 hour shift.

    Raises NormalizationError for a non-positive amount, a non-positive
    ``hours_per_week``, an unknown period, or an amount so small the hourly
    rate truncates to zero cents.
    """
    if isinstance(amount_cents, bool) or not isinstance(amount_cents, int):
        raise NormalizationError(f"amount_cents must be an integer, got {amount_cents!r}")
    if amount_cents <= 0:
        raise NormalizationError(f"amount_cents must be positive, got {amount_cents}")

    period = _coerce_period(period)

    if period == WagePeriod.HOURLY:
        return amount_cents
    if period == WagePeriod.PER_SHIFT:
        return _truncating_div(amount_cents, DEFAULT_SHIFT_HOURS)

    hours = DEFAULT_HOURS_PER_WEEK if hours_per_week is None else hours_per_week
    if hours <= 0:
        raise NormalizationError(f"hours_per_week must be positive, got {hours}")

    if period == WagePeriod.WEEKLY:
        return _truncating_div(amount_cents, hours)
    if period == WagePeriod.BIWEEKLY:
        return _truncating_div(amount_cents, 2 * hours)
    if period == WagePeriod.MONTHLY:
        return _truncating_div(amount_cents * MONTHS_PER_YEAR, WEEKS_PER_YEAR * hours)
    if period == WagePeriod.YEARLY:
        return _truncating_div(amount_cents, WEEKS_PER_YEAR * hours)

    raise NormalizationError(f"Invalid wage period: {period!r}")


def within_global_bounds(hourly_cents: int) -> bool:
    return MIN_HOURLY_CENTS <= hourly_cents <= MAX_HOURLY_CENTS


def format_cents(cents: int | None) -> str:
    """Format cents as a dollar string, e.g. 288400 -> '$2,884.00'."""
    if cents is None:
        return "$0.00"
    sign = "-" if cents < 0 else ""
    dollars, remainder = divmod(abs(cents), 100)
    return f"{sign}${dollars:,}.{remainder:02d}"
