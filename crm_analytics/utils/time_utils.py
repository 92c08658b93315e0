"""
Calendar helpers for period-based forecasting.

Key concepts:
  - Periods: forecasts step forward by an explicit calendar unit (day, week,
    month, quarter, year). The unit is never inferred from the input spacing.
  - Month arithmetic: advancing Jan 31 by one month lands on Feb 28/29; the
    day-of-month is clamped to the target month's length.
  - Period buckets: every date maps to the first day of the period that
    contains it, so raw records can be summed into a regular series.
"""

from __future__ import annotations

import calendar
from datetime import date, datetime, timedelta, timezone
from typing import Optional

from crm_analytics.errors import InvalidConfigurationError
from crm_analytics.taxonomy.analytics_taxonomy import ForecastPeriod

# Period length expressed in months; used to rescale monthly rates.
PERIOD_MONTH_FRACTION: dict[ForecastPeriod, float] = {
    ForecastPeriod.DAY:     1.0 / 30.0,
    ForecastPeriod.WEEK:    7.0 / 30.0,
    ForecastPeriod.MONTH:   1.0,
    ForecastPeriod.QUARTER: 3.0,
    ForecastPeriod.YEAR:    12.0,
}


def parse_period(period: str | ForecastPeriod) -> ForecastPeriod:
    """Coerce a period string such as ``"month"`` into a ``ForecastPeriod``.

    Raises:
        InvalidConfigurationError: If the string is not a known period.
    """
    try:
        return ForecastPeriod(str(period).strip().lower())
    except ValueError:
        raise InvalidConfigurationError(
            f"Unknown forecast period '{period}'. "
            f"Expected one of {[p.value for p in ForecastPeriod]}."
        ) from None


def add_months(base: date, months: int) -> date:
    """Return ``base`` shifted by ``months`` calendar months (end-of-month clamped)."""
    month_index = base.month - 1 + months
    year = base.year + month_index // 12
    month = month_index % 12 + 1
    day = min(base.day, calendar.monthrange(year, month)[1])
    return date(year, month, day)


def advance_period(base: date, period: str | ForecastPeriod, steps: int = 1) -> date:
    """Advance ``base`` by ``steps`` whole periods.

    Args:
        base: Starting date.
        period: Calendar unit of one step.
        steps: Number of periods to move (may be negative).

    Returns:
        The shifted date.
    """
    p = parse_period(period)
    if p is ForecastPeriod.DAY:
        return base + timedelta(days=steps)
    if p is ForecastPeriod.WEEK:
        return base + timedelta(weeks=steps)
    if p is ForecastPeriod.MONTH:
        return add_months(base, steps)
    if p is ForecastPeriod.QUARTER:
        return add_months(base, 3 * steps)
    return add_months(base, 12 * steps)


def period_start(d: date, period: str | ForecastPeriod) -> date:
    """Return the first day of the period containing ``d``.

    Weeks start on Monday (ISO).
    """
    p = parse_period(period)
    if p is ForecastPeriod.DAY:
        return d
    if p is ForecastPeriod.WEEK:
        return d - timedelta(days=d.weekday())
    if p is ForecastPeriod.MONTH:
        return date(d.year, d.month, 1)
    if p is ForecastPeriod.QUARTER:
        return date(d.year, 3 * ((d.month - 1) // 3) + 1, 1)
    return date(d.year, 1, 1)


def month_span(start: date, end: date) -> list[date]:
    """List the first day of every month from ``start``'s month to ``end``'s month.

    Returns an empty list when ``end`` precedes ``start``.
    """
    first = date(start.year, start.month, 1)
    last = date(end.year, end.month, 1)
    months: list[date] = []
    current = first
    while current <= last:
        months.append(current)
        current = add_months(current, 1)
    return months


def utcnow() -> datetime:
    """Return the current UTC datetime with timezone info.

    Prefer this over ``datetime.utcnow()`` (which returns naive datetimes).
    """
    return datetime.now(tz=timezone.utc)


def today_utc(reference: Optional[datetime] = None) -> date:
    """Return the UTC calendar date of ``reference`` (default: now)."""
    return (reference or utcnow()).astimezone(timezone.utc).date()
