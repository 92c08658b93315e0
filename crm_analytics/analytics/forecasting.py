"""
Trend forecasting with seasonal adjustment and decaying confidence.

Model
-----
An ordinary-least-squares line is fitted over the *index positions*
``0..n-1`` of the series, not over calendar time, so irregular spacing in
the input does not distort the slope::

    slope     = (n*Sxy - Sx*Sy) / (n*Sxx - Sx^2)
    intercept = (Sy - slope*Sx) / n

Step ``i`` (1-based) of the horizon projects::

    value(i)      = max(0, (slope*(n-1+i) + intercept) * seasonal[i mod 12])
    confidence(i) = max(floor, initial - (i/horizon) * decay_range)

Dates advance from the last observed date by ``i`` periods of an explicitly
chosen calendar unit.

Customer growth
---------------
Customer *count* is projected differently: the average number of customers
acquired per month (over the observed acquisition span) is rescaled to the
forecast period and added cumulatively to the current total, with its own
confidence decay of ``max(floor, initial - (i-1)*decay_per_step)``.

Everything here is deterministic: identical input gives identical output.
"""

from __future__ import annotations

import logging
import math
from collections import defaultdict
from datetime import date
from typing import Optional, Sequence

from crm_analytics.errors import InvalidConfigurationError
from crm_analytics.models.forecast import ForecastPoint, SeriesPoint
from crm_analytics.models.snapshot import BusinessDataSnapshot, CustomerRecord
from crm_analytics.taxonomy.analytics_taxonomy import ForecastPeriod
from crm_analytics.utils.time_utils import (
    PERIOD_MONTH_FRACTION,
    advance_period,
    month_span,
    parse_period,
    period_start,
    today_utc,
)

logger = logging.getLogger(__name__)

MIN_SERIES_LENGTH = 3
SEASONAL_TABLE_LENGTH = 12

DEFAULT_SEASONAL_FACTORS: tuple[float, ...] = (
    1.0, 0.95, 1.05, 1.1, 1.0, 0.9, 0.85, 0.9, 1.05, 1.1, 1.15, 1.2,
)
DEFAULT_INITIAL_CONFIDENCE = 0.9
DEFAULT_CONFIDENCE_FLOOR = 0.3
DEFAULT_DECAY_RANGE = 0.6

CUSTOMER_INITIAL_CONFIDENCE = 0.8
CUSTOMER_CONFIDENCE_FLOOR = 0.4
CUSTOMER_DECAY_PER_STEP = 0.04


# ── Validation ────────────────────────────────────────────────────────────────

def validate_horizon(horizon: int) -> int:
    """Reject non-integer or non-positive horizons."""
    if isinstance(horizon, bool) or not isinstance(horizon, int) or horizon <= 0:
        raise InvalidConfigurationError(
            f"horizon must be a positive integer number of periods, got {horizon!r}."
        )
    return horizon


def validate_seasonal_factors(factors: Sequence[float]) -> tuple[float, ...]:
    """Require exactly 12 finite, strictly positive factors."""
    try:
        values = tuple(float(f) for f in factors)
    except (TypeError, ValueError):
        raise InvalidConfigurationError(
            f"seasonal_factors must be a sequence of {SEASONAL_TABLE_LENGTH} numbers, got {factors!r}."
        ) from None
    if len(values) != SEASONAL_TABLE_LENGTH:
        raise InvalidConfigurationError(
            f"seasonal_factors must have {SEASONAL_TABLE_LENGTH} entries, got {len(values)}."
        )
    if any(not math.isfinite(f) or f <= 0 for f in values):
        raise InvalidConfigurationError(
            f"seasonal_factors must be finite and > 0, got {list(values)}."
        )
    return values


def validate_confidence_params(initial: float, floor: float, decay: float) -> tuple[float, float, float]:
    """Require ``0 <= floor <= initial <= 1`` and a non-negative decay; return them as floats."""
    try:
        initial, floor, decay = float(initial), float(floor), float(decay)
    except (TypeError, ValueError):
        raise InvalidConfigurationError(
            f"confidence parameters must be numbers, got initial={initial!r}, "
            f"floor={floor!r}, decay={decay!r}."
        ) from None
    if not 0.0 <= floor <= initial <= 1.0:
        raise InvalidConfigurationError(
            f"confidence bounds must satisfy 0 <= floor <= initial <= 1, "
            f"got floor={floor}, initial={initial}."
        )
    if decay < 0 or not math.isfinite(decay):
        raise InvalidConfigurationError(f"confidence decay must be >= 0, got {decay}.")
    return initial, floor, decay


# ── Trend model ───────────────────────────────────────────────────────────────

def fit_linear_trend(values: Sequence[float]) -> tuple[float, float]:
    """OLS fit of ``values`` against their index positions.

    Returns:
        ``(slope, intercept)``. A single value gives slope 0.

    Raises:
        ValueError: If ``values`` is empty.
    """
    n = len(values)
    if n == 0:
        raise ValueError("Cannot fit a trend to an empty series.")
    if n == 1:
        return 0.0, float(values[0])

    sum_x = n * (n - 1) / 2
    sum_xx = n * (n - 1) * (2 * n - 1) / 6
    sum_y = math.fsum(values)
    sum_xy = math.fsum(i * v for i, v in enumerate(values))

    # n >= 2 keeps the denominator strictly positive.
    denominator = n * sum_xx - sum_x * sum_x
    slope = (n * sum_xy - sum_x * sum_y) / denominator
    intercept = (sum_y - slope * sum_x) / n
    return slope, intercept


def decayed_confidence(step: int, horizon: int, initial: float, floor: float, decay_range: float) -> float:
    """Linear confidence decay across the horizon, floored."""
    return max(floor, initial - (step / horizon) * decay_range)


def forecast(
    series: Sequence[SeriesPoint],
    horizon: int,
    period: str | ForecastPeriod,
    *,
    seasonal_factors: Sequence[float] = DEFAULT_SEASONAL_FACTORS,
    apply_seasonality: bool = True,
    initial_confidence: float = DEFAULT_INITIAL_CONFIDENCE,
    confidence_floor: float = DEFAULT_CONFIDENCE_FLOOR,
    decay_range: float = DEFAULT_DECAY_RANGE,
) -> list[ForecastPoint]:
    """Project ``series`` forward ``horizon`` periods.

    Args:
        series: Observations in chronological order (oldest first).
        horizon: Number of future periods; must be positive.
        period: Calendar unit of one step (``"day"``, ``"week"``, ``"month"``,
            ``"quarter"``, ``"year"``).
        seasonal_factors: 12 multiplicative factors indexed by ``step mod 12``.
        apply_seasonality: Set ``False`` for a pure trend projection.
        initial_confidence: Confidence before any decay.
        confidence_floor: Lowest confidence reported.
        decay_range: Total confidence lost across the full horizon.

    Returns:
        Exactly ``horizon`` points, or ``[]`` when the series has fewer than
        3 observations.

    Raises:
        InvalidConfigurationError: For a bad horizon, period, seasonal table
            or confidence parameters.
    """
    validate_horizon(horizon)
    step_unit = parse_period(period)
    factors = validate_seasonal_factors(seasonal_factors)
    initial_confidence, confidence_floor, decay_range = validate_confidence_params(
        initial_confidence, confidence_floor, decay_range
    )

    if len(series) < MIN_SERIES_LENGTH:
        logger.debug(
            "Forecast skipped: %d observations (< %d required)", len(series), MIN_SERIES_LENGTH
        )
        return []

    values = [p.value for p in series]
    slope, intercept = fit_linear_trend(values)
    n = len(values)
    last_date = series[-1].date

    points: list[ForecastPoint] = []
    for step in range(1, horizon + 1):
        projected = slope * (n - 1 + step) + intercept
        if apply_seasonality:
            projected *= factors[step % SEASONAL_TABLE_LENGTH]
        points.append(
            ForecastPoint(
                date=advance_period(last_date, step_unit, step),
                value=max(0.0, projected),
                confidence=decayed_confidence(
                    step, horizon, initial_confidence, confidence_floor, decay_range
                ),
            )
        )

    logger.debug(
        "Forecast: n=%d slope=%.4f intercept=%.4f horizon=%d period=%s",
        n, slope, intercept, horizon, step_unit,
    )
    return points


# ── Customer growth ───────────────────────────────────────────────────────────

def average_monthly_acquisitions(customers: Sequence[CustomerRecord]) -> float:
    """Mean customers acquired per calendar month over the observed span.

    Months inside the span with no acquisitions count as zero. Returns 0.0
    when fewer than two distinct months are observed.
    """
    created = sorted(c.created_at for c in customers if c.created_at is not None)
    if not created:
        return 0.0

    months = month_span(created[0], created[-1])
    if len(months) < 2:
        return 0.0

    counts: dict[date, int] = defaultdict(int)
    for d in created:
        counts[period_start(d, ForecastPeriod.MONTH)] += 1
    return sum(counts[m] for m in months) / len(months)


def customer_growth_forecast(
    customers: Sequence[CustomerRecord],
    horizon: int,
    period: str | ForecastPeriod = ForecastPeriod.MONTH,
    *,
    as_of: Optional[date] = None,
    initial_confidence: float = CUSTOMER_INITIAL_CONFIDENCE,
    confidence_floor: float = CUSTOMER_CONFIDENCE_FLOOR,
    decay_per_step: float = CUSTOMER_DECAY_PER_STEP,
) -> list[ForecastPoint]:
    """Project the customer count forward by average monthly increase.

    Args:
        customers: Current customer records; the count is ``len(customers)``.
        horizon: Number of future periods; must be positive.
        period: Calendar unit of one step.
        as_of: Base date; defaults to the latest ``created_at``, then today.
        initial_confidence: Confidence of the first step.
        confidence_floor: Lowest confidence reported.
        decay_per_step: Confidence lost per step.

    Returns:
        ``horizon`` points with whole-customer values, or ``[]`` when there
        are no customers.
    """
    validate_horizon(horizon)
    step_unit = parse_period(period)
    initial_confidence, confidence_floor, decay_per_step = validate_confidence_params(
        initial_confidence, confidence_floor, decay_per_step
    )

    if not customers:
        logger.debug("Customer growth forecast skipped: no customers")
        return []

    per_period = average_monthly_acquisitions(customers) * PERIOD_MONTH_FRACTION[step_unit]
    current = float(len(customers))

    base = as_of
    if base is None:
        created = [c.created_at for c in customers if c.created_at is not None]
        base = max(created) if created else today_utc()

    points: list[ForecastPoint] = []
    for step in range(1, horizon + 1):
        projected = current + per_period * step
        points.append(
            ForecastPoint(
                date=advance_period(base, step_unit, step),
                value=float(max(0, round(projected))),
                confidence=max(confidence_floor, initial_confidence - (step - 1) * decay_per_step),
            )
        )
    return points


# ── Series builders ───────────────────────────────────────────────────────────

def revenue_series(snapshot: BusinessDataSnapshot) -> list[SeriesPoint]:
    """Revenue points as a series, in the order supplied."""
    return [SeriesPoint(date=p.date, value=p.amount) for p in snapshot.revenue or []]


def sales_series(
    snapshot: BusinessDataSnapshot,
    period: str | ForecastPeriod = ForecastPeriod.MONTH,
) -> list[SeriesPoint]:
    """Closed-sales value summed per period bucket, oldest bucket first.

    Open deals and sales without a date are excluded. Buckets between the
    first and last sale with no closed sales are not filled in.
    """
    step_unit = parse_period(period)
    buckets: dict[date, float] = defaultdict(float)
    for sale in snapshot.sales or []:
        if sale.closed and sale.date is not None:
            buckets[period_start(sale.date, step_unit)] += sale.amount
    return [SeriesPoint(date=d, value=buckets[d]) for d in sorted(buckets)]
