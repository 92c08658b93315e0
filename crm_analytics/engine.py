"""
Engine façade: one snapshot in, insights / recommendations / forecasts /
optimizations out.

    snapshot ──► generate_insights ──► generate_recommendations
            ├──► generate_forecasts      {"revenue", "sales", "customers"}
            └──► generate_optimizations  (prices, inventory, competitors)

Every function here is pure. There is no I/O and no module-level mutable
state, so calls with different snapshots may run concurrently. Callers that
want caching key it on ``(snapshot.content_hash(), horizon, period)``.

Horizon and period are validated up front, before any model runs, so a bad
request fails with ``InvalidConfigurationError`` even when the snapshot has
no forecastable data.
"""

from __future__ import annotations

import logging
from datetime import datetime
from typing import Optional, Sequence

from pydantic import BaseModel, ConfigDict

from crm_analytics.analytics.competitive import assess_competitors
from crm_analytics.analytics.forecasting import (
    CUSTOMER_CONFIDENCE_FLOOR,
    CUSTOMER_DECAY_PER_STEP,
    CUSTOMER_INITIAL_CONFIDENCE,
    DEFAULT_CONFIDENCE_FLOOR,
    DEFAULT_DECAY_RANGE,
    DEFAULT_INITIAL_CONFIDENCE,
    DEFAULT_SEASONAL_FACTORS,
    customer_growth_forecast,
    forecast,
    revenue_series,
    sales_series,
    validate_horizon,
)
from crm_analytics.analytics.optimization import optimize_inventory, optimize_prices
from crm_analytics.insights import generator, recommender
from crm_analytics.models.forecast import ForecastPoint
from crm_analytics.models.insight import Insight, Recommendation
from crm_analytics.models.optimization import OptimizationReport
from crm_analytics.models.snapshot import BusinessDataSnapshot
from crm_analytics.taxonomy.analytics_taxonomy import ForecastPeriod
from crm_analytics.utils.time_utils import parse_period, utcnow

logger = logging.getLogger(__name__)


class EngineResult(BaseModel):
    """Everything one engine run produces, plus provenance.

    Attributes:
        insights: Insights in analysis order.
        recommendations: One per triggering insight, in insight order.
        forecasts: ``metric -> points`` for each metric whose source
            collection was supplied (empty list when it was too short).
        optimizations: Price, inventory and competitor suggestions.
        generated_at: Timestamp stamped on every insight.
        snapshot_hash: ``content_hash()`` of the input snapshot.
        horizon: Number of forecast periods requested.
        period: Calendar unit of one forecast step.
    """

    model_config = ConfigDict(frozen=True)

    insights: list[Insight]
    recommendations: list[Recommendation]
    forecasts: dict[str, list[ForecastPoint]]
    optimizations: OptimizationReport
    generated_at: datetime
    snapshot_hash: str
    horizon: int
    period: ForecastPeriod


def generate_insights(
    snapshot: BusinessDataSnapshot,
    generated_at: Optional[datetime] = None,
) -> list[Insight]:
    """All insights the snapshot supports; see ``insights.generator``."""
    return generator.generate_insights(snapshot, generated_at=generated_at)


def generate_recommendations(
    insights: Sequence[Insight],
    snapshot: Optional[BusinessDataSnapshot] = None,
) -> list[Recommendation]:
    """Action plans for the given insights; see ``insights.recommender``."""
    return recommender.generate_recommendations(insights, snapshot)


def generate_forecasts(
    snapshot: BusinessDataSnapshot,
    horizon: int,
    period: str | ForecastPeriod = ForecastPeriod.MONTH,
    *,
    seasonal_factors: Sequence[float] = DEFAULT_SEASONAL_FACTORS,
    apply_seasonality: bool = True,
    initial_confidence: float = DEFAULT_INITIAL_CONFIDENCE,
    confidence_floor: float = DEFAULT_CONFIDENCE_FLOOR,
    decay_range: float = DEFAULT_DECAY_RANGE,
    customer_initial_confidence: float = CUSTOMER_INITIAL_CONFIDENCE,
    customer_confidence_floor: float = CUSTOMER_CONFIDENCE_FLOOR,
    customer_decay_per_step: float = CUSTOMER_DECAY_PER_STEP,
) -> dict[str, list[ForecastPoint]]:
    """Forecast every metric whose source collection is present.

    Keys:
        ``revenue``   : trend forecast of the revenue series.
        ``sales``     : trend forecast of closed-sales value per period.
        ``customers`` : customer-count growth projection.

    Raises:
        InvalidConfigurationError: Bad horizon, period, seasonal table or
            confidence parameters.
    """
    validate_horizon(horizon)
    step_unit = parse_period(period)

    trend_kwargs = dict(
        seasonal_factors=seasonal_factors,
        apply_seasonality=apply_seasonality,
        initial_confidence=initial_confidence,
        confidence_floor=confidence_floor,
        decay_range=decay_range,
    )

    forecasts: dict[str, list[ForecastPoint]] = {}
    if snapshot.sales is not None:
        forecasts["sales"] = forecast(sales_series(snapshot, step_unit), horizon, step_unit, **trend_kwargs)
    if snapshot.revenue is not None:
        forecasts["revenue"] = forecast(revenue_series(snapshot), horizon, step_unit, **trend_kwargs)
    if snapshot.customers is not None:
        forecasts["customers"] = customer_growth_forecast(
            snapshot.customers,
            horizon,
            step_unit,
            as_of=snapshot.as_of,
            initial_confidence=customer_initial_confidence,
            confidence_floor=customer_confidence_floor,
            decay_per_step=customer_decay_per_step,
        )

    logger.debug(
        "Forecasts: %s",
        ", ".join(f"{k}={len(v)}" for k, v in forecasts.items()) or "none",
    )
    return forecasts


def generate_optimizations(snapshot: BusinessDataSnapshot) -> OptimizationReport:
    """Price, inventory and competitor suggestions for the supplied collections."""
    return OptimizationReport(
        prices=tuple(optimize_prices(snapshot.products or [], snapshot.market)),
        inventory=tuple(optimize_inventory(snapshot.inventory or [])),
        competitors=tuple(assess_competitors(snapshot.competitors or [], snapshot.market)),
    )


def run_engine(
    snapshot: BusinessDataSnapshot,
    horizon: int,
    period: str | ForecastPeriod = ForecastPeriod.MONTH,
    *,
    generated_at: Optional[datetime] = None,
    **forecast_options,
) -> EngineResult:
    """Run the full engine on one snapshot.

    Args:
        snapshot: Business data.
        horizon: Number of forecast periods; must be positive.
        period: Calendar unit of one forecast step.
        generated_at: Insight timestamp; defaults to now (UTC).
        **forecast_options: Passed through to ``generate_forecasts``.

    Raises:
        InvalidConfigurationError: For invalid forecast parameters. Nothing
            else is raised for sparse or degenerate data.
    """
    validate_horizon(horizon)
    step_unit = parse_period(period)
    stamp = generated_at or utcnow()

    forecasts = generate_forecasts(snapshot, horizon, step_unit, **forecast_options)
    insights = generate_insights(snapshot, generated_at=stamp)
    recommendations = generate_recommendations(insights, snapshot)
    optimizations = generate_optimizations(snapshot)

    logger.info(
        "Engine run: %d insights, %d recommendations, %d forecast series",
        len(insights), len(recommendations), len(forecasts),
    )
    return EngineResult(
        insights=insights,
        recommendations=recommendations,
        forecasts=forecasts,
        optimizations=optimizations,
        generated_at=stamp,
        snapshot_hash=snapshot.content_hash(),
        horizon=horizon,
        period=step_unit,
    )
