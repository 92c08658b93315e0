"""
Recommendation rules: map each insight to zero or one action plan.

Rules are evaluated per insight, independently. Several qualifying insights
produce several recommendations; nothing is deduplicated.

  revenue   : trend negative                      -> Revenue Optimization
  customer  : churn rate > 15%                     -> Customer Churn Reduction
  sales     : conversion < 20% or trend negative   -> Sales Process Optimization
  marketing : ROI < 200%                           -> Marketing ROI Optimization
  product   : top-product share > 50%              -> Product Portfolio Diversification

Every rule reads the insight's ``metric_value`` (or its ``trend``), never
the raw snapshot, so a recommendation can be regenerated from a stored
insight alone. When a snapshot is supplied it only enriches the text.
"""

from __future__ import annotations

import logging
from typing import Iterable, NamedTuple, Optional

from crm_analytics.models.insight import Insight, Recommendation
from crm_analytics.models.snapshot import BusinessDataSnapshot
from crm_analytics.taxonomy.analytics_taxonomy import ImpactLevel, InsightType, TrendDirection

logger = logging.getLogger(__name__)


class _Plan(NamedTuple):
    title: str
    description: str
    priority: ImpactLevel
    impact: ImpactLevel
    effort: ImpactLevel
    actions: tuple[str, ...]


# ── Action plans ──────────────────────────────────────────────────────────────

PLANS: dict[InsightType, _Plan] = {
    InsightType.REVENUE: _Plan(
        title="Revenue Optimization",
        description="Implement dynamic pricing and upselling strategies",
        priority=ImpactLevel.HIGH,
        impact=ImpactLevel.HIGH,
        effort=ImpactLevel.MEDIUM,
        actions=(
            "Review pricing strategy",
            "Implement upselling programs",
            "Optimize product mix",
            "Improve customer retention",
        ),
    ),
    InsightType.CUSTOMER: _Plan(
        title="Customer Churn Reduction",
        description="Implement proactive customer success programs",
        priority=ImpactLevel.HIGH,
        impact=ImpactLevel.HIGH,
        effort=ImpactLevel.HIGH,
        actions=(
            "Implement early warning system",
            "Create customer success team",
            "Develop retention campaigns",
            "Improve customer onboarding",
        ),
    ),
    InsightType.SALES: _Plan(
        title="Sales Process Optimization",
        description="Improve lead qualification and sales training",
        priority=ImpactLevel.MEDIUM,
        impact=ImpactLevel.HIGH,
        effort=ImpactLevel.MEDIUM,
        actions=(
            "Implement lead scoring",
            "Provide sales training",
            "Optimize sales funnel",
            "Improve CRM processes",
        ),
    ),
    InsightType.MARKETING: _Plan(
        title="Marketing ROI Optimization",
        description="Optimize marketing spend allocation and channels",
        priority=ImpactLevel.MEDIUM,
        impact=ImpactLevel.MEDIUM,
        effort=ImpactLevel.LOW,
        actions=(
            "Analyze channel performance",
            "Reallocate marketing budget",
            "Improve targeting",
            "Test new channels",
        ),
    ),
    InsightType.PRODUCT: _Plan(
        title="Product Portfolio Diversification",
        description="Reduce revenue dependency on a single product",
        priority=ImpactLevel.MEDIUM,
        impact=ImpactLevel.MEDIUM,
        effort=ImpactLevel.MEDIUM,
        actions=(
            "Identify growth candidates in the catalog",
            "Bundle secondary products with the top seller",
            "Invest in marketing for underperforming lines",
            "Explore adjacent product categories",
        ),
    ),
}

CHURN_RATE_TRIGGER_PCT = 15.0
CONVERSION_RATE_TRIGGER_PCT = 20.0
ROI_TRIGGER_PCT = 200.0
CONCENTRATION_TRIGGER_PCT = 50.0


def is_triggered(insight: Insight) -> bool:
    """True when ``insight`` warrants an action plan."""
    if insight.type is InsightType.REVENUE:
        return insight.trend is TrendDirection.NEGATIVE
    if insight.type is InsightType.CUSTOMER:
        return insight.metric_value > CHURN_RATE_TRIGGER_PCT
    if insight.type is InsightType.SALES:
        return (
            insight.metric_value < CONVERSION_RATE_TRIGGER_PCT
            or insight.trend is TrendDirection.NEGATIVE
        )
    if insight.type is InsightType.MARKETING:
        return insight.metric_value < ROI_TRIGGER_PCT
    if insight.type is InsightType.PRODUCT:
        return insight.metric_value > CONCENTRATION_TRIGGER_PCT
    return False


def recommend(
    insight: Insight,
    snapshot: Optional[BusinessDataSnapshot] = None,
) -> Optional[Recommendation]:
    """Build the recommendation for one insight, or ``None`` if no rule fires."""
    if not is_triggered(insight):
        return None

    plan = PLANS[insight.type]
    description = plan.description
    if snapshot is not None and insight.type is InsightType.MARKETING:
        weakest = _weakest_campaign(snapshot)
        if weakest:
            description = f"{description}; start with {weakest}"

    return Recommendation(
        id=f"rec-{insight.id}",
        title=plan.title,
        description=description,
        priority=plan.priority,
        impact=plan.impact,
        effort=plan.effort,
        category=insight.type,
        actions=plan.actions,
        insight_id=insight.id,
    )


def generate_recommendations(
    insights: Iterable[Insight],
    snapshot: Optional[BusinessDataSnapshot] = None,
) -> list[Recommendation]:
    """Recommendations for every triggering insight, in insight order."""
    recommendations: list[Recommendation] = []
    for insight in insights:
        rec = recommend(insight, snapshot)
        if rec is not None:
            recommendations.append(rec)
    logger.info("Generated %d recommendations", len(recommendations))
    return recommendations


def _weakest_campaign(snapshot: BusinessDataSnapshot) -> Optional[str]:
    """Name of the campaign with the lowest return on positive spend."""
    weakest: Optional[str] = None
    weakest_roi = float("inf")
    for c in snapshot.marketing or []:
        if c.spend <= 0:
            continue
        roi = c.roi if c.roi is not None else (c.revenue - c.spend) / c.spend
        if roi < weakest_roi:
            weakest, weakest_roi = c.name or c.id, roi
    return weakest
