"""
Insight generation: one analysis per business domain.

Each ``analyze_*`` function reads only the snapshot collections it needs and
returns ``None`` when they are missing, too small, or would require dividing
by zero. ``generate_insights`` runs all five in a fixed order and keeps
whatever comes back, so a sparse snapshot gives a shorter list, never an error.

Analyses and their required inputs
----------------------------------
  revenue   : ``revenue`` with >= 2 points and a non-zero previous value
  customer  : non-empty ``customers``
  sales     : non-empty ``sales`` (``targets`` and ``leads`` optional)
  marketing : non-empty ``marketing`` with positive total spend
              (``conversions`` optional)
  product   : ``products`` with positive total revenue, else ``sales``
              carrying product ids

Confidence values are fixed per analysis (see the ``*_CONFIDENCE``
constants), not estimated from the data.
"""

from __future__ import annotations

import logging
import math
from collections import defaultdict
from datetime import date, datetime, timedelta
from typing import Callable, Optional

from crm_analytics.analytics.attribution import analyze_attribution, top_campaign
from crm_analytics.analytics.forecasting import fit_linear_trend
from crm_analytics.analytics.scoring import churn_probability, score_lead
from crm_analytics.analytics.segmentation import segment
from crm_analytics.models.insight import Insight
from crm_analytics.models.snapshot import BusinessDataSnapshot, Campaign
from crm_analytics.taxonomy.analytics_taxonomy import (
    CustomerSegment,
    ImpactLevel,
    InsightType,
    LeadGrade,
    TrendDirection,
)
from crm_analytics.utils.time_utils import utcnow

logger = logging.getLogger(__name__)

REVENUE_CONFIDENCE = 0.85
CUSTOMER_CONFIDENCE = 0.78
SALES_TARGET_CONFIDENCE = 0.92
SALES_CONVERSION_CONFIDENCE = 0.82
MARKETING_WITH_CONVERSIONS_CONFIDENCE = 0.81
MARKETING_SPEND_ONLY_CONFIDENCE = 0.75
PRODUCT_CATALOG_CONFIDENCE = 0.88
PRODUCT_FROM_SALES_CONFIDENCE = 0.75

CHURN_RISK_SCORE_THRESHOLD = 70.0
HIGH_CHURN_RATE_PCT = 15.0
ACTIVE_WINDOW_DAYS = 30
PRODUCT_CONCENTRATION_PCT = 50.0

Analysis = Callable[[BusinessDataSnapshot, datetime], Optional[Insight]]


# ── Revenue ───────────────────────────────────────────────────────────────────

def analyze_revenue_trend(snapshot: BusinessDataSnapshot, generated_at: datetime) -> Optional[Insight]:
    """Period-over-period growth of the last two revenue points.

    impact: |growth| > 20% high, > 10% medium, else low (strict).
    """
    points = snapshot.revenue
    if not points or len(points) < 2:
        return None

    current = points[-1].amount
    previous = points[-2].amount
    if previous == 0:
        logger.debug("Revenue insight skipped: previous period revenue is 0")
        return None

    # abs() keeps the sign of growth equal to the direction of change.
    growth = (current - previous) * 100.0 / abs(previous)

    if growth > 0:
        title, verb = "Revenue Growth Detected", "increased"
    elif growth < 0:
        title, verb = "Revenue Decline Alert", "decreased"
    else:
        title, verb = "Revenue Holding Steady", "changed"

    if growth < -10:
        recommendation = "Consider reviewing pricing strategy and customer retention programs."
    elif growth < 0:
        recommendation = "Monitor the decline closely and review sales processes."
    else:
        recommendation = "Maintain current growth strategies and explore expansion opportunities."

    metrics = {
        "growth_pct": growth,
        "current_revenue": current,
        "previous_revenue": previous,
    }
    if len(points) >= 3:
        slope, intercept = fit_linear_trend([p.amount for p in points])
        metrics["next_period_projection"] = max(0.0, slope * len(points) + intercept)

    return Insight(
        id=_insight_id("revenue-trend", generated_at),
        type=InsightType.REVENUE,
        title=title,
        description=f"Revenue has {verb} by {abs(growth):.1f}% compared to the previous period.",
        impact=_tiered_impact(abs(growth), high_above=20.0, medium_above=10.0),
        trend=_trend_from_sign(growth),
        confidence=REVENUE_CONFIDENCE,
        recommendation=recommendation,
        timestamp=generated_at,
        metric_value=growth,
        metrics=metrics,
    )


# ── Customer ──────────────────────────────────────────────────────────────────

def analyze_customer_behavior(snapshot: BusinessDataSnapshot, generated_at: datetime) -> Optional[Insight]:
    """Share of customers at churn risk.

    A customer is at risk when its ``risk_score`` exceeds 70 or its status is
    ``"churned"``. Without a ``risk_score`` the churn model's probability
    (scaled to 0-100) is used instead.
    """
    customers = snapshot.customers
    if not customers:
        return None

    reference = snapshot.as_of or generated_at.date()
    total = len(customers)

    at_risk = 0
    for c in customers:
        risk = c.risk_score if c.risk_score is not None else churn_probability(c, reference) * 100.0
        if risk > CHURN_RISK_SCORE_THRESHOLD or (c.status or "").lower() == "churned":
            at_risk += 1

    churn_rate = at_risk * 100.0 / total
    avg_lifetime_value = math.fsum(c.lifetime_value for c in customers) / total
    active = sum(1 for c in customers if _is_recent(c.last_activity, reference))

    segments = segment(customers, as_of=reference)
    champions = len(segments[CustomerSegment.CHAMPIONS.value])
    dormant = len(segments[CustomerSegment.HIBERNATING.value]) + len(segments[CustomerSegment.LOST.value])

    high_churn = churn_rate > HIGH_CHURN_RATE_PCT
    return Insight(
        id=_insight_id("customer-behavior", generated_at),
        type=InsightType.CUSTOMER,
        title="High Customer Churn Risk" if high_churn else "Customer Engagement Insights",
        description=(
            f"{churn_rate:.1f}% of customers are at risk of churning. "
            f"{active} customers were active in the last {ACTIVE_WINDOW_DAYS} days; "
            f"average lifetime value is ${avg_lifetime_value:,.0f}."
        ),
        impact=_tiered_impact(churn_rate, high_above=20.0, medium_above=10.0),
        trend=TrendDirection.NEGATIVE if high_churn else TrendDirection.POSITIVE,
        confidence=CUSTOMER_CONFIDENCE,
        recommendation=(
            "Implement customer retention campaigns and personalized outreach."
            if high_churn
            else "Continue nurturing customer relationships and expand engagement programs."
        ),
        timestamp=generated_at,
        metric_value=churn_rate,
        metrics={
            "churn_rate_pct": churn_rate,
            "at_risk_customers": float(at_risk),
            "total_customers": float(total),
            "active_customers": float(active),
            "avg_lifetime_value": avg_lifetime_value,
            "champions": float(champions),
            "hibernating_or_lost": float(dormant),
        },
    )


# ── Sales ─────────────────────────────────────────────────────────────────────

def analyze_sales_performance(snapshot: BusinessDataSnapshot, generated_at: datetime) -> Optional[Insight]:
    """Conversion rate, and attainment of the monthly revenue target when one is set.

    With a positive target, impact scales with the deviation from 100% of
    target (> 20 points high, > 10 medium, else low). Without one (missing
    or zero), impact comes from the conversion rate alone.
    """
    sales = snapshot.sales
    if not sales:
        return None

    closed = [s for s in sales if s.closed]
    conversion_rate = len(closed) * 100.0 / len(sales)
    closed_value = math.fsum(s.amount for s in closed)
    avg_deal_size = closed_value / len(closed) if closed else 0.0

    metrics = {
        "conversion_rate_pct": conversion_rate,
        "closed_deals": float(len(closed)),
        "total_deals": float(len(sales)),
        "closed_value": closed_value,
        "avg_deal_size": avg_deal_size,
    }

    target = snapshot.targets.monthly_revenue if snapshot.targets else None
    if target is not None and target > 0:
        achievement = closed_value * 100.0 / target
        metrics["target"] = target
        metrics["target_achievement_pct"] = achievement
        on_target = achievement >= 100.0
        title = "Sales Target Exceeded" if on_target else "Sales Performance Alert"
        description = (
            f"Current sales performance is at {achievement:.1f}% of target "
            f"({closed_value:,.0f} / {target:,.0f}) with a {conversion_rate:.1f}% conversion rate."
        )
        impact = _tiered_impact(abs(achievement - 100.0), high_above=20.0, medium_above=10.0)
        trend = TrendDirection.POSITIVE if on_target else TrendDirection.NEGATIVE
        recommendation = (
            "Focus on high-value prospects and accelerate deal closure."
            if achievement < 80.0
            else "Maintain momentum and explore upselling opportunities."
        )
        confidence = SALES_TARGET_CONFIDENCE
    else:
        title = "Sales Performance Analysis"
        description = (
            f"Conversion rate is {conversion_rate:.1f}% with average deal size of "
            f"${avg_deal_size:,.0f}."
        )
        if conversion_rate < 20:
            impact = ImpactLevel.HIGH
        elif conversion_rate < 30:
            impact = ImpactLevel.MEDIUM
        else:
            impact = ImpactLevel.LOW
        trend = TrendDirection.POSITIVE if conversion_rate > 25 else TrendDirection.NEUTRAL
        recommendation = (
            "Focus on lead qualification and sales training."
            if conversion_rate < 20
            else "Optimize deal closing processes."
        )
        confidence = SALES_CONVERSION_CONFIDENCE

    if snapshot.leads:
        grade_a = sum(1 for lead in snapshot.leads if score_lead(lead).grade is LeadGrade.A)
        metrics["grade_a_leads"] = float(grade_a)
        description += f" {grade_a} grade-A leads are in the pipeline."

    return Insight(
        id=_insight_id("sales-performance", generated_at),
        type=InsightType.SALES,
        title=title,
        description=description,
        impact=impact,
        trend=trend,
        confidence=confidence,
        recommendation=recommendation,
        timestamp=generated_at,
        metric_value=conversion_rate,
        metrics=metrics,
    )


# ── Marketing ─────────────────────────────────────────────────────────────────

def analyze_marketing_effectiveness(snapshot: BusinessDataSnapshot, generated_at: datetime) -> Optional[Insight]:
    """Blended ROI and cost per conversion across campaigns.

    impact: ROI < 200% high, < 400% medium, else low.
    """
    campaigns = snapshot.marketing
    if not campaigns:
        return None

    spend = math.fsum(c.spend for c in campaigns)
    if spend <= 0:
        logger.debug("Marketing insight skipped: total spend is 0")
        return None
    revenue = math.fsum(c.revenue for c in campaigns)
    roi = (revenue - spend) * 100.0 / spend

    if any(c.conversions is not None for c in campaigns):
        conversions, has_conversion_data = sum(c.conversions or 0 for c in campaigns), True
    elif snapshot.conversions is not None:
        conversions, has_conversion_data = len(snapshot.conversions), True
    else:
        conversions, has_conversion_data = 0, False
    # No conversions: report a cost per conversion of 0 instead of dividing by zero.
    cost_per_conversion = spend / conversions if conversions else 0.0

    metrics = {
        "roi_pct": roi,
        "spend": spend,
        "revenue": revenue,
        "conversions": float(conversions),
        "cost_per_conversion": cost_per_conversion,
    }

    parts = [f"Marketing ROI is {roi:.1f}% on ${spend:,.0f} of spend."]
    if conversions:
        parts.append(f"Cost per conversion: ${cost_per_conversion:,.2f}.")

    best = _best_roi_campaign(campaigns)
    if best is not None:
        best_campaign, best_roi = best
        metrics["top_campaign_roi_pct"] = best_roi * 100.0
        parts.append(
            f"Top performing channel: {best_campaign.name or best_campaign.id} "
            f"with {best_roi * 100.0:.1f}% ROI."
        )

    if snapshot.conversions:
        leader = top_campaign(analyze_attribution(campaigns, snapshot.conversions))
        if leader is not None:
            metrics["top_attributed_revenue"] = leader.time_decay.revenue
            parts.append(
                f"{leader.campaign_name or leader.campaign_id} earns the most "
                f"time-decay attributed revenue (${leader.time_decay.revenue:,.0f})."
            )

    if roi > 300:
        trend = TrendDirection.POSITIVE
    elif roi < 0:
        trend = TrendDirection.NEGATIVE
    else:
        trend = TrendDirection.NEUTRAL

    if roi < 200:
        impact = ImpactLevel.HIGH
    elif roi < 400:
        impact = ImpactLevel.MEDIUM
    else:
        impact = ImpactLevel.LOW

    return Insight(
        id=_insight_id("marketing-effectiveness", generated_at),
        type=InsightType.MARKETING,
        title="Marketing Performance Analysis",
        description=" ".join(parts),
        impact=impact,
        trend=trend,
        confidence=(
            MARKETING_WITH_CONVERSIONS_CONFIDENCE if has_conversion_data
            else MARKETING_SPEND_ONLY_CONFIDENCE
        ),
        recommendation=(
            "Review marketing channels and optimize spend allocation."
            if roi < 200
            else "Scale successful marketing campaigns."
        ),
        timestamp=generated_at,
        metric_value=roi,
        metrics=metrics,
    )


# ── Product ───────────────────────────────────────────────────────────────────

def analyze_product_performance(snapshot: BusinessDataSnapshot, generated_at: datetime) -> Optional[Insight]:
    """Top product by revenue and its share of the total (concentration risk)."""
    names = {p.id: p.name or p.id for p in snapshot.products or []}
    revenue_by_product: dict[str, float] = {}
    confidence = PRODUCT_CATALOG_CONFIDENCE

    if snapshot.products and math.fsum(p.revenue for p in snapshot.products) > 0:
        for p in snapshot.products:
            revenue_by_product[p.id] = revenue_by_product.get(p.id, 0.0) + p.revenue
    elif snapshot.sales:
        totals: dict[str, float] = defaultdict(float)
        for sale in snapshot.sales:
            if sale.product_id:
                totals[sale.product_id] += sale.amount
        revenue_by_product = dict(totals)
        confidence = PRODUCT_FROM_SALES_CONFIDENCE

    total_revenue = math.fsum(revenue_by_product.values())
    if not revenue_by_product or total_revenue <= 0:
        return None

    top_id = max(revenue_by_product, key=lambda pid: revenue_by_product[pid])
    top_revenue = revenue_by_product[top_id]
    share = top_revenue * 100.0 / total_revenue
    concentrated = share > PRODUCT_CONCENTRATION_PCT
    top_name = names.get(top_id, top_id)

    return Insight(
        id=_insight_id("product-performance", generated_at),
        type=InsightType.PRODUCT,
        title="Revenue Concentration Risk" if concentrated else "Product Performance Insights",
        description=(
            f"{top_name} is the top performer with {share:.1f}% of total revenue "
            f"(${top_revenue:,.0f} of ${total_revenue:,.0f})."
        ),
        impact=ImpactLevel.HIGH if concentrated else ImpactLevel.MEDIUM,
        trend=TrendDirection.NEUTRAL,
        confidence=confidence,
        recommendation=(
            "Diversify the product portfolio to reduce dependency on a single product."
            if concentrated
            else "Focus marketing on top performers and analyze their success factors for replication."
        ),
        timestamp=generated_at,
        metric_value=share,
        metrics={
            "top_product_share_pct": share,
            "top_product_revenue": top_revenue,
            "total_revenue": total_revenue,
            "products_with_revenue": float(len(revenue_by_product)),
        },
    )


# ── Orchestration ─────────────────────────────────────────────────────────────

ANALYSES: tuple[Analysis, ...] = (
    analyze_revenue_trend,
    analyze_customer_behavior,
    analyze_sales_performance,
    analyze_marketing_effectiveness,
    analyze_product_performance,
)


def generate_insights(
    snapshot: BusinessDataSnapshot,
    generated_at: Optional[datetime] = None,
) -> list[Insight]:
    """Run every analysis against ``snapshot`` and collect the results.

    Args:
        snapshot: Business data; any collection may be absent.
        generated_at: Timestamp stamped on every insight (and embedded in its
            id). Defaults to now (UTC).

    Returns:
        Insights in analysis order (revenue, customer, sales, marketing,
        product), omitting analyses that had insufficient data.
    """
    stamp = generated_at or utcnow()
    insights: list[Insight] = []
    for analysis in ANALYSES:
        insight = analysis(snapshot, stamp)
        if insight is None:
            logger.debug("Insight %s: insufficient data, skipped", analysis.__name__)
            continue
        insights.append(insight)

    logger.info("Generated %d of %d insights", len(insights), len(ANALYSES))
    return insights


# ── Helpers ───────────────────────────────────────────────────────────────────

def _insight_id(slug: str, generated_at: datetime) -> str:
    return f"{slug}-{generated_at.strftime('%Y%m%dT%H%M%S%f')}"


def _tiered_impact(value: float, high_above: float, medium_above: float) -> ImpactLevel:
    if value > high_above:
        return ImpactLevel.HIGH
    if value > medium_above:
        return ImpactLevel.MEDIUM
    return ImpactLevel.LOW


def _trend_from_sign(value: float) -> TrendDirection:
    if value > 0:
        return TrendDirection.POSITIVE
    if value < 0:
        return TrendDirection.NEGATIVE
    return TrendDirection.NEUTRAL


def _is_recent(last_activity: Optional[date], reference: date) -> bool:
    if last_activity is None:
        return False
    return last_activity > reference - timedelta(days=ACTIVE_WINDOW_DAYS)


def _best_roi_campaign(campaigns: list[Campaign]) -> Optional[tuple[Campaign, float]]:
    """Campaign with the highest ROI ratio (supplied, else computed from spend)."""
    best: Optional[tuple[Campaign, float]] = None
    for c in campaigns:
        if c.roi is not None:
            roi = c.roi
        elif c.spend > 0:
            roi = (c.revenue - c.spend) / c.spend
        else:
            continue
        if best is None or roi > best[1]:
            best = (c, roi)
    return best
