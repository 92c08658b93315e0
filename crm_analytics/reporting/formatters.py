"""
ASCII terminal formatters for CLI commands.

Every formatter takes engine outputs (pydantic models) and returns a plain
multi-line string suitable for ``typer.echo()``. No third-party dependencies
(no ``rich``, no ``colorama``).

Empty inputs render a one-line placeholder instead of an empty table::

  === Insights ===
    (no insights: the snapshot is too sparse)
"""

from __future__ import annotations

from typing import Sequence

from crm_analytics.analytics.segmentation import segment_sizes
from crm_analytics.models.attribution import AttributionResult
from crm_analytics.models.forecast import ForecastPoint
from crm_analytics.models.insight import Insight, Recommendation
from crm_analytics.models.optimization import OptimizationReport
from crm_analytics.models.scoring import ChurnAssessment, LeadScore


def _truncate(text: str, width: int) -> str:
    return text if len(text) <= width else text[: width - 3] + "..."


# ── Insights & recommendations ────────────────────────────────────────────────


def format_insights_table(insights: Sequence[Insight]) -> str:
    """One row per insight: type, impact, trend, confidence, headline metric, title."""
    lines: list[str] = ["", "=== Insights ==="]
    if not insights:
        lines.append("  (no insights: the snapshot is too sparse)")
        return "\n".join(lines)

    header = (
        f"  {'Type':<10}  {'Impact':<6}  {'Trend':<8}  {'Conf':>5}  "
        f"{'Metric':>10}  {'Title':<40}"
    )
    lines.append(header)
    lines.append("  " + "-" * (len(header) - 2))
    for ins in insights:
        lines.append(
            f"  {ins.type.value:<10}  {ins.impact.value:<6}  {ins.trend.value:<8}  "
            f"{ins.confidence:>5.2f}  {ins.metric_value:>10.1f}  {_truncate(ins.title, 40):<40}"
        )
        lines.append(f"      {ins.description}")
    return "\n".join(lines)


def format_recommendations_table(recommendations: Sequence[Recommendation]) -> str:
    """Recommendations with their action checklists."""
    lines: list[str] = ["", "=== Recommendations ==="]
    if not recommendations:
        lines.append("  (no recommendations: no insight crossed an action threshold)")
        return "\n".join(lines)

    for rec in recommendations:
        lines.append("")
        lines.append(
            f"  [{rec.priority.value.upper()}] {rec.title}  "
            f"(impact={rec.impact.value}, effort={rec.effort.value})"
        )
        lines.append(f"    {rec.description}")
        for i, action in enumerate(rec.actions, start=1):
            lines.append(f"      {i}. {action}")
    return "\n".join(lines)


# ── Forecasts ─────────────────────────────────────────────────────────────────


def format_forecast_table(forecasts: dict[str, list[ForecastPoint]]) -> str:
    """One block per metric (sorted), one row per step."""
    lines: list[str] = ["", "=== Forecasts ==="]
    if not forecasts:
        lines.append("  (no forecastable collections in the snapshot)")
        return "\n".join(lines)

    for metric in sorted(forecasts):
        points = forecasts[metric]
        lines.append("")
        lines.append(f"  [{metric.upper()}]")
        if not points:
            lines.append("    (insufficient history: at least 3 observations required)")
            continue
        header = f"    {'Step':>4}  {'Date':<10}  {'Value':>14}  {'Conf':>5}"
        lines.append(header)
        lines.append("    " + "-" * (len(header) - 4))
        for step, p in enumerate(points, start=1):
            lines.append(
                f"    {step:>4}  {p.date.isoformat():<10}  {p.value:>14,.2f}  {p.confidence:>5.2f}"
            )
    return "\n".join(lines)


# ── Scoring & segmentation ────────────────────────────────────────────────────


def format_segments_table(segments: dict[str, list[str]]) -> str:
    """Segment sizes, all 11 buckets, in the mapping's order."""
    lines: list[str] = ["", "=== Customer Segments (RFM) ==="]
    sizes = segment_sizes(segments)
    total = sum(sizes.values())
    header = f"  {'Segment':<20}  {'Customers':>9}  {'Share':>7}"
    lines.append(header)
    lines.append("  " + "-" * (len(header) - 2))
    for name, size in sizes.items():
        share = size / total if total else 0.0
        lines.append(f"  {name:<20}  {size:>9}  {share:>7.1%}")
    lines.append(f"  {'total':<20}  {total:>9}")
    return "\n".join(lines)


def format_lead_scores_table(scores: Sequence[LeadScore]) -> str:
    lines: list[str] = ["", "=== Lead Scores ==="]
    if not scores:
        lines.append("  (no leads in the snapshot)")
        return "\n".join(lines)

    header = f"  {'Lead':<20}  {'Score':>5}  {'Grade':>5}  {'Factors':<40}"
    lines.append(header)
    lines.append("  " + "-" * (len(header) - 2))
    for s in scores:
        lines.append(
            f"  {_truncate(s.lead_id, 20):<20}  {s.score:>5}  {s.grade.value:>5}  "
            f"{', '.join(s.factors) or '-'}"
        )
    return "\n".join(lines)


def format_churn_table(assessments: Sequence[ChurnAssessment]) -> str:
    lines: list[str] = ["", "=== Churn Risk ==="]
    if not assessments:
        lines.append("  (no customers in the snapshot)")
        return "\n".join(lines)

    header = f"  {'Customer':<20}  {'Prob':>5}  {'Risk':<6}  {'Factors':<40}"
    lines.append(header)
    lines.append("  " + "-" * (len(header) - 2))
    for a in assessments:
        lines.append(
            f"  {_truncate(a.customer_id, 20):<20}  {a.churn_probability:>5.2f}  "
            f"{a.risk_level.value:<6}  {', '.join(a.factors) or '-'}"
        )
    return "\n".join(lines)


# ── Attribution & optimization ────────────────────────────────────────────────


def format_attribution_table(results: dict[str, AttributionResult]) -> str:
    """Attributed revenue per campaign under each rule."""
    lines: list[str] = ["", "=== Marketing Attribution (revenue) ==="]
    if not results:
        lines.append("  (no campaigns in the snapshot)")
        return "\n".join(lines)

    header = (
        f"  {'Campaign':<24}  {'First':>12}  {'Last':>12}  "
        f"{'Linear':>12}  {'Time decay':>12}"
    )
    lines.append(header)
    lines.append("  " + "-" * (len(header) - 2))
    for r in results.values():
        name = _truncate(r.campaign_name or r.campaign_id, 24)
        lines.append(
            f"  {name:<24}  {r.first_touch.revenue:>12,.2f}  {r.last_touch.revenue:>12,.2f}  "
            f"{r.linear.revenue:>12,.2f}  {r.time_decay.revenue:>12,.2f}"
        )
    return "\n".join(lines)


def format_optimization_report(report: OptimizationReport) -> str:
    """Price, inventory and competitor sections; empty sections are omitted."""
    lines: list[str] = ["", "=== Optimization ==="]
    if not (report.prices or report.inventory or report.competitors):
        lines.append("  (no products, inventory or competitors in the snapshot)")
        return "\n".join(lines)

    if report.prices:
        lines.append("")
        lines.append("  [PRICING]")
        header = f"    {'Product':<20}  {'Current':>10}  {'Optimized':>10}  {'Change':>7}  {'Rev. impact':>12}"
        lines.append(header)
        lines.append("    " + "-" * (len(header) - 4))
        for p in report.prices:
            lines.append(
                f"    {_truncate(p.product_id, 20):<20}  {p.current_price:>10,.2f}  "
                f"{p.optimized_price:>10,.2f}  {p.price_change_pct:>+7.1%}  {p.revenue_impact:>12,.2f}"
            )

    if report.inventory:
        lines.append("")
        lines.append("  [INVENTORY]")
        header = f"    {'Item':<20}  {'Stock':>8}  {'Optimal':>8}  {'Reorder@':>8}  {'Days':>6}  {'Risk':<6}"
        lines.append(header)
        lines.append("    " + "-" * (len(header) - 4))
        for s in report.inventory:
            lines.append(
                f"    {_truncate(s.item_id, 20):<20}  {s.current_stock:>8,.0f}  {s.optimal_stock:>8,.0f}  "
                f"{s.reorder_point:>8,.0f}  {s.days_of_stock:>6.1f}  {s.stockout_risk.value:<6}"
            )

    if report.competitors:
        lines.append("")
        lines.append("  [COMPETITORS]")
        header = f"    {'Competitor':<20}  {'Share':>7}  {'Position':<11}  {'Threat':<6}"
        lines.append(header)
        lines.append("    " + "-" * (len(header) - 4))
        for c in report.competitors:
            lines.append(
                f"    {_truncate(c.competitor_name or c.competitor_id, 20):<20}  "
                f"{c.market_share_pct:>6.1f}%  {c.price_position.value:<11}  {c.threat_level.value:<6}"
            )
    return "\n".join(lines)
