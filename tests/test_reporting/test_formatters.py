"""Tests for crm_analytics.reporting.formatters."""

from __future__ import annotations

from datetime import date, datetime, timezone

from crm_analytics.models.attribution import AttributionResult, AttributionShare
from crm_analytics.models.forecast import ForecastPoint
from crm_analytics.models.insight import Insight, Recommendation
from crm_analytics.models.optimization import InventorySuggestion, OptimizationReport
from crm_analytics.models.scoring import ChurnAssessment, LeadScore
from crm_analytics.reporting.formatters import (
    _truncate,
    format_attribution_table,
    format_churn_table,
    format_forecast_table,
    format_insights_table,
    format_lead_scores_table,
    format_optimization_report,
    format_recommendations_table,
    format_segments_table,
)
from crm_analytics.taxonomy.analytics_taxonomy import (
    ImpactLevel,
    InsightType,
    LeadGrade,
    RiskLevel,
    StockoutRisk,
    TrendDirection,
)


def _insight() -> Insight:
    return Insight(
        id="revenue-trend-1",
        type=InsightType.REVENUE,
        title="Revenue Decline Alert",
        description="Revenue has decreased by 25.0% compared to the previous period.",
        impact=ImpactLevel.HIGH,
        trend=TrendDirection.NEGATIVE,
        confidence=0.85,
        recommendation="Investigate.",
        timestamp=datetime(2024, 7, 1, tzinfo=timezone.utc),
        metric_value=-25.0,
    )


# ── _truncate ─────────────────────────────────────────────────────────────────


def test_truncate() -> None:
    """Long text is cut to width with an ellipsis; short text is untouched."""
    assert _truncate("short", 10) == "short"
    assert _truncate("a" * 20, 10) == "aaaaaaa..."


# ── Insights & recommendations ────────────────────────────────────────────────


def test_format_insights_table_rows() -> None:
    """Each insight shows type, impact, trend, confidence and description."""
    out = format_insights_table([_insight()])
    assert "=== Insights ===" in out
    assert "revenue" in out and "high" in out and "negative" in out
    assert "0.85" in out
    assert "-25.0" in out
    assert "Revenue has decreased by 25.0%" in out


def test_format_insights_table_empty() -> None:
    """No insights renders the sparse-snapshot placeholder."""
    assert "(no insights: the snapshot is too sparse)" in format_insights_table([])


def test_format_recommendations_table_numbered_actions() -> None:
    """Actions are listed as a numbered checklist under the priority tag."""
    rec = Recommendation(
        id="rec-1",
        title="Revenue Optimization",
        description="Implement strategies to reverse revenue decline",
        priority=ImpactLevel.HIGH,
        impact=ImpactLevel.HIGH,
        effort=ImpactLevel.MEDIUM,
        category=InsightType.REVENUE,
        actions=("First", "Second", "Third", "Fourth"),
        insight_id="revenue-trend-1",
    )
    out = format_recommendations_table([rec])
    assert "[HIGH] Revenue Optimization" in out
    assert "effort=medium" in out
    assert "1. First" in out and "4. Fourth" in out


def test_format_recommendations_table_empty() -> None:
    assert "no insight crossed an action threshold" in format_recommendations_table([])


# ── Forecasts ─────────────────────────────────────────────────────────────────


def test_format_forecast_table_blocks() -> None:
    """Metrics are printed sorted, each with its own step rows."""
    point = ForecastPoint(date=date(2024, 7, 31), value=1234.5, confidence=0.9)
    out = format_forecast_table({"sales": [point], "revenue": [point]})
    assert out.index("[REVENUE]") < out.index("[SALES]")
    assert "2024-07-31" in out
    assert "1,234.50" in out


def test_format_forecast_table_insufficient_history() -> None:
    out = format_forecast_table({"revenue": []})
    assert "insufficient history" in out


def test_format_forecast_table_no_collections() -> None:
    assert "no forecastable collections" in format_forecast_table({})


# ── Scoring & segmentation ────────────────────────────────────────────────────


def test_format_segments_table_shares() -> None:
    """Segment rows carry counts and shares; the total row sums them."""
    out = format_segments_table({"champions": ["c1"], "lost": ["c2", "c3", "c4"], "atRisk": []})
    assert "champions" in out and "25.0%" in out
    assert "75.0%" in out
    assert "total" in out and "4" in out


def test_format_segments_table_no_customers() -> None:
    """Zero customers gives 0.0% shares, not a division error."""
    out = format_segments_table({"champions": []})
    assert "0.0%" in out


def test_format_lead_scores_table() -> None:
    out = format_lead_scores_table(
        [LeadScore(lead_id="l1", score=95, grade=LeadGrade.A, factors=("Senior decision maker",))]
    )
    assert "l1" in out and "95" in out
    assert "Senior decision maker" in out
    assert "(no leads in the snapshot)" in format_lead_scores_table([])


def test_format_churn_table() -> None:
    out = format_churn_table(
        [ChurnAssessment(customer_id="c2", churn_probability=1.0, risk_level=RiskLevel.HIGH)]
    )
    assert "c2" in out and "1.00" in out and "high" in out
    assert "(no customers in the snapshot)" in format_churn_table([])


# ── Attribution & optimization ────────────────────────────────────────────────


def test_format_attribution_table_uses_campaign_name() -> None:
    share = AttributionShare(conversions=1.0, revenue=250.0, attribution=0.5)
    out = format_attribution_table(
        {"m1": AttributionResult(campaign_id="m1", campaign_name="Search Ads", linear=share)}
    )
    assert "Search Ads" in out
    assert "250.00" in out


def test_format_optimization_report_omits_empty_sections() -> None:
    """Only sections with rows are printed."""
    item = InventorySuggestion(
        item_id="i1",
        current_stock=20,
        optimal_stock=80,
        reorder_point=75,
        reorder_quantity=60,
        days_of_stock=2.0,
        stockout_risk=StockoutRisk.HIGH,
    )
    out = format_optimization_report(OptimizationReport(inventory=(item,)))
    assert "[INVENTORY]" in out
    assert "[PRICING]" not in out and "[COMPETITORS]" not in out
    assert "high" in out


def test_format_optimization_report_empty() -> None:
    assert "(no products, inventory or competitors" in format_optimization_report(OptimizationReport())
