"""Tests for Insight, Recommendation, ForecastPoint and scoring output models."""

from __future__ import annotations

from datetime import date, datetime, timezone

import pytest
from pydantic import ValidationError

from crm_analytics.models.forecast import ForecastPoint
from crm_analytics.models.insight import Insight, Recommendation
from crm_analytics.models.scoring import LeadScore, RFMScore
from crm_analytics.taxonomy.analytics_taxonomy import (
    CustomerSegment,
    ImpactLevel,
    InsightType,
    LeadGrade,
    TrendDirection,
)

NOW = datetime(2024, 7, 1, tzinfo=timezone.utc)


def _insight(**overrides) -> Insight:
    fields = dict(
        id="revenue-trend-1",
        type=InsightType.REVENUE,
        title="Revenue Growth Detected",
        description="Revenue has increased by 12.0%.",
        impact=ImpactLevel.MEDIUM,
        trend=TrendDirection.POSITIVE,
        confidence=0.85,
        recommendation="Keep going.",
        timestamp=NOW,
        metric_value=12.0,
        metrics={"growth_pct": 12.0},
    )
    fields.update(overrides)
    return Insight(**fields)


class TestInsight:
    def test_valid_construction(self):
        insight = _insight()
        assert insight.type is InsightType.REVENUE
        assert insight.metrics["growth_pct"] == 12.0

    def test_string_enums_accepted(self):
        assert _insight(type="customer", impact="high", trend="negative").type is InsightType.CUSTOMER

    @pytest.mark.parametrize("confidence", [-0.01, 1.01])
    def test_confidence_out_of_range(self, confidence):
        with pytest.raises(ValidationError, match="confidence"):
            _insight(confidence=confidence)

    def test_non_finite_metric_value(self):
        with pytest.raises(ValidationError, match="finite"):
            _insight(metric_value=float("inf"))

    def test_non_finite_metrics(self):
        with pytest.raises(ValidationError, match="growth_pct"):
            _insight(metrics={"growth_pct": float("nan")})

    def test_content_excludes_identity(self):
        a = _insight(id="x", timestamp=NOW)
        b = _insight(id="y", timestamp=datetime(2030, 1, 1, tzinfo=timezone.utc))
        assert a.content() == b.content()
        assert "id" not in a.content() and "timestamp" not in a.content()


class TestRecommendation:
    def _rec(self, **overrides) -> Recommendation:
        fields = dict(
            id="rec-1",
            title="Revenue Optimization",
            description="d",
            priority=ImpactLevel.HIGH,
            impact=ImpactLevel.HIGH,
            effort=ImpactLevel.MEDIUM,
            category=InsightType.REVENUE,
            actions=("a", "b", "c", "d"),
            insight_id="revenue-trend-1",
        )
        fields.update(overrides)
        return Recommendation(**fields)

    def test_actions_list_coerced_to_tuple(self):
        assert self._rec(actions=["a", "b"]).actions == ("a", "b")

    def test_empty_actions_rejected(self):
        with pytest.raises(ValidationError, match="actions"):
            self._rec(actions=())

    def test_blank_action_rejected(self):
        with pytest.raises(ValidationError, match="actions"):
            self._rec(actions=("a", "  "))


class TestForecastPoint:
    def test_negative_value_rejected(self):
        with pytest.raises(ValidationError, match="non-negative"):
            ForecastPoint(date=date(2024, 1, 1), value=-1.0, confidence=0.5)

    def test_confidence_range(self):
        with pytest.raises(ValidationError, match="confidence"):
            ForecastPoint(date=date(2024, 1, 1), value=1.0, confidence=1.5)

    def test_frozen(self):
        p = ForecastPoint(date=date(2024, 1, 1), value=1.0, confidence=0.5)
        with pytest.raises(ValidationError):
            p.value = 2.0


class TestScoringModels:
    def test_lead_score_bounds(self):
        with pytest.raises(ValidationError):
            LeadScore(lead_id="l", score=101, grade=LeadGrade.A)

    def test_rfm_total(self):
        score = RFMScore(customer_id="c", recency=5, frequency=4, monetary=3,
                         segment=CustomerSegment.LOYAL_CUSTOMERS)
        assert score.total == 12

    def test_rfm_bounds(self):
        with pytest.raises(ValidationError):
            RFMScore(customer_id="c", recency=0, frequency=1, monetary=1,
                     segment=CustomerSegment.LOST)
