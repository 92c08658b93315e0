"""
Insight and recommendation output models.

``Insight`` is one finding from a domain analysis (revenue, customer, sales,
marketing, product) with impact, trend and a fixed per-analysis confidence.

``Recommendation`` is an action plan derived from exactly one insight: a
priority, an impact/effort estimate, and a four-item action checklist.

Both models are frozen; the engine never mutates a result after creating it.
Dismissing or implementing them is local UI state and never calls back in.
"""

from __future__ import annotations

import math
from datetime import datetime

from pydantic import BaseModel, ConfigDict, field_validator

from crm_analytics.taxonomy.analytics_taxonomy import ImpactLevel, InsightType, TrendDirection


class Insight(BaseModel):
    """A structured finding produced by one insight analysis.

    Attributes:
        id: Unique id; embeds the generation timestamp, so it differs between
            runs even when the content is identical.
        type: Domain the insight belongs to.
        title: Short headline.
        description: One-sentence explanation with the key figures.
        impact: How much the finding matters.
        trend: Direction of the underlying metric.
        confidence: Fixed per-analysis confidence in ``[0, 1]``.
        recommendation: Free-text next step.
        timestamp: UTC generation time.
        metric_value: Headline metric (growth %, churn %, conversion %,
            ROI %, or top-product revenue share %).
        metrics: Supporting figures keyed by name; all finite.
    """

    model_config = ConfigDict(frozen=True)

    id: str
    type: InsightType
    title: str
    description: str
    impact: ImpactLevel
    trend: TrendDirection
    confidence: float
    recommendation: str
    timestamp: datetime
    metric_value: float
    metrics: dict[str, float] = {}

    @field_validator("confidence")
    @classmethod
    def validate_confidence(cls, v: float) -> float:
        if not 0.0 <= v <= 1.0:
            raise ValueError(f"confidence must be in [0.0, 1.0], got {v}.")
        return v

    @field_validator("metric_value")
    @classmethod
    def validate_metric_finite(cls, v: float) -> float:
        if not math.isfinite(v):
            raise ValueError("metric_value must be finite.")
        return v

    @field_validator("metrics")
    @classmethod
    def validate_metrics_finite(cls, v: dict[str, float]) -> dict[str, float]:
        bad = sorted(k for k, val in v.items() if not math.isfinite(val))
        if bad:
            raise ValueError(f"metrics must be finite; non-finite keys: {bad}.")
        return v

    def content(self) -> dict:
        """Return every field except ``id`` and ``timestamp``."""
        return self.model_dump(exclude={"id", "timestamp"})


class Recommendation(BaseModel):
    """An actionable plan derived from one insight.

    Attributes:
        id: Unique id derived from the source insight's id.
        title: Short headline.
        description: What the plan aims to achieve.
        priority: Urgency.
        impact: Expected business impact.
        effort: Expected implementation effort.
        category: Insight type the plan addresses.
        actions: Ordered four-step checklist.
        insight_id: Id of the insight that triggered this recommendation.
    """

    model_config = ConfigDict(frozen=True)

    id: str
    title: str
    description: str
    priority: ImpactLevel
    impact: ImpactLevel
    effort: ImpactLevel
    category: InsightType
    actions: tuple[str, ...]
    insight_id: str

    @field_validator("actions")
    @classmethod
    def validate_actions(cls, v: tuple[str, ...]) -> tuple[str, ...]:
        if not v or any(not a.strip() for a in v):
            raise ValueError("actions must be a non-empty list of non-empty strings.")
        return v
