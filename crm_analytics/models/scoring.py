"""
Per-entity scoring outputs: lead scores, churn assessments and RFM scores.

Ids are pass-through keys from the input records; nothing here carries
identity across engine invocations.
"""

from __future__ import annotations

from pydantic import BaseModel, ConfigDict, Field

from crm_analytics.taxonomy.analytics_taxonomy import CustomerSegment, LeadGrade, RiskLevel


class LeadScore(BaseModel):
    """Additive 0-100 lead score with its letter grade and contributing factors."""

    model_config = ConfigDict(frozen=True)

    lead_id: str
    score: int = Field(ge=0, le=100)
    grade: LeadGrade
    factors: tuple[str, ...] = ()


class ChurnAssessment(BaseModel):
    """Churn probability for one customer with its risk bucket."""

    model_config = ConfigDict(frozen=True)

    customer_id: str
    churn_probability: float = Field(ge=0.0, le=1.0)
    risk_level: RiskLevel
    factors: tuple[str, ...] = ()


class RFMScore(BaseModel):
    """Recency / frequency / monetary sub-scores (each 1-5) and the assigned segment."""

    model_config = ConfigDict(frozen=True)

    customer_id: str
    recency: int = Field(ge=1, le=5)
    frequency: int = Field(ge=1, le=5)
    monetary: int = Field(ge=1, le=5)
    segment: CustomerSegment

    @property
    def total(self) -> int:
        """Sum of the three sub-scores (3-15)."""
        return self.recency + self.frequency + self.monetary
