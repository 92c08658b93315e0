"""
Analytics taxonomy for CRM insight, scoring and forecasting outputs.

Every output record is described along a few orthogonal string dimensions:
  - ``InsightType``: which business domain produced the insight.
  - ``ImpactLevel``: how much the finding matters (shared by insights,
    recommendations and priorities).
  - ``TrendDirection``: whether the underlying metric is moving the right way.
  - ``LeadGrade`` / ``RiskLevel``: bucketed scoring outputs.
  - ``CustomerSegment``: the 11 RFM buckets.
  - ``ForecastPeriod``: the calendar step between forecast points.

Segment values are camelCase because that is the key convention consumers of
the segmentation mapping already use.

This module has NO imports from any other ``crm_analytics`` package.
"""

from enum import StrEnum


class InsightType(StrEnum):
    """Business domain an insight was derived from."""

    REVENUE = "revenue"
    CUSTOMER = "customer"
    SALES = "sales"
    MARKETING = "marketing"
    PRODUCT = "product"


class ImpactLevel(StrEnum):
    """Three-step magnitude scale used for impact, priority and effort."""

    LOW = "low"
    MEDIUM = "medium"
    HIGH = "high"


class TrendDirection(StrEnum):
    """Direction of the metric behind an insight."""

    POSITIVE = "positive"
    NEGATIVE = "negative"
    NEUTRAL = "neutral"


class LeadGrade(StrEnum):
    """Letter grade bucket for a 0-100 lead score."""

    A = "A"
    B = "B"
    C = "C"
    D = "D"


class RiskLevel(StrEnum):
    """Churn risk bucket for a churn probability."""

    LOW = "low"
    MEDIUM = "medium"
    HIGH = "high"


class StockoutRisk(StrEnum):
    """Likelihood of running out of stock before a reorder arrives."""

    LOW = "low"
    MEDIUM = "medium"
    HIGH = "high"


class PricePosition(StrEnum):
    """Where a competitor prices relative to the market average."""

    PREMIUM = "premium"
    COMPETITIVE = "competitive"
    BUDGET = "budget"


class CustomerSegment(StrEnum):
    """RFM customer segment. Declaration order is the display order."""

    CHAMPIONS = "champions"
    LOYAL_CUSTOMERS = "loyalCustomers"
    POTENTIAL_LOYALISTS = "potentialLoyalists"
    NEW_CUSTOMERS = "newCustomers"
    PROMISERS = "promisers"
    NEEDS_ATTENTION = "needsAttention"
    ABOUT_TO_SLEEP = "aboutToSleep"
    AT_RISK = "atRisk"
    CANNOT_LOSE_THEM = "cannotLoseThem"
    HIBERNATING = "hibernating"
    LOST = "lost"


class ForecastPeriod(StrEnum):
    """Calendar step between consecutive forecast points."""

    DAY = "day"
    WEEK = "week"
    MONTH = "month"
    QUARTER = "quarter"
    YEAR = "year"


class AttributionRule(StrEnum):
    """Multi-touch attribution rules."""

    FIRST_TOUCH = "first_touch"
    LAST_TOUCH = "last_touch"
    LINEAR = "linear"
    TIME_DECAY = "time_decay"
