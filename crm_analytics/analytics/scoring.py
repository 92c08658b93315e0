"""
Entity scoring: lead scores and churn probabilities.

Both models are additive point heuristics: pure functions of one record,
with no DB, I/O or randomness.

Lead score (0-100, capped)
--------------------------
    company size       >1000: +25   >100: +15   >10: +10
    senior job title   ceo / cto / vp / director / manager: +20
    email opens        >5: +10
    website visits     >3: +15
    content downloads  >0: +10
    demo requested     +25
    budget             >100k: +30   >50k: +20   >10k: +10

Grades: A >= 80, B >= 60, C >= 40, else D.

Churn probability (0-1, capped)
-------------------------------
    days since last purchase  >90: +0.3   >60: +0.2   >30: +0.1
    support tickets           >5:  +0.2   >2:  +0.1
    engagement score          <30: +0.3   <50: +0.2
    payment issues            >0:  +0.2

Risk level: > 0.7 high, > 0.4 medium, else low.
Signals missing from the record contribute nothing.
"""

from __future__ import annotations

from datetime import date
from typing import Iterable, Optional

from crm_analytics.models.scoring import ChurnAssessment, LeadScore
from crm_analytics.models.snapshot import CustomerRecord, LeadRecord
from crm_analytics.taxonomy.analytics_taxonomy import LeadGrade, RiskLevel

SENIOR_TITLE_KEYWORDS: tuple[str, ...] = ("ceo", "cto", "vp", "director", "manager")
DECISION_MAKER_KEYWORDS: tuple[str, ...] = ("ceo", "vp", "director")

MAX_LEAD_SCORE = 100
MAX_CHURN_PROBABILITY = 1.0


# ── Lead scoring ──────────────────────────────────────────────────────────────

def lead_score_value(lead: LeadRecord) -> int:
    """Compute the capped additive lead score (0-100)."""
    score = 0

    if lead.company_size > 1000:
        score += 25
    elif lead.company_size > 100:
        score += 15
    elif lead.company_size > 10:
        score += 10

    if _title_matches(lead.job_title, SENIOR_TITLE_KEYWORDS):
        score += 20

    if lead.email_opens > 5:
        score += 10
    if lead.website_visits > 3:
        score += 15
    if lead.content_downloads > 0:
        score += 10
    if lead.demo_requested:
        score += 25

    if lead.budget > 100_000:
        score += 30
    elif lead.budget > 50_000:
        score += 20
    elif lead.budget > 10_000:
        score += 10

    return min(MAX_LEAD_SCORE, score)


def lead_grade(score: int) -> LeadGrade:
    """Map a 0-100 score to its letter grade."""
    if score >= 80:
        return LeadGrade.A
    if score >= 60:
        return LeadGrade.B
    if score >= 40:
        return LeadGrade.C
    return LeadGrade.D


def lead_factors(lead: LeadRecord) -> list[str]:
    """Human-readable reasons a lead scored well."""
    factors: list[str] = []
    if _title_matches(lead.job_title, DECISION_MAKER_KEYWORDS):
        factors.append("Senior decision maker")
    if lead.company_size > 100:
        factors.append("Large company")
    if lead.demo_requested:
        factors.append("Requested demo")
    if lead.content_downloads > 2:
        factors.append("High content engagement")
    if lead.budget > 50_000:
        factors.append("Substantial budget")
    return factors


def score_lead(lead: LeadRecord) -> LeadScore:
    """Score one lead."""
    score = lead_score_value(lead)
    return LeadScore(
        lead_id=lead.id,
        score=score,
        grade=lead_grade(score),
        factors=tuple(lead_factors(lead)),
    )


def score_leads(leads: Iterable[LeadRecord]) -> list[LeadScore]:
    """Score every lead, highest score first; ties keep input order."""
    scored = [score_lead(lead) for lead in leads]
    return sorted(scored, key=lambda s: -s.score)


# ── Churn prediction ──────────────────────────────────────────────────────────

def days_since_purchase(customer: CustomerRecord, as_of: Optional[date] = None) -> Optional[int]:
    """Recency in days: the explicit field, else derived from ``last_activity``.

    Returns ``None`` when neither the field nor (``last_activity``, ``as_of``)
    is available. Activity dated after ``as_of`` counts as 0 days.
    """
    if customer.days_since_last_purchase is not None:
        return customer.days_since_last_purchase
    if customer.last_activity is not None and as_of is not None:
        return max(0, (as_of - customer.last_activity).days)
    return None


def churn_probability(customer: CustomerRecord, as_of: Optional[date] = None) -> float:
    """Weighted churn risk in ``[0, 1]``.

    Rounded to 4 decimals so that e.g. 0.3 + 0.2 + 0.3 + 0.2 is exactly 1.0.
    """
    score = 0.0

    days = days_since_purchase(customer, as_of)
    if days is not None:
        if days > 90:
            score += 0.3
        elif days > 60:
            score += 0.2
        elif days > 30:
            score += 0.1

    if customer.support_tickets > 5:
        score += 0.2
    elif customer.support_tickets > 2:
        score += 0.1

    if customer.engagement_score is not None:
        if customer.engagement_score < 30:
            score += 0.3
        elif customer.engagement_score < 50:
            score += 0.2

    if customer.payment_issues > 0:
        score += 0.2

    return round(min(MAX_CHURN_PROBABILITY, score), 4)


def risk_level(probability: float) -> RiskLevel:
    """Bucket a churn probability."""
    if probability > 0.7:
        return RiskLevel.HIGH
    if probability > 0.4:
        return RiskLevel.MEDIUM
    return RiskLevel.LOW


def churn_factors(customer: CustomerRecord, as_of: Optional[date] = None) -> list[str]:
    """Human-readable churn drivers present on the record."""
    factors: list[str] = []
    days = days_since_purchase(customer, as_of)
    if days is not None and days > 60:
        factors.append("Long time since last purchase")
    if customer.support_tickets > 3:
        factors.append("High number of support tickets")
    if customer.engagement_score is not None and customer.engagement_score < 40:
        factors.append("Low engagement score")
    if customer.payment_issues > 0:
        factors.append("Payment issues")
    return factors


def assess_churn(customer: CustomerRecord, as_of: Optional[date] = None) -> ChurnAssessment:
    """Assess one customer."""
    probability = churn_probability(customer, as_of)
    return ChurnAssessment(
        customer_id=customer.id,
        churn_probability=probability,
        risk_level=risk_level(probability),
        factors=tuple(churn_factors(customer, as_of)),
    )


def assess_churn_batch(
    customers: Iterable[CustomerRecord],
    as_of: Optional[date] = None,
) -> list[ChurnAssessment]:
    """Assess every customer, riskiest first; ties keep input order."""
    assessed = [assess_churn(c, as_of) for c in customers]
    return sorted(assessed, key=lambda a: -a.churn_probability)


# ── Helper ────────────────────────────────────────────────────────────────────

def _title_matches(job_title: Optional[str], keywords: tuple[str, ...]) -> bool:
    if not job_title:
        return False
    title = job_title.lower()
    return any(k in title for k in keywords)
