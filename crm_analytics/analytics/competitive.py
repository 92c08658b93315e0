"""
Competitor positioning: market share, price position and threat level.

    market_share_pct = competitor.revenue / market.total_market_size * 100
    price_position   = premium if ratio > 1.2, budget if ratio < 0.8,
                       else competitive   (ratio = competitor / market avg price)
    threat_level     = high   if share > 20 and growth > 15
                       medium if share > 10 or  growth > 10
                       low    otherwise
"""

from __future__ import annotations

from typing import Iterable, Optional

from crm_analytics.models.optimization import CompetitorAssessment
from crm_analytics.models.snapshot import Competitor, MarketData
from crm_analytics.taxonomy.analytics_taxonomy import ImpactLevel, PricePosition


def market_share_pct(competitor: Competitor, market: Optional[MarketData]) -> float:
    """Share of total market size; 0.0 when the market size is unknown or zero."""
    if market is None or not market.total_market_size:
        return 0.0
    return competitor.revenue / market.total_market_size * 100.0


def price_position(competitor: Competitor, market: Optional[MarketData]) -> PricePosition:
    """Premium / competitive / budget relative to the market average price."""
    if market is None or market.average_price is None or competitor.average_price is None:
        return PricePosition.COMPETITIVE
    ratio = competitor.average_price / market.average_price
    if ratio > 1.2:
        return PricePosition.PREMIUM
    if ratio < 0.8:
        return PricePosition.BUDGET
    return PricePosition.COMPETITIVE


def threat_level(share_pct: float, growth_rate: float) -> ImpactLevel:
    if share_pct > 20 and growth_rate > 15:
        return ImpactLevel.HIGH
    if share_pct > 10 or growth_rate > 10:
        return ImpactLevel.MEDIUM
    return ImpactLevel.LOW


def assess_competitors(
    competitors: Iterable[Competitor],
    market: Optional[MarketData] = None,
) -> list[CompetitorAssessment]:
    """Assess every competitor, largest market share first."""
    assessments: list[CompetitorAssessment] = []
    for competitor in competitors:
        share = market_share_pct(competitor, market)
        assessments.append(
            CompetitorAssessment(
                competitor_id=competitor.id,
                competitor_name=competitor.name,
                market_share_pct=round(share, 2),
                price_position=price_position(competitor, market),
                threat_level=threat_level(share, competitor.growth_rate),
                strengths=tuple(competitor.strengths),
                weaknesses=tuple(competitor.weaknesses),
            )
        )
    return sorted(assessments, key=lambda a: -a.market_share_pct)
