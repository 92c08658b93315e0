"""
Optimization outputs: price suggestions, inventory suggestions and
competitor assessments, bundled in an ``OptimizationReport``.
"""

from __future__ import annotations

from typing import Optional

from pydantic import BaseModel, ConfigDict, Field

from crm_analytics.taxonomy.analytics_taxonomy import ImpactLevel, PricePosition, StockoutRisk


class PriceSuggestion(BaseModel):
    """Suggested price for one product and its estimated revenue effect.

    Attributes:
        product_id: Pass-through product key.
        current_price: Catalog price.
        optimized_price: Suggested price.
        price_change_pct: ``(optimized - current) / current`` as a ratio.
        price_elasticity: Elasticity used (supplied or default).
        revenue_impact: Estimated change in revenue at the suggested price.
    """

    model_config = ConfigDict(frozen=True)

    product_id: str
    current_price: float
    optimized_price: float
    price_change_pct: float
    price_elasticity: float
    revenue_impact: float


class InventorySuggestion(BaseModel):
    """Target stock levels and stockout risk for one SKU."""

    model_config = ConfigDict(frozen=True)

    item_id: str
    current_stock: float
    optimal_stock: float
    reorder_point: float
    reorder_quantity: float = Field(ge=0.0)
    days_of_stock: float
    stockout_risk: StockoutRisk


class CompetitorAssessment(BaseModel):
    """Competitive position of one competitor."""

    model_config = ConfigDict(frozen=True)

    competitor_id: str
    competitor_name: Optional[str] = None
    market_share_pct: float
    price_position: PricePosition
    threat_level: ImpactLevel
    strengths: tuple[str, ...] = ()
    weaknesses: tuple[str, ...] = ()


class OptimizationReport(BaseModel):
    """All optimization outputs for one snapshot; empty lists when data is absent."""

    model_config = ConfigDict(frozen=True)

    prices: tuple[PriceSuggestion, ...] = ()
    inventory: tuple[InventorySuggestion, ...] = ()
    competitors: tuple[CompetitorAssessment, ...] = ()
