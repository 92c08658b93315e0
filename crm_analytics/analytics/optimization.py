"""
Price and inventory optimization heuristics.

Price
-----
    demand_factor      = demand / 100
    competition_factor = market.average_price / price      (1.0 if unknown)
    adjustment         = demand_factor * competition_factor / (1 + |elasticity|)
    optimized_price    = price * (1 + 0.1 * adjustment)

    Δp             = (optimized - price) / price
    revenue_impact = ((1 + Δp) * (1 + elasticity * Δp) - 1) * product.revenue

The elasticity is the product's own when supplied, otherwise the fixed
``DEFAULT_PRICE_ELASTICITY``. There is no randomness.

Inventory
---------
With ``d`` = average daily sales and ``L`` = lead time in days::

    optimal_stock = d*L + 0.5 * d * sqrt(L)
    reorder_point = d*L + 0.3 * d * sqrt(L)
    days_of_stock = stock / d

    stockout risk: days_of_stock < 0.5*L -> high, < L -> medium, else low
"""

from __future__ import annotations

import logging
import math
from typing import Iterable, Optional

from crm_analytics.models.optimization import InventorySuggestion, PriceSuggestion
from crm_analytics.models.snapshot import InventoryItem, MarketData, Product
from crm_analytics.taxonomy.analytics_taxonomy import StockoutRisk

logger = logging.getLogger(__name__)

DEFAULT_PRICE_ELASTICITY = -1.5
PRICE_STEP = 0.1

DEFAULT_AVG_DAILY_SALES = 10.0
DEFAULT_LEAD_TIME_DAYS = 7.0
OPTIMAL_SAFETY_FACTOR = 0.5
REORDER_SAFETY_FACTOR = 0.3


# ── Price ─────────────────────────────────────────────────────────────────────

def price_elasticity(product: Product) -> float:
    """The product's elasticity, or the default."""
    return product.elasticity if product.elasticity is not None else DEFAULT_PRICE_ELASTICITY


def optimal_price(product: Product, market: Optional[MarketData] = None) -> float:
    """Suggested price for a product with a positive current price."""
    demand_factor = product.demand / 100.0
    if market is not None and market.average_price is not None:
        competition_factor = market.average_price / product.price
    else:
        competition_factor = 1.0
    adjustment = (demand_factor * competition_factor) / (1.0 + abs(price_elasticity(product)))
    return product.price * (1.0 + adjustment * PRICE_STEP)


def suggest_price(product: Product, market: Optional[MarketData] = None) -> Optional[PriceSuggestion]:
    """Price suggestion for one product; ``None`` when its price is not positive."""
    if product.price <= 0:
        return None

    elasticity = price_elasticity(product)
    optimized = optimal_price(product, market)
    change = (optimized - product.price) / product.price
    demand_change = elasticity * change
    revenue_impact = ((1.0 + change) * (1.0 + demand_change) - 1.0) * product.revenue

    return PriceSuggestion(
        product_id=product.id,
        current_price=product.price,
        optimized_price=round(optimized, 2),
        price_change_pct=round(change, 4),
        price_elasticity=elasticity,
        revenue_impact=round(revenue_impact, 2),
    )


def optimize_prices(
    products: Iterable[Product],
    market: Optional[MarketData] = None,
) -> list[PriceSuggestion]:
    """Price suggestions for every product with a positive price, in input order."""
    suggestions: list[PriceSuggestion] = []
    for product in products:
        suggestion = suggest_price(product, market)
        if suggestion is None:
            logger.debug("Price optimization skipped for product %s (price <= 0)", product.id)
            continue
        suggestions.append(suggestion)
    return suggestions


# ── Inventory ─────────────────────────────────────────────────────────────────

def _demand_and_lead_time(item: InventoryItem) -> tuple[float, float]:
    return (
        item.avg_daily_sales or DEFAULT_AVG_DAILY_SALES,
        item.lead_time_days or DEFAULT_LEAD_TIME_DAYS,
    )


def optimal_stock(item: InventoryItem) -> float:
    """Cycle stock over the lead time plus a safety buffer."""
    demand, lead_time = _demand_and_lead_time(item)
    return demand * lead_time + math.sqrt(lead_time) * demand * OPTIMAL_SAFETY_FACTOR


def reorder_point(item: InventoryItem) -> float:
    """Stock level at which a new order should be placed."""
    demand, lead_time = _demand_and_lead_time(item)
    return demand * lead_time + math.sqrt(lead_time) * demand * REORDER_SAFETY_FACTOR


def stockout_risk(item: InventoryItem) -> StockoutRisk:
    """Risk of running out before a reorder placed now would arrive."""
    demand, lead_time = _demand_and_lead_time(item)
    days_of_stock = item.stock / demand
    if days_of_stock < lead_time * 0.5:
        return StockoutRisk.HIGH
    if days_of_stock < lead_time:
        return StockoutRisk.MEDIUM
    return StockoutRisk.LOW


def suggest_inventory(item: InventoryItem) -> InventorySuggestion:
    """Inventory targets for one SKU."""
    demand, _ = _demand_and_lead_time(item)
    target = optimal_stock(item)
    return InventorySuggestion(
        item_id=item.id,
        current_stock=item.stock,
        optimal_stock=round(target, 2),
        reorder_point=round(reorder_point(item), 2),
        reorder_quantity=round(max(0.0, target - item.stock), 2),
        days_of_stock=round(item.stock / demand, 2),
        stockout_risk=stockout_risk(item),
    )


def optimize_inventory(inventory: Iterable[InventoryItem]) -> list[InventorySuggestion]:
    """Inventory suggestions, highest stockout risk first; ties keep input order."""
    order = {StockoutRisk.HIGH: 0, StockoutRisk.MEDIUM: 1, StockoutRisk.LOW: 2}
    suggestions = [suggest_inventory(item) for item in inventory]
    return sorted(suggestions, key=lambda s: order[s.stockout_risk])
