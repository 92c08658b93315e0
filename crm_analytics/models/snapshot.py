"""
Business data snapshot: the engine's sole input.

``BusinessDataSnapshot`` holds named collections of raw business records.
Every collection is optional: the UI layer sends whatever it has, and each
analysis declares which collections it needs and skips itself when they are
missing. ``None`` means "not supplied"; an empty list means "supplied, empty".

All records accept the UI layer's camelCase keys (``lifetimeValue``,
``daysSinceLastPurchase``) as well as the snake_case field names, and ignore
keys they do not model. NaN / Infinity are rejected at validation time so
they can never reach an output record.

``content_hash()`` gives callers a stable cache key for memoizing engine
results; the engine itself keeps no cache.
"""

from __future__ import annotations

import hashlib
from datetime import date, datetime
from typing import Annotated, Any, Optional

from pydantic import AliasChoices, BaseModel, BeforeValidator, ConfigDict, Field
from pydantic.alias_generators import to_camel


def _coerce_date(value: Any) -> Any:
    """Accept full ISO datetimes (``2024-05-01T10:00:00Z``) where a date is expected."""
    if isinstance(value, datetime):
        return value.date()
    if isinstance(value, str) and len(value) > 10:
        return datetime.fromisoformat(value.replace("Z", "+00:00")).date()
    return value


CalendarDate = Annotated[date, BeforeValidator(_coerce_date)]


class _InputRecord(BaseModel):
    """Shared config for all snapshot records."""

    model_config = ConfigDict(
        frozen=True,
        alias_generator=to_camel,
        populate_by_name=True,
        extra="ignore",
        allow_inf_nan=False,
    )


class RevenuePoint(_InputRecord):
    """One period's revenue. ``value`` is accepted as a synonym for ``amount``."""

    date: CalendarDate
    amount: float = Field(validation_alias=AliasChoices("amount", "value"))


class CustomerRecord(_InputRecord):
    """A customer with the activity and risk signals the models read.

    Attributes:
        id: Caller-supplied customer key (passed through to outputs).
        lifetime_value: Total value of the relationship to date.
        last_activity: Date of the most recent interaction.
        days_since_last_purchase: Recency in days; derived from
            ``last_activity`` when absent and an ``as_of`` date is known.
        total_orders: Order count (RFM frequency).
        total_spent: Spend to date (RFM monetary).
        risk_score: Externally supplied churn risk, 0-100.
        engagement_score: Engagement index, 0-100.
        support_tickets: Open/recent support ticket count.
        payment_issues: Count of failed or disputed payments.
        status: Lifecycle status, e.g. ``"active"`` or ``"churned"``.
        created_at: Date the customer was acquired.
    """

    id: str
    name: Optional[str] = None
    lifetime_value: float = 0.0
    last_activity: Optional[CalendarDate] = None
    days_since_last_purchase: Optional[int] = Field(default=None, ge=0)
    total_orders: int = Field(default=0, ge=0)
    total_spent: float = 0.0
    risk_score: Optional[float] = Field(default=None, ge=0.0, le=100.0)
    engagement_score: Optional[float] = Field(default=None, ge=0.0, le=100.0)
    support_tickets: int = Field(default=0, ge=0)
    payment_issues: int = Field(default=0, ge=0)
    status: Optional[str] = None
    created_at: Optional[CalendarDate] = None


class SaleRecord(_InputRecord):
    """An order or opportunity; ``closed`` marks a won deal."""

    id: Optional[str] = None
    amount: float = 0.0
    product_id: Optional[str] = None
    closed: bool = False
    date: Optional[CalendarDate] = None


class Campaign(_InputRecord):
    """A marketing campaign with spend and attributed revenue.

    ``roi`` is a ratio (``2.5`` = 250%); it is computed from spend and revenue
    when not supplied.
    """

    id: str
    name: Optional[str] = None
    channel: Optional[str] = None
    spend: float = Field(default=0.0, ge=0.0)
    revenue: float = 0.0
    roi: Optional[float] = None
    conversions: Optional[int] = Field(default=None, ge=0)


class Touchpoint(_InputRecord):
    """One marketing interaction on a conversion journey."""

    campaign_id: str
    occurred_at: Optional[datetime] = None


class Conversion(_InputRecord):
    """A converted journey: ordered touchpoints (oldest first) and its value."""

    id: Optional[str] = None
    value: float = 0.0
    touchpoints: list[Touchpoint] = Field(default_factory=list)


class LeadRecord(_InputRecord):
    """A sales lead with firmographic and engagement signals."""

    id: str
    name: Optional[str] = None
    job_title: Optional[str] = None
    company_size: int = Field(default=0, ge=0)
    email_opens: int = Field(default=0, ge=0)
    website_visits: int = Field(default=0, ge=0)
    content_downloads: int = Field(default=0, ge=0)
    demo_requested: bool = False
    budget: float = 0.0


class Product(_InputRecord):
    """A catalog product. ``demand`` is an index from 0 to 100."""

    id: str
    name: Optional[str] = None
    price: float = 0.0
    demand: float = Field(default=50.0, ge=0.0, le=100.0)
    revenue: float = 0.0
    elasticity: Optional[float] = None


class InventoryItem(_InputRecord):
    """Stock position for one SKU."""

    id: str
    name: Optional[str] = None
    stock: float = Field(default=0.0, ge=0.0)
    lead_time_days: Optional[float] = Field(default=None, gt=0.0)
    avg_daily_sales: Optional[float] = Field(default=None, gt=0.0)


class Targets(_InputRecord):
    """Period targets. ``monthly`` is accepted for ``monthly_revenue``."""

    monthly_revenue: Optional[float] = Field(
        default=None,
        validation_alias=AliasChoices("monthly_revenue", "monthlyRevenue", "monthly"),
    )
    conversion_rate_pct: Optional[float] = None


class MarketData(_InputRecord):
    """Market-wide reference figures used by price and competitor models."""

    average_price: Optional[float] = Field(default=None, gt=0.0)
    total_market_size: Optional[float] = Field(default=None, ge=0.0)


class Competitor(_InputRecord):
    """A competitor profile. ``growth_rate`` is a percentage."""

    id: str
    name: Optional[str] = None
    revenue: float = 0.0
    average_price: Optional[float] = None
    growth_rate: float = 0.0
    strengths: list[str] = Field(default_factory=list)
    weaknesses: list[str] = Field(default_factory=list)


class BusinessDataSnapshot(_InputRecord):
    """Point-in-time bundle of business records handed to the engine.

    Attributes:
        as_of: Reference date for recency computations and the base date of
            customer-growth forecasts. ``None`` falls back to the data itself.
        revenue: Ordered revenue series, oldest first.
        customers: Customer records.
        sales: Orders / opportunities.
        marketing: Campaigns.
        conversions: Converted journeys with touchpoints.
        leads: Sales leads.
        products: Product catalog.
        inventory: Stock positions.
        targets: Period targets.
        market: Market reference figures.
        competitors: Competitor profiles.
    """

    as_of: Optional[CalendarDate] = None
    revenue: Optional[list[RevenuePoint]] = None
    customers: Optional[list[CustomerRecord]] = None
    sales: Optional[list[SaleRecord]] = None
    marketing: Optional[list[Campaign]] = None
    conversions: Optional[list[Conversion]] = None
    leads: Optional[list[LeadRecord]] = None
    products: Optional[list[Product]] = None
    inventory: Optional[list[InventoryItem]] = None
    targets: Optional[Targets] = None
    market: Optional[MarketData] = None
    competitors: Optional[list[Competitor]] = None

    def content_hash(self) -> str:
        """SHA-256 of the canonical JSON form; equal content gives equal hashes."""
        return hashlib.sha256(self.model_dump_json().encode("utf-8")).hexdigest()
