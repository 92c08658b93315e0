"""
Shared pytest fixtures for the CRM analytics test suite.

Provides:
  - ``sample_snapshot_data``: a raw camelCase snapshot dict, the shape the UI
    layer sends, with every collection populated.
  - ``sample_snapshot``: the same data validated into a ``BusinessDataSnapshot``.
  - ``snapshot_file``: the raw dict written to a temp JSON file.
  - ``generated_at``: a fixed UTC timestamp for deterministic insight ids.
"""

from __future__ import annotations

import json
from datetime import datetime, timezone
from pathlib import Path

import pytest

from crm_analytics.models.snapshot import BusinessDataSnapshot


@pytest.fixture
def generated_at() -> datetime:
    return datetime(2024, 7, 1, 9, 30, 0, tzinfo=timezone.utc)


@pytest.fixture
def sample_snapshot_data() -> dict:
    """A small but complete snapshot as of 2024-06-30."""
    return {
        "asOf": "2024-06-30",
        "revenue": [
            {"date": "2024-01-31", "amount": 100000},
            {"date": "2024-02-29", "amount": 104000},
            {"date": "2024-03-31", "amount": 109000},
            {"date": "2024-04-30", "amount": 113000},
            {"date": "2024-05-31", "amount": 120000},
            {"date": "2024-06-30", "amount": 90000},
        ],
        "customers": [
            {
                "id": "c1", "name": "Acme", "lifetimeValue": 12000,
                "lastActivity": "2024-06-25", "daysSinceLastPurchase": 5,
                "totalOrders": 12, "totalSpent": 9000, "engagementScore": 85,
                "status": "active", "createdAt": "2024-01-10",
            },
            {
                "id": "c2", "name": "Globex", "lifetimeValue": 3000,
                "lastActivity": "2024-02-01", "daysSinceLastPurchase": 150,
                "totalOrders": 1, "totalSpent": 400, "engagementScore": 20,
                "supportTickets": 6, "paymentIssues": 1,
                "status": "active", "createdAt": "2024-02-15",
            },
            {
                "id": "c3", "name": "Initech", "lifetimeValue": 800,
                "lastActivity": "2024-03-01", "riskScore": 85,
                "totalOrders": 2, "totalSpent": 800,
                "status": "churned", "createdAt": "2024-03-05",
            },
            {
                "id": "c4", "name": "Umbrella", "lifetimeValue": 5000,
                "lastActivity": "2024-06-10", "daysSinceLastPurchase": 20,
                "totalOrders": 6, "totalSpent": 4200, "engagementScore": 60,
                "status": "active", "createdAt": "2024-05-20",
            },
        ],
        "sales": [
            {"id": "s1", "amount": 20000, "productId": "p1", "closed": True, "date": "2024-04-12"},
            {"id": "s2", "amount": 15000, "productId": "p2", "closed": True, "date": "2024-05-03"},
            {"id": "s3", "amount": 5000, "productId": "p1", "closed": False, "date": "2024-05-20"},
            {"id": "s4", "amount": 25000, "productId": "p1", "closed": True, "date": "2024-06-08"},
            {"id": "s5", "amount": 8000, "productId": "p3", "closed": False, "date": "2024-06-21"},
        ],
        "marketing": [
            {"id": "m1", "name": "Search Ads", "channel": "search", "spend": 10000, "revenue": 25000, "conversions": 40},
            {"id": "m2", "name": "Newsletter", "channel": "email", "spend": 2000, "revenue": 9000, "conversions": 25},
        ],
        "conversions": [
            {"id": "cv1", "value": 100, "touchpoints": [{"campaignId": "m1"}, {"campaignId": "m2"}]},
            {"id": "cv2", "value": 300, "touchpoints": [{"campaignId": "m2"}]},
        ],
        "leads": [
            {
                "id": "l1", "jobTitle": "VP Sales", "companySize": 2500, "emailOpens": 8,
                "websiteVisits": 5, "contentDownloads": 3, "demoRequested": True, "budget": 150000,
            },
            {"id": "l2", "jobTitle": "Analyst", "companySize": 40, "emailOpens": 1, "budget": 5000},
        ],
        "products": [
            {"id": "p1", "name": "Platform", "price": 500, "demand": 80, "revenue": 45000},
            {"id": "p2", "name": "Add-on", "price": 120, "demand": 40, "revenue": 15000},
            {"id": "p3", "name": "Support", "price": 0, "revenue": 0},
        ],
        "inventory": [
            {"id": "i1", "name": "Hardware key", "stock": 20, "leadTimeDays": 7, "avgDailySales": 10},
            {"id": "i2", "name": "Manual", "stock": 500, "leadTimeDays": 14, "avgDailySales": 5},
        ],
        "targets": {"monthlyRevenue": 50000},
        "market": {"averagePrice": 400, "totalMarketSize": 1000000},
        "competitors": [
            {"id": "k1", "name": "BigCo", "revenue": 300000, "averagePrice": 600, "growthRate": 18},
            {"id": "k2", "name": "Startup", "revenue": 50000, "averagePrice": 250, "growthRate": 5},
        ],
    }


@pytest.fixture
def sample_snapshot(sample_snapshot_data: dict) -> BusinessDataSnapshot:
    return BusinessDataSnapshot.model_validate(sample_snapshot_data)


@pytest.fixture
def snapshot_file(tmp_path: Path, sample_snapshot_data: dict) -> Path:
    """The sample snapshot written as a bare JSON object."""
    path = tmp_path / "snapshot.json"
    path.write_text(json.dumps(sample_snapshot_data), encoding="utf-8")
    return path
