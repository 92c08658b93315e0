"""
RFM customer segmentation.

Each customer gets three sub-scores in ``[1, 5]``::

    recency   = clamp(6 - floor(days_since_last_purchase / 30), 1, 5)
    frequency = clamp(floor(total_orders / 2), 1, 5)
    monetary  = clamp(floor(total_spent / 1000), 1, 5)

and is assigned to exactly one segment by ordered rules on ``total`` (3-15);
the first matching rule wins:

    total >= 13                    -> champions
    total >= 11                    -> loyalCustomers
    total >= 9                     -> potentialLoyalists
    recency >= 4 and total >= 7    -> newCustomers
    total >= 7                     -> promisers
    total >= 5                     -> needsAttention
    recency <= 2 and total >= 4    -> aboutToSleep
    monetary >= 3 and total >= 4   -> cannotLoseThem
    total >= 3                     -> hibernating
    otherwise                      -> lost

With sub-scores in ``[1, 5]`` three of the 11 buckets are never assigned:
``atRisk`` has no rule, ``cannotLoseThem`` needs ``monetary >= 3`` which already
puts ``total`` at 5 or more (caught by ``needsAttention``), and ``lost`` needs
``total < 3``, below the minimum of 3. All 11 keys are still present in the
output so consumers see a stable set.

Segments are recomputed on every call; nothing is tracked across calls.
"""

from __future__ import annotations

import logging
import math
from datetime import date
from typing import Iterable, Optional

from crm_analytics.analytics.scoring import days_since_purchase
from crm_analytics.models.scoring import RFMScore
from crm_analytics.models.snapshot import CustomerRecord
from crm_analytics.taxonomy.analytics_taxonomy import CustomerSegment

logger = logging.getLogger(__name__)


def rfm_score(customer: CustomerRecord, as_of: Optional[date] = None) -> RFMScore:
    """Compute the RFM sub-scores and segment for one customer.

    Recency falls back to 1 (stalest) when no purchase date can be determined.
    """
    days = days_since_purchase(customer, as_of)
    recency = 1 if days is None else _clamp(6 - math.floor(days / 30))
    frequency = _clamp(math.floor(customer.total_orders / 2))
    monetary = _clamp(math.floor(customer.total_spent / 1000))

    return RFMScore(
        customer_id=customer.id,
        recency=recency,
        frequency=frequency,
        monetary=monetary,
        segment=assign_segment(recency, frequency, monetary),
    )


def assign_segment(recency: int, frequency: int, monetary: int) -> CustomerSegment:
    """Apply the ordered threshold rules (first match wins)."""
    total = recency + frequency + monetary

    if total >= 13:
        return CustomerSegment.CHAMPIONS
    if total >= 11:
        return CustomerSegment.LOYAL_CUSTOMERS
    if total >= 9:
        return CustomerSegment.POTENTIAL_LOYALISTS
    if recency >= 4 and total >= 7:
        return CustomerSegment.NEW_CUSTOMERS
    if total >= 7:
        return CustomerSegment.PROMISERS
    if total >= 5:
        return CustomerSegment.NEEDS_ATTENTION
    if recency <= 2 and total >= 4:
        return CustomerSegment.ABOUT_TO_SLEEP
    if monetary >= 3 and total >= 4:
        return CustomerSegment.CANNOT_LOSE_THEM
    if total >= 3:
        return CustomerSegment.HIBERNATING
    return CustomerSegment.LOST


def segment(
    customers: Iterable[CustomerRecord],
    as_of: Optional[date] = None,
) -> dict[str, list[str]]:
    """Partition customers into the 11 RFM segments.

    Args:
        customers: Customer records. Ids are expected to be unique; a repeated
            id is kept only at its first occurrence so the output stays a
            partition of the distinct ids.
        as_of: Reference date for customers without an explicit recency.

    Returns:
        Mapping of segment name -> customer ids, in input order. All 11
        segment names are present; unused ones map to an empty list.
    """
    segments: dict[str, list[str]] = {s.value: [] for s in CustomerSegment}
    seen: set[str] = set()

    for customer in customers:
        if customer.id in seen:
            logger.warning("Duplicate customer id '%s' ignored in segmentation", customer.id)
            continue
        seen.add(customer.id)
        segments[rfm_score(customer, as_of).segment.value].append(customer.id)

    return segments


def segment_sizes(segments: dict[str, list[str]]) -> dict[str, int]:
    """Count members per segment."""
    return {name: len(ids) for name, ids in segments.items()}


# ── Helper ────────────────────────────────────────────────────────────────────

def _clamp(value: int, lo: int = 1, hi: int = 5) -> int:
    return max(lo, min(hi, value))
