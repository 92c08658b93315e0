"""
Multi-touch marketing attribution.

Each conversion carries an ordered list of touchpoints (oldest first). Per
conversion, a campaign earns credit in ``[0, 1]`` under four rules:

  first_touch : 1.0 if it owns ``touchpoints[0]``.
  last_touch  : 1.0 if it owns ``touchpoints[-1]``.
  linear      : its touchpoint count / total touchpoints.
  time_decay  : its share of the total weight, where the touchpoint at
                position ``i`` of ``L`` weighs ``2 ** -(L - 1 - i)``
                (the most recent touch weighs 1, the one before 0.5, ...).

Aggregation per campaign and rule::

    conversions = sum(credit)
    revenue     = sum(credit * conversion.value)
    attribution = conversions / total_conversions        # global denominator

Because the denominator is global, multi-touch shares across campaigns can
sum to more than 1. That is intended and is not normalised away.

Example: one conversion worth 100 touching [A, B, C]: time-decay weights
are 1 : 2 : 4, so A earns 14.29, B 28.57 and C 57.14.
"""

from __future__ import annotations

import logging
from collections import defaultdict
from dataclasses import dataclass, field
from typing import Iterable, Sequence

from crm_analytics.models.attribution import AttributionResult, AttributionShare
from crm_analytics.models.snapshot import Campaign, Conversion
from crm_analytics.taxonomy.analytics_taxonomy import AttributionRule

logger = logging.getLogger(__name__)


@dataclass
class _Accumulator:
    """Running credit / revenue per campaign for one rule."""

    credit:  dict[str, float] = field(default_factory=lambda: defaultdict(float))
    revenue: dict[str, float] = field(default_factory=lambda: defaultdict(float))

    def add(self, campaign_id: str, credit: float, value: float) -> None:
        self.credit[campaign_id] += credit
        self.revenue[campaign_id] += credit * value


def conversion_credits(conversion: Conversion, rule: AttributionRule) -> dict[str, float]:
    """Per-campaign credit for one conversion under one rule.

    Returns an empty dict for a conversion without touchpoints.
    """
    touchpoints = conversion.touchpoints
    length = len(touchpoints)
    if length == 0:
        return {}

    if rule is AttributionRule.FIRST_TOUCH:
        return {touchpoints[0].campaign_id: 1.0}
    if rule is AttributionRule.LAST_TOUCH:
        return {touchpoints[-1].campaign_id: 1.0}

    if rule is AttributionRule.LINEAR:
        weights = [1.0] * length
    else:
        weights = [2.0 ** -(length - 1 - i) for i in range(length)]

    total_weight = sum(weights)
    campaign_weight: dict[str, float] = defaultdict(float)
    for tp, w in zip(touchpoints, weights):
        campaign_weight[tp.campaign_id] += w
    # One division per campaign keeps a campaign owning every touch at exactly 1.0.
    return {cid: w / total_weight for cid, w in campaign_weight.items()}


def analyze_attribution(
    campaigns: Iterable[Campaign],
    conversions: Sequence[Conversion],
) -> dict[str, AttributionResult]:
    """Attribute conversions to campaigns under all four rules.

    Args:
        campaigns: Campaigns to report on. Touchpoints naming other campaign
            ids earn credit nowhere in the output.
        conversions: Converted journeys. Journeys with no touchpoints are
            ignored and excluded from the global conversion count.

    Returns:
        Mapping ``campaign_id -> AttributionResult`` in campaign order.
        With zero usable conversions every share is 0.
    """
    usable = [c for c in conversions if c.touchpoints]
    skipped = len(conversions) - len(usable)
    if skipped:
        logger.debug("Attribution: %d conversions without touchpoints ignored", skipped)

    accumulators = {rule: _Accumulator() for rule in AttributionRule}
    for conversion in usable:
        for rule, acc in accumulators.items():
            for campaign_id, credit in conversion_credits(conversion, rule).items():
                acc.add(campaign_id, credit, conversion.value)

    total = len(usable)

    def _share(rule: AttributionRule, campaign_id: str) -> AttributionShare:
        acc = accumulators[rule]
        credit = acc.credit.get(campaign_id, 0.0)
        # Zero conversions: report 0 rather than divide by zero.
        ratio = min(1.0, credit / total) if total else 0.0
        return AttributionShare(
            conversions=credit,
            revenue=acc.revenue.get(campaign_id, 0.0),
            attribution=ratio,
        )

    results: dict[str, AttributionResult] = {}
    for campaign in campaigns:
        results[campaign.id] = AttributionResult(
            campaign_id=campaign.id,
            campaign_name=campaign.name,
            first_touch=_share(AttributionRule.FIRST_TOUCH, campaign.id),
            last_touch=_share(AttributionRule.LAST_TOUCH, campaign.id),
            linear=_share(AttributionRule.LINEAR, campaign.id),
            time_decay=_share(AttributionRule.TIME_DECAY, campaign.id),
        )
    return results


def top_campaign(
    results: dict[str, AttributionResult],
    rule: AttributionRule = AttributionRule.TIME_DECAY,
) -> AttributionResult | None:
    """Campaign with the most attributed revenue under ``rule``; ``None`` if no credit."""
    best: AttributionResult | None = None
    best_revenue = 0.0
    for result in results.values():
        revenue = getattr(result, rule.value).revenue
        if revenue > best_revenue:
            best, best_revenue = result, revenue
    return best
