"""
Marketing attribution outputs.

For each campaign, ``AttributionResult`` holds one ``AttributionShare`` per
rule. ``attribution`` is the campaign's credited conversions divided by the
global conversion count, so under multi-touch rules the shares of all
campaigns can legitimately sum to more than 1.
"""

from __future__ import annotations

from typing import Optional

from pydantic import BaseModel, ConfigDict, Field


class AttributionShare(BaseModel):
    """Credit earned by one campaign under one attribution rule.

    Attributes:
        conversions: Sum of per-conversion credit (fractional).
        revenue: Sum of credit x conversion value.
        attribution: ``conversions`` / total conversions, in ``[0, 1]``.
    """

    model_config = ConfigDict(frozen=True)

    conversions: float = Field(default=0.0, ge=0.0)
    revenue: float = 0.0
    attribution: float = Field(default=0.0, ge=0.0, le=1.0)


class AttributionResult(BaseModel):
    """All four attribution rules for one campaign."""

    model_config = ConfigDict(frozen=True)

    campaign_id: str
    campaign_name: Optional[str] = None
    first_touch: AttributionShare = AttributionShare()
    last_touch: AttributionShare = AttributionShare()
    linear: AttributionShare = AttributionShare()
    time_decay: AttributionShare = AttributionShare()
