"""
Tests for crm_analytics/analytics/attribution.py.

What we test
------------
conversion_credits():
  - First/last touch give full credit to one campaign.
  - Linear splits by touchpoint count.
  - Time decay halves weight per step back ([A, B, C] -> 1:2:4).
  - A campaign owning every touch gets exactly 1.0.

analyze_attribution():
  - Single-touch conservation: with one touchpoint per conversion, credit and
    revenue are conserved under every rule.
  - The worked [A, B, C] example: 14.29 / 28.57 / 57.14 of 100.
  - Global denominator: attribution = credited conversions / total conversions.
  - Zero conversions (or only empty journeys) give all-zero shares.
  - Campaigns with no touches get zero shares.

top_campaign():
  - Picks the campaign with the most time-decay revenue; None with no credit.
"""

from __future__ import annotations

import pytest

from crm_analytics.analytics.attribution import analyze_attribution, conversion_credits, top_campaign
from crm_analytics.models.snapshot import Campaign, Conversion, Touchpoint
from crm_analytics.taxonomy.analytics_taxonomy import AttributionRule


# ── Helpers ────────────────────────────────────────────────────────────────────

def _campaigns(*ids: str) -> list[Campaign]:
    return [Campaign(id=cid, name=f"Campaign {cid}") for cid in ids]


def _conversion(value: float, *campaign_ids: str) -> Conversion:
    return Conversion(value=value, touchpoints=[Touchpoint(campaign_id=cid) for cid in campaign_ids])


# ── Per-conversion credit ──────────────────────────────────────────────────────

class TestConversionCredits:
    def test_first_and_last_touch(self):
        conv = _conversion(100, "A", "B", "C")
        assert conversion_credits(conv, AttributionRule.FIRST_TOUCH) == {"A": 1.0}
        assert conversion_credits(conv, AttributionRule.LAST_TOUCH) == {"C": 1.0}

    def test_linear(self):
        credits = conversion_credits(_conversion(100, "A", "B", "A", "C"), AttributionRule.LINEAR)
        assert credits == pytest.approx({"A": 0.5, "B": 0.25, "C": 0.25})

    def test_time_decay_weights(self):
        credits = conversion_credits(_conversion(100, "A", "B", "C"), AttributionRule.TIME_DECAY)
        assert credits == pytest.approx({"A": 1 / 7, "B": 2 / 7, "C": 4 / 7})

    def test_sole_campaign_gets_exactly_one(self):
        conv = _conversion(100, "A", "A", "A")
        for rule in AttributionRule:
            assert conversion_credits(conv, rule) == {"A": 1.0}

    def test_empty_journey(self):
        assert conversion_credits(Conversion(value=10), AttributionRule.LINEAR) == {}


# ── Aggregation ────────────────────────────────────────────────────────────────

class TestAnalyzeAttribution:
    def test_worked_example(self):
        results = analyze_attribution(_campaigns("A", "B", "C"), [_conversion(100, "A", "B", "C")])
        assert results["A"].time_decay.revenue == pytest.approx(14.2857, abs=1e-3)
        assert results["B"].time_decay.revenue == pytest.approx(28.5714, abs=1e-3)
        assert results["C"].time_decay.revenue == pytest.approx(57.1429, abs=1e-3)
        assert results["A"].first_touch.revenue == pytest.approx(100.0)
        assert results["C"].last_touch.revenue == pytest.approx(100.0)
        assert results["B"].linear.revenue == pytest.approx(100.0 / 3)

    def test_single_touch_conservation(self):
        conversions = [_conversion(100, "A"), _conversion(250, "B"), _conversion(50, "A")]
        results = analyze_attribution(_campaigns("A", "B"), conversions)
        for rule in AttributionRule:
            shares = [getattr(r, rule.value) for r in results.values()]
            assert sum(s.conversions for s in shares) == pytest.approx(3.0)
            assert sum(s.revenue for s in shares) == pytest.approx(400.0)
            assert sum(s.attribution for s in shares) == pytest.approx(1.0)

    def test_global_denominator(self):
        conversions = [_conversion(100, "A", "B"), _conversion(100, "A")]
        results = analyze_attribution(_campaigns("A", "B"), conversions)
        assert results["A"].linear.attribution == pytest.approx(0.75)
        assert results["B"].linear.attribution == pytest.approx(0.25)
        # multi-touch shares may sum past 1 under first/last touch across campaigns
        assert results["A"].first_touch.attribution == pytest.approx(1.0)
        assert results["A"].last_touch.attribution == pytest.approx(0.5)

    def test_zero_conversions(self):
        results = analyze_attribution(_campaigns("A", "B"), [])
        for result in results.values():
            for rule in AttributionRule:
                share = getattr(result, rule.value)
                assert (share.conversions, share.revenue, share.attribution) == (0.0, 0.0, 0.0)

    def test_empty_journeys_ignored(self):
        conversions = [Conversion(value=500), _conversion(100, "A")]
        results = analyze_attribution(_campaigns("A"), conversions)
        assert results["A"].first_touch.attribution == pytest.approx(1.0)
        assert results["A"].first_touch.revenue == pytest.approx(100.0)

    def test_untouched_campaign_reports_zero(self):
        results = analyze_attribution(_campaigns("A", "Z"), [_conversion(100, "A")])
        assert results["Z"].time_decay.attribution == 0.0
        assert list(results) == ["A", "Z"]

    def test_sample_snapshot(self, sample_snapshot):
        results = analyze_attribution(sample_snapshot.marketing, sample_snapshot.conversions)
        # cv1 [m1, m2] worth 100, cv2 [m2] worth 300
        assert results["m1"].time_decay.revenue == pytest.approx(100 / 3)
        assert results["m2"].time_decay.revenue == pytest.approx(200 / 3 + 300)


class TestTopCampaign:
    def test_picks_most_time_decay_revenue(self):
        results = analyze_attribution(_campaigns("A", "B", "C"), [_conversion(100, "A", "B", "C")])
        assert top_campaign(results).campaign_id == "C"
        assert top_campaign(results, AttributionRule.FIRST_TOUCH).campaign_id == "A"

    def test_none_without_credit(self):
        assert top_campaign(analyze_attribution(_campaigns("A"), [])) is None
