"""
Tests for margin calculations.

Validates:
- Undefined inputs give None, never 0, NaN or infinity
- Tier boundaries belong to the higher tier
- Baseline vs weighted margin on a mixed-channel style
- Portfolio summaries are revenue-weighted
"""

import pytest

from margin_core.config import KUHL_STORES, REI, WHOLESALE, EngineConfig
from margin_core.margins import (
    MarginTier,
    avg_net_price,
    baseline_margin,
    compare_margins,
    compute_channel_metrics,
    compute_style_margins,
    margin_delta,
    margin_health,
    margin_tier,
    price_ladder,
    summarize_margins,
    vs_target,
    weighted_margin,
)
from margin_core.reconciliation import reconcile


class TestMarginFormulas:
    """Test suite for the scalar formulas."""

    def test_baseline_margin(self):
        """(wholesale - landed) / wholesale."""
        assert baseline_margin(50, 20) == pytest.approx(60.0)

    def test_baseline_undefined(self):
        """Missing or non-positive inputs are undefined."""
        assert baseline_margin(0, 20) is None
        assert baseline_margin(50, 0) is None
        assert baseline_margin(None, 20) is None
        assert baseline_margin(50, float("nan")) is None

    def test_avg_net_price(self):
        assert avg_net_price(4000, 100) == pytest.approx(40.0)
        assert avg_net_price(0, 100) is None
        assert avg_net_price(4000, 0) is None

    def test_weighted_margin(self):
        """Margin against the realized price per unit."""
        assert weighted_margin(4000, 100, 20) == pytest.approx(50.0)
        assert weighted_margin(4000, 0, 20) is None

    def test_margin_delta(self):
        assert margin_delta(50.0, 60.0) == pytest.approx(-10.0)
        assert margin_delta(None, 60.0) is None
        assert margin_delta(50.0, None) is None

    def test_vs_target(self):
        assert vs_target(50.0, 48.0) == pytest.approx(2.0)
        assert vs_target(None, 48.0) is None


class TestMarginTier:
    """Test suite for tier bucketing."""

    @pytest.mark.parametrize(
        "margin,expected",
        [
            (60.0, MarginTier.EXCELLENT),
            (55.0, MarginTier.EXCELLENT),
            (54.99, MarginTier.TARGET),
            (45.0, MarginTier.TARGET),
            (44.99, MarginTier.WATCH),
            (35.0, MarginTier.WATCH),
            (34.99, MarginTier.PROBLEM),
            (-5.0, MarginTier.PROBLEM),
        ],
    )
    def test_boundaries(self, margin, expected):
        """Each boundary value belongs to the higher tier."""
        assert margin_tier(margin) is expected

    def test_undefined_has_no_tier(self):
        assert margin_tier(None) is None

    def test_custom_thresholds(self):
        """Cut points come from the config."""
        config = EngineConfig(
            excellent_threshold=60, target_threshold=50, watch_threshold=40
        )
        assert margin_tier(55.0, config) is MarginTier.TARGET


class TestPriceLadder:
    """Test suite for the cost -> wholesale -> MSRP ladder."""

    def test_full_ladder(self):
        ladder = price_ladder(20, 50, 100)
        assert ladder.cost_to_wholesale == pytest.approx(60.0)
        assert ladder.wholesale_to_msrp == pytest.approx(50.0)
        assert ladder.full_markup == pytest.approx(400.0)
        assert ladder.cost_to_wholesale_multiplier == pytest.approx(2.5)
        assert ladder.wholesale_to_msrp_multiplier == pytest.approx(2.0)
        assert ladder.full_multiplier == pytest.approx(5.0)
        assert ladder.has_cost is True

    def test_missing_cost(self):
        """Without a cost only the wholesale -> MSRP step is defined."""
        ladder = price_ladder(0, 50, 100)
        assert ladder.cost_to_wholesale is None
        assert ladder.full_markup is None
        assert ladder.wholesale_to_msrp == pytest.approx(50.0)
        assert ladder.has_cost is False


class TestMarginComparison:
    """Test suite for baseline vs weighted margin per style+season."""

    def test_mixed_channel_style(self, make_product, make_sale, normalizer):
        """List price 50, realized 40 across two channels."""
        products = [make_product(cost=20, price=50)]
        sales = [make_sale(customer_type="WD,BB", revenue=4000, units_booked=100)]
        records = reconcile([], products, sales)

        assert records[0].landed_cost.value == 20
        assert records[0].landed_cost.provenance.value == "product"

        comparison = compare_margins(records, sales, normalizer)[0]
        assert comparison.baseline_margin == pytest.approx(60.0)
        assert comparison.avg_net_price == pytest.approx(40.0)
        assert comparison.weighted_margin == pytest.approx(50.0)
        assert comparison.margin_delta == pytest.approx(-10.0)

        channels = {c.channel: c for c in comparison.channels}
        assert set(channels) == {KUHL_STORES, REI}
        assert channels[KUHL_STORES].revenue == pytest.approx(2000)
        assert channels[KUHL_STORES].units == pytest.approx(50)
        assert channels[REI].revenue == pytest.approx(2000)
        assert channels[REI].margin == pytest.approx(50.0)

    def test_no_sales(self, make_product, normalizer):
        """Without sales the weighted margin is undefined."""
        records = reconcile([], [make_product(cost=20, price=50)])
        comparison = compare_margins(records, [], normalizer)[0]
        assert comparison.baseline_margin == pytest.approx(60.0)
        assert comparison.weighted_margin is None
        assert comparison.margin_delta is None
        assert comparison.channels == []


class TestStyleMargins:
    """Test suite for per-style realized margins."""

    def test_sample_styles(self, sample_sales):
        """COGS is units x resolved cost."""
        lookup = {"A1": 20.0, "B2": 25.0}
        margins = {m.style_number: m for m in compute_style_margins(sample_sales, lookup)}

        a1 = margins["A1"]
        assert a1.revenue == pytest.approx(8500)
        assert a1.units == pytest.approx(200)
        assert a1.cogs == pytest.approx(4000)
        assert a1.gross == pytest.approx(4500)
        assert a1.margin == pytest.approx(4500 / 8500 * 100)
        assert a1.tier is MarginTier.TARGET
        assert a1.gender == "Men's"
        assert a1.vs_target == pytest.approx(4500 / 8500 * 100 - 48)

        assert margins["B2"].tier is MarginTier.EXCELLENT

    def test_uncosted_style_is_undefined(self, sample_sales):
        """No resolved cost means no margin, not a 100% margin."""
        margins = {m.style_number: m for m in compute_style_margins(sample_sales, {})}
        e5 = margins["E5"]
        assert e5.cost is None
        assert e5.cogs is None
        assert e5.margin is None
        assert e5.tier is None
        assert e5.revenue == pytest.approx(500)

    def test_target_from_config(self, sample_sales):
        config = EngineConfig(target_margin_percent=50)
        margins = compute_style_margins(sample_sales, {"A1": 20.0}, config)
        assert margins[0].vs_target == pytest.approx(4500 / 8500 * 100 - 50)


class TestChannelMetrics:
    """Test suite for channel-level metrics."""

    def test_zero_filled(self, normalizer):
        """Every canonical channel appears, even with no sales."""
        metrics = compute_channel_metrics([], {}, normalizer)
        assert [m.channel for m in metrics] == list(normalizer.channels)
        assert all(m.revenue == 0 for m in metrics)
        assert all(m.margin is None for m in metrics)
        assert all(m.avg_net_price is None for m in metrics)

    def test_sample_channels(self, sample_sales, normalizer):
        """Mixed rows split; unknown codes land in Wholesale."""
        lookup = {"A1": 20.0, "B2": 25.0}
        metrics = {
            m.channel: m for m in compute_channel_metrics(sample_sales, lookup, normalizer)
        }
        assert metrics[REI].revenue == pytest.approx(6500)
        assert metrics[REI].units == pytest.approx(150)
        assert metrics[KUHL_STORES].revenue == pytest.approx(2000)
        assert metrics[WHOLESALE].revenue == pytest.approx(3500)
        assert metrics[WHOLESALE].margin == pytest.approx((3000 - 1250) / 3000 * 100)
        assert sum(m.revenue for m in metrics.values()) == pytest.approx(12000)
        assert sum(m.revenue_share for m in metrics.values()) == pytest.approx(100)


class TestSummaries:
    """Test suite for portfolio summary and health."""

    def test_summary_weighted(self, sample_sales):
        lookup = {"A1": 20.0, "B2": 25.0}
        summary = summarize_margins(compute_style_margins(sample_sales, lookup))
        assert summary["total_revenue"] == pytest.approx(12000)
        assert summary["costed_revenue"] == pytest.approx(11500)
        assert summary["total_cogs"] == pytest.approx(5250)
        assert summary["overall_margin"] == pytest.approx(6250 / 11500 * 100)
        assert summary["markup"] == pytest.approx(6250 / 5250 * 100)
        assert summary["style_count"] == 3
        assert summary["uncosted_style_count"] == 1

    def test_summary_empty(self):
        summary = summarize_margins([])
        assert summary["overall_margin"] is None
        assert summary["markup"] is None

    def test_health(self, sample_sales):
        lookup = {"A1": 20.0, "B2": 25.0}
        health = margin_health(compute_style_margins(sample_sales, lookup))
        assert health["excellent"] == {"count": 1, "pct": pytest.approx(50.0)}
        assert health["target"]["count"] == 1
        assert health["problem"]["count"] == 0
