"""
Tests for channel normalization.

Validates:
- Raw customer-type codes map onto the canonical channel set
- Unknown and empty codes fall into the configured default channel
- Mixed rows attribute to their first channel and split without losing revenue
"""

import pytest

from margin_core.channels import ChannelNormalizer, normalize_channel
from margin_core.config import (
    CANONICAL_CHANNELS,
    ECOMMERCE,
    KUHL_STORES,
    REI,
    WHOLESALE,
    EngineConfig,
)


class TestNormalize:
    """Test suite for single-channel attribution."""

    def test_direct_codes(self, normalizer):
        """Canonical codes map to themselves."""
        assert normalizer.normalize("WH") == WHOLESALE
        assert normalizer.normalize("BB") == REI
        assert normalizer.normalize("EC") == ECOMMERCE

    def test_store_codes_fold_together(self, normalizer):
        """WD and DTC are both KÜHL Stores."""
        assert normalizer.normalize("WD") == KUHL_STORES
        assert normalizer.normalize("DTC") == KUHL_STORES

    def test_case_and_whitespace(self, normalizer):
        """Codes are trimmed and upper-cased."""
        assert normalizer.normalize(" bb ") == REI
        assert normalizer.normalize("wd") == KUHL_STORES

    def test_unknown_and_empty_use_default(self, normalizer):
        """Unrecognized, empty and missing codes fall into Wholesale."""
        assert normalizer.normalize("ZZ") == WHOLESALE
        assert normalizer.normalize("") == WHOLESALE
        assert normalizer.normalize(None) == WHOLESALE

    def test_configurable_default(self):
        """The fallback channel comes from the config."""
        config = EngineConfig(default_channel=ECOMMERCE)
        assert normalize_channel("ZZ", config) == ECOMMERCE
        assert normalize_channel(None, config) == ECOMMERCE

    def test_idempotent(self, normalizer):
        """Normalizing a canonical channel again changes nothing."""
        for raw in ["WH", "BB", "WD", "DTC", "EC", "PS", "KI", "ZZ", ""]:
            once = normalizer.normalize(raw)
            assert normalizer.normalize(once) == once

    def test_result_always_canonical(self, normalizer):
        """Every output is a member of the canonical set."""
        for raw in ["WH", "WD,BB", "ZZ,QQ", ",", None, "ps"]:
            assert normalizer.normalize(raw) in CANONICAL_CHANNELS

    def test_label(self, normalizer):
        """Display labels come from the config."""
        assert normalizer.label(KUHL_STORES) == "KÜHL Stores"
        assert normalizer.label(REI) == "REI"


class TestResolve:
    """Test suite for multi-code resolution."""

    def test_mixed_primary_is_first(self, normalizer):
        """A mixed row attributes to its first channel."""
        resolution = normalizer.resolve("WD,BB")
        assert resolution.channels == (KUHL_STORES, REI)
        assert resolution.primary == KUHL_STORES
        assert resolution.is_mixed is True

    def test_duplicate_channels_collapse(self, normalizer):
        """WD and DTC resolve to one channel, so the row is not mixed."""
        resolution = normalizer.resolve("WD,DTC")
        assert resolution.channels == (KUHL_STORES,)
        assert resolution.is_mixed is False

    def test_unrecognized_codes_reported(self, normalizer):
        """Unknown tokens are kept for data quality reporting."""
        resolution = normalizer.resolve("BB,ZZ")
        assert resolution.unrecognized == ("ZZ",)
        assert resolution.channels == (REI, WHOLESALE)

    def test_empty_tokens_ignored(self, normalizer):
        """Stray commas do not create channels."""
        resolution = normalizer.resolve("BB,,")
        assert resolution.raw_codes == ("BB",)
        assert resolution.channels == (REI,)


class TestSplitAmounts:
    """Test suite for splitting mixed rows across channels."""

    def test_single_channel_keeps_totals(self, normalizer):
        """Single-channel rows pass through unchanged."""
        shares = normalizer.split_amounts("BB", 4000, 100)
        assert len(shares) == 1
        assert shares[0].revenue == 4000
        assert shares[0].units == 100

    def test_even_split(self, normalizer):
        """Two channels get half each."""
        shares = normalizer.split_amounts("WD,BB", 4000, 100)
        assert [s.channel for s in shares] == [KUHL_STORES, REI]
        assert [s.revenue for s in shares] == [2000, 2000]
        assert [s.units for s in shares] == [50, 50]

    def test_split_conserves_totals(self, normalizer):
        """Uneven splits still add back to the row totals."""
        shares = normalizer.split_amounts("WD,BB,EC", 100, 10)
        assert sum(s.revenue for s in shares) == pytest.approx(100)
        assert sum(s.units for s in shares) == pytest.approx(10)

    def test_explode_sales_conserves_revenue(self, normalizer, sample_sales):
        """Exploded rows sum to the same revenue as the input."""
        exploded = list(normalizer.explode_sales(sample_sales))
        assert sum(r.revenue for r in exploded) == pytest.approx(
            sum(s.revenue for s in sample_sales)
        )
        assert len(exploded) == len(sample_sales) + 1
        assert sum(1 for r in exploded if r.is_mixed) == 2


class TestConfigValidation:
    """Test suite for channel-related config checks."""

    def test_default_channel_must_be_canonical(self):
        """A non-canonical default channel is rejected."""
        with pytest.raises(ValueError):
            EngineConfig(default_channel="XX")

    def test_alias_must_target_canonical(self):
        """Aliases may only point at canonical channels."""
        with pytest.raises(ValueError):
            EngineConfig(channel_aliases={"WD": "STORES"})

    def test_custom_alias(self):
        """Extra aliases extend the mapping."""
        config = EngineConfig(channel_aliases={"WD": KUHL_STORES, "OUT": KUHL_STORES})
        assert ChannelNormalizer(config).normalize("OUT") == KUHL_STORES
