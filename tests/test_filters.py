"""
Tests for filter options.

Validates:
- Season and style search narrow every source
- Channel filters keep only the selected channel's share of mixed rows
- Sourcing filters match projected values, including "Multiple"
"""

import pytest
from pydantic import ValidationError

from margin_core.config import KUHL_STORES
from margin_core.filters import (
    FilterOptions,
    filter_cost_records,
    filter_products,
    filter_reconciled,
    filter_sales,
    selected_channel,
)
from margin_core.reconciliation import MULTIPLE, reconcile


class TestFilterOptions:
    """Test suite for the options model."""

    def test_camel_case_aliases(self):
        """Options accept the field names a front end sends."""
        filters = FilterOptions.model_validate(
            {"styleNumberSearch": "a1", "designTeam": "Women's"}
        )
        assert filters.style_number_search == "a1"
        assert filters.design_team == "Women's"

    def test_style_search_case_insensitive(self):
        filters = FilterOptions(style_number_search=" a1 ")
        assert filters.matches_style("A1") is True
        assert filters.matches_style("XA1Z") is True
        assert filters.matches_style("B2") is False

    def test_empty_matches_everything(self):
        filters = FilterOptions()
        assert filters.matches_style("anything") is True
        assert filters.matches_season("26FA") is True

    def test_negative_top_n_rejected(self):
        with pytest.raises(ValidationError):
            FilterOptions(top_n=-1)


class TestSourceFilters:
    """Test suite for pre-join filters."""

    def test_season(self, sample_products, sample_costs):
        filters = FilterOptions(season="25FA")
        assert [p.style_number for p in filter_products(sample_products, filters)] == [
            "C3"
        ]
        assert filter_cost_records(sample_costs, filters) == []

    def test_channel_matches_mixed_rows(self, sample_sales, normalizer):
        """Filtering on WD keeps only the WD share of the WD,BB row."""
        kept = filter_sales(sample_sales, FilterOptions(customer_type="WD"), normalizer)
        assert [s.customer_type for s in kept] == [KUHL_STORES]
        assert kept[0].revenue == pytest.approx(2000)
        assert kept[0].units_booked == pytest.approx(50)

    def test_channel_by_canonical_code(self, sample_sales, normalizer):
        kept = filter_sales(sample_sales, FilterOptions(customer_type="BB"), normalizer)
        assert [s.revenue for s in kept] == pytest.approx([4500, 2000])

    def test_channel_shares_conserve_revenue(self, sample_sales, normalizer):
        """Each channel's filtered rows add back up to the unfiltered total."""
        total = sum(
            s.revenue
            for channel in normalizer.channels
            for s in filter_sales(
                sample_sales, FilterOptions(customer_type=channel), normalizer
            )
        )
        assert total == pytest.approx(sum(s.revenue for s in sample_sales))

    def test_selected_channel(self, normalizer):
        assert selected_channel(FilterOptions(), normalizer) is None
        assert selected_channel(FilterOptions(customer_type="dtc"), normalizer) == (
            KUHL_STORES
        )

    def test_unknown_codes_filter_as_default(self, sample_sales, normalizer):
        """The ZZ row is counted as Wholesale, so a Wholesale filter keeps it."""
        kept = filter_sales(sample_sales, FilterOptions(customer_type="WH"), normalizer)
        assert {s.style_number for s in kept} == {"B2", "E5"}

    def test_category_normalized(self, sample_sales, normalizer):
        kept = filter_sales(sample_sales, FilterOptions(category="PANTS"), normalizer)
        assert [s.style_number for s in kept] == ["B2"]

    def test_division_and_customer(self, sample_sales, normalizer):
        kept = filter_sales(
            sample_sales,
            FilterOptions(division="Men's Tops", customer="REI Co-op"),
            normalizer,
        )
        assert len(kept) == 1
        assert kept[0].revenue == 4500


class TestReconciledFilters:
    """Test suite for post-join filters."""

    @pytest.fixture
    def records(self, sample_costs, sample_products, sample_sales):
        return reconcile(sample_costs, sample_products, sample_sales)

    def test_multiple_is_selectable(self, records):
        kept = filter_reconciled(records, FilterOptions(factory=MULTIPLE))
        assert [r.key for r in kept] == ["B2-25SP"]

    def test_single_factory(self, records):
        kept = filter_reconciled(records, FilterOptions(factory="F1"))
        assert [r.key for r in kept] == ["A1-25SP"]

    def test_developer(self, records):
        kept = filter_reconciled(records, FilterOptions(developer="Dana"))
        assert [r.style_number for r in kept] == ["A1"]

    def test_division(self, records):
        kept = filter_reconciled(records, FilterOptions(division="Women's Bottoms"))
        assert [r.style_number for r in kept] == ["B2"]
