"""
Pytest fixtures for margin engine tests.

The sample data is a small but complete season: a line list with two colors
of one style, a landed + standard cost sheet with two factories for one
style, and sales with a mixed-channel row and an unknown channel code.
"""

import pytest

from margin_core.channels import ChannelNormalizer
from margin_core.config import DEFAULT_CONFIG
from margin_core.models import CostRecord, ProductRecord, SalesRecord

# =============================================================================
# RECORD FACTORIES
# =============================================================================


@pytest.fixture
def make_product():
    """Build a ProductRecord with sensible defaults."""

    def _make(style_number="A1", season="25SP", **kwargs) -> ProductRecord:
        return ProductRecord(style_number=style_number, season=season, **kwargs)

    return _make


@pytest.fixture
def make_sale():
    """Build a SalesRecord with sensible defaults."""

    def _make(style_number="A1", season="25SP", **kwargs) -> SalesRecord:
        return SalesRecord(style_number=style_number, season=season, **kwargs)

    return _make


@pytest.fixture
def make_cost():
    """Build a CostRecord with sensible defaults."""

    def _make(style_number="A1", season="25SP", **kwargs) -> CostRecord:
        return CostRecord(style_number=style_number, season=season, **kwargs)

    return _make


@pytest.fixture
def normalizer() -> ChannelNormalizer:
    return ChannelNormalizer(DEFAULT_CONFIG)


# =============================================================================
# SAMPLE SEASON
# =============================================================================


@pytest.fixture
def sample_products(make_product) -> list[ProductRecord]:
    return [
        make_product(
            "A1",
            color="BLK",
            style_desc="Renegade Shirt",
            division_desc="Men's Tops",
            category_desc="shirts",
            tech_designer_name="Dana",
            factory_name="F1",
            country_of_origin="Vietnam",
            cost=20,
            price=50,
            msrp=100,
        ),
        make_product(
            "A1",
            color="NVY",
            style_desc="Renegade Shirt",
            division_desc="Men's Tops",
            category_desc="shirts",
            factory_name="F1",
            cost=21,
            price=50,
            msrp=100,
        ),
        make_product(
            "B2",
            style_desc="Freeflex Pant",
            division_desc="Women's Bottoms",
            category_desc="Pants",
            factory_name="F3",
            cost=0,
            price=60,
            msrp=120,
        ),
        make_product(
            "C3",
            season="25FA",
            style_desc="Konfidant Jacket",
            division_desc="Men's Outerwear",
            category_desc="Jackets",
            cost=15,
            price=40,
            msrp=80,
        ),
    ]


@pytest.fixture
def sample_costs(make_cost) -> list[CostRecord]:
    return [
        make_cost(
            "B2",
            style_name="Freeflex Pant",
            factory="F1",
            country_of_origin="Vietnam",
            design_team="Women's",
            developer="Lee",
            fob=18,
            landed=25,
            suggested_wholesale=62,
            suggested_msrp=125,
            cost_source="landed_cost",
        ),
        make_cost(
            "B2",
            factory="F2",
            country_of_origin="China",
            fob=19,
            landed=26,
            cost_source="standard_cost",
        ),
        make_cost(
            "D4",
            style_name="Deceptr Short",
            factory="F4",
            country_of_origin="India",
            fob=12,
            landed=0,
        ),
    ]


@pytest.fixture
def sample_sales(make_sale) -> list[SalesRecord]:
    return [
        make_sale(
            "A1",
            style_desc="Renegade Shirt",
            customer="REI Co-op",
            customer_type="BB",
            division_desc="Men's Tops",
            category_desc="Shirts",
            units_booked=100,
            revenue=4500,
        ),
        make_sale(
            "A1",
            style_desc="Renegade Shirt",
            customer="KÜHL Stores",
            customer_type="WD,BB",
            division_desc="Men's Tops",
            category_desc="Shirts",
            units_booked=100,
            revenue=4000,
        ),
        make_sale(
            "B2",
            style_desc="Freeflex Pant",
            customer="Backcountry",
            customer_type="WH",
            division_desc="Women's Bottoms",
            category_desc="Pants",
            units_booked=50,
            revenue=3000,
        ),
        make_sale(
            "E5",
            style_desc="Kap",
            customer="Unknown Shop",
            customer_type="ZZ",
            division_desc="Accessories",
            category_desc="Hats",
            units_booked=10,
            revenue=500,
            wholesale_price=30,
        ),
    ]
