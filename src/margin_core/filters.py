"""
User-selected filters.

Season and style-number search narrow the sources before the join. Sourcing
attributes (factory, country, design team, developer) are applied after the
join to the projected values, so "Multiple" is a selectable value.
"""

from typing import Iterable

from pydantic import BaseModel, ConfigDict, Field
from pydantic.alias_generators import to_camel

from .channels import ChannelNormalizer
from .models import CostRecord, ProductRecord, SalesRecord
from .parsers import normalize_category
from .reconciliation import ReconciledStyleSeason


class FilterOptions(BaseModel):
    """Active filter selection. Empty/None means "no filter"."""

    model_config = ConfigDict(
        alias_generator=to_camel, populate_by_name=True, frozen=True
    )

    season: str | None = None
    division: str | None = None
    category: str | None = None
    customer_type: str | None = None
    customer: str | None = None
    factory: str | None = None
    country: str | None = None
    design_team: str | None = None
    developer: str | None = None
    style_number_search: str | None = None
    # None defers to EngineConfig.target_margin_percent (48 by default)
    target_margin_percent: float | None = None
    top_n: int | None = Field(default=None, ge=0)

    def matches_style(self, style_number: str) -> bool:
        """Case-insensitive substring match on the style number."""
        if not self.style_number_search:
            return True
        return self.style_number_search.strip().lower() in style_number.lower()

    def matches_season(self, season: str) -> bool:
        return not self.season or season == self.season


NO_FILTERS = FilterOptions()


def filter_products(
    products: Iterable[ProductRecord], filters: FilterOptions
) -> list[ProductRecord]:
    return [
        p
        for p in products
        if filters.matches_season(p.season) and filters.matches_style(p.style_number)
    ]


def filter_cost_records(
    costs: Iterable[CostRecord], filters: FilterOptions
) -> list[CostRecord]:
    return [
        c
        for c in costs
        if filters.matches_season(c.season) and filters.matches_style(c.style_number)
    ]


def filter_sales(
    sales: Iterable[SalesRecord],
    filters: FilterOptions,
    normalizer: ChannelNormalizer,
) -> list[SalesRecord]:
    """
    Apply season, style, division, category, customer and channel filters.

    A channel filter matches a mixed row if the selected channel is one of
    the row's channels. Only that channel's share of the row is kept,
    re-tagged with the canonical channel code, so the views filtered to
    each channel add back up to the unfiltered total.
    """
    wanted_channel = selected_channel(filters, normalizer)
    wanted_category = normalize_category(filters.category) if filters.category else None

    kept = []
    for s in sales:
        if not filters.matches_season(s.season):
            continue
        if not filters.matches_style(s.style_number):
            continue
        if filters.division and s.division_desc != filters.division:
            continue
        if wanted_category and normalize_category(s.category_desc) != wanted_category:
            continue
        if filters.customer and s.customer != filters.customer:
            continue
        if wanted_channel:
            s = _channel_share(s, wanted_channel, normalizer)
            if s is None:
                continue
        kept.append(s)
    return kept


def selected_channel(
    filters: FilterOptions, normalizer: ChannelNormalizer
) -> str | None:
    """Canonical channel of the customer-type filter, or None when unset."""
    if not filters.customer_type:
        return None
    return normalizer.normalize(filters.customer_type)


def _channel_share(
    record: SalesRecord, channel: str, normalizer: ChannelNormalizer
) -> SalesRecord | None:
    shares = normalizer.split_amounts(
        record.customer_type, record.revenue, record.units_booked
    )
    if len(shares) == 1:
        return record if shares[0].channel == channel else None
    for share in shares:
        if share.channel == channel:
            return record.model_copy(
                update={
                    "customer_type": channel,
                    "revenue": share.revenue,
                    "units_booked": share.units,
                }
            )
    return None


_SOURCING_FILTERS = ("factory", "country", "design_team", "developer")


def filter_reconciled(
    records: Iterable[ReconciledStyleSeason], filters: FilterOptions
) -> list[ReconciledStyleSeason]:
    """Post-join filters on projected values (including "Multiple")."""
    wanted_category = normalize_category(filters.category) if filters.category else None

    kept = []
    for r in records:
        if any(
            getattr(filters, name) and r.display(name) != getattr(filters, name)
            for name in _SOURCING_FILTERS
        ):
            continue
        if filters.division and r.division != filters.division:
            continue
        if wanted_category and normalize_category(r.category) != wanted_category:
            continue
        kept.append(r)
    return kept
