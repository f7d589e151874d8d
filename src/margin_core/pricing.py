"""
Season-over-season price comparison.

Wholesale price and MSRP for a style+season come from the first source that
lists either one, in priority order:
1. Line list
2. Sales export (first row carrying a price)

Deltas are only defined when both seasons have the price. The margin uses
the "to" season's landed cost.
"""

import logging
from dataclasses import dataclass
from enum import Enum
from typing import Iterable

import pandas as pd

from .margins import margin_percent
from .models import (
    CostRecord,
    ProductRecord,
    Provenance,
    SalesRecord,
    SourceProvider,
    first_available,
    style_season_key,
    to_plain,
)
from .parsers import normalize_category, previous_season

logger = logging.getLogger(__name__)


class PriceDirection(Enum):
    INCREASE = "increase"
    DECREASE = "decrease"
    UNCHANGED = "unchanged"


@dataclass(frozen=True)
class ListedPrice:
    """Prices and descriptive fields taken from one source row."""

    price: float | None
    msrp: float | None
    style_desc: str
    category: str
    division: str


def _listed(
    price: float, msrp: float, style_desc: str, category: str, division: str
) -> ListedPrice | None:
    price = price if price > 0 else None
    msrp = msrp if msrp > 0 else None
    if price is None and msrp is None:
        return None
    return ListedPrice(price, msrp, style_desc, normalize_category(category), division)


def _from_product(p: ProductRecord) -> ListedPrice | None:
    return _listed(p.price, p.msrp, p.style_desc, p.category_desc, p.division_desc)


def _from_sale(s: SalesRecord) -> ListedPrice | None:
    return _listed(
        s.wholesale_price, s.msrp, s.style_desc, s.category_desc, s.division_desc
    )


@dataclass(frozen=True)
class StylePriceChange:
    """One style's prices in two seasons."""

    style_number: str
    style_desc: str
    category: str
    division: str
    from_price: float | None
    to_price: float | None
    from_msrp: float | None
    to_msrp: float | None
    price_delta: float | None
    price_change_percent: float | None
    msrp_delta: float | None
    msrp_change_percent: float | None
    margin: float | None
    from_source: Provenance
    to_source: Provenance

    @property
    def direction(self) -> PriceDirection:
        """Missing either price counts as unchanged."""
        if self.price_delta is None or self.price_delta == 0:
            return PriceDirection.UNCHANGED
        if self.price_delta > 0:
            return PriceDirection.INCREASE
        return PriceDirection.DECREASE

    def to_dict(self) -> dict:
        data = to_plain(self)
        data["direction"] = self.direction.value
        return data


def _change(old: float | None, new: float | None) -> tuple[float | None, float | None]:
    if old is None or new is None:
        return None, None
    delta = new - old
    return delta, delta / old * 100


def _first_priced(records: Iterable, extract) -> dict[str, object]:
    """First record per style+season key that lists a price."""
    found: dict[str, object] = {}
    for record in records:
        if record.key not in found and extract(record) is not None:
            found[record.key] = record
    return found


def compare_season_prices(
    products: Iterable[ProductRecord],
    to_season: str,
    from_season: str | None = None,
    sales: Iterable[SalesRecord] = (),
    costs: Iterable[CostRecord] = (),
) -> list[StylePriceChange]:
    """
    Compare every style listed or sold in either season.

    `from_season` defaults to the same half of the prior year (26FA -> 25FA).
    Styles come back in first-seen order, line list before sales.
    """
    if from_season is None:
        from_season = previous_season(to_season)
        if from_season is None:
            raise ValueError(f"No previous season for {to_season!r}")

    products = list(products)
    sales = list(sales)
    seasons = (from_season, to_season)

    product_prices = _first_priced(products, _from_product)
    sales_prices = _first_priced(sales, _from_sale)

    landed: dict[str, float] = {}
    for c in costs:
        if c.season == to_season and c.landed > 0:
            landed.setdefault(c.style_number, c.landed)

    # Descriptive fallback for styles priced in neither season's row
    info: dict[str, ListedPrice] = {}
    for record in products + sales:
        info.setdefault(
            record.style_number,
            ListedPrice(
                None,
                None,
                record.style_desc,
                normalize_category(record.category_desc),
                record.division_desc,
            ),
        )

    styles = dict.fromkeys(
        r.style_number for r in products + sales if r.season in seasons
    )

    def resolve(style: str, season: str):
        key = style_season_key(style, season)
        return first_available(
            [
                SourceProvider(
                    product_prices.get(key), _from_product, Provenance.PRODUCT
                ),
                SourceProvider(sales_prices.get(key), _from_sale, Provenance.SALES),
            ]
        )

    empty = ListedPrice(None, None, "", "", "")
    changes = []
    for style in styles:
        old = resolve(style, from_season)
        new = resolve(style, to_season)
        old_price: ListedPrice = old.value or empty
        new_price: ListedPrice = new.value or empty
        fallback = info[style]

        price_delta, price_pct = _change(old_price.price, new_price.price)
        msrp_delta, msrp_pct = _change(old_price.msrp, new_price.msrp)
        changes.append(
            StylePriceChange(
                style_number=style,
                style_desc=new_price.style_desc
                or old_price.style_desc
                or fallback.style_desc,
                category=new_price.category or old_price.category or fallback.category,
                division=new_price.division or old_price.division or fallback.division,
                from_price=old_price.price,
                to_price=new_price.price,
                from_msrp=old_price.msrp,
                to_msrp=new_price.msrp,
                price_delta=price_delta,
                price_change_percent=price_pct,
                msrp_delta=msrp_delta,
                msrp_change_percent=msrp_pct,
                margin=margin_percent(new_price.price, landed.get(style)),
                from_source=old.provenance,
                to_source=new.provenance,
            )
        )

    logger.debug(
        "Compared prices %s -> %s for %d styles", from_season, to_season, len(changes)
    )
    return changes


def summarize_price_changes(changes: Iterable[StylePriceChange]) -> dict:
    """Counts and average size of increases and decreases."""
    changes = list(changes)
    increases = [
        c.price_delta for c in changes if c.direction is PriceDirection.INCREASE
    ]
    decreases = [
        -c.price_delta for c in changes if c.direction is PriceDirection.DECREASE
    ]
    margins = [c.margin for c in changes if c.margin is not None]
    return {
        "total_styles": len(changes),
        "increases": len(increases),
        "decreases": len(decreases),
        "avg_increase": sum(increases) / len(increases) if increases else None,
        "avg_decrease": sum(decreases) / len(decreases) if decreases else None,
        "avg_margin": sum(margins) / len(margins) if margins else None,
    }


def price_changes_by_category(changes: Iterable[StylePriceChange]) -> list[dict]:
    """Increase/decrease/unchanged counts per category, largest first."""
    df = pd.DataFrame(
        [
            {"category": c.category or "Unknown", "direction": c.direction.value}
            for c in changes
        ],
        columns=["category", "direction"],
    )
    if df.empty:
        return []

    counts = pd.crosstab(df["category"], df["direction"]).reindex(
        columns=[d.value for d in PriceDirection], fill_value=0
    )
    counts["total"] = counts.sum(axis=1)
    counts = counts.sort_values("total", ascending=False, kind="stable")
    return [
        {"category": str(category), **{k: int(v) for k, v in row.items()}}
        for category, row in counts.iterrows()
    ]
