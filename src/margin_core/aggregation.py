"""
Generic grouping of reconciled or raw records along any dimension.

Bucket margins are always revenue-weighted: COGS is summed alongside
revenue and the margin is computed once per bucket, so two sub-groups with
revenue R1, R2 and margins M1, M2 combine to (R1*M1 + R2*M2) / (R1 + R2).
Sorting and paging are separate steps applied after aggregation.
"""

import logging
import math
from dataclasses import dataclass, field
from enum import Enum
from operator import attrgetter
from typing import Any, Callable, Iterable, Sequence, TypeVar

import numpy as np
import pandas as pd

from .channels import ChannelNormalizer
from .models import ResolvedField, SalesRecord, to_plain
from .parsers import (
    gender_from_division,
    normalize_category,
    previous_season,
    sort_seasons,
)

logger = logging.getLogger(__name__)

T = TypeVar("T")

# ASCII unit separator: never appears in style numbers, seasons or names
KEY_DELIMITER = "\x1f"

_COLUMNS = ["key", "revenue", "units", "cogs", "costed_revenue"]


@dataclass(frozen=True)
class AggregationBucket:
    """Totals for one dimension value."""

    key: str
    components: tuple[str, ...]
    revenue: float = 0.0
    units: float = 0.0
    count: int = 0
    cogs: float = 0.0
    costed_revenue: float = 0.0

    @property
    def gross(self) -> float | None:
        if self.costed_revenue <= 0:
            return None
        return self.costed_revenue - self.cogs

    @property
    def margin(self) -> float | None:
        """Revenue-weighted margin (percent) over the costed part of the bucket."""
        if self.costed_revenue <= 0:
            return None
        return (self.costed_revenue - self.cogs) / self.costed_revenue * 100

    @property
    def avg_net_price(self) -> float | None:
        if self.revenue <= 0 or self.units <= 0:
            return None
        return self.revenue / self.units

    def to_dict(self) -> dict:
        data = to_plain(self)
        data.update(
            gross=self.gross, margin=self.margin, avg_net_price=self.avg_net_price
        )
        return data


def composite_key(*parts: str) -> str:
    """Join several dimension values into one grouping key."""
    for part in parts:
        if KEY_DELIMITER in str(part):
            raise ValueError(f"Key part {part!r} contains the key delimiter")
    return KEY_DELIMITER.join(str(p) for p in parts)


def split_key(key: str) -> tuple[str, ...]:
    """Inverse of composite_key."""
    return tuple(key.split(KEY_DELIMITER))


def group_by(
    records: Iterable[T],
    key_fn: Callable[[T], str],
    *,
    revenue_fn: Callable[[T], float] = attrgetter("revenue"),
    units_fn: Callable[[T], float] = attrgetter("units"),
    cogs_fn: Callable[[T], float | None] | None = None,
    canonical_keys: Sequence[str] | None = None,
) -> list[AggregationBucket]:
    """
    Aggregate records into one bucket per key.

    Args:
        key_fn: Dimension value for a record (use composite_key for several)
        cogs_fn: Cost of goods for a record, or None when its cost is unknown.
            Records with unknown cost still count toward revenue, but not
            toward the margin base.
        canonical_keys: Keys that must always be present (zero-filled), in
            this order, ahead of any other keys found in the data.

    Returns buckets in canonical order, then first-seen order.
    """
    rows = []
    for record in records:
        revenue = float(revenue_fn(record) or 0.0)
        cogs = cogs_fn(record) if cogs_fn else None
        rows.append(
            {
                "key": key_fn(record),
                "revenue": revenue,
                "units": float(units_fn(record) or 0.0),
                "cogs": np.nan if cogs is None else float(cogs),
                "costed_revenue": 0.0 if cogs is None else revenue,
            }
        )

    df = pd.DataFrame(rows, columns=_COLUMNS).astype(
        {"revenue": float, "units": float, "cogs": float, "costed_revenue": float}
    )
    grouped = (
        df.groupby("key", sort=False)
        .agg(
            revenue=("revenue", "sum"),
            units=("units", "sum"),
            count=("revenue", "size"),
            cogs=("cogs", "sum"),  # NaN (unknown cost) is skipped
            costed_revenue=("costed_revenue", "sum"),
        )
    )

    if canonical_keys is not None:
        order = list(dict.fromkeys(canonical_keys))
        seen = set(order)
        order += [k for k in grouped.index if k not in seen]
        grouped = grouped.reindex(order, fill_value=0)

    buckets = [
        AggregationBucket(
            key=str(key),
            components=split_key(str(key)),
            revenue=float(row["revenue"]),
            units=float(row["units"]),
            count=int(row["count"]),
            cogs=float(row["cogs"]),
            costed_revenue=float(row["costed_revenue"]),
        )
        for key, row in grouped.iterrows()
    ]
    logger.debug("Grouped %d records into %d buckets", len(df), len(buckets))
    return buckets


def group_by_channel(
    sales: Iterable[SalesRecord],
    cost_lookup: dict[str, float],
    normalizer: ChannelNormalizer,
) -> list[AggregationBucket]:
    """Channel buckets over every canonical channel; mixed rows are split."""

    def cogs(row) -> float | None:
        cost = cost_lookup.get(row.record.style_number)
        return row.units * cost if cost is not None else None

    return group_by(
        normalizer.explode_sales(sales),
        attrgetter("channel"),
        cogs_fn=cogs,
        canonical_keys=normalizer.channels,
    )


def sales_cogs(cost_lookup: dict[str, float]) -> Callable[[SalesRecord], float | None]:
    """cogs_fn for raw sales rows: units booked x resolved style cost."""

    def cogs(record: SalesRecord) -> float | None:
        cost = cost_lookup.get(record.style_number)
        return record.units_booked * cost if cost is not None else None

    return cogs


# --- Dimension functions -----------------------------------------------------
# Each works on anything with the named attribute (sales rows, style margins,
# reconciled records).


def by_category(record: Any) -> str:
    value = getattr(record, "category_desc", None)
    if value is None:
        value = getattr(record, "category", "")
    return normalize_category(value) or "Other"


def by_gender(record: Any) -> str:
    gender = getattr(record, "gender", None)
    if gender:
        return gender
    division = getattr(record, "division_desc", None)
    if division is None:
        division = getattr(record, "division", "")
    return gender_from_division(division)


def by_customer(record: Any) -> str:
    return getattr(record, "customer", "") or "Unknown"


def by_season(record: Any) -> str:
    return record.season


def by_style_season(record: Any) -> str:
    return composite_key(record.style_number, record.season)


def _resolved(name: str) -> Callable[[Any], str]:
    def key(record: Any) -> str:
        return getattr(record, name).value or "Unknown"

    key.__name__ = f"by_{name}"
    return key


by_factory = _resolved("factory")
by_country = _resolved("country")
by_design_team = _resolved("design_team")
by_developer = _resolved("developer")


# --- Season pivots -----------------------------------------------------------


def season_pivot(
    records: Iterable[Any],
    key_fn: Callable[[Any], str] = by_category,
    value: str = "revenue",
) -> pd.DataFrame:
    """
    Sum `value` per dimension (rows) and season (columns).

    Columns run chronologically (sort_seasons); empty cells are 0.
    """
    rows = [
        {
            "key": key_fn(record),
            "season": record.season,
            "value": float(getattr(record, value) or 0.0),
        }
        for record in records
    ]
    if not rows:
        return pd.DataFrame(dtype=float)

    pivot = pd.DataFrame(rows).pivot_table(
        index="key", columns="season", values="value", aggfunc="sum", fill_value=0.0
    )
    pivot = pivot.reindex(columns=sort_seasons(list(pivot.columns)))
    pivot.index.name = None
    pivot.columns.name = None
    return pivot


def season_over_season(pivot: pd.DataFrame, season: str) -> dict[str, float | None]:
    """
    Percent change per row against the same half of the prior year.

    None where either season is missing or the prior value is not positive.
    """
    prior = previous_season(season)
    has_both = season in pivot.columns and prior in pivot.columns

    changes: dict[str, float | None] = {}
    for key in pivot.index:
        change = None
        if has_both:
            current = float(pivot.at[key, season])
            base = float(pivot.at[key, prior])
            if base > 0:
                change = (current - base) / base * 100
        changes[str(key)] = change
    return changes


# --- Sorting and paging ------------------------------------------------------


def _field_value(item: Any, field_name: str) -> Any:
    if isinstance(item, dict):
        if field_name not in item:
            raise ValueError(f"Unknown sort field: {field_name}")
        value = item[field_name]
    else:
        if not hasattr(item, field_name):
            raise ValueError(f"Unknown sort field: {field_name}")
        value = getattr(item, field_name)
    if isinstance(value, (ResolvedField, Enum)):
        value = value.value
    return value


def _is_missing(value: Any) -> bool:
    return value is None or (isinstance(value, float) and math.isnan(value))


def sort_records(
    items: Iterable[T], field: str = "revenue", descending: bool = True
) -> list[T]:
    """
    Sort by one field. Strings compare case-insensitively; None always last.

    The sort is stable, so equal values keep their aggregation order.
    """
    items = list(items)
    present = [i for i in items if not _is_missing(_field_value(i, field))]
    missing = [i for i in items if _is_missing(_field_value(i, field))]

    def key(item):
        value = _field_value(item, field)
        return value.lower() if isinstance(value, str) else value

    return sorted(present, key=key, reverse=descending) + missing


def top_n(items: Iterable[T], n: int | None, field: str = "revenue") -> list[T]:
    """Highest `n` items by `field` (all items when n is None)."""
    ranked = sort_records(items, field, descending=True)
    return ranked if n is None else ranked[: max(n, 0)]


@dataclass
class Page:
    """One page of a sorted result."""

    items: list
    page: int
    page_size: int
    total_items: int
    total_pages: int = field(init=False)

    def __post_init__(self):
        self.total_pages = math.ceil(self.total_items / self.page_size)

    @property
    def has_next(self) -> bool:
        return self.page < self.total_pages


def paginate(items: Sequence[T], page: int = 1, page_size: int = 50) -> Page:
    """1-based pages. A page past the end is empty, not an error."""
    if page < 1 or page_size < 1:
        raise ValueError("page and page_size must be >= 1")
    start = (page - 1) * page_size
    return Page(
        items=list(items[start : start + page_size]),
        page=page,
        page_size=page_size,
        total_items=len(items),
    )
