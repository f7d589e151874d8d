"""
Margin calculations.

Two margin definitions are kept side by side and never conflated:

- Baseline margin: list wholesale price vs landed cost
- Weighted ("true") margin: actual realized net price (revenue / units,
  blended over every channel the style sold through) vs landed cost

All margins are in percent points (60.0 == 60%). Any division that would
hit zero returns None ("undefined"), never 0, NaN or Infinity.
"""

import logging
from dataclasses import dataclass, field
from enum import Enum
from typing import TYPE_CHECKING, Iterable

from .config import DEFAULT_CONFIG, EngineConfig
from .models import SalesRecord, to_plain
from .parsers import gender_from_division, normalize_category

if TYPE_CHECKING:
    from .channels import ChannelNormalizer
    from .reconciliation import ReconciledStyleSeason

logger = logging.getLogger(__name__)


class MarginTier(Enum):
    """Margin health buckets, highest first."""

    EXCELLENT = "excellent"
    TARGET = "target"
    WATCH = "watch"
    PROBLEM = "problem"


def _positive(value: float | None) -> bool:
    # NaN fails every comparison, so it is treated as missing too
    return value is not None and value > 0


def margin_percent(price: float | None, cost: float | None) -> float | None:
    """(price - cost) / price, in percent. Both inputs must be positive."""
    if not (_positive(price) and _positive(cost)):
        return None
    return (price - cost) / price * 100


def baseline_margin(wholesale: float | None, landed: float | None) -> float | None:
    """Margin against the list wholesale price."""
    return margin_percent(wholesale, landed)


def avg_net_price(revenue: float | None, units: float | None) -> float | None:
    """Realized price per unit; undefined without positive revenue and units."""
    if not (_positive(revenue) and _positive(units)):
        return None
    return revenue / units


def weighted_margin(
    revenue: float | None, units: float | None, landed: float | None
) -> float | None:
    """Margin against the actual average net price."""
    return margin_percent(avg_net_price(revenue, units), landed)


def margin_delta(weighted: float | None, baseline: float | None) -> float | None:
    """Weighted minus baseline, in percent points. Negative = selling below list."""
    if weighted is None or baseline is None:
        return None
    return weighted - baseline


def vs_target(margin: float | None, target: float) -> float | None:
    if margin is None:
        return None
    return margin - target


def margin_tier(
    margin: float | None, config: EngineConfig = DEFAULT_CONFIG
) -> MarginTier | None:
    """Bucket a margin; each boundary belongs to the higher tier."""
    if margin is None:
        return None
    if margin >= config.excellent_threshold:
        return MarginTier.EXCELLENT
    if margin >= config.target_threshold:
        return MarginTier.TARGET
    if margin >= config.watch_threshold:
        return MarginTier.WATCH
    return MarginTier.PROBLEM


def gross_margin(revenue: float, cogs: float | None) -> float | None:
    """(revenue - cogs) / revenue, in percent, when revenue is positive."""
    if cogs is None or not _positive(revenue):
        return None
    return (revenue - cogs) / revenue * 100


@dataclass(frozen=True)
class PriceLadder:
    """Cost -> wholesale -> MSRP margins and multipliers for one price point."""

    cost_to_wholesale: float | None  # (price - cost) / price
    wholesale_to_msrp: float | None  # (msrp - price) / msrp
    full_markup: float | None  # (msrp - cost) / cost
    cost_to_wholesale_multiplier: float | None
    wholesale_to_msrp_multiplier: float | None
    full_multiplier: float | None

    @property
    def has_cost(self) -> bool:
        return self.cost_to_wholesale_multiplier is not None


def _ratio(numerator: float | None, denominator: float | None) -> float | None:
    if not (_positive(numerator) and _positive(denominator)):
        return None
    return numerator / denominator


def price_ladder(
    cost: float | None, price: float | None, msrp: float | None
) -> PriceLadder:
    full_markup = None
    if _positive(cost) and _positive(msrp):
        full_markup = (msrp - cost) / cost * 100
    return PriceLadder(
        cost_to_wholesale=margin_percent(price, cost),
        wholesale_to_msrp=margin_percent(msrp, price),
        full_markup=full_markup,
        cost_to_wholesale_multiplier=_ratio(price, cost),
        wholesale_to_msrp_multiplier=_ratio(msrp, price),
        full_multiplier=_ratio(msrp, cost),
    )


@dataclass(frozen=True)
class StyleMargin:
    """Realized margin for one style across the supplied sales."""

    style_number: str
    style_desc: str
    division_desc: str
    category_desc: str
    gender: str
    cost: float | None
    revenue: float
    units: float
    cogs: float | None
    gross: float | None
    margin: float | None
    vs_target: float | None
    tier: MarginTier | None

    def to_dict(self) -> dict:
        return to_plain(self)


@dataclass(frozen=True)
class ChannelMetric:
    """Revenue, units and realized margin for one canonical channel."""

    channel: str
    label: str
    revenue: float = 0.0
    units: float = 0.0
    cogs: float = 0.0
    costed_revenue: float = 0.0
    revenue_share: float = 0.0

    @property
    def avg_net_price(self) -> float | None:
        return avg_net_price(self.revenue, self.units)

    @property
    def margin(self) -> float | None:
        """Revenue-weighted over the rows whose cost is known."""
        if self.costed_revenue <= 0:
            return None
        return gross_margin(self.costed_revenue, self.cogs)

    def to_dict(self) -> dict:
        data = to_plain(self)
        data["avg_net_price"] = self.avg_net_price
        data["margin"] = self.margin
        return data


@dataclass(frozen=True)
class MarginComparison:
    """Baseline vs weighted margin for one style+season."""

    key: str
    style_number: str
    season: str
    landed_cost: float | None
    wholesale: float | None
    revenue: float
    units: float
    avg_net_price: float | None
    baseline_margin: float | None
    weighted_margin: float | None
    margin_delta: float | None
    channels: list[ChannelMetric] = field(default_factory=list)

    def to_dict(self) -> dict:
        data = to_plain(self)
        data["channels"] = [c.to_dict() for c in self.channels]
        return data


def compute_style_margins(
    sales: Iterable[SalesRecord],
    cost_lookup: dict[str, float],
    config: EngineConfig = DEFAULT_CONFIG,
) -> list[StyleMargin]:
    """
    One StyleMargin per style number, in first-seen order.

    COGS = units x resolved cost. Styles with no resolved cost keep their
    revenue and units but have undefined COGS, gross and margin.
    """
    totals: dict[str, dict] = {}
    for record in sales:
        entry = totals.get(record.style_number)
        if entry is None:
            entry = {
                "first": record,
                "revenue": 0.0,
                "units": 0.0,
            }
            totals[record.style_number] = entry
        entry["revenue"] += record.revenue
        entry["units"] += record.units_booked

    results = []
    for style, entry in totals.items():
        first: SalesRecord = entry["first"]
        cost = cost_lookup.get(style)
        cogs = entry["units"] * cost if cost is not None else None
        gross = entry["revenue"] - cogs if cogs is not None else None
        margin = gross_margin(entry["revenue"], cogs)
        results.append(
            StyleMargin(
                style_number=style,
                style_desc=first.style_desc,
                division_desc=first.division_desc,
                category_desc=normalize_category(first.category_desc),
                gender=gender_from_division(first.division_desc),
                cost=cost,
                revenue=entry["revenue"],
                units=entry["units"],
                cogs=cogs,
                gross=gross,
                margin=margin,
                vs_target=vs_target(margin, config.target_margin_percent),
                tier=margin_tier(margin, config),
            )
        )

    logger.debug("Computed margins for %d styles", len(results))
    return results


def compute_channel_metrics(
    sales: Iterable[SalesRecord],
    cost_lookup: dict[str, float],
    normalizer: "ChannelNormalizer",
) -> list[ChannelMetric]:
    """
    Zero-filled metrics for every canonical channel.

    Mixed rows are split across their channels, so the channel revenues
    add up to the total sales revenue.
    """
    acc = {
        channel: {"revenue": 0.0, "units": 0.0, "cogs": 0.0, "costed_revenue": 0.0}
        for channel in normalizer.channels
    }
    for row in normalizer.explode_sales(sales):
        entry = acc[row.channel]
        entry["revenue"] += row.revenue
        entry["units"] += row.units
        cost = cost_lookup.get(row.record.style_number)
        if cost is not None:
            entry["cogs"] += row.units * cost
            entry["costed_revenue"] += row.revenue

    total_revenue = sum(e["revenue"] for e in acc.values())
    return [
        ChannelMetric(
            channel=channel,
            label=normalizer.label(channel),
            revenue=entry["revenue"],
            units=entry["units"],
            cogs=entry["cogs"],
            costed_revenue=entry["costed_revenue"],
            revenue_share=(
                entry["revenue"] / total_revenue * 100 if total_revenue > 0 else 0.0
            ),
        )
        for channel, entry in acc.items()
    ]


def compare_margins(
    reconciled: Iterable["ReconciledStyleSeason"],
    sales: Iterable[SalesRecord],
    normalizer: "ChannelNormalizer",
) -> list[MarginComparison]:
    """
    Baseline vs weighted margin per reconciled style+season.

    The weighted margin uses the blended average net price over all channels
    (total revenue / total units); per-channel weighted margins are attached
    for drill-down.
    """
    sales_by_key: dict[str, list[SalesRecord]] = {}
    for record in sales:
        sales_by_key.setdefault(record.key, []).append(record)

    comparisons = []
    for rec in reconciled:
        rows = sales_by_key.get(rec.key, [])
        landed = rec.landed_cost.value
        cost_lookup = {rec.style_number: landed} if landed is not None else {}
        channels = [
            c
            for c in compute_channel_metrics(rows, cost_lookup, normalizer)
            if c.revenue or c.units
        ]
        revenue = sum(r.revenue for r in rows)
        units = sum(r.units_booked for r in rows)
        baseline = baseline_margin(rec.wholesale.value, landed)
        weighted = weighted_margin(revenue, units, landed)
        comparisons.append(
            MarginComparison(
                key=rec.key,
                style_number=rec.style_number,
                season=rec.season,
                landed_cost=landed,
                wholesale=rec.wholesale.value,
                revenue=revenue,
                units=units,
                avg_net_price=avg_net_price(revenue, units),
                baseline_margin=baseline,
                weighted_margin=weighted,
                margin_delta=margin_delta(weighted, baseline),
                channels=channels,
            )
        )
    return comparisons


def summarize_margins(style_margins: Iterable[StyleMargin]) -> dict:
    """Portfolio totals; overall margin is revenue-weighted over costed styles."""
    style_margins = list(style_margins)
    total_revenue = sum(s.revenue for s in style_margins)
    costed = [s for s in style_margins if s.cogs is not None]
    costed_revenue = sum(s.revenue for s in costed)
    total_cogs = sum(s.cogs for s in costed)
    total_gross = costed_revenue - total_cogs

    return {
        "total_revenue": float(total_revenue),
        "costed_revenue": float(costed_revenue),
        "total_cogs": float(total_cogs),
        "total_gross": float(total_gross),
        "overall_margin": gross_margin(costed_revenue, total_cogs),
        "markup": total_gross / total_cogs * 100 if total_cogs > 0 else None,
        "style_count": len(style_margins),
        "uncosted_style_count": len(style_margins) - len(costed),
    }


def margin_health(
    style_margins: Iterable[StyleMargin], config: EngineConfig = DEFAULT_CONFIG
) -> dict[str, dict]:
    """Count and percent of styles per tier (styles with undefined margin excluded)."""
    tiers = {tier.value: 0 for tier in MarginTier}
    for s in style_margins:
        tier = margin_tier(s.margin, config)
        if tier is not None:
            tiers[tier.value] += 1
    total = sum(tiers.values())
    return {
        name: {"count": count, "pct": count / total * 100 if total else 0.0}
        for name, count in tiers.items()
    }
