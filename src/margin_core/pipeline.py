"""
End-to-end margin computation for one filter selection.

MarginEngine is stateless: every call to run() builds its own cost lookup,
reconciliation and aggregates from the inputs it is given. Callers that
recompute in the background (on every filter change) pair it with a
LatestResultGate so a slow, outdated run can never overwrite a newer one.
"""

import logging
import threading
from dataclasses import dataclass, field
from typing import Any, Generic, Iterable, TypeVar

from .aggregation import (
    AggregationBucket,
    by_category,
    by_gender,
    group_by,
    sales_cogs,
    top_n,
)
from .channels import ChannelNormalizer
from .config import DEFAULT_CONFIG, EngineConfig
from .costs import build_cost_lookup
from .filters import (
    NO_FILTERS,
    FilterOptions,
    filter_cost_records,
    filter_products,
    filter_reconciled,
    filter_sales,
    selected_channel,
)
from .margins import (
    ChannelMetric,
    MarginComparison,
    StyleMargin,
    compare_margins,
    compute_channel_metrics,
    compute_style_margins,
    margin_health,
    summarize_margins,
)
from .models import CostRecord, ProductRecord, SalesRecord
from .parsers import GENDERS, normalize_category
from .pricing import StylePriceChange, compare_season_prices
from .reconciliation import ReconciledStyleSeason, ReconciliationEngine

logger = logging.getLogger(__name__)

T = TypeVar("T")


@dataclass
class MarginReport:
    """Everything a margin view needs for one filter selection."""

    config: EngineConfig
    filters: FilterOptions
    reconciled: list[ReconciledStyleSeason] = field(default_factory=list)
    reconciliation_summary: dict = field(default_factory=dict)
    style_margins: list[StyleMargin] = field(default_factory=list)
    channel_metrics: list[ChannelMetric] = field(default_factory=list)
    comparisons: list[MarginComparison] = field(default_factory=list)
    by_category: list[AggregationBucket] = field(default_factory=list)
    by_gender: list[AggregationBucket] = field(default_factory=list)
    summary: dict = field(default_factory=dict)
    health: dict = field(default_factory=dict)
    top_styles: list[StyleMargin] = field(default_factory=list)

    def to_dict(self) -> dict:
        return {
            "target_margin_percent": self.config.target_margin_percent,
            "filters": self.filters.model_dump(exclude_none=True),
            "reconciliation": self.reconciliation_summary,
            "summary": self.summary,
            "health": self.health,
            "channels": [c.to_dict() for c in self.channel_metrics],
            "by_category": [b.to_dict() for b in self.by_category],
            "by_gender": [b.to_dict() for b in self.by_gender],
            "top_styles": [s.to_dict() for s in self.top_styles],
            "styles": [s.to_dict() for s in self.style_margins],
            "comparisons": [c.to_dict() for c in self.comparisons],
            "reconciled": [r.to_dict() for r in self.reconciled],
        }


class MarginEngine:
    """
    Runs the full flow: filter -> cost lookup -> join -> margins -> aggregates.

    Usage:
        engine = MarginEngine(load_config())
        report = engine.run(products, sales, costs, FilterOptions(season="25SP"))
        report.summary["overall_margin"]
    """

    def __init__(self, config: EngineConfig = DEFAULT_CONFIG):
        self.config = config

    def run(
        self,
        products: Iterable[ProductRecord],
        sales: Iterable[SalesRecord],
        costs: Iterable[CostRecord],
        filters: FilterOptions = NO_FILTERS,
    ) -> MarginReport:
        config = self.config.with_target(filters.target_margin_percent)
        normalizer = ChannelNormalizer(config)

        products = filter_products(products, filters)
        costs = filter_cost_records(costs, filters)
        sales = filter_sales(sales, filters, normalizer)

        # Lookup is built from all filtered cost rows, not just the joined keys
        cost_lookup = build_cost_lookup(costs, products)

        result = (
            ReconciliationEngine()
            .add_cost_records(costs)
            .add_products(products)
            .add_sales(sales)
            .reconcile()
        )
        reconciled = filter_reconciled(result.records, filters)

        # Sourcing filters narrow the sales too, via the surviving keys
        if any(
            (filters.factory, filters.country, filters.design_team, filters.developer)
        ):
            kept_keys = {r.key for r in reconciled}
            sales = [s for s in sales if s.key in kept_keys]

        style_margins = compute_style_margins(sales, cost_lookup, config)
        cogs_fn = sales_cogs(cost_lookup)

        channel_metrics = compute_channel_metrics(sales, cost_lookup, normalizer)
        channel = selected_channel(filters, normalizer)
        if channel:
            channel_metrics = [c for c in channel_metrics if c.channel == channel]

        report = MarginReport(
            config=config,
            filters=filters,
            reconciled=reconciled,
            reconciliation_summary=result.summary(),
            style_margins=style_margins,
            channel_metrics=channel_metrics,
            comparisons=compare_margins(reconciled, sales, normalizer),
            by_category=group_by(
                sales, by_category, units_fn=_units_booked, cogs_fn=cogs_fn
            ),
            by_gender=group_by(
                sales,
                by_gender,
                units_fn=_units_booked,
                cogs_fn=cogs_fn,
                canonical_keys=GENDERS,
            ),
            summary=summarize_margins(style_margins),
            health=margin_health(style_margins, config),
            top_styles=top_n(style_margins, filters.top_n),
        )

        logger.info(
            "Margin run: %d sales rows, %d styles, %d style+seasons",
            len(sales),
            len(style_margins),
            len(reconciled),
        )
        return report

    def compare_prices(
        self,
        products: Iterable[ProductRecord],
        sales: Iterable[SalesRecord],
        costs: Iterable[CostRecord],
        to_season: str,
        from_season: str | None = None,
        filters: FilterOptions = NO_FILTERS,
    ) -> list[StylePriceChange]:
        """
        Season-over-season price changes for the filtered styles.

        Style search narrows the sources. Division and category apply to the
        resolved values of each compared style.
        """
        changes = compare_season_prices(
            [p for p in products if filters.matches_style(p.style_number)],
            to_season,
            from_season,
            sales=[s for s in sales if filters.matches_style(s.style_number)],
            costs=costs,
        )
        wanted_category = (
            normalize_category(filters.category) if filters.category else None
        )
        return [
            c
            for c in changes
            if (not filters.division or c.division == filters.division)
            and (not wanted_category or c.category == wanted_category)
        ]


def _units_booked(record: SalesRecord) -> float:
    return record.units_booked


class LatestResultGate(Generic[T]):
    """
    Only the most recently started computation may publish its result.

    Usage:
        ticket = gate.next_ticket()
        result = engine.run(...)          # possibly on a worker thread
        if gate.publish(ticket, result):
            render(gate.latest)
    """

    def __init__(self):
        self._lock = threading.Lock()
        self._issued = 0
        self._published_ticket = 0
        self._latest: T | None = None

    def next_ticket(self) -> int:
        """Start a new computation; every earlier ticket becomes stale."""
        with self._lock:
            self._issued += 1
            return self._issued

    def is_current(self, ticket: int) -> bool:
        with self._lock:
            return ticket == self._issued

    def publish(self, ticket: int, result: T) -> bool:
        """Store `result` if `ticket` is still the newest. Returns whether it was."""
        with self._lock:
            if ticket != self._issued:
                logger.debug(
                    "Discarding stale result (ticket %d, latest %d)",
                    ticket,
                    self._issued,
                )
                return False
            self._published_ticket = ticket
            self._latest = result
            return True

    @property
    def latest(self) -> T | None:
        with self._lock:
            return self._latest

    @property
    def latest_ticket(self) -> int:
        with self._lock:
            return self._published_ticket


def run_latest(
    gate: LatestResultGate, engine: MarginEngine, *args: Any, **kwargs: Any
) -> MarginReport | None:
    """Run the engine under a fresh ticket; None if superseded meanwhile."""
    ticket = gate.next_ticket()
    report = engine.run(*args, **kwargs)
    return report if gate.publish(ticket, report) else None
