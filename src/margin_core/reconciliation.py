"""
Source-priority join of cost sheets, line list and sales per style+season.

The same field can appear in several sources with different reliability.
Each output field is filled from the highest-priority source that has data,
and the source is recorded alongside the value:

    cost sheet (landed_cost / standard_cost) > line list (product) > sales

Multi-valued attributes (several colors of one style+season can come from
different factories) are kept as sets until the final projection, where a
set with more than one member becomes the literal "Multiple".
"""

import logging
from dataclasses import dataclass, field
from typing import Any, Iterable

from .margins import baseline_margin
from .models import (
    PROVENANCE_RANK,
    CostRecord,
    ProductRecord,
    Provenance,
    ResolvedField,
    SalesRecord,
    SourceProvider,
    first_available,
    has_value,
    style_season_key,
    to_plain,
)

logger = logging.getLogger(__name__)

MULTIPLE = "Multiple"


@dataclass(frozen=True)
class ReconciledStyleSeason:
    """One reconciled style+season with per-field provenance."""

    key: str
    style_number: str
    season: str
    style_name: str
    division: str
    category: str

    # Owned set-valued intermediates; kept for filtering and drill-down
    factories: frozenset[str]
    countries: frozenset[str]
    design_teams: frozenset[str]
    developers: frozenset[str]

    factory: ResolvedField
    country: ResolvedField
    design_team: ResolvedField
    developer: ResolvedField
    fob: ResolvedField
    landed_cost: ResolvedField
    wholesale: ResolvedField
    msrp: ResolvedField

    cost_source: Provenance
    color_count: int = 1
    revenue: float = 0.0
    units: float = 0.0

    @property
    def baseline_margin(self) -> float | None:
        return baseline_margin(self.wholesale.value, self.landed_cost.value)

    @property
    def provenance(self) -> dict[str, str]:
        """Field name -> source tag, for trust indicators."""
        return {
            name: getattr(self, name).provenance.value
            for name in PROVENANCE_FIELDS
        }

    def display(self, name: str) -> Any:
        """Projected value of a resolved field ("Multiple" included)."""
        return getattr(self, name).value

    def to_dict(self) -> dict:
        data = to_plain(self)
        data["baseline_margin"] = self.baseline_margin
        return data


PROVENANCE_FIELDS = (
    "factory",
    "country",
    "design_team",
    "developer",
    "fob",
    "landed_cost",
    "wholesale",
    "msrp",
)


@dataclass
class ReconciliationResult:
    """Reconciled records plus a summary of where their data came from."""

    records: list[ReconciledStyleSeason] = field(default_factory=list)

    @property
    def total_keys(self) -> int:
        return len(self.records)

    def count_by_cost_source(self) -> dict[str, int]:
        counts = {p.value: 0 for p in Provenance}
        for record in self.records:
            counts[record.cost_source.value] += 1
        return counts

    @property
    def cost_sheet_coverage(self) -> float:
        """Share of keys backed by a landed or standard cost sheet."""
        if self.total_keys == 0:
            return 0
        counts = self.count_by_cost_source()
        covered = counts["landed_cost"] + counts["standard_cost"]
        return covered / self.total_keys

    def summary(self) -> dict:
        return {
            "total": self.total_keys,
            "by_cost_source": self.count_by_cost_source(),
            "cost_sheet_coverage": f"{self.cost_sheet_coverage:.1%}",
        }


def project_set(values: Iterable[str], provenance: Provenance) -> ResolvedField:
    """One member -> that value; several -> "Multiple"; none -> unresolved."""
    members = list(dict.fromkeys(values))
    if not members:
        return ResolvedField.unresolved()
    if len(members) == 1:
        return ResolvedField(members[0], provenance)
    return ResolvedField(MULTIPLE, provenance)


class _KeyGroup:
    """All source rows for one style+season. Local to one reconcile() call."""

    def __init__(self, style_number: str, season: str):
        self.style_number = style_number
        self.season = season
        self.cost_rows: list[CostRecord] = []
        self.products: list[ProductRecord] = []
        self.sales: list[SalesRecord] = []

    def first(self, rows: list, attr: str) -> Any:
        """First row whose `attr` has data (first non-zero / non-empty wins)."""
        for row in rows:
            if has_value(getattr(row, attr)):
                return row
        return None

    def numeric(
        self,
        cost_attr: str | None,
        product_attr: str | None,
        sales_attr: str | None,
    ) -> ResolvedField:
        providers = []
        if cost_attr:
            providers.append(
                SourceProvider(
                    self.first(self.cost_rows, cost_attr),
                    lambda r: getattr(r, cost_attr),
                    lambda r: r.provenance,
                )
            )
        if product_attr:
            providers.append(
                SourceProvider(
                    self.first(self.products, product_attr),
                    lambda p: getattr(p, product_attr),
                    Provenance.PRODUCT,
                )
            )
        if sales_attr:
            providers.append(
                SourceProvider(
                    self.first(self.sales, sales_attr),
                    lambda s: getattr(s, sales_attr),
                    Provenance.SALES,
                )
            )
        resolved = first_available(providers)
        if resolved.is_resolved:
            return ResolvedField(float(resolved.value), resolved.provenance)
        return resolved

    def multi(
        self, cost_attr: str, product_attr: str
    ) -> tuple[frozenset[str], ResolvedField]:
        """
        Accumulate distinct cost-sheet values; fall back to the first product
        value only when no cost row supplied any.
        """
        contributing = [r for r in self.cost_rows if has_value(getattr(r, cost_attr))]
        if contributing:
            values = [getattr(r, cost_attr) for r in contributing]
            provenance = contributing[0].provenance
        else:
            product = self.first(self.products, product_attr)
            values = [getattr(product, product_attr)] if product else []
            provenance = Provenance.PRODUCT
        return frozenset(values), project_set(values, provenance)

    def text(self, *candidates: tuple[list, str]) -> str:
        for rows, attr in candidates:
            row = self.first(rows, attr)
            if row is not None:
                return getattr(row, attr)
        return ""

    def cost_source(self, landed: ResolvedField) -> Provenance:
        if self.cost_rows:
            return max(
                (r.provenance for r in self.cost_rows), key=PROVENANCE_RANK.__getitem__
            )
        return landed.provenance

    def build(self) -> ReconciledStyleSeason:
        factories, factory = self.multi("factory", "factory_name")
        countries, country = self.multi("country_of_origin", "country_of_origin")
        teams, team = self.multi("design_team", "division_desc")
        developers, developer = self.multi("developer", "tech_designer_name")

        landed = self.numeric("landed", "cost", "cost")

        return ReconciledStyleSeason(
            key=style_season_key(self.style_number, self.season),
            style_number=self.style_number,
            season=self.season,
            style_name=self.text(
                (self.products, "style_desc"),
                (self.cost_rows, "style_name"),
                (self.sales, "style_desc"),
            ),
            division=self.text(
                (self.products, "division_desc"), (self.sales, "division_desc")
            ),
            category=self.text(
                (self.products, "category_desc"), (self.sales, "category_desc")
            ),
            factories=factories,
            countries=countries,
            design_teams=teams,
            developers=developers,
            factory=factory,
            country=country,
            design_team=team,
            developer=developer,
            fob=self.numeric("fob", None, None),
            landed_cost=landed,
            wholesale=self.numeric("suggested_wholesale", "price", "wholesale_price"),
            msrp=self.numeric("suggested_msrp", "msrp", "msrp"),
            cost_source=self.cost_source(landed),
            color_count=len(self.cost_rows) or 1,
            revenue=sum(s.revenue for s in self.sales),
            units=sum(s.units_booked for s in self.sales),
        )


class ReconciliationEngine:
    """
    Joins cost sheets, line list and sales by style+season.

    Sources are added in priority order; keys are kept in first-seen order:
    1. Cost sheets create groups and own every field they supply
    2. Line-list rows create groups for keys with no cost sheet, and
       otherwise only fill fields still empty
    3. Sales rows (optional) create groups for keys seen nowhere else, fill
       what is still empty, and attach revenue/units

    Usage:
        engine = ReconciliationEngine()
        engine.add_cost_records(costs).add_products(products).add_sales(sales)
        result = engine.reconcile()
    """

    def __init__(self):
        self._groups: dict[str, _KeyGroup] = {}

    def _group(self, style_number: str, season: str) -> _KeyGroup:
        key = style_season_key(style_number, season)
        group = self._groups.get(key)
        if group is None:
            group = _KeyGroup(style_number, season)
            self._groups[key] = group
        return group

    def add_cost_records(self, records: Iterable[CostRecord]) -> "ReconciliationEngine":
        for record in records:
            self._group(record.style_number, record.season).cost_rows.append(record)
        return self

    def add_products(self, records: Iterable[ProductRecord]) -> "ReconciliationEngine":
        for record in records:
            self._group(record.style_number, record.season).products.append(record)
        return self

    def add_sales(self, records: Iterable[SalesRecord]) -> "ReconciliationEngine":
        for record in records:
            self._group(record.style_number, record.season).sales.append(record)
        return self

    def reconcile(self) -> ReconciliationResult:
        records = [group.build() for group in self._groups.values()]
        result = ReconciliationResult(records=records)
        logger.info(
            "Reconciled %d style+season keys (cost sheet coverage %.1f%%)",
            result.total_keys,
            result.cost_sheet_coverage * 100,
        )
        return result


def reconcile(
    cost_records: Iterable[CostRecord],
    product_records: Iterable[ProductRecord],
    sales_records: Iterable[SalesRecord] | None = None,
) -> list[ReconciledStyleSeason]:
    """Reconcile the sources into one record per style+season key."""
    engine = ReconciliationEngine().add_cost_records(cost_records).add_products(
        product_records
    )
    if sales_records is not None:
        engine.add_sales(sales_records)
    return engine.reconcile().records
