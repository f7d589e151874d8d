"""
Data quality checks for the pricing sources.

Apparel data is never fully clean: styles sell before their cost sheet is
in, new customer-type codes show up, the line list repeats a style+season.
None of this stops the engine (it degrades to undefined margins and the
default channel), but it is reported so the owners of the source systems
can fix it.
"""

from collections import Counter
from dataclasses import dataclass, field
from enum import Enum
from typing import Any, Callable, Sequence

from .channels import ChannelNormalizer
from .models import ProductRecord, Provenance, SalesRecord, to_plain
from .reconciliation import MULTIPLE, ReconciledStyleSeason


class Severity(Enum):
    CRITICAL = "critical"  # margins for the affected styles are wrong or missing
    WARNING = "warning"  # numbers hold but rest on a fallback
    INFO = "info"


CRITICAL = Severity.CRITICAL
WARNING = Severity.WARNING
INFO = Severity.INFO

SAMPLE_SIZE = 5


@dataclass
class DataQualityIssue:
    """
    One kind of problem in a source, with what it affects.

    `affected` holds style numbers, style+season keys or raw customer-type
    codes, deduplicated in first-seen order. `count` counts flagged records,
    so it can exceed len(affected).
    """

    issue_type: str  # e.g. "missing_cost", "unmapped_channel", "duplicate"
    severity: Severity
    record_field: str
    count: int
    total_records: int
    affected: list[str] = field(default_factory=list)
    description: str = ""

    @property
    def percentage(self) -> float:
        return self.count / self.total_records * 100 if self.total_records else 0.0

    @property
    def sample_values(self) -> list[str]:
        return self.affected[:SAMPLE_SIZE]

    def to_dict(self) -> dict:
        data = to_plain(self)
        data["percentage"] = self.percentage
        return data


@dataclass
class DataQualityReport:
    """Quality of one source (line list, sales, or the joined styles)."""

    source_name: str
    total_records: int
    issues: list[DataQualityIssue] = field(default_factory=list)

    @property
    def critical_issues(self) -> list[DataQualityIssue]:
        return [i for i in self.issues if i.severity is CRITICAL]

    @property
    def warning_issues(self) -> list[DataQualityIssue]:
        return [i for i in self.issues if i.severity is WARNING]

    @property
    def has_critical_issues(self) -> bool:
        return len(self.critical_issues) > 0

    def issues_for(self, key: str) -> list[DataQualityIssue]:
        """Issues that name this style number, style+season key or code."""
        return [i for i in self.issues if key in i.affected]

    def summary(self) -> dict:
        return {
            "source": self.source_name,
            "total_records": self.total_records,
            "critical": len(self.critical_issues),
            "warnings": len(self.warning_issues),
            "info": len([i for i in self.issues if i.severity is INFO]),
        }


Check = Callable[[Sequence[Any]], list[DataQualityIssue]]


def _issue(
    record_field: str,
    issue_type: str,
    severity: Severity,
    flagged: list[str],
    total: int,
    description: str,
) -> list[DataQualityIssue]:
    if not flagged:
        return []
    return [
        DataQualityIssue(
            issue_type=issue_type,
            severity=severity,
            record_field=record_field,
            count=len(flagged),
            total_records=total,
            affected=list(dict.fromkeys(flagged)),
            description=description.format(count=len(flagged)),
        )
    ]


class DataQualityChecker:
    """
    Runs a list of checks over one collection of records.

    Usage:
        report = (
            DataQualityChecker("Sales")
            .check_unmapped_channels(normalizer)
            .check_negative_values(["revenue", "units_booked"])
            .run(sales)
        )
    """

    def __init__(self, source_name: str):
        self.source_name = source_name
        self._checks: list[Check] = []

    def add_check(self, check_fn: Check) -> "DataQualityChecker":
        """Add a custom check function. Returns self for chaining."""
        self._checks.append(check_fn)
        return self

    def check_duplicates(
        self, key_fn: Callable[[Any], str], severity: Severity = WARNING
    ) -> "DataQualityChecker":
        """Flag records that share a key with an earlier record."""

        def check(records: Sequence[Any]) -> list[DataQualityIssue]:
            counts = Counter(key_fn(r) for r in records)
            dupes = [k for k, n in counts.items() for _ in range(n - 1)]
            return _issue(
                "key", "duplicate", severity, dupes, len(records),
                "{count:,} duplicate rows on key",
            )

        return self.add_check(check)

    def check_negative_values(
        self, attrs: list[str], severity: Severity = WARNING
    ) -> "DataQualityChecker":
        """Flag negative numbers (returns or keying errors)."""

        def check(records: Sequence[Any]) -> list[DataQualityIssue]:
            issues = []
            for attr in attrs:
                flagged = [r.style_number for r in records if getattr(r, attr) < 0]
                issues += _issue(
                    attr, "negative_value", severity, flagged, len(records),
                    f"{{count:,}} rows with negative {attr}",
                )
            return issues

        return self.add_check(check)

    def check_unmapped_channels(
        self, normalizer: ChannelNormalizer, severity: Severity = WARNING
    ) -> "DataQualityChecker":
        """Flag customer-type codes that fell back to the default channel."""

        def check(records: Sequence[SalesRecord]) -> list[DataQualityIssue]:
            flagged = []
            for r in records:
                resolution = normalizer.resolve(r.customer_type)
                flagged += list(resolution.unrecognized)
                if not resolution.raw_codes:
                    flagged.append("<empty>")
            default = normalizer.label(normalizer.config.default_channel)
            return _issue(
                "customer_type", "unmapped_channel", severity, flagged, len(records),
                f"{{count:,}} customer-type codes counted as {default}",
            )

        return self.add_check(check)

    def run(self, records: Sequence[Any]) -> DataQualityReport:
        """Run all checks and return a quality report."""
        records = list(records)
        all_issues = []
        for check_fn in self._checks:
            all_issues.extend(check_fn(records))

        return DataQualityReport(
            source_name=self.source_name,
            total_records=len(records),
            issues=all_issues,
        )


def check_products(products: Sequence[ProductRecord]) -> DataQualityReport:
    def missing_cost(records):
        flagged = [p.style_number for p in records if p.cost <= 0]
        return _issue(
            "cost", "missing_cost", INFO, flagged, len(records),
            "{count:,} line-list rows without a cost",
        )

    return (
        DataQualityChecker("Line List")
        .check_duplicates(lambda p: f"{p.key}-{p.color}")
        .check_negative_values(["cost", "price", "msrp"], severity=CRITICAL)
        .add_check(missing_cost)
        .run(products)
    )


def check_sales(
    sales: Sequence[SalesRecord], normalizer: ChannelNormalizer
) -> DataQualityReport:
    return (
        DataQualityChecker("Sales")
        .check_unmapped_channels(normalizer)
        .check_negative_values(["revenue", "units_booked"])
        .run(sales)
    )


def check_reconciliation(
    records: Sequence[ReconciledStyleSeason],
) -> DataQualityReport:
    """Coverage of the joined records: missing costs and ambiguous sourcing."""

    def sales_without_cost(recs):
        flagged = [
            r.key for r in recs if r.revenue > 0 and not r.landed_cost.is_resolved
        ]
        return _issue(
            "landed_cost", "sales_without_cost", CRITICAL, flagged, len(recs),
            "{count:,} style+seasons have sales but no cost from any source",
        )

    def no_cost_sheet(recs):
        flagged = [
            r.key
            for r in recs
            if r.cost_source not in (Provenance.LANDED_COST, Provenance.STANDARD_COST)
        ]
        return _issue(
            "cost_source", "no_cost_sheet", WARNING, flagged, len(recs),
            "{count:,} style+seasons rely on line-list or sales costs",
        )

    def multiple_factories(recs):
        flagged = [r.key for r in recs if r.factory.value == MULTIPLE]
        return _issue(
            "factory", "multiple_values", INFO, flagged, len(recs),
            "{count:,} style+seasons are sourced from more than one factory",
        )

    return (
        DataQualityChecker("Reconciled Styles")
        .add_check(sales_without_cost)
        .add_check(no_cost_sheet)
        .add_check(multiple_factories)
        .run(records)
    )
