"""
Brand-specific adapter for KÜHL spreadsheet exports.

THIS FILE CONTAINS BRAND-SPECIFIC HARDCODED LOGIC:
- Column headers of the line list, sales and cost-sheet exports, including
  the alternates older exports use ("Style#" vs "Style #" vs "Style")
- Style numbers with a "TES" suffix for test styles
- Season written as "Spring 2025", "SP25" or "25SP" depending on the sheet

To adapt for another brand:
1. Copy this file as a template
2. Update the header maps
3. Adjust the style/season normalization
4. The margin_core records, engine and quality checks are reused as-is

Spreadsheets are read by the caller (pd.read_excel / pd.read_csv); this
module only ever sees DataFrames.
"""

import logging
from dataclasses import dataclass, field
from typing import Literal

import pandas as pd

from margin_core.channels import ChannelNormalizer
from margin_core.config import DEFAULT_CONFIG, EngineConfig
from margin_core.models import (
    CostRecord,
    ProductRecord,
    SalesRecord,
    records_from_frame,
)
from margin_core.parsers import StyleNumberNormalizer, normalize_season
from margin_core.quality import DataQualityReport, check_products, check_sales

logger = logging.getLogger(__name__)

# Record field -> candidate headers, first present wins
PRODUCT_HEADERS = {
    "style_number": ["Style#", "Style #", "Style"],
    "style_desc": ["Style Desc", "Style Name", "Description"],
    "color": ["Clr", "Color Code", "Color"],
    "season": ["Season"],
    "division_desc": ["Division Desc", "Division"],
    "category_desc": ["Cat Desc", "Category", "Category Description"],
    "designer_name": ["Designer Name", "Designer"],
    "tech_designer_name": ["Tech Designer Name", "Tech Designer", "Developer"],
    "factory_name": ["Factory"],
    "country_of_origin": ["COO Description", "COO", "Country"],
    "cost": ["Cost"],
    "price": ["Price", "Wholesale", "US WHSL", "WHSL"],
    "msrp": ["MSRP", "US MSRP", "Retail"],
    "currency": ["Curr", "Currency"],
}

SALES_HEADERS = {
    "style_number": ["Style", "Style#", "Style #"],
    "style_desc": ["Style Description", "Style Desc"],
    "season": ["Season"],
    "customer": ["Customer Name", "Customer"],
    "customer_type": ["Customer Type"],
    "sales_rep": ["Sales Rep", "Rep"],
    "division_desc": ["Division", "Division Desc"],
    "category_desc": ["Category Description", "Cat Desc", "Category"],
    "units_booked": ["Units Current Booked", "Units"],
    "revenue": ["$ Current Booked Net", "Revenue", "Net Sales"],
    "wholesale_price": ["Wholesale Price"],
    "msrp": ["MSRP (Style)", "MSRP (Order)", "MSRP"],
    "cost": ["Cost"],
}

COST_HEADERS = {
    "style_number": ["Style #", "Style", "Style#"],
    "style_name": ["Style Name", "Description"],
    "season": ["Season"],
    "factory": ["Factory"],
    "country_of_origin": ["COO", "Country"],
    "design_team": ["Design Team"],
    "developer": ["Developer/ Designer", "Developer"],
    "fob": ["FOB"],
    "landed": ["US Landed", "Landed", "LDP"],
    "suggested_wholesale": ["Suggested Selling Price", "Wholesale"],
    "suggested_msrp": ["Suggested MSRP", "MSRP"],
}


@dataclass
class LoadedData:
    """Container for all loaded and validated sources."""

    products: list[ProductRecord]
    sales: list[SalesRecord]
    costs: list[CostRecord]
    quality_reports: dict[str, DataQualityReport] = field(default_factory=dict)


def select_columns(df: pd.DataFrame, headers: dict[str, list[str]]) -> pd.DataFrame:
    """
    Rename brand headers to record fields.

    For each field the first candidate header present in `df` is used.
    Fields with no matching header are left out (the record default applies).
    """
    stripped = {str(c).strip(): c for c in df.columns}
    selected = {}
    for field_name, candidates in headers.items():
        for header in candidates:
            if header in stripped:
                selected[field_name] = df[stripped[header]]
                break
    return pd.DataFrame(selected, index=df.index)


class KuhlFrameAdapter:
    """
    Turns raw KÜHL export frames into validated records.

    Brand-specific quirks handled:
    - Header names differ between the line list, sales and cost sheets
    - Rows without a style number (sheet subtotals, blank lines) are dropped
    - Style numbers are cleaned of the TES test suffix
    - Season labels are normalized to codes like 25SP

    Usage:
        adapter = KuhlFrameAdapter()
        data = adapter.load(line_list_df, sales_df, landed_df)
        report = MarginEngine().run(data.products, data.sales, data.costs)
    """

    def __init__(self, config: EngineConfig = DEFAULT_CONFIG):
        self.config = config
        self.style_normalizer = StyleNumberNormalizer()

    def load(
        self,
        products_df: pd.DataFrame,
        sales_df: pd.DataFrame,
        costs_df: pd.DataFrame | None = None,
        cost_source: Literal["landed_cost", "standard_cost"] = "landed_cost",
    ) -> LoadedData:
        """Map, clean and validate all sources, then run quality checks."""
        products = self.load_products(products_df)
        sales = self.load_sales(sales_df)
        costs = (
            self.load_costs(costs_df, cost_source) if costs_df is not None else []
        )

        quality_reports = {
            "products": check_products(products),
            "sales": check_sales(sales, ChannelNormalizer(self.config)),
        }
        for report in quality_reports.values():
            if report.has_critical_issues:
                logger.warning(
                    "%s has %d critical data quality issue(s)",
                    report.source_name,
                    len(report.critical_issues),
                )

        logger.info(
            "Loaded %d line-list rows, %d sales rows, %d cost rows",
            len(products),
            len(sales),
            len(costs),
        )
        return LoadedData(
            products=products,
            sales=sales,
            costs=costs,
            quality_reports=quality_reports,
        )

    def load_products(self, df: pd.DataFrame) -> list[ProductRecord]:
        return records_from_frame(self._clean(df, PRODUCT_HEADERS), ProductRecord)

    def load_sales(self, df: pd.DataFrame) -> list[SalesRecord]:
        return records_from_frame(self._clean(df, SALES_HEADERS), SalesRecord)

    def load_costs(
        self,
        df: pd.DataFrame,
        cost_source: Literal["landed_cost", "standard_cost"] = "landed_cost",
    ) -> list[CostRecord]:
        """Cost sheets carry no source column; the caller says which sheet it is."""
        cleaned = self._clean(df, COST_HEADERS)
        cleaned["cost_source"] = cost_source
        return records_from_frame(cleaned, CostRecord)

    def _clean(self, df: pd.DataFrame, headers: dict[str, list[str]]) -> pd.DataFrame:
        out = select_columns(df, headers)
        if "style_number" not in out.columns:
            raise ValueError(
                f"No style number column found (expected one of "
                f"{headers['style_number']})"
            )

        out["style_number"] = self.style_normalizer.normalize_series(
            out["style_number"]
        )
        dropped = out["style_number"].isna()
        if dropped.any():
            logger.debug("Dropping %d rows without a style number", dropped.sum())
        out = out.loc[~dropped].copy()

        if "season" in out.columns:
            out["season"] = out["season"].apply(normalize_season)
        return out
