# Core pricing and margin engine for apparel line lists, cost sheets and sales
# Brand-specific spreadsheet quirks live in brand_adapters, not here

from .config import CANONICAL_CHANNELS, DEFAULT_CONFIG, EngineConfig, load_config
from .logger import setup_logger
from .models import (
    CostRecord,
    ProductRecord,
    Provenance,
    ResolvedField,
    SalesRecord,
    records_from_frame,
)
from .channels import ChannelNormalizer, normalize_channel
from .costs import build_cost_lookup, resolve_costs
from .reconciliation import (
    MULTIPLE,
    ReconciledStyleSeason,
    ReconciliationEngine,
    ReconciliationResult,
    reconcile,
)
from .margins import (
    MarginTier,
    StyleMargin,
    ChannelMetric,
    MarginComparison,
    baseline_margin,
    weighted_margin,
    avg_net_price,
    margin_delta,
    margin_tier,
    price_ladder,
    compute_style_margins,
    compute_channel_metrics,
    compare_margins,
    summarize_margins,
    margin_health,
)
from .aggregation import (
    AggregationBucket,
    composite_key,
    group_by,
    group_by_channel,
    sort_records,
    top_n,
    paginate,
    season_pivot,
    season_over_season,
)
from .pricing import (
    PriceDirection,
    StylePriceChange,
    compare_season_prices,
    summarize_price_changes,
    price_changes_by_category,
)
from .filters import FilterOptions, NO_FILTERS
from .export import EXPORT_COLUMNS, export_rows, to_csv
from .quality import DataQualityChecker, DataQualityReport, check_reconciliation
from .pipeline import LatestResultGate, MarginEngine, MarginReport

__all__ = [
    "CANONICAL_CHANNELS",
    "DEFAULT_CONFIG",
    "EngineConfig",
    "load_config",
    "setup_logger",
    "CostRecord",
    "ProductRecord",
    "Provenance",
    "ResolvedField",
    "SalesRecord",
    "records_from_frame",
    "ChannelNormalizer",
    "normalize_channel",
    "build_cost_lookup",
    "resolve_costs",
    "MULTIPLE",
    "ReconciledStyleSeason",
    "ReconciliationEngine",
    "ReconciliationResult",
    "reconcile",
    "MarginTier",
    "StyleMargin",
    "ChannelMetric",
    "MarginComparison",
    "baseline_margin",
    "weighted_margin",
    "avg_net_price",
    "margin_delta",
    "margin_tier",
    "price_ladder",
    "compute_style_margins",
    "compute_channel_metrics",
    "compare_margins",
    "summarize_margins",
    "margin_health",
    "AggregationBucket",
    "composite_key",
    "group_by",
    "group_by_channel",
    "sort_records",
    "top_n",
    "paginate",
    "season_pivot",
    "season_over_season",
    "PriceDirection",
    "StylePriceChange",
    "compare_season_prices",
    "summarize_price_changes",
    "price_changes_by_category",
    "FilterOptions",
    "NO_FILTERS",
    "EXPORT_COLUMNS",
    "export_rows",
    "to_csv",
    "DataQualityChecker",
    "DataQualityReport",
    "check_reconciliation",
    "LatestResultGate",
    "MarginEngine",
    "MarginReport",
]
