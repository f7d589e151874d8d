"""
Style -> unit cost lookup.

Priority per style:
1. Landed cost (> 0) from a cost sheet
2. FOB cost (> 0) from a cost sheet
3. Cost from the line list

Within each tier the first record in input order wins, and a style that
already has a cost is never overwritten, so the result does not depend on
how the sources interleave.
"""

import logging
from typing import Iterable

from .models import (
    CostRecord,
    ProductRecord,
    Provenance,
    ResolvedField,
    SourceProvider,
    first_available,
    has_value,
)

logger = logging.getLogger(__name__)


def _first_with(records: Iterable, attr: str) -> dict[str, object]:
    """First record per style whose `attr` is set."""
    found: dict[str, object] = {}
    for record in records:
        if record.style_number not in found and has_value(getattr(record, attr)):
            found[record.style_number] = record
    return found


def resolve_costs(
    cost_records: Iterable[CostRecord],
    product_records: Iterable[ProductRecord],
) -> dict[str, ResolvedField]:
    """Resolved unit cost per style number, with the source that supplied it."""
    cost_records = list(cost_records)
    product_records = list(product_records)

    landed_by_style = _first_with(cost_records, "landed")
    fob_by_style = _first_with(cost_records, "fob")
    product_by_style = _first_with(product_records, "cost")

    styles = dict.fromkeys(
        [r.style_number for r in cost_records]
        + [p.style_number for p in product_records]
    )

    resolved: dict[str, ResolvedField] = {}
    for style in styles:
        field = first_available(
            [
                SourceProvider(
                    landed_by_style.get(style),
                    lambda r: r.landed,
                    lambda r: r.provenance,
                ),
                SourceProvider(
                    fob_by_style.get(style), lambda r: r.fob, lambda r: r.provenance
                ),
                SourceProvider(
                    product_by_style.get(style), lambda p: p.cost, Provenance.PRODUCT
                ),
            ]
        )
        if field.is_resolved:
            resolved[style] = field

    logger.debug(
        "Resolved costs for %d of %d styles", len(resolved), len(styles)
    )
    return resolved


def build_cost_lookup(
    cost_records: Iterable[CostRecord],
    product_records: Iterable[ProductRecord],
) -> dict[str, float]:
    """Style number -> unit cost. Styles with no cost anywhere are absent."""
    return {
        style: float(field.value)
        for style, field in resolve_costs(cost_records, product_records).items()
    }
