"""
Download-ready rows for reconciled style+season records.

Column order and header names are a contract with spreadsheet consumers;
append new columns at the end rather than reordering.
"""

from typing import Iterable

import pandas as pd

from .reconciliation import ReconciledStyleSeason

EXPORT_COLUMNS = [
    "Style",
    "Description",
    "Season",
    "Factory",
    "Country",
    "Design Team",
    "Developer",
    "FOB",
    "Landed",
    "Margin %",
]


def _money(value: float | None) -> float | None:
    return round(value, 2) if value is not None else None


def export_rows(records: Iterable[ReconciledStyleSeason]) -> list[dict]:
    """One dict per record, keys in EXPORT_COLUMNS order."""
    rows = []
    for r in records:
        margin = r.baseline_margin
        rows.append(
            {
                "Style": r.style_number,
                "Description": r.style_name,
                "Season": r.season,
                "Factory": r.factory.value,
                "Country": r.country.value,
                "Design Team": r.design_team.value,
                "Developer": r.developer.value,
                "FOB": _money(r.fob.value),
                "Landed": _money(r.landed_cost.value),
                "Margin %": round(margin, 1) if margin is not None else None,
            }
        )
    return rows


def to_frame(records: Iterable[ReconciledStyleSeason]) -> pd.DataFrame:
    return pd.DataFrame(export_rows(records), columns=EXPORT_COLUMNS)


def to_csv(records: Iterable[ReconciledStyleSeason]) -> str:
    """CSV text with a header row; undefined values are empty cells."""
    return to_frame(records).to_csv(index=False, lineterminator="\n")
