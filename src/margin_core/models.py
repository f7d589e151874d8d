"""
Input record contracts and shared provenance types.

Records arrive already parsed (from spreadsheets, an API, or a test) and are
validated once here. After validation they are immutable for the duration of
a computation pass.
"""

from dataclasses import dataclass, fields, is_dataclass
from enum import Enum
from typing import Any, Callable, Generic, Iterable, Literal, TypeVar

import pandas as pd
from pydantic import (
    BaseModel,
    ConfigDict,
    ValidationInfo,
    field_validator,
)
from pydantic.alias_generators import to_camel


class Provenance(Enum):
    """Which source supplied a resolved value."""

    LANDED_COST = "landed_cost"  # Landed request sheet
    STANDARD_COST = "standard_cost"  # Standard cost sheet
    PRODUCT = "product"  # Line list
    SALES = "sales"  # Sales export
    NONE = "none"  # Not resolvable from any source


# Higher wins when deciding a record-level cost tag
PROVENANCE_RANK = {
    Provenance.LANDED_COST: 4,
    Provenance.STANDARD_COST: 3,
    Provenance.PRODUCT: 2,
    Provenance.SALES: 1,
    Provenance.NONE: 0,
}


@dataclass(frozen=True)
class ResolvedField:
    """A resolved value plus the source it came from."""

    value: Any = None
    provenance: Provenance = Provenance.NONE

    @property
    def is_resolved(self) -> bool:
        return self.provenance is not Provenance.NONE

    @classmethod
    def unresolved(cls) -> "ResolvedField":
        return cls(None, Provenance.NONE)


class _Record(BaseModel):
    """Base for input records: camelCase or snake_case, None -> default."""

    model_config = ConfigDict(
        alias_generator=to_camel,
        populate_by_name=True,
        frozen=True,
        str_strip_whitespace=True,
        coerce_numbers_to_str=True,
    )

    @field_validator("*", mode="before")
    @classmethod
    def _none_to_default(cls, value: Any, info: ValidationInfo) -> Any:
        if value is None:
            field_info = cls.model_fields[info.field_name]
            if not field_info.is_required() and field_info.default is not None:
                return field_info.default
        return value


class ProductRecord(_Record):
    """One line-list row. Most authoritative for descriptive attributes."""

    style_number: str
    style_desc: str = ""
    color: str = ""
    season: str = ""
    division_desc: str = ""
    category_desc: str = ""
    designer_name: str = ""
    tech_designer_name: str = ""
    factory_name: str = ""
    country_of_origin: str = ""
    cost: float = 0.0
    price: float = 0.0
    msrp: float = 0.0
    currency: str = "USD"

    @property
    def key(self) -> str:
        return style_season_key(self.style_number, self.season)


class SalesRecord(_Record):
    """One booked-sales row; customer_type may be comma-joined."""

    style_number: str
    style_desc: str = ""
    season: str = ""
    customer: str = ""
    customer_type: str = ""
    sales_rep: str = ""
    division_desc: str = ""
    category_desc: str = ""
    units_booked: float = 0.0
    revenue: float = 0.0
    wholesale_price: float = 0.0
    msrp: float = 0.0
    cost: float = 0.0

    @property
    def key(self) -> str:
        return style_season_key(self.style_number, self.season)


class CostRecord(_Record):
    """One cost-sheet row. Several rows per key are different colors."""

    style_number: str
    style_name: str = ""
    season: str = ""
    factory: str = ""
    country_of_origin: str = ""
    design_team: str = ""
    developer: str = ""
    fob: float = 0.0
    landed: float = 0.0
    suggested_wholesale: float = 0.0
    suggested_msrp: float = 0.0
    cost_source: Literal["landed_cost", "standard_cost"] = "standard_cost"

    @property
    def key(self) -> str:
        return style_season_key(self.style_number, self.season)

    @property
    def provenance(self) -> Provenance:
        return Provenance(self.cost_source)


RecordT = TypeVar("RecordT", bound=_Record)
SourceT = TypeVar("SourceT")


@dataclass(frozen=True)
class SourceProvider(Generic[SourceT]):
    """
    One candidate source for a field.

    `extract` returns the candidate value or None; `provenance` is either a
    fixed tag or a function of the source object (cost rows carry their own).
    """

    source: SourceT | None
    extract: Callable[[SourceT], Any]
    provenance: Provenance | Callable[[SourceT], Provenance]

    def query(self) -> ResolvedField:
        if self.source is None:
            return ResolvedField.unresolved()
        value = self.extract(self.source)
        if not has_value(value):
            return ResolvedField.unresolved()
        tag = self.provenance
        if callable(tag):
            tag = tag(self.source)
        return ResolvedField(value, tag)


def first_available(providers: Iterable[SourceProvider]) -> ResolvedField:
    """Query providers in priority order; the first one with data wins."""
    for provider in providers:
        resolved = provider.query()
        if resolved.is_resolved:
            return resolved
    return ResolvedField.unresolved()


def has_value(value: Any) -> bool:
    """Empty strings, None and non-positive numbers count as missing."""
    if value is None:
        return False
    if isinstance(value, str):
        return value.strip() != ""
    if isinstance(value, (int, float)):
        return value > 0
    return True


def style_season_key(style_number: str, season: str) -> str:
    """Join key shared by every source: "<style>-<season>"."""
    return f"{style_number}-{season}"


def records_from_frame(df: pd.DataFrame, model: type[RecordT]) -> list[RecordT]:
    """
    Validate every row of an already-parsed DataFrame into `model`.

    Column names may be snake_case or camelCase. NaN becomes None, which the
    model turns into the field default. Raises pydantic.ValidationError on
    malformed rows.
    """
    if df.empty:
        return []
    cleaned = df.astype(object).where(pd.notna(df), None)
    return [model.model_validate(row) for row in cleaned.to_dict("records")]


def to_plain(obj: Any) -> Any:
    """Convert derived dataclasses to JSON-friendly dicts/lists/scalars."""
    if isinstance(obj, Enum):
        return obj.value
    if is_dataclass(obj) and not isinstance(obj, type):
        return {f.name: to_plain(getattr(obj, f.name)) for f in fields(obj)}
    if isinstance(obj, BaseModel):
        return obj.model_dump()
    if isinstance(obj, dict):
        return {str(k): to_plain(v) for k, v in obj.items()}
    if isinstance(obj, (frozenset, set)):
        return sorted(to_plain(v) for v in obj)
    if isinstance(obj, (list, tuple)):
        return [to_plain(v) for v in obj]
    return obj
