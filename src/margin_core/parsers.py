"""
Normalizers for apparel identifiers.

These handle the messy reality of line-list and sales exports:
- Style numbers with test suffixes and tall/plus variant suffixes
- Season codes written several different ways
- Gender only available inside the division description
- Category labels with inconsistent case and spacing
"""

import re
import string
from dataclasses import dataclass

import pandas as pd


class StyleNumberNormalizer:
    """
    Normalizes style numbers so the same style matches across sources.

    Patterns handled:
    - " 5139 " -> "5139"
    - "5139tes" -> "5139" (test styles)
    - "5139T" -> base style "5139" (tall variant)
    """

    DEFAULT_STRIP_SUFFIXES = ["TES"]
    VARIANT_SUFFIX = re.compile(r"^(.+?)[RXT]$")

    def __init__(
        self,
        strip_suffixes: list[str] | None = None,
        uppercase: bool = True,
    ):
        self.uppercase = uppercase
        # Longest first so "TES" is tried before any shorter suffix
        self.suffixes = sorted(
            strip_suffixes or self.DEFAULT_STRIP_SUFFIXES, key=len, reverse=True
        )

    def normalize(self, style: str | None) -> str | None:
        if style is None or pd.isna(style):
            return None

        # Numeric Excel columns with blanks arrive as float64: 5139.0 -> "5139"
        if isinstance(style, float) and style.is_integer():
            style = int(style)

        result = str(style).strip()
        if not result:
            return None

        if self.uppercase:
            result = result.upper()

        for suffix in self.suffixes:
            if result.upper().endswith(suffix.upper()) and len(result) > len(suffix):
                result = result[: -len(suffix)]
                break

        return result

    def base_style(self, style: str | None) -> str | None:
        """Strip one trailing R/X/T variant marker."""
        cleaned = self.normalize(style)
        if cleaned is None:
            return None
        match = self.VARIANT_SUFFIX.match(cleaned)
        return match.group(1) if match else cleaned

    def normalize_series(self, series: pd.Series) -> pd.Series:
        """Object series; missing styles stay None rather than NaN."""
        return _keep_none(series.map(self.normalize))


def _keep_none(series: pd.Series) -> pd.Series:
    series = series.astype(object)
    return series.where(series.notna(), None)


@dataclass(frozen=True)
class SeasonCode:
    """A normalized season such as 25SP (Spring 2025) or 26FA (Fall 2026)."""

    year: int
    half: str  # "SP" or "FA"

    PATTERN = re.compile(r"^(\d{2})(SP|FA)$")

    @classmethod
    def parse(cls, code: str | None) -> "SeasonCode | None":
        if not code:
            return None
        match = cls.PATTERN.match(str(code).strip().upper())
        if not match:
            return None
        return cls(year=2000 + int(match.group(1)), half=match.group(2))

    @property
    def code(self) -> str:
        return f"{self.year % 100:02d}{self.half}"

    @property
    def label(self) -> str:
        return f"{'Spring' if self.half == 'SP' else 'Fall'} {self.year}"

    def previous(self) -> "SeasonCode":
        """Same half of the prior year (26FA -> 25FA)."""
        return SeasonCode(self.year - 1, self.half)

    def sort_key(self) -> tuple[int, int]:
        return (self.year, 0 if self.half == "SP" else 1)


_HALF_WORDS = {
    "SP": "SP",
    "SPRING": "SP",
    "SS": "SP",
    "FA": "FA",
    "FALL": "FA",
    "FW": "FA",
    "AUTUMN": "FA",
}
_SEASON_PARTS = re.compile(r"([A-Z]+)|(\d{4}|\d{2})")


def normalize_season(raw: str | None) -> str | None:
    """
    Normalize a season string to its code.

    Accepts "25SP", "SP25", "Spring 2025", "2025 Fall", "fa-26".
    Labels with no year/half pair ("Holiday 2025") come back trimmed but
    otherwise unchanged, so distinct unknown seasons stay distinct.
    Returns None only for missing or blank input.
    """
    if raw is None or pd.isna(raw):
        return None
    label = str(raw).strip()
    if not label:
        return None
    text = label.upper()
    if SeasonCode.parse(text):
        return text

    half = None
    year = None
    for word, digits in _SEASON_PARTS.findall(text):
        if word and half is None:
            half = _HALF_WORDS.get(word)
        elif digits and year is None:
            year = int(digits) % 100
    if half is None or year is None:
        return label
    return f"{year:02d}{half}"


def season_sort_key(code: str) -> tuple[int, int]:
    """Chronological key; unparseable codes sort first."""
    parsed = SeasonCode.parse(code)
    return parsed.sort_key() if parsed else (0, 0)


def sort_seasons(seasons: list[str]) -> list[str]:
    """25SP, 25FA, 26SP, 26FA (Spring before Fall within a year)."""
    return sorted(seasons, key=season_sort_key)


def previous_season(code: str) -> str | None:
    parsed = SeasonCode.parse(code)
    return parsed.previous().code if parsed else None


MENS = "Men's"
WOMENS = "Women's"
UNISEX = "Unisex"
UNKNOWN_GENDER = "Unknown"
GENDERS = (MENS, WOMENS, UNISEX)


def gender_from_division(division_desc: str | None) -> str:
    """
    Derive gender from the division description.

    "Men's Tops" -> Men's, "Women's Bottoms" -> Women's,
    "Accessories" -> Unisex, anything else -> Unknown.
    """
    if not division_desc:
        return UNKNOWN_GENDER
    lower = division_desc.lower()
    if "men's" in lower and "women's" not in lower:
        return MENS
    if "women's" in lower or "woman" in lower:
        return WOMENS
    if "unisex" in lower or "accessories" in lower:
        return UNISEX
    return UNKNOWN_GENDER


class CategoryNormalizer:
    """
    Normalizes category labels so "PANTS", " pants " and "Pants" group together.

    `aliases` maps normalized labels onto a preferred label
    (e.g. {"Tees": "Tops"}).
    """

    def __init__(self, aliases: dict[str, str] | None = None):
        self.aliases = {string.capwords(k): v for k, v in (aliases or {}).items()}

    def normalize(self, category: str | None) -> str:
        if category is None or pd.isna(category):
            return ""
        result = string.capwords(str(category))
        return self.aliases.get(result, result)

    def normalize_series(self, series: pd.Series) -> pd.Series:
        return series.apply(self.normalize)


normalize_category = CategoryNormalizer().normalize
