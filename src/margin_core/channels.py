"""
Channel normalization.

Sales exports carry a raw customer-type code per row. Pre-aggregated rows
join several codes with commas ("WD,BB"). Everything that groups by channel
goes through ChannelNormalizer so the canonical channel set stays fixed and
revenue totals always reconcile:

- Unknown or empty codes fall into the configured default channel.
- Mixed rows attribute to their first channel when a single channel is
  needed, and split their amounts across all channels when summing.
"""

import logging
from dataclasses import dataclass
from typing import Iterable, Iterator

from .config import CANONICAL_CHANNELS, DEFAULT_CONFIG, EngineConfig
from .models import SalesRecord

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class ChannelResolution:
    """Result of resolving one raw customer-type value."""

    raw: str
    raw_codes: tuple[str, ...]
    channels: tuple[str, ...]
    unrecognized: tuple[str, ...] = ()

    @property
    def primary(self) -> str:
        return self.channels[0]

    @property
    def is_mixed(self) -> bool:
        return len(self.channels) > 1


@dataclass(frozen=True)
class ChannelShare:
    """The part of a row's amounts attributed to one channel."""

    channel: str
    revenue: float
    units: float


@dataclass(frozen=True)
class ChannelSale:
    """A sales row re-attributed to exactly one canonical channel."""

    record: SalesRecord
    channel: str
    revenue: float
    units: float
    is_mixed: bool


class ChannelNormalizer:
    """
    Maps raw customer-type codes onto the canonical channel set.

    Usage:
        normalizer = ChannelNormalizer(config)
        normalizer.normalize("WD")          # "KUHL_STORES"
        normalizer.resolve("WD,BB").is_mixed  # True
    """

    def __init__(self, config: EngineConfig = DEFAULT_CONFIG):
        self.config = config
        self._lookup = {code: code for code in CANONICAL_CHANNELS}
        self._lookup.update(config.channel_aliases)

    @property
    def channels(self) -> tuple[str, ...]:
        return CANONICAL_CHANNELS

    def resolve(self, raw: str | None) -> ChannelResolution:
        """Resolve a single or comma-joined code list."""
        raw = raw or ""
        tokens = tuple(t.strip().upper() for t in raw.split(",") if t.strip())

        channels: list[str] = []
        unrecognized: list[str] = []
        for token in tokens:
            channel = self._lookup.get(token)
            if channel is None:
                unrecognized.append(token)
                channel = self.config.default_channel
            if channel not in channels:
                channels.append(channel)

        if not channels:
            channels.append(self.config.default_channel)

        if unrecognized:
            logger.debug(
                "Unrecognized customer type(s) %s in %r -> %s",
                unrecognized,
                raw,
                self.config.default_channel,
            )

        return ChannelResolution(
            raw=raw,
            raw_codes=tokens,
            channels=tuple(channels),
            unrecognized=tuple(unrecognized),
        )

    def normalize(self, raw: str | None) -> str:
        """Canonical channel for single-channel attribution."""
        return self.resolve(raw).primary

    def split_amounts(
        self, raw: str | None, revenue: float, units: float
    ) -> list[ChannelShare]:
        """
        Split a row's revenue and units across its resolved channels.

        Shares are equal; the last channel absorbs the rounding remainder so
        the shares add back to exactly the row totals.
        """
        channels = self.resolve(raw).channels
        if len(channels) == 1:
            return [ChannelShare(channels[0], revenue, units)]

        n = len(channels)
        revenue_each = revenue / n
        units_each = units / n
        shares = [
            ChannelShare(channel, revenue_each, units_each) for channel in channels[:-1]
        ]
        shares.append(
            ChannelShare(
                channels[-1],
                revenue - revenue_each * (n - 1),
                units - units_each * (n - 1),
            )
        )
        return shares

    def explode_sales(self, sales: Iterable[SalesRecord]) -> Iterator[ChannelSale]:
        """One ChannelSale per (row, channel) pair."""
        for record in sales:
            shares = self.split_amounts(
                record.customer_type, record.revenue, record.units_booked
            )
            mixed = len(shares) > 1
            for share in shares:
                yield ChannelSale(
                    record=record,
                    channel=share.channel,
                    revenue=share.revenue,
                    units=share.units,
                    is_mixed=mixed,
                )

    def label(self, channel: str) -> str:
        return self.config.channel_label(channel)


def normalize_channel(raw: str | None, config: EngineConfig = DEFAULT_CONFIG) -> str:
    """Convenience wrapper around ChannelNormalizer.normalize."""
    return ChannelNormalizer(config).normalize(raw)
