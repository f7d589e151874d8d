"""
Engine configuration.

Business constants (target margin, tier cut points, channel labels) live in
one immutable object that is passed into every computation, so the engine
can be run side by side with different targets.
"""

import os
from pathlib import Path

from dotenv import load_dotenv
from pydantic import BaseModel, ConfigDict, Field, model_validator

# --- Base Directory ---
BASE_DIR = Path(__file__).resolve().parent.parent.parent

# Canonical channel codes, in display order
WHOLESALE = "WH"
REI = "BB"
KUHL_STORES = "KUHL_STORES"
ECOMMERCE = "EC"
PRO_SALES = "PS"
INTERNATIONAL = "KI"

CANONICAL_CHANNELS = (
    WHOLESALE,
    REI,
    KUHL_STORES,
    ECOMMERCE,
    PRO_SALES,
    INTERNATIONAL,
)

DEFAULT_CHANNEL_LABELS = {
    WHOLESALE: "Wholesale",
    REI: "REI",
    KUHL_STORES: "KÜHL Stores",
    ECOMMERCE: "E-Commerce",
    PRO_SALES: "Pro Sales",
    INTERNATIONAL: "KÜHL International",
}

# Raw customer-type codes that do not map 1:1
DEFAULT_CHANNEL_ALIASES = {
    "WD": KUHL_STORES,
    "DTC": KUHL_STORES,
}


class EngineConfig(BaseModel):
    """Immutable settings for one computation pass."""

    model_config = ConfigDict(frozen=True)

    target_margin_percent: float = 48.0
    excellent_threshold: float = 55.0
    target_threshold: float = 45.0
    watch_threshold: float = 35.0
    default_channel: str = WHOLESALE
    channel_labels: dict[str, str] = Field(
        default_factory=lambda: dict(DEFAULT_CHANNEL_LABELS)
    )
    channel_aliases: dict[str, str] = Field(
        default_factory=lambda: dict(DEFAULT_CHANNEL_ALIASES)
    )

    @model_validator(mode="after")
    def _check_consistency(self) -> "EngineConfig":
        if self.default_channel not in CANONICAL_CHANNELS:
            raise ValueError(
                f"default_channel must be one of {CANONICAL_CHANNELS}, "
                f"got {self.default_channel!r}"
            )
        unknown = set(self.channel_aliases.values()) - set(CANONICAL_CHANNELS)
        if unknown:
            raise ValueError(f"channel aliases point at unknown channels: {unknown}")
        if not (
            self.excellent_threshold > self.target_threshold > self.watch_threshold
        ):
            raise ValueError("margin tier thresholds must be strictly descending")
        return self

    def channel_label(self, channel: str) -> str:
        return self.channel_labels.get(channel, channel)

    def with_target(self, target_margin_percent: float | None) -> "EngineConfig":
        """Copy of this config with a different target, or self if None."""
        if target_margin_percent is None:
            return self
        return self.model_copy(update={"target_margin_percent": target_margin_percent})


DEFAULT_CONFIG = EngineConfig()


def load_config(env_file: Path | None = None) -> EngineConfig:
    """
    Build an EngineConfig from environment variables.

    Reads `.env` from the project root (or `env_file`) first. Recognized:
    MARGIN_TARGET_PERCENT, DEFAULT_CHANNEL.
    """
    load_dotenv(env_file or BASE_DIR / ".env")

    overrides: dict = {}
    target = os.getenv("MARGIN_TARGET_PERCENT")
    if target:
        overrides["target_margin_percent"] = float(target)
    default_channel = os.getenv("DEFAULT_CHANNEL")
    if default_channel:
        overrides["default_channel"] = default_channel.strip().upper()

    return EngineConfig(**overrides)
