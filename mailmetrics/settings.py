"""Engine configuration loaded from YAML."""

import logging
from dataclasses import dataclass
from pathlib import Path
from typing import Any

import yaml

from .exceptions import ConfigLoadError

logger = logging.getLogger(__name__)

DEFAULT_ENGINE_CONFIG_PATH = Path(__file__).parent / "config" / "engine.yaml"


@dataclass(frozen=True)
class PricingTier:
    """Monthly price for an inclusive profile-count band."""

    min_count: int
    max_count: int
    monthly_price: float

    def contains(self, count: int) -> bool:
        return self.min_count <= count <= self.max_count


@dataclass(frozen=True)
class GranularityThresholds:
    """Span limits (in days) for automatic granularity selection."""

    daily_max_days: int = 60
    weekly_max_days: int = 365


@dataclass(frozen=True)
class DeadWeightPolicy:
    """Age and inactivity limits for the dead-weight segments."""

    never_active_min_age_days: int = 30
    dormant_min_age_days: int = 90
    dormant_inactivity_days: int = 90


@dataclass(frozen=True)
class EngineSettings:
    """All tunable engine policy.

    Attributes:
        granularity: Thresholds for daily/weekly/monthly selection
        max_lookback_days: Cap applied to presets and the "all" range
        dead_weight: Segment 1 / Segment 2 qualification limits
        high_value_multipliers: CLV multiples of the buyer average
        last_active_thresholds_days: Inactivity cut-offs for last-active segments
        significance_alpha: Default p-value threshold
        pricing_tiers: Ordered, non-overlapping price bands
    """

    granularity: GranularityThresholds
    max_lookback_days: int
    dead_weight: DeadWeightPolicy
    high_value_multipliers: tuple[float, ...]
    last_active_thresholds_days: tuple[int, ...]
    significance_alpha: float
    pricing_tiers: tuple[PricingTier, ...]

    @classmethod
    def from_dict(cls, raw: dict[str, Any]) -> "EngineSettings":
        tiers = tuple(
            PricingTier(
                min_count=int(t["min"]),
                max_count=int(t["max"]),
                monthly_price=float(t["price"]),
            )
            for t in raw.get("pricing_tiers", [])
        )
        _check_tiers(tiers)

        granularity = GranularityThresholds(**raw.get("granularity", {}))
        if granularity.daily_max_days > granularity.weekly_max_days:
            raise ConfigLoadError(
                "granularity.daily_max_days must not exceed weekly_max_days"
            )

        return cls(
            granularity=granularity,
            max_lookback_days=int(raw.get("max_lookback_days", 730)),
            dead_weight=DeadWeightPolicy(**raw.get("dead_weight", {})),
            high_value_multipliers=tuple(
                float(m) for m in raw.get("high_value_multipliers", [2, 3, 6])
            ),
            last_active_thresholds_days=tuple(
                int(d) for d in raw.get("last_active_thresholds_days", [90, 120, 180, 365])
            ),
            significance_alpha=float(raw.get("significance_alpha", 0.05)),
            pricing_tiers=tiers,
        )


def _check_tiers(tiers: tuple[PricingTier, ...]) -> None:
    """Tiers must be ascending and contiguous."""
    if not tiers:
        raise ConfigLoadError("pricing_tiers must not be empty")
    for prev, nxt in zip(tiers, tiers[1:]):
        if nxt.min_count != prev.max_count + 1:
            raise ConfigLoadError(
                f"pricing tiers not contiguous: {prev.max_count} -> {nxt.min_count}"
            )


def load_yaml(path: Path) -> dict[str, Any]:
    """Load a YAML mapping, wrapping any failure in ConfigLoadError."""
    try:
        with open(path) as f:
            data = yaml.safe_load(f)
    except Exception as e:
        raise ConfigLoadError(f"Failed to load config from {path}: {e}") from e
    if not isinstance(data, dict):
        raise ConfigLoadError(f"Config at {path} is not a mapping")
    return data


def load_settings(path: Path | None = None) -> EngineSettings:
    """Load engine settings (defaults to the bundled engine.yaml)."""
    config_path = path or DEFAULT_ENGINE_CONFIG_PATH
    logger.debug("Loading engine settings from %s", config_path)
    try:
        return EngineSettings.from_dict(load_yaml(config_path))
    except (KeyError, TypeError, ValueError) as e:
        raise ConfigLoadError(f"Invalid engine config {config_path}: {e}") from e
