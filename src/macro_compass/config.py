"""
MACRO COMPASS - Configuration & Thresholds

Single source of truth for all numerical thresholds and alias tables.
All values are named, documented, and centralized. The configuration is
built once and passed explicitly to every scorer; nothing here is global.
"""

from __future__ import annotations

import json
import os
from dataclasses import dataclass, field, fields, is_dataclass, replace
from pathlib import Path
from types import MappingProxyType
from typing import Any, Mapping

from macro_compass.exceptions import ConfigurationError

# Canonical series key -> historical key names, tried in order.
DEFAULT_SERIES_ALIASES: dict[str, tuple[str, ...]] = {
    "twex": ("twex", "DTWEXBGS"),
    "t10y2y": ("t10y2y", "T10Y2Y"),
    "t10y3m": ("t10y3m", "T10Y3M"),
    "pce": ("pce_yoy", "PCEPI", "corepce_yoy"),
    "gdp": ("gdp_yoy", "GDPC1"),
    "cpi": ("cpi_yoy", "CPIAUCSL"),
    "pmi": ("pmi", "PMI"),
    "payems": ("payems_delta", "PAYEMS"),
    "walcl": ("WALCL",),
    "rrp": ("RRPONTSYD", "RRPONTSYEA"),
    "tga": ("WTREGEN", "TGA"),
    "m2": ("WM2NS", "M2SL"),
    "hy_spread": ("BAMLH0A0HYM2EY", "BAMLH0A0HYM2"),
    "ig_spread": ("BAMLCC0A0CMTRIV", "BAMLC0A0CM"),
}


class SeriesAliases:
    """
    Canonical-key -> alias-list map, lower-cased once at construction.

    Lookups never rebuild the table; scorers only ever ask for the
    precomputed tuple of a canonical key.
    """

    def __init__(self, table: Mapping[str, tuple[str, ...] | list[str]] | None = None) -> None:
        source = DEFAULT_SERIES_ALIASES if table is None else table
        self._table = MappingProxyType(
            {canon: tuple(a.lower() for a in aliases) for canon, aliases in source.items()}
        )

    def aliases(self, canonical: str) -> tuple[str, ...]:
        try:
            return self._table[canonical]
        except KeyError:
            raise ConfigurationError(f"No alias list configured for series '{canonical}'") from None

    def canonical_keys(self) -> tuple[str, ...]:
        return tuple(self._table)

    def __eq__(self, other: object) -> bool:
        return isinstance(other, SeriesAliases) and dict(self._table) == dict(other._table)

    def __hash__(self) -> int:
        return hash(tuple(sorted(self._table.items())))

    def __repr__(self) -> str:
        return f"SeriesAliases({len(self._table)} series)"


@dataclass(frozen=True)
class USDBiasThresholds:
    """USD bias normalization divisors and classification bands."""

    twex_divisor: float = 10.0
    curve_divisor: float = 1.0
    pce_divisor: float = 5.0
    gdp_divisor: float = 5.0
    bullish_above: float = 0.25
    bearish_below: float = -0.25


@dataclass(frozen=True)
class LiquidityThresholds:
    """Liquidity regime heuristics."""

    flat_delta: float = 1.0  # |delta| below this on WALCL/RRP/TGA -> Medium
    z_floor: float = 1.0  # pseudo z-score denominator floor


@dataclass(frozen=True)
class CreditThresholds:
    """Credit stress normalization and bands."""

    spread_divisor: float = 500.0
    curve_divisor: float = 1.0
    stress_high_above: float = 0.4
    low_below: float = -0.3


@dataclass(frozen=True)
class RiskAppetiteThresholds:
    """Composite risk appetite weights, heuristic adjustments and bands."""

    quad_weight: float = 0.5
    usd_bullish_low_liquidity: float = -0.5
    usd_bearish_goldilocks: float = 0.5
    credit_stress_high: float = -0.5
    risk_on_above: float = 0.25
    risk_off_below: float = -0.25


@dataclass(frozen=True)
class CorrelationThresholds:
    """Correlation shift classification and relevance scoring."""

    default_benchmark: str = "DXY"
    break_delta: float = 0.4  # |3m - 12m| above this is a Break
    weak_level: float = 0.3  # both |12m| and |3m| below this is Weak
    stable_delta: float = 0.1
    break_bonus: float = 0.2
    weak_penalty: float = 0.2
    regime_alignment_level: float = 0.6
    regime_alignment_bonus: float = 0.1


@dataclass(frozen=True)
class SnapshotConfig:
    """Snapshot assembly."""

    calendar_horizon_days: int = 14
    score_scale: float = 100.0  # sub-scores live in [-1, 1]; snapshot score in [-100, 100]


@dataclass(frozen=True)
class SignalThresholds:
    """Signal synthesizer rules."""

    long_above: float = 20.0
    short_below: float = -20.0
    blocked_window_hours: float = 4.0
    warning_window_hours: float = 12.0
    high_conviction_score: float = 50.0
    high_conviction_confidence: float = 0.7
    med_conviction_score: float = 30.0
    med_conviction_confidence: float = 0.6
    low_confidence_flag_below: float = 0.5
    max_warn_invariants: int = 2  # more than this many WARN -> medium flag
    driver_min_weight: float = 0.1
    anchor_min_corr: float = 0.7
    max_playbook_notes: int = 5
    top_drivers: int = 2
    cooldown_minutes: int = 60


@dataclass(frozen=True)
class SizingConfig:
    """Position sizing in risk units (R)."""

    base_low: float = 0.25
    base_med: float = 0.5
    base_high: float = 1.0
    many_flags: int = 2  # high+medium flags >= this -> many_flags_factor
    many_flags_factor: float = 0.5
    high_flag_factor: float = 0.75
    rounding_step: float = 0.25


@dataclass(frozen=True)
class DeltaThresholds:
    """Delta engine thresholds."""

    score_delta: float = 15.0
    blocked_window_minutes: int = 240
    time_delta_minutes: int = 60
    weight_delta: float = 0.1
    max_deltas: int = 6


@dataclass(frozen=True)
class QualityRules:
    """Data-quality invariant thresholds."""

    freshness_sla_days: float = 3.0
    min_obs_12m: int = 150
    min_obs_3m: int = 40
    usd_quote_positive_threshold: float = 0.30
    usd_base_negative_threshold: float = -0.30
    min_drivers: int = 3  # drivers with weight > 0
    usd_quote_pairs: tuple[str, ...] = ("EURUSD", "GBPUSD", "AUDUSD", "XAUUSD")
    usd_base_pairs: tuple[str, ...] = ("USDJPY", "USDCAD")


@dataclass(frozen=True)
class SourceConfig:
    """HTTP collaborators used by the orchestrator."""

    base_url: str = "http://localhost:8000"
    timeout_seconds: float = 30.0
    indicators_path: str = "/indicators/latest"
    correlations_path: str = "/correlations"
    calendar_path: str = "/calendar/upcoming"


@dataclass(frozen=True)
class MacroCompassConfig:
    """Master configuration for MACRO COMPASS."""

    usd: USDBiasThresholds = USDBiasThresholds()
    liquidity: LiquidityThresholds = LiquidityThresholds()
    credit: CreditThresholds = CreditThresholds()
    risk: RiskAppetiteThresholds = RiskAppetiteThresholds()
    correlation: CorrelationThresholds = CorrelationThresholds()
    snapshot: SnapshotConfig = SnapshotConfig()
    signal: SignalThresholds = SignalThresholds()
    sizing: SizingConfig = SizingConfig()
    deltas: DeltaThresholds = DeltaThresholds()
    quality: QualityRules = QualityRules()
    sources: SourceConfig = SourceConfig()
    aliases: SeriesAliases = field(default_factory=SeriesAliases)


def config_from_dict(data: Mapping[str, Any]) -> MacroCompassConfig:
    """
    Build a config from a (partial) nested mapping.

    Sections and keys not present keep their defaults. Unknown sections or
    keys raise ConfigurationError so typos never pass silently.
    """
    base = MacroCompassConfig()
    overrides: dict[str, Any] = {}
    for section, values in data.items():
        if section == "aliases":
            if not isinstance(values, Mapping):
                raise ConfigurationError("'aliases' must map canonical keys to alias lists")
            merged = {**DEFAULT_SERIES_ALIASES, **{k: tuple(v) for k, v in values.items()}}
            overrides["aliases"] = SeriesAliases(merged)
            continue
        if section not in {f.name for f in fields(base)}:
            raise ConfigurationError(f"Unknown config section '{section}'")
        overrides[section] = _apply_section(getattr(base, section), section, values)
    return replace(base, **overrides)


def load_config(path: str | Path | None = None) -> MacroCompassConfig:
    """
    Load configuration from a JSON file.

    Falls back to defaults when no path is given. The
    MACRO_COMPASS_API_URL environment variable overrides sources.base_url.
    """
    config = MacroCompassConfig()
    if path is not None:
        try:
            data = json.loads(Path(path).read_text())
        except (OSError, json.JSONDecodeError) as exc:
            raise ConfigurationError(f"Cannot read config {path}: {exc}") from exc
        if not isinstance(data, dict):
            raise ConfigurationError(f"Config {path} must contain a JSON object")
        config = config_from_dict(data)

    api_url = os.environ.get("MACRO_COMPASS_API_URL")
    if api_url:
        config = replace(config, sources=replace(config.sources, base_url=api_url))
    return config


def _apply_section(current: Any, name: str, values: Any) -> Any:
    if not is_dataclass(current) or not isinstance(values, Mapping):
        raise ConfigurationError(f"Config section '{name}' must be an object")
    known = {f.name: f for f in fields(current)}
    updates: dict[str, Any] = {}
    for key, value in values.items():
        if key not in known:
            raise ConfigurationError(f"Unknown key '{name}.{key}'")
        default = getattr(current, key)
        updates[key] = tuple(value) if isinstance(default, tuple) else value
    return replace(current, **updates)
