"""
MACRO COMPASS - Core Type Definitions

All dataclasses and enums used across the system.
No logic beyond small derived properties and serialization, only data
structures. The MacroSnapshot contract lives in snapshot/schema.py
because it is schema-validated.
"""

from __future__ import annotations

import json
from dataclasses import dataclass, field, fields, is_dataclass
from datetime import date, datetime
from enum import Enum
from typing import Any, Optional


class Trend(str, Enum):
    IMPROVING = "improving"
    WORSENING = "worsening"
    STABLE = "stable"


class Posture(str, Enum):
    HAWKISH = "hawkish"
    NEUTRAL = "neutral"
    DOVISH = "dovish"


class USDDirection(str, Enum):
    BULLISH = "Bullish"
    BEARISH = "Bearish"
    NEUTRAL = "Neutral"


class Quadrant(str, Enum):
    """Growth / inflation quadrant."""

    GOLDILOCKS = "Goldilocks"  # CPI down, GDP up
    RECESIVO = "Recesivo"  # CPI down, GDP down
    STAGFLATION = "Stagflation"  # CPI up, GDP down
    EXPANSIVO = "Expansivo"  # CPI up, GDP up (and the default)


class LiquidityRegime(str, Enum):
    HIGH = "High"
    LOW = "Low"
    CONTRACTING = "Contracting"
    MEDIUM = "Medium"


class CreditRegime(str, Enum):
    LOW = "Low"
    MEDIUM = "Medium"
    STRESS_HIGH = "Stress High"


class RiskRegime(str, Enum):
    RISK_ON = "Risk ON"
    RISK_OFF = "Risk OFF"
    NEUTRAL = "Neutral"


class CorrelationWindow(str, Enum):
    W3M = "3m"
    W6M = "6m"
    W12M = "12m"
    W24M = "24m"


# Scan order used everywhere a "first available window" is needed.
WINDOW_ORDER: tuple[CorrelationWindow, ...] = (
    CorrelationWindow.W3M,
    CorrelationWindow.W6M,
    CorrelationWindow.W12M,
    CorrelationWindow.W24M,
)


class ShiftRegime(str, Enum):
    BREAK = "Break"
    REINFORCING = "Reinforcing"
    STABLE = "Stable"
    WEAK = "Weak"


class CorrelationTrend(str, Enum):
    STRENGTHENING = "Strengthening"
    WEAKENING = "Weakening"
    STABLE = "Stable"
    INCONCLUSIVE = "Inconclusive"


class Importance(str, Enum):
    LOW = "low"
    MEDIUM = "medium"
    HIGH = "high"


class QualityLevel(str, Enum):
    FAIL = "FAIL"
    WARN = "WARN"
    PASS = "PASS"


class BiasDirection(str, Enum):
    LONG = "long"
    SHORT = "short"
    NEUTRAL = "neutral"


class Conviction(str, Enum):
    LOW = "low"
    MED = "med"
    HIGH = "high"


class SignalAction(str, Enum):
    LONG = "LONG"
    SHORT = "SHORT"
    NEUTRAL = "NEUTRAL"
    NO_TRADE = "NO_TRADE"


class FlagSeverity(str, Enum):
    LOW = "low"
    MEDIUM = "medium"
    HIGH = "high"


class DeltaSeverity(str, Enum):
    HARD_STOP = "hard_stop"
    ERROR = "error"
    WARNING = "warning"
    INFO = "info"

    @property
    def rank(self) -> int:
        """0 is the most severe."""
        return _SEVERITY_RANK[self]


_SEVERITY_RANK = {
    DeltaSeverity.HARD_STOP: 0,
    DeltaSeverity.ERROR: 1,
    DeltaSeverity.WARNING: 2,
    DeltaSeverity.INFO: 3,
}


class EventStatus(str, Enum):
    BLOCKED = "blocked"  # < 4h
    WARNING = "warning"  # 4h - 12h
    OK = "ok"


# --- Regime classifier inputs / outputs ---


@dataclass(frozen=True)
class IndicatorObservation:
    """One indicator reading, supplied per evaluation cycle. Immutable."""

    key: str
    label: str
    value: Optional[float] = None
    previous_value: Optional[float] = None
    trend: Optional[Trend] = None
    posture: Optional[Posture] = None
    weight: Optional[float] = None
    category: Optional[str] = None
    date: Optional[date] = None
    previous_date: Optional[date] = None
    unit: Optional[str] = None
    original_key: Optional[str] = None

    @property
    def delta(self) -> Optional[float]:
        if self.value is None or self.previous_value is None:
            return None
        return self.value - self.previous_value


@dataclass(frozen=True)
class TacticalRow:
    """Per-instrument suggested direction / confidence / correlation."""

    pair: str
    symbol: Optional[str] = None
    trend: str = "Neutral"
    action: str = "Rango/táctico"
    confidence: str = "Media"
    benchmark: Optional[str] = None
    corr12m: Optional[float] = None
    corr3m: Optional[float] = None
    motive: Optional[str] = None

    @property
    def lookup_symbol(self) -> str:
        """Symbol as used by the correlation store: no slash, upper case."""
        return (self.pair or self.symbol or "").replace("/", "").upper()


@dataclass(frozen=True)
class AxisReading:
    """Output of one regime scorer."""

    score: float
    regime: str
    raw: dict[str, Any] = field(default_factory=dict)


@dataclass(frozen=True)
class RegimeLabels:
    overall: str
    usd_direction: str
    quad: str
    liquidity: str
    credit: str
    risk: str


@dataclass(frozen=True)
class RegimeMetrics:
    """Sub-scores, each clamped to [-1, 1]."""

    usd_score: float
    quad_score: float
    liquidity_score: Optional[float] = None
    credit_score: Optional[float] = None
    risk_score: Optional[float] = None

    def available(self) -> list[float]:
        scores = [self.usd_score, self.quad_score, self.liquidity_score, self.credit_score, self.risk_score]
        return [s for s in scores if s is not None]


@dataclass(frozen=True)
class CurrencyRegime:
    regime: str
    probability: float
    description: Optional[str] = None


@dataclass(frozen=True)
class BiasState:
    """
    Regime classification result.

    Recomputed on every call. updated_at is the computation time, not the
    data time; it is not a cache key.
    """

    updated_at: datetime
    regime: RegimeLabels
    metrics: RegimeMetrics
    table: list[IndicatorObservation] = field(default_factory=list)
    tactical: list[TacticalRow] = field(default_factory=list)
    currency_regimes: dict[str, CurrencyRegime] = field(default_factory=dict)


# --- Correlation analyzer ---


@dataclass(frozen=True)
class CorrelationRecord:
    """Raw correlation statistic with a free-form window label."""

    symbol: str
    benchmark: Optional[str]
    window: str
    value: Optional[float]
    sample_size: Optional[int] = None
    updated_at: Optional[datetime] = None


@dataclass(frozen=True)
class CorrelationPoint:
    symbol: str
    benchmark: str
    window: CorrelationWindow
    value: Optional[float]
    sample_size: Optional[int] = None
    updated_at: Optional[datetime] = None


@dataclass(frozen=True)
class CorrelationShift:
    symbol: str
    benchmark: str
    corr12m: Optional[float]
    corr3m: Optional[float]
    delta: Optional[float]
    regime: ShiftRegime


@dataclass(frozen=True)
class CorrelationSummary:
    symbol: str
    benchmark: str
    strongest_window: Optional[CorrelationWindow]
    correlation_now: Optional[float]
    trend: CorrelationTrend
    macro_relevance_score: float


@dataclass(frozen=True)
class CorrelationState:
    updated_at: datetime
    benchmark: str
    windows: list[CorrelationWindow]
    points: list[CorrelationPoint] = field(default_factory=list)
    shifts: list[CorrelationShift] = field(default_factory=list)
    summary: list[CorrelationSummary] = field(default_factory=list)

    def point(self, symbol: str, benchmark: str, window: CorrelationWindow) -> Optional[CorrelationPoint]:
        for p in self.points:
            if p.symbol == symbol and p.benchmark == benchmark and p.window == window:
                return p
        return None


# --- External collaborator inputs ---


@dataclass(frozen=True)
class CalendarEvent:
    name: str
    date: datetime  # UTC
    importance: Importance
    country: Optional[str] = None
    currency: Optional[str] = None


@dataclass(frozen=True)
class QualityInvariantResult:
    rule_id: str
    level: QualityLevel
    message: str


# --- Signal synthesizer / delta engine outputs ---


@dataclass(frozen=True)
class RiskFlag:
    id: str
    severity: FlagSeverity
    message: str
    reason: str


@dataclass(frozen=True)
class TopDriver:
    name: str
    direction: str
    weight: float


@dataclass(frozen=True)
class AnchorCorrelation:
    symbol: str
    corr: float


@dataclass(frozen=True)
class ChecklistSetup:
    regime: str
    usd_bias: str
    top_drivers: list[TopDriver] = field(default_factory=list)
    anchor_correlation: Optional[AnchorCorrelation] = None


@dataclass(frozen=True)
class Blocker:
    id: str
    message: str
    condition_to_resolve: str


@dataclass(frozen=True)
class InvalidationCondition:
    id: str
    condition: str


@dataclass(frozen=True)
class ExecutionChecklist:
    setup: ChecklistSetup
    blockers: list[Blocker] = field(default_factory=list)
    invalidation_conditions: list[InvalidationCondition] = field(default_factory=list)


@dataclass(frozen=True)
class PositionSizing:
    """Position size in risk units (R): 0, 0.25, 0.5, 0.75 or 1.0."""

    recommended_risk_units: float
    base_size: float
    reduction_factor: float
    reason: str
    warnings: list[str] = field(default_factory=list)


@dataclass(frozen=True)
class InvalidationTrigger:
    id: str
    trigger: str
    action: str


@dataclass(frozen=True)
class CancellationCondition:
    id: str
    condition: str
    action: str


@dataclass(frozen=True)
class ExecutionPlan:
    entry_guidance: str
    invalidation_triggers: list[InvalidationTrigger] = field(default_factory=list)
    cancellation_conditions: list[CancellationCondition] = field(default_factory=list)


@dataclass(frozen=True)
class CooldownState:
    is_active: bool
    reason: str
    expires_at: Optional[datetime] = None
    revalidation_conditions: list[str] = field(default_factory=list)


@dataclass(frozen=True)
class TimeToNextEvent:
    minutes: int
    event_name: str
    status: EventStatus


@dataclass(frozen=True)
class SnapshotDelta:
    id: str
    severity: DeltaSeverity
    message: str
    context: dict[str, Any] = field(default_factory=dict)


@dataclass(frozen=True)
class MacroSignal:
    """Final decision artifact. Ephemeral, never persisted by the core."""

    action: SignalAction
    bias_direction: BiasDirection
    conviction: Conviction
    risk_flags: list[RiskFlag]
    playbook_notes: list[str]
    execution_checklist: ExecutionChecklist
    score: float
    confidence: float
    action_reason: Optional[str] = None
    position_sizing: Optional[PositionSizing] = None
    execution_plan: Optional[ExecutionPlan] = None
    cooldown_state: Optional[CooldownState] = None
    time_to_next_event: Optional[TimeToNextEvent] = None
    deltas: Optional[list[SnapshotDelta]] = None

    def to_dict(self) -> dict:
        """Serialize to output JSON format. Absent optional parts are omitted."""
        return {k: v for k, v in _to_jsonable(self).items() if v is not None}

    def to_json(self) -> str:
        """Serialize to JSON string."""
        return json.dumps(self.to_dict(), indent=2, ensure_ascii=False)


def _to_jsonable(value: Any) -> Any:
    if is_dataclass(value) and not isinstance(value, type):
        return {f.name: _to_jsonable(getattr(value, f.name)) for f in fields(value)}
    if isinstance(value, Enum):
        return value.value
    if isinstance(value, (datetime, date)):
        return value.isoformat()
    if isinstance(value, dict):
        return {k: _to_jsonable(v) for k, v in value.items()}
    if isinstance(value, (list, tuple)):
        return [_to_jsonable(v) for v in value]
    return value
