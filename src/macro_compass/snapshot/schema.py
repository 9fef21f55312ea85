"""
MACRO COMPASS - MacroSnapshot schema

The single validated contract shared by the signal synthesizer, the delta
engine and every consumer (UI, jobs, notifications). Field aliases keep
the camelCase wire names used by JSON consumers; models accept both.

Usage:
    result = parse_snapshot(raw)
    if result.ok:
        snapshot = result.data
    else:
        print(result.issues)
"""

from __future__ import annotations

from dataclasses import dataclass, field
from typing import Any, Literal, Optional

from pydantic import AwareDatetime, BaseModel, ConfigDict, Field, ValidationError
from pydantic.alias_generators import to_camel

from macro_compass.exceptions import SnapshotValidationError
from macro_compass.types import BiasDirection, Importance

USDBiasLabel = Literal["Fuerte", "Débil", "Neutral", "STRONG", "WEAK", "NEUTRAL"]
ConfidenceLabel = Literal["Alta", "Media", "Baja", "high", "medium", "low"]


class _SnapshotModel(BaseModel):
    model_config = ConfigDict(
        alias_generator=to_camel,
        populate_by_name=True,
        frozen=True,
    )


class BiasDriver(_SnapshotModel):
    key: str
    name: str
    direction: BiasDirection
    weight: float = Field(ge=0, le=1)
    note: Optional[str] = None


class UpcomingDate(_SnapshotModel):
    name: str
    date: AwareDatetime
    importance: Importance
    country: Optional[str] = None
    currency: Optional[str] = None


class CorrelationRow(_SnapshotModel):
    symbol: str
    benchmark: str = "DXY"
    # Required keys that may carry null
    corr12m: Optional[float] = Field(alias="corr12m", ge=-1, le=1)
    corr6m: Optional[float] = Field(alias="corr6m", ge=-1, le=1)
    corr3m: Optional[float] = Field(alias="corr3m", ge=-1, le=1)
    corr_ref: Optional[str] = None


class Narrative(_SnapshotModel):
    headline: str
    bullets: list[str]
    confidence: ConfidenceLabel
    tags: Optional[list[str]] = None


class RegimeBlock(BaseModel):
    """Regime labels. Wire names are snake_case, as produced by the classifier."""

    model_config = ConfigDict(frozen=True)

    overall: str
    usd_direction: str
    usd_label: Optional[USDBiasLabel] = None
    quad: str
    liquidity: Optional[str] = None
    credit: Optional[str] = None
    risk: Optional[str] = None


class Metrics(_SnapshotModel):
    usd_score: float = Field(ge=-100, le=100)
    quad_score: Optional[float] = Field(default=None, ge=-100, le=100)
    liquidity_score: Optional[float] = Field(default=None, ge=-100, le=100)
    credit_score: Optional[float] = Field(default=None, ge=-100, le=100)
    risk_score: Optional[float] = Field(default=None, ge=-100, le=100)
    score: Optional[float] = Field(default=None, ge=-100, le=100)


class CurrencyRegimeModel(_SnapshotModel):
    regime: str
    probability: float = Field(ge=0, le=1)
    description: Optional[str] = None


class CurrencyRegimes(BaseModel):
    model_config = ConfigDict(populate_by_name=True, frozen=True)

    usd: Optional[CurrencyRegimeModel] = Field(default=None, alias="USD")
    eur: Optional[CurrencyRegimeModel] = Field(default=None, alias="EUR")
    gbp: Optional[CurrencyRegimeModel] = Field(default=None, alias="GBP")
    jpy: Optional[CurrencyRegimeModel] = Field(default=None, alias="JPY")
    aud: Optional[CurrencyRegimeModel] = Field(default=None, alias="AUD")


class MacroSnapshot(_SnapshotModel):
    """Point-in-time macro state. Serializable and diffable."""

    now_ts: AwareDatetime
    regime: RegimeBlock
    usd_bias: USDBiasLabel
    macro_bias: Optional[Literal["hawkish", "dovish", "neutral"]] = None
    score: float = Field(ge=-100, le=100)
    drivers: list[BiasDriver]
    upcoming_dates: list[UpcomingDate]
    correlations: list[CorrelationRow]
    narrative: Optional[Narrative] = None
    metrics: Optional[Metrics] = None
    currency_regimes: Optional[CurrencyRegimes] = None
    updated_at: Optional[AwareDatetime] = None
    bias_updated_at: Optional[AwareDatetime] = None
    correlation_updated_at: Optional[AwareDatetime] = None

    @property
    def effective_score(self) -> float:
        """Unified score: metrics.score when present, else the top-level score."""
        if self.metrics is not None and self.metrics.score is not None:
            return self.metrics.score
        return self.score

    def to_payload(self) -> dict[str, Any]:
        """JSON-ready dict with wire (camelCase) names. Nulls are kept."""
        return self.model_dump(mode="json", by_alias=True)


@dataclass(frozen=True)
class SnapshotIssue:
    path: str
    message: str
    code: str = "custom"


@dataclass(frozen=True)
class ParseResult:
    """Explicit success / failure of snapshot validation. Never raised."""

    ok: bool
    data: Optional[MacroSnapshot] = None
    issues: list[SnapshotIssue] = field(default_factory=list)

    def unwrap(self) -> MacroSnapshot:
        """Return the snapshot or raise SnapshotValidationError."""
        if not self.ok or self.data is None:
            raise SnapshotValidationError(self.issues)
        return self.data


def parse_snapshot(raw: Any) -> ParseResult:
    """
    Validate raw data (dict with wire or field names) into a MacroSnapshot.

    Validation problems are returned as issues, not raised.
    """
    try:
        snapshot = MacroSnapshot.model_validate(raw)
    except ValidationError as e:
        return ParseResult(ok=False, issues=issues_from_error(e))
    return ParseResult(ok=True, data=snapshot)


def issues_from_error(error: ValidationError) -> list[SnapshotIssue]:
    return [
        SnapshotIssue(
            path=".".join(str(part) for part in err["loc"]),
            message=err["msg"],
            code=err["type"],
        )
        for err in error.errors()
    ]
