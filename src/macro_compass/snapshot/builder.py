"""
MACRO COMPASS - Snapshot assembly

Thin adapter from BiasState + CorrelationState + calendar events to a
validated MacroSnapshot. No scoring happens here: labels are copied,
sub-scores are rescaled to the snapshot range and the unified score is
their mean.
"""

from __future__ import annotations

import logging
from datetime import datetime, timedelta
from typing import Any, Iterable, Optional

from macro_compass.config import MacroCompassConfig
from macro_compass.snapshot.schema import ParseResult, parse_snapshot
from macro_compass.types import (
    BiasDirection,
    BiasState,
    CalendarEvent,
    CorrelationState,
    CorrelationWindow,
    IndicatorObservation,
    RegimeMetrics,
    Trend,
)

logger = logging.getLogger(__name__)


def normalize_usd_label(usd_direction: str) -> str:
    """
    Map a USD direction label to Fuerte / Débil / Neutral.

    Matching is case-insensitive and substring based, so "Bullish",
    "strong" and "hawkish" all read as Fuerte.
    """
    lower = str(usd_direction).lower()
    if any(token in lower for token in ("fuerte", "strong", "hawkish", "bullish")):
        return "Fuerte"
    if any(token in lower for token in ("débil", "weak", "dovish", "bearish")):
        return "Débil"
    return "Neutral"


def driver_direction(obs: IndicatorObservation) -> BiasDirection:
    if obs.trend == Trend.IMPROVING:
        return BiasDirection.LONG
    if obs.trend == Trend.WORSENING:
        return BiasDirection.SHORT
    return BiasDirection.NEUTRAL


def extract_drivers(table: Iterable[IndicatorObservation]) -> list[dict[str, Any]]:
    """
    Observations with a weight in (0, 1] become drivers.

    Rows without a weight are not drivers; no weight is assumed for them.
    """
    drivers = []
    skipped = 0
    for obs in table:
        if obs.weight is None or not 0 < obs.weight <= 1:
            skipped += 1
            continue
        drivers.append(
            {
                "key": obs.key,
                "name": obs.label,
                "direction": driver_direction(obs).value,
                "weight": obs.weight,
                "note": obs.trend.value if obs.trend is not None else None,
            }
        )
    if skipped:
        logger.debug(f"{skipped} observations without a usable weight were not used as drivers")
    return drivers


def extract_correlations(state: CorrelationState) -> list[dict[str, Any]]:
    rows = []
    for shift in state.shifts:
        six_month = state.point(shift.symbol, shift.benchmark, CorrelationWindow.W6M)
        rows.append(
            {
                "symbol": shift.symbol,
                "benchmark": shift.benchmark,
                "corr12m": shift.corr12m,
                "corr6m": six_month.value if six_month is not None else None,
                "corr3m": shift.corr3m,
                "corr_ref": shift.regime.value,
            }
        )
    return rows


def extract_upcoming_dates(
    events: Iterable[CalendarEvent],
    now: datetime,
    horizon_days: int,
) -> list[dict[str, Any]]:
    """
    Future events within the horizon, de-duplicated by (name, date, country)
    and sorted by date.
    """
    horizon = now + timedelta(days=horizon_days)
    seen: set[tuple] = set()
    upcoming = []
    for event in sorted(events, key=lambda e: e.date):
        if not now < event.date <= horizon:
            continue
        identity = (event.name, event.date, event.country)
        if identity in seen:
            continue
        seen.add(identity)
        upcoming.append(
            {
                "name": event.name,
                "date": event.date,
                "importance": event.importance.value,
                "country": event.country,
                "currency": event.currency,
            }
        )
    return upcoming


def unified_score(metrics: RegimeMetrics) -> float:
    """Mean of the available sub-scores, in [-1, 1]."""
    scores = metrics.available()
    return sum(scores) / len(scores) if scores else 0.0


def build_snapshot(
    bias_state: BiasState,
    correlation_state: Optional[CorrelationState] = None,
    events: Iterable[CalendarEvent] = (),
    config: Optional[MacroCompassConfig] = None,
    now: Optional[datetime] = None,
) -> ParseResult:
    """
    Assemble and validate a MacroSnapshot.

    Args:
        bias_state: Regime classifier output.
        correlation_state: Correlation analyzer output, if available.
        events: Calendar events from the calendar collaborator.
        config: Snapshot settings (calendar horizon, score scale).
        now: Snapshot timestamp; defaults to bias_state.updated_at.

    Returns:
        ParseResult. Validation failures are logged, never raised.
    """
    config = config or MacroCompassConfig()
    now = now or bias_state.updated_at
    scale = config.snapshot.score_scale

    def scaled(value: Optional[float]) -> Optional[float]:
        return None if value is None else value * scale

    metrics = bias_state.metrics
    score = unified_score(metrics) * scale
    usd_label = normalize_usd_label(bias_state.regime.usd_direction)

    payload = {
        "now_ts": now,
        "regime": {
            "overall": bias_state.regime.overall,
            "usd_direction": bias_state.regime.usd_direction,
            "usd_label": usd_label,
            "quad": bias_state.regime.quad,
            "liquidity": bias_state.regime.liquidity,
            "credit": bias_state.regime.credit,
            "risk": bias_state.regime.risk,
        },
        "usd_bias": usd_label,
        "score": score,
        "drivers": extract_drivers(bias_state.table),
        "upcoming_dates": extract_upcoming_dates(events, now, config.snapshot.calendar_horizon_days),
        "correlations": extract_correlations(correlation_state) if correlation_state else [],
        "metrics": {
            "usd_score": scaled(metrics.usd_score),
            "quad_score": scaled(metrics.quad_score),
            "liquidity_score": scaled(metrics.liquidity_score),
            "credit_score": scaled(metrics.credit_score),
            "risk_score": scaled(metrics.risk_score),
            "score": score,
        },
        "currency_regimes": {
            code.upper(): {
                "regime": regime.regime,
                "probability": regime.probability,
                "description": regime.description,
            }
            for code, regime in bias_state.currency_regimes.items()
        }
        or None,
        "updated_at": bias_state.updated_at,
        "bias_updated_at": bias_state.updated_at,
        "correlation_updated_at": correlation_state.updated_at if correlation_state else None,
    }

    result = parse_snapshot(payload)
    if not result.ok:
        logger.warning(
            f"Snapshot validation failed with {len(result.issues)} issue(s): "
            + "; ".join(f"{i.path}: {i.message}" for i in result.issues[:5])
        )
    return result
