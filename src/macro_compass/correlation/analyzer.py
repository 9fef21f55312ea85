"""
MACRO COMPASS - Correlation Analyzer

Turns multi-window correlation records into shift classifications and a
per-pair relevance summary. Independent of the regime classifier; the
prevailing risk regime is an optional input to the relevance score only.

Windows are normalized to 3m / 6m / 12m / 24m. Records with any other
window label are dropped.
"""

from __future__ import annotations

import logging
from datetime import datetime
from typing import Iterable, Optional

import pandas as pd

from macro_compass.clock import Clock, utc_now
from macro_compass.config import CorrelationThresholds, MacroCompassConfig
from macro_compass.types import (
    WINDOW_ORDER,
    CorrelationPoint,
    CorrelationRecord,
    CorrelationShift,
    CorrelationState,
    CorrelationSummary,
    CorrelationTrend,
    CorrelationWindow,
    RiskRegime,
    ShiftRegime,
)

logger = logging.getLogger(__name__)

_WINDOW_LABELS: dict[str, CorrelationWindow] = {
    "3m": CorrelationWindow.W3M,
    "90d": CorrelationWindow.W3M,
    "6m": CorrelationWindow.W6M,
    "180d": CorrelationWindow.W6M,
    "12m": CorrelationWindow.W12M,
    "1y": CorrelationWindow.W12M,
    "24m": CorrelationWindow.W24M,
    "2y": CorrelationWindow.W24M,
}


def normalize_window(label: str) -> Optional[CorrelationWindow]:
    """Map a heterogeneous window label to a canonical window, or None."""
    return _WINDOW_LABELS.get(str(label).strip().lower())


def build_points(records: Iterable[CorrelationRecord], default_benchmark: str = "DXY") -> list[CorrelationPoint]:
    """Normalize raw records into canonical CorrelationPoints."""
    points = []
    dropped = 0
    for record in records:
        window = normalize_window(record.window)
        if window is None:
            dropped += 1
            continue
        points.append(
            CorrelationPoint(
                symbol=record.symbol,
                benchmark=record.benchmark or default_benchmark,
                window=window,
                value=record.value,
                sample_size=record.sample_size,
                updated_at=record.updated_at,
            )
        )
    if dropped:
        logger.debug(f"Dropped {dropped} correlation records with unsupported windows")
    return points


def classify_shift(
    corr12m: Optional[float],
    corr3m: Optional[float],
    thresholds: CorrelationThresholds,
) -> ShiftRegime:
    """
    Classify the 3m-vs-12m correlation shift.

    Rules (evaluated in order, d = corr3m - corr12m):
    1. Weak if either value is missing
    2. Break if the signs are opposite (product < 0) or |d| > 0.4
    3. Weak if both |corr12m| and |corr3m| < 0.3
    4. Stable if |d| <= 0.1
    5. Reinforcing if d > 0, Stable otherwise
    """
    if corr12m is None or corr3m is None:
        return ShiftRegime.WEAK
    delta = corr3m - corr12m
    if corr12m * corr3m < 0 or abs(delta) > thresholds.break_delta:
        return ShiftRegime.BREAK
    if abs(corr12m) < thresholds.weak_level and abs(corr3m) < thresholds.weak_level:
        return ShiftRegime.WEAK
    if abs(delta) <= thresholds.stable_delta:
        return ShiftRegime.STABLE
    if delta > 0:
        return ShiftRegime.REINFORCING
    return ShiftRegime.STABLE


def correlation_trend(
    corr12m: Optional[float],
    corr3m: Optional[float],
    thresholds: CorrelationThresholds,
) -> CorrelationTrend:
    if corr3m is None or corr12m is None:
        return CorrelationTrend.INCONCLUSIVE
    if abs(corr3m - corr12m) <= thresholds.stable_delta:
        return CorrelationTrend.STABLE
    if abs(corr3m) > abs(corr12m):
        return CorrelationTrend.STRENGTHENING
    return CorrelationTrend.WEAKENING


def detect_shifts(points: list[CorrelationPoint], thresholds: CorrelationThresholds) -> list[CorrelationShift]:
    """One CorrelationShift per (symbol, benchmark) with a 12m or 3m value."""
    shifts = []
    for (symbol, benchmark), by_window in _group_by_pair(points):
        corr12m = by_window.get(CorrelationWindow.W12M)
        corr3m = by_window.get(CorrelationWindow.W3M)
        if corr12m is None and corr3m is None:
            continue
        delta = corr3m - corr12m if corr3m is not None and corr12m is not None else None
        shifts.append(
            CorrelationShift(
                symbol=symbol,
                benchmark=benchmark,
                corr12m=corr12m,
                corr3m=corr3m,
                delta=delta,
                regime=classify_shift(corr12m, corr3m, thresholds),
            )
        )
    return shifts


def build_summary(
    points: list[CorrelationPoint],
    shifts: list[CorrelationShift],
    thresholds: CorrelationThresholds,
    risk_regime: Optional[str] = None,
) -> list[CorrelationSummary]:
    """
    Summarize each (symbol, benchmark) pair.

    macro_relevance_score starts at |corr12m ?? corr3m ?? correlation_now|,
    gets +0.2 for a Break, -0.2 for a Weak shift, and +0.1 when the current
    correlation lines up with the risk regime (Risk OFF and corr > 0.6, or
    Risk ON and corr < -0.6). Clamped to [0, 1] after each step.
    """
    shift_by_pair = {(s.symbol, s.benchmark): s for s in shifts}
    summaries = []

    for (symbol, benchmark), by_window in _group_by_pair(points):
        strongest_window: Optional[CorrelationWindow] = None
        strongest_value = 0.0
        for window in WINDOW_ORDER:
            value = by_window.get(window)
            if value is not None and abs(value) > abs(strongest_value):
                strongest_value = value
                strongest_window = window

        correlation_now = next(
            (by_window[w] for w in WINDOW_ORDER if by_window.get(w) is not None), None
        )

        shift = shift_by_pair.get((symbol, benchmark))
        if shift is None:
            trend = CorrelationTrend.INCONCLUSIVE
            anchor = correlation_now
        else:
            trend = correlation_trend(shift.corr12m, shift.corr3m, thresholds)
            anchor = _first_not_none(shift.corr12m, shift.corr3m, correlation_now)

        score = _clamp01(abs(anchor if anchor is not None else 0.0))
        if shift is not None:
            if shift.regime == ShiftRegime.BREAK:
                score = _clamp01(score + thresholds.break_bonus)
            if shift.regime == ShiftRegime.WEAK:
                score = _clamp01(score - thresholds.weak_penalty)

        if risk_regime is not None and correlation_now is not None:
            level = thresholds.regime_alignment_level
            if risk_regime == RiskRegime.RISK_OFF and correlation_now > level:
                score = _clamp01(score + thresholds.regime_alignment_bonus)
            elif risk_regime == RiskRegime.RISK_ON and correlation_now < -level:
                score = _clamp01(score + thresholds.regime_alignment_bonus)

        summaries.append(
            CorrelationSummary(
                symbol=symbol,
                benchmark=benchmark,
                strongest_window=strongest_window,
                correlation_now=correlation_now,
                trend=trend,
                macro_relevance_score=score,
            )
        )

    return summaries


def analyze_correlations(
    records: Iterable[CorrelationRecord],
    config: MacroCompassConfig,
    risk_regime: Optional[str] = None,
    clock: Clock = utc_now,
) -> CorrelationState:
    """
    Full correlation analysis for one cycle.

    Args:
        records: Raw correlation statistics from the correlation engine.
        config: Thresholds configuration.
        risk_regime: Prevailing risk label ("Risk ON" / "Risk OFF"), if known.
        clock: Used for updated_at when no record carries a timestamp.

    Returns:
        CorrelationState with points, shifts and summary.
    """
    thresholds = config.correlation
    points = build_points(records, thresholds.default_benchmark)
    shifts = detect_shifts(points, thresholds)
    summary = build_summary(points, shifts, thresholds, risk_regime)

    stamps = [p.updated_at for p in points if p.updated_at is not None]
    updated_at: datetime = max(stamps) if stamps else clock()

    logger.debug(
        f"Correlation analysis: {len(points)} points, {len(shifts)} shifts, "
        f"breaks={sum(1 for s in shifts if s.regime == ShiftRegime.BREAK)}"
    )

    return CorrelationState(
        updated_at=updated_at,
        benchmark=points[0].benchmark if points else thresholds.default_benchmark,
        windows=list(WINDOW_ORDER),
        points=points,
        shifts=shifts,
        summary=summary,
    )


def _group_by_pair(points: list[CorrelationPoint]):
    """
    Yield ((symbol, benchmark), {window: value}) in first-seen order.

    The first point of a window wins when a pair repeats a window.
    """
    if not points:
        return
    frame = pd.DataFrame(
        {
            "symbol": [p.symbol for p in points],
            "benchmark": [p.benchmark for p in points],
            "window": [p.window.value for p in points],
            "value": pd.array([p.value for p in points], dtype="Float64"),
        }
    )
    for (symbol, benchmark), group in frame.groupby(["symbol", "benchmark"], sort=False):
        first = group.drop_duplicates(subset="window", keep="first")
        by_window = {
            CorrelationWindow(w): (None if pd.isna(v) else float(v))
            for w, v in zip(first["window"], first["value"])
        }
        yield (symbol, benchmark), by_window


def _first_not_none(*values: Optional[float]) -> Optional[float]:
    return next((v for v in values if v is not None), None)


def _clamp01(value: float) -> float:
    return min(1.0, max(0.0, value))
