"""
MACRO COMPASS - Data-quality invariants

Checks run over an assembled snapshot (and, when available, the raw
correlation points behind it). Each check returns PASS / WARN / FAIL
results; the signal synthesizer turns WARN counts and any FAIL into risk
flags and blockers.
"""

from __future__ import annotations

import logging
from dataclasses import dataclass
from datetime import timezone
from typing import Optional

from macro_compass.config import QualityRules, SignalThresholds
from macro_compass.snapshot.schema import MacroSnapshot
from macro_compass.types import CorrelationState, CorrelationWindow, QualityInvariantResult, QualityLevel

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class QualitySummary:
    passed: int
    warned: int
    failed: int
    results: list[QualityInvariantResult]


def correlation_sign_consistency(snapshot: MacroSnapshot, rules: QualityRules) -> list[QualityInvariantResult]:
    """
    USD-quote pairs should correlate negatively with DXY, USD-base pairs
    positively. Only 12m correlations against DXY are checked.
    """
    results = []
    corr_12m = {
        row.symbol.upper(): row.corr12m
        for row in snapshot.correlations
        if row.benchmark.upper() == "DXY" and row.corr12m is not None
    }

    for pair in rules.usd_quote_pairs:
        value = corr_12m.get(pair)
        if value is not None and value > rules.usd_quote_positive_threshold:
            results.append(
                QualityInvariantResult(
                    rule_id=f"corr_sign_{pair.lower()}",
                    level=QualityLevel.WARN,
                    message=f"{pair}–DXY corr 12m = {value:.2f} (>0, esperado negativo). Posible cambio de régimen.",
                )
            )

    for pair in rules.usd_base_pairs:
        value = corr_12m.get(pair)
        if value is not None and value < rules.usd_base_negative_threshold:
            results.append(
                QualityInvariantResult(
                    rule_id=f"corr_sign_{pair.lower()}",
                    level=QualityLevel.WARN,
                    message=f"{pair}–DXY corr 12m = {value:.2f} (<0, esperado positivo). Posible cambio de régimen.",
                )
            )

    if not results:
        results.append(
            QualityInvariantResult("corr_sign_ok", QualityLevel.PASS, "Signos de correlación FX consistentes")
        )
    return results


def correlation_freshness(
    snapshot: MacroSnapshot,
    state: CorrelationState,
    rules: QualityRules,
) -> list[QualityInvariantResult]:
    results = []
    max_age_seconds = rules.freshness_sla_days * 86400
    for point in state.points:
        if point.updated_at is None:
            continue
        updated_at = point.updated_at
        if updated_at.tzinfo is None:
            updated_at = updated_at.replace(tzinfo=timezone.utc)
        age = (snapshot.now_ts - updated_at).total_seconds()
        if age > max_age_seconds:
            key = f"{point.symbol}_{point.benchmark}_{point.window.value}"
            results.append(
                QualityInvariantResult(
                    rule_id=f"corr_stale_{key}",
                    level=QualityLevel.WARN,
                    message=f"Correlación {key} desactualizada ({int(age // 86400)} días)",
                )
            )

    if not results:
        results.append(
            QualityInvariantResult("corr_fresh_ok", QualityLevel.PASS, "Todas las correlaciones están actualizadas")
        )
    return results


def correlation_min_observations(state: CorrelationState, rules: QualityRules) -> list[QualityInvariantResult]:
    results = []
    minimums = {CorrelationWindow.W12M: rules.min_obs_12m, CorrelationWindow.W3M: rules.min_obs_3m}
    for point in state.points:
        minimum = minimums.get(point.window)
        if minimum is None or point.sample_size is None:
            continue
        if point.sample_size < minimum:
            key = f"{point.symbol}_{point.benchmark}_{point.window.value}"
            results.append(
                QualityInvariantResult(
                    rule_id=f"corr_min_obs_{key}",
                    level=QualityLevel.WARN,
                    message=f"Correlación {key} tiene {point.sample_size} observaciones (mínimo: {minimum})",
                )
            )

    if not results:
        results.append(
            QualityInvariantResult(
                "corr_obs_ok", QualityLevel.PASS, "Todas las correlaciones tienen observaciones suficientes"
            )
        )
    return results


def driver_coverage(
    snapshot: MacroSnapshot,
    rules: QualityRules,
    signal: Optional[SignalThresholds] = None,
) -> QualityInvariantResult:
    """
    At least `min_drivers` drivers must carry weight. Thin coverage is
    tolerated only when the snapshot is itself neutral and low confidence.
    """
    signal = signal or SignalThresholds()
    used = sum(1 for d in snapshot.drivers if d.weight > 0)
    total = len(snapshot.drivers)

    if used >= rules.min_drivers:
        return QualityInvariantResult("min_coverage", QualityLevel.PASS, f"Cobertura suficiente {used}/{total}")

    score = snapshot.effective_score
    confidence = min(abs(score) / 100, 1.0)
    neutral = signal.short_below <= score <= signal.long_above
    level = QualityLevel.PASS if neutral and confidence <= 0.5 else QualityLevel.FAIL
    return QualityInvariantResult("min_coverage", level, f"Cobertura insuficiente {used}/{total}")


def run_invariants(
    snapshot: MacroSnapshot,
    correlation_state: Optional[CorrelationState] = None,
    rules: Optional[QualityRules] = None,
    signal: Optional[SignalThresholds] = None,
) -> list[QualityInvariantResult]:
    """
    Run every data-quality check.

    Freshness and sample-size checks need the raw correlation points and
    are skipped when no CorrelationState is given. `signal` sets the neutral
    band used by the coverage check.
    """
    rules = rules or QualityRules()
    results = list(correlation_sign_consistency(snapshot, rules))
    if correlation_state is not None:
        results.extend(correlation_freshness(snapshot, correlation_state, rules))
        results.extend(correlation_min_observations(correlation_state, rules))
    results.append(driver_coverage(snapshot, rules, signal))

    summary = summarize(results)
    logger.debug(f"Quality invariants: pass={summary.passed} warn={summary.warned} fail={summary.failed}")
    return results


def summarize(results: list[QualityInvariantResult]) -> QualitySummary:
    return QualitySummary(
        passed=sum(1 for r in results if r.level == QualityLevel.PASS),
        warned=sum(1 for r in results if r.level == QualityLevel.WARN),
        failed=sum(1 for r in results if r.level == QualityLevel.FAIL),
        results=list(results),
    )
