"""
MACRO COMPASS - Signal Synthesizer

Fuses a validated snapshot and data-quality results into one MacroSignal.

Action precedence (strict):
1. High-importance event within 4h -> NO_TRADE
2. Any FAIL invariant              -> NO_TRADE
3. Otherwise LONG / SHORT / NEUTRAL from the bias direction

Deterministic: identical inputs give identical signals, apart from the
cooldown expiry which comes from the injected clock.
"""

from __future__ import annotations

import logging
from dataclasses import replace
from datetime import timedelta
from typing import Optional, Sequence

from macro_compass.clock import Clock, utc_now
from macro_compass.config import MacroCompassConfig, SignalThresholds
from macro_compass.explain.playbook import generate_playbook_notes, high_importance_events
from macro_compass.features.lookup import round_half_up
from macro_compass.signals.deltas import compute_deltas
from macro_compass.signals.execution import (
    build_checklist,
    build_execution_plan,
    compute_cooldown,
    compute_position_sizing,
)
from macro_compass.snapshot.schema import MacroSnapshot, UpcomingDate
from macro_compass.types import (
    BiasDirection,
    Conviction,
    EventStatus,
    FlagSeverity,
    MacroSignal,
    QualityInvariantResult,
    QualityLevel,
    RiskFlag,
    SignalAction,
    TimeToNextEvent,
)

logger = logging.getLogger(__name__)


def bias_direction(score: float, thresholds: SignalThresholds) -> BiasDirection:
    if score > thresholds.long_above:
        return BiasDirection.LONG
    if score < thresholds.short_below:
        return BiasDirection.SHORT
    return BiasDirection.NEUTRAL


def derive_confidence(score: float) -> float:
    return min(abs(score) / 100, 1.0)


def events_in_blocked_window(snapshot: MacroSnapshot, thresholds: SignalThresholds) -> list[UpcomingDate]:
    """
    High-importance events dated no later than now + 4h.

    Events already in the past are included.
    """
    cutoff = snapshot.now_ts + timedelta(hours=thresholds.blocked_window_hours)
    return [e for e in high_importance_events(snapshot) if e.date <= cutoff]


def extract_risk_flags(
    snapshot: MacroSnapshot,
    invariants: Sequence[QualityInvariantResult],
    thresholds: SignalThresholds,
) -> list[RiskFlag]:
    """Risk flags in fixed priority order."""
    flags = []

    failed = [i for i in invariants if i.level == QualityLevel.FAIL]
    if failed:
        flags.append(
            RiskFlag(
                id="invariant_errors",
                severity=FlagSeverity.HIGH,
                message=f"{len(failed)} inconsistencia(s) crítica(s) detectada(s)",
                reason="El snapshot tiene inconsistencias que pueden invalidar las señales",
            )
        )

    near = events_in_blocked_window(snapshot, thresholds)
    if near:
        flags.append(
            RiskFlag(
                id="upcoming_high_importance_4h",
                severity=FlagSeverity.HIGH,
                message=f"{len(near)} evento(s) de alta importancia en < 4h",
                reason="Eventos macro de alta importancia pueden causar volatilidad extrema - NO TRADE",
            )
        )

    if snapshot.narrative is None or not snapshot.narrative.headline:
        flags.append(
            RiskFlag(
                id="missing_narrative",
                severity=FlagSeverity.MEDIUM,
                message="Narrativa macro no disponible",
                reason="Falta contexto narrativo para entender el régimen actual",
            )
        )

    score = snapshot.effective_score
    if derive_confidence(score) < thresholds.low_confidence_flag_below:
        flags.append(
            RiskFlag(
                id="low_confidence",
                severity=FlagSeverity.MEDIUM,
                message="Confianza baja en el diagnóstico macro",
                reason=f"Score: {int(round_half_up(score))} - Los datos pueden ser incompletos o el régimen es neutral",
            )
        )

    warned = [i for i in invariants if i.level == QualityLevel.WARN]
    if len(warned) > thresholds.max_warn_invariants:
        flags.append(
            RiskFlag(
                id="invariant_warnings",
                severity=FlagSeverity.MEDIUM,
                message=f"{len(warned)} advertencia(s) de calidad",
                reason="Múltiples advertencias sugieren datos incompletos o desactualizados",
            )
        )

    return flags


def compute_conviction(
    score: float,
    confidence: float,
    has_invariant_errors: bool,
    has_near_events: bool,
    thresholds: SignalThresholds,
) -> Conviction:
    """
    high: |score| >= 50 and confidence >= 0.7 and no FAIL invariant
    med:  (|score| >= 30 or confidence >= 0.6) and no event within 4h
    low:  everything else
    """
    magnitude = abs(score)
    if (
        magnitude >= thresholds.high_conviction_score
        and confidence >= thresholds.high_conviction_confidence
        and not has_invariant_errors
    ):
        return Conviction.HIGH
    if (
        magnitude >= thresholds.med_conviction_score or confidence >= thresholds.med_conviction_confidence
    ) and not has_near_events:
        return Conviction.MED
    return Conviction.LOW


def time_to_next_event(snapshot: MacroSnapshot, thresholds: SignalThresholds) -> Optional[TimeToNextEvent]:
    events = high_importance_events(snapshot)
    if not events:
        return None
    event = events[0]
    until = event.date - snapshot.now_ts
    if until <= timedelta(hours=thresholds.blocked_window_hours):
        status = EventStatus.BLOCKED
    elif until <= timedelta(hours=thresholds.warning_window_hours):
        status = EventStatus.WARNING
    else:
        status = EventStatus.OK
    return TimeToNextEvent(
        minutes=int(round_half_up(until.total_seconds() / 60)),
        event_name=event.name,
        status=status,
    )


def synthesize_signal(
    snapshot: MacroSnapshot,
    invariants: Sequence[QualityInvariantResult] = (),
    previous_snapshot: Optional[MacroSnapshot] = None,
    previous_signal: Optional[MacroSignal] = None,
    config: Optional[MacroCompassConfig] = None,
    clock: Clock = utc_now,
) -> MacroSignal:
    """
    Build the MacroSignal for one snapshot.

    Args:
        snapshot: Validated current snapshot.
        invariants: Data-quality results for this snapshot.
        previous_snapshot: Snapshot of the previous cycle, if retained.
        previous_signal: Signal of the previous cycle, if retained.
        config: Signal, sizing and delta thresholds.
        clock: Used only for the cooldown expiry.

    Returns:
        MacroSignal. Deltas, cooldown and the delta-driven parts of the
        plan are present only when a previous snapshot is given; the
        time-to-event rules also need the previous signal.
    """
    config = config or MacroCompassConfig()
    thresholds = config.signal

    score = snapshot.effective_score
    confidence = derive_confidence(score)
    direction = bias_direction(score, thresholds)
    risk_flags = extract_risk_flags(snapshot, invariants, thresholds)

    near = events_in_blocked_window(snapshot, thresholds)
    has_errors = any(i.level == QualityLevel.FAIL for i in invariants)

    action_reason: Optional[str] = None
    if near:
        action = SignalAction.NO_TRADE
        hours = f"{thresholds.blocked_window_hours:g}"
        action_reason = f"Evento(s) de alta importancia en <{hours}h: {', '.join(e.name for e in near)}"
    elif has_errors:
        action = SignalAction.NO_TRADE
        action_reason = "Inconsistencias críticas en el snapshot"
    else:
        action = {
            BiasDirection.LONG: SignalAction.LONG,
            BiasDirection.SHORT: SignalAction.SHORT,
            BiasDirection.NEUTRAL: SignalAction.NEUTRAL,
        }[direction]

    conviction = compute_conviction(score, confidence, has_errors, bool(near), thresholds)
    checklist = build_checklist(snapshot, action, action_reason, confidence, thresholds)

    signal = MacroSignal(
        action=action,
        action_reason=action_reason,
        bias_direction=direction,
        conviction=conviction,
        risk_flags=risk_flags,
        playbook_notes=generate_playbook_notes(snapshot, thresholds),
        execution_checklist=checklist,
        position_sizing=compute_position_sizing(action, conviction, risk_flags, config.sizing),
        time_to_next_event=time_to_next_event(snapshot, thresholds),
        score=score,
        confidence=confidence,
    )

    deltas = None
    if previous_snapshot is not None:
        deltas = compute_deltas(snapshot, previous_snapshot, signal, previous_signal, config)

    signal = replace(
        signal,
        deltas=deltas,
        execution_plan=build_execution_plan(action, conviction, risk_flags, checklist, deltas),
        cooldown_state=compute_cooldown(deltas, clock, thresholds),
    )

    logger.debug(
        f"Signal: action={action.value} bias={direction.value} conviction={conviction.value} "
        f"score={score:+.1f} flags={[f.id for f in risk_flags]}"
    )
    return signal
