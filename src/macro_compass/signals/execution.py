"""
MACRO COMPASS - Execution guidance

Checklist, position sizing, execution plan and cooldown for a signal.
All pure functions of their inputs; the cooldown expiry is the only
value read from a clock.
"""

from __future__ import annotations

from datetime import timedelta
from typing import Optional, Sequence

from macro_compass.clock import Clock
from macro_compass.config import SignalThresholds, SizingConfig
from macro_compass.explain.playbook import anchor_correlation, format_percent, top_drivers
from macro_compass.features.lookup import round_half_up
from macro_compass.snapshot.schema import MacroSnapshot
from macro_compass.types import (
    Blocker,
    CancellationCondition,
    ChecklistSetup,
    Conviction,
    CooldownState,
    DeltaSeverity,
    ExecutionChecklist,
    ExecutionPlan,
    FlagSeverity,
    InvalidationCondition,
    InvalidationTrigger,
    PositionSizing,
    RiskFlag,
    SignalAction,
    SnapshotDelta,
)

# Substrings of action_reason that identify the blocking condition
EVENT_REASON_MARKER = "Evento"
INVARIANT_REASON_MARKER = "Inconsistencias"

_NEUTRAL_LABELS = {"Neutral", "NEUTRAL"}

_REVALIDATION_BY_HARD_STOP = {
    "regime_change": "Confirmar nuevo régimen estable",
    "top_driver_direction_change": "Verificar que nuevo driver #1 esté alineado",
    "anchor_correlation_lost": "Esperar nueva correlación ancla estable",
}


def build_checklist(
    snapshot: MacroSnapshot,
    action: SignalAction,
    action_reason: Optional[str],
    confidence: float,
    thresholds: SignalThresholds,
) -> ExecutionChecklist:
    """Setup echo, blockers derived from the action reason, invalidation conditions."""
    setup = ChecklistSetup(
        regime=snapshot.regime.overall or "Neutral",
        usd_bias=snapshot.usd_bias,
        top_drivers=top_drivers(snapshot, thresholds),
        anchor_correlation=anchor_correlation(snapshot, thresholds),
    )

    blockers = []
    if action == SignalAction.NO_TRADE and action_reason:
        if EVENT_REASON_MARKER in action_reason:
            blockers.append(
                Blocker(
                    id="event_blocker",
                    message=action_reason,
                    condition_to_resolve="Esperar a que pase el evento de alta importancia",
                )
            )
        if INVARIANT_REASON_MARKER in action_reason:
            blockers.append(
                Blocker(
                    id="invariant_blocker",
                    message=action_reason,
                    condition_to_resolve="Re-evaluar cuando invariants vuelvan a OK",
                )
            )

    conditions = [
        InvalidationCondition(id="score_cross_zero", condition="Si score cruza 0 (cambio de dirección)"),
        InvalidationCondition(
            id="confidence_drop",
            condition=f"Si confidence cae < 0.5 (actual: {format_percent(confidence)})",
        ),
    ]
    if setup.top_drivers:
        conditions.append(
            InvalidationCondition(
                id="driver_direction_change",
                condition=f"Si driver #1 ({setup.top_drivers[0].name}) cambia dirección",
            )
        )

    return ExecutionChecklist(setup=setup, blockers=blockers, invalidation_conditions=conditions)


def compute_position_sizing(
    action: SignalAction,
    conviction: Conviction,
    risk_flags: Sequence[RiskFlag],
    config: SizingConfig,
) -> PositionSizing:
    """
    Position size in risk units.

    NO_TRADE is always 0R and skips the formula. Otherwise
    units = round_half_up(base * factor / step) * step with step = 0.25R.
    A custom base small enough to round to 0 stays 0.
    """
    if action == SignalAction.NO_TRADE:
        return PositionSizing(
            recommended_risk_units=0.0,
            base_size=0.0,
            reduction_factor=1.0,
            reason="NO_TRADE activo - no operar",
        )

    base = {
        Conviction.HIGH: config.base_high,
        Conviction.MED: config.base_med,
        Conviction.LOW: config.base_low,
    }[conviction]

    high = sum(1 for f in risk_flags if f.severity == FlagSeverity.HIGH)
    medium = sum(1 for f in risk_flags if f.severity == FlagSeverity.MEDIUM)

    factor = 1.0
    warnings = []
    if high + medium >= config.many_flags:
        factor = config.many_flags_factor
        warnings.append(f"{high + medium} flags de riesgo alto/medio detectados")
    elif high >= 1:
        factor = config.high_flag_factor
        warnings.append(f"{high} flag(s) de riesgo alto detectado(s)")

    units = round_half_up(max(0.0, base * factor), config.rounding_step)

    reason = f"Convicción {conviction.value} → {base:g}R base"
    if factor < 1:
        reason += f", reducido {int(round_half_up((1 - factor) * 100))}% por warnings"

    return PositionSizing(
        recommended_risk_units=units,
        base_size=base,
        reduction_factor=factor,
        reason=reason,
        warnings=warnings,
    )


def build_execution_plan(
    action: SignalAction,
    conviction: Conviction,
    risk_flags: Sequence[RiskFlag],
    checklist: ExecutionChecklist,
    deltas: Optional[Sequence[SnapshotDelta]] = None,
) -> ExecutionPlan:
    if action == SignalAction.NO_TRADE:
        guidance = "NO OPERAR - Bloqueado por condiciones de riesgo"
    elif action == SignalAction.NEUTRAL:
        guidance = "Solo operaciones tácticas / rango - sin sesgo macro claro"
    else:
        setup = checklist.setup
        conditions = []
        if setup.regime not in _NEUTRAL_LABELS:
            conditions.append(f"régimen {setup.regime}")
        if setup.usd_bias not in _NEUTRAL_LABELS:
            conditions.append(f"USD {setup.usd_bias}")
        if setup.top_drivers:
            first = setup.top_drivers[0]
            conditions.append(f"driver {first.name} {first.direction}")
        guidance = f"Solo buscar {action.value} si: {', '.join(conditions)}"
        if conviction == Conviction.LOW:
            guidance += " | ⚠️ Convicción baja: solo observación / tamaño mínimo"

    triggers = [
        InvalidationTrigger(id=c.id, trigger=c.condition, action="Cerrar posición inmediatamente y re-evaluar")
        for c in checklist.invalidation_conditions
    ]
    for delta in deltas or ():
        if delta.severity == DeltaSeverity.HARD_STOP:
            triggers.append(
                InvalidationTrigger(
                    id=f"delta_{delta.id}",
                    trigger=delta.message,
                    action="Cerrar posición inmediatamente - cambio crítico detectado",
                )
            )

    cancellations = []
    if any(d.id == "regime_change" for d in deltas or ()):
        cancellations.append(
            CancellationCondition(
                id="regime_change",
                condition="Régimen cambia significativamente",
                action="Cancelar setup y re-evaluar con nuevo régimen",
            )
        )
    if sum(1 for f in risk_flags if f.severity in (FlagSeverity.HIGH, FlagSeverity.MEDIUM)) > 2:
        cancellations.append(
            CancellationCondition(
                id="multiple_warnings",
                condition="Múltiples flags de riesgo activos",
                action="Cancelar setup hasta que se resuelvan los warnings",
            )
        )

    return ExecutionPlan(
        entry_guidance=guidance,
        invalidation_triggers=triggers,
        cancellation_conditions=cancellations,
    )


def compute_cooldown(
    deltas: Optional[Sequence[SnapshotDelta]],
    clock: Clock,
    thresholds: SignalThresholds,
) -> Optional[CooldownState]:
    """
    Cooldown after a hard stop.

    Derived only from the current delta list, so the window restarts on
    every call that still carries a hard_stop.
    """
    hard_stop = next((d for d in deltas or () if d.severity == DeltaSeverity.HARD_STOP), None)
    if hard_stop is None:
        return None

    reason = "Hard stop detectado"
    if hard_stop.context.get("action"):
        reason += f": {hard_stop.context['action']}"

    conditions = [
        "Esperar nuevo snapshot sin hard_stop",
        "Verificar que condiciones de bloqueo se hayan resuelto",
    ]
    extra = _REVALIDATION_BY_HARD_STOP.get(hard_stop.id)
    if extra:
        conditions.append(extra)

    return CooldownState(
        is_active=True,
        reason=reason,
        expires_at=clock() + timedelta(minutes=thresholds.cooldown_minutes),
        revalidation_conditions=conditions,
    )
