"""
MACRO COMPASS - Delta Engine

Diffs two consecutive (snapshot, signal) pairs into trading-grade change
events. Seven independent rules, each producing at most one delta. The
result is sorted by severity (hard_stop, error, warning, info) with the
rule order kept inside a severity, and capped at six entries.
"""

from __future__ import annotations

import logging
from typing import Optional

from macro_compass.config import MacroCompassConfig
from macro_compass.explain.playbook import anchor_correlation, format_percent, ranked_drivers
from macro_compass.features.lookup import round_half_up
from macro_compass.snapshot.schema import MacroSnapshot
from macro_compass.types import BiasDirection, DeltaSeverity, MacroSignal, SnapshotDelta

logger = logging.getLogger(__name__)


def _signed(value: float) -> str:
    return f"{'+' if value > 0 else ''}{int(round_half_up(value))}"


def compute_deltas(
    current: MacroSnapshot,
    previous: Optional[MacroSnapshot],
    current_signal: MacroSignal,
    previous_signal: Optional[MacroSignal] = None,
    config: Optional[MacroCompassConfig] = None,
) -> list[SnapshotDelta]:
    """
    Compute deltas between the current and the previous cycle.

    Args:
        current: Current snapshot.
        previous: Previous snapshot; no deltas without it.
        current_signal: Signal for the current snapshot (bias, time to event).
        previous_signal: Previous signal, needed for the time-to-event rules.
        config: Delta thresholds and driver / anchor selection settings.

    Returns:
        At most six deltas, most severe first.
    """
    if previous is None:
        return []

    config = config or MacroCompassConfig()
    thresholds = config.deltas
    deltas: list[SnapshotDelta] = []

    current_score = current.effective_score
    previous_score = previous.effective_score
    delta_score = current_score - previous_score

    # 1. Regime change
    current_regime = current.regime.overall or "Neutral"
    previous_regime = previous.regime.overall or "Neutral"
    if current_regime != previous_regime:
        deltas.append(
            SnapshotDelta(
                id="regime_change",
                severity=DeltaSeverity.HARD_STOP,
                message=f"Cambio de régimen: {previous_regime} → {current_regime}",
                context={"previous": previous_regime, "current": current_regime, "action": "re-evaluar todo"},
            )
        )

    # 2. Top driver flips direction
    current_ranked = ranked_drivers(current, config.signal)
    previous_ranked = ranked_drivers(previous, config.signal)
    current_top = current_ranked[0] if current_ranked else None
    previous_top = previous_ranked[0] if previous_ranked else None
    same_top = current_top is not None and previous_top is not None and current_top.key == previous_top.key

    if same_top and current_top.direction != previous_top.direction:
        name = current_top.name or current_top.key
        deltas.append(
            SnapshotDelta(
                id="top_driver_direction_change",
                severity=DeltaSeverity.HARD_STOP,
                message=(
                    f"Driver #1 ({name}) cambió dirección: "
                    f"{previous_top.direction.value} → {current_top.direction.value}"
                ),
                context={
                    "driver": name,
                    "previous_direction": previous_top.direction.value,
                    "current_direction": current_top.direction.value,
                    "action": "re-evaluar señal",
                },
            )
        )

    # 3. Anchor correlation lost
    current_anchor = anchor_correlation(current, config.signal)
    previous_anchor = anchor_correlation(previous, config.signal)
    if previous_anchor is not None and (
        current_anchor is None
        or current_anchor.symbol != previous_anchor.symbol
        or abs(current_anchor.corr) < config.signal.anchor_min_corr
    ):
        deltas.append(
            SnapshotDelta(
                id="anchor_correlation_lost",
                severity=DeltaSeverity.ERROR,
                message=f"Correlación ancla perdida: {previous_anchor.symbol} ({format_percent(previous_anchor.corr)})",
                context={
                    "previous_symbol": previous_anchor.symbol,
                    "previous_corr": previous_anchor.corr,
                    "current_anchor": (
                        f"{current_anchor.symbol} ({format_percent(current_anchor.corr)})"
                        if current_anchor is not None
                        else "ninguna"
                    ),
                },
            )
        )

    # 4. Score crosses zero
    if (previous_score > 0 and current_score < 0) or (previous_score < 0 and current_score > 0):
        deltas.append(
            SnapshotDelta(
                id="score_crosses_zero",
                severity=DeltaSeverity.ERROR,
                message=f"Score cruza 0: {_signed(previous_score)} → {_signed(current_score)}",
                context={
                    "previous_score": previous_score,
                    "current_score": current_score,
                    "action": "invalidar señal",
                },
            )
        )

    # 5. Significant score move
    if abs(delta_score) >= thresholds.score_delta:
        favored = BiasDirection.LONG if delta_score > 0 else BiasDirection.SHORT
        label = "impulso a favor" if current_signal.bias_direction == favored else "pérdida de edge"
        deltas.append(
            SnapshotDelta(
                id="score_delta_significant",
                severity=DeltaSeverity.WARNING,
                message=f"Δscore: {_signed(delta_score)} ({label})",
                context={
                    "delta_score": delta_score,
                    "previous_score": previous_score,
                    "current_score": current_score,
                    "label": label,
                },
            )
        )

    # 6. Time to the next high-importance event
    current_event = current_signal.time_to_next_event
    previous_event = previous_signal.time_to_next_event if previous_signal is not None else None
    if current_event is not None and previous_event is not None:
        current_minutes = current_event.minutes
        previous_minutes = previous_event.minutes
        delta_minutes = current_minutes - previous_minutes
        window = thresholds.blocked_window_minutes

        if previous_minutes >= window and current_minutes < window:
            deltas.append(
                SnapshotDelta(
                    id="event_enters_blocked_window",
                    severity=DeltaSeverity.ERROR,
                    message=(
                        f"Evento entra en ventana bloqueada: "
                        f"T-{previous_minutes // 60}h → T-{current_minutes // 60}h"
                    ),
                    context={
                        "event_name": current_event.event_name,
                        "previous_minutes": previous_minutes,
                        "current_minutes": current_minutes,
                        "action": "bloquear trades",
                    },
                )
            )
        elif abs(delta_minutes) >= thresholds.time_delta_minutes:
            deltas.append(
                SnapshotDelta(
                    id="time_to_event_delta",
                    severity=DeltaSeverity.WARNING,
                    message=f"Δtime-to-event: {'+' if delta_minutes > 0 else ''}{delta_minutes // 60}h",
                    context={
                        "event_name": current_event.event_name,
                        "previous_minutes": previous_minutes,
                        "current_minutes": current_minutes,
                    },
                )
            )

    # 7. Top driver weight change
    if same_top:
        delta_weight = current_top.weight - previous_top.weight
        if abs(delta_weight) >= thresholds.weight_delta:
            deltas.append(
                SnapshotDelta(
                    id="top_driver_weight_change",
                    severity=DeltaSeverity.INFO,
                    message=(
                        f"Driver #1 peso: {format_percent(previous_top.weight)} → "
                        f"{format_percent(current_top.weight)}"
                    ),
                    context={
                        "driver": current_top.name or current_top.key,
                        "previous_weight": previous_top.weight,
                        "current_weight": current_top.weight,
                    },
                )
            )

    ordered = sorted(deltas, key=lambda d: d.severity.rank)[: thresholds.max_deltas]
    if ordered:
        logger.debug(f"Deltas: {[d.id for d in ordered]}")
    return ordered
