"""Tests for position sizing, checklist, execution plan and cooldown."""

from datetime import timedelta

import pytest

from macro_compass.config import SignalThresholds, SizingConfig
from macro_compass.signals.execution import (
    build_checklist,
    build_execution_plan,
    compute_cooldown,
    compute_position_sizing,
)
from macro_compass.types import (
    Conviction,
    DeltaSeverity,
    FlagSeverity,
    RiskFlag,
    SignalAction,
    SnapshotDelta,
)


def _flag(severity, flag_id="flag"):
    return RiskFlag(id=flag_id, severity=severity, message="m", reason="r")


HIGH = _flag(FlagSeverity.HIGH, "upcoming_high_importance_4h")
MEDIUM = _flag(FlagSeverity.MEDIUM, "missing_narrative")
LOW = _flag(FlagSeverity.LOW, "info")


class TestPositionSizing:

    @pytest.mark.parametrize(
        "conviction, flags, units, factor",
        [
            (Conviction.HIGH, [], 1.0, 1.0),
            (Conviction.HIGH, [MEDIUM], 1.0, 1.0),
            (Conviction.HIGH, [LOW, LOW, LOW], 1.0, 1.0),
            (Conviction.HIGH, [HIGH], 0.75, 0.75),
            (Conviction.HIGH, [HIGH, MEDIUM], 0.5, 0.5),
            (Conviction.MED, [HIGH], 0.5, 0.75),
            (Conviction.LOW, [HIGH, HIGH], 0.25, 0.5),
        ],
    )
    def test_units(self, conviction, flags, units, factor):
        sizing = compute_position_sizing(SignalAction.LONG, conviction, flags, SizingConfig())

        assert sizing.recommended_risk_units == units
        assert sizing.reduction_factor == factor

    def test_units_on_quarter_grid(self):
        for conviction in Conviction:
            for flags in ([], [HIGH], [HIGH, MEDIUM]):
                units = compute_position_sizing(SignalAction.SHORT, conviction, flags, SizingConfig()).recommended_risk_units
                assert units in (0.0, 0.25, 0.5, 0.75, 1.0)

    def test_reason_and_warnings(self):
        sizing = compute_position_sizing(SignalAction.LONG, Conviction.HIGH, [HIGH, MEDIUM], SizingConfig())

        assert sizing.reason == "Convicción high → 1R base, reducido 50% por warnings"
        assert sizing.warnings == ["2 flags de riesgo alto/medio detectados"]

    def test_single_high_flag_reason(self):
        sizing = compute_position_sizing(SignalAction.LONG, Conviction.MED, [HIGH], SizingConfig())

        assert sizing.reason == "Convicción med → 0.5R base, reducido 25% por warnings"
        assert sizing.warnings == ["1 flag(s) de riesgo alto detectado(s)"]

    def test_no_trade_is_zero(self):
        sizing = compute_position_sizing(SignalAction.NO_TRADE, Conviction.HIGH, [], SizingConfig())

        assert sizing.recommended_risk_units == 0.0
        assert sizing.base_size == 0.0
        assert sizing.reason == "NO_TRADE activo - no operar"

    def test_small_custom_base_rounds_to_zero(self):
        sizing = compute_position_sizing(SignalAction.LONG, Conviction.LOW, [HIGH, HIGH], SizingConfig(base_low=0.1))
        assert sizing.recommended_risk_units == 0.0


class TestChecklist:

    def test_invalidation_conditions(self, make_snapshot, make_driver):
        snapshot = make_snapshot(score=60.0, drivers=[make_driver("twex", weight=0.5, name="Dollar")])

        checklist = build_checklist(snapshot, SignalAction.LONG, None, 0.6, SignalThresholds())

        assert checklist.blockers == []
        assert [c.id for c in checklist.invalidation_conditions] == [
            "score_cross_zero",
            "confidence_drop",
            "driver_direction_change",
        ]
        assert checklist.invalidation_conditions[1].condition.endswith("(actual: 60%)")
        assert "Dollar" in checklist.invalidation_conditions[2].condition

    def test_no_driver_condition_without_drivers(self, make_snapshot):
        checklist = build_checklist(make_snapshot(), SignalAction.NEUTRAL, None, 0.0, SignalThresholds())
        assert [c.id for c in checklist.invalidation_conditions] == ["score_cross_zero", "confidence_drop"]

    def test_blockers_only_for_no_trade(self, make_snapshot):
        checklist = build_checklist(make_snapshot(), SignalAction.LONG, "Evento(s) raro", 0.0, SignalThresholds())
        assert checklist.blockers == []


class TestExecutionPlan:

    def test_low_conviction_warning(self, make_snapshot):
        snapshot = make_snapshot(score=25.0, regime="Risk ON")
        checklist = build_checklist(snapshot, SignalAction.LONG, None, 0.25, SignalThresholds())

        plan = build_execution_plan(SignalAction.LONG, Conviction.LOW, [], checklist)

        assert plan.entry_guidance.startswith("Solo buscar LONG si: régimen Risk ON | ")
        assert plan.entry_guidance.endswith("⚠️ Convicción baja: solo observación / tamaño mínimo")
        assert [t.id for t in plan.invalidation_triggers] == ["score_cross_zero", "confidence_drop"]

    def test_multiple_warnings_cancellation(self, make_snapshot):
        checklist = build_checklist(make_snapshot(), SignalAction.NEUTRAL, None, 0.0, SignalThresholds())

        plan = build_execution_plan(SignalAction.NEUTRAL, Conviction.LOW, [HIGH, MEDIUM, MEDIUM], checklist)

        assert [c.id for c in plan.cancellation_conditions] == ["multiple_warnings"]


class TestCooldown:

    def test_none_without_hard_stop(self, clock):
        thresholds = SignalThresholds()
        assert compute_cooldown(None, clock, thresholds) is None
        warning = SnapshotDelta(id="score_delta_significant", severity=DeltaSeverity.WARNING, message="m")
        assert compute_cooldown([warning], clock, thresholds) is None

    def test_first_hard_stop_drives_reason(self, clock, now):
        deltas = [
            SnapshotDelta(
                id="top_driver_direction_change",
                severity=DeltaSeverity.HARD_STOP,
                message="m",
                context={"action": "re-evaluar señal"},
            ),
            SnapshotDelta(id="regime_change", severity=DeltaSeverity.HARD_STOP, message="m"),
        ]

        cooldown = compute_cooldown(deltas, clock, SignalThresholds())

        assert cooldown.reason == "Hard stop detectado: re-evaluar señal"
        assert cooldown.expires_at == now + timedelta(minutes=60)
        assert cooldown.revalidation_conditions == [
            "Esperar nuevo snapshot sin hard_stop",
            "Verificar que condiciones de bloqueo se hayan resuelto",
            "Verificar que nuevo driver #1 esté alineado",
        ]

    def test_window_restarts_each_call(self, now):
        delta = SnapshotDelta(id="regime_change", severity=DeltaSeverity.HARD_STOP, message="m")
        thresholds = SignalThresholds()

        first = compute_cooldown([delta], lambda: now, thresholds)
        later = compute_cooldown([delta], lambda: now + timedelta(minutes=30), thresholds)

        assert later.expires_at - first.expires_at == timedelta(minutes=30)
