"""Tests for correlation shift classification and relevance summary."""

from datetime import datetime, timezone

import pytest

from macro_compass.config import CorrelationThresholds
from macro_compass.correlation.analyzer import (
    analyze_correlations,
    build_points,
    classify_shift,
    correlation_trend,
    normalize_window,
)
from macro_compass.types import CorrelationRecord, CorrelationTrend, CorrelationWindow, ShiftRegime


def _record(symbol, window, value, benchmark="DXY", updated_at=None, sample_size=None):
    return CorrelationRecord(
        symbol=symbol,
        benchmark=benchmark,
        window=window,
        value=value,
        sample_size=sample_size,
        updated_at=updated_at,
    )


@pytest.fixture
def thresholds():
    return CorrelationThresholds()


@pytest.fixture
def records():
    return [
        _record("EURUSD", "12m", -0.80),
        _record("EURUSD", "6m", -0.78),
        _record("EURUSD", "3m", -0.75),
        _record("USDJPY", "1y", 0.65),
        _record("USDJPY", "90d", -0.10),
        _record("XAUUSD", "5y", 0.90),
    ]


class TestNormalizeWindow:

    @pytest.mark.parametrize(
        "label, window",
        [
            ("3m", CorrelationWindow.W3M),
            ("90d", CorrelationWindow.W3M),
            ("180D", CorrelationWindow.W6M),
            ("1Y", CorrelationWindow.W12M),
            (" 12m ", CorrelationWindow.W12M),
            ("2y", CorrelationWindow.W24M),
        ],
    )
    def test_known_labels(self, label, window):
        assert normalize_window(label) == window

    def test_unknown_label_is_dropped(self):
        assert normalize_window("5y") is None
        assert build_points([_record("XAUUSD", "5y", 0.9)]) == []

    def test_missing_benchmark_uses_default(self):
        points = build_points([_record("EURUSD", "12m", -0.8, benchmark=None)], default_benchmark="DXY")
        assert points[0].benchmark == "DXY"


class TestClassifyShift:

    @pytest.mark.parametrize(
        "corr12m, corr3m, expected",
        [
            (0.65, -0.10, ShiftRegime.BREAK),
            (0.0, 0.2, ShiftRegime.WEAK),
            (0.0, 0.35, ShiftRegime.REINFORCING),
            (-0.0, -0.35, ShiftRegime.STABLE),
            (0.2, 0.7, ShiftRegime.BREAK),
            (0.5, 0.55, ShiftRegime.STABLE),
            (0.5, 0.7, ShiftRegime.REINFORCING),
            (0.7, 0.5, ShiftRegime.STABLE),
            (0.1, 0.2, ShiftRegime.WEAK),
            (None, 0.5, ShiftRegime.WEAK),
            (0.5, None, ShiftRegime.WEAK),
        ],
    )
    def test_rules(self, thresholds, corr12m, corr3m, expected):
        assert classify_shift(corr12m, corr3m, thresholds) == expected


class TestCorrelationTrend:

    def test_trend(self, thresholds):
        assert correlation_trend(None, 0.5, thresholds) == CorrelationTrend.INCONCLUSIVE
        assert correlation_trend(0.5, 0.55, thresholds) == CorrelationTrend.STABLE
        assert correlation_trend(0.4, -0.7, thresholds) == CorrelationTrend.STRENGTHENING
        assert correlation_trend(-0.8, -0.3, thresholds) == CorrelationTrend.WEAKENING


class TestAnalyzeCorrelations:

    def test_shifts_per_pair(self, records, config, clock):
        state = analyze_correlations(records, config, clock=clock)

        shifts = {s.symbol: s for s in state.shifts}
        assert set(shifts) == {"EURUSD", "USDJPY"}
        assert shifts["EURUSD"].regime == ShiftRegime.STABLE
        assert shifts["EURUSD"].delta == pytest.approx(0.05)
        assert shifts["USDJPY"].regime == ShiftRegime.BREAK

    def test_relevance_scores(self, records, config, clock):
        state = analyze_correlations(records, config, clock=clock)

        summary = {s.symbol: s for s in state.summary}
        assert summary["EURUSD"].macro_relevance_score == pytest.approx(0.8)
        assert summary["EURUSD"].strongest_window == CorrelationWindow.W12M
        assert summary["EURUSD"].correlation_now == -0.75
        assert summary["EURUSD"].trend == CorrelationTrend.STABLE
        assert summary["USDJPY"].macro_relevance_score == pytest.approx(0.85)

    def test_risk_on_alignment_bonus(self, records, config, clock):
        state = analyze_correlations(records, config, risk_regime="Risk ON", clock=clock)

        summary = {s.symbol: s for s in state.summary}
        assert summary["EURUSD"].macro_relevance_score == pytest.approx(0.9)

    def test_weak_penalty_floors_at_zero(self, config, clock):
        state = analyze_correlations(
            [_record("AUDUSD", "12m", 0.1), _record("AUDUSD", "3m", 0.15)],
            config,
            clock=clock,
        )
        assert state.shifts[0].regime == ShiftRegime.WEAK
        assert state.summary[0].macro_relevance_score == 0.0

    def test_zero_long_window_is_not_a_break(self, config, clock):
        state = analyze_correlations(
            [_record("NZDUSD", "12m", 0.0), _record("NZDUSD", "3m", 0.2)],
            config,
            clock=clock,
        )
        assert state.shifts[0].regime == ShiftRegime.WEAK
        assert state.summary[0].macro_relevance_score == 0.0

    def test_relevance_within_unit_range(self, records, config, clock):
        for regime in (None, "Risk ON", "Risk OFF"):
            state = analyze_correlations(records, config, risk_regime=regime, clock=clock)
            for summary in state.summary:
                assert 0.0 <= summary.macro_relevance_score <= 1.0

    def test_pair_without_12m_or_3m_has_no_shift(self, config, clock):
        state = analyze_correlations([_record("GBPUSD", "6m", -0.6)], config, clock=clock)

        assert state.shifts == []
        assert state.summary[0].trend == CorrelationTrend.INCONCLUSIVE
        assert state.summary[0].macro_relevance_score == pytest.approx(0.6)

    def test_first_record_of_a_window_wins(self, config, clock):
        state = analyze_correlations(
            [_record("EURUSD", "12m", -0.8), _record("EURUSD", "1y", 0.3), _record("EURUSD", "3m", -0.7)],
            config,
            clock=clock,
        )
        assert state.shifts[0].corr12m == -0.8

    def test_updated_at_from_latest_record(self, config, clock):
        older = datetime(2026, 3, 8, tzinfo=timezone.utc)
        newer = datetime(2026, 3, 9, tzinfo=timezone.utc)
        state = analyze_correlations(
            [_record("EURUSD", "12m", -0.8, updated_at=older), _record("EURUSD", "3m", -0.7, updated_at=newer)],
            config,
            clock=clock,
        )
        assert state.updated_at == newer

    def test_empty_input(self, config, clock):
        state = analyze_correlations([], config, clock=clock)

        assert state.points == []
        assert state.shifts == []
        assert state.benchmark == "DXY"
        assert state.updated_at == clock()
