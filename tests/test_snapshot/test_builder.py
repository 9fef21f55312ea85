"""Tests for snapshot assembly from classifier and analyzer output."""

from datetime import timedelta

import pytest

from macro_compass.classifier.engine import classify_regime
from macro_compass.correlation.analyzer import analyze_correlations
from macro_compass.snapshot.builder import build_snapshot, extract_drivers, extract_upcoming_dates, normalize_usd_label
from macro_compass.types import CalendarEvent, CorrelationRecord, CurrencyRegime, IndicatorObservation, Importance, Trend


def _event(name, when, importance=Importance.HIGH, country="US"):
    return CalendarEvent(name=name, date=when, importance=importance, country=country, currency="USD")


class TestNormalizeUsdLabel:

    @pytest.mark.parametrize(
        "label, expected",
        [
            ("Bullish", "Fuerte"),
            ("STRONG", "Fuerte"),
            ("hawkish tilt", "Fuerte"),
            ("Bearish", "Débil"),
            ("weak", "Débil"),
            ("Neutral", "Neutral"),
            ("", "Neutral"),
        ],
    )
    def test_labels(self, label, expected):
        assert normalize_usd_label(label) == expected


class TestExtractDrivers:

    def test_only_weighted_rows(self):
        table = [
            IndicatorObservation(key="twex", label="Dollar", weight=0.5, trend=Trend.WORSENING),
            IndicatorObservation(key="cpi", label="CPI", weight=0.0),
            IndicatorObservation(key="gdp", label="GDP"),
            IndicatorObservation(key="pmi", label="PMI", weight=1.2),
            IndicatorObservation(key="walcl", label="Fed BS", weight=1.0),
        ]
        drivers = extract_drivers(table)

        assert [d["key"] for d in drivers] == ["twex", "walcl"]
        assert drivers[0]["direction"] == "short"
        assert drivers[0]["note"] == "worsening"
        assert drivers[1]["direction"] == "neutral"


class TestExtractUpcomingDates:

    def test_window_order_and_dedup(self, now):
        events = [
            _event("CPI", now + timedelta(days=3)),
            _event("NFP", now + timedelta(hours=20)),
            _event("NFP", now + timedelta(hours=20)),
            _event("Retail Sales", now - timedelta(hours=1)),
            _event("GDP", now + timedelta(days=20)),
        ]
        upcoming = extract_upcoming_dates(events, now, horizon_days=14)

        assert [e["name"] for e in upcoming] == ["NFP", "CPI"]
        assert upcoming[0]["importance"] == "high"


class TestBuildSnapshot:

    def test_risk_on_snapshot(self, risk_on_observations, config, clock, now):
        bias_state = classify_regime(risk_on_observations, config, clock=clock)
        correlation_state = analyze_correlations(
            [
                CorrelationRecord(symbol="EURUSD", benchmark="DXY", window="12m", value=-0.8),
                CorrelationRecord(symbol="EURUSD", benchmark="DXY", window="6m", value=-0.78),
                CorrelationRecord(symbol="EURUSD", benchmark="DXY", window="3m", value=-0.75),
            ],
            config,
            risk_regime=bias_state.regime.risk,
            clock=clock,
        )
        events = [_event("NFP", now + timedelta(hours=30))]

        result = build_snapshot(bias_state, correlation_state, events, config=config, now=now)

        assert result.ok, result.issues
        snapshot = result.data
        assert snapshot.now_ts == now
        assert snapshot.regime.overall == "Risk ON"
        assert snapshot.regime.usd_label == "Neutral"
        assert snapshot.usd_bias == "Neutral"
        # mean(-0.25, 1, 1, 0.2, 1) * 100
        assert snapshot.score == pytest.approx(59.0)
        assert snapshot.effective_score == pytest.approx(59.0)
        assert snapshot.metrics.usd_score == pytest.approx(-25.0)
        assert [d.key for d in snapshot.drivers] == ["twex", "cpi_yoy", "gdp_yoy", "WALCL"]
        assert snapshot.correlations[0].corr6m == -0.78
        assert snapshot.correlations[0].corr_ref == "Stable"
        assert snapshot.upcoming_dates[0].name == "NFP"
        assert snapshot.correlation_updated_at == clock()

    def test_without_correlations(self, risk_off_observations, config, clock):
        bias_state = classify_regime(risk_off_observations, config, clock=clock)

        snapshot = build_snapshot(bias_state, config=config).unwrap()

        assert snapshot.now_ts == bias_state.updated_at
        assert snapshot.correlations == []
        assert snapshot.correlation_updated_at is None
        assert snapshot.score == pytest.approx(-35.0)
        assert snapshot.currency_regimes is None

    def test_currency_regimes_upper_cased(self, risk_on_observations, config, clock):
        bias_state = classify_regime(
            risk_on_observations,
            config,
            currency_regimes={"eur": CurrencyRegime(regime="Easing", probability=0.6)},
            clock=clock,
        )

        snapshot = build_snapshot(bias_state, config=config).unwrap()

        assert snapshot.currency_regimes.eur.regime == "Easing"
        assert snapshot.to_payload()["currencyRegimes"]["EUR"]["probability"] == 0.6

    def test_invalid_state_returns_issues(self, risk_on_observations, config, clock):
        bias_state = classify_regime(
            risk_on_observations,
            config,
            currency_regimes={"usd": CurrencyRegime(regime="Tightening", probability=1.5)},
            clock=clock,
        )

        result = build_snapshot(bias_state, config=config)

        assert not result.ok
        assert result.issues[0].path.endswith("USD.probability")
