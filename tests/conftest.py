"""Shared fixtures for MACRO COMPASS tests."""

import sys
from datetime import datetime, timedelta, timezone
from pathlib import Path

import pytest

# Ensure macro_compass is importable
sys.path.insert(0, str(Path(__file__).parent.parent / "src"))

from macro_compass.clock import FrozenClock
from macro_compass.config import MacroCompassConfig
from macro_compass.snapshot.schema import (
    BiasDriver,
    CorrelationRow,
    MacroSnapshot,
    Metrics,
    Narrative,
    RegimeBlock,
    UpcomingDate,
)
from macro_compass.types import (
    ChecklistSetup,
    Conviction,
    EventStatus,
    ExecutionChecklist,
    IndicatorObservation,
    MacroSignal,
    SignalAction,
    TimeToNextEvent,
    Trend,
)

NOW = datetime(2026, 3, 10, 12, 0, tzinfo=timezone.utc)


@pytest.fixture
def now() -> datetime:
    return NOW


@pytest.fixture
def config() -> MacroCompassConfig:
    return MacroCompassConfig()


@pytest.fixture
def clock() -> FrozenClock:
    return FrozenClock(NOW)


@pytest.fixture
def narrative() -> Narrative:
    return Narrative(headline="Dólar firme por tasas", bullets=["Curva positiva"], confidence="Media")


@pytest.fixture
def make_driver():
    def _make(key="twex", weight=0.4, direction="long", name=None):
        return BiasDriver(key=key, name=name or key.upper(), direction=direction, weight=weight)

    return _make


@pytest.fixture
def make_event():
    def _make(name="NFP", hours=48, importance="high", country="US"):
        return UpcomingDate(
            name=name,
            date=NOW + timedelta(hours=hours),
            importance=importance,
            country=country,
            currency="USD",
        )

    return _make


@pytest.fixture
def make_snapshot():
    """Snapshot factory; every field has a neutral default."""

    def _make(
        score=0.0,
        regime="Neutral",
        usd_bias="Neutral",
        drivers=(),
        events=(),
        correlations=(),
        narrative=None,
        now=NOW,
    ):
        return MacroSnapshot(
            now_ts=now,
            regime=RegimeBlock(overall=regime, usd_direction="Neutral", quad="Expansivo"),
            usd_bias=usd_bias,
            score=score,
            drivers=list(drivers),
            upcoming_dates=list(events),
            correlations=list(correlations),
            narrative=narrative,
            metrics=Metrics(usd_score=0.0, score=score),
        )

    return _make


@pytest.fixture
def make_correlation():
    def _make(symbol="EURUSD", corr12m=None, corr6m=None, corr3m=None, benchmark="DXY"):
        return CorrelationRow(symbol=symbol, benchmark=benchmark, corr12m=corr12m, corr6m=corr6m, corr3m=corr3m)

    return _make


@pytest.fixture
def make_signal():
    """Minimal MacroSignal carrying just what the delta engine reads."""

    def _make(bias="neutral", minutes=None, event_name="NFP"):
        time_to_event = None
        if minutes is not None:
            time_to_event = TimeToNextEvent(minutes=minutes, event_name=event_name, status=EventStatus.OK)
        return MacroSignal(
            action=SignalAction.NEUTRAL,
            bias_direction=bias,
            conviction=Conviction.LOW,
            risk_flags=[],
            playbook_notes=[],
            execution_checklist=ExecutionChecklist(setup=ChecklistSetup(regime="Neutral", usd_bias="Neutral")),
            score=0.0,
            confidence=0.0,
            time_to_next_event=time_to_event,
        )

    return _make


def _obs(key, value=None, previous=None, weight=None, trend=None, original_key=None):
    return IndicatorObservation(
        key=key,
        label=key.upper(),
        value=value,
        previous_value=previous,
        weight=weight,
        trend=Trend(trend) if trend else None,
        original_key=original_key,
    )


@pytest.fixture
def risk_on_observations() -> list[IndicatorObservation]:
    """
    Weak dollar, Goldilocks, expanding liquidity, tight credit.

    usd  = (-1 + 0 - 0 + 0) / 4 = -0.25 -> Neutral band edge, not Bearish
    quad = Goldilocks (+1)
    liq  = High, z(walcl)=1, z(rrp)=-1 -> clamp(2) = 1
    credit: spread 100/500 = 0.2, curve 0 -> 0.2 Medium
    risk = clamp(0.25 + 1 + 0.5 - 0.2) = 1 -> Risk ON
    """
    return [
        _obs("twex", value=-10.0, previous=-9.0, weight=0.5, trend="worsening"),
        _obs("cpi_yoy", value=2.8, previous=3.1, weight=0.4, trend="improving"),
        _obs("gdp_yoy", value=0.0, previous=-0.5, weight=0.3, trend="improving"),
        _obs("WALCL", value=7000.0, previous=6900.0, weight=0.2, trend="improving"),
        _obs("RRPONTSYD", value=400.0, previous=450.0),
        _obs("BAMLH0A0HYM2", value=100.0, previous=110.0),
    ]


@pytest.fixture
def risk_off_observations() -> list[IndicatorObservation]:
    """
    Strong dollar, Stagflation, draining liquidity, wide spreads.

    usd  = (1 + 0 - 0 + 0) / 4 = 0.25 -> Neutral band edge
    quad = Stagflation (-1)
    liq  = Low, z(walcl)=-1, z(rrp)=1 -> clamp(-2) = -1
    credit: 600/500 -> 1, curve 0 -> 1 Stress High
    risk = clamp(-0.25 - 1 - 0.5 - 1) - 0.5 -> -1 -> Risk OFF
    """
    return [
        _obs("twex", value=10.0, previous=9.0, weight=0.7, trend="improving"),
        _obs("cpi_yoy", value=4.0, previous=3.5, weight=0.4, trend="worsening"),
        _obs("gdp_yoy", value=-0.5, previous=0.5, weight=0.3, trend="worsening"),
        _obs("WALCL", value=6800.0, previous=6900.0),
        _obs("RRPONTSYD", value=500.0, previous=450.0),
        _obs("BAMLH0A0HYM2", value=600.0, previous=550.0),
    ]
