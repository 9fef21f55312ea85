"""
MACRO COMPASS - Playbook notes

Short operator notes derived from a snapshot, plus the driver / anchor /
event selections shared with the execution checklist and the delta
engine. Notes are factual: regime, drivers, the next high-importance
event and the anchor correlation. At most five, in that order.
"""

from __future__ import annotations

from datetime import datetime
from typing import Optional

from macro_compass.config import SignalThresholds
from macro_compass.features.lookup import round_half_up
from macro_compass.snapshot.schema import BiasDriver, MacroSnapshot, UpcomingDate
from macro_compass.types import AnchorCorrelation, BiasDirection, Importance, TopDriver

_ARROWS = {BiasDirection.LONG.value: "↑", BiasDirection.SHORT.value: "↓"}
_NEUTRAL_USD = {"Neutral", "NEUTRAL"}


def ranked_drivers(snapshot: MacroSnapshot, thresholds: SignalThresholds) -> list[BiasDriver]:
    """Drivers with |weight| above the floor, heaviest first. Ties keep input order."""
    eligible = [d for d in snapshot.drivers if abs(d.weight) > thresholds.driver_min_weight]
    return sorted(eligible, key=lambda d: abs(d.weight), reverse=True)


def top_drivers(snapshot: MacroSnapshot, thresholds: SignalThresholds) -> list[TopDriver]:
    return [
        TopDriver(name=d.name or d.key, direction=d.direction.value, weight=d.weight)
        for d in ranked_drivers(snapshot, thresholds)[: thresholds.top_drivers]
    ]


def anchor_correlation(snapshot: MacroSnapshot, thresholds: SignalThresholds) -> Optional[AnchorCorrelation]:
    """
    Strongest correlation above the anchor level.

    Each row contributes its first available window in 12m, 6m, 3m order.
    """
    best: Optional[AnchorCorrelation] = None
    for row in snapshot.correlations:
        corr = next((c for c in (row.corr12m, row.corr6m, row.corr3m) if c is not None), 0.0)
        if abs(corr) <= thresholds.anchor_min_corr:
            continue
        if best is None or abs(corr) > abs(best.corr):
            best = AnchorCorrelation(symbol=row.symbol, corr=corr)
    return best


def high_importance_events(snapshot: MacroSnapshot) -> list[UpcomingDate]:
    """High-importance calendar entries, earliest first."""
    events = [d for d in snapshot.upcoming_dates if d.importance == Importance.HIGH]
    return sorted(events, key=lambda d: d.date)


def next_high_importance_event(snapshot: MacroSnapshot) -> Optional[UpcomingDate]:
    events = high_importance_events(snapshot)
    return events[0] if events else None


def hours_between(start: datetime, end: datetime) -> int:
    return int(round_half_up((end - start).total_seconds() / 3600))


def format_percent(value: float) -> str:
    return f"{int(round_half_up(value * 100))}%"


def format_driver(driver: TopDriver) -> str:
    arrow = _ARROWS.get(driver.direction, "→")
    return f"{driver.name} {arrow} ({format_percent(driver.weight)})"


def generate_playbook_notes(snapshot: MacroSnapshot, thresholds: Optional[SignalThresholds] = None) -> list[str]:
    """
    Build up to five playbook notes.

    Args:
        snapshot: Validated snapshot.
        thresholds: Driver / anchor selection settings.

    Returns:
        Notes in fixed order: regime and USD, top drivers, next
        high-importance event, anchor correlation.
    """
    thresholds = thresholds or SignalThresholds()
    notes: list[str] = []

    regime = snapshot.regime.overall or "Neutral"
    parts = []
    if regime != "Neutral":
        parts.append(f"Régimen: {regime}")
    if snapshot.usd_bias not in _NEUTRAL_USD:
        strong = snapshot.usd_bias in ("Fuerte", "STRONG")
        parts.append(f"USD: {'Fuerte' if strong else 'Débil'}")
    if parts:
        notes.append(" | ".join(parts))

    drivers = top_drivers(snapshot, thresholds)
    if drivers:
        notes.append("Drivers: " + ", ".join(format_driver(d) for d in drivers))

    event = next_high_importance_event(snapshot)
    if event is not None:
        hours = hours_between(snapshot.now_ts, event.date)
        if hours < 24:
            notes.append(f"Próximo evento alta: {event.name} en {hours}h")
        else:
            notes.append(f"Próximo evento alta: {event.name} en {int(round_half_up(hours / 24))}d")

    anchor = anchor_correlation(snapshot, thresholds)
    if anchor is not None:
        sign = "+" if anchor.corr > 0 else ""
        notes.append(f"Correlación ancla: {anchor.symbol} {sign}{format_percent(anchor.corr)}")

    return notes[: thresholds.max_playbook_notes]
