"""
MACRO COMPASS - Liquidity Regime

Heuristics on the weekly changes of the Fed balance sheet (WALCL),
reverse repo (RRP), Treasury General Account (TGA) and M2.
"""

from __future__ import annotations

from macro_compass.config import LiquidityThresholds
from macro_compass.features.lookup import SeriesIndex, clamp
from macro_compass.types import AxisReading, LiquidityRegime


def compute_liquidity(index: SeriesIndex, thresholds: LiquidityThresholds) -> AxisReading:
    """
    Classify the liquidity regime.

    Rules (later rules override earlier ones):
    1. High if balance sheet grows and RRP drains
    2. Low if balance sheet shrinks and RRP grows
    3. Contracting if TGA grows
    4. Medium if WALCL, RRP and TGA all moved less than `flat_delta`

    Score = z(walcl) - z(rrp) - z(tga) + z(m2), clamped to [-1, 1].
    """
    walcl = index.delta("walcl")
    rrp = index.delta("rrp")
    tga = index.delta("tga")
    m2 = index.delta("m2")

    regime = LiquidityRegime.MEDIUM
    if walcl > 0 and rrp < 0:
        regime = LiquidityRegime.HIGH
    if walcl < 0 and rrp > 0:
        regime = LiquidityRegime.LOW
    if tga > 0:
        regime = LiquidityRegime.CONTRACTING
    flat = thresholds.flat_delta
    if abs(walcl) < flat and abs(rrp) < flat and abs(tga) < flat:
        regime = LiquidityRegime.MEDIUM

    def z(value: float) -> float:
        if not value:
            return 0.0
        return value / max(thresholds.z_floor, abs(value))

    score = clamp(z(walcl) - z(rrp) - z(tga) + z(m2))

    return AxisReading(
        score=score,
        regime=regime.value,
        raw={"walcl_change": walcl, "rrp_change": rrp, "tga_change": tga, "m2_trend": m2},
    )
