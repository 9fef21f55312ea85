"""
MACRO COMPASS - USD Bias

Normalizes trade-weighted dollar, curve spread, PCE and GDP by fixed
divisors, clamps each to [-1, 1] and averages them:

    score = (twex + curve - pce + gdp) / 4

Bullish above +0.25, Bearish below -0.25, Neutral otherwise.
"""

from __future__ import annotations

from typing import Optional

from macro_compass.config import USDBiasThresholds
from macro_compass.features.lookup import SeriesIndex, clamp
from macro_compass.types import AxisReading, USDDirection


def compute_usd_bias(index: SeriesIndex, thresholds: USDBiasThresholds) -> AxisReading:
    """
    Compute the USD bias axis.

    Args:
        index: Alias-aware view of the cycle's indicators.
        thresholds: Divisors and classification bands.

    Returns:
        AxisReading with score in [-1, 1] and a USDDirection label.
    """
    twex = index.value("twex")
    t10y2y = index.value("t10y2y")
    t10y3m = index.value("t10y3m")
    pce = index.value("pce")
    gdp = index.value("gdp")

    twex_norm = _normalize(twex, thresholds.twex_divisor)
    curve_norm = _normalize((t10y2y or 0.0) - (t10y3m or 0.0), thresholds.curve_divisor)
    pce_norm = _normalize(pce, thresholds.pce_divisor)
    gdp_norm = _normalize(gdp, thresholds.gdp_divisor)

    score = clamp((twex_norm + curve_norm - pce_norm + gdp_norm) / 4)

    if score > thresholds.bullish_above:
        direction = USDDirection.BULLISH
    elif score < thresholds.bearish_below:
        direction = USDDirection.BEARISH
    else:
        direction = USDDirection.NEUTRAL

    return AxisReading(
        score=score,
        regime=direction.value,
        raw={"twex": twex, "t10y2y": t10y2y, "t10y3m": t10y3m, "pce": pce, "gdp": gdp},
    )


def _normalize(value: Optional[float], divisor: float) -> float:
    if value is None:
        return 0.0
    return clamp(value / divisor)
