"""
MACRO COMPASS - Credit Stress

Wide spreads and a flat/inverted curve mean stress:

    score = clamp(spread / 500) - clamp(curve / 1)

Stress High above 0.4, Low below -0.3, Medium otherwise.
"""

from __future__ import annotations

from macro_compass.config import CreditThresholds
from macro_compass.features.lookup import SeriesIndex, clamp
from macro_compass.types import AxisReading, CreditRegime


def compute_credit_stress(index: SeriesIndex, thresholds: CreditThresholds) -> AxisReading:
    """
    Classify credit stress.

    Args:
        index: Alias-aware view of the cycle's indicators.
        thresholds: Normalization divisors and bands.

    Returns:
        AxisReading with score in [-1, 1] and a CreditRegime label.
    """
    curve_row = index.resolve("t10y2y")
    yield_curve = curve_row.value if curve_row and curve_row.value is not None else 0.0

    hy = index.resolve("hy_spread")
    ig = index.resolve("ig_spread")
    if hy is not None and hy.value is not None:
        spreads = hy.value
    elif ig is not None and ig.value is not None:
        spreads = ig.value
    else:
        spreads = 0.0

    spread_norm = clamp(spreads / thresholds.spread_divisor)
    curve_norm = clamp(yield_curve / thresholds.curve_divisor)
    score = clamp(spread_norm - curve_norm)

    regime = CreditRegime.MEDIUM
    if score > thresholds.stress_high_above:
        regime = CreditRegime.STRESS_HIGH
    elif score < thresholds.low_below:
        regime = CreditRegime.LOW

    return AxisReading(
        score=score,
        regime=regime.value,
        raw={
            "yield_curve": yield_curve,
            "credit_spreads": spreads,
            "spread_change": index.delta("hy_spread"),
            "classification": regime.value,
        },
    )
