"""
MACRO COMPASS - Growth / Inflation Quadrant

Sign of (CPI delta, GDP delta):
- Goldilocks:  CPI down, GDP up
- Recesivo:    CPI down, GDP down
- Stagflation: CPI up,   GDP down
- Expansivo:   CPI up,   GDP up (also the fallback when a delta is flat)
"""

from __future__ import annotations

from macro_compass.features.lookup import SeriesIndex, clamp
from macro_compass.types import AxisReading, Quadrant


def compute_quadrant(index: SeriesIndex) -> AxisReading:
    """
    Classify the growth/inflation quadrant.

    Score is the average of two signed unit contributions: +1 for falling
    CPI (else -1) and +1 for rising GDP (else -1).
    """
    cpi_trend = index.delta("cpi")
    gdp_trend = index.delta("gdp")

    quad = Quadrant.EXPANSIVO
    if cpi_trend < 0 and gdp_trend > 0:
        quad = Quadrant.GOLDILOCKS
    elif cpi_trend < 0 and gdp_trend < 0:
        quad = Quadrant.RECESIVO
    elif cpi_trend > 0 and gdp_trend < 0:
        quad = Quadrant.STAGFLATION

    cpi_score = 1 if cpi_trend < 0 else -1
    gdp_score = 1 if gdp_trend > 0 else -1
    score = clamp((cpi_score + gdp_score) / 2)

    pmi = index.resolve("pmi")
    return AxisReading(
        score=score,
        regime=quad.value,
        raw={
            "cpi_trend": cpi_trend,
            "gdp_trend": gdp_trend,
            "pmi_level": pmi.value if pmi else None,
            "employment_trend": index.delta("payems"),
        },
    )
