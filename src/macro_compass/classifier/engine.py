"""
MACRO COMPASS - Regime Classifier

Turns one cycle of indicator observations into a BiasState:
USD bias, growth/inflation quadrant, liquidity, credit stress and the
composite risk appetite that becomes the overall regime label.

Pure and synchronous. Missing required data raises; no fallback regime
is ever fabricated.
"""

from __future__ import annotations

import logging
from typing import Iterable, Mapping, Optional

from macro_compass.clock import Clock, utc_now
from macro_compass.config import MacroCompassConfig, RiskAppetiteThresholds
from macro_compass.exceptions import MissingDataError
from macro_compass.features.credit import compute_credit_stress
from macro_compass.features.liquidity import compute_liquidity
from macro_compass.features.lookup import SeriesIndex, clamp
from macro_compass.features.quad import compute_quadrant
from macro_compass.features.usd import compute_usd_bias
from macro_compass.types import (
    AxisReading,
    BiasState,
    CreditRegime,
    CurrencyRegime,
    IndicatorObservation,
    LiquidityRegime,
    Quadrant,
    RegimeLabels,
    RegimeMetrics,
    RiskRegime,
    TacticalRow,
    USDDirection,
)

logger = logging.getLogger(__name__)


def compute_risk_appetite(
    usd: AxisReading,
    liquidity: AxisReading,
    quad: AxisReading,
    credit: AxisReading,
    thresholds: RiskAppetiteThresholds,
) -> AxisReading:
    """
    Composite risk appetite.

    base = -usd + liquidity + 0.5 * quad - credit, then discrete
    adjustments:
    - USD Bullish and liquidity Low: -0.5
    - USD Bearish, liquidity High and Goldilocks: +0.5
    - Credit Stress High: -0.5

    Risk ON above 0.25, Risk OFF below -0.25, Neutral otherwise.
    """
    base = clamp(-usd.score + liquidity.score + quad.score * thresholds.quad_weight - credit.score)

    adjustment = 0.0
    if usd.regime == USDDirection.BULLISH and liquidity.regime == LiquidityRegime.LOW:
        adjustment += thresholds.usd_bullish_low_liquidity
    if (
        usd.regime == USDDirection.BEARISH
        and liquidity.regime == LiquidityRegime.HIGH
        and quad.regime == Quadrant.GOLDILOCKS
    ):
        adjustment += thresholds.usd_bearish_goldilocks
    if credit.regime == CreditRegime.STRESS_HIGH:
        adjustment += thresholds.credit_stress_high

    score = clamp(base + adjustment)
    if score > thresholds.risk_on_above:
        regime = RiskRegime.RISK_ON
    elif score < thresholds.risk_off_below:
        regime = RiskRegime.RISK_OFF
    else:
        regime = RiskRegime.NEUTRAL

    return AxisReading(
        score=score,
        regime=regime.value,
        raw={
            "base_score": base,
            "heuristic_adjustment": adjustment,
            "usd_bias_signal": usd.regime,
            "liquidity_regime": liquidity.regime,
            "quad_regime": quad.regime,
            "credit_regime": credit.regime,
        },
    )


def classify_regime(
    observations: Iterable[IndicatorObservation],
    config: MacroCompassConfig,
    tactical: Iterable[TacticalRow] = (),
    currency_regimes: Optional[Mapping[str, CurrencyRegime]] = None,
    clock: Clock = utc_now,
) -> BiasState:
    """
    Compute the full BiasState for one cycle.

    Args:
        observations: Indicator rows for this cycle.
        config: Scoring configuration (aliases, divisors, bands).
        tactical: Tactical rows, already enriched or not.
        currency_regimes: Optional per-currency regime labels, passed through.
        clock: Source of the computation timestamp.

    Returns:
        BiasState with labels and clamped sub-scores.

    Raises:
        MissingDataError: no observations were supplied.
    """
    table = list(observations)
    if not table:
        raise MissingDataError("No indicator observations supplied; cannot classify regime")

    index = SeriesIndex(table, config.aliases)
    usd = compute_usd_bias(index, config.usd)
    quad = compute_quadrant(index)
    liquidity = compute_liquidity(index, config.liquidity)
    credit = compute_credit_stress(index, config.credit)
    risk = compute_risk_appetite(usd, liquidity, quad, credit, config.risk)

    logger.debug(
        f"Regime axes: usd={usd.regime}({usd.score:+.2f}) quad={quad.regime}({quad.score:+.2f}) "
        f"liquidity={liquidity.regime}({liquidity.score:+.2f}) credit={credit.regime}({credit.score:+.2f}) "
        f"risk={risk.regime}({risk.score:+.2f})"
    )

    return BiasState(
        updated_at=clock(),
        regime=RegimeLabels(
            overall=risk.regime,
            usd_direction=usd.regime,
            quad=quad.regime,
            liquidity=liquidity.regime,
            credit=credit.regime,
            risk=risk.regime,
        ),
        metrics=RegimeMetrics(
            usd_score=usd.score,
            quad_score=quad.score,
            liquidity_score=liquidity.score,
            credit_score=credit.score,
            risk_score=risk.score,
        ),
        table=table,
        tactical=list(tactical),
        currency_regimes=dict(currency_regimes or {}),
    )
