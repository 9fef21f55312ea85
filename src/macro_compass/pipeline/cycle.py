"""
MACRO COMPASS - Evaluation cycle orchestration

Flow: (indicators + enrichment || correlations) -> calendar -> classify ->
analyze -> assemble snapshot -> quality invariants -> synthesize signal

run() is the single async entry point: it fans out the two independent
fetch branches with asyncio.gather and joins them. Everything after the
fetches is synchronous and lives in process(), which tests and the CLI
call directly.

The pipeline keeps the previous (snapshot, signal) pair in memory so the
next cycle can compute deltas. The core modules never store anything.
"""

from __future__ import annotations

import asyncio
import logging
from dataclasses import dataclass, field
from typing import Iterable, Mapping, Optional, Sequence

import aiohttp
import pandas as pd

from macro_compass.classifier.engine import classify_regime
from macro_compass.classifier.enrichment import enrich_tactical_rows
from macro_compass.clock import Clock, utc_now
from macro_compass.config import MacroCompassConfig
from macro_compass.correlation.analyzer import analyze_correlations
from macro_compass.ingest.fetcher import CalendarFetcher, CorrelationFetcher, IndicatorFetcher
from macro_compass.quality.invariants import run_invariants
from macro_compass.signals.engine import synthesize_signal
from macro_compass.snapshot.builder import build_snapshot
from macro_compass.snapshot.schema import MacroSnapshot
from macro_compass.types import (
    BiasState,
    CalendarEvent,
    CorrelationRecord,
    CorrelationState,
    CurrencyRegime,
    IndicatorObservation,
    MacroSignal,
    QualityInvariantResult,
    TacticalRow,
)

logger = logging.getLogger(__name__)

DELTA_HISTORY_COLUMNS = ["cycle", "now_ts", "action", "delta_id", "severity", "message"]


@dataclass(frozen=True)
class CycleResult:
    """Everything one evaluation cycle produced."""

    bias_state: BiasState
    correlation_state: CorrelationState
    snapshot: MacroSnapshot
    invariants: list[QualityInvariantResult]
    signal: MacroSignal


@dataclass
class _Retained:
    snapshot: Optional[MacroSnapshot] = None
    signal: Optional[MacroSignal] = None
    history: list[CycleResult] = field(default_factory=list)


class EvaluationPipeline:
    """
    MACRO COMPASS evaluation cycle.

    Sources default to the HTTP collaborators configured in
    config.sources; tests inject fakes with the same async methods.
    """

    def __init__(
        self,
        config: MacroCompassConfig | None = None,
        indicator_source=None,
        correlation_source=None,
        calendar_source=None,
        tactical: Sequence[TacticalRow] = (),
        clock: Clock = utc_now,
    ) -> None:
        self.config = config or MacroCompassConfig()
        self.indicator_source = indicator_source
        self.correlation_source = correlation_source
        self.calendar_source = calendar_source
        self.tactical = list(tactical)
        self.clock = clock
        self._retained = _Retained()

    @property
    def previous_snapshot(self) -> Optional[MacroSnapshot]:
        return self._retained.snapshot

    @property
    def previous_signal(self) -> Optional[MacroSignal]:
        return self._retained.signal

    @property
    def history(self) -> list[CycleResult]:
        return list(self._retained.history)

    async def run(self, tactical: Sequence[TacticalRow] | None = None) -> CycleResult:
        """
        Fetch all inputs and evaluate one cycle.

        Indicator and correlation fetches run concurrently; a failure in
        either propagates. Tactical enrichment failures are logged and the
        rows are kept as they were. Cancelling run() cancels the in-flight
        fetches.
        """
        rows = list(self.tactical if tactical is None else tactical)
        benchmark = self.config.correlation.default_benchmark
        logger.info(f"MACRO COMPASS cycle starting ({len(rows)} tactical rows)")

        async with aiohttp.ClientSession() as session:
            indicators = self.indicator_source or IndicatorFetcher(self.config, session)
            correlations = self.correlation_source or CorrelationFetcher(self.config, session)
            calendar = self.calendar_source or CalendarFetcher(self.config, session)

            async def regime_branch() -> tuple[list[IndicatorObservation], list[TacticalRow]]:
                observations = await indicators.fetch()
                enriched = await enrich_tactical_rows(rows, correlations, benchmark)
                return observations, enriched

            async def correlation_branch() -> list[CorrelationRecord]:
                return await correlations.fetch(benchmark)

            (observations, enriched), records = await asyncio.gather(regime_branch(), correlation_branch())
            events = await calendar.fetch()

        logger.info(
            f"Ingest complete: {len(observations)} indicators, {len(records)} correlation records, "
            f"{len(events)} calendar events"
        )
        return self.process(observations, records, events, tactical=enriched)

    def process(
        self,
        observations: Iterable[IndicatorObservation],
        correlation_records: Iterable[CorrelationRecord] = (),
        events: Iterable[CalendarEvent] = (),
        tactical: Sequence[TacticalRow] = (),
        currency_regimes: Optional[Mapping[str, CurrencyRegime]] = None,
    ) -> CycleResult:
        """
        Synchronous evaluation of already-fetched inputs.

        Raises:
            MissingDataError: no indicator observations.
            SnapshotValidationError: the assembled snapshot is invalid; no
                signal is produced and the retained state is unchanged.
        """
        bias_state = classify_regime(
            observations,
            self.config,
            tactical=tactical,
            currency_regimes=currency_regimes,
            clock=self.clock,
        )
        correlation_state = analyze_correlations(
            correlation_records, self.config, risk_regime=bias_state.regime.risk, clock=self.clock
        )

        snapshot = build_snapshot(
            bias_state, correlation_state, events, self.config, now=self.clock()
        ).unwrap()
        invariants = run_invariants(snapshot, correlation_state, self.config.quality, self.config.signal)

        signal = synthesize_signal(
            snapshot,
            invariants,
            previous_snapshot=self.previous_snapshot,
            previous_signal=self.previous_signal,
            config=self.config,
            clock=self.clock,
        )

        result = CycleResult(
            bias_state=bias_state,
            correlation_state=correlation_state,
            snapshot=snapshot,
            invariants=invariants,
            signal=signal,
        )
        self._retained.snapshot = snapshot
        self._retained.signal = signal
        self._retained.history.append(result)

        logger.info(
            f"MACRO COMPASS {snapshot.now_ts.isoformat()}: {signal.action.value} "
            f"[{signal.conviction.value}] regime={snapshot.regime.overall} score={signal.score:+.1f} "
            f"deltas={len(signal.deltas or [])}"
        )
        return result

    def reset(self) -> None:
        """Forget the retained snapshot, signal and history."""
        self._retained = _Retained()

    def delta_history(self) -> pd.DataFrame:
        """One row per delta across every cycle evaluated so far."""
        rows = []
        for cycle, result in enumerate(self._retained.history, start=1):
            for delta in result.signal.deltas or []:
                rows.append(
                    {
                        "cycle": cycle,
                        "now_ts": result.snapshot.now_ts,
                        "action": result.signal.action.value,
                        "delta_id": delta.id,
                        "severity": delta.severity.value,
                        "message": delta.message,
                    }
                )
        return pd.DataFrame(rows, columns=DELTA_HISTORY_COLUMNS)


def run_sync(config: MacroCompassConfig | None = None) -> CycleResult:
    """Synchronous convenience wrapper for CLI usage."""
    pipeline = EvaluationPipeline(config=config)
    return asyncio.run(pipeline.run())
