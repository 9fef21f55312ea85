#!/usr/bin/env python3
"""
MACRO COMPASS evaluation cycle.

Evaluates one cycle, either from JSON input files or live from the
configured HTTP collaborators.

Usage:
    python scripts/run_cycle.py --indicators ind.json --correlations corr.json --calendar cal.json
    python scripts/run_cycle.py --indicators ind.json --previous-indicators prev.json
    python scripts/run_cycle.py --live
    python scripts/run_cycle.py --indicators ind.json --json -v
"""

import argparse
import asyncio
import json
import logging
import sys
from pathlib import Path

# Ensure macro_compass is importable
sys.path.insert(0, str(Path(__file__).parent.parent / "src"))

from macro_compass.config import load_config
from macro_compass.exceptions import MacroCompassError
from macro_compass.ingest.fetcher import parse_calendar, parse_correlations, parse_indicators
from macro_compass.pipeline.cycle import EvaluationPipeline


def _load(path: str | None, parser):
    if path is None:
        return []
    return parser(json.loads(Path(path).read_text()))


def main() -> int:
    parser = argparse.ArgumentParser(
        description="Run one MACRO COMPASS evaluation cycle",
    )
    parser.add_argument("--config", "-c", type=str, default=None, help="JSON config overrides")
    parser.add_argument("--indicators", "-i", type=str, default=None, help="Indicator readings JSON")
    parser.add_argument("--correlations", type=str, default=None, help="Correlation records JSON")
    parser.add_argument("--calendar", type=str, default=None, help="Calendar events JSON")
    parser.add_argument(
        "--previous-indicators",
        type=str,
        default=None,
        help="Indicator readings of the previous cycle (enables deltas)",
    )
    parser.add_argument("--live", action="store_true", help="Fetch inputs from the configured HTTP sources")
    parser.add_argument("--json", "-j", action="store_true", help="Output JSON only")
    parser.add_argument("--verbose", "-v", action="store_true", help="Verbose logging")
    args = parser.parse_args()

    level = logging.DEBUG if args.verbose else logging.INFO
    logging.basicConfig(
        level=level,
        format="%(asctime)s %(name)s %(levelname)s %(message)s",
    )

    if not args.live and not args.indicators:
        print("Error: pass --indicators FILE or --live.")
        return 1

    try:
        pipeline = EvaluationPipeline(config=load_config(args.config))
        if args.live:
            result = asyncio.run(pipeline.run())
        else:
            correlations = _load(args.correlations, parse_correlations)
            events = _load(args.calendar, parse_calendar)
            if args.previous_indicators:
                pipeline.process(_load(args.previous_indicators, parse_indicators), correlations, events)
            result = pipeline.process(_load(args.indicators, parse_indicators), correlations, events)
    except (MacroCompassError, OSError, json.JSONDecodeError) as e:
        print(f"Error: {e}")
        return 1

    signal = result.signal
    if args.json:
        print(json.dumps({"snapshot": result.snapshot.to_payload(), "signal": signal.to_dict()}, indent=2, ensure_ascii=False))
        return 0

    print()
    print("=" * 60)
    print("MACRO COMPASS SIGNAL")
    print("=" * 60)
    print(f"Time:       {result.snapshot.now_ts.isoformat()}")
    print(f"Regime:     {result.snapshot.regime.overall} (USD {result.snapshot.usd_bias})")
    print(f"Action:     {signal.action.value}" + (f"  ({signal.action_reason})" if signal.action_reason else ""))
    print(f"Bias:       {signal.bias_direction.value}  conviction={signal.conviction.value}")
    print(f"Score:      {signal.score:+.1f}  confidence={signal.confidence:.0%}")
    if signal.position_sizing is not None:
        print(f"Size:       {signal.position_sizing.recommended_risk_units}R  ({signal.position_sizing.reason})")
    print("-" * 60)
    print("Risk flags:")
    for flag in signal.risk_flags:
        print(f"  - [{flag.severity.value}] {flag.message}")
    print("Playbook:")
    for note in signal.playbook_notes:
        print(f"  - {note}")
    if signal.deltas:
        print("Deltas:")
        for delta in signal.deltas:
            print(f"  - [{delta.severity.value}] {delta.message}")
    if signal.cooldown_state is not None:
        print(f"Cooldown:   {signal.cooldown_state.reason} until {signal.cooldown_state.expires_at.isoformat()}")
    print("=" * 60)

    return 0


if __name__ == "__main__":
    sys.exit(main())
