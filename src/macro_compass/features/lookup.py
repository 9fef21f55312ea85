"""
MACRO COMPASS - Alias-aware indicator lookup

A series may live under several historical key names. Resolution tries
each alias of the canonical key in order and uses the first observation
whose key or original key matches (case-insensitive).
"""

from __future__ import annotations

import math
from typing import Iterable, Optional

from macro_compass.config import SeriesAliases
from macro_compass.types import IndicatorObservation


def clamp(value: float, low: float = -1.0, high: float = 1.0) -> float:
    return min(high, max(low, value))


def round_half_up(value: float, step: float = 1.0) -> float:
    """Round to the nearest multiple of `step`; ties go toward +infinity."""
    return math.floor(value / step + 0.5) * step


class SeriesIndex:
    """Case-insensitive index over one cycle's observations."""

    def __init__(self, observations: Iterable[IndicatorObservation], aliases: SeriesAliases) -> None:
        self.aliases = aliases
        self._by_key: dict[str, IndicatorObservation] = {}
        for obs in observations:
            # First occurrence wins, matching a linear scan over the table
            for name in (obs.key, obs.original_key):
                if name:
                    self._by_key.setdefault(name.lower(), obs)

    def resolve(self, canonical: str) -> Optional[IndicatorObservation]:
        """First observation matching any alias of `canonical`, in alias order."""
        for alias in self.aliases.aliases(canonical):
            found = self._by_key.get(alias)
            if found is not None:
                return found
        return None

    def value(self, canonical: str) -> Optional[float]:
        """First non-null value across the aliases of `canonical`."""
        for alias in self.aliases.aliases(canonical):
            found = self._by_key.get(alias)
            if found is not None and found.value is not None:
                return found.value
        return None

    def delta(self, canonical: str) -> float:
        """value - previous of the resolved series; 0 when either side is missing."""
        obs = self.resolve(canonical)
        if obs is None or obs.delta is None:
            return 0.0
        return obs.delta

    def __len__(self) -> int:
        return len(self._by_key)
