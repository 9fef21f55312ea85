"""
MACRO COMPASS - Tactical row correlation enrichment

Optional step: one batched fetch for every distinct tactical symbol,
merged into the rows. Failures never propagate and never erase values
already known on a row.
"""

from __future__ import annotations

import logging
from dataclasses import replace
from typing import Mapping, Optional, Protocol, Sequence

from macro_compass.types import TacticalRow

logger = logging.getLogger(__name__)


class SymbolCorrelation(Protocol):
    corr12m: Optional[float]
    corr3m: Optional[float]


class CorrelationSource(Protocol):
    """Anything that can fetch correlations for many symbols in one call."""

    async def fetch_for_symbols(
        self, symbols: Sequence[str], benchmark: str
    ) -> Mapping[str, SymbolCorrelation]: ...


def distinct_symbols(rows: Sequence[TacticalRow]) -> list[str]:
    """Lookup symbols of the rows, de-duplicated, in first-seen order."""
    seen: dict[str, None] = {}
    for row in rows:
        symbol = row.lookup_symbol
        if symbol:
            seen.setdefault(symbol, None)
    return list(seen)


def merge_correlations(
    rows: Sequence[TacticalRow],
    fetched: Mapping[str, SymbolCorrelation],
) -> list[TacticalRow]:
    """
    Merge fetched correlations into rows.

    A fetched entry is used only when it carries at least one non-null
    value; then each field prefers the fetched value and falls back to the
    row's own. A known value is never replaced by None.
    """
    merged = []
    for row in rows:
        found = fetched.get(row.lookup_symbol) if row.lookup_symbol else None
        if found is None or (found.corr12m is None and found.corr3m is None):
            merged.append(row)
            continue
        merged.append(
            replace(
                row,
                corr12m=found.corr12m if found.corr12m is not None else row.corr12m,
                corr3m=found.corr3m if found.corr3m is not None else row.corr3m,
            )
        )
    return merged


async def enrich_tactical_rows(
    rows: Sequence[TacticalRow],
    source: Optional[CorrelationSource],
    benchmark: str = "DXY",
) -> list[TacticalRow]:
    """
    Fetch correlations for all rows in a single call and merge them.

    Any exception from the source is logged and swallowed; the rows are
    returned unchanged in that case.
    """
    rows = list(rows)
    if source is None or not rows:
        return rows

    symbols = distinct_symbols(rows)
    if not symbols:
        return rows

    try:
        fetched = await source.fetch_for_symbols(symbols, benchmark)
    except Exception as e:
        logger.warning(f"Correlation enrichment failed for {len(rows)} tactical rows: {e}")
        return rows

    logger.debug(f"Correlation enrichment: requested={symbols} found={sorted(fetched)}")
    return merge_correlations(rows, fetched)
