"""
MACRO COMPASS - Async collaborator clients

The only async code outside the pipeline. Thin aiohttp clients for the
indicator store, the correlation engine and the calendar service, plus
the payload parsers they share with the CLI (which reads the same JSON
shapes from files).

Errors from the network or an unreadable payload raise FetchError.
"""

from __future__ import annotations

import logging
from dataclasses import dataclass
from datetime import date, datetime, timezone
from typing import Any, Iterable, Mapping, Optional, Sequence

import aiohttp

from macro_compass.config import MacroCompassConfig
from macro_compass.correlation.analyzer import normalize_window
from macro_compass.exceptions import FetchError
from macro_compass.types import (
    CalendarEvent,
    CorrelationRecord,
    CorrelationWindow,
    Importance,
    IndicatorObservation,
    Posture,
    Trend,
)

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class PairCorrelation:
    """12m / 3m correlation of one symbol against the benchmark."""

    corr12m: Optional[float] = None
    corr3m: Optional[float] = None


class _JsonClient:
    """Shared GET-JSON plumbing. Uses the caller's session when given one."""

    def __init__(
        self,
        config: MacroCompassConfig | None = None,
        session: aiohttp.ClientSession | None = None,
    ) -> None:
        self.config = config or MacroCompassConfig()
        self.session = session

    async def _get_json(self, path: str, params: Mapping[str, str] | None = None) -> Any:
        url = self.config.sources.base_url.rstrip("/") + path
        timeout = aiohttp.ClientTimeout(total=self.config.sources.timeout_seconds)
        try:
            if self.session is not None:
                return await self._request(self.session, url, params, timeout)
            async with aiohttp.ClientSession() as session:
                return await self._request(session, url, params, timeout)
        except aiohttp.ClientError as e:
            logger.error(f"GET {url} failed: {e}")
            raise FetchError(f"GET {url} failed: {e}") from e

    async def _request(
        self,
        session: aiohttp.ClientSession,
        url: str,
        params: Mapping[str, str] | None,
        timeout: aiohttp.ClientTimeout,
    ) -> Any:
        async with session.get(url, params=params, timeout=timeout) as response:
            if response.status >= 400:
                body = await response.text()
                logger.error(f"GET {url} returned HTTP {response.status}")
                raise FetchError(f"GET {url} returned HTTP {response.status}: {body[:200]}")
            return await response.json(content_type=None)


class IndicatorFetcher(_JsonClient):
    """Latest indicator readings (value and previous value per series)."""

    async def fetch(self) -> list[IndicatorObservation]:
        payload = await self._get_json(self.config.sources.indicators_path)
        observations = parse_indicators(payload)
        logger.info(f"Fetched {len(observations)} indicator observations")
        return observations


class CorrelationFetcher(_JsonClient):
    """Multi-window correlation statistics from the correlation engine."""

    async def fetch(self, benchmark: str | None = None) -> list[CorrelationRecord]:
        benchmark = benchmark or self.config.correlation.default_benchmark
        payload = await self._get_json(self.config.sources.correlations_path, {"benchmark": benchmark})
        records = parse_correlations(payload)
        logger.info(f"Fetched {len(records)} correlation records vs {benchmark}")
        return records

    async def fetch_for_symbols(self, symbols: Sequence[str], benchmark: str) -> dict[str, PairCorrelation]:
        """One request for every symbol; returns symbol -> 12m/3m values."""
        if not symbols:
            return {}
        payload = await self._get_json(
            self.config.sources.correlations_path,
            {"benchmark": benchmark, "symbols": ",".join(symbols)},
        )
        return pair_correlations(parse_correlations(payload), benchmark)


class CalendarFetcher(_JsonClient):
    """Upcoming economic-calendar events."""

    async def fetch(self) -> list[CalendarEvent]:
        days = str(self.config.snapshot.calendar_horizon_days)
        payload = await self._get_json(self.config.sources.calendar_path, {"days": days})
        events = parse_calendar(payload)
        logger.info(f"Fetched {len(events)} calendar events")
        return events


# --- Payload parsers ---


def parse_indicators(payload: Any) -> list[IndicatorObservation]:
    """Parse indicator rows; accepts a list or {"items": [...]}."""
    observations = []
    for row in _rows(payload, "indicators"):
        key = row.get("key")
        if not key:
            logger.warning(f"Skipping indicator row without key: {row}")
            continue
        observations.append(
            IndicatorObservation(
                key=str(key),
                label=str(row.get("label") or key),
                value=_float(row.get("value")),
                previous_value=_float(row.get("previous_value", row.get("previous"))),
                trend=_enum(Trend, row.get("trend")),
                posture=_enum(Posture, row.get("posture")),
                weight=_float(row.get("weight")),
                category=row.get("category"),
                date=_date(row.get("date")),
                previous_date=_date(row.get("previous_date")),
                unit=row.get("unit"),
                original_key=row.get("original_key"),
            )
        )
    return observations


def parse_correlations(payload: Any) -> list[CorrelationRecord]:
    records = []
    for row in _rows(payload, "correlations"):
        symbol = row.get("symbol")
        window = row.get("window")
        if not symbol or not window:
            continue
        sample_size = row.get("sample_size", row.get("n_obs"))
        records.append(
            CorrelationRecord(
                symbol=str(symbol).replace("/", "").upper(),
                benchmark=row.get("benchmark"),
                window=str(window),
                value=_float(row.get("value")),
                sample_size=int(sample_size) if sample_size is not None else None,
                updated_at=_datetime(row.get("updated_at", row.get("asof"))),
            )
        )
    return records


def parse_calendar(payload: Any) -> list[CalendarEvent]:
    events = []
    for row in _rows(payload, "events"):
        name = row.get("name") or row.get("event")
        when = _datetime(row.get("date"))
        if not name or when is None:
            logger.warning(f"Skipping calendar row without name or date: {row}")
            continue
        events.append(
            CalendarEvent(
                name=str(name),
                date=when,
                importance=_enum(Importance, row.get("importance")) or Importance.LOW,
                country=row.get("country"),
                currency=row.get("currency"),
            )
        )
    return events


def pair_correlations(records: Iterable[CorrelationRecord], benchmark: str) -> dict[str, PairCorrelation]:
    """Collapse records into symbol -> (12m, 3m); the first record per window wins."""
    found: dict[str, dict[CorrelationWindow, Optional[float]]] = {}
    for record in records:
        if record.benchmark and record.benchmark.upper() != benchmark.upper():
            continue
        window = normalize_window(record.window)
        if window not in (CorrelationWindow.W12M, CorrelationWindow.W3M):
            continue
        found.setdefault(record.symbol, {}).setdefault(window, record.value)
    return {
        symbol: PairCorrelation(
            corr12m=values.get(CorrelationWindow.W12M),
            corr3m=values.get(CorrelationWindow.W3M),
        )
        for symbol, values in found.items()
    }


def _rows(payload: Any, name: str) -> list[Mapping[str, Any]]:
    if isinstance(payload, Mapping):
        payload = payload.get("items", payload.get(name))
    if not isinstance(payload, list):
        raise FetchError(f"Unreadable {name} payload: expected a list of objects")
    return [row for row in payload if isinstance(row, Mapping)]


def _float(value: Any) -> Optional[float]:
    if value is None or value == "" or value == ".":
        return None
    try:
        return float(value)
    except (TypeError, ValueError):
        return None


def _enum(enum_type, value: Any):
    if value is None:
        return None
    try:
        return enum_type(str(value).lower())
    except ValueError:
        return None


def _date(value: Any) -> Optional[date]:
    if value is None or isinstance(value, date):
        return value
    try:
        return date.fromisoformat(str(value)[:10])
    except ValueError:
        return None


def _datetime(value: Any) -> Optional[datetime]:
    if value is None:
        return None
    if isinstance(value, datetime):
        parsed = value
    else:
        try:
            parsed = datetime.fromisoformat(str(value).replace("Z", "+00:00"))
        except ValueError:
            return None
    if parsed.tzinfo is None:
        parsed = parsed.replace(tzinfo=timezone.utc)
    return parsed.astimezone(timezone.utc)
