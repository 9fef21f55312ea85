"""
MACRO COMPASS - Clock capability

The only wall-clock read in the signal path is the cooldown expiry.
It goes through an injected Clock so tests can freeze time.
"""

from __future__ import annotations

from datetime import datetime, timezone
from typing import Callable

Clock = Callable[[], datetime]


def utc_now() -> datetime:
    """Default clock: timezone-aware current UTC time."""
    return datetime.now(timezone.utc)


class FrozenClock:
    """Clock that always returns the same instant."""

    def __init__(self, instant: datetime) -> None:
        if instant.tzinfo is None:
            instant = instant.replace(tzinfo=timezone.utc)
        self.instant = instant

    def __call__(self) -> datetime:
        return self.instant
