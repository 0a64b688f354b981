"""
Clock

Time source injected into the archive layer and the recording pipeline.
Can be real time or frozen for deterministic testing.
"""

from __future__ import annotations

from datetime import datetime, timedelta, timezone
from typing import Optional, Protocol


class Clock(Protocol):
    """Protocol for time source."""

    def now(self) -> datetime:
        """Get current UTC time."""
        ...


class RealClock:
    """Real-time clock implementation."""

    def now(self) -> datetime:
        return datetime.now(timezone.utc)


class FrozenClock:
    """
    Frozen clock for deterministic testing.

    Returns the same time until advanced.
    """

    def __init__(self, frozen_time: Optional[datetime] = None) -> None:
        self._time = frozen_time or datetime(2026, 1, 1, 0, 0, 0, tzinfo=timezone.utc)

    def now(self) -> datetime:
        return self._time

    def set_time(self, time: datetime) -> None:
        """Set the frozen time."""
        self._time = time

    def advance(self, *, seconds: float = 0.0, milliseconds: float = 0.0) -> None:
        self._time = self._time + timedelta(seconds=seconds, milliseconds=milliseconds)
