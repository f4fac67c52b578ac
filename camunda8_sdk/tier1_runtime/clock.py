"""
camunda8_sdk.tier1_runtime.clock
──────────────────────────────────
Mockable time source. Token expiry checks read the time through a Clock so
tests can pin and move "now" without sleeping.

Minimal stack: stdlib time
"""
from __future__ import annotations

import time
from datetime import datetime, timezone
from typing import Callable


# ── Clock implementation ───────────────────────────────────────────────────

class Clock:
    """Epoch-seconds clock. Override _time_fn to control time in tests."""

    def __init__(self, time_fn: Callable[[], float] | None = None) -> None:
        self._time_fn = time_fn or time.time

    def timestamp(self) -> float:
        """Return the current Unix timestamp (float seconds)."""
        return self._time_fn()

    def timestamp_ms(self) -> int:
        """Return the current Unix timestamp in milliseconds."""
        return int(self.timestamp() * 1000)

    def now(self) -> datetime:
        """Return the current UTC datetime."""
        return datetime.fromtimestamp(self.timestamp(), tz=timezone.utc)

    def freeze(self, ts: float | None = None) -> "ManualClock":
        """Return a clock pinned at *ts* (defaults to the current time)."""
        return ManualClock(self.timestamp() if ts is None else ts)

    def advance(self, seconds: float) -> "Clock":
        """Return a new Clock running *seconds* ahead of this one."""
        return Clock(time_fn=lambda: self._time_fn() + seconds)


class ManualClock(Clock):
    """A clock that only moves when told to."""

    def __init__(self, start: float = 0.0) -> None:
        self._now = start
        super().__init__(time_fn=lambda: self._now)

    def tick(self, seconds: float) -> None:
        self._now += seconds

    def set(self, ts: float) -> None:
        self._now = ts


# ── Module-level singleton ─────────────────────────────────────────────────

_clock = Clock()


def get_clock() -> Clock:
    """Return the global clock instance."""
    return _clock


def set_clock(clock: Clock) -> None:
    """Replace the global clock (use in tests)."""
    global _clock
    _clock = clock


def timestamp_ms() -> int:
    return _clock.timestamp_ms()


__all__ = ["Clock", "ManualClock", "get_clock", "set_clock", "timestamp_ms"]
