"""Time source for session expiry bookkeeping."""
from __future__ import annotations

import dataclasses
from typing import Protocol

import whenever


class Clock(Protocol):
    def now(self) -> whenever.Instant: ...


@dataclasses.dataclass
class SystemClock:
    """Wall-clock time.

    The session manager only ever asks "what time is it", so swapping this
    for a manual clock makes expiry behavior deterministic in tests.
    """

    def now(self) -> whenever.Instant:
        return whenever.Instant.now()


@dataclasses.dataclass
class ManualClock:
    """A clock which only moves when told to."""

    current: whenever.Instant = dataclasses.field(
        default_factory=lambda: whenever.Instant.from_timestamp(1_700_000_000)
    )

    def now(self) -> whenever.Instant:
        return self.current

    def advance(self, seconds: float) -> whenever.Instant:
        self.current = self.current + whenever.TimeDelta(seconds=seconds)
        return self.current
