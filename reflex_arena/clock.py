from __future__ import annotations

import time
from typing import Protocol


class Clock(Protocol):
    """Time source for the Scheduler that drives countdown ticks and target deadlines.

    Tests pass a fake clock they advance by hand; a run then replays exactly.
    """

    def now(self) -> float:
        """Return monotonic seconds."""


class RealClock:
    """Wall-independent clock for live play, backed by time.monotonic()."""

    def now(self) -> float:
        return time.monotonic()
