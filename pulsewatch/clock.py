"""Time sources.

The evaluator measures cooldowns on ``monotonic()`` so wall-clock
adjustments can never cause a rule to re-fire early or stay muted. Records
exposed to operators (sample and alert timestamps) use ``now()``.
"""

from __future__ import annotations

import time
from datetime import UTC, datetime
from typing import Protocol


class Clock(Protocol):
    def monotonic(self) -> float:
        """Seconds from an arbitrary, never-decreasing origin."""

    def now(self) -> datetime:
        """Timezone-aware UTC wall-clock time."""


class SystemClock:
    """Clock backed by ``time.monotonic`` and ``datetime.now(UTC)``."""

    def monotonic(self) -> float:
        return time.monotonic()

    def now(self) -> datetime:
        return datetime.now(tz=UTC)
