"""Usage pace evaluation.

Raw utilization is a poor proxy for risk: 40% used with 90% of the window
gone is behind pace, while 40% used after 10% of the window is alarming.
The evaluator compares utilization against a linear projection of the
window instead, and falls back to absolute thresholds when the reset time
cannot be used.
"""

from __future__ import annotations

import math
from dataclasses import dataclass
from datetime import datetime, timedelta, timezone

from usage_pace.usage.models import QuotaLimit, Status

# Absolute thresholds used when the reset time is unusable.
FALLBACK_CRITICAL_PERCENT = 80.0
FALLBACK_WARNING_PERCENT = 50.0

# Allowed overshoot of the expected consumption before the pace is critical.
PACE_TOLERANCE_PERCENT = 10.0


@dataclass(frozen=True)
class PaceResult:
    """Outcome of one pace evaluation."""

    status: Status
    display_percent: int
    expected_percent: float | None = None   # None when the fallback was used

    @property
    def used_fallback(self) -> bool:
        return self.expected_percent is None


def _as_utc(value: datetime) -> datetime:
    if value.tzinfo is None:
        return value.replace(tzinfo=timezone.utc)
    return value


def classify_absolute(utilization: float) -> Status:
    """Classify utilization without timing information."""
    if utilization >= FALLBACK_CRITICAL_PERCENT:
        return Status.SIGNIFICANTLY_OVER
    if utilization >= FALLBACK_WARNING_PERCENT:
        return Status.SLIGHTLY_OVER
    return Status.ON_TRACK


def classify_pace(utilization: float, expected_percent: float) -> Status:
    """Classify utilization against the expected consumption so far."""
    if utilization < expected_percent:
        return Status.ON_TRACK
    if utilization <= expected_percent + PACE_TOLERANCE_PERCENT:
        return Status.SLIGHTLY_OVER
    return Status.SIGNIFICANTLY_OVER


def expected_consumption(
    reset_time: datetime | None,
    window: timedelta,
    now: datetime,
) -> float | None:
    """Return the linearly expected utilization, or None if timing is unusable."""
    if reset_time is None or window <= timedelta(0):
        return None
    remaining = _as_utc(reset_time) - _as_utc(now)
    if remaining <= timedelta(0) or remaining > window:
        return None
    elapsed = window - remaining
    return elapsed / window * 100.0


def evaluate(
    limit: QuotaLimit,
    window: timedelta,
    now: datetime | None = None,
) -> PaceResult:
    """Evaluate ``limit`` against the pace expected for a ``window``-long cycle.

    Never raises: malformed timing degrades to the absolute thresholds and a
    non-finite utilization yields ``Status.UNKNOWN``.
    """
    utilization = limit.utilization
    if not math.isfinite(utilization):
        return PaceResult(status=Status.UNKNOWN, display_percent=0)

    current = now or datetime.now(timezone.utc)
    display = int(round(utilization))
    expected = expected_consumption(limit.reset_time, window, current)
    if expected is None:
        return PaceResult(status=classify_absolute(utilization), display_percent=display)

    return PaceResult(
        status=classify_pace(utilization, expected),
        display_percent=display,
        expected_percent=expected,
    )
