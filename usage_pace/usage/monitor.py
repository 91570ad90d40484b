"""Background usage monitor – polls the quota endpoint and derives pace status.

Usage:
    monitor = UsageMonitor(fetch=client.fetch_usage, selected_metric=MetricKind.FIVE_HOUR)
    monitor.on_update = my_callback            # set before start()
    monitor.on_metric_selected = save_selected_metric
    await monitor.start()
    ...
    monitor.stop()

The monitor is the single owner of the latest snapshot and the selected
metric. Both are replaced under a lock; the derived status is recomputed
from them on every read and never cached.
"""

from __future__ import annotations

import asyncio
import threading
from dataclasses import dataclass
from datetime import datetime, timezone
from typing import Awaitable, Callable

from loguru import logger

from usage_pace.usage.models import (
    DEFAULT_METRIC,
    DISPLAY_ORDER,
    MetricKind,
    QuotaSnapshot,
    Status,
)
from usage_pace.usage.pace import evaluate
from usage_pace.usage.relative_time import format_relative


@dataclass(frozen=True)
class UsageStatus:
    """Derived status of the selected metric."""

    metric: MetricKind
    status: Status
    display_percent: int
    reset_text: str
    expected_percent: float | None = None


@dataclass(frozen=True)
class MetricLine:
    """One reported slot, as listed in the usage menu."""

    metric: MetricKind
    display_percent: int
    reset_text: str
    selected: bool


Fetcher = Callable[[], Awaitable[QuotaSnapshot]]
Clock = Callable[[], datetime]
OnStatusUpdate = Callable[["UsageStatus | None"], None]
OnMetricSelected = Callable[[MetricKind], None]


def _utc_now() -> datetime:
    return datetime.now(timezone.utc)


def _reset_text(resets_at: str | None, now: datetime) -> str:
    if not resets_at:
        return "unknown"
    return format_relative(resets_at, now)


def ensure_selectable(kind: MetricKind | str) -> MetricKind:
    """Coerce ``kind`` to a user-selectable metric or raise ``ValueError``."""
    metric = kind if isinstance(kind, MetricKind) else MetricKind.parse(kind)
    if not metric.selectable:
        raise ValueError(f"Metric '{metric.value}' is display-only and cannot be selected")
    return metric


class UsageMonitor:
    """Async background poller and pace-status state machine."""

    def __init__(
        self,
        fetch: Fetcher | None = None,
        selected_metric: MetricKind | str = DEFAULT_METRIC,
        interval_s: float = 300.0,
        clock: Clock | None = None,
    ) -> None:
        self.interval_s = interval_s

        # Callbacks – set these before calling start().
        self.on_update: OnStatusUpdate | None = None
        self.on_metric_selected: OnMetricSelected | None = None

        self._fetch = fetch
        self._clock = clock or _utc_now
        self._lock = threading.Lock()
        self._snapshot: QuotaSnapshot | None = None
        self._selected = ensure_selectable(selected_metric)
        self._last_error: str | None = None

        self._task: asyncio.Task | None = None
        self._running = False

    # ------------------------------------------------------------------
    # Public API
    # ------------------------------------------------------------------

    @property
    def latest_snapshot(self) -> QuotaSnapshot | None:
        return self._snapshot

    @property
    def selected_metric(self) -> MetricKind:
        return self._selected

    @property
    def last_error(self) -> str | None:
        """Message of the most recent failed fetch, cleared on success."""
        return self._last_error

    def snapshot_received(self, snapshot: QuotaSnapshot) -> None:
        """Replace the latest snapshot wholesale and publish the new status."""
        with self._lock:
            self._snapshot = snapshot
            self._last_error = None
        self._publish()

    def select_metric(self, kind: MetricKind | str) -> bool:
        """Switch the displayed metric.

        Returns False (and publishes nothing) when ``kind`` is already
        selected. Raises ``ValueError`` for the display-only Opus metric.
        """
        metric = ensure_selectable(kind)
        with self._lock:
            if metric is self._selected:
                return False
            self._selected = metric

        logger.debug(f"[usage] Selected metric {metric.value!r}")
        if self.on_metric_selected is not None:
            try:
                self.on_metric_selected(metric)
            except Exception as exc:
                logger.warning(f"[usage] on_metric_selected callback error: {exc}")
        self._publish()
        return True

    def current_status(self, now: datetime | None = None) -> UsageStatus | None:
        """Return the pace status of the selected metric, or None when there is no data."""
        with self._lock:
            snapshot = self._snapshot
            metric = self._selected
        if snapshot is None:
            return None
        limit = snapshot.limit_for(metric)
        if limit is None:
            return None

        current = now or self._clock()
        result = evaluate(limit, metric.window, current)
        return UsageStatus(
            metric=metric,
            status=result.status,
            display_percent=result.display_percent,
            reset_text=_reset_text(limit.resets_at, current),
            expected_percent=result.expected_percent,
        )

    def metric_lines(self, now: datetime | None = None) -> list[MetricLine]:
        """Return a line for every known slot present in the latest snapshot."""
        with self._lock:
            snapshot = self._snapshot
            selected = self._selected
        if snapshot is None:
            return []

        current = now or self._clock()
        lines: list[MetricLine] = []
        for metric in DISPLAY_ORDER:
            limit = snapshot.limit_for(metric)
            if limit is None:
                continue
            lines.append(
                MetricLine(
                    metric=metric,
                    display_percent=evaluate(limit, metric.window, current).display_percent,
                    reset_text=_reset_text(limit.resets_at, current),
                    selected=metric is selected,
                )
            )
        return lines

    async def refresh(self) -> bool:
        """Fetch once and apply the result; a failed fetch keeps the previous snapshot."""
        if self._fetch is None:
            logger.debug("[usage] refresh() called without a fetcher")
            return False
        try:
            snapshot = await self._fetch()
        except Exception as exc:
            with self._lock:
                self._last_error = str(exc)
            logger.warning(f"[usage] fetch failed: {exc}")
            self._publish()
            return False

        self.snapshot_received(snapshot)
        return True

    async def start(self) -> None:
        """Start the background polling task."""
        self._running = True
        self._task = asyncio.create_task(self._loop(), name="usage-monitor")
        logger.info(f"[usage] Monitor started, interval={self.interval_s}s")

    def stop(self) -> None:
        """Cancel the background task."""
        self._running = False
        if self._task:
            self._task.cancel()
            self._task = None

    # ------------------------------------------------------------------
    # Internals
    # ------------------------------------------------------------------

    async def _loop(self) -> None:
        # First fetch happens immediately on start.
        await self.refresh()
        while self._running:
            try:
                await asyncio.sleep(self.interval_s)
                if self._running:
                    await self.refresh()
            except asyncio.CancelledError:
                break
            except Exception as exc:
                logger.warning(f"[usage] Monitor loop error: {exc}")

    def _publish(self) -> None:
        if self.on_update is None:
            return
        try:
            self.on_update(self.current_status())
        except Exception as exc:
            logger.debug(f"[usage] on_update callback error: {exc}")
