"""Terminal rendering of the usage title and menu."""

from __future__ import annotations

from datetime import datetime

from rich.table import Table
from rich.text import Text

from usage_pace.usage.models import Status
from usage_pace.usage.monitor import UsageMonitor, UsageStatus

ICON_LOADING = "⏱️"
ICON_UNAVAILABLE = "❌"

STATUS_ICONS: dict[Status, str] = {
    Status.ON_TRACK: "✅",
    Status.SLIGHTLY_OVER: "⚠️",
    Status.SIGNIFICANTLY_OVER: "🚨",
    Status.UNKNOWN: "❔",
}

# Rich styles for colour coding, mirroring the icon severity.
STATUS_STYLES: dict[Status, str] = {
    Status.ON_TRACK: "green",
    Status.SLIGHTLY_OVER: "yellow",
    Status.SIGNIFICANTLY_OVER: "bold red",
    Status.UNKNOWN: "dim",
}


def status_icon(status: Status) -> str:
    return STATUS_ICONS.get(status, STATUS_ICONS[Status.UNKNOWN])


def title_text(
    status: UsageStatus | None,
    *,
    has_snapshot: bool,
    has_credentials: bool = True,
) -> str:
    """Return the compact indicator, e.g. ``"⚠️ 63%"``.

    No credentials or no data for the selected metric render as the
    unavailable marker; nothing fetched yet renders as the loading marker.
    """
    if not has_credentials:
        return ICON_UNAVAILABLE
    if not has_snapshot:
        return ICON_LOADING
    if status is None:
        return ICON_UNAVAILABLE
    return f"{status_icon(status.status)} {status.display_percent}%"


def monitor_title(
    monitor: UsageMonitor,
    now: datetime | None = None,
    *,
    has_credentials: bool = True,
) -> str:
    return title_text(
        monitor.current_status(now),
        has_snapshot=monitor.latest_snapshot is not None,
        has_credentials=has_credentials,
    )


def menu_lines(monitor: UsageMonitor, now: datetime | None = None) -> list[str]:
    """Plain-text menu: one usage line and one reset line per reported slot."""
    if monitor.latest_snapshot is None:
        return ["Loading..."]

    lines: list[str] = []
    for entry in monitor.metric_lines(now):
        marker = "●" if entry.selected else " "
        lines.append(f"{marker} {entry.display_percent}% {entry.metric.display_name}")
        lines.append(f"    Resets {entry.reset_text}")
    return lines


def usage_table(monitor: UsageMonitor, now: datetime | None = None) -> Table:
    """Rich table of every reported slot, selected metric highlighted."""
    status = monitor.current_status(now)
    title = title_text(status, has_snapshot=monitor.latest_snapshot is not None)
    table = Table(title=title, title_justify="left", show_edge=False)
    table.add_column("", width=1)
    table.add_column("Limit")
    table.add_column("Used", justify="right")
    table.add_column("Resets")

    if monitor.latest_snapshot is None:
        table.add_row("", Text("Loading...", style="dim"), "", "")
        return table

    for entry in monitor.metric_lines(now):
        style = ""
        if entry.selected and status is not None:
            style = STATUS_STYLES[status.status]
        table.add_row(
            "●" if entry.selected else "",
            entry.metric.display_name,
            Text(f"{entry.display_percent}%", style=style),
            entry.reset_text,
        )

    if status is None:
        table.add_row(
            "●",
            Text(f"{monitor.selected_metric.display_name}: unavailable", style="red"),
            "",
            "",
        )
    return table
