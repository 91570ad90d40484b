"""Human-readable countdowns for quota reset times."""

from __future__ import annotations

from datetime import datetime, timezone

from usage_pace.usage.models import parse_timestamp


def _plural(count: int, unit: str) -> str:
    return f"{count} {unit}{'' if count == 1 else 's'}"


def format_relative(target: datetime | str, now: datetime | None = None) -> str:
    """Format the time until ``target`` as e.g. ``"in 1h 30m"`` or ``"in 2 days"``.

    ``target`` may be the raw wire string; if it cannot be parsed it is
    returned unchanged.
    """
    if isinstance(target, str):
        parsed = parse_timestamp(target)
        if parsed is None:
            return target
        target = parsed
    if target.tzinfo is None:
        target = target.replace(tzinfo=timezone.utc)

    current = now or datetime.now(timezone.utc)
    if current.tzinfo is None:
        current = current.replace(tzinfo=timezone.utc)

    seconds = (target - current).total_seconds()
    if seconds <= 0:
        return "soon"

    hours = int(seconds // 3600)
    minutes = int((seconds % 3600) // 60)

    if hours > 24:
        return f"in {_plural(hours // 24, 'day')}"
    if hours > 0:
        if minutes > 0:
            return f"in {hours}h {minutes}m"
        return f"in {_plural(hours, 'hour')}"
    if minutes > 0:
        return f"in {_plural(minutes, 'min')}"
    return "in < 1 min"
