"""Usage data models for quota pace monitoring."""

from __future__ import annotations

import re
from datetime import datetime, timedelta, timezone
from enum import Enum

from pydantic import BaseModel, ConfigDict, TypeAdapter, ValidationError

_DATETIME = TypeAdapter(datetime)

# Calendar date and clock time are both required; bare epochs and dates are rejected.
_ISO_DATETIME_RE = re.compile(
    r"^\d{4}-\d{2}-\d{2}[T ]\d{2}:\d{2}(:\d{2}(\.\d+)?)?(Z|[+-]\d{2}:?\d{2})?$",
    re.IGNORECASE,
)


def parse_timestamp(value: str | None) -> datetime | None:
    """Parse an ISO-8601 timestamp; return None when it is missing or malformed.

    Naive values are assumed to be UTC.
    """
    if not value or not _ISO_DATETIME_RE.match(value.strip()):
        return None
    try:
        parsed = _DATETIME.validate_python(value.strip())
    except ValidationError:
        return None
    if parsed.tzinfo is None:
        parsed = parsed.replace(tzinfo=timezone.utc)
    return parsed


class MetricKind(str, Enum):
    """Usage metrics reported by the quota endpoint.

    The value is the snapshot slot the metric is read from.
    """

    FIVE_HOUR = "five_hour"
    SEVEN_DAY_ALL = "seven_day"
    SEVEN_DAY_SONNET = "seven_day_sonnet"
    SEVEN_DAY_OPUS = "seven_day_opus"   # display-only

    @property
    def window(self) -> timedelta:
        """Length of the reset cycle for this metric."""
        if self is MetricKind.FIVE_HOUR:
            return timedelta(hours=5)
        return timedelta(days=7)

    @property
    def display_name(self) -> str:
        return _DISPLAY_NAMES[self]

    @property
    def selectable(self) -> bool:
        return self is not MetricKind.SEVEN_DAY_OPUS

    @classmethod
    def parse(cls, raw: str) -> "MetricKind":
        """Resolve a slot key, enum name or display name (case-insensitive)."""
        key = (raw or "").strip().lower()
        for kind in cls:
            if key in (kind.value, kind.name.lower(), kind.display_name.lower()):
                return kind
        choices = ", ".join(k.value for k in SELECTABLE_METRICS)
        raise ValueError(f"Unknown metric '{raw}'. Expected one of: {choices}")


_DISPLAY_NAMES = {
    MetricKind.FIVE_HOUR: "5-hour Limit",
    MetricKind.SEVEN_DAY_ALL: "7-day Limit (All Models)",
    MetricKind.SEVEN_DAY_SONNET: "7-day Limit (Sonnet)",
    MetricKind.SEVEN_DAY_OPUS: "7-day Limit (Opus)",
}

SELECTABLE_METRICS: tuple[MetricKind, ...] = tuple(k for k in MetricKind if k.selectable)
DEFAULT_METRIC = MetricKind.SEVEN_DAY_ALL

# Menu order for the per-slot reset lines.
DISPLAY_ORDER: tuple[MetricKind, ...] = (
    MetricKind.FIVE_HOUR,
    MetricKind.SEVEN_DAY_ALL,
    MetricKind.SEVEN_DAY_SONNET,
    MetricKind.SEVEN_DAY_OPUS,
)


class Status(str, Enum):
    """Pace classification for one metric."""

    ON_TRACK = "on_track"
    SLIGHTLY_OVER = "slightly_over"
    SIGNIFICANTLY_OVER = "significantly_over"
    UNKNOWN = "unknown"


class QuotaLimit(BaseModel):
    """Utilization and reset time of a single quota window.

    ``resets_at`` keeps the raw wire string so a malformed value can still
    be shown verbatim; ``reset_time`` is the parsed form.
    """

    model_config = ConfigDict(frozen=True)

    utilization: float
    resets_at: str | None = None

    @property
    def reset_time(self) -> datetime | None:
        return parse_timestamp(self.resets_at)


class QuotaSnapshot(BaseModel):
    """One fetched set of per-metric quota readings."""

    model_config = ConfigDict(frozen=True, extra="ignore")

    five_hour: QuotaLimit | None = None
    seven_day: QuotaLimit | None = None
    seven_day_oauth_apps: QuotaLimit | None = None
    seven_day_opus: QuotaLimit | None = None
    seven_day_sonnet: QuotaLimit | None = None
    iguana_necktie: QuotaLimit | None = None
    extra_usage: QuotaLimit | None = None

    def limit_for(self, kind: MetricKind) -> QuotaLimit | None:
        """Return the reading for ``kind`` or None if it was not reported."""
        return getattr(self, kind.value)

    def reported(self) -> dict[str, QuotaLimit]:
        """Return every slot present in this fetch, keyed by wire name."""
        return {name: value for name, value in self if isinstance(value, QuotaLimit)}
