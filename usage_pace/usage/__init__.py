"""Quota usage models, pace evaluation and the background monitor."""

from usage_pace.usage.models import MetricKind, QuotaLimit, QuotaSnapshot, Status
from usage_pace.usage.monitor import MetricLine, UsageMonitor, UsageStatus
from usage_pace.usage.pace import PaceResult, evaluate
from usage_pace.usage.relative_time import format_relative

__all__ = [
    "MetricKind",
    "MetricLine",
    "PaceResult",
    "QuotaLimit",
    "QuotaSnapshot",
    "Status",
    "UsageMonitor",
    "UsageStatus",
    "evaluate",
    "format_relative",
]
