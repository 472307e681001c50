"""Application layer: lifecycle control, statistics, commands and event handlers."""

from .lifecycle import LifecycleController, LifecycleResult, ToolCallResult
from .stats import ServerStats, StatsAggregator, ToolUsage

__all__ = [
    "LifecycleController",
    "LifecycleResult",
    "ServerStats",
    "StatsAggregator",
    "ToolCallResult",
    "ToolUsage",
]
