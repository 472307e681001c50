"""Event handlers subscribed to the runtime's event bus."""

from .logging_handler import LoggingEventHandler
from .metrics_handler import MetricsEventHandler

__all__ = [
    "LoggingEventHandler",
    "MetricsEventHandler",
]
