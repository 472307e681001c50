"""Logging event handler - logs all domain events."""

import logging

from ...domain.events import (
    DomainEvent,
    HealthCheckFailed,
    HealthCheckPassed,
    LifecycleActionRejected,
    ServerRegistered,
    ServerStarted,
    ServerStartFailed,
    ServerStateChanged,
    ServerStopped,
    ToolCallRecorded,
)
from ...logging_config import get_logger

logger = get_logger(__name__)


class LoggingEventHandler:
    """
    Event handler that logs every domain event as a structured record.

    Provides the audit trail of lifecycle transitions and tool calls.
    """

    def __init__(self, log_level: int = logging.INFO):
        """
        Args:
            log_level: Level for events without a specific mapping
        """
        self.log_level = log_level

    def level_for(self, event: DomainEvent) -> int:
        if isinstance(event, (ServerStartFailed, HealthCheckFailed, LifecycleActionRejected)):
            return logging.WARNING
        if isinstance(event, ToolCallRecorded):
            return logging.DEBUG if event.success else logging.WARNING
        if isinstance(event, (ServerStarted, ServerStopped, ServerRegistered)):
            return logging.INFO
        if isinstance(event, (ServerStateChanged, HealthCheckPassed)):
            return logging.DEBUG
        return self.log_level

    def handle(self, event: DomainEvent) -> None:
        """Log ``event`` with its fields as keyword context."""
        fields = event.to_dict()
        event_type = fields.pop("event_type")
        logger.log(self.level_for(event), f"event_{_snake(event_type)}", **fields)


def _snake(name: str) -> str:
    out = []
    for i, ch in enumerate(name):
        if ch.isupper() and i:
            out.append("_")
        out.append(ch.lower())
    return "".join(out)
