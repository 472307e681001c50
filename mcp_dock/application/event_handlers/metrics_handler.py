"""Metrics event handler - feeds Prometheus metrics from domain events."""

from ...domain.events import (
    DomainEvent,
    HealthCheckFailed,
    HealthCheckPassed,
    ServerStartFailed,
    ServerStateChanged,
    ToolCallRecorded,
)
from ...metrics import DockMetrics


class MetricsEventHandler:
    """Updates counters and histograms as events arrive."""

    def __init__(self, metrics: DockMetrics):
        self._metrics = metrics

    def handle(self, event: DomainEvent) -> None:
        m = self._metrics
        if isinstance(event, ServerStateChanged):
            m.state_transitions.labels(event.server_id, event.old_state, event.new_state).inc()
        elif isinstance(event, ServerStartFailed):
            m.start_failures.labels(event.server_id, str(event.timed_out).lower()).inc()
        elif isinstance(event, ToolCallRecorded):
            outcome = "success" if event.success else "failure"
            m.tool_calls.labels(event.server_id, event.tool_name, outcome).inc()
            m.tool_call_duration.labels(event.server_id).observe(event.response_time_ms / 1000)
        elif isinstance(event, HealthCheckPassed):
            m.health_checks.labels(event.server_id, "passed").inc()
        elif isinstance(event, HealthCheckFailed):
            m.health_checks.labels(event.server_id, "failed").inc()
