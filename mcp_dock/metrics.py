"""Prometheus metrics.

Each Runtime owns a DockMetrics instance with its own CollectorRegistry, so
several runtimes (e.g. in tests) never collide on metric names.
"""

from typing import Optional

from prometheus_client import CollectorRegistry, Counter, Gauge, generate_latest, Histogram

CONTENT_TYPE = "text/plain; version=0.0.4; charset=utf-8"


class DockMetrics:
    """Counters, gauges and histograms describing the registry."""

    def __init__(self, registry: Optional[CollectorRegistry] = None):
        self.registry = registry or CollectorRegistry()

        self.state_transitions = Counter(
            "mcp_dock_state_transitions_total",
            "Server state transitions",
            ["server", "from_state", "to_state"],
            registry=self.registry,
        )
        self.start_failures = Counter(
            "mcp_dock_start_failures_total",
            "Start/connect attempts that ended in the error state",
            ["server", "timed_out"],
            registry=self.registry,
        )
        self.tool_calls = Counter(
            "mcp_dock_tool_calls_total",
            "Recorded tool calls",
            ["server", "tool", "outcome"],
            registry=self.registry,
        )
        self.tool_call_duration = Histogram(
            "mcp_dock_tool_call_duration_seconds",
            "Tool call response time",
            ["server"],
            buckets=(0.01, 0.05, 0.1, 0.25, 0.5, 1.0, 2.5, 5.0, 10.0, 30.0),
            registry=self.registry,
        )
        self.health_checks = Counter(
            "mcp_dock_health_checks_total",
            "Health check outcomes",
            ["server", "outcome"],
            registry=self.registry,
        )
        self.servers_total = Gauge("mcp_dock_servers", "Registered servers", registry=self.registry)
        self.servers_active = Gauge("mcp_dock_servers_active", "Servers in the active state", registry=self.registry)
        self.success_rate = Gauge(
            "mcp_dock_success_rate_percent",
            "Mean per-server tool call success rate",
            registry=self.registry,
        )

    def render(self) -> bytes:
        """Exposition-format snapshot of every metric."""
        return generate_latest(self.registry)
