"""Tests for the command bus, event bus and event handlers."""

import logging
from unittest.mock import Mock, patch

import pytest

from mcp_dock.application.commands import (
    CallToolCommand,
    ControlServerCommand,
    HealthCheckCommand,
    ResetServerCommand,
    StartServerCommand,
)
from mcp_dock.application.event_handlers import LoggingEventHandler, MetricsEventHandler
from mcp_dock.application.event_handlers.logging_handler import _snake
from mcp_dock.domain.events import (
    HealthCheckFailed,
    ServerStartFailed,
    ServerStateChanged,
    ToolCallRecorded,
)
from mcp_dock.domain.exceptions import InvalidActionError, ServerNotFoundError
from mcp_dock.infrastructure.command_bus import CommandBus, CommandHandler
from mcp_dock.infrastructure.event_bus import EventBus
from mcp_dock.metrics import DockMetrics


class TestCommandBus:
    """Tests for CommandBus dispatch."""

    def test_routes_to_registered_handler(self):
        bus = CommandBus()
        handler = Mock(spec=CommandHandler)
        handler.handle.return_value = {"ok": True}
        bus.register(StartServerCommand, handler)

        assert bus.send(StartServerCommand(server_id="a")) == {"ok": True}
        assert bus.has_handler(StartServerCommand)

    def test_duplicate_registration_rejected(self):
        bus = CommandBus()
        bus.register(StartServerCommand, Mock(spec=CommandHandler))

        with pytest.raises(ValueError):
            bus.register(StartServerCommand, Mock(spec=CommandHandler))

    def test_missing_handler(self):
        with pytest.raises(ValueError):
            CommandBus().send(StartServerCommand(server_id="a"))


class TestLifecycleCommands:
    """Tests for the lifecycle command handlers wired by the runtime."""

    def test_control_start_and_stop(self, runtime):
        started = runtime.command_bus.send(ControlServerCommand(server_id="alpha", action="start"))
        stopped = runtime.command_bus.send(ControlServerCommand(server_id="alpha", action="stop"))

        assert started["success"] is True
        assert started["serverId"] == "alpha"
        assert started["status"] == "active"
        assert stopped["status"] == "inactive"

    def test_control_validates_action_before_server(self, runtime):
        with pytest.raises(InvalidActionError):
            runtime.command_bus.send(ControlServerCommand(server_id="ghost", action="restart"))

    def test_control_unknown_server(self, runtime):
        with pytest.raises(ServerNotFoundError):
            runtime.command_bus.send(ControlServerCommand(server_id="ghost", action="start"))

    def test_health_check_single_and_all(self, runtime):
        runtime.command_bus.send(StartServerCommand(server_id="alpha"))

        assert runtime.command_bus.send(HealthCheckCommand(server_id="alpha")) == {"alpha": True}
        assert runtime.command_bus.send(HealthCheckCommand()) == {"alpha": True}

    def test_reset_and_call_tool(self, runtime):
        runtime.command_bus.send(StartServerCommand(server_id="beta"))

        called = runtime.command_bus.send(CallToolCommand(server_id="beta", tool_name="query"))
        reset = runtime.command_bus.send(ResetServerCommand(server_id="beta"))

        assert called["success"] is True
        assert reset["success"] is False


class TestEventBus:
    """Tests for EventBus delivery."""

    def test_type_subscribers_then_global_subscribers(self):
        bus = EventBus()
        seen = []
        bus.subscribe_to_all(lambda e: seen.append("all"))
        bus.subscribe(ServerStateChanged, lambda e: seen.append("typed"))

        bus.publish(ServerStateChanged(server_id="a", old_state="inactive", new_state="connecting"))
        bus.publish(HealthCheckFailed(server_id="a", error_message="x"))

        assert seen == ["typed", "all", "all"]

    def test_failing_handler_does_not_stop_delivery(self):
        bus = EventBus()
        seen = []
        errors = []

        def broken(event):
            raise RuntimeError("handler bug")

        bus.subscribe_to_all(broken)
        bus.subscribe_to_all(seen.append)
        bus.on_error(lambda exc, event: errors.append(str(exc)))

        event = HealthCheckFailed(server_id="a", error_message="x")
        bus.publish(event)

        assert seen == [event]
        assert errors == ["handler bug"]

    def test_unsubscribe_and_clear(self):
        bus = EventBus()
        handler = Mock()
        bus.subscribe(ServerStateChanged, handler)
        bus.unsubscribe(ServerStateChanged, handler)
        bus.subscribe_to_all(handler)
        bus.clear()

        bus.publish(ServerStateChanged(server_id="a", old_state="inactive", new_state="connecting"))

        handler.assert_not_called()

    def test_events_carry_identity(self):
        event = ToolCallRecorded(server_id="a", tool_name="ping", success=True, response_time_ms=1.0)

        data = event.to_dict()

        assert data["event_type"] == "ToolCallRecorded"
        assert data["event_id"]
        assert data["occurred_at"] > 0


class TestLoggingEventHandler:
    """Tests for LoggingEventHandler."""

    def test_snake_case_event_names(self):
        assert _snake("ServerStartFailed") == "server_start_failed"

    def test_failures_logged_as_warning(self):
        handler = LoggingEventHandler()

        assert handler.level_for(ServerStartFailed(server_id="a", error_message="x")) == logging.WARNING
        assert handler.level_for(ToolCallRecorded("a", "t", False, 1.0)) == logging.WARNING
        assert handler.level_for(ToolCallRecorded("a", "t", True, 1.0)) == logging.DEBUG

    def test_logs_event_fields(self):
        handler = LoggingEventHandler()
        event = ServerStartFailed(server_id="a", error_message="refused")

        with patch("mcp_dock.application.event_handlers.logging_handler.logger") as logger:
            handler.handle(event)

        level, name = logger.log.call_args.args
        assert level == logging.WARNING
        assert name == "event_server_start_failed"
        assert logger.log.call_args.kwargs["server_id"] == "a"
        assert logger.log.call_args.kwargs["error_message"] == "refused"


class TestMetricsEventHandler:
    """Tests for MetricsEventHandler."""

    def test_counts_transitions_and_calls(self):
        metrics = DockMetrics()
        handler = MetricsEventHandler(metrics)

        handler.handle(ServerStateChanged(server_id="a", old_state="inactive", new_state="connecting"))
        handler.handle(ToolCallRecorded(server_id="a", tool_name="ping", success=False, response_time_ms=250.0))
        handler.handle(ServerStartFailed(server_id="a", error_message="x", timed_out=True))

        registry = metrics.registry
        assert (
            registry.get_sample_value(
                "mcp_dock_state_transitions_total",
                {"server": "a", "from_state": "inactive", "to_state": "connecting"},
            )
            == 1.0
        )
        assert (
            registry.get_sample_value(
                "mcp_dock_tool_calls_total",
                {"server": "a", "tool": "ping", "outcome": "failure"},
            )
            == 1.0
        )
        assert registry.get_sample_value("mcp_dock_tool_call_duration_seconds_count", {"server": "a"}) == 1.0
        assert registry.get_sample_value("mcp_dock_start_failures_total", {"server": "a", "timed_out": "true"}) == 1.0

    def test_runtime_feeds_metrics(self, runtime):
        runtime.controller.start("alpha")
        runtime.refresh_gauges()

        assert runtime.metrics.registry.get_sample_value("mcp_dock_servers_active") == 1.0
        assert runtime.metrics.registry.get_sample_value("mcp_dock_servers") == 3.0
        assert b"mcp_dock_state_transitions_total" in runtime.metrics.render()
