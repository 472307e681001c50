"""Bootstrap helpers for wiring runtime dependencies.

This module centralizes object graph creation so that the rest of the
codebase can avoid module-level singletons and implicit globals.

It returns plain objects without starting any background threads; see
``mcp_dock.workers`` for those.
"""

from __future__ import annotations

from dataclasses import dataclass
import logging
import os
from typing import Iterable, Mapping, Optional

from ..application.commands import register_all_handlers
from ..application.event_handlers import LoggingEventHandler, MetricsEventHandler
from ..application.lifecycle import LifecycleController
from ..application.stats import StatsAggregator
from ..config import DockSettings, default_servers
from ..domain.events import ServerRegistered
from ..domain.ledger import CallLedger
from ..domain.model import ServerDescriptor
from ..domain.registry import ServerRegistry
from ..domain.tracker import ConnectionTracker
from ..infrastructure.command_bus import CommandBus
from ..infrastructure.connectors import ConnectorResolver, default_resolver
from ..infrastructure.event_bus import EventBus
from ..logging_config import get_logger
from ..metrics import DockMetrics

logger = get_logger(__name__)


@dataclass(frozen=True)
class Runtime:
    """Container for runtime dependencies."""

    settings: DockSettings
    registry: ServerRegistry
    tracker: ConnectionTracker
    ledger: CallLedger
    controller: LifecycleController
    stats: StatsAggregator
    event_bus: EventBus
    command_bus: CommandBus
    metrics: DockMetrics
    connectors: ConnectorResolver

    def refresh_gauges(self) -> None:
        """Sync gauge metrics with the current registry statistics."""
        stats = self.stats.compute_server_stats()
        self.metrics.servers_total.set(stats.total_servers)
        self.metrics.servers_active.set(stats.active_servers)
        self.metrics.success_rate.set(stats.success_rate)

    def shutdown(self) -> None:
        """Stop every active server and release the connector pool."""
        for server_id, state in self.tracker.snapshot().items():
            if state.is_active:
                self.controller.stop(server_id)
        self.controller.shutdown()
        logger.info("runtime_shutdown", servers=len(self.registry))


def create_runtime(
    *,
    settings: Optional[DockSettings] = None,
    servers: Optional[Iterable[ServerDescriptor]] = None,
    env: Optional[Mapping[str, str]] = None,
    connectors: Optional[ConnectorResolver] = None,
    event_bus: Optional[EventBus] = None,
    command_bus: Optional[CommandBus] = None,
    metrics: Optional[DockMetrics] = None,
) -> Runtime:
    """Create runtime dependencies explicitly.

    Args:
        settings: Runtime settings (defaults apply when omitted).
        servers: Server catalog; the built-in catalog when omitted.
        env: Mapping API keys are read from (defaults to os.environ).
        connectors: Connector resolver override (useful for tests).
        event_bus: Optional event bus override.
        command_bus: Optional command bus override.
        metrics: Optional metrics override.

    Returns:
        Runtime container.
    """
    settings = settings or DockSettings()
    env = env if env is not None else os.environ

    registry = ServerRegistry()
    tracker = ConnectionTracker()
    ledger = CallLedger(registry, policy=settings.retention)
    eb = event_bus or EventBus()
    cb = command_bus or CommandBus()
    dock_metrics = metrics or DockMetrics()
    resolver = connectors or default_resolver()

    eb.subscribe_to_all(LoggingEventHandler(log_level=logging.INFO).handle)
    eb.subscribe_to_all(MetricsEventHandler(dock_metrics).handle)

    controller = LifecycleController(
        registry,
        tracker,
        ledger,
        resolver,
        eb,
        connect_timeout_s=settings.connect_timeout_s,
        call_timeout_s=settings.call_timeout_s,
        env=env,
        max_workers=settings.connector_workers,
    )
    register_all_handlers(cb, controller)

    for server in default_servers() if servers is None else servers:
        registry.register(server)
        eb.publish(ServerRegistered(server_id=server.id, category=server.category.value, tools_count=len(server.tools)))

    runtime = Runtime(
        settings=settings,
        registry=registry,
        tracker=tracker,
        ledger=ledger,
        controller=controller,
        stats=StatsAggregator(registry, tracker, ledger),
        event_bus=eb,
        command_bus=cb,
        metrics=dock_metrics,
        connectors=resolver,
    )
    runtime.refresh_gauges()
    logger.info("runtime_created", servers=registry.ids())
    return runtime
