"""Shared fixtures: scripted connectors, server descriptors and runtimes."""

import threading
import time
from typing import Any, Dict, Mapping, Optional

import pytest

from mcp_dock.bootstrap.runtime import create_runtime
from mcp_dock.config import DockSettings
from mcp_dock.domain.contracts import ConnectResult, Connector
from mcp_dock.domain.exceptions import ToolCallError
from mcp_dock.domain.model import ServerDescriptor, ToolDescriptor
from mcp_dock.domain.value_objects import RetentionPolicy, ServerCategory
from mcp_dock.infrastructure.connectors import ConnectorResolver
from mcp_dock.metrics import DockMetrics


class ScriptedConnector(Connector):
    """Connector whose outcomes are set by the test."""

    def __init__(self):
        self.succeed = True
        self.message = ""
        self.raises: Optional[Exception] = None
        self.delay_s = 0.0
        self.healthy = True
        self.failing_tools: Dict[str, str] = {}
        self.connect_calls = []
        self.disconnect_calls = []
        self.tool_calls = []
        self.release = threading.Event()
        self.release.set()
        self.health_calls = []
        self.health_started = threading.Event()
        self.health_gate = threading.Event()
        self.health_gate.set()

    def connect(self, server: ServerDescriptor, credentials: Mapping[str, str]) -> ConnectResult:
        self.connect_calls.append((server.id, dict(credentials)))
        self.release.wait(timeout=5)
        if self.delay_s:
            time.sleep(self.delay_s)
        if self.raises is not None:
            raise self.raises
        return ConnectResult(success=self.succeed, message=self.message)

    def disconnect(self, server: ServerDescriptor, session_id: Optional[str]) -> None:
        self.disconnect_calls.append((server.id, session_id))

    def health_check(self, server: ServerDescriptor, credentials: Mapping[str, str]) -> bool:
        self.health_calls.append(server.id)
        self.health_started.set()
        self.health_gate.wait(timeout=5)
        return self.healthy

    def call_tool(
        self,
        server: ServerDescriptor,
        tool_name: str,
        arguments: Dict[str, Any],
        credentials: Mapping[str, str],
    ) -> Any:
        self.tool_calls.append((server.id, tool_name, dict(arguments)))
        if tool_name in self.failing_tools:
            raise ToolCallError(self.failing_tools[tool_name])
        return {"tool": tool_name, "arguments": arguments}


def make_server(
    server_id: str,
    category: ServerCategory = ServerCategory.CUSTOM,
    tools=("ping",),
    requires_api_key: bool = False,
    api_key_name: Optional[str] = None,
) -> ServerDescriptor:
    """Build a descriptor with simple tools; ``search`` requires ``q``."""
    descriptors = []
    for name in tools:
        params = {"type": "object", "properties": {}}
        if name == "search":
            params = {"type": "object", "properties": {"q": {"type": "string"}}, "required": ["q"]}
        descriptors.append(ToolDescriptor(name=name, description=f"{name} tool", parameters=params))
    return ServerDescriptor(
        id=server_id,
        name=server_id.title(),
        description=f"{server_id} server",
        category=category,
        requires_api_key=requires_api_key,
        api_key_name=api_key_name,
        tools=tuple(descriptors),
    )


def default_test_servers():
    return [
        make_server("alpha", ServerCategory.WEB_SEARCH, tools=("search", "ping")),
        make_server("beta", ServerCategory.DATABASE, tools=("query",)),
        make_server("keyed", ServerCategory.API, tools=("list_repos",), requires_api_key=True, api_key_name="KEYED_API_KEY"),
    ]


def scripted_resolver(connector: Connector) -> ConnectorResolver:
    return ConnectorResolver({category: connector for category in ServerCategory})


@pytest.fixture
def connector():
    """A scripted connector that succeeds by default."""
    return ScriptedConnector()


@pytest.fixture
def settings():
    """Settings with short timeouts for tests."""
    return DockSettings(
        connect_timeout_s=1.0,
        call_timeout_s=1.0,
        health_check_interval_s=0,
        prune_interval_s=0,
        retention=RetentionPolicy(max_records_per_server=1000),
    )


@pytest.fixture
def make_runtime(connector, settings):
    """Factory for runtimes wired to the scripted connector."""
    created = []

    def _make(servers=None, env=None, **overrides):
        runtime = create_runtime(
            settings=overrides.pop("settings", settings),
            servers=default_test_servers() if servers is None else servers,
            env={"KEYED_API_KEY": "secret"} if env is None else env,
            connectors=overrides.pop("connectors", scripted_resolver(connector)),
            metrics=DockMetrics(),
            **overrides,
        )
        created.append(runtime)
        return runtime

    yield _make

    for runtime in created:
        runtime.controller.shutdown()


@pytest.fixture
def runtime(make_runtime):
    """A fresh runtime with alpha, beta and keyed servers."""
    return make_runtime()


@pytest.fixture
def server_factory():
    """The make_server helper as a fixture."""
    return make_server
