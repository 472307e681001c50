"""Configuration loading.

A config file is YAML with two optional sections::

    settings:
      connect_timeout_s: 10
      health_check_interval_s: 60
      connector_workers: 8
      retention:
        max_records_per_server: 1000
        max_age_s: 3600
      http:
        host: 0.0.0.0
        port: 8000
      logging:
        level: INFO
        json: true

    servers:
      brave-search:
        name: Brave Search
        category: web_search
        requires_api_key: true
        api_key_name: BRAVE_SEARCH_API_KEY
        config:
          base_url: https://api.search.brave.com/res/v1
          param_map: {query: q}
        tools:
          - name: web_search
            parameters: {type: object, properties: {query: {type: string}}, required: [query]}

Without a ``servers`` section the built-in catalog is used.
"""

from dataclasses import dataclass, field, replace
import os
from pathlib import Path
from typing import Any, Dict, List, Mapping, Optional

import yaml

from .domain.exceptions import ConfigurationError, ValidationError
from .domain.model import ServerDescriptor, ToolDescriptor
from .domain.value_objects import RetentionPolicy, ServerCategory
from .logging_config import get_logger

logger = get_logger(__name__)


@dataclass(frozen=True)
class DockSettings:
    """Runtime settings.

    Attributes:
        connect_timeout_s: Bound for connect/disconnect/health-check calls.
        call_timeout_s: Bound for tool invocations.
        health_check_interval_s: Interval of the background health checker (0 disables).
        prune_interval_s: Interval of the background ledger pruning (0 disables).
        connector_workers: Threads available for connector calls.
        retention: Call ledger retention policy.
        host: HTTP bind host.
        port: HTTP bind port.
        log_level: Root log level name.
        json_logs: Emit JSON log lines instead of console output.
        log_file: Optional extra log file.
    """

    connect_timeout_s: float = 10.0
    call_timeout_s: float = 30.0
    health_check_interval_s: float = 60.0
    prune_interval_s: float = 300.0
    connector_workers: int = 8
    retention: RetentionPolicy = field(default_factory=RetentionPolicy)
    host: str = "0.0.0.0"
    port: int = 8000
    log_level: str = "INFO"
    json_logs: bool = True
    log_file: Optional[str] = None

    def __post_init__(self) -> None:
        if self.connect_timeout_s <= 0:
            raise ConfigurationError("connect_timeout_s must be positive")
        if self.call_timeout_s <= 0:
            raise ConfigurationError("call_timeout_s must be positive")
        if self.health_check_interval_s < 0:
            raise ConfigurationError("health_check_interval_s cannot be negative")
        if self.prune_interval_s < 0:
            raise ConfigurationError("prune_interval_s cannot be negative")
        if self.connector_workers <= 0:
            raise ConfigurationError("connector_workers must be positive")
        if not 0 < self.port < 65536:
            raise ConfigurationError(f"port out of range: {self.port}")

    @classmethod
    def from_dict(cls, data: Optional[Mapping[str, Any]]) -> "DockSettings":
        """
        Build settings from the ``settings`` section.

        Raises:
            ConfigurationError: If a value is invalid
        """
        if not data:
            return cls()

        http = data.get("http") or {}
        log = data.get("logging") or {}
        try:
            retention = RetentionPolicy.from_dict(data.get("retention"))
            return cls(
                connect_timeout_s=float(data.get("connect_timeout_s", 10.0)),
                call_timeout_s=float(data.get("call_timeout_s", 30.0)),
                health_check_interval_s=float(data.get("health_check_interval_s", 60.0)),
                prune_interval_s=float(data.get("prune_interval_s", 300.0)),
                connector_workers=int(data.get("connector_workers", 8)),
                retention=retention,
                host=str(http.get("host", "0.0.0.0")),
                port=int(http.get("port", 8000)),
                log_level=str(log.get("level", "INFO")).upper(),
                json_logs=bool(log.get("json", True)),
                log_file=log.get("file"),
            )
        except (TypeError, ValueError) as e:
            raise ConfigurationError(f"Invalid settings: {e}") from e

    def with_env_overrides(self, env: Mapping[str, str]) -> "DockSettings":
        """Apply MCP_DOCK_* environment overrides."""
        changes: Dict[str, Any] = {}
        try:
            if "MCP_DOCK_CONNECT_TIMEOUT" in env:
                changes["connect_timeout_s"] = float(env["MCP_DOCK_CONNECT_TIMEOUT"])
            if "MCP_DOCK_PORT" in env:
                changes["port"] = int(env["MCP_DOCK_PORT"])
        except ValueError as e:
            raise ConfigurationError(f"Invalid environment override: {e}") from e
        if "MCP_DOCK_HOST" in env:
            changes["host"] = env["MCP_DOCK_HOST"]
        if "MCP_DOCK_LOG_LEVEL" in env:
            changes["log_level"] = env["MCP_DOCK_LOG_LEVEL"].upper()
        return replace(self, **changes) if changes else self


@dataclass(frozen=True)
class DockConfig:
    """Parsed configuration: settings plus the server catalog."""

    settings: DockSettings
    servers: List[ServerDescriptor]


def default_servers() -> List[ServerDescriptor]:
    """Built-in catalog used when no ``servers`` section is configured."""
    return [
        ServerDescriptor(
            id="brave-search",
            name="Brave Search",
            description="Web search capabilities using Brave Search API",
            category=ServerCategory.WEB_SEARCH,
            requires_api_key=True,
            api_key_name="BRAVE_SEARCH_API_KEY",
            config={
                "base_url": "https://api.search.brave.com/res/v1",
                "api_key_header": "X-Subscription-Token",
                "health_path": "/web/search",
                "health_params": {"q": "test"},
                "tool_paths": {"web_search": "/web/search", "news_search": "/news/search"},
                "param_map": {"query": "q"},
            },
            tools=(
                ToolDescriptor(
                    name="web_search",
                    description="Search the web for information on any topic",
                    parameters={
                        "type": "object",
                        "properties": {
                            "query": {"type": "string", "description": "The search query to execute"},
                            "count": {
                                "type": "number",
                                "description": "Number of results to return (default: 10, max: 20)",
                                "minimum": 1,
                                "maximum": 20,
                            },
                            "offset": {"type": "number", "description": "Offset for pagination", "minimum": 0},
                        },
                        "required": ["query"],
                    },
                ),
                ToolDescriptor(
                    name="news_search",
                    description="Search for recent news articles",
                    parameters={
                        "type": "object",
                        "properties": {"query": {"type": "string"}},
                        "required": ["query"],
                    },
                ),
            ),
        ),
        ServerDescriptor(
            id="file-system",
            name="File System",
            description="Local file operations and management",
            category=ServerCategory.FILE_SYSTEM,
            config={"root": "./data/mcp-files"},
            tools=(
                ToolDescriptor(
                    name="read_file",
                    description="Read file contents",
                    parameters={"type": "object", "properties": {"path": {"type": "string"}}, "required": ["path"]},
                ),
                ToolDescriptor(
                    name="write_file",
                    description="Write file contents",
                    parameters={
                        "type": "object",
                        "properties": {"path": {"type": "string"}, "content": {"type": "string"}},
                        "required": ["path", "content"],
                    },
                ),
                ToolDescriptor(
                    name="list_directory",
                    description="List directory contents",
                    parameters={"type": "object", "properties": {"path": {"type": "string"}}},
                ),
                ToolDescriptor(
                    name="create_directory",
                    description="Create new directories",
                    parameters={"type": "object", "properties": {"path": {"type": "string"}}, "required": ["path"]},
                ),
            ),
        ),
        ServerDescriptor(
            id="github",
            name="GitHub",
            description="GitHub repository management and operations",
            category=ServerCategory.API,
            requires_api_key=True,
            api_key_name="GITHUB_API_KEY",
            config={
                "base_url": "https://api.github.com",
                "health_path": "/user",
                "tool_paths": {"list_repos": "/user/repos"},
            },
            tools=(
                ToolDescriptor(
                    name="list_repos",
                    description="List user repositories",
                    parameters={"type": "object", "properties": {"per_page": {"type": "number"}}},
                ),
            ),
        ),
    ]


def parse_servers(data: Mapping[str, Any]) -> List[ServerDescriptor]:
    """
    Build descriptors from the ``servers`` section.

    Raises:
        ConfigurationError: If an entry is malformed
    """
    servers = []
    for server_id, spec in data.items():
        if not isinstance(spec, Mapping):
            raise ConfigurationError(f"Server {server_id}: expected a mapping, got {type(spec).__name__}")
        try:
            servers.append(ServerDescriptor.from_dict(str(server_id), spec))
        except ValidationError as e:
            raise ConfigurationError(f"Server {server_id}: {e.message}", e.details) from e
    return servers


def parse_config(data: Optional[Mapping[str, Any]], env: Optional[Mapping[str, str]] = None) -> DockConfig:
    """Turn a raw config mapping into DockConfig, applying env overrides."""
    data = data or {}
    if not isinstance(data, Mapping):
        raise ConfigurationError("Configuration root must be a mapping")

    settings = DockSettings.from_dict(data.get("settings")).with_env_overrides(env if env is not None else os.environ)

    raw_servers = data.get("servers")
    if raw_servers is None:
        servers = default_servers()
    elif isinstance(raw_servers, Mapping):
        servers = parse_servers(raw_servers)
    else:
        raise ConfigurationError("'servers' must be a mapping of server id to definition")

    return DockConfig(settings=settings, servers=servers)


def load_config_from_file(config_path: str) -> Dict[str, Any]:
    """
    Load a YAML configuration file.

    Raises:
        FileNotFoundError: If the file does not exist
        ConfigurationError: If the file is not valid YAML or not a mapping
    """
    path = Path(config_path)
    if not path.exists():
        raise FileNotFoundError(f"Configuration file not found: {config_path}")

    with open(path, "r", encoding="utf-8") as f:
        try:
            config = yaml.safe_load(f)
        except yaml.YAMLError as e:
            raise ConfigurationError(f"Invalid YAML in {config_path}: {e}") from e

    if config is None:
        return {}
    if not isinstance(config, dict):
        raise ConfigurationError(f"Invalid configuration in {config_path}: expected a mapping")

    logger.info("config_loaded", path=str(path), sections=sorted(config.keys()))
    return config


def load_configuration(config_path: Optional[str] = None, env: Optional[Mapping[str, str]] = None) -> DockConfig:
    """Load and parse configuration; the built-in defaults apply when no path is given."""
    raw = load_config_from_file(config_path) if config_path else {}
    return parse_config(raw, env)
