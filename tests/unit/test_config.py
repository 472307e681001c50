"""Tests for configuration loading."""

import pytest

from mcp_dock.config import (
    default_servers,
    DockSettings,
    load_config_from_file,
    load_configuration,
    parse_config,
)
from mcp_dock.domain.exceptions import ConfigurationError
from mcp_dock.domain.value_objects import ServerCategory

CONFIG_YAML = """
settings:
  connect_timeout_s: 5
  health_check_interval_s: 30
  retention:
    max_records_per_server: 50
    max_age_s: 3600
  http:
    host: 127.0.0.1
    port: 9000
  logging:
    level: debug
    json: false

servers:
  search:
    name: Search
    category: web_search
    requires_api_key: true
    api_key_name: SEARCH_KEY
    config:
      base_url: https://search.example
    tools:
      - name: web_search
        parameters:
          type: object
          properties:
            q: {type: string}
          required: [q]
  notes:
    category: file_system
    config:
      root: /tmp/notes
"""


class TestDockSettings:
    """Tests for DockSettings."""

    def test_defaults(self):
        settings = DockSettings()

        assert settings.connect_timeout_s == 10.0
        assert settings.retention.max_records_per_server == 1000
        assert settings.port == 8000

    @pytest.mark.parametrize(
        "data",
        [
            {"connect_timeout_s": 0},
            {"health_check_interval_s": -1},
            {"http": {"port": 70000}},
            {"connect_timeout_s": "soon"},
            {"retention": {"max_records_per_server": 0}},
            {"connector_workers": 0},
        ],
    )
    def test_invalid_values_raise_configuration_error(self, data):
        with pytest.raises(ConfigurationError):
            DockSettings.from_dict(data)

    def test_env_overrides(self):
        settings = DockSettings().with_env_overrides(
            {
                "MCP_DOCK_CONNECT_TIMEOUT": "2.5",
                "MCP_DOCK_PORT": "8123",
                "MCP_DOCK_HOST": "localhost",
                "MCP_DOCK_LOG_LEVEL": "warning",
            }
        )

        assert settings.connect_timeout_s == 2.5
        assert settings.port == 8123
        assert settings.host == "localhost"
        assert settings.log_level == "WARNING"

    def test_bad_env_override(self):
        with pytest.raises(ConfigurationError):
            DockSettings().with_env_overrides({"MCP_DOCK_PORT": "eighty"})


class TestLoadConfiguration:
    """Tests for YAML loading and parsing."""

    def test_full_file(self, tmp_path):
        path = tmp_path / "dock.yaml"
        path.write_text(CONFIG_YAML)

        config = load_configuration(str(path), env={})

        assert config.settings.connect_timeout_s == 5.0
        assert config.settings.retention.max_records_per_server == 50
        assert config.settings.retention.max_age_s == 3600
        assert config.settings.host == "127.0.0.1"
        assert config.settings.port == 9000
        assert config.settings.log_level == "DEBUG"
        assert config.settings.json_logs is False

        assert [s.id for s in config.servers] == ["search", "notes"]
        search = config.servers[0]
        assert search.category is ServerCategory.WEB_SEARCH
        assert search.api_key_name == "SEARCH_KEY"
        assert search.get_tool("web_search").required_parameters == ("q",)
        assert config.servers[1].name == "notes"

    def test_no_servers_section_uses_default_catalog(self):
        config = parse_config({"settings": {"connect_timeout_s": 3}}, env={})

        assert [s.id for s in config.servers] == ["brave-search", "file-system", "github"]

    def test_empty_servers_section_means_empty_catalog(self):
        assert parse_config({"servers": {}}, env={}).servers == []

    def test_no_path_gives_defaults(self):
        config = load_configuration(None, env={})

        assert config.settings == DockSettings()
        assert len(config.servers) == 3

    def test_missing_file(self, tmp_path):
        with pytest.raises(FileNotFoundError):
            load_config_from_file(str(tmp_path / "missing.yaml"))

    def test_invalid_yaml(self, tmp_path):
        path = tmp_path / "bad.yaml"
        path.write_text("servers: [unclosed")

        with pytest.raises(ConfigurationError):
            load_config_from_file(str(path))

    def test_non_mapping_root(self, tmp_path):
        path = tmp_path / "list.yaml"
        path.write_text("- a\n- b\n")

        with pytest.raises(ConfigurationError):
            load_config_from_file(str(path))

    def test_empty_file_is_empty_config(self, tmp_path):
        path = tmp_path / "empty.yaml"
        path.write_text("")

        assert load_config_from_file(str(path)) == {}

    def test_invalid_server_entry(self):
        with pytest.raises(ConfigurationError) as exc_info:
            parse_config({"servers": {"broken": {"category": "mainframe"}}}, env={})

        assert "broken" in exc_info.value.message

    def test_servers_must_be_mapping(self):
        with pytest.raises(ConfigurationError):
            parse_config({"servers": ["a", "b"]}, env={})


class TestDefaultCatalog:
    """Tests for the built-in server catalog."""

    def test_catalog_entries(self):
        servers = {s.id: s for s in default_servers()}

        assert servers["brave-search"].api_key_name == "BRAVE_SEARCH_API_KEY"
        assert servers["github"].api_key_name == "GITHUB_API_KEY"
        assert servers["brave-search"].get_tool("web_search").required_parameters == ("query",)
        assert servers["brave-search"].config["param_map"] == {"query": "q"}
        assert servers["file-system"].requires_api_key is False
        assert {t.name for t in servers["file-system"].tools} == {
            "read_file",
            "write_file",
            "list_directory",
            "create_directory",
        }
