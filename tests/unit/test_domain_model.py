"""Tests for value objects, descriptors and connection state."""

from datetime import timedelta

import pytest

from mcp_dock.domain.exceptions import InvalidActionError, ValidationError
from mcp_dock.domain.model import can_transition, ConnectionState, ServerDescriptor, ToolDescriptor
from mcp_dock.domain.value_objects import ControlAction, RetentionPolicy, ServerCategory, ServerStatus


class TestControlAction:
    """Tests for ControlAction parsing."""

    def test_parses_start_and_stop(self):
        """Should accept the two known actions."""
        assert ControlAction.parse("start") is ControlAction.START
        assert ControlAction.parse("stop") is ControlAction.STOP

    @pytest.mark.parametrize("raw", ["restart", "", None, "START"])
    def test_rejects_unknown_action(self, raw):
        """Anything outside the enum raises InvalidActionError."""
        with pytest.raises(InvalidActionError) as exc_info:
            ControlAction.parse(raw)

        assert exc_info.value.message == 'Invalid action. Use "start" or "stop"'


class TestRetentionPolicy:
    """Tests for RetentionPolicy validation."""

    def test_defaults_to_thousand_records_without_age_bound(self):
        policy = RetentionPolicy()

        assert policy.max_records_per_server == 1000
        assert policy.max_age is None

    def test_max_age_as_timedelta(self):
        assert RetentionPolicy(max_age_s=90).max_age == timedelta(seconds=90)

    @pytest.mark.parametrize("kwargs", [{"max_records_per_server": 0}, {"max_age_s": -1}])
    def test_rejects_non_positive_bounds(self, kwargs):
        with pytest.raises(ValueError):
            RetentionPolicy(**kwargs)

    def test_from_dict_explicit_null_disables_count_bound(self):
        """An explicit null disables the bound, a missing key keeps the default."""
        policy = RetentionPolicy.from_dict({"max_records_per_server": None, "max_age_s": 60})

        assert policy.max_records_per_server is None
        assert policy.max_age_s == 60
        assert RetentionPolicy.from_dict({}).max_records_per_server == 1000


class TestToolDescriptor:
    """Tests for ToolDescriptor."""

    def test_missing_arguments_lists_absent_required_parameters(self):
        tool = ToolDescriptor(
            name="web_search",
            parameters={"type": "object", "properties": {"q": {}, "count": {}}, "required": ["q"]},
        )

        assert tool.missing_arguments({}) == ["q"]
        assert tool.missing_arguments({"q": "python"}) == []

    def test_empty_name_rejected(self):
        with pytest.raises(ValidationError):
            ToolDescriptor(name="")


class TestServerDescriptor:
    """Tests for ServerDescriptor validation and conversion."""

    def test_category_string_is_coerced(self):
        server = ServerDescriptor(id="s", name="S", category="web_search")

        assert server.category is ServerCategory.WEB_SEARCH

    def test_unknown_category_rejected(self):
        with pytest.raises(ValidationError) as exc_info:
            ServerDescriptor(id="s", name="S", category="mainframe")

        assert exc_info.value.field == "category"

    def test_api_key_name_required_when_key_required(self):
        with pytest.raises(ValidationError):
            ServerDescriptor(id="s", name="S", requires_api_key=True)

    def test_duplicate_tool_names_rejected(self):
        with pytest.raises(ValidationError):
            ServerDescriptor(id="s", name="S", tools=(ToolDescriptor("a"), ToolDescriptor("a")))

    def test_config_is_read_only(self):
        server = ServerDescriptor(id="s", name="S", config={"root": "/tmp"})

        with pytest.raises(TypeError):
            server.config["root"] = "/etc"

    def test_from_dict_accepts_camel_case_keys(self):
        server = ServerDescriptor.from_dict(
            "github",
            {
                "name": "GitHub",
                "category": "api",
                "requiresApiKey": True,
                "apiKeyName": "GITHUB_API_KEY",
                "tools": [{"name": "list_repos"}],
            },
        )

        assert server.requires_api_key is True
        assert server.api_key_name == "GITHUB_API_KEY"
        assert server.get_tool("list_repos") is not None
        assert server.get_tool("missing") is None

    def test_to_dict_uses_api_field_names(self):
        data = ServerDescriptor(id="s", name="S", category="database").to_dict()

        assert data["requiresApiKey"] is False
        assert data["category"] == "database"
        assert data["tools"] == []


class TestStateMachine:
    """Tests for the allowed transition table."""

    @pytest.mark.parametrize(
        "from_status,to_status",
        [
            (ServerStatus.INACTIVE, ServerStatus.CONNECTING),
            (ServerStatus.CONNECTING, ServerStatus.ACTIVE),
            (ServerStatus.CONNECTING, ServerStatus.ERROR),
            (ServerStatus.ACTIVE, ServerStatus.INACTIVE),
            (ServerStatus.ACTIVE, ServerStatus.ERROR),
            (ServerStatus.ERROR, ServerStatus.CONNECTING),
            (ServerStatus.ERROR, ServerStatus.INACTIVE),
        ],
    )
    def test_allowed_edges(self, from_status, to_status):
        assert can_transition(from_status, to_status)

    @pytest.mark.parametrize(
        "from_status,to_status",
        [
            (ServerStatus.INACTIVE, ServerStatus.ACTIVE),
            (ServerStatus.INACTIVE, ServerStatus.ERROR),
            (ServerStatus.CONNECTING, ServerStatus.INACTIVE),
            (ServerStatus.ACTIVE, ServerStatus.CONNECTING),
            (ServerStatus.ERROR, ServerStatus.ACTIVE),
        ],
    )
    def test_disallowed_edges(self, from_status, to_status):
        assert not can_transition(from_status, to_status)


class TestConnectionState:
    """Tests for ConnectionState."""

    def test_default_is_inactive_without_session(self):
        state = ConnectionState()

        assert state.status == ServerStatus.INACTIVE
        assert state.session_id is None
        assert state.last_health_check is None

    def test_session_only_allowed_when_active(self):
        with pytest.raises(ValueError):
            ConnectionState(status=ServerStatus.INACTIVE, session_id="session_x")
        with pytest.raises(ValueError):
            ConnectionState(status=ServerStatus.ACTIVE)

    def test_leaving_active_clears_session(self):
        active = ConnectionState(status=ServerStatus.CONNECTING).activated("session_1")

        errored = active.moved_to(ServerStatus.ERROR, error="boom")

        assert errored.session_id is None
        assert errored.last_error == "boom"

    def test_to_dict(self):
        data = ConnectionState(status=ServerStatus.CONNECTING).activated("session_1").to_dict()

        assert data["status"] == "active"
        assert data["sessionId"] == "session_1"
        assert data["lastHealthCheck"] is not None
