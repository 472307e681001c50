"""Server and tool descriptors - static catalog metadata."""

from dataclasses import dataclass, field, replace
from types import MappingProxyType
from typing import Any, Dict, Mapping, Optional, Tuple

from ..exceptions import ValidationError
from ..value_objects import ServerCategory


@dataclass(frozen=True)
class ToolDescriptor:
    """A tool exposed by a server.

    Attributes:
        name: Tool name, unique within its server.
        description: Human readable description.
        parameters: JSON-schema-like object schema with ``properties``
            and an optional ``required`` list.
        enabled: Whether the tool may be invoked.
    """

    name: str
    description: str = ""
    parameters: Mapping[str, Any] = field(default_factory=lambda: {"type": "object", "properties": {}})
    enabled: bool = True

    def __post_init__(self) -> None:
        if not self.name:
            raise ValidationError("Tool name cannot be empty", field="name")

    @property
    def required_parameters(self) -> Tuple[str, ...]:
        return tuple(self.parameters.get("required") or ())

    def missing_arguments(self, arguments: Mapping[str, Any]) -> list[str]:
        """Return required parameter names absent from ``arguments``."""
        return [name for name in self.required_parameters if name not in arguments]

    def to_dict(self) -> Dict[str, Any]:
        return {
            "name": self.name,
            "description": self.description,
            "parameters": dict(self.parameters),
            "enabled": self.enabled,
        }

    @classmethod
    def from_dict(cls, data: Mapping[str, Any]) -> "ToolDescriptor":
        return cls(
            name=data.get("name", ""),
            description=data.get("description", ""),
            parameters=data.get("parameters") or {"type": "object", "properties": {}},
            enabled=bool(data.get("enabled", True)),
        )


@dataclass(frozen=True)
class ServerDescriptor:
    """Identity and static metadata for one external tool server.

    Immutable after registration; administrative edits replace the whole
    descriptor through ``ServerRegistry.update``.
    """

    id: str
    name: str
    description: str = ""
    category: ServerCategory = ServerCategory.CUSTOM
    requires_api_key: bool = False
    api_key_name: Optional[str] = None
    config: Mapping[str, Any] = field(default_factory=dict)
    tools: Tuple[ToolDescriptor, ...] = ()

    def __post_init__(self) -> None:
        if not self.id:
            raise ValidationError("Server id cannot be empty", field="id")
        if not isinstance(self.category, ServerCategory):
            try:
                object.__setattr__(self, "category", ServerCategory(self.category))
            except ValueError:
                raise ValidationError(
                    f"Unknown server category: {self.category}", field="category", value=self.category
                ) from None
        if self.requires_api_key and not self.api_key_name:
            raise ValidationError(
                f"Server {self.id} requires an API key but declares no api_key_name",
                field="api_key_name",
            )
        names = [t.name for t in self.tools]
        duplicates = sorted({n for n in names if names.count(n) > 1})
        if duplicates:
            raise ValidationError(f"Duplicate tool names on {self.id}: {', '.join(duplicates)}", field="tools")
        object.__setattr__(self, "tools", tuple(self.tools))
        object.__setattr__(self, "config", MappingProxyType(dict(self.config)))

    def get_tool(self, name: str) -> Optional[ToolDescriptor]:
        for tool in self.tools:
            if tool.name == name:
                return tool
        return None

    def with_changes(self, **changes: Any) -> "ServerDescriptor":
        """Return a copy with the given fields replaced (administrative edit)."""
        return replace(self, **changes)

    def to_dict(self) -> Dict[str, Any]:
        return {
            "id": self.id,
            "name": self.name,
            "description": self.description,
            "category": self.category.value,
            "requiresApiKey": self.requires_api_key,
            "apiKeyName": self.api_key_name,
            "config": dict(self.config),
            "tools": [t.to_dict() for t in self.tools],
        }

    @classmethod
    def from_dict(cls, server_id: str, data: Mapping[str, Any]) -> "ServerDescriptor":
        """Build a descriptor from a configuration entry.

        Accepts both snake_case and the camelCase keys used by the HTTP API.
        """
        return cls(
            id=server_id,
            name=data.get("name", server_id),
            description=data.get("description", ""),
            category=data.get("category", ServerCategory.CUSTOM.value),
            requires_api_key=bool(data.get("requires_api_key", data.get("requiresApiKey", False))),
            api_key_name=data.get("api_key_name", data.get("apiKeyName")),
            config=data.get("config") or {},
            tools=tuple(ToolDescriptor.from_dict(t) for t in data.get("tools") or ()),
        )
