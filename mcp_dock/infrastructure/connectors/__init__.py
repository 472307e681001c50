"""Connector implementations and category-based resolution."""

from typing import Dict, Mapping, Optional

from ...domain.contracts import Connector
from ...domain.model import ServerDescriptor
from ...domain.value_objects import ServerCategory
from .file_system import FileSystemConnector
from .http import HttpConnector
from .in_process import InProcessConnector


class ConnectorResolver:
    """Picks the connector for a server: per-id override first, then category."""

    def __init__(
        self,
        by_category: Mapping[ServerCategory, Connector],
        overrides: Optional[Mapping[str, Connector]] = None,
    ):
        self._by_category: Dict[ServerCategory, Connector] = dict(by_category)
        self._overrides: Dict[str, Connector] = dict(overrides or {})

    def set_override(self, server_id: str, connector: Connector) -> None:
        self._overrides[server_id] = connector

    def resolve(self, server: ServerDescriptor) -> Connector:
        connector = self._overrides.get(server.id) or self._by_category.get(server.category)
        if connector is None:
            raise LookupError(f"No connector for category {server.category.value}")
        return connector


def default_resolver(http: Optional[HttpConnector] = None, in_process: Optional[InProcessConnector] = None) -> ConnectorResolver:
    """Resolver wiring every category to its standard connector."""
    http = http or HttpConnector()
    in_process = in_process or InProcessConnector()
    return ConnectorResolver(
        {
            ServerCategory.WEB_SEARCH: http,
            ServerCategory.API: http,
            ServerCategory.FILE_SYSTEM: FileSystemConnector(),
            ServerCategory.DATABASE: in_process,
            ServerCategory.CUSTOM: in_process,
        }
    )


__all__ = [
    "ConnectorResolver",
    "FileSystemConnector",
    "HttpConnector",
    "InProcessConnector",
    "default_resolver",
]
