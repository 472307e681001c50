"""Server registry - catalog of known tool servers."""

import threading
from typing import Dict, Iterator, List

from ..logging_config import get_logger
from .exceptions import DuplicateServerError, ServerNotFoundError
from .model import ServerDescriptor

logger = get_logger(__name__)


class ServerRegistry:
    """
    Thread-safe, insertion-ordered map of server id -> descriptor.

    Reads return the stored (immutable) descriptors; writes are serialized
    by a single lock since registration is rare compared to lookups.
    """

    def __init__(self):
        self._servers: Dict[str, ServerDescriptor] = {}
        self._lock = threading.Lock()

    def register(self, descriptor: ServerDescriptor) -> None:
        """
        Add a descriptor to the catalog.

        Raises:
            DuplicateServerError: If the id is already registered
        """
        with self._lock:
            if descriptor.id in self._servers:
                raise DuplicateServerError(descriptor.id)
            self._servers[descriptor.id] = descriptor

        logger.debug("server_registered", server_id=descriptor.id, category=descriptor.category.value)

    def update(self, descriptor: ServerDescriptor) -> None:
        """
        Replace an existing descriptor, keeping its position.

        Raises:
            ServerNotFoundError: If the id is not registered
        """
        with self._lock:
            if descriptor.id not in self._servers:
                raise ServerNotFoundError(descriptor.id)
            self._servers[descriptor.id] = descriptor

        logger.info("server_descriptor_updated", server_id=descriptor.id)

    def get(self, server_id: str) -> ServerDescriptor:
        """
        Look up a descriptor.

        Raises:
            ServerNotFoundError: If the id is not registered
        """
        try:
            return self._servers[server_id]
        except KeyError:
            raise ServerNotFoundError(server_id) from None

    def exists(self, server_id: str) -> bool:
        return server_id in self._servers

    def list(self) -> List[ServerDescriptor]:
        """All descriptors in registration order."""
        with self._lock:
            return list(self._servers.values())

    def ids(self) -> List[str]:
        with self._lock:
            return list(self._servers.keys())

    def __contains__(self, server_id: object) -> bool:
        return server_id in self._servers

    def __len__(self) -> int:
        return len(self._servers)

    def __iter__(self) -> Iterator[ServerDescriptor]:
        return iter(self.list())
