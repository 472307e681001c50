"""Domain contracts - interfaces for external dependencies.

This module defines contracts (abstract interfaces) that the domain layer
depends on. Implementations are provided by the infrastructure layer.
"""

from .connector import ConnectResult, Connector

__all__ = [
    "ConnectResult",
    "Connector",
]
