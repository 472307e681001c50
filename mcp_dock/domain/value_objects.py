"""Value objects for the server registry.

Contains:
- ServerStatus - connection status enum
- ServerCategory - kind of external integration
- ControlAction - actions accepted by the control endpoint
- RetentionPolicy - bounds for the call ledger
"""

from dataclasses import dataclass
from datetime import timedelta
from enum import Enum
from typing import Any, Optional

from .exceptions import InvalidActionError


class ServerStatus(str, Enum):
    """Connection status of a server."""

    INACTIVE = "inactive"
    CONNECTING = "connecting"
    ACTIVE = "active"
    ERROR = "error"

    def __str__(self) -> str:
        return self.value


class ServerCategory(str, Enum):
    """Category of an external tool server."""

    WEB_SEARCH = "web_search"
    DATABASE = "database"
    API = "api"
    FILE_SYSTEM = "file_system"
    CUSTOM = "custom"

    def __str__(self) -> str:
        return self.value


class ControlAction(str, Enum):
    """Action accepted by the control endpoint."""

    START = "start"
    STOP = "stop"

    @classmethod
    def parse(cls, value: Any) -> "ControlAction":
        """Parse a raw action, raising InvalidActionError when unknown."""
        try:
            return cls(value)
        except ValueError:
            raise InvalidActionError(value, tuple(a.value for a in cls)) from None


@dataclass(frozen=True)
class RetentionPolicy:
    """Bounds for records retained by the call ledger.

    Either bound may be None (unbounded). When both are set, the oldest
    records are evicted as soon as either is exceeded.

    Attributes:
        max_records_per_server: Keep at most this many records per server.
        max_age_s: Drop records older than this many seconds.
    """

    max_records_per_server: Optional[int] = 1000
    max_age_s: Optional[float] = None

    def __post_init__(self) -> None:
        if self.max_records_per_server is not None and self.max_records_per_server <= 0:
            raise ValueError("max_records_per_server must be positive")
        if self.max_age_s is not None and self.max_age_s <= 0:
            raise ValueError("max_age_s must be positive")

    @property
    def max_age(self) -> Optional[timedelta]:
        return None if self.max_age_s is None else timedelta(seconds=self.max_age_s)

    @classmethod
    def from_dict(cls, data: dict[str, Any] | None) -> "RetentionPolicy":
        """Create a policy from a configuration mapping.

        Missing keys keep the defaults; explicit nulls disable a bound.
        """
        if not data:
            return cls()
        return cls(
            max_records_per_server=data.get("max_records_per_server", 1000),
            max_age_s=data.get("max_age_s"),
        )
