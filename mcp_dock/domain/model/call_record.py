"""Call record - one tool invocation attempt."""

from dataclasses import dataclass, field
import time
from typing import Any, Dict, Optional


@dataclass(frozen=True)
class CallRecord:
    """Outcome of a single tool invocation. Never mutated once created."""

    server_id: str
    tool_name: str
    response_time_ms: float
    success: bool
    error: Optional[str] = None
    timestamp: float = field(default_factory=time.time)

    def __post_init__(self) -> None:
        if self.response_time_ms < 0:
            raise ValueError("response_time_ms cannot be negative")

    def to_dict(self) -> Dict[str, Any]:
        return {
            "serverId": self.server_id,
            "toolName": self.tool_name,
            "timestamp": self.timestamp,
            "responseTimeMs": self.response_time_ms,
            "success": self.success,
            "error": self.error,
        }
