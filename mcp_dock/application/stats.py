"""Stats aggregator - derived metrics over registry, tracker and ledger.

Aggregation is a mean of per-server values: every server weighs the same
regardless of call volume, so the result is not a global call-weighted rate.
"""

from dataclasses import dataclass
from typing import Any, Dict, List

from ..domain.ledger import CallLedger
from ..domain.registry import ServerRegistry
from ..domain.tracker import ConnectionTracker
from ..domain.value_objects import ServerStatus

HEALTHY_SUCCESS_RATE = 100.0
"""Success rate reported for servers without calls."""


@dataclass(frozen=True)
class ServerStats:
    """Summary statistics for the whole registry."""

    total_servers: int
    active_servers: int
    total_calls: int
    success_rate: float
    avg_response_time: int

    def to_dict(self) -> Dict[str, Any]:
        return {
            "totalServers": self.total_servers,
            "activeServers": self.active_servers,
            "totalCalls": self.total_calls,
            "successRate": self.success_rate,
            "avgResponseTime": self.avg_response_time,
        }


@dataclass(frozen=True)
class ToolUsage:
    """Usage of one tool on one server over the retained window."""

    server_id: str
    tool_name: str
    count: int
    avg_response_time: float
    error_rate: float

    def to_dict(self) -> Dict[str, Any]:
        return {
            "serverId": self.server_id,
            "toolName": self.tool_name,
            "count": self.count,
            "avgResponseTime": round(self.avg_response_time),
            "errorRate": round(self.error_rate, 1),
        }


class StatsAggregator:
    """Computes statistics on demand from immutable snapshots; never blocks writers."""

    def __init__(self, registry: ServerRegistry, tracker: ConnectionTracker, ledger: CallLedger):
        self._registry = registry
        self._tracker = tracker
        self._ledger = ledger

    def server_success_rate(self, server_id: str) -> float:
        """Cumulative success percentage for one server, rounded to one decimal."""
        total = self._ledger.total_calls(server_id)
        if total == 0:
            return HEALTHY_SUCCESS_RATE
        return round(self._ledger.successful_calls(server_id) / total * 100, 1)

    def compute_server_stats(self) -> ServerStats:
        servers = self._registry.list()
        states = {s.id: self._tracker.get(s.id) for s in servers}
        active_ids = [sid for sid, state in states.items() if state.status == ServerStatus.ACTIVE]

        total_calls = 0
        rates: List[float] = []
        for server in servers:
            total = self._ledger.total_calls(server.id)
            total_calls += total
            if total == 0:
                rates.append(HEALTHY_SUCCESS_RATE)
            else:
                rates.append(self._ledger.successful_calls(server.id) / total * 100)

        success_rate = sum(rates) / len(rates) if rates else HEALTHY_SUCCESS_RATE

        if active_ids:
            avg_response_time = sum(self._ledger.average_response_time(sid) for sid in active_ids) / len(active_ids)
        else:
            avg_response_time = 0.0

        return ServerStats(
            total_servers=len(servers),
            active_servers=len(active_ids),
            total_calls=total_calls,
            success_rate=round(success_rate, 1),
            avg_response_time=int(round(avg_response_time)),
        )

    def compute_tool_usage(self) -> List[ToolUsage]:
        """Per server/tool usage over retained records, in registry order."""
        usage: List[ToolUsage] = []
        for server in self._registry.list():
            grouped: Dict[str, List[Any]] = {}
            for record in self._ledger.recent(server.id):
                grouped.setdefault(record.tool_name, []).append(record)

            for tool_name in sorted(grouped):
                records = grouped[tool_name]
                errors = sum(1 for r in records if not r.success)
                usage.append(
                    ToolUsage(
                        server_id=server.id,
                        tool_name=tool_name,
                        count=len(records),
                        avg_response_time=sum(r.response_time_ms for r in records) / len(records),
                        error_rate=errors / len(records) * 100,
                    )
                )
        return usage

    def server_health(self) -> List[Dict[str, Any]]:
        """Status line per server; uptime is 100 while active, 0 otherwise."""
        health = []
        for server in self._registry.list():
            state = self._tracker.get(server.id)
            health.append(
                {
                    "serverId": server.id,
                    "name": server.name,
                    "status": state.status.value,
                    "lastCheck": state.last_health_check,
                    "uptime": 100 if state.is_active else 0,
                }
            )
        return health

    def server_view(self, server_id: str) -> Dict[str, Any]:
        """Descriptor merged with live state, tool usage and recent errors."""
        server = self._registry.get(server_id)
        state = self._tracker.get(server_id)
        retained = self._ledger.retained_count(server_id)

        return {
            "id": server.id,
            "name": server.name,
            "description": server.description,
            "category": server.category.value,
            "requiresApiKey": server.requires_api_key,
            "apiKeyName": server.api_key_name,
            **state.to_dict(),
            "tools": [
                {
                    "name": tool.name,
                    "description": tool.description,
                    "enabled": tool.enabled and state.is_active,
                    "usageCount": self._ledger.tool_usage(server_id, tool.name),
                    "parameters": dict(tool.parameters),
                }
                for tool in server.tools
            ],
            "totalCalls": self._ledger.total_calls(server_id),
            "successRate": self.server_success_rate(server_id),
            "responseTime": round(self._ledger.average_response_time(server_id)) if retained else None,
            "errors": [e.to_dict() for e in self._ledger.recent_errors(server_id)],
        }

    def list_servers(self) -> List[Dict[str, Any]]:
        return [self.server_view(server.id) for server in self._registry.list()]
