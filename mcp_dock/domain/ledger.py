"""Call ledger - append-only record of tool invocations per server.

Retained records are bounded by a RetentionPolicy. Cumulative counters
(total calls, successful calls, per-tool usage) are kept separately so
they keep growing after old records are evicted.
"""

from collections import deque
from dataclasses import dataclass
from datetime import timedelta
import threading
import time
from typing import Callable, Deque, Dict, Iterator, List, Optional, Tuple, Union

from ..logging_config import get_logger
from .model import CallRecord
from .registry import ServerRegistry
from .value_objects import RetentionPolicy

logger = get_logger(__name__)

Window = Union[int, timedelta, None]

MAX_RECENT_ERRORS = 10


@dataclass(frozen=True)
class ErrorEntry:
    """A failed call kept in the per-server error tail."""

    timestamp: float
    error: str
    tool: Optional[str] = None

    def to_dict(self) -> dict:
        return {"timestamp": self.timestamp, "error": self.error, "tool": self.tool}


class RecentCalls:
    """
    Lazy view over the retained records of one server, most recent first.

    Each iteration takes a fresh snapshot, so the view can be iterated again
    and reflects appends made in between. Iteration is always finite.
    """

    def __init__(self, ledger: "CallLedger", server_id: str, window: Window = None):
        if isinstance(window, int) and window < 0:
            raise ValueError("window count cannot be negative")
        self._ledger = ledger
        self._server_id = server_id
        self._window = window

    def __iter__(self) -> Iterator[CallRecord]:
        records = self._ledger._snapshot(self._server_id)
        window = self._window

        if isinstance(window, timedelta):
            cutoff = self._ledger._clock() - window.total_seconds()
            for record in reversed(records):
                if record.timestamp < cutoff:
                    return
                yield record
            return

        limit = len(records) if window is None else window
        for i, record in enumerate(reversed(records)):
            if i >= limit:
                return
            yield record


class CallLedger:
    """
    Append-only per-server call records with retention and monotonic counters.

    ``append`` is O(1) amortized: a deque append plus eviction of however
    many old records fell outside the policy. Retained records stay in
    timestamp order even when concurrent callers append out of order, so
    windows and age eviction can stop at the first old record.
    """

    def __init__(
        self,
        registry: ServerRegistry,
        policy: Optional[RetentionPolicy] = None,
        clock: Callable[[], float] = time.time,
    ):
        self._registry = registry
        self._policy = policy or RetentionPolicy()
        self._clock = clock

        self._records: Dict[str, Deque[CallRecord]] = {}
        self._errors: Dict[str, Deque[ErrorEntry]] = {}
        self._totals: Dict[str, int] = {}
        self._successes: Dict[str, int] = {}
        self._tool_usage: Dict[Tuple[str, str], int] = {}

        self._locks: Dict[str, threading.Lock] = {}
        self._locks_guard = threading.Lock()

    @property
    def policy(self) -> RetentionPolicy:
        return self._policy

    def _lock_for(self, server_id: str) -> threading.Lock:
        lock = self._locks.get(server_id)
        if lock is None:
            with self._locks_guard:
                lock = self._locks.setdefault(server_id, threading.Lock())
        return lock

    def append(self, record: CallRecord) -> None:
        """
        Append a record.

        Raises:
            ServerNotFoundError: If record.server_id is not registered
        """
        self._registry.get(record.server_id)

        server_id = record.server_id
        with self._lock_for(server_id):
            records = self._records.setdefault(server_id, deque())
            self._insert(records, record)
            self._evict(records)

            self._totals[server_id] = self._totals.get(server_id, 0) + 1
            if record.success:
                self._successes[server_id] = self._successes.get(server_id, 0) + 1
            else:
                errors = self._errors.setdefault(server_id, deque(maxlen=MAX_RECENT_ERRORS))
                errors.append(ErrorEntry(record.timestamp, record.error or "Call failed", record.tool_name))

            key = (server_id, record.tool_name)
            self._tool_usage[key] = self._tool_usage.get(key, 0) + 1

    @staticmethod
    def _insert(records: Deque[CallRecord], record: CallRecord) -> None:
        """Keep records ordered by timestamp. Caller holds the server lock."""
        if not records or records[-1].timestamp <= record.timestamp:
            records.append(record)
            return
        # stamped before a concurrent append took the lock
        index = len(records)
        while index > 0 and records[index - 1].timestamp > record.timestamp:
            index -= 1
        records.insert(index, record)

    def _evict(self, records: Deque[CallRecord]) -> int:
        """Drop oldest records outside the policy. Caller holds the server lock."""
        evicted = 0
        max_count = self._policy.max_records_per_server
        if max_count is not None:
            while len(records) > max_count:
                records.popleft()
                evicted += 1

        if self._policy.max_age_s is not None:
            cutoff = self._clock() - self._policy.max_age_s
            while records and records[0].timestamp < cutoff:
                records.popleft()
                evicted += 1

        return evicted

    def prune(self) -> int:
        """Apply the retention policy to every server. Returns records evicted."""
        evicted = 0
        for server_id in list(self._records.keys()):
            with self._lock_for(server_id):
                evicted += self._evict(self._records[server_id])
        if evicted:
            logger.debug("ledger_pruned", evicted=evicted)
        return evicted

    def _snapshot(self, server_id: str) -> List[CallRecord]:
        records = self._records.get(server_id)
        if not records:
            return []
        with self._lock_for(server_id):
            return list(records)

    def recent(self, server_id: str, window: Window = None) -> RecentCalls:
        """
        Retained records for a server, most recent first.

        Args:
            server_id: Server to read
            window: None for everything retained, an int for the last N
                records, or a timedelta for records newer than now - window
        """
        return RecentCalls(self, server_id, window)

    def retained_count(self, server_id: str) -> int:
        records = self._records.get(server_id)
        return len(records) if records else 0

    def recent_errors(self, server_id: str) -> List[ErrorEntry]:
        """Last failed calls for a server, oldest first."""
        errors = self._errors.get(server_id)
        if not errors:
            return []
        with self._lock_for(server_id):
            return list(errors)

    def total_calls(self, server_id: str) -> int:
        """Cumulative number of calls, unaffected by eviction."""
        return self._totals.get(server_id, 0)

    def successful_calls(self, server_id: str) -> int:
        return self._successes.get(server_id, 0)

    def tool_usage(self, server_id: str, tool_name: str) -> int:
        return self._tool_usage.get((server_id, tool_name), 0)

    def average_response_time(self, server_id: str) -> float:
        """Mean response time over retained records, 0.0 when none."""
        records = self._snapshot(server_id)
        if not records:
            return 0.0
        return sum(r.response_time_ms for r in records) / len(records)
