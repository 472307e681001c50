"""Lifecycle controller - start/stop/connect/disconnect and tool calls.

The controller is the only writer of ConnectionTracker state. Connector
failures of any kind (refused handshake, network error, timeout, missing
API key) are absorbed into the ERROR state and reported through the
returned LifecycleResult; they never propagate to the caller.
"""

from concurrent.futures import ThreadPoolExecutor
from concurrent.futures import TimeoutError as FuturesTimeoutError
from dataclasses import dataclass
import threading
import time
from typing import Any, Callable, Dict, Mapping, Optional, TypeVar
import uuid

from ..domain.contracts import ConnectResult
from ..domain.events import (
    DomainEvent,
    HealthCheckFailed,
    HealthCheckPassed,
    LifecycleActionRejected,
    ServerStarted,
    ServerStartFailed,
    ServerStateChanged,
    ServerStopped,
    ToolCallRecorded,
)
from ..domain.exceptions import (
    ConnectionFailure,
    ConnectTimeoutError,
    InvalidStateTransitionError,
    MCPDockError,
    ToolCallError,
    ToolNotFoundError,
    ValidationError,
)
from ..domain.ledger import CallLedger
from ..domain.model import CallRecord, ConnectionState, ServerDescriptor
from ..domain.registry import ServerRegistry
from ..domain.tracker import ConnectionTracker
from ..domain.value_objects import ServerStatus
from ..infrastructure.connectors import ConnectorResolver
from ..infrastructure.event_bus import EventBus
from ..logging_config import get_logger

logger = get_logger(__name__)

T = TypeVar("T")

DEFAULT_CONNECT_TIMEOUT_SECONDS = 10.0
"""Upper bound for a single connect/disconnect/health-check call."""

DEFAULT_CALL_TIMEOUT_SECONDS = 30.0
"""Upper bound for a single tool invocation."""

_STATE_RACE_RETRIES = 3


@dataclass(frozen=True)
class LifecycleResult:
    """Outcome of a lifecycle operation. Callers must check ``success``."""

    success: bool
    message: str
    server_id: str
    status: ServerStatus
    session_id: Optional[str] = None

    def to_dict(self) -> Dict[str, Any]:
        return {
            "success": self.success,
            "message": self.message,
            "serverId": self.server_id,
            "status": self.status.value,
            "sessionId": self.session_id,
        }


@dataclass(frozen=True)
class ToolCallResult:
    """Outcome of a tool invocation."""

    success: bool
    response_time_ms: float
    data: Any = None
    error: Optional[str] = None

    def to_dict(self) -> Dict[str, Any]:
        return {
            "success": self.success,
            "data": self.data,
            "error": self.error,
            "responseTime": round(self.response_time_ms),
        }


class LifecycleController:
    """
    Drives servers through the connection state machine.

    Every external call runs on a private thread pool and is bounded by a
    timeout. A caller that stops waiting does not stop the operation: the
    worker thread finishes the transition so no server is left CONNECTING.
    """

    def __init__(
        self,
        registry: ServerRegistry,
        tracker: ConnectionTracker,
        ledger: CallLedger,
        connectors: ConnectorResolver,
        event_bus: EventBus,
        connect_timeout_s: float = DEFAULT_CONNECT_TIMEOUT_SECONDS,
        call_timeout_s: float = DEFAULT_CALL_TIMEOUT_SECONDS,
        env: Optional[Mapping[str, str]] = None,
        max_workers: int = 8,
    ):
        """
        Args:
            registry: Server catalog
            tracker: Connection state store
            ledger: Call ledger
            connectors: Resolves the connector for a server
            event_bus: Receives lifecycle and call events
            connect_timeout_s: Bound for connect/disconnect/health checks
            call_timeout_s: Bound for tool invocations
            env: Mapping API keys are read from (defaults to empty)
            max_workers: Size of the connector thread pool
        """
        if connect_timeout_s <= 0:
            raise ValueError("connect_timeout_s must be positive")
        if call_timeout_s <= 0:
            raise ValueError("call_timeout_s must be positive")
        if max_workers <= 0:
            raise ValueError("max_workers must be positive")

        self._registry = registry
        self._tracker = tracker
        self._ledger = ledger
        self._connectors = connectors
        self._event_bus = event_bus
        self._connect_timeout_s = connect_timeout_s
        self._call_timeout_s = call_timeout_s
        self._env: Mapping[str, str] = env if env is not None else {}
        self._max_workers = max_workers
        self._executor = ThreadPoolExecutor(max_workers=max_workers, thread_name_prefix="mcp-dock-connector")

    @property
    def connect_timeout_s(self) -> float:
        return self._connect_timeout_s

    # --- helpers ---

    def _publish(self, *events: DomainEvent) -> None:
        for event in events:
            self._event_bus.publish(event)

    def _state_changed(self, server_id: str, old: ConnectionState, new: ConnectionState) -> None:
        self._publish(ServerStateChanged(server_id=server_id, old_state=old.status.value, new_state=new.status.value))

    def _bounded(self, fn: Callable[[], T], server_id: str, operation: str, timeout_s: float) -> T:
        """
        Run ``fn`` on the pool; raise ConnectTimeoutError if it overruns.

        The timeout starts once a worker picks the call up. Waiting for a free
        worker has its own bound of ``timeout_s``; a call still queued after
        that is cancelled and never reaches the connector.
        """
        picked_up = threading.Event()

        def run() -> T:
            picked_up.set()
            return fn()

        future = self._executor.submit(run)
        if not picked_up.wait(timeout_s) and future.cancel():
            logger.warning(
                "connector_pool_exhausted",
                server_id=server_id,
                operation=operation,
                max_workers=self._max_workers,
            )
            raise ConnectTimeoutError(server_id, timeout_s, f"{operation} dispatch")
        try:
            return future.result(timeout=timeout_s)
        except FuturesTimeoutError:
            logger.warning("connector_timeout", server_id=server_id, operation=operation, timeout_s=timeout_s)
            raise ConnectTimeoutError(server_id, timeout_s, operation) from None

    def _credentials(self, server: ServerDescriptor) -> Dict[str, str]:
        if not server.requires_api_key:
            return {}
        key = self._env.get(server.api_key_name or "")
        if not key:
            raise ConnectionFailure(server.id, f"API key not found: {server.api_key_name}")
        return {server.api_key_name: key}

    @staticmethod
    def _log_attempt(action: str, result: LifecycleResult) -> None:
        logger.info(
            "lifecycle_action",
            server_id=result.server_id,
            action=action,
            outcome="success" if result.success else "failure",
            status=result.status.value,
            message=result.message,
        )

    def _reject(self, server_id: str, action: str, state: ConnectionState, message: str) -> LifecycleResult:
        self._publish(LifecycleActionRejected(server_id=server_id, action=action, current_state=state.status.value))
        result = LifecycleResult(False, message, server_id, state.status, state.session_id)
        self._log_attempt(action, result)
        return result

    # --- lifecycle ---

    def start(self, server_id: str) -> LifecycleResult:
        """
        Start a server: INACTIVE/ERROR -> CONNECTING -> ACTIVE (or ERROR).

        Raises:
            ServerNotFoundError: If the id is not registered
        """
        return self._open(server_id, action="start")

    def connect(self, server_id: str) -> LifecycleResult:
        """Session-oriented alias of ``start``; the result carries the session id."""
        return self._open(server_id, action="connect")

    def stop(self, server_id: str) -> LifecycleResult:
        """
        Stop a server: ACTIVE -> INACTIVE. Idempotent on INACTIVE; an ERROR
        server is reset to INACTIVE.

        Raises:
            ServerNotFoundError: If the id is not registered
        """
        return self._close(server_id, action="stop")

    def disconnect(self, server_id: str) -> LifecycleResult:
        """Session-oriented alias of ``stop``; unbinds the session."""
        return self._close(server_id, action="disconnect")

    def _open(self, server_id: str, action: str) -> LifecycleResult:
        server = self._registry.get(server_id)
        verb = "connect to" if action == "connect" else "start"

        try:
            old, connecting = self._tracker.transition(server_id, ServerStatus.CONNECTING)
        except InvalidStateTransitionError:
            state = self._tracker.get(server_id)
            return self._reject(server_id, action, state, f"Cannot {verb} {server_id}: server is {state.status.value}")
        self._state_changed(server_id, old, connecting)

        started = time.perf_counter()
        failure: Optional[ConnectionFailure] = None
        outcome: Optional[ConnectResult] = None
        try:
            credentials = self._credentials(server)
            connector = self._connectors.resolve(server)
            outcome = self._bounded(
                lambda: connector.connect(server, credentials),
                server_id,
                "connect",
                self._connect_timeout_s,
            )
            if not outcome.success:
                failure = ConnectionFailure(server_id, outcome.message or "connection refused")
        except ConnectionFailure as e:
            failure = e
        except Exception as e:
            logger.exception("connector_error", server_id=server_id, action=action)
            failure = ConnectionFailure(server_id, f"{type(e).__name__}: {e}")

        duration_ms = (time.perf_counter() - started) * 1000

        if failure is not None:
            old, errored = self._tracker.transition(server_id, ServerStatus.ERROR, error=failure.reason)
            self._state_changed(server_id, old, errored)
            self._publish(
                ServerStartFailed(
                    server_id=server_id,
                    error_message=failure.reason,
                    timed_out=isinstance(failure, ConnectTimeoutError),
                )
            )
            result = LifecycleResult(False, f"Failed to {verb} {server_id}: {failure.reason}", server_id, ServerStatus.ERROR)
            self._log_attempt(action, result)
            return result

        session_id = outcome.session_id or f"session_{uuid.uuid4().hex}"
        old, active = self._tracker.bind_session(server_id, session_id)
        self._state_changed(server_id, old, active)
        self._publish(ServerStarted(server_id=server_id, session_id=session_id, startup_duration_ms=duration_ms))

        if action == "connect":
            message = f"Successfully connected to {server_id}"
        else:
            message = f"{server_id} server started successfully"
        result = LifecycleResult(True, message, server_id, ServerStatus.ACTIVE, session_id)
        self._log_attempt(action, result)
        return result

    def _close(self, server_id: str, action: str) -> LifecycleResult:
        server = self._registry.get(server_id)
        if action == "disconnect":
            done = f"Successfully disconnected from {server_id}"
        else:
            done = f"{server_id} server stopped successfully"

        for _ in range(_STATE_RACE_RETRIES):
            state = self._tracker.get(server_id)

            if state.status == ServerStatus.INACTIVE:
                result = LifecycleResult(True, done, server_id, ServerStatus.INACTIVE)
                self._log_attempt(action, result)
                return result

            if state.status == ServerStatus.CONNECTING:
                return self._reject(server_id, action, state, f"Cannot {action} {server_id}: connection in progress")

            try:
                old, inactive = self._tracker.transition(server_id, ServerStatus.INACTIVE)
            except InvalidStateTransitionError:
                continue  # state moved underneath us, re-evaluate

            self._state_changed(server_id, old, inactive)
            if old.status == ServerStatus.ACTIVE:
                self._release(server, old.session_id)
            self._publish(ServerStopped(server_id=server_id, reason=action if old.is_active else "reset"))

            result = LifecycleResult(True, done, server_id, ServerStatus.INACTIVE)
            self._log_attempt(action, result)
            return result

        state = self._tracker.get(server_id)
        return self._reject(server_id, action, state, f"Cannot {action} {server_id}: state changed concurrently")

    def _release(self, server: ServerDescriptor, session_id: Optional[str]) -> None:
        """Best-effort connector disconnect; local state is already INACTIVE."""
        try:
            connector = self._connectors.resolve(server)
            self._bounded(
                lambda: connector.disconnect(server, session_id),
                server.id,
                "disconnect",
                self._connect_timeout_s,
            )
        except Exception as e:
            logger.warning("connector_disconnect_failed", server_id=server.id, error=str(e))

    def reset(self, server_id: str) -> LifecycleResult:
        """
        Manual recovery: ERROR -> INACTIVE. Succeeds without change on INACTIVE.

        Raises:
            ServerNotFoundError: If the id is not registered
        """
        self._registry.get(server_id)
        state = self._tracker.get(server_id)

        if state.status == ServerStatus.INACTIVE:
            result = LifecycleResult(True, f"{server_id} server is inactive", server_id, ServerStatus.INACTIVE)
            self._log_attempt("reset", result)
            return result

        if state.status != ServerStatus.ERROR:
            return self._reject(server_id, "reset", state, f"Cannot reset {server_id}: server is {state.status.value}")

        try:
            old, inactive = self._tracker.transition(server_id, ServerStatus.INACTIVE)
        except InvalidStateTransitionError:
            return self._reject(server_id, "reset", self._tracker.get(server_id), f"Cannot reset {server_id}: state changed concurrently")

        self._state_changed(server_id, old, inactive)
        self._publish(ServerStopped(server_id=server_id, reason="reset"))
        result = LifecycleResult(True, f"{server_id} server reset", server_id, ServerStatus.INACTIVE)
        self._log_attempt("reset", result)
        return result

    # --- health ---

    def health_check(self, server_id: str) -> bool:
        """
        Check an ACTIVE server. A failed check moves it to ERROR, unless the
        checked session was stopped or replaced meanwhile.

        Returns:
            True if healthy; False if unhealthy or not active

        Raises:
            ServerNotFoundError: If the id is not registered
        """
        server = self._registry.get(server_id)
        checked = self._tracker.get(server_id)
        if not checked.is_active:
            return False

        started = time.perf_counter()
        error: Optional[str] = None
        try:
            credentials = self._credentials(server)
            connector = self._connectors.resolve(server)
            healthy = self._bounded(
                lambda: connector.health_check(server, credentials),
                server_id,
                "health_check",
                self._connect_timeout_s,
            )
            if not healthy:
                error = "health check failed"
        except ConnectionFailure as e:
            error = e.reason
        except Exception as e:
            logger.warning("health_check_error", server_id=server_id, error=str(e))
            error = f"{type(e).__name__}: {e}"

        duration_ms = (time.perf_counter() - started) * 1000

        if error is None:
            self._tracker.touch_health_check(server_id)
            self._publish(HealthCheckPassed(server_id=server_id, duration_ms=duration_ms))
            return True

        try:
            old, errored = self._tracker.transition(
                server_id, ServerStatus.ERROR, error=error, expected_session_id=checked.session_id
            )
        except InvalidStateTransitionError:
            # stopped or restarted during the check; the result belongs to an old session
            logger.info("health_check_result_discarded", server_id=server_id, session_id=checked.session_id)
            return False
        self._tracker.touch_health_check(server_id)
        self._state_changed(server_id, old, errored)
        self._publish(HealthCheckFailed(server_id=server_id, error_message=error))
        logger.warning("health_check_unhealthy", server_id=server_id, error=error)
        return False

    def health_check_all(self) -> Dict[str, bool]:
        """Health-check every active server."""
        results = {}
        for server in self._registry.list():
            if self._tracker.get(server.id).is_active:
                results[server.id] = self.health_check(server.id)
        return results

    # --- tool calls ---

    def record_call(
        self,
        server_id: str,
        tool_name: str,
        success: bool,
        response_time_ms: float,
        error: Optional[str] = None,
    ) -> CallRecord:
        """
        Append a call made elsewhere to the ledger.

        Raises:
            ServerNotFoundError: If the id is not registered
        """
        record = CallRecord(
            server_id=server_id,
            tool_name=tool_name,
            response_time_ms=response_time_ms,
            success=success,
            error=error,
        )
        self._ledger.append(record)
        self._publish(
            ToolCallRecorded(
                server_id=server_id,
                tool_name=tool_name,
                success=success,
                response_time_ms=response_time_ms,
                error_message=error,
            )
        )
        return record

    def call_tool(self, server_id: str, tool_name: str, arguments: Optional[Dict[str, Any]] = None) -> ToolCallResult:
        """
        Invoke a tool on an ACTIVE server and record the outcome.

        Failures (inactive server, unknown/disabled tool, missing arguments,
        connector errors) are recorded and returned, not raised.

        Raises:
            ServerNotFoundError: If the id is not registered
        """
        server = self._registry.get(server_id)
        arguments = dict(arguments or {})

        started = time.perf_counter()
        data: Any = None
        error: Optional[str] = None
        try:
            if not self._tracker.get(server_id).is_active:
                raise ToolCallError(f"Server {server_id} is not active")
            tool = server.get_tool(tool_name)
            if tool is None or not tool.enabled:
                raise ToolNotFoundError(server_id, tool_name)
            missing = tool.missing_arguments(arguments)
            if missing:
                raise ValidationError(f"Missing required arguments: {', '.join(missing)}", field=missing[0])

            credentials = self._credentials(server)
            connector = self._connectors.resolve(server)
            data = self._bounded(
                lambda: connector.call_tool(server, tool_name, arguments, credentials),
                server_id,
                "call_tool",
                self._call_timeout_s,
            )
        except MCPDockError as e:
            error = e.message
        except Exception as e:
            logger.exception("tool_call_error", server_id=server_id, tool_name=tool_name)
            error = str(e) or type(e).__name__

        response_time_ms = (time.perf_counter() - started) * 1000
        self.record_call(server_id, tool_name, error is None, response_time_ms, error)

        if error is not None:
            logger.warning("tool_call_failed", server_id=server_id, tool_name=tool_name, error=error)
            return ToolCallResult(False, response_time_ms, error=error)
        return ToolCallResult(True, response_time_ms, data=data)

    def shutdown(self) -> None:
        """Stop accepting connector work. In-flight calls finish in the background."""
        self._executor.shutdown(wait=False)
