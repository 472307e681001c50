"""Starlette application exposing the registry over HTTP.

Controller calls run in Starlette's threadpool. A client that disconnects
mid-request cancels only the awaiting coroutine; the worker thread still
completes the state transition.
"""

from contextlib import asynccontextmanager
from datetime import datetime, timezone
import json
from typing import Any, AsyncIterator, Dict

from starlette.applications import Starlette
from starlette.concurrency import run_in_threadpool
from starlette.requests import Request
from starlette.responses import JSONResponse, PlainTextResponse
from starlette.routing import Route

from ..application.commands import (
    CallToolCommand,
    ConnectServerCommand,
    ControlServerCommand,
    DisconnectServerCommand,
    HealthCheckCommand,
    ResetServerCommand,
)
from ..bootstrap.runtime import Runtime
from ..domain.exceptions import InvalidActionError, MCPDockError, ServerNotFoundError, ValidationError
from ..logging_config import get_logger
from ..metrics import CONTENT_TYPE
from ..workers import start_workers

logger = get_logger(__name__)


def _utc_now() -> str:
    return datetime.now(timezone.utc).isoformat()


async def _read_json(request: Request) -> Dict[str, Any]:
    """Parse a JSON object body; an empty body counts as ``{}``."""
    raw = await request.body()
    if not raw.strip():
        return {}
    try:
        body = json.loads(raw)
    except ValueError as e:
        raise ValidationError(f"Malformed JSON body: {e}") from e
    if not isinstance(body, dict):
        raise ValidationError("JSON body must be an object")
    return body


def _error_response(exc: MCPDockError) -> JSONResponse:
    if isinstance(exc, ServerNotFoundError):
        return JSONResponse({"error": "server_not_found", "message": exc.message}, status_code=404)
    if isinstance(exc, InvalidActionError):
        return JSONResponse({"success": False, "error": "invalid_action", "message": exc.message}, status_code=400)
    if isinstance(exc, ValidationError):
        return JSONResponse(
            {"success": False, "error": "validation_error", "message": exc.message, "details": exc.details},
            status_code=400,
        )
    return JSONResponse({"success": False, "error": "conflict", "message": exc.message}, status_code=409)


async def handle_dock_error(request: Request, exc: MCPDockError) -> JSONResponse:
    logger.info("http_request_rejected", path=request.url.path, error=type(exc).__name__, message=exc.message)
    return _error_response(exc)


def create_routes(runtime: Runtime) -> list[Route]:
    """Create the registry routes bound to ``runtime``.

    Args:
        runtime: Runtime whose command bus and stats back the routes.

    Returns:
        List of Starlette Route objects.
    """
    command_bus = runtime.command_bus

    async def send(command) -> Any:
        return await run_in_threadpool(command_bus.send, command)

    async def control_endpoint(request: Request) -> JSONResponse:
        """Start or stop a server: ``{serverId, action}``."""
        body = await _read_json(request)
        server_id = body.get("serverId")
        if not isinstance(server_id, str) or not server_id:
            raise ValidationError("serverId is required", field="serverId", value=server_id)
        result = await send(ControlServerCommand(server_id=server_id, action=body.get("action")))
        return JSONResponse(result)

    async def connect_endpoint(request: Request) -> JSONResponse:
        result = await send(ConnectServerCommand(server_id=request.path_params["server_id"]))
        if not result["success"]:
            return JSONResponse({"success": False, "message": result["message"]}, status_code=400)
        return JSONResponse({"success": True, "message": result["message"], "sessionId": result["sessionId"]})

    async def disconnect_endpoint(request: Request) -> JSONResponse:
        result = await send(DisconnectServerCommand(server_id=request.path_params["server_id"]))
        status_code = 200 if result["success"] else 409
        return JSONResponse({"success": result["success"], "message": result["message"]}, status_code=status_code)

    async def reset_endpoint(request: Request) -> JSONResponse:
        result = await send(ResetServerCommand(server_id=request.path_params["server_id"]))
        return JSONResponse(result, status_code=200 if result["success"] else 409)

    async def call_tool_endpoint(request: Request) -> JSONResponse:
        """Invoke a tool; the JSON body holds the arguments."""
        arguments = await _read_json(request)
        result = await send(
            CallToolCommand(
                server_id=request.path_params["server_id"],
                tool_name=request.path_params["tool_name"],
                arguments=arguments,
            )
        )
        return JSONResponse(result)

    async def list_servers_endpoint(request: Request) -> JSONResponse:
        servers = await run_in_threadpool(runtime.stats.list_servers)
        return JSONResponse({"servers": servers, "timestamp": _utc_now()})

    async def servers_action_endpoint(request: Request) -> JSONResponse:
        """Registry-wide actions; only ``refresh_all`` is supported."""
        body = await _read_json(request)
        if body.get("action") != "refresh_all":
            raise ValidationError("Unknown action", field="action", value=body.get("action"))
        results = await send(HealthCheckCommand())
        return JSONResponse({"success": True, "results": results})

    async def stats_endpoint(request: Request) -> JSONResponse:
        stats = await run_in_threadpool(runtime.stats.compute_server_stats)
        return JSONResponse(stats.to_dict())

    async def tool_stats_endpoint(request: Request) -> JSONResponse:
        usage = await run_in_threadpool(runtime.stats.compute_tool_usage)
        return JSONResponse({"toolUsage": [u.to_dict() for u in usage]})

    async def health_stats_endpoint(request: Request) -> JSONResponse:
        return JSONResponse({"serverHealth": runtime.stats.server_health()})

    async def health_endpoint(request: Request) -> JSONResponse:
        """Liveness endpoint (cheap ping)."""
        return JSONResponse({"status": "ok", "service": "mcp-dock"})

    async def metrics_endpoint(request: Request) -> PlainTextResponse:
        """Prometheus metrics endpoint."""
        runtime.refresh_gauges()
        return PlainTextResponse(runtime.metrics.render(), media_type=CONTENT_TYPE)

    return [
        Route("/control", control_endpoint, methods=["POST"]),
        Route("/servers", list_servers_endpoint, methods=["GET"]),
        Route("/servers", servers_action_endpoint, methods=["POST"]),
        Route("/servers/{server_id}/connect", connect_endpoint, methods=["POST"]),
        Route("/servers/{server_id}/disconnect", disconnect_endpoint, methods=["POST"]),
        Route("/servers/{server_id}/reset", reset_endpoint, methods=["POST"]),
        Route("/servers/{server_id}/tools/{tool_name}", call_tool_endpoint, methods=["POST"]),
        Route("/stats", stats_endpoint, methods=["GET"]),
        Route("/stats/tools", tool_stats_endpoint, methods=["GET"]),
        Route("/stats/health", health_stats_endpoint, methods=["GET"]),
        Route("/health", health_endpoint, methods=["GET"]),
        Route("/metrics", metrics_endpoint, methods=["GET"]),
    ]


def create_app(runtime: Runtime, background_workers: bool = False) -> Starlette:
    """Build the ASGI application for ``runtime``.

    Args:
        runtime: Runtime backing every route.
        background_workers: Run health-check and prune workers for the app's lifetime.
    """

    @asynccontextmanager
    async def lifespan(app: Starlette) -> AsyncIterator[None]:
        workers = start_workers(runtime) if background_workers else []
        try:
            yield
        finally:
            for worker in workers:
                worker.stop()
            await run_in_threadpool(runtime.shutdown)

    app = Starlette(
        routes=create_routes(runtime),
        exception_handlers={MCPDockError: handle_dock_error},
        lifespan=lifespan,
    )
    app.state.runtime = runtime
    return app


__all__ = ["create_app", "create_routes"]
