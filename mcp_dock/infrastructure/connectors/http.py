"""HTTP connector for web_search and api servers.

Server ``config`` keys:
    base_url: Root URL of the remote API (required).
    health_path: Path requested on connect and health checks (default "/").
    health_params: Query parameters for the health request.
    api_key_header: Header carrying the API key (default "Authorization",
        sent as a Bearer token; any other header gets the raw key).
    tool_paths: Mapping of tool name -> path (default "/<tool_name>").
    tool_method: "GET" (arguments as query string) or "POST" (JSON body).
    param_map: Mapping of tool argument name -> name sent to the remote API.
"""

import time
from typing import Any, Dict, Mapping, Optional

import httpx

from ...domain.contracts import ConnectResult, Connector
from ...domain.exceptions import ConnectionFailure, ToolCallError, ValidationError
from ...domain.model import ServerDescriptor
from ...logging_config import get_logger

logger = get_logger(__name__)

DEFAULT_REQUEST_TIMEOUT_SECONDS = 10.0
"""Per-request timeout for outgoing HTTP calls."""


class HttpConnector(Connector):
    """Talks to REST-style tool servers with httpx."""

    def __init__(
        self,
        timeout_s: float = DEFAULT_REQUEST_TIMEOUT_SECONDS,
        transport: Optional[httpx.BaseTransport] = None,
    ):
        """
        Args:
            timeout_s: Per-request timeout
            transport: Optional httpx transport (tests pass httpx.MockTransport)
        """
        self._timeout_s = timeout_s
        self._transport = transport

    def _client(self, server: ServerDescriptor) -> httpx.Client:
        base_url = server.config.get("base_url")
        if not base_url:
            raise ValidationError(f"Server {server.id} has no base_url configured", field="base_url")
        return httpx.Client(base_url=base_url, timeout=self._timeout_s, transport=self._transport)

    @staticmethod
    def _headers(server: ServerDescriptor, credentials: Mapping[str, str]) -> Dict[str, str]:
        headers = {"Accept": "application/json"}
        if server.requires_api_key and server.api_key_name:
            key = credentials.get(server.api_key_name)
            if key:
                header = server.config.get("api_key_header", "Authorization")
                headers[header] = f"Bearer {key}" if header.lower() == "authorization" else key
        return headers

    def connect(self, server: ServerDescriptor, credentials: Mapping[str, str]) -> ConnectResult:
        started = time.perf_counter()
        try:
            with self._client(server) as client:
                response = client.get(
                    server.config.get("health_path", "/"),
                    params=server.config.get("health_params"),
                    headers=self._headers(server, credentials),
                )
        except httpx.HTTPError as e:
            raise ConnectionFailure(server.id, f"{server.name} unreachable: {e}") from e

        latency_ms = (time.perf_counter() - started) * 1000
        if response.is_success:
            return ConnectResult(success=True, latency_ms=latency_ms)

        logger.info(
            "http_health_rejected",
            server_id=server.id,
            status_code=response.status_code,
        )
        return ConnectResult(
            success=False,
            message=f"{server.name} API error: {response.status_code} {response.reason_phrase}",
            latency_ms=latency_ms,
        )

    def call_tool(
        self,
        server: ServerDescriptor,
        tool_name: str,
        arguments: Dict[str, Any],
        credentials: Mapping[str, str],
    ) -> Any:
        path = (server.config.get("tool_paths") or {}).get(tool_name, f"/{tool_name}")
        method = str(server.config.get("tool_method", "GET")).upper()
        headers = self._headers(server, credentials)
        param_map = server.config.get("param_map") or {}
        arguments = {param_map.get(name, name): value for name, value in arguments.items()}

        try:
            with self._client(server) as client:
                if method == "POST":
                    response = client.post(path, json=arguments, headers=headers)
                else:
                    response = client.get(path, params=arguments, headers=headers)
        except httpx.HTTPError as e:
            raise ToolCallError(f"{server.name} request failed: {e}", {"tool_name": tool_name}) from e

        if not response.is_success:
            raise ToolCallError(
                f"{server.name} API error: {response.status_code} {response.reason_phrase}",
                {"tool_name": tool_name, "status_code": response.status_code},
            )

        try:
            return response.json()
        except ValueError:
            return {"text": response.text}
