"""File system connector - sandboxed file operations under one root."""

from pathlib import Path
from typing import Any, Dict, Mapping

from ...domain.contracts import ConnectResult, Connector
from ...domain.exceptions import ToolCallError
from ...domain.model import ServerDescriptor

DEFAULT_ROOT = "./data/mcp-files"


class FileSystemConnector(Connector):
    """Serves read_file, write_file, list_directory and create_directory.

    Every path is resolved against ``config["root"]`` and rejected if it
    escapes that directory.
    """

    @staticmethod
    def _root(server: ServerDescriptor) -> Path:
        return Path(server.config.get("root", DEFAULT_ROOT)).resolve()

    def _resolve(self, server: ServerDescriptor, relative: str) -> Path:
        root = self._root(server)
        full = (root / relative).resolve()
        if full != root and root not in full.parents:
            raise ToolCallError("Access denied: Path outside allowed directory", {"path": relative})
        return full

    def connect(self, server: ServerDescriptor, credentials: Mapping[str, str]) -> ConnectResult:
        root = self._root(server)
        try:
            root.mkdir(parents=True, exist_ok=True)
        except OSError as e:
            return ConnectResult(success=False, message=f"Cannot prepare {root}: {e}")
        if not root.is_dir():
            return ConnectResult(success=False, message=f"{root} is not a directory")
        return ConnectResult(success=True)

    def health_check(self, server: ServerDescriptor, credentials: Mapping[str, str]) -> bool:
        return self._root(server).is_dir()

    def call_tool(
        self,
        server: ServerDescriptor,
        tool_name: str,
        arguments: Dict[str, Any],
        credentials: Mapping[str, str],
    ) -> Any:
        try:
            if tool_name == "read_file":
                content = self._resolve(server, arguments["path"]).read_text(encoding="utf-8")
                return {"content": content, "size": len(content)}

            if tool_name == "write_file":
                content = str(arguments.get("content", ""))
                target = self._resolve(server, arguments["path"])
                target.write_text(content, encoding="utf-8")
                return {"success": True, "size": len(content)}

            if tool_name == "list_directory":
                target = self._resolve(server, arguments.get("path", "."))
                items = [
                    {"name": p.name, "type": "directory" if p.is_dir() else "file"}
                    for p in sorted(target.iterdir(), key=lambda p: p.name)
                ]
                return {"items": items, "count": len(items)}

            if tool_name == "create_directory":
                self._resolve(server, arguments["path"]).mkdir(parents=True, exist_ok=True)
                return {"success": True, "path": arguments["path"]}
        except KeyError as e:
            raise ToolCallError(f"Missing argument: {e.args[0]}", {"tool_name": tool_name}) from e
        except OSError as e:
            raise ToolCallError(str(e), {"tool_name": tool_name}) from e

        raise ToolCallError(f"Unknown file system tool: {tool_name}", {"tool_name": tool_name})
