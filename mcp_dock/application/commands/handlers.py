"""Command handlers - thin adapters from commands to the lifecycle controller."""

from typing import Any, Dict

from ...domain.value_objects import ControlAction
from ...infrastructure.command_bus import CommandBus, CommandHandler
from ..lifecycle import LifecycleController
from .commands import (
    CallToolCommand,
    ConnectServerCommand,
    ControlServerCommand,
    DisconnectServerCommand,
    HealthCheckCommand,
    ResetServerCommand,
    StartServerCommand,
    StopServerCommand,
)


class BaseHandler(CommandHandler):
    def __init__(self, controller: LifecycleController):
        self._controller = controller


class StartServerHandler(BaseHandler):
    def handle(self, command: StartServerCommand) -> Dict[str, Any]:
        return self._controller.start(command.server_id).to_dict()


class StopServerHandler(BaseHandler):
    def handle(self, command: StopServerCommand) -> Dict[str, Any]:
        return self._controller.stop(command.server_id).to_dict()


class ConnectServerHandler(BaseHandler):
    def handle(self, command: ConnectServerCommand) -> Dict[str, Any]:
        return self._controller.connect(command.server_id).to_dict()


class DisconnectServerHandler(BaseHandler):
    def handle(self, command: DisconnectServerCommand) -> Dict[str, Any]:
        return self._controller.disconnect(command.server_id).to_dict()


class ResetServerHandler(BaseHandler):
    def handle(self, command: ResetServerCommand) -> Dict[str, Any]:
        return self._controller.reset(command.server_id).to_dict()


class ControlServerHandler(BaseHandler):
    """
    Dispatch a raw start/stop action.

    The action is validated before the server id so that a bad action is
    reported as such even for unknown servers.

    Raises:
        InvalidActionError: If action is not start or stop
        ServerNotFoundError: If the server is not registered
    """

    def handle(self, command: ControlServerCommand) -> Dict[str, Any]:
        action = ControlAction.parse(command.action)
        if action == ControlAction.START:
            result = self._controller.start(command.server_id)
        else:
            result = self._controller.stop(command.server_id)
        return result.to_dict()


class HealthCheckHandler(BaseHandler):
    def handle(self, command: HealthCheckCommand) -> Dict[str, bool]:
        if command.server_id is None:
            return self._controller.health_check_all()
        return {command.server_id: self._controller.health_check(command.server_id)}


class CallToolHandler(BaseHandler):
    def handle(self, command: CallToolCommand) -> Dict[str, Any]:
        return self._controller.call_tool(command.server_id, command.tool_name, command.arguments).to_dict()


def register_all_handlers(command_bus: CommandBus, controller: LifecycleController) -> None:
    """Wire every lifecycle command to its handler."""
    command_bus.register(StartServerCommand, StartServerHandler(controller))
    command_bus.register(StopServerCommand, StopServerHandler(controller))
    command_bus.register(ConnectServerCommand, ConnectServerHandler(controller))
    command_bus.register(DisconnectServerCommand, DisconnectServerHandler(controller))
    command_bus.register(ResetServerCommand, ResetServerHandler(controller))
    command_bus.register(ControlServerCommand, ControlServerHandler(controller))
    command_bus.register(HealthCheckCommand, HealthCheckHandler(controller))
    command_bus.register(CallToolCommand, CallToolHandler(controller))
