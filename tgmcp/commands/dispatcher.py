"""
命令分发器模块 (commands/dispatcher.py)

模块职责：
    维护命令注册表，并提供唯一的执行入口 dispatch()。
    HTTP、MCP、CLI 三种前端都只调用这里，不各自实现业务逻辑。

dispatch() 的执行步骤：
    1. 按名称查找命令，不存在 → NotFound
    2. 按 JSON Schema 校验参数 → InvalidParameters（附带可读的诊断信息）
    3. 填充默认值，用 session 参数向 SessionManager 获取连接 → SessionUnavailable
    4. 执行命令
    5. 把结果展平为 JSON 安全结构 → success

    任何一步都不会把异常抛出分发器边界：所有失败都以 CommandResult.failure 返回。

设计模式对比（Java 视角）：
    类似于 Spring MVC 的 DispatcherServlet + @ControllerAdvice：
    - register() 相当于注册 Handler
    - dispatch() 相当于 doDispatch()，统一做参数校验和异常转换
"""

from typing import Any

from loguru import logger

from tgmcp.commands.base import Command
from tgmcp.commands.result import CommandRequest, CommandResult
from tgmcp.commands.serialize import to_plain
from tgmcp.commands.telegram import default_commands
from tgmcp.errors import ErrorKind, SessionUnavailableError, TgmcpError
from tgmcp.session.manager import SessionManager


class CommandDispatcher:
    """
    命令分发器。

    内部使用 dict[str, Command] 存储，以命令名称为键。
    """

    def __init__(self, manager: SessionManager):
        self.manager = manager
        self._commands: dict[str, Command] = {}

    def register(self, command: Command) -> None:
        """注册命令。同名命令会被覆盖。"""
        self._commands[command.name] = command

    def get(self, name: str) -> Command | None:
        return self._commands.get(name)

    def definitions(self) -> list[dict[str, Any]]:
        """命令清单：每项包含 name、description、parameters（JSON Schema）。"""
        return [command.to_schema() for command in self._commands.values()]

    async def dispatch(self, request: CommandRequest) -> CommandResult:
        """
        执行一次命令请求，永远返回 CommandResult。

        参数:
            request: 命令名称 + 参数对象（来自外部，不可信）
        """
        name = request.name
        command = self._commands.get(name) if isinstance(name, str) else None
        if command is None:
            logger.warning(f"Unknown command: {name}")
            return CommandResult.failure(ErrorKind.NOT_FOUND, f"Command '{name}' not found")

        params = request.parameters
        if params is None:
            params = {}
        if not isinstance(params, dict):
            return CommandResult.failure(
                ErrorKind.INVALID_PARAMETERS, f"Parameters for command '{name}' must be an object"
            )

        try:
            errors = command.validate_params(params)
            if errors:
                message = f"Invalid parameters for command '{name}': " + "; ".join(errors)
                logger.warning(message)
                return CommandResult.failure(ErrorKind.INVALID_PARAMETERS, message)

            args = command.apply_defaults(params)
            session = args.pop("session")
            logger.debug(f"Dispatching {name} for session {session}")

            try:
                client = await self.manager.acquire_connection(session)
            except SessionUnavailableError as e:
                logger.warning(f"{name}: {e.message}")
                return CommandResult.failure(ErrorKind.SESSION_UNAVAILABLE, e.message, cause=_cause_of(e))

            result = await command.execute(client, **args)
            return CommandResult.success(to_plain(result))
        except TgmcpError as e:
            logger.warning(f"{name} failed: {e.message}")
            return CommandResult.failure(e.kind, e.message)
        except Exception as e:
            logger.exception(f"Unexpected error executing {name}")
            return CommandResult.failure(ErrorKind.INTERNAL, f"Error executing {name}: {e}")

    def __len__(self) -> int:
        return len(self._commands)

    def __contains__(self, name: str) -> bool:
        return name in self._commands


def build_dispatcher(manager: SessionManager) -> CommandDispatcher:
    """创建分发器并注册全部内置命令。"""
    dispatcher = CommandDispatcher(manager)
    for command in default_commands():
        dispatcher.register(command)
    return dispatcher


def _cause_of(error: SessionUnavailableError) -> ErrorKind | None:
    """认证失败的具体原因：子类自身的 kind，或被包装的底层异常的 kind。"""
    if error.kind is not ErrorKind.SESSION_UNAVAILABLE:
        return error.kind
    if isinstance(error.__cause__, TgmcpError):
        return error.__cause__.kind
    return None
