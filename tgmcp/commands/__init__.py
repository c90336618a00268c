"""
命令模块 - 会话命令的定义、校验与分发。

- base.py：Command 抽象基类（JSON Schema 参数校验）
- telegram.py：四个固定命令
- dispatcher.py：CommandDispatcher，唯一的执行入口
- result.py：CommandRequest / CommandResult
- serialize.py：结果展平
"""

from tgmcp.commands.base import Command
from tgmcp.commands.dispatcher import CommandDispatcher, build_dispatcher
from tgmcp.commands.result import CommandRequest, CommandResult

__all__ = ["Command", "CommandDispatcher", "CommandRequest", "CommandResult", "build_dispatcher"]
