"""
MCP 前端模块 - 通过 stdio 提供 Model Context Protocol 工具。

- list_tools：由命令清单生成（inputSchema 即命令的 JSON Schema）
- call_tool：转成 CommandRequest 交给分发器，结果以一段 JSON 文本返回
- 失败时抛出 ToolCallFailed，由 MCP SDK 转换为 isError=true 的结果

stdin/stdout 被协议占用，所以这一模式下不能交互登录：
CLI 会为它配置 DisabledPrompter，日志只写到 stderr。
"""

import json
from typing import Any

from loguru import logger
from mcp.server import Server
from mcp.server.stdio import stdio_server
from mcp.types import TextContent, Tool

from tgmcp import __version__
from tgmcp.commands.dispatcher import CommandDispatcher
from tgmcp.commands.result import CommandRequest, CommandResult
from tgmcp.frontends.base import Frontend


class ToolCallFailed(Exception):
    """工具调用失败。异常文本是 CommandResult 失败形式的 JSON。"""

    def __init__(self, result: CommandResult):
        super().__init__(json.dumps(result.to_dict(), ensure_ascii=False))
        self.result = result


class McpFrontend(Frontend):
    name = "mcp"

    def __init__(self, dispatcher: CommandDispatcher, server_name: str = "telegram-mcp"):
        super().__init__(dispatcher)
        self.server = Server(server_name, version=__version__)
        self._setup_handlers()

    def _setup_handlers(self) -> None:
        @self.server.list_tools()
        async def list_tools() -> list[Tool]:
            return self.list_tools()

        # 参数校验由分发器完成，错误信息带 errorKind
        @self.server.call_tool(validate_input=False)
        async def call_tool(name: str, arguments: dict[str, Any] | None) -> list[TextContent]:
            return await self.call_tool(name, arguments)

    def list_tools(self) -> list[Tool]:
        return [
            Tool(name=d["name"], description=d["description"], inputSchema=d["parameters"])
            for d in self.dispatcher.definitions()
        ]

    async def call_tool(self, name: str, arguments: dict[str, Any] | None) -> list[TextContent]:
        logger.info(f"MCP tool call: {name}")
        result = await self.dispatcher.dispatch(CommandRequest(name=name, parameters=arguments or {}))
        if not result.ok:
            raise ToolCallFailed(result)
        text = json.dumps(result.result, ensure_ascii=False, indent=2)
        return [TextContent(type="text", text=text)]

    async def start(self) -> None:
        self._running = True
        logger.info("Starting MCP server (stdio)")
        try:
            async with stdio_server() as (read_stream, write_stream):
                await self.server.run(
                    read_stream,
                    write_stream,
                    self.server.create_initialization_options(),
                )
        finally:
            self._running = False

    async def stop(self) -> None:
        # stdio 传输在对端关闭输入时结束，这里只更新状态
        self._running = False
