"""
前端模块 - 共享同一个 CommandDispatcher 的传输适配器。

- http.py：aiohttp REST 接口（含旧版路由）
- mcp.py：MCP stdio 服务

mcp 模块不在这里导入，只有 `tgmcp mcp` 命令才需要加载 MCP SDK。
"""

from tgmcp.frontends.base import Frontend
from tgmcp.frontends.http import HttpFrontend

__all__ = ["Frontend", "HttpFrontend"]
