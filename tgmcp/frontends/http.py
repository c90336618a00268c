"""
HTTP 前端模块 - 基于 aiohttp 的 REST 接口。

路由：
    GET  /                          服务状态（含 ready 标志）
    GET  /api/commands              命令清单
    POST /api/commands/{name}       执行命令（请求体 JSON 即参数对象）

兼容旧版客户端的路由：
    GET  /api/dialogs?session=&limit=
    GET  /api/messages?session=&chatId=&limit=
    POST /api/send                  {session, chatId, message}
    POST /api/execute               {session, method, params}
    GET  /api/methods
    GET  /mcp/manifest
    POST /mcp/execute               {"function_call": {"name", "parameters"}}

错误类别 → HTTP 状态码：
    NotFound 404 / InvalidParameters 400 / SessionUnavailable 503 /
    TransportFailure 502 / RemoteError 502 / 其余 500
响应体始终带有 errorKind。
"""

import asyncio
import json
import re
from typing import Any

from aiohttp import web
from loguru import logger

from tgmcp import __version__
from tgmcp.commands.dispatcher import CommandDispatcher
from tgmcp.commands.result import CommandRequest, CommandResult
from tgmcp.errors import ErrorKind
from tgmcp.frontends.base import Frontend

_STATUS_BY_KIND = {
    ErrorKind.NOT_FOUND: 404,
    ErrorKind.INVALID_PARAMETERS: 400,
    ErrorKind.SESSION_UNAVAILABLE: 503,
    ErrorKind.TRANSPORT_FAILURE: 502,
    ErrorKind.REMOTE_ERROR: 502,
}

# 旧版路由 → (命令名, HTTP 方法, 成功时响应体的键)
_LEGACY_ROUTES = {
    "/api/dialogs": ("getDialogs", "GET", "dialogs"),
    "/api/messages": ("getMessages", "GET", "messages"),
    "/api/send": ("sendMessage", "POST", "result"),
    "/api/execute": ("executeMethod", "POST", "result"),
}

_INT_RE = re.compile(r"^-?\d+$")


def status_for(result: CommandResult) -> int:
    """CommandResult → HTTP 状态码。"""
    if result.ok:
        return 200
    return _STATUS_BY_KIND.get(result.error_kind, 500)


def _json(data: Any, status: int = 200) -> web.Response:
    return web.json_response(data, status=status, dumps=lambda d: json.dumps(d, ensure_ascii=False))


def coerce_query(params: dict[str, str], schema: dict[str, Any]) -> dict[str, Any]:
    """
    按参数 schema 把查询字符串的值转换为对应类型。

    转换失败的值保持字符串原样，交给分发器的参数校验报告错误。
    """
    props = schema.get("properties", {})
    result: dict[str, Any] = {}
    for key, raw in params.items():
        t = props.get(key, {}).get("type")
        value: Any = raw
        if t == "integer" and _INT_RE.match(raw.strip()):
            value = int(raw)
        elif t == "number":
            try:
                value = float(raw)
            except ValueError:
                pass
        elif t == "boolean" and raw.lower() in ("true", "false"):
            value = raw.lower() == "true"
        elif t in ("object", "array"):
            try:
                value = json.loads(raw)
            except ValueError:
                pass
        result[key] = value
    return result


class HttpFrontend(Frontend):
    """
    HTTP 前端。

    启动核对完成前 ready 为 False：状态接口照常响应，命令接口返回 503。
    """

    name = "http"

    def __init__(self, dispatcher: CommandDispatcher, host: str = "localhost", port: int = 3000):
        super().__init__(dispatcher)
        self.host = host
        self.port = port
        self.ready = False
        self._runner: web.AppRunner | None = None
        self._stop_event: asyncio.Event | None = None

    def mark_ready(self) -> None:
        self.ready = True
        logger.info("HTTP frontend is ready to handle commands")

    def build_app(self) -> web.Application:
        app = web.Application()
        app.router.add_get("/", self._status)
        app.router.add_get("/api/commands", self._list_commands)
        app.router.add_post("/api/commands/{name}", self._run_command)
        app.router.add_get("/api/dialogs", self._legacy)
        app.router.add_get("/api/messages", self._legacy)
        app.router.add_post("/api/send", self._legacy)
        app.router.add_post("/api/execute", self._legacy)
        app.router.add_get("/api/methods", self._methods)
        app.router.add_get("/mcp/manifest", self._mcp_manifest)
        app.router.add_post("/mcp/execute", self._mcp_execute)
        return app

    async def start(self) -> None:
        self._stop_event = asyncio.Event()
        self._runner = web.AppRunner(self.build_app(), access_log=None)
        await self._runner.setup()
        site = web.TCPSite(self._runner, self.host, self.port)
        await site.start()
        self._running = True
        logger.info(f"HTTP frontend listening on http://{self.host}:{self.port}")

        try:
            await self._stop_event.wait()
        finally:
            self._running = False
            await self._runner.cleanup()
            self._runner = None

    async def stop(self) -> None:
        if self._stop_event is not None:
            self._stop_event.set()

    # ------------------------------------------------------------------
    # Handlers
    # ------------------------------------------------------------------

    async def _status(self, _request: web.Request) -> web.Response:
        return _json({
            "status": "OK" if self.ready else "STARTING",
            "ready": self.ready,
            "version": __version__,
            "message": "Telegram MCP server is running",
        })

    async def _list_commands(self, _request: web.Request) -> web.Response:
        return _json({"commands": self.dispatcher.definitions()})

    async def _run_command(self, request: web.Request) -> web.Response:
        name = request.match_info["name"]
        params, error = await self._read_body(request)
        if error is not None:
            return _json(error.to_dict(), status=status_for(error))
        result = await self._dispatch(name, params)
        return _json(result.to_dict(), status=status_for(result))

    async def _legacy(self, request: web.Request) -> web.Response:
        name, method, key = _LEGACY_ROUTES[request.path]
        if method == "GET":
            command = self.dispatcher.get(name)
            schema = command.parameters if command else {}
            params = coerce_query(dict(request.query), schema)
        else:
            params, error = await self._read_body(request)
            if error is not None:
                return _json({**error.to_dict(), "error": error.message}, status=status_for(error))

        result = await self._dispatch(name, params)
        if result.ok:
            return _json({key: result.result})
        return _json({**result.to_dict(), "error": result.message}, status=status_for(result))

    async def _methods(self, _request: web.Request) -> web.Response:
        endpoints = {name: (path, method) for path, (name, method, _) in _LEGACY_ROUTES.items()}
        methods = []
        for definition in self.dispatcher.definitions():
            path, method = endpoints.get(definition["name"], (f"/api/commands/{definition['name']}", "POST"))
            methods.append({**definition, "endpoint": path, "method": method})
        return _json({"methods": methods})

    async def _mcp_manifest(self, _request: web.Request) -> web.Response:
        return _json({
            "schema_version": "v1",
            "name": "telegram-mcp",
            "description": "MCP server for Telegram API integration",
            "tools": self.dispatcher.definitions(),
            "version": __version__,
        })

    async def _mcp_execute(self, request: web.Request) -> web.Response:
        body, error = await self._read_body(request)
        call = body.get("function_call") if error is None else None
        if not isinstance(call, dict) or not isinstance(call.get("name"), str):
            failure = CommandResult.failure(
                ErrorKind.INVALID_PARAMETERS,
                "Invalid MCP request format: request must include a valid function_call object",
            )
            return _json(_mcp_content(failure))

        result = await self._dispatch(call["name"], call.get("parameters") or {})
        return _json(_mcp_content(result))

    # ------------------------------------------------------------------

    async def _dispatch(self, name: str, params: Any) -> CommandResult:
        if not self.ready:
            return CommandResult.failure(ErrorKind.SESSION_UNAVAILABLE, "Server is still starting")
        return await self.dispatcher.dispatch(CommandRequest(name=name, parameters=params))

    @staticmethod
    async def _read_body(request: web.Request) -> tuple[dict[str, Any], CommandResult | None]:
        if not request.can_read_body:
            return {}, None
        try:
            body = await request.json()
        except ValueError:
            return {}, CommandResult.failure(ErrorKind.INVALID_PARAMETERS, "Request body is not valid JSON")
        if not isinstance(body, dict):
            return {}, CommandResult.failure(ErrorKind.INVALID_PARAMETERS, "Request body must be a JSON object")
        return body, None


def _mcp_content(result: CommandResult) -> dict[str, Any]:
    """CommandResult → MCP 风格的 content 响应。"""
    if result.ok:
        text = json.dumps(result.result, ensure_ascii=False, indent=2)
        return {"content": [{"type": "text", "text": text}]}
    return {
        "isError": True,
        "errorKind": result.error_kind.value,
        "content": [{"type": "text", "text": json.dumps(result.to_dict(), ensure_ascii=False)}],
    }
