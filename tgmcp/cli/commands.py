"""
CLI 命令模块 - tgmcp 的所有命令行命令定义。

本模块使用 Typer 框架定义 tgmcp 的完整 CLI 命令体系：
- onboard：初始化配置文件和会话目录
- gateway：启动 HTTP 网关（先做启动核对，再标记就绪）
- mcp：启动 MCP stdio 服务
- login：交互式创建（或验证）一个会话
- call：在命令行直接执行一条命令
- sessions：会话记录管理（列表、删除）
- status：查看配置与会话状态

技术栈：
- Typer：CLI 框架（基于 Click，支持类型注解自动生成帮助文档）
- Rich：终端美化输出（表格、颜色）
- prompt_toolkit：登录时的交互式输入（见 tgmcp/prompt/console.py）

二开提示：
- gateway 命令是最完整的启动入口，包含了所有组件的组装顺序
- 新增命令后无需改动这里：call / gateway / mcp 都从分发器读取命令清单
"""

import asyncio
import json
import sys

import typer
from loguru import logger
from rich.console import Console
from rich.table import Table

from tgmcp import __logo__, __version__

# 创建 Typer 应用实例（CLI 根命令）
app = typer.Typer(
    name="tgmcp",
    help=f"{__logo__} tgmcp - Multi-session Telegram command gateway",
    no_args_is_help=True,
)

console = Console()


def _setup_logging(verbose: bool) -> None:
    """日志统一输出到 stderr（stdout 在 MCP 模式下被协议占用）。"""
    logger.remove()
    logger.add(sys.stderr, level="DEBUG" if verbose else "INFO")


def _make_prompter(config):
    from tgmcp.prompt import DisabledPrompter

    if config.auth.interactive:
        from tgmcp.prompt.console import ConsolePrompter

        return ConsolePrompter()
    return DisabledPrompter("Interactive login is disabled (auth.interactive = false)")


def _make_reconciler(config, manager, prompter=None):
    from tgmcp.session import StartupReconciler

    return StartupReconciler(
        manager,
        prompter=prompter,
        verify=config.startup.verify,
        verify_timeout_s=config.startup.verify_timeout_s,
        offer_login=config.startup.offer_login,
    )


def version_callback(value: bool):
    """版本号回调：当用户传入 --version/-v 参数时，打印版本号并退出。"""
    if value:
        console.print(f"{__logo__} tgmcp v{__version__}")
        raise typer.Exit()


@app.callback()
def main(
    version: bool = typer.Option(
        None, "--version", "-v", callback=version_callback, is_eager=True
    ),
):
    """tgmcp CLI 根命令回调。处理全局选项（如 --version）。"""
    pass


# ============================================================================
# Onboard / Setup
# ============================================================================


@app.command()
def onboard():
    """
    初始化 tgmcp 配置。

    执行流程：
    1. 在 ~/.tgmcp/ 下创建默认配置文件 config.json
    2. 创建会话目录
    3. 打印后续操作指引
    """
    from tgmcp.config.loader import get_config_path, save_config
    from tgmcp.config.schema import Config
    from tgmcp.utils.helpers import ensure_dir

    config_path = get_config_path()

    if config_path.exists():
        console.print(f"[yellow]Config already exists at {config_path}[/yellow]")
        if not typer.confirm("Overwrite?"):
            raise typer.Exit()

    config = Config()
    save_config(config)
    console.print(f"[green]✓[/green] Created config at {config_path}")

    sessions = ensure_dir(config.sessions_path)
    console.print(f"[green]✓[/green] Sessions directory at {sessions}")

    console.print(f"\n{__logo__} tgmcp is ready!")
    console.print("\nNext steps:")
    console.print("  1. Add apiId / apiHash to [cyan]~/.tgmcp/config.json[/cyan]")
    console.print("     Get them at: https://my.telegram.org/apps")
    console.print("  2. Log in: [cyan]tgmcp login +79001234567[/cyan]")
    console.print("  3. Serve: [cyan]tgmcp gateway[/cyan] or [cyan]tgmcp mcp[/cyan]")


# ============================================================================
# Servers
# ============================================================================


@app.command()
def gateway(
    host: str = typer.Option(None, "--host", help="Bind address (default: gateway.host)"),
    port: int = typer.Option(None, "--port", "-p", help="Gateway port (default: gateway.port)"),
    verbose: bool = typer.Option(False, "--verbose", help="Verbose output"),
):
    """
    启动 HTTP 网关。

    执行顺序：
    1. 加载配置，组装会话管理器与命令分发器
    2. 启动 HTTP 服务（此时只有状态接口可用）
    3. 运行启动核对，完成后标记就绪
    4. 持续服务直到 Ctrl+C，退出时断开所有连接
    """
    from tgmcp.commands import build_dispatcher
    from tgmcp.config.loader import load_config
    from tgmcp.frontends.http import HttpFrontend
    from tgmcp.session import create_session_manager

    _setup_logging(verbose)
    config = load_config()
    prompter = _make_prompter(config)
    manager = create_session_manager(config, prompter)
    dispatcher = build_dispatcher(manager)
    frontend = HttpFrontend(
        dispatcher,
        host=host or config.gateway.host,
        port=port or config.gateway.port,
    )

    console.print(f"{__logo__} Starting tgmcp gateway on {frontend.host}:{frontend.port}...")
    if config.credentials is None:
        console.print("[yellow]Warning: API credentials not set, only saved sessions can be used[/yellow]")

    async def run():
        server = asyncio.create_task(frontend.start())
        try:
            await _make_reconciler(config, manager, prompter).run()
            frontend.mark_ready()
            await server
        finally:
            await frontend.stop()
            await manager.close()

    try:
        asyncio.run(run())
    except KeyboardInterrupt:
        console.print("\nShutting down...")


@app.command()
def mcp(
    verbose: bool = typer.Option(False, "--verbose", help="Verbose output"),
):
    """
    启动 MCP stdio 服务。

    stdin/stdout 被 MCP 协议占用，因此这一模式下不会交互登录，
    请先用 `tgmcp login` 创建会话。
    """
    from tgmcp.commands import build_dispatcher
    from tgmcp.config.loader import load_config
    from tgmcp.frontends.mcp import McpFrontend
    from tgmcp.prompt import DisabledPrompter
    from tgmcp.session import create_session_manager

    _setup_logging(verbose)
    config = load_config()
    prompter = DisabledPrompter("Interactive login is not available over stdio; run `tgmcp login` first")
    manager = create_session_manager(config, prompter)
    frontend = McpFrontend(build_dispatcher(manager))

    async def run():
        try:
            await _make_reconciler(config, manager).run()
            await frontend.start()
        finally:
            await manager.close()

    try:
        asyncio.run(run())
    except KeyboardInterrupt:
        logger.info("MCP server stopped by user")


# ============================================================================
# Sessions
# ============================================================================


@app.command()
def login(
    phone: str = typer.Argument(..., help="Phone number in international format, e.g. +79001234567"),
    verbose: bool = typer.Option(False, "--verbose", help="Verbose output"),
):
    """
    交互式登录并保存会话。

    已有有效会话时只做一次恢复校验，不会重新登录。
    """
    from tgmcp.config.loader import load_config
    from tgmcp.errors import TgmcpError
    from tgmcp.prompt.console import ConsolePrompter
    from tgmcp.session import create_session_manager

    _setup_logging(verbose)
    config = load_config()
    manager = create_session_manager(config, ConsolePrompter())

    async def run():
        try:
            await manager.acquire_connection(phone)
        finally:
            await manager.close()

    try:
        asyncio.run(run())
    except TgmcpError as e:
        console.print(f"[red]Login failed ({e.kind.value}): {e.message}[/red]")
        raise typer.Exit(1)

    console.print(f"[green]✓[/green] Session {phone} is ready")


sessions_app = typer.Typer(help="Manage saved sessions")
app.add_typer(sessions_app, name="sessions")


@sessions_app.command("list")
def sessions_list():
    """以表格形式列出所有会话记录及其状态。"""
    from tgmcp.config.loader import load_config
    from tgmcp.session import SessionRecordStore
    from tgmcp.utils.helpers import ms_to_iso

    config = load_config()
    store = SessionRecordStore(config.sessions_path)
    statuses = store.scan()

    if not statuses:
        console.print("No saved sessions.")
        return

    table = Table(title="Saved Sessions")
    table.add_column("Session", style="cyan")
    table.add_column("Status")
    table.add_column("Saved at", style="dim")

    for s in statuses:
        state = "[green]valid[/green]" if s.valid else f"[red]damaged[/red] ({s.reason})"
        saved = ms_to_iso(s.timestamp) if s.timestamp else ""
        table.add_row(s.session_id, state, saved)

    console.print(table)


@sessions_app.command("remove")
def sessions_remove(
    session_id: str = typer.Argument(..., help="Session ID to remove"),
):
    """删除指定的会话记录。"""
    from tgmcp.config.loader import load_config
    from tgmcp.errors import InvalidParametersError
    from tgmcp.session import SessionRecordStore

    config = load_config()
    store = SessionRecordStore(config.sessions_path)

    try:
        removed = store.delete(session_id)
    except InvalidParametersError as e:
        console.print(f"[red]{e.message}[/red]")
        raise typer.Exit(1)

    if removed:
        console.print(f"[green]✓[/green] Removed session {session_id}")
    else:
        console.print(f"[red]Session {session_id} not found[/red]")


# ============================================================================
# Commands
# ============================================================================


@app.command()
def call(
    name: str = typer.Argument(..., help="Command name, e.g. getDialogs"),
    params: str = typer.Option("{}", "--params", "-p", help="Parameters as a JSON object"),
    session: str = typer.Option(None, "--session", "-s", help="Session ID (overrides params.session)"),
    logs: bool = typer.Option(False, "--logs/--no-logs", help="Show tgmcp runtime logs"),
):
    """
    直接执行一条命令并打印 JSON 结果。

    示例: tgmcp call getMessages -s +79001234567 -p '{"chatId": "durov", "limit": 5}'
    """
    from tgmcp.commands import CommandRequest, build_dispatcher
    from tgmcp.config.loader import load_config
    from tgmcp.session import create_session_manager

    if logs:
        logger.enable("tgmcp")
    else:
        logger.disable("tgmcp")

    try:
        parameters = json.loads(params)
    except json.JSONDecodeError as e:
        console.print(f"[red]--params is not valid JSON: {e}[/red]")
        raise typer.Exit(2)
    if not isinstance(parameters, dict):
        console.print("[red]--params must be a JSON object[/red]")
        raise typer.Exit(2)
    if session:
        parameters["session"] = session

    config = load_config()
    manager = create_session_manager(config, _make_prompter(config))
    dispatcher = build_dispatcher(manager)

    async def run():
        try:
            return await dispatcher.dispatch(CommandRequest(name=name, parameters=parameters))
        finally:
            await manager.close()

    result = asyncio.run(run())
    console.print_json(json.dumps(result.to_dict(), ensure_ascii=False))
    if not result.ok:
        raise typer.Exit(1)


# ============================================================================
# Status Commands
# ============================================================================


@app.command()
def status():
    """
    显示 tgmcp 状态。

    展示内容：
    - 配置文件路径和状态
    - 会话目录与有效 / 损坏会话数量
    - API 凭据是否已配置
    - 网关监听地址
    """
    from tgmcp.config.loader import get_config_path, load_config
    from tgmcp.session import SessionRecordStore

    config_path = get_config_path()
    config = load_config()

    console.print(f"{__logo__} tgmcp Status\n")
    console.print(f"Config: {config_path} {'[green]✓[/green]' if config_path.exists() else '[red]✗[/red]'}")

    sessions_path = config.sessions_path
    console.print(f"Sessions: {sessions_path} {'[green]✓[/green]' if sessions_path.exists() else '[red]✗[/red]'}")
    if sessions_path.exists():
        statuses = SessionRecordStore(sessions_path).scan()
        valid = sum(1 for s in statuses if s.valid)
        console.print(f"  {valid} valid, {len(statuses) - valid} damaged")

    has_creds = config.credentials is not None
    console.print(f"API credentials: {'[green]✓[/green]' if has_creds else '[dim]not set[/dim]'}")
    console.print(f"Gateway: http://{config.gateway.host}:{config.gateway.port}")


if __name__ == "__main__":
    app()
