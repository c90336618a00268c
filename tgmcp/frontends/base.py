"""
前端基类模块 - 定义所有传输前端的统一接口。

前端只做一件事：把各自传输协议的请求翻译成 CommandRequest，
再把 CommandResult 翻译回协议自己的响应格式。业务逻辑全部在 CommandDispatcher 中。

【核心抽象方法】
- start(): 启动前端并开始处理请求（长期运行的异步任务，直到 stop() 被调用）
- stop(): 停止前端，释放资源

【Java 开发者类比】
- Frontend 相当于不同协议的 Controller 层（REST Controller / RPC Endpoint），
  共用同一个 Service（CommandDispatcher）
"""

from abc import ABC, abstractmethod

from tgmcp.commands.dispatcher import CommandDispatcher


class Frontend(ABC):
    """
    传输前端抽象基类。

    属性:
        name: 前端标识名（如 "http"、"mcp"），用于日志
        dispatcher: 共享的命令分发器
        _running: 运行状态标志
    """

    name: str = "base"

    def __init__(self, dispatcher: CommandDispatcher):
        self.dispatcher = dispatcher
        self._running = False

    @abstractmethod
    async def start(self) -> None:
        """启动前端并持续处理请求，直到 stop() 被调用或传输关闭。"""
        pass

    @abstractmethod
    async def stop(self) -> None:
        pass

    @property
    def is_running(self) -> bool:
        return self._running
