"""
连接池模块 - 进程内 会话标识 → 活动客户端 的注册表。

规则：
- 每个会话标识最多只有一个客户端对象
- 每个标识有一个"进行中"标记（asyncio.Task）：同一标识的并发获取只会启动一次创建，
  其余调用方等待同一个任务
- 等待方通过 asyncio.shield 等待，某个调用方被取消不会取消共享的创建任务
- 不同标识之间互不阻塞（没有全局锁）
- 不做淘汰，连接只在失效或进程结束时移除

【Java 开发者类比】
- 类似于 ConcurrentHashMap.computeIfAbsent + CompletableFuture 的组合：
  第一个调用方负责创建 future，后来者拿到同一个 future
"""

import asyncio
from typing import Awaitable, Callable

from loguru import logger

from tgmcp.client.base import RemoteClient


class ConnectionPool:
    """
    连接池。由 SessionManager 独占持有。

    属性:
        _connections: 已建立的连接 {session_id: RemoteClient}
        _inflight: 进行中的获取任务 {session_id: asyncio.Task}
    """

    def __init__(self):
        self._connections: dict[str, RemoteClient] = {}
        self._inflight: dict[str, asyncio.Task] = {}

    def get(self, session_id: str) -> RemoteClient | None:
        return self._connections.get(session_id)

    def put(self, session_id: str, client: RemoteClient) -> RemoteClient | None:
        """登记连接，返回被替换掉的旧连接（若有）。"""
        previous = self._connections.get(session_id)
        self._connections[session_id] = client
        return previous if previous is not client else None

    async def invalidate(self, session_id: str) -> None:
        """移除并断开指定标识的连接。断开失败只记录日志。"""
        client = self._connections.pop(session_id, None)
        if client is None:
            return
        try:
            await client.disconnect()
        except Exception as e:
            logger.warning(f"Error disconnecting session {session_id}: {e}")

    async def acquire(
        self,
        session_id: str,
        create: Callable[[], Awaitable[RemoteClient]],
    ) -> RemoteClient:
        """
        获取连接：同一标识同一时刻只运行一个 create()。

        参数:
            session_id: 规范化后的会话标识
            create: 创建（或校验）连接的协程工厂，仅在没有进行中的任务时调用

        返回:
            create() 的结果；并发调用方拿到的是同一个对象
        """
        task = self._inflight.get(session_id)
        if task is None:
            task = asyncio.ensure_future(create())
            self._inflight[session_id] = task
            task.add_done_callback(lambda t: self._finish(session_id, t))
        else:
            logger.debug(f"Waiting for in-flight connection of {session_id}")
        return await asyncio.shield(task)

    def _finish(self, session_id: str, task: asyncio.Task) -> None:
        if self._inflight.get(session_id) is task:
            del self._inflight[session_id]
        # 所有等待方都可能已被取消，这里取走异常，避免 "exception was never retrieved"
        if not task.cancelled():
            task.exception()

    def is_pending(self, session_id: str) -> bool:
        """该标识当前是否有进行中的获取任务。"""
        return session_id in self._inflight

    def __len__(self) -> int:
        return len(self._connections)

    async def close_all(self) -> None:
        """断开所有连接（进程退出时调用）。"""
        for session_id in list(self._connections):
            await self.invalidate(session_id)
