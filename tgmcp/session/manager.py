"""
会话管理器模块 - 所有命令获取连接的唯一入口。

acquire_connection(session_id) 的策略：
1. 规范化会话标识
2. 经由连接池的"进行中"标记串行化同一标识的并发请求
3. 连接池命中且仍处于登录状态 → 直接复用
4. 命中但已失效 → 移除并断开，继续往下
5. 读取会话记录（可能没有），交给认证状态机
6. 状态机成功时已经把连接登记进连接池，这里直接返回

状态机以下抛出的非预期异常会被包装为 SessionUnavailableError，原异常作为 __cause__。

【Java 开发者类比】
- SessionManager 类似于一个 DataSource：调用方只管 getConnection()，
  不关心连接是复用的、恢复的还是新登录的
"""

from loguru import logger

from tgmcp.client.base import AppCredentials, ClientFactory, RemoteClient
from tgmcp.errors import SessionUnavailableError, TgmcpError, TransportError
from tgmcp.prompt.base import Prompter
from tgmcp.session.auth import Authenticator
from tgmcp.session.pool import ConnectionPool
from tgmcp.session.store import SessionRecordStore
from tgmcp.utils.helpers import normalize_session_id


class SessionManager:
    """
    会话管理器。

    属性:
        store: 会话记录存储
        pool: 连接池（由本对象独占）
        authenticator: 认证状态机
    """

    def __init__(self, store: SessionRecordStore, pool: ConnectionPool, authenticator: Authenticator):
        self.store = store
        self.pool = pool
        self.authenticator = authenticator

    async def acquire_connection(self, session_id: str) -> RemoteClient:
        """
        获取指定会话的已登录连接。

        异常:
            InvalidParametersError: 会话标识不合法
            SessionUnavailableError: 无法完成认证（含各个具体子类）
        """
        sid = normalize_session_id(session_id)
        return await self.pool.acquire(sid, lambda: self._establish(sid))

    async def _establish(self, sid: str) -> RemoteClient:
        try:
            client = self.pool.get(sid)
            if client is not None:
                if await self._still_authenticated(client):
                    return client
                logger.warning(f"Connection for {sid} is no longer authenticated, re-establishing")
                await self.pool.invalidate(sid)

            record = self.store.load(sid)
            return await self.authenticator.authenticate(sid, record)
        except SessionUnavailableError:
            raise
        except TgmcpError as e:
            raise SessionUnavailableError(f"Session {sid} unavailable: {e.message}", session_id=sid) from e
        except Exception as e:
            logger.exception(f"Unexpected error while connecting session {sid}")
            raise SessionUnavailableError(f"Session {sid} unavailable: {e}", session_id=sid) from e

    @staticmethod
    async def _still_authenticated(client: RemoteClient) -> bool:
        try:
            return await client.is_authenticated()
        except TransportError as e:
            logger.warning(f"Connection check failed: {e.message}")
            return False

    def is_connected(self, session_id: str) -> bool:
        """连接池中是否已有该会话的连接（不做远端校验）。"""
        return self.pool.get(normalize_session_id(session_id)) is not None

    async def close(self) -> None:
        """断开所有连接。"""
        await self.pool.close_all()


def create_session_manager(
    config,
    prompter: Prompter,
    client_factory: ClientFactory | None = None,
) -> SessionManager:
    """
    按配置组装会话管理器（每个进程调用一次）。

    参数:
        config: tgmcp.config.Config
        prompter: 登录对话使用的输入介质
        client_factory: 客户端工厂；为 None 时使用 Telethon 实现
    """
    if client_factory is None:
        retries = config.telegram.connection_retries

        def client_factory(mode):
            from tgmcp.client.telethon_client import create_client

            return create_client(mode, connection_retries=retries)

    credentials: AppCredentials | None = config.credentials
    store = SessionRecordStore(config.sessions_path)
    pool = ConnectionPool()
    authenticator = Authenticator(
        store=store,
        pool=pool,
        client_factory=client_factory,
        prompter=prompter,
        credentials=credentials,
        max_password_attempts=config.auth.max_password_attempts,
    )
    return SessionManager(store, pool, authenticator)
