"""
认证状态机模块 - 为一个会话标识产出已登录的客户端连接。

【状态流转】
    START → TRY_RESUME → AUTHENTICATED
                       ↘ NEEDS_INTERACTIVE_LOGIN → AWAITING_CODE ⇄ AWAITING_CODE（验证码错误/过期）
                                                  ↘ AWAITING_PASSWORD ⇄ AWAITING_PASSWORD（密码错误，最多 N 次）
                                                  ↘ AUTHENTICATED
    任何阶段都可能进入 FAILED（抛出类型化异常）。

【关键规则】
1. 先尝试用已保存的令牌恢复，成功则不做任何交互、也不重写记录
2. 恢复遇到连接故障且未配置应用凭据 → ResumeFailedError
3. 需要交互登录但未配置应用凭据 → MissingCredentialsError（不使用占位值）
4. 验证码错误不消耗密码次数；验证码过期会重新请求一次验证码
5. 两步验证密码连续错误达到上限 → AuthExhaustedError
6. 成功后只写一次记录，然后登记到连接池
7. 失败时新建的客户端会被断开，不写任何记录
8. 交互登录在进程内串行：同一时刻只有一个登录对话在向操作员提问

每个 await prompter 的位置就是状态机的挂起点，输入介质由外部注入。

【Java 开发者类比】
- _step 相当于状态模式里的 transition(state) → nextState
- _interactive_lock 类似于一个进程级的 ReentrantLock（这里不可重入）
"""

import asyncio
from dataclasses import dataclass
from enum import Enum

from loguru import logger

from tgmcp.client.base import (
    AppCredentials,
    ClientFactory,
    FreshLogin,
    RemoteClient,
    ResumeOnly,
)
from tgmcp.errors import (
    AuthExhaustedError,
    CodeExpiredError,
    InvalidCodeError,
    InvalidPasswordError,
    MissingCredentialsError,
    ResumeFailedError,
    TransportError,
)
from tgmcp.prompt.base import Prompter
from tgmcp.session.pool import ConnectionPool
from tgmcp.session.store import SessionRecord, SessionRecordStore


class AuthStage(str, Enum):
    START = "Start"
    TRY_RESUME = "TryResume"
    NEEDS_INTERACTIVE_LOGIN = "NeedsInteractiveLogin"
    AWAITING_CODE = "AwaitingCode"
    AWAITING_PASSWORD = "AwaitingPassword"
    AUTHENTICATED = "Authenticated"
    FAILED = "Failed"


@dataclass
class AuthenticationAttempt:
    """
    一次登录对话的临时状态（不持久化，对话结束即丢弃）。

    属性:
        session_id: 正在登录的会话标识
        identifier: 接收验证码的电话号码
        stage: 当前阶段
        attempt_count: 已失败的两步验证密码次数
        max_attempts: 密码最大尝试次数
    """

    session_id: str
    identifier: str
    stage: AuthStage = AuthStage.START
    attempt_count: int = 0
    max_attempts: int = 3


class Authenticator:
    """
    认证状态机。

    由 SessionManager 调用，是唯一会创建客户端连接的组件。
    """

    def __init__(
        self,
        store: SessionRecordStore,
        pool: ConnectionPool,
        client_factory: ClientFactory,
        prompter: Prompter,
        credentials: AppCredentials | None = None,
        max_password_attempts: int = 3,
    ):
        self.store = store
        self.pool = pool
        self.client_factory = client_factory
        self.prompter = prompter
        self.credentials = credentials
        self.max_password_attempts = max_password_attempts
        self._interactive_lock = asyncio.Lock()

    async def authenticate(self, session_id: str, record: SessionRecord | None) -> RemoteClient:
        """
        为 session_id 产出一个已登录的连接，并登记到连接池。

        参数:
            session_id: 规范化后的会话标识
            record: 已保存的会话记录（可能为 None）

        异常:
            SessionUnavailableError 的各个子类
        """
        if record is not None:
            client = await self._try_resume(session_id, record)
            if client is not None:
                self.pool.put(session_id, client)
                return client

        if self.credentials is None:
            raise MissingCredentialsError(
                f"No API credentials configured and no usable saved session for {session_id}. "
                "Set telegram.apiId / telegram.apiHash (or API_ID / API_HASH) to log in.",
                session_id=session_id,
            )

        async with self._interactive_lock:
            client = await self._interactive_login(session_id, self.credentials)

        try:
            self.store.save(session_id, client.export_token())
        except BaseException:
            await self._discard(client)
            raise
        self.pool.put(session_id, client)
        logger.info(f"Session {session_id} authenticated")
        return client

    async def _try_resume(self, session_id: str, record: SessionRecord) -> RemoteClient | None:
        """用已保存的令牌恢复会话。返回 None 表示需要交互登录。"""
        logger.debug(f"Resuming session {session_id} from saved token")
        client = self.client_factory(ResumeOnly(token=record.token, credentials=self.credentials))
        try:
            await client.connect()
            if await client.is_authenticated():
                logger.info(f"Session {session_id} resumed")
                return client
        except TransportError as e:
            await self._discard(client)
            if self.credentials is None:
                raise ResumeFailedError(
                    f"Could not resume session {session_id}: {e.message}",
                    session_id=session_id,
                ) from e
            logger.warning(f"Resume of {session_id} failed ({e.message}), falling back to login")
            return None
        except BaseException:
            await self._discard(client)
            raise

        logger.warning(f"Saved session {session_id} is no longer authorized")
        await self._discard(client)
        return None

    async def _interactive_login(self, session_id: str, credentials: AppCredentials) -> RemoteClient:
        """驱动一次完整的登录对话。调用方必须持有 _interactive_lock。"""
        client = self.client_factory(FreshLogin(credentials=credentials))
        attempt = AuthenticationAttempt(
            session_id=session_id,
            identifier=session_id,
            stage=AuthStage.NEEDS_INTERACTIVE_LOGIN,
            max_attempts=self.max_password_attempts,
        )
        try:
            await client.connect()
            while attempt.stage is not AuthStage.AUTHENTICATED:
                attempt.stage = await self._step(client, attempt)
        except BaseException as e:
            logger.error(f"Login for {session_id} failed at {attempt.stage.value}: {e}")
            attempt.stage = AuthStage.FAILED
            await self._discard(client)
            raise
        return client

    async def _step(self, client: RemoteClient, attempt: AuthenticationAttempt) -> AuthStage:
        """执行当前阶段，返回下一阶段。"""
        if attempt.stage is AuthStage.NEEDS_INTERACTIVE_LOGIN:
            if not attempt.session_id.startswith("+"):
                attempt.identifier = await self.prompter.request_text(
                    f"Phone number for session {attempt.session_id}:"
                )
            logger.info(f"Requesting login code for {attempt.session_id}")
            await client.request_code(attempt.identifier)
            return AuthStage.AWAITING_CODE

        if attempt.stage is AuthStage.AWAITING_CODE:
            code = await self.prompter.request_text(f"Login code sent to {attempt.identifier}:")
            try:
                needs_password = await client.submit_code(attempt.identifier, code)
            except CodeExpiredError:
                logger.warning(f"Login code for {attempt.session_id} expired, requesting a new one")
                await client.request_code(attempt.identifier)
                return AuthStage.AWAITING_CODE
            except InvalidCodeError:
                logger.warning(f"Invalid login code for {attempt.session_id}, try again")
                return AuthStage.AWAITING_CODE
            return AuthStage.AWAITING_PASSWORD if needs_password else AuthStage.AUTHENTICATED

        if attempt.stage is AuthStage.AWAITING_PASSWORD:
            password = await self.prompter.request_secret("Two-step verification password:")
            try:
                await client.submit_password(password)
            except InvalidPasswordError:
                attempt.attempt_count += 1
                left = attempt.max_attempts - attempt.attempt_count
                if left <= 0:
                    raise AuthExhaustedError(
                        f"Two-step verification failed {attempt.attempt_count} times for {attempt.session_id}",
                        session_id=attempt.session_id,
                    )
                logger.warning(f"Invalid password for {attempt.session_id}, {left} attempt(s) left")
                return AuthStage.AWAITING_PASSWORD
            return AuthStage.AUTHENTICATED

        raise RuntimeError(f"No transition from stage {attempt.stage.value}")

    @staticmethod
    async def _discard(client: RemoteClient) -> None:
        try:
            await client.disconnect()
        except Exception as e:
            logger.debug(f"Ignoring disconnect error: {e}")
