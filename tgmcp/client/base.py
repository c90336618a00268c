"""
远端客户端基类模块 - 定义 tgmcp 与 Telegram 后端之间的接口契约。

本模块定义了：
- AppCredentials：应用级 API 身份（api_id / api_hash）
- FreshLogin / ResumeOnly：客户端的两种初始化方式（带标签的变体，由同一个工厂消费）
- Dialog / Message / SentMessage 等：远端操作返回的数据结构
- RemoteClient：所有远端客户端实现必须遵守的抽象接口

会话管理层只依赖这里定义的形状，不关心底层传输。
当前唯一的实现是 TelethonClient（在 telethon_client.py 中）。

【Java 开发者类比】
- RemoteClient 相当于一个 interface，TelethonClient 是它的实现类
- FreshLogin | ResumeOnly 类似于 Java 17 的 sealed interface + record 组合
"""

from abc import ABC, abstractmethod
from dataclasses import dataclass
from typing import Any, Callable, Union


@dataclass(frozen=True)
class AppCredentials:
    """应用级 API 身份，只在创建全新会话时必需。"""
    api_id: int
    api_hash: str


@dataclass(frozen=True)
class FreshLogin:
    """全新登录模式：没有令牌，必须提供真实的应用凭据。"""
    credentials: AppCredentials


@dataclass(frozen=True)
class ResumeOnly:
    """
    令牌恢复模式：只凭已持久化的令牌建立连接。

    credentials 可以为 None：已有会话在缺少应用凭据时仍然可以恢复。
    """
    token: str
    credentials: AppCredentials | None = None


ConnectMode = Union[FreshLogin, ResumeOnly]


@dataclass
class MessagePreview:
    """对话列表中的最后一条消息摘要。"""
    text: str
    date: str | None
    from_me: bool


@dataclass
class Dialog:
    """一个对话（私聊 / 群组 / 频道）。"""
    id: str
    name: str
    type: str  # user | group | channel | unknown
    unread_count: int
    last_message: MessagePreview | None = None


@dataclass
class Sender:
    id: str | None
    username: str = ""
    first_name: str = ""
    last_name: str = ""


@dataclass
class Message:
    """聊天中的一条消息。"""
    id: str
    text: str
    date: str | None
    from_me: bool
    sender: Sender | None = None
    has_media: bool = False
    media_type: str | None = None


@dataclass
class SentMessage:
    """发送消息的结果。"""
    message_id: str
    date: str | None
    success: bool = True


class RemoteClient(ABC):
    """
    远端客户端抽象基类。

    一个实例对应一个会话的一条连接。登录流程被拆成三个显式步骤
    （request_code → submit_code → submit_password），
    让认证状态机自己掌控每一个挂起点，而不是把回调塞进客户端内部。

    属性:
        mode: 创建该客户端时使用的初始化方式
    """

    def __init__(self, mode: ConnectMode):
        self.mode = mode

    @abstractmethod
    async def connect(self) -> None:
        """建立到后端的连接。连接层故障抛出 TransportError。"""

    @abstractmethod
    async def disconnect(self) -> None:
        """断开连接并释放资源。"""

    @abstractmethod
    async def is_authenticated(self) -> bool:
        """后端是否确认当前连接已登录。"""

    @abstractmethod
    async def request_code(self, identifier: str) -> None:
        """请求后端向 identifier（电话号码）发送一次性验证码。"""

    @abstractmethod
    async def submit_code(self, identifier: str, code: str) -> bool:
        """
        提交一次性验证码。

        返回:
            True 表示还需要两步验证密码，False 表示已登录

        异常:
            InvalidCodeError: 验证码错误
            CodeExpiredError: 验证码已过期
        """

    @abstractmethod
    async def submit_password(self, password: str) -> None:
        """提交两步验证密码。密码错误抛出 InvalidPasswordError。"""

    @abstractmethod
    def export_token(self) -> str:
        """导出可持久化的会话令牌（不透明字符串）。"""

    @abstractmethod
    async def invoke(self, method: str, params: dict[str, Any]) -> Any:
        """
        调用任意后端 API 方法。

        异常:
            NotFoundError: 方法不存在
            InvalidParametersError: 参数与方法签名不匹配
            RemoteCallError: 后端返回错误
        """

    @abstractmethod
    async def fetch_dialogs(self, limit: int) -> list[Dialog]:
        """获取对话列表。"""

    @abstractmethod
    async def fetch_messages(self, chat_id: str, limit: int) -> list[Message]:
        """获取指定对话中的消息。"""

    @abstractmethod
    async def send_message(self, chat_id: str, text: str) -> SentMessage:
        """向指定对话发送文本消息。"""


# 客户端工厂：由初始化方式构造客户端，是创建 RemoteClient 的唯一入口
ClientFactory = Callable[[ConnectMode], RemoteClient]
