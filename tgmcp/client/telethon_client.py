"""
Telethon 客户端实现模块 - RemoteClient 接口基于 Telethon 的实现。

本模块把 Telethon（MTProto 用户账号客户端库）包装成 tgmcp 所需的 RemoteClient：
- 令牌使用 Telethon 的 StringSession 序列化格式
- Telethon 的异常被翻译为 tgmcp.errors 中的类型化异常
- 远端对象被转换为 client/base.py 中定义的普通数据类

【错误翻译】
    PhoneCodeInvalidError / PhoneCodeEmptyError → InvalidCodeError
    PhoneCodeExpiredError                        → CodeExpiredError
    PasswordHashInvalidError                     → InvalidPasswordError
    OSError / ConnectionError / TimeoutError     → TransportError
    其余 RPCError                                → RemoteCallError

【二开提示】
如果要换成其他 MTProto 库（如 Pyrogram），只需新建一个实现 RemoteClient 的类，
并在 create_client 工厂中替换即可，会话管理层无需改动。
"""

from __future__ import annotations

import asyncio
import re
from contextlib import contextmanager
from typing import Any, Iterator

from loguru import logger
from telethon import TelegramClient, errors, functions
from telethon.sessions import StringSession

from tgmcp.client.base import (
    ConnectMode,
    Dialog,
    FreshLogin,
    Message,
    MessagePreview,
    RemoteClient,
    ResumeOnly,
    Sender,
    SentMessage,
)
from tgmcp.errors import (
    CodeExpiredError,
    InvalidCodeError,
    InvalidParametersError,
    InvalidPasswordError,
    NotFoundError,
    RemoteCallError,
    TransportError,
)
from tgmcp.utils.helpers import camel_to_snake

# Telethon 拒绝空的 api_id/api_hash，即使只凭已有授权密钥恢复会话也一样。
# 仅在 ResumeOnly 且未配置凭据时使用。
_RESUME_ONLY_API_ID = 1
_RESUME_ONLY_API_HASH = "0" * 32

_NUMERIC_CHAT = re.compile(r"^-?\d+$")


@contextmanager
def _translate_errors() -> Iterator[None]:
    """把 Telethon / 网络层异常翻译成 tgmcp 的类型化异常。"""
    try:
        yield
    except (errors.PhoneCodeInvalidError, errors.PhoneCodeEmptyError) as e:
        raise InvalidCodeError(str(e)) from e
    except errors.PhoneCodeExpiredError as e:
        raise CodeExpiredError(str(e)) from e
    except errors.PasswordHashInvalidError as e:
        raise InvalidPasswordError(str(e)) from e
    except errors.RPCError as e:
        raise RemoteCallError(str(e)) from e
    except (OSError, ConnectionError, asyncio.TimeoutError) as e:
        raise TransportError(f"Connection failure: {e}") from e


def _resolve_chat(chat_id: str) -> int | str:
    """数字形式的 chat_id 转为 int，其他（用户名、链接）原样交给 Telethon 解析。"""
    return int(chat_id) if _NUMERIC_CHAT.match(chat_id) else chat_id


def _iso(value: Any) -> str | None:
    return value.isoformat() if value is not None else None


def _resolve_request(method: str) -> type:
    """
    根据方法名查找 Telethon 的请求类。

    支持以下写法：
        "messages.GetHistory" / "messages.getHistory" / "messages.GetHistoryRequest" / "help.GetConfig"
    """
    *namespaces, name = method.strip().split(".")
    if not name:
        raise NotFoundError(f"Method {method} not found in Telegram API")
    name = name[0].upper() + name[1:]
    if not name.endswith("Request"):
        name += "Request"

    target: Any = functions
    for ns in namespaces:
        target = getattr(target, ns, None)
        if target is None:
            raise NotFoundError(f"Method {method} not found in Telegram API")

    request_cls = getattr(target, name, None)
    if not isinstance(request_cls, type):
        raise NotFoundError(f"Method {method} not found in Telegram API")
    return request_cls


class TelethonClient(RemoteClient):
    """
    基于 Telethon 的远端客户端。

    一个实例对应一个 Telethon TelegramClient。两种初始化方式走同一个构造函数：
    - FreshLogin：空 StringSession + 真实凭据
    - ResumeOnly：已有令牌；凭据缺省时使用 Telethon 要求的占位值
    """

    def __init__(self, mode: ConnectMode, connection_retries: int = 5):
        super().__init__(mode)
        if isinstance(mode, FreshLogin):
            session = StringSession()
            api_id, api_hash = mode.credentials.api_id, mode.credentials.api_hash
        elif isinstance(mode, ResumeOnly):
            session = StringSession(mode.token)
            if mode.credentials:
                api_id, api_hash = mode.credentials.api_id, mode.credentials.api_hash
            else:
                api_id, api_hash = _RESUME_ONLY_API_ID, _RESUME_ONLY_API_HASH
        else:
            raise TypeError(f"Unsupported connect mode: {mode!r}")

        self._client = TelegramClient(
            session, api_id, api_hash, connection_retries=connection_retries
        )

    async def connect(self) -> None:
        with _translate_errors():
            await self._client.connect()

    async def disconnect(self) -> None:
        with _translate_errors():
            await self._client.disconnect()

    async def is_authenticated(self) -> bool:
        if not self._client.is_connected():
            return False
        with _translate_errors():
            return await self._client.is_user_authorized()

    async def request_code(self, identifier: str) -> None:
        with _translate_errors():
            await self._client.send_code_request(identifier)

    async def submit_code(self, identifier: str, code: str) -> bool:
        try:
            with _translate_errors():
                await self._client.sign_in(phone=identifier, code=code)
        except RemoteCallError as e:
            if isinstance(e.__cause__, errors.SessionPasswordNeededError):
                return True
            raise
        return False

    async def submit_password(self, password: str) -> None:
        with _translate_errors():
            await self._client.sign_in(password=password)

    def export_token(self) -> str:
        return self._client.session.save()

    async def invoke(self, method: str, params: dict[str, Any]) -> Any:
        request_cls = _resolve_request(method)
        kwargs = {camel_to_snake(k): v for k, v in (params or {}).items()}
        try:
            request = request_cls(**kwargs)
        except TypeError as e:
            raise InvalidParametersError(f"Invalid params for {method}: {e}") from e

        logger.debug(f"Invoking {request_cls.__name__}")
        with _translate_errors():
            return await self._client(request)

    async def fetch_dialogs(self, limit: int) -> list[Dialog]:
        with _translate_errors():
            dialogs = await self._client.get_dialogs(limit=limit)

        result = []
        for d in dialogs:
            if d.is_user:
                kind = "user"
            elif d.is_group:
                kind = "group"
            elif d.is_channel:
                kind = "channel"
            else:
                kind = "unknown"
            last = None
            if d.message is not None:
                last = MessagePreview(
                    text=d.message.message or "",
                    date=_iso(d.message.date),
                    from_me=bool(d.message.out),
                )
            result.append(Dialog(
                id=str(d.id),
                name=d.name or "",
                type=kind,
                unread_count=d.unread_count or 0,
                last_message=last,
            ))
        return result

    async def fetch_messages(self, chat_id: str, limit: int) -> list[Message]:
        with _translate_errors():
            messages = await self._client.get_messages(_resolve_chat(chat_id), limit=limit)

        result = []
        for m in messages:
            sender = None
            if m.sender is not None:
                sender = Sender(
                    id=str(m.sender.id) if getattr(m.sender, "id", None) is not None else None,
                    username=getattr(m.sender, "username", None) or "",
                    first_name=getattr(m.sender, "first_name", None) or "",
                    last_name=getattr(m.sender, "last_name", None) or "",
                )
            media_type = None
            if m.media is not None:
                media_type = type(m.media).__name__.replace("MessageMedia", "")
            result.append(Message(
                id=str(m.id),
                text=m.message or "",
                date=_iso(m.date),
                from_me=bool(m.out),
                sender=sender,
                has_media=m.media is not None,
                media_type=media_type,
            ))
        return result

    async def send_message(self, chat_id: str, text: str) -> SentMessage:
        with _translate_errors():
            sent = await self._client.send_message(_resolve_chat(chat_id), text)
        return SentMessage(message_id=str(sent.id), date=_iso(sent.date))


def create_client(mode: ConnectMode, connection_retries: int = 5) -> RemoteClient:
    """默认的客户端工厂：所有连接都从这里构造。"""
    return TelethonClient(mode, connection_retries=connection_retries)
