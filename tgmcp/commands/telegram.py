"""
Telegram 会话命令 - 对外暴露的四个固定操作。

    getDialogs     {session, limit=100}
    getMessages    {session, chatId, limit=100}
    sendMessage    {session, chatId, message}
    executeMethod  {session, method, params={}}

每个命令都要求 session 参数，分发器据此获取已登录的连接后再调用 execute()。
"""

from typing import Any

from loguru import logger

from tgmcp.client.base import RemoteClient
from tgmcp.commands.base import Command

_SESSION_PARAM = {
    "type": "string",
    "description": "Session ID (usually phone number)",
    "minLength": 1,
}

_CHAT_PARAM = {
    "type": "string",
    "description": "Chat ID or username",
    "minLength": 1,
}


class GetDialogsCommand(Command):
    """获取对话列表。"""

    @property
    def name(self) -> str:
        return "getDialogs"

    @property
    def description(self) -> str:
        return "Get a list of user dialogs (chats)"

    @property
    def parameters(self) -> dict[str, Any]:
        return {
            "type": "object",
            "properties": {
                "session": _SESSION_PARAM,
                "limit": {
                    "type": "integer",
                    "description": "Maximum number of dialogs to return",
                    "minimum": 1,
                    "default": 100,
                },
            },
            "required": ["session"],
        }

    async def execute(self, client: RemoteClient, limit: int = 100, **kwargs: Any) -> Any:
        return await client.fetch_dialogs(limit)


class GetMessagesCommand(Command):
    """获取指定对话中的消息。"""

    @property
    def name(self) -> str:
        return "getMessages"

    @property
    def description(self) -> str:
        return "Get messages from a specific chat"

    @property
    def parameters(self) -> dict[str, Any]:
        return {
            "type": "object",
            "properties": {
                "session": _SESSION_PARAM,
                "chatId": _CHAT_PARAM,
                "limit": {
                    "type": "integer",
                    "description": "Maximum number of messages to return",
                    "minimum": 1,
                    "default": 100,
                },
            },
            "required": ["session", "chatId"],
        }

    async def execute(self, client: RemoteClient, chatId: str, limit: int = 100, **kwargs: Any) -> Any:
        return await client.fetch_messages(chatId, limit)


class SendMessageCommand(Command):
    """向指定对话发送文本消息。"""

    @property
    def name(self) -> str:
        return "sendMessage"

    @property
    def description(self) -> str:
        return "Send a message to a specific chat"

    @property
    def parameters(self) -> dict[str, Any]:
        return {
            "type": "object",
            "properties": {
                "session": _SESSION_PARAM,
                "chatId": _CHAT_PARAM,
                "message": {
                    "type": "string",
                    "description": "Message text to send",
                    "minLength": 1,
                },
            },
            "required": ["session", "chatId", "message"],
        }

    async def execute(self, client: RemoteClient, chatId: str, message: str, **kwargs: Any) -> Any:
        sent = await client.send_message(chatId, message)
        logger.info(f"Message {sent.message_id} sent to {chatId}")
        return sent


class ExecuteMethodCommand(Command):
    """
    调用任意 Telegram API 方法。

    method 形如 "messages.GetHistory"，params 的键可以用 camelCase，
    由客户端转换为底层库需要的形式。
    """

    @property
    def name(self) -> str:
        return "executeMethod"

    @property
    def description(self) -> str:
        return "Execute any Telegram API method"

    @property
    def parameters(self) -> dict[str, Any]:
        return {
            "type": "object",
            "properties": {
                "session": _SESSION_PARAM,
                "method": {
                    "type": "string",
                    "description": "Telegram API method name, e.g. messages.GetHistory",
                    "minLength": 1,
                },
                "params": {
                    "type": "object",
                    "description": "Method parameters",
                    "default": {},
                },
            },
            "required": ["session", "method"],
        }

    async def execute(self, client: RemoteClient, method: str, params: dict | None = None, **kwargs: Any) -> Any:
        return await client.invoke(method, params or {})


def default_commands() -> list[Command]:
    """内置的全部命令。"""
    return [
        GetDialogsCommand(),
        GetMessagesCommand(),
        SendMessageCommand(),
        ExecuteMethodCommand(),
    ]
