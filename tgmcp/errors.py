"""
错误类型定义模块 - tgmcp 全局统一的异常体系。

所有由 tgmcp 自身抛出的异常都继承自 TgmcpError，并携带一个 kind 字段
（ErrorKind 枚举值）。命令分发器在边界处捕获这些异常，
根据 kind 转换为结构化的 CommandResult.failure，调用方永远拿到的是数据而不是异常。

异常分层：
    TgmcpError
    ├── InvalidParametersError      参数校验失败（调用方修正参数后可重试）
    ├── NotFoundError               命令不存在 / 远端方法不存在
    ├── TransportError              连接层故障（不在本层重试）
    ├── RemoteCallError             远端 RPC 返回错误
    ├── InvalidCodeError            验证码错误（登录对话内部使用）
    ├── CodeExpiredError            验证码过期（登录对话内部使用）
    ├── InvalidPasswordError        两步验证密码错误（登录对话内部使用）
    └── SessionUnavailableError     无法为本次请求完成认证
        ├── MissingCredentialsError 未配置 api_id/api_hash 且无可用令牌
        ├── AuthExhaustedError      两步验证密码连续错误次数用尽
        ├── ResumeFailedError       令牌恢复遇到连接故障且无法走交互登录
        └── PromptUnavailableError  交互式输入介质不可用

【Java 开发者类比】
- 类似于 Spring 中以一个 BaseException + errorCode 组织的异常体系，
  由 @ControllerAdvice 统一转换为错误响应。
"""

from enum import Enum


class ErrorKind(str, Enum):
    """错误类别。继承 str 使其可以直接序列化为 JSON 字符串。"""

    MISSING_CREDENTIALS = "MissingCredentials"
    INVALID_CODE = "InvalidCode"
    INVALID_PASSWORD = "InvalidPassword"
    AUTH_EXHAUSTED = "AuthExhausted"
    TRANSPORT_FAILURE = "TransportFailure"
    INVALID_PARAMETERS = "InvalidParameters"
    NOT_FOUND = "NotFound"
    SESSION_UNAVAILABLE = "SessionUnavailable"
    PROMPT_UNAVAILABLE = "PromptUnavailable"
    REMOTE_ERROR = "RemoteError"
    INTERNAL = "Internal"


class TgmcpError(Exception):
    """tgmcp 所有异常的基类。子类通过类属性 kind 声明自己的错误类别。"""

    kind: ErrorKind = ErrorKind.INTERNAL

    def __init__(self, message: str = ""):
        super().__init__(message)
        self.message = message or self.__class__.__name__


class InvalidParametersError(TgmcpError):
    kind = ErrorKind.INVALID_PARAMETERS


class NotFoundError(TgmcpError):
    kind = ErrorKind.NOT_FOUND


class TransportError(TgmcpError):
    kind = ErrorKind.TRANSPORT_FAILURE


class RemoteCallError(TgmcpError):
    kind = ErrorKind.REMOTE_ERROR


class InvalidCodeError(TgmcpError):
    kind = ErrorKind.INVALID_CODE


class CodeExpiredError(TgmcpError):
    kind = ErrorKind.INVALID_CODE


class InvalidPasswordError(TgmcpError):
    kind = ErrorKind.INVALID_PASSWORD


class SessionUnavailableError(TgmcpError):
    """
    会话不可用 - 认证无法完成。

    session_id 记录出错的会话标识，便于日志与错误信息定位。
    """

    kind = ErrorKind.SESSION_UNAVAILABLE

    def __init__(self, message: str = "", session_id: str | None = None):
        super().__init__(message)
        self.session_id = session_id


class MissingCredentialsError(SessionUnavailableError):
    kind = ErrorKind.MISSING_CREDENTIALS


class AuthExhaustedError(SessionUnavailableError):
    kind = ErrorKind.AUTH_EXHAUSTED


class ResumeFailedError(SessionUnavailableError):
    kind = ErrorKind.TRANSPORT_FAILURE


class PromptUnavailableError(SessionUnavailableError):
    kind = ErrorKind.PROMPT_UNAVAILABLE
