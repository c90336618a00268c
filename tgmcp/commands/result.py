"""
命令请求 / 结果数据结构。

CommandResult 的 JSON 形式：
    成功: {"ok": true, "result": ...}
    失败: {"ok": false, "errorKind": "...", "message": "...", "cause": "..."}

cause 只在 errorKind 为 SessionUnavailable 时出现，说明认证失败的具体原因
（如 MissingCredentials、AuthExhausted）。
"""

from dataclasses import dataclass, field
from typing import Any

from tgmcp.errors import ErrorKind


@dataclass
class CommandRequest:
    """外部传入的命令请求（不可信）。"""

    name: str
    parameters: dict[str, Any] = field(default_factory=dict)


@dataclass
class CommandResult:
    ok: bool
    result: Any = None
    error_kind: ErrorKind | None = None
    message: str = ""
    cause: ErrorKind | None = None

    @classmethod
    def success(cls, payload: Any) -> "CommandResult":
        return cls(ok=True, result=payload)

    @classmethod
    def failure(cls, kind: ErrorKind, message: str, cause: ErrorKind | None = None) -> "CommandResult":
        return cls(ok=False, error_kind=kind, message=message, cause=cause)

    def to_dict(self) -> dict[str, Any]:
        if self.ok:
            return {"ok": True, "result": self.result}
        data = {
            "ok": False,
            "errorKind": self.error_kind.value if self.error_kind else ErrorKind.INTERNAL.value,
            "message": self.message,
        }
        if self.cause is not None:
            data["cause"] = self.cause.value
        return data
