"""
命令基类模块 (commands/base.py)

模块职责：
    定义所有会话命令的抽象基类 Command。
    每个命令必须实现4个核心接口：name、description、parameters、execute。
    基类还提供参数校验（validate_params）、默认值填充（apply_defaults）
    和对外清单格式转换（to_schema）的通用能力。

在架构中的位置：
    CommandDispatcher 持有 Command 实例的集合，前端（HTTP / MCP / CLI）
    只通过分发器间接调用命令，命令本身只面对一个已登录的 RemoteClient。

设计模式对比（Java 视角）：
    - Command 相当于一个抽象类（模板方法模式）
    - validate_params() 是模板方法，提供通用的 JSON Schema 校验逻辑
    - execute() 是子类实现的业务方法

二开提示：
    新增命令时继承此类并在 build_dispatcher() 中注册即可，例如：
    class GetContactsCommand(Command):
        name = "getContacts"
        ...
"""

from abc import ABC, abstractmethod
from typing import Any

from tgmcp.client.base import RemoteClient


class Command(ABC):
    """
    会话命令的抽象基类。

    parameters 中的 "session" 字段由分发器消费（用来获取连接），
    其余参数经过校验、填充默认值后传给 execute()。
    """

    # JSON Schema 类型 -> Python 类型的映射表，用于参数校验
    _TYPE_MAP = {
        "string": str,
        "integer": int,
        "number": (int, float),
        "boolean": bool,
        "array": list,
        "object": dict,
    }

    @property
    @abstractmethod
    def name(self) -> str:
        """命令名称，调用方按此名称分发。"""
        pass

    @property
    @abstractmethod
    def description(self) -> str:
        pass

    @property
    @abstractmethod
    def parameters(self) -> dict[str, Any]:
        """命令参数的 JSON Schema 定义。"""
        pass

    @abstractmethod
    async def execute(self, client: RemoteClient, **kwargs: Any) -> Any:
        """
        在已登录的连接上执行命令。

        参数:
            client: 由 SessionManager 提供的连接（命令不得断开或替换它）
            **kwargs: 校验并填充默认值后的参数（不含 session）

        返回:
            任意结果对象，由分发器负责序列化
        """
        pass

    def validate_params(self, params: dict[str, Any]) -> list[str]:
        """
        根据 JSON Schema 校验命令参数。

        返回:
            list[str]: 错误信息列表，空列表表示校验通过。
        """
        schema = self.parameters or {}
        if schema.get("type", "object") != "object":
            raise ValueError(f"Schema must be object type, got {schema.get('type')!r}")
        return self._validate(params, {**schema, "type": "object"}, "")

    def _validate(self, val: Any, schema: dict[str, Any], path: str) -> list[str]:
        t, label = schema.get("type"), path or "parameters"
        expected = self._TYPE_MAP.get(t)
        # bool 是 int 的子类，JSON 里的 true/false 不能当作数字
        if expected is not None and (
            not isinstance(val, expected) or (t in ("integer", "number") and isinstance(val, bool))
        ):
            return [f"{label} should be {t}"]

        errors = []
        if "enum" in schema and val not in schema["enum"]:
            errors.append(f"{label} must be one of {schema['enum']}")
        if t in ("integer", "number"):
            if "minimum" in schema and val < schema["minimum"]:
                errors.append(f"{label} must be >= {schema['minimum']}")
            if "maximum" in schema and val > schema["maximum"]:
                errors.append(f"{label} must be <= {schema['maximum']}")
        if t == "string":
            if "minLength" in schema and len(val) < schema["minLength"]:
                errors.append(f"{label} must be at least {schema['minLength']} chars")
            if "maxLength" in schema and len(val) > schema["maxLength"]:
                errors.append(f"{label} must be at most {schema['maxLength']} chars")
        if t == "object":
            props = schema.get("properties", {})
            for k in schema.get("required", []):
                if k not in val:
                    errors.append(f"missing required {path + '.' + k if path else k}")
            for k, v in val.items():
                if k in props:
                    errors.extend(self._validate(v, props[k], path + '.' + k if path else k))
        if t == "array" and "items" in schema:
            for i, item in enumerate(val):
                errors.extend(self._validate(item, schema["items"], f"{path}[{i}]" if path else f"[{i}]"))
        return errors

    def apply_defaults(self, params: dict[str, Any]) -> dict[str, Any]:
        """
        填充可选参数的默认值，并丢弃 schema 中未声明的参数。

        返回新字典，不修改传入的 params。
        """
        props = (self.parameters or {}).get("properties", {})
        result = {}
        for key, prop in props.items():
            if key in params:
                result[key] = params[key]
            elif "default" in prop:
                default = prop["default"]
                result[key] = dict(default) if isinstance(default, dict) else default
        return result

    def to_schema(self) -> dict[str, Any]:
        """
        转换为命令清单中的一项。

        返回值示例:
            {
                "name": "getDialogs",
                "description": "Get list of dialogs (chats)",
                "parameters": { ... JSON Schema ... }
            }
        """
        return {
            "name": self.name,
            "description": self.description,
            "parameters": self.parameters,
        }
