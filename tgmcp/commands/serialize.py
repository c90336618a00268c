"""
结果序列化模块 - 把命令结果展平为可直接 json.dumps 的普通结构。

转换规则：
- 远端协议对象（带 to_dict() 的 TL 对象）→ 字典，类型标记 "_" 改名为 "_type"
- dataclass → 字典
- bytes → base64 字符串
- datetime / date → ISO 8601 字符串
- 函数等可调用对象 → 丢弃
- 字典键统一转换为 camelCase（unread_count → unreadCount）
- 循环引用 → None
- 其他无法识别的对象 → str()
"""

import base64
import dataclasses
from datetime import date, datetime
from enum import Enum
from typing import Any

from tgmcp.utils.helpers import snake_to_camel

_DROP = object()


def to_plain(value: Any) -> Any:
    """将任意结果转换为 JSON 安全的结构。"""
    result = _convert(value, set())
    return None if result is _DROP else result


def _convert(value: Any, seen: set[int]) -> Any:
    if value is None or isinstance(value, (bool, int, float, str)):
        return value
    if isinstance(value, Enum):
        return _convert(value.value, seen)
    if isinstance(value, (bytes, bytearray, memoryview)):
        return base64.b64encode(bytes(value)).decode("ascii")
    if isinstance(value, (datetime, date)):
        return value.isoformat()
    if isinstance(value, type) or (callable(value) and not hasattr(value, "to_dict")):
        return _DROP

    marker = id(value)
    if marker in seen:
        return None
    seen.add(marker)
    try:
        if dataclasses.is_dataclass(value):
            return _convert_mapping(
                {f.name: getattr(value, f.name) for f in dataclasses.fields(value)}, seen
            )
        if hasattr(value, "to_dict") and callable(value.to_dict):
            return _convert(value.to_dict(), seen)
        if isinstance(value, dict):
            return _convert_mapping(value, seen)
        if isinstance(value, (list, tuple, set, frozenset)):
            items = (_convert(item, seen) for item in value)
            return [item for item in items if item is not _DROP]
        return str(value)
    finally:
        seen.discard(marker)


def _convert_mapping(mapping: dict, seen: set[int]) -> dict[str, Any]:
    result = {}
    for key, item in mapping.items():
        converted = _convert(item, seen)
        if converted is _DROP:
            continue
        key = str(key)
        result["_type" if key == "_" else snake_to_camel(key)] = converted
    return result
