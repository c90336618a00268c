"""
工具函数集合 - tgmcp 项目全局通用的辅助函数。

函数分类：
- 路径管理：ensure_dir
- 会话标识：normalize_session_id
- 键名转换：camel_to_snake, snake_to_camel, convert_keys, convert_to_camel
- 时间工具：now_ms, ms_to_iso
"""

import re
import time
from datetime import datetime, timezone
from pathlib import Path
from typing import Any

from tgmcp.errors import InvalidParametersError

# 电话号码形式的会话标识：可选的 "+"，数字，以及常见分隔符
_PHONE_LIKE = re.compile(r"^\+?[\d\s\-().]+$")
# 不允许出现在会话标识中的字符（标识会直接作为文件名使用）
_UNSAFE_ID_CHARS = set('<>:"/\\|?*\x00')


def ensure_dir(path: Path) -> Path:
    """
    确保目录存在，不存在则递归创建。

    参数:
        path: 目标目录路径

    返回:
        创建后的目录路径（原样返回）
    """
    path.mkdir(parents=True, exist_ok=True)
    return path


def normalize_session_id(raw: str) -> str:
    """
    将会话标识规范化为唯一的存储键。

    规则（在所有入口统一使用）：
    1. 去掉首尾空白
    2. 如果剩余部分看起来是电话号码（数字 + 可选的前导 "+" + 空格/-/./括号），
       规范化为 "+" 加纯数字，例如 "+7 (900) 123-45-67" → "+79001234567"
    3. 其他标识原样保留

    函数是幂等的：对规范化结果再次调用得到相同的值。

    异常:
        InvalidParametersError: 标识为空，或包含不能出现在文件名中的字符
    """
    if not isinstance(raw, str):
        raise InvalidParametersError("session must be a string")
    value = raw.strip()
    if not value:
        raise InvalidParametersError("session must not be empty")

    if _PHONE_LIKE.match(value):
        digits = re.sub(r"\D", "", value)
        if digits:
            return f"+{digits}"

    if any(ch in _UNSAFE_ID_CHARS for ch in value) or value in (".", ".."):
        raise InvalidParametersError(f"session {raw!r} contains unsupported characters")
    return value


def now_ms() -> int:
    """获取当前时间的毫秒级 Unix 时间戳。"""
    return int(time.time() * 1000)


def ms_to_iso(ms: int | float) -> str:
    """毫秒时间戳 → ISO 8601 字符串（UTC）。"""
    return datetime.fromtimestamp(ms / 1000, tz=timezone.utc).isoformat()


def convert_keys(data: Any) -> Any:
    """
    递归地将字典中所有 camelCase 键名转换为 snake_case。

    示例: {"apiHash": "x"} → {"api_hash": "x"}
    """
    if isinstance(data, dict):
        return {camel_to_snake(k): convert_keys(v) for k, v in data.items()}
    if isinstance(data, list):
        return [convert_keys(item) for item in data]
    return data


def convert_to_camel(data: Any) -> Any:
    """
    递归地将字典中所有 snake_case 键名转换为 camelCase。

    用于保存配置文件，以及命令结果对外输出（如 unread_count → unreadCount）。
    """
    if isinstance(data, dict):
        return {snake_to_camel(k): convert_to_camel(v) for k, v in data.items()}
    if isinstance(data, list):
        return [convert_to_camel(item) for item in data]
    return data


def camel_to_snake(name: str) -> str:
    """
    将 camelCase 字符串转换为 snake_case。
    例: "apiHash" → "api_hash", "verifyTimeoutS" → "verify_timeout_s"
    """
    result = []
    for i, char in enumerate(name):
        if char.isupper() and i > 0:
            result.append("_")
        result.append(char.lower())
    return "".join(result)


def snake_to_camel(name: str) -> str:
    """
    将 snake_case 字符串转换为 camelCase。
    例: "api_hash" → "apiHash"；以下划线开头的键（如 "_type"）保持不变。
    """
    if name.startswith("_"):
        return name
    components = name.split("_")
    return components[0] + "".join(x.title() for x in components[1:])
