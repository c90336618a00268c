"""
工具函数模块 - 提供 tgmcp 项目全局通用的辅助函数。

本模块包含：
- ensure_dir：确保目录存在
- normalize_session_id：会话标识规范化
"""

from tgmcp.utils.helpers import ensure_dir, normalize_session_id

__all__ = ["ensure_dir", "normalize_session_id"]
