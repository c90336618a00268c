"""
会话模块 - 会话记录、连接池、认证状态机与会话管理器。

【架构定位】
命令分发器 → SessionManager.acquire_connection
    ├── ConnectionPool 命中 → 直接复用
    └── 未命中 → SessionRecordStore.load → Authenticator（恢复 / 交互登录）
                 → SessionRecordStore.save → ConnectionPool.put

StartupReconciler 在进程启动时扫描记录并可选地试连一次。

【二开提示】
需要把会话记录放进数据库时，只需提供与 SessionRecordStore 相同接口的实现，
并在 create_session_manager 中替换。
"""

from tgmcp.session.auth import AuthenticationAttempt, Authenticator, AuthStage
from tgmcp.session.manager import SessionManager, create_session_manager
from tgmcp.session.pool import ConnectionPool
from tgmcp.session.reconcile import ReconcileReport, StartupReconciler
from tgmcp.session.store import RecordStatus, SessionRecord, SessionRecordStore

__all__ = [
    "AuthStage",
    "AuthenticationAttempt",
    "Authenticator",
    "ConnectionPool",
    "RecordStatus",
    "ReconcileReport",
    "SessionManager",
    "SessionRecord",
    "SessionRecordStore",
    "StartupReconciler",
    "create_session_manager",
]
