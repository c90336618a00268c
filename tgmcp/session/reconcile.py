"""
启动核对模块 - 进程启动时检查已保存的会话。

执行流程：
1. 确保会话目录存在
2. 扫描所有记录，逐个记录 有效 / 损坏
3. 若启用 verify 且存在有效记录，用第一个有效会话试连一次（有超时上限）
4. 若没有任何有效记录：
   - 未配置应用凭据时，提示如何配置
   - 启用 offer_login 且有输入介质时，询问是否创建新会话

前端只有在核对完成后才会标记为就绪。
试连超时不会取消进行中的连接：该会话标识仍由那次尝试占有，直到它自然结束。
"""

import asyncio
from dataclasses import dataclass, field

from loguru import logger

from tgmcp.errors import TgmcpError
from tgmcp.prompt.base import Prompter
from tgmcp.session.manager import SessionManager
from tgmcp.session.store import RecordStatus
from tgmcp.utils.helpers import normalize_session_id


@dataclass
class ReconcileReport:
    """
    启动核对的结果。

    属性:
        valid: 有效会话标识列表
        damaged: 损坏的记录
        verified: 试连成功的会话标识
        error: 试连或创建会话失败的原因
        created: 本次启动中新建的会话标识
        declined: 操作员拒绝创建新会话
    """

    valid: list[str] = field(default_factory=list)
    damaged: list[RecordStatus] = field(default_factory=list)
    verified: str | None = None
    error: str | None = None
    created: str | None = None
    declined: bool = False


class StartupReconciler:
    def __init__(
        self,
        manager: SessionManager,
        prompter: Prompter | None = None,
        verify: bool = True,
        verify_timeout_s: float = 30.0,
        offer_login: bool = False,
    ):
        self.manager = manager
        self.prompter = prompter
        self.verify = verify
        self.verify_timeout_s = verify_timeout_s
        self.offer_login = offer_login

    async def run(self) -> ReconcileReport:
        """执行一次启动核对，永远不会抛出认证相关的异常。"""
        report = ReconcileReport()
        logger.info(f"Checking saved sessions in {self.manager.store.directory}")

        for status in self.manager.store.scan():
            if status.valid:
                report.valid.append(status.session_id)
                logger.info(f"- {status.session_id} (valid)")
            else:
                report.damaged.append(status)
                logger.warning(f"- {status.session_id} (damaged: {status.reason})")

        if report.valid:
            logger.info(f"Found {len(report.valid)} usable session(s)")
            if self.verify:
                await self._verify(report, report.valid[0])
            return report

        if report.damaged:
            logger.warning("All saved sessions are damaged")
        else:
            logger.info("No saved sessions found")

        if self.manager.authenticator.credentials is None:
            logger.error("API_ID / API_HASH are not configured")
            logger.info("Set telegram.apiId and telegram.apiHash in ~/.tgmcp/config.json to create a session")
            return report

        if self.offer_login and self.prompter is not None:
            await self._offer_login(report)
        return report

    async def _verify(self, report: ReconcileReport, session_id: str) -> None:
        task = asyncio.ensure_future(self.manager.acquire_connection(session_id))
        try:
            await asyncio.wait_for(asyncio.shield(task), timeout=self.verify_timeout_s)
        except asyncio.TimeoutError:
            report.error = f"verification timed out after {self.verify_timeout_s}s"
            logger.warning(f"Test connection to {session_id} is still pending, continuing startup")
            task.add_done_callback(lambda t: _log_late_result(session_id, t))
        except TgmcpError as e:
            report.error = e.message
            logger.warning(f"Failed to connect to session {session_id}: {e.message}")
        else:
            report.verified = session_id
            logger.info(f"Test connection to {session_id} successful")

    async def _offer_login(self, report: ReconcileReport) -> None:
        try:
            answer = await self.prompter.request_text("Do you want to create a new session? (yes/no):")
            if answer.strip().lower() not in ("yes", "y"):
                report.declined = True
                logger.info("Session creation cancelled")
                return

            phone = await self.prompter.request_text(
                "Enter phone number (international format, e.g. +79001234567):"
            )
            if not phone.strip():
                report.error = "phone number cannot be empty"
                logger.error("Phone number cannot be empty")
                return

            logger.info("Creating new session...")
            await self.manager.acquire_connection(phone)
        except TgmcpError as e:
            report.error = e.message
            logger.error(f"Error creating session: {e.message}")
            return

        report.created = normalize_session_id(phone)
        logger.info(f"Session for {report.created} created and saved")


def _log_late_result(session_id: str, task: asyncio.Task) -> None:
    if task.cancelled():
        return
    exc = task.exception()
    if exc is None:
        logger.info(f"Delayed test connection to {session_id} succeeded")
    else:
        logger.warning(f"Delayed test connection to {session_id} failed: {exc}")
