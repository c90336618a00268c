"""
终端输入模块 - 基于 prompt_toolkit 的 Prompter 实现。

prompt_toolkit 的 prompt_async 可以在事件循环中等待输入，
等待期间其他会话的请求照常被处理；patch_stdout 保证日志输出不会打乱输入行。
"""

from prompt_toolkit import PromptSession
from prompt_toolkit.formatted_text import HTML
from prompt_toolkit.patch_stdout import patch_stdout

from tgmcp.errors import PromptUnavailableError
from tgmcp.prompt.base import Prompter


class ConsolePrompter(Prompter):
    """
    终端输入介质。

    PromptSession 延迟到第一次提问时创建：gateway 启动时 stdin 未必是终端，
    只有真正需要登录时才接管它。
    """

    def __init__(self):
        self._session: PromptSession | None = None

    def _get_session(self) -> PromptSession:
        if self._session is None:
            self._session = PromptSession(enable_open_in_editor=False, multiline=False)
        return self._session

    async def _ask(self, label: str, secret: bool) -> str:
        try:
            with patch_stdout():
                answer = await self._get_session().prompt_async(
                    HTML("<b fg='ansiblue'>{}</b> ").format(label),
                    is_password=secret,
                )
        except (EOFError, KeyboardInterrupt) as e:
            raise PromptUnavailableError(f"Input closed while waiting for: {label}") from e
        return answer.strip()

    async def request_text(self, label: str) -> str:
        return await self._ask(label, secret=False)

    async def request_secret(self, label: str) -> str:
        return await self._ask(label, secret=True)
