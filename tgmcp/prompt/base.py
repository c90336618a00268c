"""
交互输入基类模块 - 登录对话向操作员请求输入的抽象接口。

认证状态机只通过 Prompter 与操作员交互，输入介质作为能力注入：
- ConsolePrompter：终端输入（prompt_toolkit）
- DisabledPrompter：不允许交互（MCP stdio 模式、auth.interactive=false）
- 测试中使用按脚本返回答案的替身
"""

from abc import ABC, abstractmethod

from tgmcp.errors import PromptUnavailableError


class Prompter(ABC):
    """交互输入介质的抽象基类。"""

    @abstractmethod
    async def request_text(self, label: str) -> str:
        """向操作员显示 label 并返回输入的一行文本。"""

    async def request_secret(self, label: str) -> str:
        """请求敏感输入（如两步验证密码）。默认与 request_text 相同，实现可以隐藏回显。"""
        return await self.request_text(label)


class DisabledPrompter(Prompter):
    """不提供交互的输入介质：任何请求都抛出 PromptUnavailableError。"""

    def __init__(self, reason: str = "Interactive prompts are disabled"):
        self.reason = reason

    async def request_text(self, label: str) -> str:
        raise PromptUnavailableError(f"{self.reason} (asked for: {label.strip()})")
