"""
交互输入模块 - 登录对话的输入介质。

- Prompter：抽象接口（request_text / request_secret）
- ConsolePrompter：终端实现（prompt_toolkit，见 console.py，由 CLI 按需导入）
- DisabledPrompter：禁止交互的实现
"""

from tgmcp.prompt.base import DisabledPrompter, Prompter

__all__ = ["Prompter", "DisabledPrompter"]
