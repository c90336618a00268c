"""
远端客户端模块 - tgmcp 与 Telegram 后端之间的边界。

- base.py：RemoteClient 抽象接口、初始化方式（FreshLogin / ResumeOnly）与数据结构
- telethon_client.py：基于 Telethon 的实现与默认工厂 create_client

telethon_client 不在这里导入，这样只依赖接口的模块（以及测试替身）不必加载 Telethon。
"""

from tgmcp.client.base import (
    AppCredentials,
    ClientFactory,
    ConnectMode,
    FreshLogin,
    RemoteClient,
    ResumeOnly,
)

__all__ = [
    "AppCredentials",
    "ClientFactory",
    "ConnectMode",
    "FreshLogin",
    "RemoteClient",
    "ResumeOnly",
]
