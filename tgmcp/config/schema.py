"""
配置数据模型定义 (config/schema.py)
=================================
本模块使用 Pydantic 定义 tgmcp 的完整配置结构。
所有配置项都有默认值，用户只需在 config.json 中覆盖需要修改的部分。

整体配置结构（树形）：
Config (根配置)
├── telegram   - Telegram 应用凭据（api_id / api_hash）与连接参数
├── sessions   - 会话记录的存储目录
├── auth       - 交互式登录策略（密码最大尝试次数、是否允许交互）
├── startup    - 启动时的会话核对行为
└── gateway    - HTTP 前端监听地址

对于 Java 开发者：
- Pydantic 的 BaseModel 类似于 Java 的 POJO/Record，但自带字段验证和默认值
- BaseSettings 类似于 Spring 的 @ConfigurationProperties，额外支持从环境变量读取配置
"""

from pathlib import Path

from pydantic import BaseModel, Field
from pydantic_settings import BaseSettings, SettingsConfigDict

from tgmcp.client.base import AppCredentials


class TelegramConfig(BaseModel):
    """Telegram 应用凭据。只有在创建全新会话时才是必需的。"""
    api_id: int = 0  # 从 my.telegram.org 获取的 App api_id
    api_hash: str = ""  # 对应的 api_hash
    connection_retries: int = 5  # 底层客户端的连接重试次数

    @property
    def credentials(self) -> AppCredentials | None:
        """凭据齐全时返回 AppCredentials，否则返回 None（不使用占位值）。"""
        if self.api_id and self.api_hash:
            return AppCredentials(api_id=self.api_id, api_hash=self.api_hash)
        return None


class SessionsConfig(BaseModel):
    """会话记录存储配置。每个会话一个 JSON 文件。"""
    path: str = "~/.tgmcp/sessions"


class AuthConfig(BaseModel):
    """交互式登录配置。"""
    max_password_attempts: int = Field(default=3, ge=1)  # 两步验证密码最大尝试次数
    interactive: bool = True  # 是否允许向操作员终端请求输入


class StartupConfig(BaseModel):
    """
    启动核对配置。

    verify: 启动时是否用第一个有效会话试连一次
    verify_timeout_s: 试连的最长等待时间，超时后不再阻塞启动
    offer_login: 没有有效会话时，是否在终端提示创建新会话
    """
    verify: bool = True
    verify_timeout_s: float = 30.0
    offer_login: bool = False


class GatewayConfig(BaseModel):
    """HTTP 前端监听配置。"""
    host: str = "localhost"
    port: int = 3000


class Config(BaseSettings):
    """
    tgmcp 根配置类。

    除了从 JSON 文件加载外，还支持从环境变量读取配置：
    - 环境变量前缀: TGMCP_
    - 嵌套分隔符: __ (双下划线)
    - 示例: TGMCP_TELEGRAM__API_ID=12345 可覆盖 telegram.api_id
    """
    telegram: TelegramConfig = Field(default_factory=TelegramConfig)
    sessions: SessionsConfig = Field(default_factory=SessionsConfig)
    auth: AuthConfig = Field(default_factory=AuthConfig)
    startup: StartupConfig = Field(default_factory=StartupConfig)
    gateway: GatewayConfig = Field(default_factory=GatewayConfig)

    @property
    def sessions_path(self) -> Path:
        """获取展开后的会话目录绝对路径（将 ~ 展开为用户主目录）。"""
        return Path(self.sessions.path).expanduser()

    @property
    def credentials(self) -> AppCredentials | None:
        return self.telegram.credentials

    model_config = SettingsConfigDict(
        env_prefix="TGMCP_",
        env_nested_delimiter="__",
    )
