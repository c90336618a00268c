"""
tgmcp - 多会话 Telegram 命令网关

模块概述：
    本文件是 tgmcp 包的入口文件（__init__.py），定义了包的元信息。
    tgmcp 代表多个 Telegram 用户账号（会话）维持长连接，
    将认证状态持久化到磁盘，并对外暴露统一的、经过 Schema 校验的命令接口。

    整个系统的核心功能包括：
    - 会话管理（连接池复用、断线重建、每个会话同一时刻只有一个连接）
    - 交互式多因素登录（验证码 + 两步验证密码）
    - 命令分发（参数校验 → 获取连接 → 执行 → 结果扁平化）
    - 多种前端接入（HTTP、MCP stdio），共用同一个分发器
"""

# 版本号，遵循语义化版本规范（主版本.次版本.修订号）
__version__ = "0.1.0"

# 项目 logo 表情符号，用于 CLI 输出等场景的品牌标识
__logo__ = "📨"
