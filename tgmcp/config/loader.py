"""
配置加载工具模块 (config/loader.py)
=================================
本模块负责 tgmcp 配置文件的加载、保存和格式转换：
- 配置文件默认路径: ~/.tgmcp/config.json
- 配置文件使用 camelCase（驼峰命名），Python 内部使用 snake_case（下划线命名）
- 支持旧版部署方式的扁平环境变量（API_ID、API_HASH、SESSION_PATH、HOST、PORT），
  也会读取当前目录下的 .env 文件

对于 Java 开发者：
- 类似于 Spring Boot 的 application.yml 加载机制
- camelCase ↔ snake_case 转换类似于 Jackson 的 @JsonNaming 注解功能
"""

import json
import os
from pathlib import Path
from typing import Any

from dotenv import load_dotenv
from loguru import logger
from pydantic import ValidationError

from tgmcp.config.schema import Config
from tgmcp.utils.helpers import convert_keys, convert_to_camel

# 旧版扁平环境变量 → 新配置路径
_LEGACY_ENV = {
    "API_ID": ("telegram", "api_id"),
    "API_HASH": ("telegram", "api_hash"),
    "SESSION_PATH": ("sessions", "path"),
    "HOST": ("gateway", "host"),
    "PORT": ("gateway", "port"),
}


def get_config_path() -> Path:
    """获取默认配置文件路径: ~/.tgmcp/config.json"""
    return Path.home() / ".tgmcp" / "config.json"


def load_config(config_path: Path | None = None, *, use_dotenv: bool = True) -> Config:
    """
    从 JSON 文件加载配置，若文件不存在则只使用环境变量和默认值。

    加载流程：
    1. 读取 .env（如果存在），不覆盖已有的环境变量
    2. 读取 JSON 文件并将 camelCase 键名转换为 snake_case
    3. 合并旧版扁平环境变量（仅填补文件中没有的项）
    4. 交给 Pydantic Settings 构造（TGMCP_ 环境变量补充文件中没有的项）并进行类型验证，
       验证失败时与文件损坏一样降级为默认配置

    参数:
        config_path: 可选的配置文件路径。为 None 时使用默认路径。
        use_dotenv: 是否读取 .env 文件

    返回:
        Config 配置对象实例
    """
    if use_dotenv:
        load_dotenv(override=False)

    path = config_path or get_config_path()
    data: dict[str, Any] = {}

    if path.exists():
        try:
            with open(path) as f:
                data = convert_keys(json.load(f))
        except (json.JSONDecodeError, ValueError) as e:
            # 配置文件损坏时降级使用默认配置，而非直接报错退出
            logger.warning(f"Failed to load config from {path}: {e}. Using default configuration.")
            data = {}

    data = _migrate_legacy_env(data, os.environ)
    # 通过构造函数创建：文件中没有的项由 TGMCP_ 环境变量补充（文件中已有的项以文件为准）
    try:
        return Config(**data)
    except ValidationError as e:
        logger.warning(f"Invalid configuration from {path} or environment: {e}. Using default configuration.")
        return Config.model_construct()


def save_config(config: Config, config_path: Path | None = None) -> None:
    """
    将配置对象保存为 JSON 文件（camelCase 键名，带缩进格式化）。

    参数:
        config: 要保存的配置对象
        config_path: 可选的保存路径。为 None 时使用默认路径。
    """
    path = config_path or get_config_path()
    path.parent.mkdir(parents=True, exist_ok=True)

    data = convert_to_camel(config.model_dump())

    with open(path, "w") as f:
        json.dump(data, f, indent=2)


def _migrate_legacy_env(data: dict, environ: Any) -> dict:
    """
    旧版环境变量迁移。

    早期部署直接使用 API_ID / API_HASH / SESSION_PATH / HOST / PORT，
    这里把它们填进对应的配置段。配置文件中已有的值优先。
    """
    for var, (section, key) in _LEGACY_ENV.items():
        value = environ.get(var)
        if not value:
            continue
        sect = data.setdefault(section, {})
        if key not in sect:
            sect[key] = value
    return data
