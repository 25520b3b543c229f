"""统一配置管理模块。

提供应用程序的全局配置管理，包括默认值、环境变量支持等。
"""

import os
from dataclasses import dataclass


@dataclass(frozen=True)
class ApiDefaults:
    """Tinify API 相关的默认配置"""

    BASE_URL: str = "https://api.tinify.com"
    SHRINK_PATH: str = "/shrink"

    # 超时设置（秒）
    CONNECT_TIMEOUT: float = 10.0
    READ_TIMEOUT: float = 120.0

    # 上传/下载分块大小
    CHUNK_SIZE: int = 64 * 1024

    USER_AGENT: str = "py-tinify-mcp"

    @property
    def shrink_url(self) -> str:
        """上传接口完整地址"""
        return f"{self.BASE_URL.rstrip('/')}{self.SHRINK_PATH}"

    @property
    def timeout(self) -> tuple[float, float]:
        """requests 使用的 (连接, 读取) 超时"""
        return (self.CONNECT_TIMEOUT, self.READ_TIMEOUT)


@dataclass(frozen=True)
class PlacementDefaults:
    """文件放置相关的默认配置"""

    BACKUP_SUFFIX: str = ".bak"

    # 目录放置时重名递增的上限
    MAX_COLLISION_ATTEMPTS: int = 10000


@dataclass(frozen=True)
class UserDefaults:
    """用户偏好（由外部设置存储提供）"""

    API_TOKEN: str = ""
    OVERRIDE_ORIGINAL: bool = True
    DESTINATION_DIR: str = ""
    AUTO_PROCESS: bool = True


@dataclass(frozen=True)
class LoggingDefaults:
    """日志相关的默认配置"""

    # 日志级别
    LOG_LEVEL: str = "INFO"
    LOG_FORMAT: str = "%(asctime)s - %(name)s - %(levelname)s - %(message)s"

    # 文件日志
    ENABLE_FILE_LOGGING: bool = False
    LOG_FILE_PATH: str = "py_tinify_mcp.log"
    LOG_FILE_MAX_SIZE: int = 10 * 1024 * 1024  # 10MB
    LOG_FILE_BACKUP_COUNT: int = 5


def _env_flag(value: str) -> bool:
    return value.lower() in ("true", "1", "yes")


class AppConfig:
    """应用程序配置管理器

    支持环境变量覆盖默认配置
    """

    def __init__(self):
        self.api = ApiDefaults()
        self.placement = PlacementDefaults()
        self.user = UserDefaults()
        self.logging = LoggingDefaults()

        # 从环境变量加载配置
        self._load_from_env()

    def _load_from_env(self):
        """从环境变量加载配置"""
        # 用户偏好
        if token := os.getenv("TINIFY_API_TOKEN"):
            object.__setattr__(self.user, "API_TOKEN", token.strip())

        if override := os.getenv("TINIFY_OVERRIDE"):
            object.__setattr__(self.user, "OVERRIDE_ORIGINAL", _env_flag(override))

        if destination := os.getenv("TINIFY_DESTINATION_DIR"):
            object.__setattr__(self.user, "DESTINATION_DIR", destination)

        if auto_process := os.getenv("TINIFY_AUTO_PROCESS"):
            object.__setattr__(self.user, "AUTO_PROCESS", _env_flag(auto_process))

        # 网络配置
        if timeout := os.getenv("TINIFY_TIMEOUT"):
            object.__setattr__(self.api, "READ_TIMEOUT", float(timeout))

        # 日志配置
        if log_level := os.getenv("TINIFY_LOG_LEVEL"):
            object.__setattr__(self.logging, "LOG_LEVEL", log_level.upper())

        if enable_file_log := os.getenv("TINIFY_ENABLE_FILE_LOGGING"):
            object.__setattr__(
                self.logging, "ENABLE_FILE_LOGGING", _env_flag(enable_file_log)
            )


# 全局配置实例
config = AppConfig()


def get_config() -> AppConfig:
    """获取全局配置实例"""
    return config


def reset_config():
    """重置配置（主要用于测试）"""
    global config
    config = AppConfig()
