"""统一配置管理模块。

提供应用程序的全局配置管理，包括默认值、环境变量支持等。
"""

import os
from dataclasses import dataclass


@dataclass(frozen=True)
class OrchestrationDefaults:
    """批量编排相关的默认配置"""

    # 1 表示严格顺序执行，对外部服务负载最可控
    MAX_CONCURRENCY: int = 1
    # 同步变换后端使用的线程池大小
    EXECUTOR_WORKERS: int = 4
    # 新批次载入后是否自动运行
    AUTO_RUN: bool = False
    # 变换后端导入路径，如 "my_pkg.backend:GeminiTransformer"
    TRANSFORM_BACKEND: str | None = None


@dataclass(frozen=True)
class IntakeDefaults:
    """图片导入相关的默认配置"""

    MAX_FILE_SIZE_MB: float = 20.0


@dataclass(frozen=True)
class ExportDefaults:
    """导出相关的默认配置"""

    FILENAME_SUFFIX: str = "_edited"
    FALLBACK_STEM: str = "image"


@dataclass(frozen=True)
class PersistenceDefaults:
    """设置持久化相关的默认配置"""

    SETTINGS_FILE: str = "~/.py_image_edit/settings.json"


@dataclass(frozen=True)
class LoggingDefaults:
    """日志相关的默认配置"""

    LOG_LEVEL: str = "INFO"
    LOG_FORMAT: str = "%(asctime)s - %(name)s - %(levelname)s - %(message)s"


def _parse_bool(value: str) -> bool:
    return value.strip().lower() in ("true", "1", "yes", "on")


class AppConfig:
    """应用程序配置管理器

    支持环境变量覆盖默认配置
    """

    def __init__(self):
        self.orchestration = OrchestrationDefaults()
        self.intake = IntakeDefaults()
        self.export = ExportDefaults()
        self.persistence = PersistenceDefaults()
        self.logging = LoggingDefaults()

        self._load_from_env()

    def _load_from_env(self):
        """从环境变量加载配置"""
        if max_concurrency := os.getenv("PIE_MAX_CONCURRENCY"):
            object.__setattr__(
                self.orchestration, "MAX_CONCURRENCY", max(1, int(max_concurrency))
            )

        if workers := os.getenv("PIE_EXECUTOR_WORKERS"):
            object.__setattr__(
                self.orchestration, "EXECUTOR_WORKERS", max(1, int(workers))
            )

        if auto_run := os.getenv("PIE_AUTO_RUN"):
            object.__setattr__(self.orchestration, "AUTO_RUN", _parse_bool(auto_run))

        if backend := os.getenv("PIE_TRANSFORM_BACKEND"):
            object.__setattr__(self.orchestration, "TRANSFORM_BACKEND", backend.strip())

        if max_size := os.getenv("PIE_MAX_FILE_SIZE_MB"):
            object.__setattr__(self.intake, "MAX_FILE_SIZE_MB", float(max_size))

        if settings_file := os.getenv("PIE_SETTINGS_FILE"):
            object.__setattr__(self.persistence, "SETTINGS_FILE", settings_file)

        if log_level := os.getenv("PIE_LOG_LEVEL"):
            object.__setattr__(self.logging, "LOG_LEVEL", log_level.upper())

    @property
    def max_file_size_bytes(self) -> int:
        return int(self.intake.MAX_FILE_SIZE_MB * 1024 * 1024)


# 全局配置实例
config = AppConfig()


def get_config() -> AppConfig:
    """获取全局配置实例"""
    return config


def reset_config() -> AppConfig:
    """重置配置（主要用于测试）"""
    global config
    config = AppConfig()
    return config
