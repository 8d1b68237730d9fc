"""日志工具模块。

提供统一的日志记录器获取与初始化配置。
"""

import inspect
import logging


def get_logger(name: str | None = None) -> logging.Logger:
    """获取标准化配置的日志记录器。

    Args:
        name: 日志记录器名称，默认使用调用模块的 __name__

    Returns:
        logging.Logger: 日志记录器
    """
    if name is None:
        frame = inspect.currentframe()
        if frame and frame.f_back:
            name = frame.f_back.f_globals.get("__name__", "unknown")
        else:
            name = "unknown"

    return logging.getLogger(name)


def configure_logging(level: str = "INFO", fmt: str | None = None) -> None:
    """初始化根日志配置（仅在入口处调用一次）

    Args:
        level: 日志级别名称，如 "INFO"、"DEBUG"
        fmt: 日志格式，None 时使用 logging 默认格式
    """
    numeric_level = logging.getLevelName(level.upper())
    if not isinstance(numeric_level, int):
        numeric_level = logging.INFO

    if fmt:
        logging.basicConfig(level=numeric_level, format=fmt)
    else:
        logging.basicConfig(level=numeric_level)
