"""工具模块包。

提供纯工具函数，不包含业务逻辑。
"""

from .file_helpers import expand_input_paths, find_image_files
from .logging_helpers import configure_logging, get_logger
from .message_formatter import MessageFormatter, format_item_error


__all__ = [
    "MessageFormatter",
    "configure_logging",
    "expand_input_paths",
    "find_image_files",
    "format_item_error",
    "get_logger",
]
