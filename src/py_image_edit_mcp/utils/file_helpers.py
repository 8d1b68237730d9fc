"""文件工具模块。

提供图片文件查找等与文件系统相关的工具函数。
"""

from collections.abc import Iterable, Iterator
from pathlib import Path

from PIL import Image

from .logging_helpers import get_logger
from .message_formatter import MessageFormatter


logger = get_logger()


def find_image_files(
    directory: str | Path,
    recursive: bool = False,
    exclude_dirs: list[str] | None = None,
) -> Iterator[Path]:
    """查找目录中的图像文件（按路径排序）

    Args:
        directory: 搜索目录
        recursive: 是否递归搜索子目录
        exclude_dirs: 要排除的目录名列表

    Yields:
        Path: 图像文件路径
    """
    directory = Path(directory)
    exclude_dirs = exclude_dirs or []

    if not directory.exists():
        logger.warning(MessageFormatter.directory_not_found(directory))
        return

    if not directory.is_dir():
        logger.warning(MessageFormatter.path_not_directory(directory))
        return

    pattern = "**/*" if recursive else "*"
    supported_extensions = set(Image.registered_extensions().keys())

    try:
        for file_path in sorted(directory.glob(pattern)):
            if (
                file_path.is_file()
                and file_path.suffix.lower() in supported_extensions
                and not any(
                    exclude_dir in file_path.parts for exclude_dir in exclude_dirs
                )
            ):
                yield file_path
    except PermissionError:
        logger.error(MessageFormatter.permission_error(directory, "访问目录"))


def expand_input_paths(
    paths: Iterable[str | Path], recursive: bool = False
) -> list[Path]:
    """展开输入路径：文件原样保留，目录展开为其中的图片文件

    保持输入顺序；不存在的路径原样保留，由导入阶段拒绝并报告。
    """
    expanded: list[Path] = []
    for raw in paths:
        path = Path(raw)
        if path.is_dir():
            expanded.extend(find_image_files(path, recursive=recursive))
        else:
            expanded.append(path)
    return expanded
