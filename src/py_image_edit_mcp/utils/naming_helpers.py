"""文件命名工具模块。

提供导出文件的命名策略和路径生成功能。
"""

import itertools
from collections.abc import Iterable
from pathlib import PurePath, Path

from ..models.constants import OutputFormat


DEFAULT_SUFFIX = "_edited"
FALLBACK_STEM = "image"


class FileNamingStrategy:
    """文件命名策略类"""

    @staticmethod
    def generate_output_name(
        source_name: str,
        output_format: OutputFormat,
        suffix: str = DEFAULT_SUFFIX,
        fallback_stem: str = FALLBACK_STEM,
    ) -> str:
        """生成导出文件名

        文件名由原始文件名的主干、变换类型后缀和输出格式扩展名组成，
        例如 ``holiday.photo.png`` 导出为 ``holiday_edited.jpg``。

        Args:
            source_name: 原始文件名（可含目录）
            output_format: 输出格式
            suffix: 变换类型后缀
            fallback_stem: 原始文件名没有可用主干时使用的名称

        Returns:
            str: 生成的文件名（不含路径）
        """
        stem = FileNamingStrategy.extract_stem(source_name) or fallback_stem
        return f"{stem}{suffix}{output_format.extension}"

    @staticmethod
    def extract_stem(source_name: str) -> str:
        """提取文件名主干：第一个点号之前的部分"""
        base = PurePath(source_name.replace("\\", "/")).name if source_name else ""
        return base.split(".")[0].strip()

    @staticmethod
    def deduplicate(names: Iterable[str]) -> list[str]:
        """为重名文件追加数字后缀，保持原有顺序

        Args:
            names: 文件名序列

        Returns:
            list[str]: 互不重复的文件名列表
        """
        seen: set[str] = set()
        unique: list[str] = []
        for name in names:
            candidate = name
            if candidate in seen:
                path = PurePath(name)
                for counter in itertools.count(1):
                    candidate = f"{path.stem}_{counter}{path.suffix}"
                    if candidate not in seen:
                        break
            seen.add(candidate)
            unique.append(candidate)
        return unique


class PathResolver:
    """路径解析器"""

    @staticmethod
    def ensure_unique_path(path: Path) -> Path:
        """确保路径唯一，如果文件已存在则添加数字后缀

        Args:
            path: 原始路径

        Returns:
            Path: 唯一的路径
        """
        if not path.exists():
            return path

        base = path.stem
        suffix = path.suffix
        parent = path.parent

        for counter in itertools.count(1):
            new_path = parent / f"{base}_{counter}{suffix}"
            if not new_path.exists():
                return new_path

        return path  # pragma: no cover
