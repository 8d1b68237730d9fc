"""导出模块。

收集批次中成功的结果并为其命名。打包格式（压缩包等）由调用方决定，
这里只负责生成 文件名 → 字节 的条目以及写入目录。
"""

from collections.abc import Iterable
from pathlib import Path

from ..config import get_config
from ..exceptions import ImageEditError
from ..models.constants import OutputFormat
from ..models.edit_result import ExportEntry
from ..utils.logging_helpers import get_logger
from ..utils.message_formatter import MessageFormatter
from ..utils.naming_helpers import FileNamingStrategy, PathResolver
from .queue import BatchQueue


logger = get_logger()


class ExportCollector:
    """成功结果收集器"""

    def __init__(self, suffix: str | None = None, fallback_stem: str | None = None):
        defaults = get_config().export
        self.suffix = suffix if suffix is not None else defaults.FILENAME_SUFFIX
        self.fallback_stem = fallback_stem or defaults.FALLBACK_STEM

    def collect_succeeded(
        self,
        batch: BatchQueue,
        output_format: OutputFormat,
        suffix: str | None = None,
    ) -> list[ExportEntry]:
        """按批次顺序收集所有成功的工作项

        Args:
            batch: 工作队列
            output_format: 输出格式，决定文件扩展名
            suffix: 本次导出的文件名后缀，None 时使用默认后缀

        Returns:
            list[ExportEntry]: 导出条目，文件名在本次导出内互不重复；
                没有成功的工作项时返回空列表
        """
        succeeded = [item for item in batch.items if item.is_successful]
        if not succeeded:
            logger.info("没有可导出的成功结果")
            return []

        names = FileNamingStrategy.deduplicate(
            FileNamingStrategy.generate_output_name(
                item.source.name,
                output_format,
                suffix=self.suffix if suffix is None else suffix,
                fallback_stem=self.fallback_stem,
            )
            for item in succeeded
        )

        entries = [
            ExportEntry(item_id=item.id, filename=name, data=item.result or b"")
            for item, name in zip(succeeded, names, strict=True)
        ]
        logger.info(f"收集到 {len(entries)} 个导出条目")
        return entries


def write_entries(entries: Iterable[ExportEntry], output_dir: str | Path) -> list[Path]:
    """把导出条目写入目录，已存在的同名文件不会被覆盖

    Args:
        entries: 导出条目
        output_dir: 输出目录，不存在时自动创建

    Returns:
        list[Path]: 实际写入的文件路径

    Raises:
        ImageEditError: 目录无法创建或文件无法写入
    """
    output_dir = Path(output_dir)
    try:
        output_dir.mkdir(parents=True, exist_ok=True)
    except OSError as e:
        raise ImageEditError(
            MessageFormatter.operation_failed("创建输出目录", output_dir, e)
        ) from e

    written: list[Path] = []
    for entry in entries:
        target = PathResolver.ensure_unique_path(output_dir / entry.filename)
        try:
            target.write_bytes(entry.data)
        except OSError as e:
            raise ImageEditError(
                MessageFormatter.operation_failed("写入文件", target, e), entry.item_id
            ) from e
        logger.debug(f"已写入: {target} ({entry.get_size_human()})")
        written.append(target)

    return written
