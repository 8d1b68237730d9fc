"""图像批量编辑器接口。

把设置、工作队列、编排器和导出组合为一个简洁的会话对象，
并提供一次性处理文件列表的便捷函数。会话可用于编辑、视觉压缩或放大。
"""

import asyncio
from collections.abc import Iterable, Mapping
from pathlib import Path
from typing import Any

from .core.intake import ImageIntake, IntakeReport, RawImage
from .engine.export import ExportCollector, write_entries
from .engine.orchestrator import AutoRunTrigger, BatchOrchestrator, ProgressCallback
from .engine.queue import BatchQueue
from .engine.tools import get_profile
from .engine.transform import TransformCapability
from .exceptions import ConfigurationError, ImageEditError
from .models.constants import OutputFormat
from .models.edit_result import ExportEntry, ProcessingResult, RunSummary
from .models.tool_settings import ToolSettings, TransformKind
from .models.work_item import WorkItem
from .persistence.settings_store import SettingsRepository
from .utils.file_helpers import expand_input_paths
from .utils.logging_helpers import get_logger


logger = get_logger()


class ImageEditor:
    """图像批量编辑会话

    持有当前设置与当前批次。设置的每次修改都生成新的不可变对象，
    运行开始时使用的设置在整个运行期间保持不变。kind 决定会话使用的工具。
    """

    def __init__(
        self,
        capability: TransformCapability,
        settings: ToolSettings | None = None,
        repository: SettingsRepository | None = None,
        max_concurrency: int | None = None,
        executor_workers: int | None = None,
        auto_run: bool | None = None,
        kind: TransformKind | str = TransformKind.EDIT,
    ):
        """初始化编辑器

        Args:
            capability: 外部变换服务
            settings: 初始设置，None 时从仓库读取（没有仓库则使用默认设置）
            repository: 设置仓库（可选）
            max_concurrency: 同时处理的工作项上限
            executor_workers: 同步变换服务使用的线程数
            auto_run: 新批次载入后是否自动运行
            kind: 工具类型（编辑、压缩或放大），设置仓库只用于编辑工具

        Raises:
            ConfigurationError: 工具类型、设置类型或仓库不可用
        """
        self.profile = get_profile(kind)
        if repository is not None and self.profile.kind != TransformKind.EDIT:
            raise ConfigurationError("设置仓库只用于编辑工具")

        self.repository = repository
        self.builder = self.profile.builder()
        if settings is not None:
            self.settings = self.profile.check_settings(settings)
        elif repository is not None:
            self.settings = repository.load()
        else:
            self.settings = self.profile.default_settings

        self.queue = BatchQueue()
        self.intake = ImageIntake()
        self.orchestrator = BatchOrchestrator(
            capability,
            max_concurrency=max_concurrency,
            executor_workers=executor_workers,
            compiler=self.profile.compiler,
        )
        self.auto_run = AutoRunTrigger(self.orchestrator, enabled=auto_run)
        self.collector = ExportCollector()

        logger.debug(f"初始化图像编辑器 ({self.profile.kind.value})")

    # ------------------------------------------------------------------
    # 载入
    # ------------------------------------------------------------------

    def load_paths(
        self, paths: Iterable[str | Path], recursive: bool = False
    ) -> IntakeReport:
        """载入文件或目录，替换当前批次

        没有任何文件通过校验时保留当前批次不变。
        """
        report = self.intake.intake_paths(expand_input_paths(paths, recursive))
        self._replace_batch(report)
        return report

    def load_images(self, images: Iterable[RawImage]) -> IntakeReport:
        """载入外部提供的图像字节，替换当前批次"""
        report = self.intake.intake_raw(images)
        self._replace_batch(report)
        return report

    def _replace_batch(self, report: IntakeReport) -> None:
        if not report.accepted:
            logger.warning("没有可载入的图片，保留当前批次")
            return
        self.queue.add_images(report.accepted)

    @property
    def items(self) -> list[WorkItem]:
        return self.queue.items

    # ------------------------------------------------------------------
    # 设置
    # ------------------------------------------------------------------

    def update_settings(
        self, changes: Mapping[str, Any], clamp: bool = False
    ) -> ToolSettings:
        """修改设置，越界时按 clamp 决定截断或抛出 ConfigurationError"""
        self.settings = self.builder.update(self.settings, changes, clamp=clamp)
        return self.settings

    def reset_settings(self, section: str | None = None) -> ToolSettings:
        """恢复默认设置；指定 section 时只恢复该项"""
        if section is None:
            self.settings = self.profile.default_settings
        else:
            self.settings = self.builder.reset(self.settings, section)
        return self.settings

    def save_settings(self) -> None:
        if self.repository is None:
            raise ImageEditError("没有配置设置仓库，无法保存设置")
        self.repository.save(self.settings)

    # ------------------------------------------------------------------
    # 选择
    # ------------------------------------------------------------------

    def select(self, item_ids: Iterable[str]) -> None:
        self.queue.select(item_ids)

    def select_all(self) -> None:
        self.queue.select_all()

    def deselect_all(self) -> None:
        self.queue.deselect_all()

    def toggle(self, item_id: str) -> bool:
        return self.queue.toggle(item_id)

    def remove(self, item_id: str) -> bool:
        return self.queue.remove(item_id)

    # ------------------------------------------------------------------
    # 运行与导出
    # ------------------------------------------------------------------

    async def run(self, on_progress: ProgressCallback | None = None) -> RunSummary:
        """处理当前选中的工作项"""
        return await self.orchestrator.run(self.queue, self.settings, on_progress)

    def run_sync(self, on_progress: ProgressCallback | None = None) -> RunSummary:
        return self.orchestrator.run_sync(self.queue, self.settings, on_progress)

    async def maybe_auto_run(
        self, on_progress: ProgressCallback | None = None
    ) -> RunSummary | None:
        """开启自动运行时，对新载入的批次运行一次"""
        return await self.auto_run.maybe_run(self.queue, self.settings, on_progress)

    def export(self, output_format: OutputFormat | None = None) -> list[ExportEntry]:
        """收集成功结果，默认使用当前设置的输出格式与工具后缀命名"""
        return self.collector.collect_succeeded(
            self.queue,
            output_format or self.profile.output_format(self.settings),
            suffix=self.profile.filename_suffix(self.settings),
        )

    def export_to(
        self, output_dir: str | Path, output_format: OutputFormat | None = None
    ) -> list[Path]:
        """把成功结果写入目录"""
        return write_entries(self.export(output_format), output_dir)


async def process_images_async(
    paths: Iterable[str | Path],
    capability: TransformCapability,
    kind: TransformKind | str = TransformKind.EDIT,
    settings: ToolSettings | Mapping[str, Any] | None = None,
    output_dir: str | Path | None = None,
    recursive: bool = False,
) -> ProcessingResult:
    """批量处理图片（异步版本，可在已运行的事件循环中使用）

    载入全部文件、全选、运行一次，并在指定输出目录时写出成功结果。

    Args:
        paths: 文件或目录路径
        capability: 外部变换服务
        kind: 工具类型（编辑、压缩或放大）
        settings: 工具设置或设置字典，None 时使用默认设置
        output_dir: 输出目录（可选）
        recursive: 目录是否递归查找

    Returns:
        ProcessingResult: 统一的处理结果格式
    """
    rejected: list[str] = []
    try:
        if isinstance(settings, Mapping):
            settings = get_profile(kind).builder().from_dict(settings)

        editor = ImageEditor(capability, settings=settings, kind=kind)
        report = editor.load_paths(paths, recursive=recursive)
        rejected = [f"{r.name}: {r.reason}" for r in report.rejected]
        if not editor.items:
            return {
                "success": False,
                "result": None,
                "exported": [],
                "rejected": rejected,
                "error": "没有可处理的图片",
            }

        editor.select_all()
        summary = await editor.run()
        exported = []
        if output_dir is not None:
            exported = [str(path) for path in editor.export_to(output_dir)]

        return {
            "success": not summary.skipped and not summary.failed_ids,
            "result": summary,
            "exported": exported,
            "rejected": rejected,
            "error": None,
        }
    except ImageEditError as e:
        logger.error(f"批量处理失败: {e.message}")
        return {
            "success": False,
            "result": None,
            "exported": [],
            "rejected": rejected,
            "error": e.message,
        }


def process_images(
    paths: Iterable[str | Path],
    capability: TransformCapability,
    kind: TransformKind | str = TransformKind.EDIT,
    settings: ToolSettings | Mapping[str, Any] | None = None,
    output_dir: str | Path | None = None,
    recursive: bool = False,
) -> ProcessingResult:
    """process_images_async 的同步版本，不能在已运行的事件循环中调用"""
    return asyncio.run(
        process_images_async(
            paths,
            capability,
            kind=kind,
            settings=settings,
            output_dir=output_dir,
            recursive=recursive,
        )
    )


async def edit_images_async(
    paths: Iterable[str | Path],
    capability: TransformCapability,
    settings: ToolSettings | Mapping[str, Any] | None = None,
    output_dir: str | Path | None = None,
    recursive: bool = False,
) -> ProcessingResult:
    """便捷的批量编辑函数（异步版本）"""
    return await process_images_async(
        paths,
        capability,
        kind=TransformKind.EDIT,
        settings=settings,
        output_dir=output_dir,
        recursive=recursive,
    )


def edit_images(
    paths: Iterable[str | Path],
    capability: TransformCapability,
    settings: ToolSettings | Mapping[str, Any] | None = None,
    output_dir: str | Path | None = None,
    recursive: bool = False,
) -> ProcessingResult:
    """便捷的批量编辑函数

    Examples:
        >>> result = edit_images(["photo.png"], my_backend, output_dir="out")
        >>> print(f"成功: {result['success']}")
    """
    return process_images(
        paths,
        capability,
        kind=TransformKind.EDIT,
        settings=settings,
        output_dir=output_dir,
        recursive=recursive,
    )
