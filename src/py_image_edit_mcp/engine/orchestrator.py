"""批量编排模块。

对选中的工作项依次（或在并发上限内）编译指令、调用变换服务并记录结果。
单项失败只影响该工作项；运行本身永远不会因为单项失败而中断。
"""

import asyncio
from collections.abc import Callable
from concurrent.futures import ThreadPoolExecutor
from contextlib import AbstractContextManager, nullcontext

from ..config import get_config
from ..core.compiler import compile_instructions
from ..exceptions import ConfigurationError, ErrorHandler, StateTransitionError
from ..models.edit_result import RunSummary
from ..models.tool_settings import ToolSettings
from ..models.work_item import (
    BatchProgress,
    ProcessingStarted,
    TransformFailed,
    TransformSucceeded,
    WorkItem,
    WorkItemEvent,
    WorkItemState,
)
from ..utils.logging_helpers import get_logger
from ..utils.message_formatter import MessageFormatter
from .queue import BatchQueue
from .tools import Compiler
from .transform import TransformCapability, invoke_capability, is_async_capability


logger = get_logger()

ProgressCallback = Callable[[BatchProgress], None]


class _RunState:
    """单次运行内部的累计状态"""

    def __init__(self, total: int):
        self.progress = BatchProgress(current=0, total=total)
        self.succeeded: list[str] = []
        self.failed: list[str] = []
        self.discarded: list[str] = []
        self.result_bytes = 0

    def to_summary(self) -> RunSummary:
        return RunSummary(
            progress=self.progress,
            succeeded_ids=tuple(self.succeeded),
            failed_ids=tuple(self.failed),
            discarded_ids=tuple(self.discarded),
            result_bytes=self.result_bytes,
        )


class BatchOrchestrator:
    """批量编排器

    每个批次同一时间最多只有一次运行；运行期间的新请求会被忽略并返回
    skipped 的汇总。
    """

    def __init__(
        self,
        capability: TransformCapability,
        max_concurrency: int | None = None,
        executor_workers: int | None = None,
        compiler: Compiler = compile_instructions,
    ):
        """初始化编排器

        Args:
            capability: 外部变换服务
            max_concurrency: 同时处理的工作项上限，None 时使用全局配置（默认 1，顺序执行）
            executor_workers: 同步变换服务使用的线程数，None 时使用全局配置
            compiler: 指令编译函数，决定运行的是编辑、压缩还是放大
        """
        defaults = get_config().orchestration
        self.capability = capability
        self.max_concurrency = (
            max_concurrency if max_concurrency is not None else defaults.MAX_CONCURRENCY
        )
        self.executor_workers = (
            executor_workers
            if executor_workers is not None
            else defaults.EXECUTOR_WORKERS
        )
        if self.max_concurrency < 1:
            raise ConfigurationError(f"并发上限必须大于 0: {self.max_concurrency}")
        if self.executor_workers < 1:
            raise ConfigurationError(f"线程数必须大于 0: {self.executor_workers}")
        self.compiler = compiler
        self._active_runs = 0

    @property
    def is_running(self) -> bool:
        """该编排器当前是否有运行在进行"""
        return self._active_runs > 0

    async def run(
        self,
        batch: BatchQueue,
        settings: ToolSettings,
        on_progress: ProgressCallback | None = None,
    ) -> RunSummary:
        """处理批次中当前选中的工作项

        Args:
            batch: 工作队列
            settings: 本次运行使用的设置，运行期间对设置的修改不会影响本次运行
            on_progress: 进度回调，开始时与每个工作项结束后各调用一次

        Returns:
            RunSummary: 运行汇总；选择为空或已有运行时返回 skipped 的汇总
        """
        selected = batch.selected_items()
        if not selected:
            return self._reject("没有选中的图片")
        if batch.is_run_active:
            return self._reject("当前批次已有运行在进行")

        # 检查与标记之间没有 await，对同一事件循环中的并发请求是原子的
        generation = batch.mark_run_started()
        self._active_runs += 1
        try:
            return await self._execute(batch, settings, selected, on_progress)
        finally:
            self._active_runs -= 1
            batch.mark_run_finished(generation)

    def run_sync(
        self,
        batch: BatchQueue,
        settings: ToolSettings,
        on_progress: ProgressCallback | None = None,
    ) -> RunSummary:
        """同步运行（内部创建事件循环），不能在已运行的事件循环中调用"""
        return asyncio.run(self.run(batch, settings, on_progress))

    async def _execute(
        self,
        batch: BatchQueue,
        settings: ToolSettings,
        selected: list[WorkItem],
        on_progress: ProgressCallback | None,
    ) -> RunSummary:
        state = _RunState(total=len(selected))
        for item in selected:
            batch.apply(item.id, ProcessingStarted())

        logger.info(
            f"开始处理 {len(selected)} 张图片 (并发上限 {self.max_concurrency})"
        )
        self._publish(on_progress, state.progress)

        semaphore = asyncio.Semaphore(self.max_concurrency)

        async def process(item: WorkItem) -> None:
            async with semaphore:
                outcome = await self._transform_item(item, settings, executor)
            self._record(batch, item, outcome, state)
            state.progress = state.progress.advanced()
            self._publish(on_progress, state.progress)

        with self._executor() as executor:
            if self.max_concurrency == 1:
                for item in selected:
                    await process(item)
            else:
                await asyncio.gather(*(process(item) for item in selected))

        summary = state.to_summary()
        logger.info(summary.get_summary())
        return summary

    def _executor(self) -> AbstractContextManager[ThreadPoolExecutor | None]:
        """同步变换服务使用的线程池，异步服务不需要"""
        if is_async_capability(self.capability):
            return nullcontext()
        return ThreadPoolExecutor(max_workers=self.executor_workers)

    async def _transform_item(
        self,
        item: WorkItem,
        settings: ToolSettings,
        executor: ThreadPoolExecutor | None,
    ) -> WorkItemEvent:
        """处理单个工作项，任何异常都转换为失败事件"""
        try:
            instructions = self.compiler(settings, item.source.descriptor)
            result = await invoke_capability(
                self.capability,
                item.source.data,
                item.source.mime_type,
                instructions,
                executor,
            )
            return TransformSucceeded(result=result)
        except Exception as e:
            message = ErrorHandler.describe_failure(e, item.source.name)
            return TransformFailed(message=message)

    def _record(
        self,
        batch: BatchQueue,
        item: WorkItem,
        outcome: WorkItemEvent,
        state: _RunState,
    ) -> None:
        try:
            updated = batch.apply(item.id, outcome)
        except StateTransitionError as e:
            logger.error(f"无法记录 {item.source.name} 的结果: {e.message}")
            updated = None

        if updated is None:
            # 运行期间被移除的工作项，结果直接丢弃
            logger.debug(f"丢弃已移除工作项的结果: {item.source.name} [{item.id}]")
            state.discarded.append(item.id)
        elif updated.state == WorkItemState.SUCCEEDED:
            logger.debug(f"处理成功: {item.source.name}")
            state.succeeded.append(item.id)
            state.result_bytes += len(updated.result or b"")
        else:
            logger.warning(
                MessageFormatter.item_failed(
                    item.id, item.source.name, updated.error or ""
                )
            )
            state.failed.append(item.id)

    @staticmethod
    def _publish(on_progress: ProgressCallback | None, progress: BatchProgress) -> None:
        if on_progress is None:
            return
        try:
            on_progress(progress)
        except Exception as e:
            logger.error(f"进度回调失败: {e}")

    @staticmethod
    def _reject(reason: str) -> RunSummary:
        logger.info(MessageFormatter.run_rejected(reason))
        return RunSummary.rejected(reason)


class AutoRunTrigger:
    """新批次载入后自动运行

    每次载入（以 load_generation 区分）最多触发一次，只在所有工作项都是 idle
    且没有运行在进行时触发；选择为空时先选中全部。
    """

    def __init__(self, orchestrator: BatchOrchestrator, enabled: bool | None = None):
        self.orchestrator = orchestrator
        self.enabled = (
            enabled if enabled is not None else get_config().orchestration.AUTO_RUN
        )
        self._fired_generation: int | None = None

    async def maybe_run(
        self,
        batch: BatchQueue,
        settings: ToolSettings,
        on_progress: ProgressCallback | None = None,
    ) -> RunSummary | None:
        """满足条件时运行，返回运行汇总；未触发时返回 None"""
        if not self.enabled or len(batch) == 0:
            return None
        generation = batch.load_generation
        if generation == self._fired_generation or batch.is_run_active:
            return None
        if any(item.state != WorkItemState.IDLE for item in batch.items):
            return None

        self._fired_generation = generation
        if not batch.selection:
            batch.select_all()
        logger.info(f"自动运行新批次 (第 {generation} 次载入)")
        return await self.orchestrator.run(batch, settings, on_progress)
