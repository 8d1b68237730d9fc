"""编辑结果模型。

定义一次编排运行的汇总结果以及导出条目。
"""

from typing import Any, TypedDict

from humanize import naturalsize
from pydantic import BaseModel, ConfigDict, Field

from .work_item import BatchProgress


class BaseResult(BaseModel):
    """结果基类，包含通用方法"""

    model_config = ConfigDict(frozen=True)

    @staticmethod
    def format_size(size_bytes: int) -> str:
        """格式化文件大小为人类可读格式"""
        return naturalsize(size_bytes, binary=True)


class RunSummary(BaseResult):
    """一次编排运行的汇总

    运行本身不会失败：被拒绝的运行标记为 skipped，单项失败只体现在 failed_ids。
    """

    progress: BatchProgress = Field(default_factory=BatchProgress)
    succeeded_ids: tuple[str, ...] = Field(default=(), description="成功的工作项")
    failed_ids: tuple[str, ...] = Field(default=(), description="失败的工作项")
    discarded_ids: tuple[str, ...] = Field(
        default=(), description="运行期间被移除、结果被丢弃的工作项"
    )
    result_bytes: int = Field(0, ge=0, description="成功结果的总字节数")
    skipped: bool = Field(False, description="运行请求是否被忽略")
    skip_reason: str | None = Field(None, description="忽略原因")

    @classmethod
    def rejected(cls, reason: str) -> "RunSummary":
        return cls(skipped=True, skip_reason=reason)

    def get_total_count(self) -> int:
        return self.progress.total

    def get_success_count(self) -> int:
        return len(self.succeeded_ids)

    def get_failure_count(self) -> int:
        return len(self.failed_ids)

    def get_success_rate(self) -> float:
        """获取成功率（百分比）"""
        total = self.get_total_count()
        if total == 0:
            return 0.0
        return (self.get_success_count() / total) * 100

    def get_summary(self) -> str:
        """运行摘要"""
        if self.skipped:
            return f"未运行: {self.skip_reason}"

        summary = (
            f"处理 {self.get_success_count()}/{self.get_total_count()} 张图片 "
            f"(成功率 {self.get_success_rate():.1f}%), "
            f"输出 {self.format_size(self.result_bytes)}"
        )
        if self.failed_ids:
            summary += f", 失败 {self.get_failure_count()} 张"
        if self.discarded_ids:
            summary += f", 丢弃 {len(self.discarded_ids)} 张"
        return summary


class ExportEntry(BaseResult):
    """待打包的导出条目（文件名 → 字节）"""

    item_id: str
    filename: str = Field(min_length=1)
    data: bytes = Field(repr=False)

    def get_size_human(self) -> str:
        return self.format_size(len(self.data))


class ProcessingResult(TypedDict):
    """便捷函数统一的返回类型"""

    success: bool
    result: RunSummary | None
    exported: list[str]
    rejected: list[str]
    error: str | None


class InstructionPreview(TypedDict):
    """指令预览（MCP 工具返回）"""

    stages: list[dict[str, Any]]
    prompt: str
