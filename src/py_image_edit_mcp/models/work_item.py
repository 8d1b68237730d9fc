"""工作项模型。

每张输入图片对应一个工作项，状态迁移通过纯函数 ``reduce_work_item`` 完成：

    idle -> processing -> succeeded | failed
    succeeded | failed -> processing （重新选择后再次运行）
"""

from enum import Enum

from humanize import naturalsize
from pydantic import BaseModel, ConfigDict, Field

from ..exceptions import StateTransitionError
from .instructions import SourceDescriptor


class _Frozen(BaseModel):
    model_config = ConfigDict(frozen=True, extra="forbid")


class SourceImage(_Frozen):
    """已通过导入校验的源图像，字节内容不可变"""

    name: str = Field(description="显示名称（原始文件名）")
    mime_type: str = Field(description="MIME 类型")
    data: bytes = Field(min_length=1, repr=False, description="图像字节")
    descriptor: SourceDescriptor

    @property
    def size(self) -> int:
        return len(self.data)

    def get_size_human(self) -> str:
        """人类可读的文件大小"""
        return naturalsize(self.size, binary=True)


class WorkItemState(str, Enum):
    """工作项生命周期状态"""

    IDLE = "idle"
    PROCESSING = "processing"
    SUCCEEDED = "succeeded"
    FAILED = "failed"

    @property
    def is_terminal(self) -> bool:
        return self in (WorkItemState.SUCCEEDED, WorkItemState.FAILED)


class WorkItem(_Frozen):
    """单张图片的处理记录"""

    id: str
    source: SourceImage
    state: WorkItemState = WorkItemState.IDLE
    result: bytes | None = Field(None, repr=False, description="变换结果字节")
    error: str | None = Field(None, description="失败原因")

    @property
    def is_successful(self) -> bool:
        return self.state == WorkItemState.SUCCEEDED and self.result is not None


class ProcessingStarted(_Frozen):
    """工作项进入处理"""


class TransformSucceeded(_Frozen):
    result: bytes = Field(min_length=1, repr=False)


class TransformFailed(_Frozen):
    message: str = Field(min_length=1)


WorkItemEvent = ProcessingStarted | TransformSucceeded | TransformFailed


def reduce_work_item(item: WorkItem, event: WorkItemEvent) -> WorkItem:
    """根据事件计算工作项的新状态（纯函数，不修改输入）

    Args:
        item: 当前工作项
        event: 状态事件

    Returns:
        WorkItem: 新的工作项

    Raises:
        StateTransitionError: 非法状态迁移
    """
    match event:
        case ProcessingStarted():
            if item.state == WorkItemState.PROCESSING:
                raise _illegal(item, WorkItemState.PROCESSING)
            # 重新处理时清除上一次的结果与错误
            return item.model_copy(
                update={
                    "state": WorkItemState.PROCESSING,
                    "result": None,
                    "error": None,
                }
            )
        case TransformSucceeded(result=result):
            if item.state != WorkItemState.PROCESSING:
                raise _illegal(item, WorkItemState.SUCCEEDED)
            return item.model_copy(
                update={
                    "state": WorkItemState.SUCCEEDED,
                    "result": result,
                    "error": None,
                }
            )
        case TransformFailed(message=message):
            if item.state != WorkItemState.PROCESSING:
                raise _illegal(item, WorkItemState.FAILED)
            return item.model_copy(
                update={"state": WorkItemState.FAILED, "result": None, "error": message}
            )
        case _:
            raise TypeError(f"未知的工作项事件: {event!r}")


def _illegal(item: WorkItem, target: WorkItemState) -> StateTransitionError:
    return StateTransitionError(
        f"非法状态迁移: {item.state.value} -> {target.value}", item_id=item.id
    )


class BatchProgress(_Frozen):
    """一次运行的进度"""

    current: int = Field(0, ge=0)
    total: int = Field(0, ge=0)

    @property
    def is_complete(self) -> bool:
        return self.current == self.total

    def advanced(self) -> "BatchProgress":
        """前进一步，永不超过 total"""
        if self.current >= self.total:
            raise ValueError(f"进度已完成: {self.current}/{self.total}")
        return BatchProgress(current=self.current + 1, total=self.total)
