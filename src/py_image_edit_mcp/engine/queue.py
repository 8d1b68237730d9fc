"""批量工作队列模块。

持有一个批次的全部工作项（按输入顺序）以及当前的选择集合。
选择集合与工作项状态相互独立。
"""

from collections import Counter
from collections.abc import Iterable
from uuid import uuid4

from ..models.work_item import (
    SourceImage,
    WorkItem,
    WorkItemEvent,
    WorkItemState,
    reduce_work_item,
)
from ..utils.logging_helpers import get_logger


logger = get_logger()


class BatchQueue:
    """批量工作队列

    同一时间只处理一个批次：载入新图片会替换整个批次。
    工作项的状态只能通过 ``apply`` 以事件方式更新。
    """

    def __init__(self) -> None:
        self._items: dict[str, WorkItem] = {}
        self._selection: set[str] = set()
        self._load_generation = 0
        self._active_generations: set[int] = set()

    # ------------------------------------------------------------------
    # 批次管理
    # ------------------------------------------------------------------

    def add_images(self, images: Iterable[SourceImage]) -> list[WorkItem]:
        """用新图片替换当前批次，每张图片创建一个 idle 工作项

        Args:
            images: 已通过导入校验的源图像，顺序即批次顺序

        Returns:
            list[WorkItem]: 新创建的工作项
        """
        self.clear()
        for source in images:
            item_id = uuid4().hex
            self._items[item_id] = WorkItem(id=item_id, source=source)
        self._load_generation += 1

        logger.info(f"载入新批次: {len(self._items)} 张图片")
        return self.items

    def clear(self) -> None:
        """清空批次与选择，释放持有的图像字节"""
        self._items = {}
        self._selection = set()

    def remove(self, item_id: str) -> bool:
        """移除工作项（任何状态均可），返回是否确实移除"""
        removed = self._items.pop(item_id, None)
        self._selection.discard(item_id)
        if removed is not None:
            logger.debug(f"移除工作项: {removed.source.name} [{item_id}]")
        return removed is not None

    # ------------------------------------------------------------------
    # 选择集合
    # ------------------------------------------------------------------

    def select(self, item_ids: Iterable[str]) -> None:
        """把指定工作项加入选择，未知 id 被忽略"""
        for item_id in item_ids:
            if item_id in self._items:
                self._selection.add(item_id)
            else:
                logger.debug(f"忽略未知的工作项 id: {item_id}")

    def select_all(self) -> None:
        self._selection = set(self._items)

    def deselect_all(self) -> None:
        self._selection = set()

    def toggle(self, item_id: str) -> bool:
        """切换单个工作项的选择状态，返回切换后是否被选中"""
        if item_id in self._selection:
            self._selection.discard(item_id)
            return False
        if item_id not in self._items:
            logger.debug(f"忽略未知的工作项 id: {item_id}")
            return False
        self._selection.add(item_id)
        return True

    @property
    def selection(self) -> frozenset[str]:
        return frozenset(self._selection)

    @property
    def all_selected(self) -> bool:
        return bool(self._items) and len(self._selection) == len(self._items)

    def selected_items(self) -> list[WorkItem]:
        """按批次顺序返回被选中的工作项"""
        return [item for item in self._items.values() if item.id in self._selection]

    # ------------------------------------------------------------------
    # 状态
    # ------------------------------------------------------------------

    def apply(self, item_id: str, event: WorkItemEvent) -> WorkItem | None:
        """对工作项应用状态事件

        Returns:
            WorkItem | None: 更新后的工作项；工作项已被移除时返回 None 且不做任何事
        """
        item = self._items.get(item_id)
        if item is None:
            return None
        updated = reduce_work_item(item, event)
        self._items[item_id] = updated
        return updated

    def get(self, item_id: str) -> WorkItem | None:
        return self._items.get(item_id)

    def __contains__(self, item_id: object) -> bool:
        return item_id in self._items

    def __len__(self) -> int:
        return len(self._items)

    @property
    def items(self) -> list[WorkItem]:
        """按输入顺序返回全部工作项"""
        return list(self._items.values())

    @property
    def is_run_active(self) -> bool:
        """当前批次是否有正在进行的编排运行

        按载入代数记录：运行期间载入新批次后，旧运行不再阻止新批次运行。
        """
        return self._load_generation in self._active_generations

    def mark_run_started(self) -> int:
        """记录当前批次开始运行，返回该批次的载入代数"""
        generation = self._load_generation
        self._active_generations.add(generation)
        return generation

    def mark_run_finished(self, generation: int) -> None:
        self._active_generations.discard(generation)

    @property
    def load_generation(self) -> int:
        """每次载入新批次递增，用于判断是否为同一批次"""
        return self._load_generation

    def items_in_state(self, state: WorkItemState) -> list[WorkItem]:
        return [item for item in self._items.values() if item.state == state]

    def state_counts(self) -> dict[WorkItemState, int]:
        """各状态的工作项数量，总和恒等于工作项总数"""
        counts = Counter(item.state for item in self._items.values())
        return {state: counts.get(state, 0) for state in WorkItemState}
