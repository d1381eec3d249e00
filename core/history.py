"""历史窗口与堆使用率投影."""

from collections import deque
from collections.abc import Iterator, Sequence
from datetime import datetime, timedelta

from core.models import MetricsSnapshot, ProjectedMetrics
from utils.logger import get_logger

logger = get_logger(__name__)


class HistoryWindow:
    """最近N个成功采样的快照.

    按插入顺序保存,容量满后淘汰最旧的快照(FIFO).
    只用于趋势分析和投影,本身不做线程同步,由持有者负责互斥.
    """

    def __init__(self, max_size: int = 10) -> None:
        """初始化历史窗口.

        Args:
            max_size: 窗口容量
        """
        if max_size < 1:
            msg = f"max_size must be >= 1, got {max_size}"
            raise ValueError(msg)

        self.max_size = max_size
        self._snapshots: deque[MetricsSnapshot] = deque(maxlen=max_size)

        logger.info("初始化历史窗口: max_size=%d", max_size)

    def append(self, snapshot: MetricsSnapshot) -> None:
        """追加快照,窗口已满时自动淘汰最旧的一个."""
        self._snapshots.append(snapshot)

    def snapshots(self) -> tuple[MetricsSnapshot, ...]:
        """获取窗口内容的不可变副本(最旧在前)."""
        return tuple(self._snapshots)

    def is_full(self) -> bool:
        return len(self._snapshots) >= self.max_size

    def clear(self) -> None:
        """清空窗口数据."""
        self._snapshots.clear()
        logger.info("清空历史窗口数据")

    def __len__(self) -> int:
        return len(self._snapshots)

    def __iter__(self) -> Iterator[MetricsSnapshot]:
        return iter(self._snapshots)


def project_metrics(
    current: MetricsSnapshot,
    history: Sequence[MetricsSnapshot],
    now: datetime,
    horizon: timedelta = timedelta(minutes=5),
) -> MetricsSnapshot | ProjectedMetrics:
    """基于最近两个历史点做单步线性外推.

    Args:
        current: 当前快照
        history: 历史窗口(最旧在前)
        now: 当前时间
        horizon: 投影时间跨度

    Returns:
        历史不足两个点时原样返回当前快照,否则返回只含堆使用率的投影
    """
    if len(history) < 2:
        return current

    growth_rate = history[-1].heap_usage_percent - history[-2].heap_usage_percent
    projected_heap = current.heap_usage_percent + growth_rate

    return ProjectedMetrics(
        timestamp=now + horizon,
        heap_usage_percent=min(projected_heap, 100.0),
    )
