"""资源指标与预测结果数据模型."""

from datetime import datetime
from enum import StrEnum
from typing import NamedTuple


class MemoryMetrics(NamedTuple):
    """进程内存指标(字节)."""

    heap_used: int
    heap_max: int
    heap_committed: int = 0
    non_heap_used: int = 0

    @property
    def heap_usage_percent(self) -> float:
        """堆使用率(%),上限未知时为0."""
        if self.heap_max <= 0:
            return 0.0
        return self.heap_used / self.heap_max * 100


class GcMetrics(NamedTuple):
    """垃圾回收指标."""

    collection_count: int = 0  # 累计回收次数
    collection_time_ms: int = 0  # 累计回收耗时
    last_pause_ms: int = 0  # 最近一次停顿


class ThreadMetrics(NamedTuple):
    """线程指标."""

    current: int
    peak: int
    daemon: int = 0


class CpuMetrics(NamedTuple):
    """CPU负载(%),None 表示当前平台无法读取."""

    process_load_percent: float | None = None
    system_load_percent: float | None = None


class SystemMemoryMetrics(NamedTuple):
    """系统物理内存(字节)."""

    used: int = 0
    total: int = 0

    @property
    def usage_percent(self) -> float:
        if self.total <= 0:
            return 0.0
        return self.used / self.total * 100


class WorkerPoolMetrics(NamedTuple):
    """有界工作池指标.

    只有在执行载体为有界线程池时才存在;弹性并发模型下快照中该字段为 None.
    """

    active_count: int
    queue_size: int
    pool_size: int
    completed_tasks: int


class MetricsSnapshot(NamedTuple):
    """某一时刻的资源指标快照."""

    timestamp: datetime
    memory: MemoryMetrics
    gc: GcMetrics
    threads: ThreadMetrics
    cpu: CpuMetrics
    system_memory: SystemMemoryMetrics
    worker_pool: WorkerPoolMetrics | None = None

    @property
    def heap_usage_percent(self) -> float:
        return self.memory.heap_usage_percent


class ProjectedMetrics(NamedTuple):
    """投影指标,仅包含堆使用率."""

    timestamp: datetime
    heap_usage_percent: float


class PredictionLevel(StrEnum):
    """预测等级."""

    SAFE = "SAFE"  # 未发现问题
    WARNING = "WARNING"  # 接近阈值
    CRITICAL = "CRITICAL"  # 高风险
    IMMINENT = "IMMINENT"  # 即将崩溃或卡死

    @property
    def rank(self) -> int:
        return _LEVEL_RANK[self]

    def is_higher_than(self, other: "PredictionLevel") -> bool:
        return self.rank > other.rank


_LEVEL_RANK: dict[PredictionLevel, int] = {
    PredictionLevel.SAFE: 0,
    PredictionLevel.WARNING: 1,
    PredictionLevel.CRITICAL: 2,
    PredictionLevel.IMMINENT: 3,
}


def higher_level(first: PredictionLevel, second: PredictionLevel) -> PredictionLevel:
    """按等级顺序返回两者中较高的一个."""
    return second if second.is_higher_than(first) else first


class PartialVerdict(NamedTuple):
    """单个分析器的风险判定."""

    warnings: tuple[str, ...] = ()
    critical_issues: tuple[str, ...] = ()
    risk_score: float = 0.0
    level: PredictionLevel = PredictionLevel.SAFE

    def merge(self, other: "PartialVerdict") -> "PartialVerdict":
        """合并两个判定:消息按顺序拼接,等级与风险分取最大值."""
        return PartialVerdict(
            warnings=self.warnings + other.warnings,
            critical_issues=self.critical_issues + other.critical_issues,
            risk_score=max(self.risk_score, other.risk_score),
            level=higher_level(self.level, other.level),
        )


class Prediction(NamedTuple):
    """资源耗尽预测结果."""

    timestamp: datetime
    level: PredictionLevel
    risk_score: float  # 0.0 - 1.0
    warnings: tuple[str, ...] = ()
    critical_issues: tuple[str, ...] = ()
    current_metrics: MetricsSnapshot | None = None
    projected_metrics: MetricsSnapshot | ProjectedMetrics | None = None

    def requires_throttling(self) -> bool:
        return self.level in (PredictionLevel.CRITICAL, PredictionLevel.IMMINENT)
