"""
共享测试夹具
"""

import threading
from collections.abc import Iterable
from datetime import UTC, datetime, timedelta

import pytest

from core.models import (
    CpuMetrics,
    GcMetrics,
    MemoryMetrics,
    MetricsSnapshot,
    SystemMemoryMetrics,
    ThreadMetrics,
    WorkerPoolMetrics,
)

BASE_TIME = datetime(2024, 1, 1, 12, 0, tzinfo=UTC)


def make_snapshot(
    heap_percent: float = 50.0,
    *,
    cpu: float | None = 10.0,
    threads: int = 20,
    peak_threads: int | None = None,
    last_pause_ms: int = 0,
    worker_pool: WorkerPoolMetrics | None = None,
    timestamp: datetime | None = None,
) -> MetricsSnapshot:
    """构建指定堆使用率的快照(堆上限固定为10000字节)."""
    return MetricsSnapshot(
        timestamp=timestamp or BASE_TIME,
        memory=MemoryMetrics(
            heap_used=round(heap_percent * 100),
            heap_max=10_000,
            heap_committed=10_000,
            non_heap_used=512,
        ),
        gc=GcMetrics(
            collection_count=3 if last_pause_ms else 0,
            collection_time_ms=last_pause_ms * 3,
            last_pause_ms=last_pause_ms,
        ),
        threads=ThreadMetrics(
            current=threads,
            peak=peak_threads if peak_threads is not None else threads,
            daemon=2,
        ),
        cpu=CpuMetrics(process_load_percent=cpu, system_load_percent=cpu),
        system_memory=SystemMemoryMetrics(used=4 * 1024**3, total=16 * 1024**3),
        worker_pool=worker_pool,
    )


def make_pool(queue_size: int) -> WorkerPoolMetrics:
    return WorkerPoolMetrics(active_count=4, queue_size=queue_size, pool_size=4, completed_tasks=100)


class FakeSource:
    """按顺序返回预设快照的指标来源,None 表示本次不可用."""

    def __init__(self, snapshots: Iterable[MetricsSnapshot | None] = ()) -> None:
        self._pending = list(snapshots)
        self.calls = 0

    def push(self, snapshot: MetricsSnapshot | None) -> None:
        self._pending.append(snapshot)

    def collect(self) -> MetricsSnapshot | None:
        self.calls += 1
        if not self._pending:
            return None
        return self._pending.pop(0)


class CountingSource:
    """每次采集返回时间戳递增的快照."""

    def __init__(self, heap_percent: float = 50.0) -> None:
        self.heap_percent = heap_percent
        self._lock = threading.Lock()
        self._count = 0

    def collect(self) -> MetricsSnapshot:
        with self._lock:
            self._count += 1
            count = self._count
        return make_snapshot(
            self.heap_percent,
            timestamp=BASE_TIME + timedelta(seconds=count),
        )


class FixedClock:
    """固定时间的时钟."""

    def __init__(self, now: datetime = BASE_TIME) -> None:
        self._now = now

    def now(self) -> datetime:
        return self._now


@pytest.fixture
def clock() -> FixedClock:
    return FixedClock()


@pytest.fixture
def source() -> FakeSource:
    return FakeSource()
