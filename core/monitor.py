"""进程资源指标采集模块."""

import gc
import threading
import time
from collections.abc import Callable
from typing import Any, Protocol

import psutil

from config.settings import Settings
from core.engine import Clock, SystemClock
from core.models import (
    CpuMetrics,
    GcMetrics,
    MemoryMetrics,
    MetricsSnapshot,
    SystemMemoryMetrics,
    ThreadMetrics,
    WorkerPoolMetrics,
)
from utils.cgroup import read_memory_limit
from utils.logger import get_logger

logger = get_logger(__name__)


class WorkerPool(Protocol):
    """可提供统计信息的有界工作池."""

    def pool_stats(self) -> WorkerPoolMetrics: ...


class GcPauseTracker:
    """通过 gc.callbacks 统计垃圾回收停顿.

    记录每次回收 start 与 stop 阶段之间的耗时.
    """

    def __init__(self, timer: Callable[[], float] = time.perf_counter) -> None:
        self._timer = timer
        self._started_at: float | None = None
        self._collection_count = 0
        self._total_seconds = 0.0
        self._last_pause_seconds = 0.0
        self._installed = False

    def install(self) -> None:
        """注册回调."""
        if self._installed:
            return
        gc.callbacks.append(self._on_gc)
        self._installed = True
        logger.debug("注册GC回调")

    def uninstall(self) -> None:
        """移除回调."""
        if not self._installed:
            return
        try:
            gc.callbacks.remove(self._on_gc)
        except ValueError:
            pass
        self._installed = False

    def _on_gc(self, phase: str, info: dict[str, Any]) -> None:
        # 回调中不能加锁,否则持锁线程触发GC时会死锁
        if phase == "start":
            self._started_at = self._timer()
        elif phase == "stop" and self._started_at is not None:
            pause = self._timer() - self._started_at
            self._started_at = None
            self._collection_count += 1
            self._total_seconds += pause
            self._last_pause_seconds = pause

    def metrics(self) -> GcMetrics:
        """获取GC统计."""
        return GcMetrics(
            collection_count=self._collection_count,
            collection_time_ms=round(self._total_seconds * 1000),
            last_pause_ms=round(self._last_pause_seconds * 1000),
        )


class ProcessMetricsSource:
    """进程资源指标来源.

    使用psutil采集进程内存、CPU与系统内存,threading统计线程,
    GcPauseTracker统计GC停顿,可选的有界线程池提供工作池指标.
    """

    def __init__(
        self,
        *,
        enabled: bool = True,
        memory_limit_bytes: int = 0,
        executor: WorkerPool | None = None,
        gc_tracker: GcPauseTracker | None = None,
        clock: Clock | None = None,
    ) -> None:
        """初始化指标来源.

        Args:
            enabled: 是否启用采集,禁用时 collect 返回 None
            memory_limit_bytes: 进程内存上限,0表示自动探测(cgroup或物理内存)
            executor: 有界线程池,None表示弹性并发模型
            gc_tracker: GC停顿统计器,默认新建并注册
            clock: 时钟
        """
        self.enabled = enabled
        self.executor = executor
        self.clock = clock or SystemClock()
        self.gc_tracker = gc_tracker or GcPauseTracker()
        self.gc_tracker.install()

        self._process = psutil.Process()
        self._cpu_count = psutil.cpu_count(logical=True) or 1
        self._memory_limit = self._resolve_memory_limit(memory_limit_bytes)

        self._lock = threading.Lock()
        self._peak_threads = threading.active_count()

        # 初始化CPU百分比计数器(第一次调用返回0)
        self._process.cpu_percent(interval=None)
        psutil.cpu_percent(interval=None)

        logger.info(
            "初始化指标来源: memory_limit=%d, worker_pool=%s",
            self._memory_limit,
            "bounded" if executor is not None else "elastic",
        )

    @classmethod
    def from_settings(
        cls,
        settings: Settings,
        executor: WorkerPool | None = None,
    ) -> "ProcessMetricsSource":
        return cls(
            enabled=settings.monitor_enabled,
            memory_limit_bytes=settings.monitor_memory_limit_bytes,
            executor=executor,
        )

    @staticmethod
    def _resolve_memory_limit(configured: int) -> int:
        if configured > 0:
            return configured
        cgroup_limit = read_memory_limit()
        if cgroup_limit is not None:
            return cgroup_limit
        return psutil.virtual_memory().total

    def collect(self) -> MetricsSnapshot | None:
        """采集当前资源指标.

        Returns:
            指标快照;采集被禁用或失败时返回 None
        """
        if not self.enabled:
            return None

        try:
            with self._lock:
                return MetricsSnapshot(
                    timestamp=self.clock.now(),
                    memory=self._collect_memory(),
                    gc=self.gc_tracker.metrics(),
                    threads=self._collect_threads(),
                    cpu=self._collect_cpu(),
                    system_memory=self._collect_system_memory(),
                    worker_pool=self._collect_worker_pool(),
                )
        except Exception:
            logger.exception("采集资源指标失败")
            return None

    def _collect_memory(self) -> MemoryMetrics:
        memory = self._process.memory_info()
        return MemoryMetrics(
            heap_used=memory.rss,
            heap_max=self._memory_limit,
            heap_committed=memory.vms,
            non_heap_used=getattr(memory, "shared", 0),
        )

    def _collect_threads(self) -> ThreadMetrics:
        threads = threading.enumerate()
        current = len(threads)
        self._peak_threads = max(self._peak_threads, current)
        return ThreadMetrics(
            current=current,
            peak=self._peak_threads,
            daemon=sum(1 for thread in threads if thread.daemon),
        )

    def _collect_cpu(self) -> CpuMetrics:
        try:
            process_load = min(
                self._process.cpu_percent(interval=None) / self._cpu_count,
                100.0,
            )
            system_load = psutil.cpu_percent(interval=None)
        except (psutil.Error, OSError):
            logger.warning("无法采集CPU指标", exc_info=True)
            return CpuMetrics()
        return CpuMetrics(
            process_load_percent=process_load,
            system_load_percent=system_load,
        )

    def _collect_system_memory(self) -> SystemMemoryMetrics:
        try:
            memory = psutil.virtual_memory()
        except (psutil.Error, OSError):
            logger.warning("无法采集系统内存指标", exc_info=True)
            return SystemMemoryMetrics()
        return SystemMemoryMetrics(used=memory.total - memory.available, total=memory.total)

    def _collect_worker_pool(self) -> WorkerPoolMetrics | None:
        if self.executor is None:
            return None
        return self.executor.pool_stats()

    def close(self) -> None:
        """释放资源."""
        self.gc_tracker.uninstall()
