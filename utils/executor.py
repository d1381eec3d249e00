"""可观测的有界线程池."""

import threading
from collections.abc import Callable
from concurrent.futures import Future, ThreadPoolExecutor
from typing import Any

from core.models import WorkerPoolMetrics
from utils.logger import get_logger

logger = get_logger(__name__)


class InstrumentedThreadPoolExecutor(ThreadPoolExecutor):
    """统计排队、活跃与已完成任务数的线程池.

    队列长度 = 已提交但尚未开始执行的任务数;
    线程池大小 = 实际执行过任务的工作线程数.
    """

    def __init__(self, max_workers: int | None = None, thread_name_prefix: str = "worker") -> None:
        super().__init__(max_workers=max_workers, thread_name_prefix=thread_name_prefix)
        self._stats_lock = threading.Lock()
        self._queued = 0
        self._active = 0
        self._completed = 0
        self._worker_idents: set[int] = set()

        logger.info("初始化工作线程池: max_workers=%d", self._max_workers)

    def submit(self, fn: Callable[..., Any], /, *args: Any, **kwargs: Any) -> Future:
        with self._stats_lock:
            self._queued += 1
        try:
            future = super().submit(self._run, fn, *args, **kwargs)
        except BaseException:
            # 线程池已关闭等情况,任务并未入队
            with self._stats_lock:
                self._queued -= 1
            raise
        future.add_done_callback(self._on_done)
        return future

    def _on_done(self, future: Future) -> None:
        # 只有尚未开始的任务能被取消,_run 不会再执行
        if future.cancelled():
            with self._stats_lock:
                self._queued -= 1

    def _run(self, fn: Callable[..., Any], *args: Any, **kwargs: Any) -> Any:
        with self._stats_lock:
            self._queued -= 1
            self._active += 1
            self._worker_idents.add(threading.get_ident())
        try:
            return fn(*args, **kwargs)
        finally:
            with self._stats_lock:
                self._active -= 1
                self._completed += 1

    def pool_stats(self) -> WorkerPoolMetrics:
        """获取线程池当前统计."""
        with self._stats_lock:
            return WorkerPoolMetrics(
                active_count=self._active,
                queue_size=self._queued,
                pool_size=len(self._worker_idents),
                completed_tasks=self._completed,
            )
