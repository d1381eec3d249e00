"""
进程指标采集测试
"""

import gc
from unittest.mock import MagicMock

import psutil
import pytest

from config.settings import Settings
from core.models import GcMetrics, WorkerPoolMetrics
from core.monitor import GcPauseTracker, ProcessMetricsSource
from tests.conftest import BASE_TIME, FixedClock

MEMORY_LIMIT = 64 * 1024**3


@pytest.fixture
def metrics_source():
    src = ProcessMetricsSource(memory_limit_bytes=MEMORY_LIMIT, clock=FixedClock())
    yield src
    src.close()


class StaticPool:
    def pool_stats(self) -> WorkerPoolMetrics:
        return WorkerPoolMetrics(active_count=1, queue_size=7, pool_size=2, completed_tasks=9)


class TestProcessMetricsSource:
    def test_collects_process_snapshot(self, metrics_source):
        snapshot = metrics_source.collect()

        assert snapshot is not None
        assert snapshot.timestamp == BASE_TIME
        assert snapshot.memory.heap_used > 0
        assert snapshot.memory.heap_max == MEMORY_LIMIT
        assert 0.0 < snapshot.heap_usage_percent < 100.0
        assert snapshot.threads.current >= 1
        assert snapshot.threads.peak >= snapshot.threads.current
        assert snapshot.system_memory.total > 0
        assert snapshot.cpu.process_load_percent is not None
        assert 0.0 <= snapshot.cpu.process_load_percent <= 100.0

    def test_elastic_substrate_has_no_pool_metrics(self, metrics_source):
        assert metrics_source.collect().worker_pool is None

    def test_bounded_pool_metrics(self):
        src = ProcessMetricsSource(memory_limit_bytes=MEMORY_LIMIT, executor=StaticPool())
        try:
            assert src.collect().worker_pool.queue_size == 7
        finally:
            src.close()

    def test_disabled_source_is_unavailable(self):
        src = ProcessMetricsSource(enabled=False, memory_limit_bytes=MEMORY_LIMIT)
        try:
            assert src.collect() is None
        finally:
            src.close()

    def test_collection_failure_is_unavailable(self, metrics_source, monkeypatch):
        def broken():
            raise psutil.NoSuchProcess(pid=1)

        monkeypatch.setattr(metrics_source, "_collect_memory", broken)
        assert metrics_source.collect() is None

    def test_cpu_failure_only_blanks_cpu(self, metrics_source):
        process = MagicMock(wraps=metrics_source._process)
        process.cpu_percent.side_effect = psutil.AccessDenied()
        metrics_source._process = process

        snapshot = metrics_source.collect()

        assert snapshot is not None
        assert snapshot.cpu.process_load_percent is None
        assert snapshot.cpu.system_load_percent is None
        assert snapshot.memory.heap_used > 0

    def test_from_settings(self):
        settings = Settings(
            _env_file=None,
            monitor_enabled=False,
            monitor_memory_limit_bytes=MEMORY_LIMIT,
        )
        src = ProcessMetricsSource.from_settings(settings)
        try:
            assert src.enabled is False
            assert src._memory_limit == MEMORY_LIMIT
        finally:
            src.close()

    def test_auto_memory_limit_is_positive(self):
        src = ProcessMetricsSource()
        try:
            assert src.collect().memory.heap_max > 0
        finally:
            src.close()


class TestGcPauseTracker:
    def test_counts_collections(self):
        tracker = GcPauseTracker()
        tracker.install()
        try:
            gc.collect()
            gc.collect()
        finally:
            tracker.uninstall()

        metrics = tracker.metrics()
        assert metrics.collection_count >= 2
        assert metrics.collection_time_ms >= 0
        assert metrics.last_pause_ms >= 0

    def test_uninstall_stops_tracking(self):
        tracker = GcPauseTracker()
        tracker.install()
        tracker.uninstall()
        gc.collect()
        assert tracker.metrics() == GcMetrics()
        assert tracker._on_gc not in gc.callbacks

    def test_install_is_idempotent(self):
        tracker = GcPauseTracker()
        tracker.install()
        tracker.install()
        try:
            assert gc.callbacks.count(tracker._on_gc) == 1
        finally:
            tracker.uninstall()

    def test_pause_measured_between_phases(self):
        ticks = iter([1.0, 1.25])
        tracker = GcPauseTracker(timer=lambda: next(ticks))

        tracker._on_gc("start", {"generation": 2})
        tracker._on_gc("stop", {"generation": 2})

        assert tracker.metrics() == GcMetrics(
            collection_count=1,
            collection_time_ms=250,
            last_pause_ms=250,
        )
