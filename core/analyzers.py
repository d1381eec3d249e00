"""信号分析器.

每个分析器只负责一类信号,根据快照(趋势分析器根据历史窗口)给出
PartialVerdict;返回 None 表示本次不参与评估,与"测量后判定安全"不同.
"""

from collections.abc import Sequence
from dataclasses import dataclass
from functools import reduce
from typing import Protocol

from config.settings import Thresholds
from core.models import MetricsSnapshot, PartialVerdict, PredictionLevel


class SignalAnalyzer(Protocol):
    """信号分析器接口."""

    name: str

    def analyze(
        self,
        snapshot: MetricsSnapshot,
        history: Sequence[MetricsSnapshot],
    ) -> PartialVerdict | None: ...


@dataclass(frozen=True)
class HeapAnalyzer:
    """堆内存分析器."""

    warning: float = 70.0
    critical: float = 85.0
    imminent: float = 95.0
    name: str = "heap"

    def analyze(
        self,
        snapshot: MetricsSnapshot,
        history: Sequence[MetricsSnapshot] = (),
    ) -> PartialVerdict:
        usage = snapshot.heap_usage_percent

        if usage >= self.imminent:
            return PartialVerdict(
                critical_issues=(f"Heap memory at {usage:.2f}% - IMMINENT CRASH RISK",),
                risk_score=0.95,
                level=PredictionLevel.IMMINENT,
            )
        if usage >= self.critical:
            return PartialVerdict(
                critical_issues=(f"Heap memory at {usage:.2f}% - CRITICAL",),
                risk_score=0.75,
                level=PredictionLevel.CRITICAL,
            )
        if usage >= self.warning:
            return PartialVerdict(
                warnings=(f"Heap memory at {usage:.2f}% - Approaching threshold",),
                risk_score=0.5,
                level=PredictionLevel.WARNING,
            )
        # 安全区间内按使用率映射到 0-0.3
        return PartialVerdict(risk_score=usage / 100.0 * 0.3)


@dataclass(frozen=True)
class CpuAnalyzer:
    """进程CPU负载分析器."""

    warning: float = 70.0
    critical: float = 85.0
    name: str = "cpu"

    def analyze(
        self,
        snapshot: MetricsSnapshot,
        history: Sequence[MetricsSnapshot] = (),
    ) -> PartialVerdict:
        load = snapshot.cpu.process_load_percent
        if load is None:
            # 本平台无法读取CPU负载
            return PartialVerdict()

        if load >= self.critical:
            return PartialVerdict(
                critical_issues=(f"CPU usage at {load:.2f}% - High load may cause freezing",),
                risk_score=0.7,
                level=PredictionLevel.CRITICAL,
            )
        if load >= self.warning:
            return PartialVerdict(
                warnings=(f"CPU usage at {load:.2f}% - Monitoring",),
                risk_score=0.4,
                level=PredictionLevel.WARNING,
            )
        return PartialVerdict(risk_score=load / 100.0 * 0.2)


@dataclass(frozen=True)
class ThreadAnalyzer:
    """线程数分析器.

    峰值线程数超过当前值1.5倍时附加一条提示,不影响等级与风险分.
    """

    warning: int = 80
    critical: int = 90
    name: str = "threads"

    def analyze(
        self,
        snapshot: MetricsSnapshot,
        history: Sequence[MetricsSnapshot] = (),
    ) -> PartialVerdict:
        current = snapshot.threads.current
        peak = snapshot.threads.peak

        if current >= self.critical:
            verdict = PartialVerdict(
                critical_issues=(f"Thread count at {current} - Thread exhaustion risk",),
                risk_score=0.65,
                level=PredictionLevel.CRITICAL,
            )
        elif current >= self.warning:
            verdict = PartialVerdict(
                warnings=(f"Thread count at {current} - High thread usage",),
                risk_score=0.35,
                level=PredictionLevel.WARNING,
            )
        else:
            verdict = PartialVerdict()

        if peak > current * 1.5:
            verdict = verdict._replace(
                warnings=(
                    *verdict.warnings,
                    f"Peak threads ({peak}) significantly higher than current ({current})",
                ),
            )
        return verdict


@dataclass(frozen=True)
class GcPauseAnalyzer:
    """GC停顿分析器,尚未观察到停顿时不参与评估."""

    warning_ms: int = 1000
    critical_ms: int = 5000
    name: str = "gc"

    def analyze(
        self,
        snapshot: MetricsSnapshot,
        history: Sequence[MetricsSnapshot] = (),
    ) -> PartialVerdict | None:
        pause = snapshot.gc.last_pause_ms
        if pause <= 0:
            return None

        if pause >= self.critical_ms:
            return PartialVerdict(
                critical_issues=(f"GC duration {pause} ms - Application may freeze during GC",),
                risk_score=0.6,
                level=PredictionLevel.CRITICAL,
            )
        if pause >= self.warning_ms:
            return PartialVerdict(
                warnings=(f"GC duration {pause} ms - Long GC pauses",),
                risk_score=0.3,
                level=PredictionLevel.WARNING,
            )
        return PartialVerdict()


@dataclass(frozen=True)
class WorkerPoolAnalyzer:
    """工作池积压分析器.

    只在执行载体暴露有界队列时评估;弹性并发模型(无工作池)下不参与评估.
    """

    warning: int = 50
    critical: int = 80
    name: str = "worker_pool"

    def analyze(
        self,
        snapshot: MetricsSnapshot,
        history: Sequence[MetricsSnapshot] = (),
    ) -> PartialVerdict | None:
        pool = snapshot.worker_pool
        if pool is None:
            return None

        queue_size = pool.queue_size
        if queue_size >= self.critical:
            return PartialVerdict(
                critical_issues=(f"Thread pool queue at {queue_size} - Tasks backing up",),
                risk_score=0.7,
                level=PredictionLevel.CRITICAL,
            )
        if queue_size >= self.warning:
            return PartialVerdict(
                warnings=(f"Thread pool queue at {queue_size} - Queue growing",),
                risk_score=0.4,
                level=PredictionLevel.WARNING,
            )
        return PartialVerdict()


@dataclass(frozen=True)
class TrendAnalyzer:
    """堆增长趋势分析器.

    只比较窗口内最旧与最新两个点(两点斜率),中间点是否单调不做判断.
    """

    min_samples: int = 3
    growth_threshold: float = 10.0  # 百分点
    name: str = "trend"

    def analyze(
        self,
        snapshot: MetricsSnapshot,
        history: Sequence[MetricsSnapshot] = (),
    ) -> PartialVerdict | None:
        if len(history) < self.min_samples:
            return None

        trend = history[-1].heap_usage_percent - history[0].heap_usage_percent
        if trend > self.growth_threshold:
            return PartialVerdict(
                warnings=(f"Heap memory growing rapidly: +{trend:.2f}% trend",),
                risk_score=0.4,
                level=PredictionLevel.WARNING,
            )
        return PartialVerdict()


def build_analyzers(thresholds: Thresholds) -> list[SignalAnalyzer]:
    """按评估顺序构建分析器:堆、CPU、线程、GC、工作池、趋势."""
    return [
        HeapAnalyzer(
            warning=thresholds.heap_warning,
            critical=thresholds.heap_critical,
            imminent=thresholds.heap_imminent,
        ),
        CpuAnalyzer(warning=thresholds.cpu_warning, critical=thresholds.cpu_critical),
        ThreadAnalyzer(warning=thresholds.thread_warning, critical=thresholds.thread_critical),
        GcPauseAnalyzer(
            warning_ms=thresholds.gc_warning_ms,
            critical_ms=thresholds.gc_critical_ms,
        ),
        WorkerPoolAnalyzer(warning=thresholds.queue_warning, critical=thresholds.queue_critical),
        TrendAnalyzer(),
    ]


def combine_verdicts(verdicts: Sequence[PartialVerdict | None]) -> PartialVerdict:
    """折叠所有参与评估的判定,风险分取最大值并截断到1.0."""
    combined = reduce(
        PartialVerdict.merge,
        (verdict for verdict in verdicts if verdict is not None),
        PartialVerdict(),
    )
    return combined._replace(risk_score=min(combined.risk_score, 1.0))
