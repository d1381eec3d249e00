"""资源耗尽预测引擎."""

import threading
from collections.abc import Sequence
from datetime import UTC, datetime, timedelta
from typing import Protocol

from config.settings import Thresholds
from core.analyzers import SignalAnalyzer, build_analyzers, combine_verdicts
from core.history import HistoryWindow, project_metrics
from core.models import MetricsSnapshot, Prediction, PredictionLevel
from utils.logger import get_logger

logger = get_logger(__name__)


class MetricsSource(Protocol):
    """指标来源.

    无法读取指标时返回 None 而不是抛出异常;实现方自行负责并发安全.
    """

    def collect(self) -> MetricsSnapshot | None: ...


class Clock(Protocol):
    """时钟."""

    def now(self) -> datetime: ...


class SystemClock:
    """系统UTC时钟."""

    def now(self) -> datetime:
        return datetime.now(UTC)


class PredictionEngine:
    """预测引擎.

    核心流程:
    1. 从指标来源采集快照
    2. 追加到历史窗口
    3. 依次运行各信号分析器和趋势分析器
    4. 折叠所有判定并投影堆使用率

    整个流程在同一把锁内执行,调度器与按需调用共享同一个历史窗口.
    """

    def __init__(
        self,
        source: MetricsSource,
        thresholds: Thresholds | None = None,
        *,
        clock: Clock | None = None,
        history_size: int = 10,
        projection_horizon: timedelta = timedelta(minutes=5),
        analyzers: Sequence[SignalAnalyzer] | None = None,
    ) -> None:
        """初始化预测引擎.

        Args:
            source: 指标来源
            thresholds: 分析器阈值,默认使用默认阈值
            clock: 时钟,默认使用系统UTC时钟
            history_size: 历史窗口容量
            projection_horizon: 投影时间跨度
            analyzers: 自定义分析器序列(按评估顺序),默认由阈值构建
        """
        self.source = source
        self.clock = clock or SystemClock()
        self.projection_horizon = projection_horizon
        self.history = HistoryWindow(max_size=history_size)

        if analyzers is None:
            analyzers = build_analyzers(thresholds or Thresholds())
        self.analyzers: tuple[SignalAnalyzer, ...] = tuple(analyzers)

        self._lock = threading.Lock()

        logger.info(
            "初始化预测引擎: analyzers=%s, history_size=%d",
            ",".join(analyzer.name for analyzer in self.analyzers),
            history_size,
        )

    def evaluate(self) -> Prediction:
        """采集并评估当前资源状态.

        Returns:
            本次预测结果;指标不可用时返回 SAFE、风险分0的空预测
        """
        with self._lock:
            snapshot = self.source.collect()
            if snapshot is None:
                logger.debug("指标不可用,跳过本次评估")
                return Prediction(
                    timestamp=self.clock.now(),
                    level=PredictionLevel.SAFE,
                    risk_score=0.0,
                )

            self.history.append(snapshot)
            history = self.history.snapshots()

            verdict = combine_verdicts(
                [analyzer.analyze(snapshot, history) for analyzer in self.analyzers],
            )

            now = self.clock.now()
            projected = project_metrics(
                snapshot,
                history,
                now,
                horizon=self.projection_horizon,
            )

            return Prediction(
                timestamp=now,
                level=verdict.level,
                risk_score=verdict.risk_score,
                warnings=verdict.warnings,
                critical_issues=verdict.critical_issues,
                current_metrics=snapshot,
                projected_metrics=projected,
            )

    def history_size(self) -> int:
        """获取当前历史窗口中的快照数量."""
        with self._lock:
            return len(self.history)

    def clear_history(self) -> None:
        """清空历史窗口."""
        with self._lock:
            self.history.clear()
