"""周期采样调度模块."""

import asyncio
from datetime import datetime

from core.engine import PredictionEngine
from core.models import Prediction
from core.report import build_metrics_report
from utils.logger import get_logger, prediction_context

logger = get_logger(__name__)


class LatestPrediction:
    """最近一次调度预测结果.

    首次成功采样前为空;每次采样整体替换(单写多读),
    读取方只会看到上一个或最新的完整预测.
    """

    def __init__(self) -> None:
        self._prediction: Prediction | None = None

    def publish(self, prediction: Prediction) -> None:
        self._prediction = prediction

    def get(self) -> Prediction | None:
        return self._prediction


class SamplingScheduler:
    """采样调度器.

    按固定周期调用预测引擎,保存最近一次预测并输出日志.
    单次采样失败只记录日志,不会终止调度循环.
    """

    def __init__(
        self,
        engine: PredictionEngine,
        period_seconds: float = 10.0,
        *,
        log_reports: bool = True,
    ) -> None:
        """初始化调度器.

        Args:
            engine: 预测引擎
            period_seconds: 采样周期(秒)
            log_reports: 是否输出多段式指标报告
        """
        if period_seconds <= 0:
            msg = f"period_seconds must be > 0, got {period_seconds}"
            raise ValueError(msg)

        self.engine = engine
        self.period_seconds = period_seconds
        self.log_reports = log_reports
        self.latest = LatestPrediction()

        # 运行状态
        self._running = False
        self._task: asyncio.Task | None = None
        self._tick_count = 0
        self._failed_ticks = 0
        self._last_tick_at: datetime | None = None

        logger.info("初始化采样调度器: period=%.1fs", period_seconds)

    async def start(self) -> None:
        """启动调度器."""
        if self._running:
            logger.warning("调度器已在运行")
            return

        self._running = True
        self._task = asyncio.create_task(self._schedule_loop())
        logger.info("调度器已启动")

    async def stop(self) -> None:
        """停止调度器."""
        if not self._running:
            return

        self._running = False
        if self._task:
            self._task.cancel()
            try:
                await self._task
            except asyncio.CancelledError:
                pass
            self._task = None

        logger.info("调度器已停止")

    def is_running(self) -> bool:
        return self._running

    def last_prediction(self) -> Prediction | None:
        """获取最近一次调度预测,首次采样完成前返回 None."""
        return self.latest.get()

    async def _schedule_loop(self) -> None:
        """调度循环."""
        logger.info("开始调度循环")
        loop = asyncio.get_running_loop()

        while self._running:
            started = loop.time()
            try:
                await self.tick()
            except asyncio.CancelledError:
                break
            except Exception:
                self._failed_ticks += 1
                logger.exception("资源监控采样出错")

            # 扣除本次评估耗时,保持固定频率
            elapsed = loop.time() - started
            try:
                await asyncio.sleep(max(0.0, self.period_seconds - elapsed))
            except asyncio.CancelledError:
                break

        logger.info("调度循环结束")

    async def tick(self) -> Prediction:
        """执行一次采样评估并发布结果."""
        prediction = await asyncio.to_thread(self.engine.evaluate)
        self.latest.publish(prediction)
        self._tick_count += 1
        self._last_tick_at = prediction.timestamp
        self._log_prediction(prediction)
        return prediction

    def _log_prediction(self, prediction: Prediction) -> None:
        """输出指标报告与告警日志.

        Args:
            prediction: 预测结果
        """
        context = prediction_context(prediction.level, prediction.risk_score)
        if self.log_reports and prediction.current_metrics is not None:
            logger.info(
                build_metrics_report(prediction.current_metrics, prediction),
                extra=context,
            )

        risk = f"{prediction.risk_score:.2f}"

        if prediction.warnings:
            logger.warning(
                "⚠️  资源警告 (风险: %s): %s",
                risk,
                "; ".join(prediction.warnings),
                extra=context,
            )

        if prediction.critical_issues:
            logger.error(
                "🚨 严重资源问题 (风险: %s): %s",
                risk,
                "; ".join(prediction.critical_issues),
                extra=context,
            )

        if prediction.requires_throttling():
            logger.error(
                "⏱️ 需要限流 - 等级: %s, 风险分: %s",
                prediction.level,
                risk,
                extra=context,
            )

    def get_status(self) -> dict[str, bool | int | float | str | None]:
        """获取调度器状态.

        Returns:
            状态信息
        """
        latest = self.latest.get()
        return {
            "running": self._running,
            "period_seconds": self.period_seconds,
            "tick_count": self._tick_count,
            "failed_ticks": self._failed_ticks,
            "last_tick_at": self._last_tick_at.isoformat() if self._last_tick_at else None,
            "last_level": str(latest.level) if latest else None,
            "last_risk_score": latest.risk_score if latest else None,
            "history_size": self.engine.history_size(),
        }
