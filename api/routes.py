"""资源预测API路由."""

import asyncio

from fastapi import APIRouter, HTTPException

from api.models import (
    MetricsResponse,
    PredictionResponse,
    ResourceHealthResponse,
    ThrottleResponse,
)
from core.engine import MetricsSource, PredictionEngine
from core.models import Prediction
from core.scheduler import SamplingScheduler
from utils.logger import get_logger

logger = get_logger(__name__)

router = APIRouter(prefix="/api/resource", tags=["资源预测"])

# 全局实例(将在main.py中初始化)
engine: PredictionEngine | None = None
scheduler: SamplingScheduler | None = None
source: MetricsSource | None = None


def set_engine(eng: PredictionEngine | None) -> None:
    """设置预测引擎实例."""
    global engine
    engine = eng


def set_scheduler(sched: SamplingScheduler | None) -> None:
    """设置调度器实例."""
    global scheduler
    scheduler = sched


def set_source(src: MetricsSource | None) -> None:
    """设置指标来源实例."""
    global source
    source = src


def _require_engine() -> PredictionEngine:
    if engine is None:
        raise HTTPException(status_code=503, detail="服务未就绪")
    return engine


async def _evaluate() -> Prediction:
    """按需评估,不影响调度周期."""
    return await asyncio.to_thread(_require_engine().evaluate)


@router.get("/prediction")
async def get_prediction() -> PredictionResponse:
    """获取实时预测."""
    prediction = await _evaluate()
    return PredictionResponse.from_prediction(prediction)


@router.get("/prediction/cached")
async def get_cached_prediction() -> PredictionResponse:
    """获取最近一次调度预测,尚无结果时实时评估."""
    prediction = scheduler.last_prediction() if scheduler else None
    if prediction is None:
        logger.debug("尚无调度预测,执行实时评估")
        prediction = await _evaluate()
    return PredictionResponse.from_prediction(prediction)


@router.get("/metrics")
async def get_metrics() -> MetricsResponse:
    """获取当前资源指标."""
    if source is None:
        raise HTTPException(status_code=503, detail="服务未就绪")

    snapshot = await asyncio.to_thread(source.collect)
    if snapshot is None:
        raise HTTPException(status_code=503, detail="资源指标不可用")
    return MetricsResponse.from_snapshot(snapshot)


@router.get("/throttle-required")
async def check_throttle_required() -> ThrottleResponse:
    """检查是否需要限流."""
    prediction = await _evaluate()
    return ThrottleResponse(
        throttle_required=prediction.requires_throttling(),
        level=str(prediction.level),
        risk_score=prediction.risk_score,
        critical_issues=list(prediction.critical_issues),
    )


@router.get("/health")
async def get_health() -> ResourceHealthResponse:
    """获取资源健康概览."""
    prediction = await _evaluate()
    metrics = prediction.current_metrics

    heap_usage = 0.0
    cpu_usage = 0.0
    thread_count = 0
    if metrics is not None:
        heap_usage = metrics.heap_usage_percent
        cpu_usage = metrics.cpu.process_load_percent or 0.0
        thread_count = metrics.threads.current

    return ResourceHealthResponse(
        level=str(prediction.level),
        risk_score=prediction.risk_score,
        heap_usage_percent=heap_usage,
        cpu_usage_percent=cpu_usage,
        thread_count=thread_count,
        warning_count=len(prediction.warnings),
        critical_issue_count=len(prediction.critical_issues),
    )
