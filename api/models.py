"""API数据模型."""

from datetime import datetime

from pydantic import BaseModel, Field

from core.models import MetricsSnapshot, Prediction


class WorkerPoolResponse(BaseModel):
    """工作池指标."""

    active_count: int
    queue_size: int
    pool_size: int
    completed_tasks: int


class MetricsResponse(BaseModel):
    """资源指标快照响应."""

    timestamp: datetime
    heap_used: int = Field(description="堆使用量(字节)")
    heap_max: int = Field(description="堆上限(字节)")
    heap_committed: int = Field(description="已提交内存(字节)")
    non_heap_used: int = Field(description="非堆内存(字节)")
    heap_usage_percent: float = Field(description="堆使用率(%)")
    gc_collection_count: int
    gc_collection_time_ms: int
    gc_last_pause_ms: int
    thread_count: int
    peak_thread_count: int
    daemon_thread_count: int
    process_cpu_load: float | None = Field(default=None, description="进程CPU负载(%)")
    system_cpu_load: float | None = Field(default=None, description="系统CPU负载(%)")
    system_memory_used: int
    system_memory_total: int
    system_memory_usage_percent: float
    worker_pool: WorkerPoolResponse | None = Field(
        default=None,
        description="有界工作池指标,弹性并发模型下为空",
    )

    @classmethod
    def from_snapshot(cls, snapshot: MetricsSnapshot) -> "MetricsResponse":
        pool = snapshot.worker_pool
        return cls(
            timestamp=snapshot.timestamp,
            heap_used=snapshot.memory.heap_used,
            heap_max=snapshot.memory.heap_max,
            heap_committed=snapshot.memory.heap_committed,
            non_heap_used=snapshot.memory.non_heap_used,
            heap_usage_percent=snapshot.heap_usage_percent,
            gc_collection_count=snapshot.gc.collection_count,
            gc_collection_time_ms=snapshot.gc.collection_time_ms,
            gc_last_pause_ms=snapshot.gc.last_pause_ms,
            thread_count=snapshot.threads.current,
            peak_thread_count=snapshot.threads.peak,
            daemon_thread_count=snapshot.threads.daemon,
            process_cpu_load=snapshot.cpu.process_load_percent,
            system_cpu_load=snapshot.cpu.system_load_percent,
            system_memory_used=snapshot.system_memory.used,
            system_memory_total=snapshot.system_memory.total,
            system_memory_usage_percent=snapshot.system_memory.usage_percent,
            worker_pool=WorkerPoolResponse(**pool._asdict()) if pool is not None else None,
        )


class ProjectedMetricsResponse(BaseModel):
    """投影指标响应."""

    timestamp: datetime
    heap_usage_percent: float


class PredictionResponse(BaseModel):
    """预测结果响应."""

    timestamp: datetime
    level: str
    risk_score: float = Field(ge=0, le=1)
    requires_throttling: bool
    warnings: list[str]
    critical_issues: list[str]
    current_metrics: MetricsResponse | None = None
    projected_metrics: ProjectedMetricsResponse | None = None

    @classmethod
    def from_prediction(cls, prediction: Prediction) -> "PredictionResponse":
        projected = prediction.projected_metrics
        if projected is not None:
            projected_response = ProjectedMetricsResponse(
                timestamp=projected.timestamp,
                heap_usage_percent=projected.heap_usage_percent,
            )
        else:
            projected_response = None

        current = prediction.current_metrics
        return cls(
            timestamp=prediction.timestamp,
            level=str(prediction.level),
            risk_score=prediction.risk_score,
            requires_throttling=prediction.requires_throttling(),
            warnings=list(prediction.warnings),
            critical_issues=list(prediction.critical_issues),
            current_metrics=MetricsResponse.from_snapshot(current) if current is not None else None,
            projected_metrics=projected_response,
        )


class ThrottleResponse(BaseModel):
    """限流判定响应."""

    throttle_required: bool
    level: str
    risk_score: float
    critical_issues: list[str]


class ResourceHealthResponse(BaseModel):
    """资源健康概览响应."""

    level: str
    risk_score: float
    heap_usage_percent: float
    cpu_usage_percent: float
    thread_count: int
    warning_count: int
    critical_issue_count: int
