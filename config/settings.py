"""预测器配置管理."""

from collections.abc import Mapping
from functools import lru_cache
from pathlib import Path
from typing import Any, Self

from pydantic import BaseModel, ConfigDict, Field, model_validator
from pydantic_settings import BaseSettings, SettingsConfigDict


def _normalize_keys(mapping: Mapping[str, Any]) -> dict[str, Any]:
    """将点分配置键(如 heap.warning)转换为字段名(heap_warning)."""
    return {key.replace(".", "_"): value for key, value in mapping.items()}


class Thresholds(BaseModel):
    """各信号分析器的阈值.

    百分比阈值取值0-100,线程与队列阈值为绝对数量,GC阈值单位为毫秒.
    """

    model_config = ConfigDict(frozen=True, extra="forbid")

    heap_warning: float = Field(default=70.0, ge=0, le=100, description="堆内存警告阈值(%)")
    heap_critical: float = Field(default=85.0, ge=0, le=100, description="堆内存严重阈值(%)")
    heap_imminent: float = Field(default=95.0, ge=0, le=100, description="堆内存崩溃临近阈值(%)")
    cpu_warning: float = Field(default=70.0, ge=0, le=100, description="CPU警告阈值(%)")
    cpu_critical: float = Field(default=85.0, ge=0, le=100, description="CPU严重阈值(%)")
    thread_warning: int = Field(default=80, ge=0, description="线程数警告阈值")
    thread_critical: int = Field(default=90, ge=0, description="线程数严重阈值")
    gc_warning_ms: int = Field(default=1000, ge=0, description="GC停顿警告阈值(毫秒)")
    gc_critical_ms: int = Field(default=5000, ge=0, description="GC停顿严重阈值(毫秒)")
    queue_warning: int = Field(default=50, ge=0, description="工作池队列警告阈值")
    queue_critical: int = Field(default=80, ge=0, description="工作池队列严重阈值")

    @model_validator(mode="after")
    def _check_ordering(self) -> Self:
        """校验每组阈值按升序排列."""
        groups = (
            ("heap", (self.heap_warning, self.heap_critical, self.heap_imminent)),
            ("cpu", (self.cpu_warning, self.cpu_critical)),
            ("thread", (self.thread_warning, self.thread_critical)),
            ("gc", (self.gc_warning_ms, self.gc_critical_ms)),
            ("queue", (self.queue_warning, self.queue_critical)),
        )
        for name, values in groups:
            if list(values) != sorted(values):
                msg = f"{name} thresholds must be ascending, got {values}"
                raise ValueError(msg)
        return self

    @classmethod
    def from_mapping(cls, mapping: Mapping[str, Any]) -> "Thresholds":
        """从点分键的扁平映射构建阈值,未知键会被拒绝.

        Args:
            mapping: 例如 {"heap.warning": 60, "gc.critical_ms": 3000}

        Returns:
            阈值对象,未出现的键使用默认值
        """
        return cls.model_validate(_normalize_keys(mapping))


class Settings(BaseSettings):
    """系统配置类."""

    model_config = SettingsConfigDict(
        env_prefix="RESOURCE_PREDICTOR_",
        env_file=".env",
        env_file_encoding="utf-8",
        case_sensitive=False,
    )

    # 服务器配置
    server_host: str = Field(default="0.0.0.0", description="服务监听地址")  # noqa: S104
    server_port: int = Field(default=8080, description="服务监听端口")

    # 预测阈值
    heap_warning: float = Field(default=70.0, description="堆内存警告阈值(%)")
    heap_critical: float = Field(default=85.0, description="堆内存严重阈值(%)")
    heap_imminent: float = Field(default=95.0, description="堆内存崩溃临近阈值(%)")
    cpu_warning: float = Field(default=70.0, description="CPU警告阈值(%)")
    cpu_critical: float = Field(default=85.0, description="CPU严重阈值(%)")
    thread_warning: int = Field(default=80, description="线程数警告阈值")
    thread_critical: int = Field(default=90, description="线程数严重阈值")
    gc_warning_ms: int = Field(default=1000, description="GC停顿警告阈值(毫秒)")
    gc_critical_ms: int = Field(default=5000, description="GC停顿严重阈值(毫秒)")
    queue_warning: int = Field(default=50, description="工作池队列警告阈值")
    queue_critical: int = Field(default=80, description="工作池队列严重阈值")

    # 历史与调度
    history_max_size: int = Field(default=10, ge=1, description="历史窗口容量")
    sample_period_seconds: float = Field(default=10.0, gt=0, description="采样周期(秒)")
    projection_horizon_minutes: int = Field(default=5, ge=0, description="投影时间跨度(分钟)")

    # 指标采集
    monitor_enabled: bool = Field(default=True, description="启用指标采集")
    monitor_memory_limit_bytes: int = Field(
        default=0,
        ge=0,
        description="进程内存上限(字节),0表示自动探测",
    )
    worker_pool_max_workers: int = Field(
        default=0,
        ge=0,
        description="有界工作池线程数,0表示不使用工作池",
    )

    # 日志配置
    log_level: str = Field(default="INFO", description="日志级别")
    log_file: str = Field(default="logs/resource_predictor.log", description="日志文件路径")
    log_max_bytes: int = Field(default=10485760, description="日志文件最大大小(字节)")
    log_backup_count: int = Field(default=5, description="日志备份数量")

    @model_validator(mode="after")
    def _validate_thresholds(self) -> Self:
        """启动前校验阈值组合."""
        self.get_thresholds()
        return self

    @classmethod
    def from_mapping(cls, mapping: Mapping[str, Any]) -> "Settings":
        """从点分键的扁平映射构建配置(如 history.max_size)."""
        return cls(**_normalize_keys(mapping))

    def get_thresholds(self) -> Thresholds:
        """获取分析器阈值."""
        return Thresholds.model_validate(
            self.model_dump(include=set(Thresholds.model_fields)),
        )

    def get_log_path(self) -> Path:
        """获取日志文件的绝对路径."""
        log_path = Path(self.log_file)
        if not log_path.is_absolute():
            project_root = Path(__file__).parent.parent
            log_path = project_root / log_path
        log_path.parent.mkdir(parents=True, exist_ok=True)
        return log_path


@lru_cache
def get_settings() -> Settings:
    """获取配置单例."""
    return Settings()
