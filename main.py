"""
FastAPI 主应用 - 资源耗尽预测服务

功能:
1. 周期采集进程资源指标
2. 评估资源耗尽风险并投影堆使用率
3. 通过 HTTP 暴露实时/缓存预测与限流判定

使用方法:
    python main.py
"""

import asyncio
from collections.abc import AsyncIterator
from contextlib import asynccontextmanager
from datetime import timedelta

from fastapi import FastAPI

from api import routes
from config.settings import get_settings
from core.engine import PredictionEngine
from core.monitor import ProcessMetricsSource
from core.scheduler import SamplingScheduler
from utils.executor import InstrumentedThreadPoolExecutor
from utils.logger import get_logger, setup_logging

logger = get_logger(__name__)


@asynccontextmanager
async def lifespan(app: FastAPI) -> AsyncIterator[None]:
    """应用生命周期管理"""
    settings = get_settings()
    setup_logging(settings)
    logger.info("应用启动中...")

    # 有界工作池(未配置时为弹性并发模型,没有工作池指标)
    executor = None
    if settings.worker_pool_max_workers > 0:
        executor = InstrumentedThreadPoolExecutor(max_workers=settings.worker_pool_max_workers)
        asyncio.get_running_loop().set_default_executor(executor)

    source = ProcessMetricsSource.from_settings(settings, executor=executor)
    engine = PredictionEngine(
        source,
        settings.get_thresholds(),
        history_size=settings.history_max_size,
        projection_horizon=timedelta(minutes=settings.projection_horizon_minutes),
    )
    scheduler = SamplingScheduler(engine, period_seconds=settings.sample_period_seconds)

    routes.set_source(source)
    routes.set_engine(engine)
    routes.set_scheduler(scheduler)
    app.state.scheduler = scheduler

    await scheduler.start()

    yield

    # 关闭时
    logger.info("应用关闭中...")
    await scheduler.stop()

    routes.set_scheduler(None)
    routes.set_engine(None)
    routes.set_source(None)

    source.close()
    if executor is not None:
        executor.shutdown(wait=False, cancel_futures=True)

    logger.info("应用已关闭")


# 创建 FastAPI 应用
app = FastAPI(
    title="Resource Exhaustion Predictor",
    description="进程资源耗尽预测服务",
    lifespan=lifespan,
)

app.include_router(routes.router)


@app.get("/api/status")
async def get_status() -> dict[str, bool | int | float | str | None]:
    """获取调度器状态"""
    return app.state.scheduler.get_status()


if __name__ == "__main__":
    import uvicorn

    settings = get_settings()
    uvicorn.run(app, host=settings.server_host, port=settings.server_port)
