"""核心模块."""

from core.engine import Clock, MetricsSource, PredictionEngine, SystemClock
from core.history import HistoryWindow, project_metrics
from core.models import MetricsSnapshot, Prediction, PredictionLevel
from core.monitor import GcPauseTracker, ProcessMetricsSource
from core.scheduler import LatestPrediction, SamplingScheduler

__all__ = [
    "Clock",
    "GcPauseTracker",
    "HistoryWindow",
    "LatestPrediction",
    "MetricsSnapshot",
    "MetricsSource",
    "Prediction",
    "PredictionEngine",
    "PredictionLevel",
    "ProcessMetricsSource",
    "SamplingScheduler",
    "SystemClock",
    "project_metrics",
]
