"""日志管理模块.

控制台输出简单文本,文件输出JSON.采样调度器的日志通过 extra
携带 prediction_level / risk_score,JSON记录中作为独立字段输出,
便于按预测等级检索.
"""

import logging
import sys
from logging.handlers import RotatingFileHandler
from typing import Any

from pythonjsonlogger.json import JsonFormatter

from config.settings import Settings, get_settings

# 预测上下文字段,由调用方通过 extra 传入
PREDICTION_FIELDS = ("prediction_level", "risk_score")

_CONSOLE_FORMAT = "%(asctime)s - %(name)s - %(levelname)s - %(message)s"
_JSON_FORMAT = "%(timestamp)s %(level)s %(logger)s %(module)s %(function)s %(message)s"


class PredictionJsonFormatter(JsonFormatter):
    """JSON日志格式化器,附带预测等级与风险分."""

    def add_fields(
        self,
        log_record: dict[str, Any],
        record: logging.LogRecord,
        message_dict: dict[str, Any],
    ) -> None:
        super().add_fields(log_record, record, message_dict)
        log_record["level"] = record.levelname
        log_record["logger"] = record.name
        log_record["module"] = record.module
        log_record["function"] = record.funcName

        level = getattr(record, "prediction_level", None)
        if level is not None:
            log_record["prediction_level"] = str(level)
        risk_score = getattr(record, "risk_score", None)
        if risk_score is not None:
            log_record["risk_score"] = round(float(risk_score), 2)


def prediction_context(level: object, risk_score: float) -> dict[str, Any]:
    """构建日志 extra,用于在JSON记录中携带预测上下文.

    Args:
        level: 预测等级
        risk_score: 风险分

    Returns:
        可直接传给 logger 的 extra 字典
    """
    return {"prediction_level": str(level), "risk_score": risk_score}


def setup_logging(settings: Settings | None = None) -> None:
    """配置日志系统.

    Args:
        settings: 配置对象,默认使用全局配置
    """
    settings = settings or get_settings()

    root_logger = logging.getLogger()
    root_logger.setLevel(settings.log_level)

    # 重复调用时关闭旧处理器,避免文件句柄泄漏
    for handler in list(root_logger.handlers):
        root_logger.removeHandler(handler)
        handler.close()

    console_handler = logging.StreamHandler(sys.stdout)
    console_handler.setLevel(settings.log_level)
    console_handler.setFormatter(logging.Formatter(_CONSOLE_FORMAT, datefmt="%Y-%m-%d %H:%M:%S"))
    root_logger.addHandler(console_handler)

    file_handler = RotatingFileHandler(
        settings.get_log_path(),
        maxBytes=settings.log_max_bytes,
        backupCount=settings.log_backup_count,
        encoding="utf-8",
    )
    file_handler.setLevel(settings.log_level)
    file_handler.setFormatter(PredictionJsonFormatter(_JSON_FORMAT, timestamp=True))
    root_logger.addHandler(file_handler)

    # 第三方库日志级别
    logging.getLogger("uvicorn").setLevel(logging.INFO)
    logging.getLogger("fastapi").setLevel(logging.INFO)


def get_logger(name: str) -> logging.Logger:
    """获取指定名称的日志记录器.

    Args:
        name: 日志记录器名称,通常使用 __name__

    Returns:
        日志记录器实例
    """
    return logging.getLogger(name)
