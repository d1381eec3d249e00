"""工具模块."""

from utils.logger import get_logger, setup_logging

__all__ = ["get_logger", "setup_logging"]
