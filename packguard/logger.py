"""
日志模块

日志统一写到 stderr，stdout 只留给命令输出（例如 `packguard info` 的报告）。
"""

import os
import sys
from typing import Optional

from loguru import logger

LOG_FORMAT = "{time:YYYY-MM-DD HH:mm:ss} | {level: <8} | {message}"


def setup_logger(
    level: Optional[str] = None,
    sink=None,
    enqueue: bool = True,
    colorize: bool = True,
) -> None:
    """
    设置日志记录器

    Args:
        level: 日志级别，默认读取 PACKGUARD_DEBUG 环境变量
        sink: 输出目标，默认为调用时的 sys.stderr
        enqueue: 是否启用队列（线程安全）
        colorize: 是否启用颜色
    """
    if level is None:
        level = "DEBUG" if os.environ.get("PACKGUARD_DEBUG", "0") == "1" else "INFO"

    logger.remove()
    logger.add(
        sink=sys.stderr if sink is None else sink,
        format=LOG_FORMAT,
        enqueue=enqueue,
        level=level,
        colorize=colorize,
        backtrace=(level == "DEBUG"),
        diagnose=(level == "DEBUG"),
    )

    if level == "DEBUG":
        logger.debug("DEBUG 模式已启用")


__all__ = ["logger", "setup_logger"]
