"""
进度上报

回调在执行下载的同一个任务中同步调用，实现不能阻塞。
"""

from typing import Optional

from loguru import logger


class ProgressReporter:
    """进度接收器基类（默认不做任何事）"""

    def setup(self, label: str, total: Optional[int] = None) -> None:
        pass

    def status(self, label: str) -> None:
        pass

    def progress(self, current: int) -> None:
        pass

    def done(self) -> None:
        pass


class LoggerProgress(ProgressReporter):
    """把进度写入日志"""

    def __init__(self):
        self._label = ""
        self._total: Optional[int] = None

    def setup(self, label: str, total: Optional[int] = None) -> None:
        self._label = label
        self._total = total
        logger.info(f"[进度] {label}")

    def status(self, label: str) -> None:
        self._label = label
        logger.info(f"[进度] {label}")

    def progress(self, current: int) -> None:
        if self._total:
            logger.info(f"[进度] {self._label}: {current}/{self._total}")
        else:
            logger.debug(f"[进度] {self._label}: {current}")

    def done(self) -> None:
        logger.debug(f"[进度] {self._label} 结束")
        self._label = ""
        self._total = None
