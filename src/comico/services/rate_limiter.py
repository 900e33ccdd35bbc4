"""
固定间隔限流器
"""
import threading
import time
from typing import Callable, Optional


class IntervalRateLimiter:
    """
    固定间隔闸门

    mark() 记录一次调用完成的时刻，wait() 阻塞到距上次 mark 满 min_interval 秒。
    从未 mark 过时 wait() 立即返回，所以第一次调用和最后一次调用之后都不会多等。
    """

    def __init__(
        self,
        min_interval: float,
        clock: Callable[[], float] = time.monotonic,
        sleep: Callable[[float], None] = time.sleep,
    ):
        if min_interval < 0:
            raise ValueError("min_interval 不能为负数")
        self.min_interval = min_interval
        self._clock = clock
        self._sleep = sleep
        self._last_mark: Optional[float] = None
        self._lock = threading.Lock()

    def wait(self) -> float:
        """阻塞直到允许下一次调用，返回实际等待秒数"""
        with self._lock:
            if self._last_mark is None:
                return 0.0
            remaining = self.min_interval - (self._clock() - self._last_mark)
        if remaining > 0:
            self._sleep(remaining)
            return remaining
        return 0.0

    def mark(self) -> None:
        with self._lock:
            self._last_mark = self._clock()

    def reset(self) -> None:
        with self._lock:
            self._last_mark = None
