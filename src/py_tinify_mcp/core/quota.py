"""压缩配额计数模块。

进程内唯一的共享可变状态：服务端报告的本周期已用压缩次数。
"""

import threading
from collections.abc import Callable, Mapping

from ..utils.logging_helpers import get_logger


logger = get_logger()

COMPRESSION_COUNT_HEADER = "compression-count"

QuotaListener = Callable[[int], None]


class QuotaTracker:
    """配额计数器

    写入在锁内串行执行，后写者覆盖先写者；服务端每次返回的都是权威的当前值，
    因此不做累加。
    """

    def __init__(self, initial: int = 0):
        self._count = initial
        self._lock = threading.Lock()
        self._listeners: list[QuotaListener] = []

    @property
    def count(self) -> int:
        with self._lock:
            return self._count

    def update(self, count: int) -> None:
        """用服务端报告的值覆盖当前计数，并通知订阅者"""
        with self._lock:
            self._count = count
            listeners = list(self._listeners)
        logger.debug(f"压缩计数更新为 {count}")
        for listener in listeners:
            listener(count)

    def update_from_headers(self, headers: Mapping[str, str]) -> int | None:
        """从响应头中解析 ``compression-count`` 并更新

        Returns:
            int | None: 解析到的计数，头不存在或不是整数时为 None
        """
        raw = headers.get(COMPRESSION_COUNT_HEADER)
        if raw is None:
            return None
        try:
            count = int(str(raw).strip())
        except ValueError:
            logger.debug(f"忽略无法解析的 {COMPRESSION_COUNT_HEADER}: {raw!r}")
            return None
        self.update(count)
        return count

    def subscribe(self, listener: QuotaListener) -> Callable[[], None]:
        """订阅计数变化，返回取消订阅的函数"""
        with self._lock:
            self._listeners.append(listener)

        def unsubscribe() -> None:
            with self._lock:
                if listener in self._listeners:
                    self._listeners.remove(listener)

        return unsubscribe


# 全局配额计数实例
quota_tracker = QuotaTracker()


def get_quota_tracker() -> QuotaTracker:
    """获取全局配额计数实例"""
    return quota_tracker


def reset_quota_tracker():
    """重置配额计数（主要用于测试）"""
    global quota_tracker
    quota_tracker = QuotaTracker()
