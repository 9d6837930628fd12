"""
请求限流
基于 limits 的固定窗口计数，单进程内存存储，按 key（通常是客户端 IP）计数。
过期的 key 由 MemoryStorage 自行清理。
"""

import math
import time

from limits import RateLimitItemPerSecond
from limits.storage import MemoryStorage
from limits.strategies import FixedWindowRateLimiter

from .exceptions import RateLimitError


class RequestRateLimiter:
    """每个 key 在 window_seconds 内最多 limit 次"""

    def __init__(self, limit: int, window_seconds: int, namespace: str = "track"):
        self.limit = limit
        self.window_seconds = window_seconds
        self._item = RateLimitItemPerSecond(limit, window_seconds, namespace=namespace)
        self._storage = MemoryStorage()
        self._limiter = FixedWindowRateLimiter(self._storage)

    def allow(self, key: str) -> bool:
        return self._limiter.hit(self._item, key)

    def retry_after(self, key: str) -> int:
        """距当前窗口结束的秒数，向上取整"""
        reset_at, _ = self._limiter.get_window_stats(self._item, key)
        return max(1, math.ceil(reset_at - time.time()))

    def check(self, key: str) -> None:
        """超限时抛出 RateLimitError"""
        if not self.allow(key):
            raise RateLimitError(
                "请求过于频繁，请稍后再试",
                details={
                    "limit": self.limit,
                    "window_seconds": self.window_seconds,
                    "retry_after": self.retry_after(key),
                }
            )

    def tracked_keys(self) -> int:
        """仍在计数中的 key 数量"""
        return len(self._storage.storage)

    def reset(self) -> None:
        self._storage.reset()
