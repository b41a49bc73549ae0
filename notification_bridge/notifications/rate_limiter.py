"""
固定窗口速率限制器
"""

import logging
import threading
import time
from dataclasses import dataclass
from typing import Callable, Dict, Any, Optional, Tuple


logger = logging.getLogger(__name__)

RateLimitKey = Tuple[str, str, str]

WINDOW_SECONDS = 3600.0


@dataclass
class RateLimitEntry:
    """单个键的窗口计数"""
    count: int
    window_reset_at: float


class RateLimiter:
    """
    进程内固定窗口计数器，按 (tenant, event_type, channel) 计数。

    同一个键的检查与递增互斥，不同键互不阻塞。状态只存在于进程内存中。
    """

    def __init__(self, window_seconds: float = WINDOW_SECONDS,
                 clock: Callable[[], float] = time.monotonic):
        self.window_seconds = window_seconds
        self._clock = clock
        self._entries: Dict[RateLimitKey, RateLimitEntry] = {}
        self._key_locks: Dict[RateLimitKey, threading.Lock] = {}
        # 只保护 _key_locks 的创建
        self._guard = threading.Lock()
        self._stats = {
            'total_allowed': 0,
            'total_rejected': 0
        }

    def _lock_for(self, key: RateLimitKey) -> threading.Lock:
        lock = self._key_locks.get(key)
        if lock is None:
            with self._guard:
                lock = self._key_locks.setdefault(key, threading.Lock())
        return lock

    def check_and_increment(self, key: RateLimitKey, limit: int) -> bool:
        """
        检查并递增计数

        Args:
            key: 限流键
            limit: 窗口内允许的最大次数

        Returns:
            bool: 是否允许本次发送
        """
        with self._lock_for(key):
            now = self._clock()
            entry = self._entries.get(key)

            if entry is None or entry.window_reset_at <= now:
                # 新窗口，不补算上一个窗口
                self._entries[key] = RateLimitEntry(count=1, window_reset_at=now + self.window_seconds)
                self._stats['total_allowed'] += 1
                return True

            if entry.count >= limit:
                self._stats['total_rejected'] += 1
                logger.debug(f"速率限制: {key} 已达到 {entry.count}/{limit}")
                return False

            entry.count += 1
            self._stats['total_allowed'] += 1
            return True

    def get_entry(self, key: RateLimitKey) -> Optional[RateLimitEntry]:
        """获取键的当前窗口（测试与诊断使用）"""
        with self._lock_for(key):
            entry = self._entries.get(key)
            if entry is None:
                return None
            return RateLimitEntry(count=entry.count, window_reset_at=entry.window_reset_at)

    def get_stats(self) -> Dict[str, Any]:
        """获取限流统计信息"""
        return {
            **self._stats,
            'tracked_keys': len(self._entries),
            'window_seconds': self.window_seconds
        }

    def reset(self):
        """清空所有计数；键锁保留，正在进行的检查不会与清空交错"""
        with self._guard:
            keys = list(self._key_locks)
        for key in keys:
            with self._lock_for(key):
                self._entries.pop(key, None)
