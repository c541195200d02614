from __future__ import annotations

import itertools
import threading


class SequentialIdGenerator:
    """
    单调递增计数器 ID（确定性，测试与离线脚本使用）：
    next_id("inst_") -> "inst_1", "inst_2", ...

    计数器全局共享一个序列，不同前缀之间也不会复用同一个数字。
    """

    def __init__(self, *, start: int = 1) -> None:
        self._counter = itertools.count(int(start))
        self._lock = threading.Lock()

    def next_id(self, prefix: str = "") -> str:
        with self._lock:
            n = next(self._counter)
        return f"{prefix}{n}"
