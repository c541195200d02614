from __future__ import annotations

import threading
import time
from dataclasses import dataclass
from typing import Final


def _now_ms() -> int:
    return time.time_ns() // 1_000_000


@dataclass(frozen=True)
class SnowflakeLayout:
    """
    A classic Snowflake-style layout:
      - timestamp: 41 bits (ms since custom epoch)
      - worker_id: 10 bits
      - sequence:  12 bits
    """
    timestamp_bits: int = 41
    worker_bits: int = 10
    sequence_bits: int = 12

    @property
    def max_worker_id(self) -> int:
        return (1 << self.worker_bits) - 1

    @property
    def max_sequence(self) -> int:
        return (1 << self.sequence_bits) - 1

    @property
    def worker_shift(self) -> int:
        return self.sequence_bits

    @property
    def timestamp_shift(self) -> int:
        return self.worker_bits + self.sequence_bits


class SnowflakeGenerator:
    """
    Thread-safe Snowflake ID provider（实例 / 效果 / 连线 / 方案共用）。

    - next_id(prefix) 返回 prefix + base36(snowflake)，例如 "inst_2k9x0b7q1s"；
      base36 让 ID 保持短小，便于分享码压缩。
    - 时钟回拨时夹到上次时间戳，保证进程内单调、不重复。
    """

    _layout: Final[SnowflakeLayout] = SnowflakeLayout()

    def __init__(self, *, worker_id: int = 0, epoch_ms: int = 1735689600000) -> None:
        """
        epoch_ms default: 2025-01-01T00:00:00Z in milliseconds.
        """
        if worker_id < 0 or worker_id > self._layout.max_worker_id:
            raise ValueError(f"worker_id must be in [0, {self._layout.max_worker_id}]")

        self._worker_id = worker_id
        self._epoch_ms = epoch_ms

        self._lock = threading.Lock()
        self._last_ts = -1
        self._sequence = 0

    @property
    def worker_id(self) -> int:
        return self._worker_id

    def next_int(self) -> int:
        with self._lock:
            ts = max(_now_ms(), self._last_ts)

            if ts == self._last_ts:
                self._sequence = (self._sequence + 1) & self._layout.max_sequence
                if self._sequence == 0:
                    ts = self._wait_next_ms(self._last_ts)
            else:
                self._sequence = 0

            self._last_ts = ts
            elapsed = max(0, ts - self._epoch_ms)

            return (
                (elapsed << self._layout.timestamp_shift)
                | (self._worker_id << self._layout.worker_shift)
                | self._sequence
            )

    def next_id(self, prefix: str = "") -> str:
        return f"{prefix}{_to_base36(self.next_int())}"

    def _wait_next_ms(self, last_ts: int) -> int:
        ts = _now_ms()
        while ts <= last_ts:
            time.sleep(0.0001)
            ts = _now_ms()
        return ts


_DIGITS = "0123456789abcdefghijklmnopqrstuvwxyz"


def _to_base36(n: int) -> str:
    if n == 0:
        return "0"
    out = []
    while n:
        n, r = divmod(n, 36)
        out.append(_DIGITS[r])
    return "".join(reversed(out))
