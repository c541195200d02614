from __future__ import annotations

from typing import Protocol

from .snowflake import SnowflakeGenerator
from .sequential import SequentialIdGenerator


class IdProvider(Protocol):
    """
    ID 提供者接口：next_id(prefix) 返回进程内唯一、不复用的字符串 ID。
    """

    def next_id(self, prefix: str = "") -> str: ...


__all__ = ["IdProvider", "SnowflakeGenerator", "SequentialIdGenerator"]
