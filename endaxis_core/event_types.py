# File: endaxis_core/event_types.py
from __future__ import annotations

from enum import Enum


class EventType(str, Enum):
    """
    规划器事件：
    - STATE_COMMITTED  : 一次命令完成并提交了历史快照（自动保存的触发源）
    - HISTORY_RESTORED : 撤销 / 重做恢复了快照
    - SELECTION_CHANGED / LINKING_CHANGED : 仅交互状态变化，不入历史
    - SCENARIO_CHANGED : 方案列表或当前方案变化
    - PROJECT_LOADED   : 导入 / 启动恢复完成
    - WARNING          : 面向用户的策略拒绝提示
    """

    ANY = "*"

    STATE_COMMITTED = "STATE_COMMITTED"
    HISTORY_RESTORED = "HISTORY_RESTORED"

    SELECTION_CHANGED = "SELECTION_CHANGED"
    LINKING_CHANGED = "LINKING_CHANGED"

    SCENARIO_CHANGED = "SCENARIO_CHANGED"
    PROJECT_LOADED = "PROJECT_LOADED"

    WARNING = "WARNING"

    def __str__(self) -> str:
        return self.value


def as_event_type(t: "EventType | str") -> EventType:
    if isinstance(t, EventType):
        return t

    s = (t or "").strip()
    if s == "*":
        return EventType.ANY

    try:
        return EventType(s)
    except ValueError as e:
        raise ValueError(f"Unknown event type: {t!r}") from e


# 会改变持久化数据的事件（自动保存关心这些）
PERSISTENT_EVENT_TYPES = frozenset(
    {
        EventType.STATE_COMMITTED,
        EventType.HISTORY_RESTORED,
        EventType.SCENARIO_CHANGED,
        EventType.PROJECT_LOADED,
    }
)
