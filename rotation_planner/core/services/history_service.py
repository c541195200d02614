# rotation_planner/core/services/history_service.py
from __future__ import annotations

import copy
import logging
from typing import Any, Dict, List

from endaxis_core.event_types import EventType
from endaxis_core.events.payloads import HistoryRestoredPayload, StateCommittedPayload

from rotation_planner.core.context import PlannerContext
from rotation_planner.core.models import ScenarioData

log = logging.getLogger(__name__)


class HistoryService:
    """
    撤销 / 重做：

    - 快照内容：tracks / connections / characterOverrides（JSON 兼容的深拷贝 dict）
    - commit(): 裁掉指针之后的"未来"记录 -> 入栈 -> 超过上限时丢弃最旧一条（指针不前进）
    - undo()/redo(): 越界时静默忽略；恢复后清空选中（选中不属于快照）
    - reset(): 清空栈并以当前状态作为唯一一条记录（加载 / 切换方案后调用）
    """

    def __init__(self, *, ctx: PlannerContext) -> None:
        self._ctx = ctx
        self._stack: List[Dict[str, Any]] = []
        self._index = -1

    # ---------- 只读 ----------

    @property
    def index(self) -> int:
        return self._index

    @property
    def size(self) -> int:
        return len(self._stack)

    @property
    def max_size(self) -> int:
        return max(1, int(self._ctx.config.max_history))

    def can_undo(self) -> bool:
        return self._index > 0

    def can_redo(self) -> bool:
        return self._index < len(self._stack) - 1

    # ---------- 写 ----------

    def _take_snapshot(self) -> Dict[str, Any]:
        ctx = self._ctx
        return copy.deepcopy(
            {
                "tracks": [t.to_dict() for t in ctx.tracks],
                "connections": [c.to_dict() for c in ctx.connections],
                "characterOverrides": ctx.character_overrides,
            }
        )

    def commit(self, reason: str = "") -> None:
        # 1. 裁剪掉指针之后的"未来"记录
        if self._index < len(self._stack) - 1:
            del self._stack[self._index + 1:]

        # 2. 入栈
        self._stack.append(self._take_snapshot())

        # 3. 维护最大长度：溢出时淘汰最旧一条，指针保持指向栈顶
        if len(self._stack) > self.max_size:
            del self._stack[0]
        else:
            self._index += 1

        log.debug("history commit: reason=%s index=%d size=%d", reason or "-", self._index, len(self._stack))
        self._ctx.bus.post_payload(
            EventType.STATE_COMMITTED,
            StateCommittedPayload(reason=reason, history_index=self._index, history_size=len(self._stack)),
        )

    def reset(self, reason: str = "reset") -> None:
        self._stack = []
        self._index = -1
        self.commit(reason)

    def undo(self) -> bool:
        if self._index <= 0:
            return False
        self._index -= 1
        self._restore("undo")
        return True

    def redo(self) -> bool:
        if self._index >= len(self._stack) - 1:
            return False
        self._index += 1
        self._restore("redo")
        return True

    def _restore(self, direction: str) -> None:
        ctx = self._ctx
        ctx.load_data(ScenarioData.from_dict(self._stack[self._index]))
        ctx.selection.clear()
        ctx.linking.clear()

        ctx.bus.post_payload(
            EventType.HISTORY_RESTORED,
            HistoryRestoredPayload(direction=direction, history_index=self._index, history_size=len(self._stack)),
        )
        ctx.publish_selection()
