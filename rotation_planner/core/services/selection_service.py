# rotation_planner/core/services/selection_service.py
from __future__ import annotations

import copy
import logging
from typing import Dict, Iterable, List, Optional

from rotation_planner.core.context import (
    Clipboard,
    ClipboardItem,
    EffectAnchor,
    EffectRef,
    PlannerContext,
)
from rotation_planner.core.models import ActionInstance, Connection
from .history_service import HistoryService

log = logging.getLogger(__name__)


class SelectionService:
    """
    选中 / 剪贴板。

    选中状态不进入历史；只有 paste_selection() 会修改持久数据（并提交一次历史）。
    """

    def __init__(self, *, ctx: PlannerContext, history: HistoryService) -> None:
        self._ctx = ctx
        self._history = history

    # ---------- 选中 ----------

    def select_action(self, instance_id: Optional[str]) -> Optional[str]:
        """
        点选动作（再次点选同一动作即取消）。返回新的主选中 ID。
        """
        sel = self._ctx.selection
        target = instance_id if instance_id and instance_id != sel.selected_action_id else None
        if target is not None and self._ctx.find_action(target) is None:
            return sel.selected_action_id

        sel.clear()
        if target is not None:
            sel.selected_action_id = target
            sel.multi_selected_ids = {target}
        self._ctx.publish_selection()
        return target

    def set_multi_selection(self, instance_ids: Iterable[str]) -> None:
        """
        框选：恰好一个时同时成为主选中，否则主选中为空。
        """
        ids = [i for i in instance_ids if self._ctx.find_action(i) is not None]
        sel = self._ctx.selection
        sel.clear()
        sel.multi_selected_ids = set(ids)
        sel.selected_action_id = ids[0] if len(ids) == 1 else None
        self._ctx.publish_selection()

    def select_connection(self, conn_id: Optional[str]) -> bool:
        if conn_id and self._ctx.find_connection(conn_id) is None:
            return False
        sel = self._ctx.selection
        sel.clear()
        sel.selected_connection_id = conn_id or None
        self._ctx.publish_selection()
        return True

    def select_effect(self, instance_id: str, anchor: EffectAnchor) -> bool:
        """
        选中效果格子：其所属动作同时成为主选中。
        """
        found = self._ctx.find_action(instance_id)
        if found is None or found[1].effect_at(anchor.row, anchor.col) is None:
            return False
        sel = self._ctx.selection
        sel.clear()
        sel.selected_action_id = instance_id
        sel.multi_selected_ids = {instance_id}
        sel.selected_effect = EffectRef(instance_id=instance_id, anchor=anchor)
        self._ctx.publish_selection()
        return True

    def clear_selection(self) -> None:
        self._ctx.selection.clear()
        self._ctx.publish_selection()

    def select_track(self, operator_id: Optional[str]) -> None:
        """
        切换当前轨道（决定技能库显示哪个干员），同时取消连线与选中。
        """
        ctx = self._ctx
        ctx.active_track_id = operator_id or None
        if ctx.linking.active:
            ctx.linking.clear()
            ctx.publish_linking()
        self.clear_selection()

    def set_cursor_time(self, t: Optional[float]) -> None:
        self._ctx.cursor_time = None if t is None else max(0.0, float(t))

    # ---------- 剪贴板 ----------

    def copy_selection(self) -> int:
        """
        复制选中动作（记录所在轨道下标）以及两端都在选中集合内的连线。
        返回复制的动作数；无选中时剪贴板保持不变。
        """
        ctx = self._ctx
        targets = ctx.selection.action_targets()
        if not targets:
            return 0

        items: List[ClipboardItem] = []
        for i, track in enumerate(ctx.tracks):
            for a in track.actions:
                if a.instance_id in targets:
                    items.append(ClipboardItem(track_index=i, data=a.to_dict()))
        if not items:
            return 0

        conns = [c.to_dict() for c in ctx.connections if c.from_id in targets and c.to_id in targets]
        base_time = min(float(it.data["startTime"]) for it in items)
        ctx.clipboard = Clipboard(actions=items, connections=conns, base_time=base_time)
        log.debug("copied %d actions, %d connections (base=%.2f)", len(items), len(conns), base_time)
        return len(items)

    def paste_selection(self, cursor_time: Optional[float] = None) -> List[str]:
        """
        粘贴剪贴板：

        - 偏移 = 光标时间 - 剪贴板基准时间；没有光标时间时用默认偏移（+2s）
        - 每个动作分配新 instanceId 与新效果 ID，放回原轨道下标（轨道不存在则跳过）
        - 连线端点与效果锚点经 旧->新 映射重写；任一端不在映射内的连线丢弃
        - 新动作成为多选；提交一次历史

        返回新建动作的 instanceId 列表。
        """
        ctx = self._ctx
        clip = ctx.clipboard
        if clip is None or not clip.actions:
            return []

        t = cursor_time if cursor_time is not None else ctx.cursor_time
        delta = (float(t) - clip.base_time) if t is not None else float(ctx.config.paste_default_offset)

        id_map: Dict[str, str] = {}
        effect_maps: Dict[str, Dict[str, str]] = {}
        touched = set()

        for item in clip.actions:
            track = ctx.track_at(item.track_index)
            if track is None:
                continue
            action = ActionInstance.from_dict(copy.deepcopy(item.data))
            old_id = action.instance_id
            action.instance_id = ctx.new_id("inst_")
            action.start_time = max(0.0, action.start_time + delta)
            effect_maps[old_id] = action.reassign_effect_ids(lambda: ctx.new_id("eff_"))
            id_map[old_id] = action.instance_id

            track.actions.append(action)
            touched.add(item.track_index)

        if not id_map:
            return []

        for raw in clip.connections:
            conn = Connection.from_dict(raw)
            new_from = id_map.get(conn.from_id)
            new_to = id_map.get(conn.to_id)
            if not new_from or not new_to:
                continue
            if conn.from_effect_id:
                conn.from_effect_id = effect_maps.get(conn.from_id, {}).get(conn.from_effect_id)
            if conn.to_effect_id:
                conn.to_effect_id = effect_maps.get(conn.to_id, {}).get(conn.to_effect_id)
            conn.id = ctx.new_id("conn_")
            conn.from_id = new_from
            conn.to_id = new_to
            ctx.connections.append(conn)

        for i in touched:
            ctx.tracks[i].sort_actions()

        new_ids = list(id_map.values())
        sel = ctx.selection
        sel.clear()
        sel.multi_selected_ids = set(new_ids)
        sel.selected_action_id = new_ids[0] if len(new_ids) == 1 else None

        self._history.commit("paste_selection")
        ctx.publish_selection()
        return new_ids
