# rotation_planner/core/services/timeline_edit_service.py
from __future__ import annotations

import logging
from typing import Any, Dict, Optional, Set, Tuple

from rotation_planner.core.context import PlannerContext
from rotation_planner.core.models import ActionInstance, Connection, Track
from .history_service import HistoryService

log = logging.getLogger(__name__)

ALIGN_MODES = ("before", "after", "align-start", "align-end")


class TimelineEditService:
    """
    轨道 / 动作 / 连线的增删改（实体存储命令）。

    约定：
    - 每个成功修改持久数据的命令末尾恰好 commit 一次历史；
    - 找不到目标实体时静默返回（False / None / 0），不抛异常、不提交；
    - 策略拒绝（如干员已在别的轨道）发布 WARNING，数据不做任何修改。
    """

    def __init__(self, *, ctx: PlannerContext, history: HistoryService) -> None:
        self._ctx = ctx
        self._history = history

    @property
    def ctx(self) -> PlannerContext:
        return self._ctx

    # ---------- 内部：级联清理 ----------

    def _drop_connections_touching(self, instance_ids: Set[str]) -> int:
        ctx = self._ctx
        before = len(ctx.connections)
        ctx.connections = [
            c for c in ctx.connections if c.from_id not in instance_ids and c.to_id not in instance_ids
        ]
        removed = before - len(ctx.connections)
        if ctx.selection.selected_connection_id and ctx.find_connection(ctx.selection.selected_connection_id) is None:
            ctx.selection.selected_connection_id = None
        return removed

    def _clear_track_actions(self, track: Track) -> int:
        ids = {a.instance_id for a in track.actions}
        track.actions = []
        for iid in ids:
            self._ctx.selection.discard_action(iid)
        return self._drop_connections_touching(ids)

    # ---------- 动作：新增 ----------

    def add_skill_to_track(self, track_id: str, skill: ActionInstance, start_time: float) -> Optional[ActionInstance]:
        """
        把技能模板放到指定干员的轨道上：
        - 克隆模板（含效果网格深拷贝），分配新的 instanceId 与全新的效果 ID；
        - 插入后按 startTime 重新排序。
        """
        ctx = self._ctx
        track = ctx.find_track(track_id)
        if track is None:
            return None

        action = skill.clone()
        action.instance_id = ctx.new_id("inst_")
        action.start_time = max(0.0, float(start_time))
        action.reassign_effect_ids(lambda: ctx.new_id("eff_"))

        track.actions.append(action)
        track.sort_actions()
        self._history.commit("add_action")
        return action

    # ---------- 动作：删除 ----------

    def remove_action(self, instance_id: str) -> bool:
        ctx = self._ctx
        found = ctx.find_action(instance_id)
        if found is None:
            return False

        track_index, action = found
        ctx.tracks[track_index].actions.remove(action)
        self._drop_connections_touching({instance_id})
        ctx.selection.discard_action(instance_id)

        self._history.commit("remove_action")
        ctx.publish_selection()
        return True

    def remove_current_selection(self) -> Tuple[int, int]:
        """
        批量删除当前选中的动作与连线。

        返回 (删除的动作数, 删除的连线数)；连线数包含级联删除的部分。
        """
        ctx = self._ctx
        targets = ctx.selection.action_targets()
        conn_id = ctx.selection.selected_connection_id

        removed_actions = 0
        for track in ctx.tracks:
            before = len(track.actions)
            track.actions = [a for a in track.actions if a.instance_id not in targets]
            removed_actions += before - len(track.actions)

        removed_conns = 0
        if conn_id and ctx.find_connection(conn_id) is not None:
            ctx.connections = [c for c in ctx.connections if c.id != conn_id]
            removed_conns += 1
        removed_conns += self._drop_connections_touching(targets)

        if removed_actions == 0 and removed_conns == 0:
            return 0, 0

        ctx.selection.clear()
        self._history.commit("remove_selection")
        ctx.publish_selection()
        return removed_actions, removed_conns

    # ---------- 动作：修改 ----------

    def update_action(self, instance_id: str, props: Dict[str, Any]) -> bool:
        ctx = self._ctx
        found = ctx.find_action(instance_id)
        if found is None:
            return False
        track_index, action = found
        action.apply_patch(props, new_effect_id=lambda: ctx.new_id("eff_"))
        if "startTime" in props:
            ctx.tracks[track_index].sort_actions()
        if "physicalAnomaly" in props:
            ctx.drop_dangling_effect_links(action)
        self._history.commit("update_action")
        return True

    def move_action(self, instance_id: str, start_time: float) -> bool:
        return self.update_action(instance_id, {"startTime": max(0.0, float(start_time))})

    def nudge_selection(self, delta: float) -> int:
        """
        选中动作整体平移 delta 秒（startTime 不小于 0），返回实际移动的动作数。
        """
        ctx = self._ctx
        targets = ctx.selection.action_targets()
        if not targets or not delta:
            return 0

        moved = 0
        touched: Set[int] = set()
        for i, track in enumerate(ctx.tracks):
            for a in track.actions:
                if a.instance_id in targets:
                    a.start_time = max(0.0, a.start_time + float(delta))
                    moved += 1
                    touched.add(i)
        if moved == 0:
            return 0

        for i in touched:
            ctx.tracks[i].sort_actions()
        self._history.commit("nudge_selection")
        return moved

    def align_selection(self, target_instance_id: str, mode: str) -> bool:
        """
        以 target 为基准对齐主选中动作：

        - before     : 结束时间 = target.start - triggerWindow
        - after      : 开始时间 = target.end + triggerWindow
        - align-start: 开始时间 = target.start
        - align-end  : 结束时间 = target.end

        triggerWindow 取被移动动作自身的值；结果保留 1 位小数，且不小于 0。
        """
        ctx = self._ctx
        m = (mode or "").strip().lower()
        if m not in ALIGN_MODES:
            return False

        src_id = ctx.selection.selected_action_id
        if not src_id or src_id == target_instance_id:
            return False
        src = ctx.find_action(src_id)
        dst = ctx.find_action(target_instance_id)
        if src is None or dst is None:
            return False

        track_index, action = src
        target = dst[1]
        tw = action.trigger_window

        if m == "before":
            new_start = target.start_time - tw - action.duration
        elif m == "after":
            new_start = target.end_time + tw
        elif m == "align-start":
            new_start = target.start_time
        else:
            new_start = target.end_time - action.duration

        action.start_time = max(0.0, round(new_start, 1))
        ctx.tracks[track_index].sort_actions()
        self._history.commit(f"align_{m}")
        return True

    # ---------- 效果格子 ----------

    def remove_effect(self, instance_id: str, row: int, col: int) -> bool:
        """
        删除动作内的一个效果格子，并级联删除锚定在它上面的连线。
        行被删空时移除该行。
        """
        ctx = self._ctx
        found = ctx.find_action(instance_id)
        if found is None:
            return False
        action = found[1]
        cell = action.effect_at(row, col)
        if cell is None:
            return False

        del action.physical_anomaly[row][col]
        row_removed = not action.physical_anomaly[row]
        if row_removed:
            del action.physical_anomaly[row]

        kept = []
        for c in ctx.connections:
            if (cell.id and c.anchored_to_effect(instance_id, cell.id)) or c.anchored_to_index(instance_id, (row, col)):
                continue
            c.shift_effect_indexes(instance_id, row, col, row_removed=row_removed)
            kept.append(c)
        ctx.connections = kept
        if ctx.selection.selected_connection_id and ctx.find_connection(ctx.selection.selected_connection_id) is None:
            ctx.selection.selected_connection_id = None
        sel_eff = ctx.selection.selected_effect
        if sel_eff is not None and sel_eff.instance_id == instance_id:
            ctx.selection.selected_effect = None

        self._history.commit("remove_effect")
        return True

    # ---------- 连线 ----------

    def remove_connection(self, conn_id: str) -> bool:
        ctx = self._ctx
        if ctx.find_connection(conn_id) is None:
            return False
        ctx.connections = [c for c in ctx.connections if c.id != conn_id]
        if ctx.selection.selected_connection_id == conn_id:
            ctx.selection.selected_connection_id = None
        self._history.commit("remove_connection")
        return True

    def update_connection(self, conn_id: str, props: Dict[str, Any]) -> bool:
        """
        目前只允许修改 isConsumption；端点由连线流程维护。
        """
        conn: Optional[Connection] = self._ctx.find_connection(conn_id)
        if conn is None or "isConsumption" not in props:
            return False
        conn.is_consumption = bool(props["isConsumption"])
        self._history.commit("update_connection")
        return True

    # ---------- 轨道 ----------

    def change_track_operator(self, track_index: int, new_operator_id: Optional[str]) -> bool:
        """
        更换轨道干员：目标干员已在其他轨道上时拒绝并提示；
        成功时清空该轨道动作（级联删除连线）。
        """
        ctx = self._ctx
        track = ctx.track_at(track_index)
        if track is None:
            return False

        new_id = (new_operator_id or "").strip() or None
        if new_id is not None and any(
            i != track_index and t.id == new_id for i, t in enumerate(ctx.tracks)
        ):
            ctx.warn("该干员已在另一条轨道上！", code="track.operator.duplicate")
            return False

        old_id = track.id
        track.id = new_id
        self._clear_track_actions(track)
        if ctx.active_track_id == old_id:
            ctx.active_track_id = new_id

        self._history.commit("change_track_operator")
        ctx.publish_selection()
        return True

    def clear_track(self, track_index: int) -> bool:
        ctx = self._ctx
        track = ctx.track_at(track_index)
        if track is None:
            return False
        self._clear_track_actions(track)
        self._history.commit("clear_track")
        ctx.publish_selection()
        return True

    def update_track_initial_gauge(self, track_id: str, value: float) -> bool:
        track = self._ctx.find_track(track_id)
        if track is None:
            return False
        track.initial_gauge = max(0.0, float(value))
        self._history.commit("update_track_initial_gauge")
        return True

    def update_track_max_gauge(self, track_id: str, value: Optional[float]) -> bool:
        """
        value 为 None / <=0 表示取消覆盖（回退到终结技数据）。
        """
        track = self._ctx.find_track(track_id)
        if track is None:
            return False
        track.max_gauge_override = float(value) if value is not None and float(value) > 0 else None
        self._history.commit("update_track_max_gauge")
        return True
