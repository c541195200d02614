# rotation_planner/core/services/linking_service.py
from __future__ import annotations

import logging
from typing import Optional, Tuple

from rotation_planner.core.context import EffectAnchor, PlannerContext
from rotation_planner.core.models import ActionInstance, Connection
from .history_service import HistoryService

log = logging.getLogger(__name__)


def _index(anchor: Optional[EffectAnchor]) -> Optional[Tuple[int, int]]:
    return None if anchor is None else (anchor.row, anchor.col)


def _same_endpoint(
    conn_eid: Optional[str],
    conn_idx: Optional[Tuple[int, int]],
    eid: Optional[str],
    idx: Optional[Tuple[int, int]],
) -> bool:
    if idx is None:
        return conn_eid is None and conn_idx is None
    # 两边都有稳定 ID 时以 ID 为准，否则退回位置比较
    if conn_eid and eid:
        return conn_eid == eid
    return conn_idx == idx


class LinkingService:
    """
    连线会话：空闲 <-> 连线中(source_id, source_anchor)。

    - start_linking()  : 需要有主选中动作；同一来源 + 同一锚点再次调用即取消
    - confirm_linking(): 校验、懒分配效果 ID、去重、追加连线并提交历史；无论成功与否都结束会话
    - cancel_linking() : 仅清空会话
    """

    def __init__(self, *, ctx: PlannerContext, history: HistoryService) -> None:
        self._ctx = ctx
        self._history = history

    @property
    def active(self) -> bool:
        return self._ctx.linking.active

    def start_linking(self, effect_anchor: Optional[EffectAnchor] = None) -> bool:
        ctx = self._ctx
        src = ctx.selection.selected_action_id
        if not src:
            return False

        session = ctx.linking
        if session.active and session.source_id == src and session.source_anchor == effect_anchor:
            self.cancel_linking()
            return False

        session.source_id = src
        session.source_anchor = effect_anchor
        ctx.publish_linking()
        return True

    def cancel_linking(self) -> None:
        self._ctx.linking.clear()
        self._ctx.publish_linking()

    def _effect_cell_ok(self, action: ActionInstance, anchor: Optional[EffectAnchor]) -> bool:
        return anchor is None or action.effect_at(anchor.row, anchor.col) is not None

    def _current_effect_id(self, action: ActionInstance, anchor: Optional[EffectAnchor]) -> Optional[str]:
        if anchor is None:
            return None
        cell = action.effect_at(anchor.row, anchor.col)
        return cell.id if cell is not None else None

    def confirm_linking(
        self,
        target_id: str,
        target_anchor: Optional[EffectAnchor] = None,
        *,
        is_consumption: bool = False,
    ) -> Optional[Connection]:
        """
        以当前会话为起点连到 target。返回新建的连线；被拒绝 / 重复时返回 None。
        """
        ctx = self._ctx
        session = ctx.linking
        if not session.active:
            self.cancel_linking()
            return None

        src_id = session.source_id or ""
        src_anchor = session.source_anchor

        # 同一动作、同一粒度：拒绝
        if src_id == target_id and src_anchor == target_anchor:
            log.debug("self link rejected: %s anchor=%s", src_id, src_anchor)
            self.cancel_linking()
            return None

        src = ctx.find_action(src_id)
        dst = ctx.find_action(target_id)
        if src is None or dst is None:
            self.cancel_linking()
            return None
        src_action, dst_action = src[1], dst[1]
        if not self._effect_cell_ok(src_action, src_anchor) or not self._effect_cell_ok(dst_action, target_anchor):
            self.cancel_linking()
            return None

        src_idx, dst_idx = _index(src_anchor), _index(target_anchor)
        src_eid = self._current_effect_id(src_action, src_anchor)
        dst_eid = self._current_effect_id(dst_action, target_anchor)

        for c in ctx.connections:
            if c.from_id != src_id or c.to_id != target_id:
                continue
            if _same_endpoint(c.from_effect_id, c.from_effect_index, src_eid, src_idx) and _same_endpoint(
                c.to_effect_id, c.to_effect_index, dst_eid, dst_idx
            ):
                log.debug("duplicate link ignored: %s", c.id)
                self.cancel_linking()
                return None

        # 只有真正新建连线时才给效果格子分配稳定 ID
        def new_eff() -> str:
            return ctx.new_id("eff_")

        if src_anchor is not None:
            src_eid = src_action.ensure_effect_id(src_anchor.row, src_anchor.col, new_eff)
        if target_anchor is not None:
            dst_eid = dst_action.ensure_effect_id(target_anchor.row, target_anchor.col, new_eff)

        conn = Connection(
            id=ctx.new_id("conn_"),
            from_id=src_id,
            to_id=target_id,
            from_effect_id=src_eid,
            to_effect_id=dst_eid,
            from_effect_index=src_idx,
            to_effect_index=dst_idx,
            is_consumption=bool(is_consumption),
        )
        ctx.connections.append(conn)
        self._history.commit("confirm_linking")
        self.cancel_linking()
        return conn
