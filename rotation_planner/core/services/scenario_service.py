# rotation_planner/core/services/scenario_service.py
from __future__ import annotations

import logging
from typing import List, Optional

from endaxis_core.logging_context import log_context

from rotation_planner.core.context import PlannerContext
from rotation_planner.core.models import ScenarioData, ScenarioEntry
from .history_service import HistoryService

log = logging.getLogger(__name__)

DUPLICATE_SUFFIX = " (副本)"


class ScenarioService:
    """
    多方案管理：同一时刻只有一个激活方案，其数据就是 ctx 上的"活"数据。

    - 切换 / 新增 / 复制 / 删除前，先把活数据写回当前方案条目
    - 之后清空选中与连线会话，并把历史重置为单条记录
    - 数量上限由 PlannerConfig.max_scenarios 决定；至少保留一个方案
    """

    def __init__(self, *, ctx: PlannerContext, history: HistoryService) -> None:
        self._ctx = ctx
        self._history = history

    # ---------- 只读 ----------

    def list_scenarios(self) -> List[ScenarioEntry]:
        return list(self._ctx.scenarios)

    @property
    def active_id(self) -> str:
        return self._ctx.active_scenario_id

    def capture_active(self) -> None:
        """把当前活数据深拷贝回激活方案条目（导出 / 切换前调用）。"""
        entry = self._ctx.find_scenario(self._ctx.active_scenario_id)
        if entry is not None:
            entry.data = self._ctx.capture_data()

    # ---------- 内部 ----------

    def _activate(self, entry: ScenarioEntry, reason: str) -> None:
        ctx = self._ctx
        if entry.data is None:
            entry.data = ScenarioData()
        ctx.load_data(entry.data)
        ctx.active_scenario_id = entry.id

        ctx.selection.clear()
        ctx.linking.clear()
        with log_context(scenario=entry.id):
            self._history.reset(reason)
            log.info("scenario activated: id=%s name=%s reason=%s", entry.id, entry.name, reason)

        ctx.publish_scenarios()
        ctx.publish_selection()
        ctx.publish_linking()

    def _has_room(self) -> bool:
        ctx = self._ctx
        if len(ctx.scenarios) >= int(ctx.config.max_scenarios):
            ctx.warn(f"方案数量已达上限（{ctx.config.max_scenarios}）", code="scenario.limit")
            return False
        return True

    def _next_name(self) -> str:
        taken = {s.name for s in self._ctx.scenarios}
        n = len(self._ctx.scenarios) + 1
        while f"方案 {n}" in taken:
            n += 1
        return f"方案 {n}"

    # ---------- 命令 ----------

    def ensure_initial(self) -> ScenarioEntry:
        """
        保证至少有一个方案且激活指针有效（启动 / 导入后调用，不重置历史）。
        """
        ctx = self._ctx
        if not ctx.scenarios:
            entry = ScenarioEntry(id=ctx.new_id("sc_"), name="方案 1", data=ctx.capture_data())
            ctx.scenarios.append(entry)
            ctx.active_scenario_id = entry.id
            return entry
        entry = ctx.find_scenario(ctx.active_scenario_id)
        if entry is None:
            entry = ctx.scenarios[0]
            ctx.active_scenario_id = entry.id
        return entry

    def switch_scenario(self, target_id: str) -> bool:
        ctx = self._ctx
        if target_id == ctx.active_scenario_id:
            return False
        target = ctx.find_scenario(target_id)
        if target is None:
            return False

        self.capture_active()
        self._activate(target, "switch_scenario")
        return True

    def add_scenario(self, name: Optional[str] = None) -> Optional[ScenarioEntry]:
        ctx = self._ctx
        if not self._has_room():
            return None

        self.capture_active()
        entry = ScenarioEntry(
            id=ctx.new_id("sc_"),
            name=(name or "").strip() or self._next_name(),
            data=ScenarioData(),
        )
        ctx.scenarios.append(entry)
        self._activate(entry, "add_scenario")
        return entry

    def duplicate_scenario(self, source_id: str) -> Optional[ScenarioEntry]:
        ctx = self._ctx
        src = ctx.find_scenario(source_id)
        if src is None:
            return None
        if not self._has_room():
            return None

        self.capture_active()
        data = src.data if src.data is not None else ScenarioData()
        entry = ScenarioEntry(
            id=ctx.new_id("sc_"),
            name=f"{src.name}{DUPLICATE_SUFFIX}",
            data=ScenarioData.from_dict(data.to_dict()),
        )
        idx = ctx.scenarios.index(src)
        ctx.scenarios.insert(idx + 1, entry)
        self._activate(entry, "duplicate_scenario")
        return entry

    def delete_scenario(self, scenario_id: str) -> bool:
        ctx = self._ctx
        entry = ctx.find_scenario(scenario_id)
        if entry is None:
            return False
        if len(ctx.scenarios) <= 1:
            ctx.warn("至少需要保留一个方案", code="scenario.last")
            return False

        idx = ctx.scenarios.index(entry)
        if scenario_id == ctx.active_scenario_id:
            neighbor = ctx.scenarios[idx + 1] if idx + 1 < len(ctx.scenarios) else ctx.scenarios[idx - 1]
            self.capture_active()
            ctx.scenarios.remove(entry)
            self._activate(neighbor, "delete_scenario")
            return True

        # 删除非当前方案：活数据、历史与选择都不动
        ctx.scenarios.remove(entry)
        log.info("scenario deleted: %s (active stays %s)", scenario_id, ctx.active_scenario_id)
        ctx.publish_scenarios()
        return True

    def rename_scenario(self, scenario_id: str, name: str) -> bool:
        entry = self._ctx.find_scenario(scenario_id)
        new_name = (name or "").strip()
        if entry is None or not new_name or new_name == entry.name:
            return False
        entry.name = new_name
        self._ctx.publish_scenarios()
        return True
