# rotation_planner/core/services/library_service.py
from __future__ import annotations

import copy
import logging
from typing import Any, Dict, List, Optional

from rotation_planner.core.context import PlannerContext
from rotation_planner.core.models import BASE_CATEGORIES, CATEGORY_SCHEMAS, ActionInstance, CharacterInfo, SkillSpec
from rotation_planner.core.models.action import DamageTick, parse_effect_grid
from rotation_planner.core.models.roster import RESOURCE_KEYS
from .history_service import HistoryService

log = logging.getLogger(__name__)


def global_skill_id(operator_id: str, suffix: str) -> str:
    return f"{operator_id}_{suffix}"


class LibraryService:
    """
    技能库（模板）与角色覆盖：

    - 模板由 角色原始数据 + 分类 schema + 全局常量 + characterOverrides 即时生成，不缓存
    - 合并顺序：duration/cooldown -> 分类默认值 -> 覆盖补丁
    - update_library_skill() 记录覆盖并回写所有已放置的同 id 动作
    """

    def __init__(self, *, ctx: PlannerContext, history: HistoryService) -> None:
        self._ctx = ctx
        self._history = history

    # ---------- 模板 ----------

    def _defaults(self, spec: SkillSpec) -> Dict[str, float]:
        out = {k: 0.0 for k in RESOURCE_KEYS}
        out.update(spec.resources)

        schema = CATEGORY_SCHEMAS.get(spec.category)
        if schema is not None:
            if schema.sp_cost_from_constants and not out["spCost"]:
                out["spCost"] = float(self._ctx.constants.skill_sp_cost_default)
            if schema.default_gauge_cost and not out["gaugeCost"]:
                out["gaugeCost"] = float(schema.default_gauge_cost)
        return out

    def _make_template(self, global_id: str, spec: SkillSpec) -> ActionInstance:
        tpl = ActionInstance(
            skill_id=global_id,
            type=spec.category,
            name=spec.name,
            element=spec.element,
            duration=spec.duration,
            cooldown=spec.cooldown,
            trigger_window=spec.trigger_window,
            damage_ticks=[DamageTick.from_dict(t) for t in spec.damage_ticks],
            physical_anomaly=parse_effect_grid(spec.anomalies),
            allowed_types=list(spec.allowed_types),
        )
        tpl.apply_patch(self._defaults(spec))

        override = self._ctx.character_overrides.get(global_id)
        if override:
            tpl.apply_patch(override)
        return tpl

    def build_library(self, operator_id: Optional[str] = None) -> List[ActionInstance]:
        """
        生成指定干员（默认当前激活轨道）的技能库：5 个基础技能 + 变体。
        干员不在角色库中时返回空列表。
        """
        ctx = self._ctx
        char: Optional[CharacterInfo] = ctx.find_character(operator_id or ctx.active_track_id)
        if char is None:
            return []

        out: List[ActionInstance] = []
        for cat in BASE_CATEGORIES:
            spec = char.skills.get(cat)
            if spec is not None:
                out.append(self._make_template(global_skill_id(char.id, cat), spec))
        for v in char.variants:
            out.append(self._make_template(global_skill_id(char.id, v.id), v.spec))
        return out

    def get_template(self, global_id: str) -> Optional[ActionInstance]:
        for char in self._ctx.roster:
            if not global_id.startswith(char.id + "_"):
                continue
            for tpl in self.build_library(char.id):
                if tpl.skill_id == global_id:
                    return tpl
        return None

    # ---------- 覆盖 ----------

    def update_library_skill(self, skill_id: str, props: Dict[str, Any]) -> int:
        """
        记录覆盖补丁，并把补丁应用到所有已放置的同模板动作。
        返回被回写的动作数量。
        """
        if not skill_id or not props:
            return 0

        ctx = self._ctx
        patch = {k: copy.deepcopy(v) for k, v in props.items() if k != "instanceId"}
        ctx.character_overrides.setdefault(skill_id, {}).update(patch)

        patched = 0
        for track in ctx.tracks:
            touched = False
            for a in track.actions:
                if a.skill_id == skill_id:
                    a.apply_patch(patch, new_effect_id=lambda: ctx.new_id("eff_"))
                    if "physicalAnomaly" in patch:
                        ctx.drop_dangling_effect_links(a)
                    patched += 1
                    touched = True
            if touched and "startTime" in patch:
                track.sort_actions()

        log.debug("library override: skill=%s keys=%s patched=%d", skill_id, sorted(patch), patched)
        self._history.commit("update_library_skill")
        return patched
