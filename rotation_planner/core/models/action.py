# rotation_planner/core/models/action.py
from __future__ import annotations

import copy
from dataclasses import dataclass, field
from typing import Any, Callable, Dict, Iterator, List, Optional, Tuple

from endaxis_core.models.common import as_dict, as_float, as_list, as_opt_str, as_str, as_int

CATEGORIES: Tuple[str, ...] = ("attack", "execution", "skill", "link", "ultimate", "variant")


def normalize_category(v: Any) -> str:
    s = as_str(v, "").strip().lower()
    return s if s in CATEGORIES else "attack"


# ---------- DamageTick ----------

@dataclass
class DamageTick:
    """
    伤害判定点：
    - offset  : 相对动作 startTime 的时间偏移（秒）
    - sp      : 该判定点回复的技力
    - stagger : 该判定点造成的失衡值
    """
    offset: float = 0.0
    sp: float = 0.0
    stagger: float = 0.0

    @staticmethod
    def from_dict(d: Dict[str, Any]) -> "DamageTick":
        d = as_dict(d)
        return DamageTick(
            offset=max(0.0, as_float(d.get("offset", 0.0))),
            sp=as_float(d.get("sp", 0.0)),
            stagger=as_float(d.get("stagger", 0.0)),
        )

    def to_dict(self) -> Dict[str, Any]:
        return {"offset": float(self.offset), "sp": float(self.sp), "stagger": float(self.stagger)}


# ---------- EffectCell ----------

_EFFECT_KEYS = ("_id", "type", "offset", "duration", "stagger", "stacks")


@dataclass
class EffectCell:
    """
    物理异常 / 附着等效果格子（physicalAnomaly 二维网格中的一格）：

    - id      : 稳定 ID（序列化为 "_id"）；首次被引用时才分配，分配后不再变化
    - type    : 效果类型（如 "break" / "blaze_attach"）
    - offset  : 相对动作 startTime 的触发偏移
    - duration: 效果持续时间
    - stagger : 触发时造成的失衡值
    - stacks  : 层数
    - extra   : 未识别字段原样保留
    """
    id: Optional[str] = None
    type: str = ""
    offset: float = 0.0
    duration: float = 0.0
    stagger: float = 0.0
    stacks: int = 1
    extra: Dict[str, Any] = field(default_factory=dict)

    @staticmethod
    def from_dict(d: Dict[str, Any]) -> "EffectCell":
        d = as_dict(d)
        return EffectCell(
            id=as_opt_str(d.get("_id")),
            type=as_str(d.get("type", "")),
            offset=max(0.0, as_float(d.get("offset", 0.0))),
            duration=max(0.0, as_float(d.get("duration", 0.0))),
            stagger=as_float(d.get("stagger", 0.0)),
            stacks=max(1, as_int(d.get("stacks", 1), 1)),
            extra={k: copy.deepcopy(v) for k, v in d.items() if k not in _EFFECT_KEYS},
        )

    def to_dict(self) -> Dict[str, Any]:
        out: Dict[str, Any] = copy.deepcopy(self.extra)
        if self.id:
            out["_id"] = self.id
        out.update(
            {
                "type": self.type,
                "offset": float(self.offset),
                "duration": float(self.duration),
                "stagger": float(self.stagger),
                "stacks": int(self.stacks),
            }
        )
        return out


def parse_effect_grid(v: Any) -> List[List[EffectCell]]:
    rows: List[List[EffectCell]] = []
    for row in as_list(v):
        # 兼容旧数据：单层列表视为一行一格
        items = row if isinstance(row, list) else [row]
        rows.append([EffectCell.from_dict(c) for c in items if isinstance(c, dict)])
    return rows


# ---------- ActionInstance ----------

# JSON 键 -> (属性名, 转换函数)；update_action / 覆盖补丁按此表写入
_SCALAR_FIELDS: Dict[str, Tuple[str, Callable[[Any], Any]]] = {
    "id": ("skill_id", lambda v: as_str(v, "")),
    "type": ("type", normalize_category),
    "name": ("name", lambda v: as_str(v, "")),
    "element": ("element", as_opt_str),
    "startTime": ("start_time", lambda v: max(0.0, as_float(v))),
    "duration": ("duration", lambda v: max(0.0, as_float(v))),
    "cooldown": ("cooldown", lambda v: max(0.0, as_float(v))),
    "triggerWindow": ("trigger_window", lambda v: max(0.0, as_float(v))),
    "spCost": ("sp_cost", as_float),
    "spGain": ("sp_gain", as_float),
    "gaugeCost": ("gauge_cost", as_float),
    "gaugeGain": ("gauge_gain", as_float),
    "teamGaugeGain": ("team_gauge_gain", as_float),
    "stagger": ("stagger", as_float),
}

_STRUCT_KEYS = ("instanceId", "damageTicks", "physicalAnomaly", "allowedTypes")


@dataclass
class ActionInstance:
    """
    轨道上的一个动作（技能模板的放置副本）。

    instance_id 为空时表示"模板"（技能库条目），放置到轨道时才分配。
    JSON 键统一使用 camelCase（与项目文件 / 分享码一致）。
    """
    instance_id: str = ""
    skill_id: str = ""
    type: str = "attack"
    name: str = ""
    element: Optional[str] = None

    start_time: float = 0.0
    duration: float = 1.0
    cooldown: float = 0.0
    trigger_window: float = 0.0

    sp_cost: float = 0.0
    sp_gain: float = 0.0
    gauge_cost: float = 0.0
    gauge_gain: float = 0.0
    team_gauge_gain: float = 0.0
    stagger: float = 0.0

    damage_ticks: List[DamageTick] = field(default_factory=list)
    physical_anomaly: List[List[EffectCell]] = field(default_factory=list)
    allowed_types: List[str] = field(default_factory=list)

    extra: Dict[str, Any] = field(default_factory=dict)

    # ---------- 派生属性 ----------

    @property
    def end_time(self) -> float:
        return self.start_time + self.duration

    # ---------- 效果格子 ----------

    def effect_at(self, row: int, col: int) -> Optional[EffectCell]:
        if row < 0 or row >= len(self.physical_anomaly):
            return None
        cells = self.physical_anomaly[row]
        if col < 0 or col >= len(cells):
            return None
        return cells[col]

    def iter_effects(self) -> Iterator[Tuple[int, int, EffectCell]]:
        for r, cells in enumerate(self.physical_anomaly):
            for c, cell in enumerate(cells):
                yield r, c, cell

    def find_effect(self, effect_id: str) -> Optional[Tuple[int, int, EffectCell]]:
        if not effect_id:
            return None
        for r, c, cell in self.iter_effects():
            if cell.id == effect_id:
                return r, c, cell
        return None

    def ensure_effect_id(self, row: int, col: int, new_id: Callable[[], str]) -> Optional[str]:
        """
        取 (row, col) 效果的稳定 ID；没有则分配一个（只分配一次）。
        """
        cell = self.effect_at(row, col)
        if cell is None:
            return None
        if not cell.id:
            cell.id = new_id()
        return cell.id

    def reassign_effect_ids(self, new_id: Callable[[], str]) -> Dict[str, str]:
        """
        为所有效果分配全新 ID，返回 旧ID -> 新ID 映射（旧 ID 为空的不进映射）。
        """
        mapping: Dict[str, str] = {}
        for _r, _c, cell in self.iter_effects():
            nid = new_id()
            if cell.id:
                mapping[cell.id] = nid
            cell.id = nid
        return mapping

    def replace_effect_grid(self, raw: Any, new_id: Callable[[], str]) -> None:
        """
        用新的效果网格替换当前网格：同一 (row, col) 上原有的 ID 原样保留，
        其余格子一律分配新 ID（补丁里自带的 _id 不被采信）。
        """
        old = self.physical_anomaly
        grid = parse_effect_grid(raw)
        for r, cells in enumerate(grid):
            for c, cell in enumerate(cells):
                prev = old[r][c] if r < len(old) and c < len(old[r]) else None
                cell.id = prev.id if prev is not None and prev.id else new_id()
        self.physical_anomaly = grid

    # ---------- 补丁 ----------

    def apply_patch(self, props: Dict[str, Any], *, new_effect_id: Optional[Callable[[], str]] = None) -> None:
        """
        按 JSON 键写入属性；instanceId 永不被覆盖，未知键进入 extra。

        给出 new_effect_id 时（已放置的动作），physicalAnomaly 经 replace_effect_grid 写入，
        保留原有效果 ID；否则按原样解析（模板 / 反序列化）。
        """
        for key, value in as_dict(props).items():
            if key == "instanceId":
                continue
            spec = _SCALAR_FIELDS.get(key)
            if spec is not None:
                attr, conv = spec
                setattr(self, attr, conv(value))
            elif key == "damageTicks":
                self.damage_ticks = [DamageTick.from_dict(t) for t in as_list(value) if isinstance(t, dict)]
            elif key == "physicalAnomaly":
                if new_effect_id is not None:
                    self.replace_effect_grid(value, new_effect_id)
                else:
                    self.physical_anomaly = parse_effect_grid(value)
            elif key == "allowedTypes":
                self.allowed_types = [as_str(x) for x in as_list(value)]
            else:
                self.extra[key] = copy.deepcopy(value)

    def clone(self) -> "ActionInstance":
        return ActionInstance.from_dict(self.to_dict())

    # ---------- 反序列化 ----------

    @staticmethod
    def from_dict(d: Dict[str, Any]) -> "ActionInstance":
        d = as_dict(d)
        a = ActionInstance(
            instance_id=as_str(d.get("instanceId", "")),
            extra={
                k: copy.deepcopy(v)
                for k, v in d.items()
                if k not in _SCALAR_FIELDS and k not in _STRUCT_KEYS
            },
        )
        a.apply_patch({k: v for k, v in d.items() if k in _SCALAR_FIELDS or k in _STRUCT_KEYS})
        return a

    # ---------- 序列化 ----------

    def to_dict(self) -> Dict[str, Any]:
        out: Dict[str, Any] = copy.deepcopy(self.extra)
        out.update(
            {
                "instanceId": self.instance_id,
                "id": self.skill_id,
                "type": self.type,
                "name": self.name,
                "element": self.element,
                "startTime": float(self.start_time),
                "duration": float(self.duration),
                "cooldown": float(self.cooldown),
                "triggerWindow": float(self.trigger_window),
                "spCost": float(self.sp_cost),
                "spGain": float(self.sp_gain),
                "gaugeCost": float(self.gauge_cost),
                "gaugeGain": float(self.gauge_gain),
                "teamGaugeGain": float(self.team_gauge_gain),
                "stagger": float(self.stagger),
                "damageTicks": [t.to_dict() for t in self.damage_ticks],
                "physicalAnomaly": [[c.to_dict() for c in row] for row in self.physical_anomaly],
                "allowedTypes": list(self.allowed_types),
            }
        )
        return out
