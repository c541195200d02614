# rotation_planner/core/models/roster.py
from __future__ import annotations

import copy
from dataclasses import dataclass, field
from typing import Any, Dict, List, Optional, Tuple

from endaxis_core.models.common import as_bool, as_dict, as_float, as_int, as_list, as_opt_str, as_str

RESOURCE_KEYS: Tuple[str, ...] = ("spCost", "spGain", "gaugeCost", "gaugeGain", "teamGaugeGain", "stagger")

DEFAULT_ULTIMATE_GAUGE = 100.0


# ---------- 分类 schema ----------

@dataclass(frozen=True)
class CategorySchema:
    """
    一种技能分类在角色数据中的字段布局：

    - label          : 技能库中的默认显示名
    - element_policy : "character"（跟随角色元素，可被 <cat>_element 覆盖）
                       | "physical"（固定物理）| "none"（无元素）
    - keys           : 通用字段 -> 原始键名（duration / cooldown / element / anomalies /
                       damage_ticks / allowed_types / trigger_window）
    - resources      : 资源字段 -> 原始键名候选（依次取第一个非零值）
    - sp_cost_from_constants : spCost 缺省时取 SystemConstants.skill_sp_cost_default
    - default_gauge_cost     : gaugeCost 缺省值
    """
    category: str
    label: str
    element_policy: str
    keys: Dict[str, str]
    resources: Dict[str, Tuple[str, ...]]
    sp_cost_from_constants: bool = False
    default_gauge_cost: float = 0.0


def _schema(category: str, label: str, element_policy: str, resources: Dict[str, Tuple[str, ...]], **kw: Any) -> CategorySchema:
    keys = {
        "duration": f"{category}_duration",
        "cooldown": f"{category}_cooldown",
        "element": f"{category}_element",
        "anomalies": f"{category}_anomalies",
        "damage_ticks": f"{category}_damage_ticks",
        "allowed_types": f"{category}_allowed_types",
        "trigger_window": f"{category}_triggerWindow",
    }
    return CategorySchema(category=category, label=label, element_policy=element_policy, keys=keys, resources=resources, **kw)


CATEGORY_SCHEMAS: Dict[str, CategorySchema] = {
    "attack": _schema(
        "attack", "重击", "physical",
        {"spGain": ("attack_spGain",), "stagger": ("attack_stagger",)},
    ),
    "execution": _schema(
        "execution", "处决", "physical",
        {"spGain": ("execution_spGain",), "stagger": ("execution_stagger",)},
    ),
    "skill": _schema(
        "skill", "战技", "character",
        {
            "spCost": ("skill_spCost",),
            "spGain": ("skill_spGain", "skill_spReply"),
            "gaugeGain": ("skill_gaugeGain",),
            "teamGaugeGain": ("skill_teamGaugeGain",),
            "stagger": ("skill_stagger",),
        },
        sp_cost_from_constants=True,
    ),
    "link": _schema(
        "link", "连携", "none",
        {"spGain": ("link_spGain",), "gaugeGain": ("link_gaugeGain",), "stagger": ("link_stagger",)},
    ),
    "ultimate": _schema(
        "ultimate", "终结技", "character",
        {
            "gaugeCost": ("ultimate_gaugeMax",),
            "spGain": ("ultimate_spGain", "ultimate_spReply"),
            "gaugeGain": ("ultimate_gaugeReply",),
            "stagger": ("ultimate_stagger",),
        },
        default_gauge_cost=DEFAULT_ULTIMATE_GAUGE,
    ),
}

# 技能库中基础技能的固定顺序
BASE_CATEGORIES: Tuple[str, ...] = ("attack", "execution", "skill", "link", "ultimate")


# ---------- SkillSpec ----------

@dataclass
class SkillSpec:
    """
    角色某一技能的原始数值（未合并覆盖、未套用常量默认值）。
    resources 只包含数据中给出的非零字段。
    """
    category: str
    name: str = ""
    duration: float = 1.0
    cooldown: float = 0.0
    trigger_window: float = 0.0
    element: Optional[str] = None
    resources: Dict[str, float] = field(default_factory=dict)
    damage_ticks: List[Dict[str, Any]] = field(default_factory=list)
    anomalies: List[Any] = field(default_factory=list)
    allowed_types: List[str] = field(default_factory=list)

    @staticmethod
    def from_raw(raw: Dict[str, Any], schema: CategorySchema, *, char_element: Optional[str]) -> "SkillSpec":
        k = schema.keys
        resources: Dict[str, float] = {}
        for res_key, candidates in schema.resources.items():
            for cand in candidates:
                v = as_float(raw.get(cand, 0.0))
                if v:
                    resources[res_key] = v
                    break

        if schema.element_policy == "physical":
            element: Optional[str] = "physical"
        elif schema.element_policy == "none":
            element = None
        else:
            element = as_opt_str(raw.get(k["element"])) or char_element or "physical"

        duration = as_float(raw.get(k["duration"], 0.0))
        return SkillSpec(
            category=schema.category,
            name=schema.label,
            duration=duration if duration > 0 else 1.0,
            cooldown=max(0.0, as_float(raw.get(k["cooldown"], 0.0))),
            trigger_window=max(0.0, as_float(raw.get(k["trigger_window"], 0.0))),
            element=element,
            resources=resources,
            damage_ticks=[copy.deepcopy(t) for t in as_list(raw.get(k["damage_ticks"])) if isinstance(t, dict)],
            anomalies=copy.deepcopy(as_list(raw.get(k["anomalies"]))),
            allowed_types=[as_str(x) for x in as_list(raw.get(k["allowed_types"]))],
        )


@dataclass
class VariantSpec:
    """
    变体技能（如强化战技）：id 为变体 ID，全局 ID = <角色ID>_<变体ID>。
    """
    id: str
    spec: SkillSpec

    @staticmethod
    def from_raw(raw: Dict[str, Any], *, char_element: Optional[str]) -> Optional["VariantSpec"]:
        raw = as_dict(raw)
        vid = as_str(raw.get("id", "")).strip()
        if not vid:
            return None
        resources = {k: as_float(raw.get(k, 0.0)) for k in RESOURCE_KEYS if as_float(raw.get(k, 0.0))}
        duration = as_float(raw.get("duration", 0.0))
        spec = SkillSpec(
            category="variant",
            name=as_str(raw.get("name", vid)) or vid,
            duration=duration if duration > 0 else 1.0,
            cooldown=max(0.0, as_float(raw.get("cooldown", 0.0))),
            trigger_window=max(0.0, as_float(raw.get("triggerWindow", 0.0))),
            element=as_opt_str(raw.get("element")) or char_element,
            resources=resources,
            damage_ticks=[copy.deepcopy(t) for t in as_list(raw.get("damageTicks")) if isinstance(t, dict)],
            anomalies=copy.deepcopy(as_list(raw.get("physicalAnomaly"))),
            allowed_types=[as_str(x) for x in as_list(raw.get("allowedTypes"))],
        )
        return VariantSpec(id=vid, spec=spec)


# ---------- CharacterInfo ----------

@dataclass
class CharacterInfo:
    """
    角色数据库条目（gamedata.json -> characterRoster[]）。

    - accept_team_gauge: False 表示该角色不接收队友提供的终结技能量
    """
    id: str
    name: str = ""
    rarity: int = 0
    element: Optional[str] = None
    accept_team_gauge: bool = True
    skills: Dict[str, SkillSpec] = field(default_factory=dict)
    variants: List[VariantSpec] = field(default_factory=list)

    @property
    def ultimate_gauge_max(self) -> float:
        spec = self.skills.get("ultimate")
        if spec is None:
            return DEFAULT_ULTIMATE_GAUGE
        v = spec.resources.get("gaugeCost", 0.0)
        return v if v > 0 else DEFAULT_ULTIMATE_GAUGE

    @staticmethod
    def from_dict(d: Dict[str, Any]) -> Optional["CharacterInfo"]:
        d = as_dict(d)
        cid = as_str(d.get("id", "")).strip()
        if not cid:
            return None
        element = as_opt_str(d.get("element"))
        skills = {
            cat: SkillSpec.from_raw(d, CATEGORY_SCHEMAS[cat], char_element=element)
            for cat in BASE_CATEGORIES
        }
        variants: List[VariantSpec] = []
        for item in as_list(d.get("variants")):
            v = VariantSpec.from_raw(item, char_element=element)
            if v is not None:
                variants.append(v)
        return CharacterInfo(
            id=cid,
            name=as_str(d.get("name", cid)) or cid,
            rarity=as_int(d.get("rarity", 0), 0),
            element=element,
            accept_team_gauge=as_bool(d.get("accept_team_gauge", True), True),
            skills=skills,
            variants=variants,
        )
