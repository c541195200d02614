# rotation_planner/core/models/track.py
from __future__ import annotations

from dataclasses import dataclass, field
from typing import Any, Dict, List, Optional

from endaxis_core.models.common import as_dict, as_float, as_list, as_opt_float, as_opt_str
from .action import ActionInstance

TRACK_COUNT = 4


@dataclass
class Track:
    """
    一条干员轨道：
    - id               : 干员 ID（未指派时为 None），四条轨道之间唯一
    - actions          : 动作列表，始终按 startTime 升序
    - initial_gauge    : 开场终结技能量
    - max_gauge_override: 手动指定的能量上限（None / <=0 表示不覆盖）
    """
    id: Optional[str] = None
    actions: List[ActionInstance] = field(default_factory=list)
    initial_gauge: float = 0.0
    max_gauge_override: Optional[float] = None

    def sort_actions(self) -> None:
        # sort 是稳定的：同一时刻的动作保持插入顺序
        self.actions.sort(key=lambda a: a.start_time)

    def find_action(self, instance_id: str) -> Optional[ActionInstance]:
        for a in self.actions:
            if a.instance_id == instance_id:
                return a
        return None

    # ---------- 反序列化 ----------

    @staticmethod
    def from_dict(d: Dict[str, Any]) -> "Track":
        d = as_dict(d)
        actions = [ActionInstance.from_dict(a) for a in as_list(d.get("actions", [])) if isinstance(a, dict)]
        t = Track(
            id=as_opt_str(d.get("id")),
            actions=actions,
            initial_gauge=max(0.0, as_float(d.get("initialGauge", 0.0))),
            max_gauge_override=as_opt_float(d.get("maxGaugeOverride")),
        )
        t.sort_actions()
        return t

    # ---------- 序列化 ----------

    def to_dict(self) -> Dict[str, Any]:
        return {
            "id": self.id,
            "actions": [a.to_dict() for a in self.actions],
            "initialGauge": float(self.initial_gauge),
            "maxGaugeOverride": None if self.max_gauge_override is None else float(self.max_gauge_override),
        }


def empty_tracks() -> List[Track]:
    return [Track() for _ in range(TRACK_COUNT)]


def normalize_tracks(tracks: List[Track]) -> List[Track]:
    """
    固定为 4 条：不足补空轨道，多余截断。
    """
    out = list(tracks[:TRACK_COUNT])
    while len(out) < TRACK_COUNT:
        out.append(Track())
    return out
