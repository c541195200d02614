# rotation_planner/core/models/scenario.py
from __future__ import annotations

import copy
from dataclasses import dataclass, field
from typing import Any, Dict, List, Optional, Set

from endaxis_core.models.common import as_dict, as_list, as_str
from .connection import Connection, EffectIndex
from .track import Track, empty_tracks, normalize_tracks


@dataclass
class ScenarioData:
    """
    一个方案的完整可编辑数据（也是历史快照的内容）：
    tracks / connections / characterOverrides。
    """
    tracks: List[Track] = field(default_factory=empty_tracks)
    connections: List[Connection] = field(default_factory=list)
    character_overrides: Dict[str, Dict[str, Any]] = field(default_factory=dict)

    @staticmethod
    def from_dict(d: Any) -> "ScenarioData":
        """
        缺失 / 非对象的数据视为全新空方案（4 条空轨道）。
        载入时修复引用：重复的干员 / instanceId 去重，端点不存在的连线丢弃。
        """
        d = as_dict(d)
        raw_tracks = d.get("tracks")
        if isinstance(raw_tracks, list):
            tracks = normalize_tracks([Track.from_dict(t) for t in raw_tracks])
        else:
            tracks = empty_tracks()

        conns = [Connection.from_dict(c) for c in as_list(d.get("connections")) if isinstance(c, dict)]
        _dedupe_tracks(tracks)
        conns = [c for c in conns if _endpoints_present(c, tracks)]

        overrides: Dict[str, Dict[str, Any]] = {}
        for k, v in as_dict(d.get("characterOverrides")).items():
            if isinstance(v, dict):
                overrides[as_str(k)] = copy.deepcopy(v)

        return ScenarioData(tracks=tracks, connections=conns, character_overrides=overrides)

    def to_dict(self) -> Dict[str, Any]:
        return {
            "tracks": [t.to_dict() for t in self.tracks],
            "connections": [c.to_dict() for c in self.connections],
            "characterOverrides": copy.deepcopy(self.character_overrides),
        }


@dataclass
class ScenarioEntry:
    """
    方案列表条目；data 为 None 表示"从未激活过"，切换进入时初始化为空方案。
    """
    id: str
    name: str = ""
    data: Optional[ScenarioData] = None

    @staticmethod
    def from_dict(d: Dict[str, Any]) -> Optional["ScenarioEntry"]:
        d = as_dict(d)
        sid = as_str(d.get("id", "")).strip()
        if not sid:
            return None
        raw = d.get("data")
        return ScenarioEntry(
            id=sid,
            name=as_str(d.get("name", "")) or sid,
            # 文档里缺失 data 时同样得到全新的 4 轨道空方案
            data=ScenarioData.from_dict(raw),
        )

    def to_dict(self) -> Dict[str, Any]:
        data = self.data if self.data is not None else ScenarioData()
        return {"id": self.id, "name": self.name, "data": data.to_dict()}


def _dedupe_tracks(tracks: List[Track]) -> None:
    """
    干员 ID 在四条轨道之间唯一：后出现的重复干员连同其动作一起清空。
    instanceId 在方案内唯一：重复的动作只保留第一次出现的。
    """
    operators: Set[str] = set()
    instances: Set[str] = set()
    for t in tracks:
        if t.id is not None:
            if t.id in operators:
                t.id = None
                t.actions = []
                continue
            operators.add(t.id)
        kept = []
        for a in t.actions:
            if a.instance_id in instances:
                continue
            instances.add(a.instance_id)
            kept.append(a)
        t.actions = kept


def _endpoints_present(conn: Connection, tracks: List[Track]) -> bool:
    """两端动作都在本方案中；效果锚点（ID 或位置）指向的格子也必须存在。"""

    def present(instance_id: str, effect_id: Optional[str], index: Optional[EffectIndex]) -> bool:
        for t in tracks:
            a = t.find_action(instance_id)
            if a is None:
                continue
            if effect_id:
                return a.find_effect(effect_id) is not None
            return index is None or a.effect_at(*index) is not None
        return False

    return present(conn.from_id, conn.from_effect_id, conn.from_effect_index) and present(
        conn.to_id, conn.to_effect_id, conn.to_effect_index
    )
