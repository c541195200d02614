# rotation_planner/core/models/connection.py
from __future__ import annotations

from dataclasses import dataclass
from typing import Any, Dict, Optional, Tuple

from endaxis_core.models.common import as_bool, as_dict, as_int, as_opt_str, as_str

EffectIndex = Tuple[int, int]


def parse_effect_index(v: Any) -> Optional[EffectIndex]:
    """
    位置锚点：[row, col]；旧数据里的单个整数视为 (0, n)。
    """
    if isinstance(v, bool) or v is None:
        return None
    if isinstance(v, int):
        return (0, v) if v >= 0 else None
    if isinstance(v, (list, tuple)) and len(v) >= 2:
        r, c = as_int(v[0], -1), as_int(v[1], -1)
        if r >= 0 and c >= 0:
            return (r, c)
    return None


@dataclass
class Connection:
    """
    有向连线：from -> to。

    - from_effect_id / to_effect_id      : 锚定到具体效果格子的稳定 ID（None 表示锚定整个动作）
    - from_effect_index / to_effect_index: 建立时的位置锚点 (row, col)，仅用于兼容与去重兜底
    - is_consumption                     : 是否为"消耗"关系
    """
    id: str = ""
    from_id: str = ""
    to_id: str = ""
    from_effect_id: Optional[str] = None
    to_effect_id: Optional[str] = None
    from_effect_index: Optional[EffectIndex] = None
    to_effect_index: Optional[EffectIndex] = None
    is_consumption: bool = False

    def touches(self, instance_id: str) -> bool:
        return self.from_id == instance_id or self.to_id == instance_id

    def anchored_to_effect(self, instance_id: str, effect_id: str) -> bool:
        return (self.from_id == instance_id and self.from_effect_id == effect_id) or (
            self.to_id == instance_id and self.to_effect_id == effect_id
        )

    def anchored_to_index(self, instance_id: str, index: EffectIndex) -> bool:
        """只有位置锚点（没有效果 ID）的一端指向 instance_id 的 index 格子。"""
        return (
            self.from_id == instance_id and self.from_effect_id is None and self.from_effect_index == index
        ) or (self.to_id == instance_id and self.to_effect_id is None and self.to_effect_index == index)

    def shift_effect_indexes(self, instance_id: str, row: int, col: int, *, row_removed: bool) -> None:
        """
        instance_id 的 (row, col) 格子被删除后，修正该动作上的位置锚点：
        整行被删时后续行号减一，否则同一行中后面的列号减一。
        """
        if self.from_id == instance_id:
            self.from_effect_index = _shift_index(self.from_effect_index, row, col, row_removed)
        if self.to_id == instance_id:
            self.to_effect_index = _shift_index(self.to_effect_index, row, col, row_removed)

    @staticmethod
    def from_dict(d: Dict[str, Any]) -> "Connection":
        d = as_dict(d)
        return Connection(
            id=as_str(d.get("id", "")),
            from_id=as_str(d.get("from", "")),
            to_id=as_str(d.get("to", "")),
            from_effect_id=as_opt_str(d.get("fromEffectId")),
            to_effect_id=as_opt_str(d.get("toEffectId")),
            from_effect_index=parse_effect_index(d.get("fromEffectIndex")),
            to_effect_index=parse_effect_index(d.get("toEffectIndex")),
            is_consumption=as_bool(d.get("isConsumption", False), False),
        )

    def to_dict(self) -> Dict[str, Any]:
        return {
            "id": self.id,
            "from": self.from_id,
            "to": self.to_id,
            "fromEffectId": self.from_effect_id,
            "toEffectId": self.to_effect_id,
            "fromEffectIndex": list(self.from_effect_index) if self.from_effect_index is not None else None,
            "toEffectIndex": list(self.to_effect_index) if self.to_effect_index is not None else None,
            "isConsumption": bool(self.is_consumption),
        }


def _shift_index(idx: Optional[EffectIndex], row: int, col: int, row_removed: bool) -> Optional[EffectIndex]:
    if idx is None:
        return None
    r, c = idx
    if row_removed:
        return (r - 1, c) if r > row else idx
    return (r, c - 1) if r == row and c > col else idx
