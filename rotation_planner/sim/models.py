# rotation_planner/sim/models.py
from __future__ import annotations

from dataclasses import dataclass, field
from typing import Any, Dict, List, Sequence

from rotation_planner.core.models import CharacterInfo, SystemConstants, Track


@dataclass(frozen=True)
class CurvePoint:
    """
    曲线采样点。同一 time 的相邻两点表示瞬时跳变（先跳变前、后跳变后）。
    kind: "start" / "regen" / "cap" / "cost" / "gain" / "tick" / "effect" / "break" / "end"
    """
    time: float
    value: float
    kind: str = ""


@dataclass(frozen=True)
class GaugePoint:
    time: float
    value: float
    ratio: float
    kind: str = ""


@dataclass(frozen=True)
class LockSegment:
    start: float
    end: float


@dataclass
class StaggerResult:
    points: List[CurvePoint] = field(default_factory=list)
    lock_segments: List[LockSegment] = field(default_factory=list)


@dataclass(frozen=True)
class SimInput:
    """
    推演的只读输入视图（推演函数不修改其中任何对象）。
    """
    tracks: Sequence[Track]
    constants: SystemConstants
    roster: Sequence[CharacterInfo] = ()
    character_overrides: Dict[str, Dict[str, Any]] = field(default_factory=dict)
    total_duration: float = 120.0

    @staticmethod
    def from_context(ctx: Any) -> "SimInput":
        return SimInput(
            tracks=ctx.tracks,
            constants=ctx.constants,
            roster=ctx.roster,
            character_overrides=ctx.character_overrides,
            total_duration=float(ctx.config.total_duration),
        )

    def find_character(self, character_id: str | None) -> CharacterInfo | None:
        if not character_id:
            return None
        for c in self.roster:
            if c.id == character_id:
                return c
        return None
