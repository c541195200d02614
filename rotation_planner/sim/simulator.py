# rotation_planner/sim/simulator.py
from __future__ import annotations

from dataclasses import dataclass
from typing import List, Optional, Tuple

from endaxis_core.models.common import as_float

from .models import CurvePoint, GaugePoint, LockSegment, SimInput, StaggerResult

# 战技施放期间技力停止自然回复的时长（秒）
REGEN_LOCK_DURATION = 0.5
# 失衡满后的破防时长（秒）
BREAK_LOCK_DURATION = 10.0

DEFAULT_GAUGE_CEILING = 100.0

# (time, seq, delta, kind)
_Event = Tuple[float, int, float, str]


def _sorted(events: List[_Event]) -> List[_Event]:
    # seq 即插入顺序，保证同一时刻的事件顺序稳定
    return sorted(events, key=lambda e: (e[0], e[1]))


# ---------- 技力 ----------

def calculate_energy_curve(inp: SimInput) -> List[CurvePoint]:
    """
    全队技力曲线。

    - 消耗在动作开始时扣除，回复在动作结束时加上，伤害判定点的回复在 start + offset
    - 每个战技（skill）开始时锁定自然回复 0.5s；多个锁定用计数器叠加
    - 事件之间按 spRegenRate 线性回复，恰好到达上限的时刻单独插入一个采样点
    - 每次瞬时变化后只做上限截断，不做下限截断（负值表示技力不足）
    """
    c = inp.constants
    max_sp = float(c.max_sp)
    rate = float(c.sp_regen_rate)

    events: List[_Event] = []

    def push(t: float, delta: float, kind: str) -> None:
        events.append((t, len(events), delta, kind))

    for track in inp.tracks:
        for a in track.actions:
            if a.sp_cost > 0:
                push(a.start_time, -a.sp_cost, "cost")
            if a.type == "skill":
                push(a.start_time, 0.0, "lock_start")
                push(a.start_time + REGEN_LOCK_DURATION, 0.0, "lock_end")
            if a.sp_gain > 0:
                push(a.end_time, a.sp_gain, "gain")
            for tick in a.damage_ticks:
                if tick.sp > 0:
                    push(a.start_time + tick.offset, tick.sp, "tick")

    value = min(float(c.initial_sp), max_sp)
    now = 0.0
    locks = 0
    points: List[CurvePoint] = [CurvePoint(0.0, value, "start")]

    def advance(target: float) -> None:
        nonlocal value, now
        dt = target - now
        if dt <= 0:
            return
        r = 0.0 if locks > 0 else rate
        if r <= 0 or value >= max_sp:
            now = target
            points.append(CurvePoint(now, value, "regen"))
            return

        projected = value + dt * r
        if projected >= max_sp:
            t_cap = now + (max_sp - value) / r
            if t_cap < target:
                points.append(CurvePoint(t_cap, max_sp, "cap"))
            value = max_sp
        else:
            value = projected
        now = target
        points.append(CurvePoint(now, value, "regen"))

    for t, _seq, delta, kind in _sorted(events):
        advance(t)
        if kind == "lock_start":
            locks += 1
            continue
        if kind == "lock_end":
            locks = max(0, locks - 1)
            continue
        value = min(max_sp, value + delta)
        points.append(CurvePoint(now, value, kind))

    if now < inp.total_duration:
        advance(inp.total_duration)
    return points


# ---------- 终结技能量 ----------

def resolve_gauge_ceiling(inp: SimInput, track_index: int) -> float:
    """
    上限优先级：轨道手动覆盖 > 终结技覆盖补丁中的 gaugeCost > 角色数据（默认 100）。
    """
    track = inp.tracks[track_index]
    if track.max_gauge_override is not None and track.max_gauge_override > 0:
        return float(track.max_gauge_override)

    if track.id:
        override = inp.character_overrides.get(f"{track.id}_ultimate") or {}
        v = as_float(override.get("gaugeCost", 0.0))
        if v > 0:
            return v

    char = inp.find_character(track.id)
    if char is not None:
        return float(char.ultimate_gauge_max)
    return DEFAULT_GAUGE_CEILING


def calculate_gauge_curve(inp: SimInput, track_index: int) -> List[GaugePoint]:
    """
    单条轨道的终结技能量曲线；每个事件输出变化前 / 变化后两个同时刻采样点，
    数值始终截断在 [0, ceiling]。轨道不存在或未指派干员时返回空列表。
    """
    if track_index < 0 or track_index >= len(inp.tracks):
        return []
    track = inp.tracks[track_index]
    if not track.id:
        return []

    ceiling = resolve_gauge_ceiling(inp, track_index)
    char = inp.find_character(track.id)
    accept_team = True if char is None else bool(char.accept_team_gauge)

    events: List[_Event] = []
    for j, src in enumerate(inp.tracks):
        for a in src.actions:
            if j == track_index:
                if a.gauge_cost > 0:
                    events.append((a.start_time, len(events), -a.gauge_cost, "cost"))
                if a.gauge_gain > 0:
                    events.append((a.end_time, len(events), a.gauge_gain, "gain"))
            elif accept_team and a.team_gauge_gain > 0:
                events.append((a.end_time, len(events), a.team_gauge_gain, "team"))

    def clamp(v: float) -> float:
        return min(ceiling, max(0.0, v))

    def point(t: float, v: float, kind: str) -> GaugePoint:
        return GaugePoint(t, v, v / ceiling if ceiling > 0 else 0.0, kind)

    value = clamp(float(track.initial_gauge))
    points: List[GaugePoint] = [point(0.0, value, "start")]
    for t, _seq, delta, kind in _sorted(events):
        points.append(point(t, value, "pre"))
        value = clamp(value + delta)
        points.append(point(t, value, kind))

    if points[-1].time < inp.total_duration:
        points.append(point(inp.total_duration, value, "end"))
    return points


def calculate_gauge_curve_for(inp: SimInput, operator_id: str) -> List[GaugePoint]:
    for i, t in enumerate(inp.tracks):
        if t.id and t.id == operator_id:
            return calculate_gauge_curve(inp, i)
    return []


# ---------- 失衡 ----------

def calculate_stagger_curve(inp: SimInput) -> StaggerResult:
    """
    全局失衡曲线：动作自身 stagger 在结束时刻生效，伤害判定点与效果格子在 start + offset 生效。
    累计达到 maxStagger 时归零并进入 10s 破防锁定，锁定期间的增量全部忽略。
    """
    max_stagger = float(inp.constants.max_stagger)

    events: List[_Event] = []
    for track in inp.tracks:
        for a in track.actions:
            if a.stagger > 0:
                events.append((a.end_time, len(events), a.stagger, "action"))
            for tick in a.damage_ticks:
                if tick.stagger > 0:
                    events.append((a.start_time + tick.offset, len(events), tick.stagger, "tick"))
            for _r, _c, cell in a.iter_effects():
                if cell.stagger > 0:
                    events.append((a.start_time + cell.offset, len(events), cell.stagger, "effect"))

    result = StaggerResult(points=[CurvePoint(0.0, 0.0, "start")])
    value = 0.0
    now = 0.0
    locked_until: Optional[float] = None

    def advance(target: float) -> None:
        nonlocal now
        if target > now:
            result.points.append(CurvePoint(target, value, "hold"))
            now = target

    for t, _seq, delta, kind in _sorted(events):
        advance(t)
        if locked_until is not None and now < locked_until:
            continue
        value += delta
        if value >= max_stagger:
            value = 0.0
            locked_until = now + BREAK_LOCK_DURATION
            result.lock_segments.append(LockSegment(now, locked_until))
            result.points.append(CurvePoint(now, 0.0, "break"))
        else:
            result.points.append(CurvePoint(now, value, kind))

    if now < inp.total_duration:
        advance(inp.total_duration)
    return result


# ---------- 门面 ----------

@dataclass
class ResourceSimulator:
    """
    绑定一个 SimInput 的便捷包装；每次调用都重新计算，不缓存。
    """
    inp: SimInput

    def energy(self) -> List[CurvePoint]:
        return calculate_energy_curve(self.inp)

    def gauge(self, track_index: int) -> List[GaugePoint]:
        return calculate_gauge_curve(self.inp, track_index)

    def gauge_for(self, operator_id: str) -> List[GaugePoint]:
        return calculate_gauge_curve_for(self.inp, operator_id)

    def all_gauges(self) -> List[List[GaugePoint]]:
        return [calculate_gauge_curve(self.inp, i) for i in range(len(self.inp.tracks))]

    def stagger(self) -> StaggerResult:
        return calculate_stagger_curve(self.inp)
