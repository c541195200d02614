# rotation_planner/core/context.py
from __future__ import annotations

import logging
from dataclasses import dataclass, field
from typing import Any, Dict, List, Optional, Set, Tuple

from endaxis_core.event_bus import EventBus
from endaxis_core.event_types import EventType
from endaxis_core.events.payloads import (
    LinkingChangedPayload,
    ScenarioChangedPayload,
    SelectionChangedPayload,
    WarningPayload,
)
from endaxis_core.idgen import IdProvider, SnowflakeGenerator

from .config import PlannerConfig
from .models import (
    ActionInstance,
    CharacterInfo,
    Connection,
    ScenarioData,
    ScenarioEntry,
    SystemConstants,
    Track,
    empty_tracks,
)

log = logging.getLogger(__name__)


# ---------- 交互状态 ----------

@dataclass(frozen=True)
class EffectAnchor:
    """动作内效果格子的位置锚点。"""
    row: int
    col: int


@dataclass(frozen=True)
class EffectRef:
    instance_id: str
    anchor: EffectAnchor


@dataclass
class SelectionState:
    """
    选中状态（不进入历史快照）：

    - selected_action_id    : 主选中动作
    - multi_selected_ids    : 多选集合（主选中也在其中）
    - selected_connection_id: 选中的连线
    - selected_effect       : 选中的效果格子（其所属动作同时作为主选中）
    """
    selected_action_id: Optional[str] = None
    multi_selected_ids: Set[str] = field(default_factory=set)
    selected_connection_id: Optional[str] = None
    selected_effect: Optional[EffectRef] = None

    def clear(self) -> None:
        self.selected_action_id = None
        self.multi_selected_ids = set()
        self.selected_connection_id = None
        self.selected_effect = None

    def action_targets(self) -> Set[str]:
        out = set(self.multi_selected_ids)
        if self.selected_action_id:
            out.add(self.selected_action_id)
        return out

    def discard_action(self, instance_id: str) -> None:
        if self.selected_action_id == instance_id:
            self.selected_action_id = None
        self.multi_selected_ids.discard(instance_id)
        if self.selected_effect is not None and self.selected_effect.instance_id == instance_id:
            self.selected_effect = None


@dataclass
class LinkingSession:
    """
    连线会话：source_id 为 None 即空闲。
    """
    source_id: Optional[str] = None
    source_anchor: Optional[EffectAnchor] = None

    @property
    def active(self) -> bool:
        return self.source_id is not None

    def clear(self) -> None:
        self.source_id = None
        self.source_anchor = None


@dataclass
class ClipboardItem:
    track_index: int
    data: Dict[str, Any]


@dataclass
class Clipboard:
    actions: List[ClipboardItem]
    connections: List[Dict[str, Any]]
    base_time: float


# ---------- 上下文 ----------

@dataclass
class PlannerContext:
    """
    规划器的唯一状态对象（由应用顶层持有，显式注入各服务）：

    持久数据（当前激活方案的"活"数据，历史快照的内容）：
    - tracks / connections / character_overrides

    共享数据：
    - constants / roster / scenarios / active_scenario_id

    交互数据（不入历史）：
    - selection / linking / clipboard / cursor_time / active_track_id
    """
    config: PlannerConfig = field(default_factory=PlannerConfig)
    bus: EventBus = field(default_factory=EventBus)
    ids: IdProvider = field(default_factory=SnowflakeGenerator)

    constants: SystemConstants = field(default_factory=SystemConstants)
    roster: List[CharacterInfo] = field(default_factory=list)

    tracks: List[Track] = field(default_factory=empty_tracks)
    connections: List[Connection] = field(default_factory=list)
    character_overrides: Dict[str, Dict[str, Any]] = field(default_factory=dict)

    scenarios: List[ScenarioEntry] = field(default_factory=list)
    active_scenario_id: str = ""

    selection: SelectionState = field(default_factory=SelectionState)
    linking: LinkingSession = field(default_factory=LinkingSession)
    clipboard: Optional[Clipboard] = None
    cursor_time: Optional[float] = None
    active_track_id: Optional[str] = None

    # ---------- ID ----------

    def new_id(self, prefix: str) -> str:
        return self.ids.next_id(prefix)

    # ---------- 查找 ----------

    def find_character(self, character_id: Optional[str]) -> Optional[CharacterInfo]:
        if not character_id:
            return None
        for c in self.roster:
            if c.id == character_id:
                return c
        return None

    def find_action(self, instance_id: Optional[str]) -> Optional[Tuple[int, ActionInstance]]:
        if not instance_id:
            return None
        for i, t in enumerate(self.tracks):
            a = t.find_action(instance_id)
            if a is not None:
                return i, a
        return None

    def find_track(self, operator_id: Optional[str]) -> Optional[Track]:
        if not operator_id:
            return None
        for t in self.tracks:
            if t.id == operator_id:
                return t
        return None

    def track_at(self, index: int) -> Optional[Track]:
        if 0 <= index < len(self.tracks):
            return self.tracks[index]
        return None

    def find_connection(self, conn_id: Optional[str]) -> Optional[Connection]:
        if not conn_id:
            return None
        for c in self.connections:
            if c.id == conn_id:
                return c
        return None

    def find_scenario(self, scenario_id: Optional[str]) -> Optional[ScenarioEntry]:
        if not scenario_id:
            return None
        for s in self.scenarios:
            if s.id == scenario_id:
                return s
        return None

    def drop_dangling_effect_links(self, action: ActionInstance) -> int:
        """
        动作的效果网格变化后，删除端点已不存在的连线：
        效果 ID 锚点按 ID 校验，只有位置锚点的按 (row, col) 校验。返回删除数量。
        """
        iid = action.instance_id
        ids = {cell.id for _r, _c, cell in action.iter_effects() if cell.id}

        def ok(end_id: str, effect_id: Optional[str], index: Optional[Tuple[int, int]]) -> bool:
            if end_id != iid:
                return True
            if effect_id:
                return effect_id in ids
            return index is None or action.effect_at(*index) is not None

        before = len(self.connections)
        self.connections = [
            c
            for c in self.connections
            if ok(c.from_id, c.from_effect_id, c.from_effect_index) and ok(c.to_id, c.to_effect_id, c.to_effect_index)
        ]
        removed = before - len(self.connections)

        sel = self.selection
        if sel.selected_connection_id and self.find_connection(sel.selected_connection_id) is None:
            sel.selected_connection_id = None
        eff = sel.selected_effect
        if eff is not None and eff.instance_id == iid and action.effect_at(eff.anchor.row, eff.anchor.col) is None:
            sel.selected_effect = None
        if removed:
            log.debug("dropped %d connection(s) with missing effect endpoints on %s", removed, iid)
        return removed

    # ---------- 活数据 <-> 方案数据 ----------

    def capture_data(self) -> ScenarioData:
        """
        深拷贝当前活数据（结构化 to_dict / from_dict，不共享任何列表引用）。
        """
        return ScenarioData.from_dict(
            ScenarioData(
                tracks=self.tracks,
                connections=self.connections,
                character_overrides=self.character_overrides,
            ).to_dict()
        )

    def load_data(self, data: Optional[ScenarioData]) -> None:
        src = data if data is not None else ScenarioData()
        copied = ScenarioData.from_dict(src.to_dict())
        self.tracks = copied.tracks
        self.connections = copied.connections
        self.character_overrides = copied.character_overrides

    # ---------- 通知 ----------

    def warn(self, msg: str, *, code: str = "") -> None:
        """
        策略拒绝：记日志 + 发布面向用户的 WARNING 事件。
        """
        log.warning("policy rejection: %s (code=%s)", msg, code or "-")
        self.bus.post_payload(EventType.WARNING, WarningPayload(msg=msg, code=code))

    def publish_selection(self) -> None:
        sel = self.selection
        self.bus.post_payload(
            EventType.SELECTION_CHANGED,
            SelectionChangedPayload(
                selected_action_id=sel.selected_action_id,
                multi_selected_ids=sorted(sel.multi_selected_ids),
                selected_connection_id=sel.selected_connection_id,
            ),
        )

    def publish_linking(self) -> None:
        self.bus.post_payload(
            EventType.LINKING_CHANGED,
            LinkingChangedPayload(active=self.linking.active, source_id=self.linking.source_id),
        )

    def publish_scenarios(self) -> None:
        self.bus.post_payload(
            EventType.SCENARIO_CHANGED,
            ScenarioChangedPayload(active_id=self.active_scenario_id, ids=[s.id for s in self.scenarios]),
        )
