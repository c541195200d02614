# File: endaxis_core/events/payloads.py
from __future__ import annotations

from dataclasses import dataclass
from typing import List, Optional


# -------- history --------

@dataclass(frozen=True)
class StateCommittedPayload:
    reason: str
    history_index: int
    history_size: int


@dataclass(frozen=True)
class HistoryRestoredPayload:
    direction: str  # "undo" | "redo"
    history_index: int
    history_size: int


# -------- interaction --------

@dataclass(frozen=True)
class SelectionChangedPayload:
    selected_action_id: Optional[str]
    multi_selected_ids: List[str]
    selected_connection_id: Optional[str]


@dataclass(frozen=True)
class LinkingChangedPayload:
    active: bool
    source_id: Optional[str] = None


# -------- scenario / project --------

@dataclass(frozen=True)
class ScenarioChangedPayload:
    active_id: str
    ids: List[str]


@dataclass(frozen=True)
class ProjectLoadedPayload:
    source: str  # "import" | "share" | "png" | "local"
    active_id: str


# -------- warning --------

@dataclass(frozen=True)
class WarningPayload:
    msg: str
    code: str = ""
