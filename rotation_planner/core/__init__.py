from __future__ import annotations

from .config import PlannerConfig
from .context import (
    EffectAnchor,
    EffectRef,
    SelectionState,
    LinkingSession,
    Clipboard,
    ClipboardItem,
    PlannerContext,
)
from .errors import PlannerError, ProjectImportError

__all__ = [
    "PlannerConfig",
    "EffectAnchor",
    "EffectRef",
    "SelectionState",
    "LinkingSession",
    "Clipboard",
    "ClipboardItem",
    "PlannerContext",
    "PlannerError",
    "ProjectImportError",
]
