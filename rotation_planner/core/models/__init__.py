from __future__ import annotations

from .action import CATEGORIES, ActionInstance, DamageTick, EffectCell
from .track import TRACK_COUNT, Track, empty_tracks
from .connection import Connection
from .constants import SystemConstants
from .roster import CATEGORY_SCHEMAS, BASE_CATEGORIES, CharacterInfo, SkillSpec, VariantSpec
from .scenario import ScenarioData, ScenarioEntry
from .project import PROJECT_FORMAT_VERSION, ProjectDocument, ProjectFormatError

__all__ = [
    "CATEGORIES",
    "ActionInstance",
    "DamageTick",
    "EffectCell",
    "TRACK_COUNT",
    "Track",
    "empty_tracks",
    "Connection",
    "SystemConstants",
    "CATEGORY_SCHEMAS",
    "BASE_CATEGORIES",
    "CharacterInfo",
    "SkillSpec",
    "VariantSpec",
    "ScenarioData",
    "ScenarioEntry",
    "PROJECT_FORMAT_VERSION",
    "ProjectDocument",
    "ProjectFormatError",
]
