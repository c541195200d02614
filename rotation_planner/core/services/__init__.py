from __future__ import annotations

from .history_service import HistoryService
from .timeline_edit_service import ALIGN_MODES, TimelineEditService
from .library_service import LibraryService, global_skill_id
from .selection_service import SelectionService
from .linking_service import LinkingService
from .scenario_service import ScenarioService
from .project_io_service import PNG_METADATA_KEY, ProjectIOService, default_export_filename
from .app_services import PlannerServices, build_planner

__all__ = [
    "HistoryService",
    "ALIGN_MODES",
    "TimelineEditService",
    "LibraryService",
    "global_skill_id",
    "SelectionService",
    "LinkingService",
    "ScenarioService",
    "PNG_METADATA_KEY",
    "ProjectIOService",
    "default_export_filename",
    "PlannerServices",
    "build_planner",
]
