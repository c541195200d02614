# rotation_planner/core/models/project.py
from __future__ import annotations

from dataclasses import dataclass, field
from typing import Any, Dict, List

from endaxis_core.models.common import as_dict, as_int, as_list, as_str
from .constants import SystemConstants
from .scenario import ScenarioEntry

PROJECT_FORMAT_VERSION = "2.1.0"


class ProjectFormatError(ValueError):
    """项目文档结构不合法（缺少 scenarioList 等）。"""


@dataclass
class ProjectDocument:
    """
    项目文档（导出文件 / 本地快照 / 分享码 / PNG 元数据共用同一形状）：

    - timestamp        : 导出时间（Unix 毫秒）
    - version          : 格式版本
    - scenario_list    : 方案列表
    - active_scenario_id
    - system_constants
    """
    timestamp: int = 0
    version: str = PROJECT_FORMAT_VERSION
    scenario_list: List[ScenarioEntry] = field(default_factory=list)
    active_scenario_id: str = ""
    system_constants: SystemConstants = field(default_factory=SystemConstants)

    @staticmethod
    def from_dict(d: Any) -> "ProjectDocument":
        """
        严格校验：根必须是对象，且包含非空的 scenarioList；否则抛 ProjectFormatError。
        activeScenarioId 不在列表中时回退到第一个方案。
        """
        if not isinstance(d, dict):
            raise ProjectFormatError("project document root must be an object")
        raw_list = d.get("scenarioList")
        if not isinstance(raw_list, list):
            raise ProjectFormatError("project document is missing scenarioList")

        entries: List[ScenarioEntry] = []
        seen: set[str] = set()
        for item in as_list(raw_list):
            e = ScenarioEntry.from_dict(item)
            if e is None or e.id in seen:
                continue
            seen.add(e.id)
            entries.append(e)
        if not entries:
            raise ProjectFormatError("scenarioList contains no valid scenario")

        active = as_str(d.get("activeScenarioId", ""))
        if active not in seen:
            active = entries[0].id

        return ProjectDocument(
            timestamp=as_int(d.get("timestamp", 0), 0),
            version=as_str(d.get("version", PROJECT_FORMAT_VERSION)) or PROJECT_FORMAT_VERSION,
            scenario_list=entries,
            active_scenario_id=active,
            system_constants=SystemConstants.from_dict(as_dict(d.get("systemConstants"))),
        )

    def to_dict(self) -> Dict[str, Any]:
        return {
            "timestamp": int(self.timestamp),
            "version": self.version,
            "scenarioList": [e.to_dict() for e in self.scenario_list],
            "activeScenarioId": self.active_scenario_id,
            "systemConstants": self.system_constants.to_dict(),
        }
