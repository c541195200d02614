# rotation_planner/core/config.py
from __future__ import annotations

import logging
from dataclasses import dataclass
from pathlib import Path
from typing import Any, Dict

from endaxis_core.io.json_store import JsonStoreError, atomic_write_json, ensure_dir, read_json
from endaxis_core.models.common import as_bool, as_dict, as_float, as_int, as_str, clamp_int

log = logging.getLogger(__name__)

CONFIG_FILENAME = "config.json"


@dataclass
class PlannerConfig:
    """
    规划器运行配置（非项目数据，不随项目文件导出）：

    - total_duration      : 时间轴总长（秒），推演曲线补齐到这里
    - max_history         : 撤销栈上限
    - max_scenarios       : 方案数量上限
    - paste_default_offset: 无光标时间时粘贴的默认偏移（秒）
    - autosave / autosave_key : 本地快照开关与键名
    - log_level           : 日志级别
    """
    total_duration: float = 120.0
    max_history: int = 50
    max_scenarios: int = 10
    paste_default_offset: float = 2.0
    autosave: bool = True
    autosave_key: str = "endaxis_autosave"
    log_level: str = "INFO"

    @staticmethod
    def from_dict(d: Dict[str, Any]) -> "PlannerConfig":
        d = as_dict(d)
        total = as_float(d.get("total_duration", 120.0), 120.0)
        return PlannerConfig(
            total_duration=total if total > 0 else 120.0,
            max_history=clamp_int(as_int(d.get("max_history", 50), 50), 1, 1000),
            max_scenarios=clamp_int(as_int(d.get("max_scenarios", 10), 10), 1, 100),
            paste_default_offset=as_float(d.get("paste_default_offset", 2.0), 2.0),
            autosave=as_bool(d.get("autosave", True), True),
            autosave_key=as_str(d.get("autosave_key", "endaxis_autosave"), "endaxis_autosave") or "endaxis_autosave",
            log_level=as_str(d.get("log_level", "INFO"), "INFO").upper() or "INFO",
        )

    def to_dict(self) -> Dict[str, Any]:
        return {
            "total_duration": float(self.total_duration),
            "max_history": int(self.max_history),
            "max_scenarios": int(self.max_scenarios),
            "paste_default_offset": float(self.paste_default_offset),
            "autosave": bool(self.autosave),
            "autosave_key": self.autosave_key,
            "log_level": self.log_level,
        }


def load_config(app_data_dir: Path) -> PlannerConfig:
    """
    读取 app_data/config.json：

    - 文件不存在：写出一份默认配置后返回默认值
    - 文件损坏：记 WARNING，以默认值继续（不覆盖原文件，留给用户修复）
    - 缺失的键补默认值，越界的值按 from_dict 的规则收紧
    """
    path = app_data_dir / CONFIG_FILENAME
    existed = path.exists()
    try:
        data = read_json(path, default={})
    except JsonStoreError as e:
        log.warning("config unreadable, using defaults: %s", e)
        return PlannerConfig()

    cfg = PlannerConfig.from_dict(data)
    if not existed:
        try:
            ensure_dir(app_data_dir)
            atomic_write_json(path, cfg.to_dict())
        except JsonStoreError:
            log.exception("failed to write default config: %s", path)
    return cfg
