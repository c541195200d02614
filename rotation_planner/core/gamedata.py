# rotation_planner/core/gamedata.py
from __future__ import annotations

import logging
from dataclasses import dataclass, field
from pathlib import Path
from typing import Any, Dict, List

from endaxis_core.io.json_store import read_json
from endaxis_core.models.common import as_dict, as_list

from .models import CharacterInfo, SystemConstants

log = logging.getLogger(__name__)


@dataclass
class GameData:
    """
    静态角色数据库（gamedata.json）：
    - roster   : 角色列表，按稀有度降序
    - constants: 合并了 SYSTEM_CONSTANTS 的全局常量
    """
    roster: List[CharacterInfo] = field(default_factory=list)
    constants: SystemConstants = field(default_factory=SystemConstants)


def parse_game_data(data: Dict[str, Any], *, base: SystemConstants | None = None) -> GameData:
    data = as_dict(data)
    constants = (base or SystemConstants()).merged_with_game_data(as_dict(data.get("SYSTEM_CONSTANTS")))

    roster: List[CharacterInfo] = []
    seen: set[str] = set()
    for item in as_list(data.get("characterRoster")):
        ch = CharacterInfo.from_dict(item)
        if ch is None or ch.id in seen:
            continue
        seen.add(ch.id)
        roster.append(ch)

    # 稳定排序：同稀有度保持数据文件顺序
    roster.sort(key=lambda c: c.rarity, reverse=True)
    return GameData(roster=roster, constants=constants)


def load_game_data(path: Path, *, base: SystemConstants | None = None) -> GameData:
    """
    读取 gamedata.json；文件损坏时 read_json 抛 JsonReadError，由调用方决定是否继续。
    """
    data = read_json(path, default={})
    gd = parse_game_data(data, base=base)
    log.info("game data loaded: %d characters from %s", len(gd.roster), path)
    return gd
