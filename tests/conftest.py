# tests/conftest.py
from __future__ import annotations

import sys
from pathlib import Path
from typing import Any, Callable, Dict, List

import pytest

# 项目根目录 = tests 上一层目录
ROOT = Path(__file__).resolve().parents[1]

# 确保项目根在 sys.path 中，方便 `import rotation_planner` 等绝对导入
root_str = str(ROOT)
if root_str not in sys.path:
    sys.path.insert(0, root_str)

from endaxis_core.idgen import SequentialIdGenerator  # noqa: E402
from rotation_planner.core.context import PlannerContext  # noqa: E402
from rotation_planner.core.gamedata import GameData, parse_game_data  # noqa: E402
from rotation_planner.core.models import ActionInstance  # noqa: E402
from rotation_planner.core.services import PlannerServices  # noqa: E402


# ---------- 角色数据 ----------

def sample_game_data_dict() -> Dict[str, Any]:
    """
    三个角色：
    - alpha: 灼热，战技带一个效果格子，终结技能量上限 120，有一个变体
    - beta : 寒冷，不接收队友终结技能量
    - gamma: 只有默认字段
    """
    return {
        "SYSTEM_CONSTANTS": {
            "MAX_SP": 300,
            "INITIAL_SP": 200,
            "SP_REGEN_PER_SEC": 8,
            "SKILL_SP_COST_DEFAULT": 100,
            "MAX_STAGGER": 100,
        },
        "characterRoster": [
            {"id": "gamma", "name": "Gamma", "rarity": 4},
            {
                "id": "alpha",
                "name": "Alpha",
                "rarity": 6,
                "element": "blaze",
                "attack_duration": 4,
                "attack_spGain": 20,
                "attack_stagger": 10,
                "skill_duration": 2,
                "skill_teamGaugeGain": 15,
                "skill_anomalies": [[{"type": "blaze_attach", "offset": 0.5, "stagger": 5}]],
                "link_duration": 1,
                "link_gaugeGain": 10,
                "ultimate_duration": 3,
                "ultimate_gaugeMax": 120,
                "variants": [{"id": "skill_enh", "name": "强化战技", "duration": 2, "spCost": 50}],
            },
            {
                "id": "beta",
                "name": "Beta",
                "rarity": 5,
                "element": "cryo",
                "accept_team_gauge": False,
                "skill_spCost": 80,
                "skill_duration": 1.5,
            },
        ],
    }


@pytest.fixture
def game_data() -> GameData:
    return parse_game_data(sample_game_data_dict())


@pytest.fixture
def ctx(game_data: GameData) -> PlannerContext:
    """
    确定性 ID 的上下文；前三条轨道分别指派 alpha / beta / gamma。
    """
    c = PlannerContext(ids=SequentialIdGenerator())
    c.roster = game_data.roster
    c.constants = game_data.constants
    for track, op in zip(c.tracks, ["alpha", "beta", "gamma"]):
        track.id = op
    c.active_track_id = "alpha"
    return c


@pytest.fixture
def services(ctx: PlannerContext) -> PlannerServices:
    s = PlannerServices(ctx=ctx)
    s.initialize()
    ctx.bus.drain()
    return s


@pytest.fixture
def make_action() -> Callable[..., ActionInstance]:
    """
    构造一个动作模板（未放置，instance_id 为空）。
    """
    def _make(**kw: Any) -> ActionInstance:
        props: Dict[str, Any] = {"id": "tpl", "type": "attack", "name": "A", "duration": 1.0}
        props.update(kw)
        return ActionInstance.from_dict(props)

    return _make


@pytest.fixture
def drain_types(ctx: PlannerContext) -> Callable[[], List[str]]:
    """取出总线上积压的事件类型（不分发）。"""
    def _drain() -> List[str]:
        return [ev.type.value for ev in ctx.bus.drain()]

    return _drain
