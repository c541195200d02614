# rotation_planner/core/models/constants.py
from __future__ import annotations

from dataclasses import dataclass
from typing import Any, Dict

from endaxis_core.models.common import as_dict, as_float


@dataclass
class SystemConstants:
    """
    全局数值常量（所有方案共用，随项目文件保存）：

    - max_sp               : 技力上限
    - initial_sp           : 开场技力
    - sp_regen_rate        : 每秒自然回复
    - skill_sp_cost_default: 战技默认消耗（角色数据未给出时使用）
    - max_stagger          : 失衡上限（达到即破防）
    """
    max_sp: float = 300.0
    initial_sp: float = 200.0
    sp_regen_rate: float = 8.0
    skill_sp_cost_default: float = 100.0
    max_stagger: float = 100.0

    @staticmethod
    def from_dict(d: Dict[str, Any]) -> "SystemConstants":
        """项目文件中的 systemConstants（camelCase）。"""
        d = as_dict(d)
        base = SystemConstants()
        return SystemConstants(
            max_sp=_positive(d.get("maxSp"), base.max_sp),
            initial_sp=max(0.0, as_float(d.get("initialSp", base.initial_sp), base.initial_sp)),
            sp_regen_rate=max(0.0, as_float(d.get("spRegenRate", base.sp_regen_rate), base.sp_regen_rate)),
            skill_sp_cost_default=max(
                0.0, as_float(d.get("skillSpCostDefault", base.skill_sp_cost_default), base.skill_sp_cost_default)
            ),
            max_stagger=_positive(d.get("maxStagger"), base.max_stagger),
        )

    def merged_with_game_data(self, d: Dict[str, Any]) -> "SystemConstants":
        """
        gamedata.json 的 SYSTEM_CONSTANTS（大写键）覆盖当前值；缺失 / 非法的键保持不变。
        """
        d = as_dict(d)
        return SystemConstants(
            max_sp=_positive(d.get("MAX_SP"), self.max_sp),
            initial_sp=max(0.0, as_float(d.get("INITIAL_SP", self.initial_sp), self.initial_sp)),
            sp_regen_rate=max(0.0, as_float(d.get("SP_REGEN_PER_SEC", self.sp_regen_rate), self.sp_regen_rate)),
            skill_sp_cost_default=max(
                0.0, as_float(d.get("SKILL_SP_COST_DEFAULT", self.skill_sp_cost_default), self.skill_sp_cost_default)
            ),
            max_stagger=_positive(d.get("MAX_STAGGER"), self.max_stagger),
        )

    def to_dict(self) -> Dict[str, Any]:
        return {
            "maxSp": float(self.max_sp),
            "initialSp": float(self.initial_sp),
            "spRegenRate": float(self.sp_regen_rate),
            "skillSpCostDefault": float(self.skill_sp_cost_default),
            "maxStagger": float(self.max_stagger),
        }


def _positive(v: Any, default: float) -> float:
    f = as_float(v, default)
    return f if f > 0 else default
