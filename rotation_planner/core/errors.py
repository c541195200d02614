# rotation_planner/core/errors.py
from __future__ import annotations

from dataclasses import dataclass
from typing import Optional


@dataclass
class PlannerError(Exception):
    message: str
    cause: Optional[BaseException] = None

    def __str__(self) -> str:
        if self.cause is not None:
            return f"{self.message}; cause={type(self.cause).__name__}: {self.cause}"
        return self.message


class ProjectImportError(PlannerError):
    """
    外部输入（项目文件 / 分享码 / PNG）无法解析或结构不合法。
    抛出时内存状态保持不变。
    """


class ProjectExportError(PlannerError):
    """导出写盘 / 写入 PNG 失败。"""
