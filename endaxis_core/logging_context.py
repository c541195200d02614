# endaxis_core/logging_context.py
from __future__ import annotations

from contextlib import contextmanager
from contextvars import ContextVar
from typing import Iterator
from uuid import uuid4

# ContextFilter 把这三个字段写进每条日志
corr_id_var: ContextVar[str] = ContextVar("corr_id", default="-")
scenario_var: ContextVar[str] = ContextVar("scenario", default="-")
action_var: ContextVar[str] = ContextVar("action", default="-")


def new_corr_id() -> str:
    return uuid4().hex[:12]


@contextmanager
def log_context(
    *,
    corr_id: str | None = None,
    scenario: str | None = None,
    action: str | None = None,
) -> Iterator[None]:
    """
    临时设置日志上下文字段；None 表示沿用外层的值。退出时按相反顺序还原。
    """
    tokens = []
    try:
        if corr_id is not None:
            tokens.append((corr_id_var, corr_id_var.set(corr_id)))
        if scenario is not None:
            tokens.append((scenario_var, scenario_var.set(scenario)))
        if action is not None:
            tokens.append((action_var, action_var.set(action)))
        yield
    finally:
        for var, tok in reversed(tokens):
            var.reset(tok)


@contextmanager
def operation_context(action: str, *, scenario: str | None = None) -> Iterator[str]:
    """
    一次外部 I/O 操作（导入 / 导出）的日志上下文：分配新的 corr_id 并产出它，
    操作过程中的所有日志（包括失败时的 warning）都能用同一个 corr 串起来。
    """
    cid = new_corr_id()
    with log_context(corr_id=cid, scenario=scenario, action=action):
        yield cid
