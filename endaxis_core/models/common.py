from __future__ import annotations

import math
from typing import Any, Dict, List, Optional


def as_dict(v: Any) -> Dict[str, Any]:
    return v if isinstance(v, dict) else {}


def as_list(v: Any) -> List[Any]:
    return v if isinstance(v, list) else []


def as_str(v: Any, default: str = "") -> str:
    if v is None:
        return default
    if isinstance(v, str):
        return v
    return str(v)


def as_opt_str(v: Any) -> Optional[str]:
    if v is None:
        return None
    s = as_str(v).strip()
    return s or None


def as_int(v: Any, default: int = 0) -> int:
    try:
        if v is None:
            return default
        return int(v)
    except (TypeError, ValueError):
        return default


def as_float(v: Any, default: float = 0.0) -> float:
    """
    宽松浮点转换：None / 非数字 / NaN / inf 一律回退为 default。
    bool 视为 0/1（与 as_int 一致）。
    """
    try:
        if v is None:
            return default
        f = float(v)
    except (TypeError, ValueError):
        return default
    if math.isnan(f) or math.isinf(f):
        return default
    return f


def as_opt_float(v: Any) -> Optional[float]:
    if v is None:
        return None
    f = as_float(v, math.nan)
    return None if math.isnan(f) else f


def as_bool(v: Any, default: bool = False) -> bool:
    if isinstance(v, bool):
        return v
    if isinstance(v, int):
        return v != 0
    if isinstance(v, str):
        s = v.strip().lower()
        if s in ("1", "true", "yes", "y", "on"):
            return True
        if s in ("0", "false", "no", "n", "off"):
            return False
    return default


def clamp_int(v: int, lo: int, hi: int) -> int:
    if v < lo:
        return lo
    if v > hi:
        return hi
    return v
