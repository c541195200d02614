from __future__ import annotations

import json
import os
import shutil
import time
from dataclasses import dataclass
from pathlib import Path
from typing import Any, Dict, Optional
from uuid import uuid4


# -----------------------------
# Exceptions
# -----------------------------

@dataclass
class JsonStoreError(Exception):
    path: Path
    message: str
    cause: Optional[BaseException] = None

    def __str__(self) -> str:
        base = f"{self.message} (path={self.path})"
        if self.cause is not None:
            return f"{base}; cause={type(self.cause).__name__}: {self.cause}"
        return base


class JsonReadError(JsonStoreError):
    """文件存在但无法读取、不是合法 JSON，或根节点不是对象。"""


class JsonWriteError(JsonStoreError):
    """目录创建 / 序列化 / 写盘 / 替换任一步失败；原文件保持不变。"""


# -----------------------------
# Public helpers
# -----------------------------

def ensure_dir(dir_path: Path) -> None:
    try:
        dir_path.mkdir(parents=True, exist_ok=True)
    except OSError as e:
        raise JsonWriteError(path=dir_path, message="无法创建目录", cause=e) from e


def dump_json_text(data: Any, *, compact: bool = False, indent: Optional[int] = 2, sort_keys: bool = False) -> str:
    """
    统一的 JSON 文本化：中文不转义。

    compact=True 时去掉所有空白（分享码 / PNG 元数据），否则按 indent 缩进（项目文件 / 本地快照）。
    """
    if compact:
        return json.dumps(data, ensure_ascii=False, separators=(",", ":"), sort_keys=sort_keys)
    return json.dumps(data, ensure_ascii=False, indent=indent, sort_keys=sort_keys)


def read_json(path: Path, *, default: Optional[Dict[str, Any]] = None) -> Dict[str, Any]:
    """
    读取 JSON 对象：

    - 文件不存在或内容为空：返回 default 的浅拷贝（默认 {}）
    - 不是合法 JSON / 根节点不是对象：JsonReadError
    """
    fallback = dict(default or {})
    try:
        if not path.exists():
            return fallback
        raw = path.read_text(encoding="utf-8").strip()
    except (OSError, UnicodeDecodeError) as e:
        raise JsonReadError(path=path, message="读取文件失败", cause=e) from e

    if raw == "":
        return fallback

    try:
        data = json.loads(raw)
    except json.JSONDecodeError as e:
        raise JsonReadError(path=path, message="不是合法的 JSON", cause=e) from e

    if not isinstance(data, dict):
        raise JsonReadError(path=path, message="JSON 根节点必须是对象")
    return data


def atomic_write_json(
    path: Path,
    data: Dict[str, Any],
    *,
    backup: bool = False,
    indent: Optional[int] = 2,
    sort_keys: bool = False,
) -> None:
    """
    原子写入：先写同目录临时文件并 fsync，再 os.replace 覆盖目标。

    - backup=True 时覆盖前把旧文件复制为 <name>.bak
    - 任一步失败抛 JsonWriteError，目标文件保持原样，临时文件尽量清理
    """
    if not isinstance(data, dict):
        raise JsonWriteError(path=path, message="atomic_write_json 只接受 dict")

    parent = path.parent
    ensure_dir(parent)

    tmp_path = parent / f".{path.name}.{uuid4().hex}.tmp"
    bak_path = path.with_suffix(path.suffix + ".bak")

    try:
        payload = dump_json_text(data, indent=indent, sort_keys=sort_keys).encode("utf-8")

        with open(tmp_path, "wb") as f:
            f.write(payload)
            f.flush()
            os.fsync(f.fileno())

        if backup and path.exists():
            try:
                shutil.copy2(path, bak_path)
            except OSError as e:
                raise JsonWriteError(path=bak_path, message="创建备份文件失败", cause=e) from e

        os.replace(tmp_path, path)

    except JsonStoreError:
        raise
    except (OSError, TypeError, ValueError) as e:
        raise JsonWriteError(path=path, message="原子写入 JSON 失败", cause=e) from e
    finally:
        try:
            if tmp_path.exists():
                tmp_path.unlink(missing_ok=True)
        except OSError:
            pass


def now_ms() -> int:
    """
    当前 Unix 时间戳（毫秒），用于项目文档的 timestamp 字段。
    """
    return time.time_ns() // 1_000_000
