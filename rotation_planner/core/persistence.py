# rotation_planner/core/persistence.py
from __future__ import annotations

import logging
import re
from pathlib import Path
from typing import Any, Callable, Dict, List, Optional

from endaxis_core.event_bus import Event, EventBus
from endaxis_core.event_types import PERSISTENT_EVENT_TYPES
from endaxis_core.io.json_store import JsonStoreError, atomic_write_json, ensure_dir, read_json

log = logging.getLogger(__name__)

_KEY_RE = re.compile(r"[^A-Za-z0-9_.-]")


class LocalSnapshotStore:
    """
    本地键值快照存储：app_data/local_storage/<key>.json

    - load(): 不存在 / 解析失败 -> None（视为"没有保存的状态"，只记日志）
    - save(): 原子写入；失败只记日志，不向上抛
    """

    def __init__(self, root_dir: Path, *, key: str) -> None:
        self._root = root_dir
        self._key = _KEY_RE.sub("_", (key or "").strip()) or "autosave"

    @property
    def path(self) -> Path:
        return self._root / f"{self._key}.json"

    def load(self) -> Optional[Dict[str, Any]]:
        try:
            if not self.path.exists():
                return None
            data = read_json(self.path, default={})
        except JsonStoreError:
            log.warning("local snapshot unreadable, ignored: %s", self.path, exc_info=True)
            return None
        return data or None

    def save(self, document: Dict[str, Any]) -> bool:
        try:
            ensure_dir(self._root)
            atomic_write_json(self.path, document, backup=False, indent=None)
        except (JsonStoreError, OSError, TypeError, ValueError):
            log.warning("local snapshot write failed: %s", self.path, exc_info=True)
            return False
        return True

    def clear(self) -> None:
        try:
            self.path.unlink(missing_ok=True)
        except OSError:
            log.warning("local snapshot delete failed: %s", self.path, exc_info=True)


class AutoSaver:
    """
    自动保存：
    - 订阅会改变持久数据的事件，只做"待保存"标记；
    - flush() 时构建一次项目文档并写入 LocalSnapshotStore。

    一次事件泵 tick 内的多次变更只写一次（宿主的变更通知粒度即防抖粒度）。
    """

    def __init__(
        self,
        *,
        bus: EventBus,
        store: LocalSnapshotStore,
        build_document: Callable[[], Dict[str, Any]],
        enabled: bool = True,
    ) -> None:
        self._bus = bus
        self._store = store
        self._build_document = build_document
        self._enabled = bool(enabled)
        self._pending = False
        self._unsubs: List[Callable[[], None]] = []

    @property
    def pending(self) -> bool:
        return self._pending

    def start(self) -> None:
        if self._unsubs:
            return
        for et in PERSISTENT_EVENT_TYPES:
            self._unsubs.append(self._bus.subscribe(et, self._on_event))

    def stop(self) -> None:
        for unsub in self._unsubs:
            unsub()
        self._unsubs.clear()

    def _on_event(self, _ev: Event) -> None:
        if self._enabled:
            self._pending = True

    def flush(self) -> bool:
        """
        有待保存的变更时写一次；返回是否真的写入成功。
        """
        if not self._pending:
            return False
        self._pending = False
        try:
            doc = self._build_document()
        except Exception:
            # 构建失败不影响内存状态，只记录
            log.exception("autosave: build document failed")
            return False
        return self._store.save(doc)
