# rotation_planner/core/services/app_services.py
from __future__ import annotations

import logging
from pathlib import Path
from typing import Optional

from endaxis_core.event_bus import EventBus
from endaxis_core.idgen import IdProvider
from endaxis_core.io.json_store import JsonStoreError

from rotation_planner.core.config import PlannerConfig
from rotation_planner.core.context import PlannerContext
from rotation_planner.core.errors import ProjectImportError
from rotation_planner.core.gamedata import load_game_data
from rotation_planner.core.persistence import AutoSaver, LocalSnapshotStore
from rotation_planner.sim import ResourceSimulator, SimInput

from .history_service import HistoryService
from .library_service import LibraryService
from .linking_service import LinkingService
from .project_io_service import ProjectIOService
from .scenario_service import ScenarioService
from .selection_service import SelectionService
from .timeline_edit_service import TimelineEditService

log = logging.getLogger(__name__)


class PlannerServices:
    """
    服务门面：持有唯一的 PlannerContext，并把它显式注入每个服务。
    UI 只通过这里发命令、读推演结果。
    """

    def __init__(self, *, ctx: PlannerContext) -> None:
        self.ctx = ctx
        self.history = HistoryService(ctx=ctx)
        self.timeline = TimelineEditService(ctx=ctx, history=self.history)
        self.library = LibraryService(ctx=ctx, history=self.history)
        self.selection = SelectionService(ctx=ctx, history=self.history)
        self.linking = LinkingService(ctx=ctx, history=self.history)
        self.scenarios = ScenarioService(ctx=ctx, history=self.history)
        self.io = ProjectIOService(ctx=ctx, history=self.history, scenarios=self.scenarios)
        self.autosaver: Optional[AutoSaver] = None

    @property
    def bus(self) -> EventBus:
        return self.ctx.bus

    # ---------- 撤销 / 重做 ----------

    def undo(self) -> bool:
        return self.history.undo()

    def redo(self) -> bool:
        return self.history.redo()

    # ---------- 推演 ----------

    def simulator(self) -> ResourceSimulator:
        return ResourceSimulator(SimInput.from_context(self.ctx))

    # ---------- 启动 ----------

    def initialize(self) -> None:
        """
        无可恢复状态时的初始化：保证存在一个方案，并建立历史的第一条记录。
        """
        self.scenarios.ensure_initial()
        self.history.reset("initial_load")
        self.ctx.publish_scenarios()

    def restore_local(self, store: LocalSnapshotStore) -> bool:
        """
        从本地快照恢复；没有快照或快照无效时返回 False（只记日志）。
        """
        data = store.load()
        if data is None:
            return False
        try:
            self.io.import_document(data, source="local")
        except ProjectImportError:
            log.warning("local snapshot ignored: %s", store.path, exc_info=True)
            return False
        return True

    def attach_autosaver(self, store: LocalSnapshotStore) -> AutoSaver:
        if self.autosaver is not None:
            self.autosaver.stop()
        self.autosaver = AutoSaver(
            bus=self.ctx.bus,
            store=store,
            build_document=self.io.export_document,
            enabled=self.ctx.config.autosave,
        )
        self.autosaver.start()
        return self.autosaver

    def flush_autosave(self) -> bool:
        if self.autosaver is None:
            return False
        return self.autosaver.flush()


def build_planner(
    *,
    app_data_dir: Path,
    config: Optional[PlannerConfig] = None,
    game_data_path: Optional[Path] = None,
    ids: Optional[IdProvider] = None,
    bus: Optional[EventBus] = None,
) -> PlannerServices:
    """
    组装应用：
    1) 读取角色数据库（失败时以空角色库继续）
    2) 尝试恢复本地快照，否则初始化一个空方案
    3) 挂上自动保存
    """
    cfg = config or PlannerConfig()
    ctx = PlannerContext(config=cfg, bus=bus or EventBus())
    if ids is not None:
        ctx.ids = ids

    if game_data_path is not None:
        try:
            gd = load_game_data(game_data_path, base=ctx.constants)
        except JsonStoreError:
            log.exception("game data unavailable, continuing with empty roster: %s", game_data_path)
        else:
            ctx.roster = gd.roster
            ctx.constants = gd.constants

    services = PlannerServices(ctx=ctx)
    store = LocalSnapshotStore(app_data_dir / "local_storage", key=cfg.autosave_key)

    if not services.restore_local(store):
        services.initialize()

    if cfg.autosave:
        services.attach_autosaver(store)
    return services
