# qtui/host_window.py
from __future__ import annotations

import logging
from pathlib import Path
from typing import Callable

from PySide6.QtGui import QAction, QCloseEvent, QKeySequence
from PySide6.QtWidgets import QFileDialog, QMainWindow, QMessageBox

from rotation_planner.core.errors import PlannerError
from rotation_planner.core.services import PlannerServices, default_export_filename

from qtui.event_pump import QtEventPump
from qtui.status_bar import StatusController

log = logging.getLogger(__name__)


class PlannerHostWindow(QMainWindow):
    """
    规划器宿主窗口（不含时间轴绘制）：

    - 菜单：文件（导入 / 导出项目、PNG）、编辑（撤销 / 重做）、方案（新建 / 复制 / 删除）
    - 底部：StatusController 显示当前方案与历史位置
    - 所有状态刷新都来自 QtEventPump 的信号
    """

    def __init__(self, *, services: PlannerServices, pump: QtEventPump) -> None:
        super().__init__()
        self.services = services
        self.pump = pump

        self.setWindowTitle("Endaxis 排轴规划器")
        self.resize(960, 600)

        self.status = StatusController(self)

        self._setup_menus()

        pump.stateChanged.connect(self.refresh_status)
        pump.scenarioChanged.connect(lambda _sid: self.refresh_status())
        pump.projectLoaded.connect(lambda src: self.status.info(f"已载入项目（{src}）"))
        pump.warningRaised.connect(self._on_warning)

        self.refresh_status()

    # ---------- 菜单 ----------

    def _add_action(self, menu, text: str, slot: Callable[[], object], shortcut: str | None = None) -> QAction:
        act = QAction(text, self)
        if shortcut:
            act.setShortcut(QKeySequence(shortcut))
        act.triggered.connect(lambda _checked=False: slot())
        menu.addAction(act)
        return act

    def _setup_menus(self) -> None:
        bar = self.menuBar()

        m_file = bar.addMenu("文件")
        self._add_action(m_file, "导入项目…", self._import_json, "Ctrl+O")
        self._add_action(m_file, "导出项目…", self._export_json, "Ctrl+S")
        m_file.addSeparator()
        self._add_action(m_file, "从 PNG 导入…", self._import_png)
        self._add_action(m_file, "写入 PNG…", self._export_png)

        m_edit = bar.addMenu("编辑")
        self._add_action(m_edit, "撤销", self.services.undo, "Ctrl+Z")
        self._add_action(m_edit, "重做", self.services.redo, "Ctrl+Y")
        self._add_action(m_edit, "复制选中", self.services.selection.copy_selection, "Ctrl+C")
        self._add_action(m_edit, "粘贴", self.services.selection.paste_selection, "Ctrl+V")
        self._add_action(m_edit, "删除选中", self.services.timeline.remove_current_selection, "Delete")

        m_sc = bar.addMenu("方案")
        self._add_action(m_sc, "新建方案", self.services.scenarios.add_scenario)
        self._add_action(
            m_sc, "复制当前方案", lambda: self.services.scenarios.duplicate_scenario(self.services.scenarios.active_id)
        )
        self._add_action(
            m_sc, "删除当前方案", lambda: self.services.scenarios.delete_scenario(self.services.scenarios.active_id)
        )

    # ---------- 状态 ----------

    def refresh_status(self) -> None:
        ctx = self.services.ctx
        active = ctx.find_scenario(ctx.active_scenario_id)
        self.status.set_scenario(active.name if active is not None else "")
        self.status.set_history(self.services.history.index, self.services.history.size)

    def _on_warning(self, msg: str) -> None:
        self.status.error(msg)
        QMessageBox.warning(self, "提示", msg)

    # ---------- 文件 ----------

    def _run_io(self, what: str, fn: Callable[[], object]) -> None:
        try:
            fn()
        except PlannerError as e:
            log.warning("%s failed: %s", what, e)
            self.status.error(e.message)
            QMessageBox.critical(self, what, e.message)
        else:
            self.status.info(f"{what}完成")

    def _import_json(self) -> None:
        path, _ = QFileDialog.getOpenFileName(self, "导入项目", "", "JSON (*.json)")
        if path:
            self._run_io("导入项目", lambda: self.services.io.import_json_file(Path(path)))

    def _export_json(self) -> None:
        path, _ = QFileDialog.getSaveFileName(self, "导出项目", default_export_filename(), "JSON (*.json)")
        if path:
            self._run_io("导出项目", lambda: self.services.io.export_json_file(Path(path)))

    def _import_png(self) -> None:
        path, _ = QFileDialog.getOpenFileName(self, "从 PNG 导入", "", "PNG (*.png)")
        if path:
            self._run_io("PNG 导入", lambda: self.services.io.import_png(Path(path).read_bytes()))

    def _export_png(self) -> None:
        src, _ = QFileDialog.getOpenFileName(self, "选择底图", "", "PNG (*.png)")
        if not src:
            return
        dst, _ = QFileDialog.getSaveFileName(self, "保存为", src, "PNG (*.png)")
        if not dst:
            return

        def _do() -> None:
            Path(dst).write_bytes(self.services.io.export_png(Path(src).read_bytes()))

        self._run_io("写入 PNG", _do)

    # ---------- 关闭 ----------

    def closeEvent(self, event: QCloseEvent) -> None:
        try:
            self.pump.pump_once()
        except Exception:
            log.exception("final pump failed in PlannerHostWindow.closeEvent")
        super().closeEvent(event)
