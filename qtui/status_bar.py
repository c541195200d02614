# qtui/status_bar.py
from __future__ import annotations

from typing import Optional

from PySide6.QtCore import QTimer
from PySide6.QtWidgets import QLabel, QMainWindow, QStatusBar


class StatusController:
    """
    封装 QStatusBar：
    - 左侧：当前方案、历史位置（index/size）
    - 右侧：临时状态文本（支持 TTL 自动恢复为 "就绪"）
    """

    READY_TEXT = "就绪"

    def __init__(self, main_window: QMainWindow) -> None:
        self._bar: QStatusBar = main_window.statusBar()

        self._lbl_scenario = QLabel("方案: -")
        self._lbl_history = QLabel("历史: -")
        self._lbl_status = QLabel(self.READY_TEXT)

        self._bar.addWidget(self._lbl_scenario)
        self._bar.addWidget(self._lbl_history)
        self._bar.addPermanentWidget(self._lbl_status, 1)

        self._timer = QTimer(main_window)
        self._timer.setSingleShot(True)
        self._timer.timeout.connect(self._reset_status)

    def set_scenario(self, name: str) -> None:
        self._lbl_scenario.setText(f"方案: {name or '-'}")

    def set_history(self, index: int, size: int) -> None:
        self._lbl_history.setText(f"历史: {index + 1}/{size}" if size > 0 else "历史: -")

    def set_status(self, text: str, *, ttl_ms: Optional[int] = None) -> None:
        self._lbl_status.setText(text)
        self._timer.stop()
        if ttl_ms is not None and ttl_ms > 0:
            self._timer.start(ttl_ms)

    def info(self, msg: str, ttl_ms: int = 3000) -> None:
        s = (msg or "").strip()
        if not s:
            return
        self.set_status(s, ttl_ms=ttl_ms)

    def error(self, msg: str, ttl_ms: int = 6000) -> None:
        s = (msg or "").strip()
        if not s:
            return
        self.set_status(f"错误: {s}", ttl_ms=ttl_ms)

    @property
    def status_text(self) -> str:
        return self._lbl_status.text()

    def _reset_status(self) -> None:
        self._lbl_status.setText(self.READY_TEXT)
