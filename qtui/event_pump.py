# qtui/event_pump.py
from __future__ import annotations

import logging
from typing import Callable, List, Optional

from PySide6.QtCore import QObject, QTimer, Signal

from endaxis_core.event_bus import Event, EventBus
from endaxis_core.event_types import EventType

log = logging.getLogger(__name__)


class QtEventPump(QObject):
    """
    在 Qt 主线程上用 QTimer 周期性地排空 EventBus：

    - 把领域事件转成 Qt 信号，界面只连信号，不直接订阅总线
    - 每个 tick 排空后调用一次 flush（自动保存），tick 间隔即防抖粒度
    - handler 抛出的异常只记日志，不打断事件循环
    """

    stateChanged = Signal()
    selectionChanged = Signal()
    linkingChanged = Signal(bool)
    scenarioChanged = Signal(str)
    projectLoaded = Signal(str)
    warningRaised = Signal(str)

    def __init__(
        self,
        *,
        bus: EventBus,
        flush: Optional[Callable[[], object]] = None,
        tick_ms: int = 16,
        on_handler_error: Optional[Callable[[Event, BaseException], None]] = None,
        parent: QObject | None = None,
    ) -> None:
        super().__init__(parent)
        self._bus = bus
        self._flush = flush
        self._on_handler_error = on_handler_error
        self._unsubs: List[Callable[[], None]] = []

        self._timer = QTimer(self)
        self._timer.setInterval(int(max(5, tick_ms)))
        self._timer.timeout.connect(self.pump_once)

        self._wire()

    def _wire(self) -> None:
        sub = self._bus.subscribe
        self._unsubs = [
            sub(EventType.STATE_COMMITTED, lambda _ev: self.stateChanged.emit()),
            sub(EventType.HISTORY_RESTORED, lambda _ev: self.stateChanged.emit()),
            sub(EventType.SELECTION_CHANGED, lambda _ev: self.selectionChanged.emit()),
            sub(EventType.LINKING_CHANGED, lambda ev: self.linkingChanged.emit(bool(ev.payload.active))),
            sub(EventType.SCENARIO_CHANGED, lambda ev: self.scenarioChanged.emit(ev.payload.active_id)),
            sub(EventType.PROJECT_LOADED, self._on_project_loaded),
            sub(EventType.WARNING, lambda ev: self.warningRaised.emit(ev.payload.msg)),
        ]

    def _on_project_loaded(self, ev: Event) -> None:
        self.projectLoaded.emit(ev.payload.source)
        self.stateChanged.emit()

    # ---------- 生命周期 ----------

    @property
    def running(self) -> bool:
        return self._timer.isActive()

    def start(self) -> None:
        if not self._timer.isActive():
            self._timer.start()

    def stop(self) -> None:
        self._timer.stop()
        for unsub in self._unsubs:
            unsub()
        self._unsubs = []
        # 退出前把最后一批变更写掉
        self.pump_once()

    # ---------- tick ----------

    def _on_error_default(self, ev: Event, err: BaseException) -> None:
        log.error("Event handler failed: %s", getattr(ev.type, "value", ev.type), exc_info=err)

    def pump_once(self) -> int:
        """
        排空一次总线并执行 flush；返回本次分发的事件数。
        """
        n = 0
        try:
            on_err = self._on_handler_error or self._on_error_default
            n = self._bus.dispatch_pending(max_events=200, on_error=on_err)
        except Exception:
            log.exception("QtEventPump tick failed")

        if self._flush is not None:
            try:
                self._flush()
            except Exception:
                log.exception("QtEventPump flush failed")
        return n
