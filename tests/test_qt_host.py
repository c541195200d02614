# tests/test_qt_host.py
from __future__ import annotations

import os
from typing import List

import pytest

pytest.importorskip("PySide6")

os.environ.setdefault("QT_QPA_PLATFORM", "offscreen")

from PySide6.QtWidgets import QApplication  # noqa: E402

from endaxis_core.event_types import EventType  # noqa: E402
from endaxis_core.events.payloads import WarningPayload  # noqa: E402
from qtui.event_pump import QtEventPump  # noqa: E402
from qtui.host_window import PlannerHostWindow  # noqa: E402


@pytest.fixture(scope="module")
def qapp():
    app = QApplication.instance() or QApplication([])
    yield app


def test_pump_turns_events_into_signals(qapp, services, make_action) -> None:
    """提交、选择、连线、警告事件都被转成 Qt 信号；每次 tick 后调用 flush。"""
    flushes: List[int] = []
    pump = QtEventPump(bus=services.bus, flush=lambda: flushes.append(1))

    state: List[int] = []
    linking: List[bool] = []
    warnings: List[str] = []
    pump.stateChanged.connect(lambda: state.append(1))
    pump.linkingChanged.connect(linking.append)
    pump.warningRaised.connect(warnings.append)

    a = services.timeline.add_skill_to_track("alpha", make_action(), 1.0)
    services.selection.select_action(a.instance_id)
    services.linking.start_linking()
    services.timeline.change_track_operator(1, "alpha")

    n = pump.pump_once()
    assert n >= 4
    assert state == [1]
    assert linking == [True]
    assert len(warnings) == 1
    assert flushes == [1]

    pump.stop()
    services.bus.post_payload(EventType.WARNING, WarningPayload(msg="after stop"))
    pump.pump_once()
    assert len(warnings) == 1
    assert not pump.running


def test_pump_survives_handler_and_flush_errors(qapp, services) -> None:
    def bad_flush() -> None:
        raise OSError("disk gone")

    errors: List[str] = []
    pump = QtEventPump(bus=services.bus, flush=bad_flush, on_handler_error=lambda ev, e: errors.append(str(e)))

    def broken(_ev) -> None:
        raise RuntimeError("boom")

    services.bus.subscribe(EventType.WARNING, broken)
    services.bus.post_payload(EventType.WARNING, WarningPayload(msg="x"))
    assert pump.pump_once() == 1
    assert errors == ["boom"]
    pump.stop()


class _SilentBox:
    @staticmethod
    def warning(*_a, **_k) -> None:
        return None

    @staticmethod
    def critical(*_a, **_k) -> None:
        return None


def test_host_window_status_follows_scenarios(qapp, services, monkeypatch) -> None:
    pump = QtEventPump(bus=services.bus)
    win = PlannerHostWindow(services=services, pump=pump)
    monkeypatch.setattr("qtui.host_window.QMessageBox", _SilentBox)

    services.scenarios.add_scenario("第二套")
    pump.pump_once()
    assert win.status._lbl_scenario.text() == "方案: 第二套"
    assert win.status._lbl_history.text() == "历史: 1/1"

    for _ in range(11):
        services.scenarios.add_scenario()
    pump.pump_once()
    assert win.status.status_text.startswith("错误: ")

    pump.stop()
    win.close()
