# main.py
from pathlib import Path
import sys

from PySide6.QtWidgets import QApplication

from endaxis_core.logging_setup import setup_logging
from rotation_planner.core.config import load_config
from rotation_planner.core.services import build_planner
from qtui.event_pump import QtEventPump
from qtui.host_window import PlannerHostWindow


def main():
    app_data_dir = Path("app_data")
    config = load_config(app_data_dir)

    # 日志
    log_rt = setup_logging(app_data_dir=app_data_dir, level=config.log_level, console=False)

    # 角色数据库 + 本地快照恢复 + 自动保存
    game_data = app_data_dir / "gamedata.json"
    planner = build_planner(
        app_data_dir=app_data_dir,
        config=config,
        game_data_path=game_data if game_data.exists() else None,
    )

    # Qt 应用
    app = QApplication(sys.argv)

    pump = QtEventPump(bus=planner.bus, flush=planner.flush_autosave)
    win = PlannerHostWindow(services=planner, pump=pump)
    win.show()
    pump.start()

    try:
        app.exec()
    finally:
        pump.stop()
        log_rt.stop()


if __name__ == "__main__":
    main()
