# tests/test_logging.py
from __future__ import annotations

import logging
import sys
import threading
from pathlib import Path

from endaxis_core.logging_context import action_var, corr_id_var, log_context, operation_context, scenario_var
from endaxis_core.logging_setup import setup_logging


def test_setup_logging_writes_context_fields(tmp_path: Path) -> None:
    """上下文字段在调用线程注入；stop() 后恢复 root handlers 与异常钩子。"""
    root = logging.getLogger()
    before_handlers = list(root.handlers)
    before_hook = sys.excepthook
    before_thread_hook = threading.excepthook

    rt = setup_logging(app_data_dir=tmp_path, level="INFO")
    try:
        log = logging.getLogger("tests.logging")
        with log_context(corr_id="abc123", scenario="sc_9"):
            log.info("scenario switched")
        log.error("write failed", extra={"action": "export"})
        log.debug("not written")
    finally:
        rt.stop()

    text = rt.app_log.read_text(encoding="utf-8")
    assert "corr=abc123 scenario=sc_9 action=- - scenario switched" in text
    assert "action=boot" in text
    assert "not written" not in text

    errors = rt.error_log.read_text(encoding="utf-8")
    assert "action=export - write failed" in errors
    assert "scenario switched" not in errors

    assert root.handlers == before_handlers
    assert sys.excepthook is before_hook
    assert threading.excepthook is before_thread_hook


def test_operation_context_assigns_fresh_corr_id() -> None:

    with operation_context("import_file", scenario="sc_1") as cid:
        assert corr_id_var.get() == cid
        assert len(cid) == 12
        assert action_var.get() == "import_file"
        assert scenario_var.get() == "sc_1"
        with operation_context("export_file") as inner:
            assert inner != cid
            assert scenario_var.get() == "sc_1"
        assert corr_id_var.get() == cid
    assert corr_id_var.get() == "-"
    assert action_var.get() == "-"
