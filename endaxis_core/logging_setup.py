# endaxis_core/logging_setup.py
from __future__ import annotations

import logging
import logging.handlers
import queue
import sys
import threading
from dataclasses import dataclass, field
from pathlib import Path
from typing import Any, List

from endaxis_core.io.json_store import ensure_dir
from endaxis_core.logging_context import action_var, corr_id_var, scenario_var

LOG_FORMAT = (
    "%(asctime)s %(levelname)s "
    "[pid=%(process)d tid=%(thread)d] "
    "%(name)s:%(funcName)s:%(lineno)d "
    "corr=%(corr_id)s scenario=%(scenario)s action=%(action)s - %(message)s"
)


class ContextFilter(logging.Filter):
    """
    把 contextvars 中的 corr / scenario / action 写进 record。

    只在发起日志的线程上有意义：listener 线程里的 contextvars 永远是默认值，
    所以已经带有字段的 record 不再覆盖（extra={"action": ...} 同样优先）。
    """

    def filter(self, record: logging.LogRecord) -> bool:
        if not hasattr(record, "corr_id"):
            record.corr_id = corr_id_var.get()
        if not hasattr(record, "scenario"):
            record.scenario = scenario_var.get()
        if not hasattr(record, "action"):
            record.action = action_var.get()
        return True


@dataclass
class LoggingRuntime:
    """
    setup_logging 的返回值；stop() 停止 listener 并恢复安装前的 root handlers 与异常钩子。
    """
    listener: logging.handlers.QueueListener
    logs_dir: Path
    _prev_handlers: List[logging.Handler] = field(default_factory=list)
    _prev_level: int = logging.WARNING
    _prev_excepthook: Any = None
    _prev_thread_excepthook: Any = None
    _stopped: bool = False

    @property
    def app_log(self) -> Path:
        return self.logs_dir / "app.log"

    @property
    def error_log(self) -> Path:
        return self.logs_dir / "error.log"

    def stop(self) -> None:
        if self._stopped:
            return
        self._stopped = True

        # listener.stop() 会把队列里剩余的记录写完
        self.listener.stop()
        for h in self.listener.handlers:
            h.close()

        root = logging.getLogger()
        root.handlers[:] = list(self._prev_handlers)
        root.setLevel(self._prev_level)

        if self._prev_excepthook is not None:
            sys.excepthook = self._prev_excepthook
        if self._prev_thread_excepthook is not None:
            threading.excepthook = self._prev_thread_excepthook


def setup_logging(
    *,
    app_data_dir: Path,
    level: str = "INFO",
    keep_days_app: int = 14,
    keep_days_error: int = 30,
    console: bool = False,
) -> LoggingRuntime:
    logs_dir = app_data_dir / "logs"
    ensure_dir(logs_dir)

    log_q: queue.Queue[logging.LogRecord] = queue.Queue(maxsize=20_000)
    formatter = logging.Formatter(fmt=LOG_FORMAT)

    # 真正写文件的 handlers（只在 listener 线程执行）
    app_fh = logging.handlers.TimedRotatingFileHandler(
        filename=str(logs_dir / "app.log"),
        when="midnight",
        backupCount=int(keep_days_app),
        encoding="utf-8",
        utc=False,
    )
    app_fh.setLevel(logging.INFO)
    app_fh.setFormatter(formatter)

    err_fh = logging.handlers.TimedRotatingFileHandler(
        filename=str(logs_dir / "error.log"),
        when="midnight",
        backupCount=int(keep_days_error),
        encoding="utf-8",
        utc=False,
    )
    err_fh.setLevel(logging.ERROR)
    err_fh.setFormatter(formatter)

    handlers: list[logging.Handler] = [app_fh, err_fh]

    if console:
        ch = logging.StreamHandler(stream=sys.stderr)
        ch.setLevel(logging.DEBUG)
        ch.setFormatter(formatter)
        handlers.append(ch)

    # root logger 只挂 QueueHandler；上下文字段在调用线程上注入
    qh = logging.handlers.QueueHandler(log_q)
    qh.setLevel(logging.DEBUG)
    qh.addFilter(ContextFilter())

    root = logging.getLogger()
    runtime_prev_handlers = list(root.handlers)
    runtime_prev_level = root.level

    root.setLevel(getattr(logging, level.upper(), logging.INFO))
    root.handlers.clear()
    root.addHandler(qh)

    listener = logging.handlers.QueueListener(
        log_q,
        *handlers,
        respect_handler_level=True,
    )
    listener.start()

    runtime = LoggingRuntime(
        listener=listener,
        logs_dir=logs_dir,
        _prev_handlers=runtime_prev_handlers,
        _prev_level=runtime_prev_level,
        _prev_excepthook=sys.excepthook,
        _prev_thread_excepthook=threading.excepthook,
    )

    _install_global_exception_hooks()

    logging.getLogger(__name__).info(
        "logging initialized (level=%s, dir=%s)",
        level.upper(),
        logs_dir,
        extra={"action": "boot"},
    )
    return runtime


def _install_global_exception_hooks() -> None:
    log = logging.getLogger("unhandled")

    def excepthook(exc_type, exc, tb):
        log.critical("unhandled exception (main thread)", exc_info=(exc_type, exc, tb))

    sys.excepthook = excepthook

    def th_excepthook(args: threading.ExceptHookArgs):
        log.critical(
            "unhandled exception (thread)",
            extra={"action": "thread_excepthook"},
            exc_info=(args.exc_type, args.exc_value, args.exc_traceback),
        )

    threading.excepthook = th_excepthook
