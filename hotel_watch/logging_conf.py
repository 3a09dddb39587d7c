"""Log setup for hotel-watch.

Events are emitted through structlog and rendered by stdlib handlers as one
JSON object per line. The application logger writes to the console,
``logs/monitor.log`` and ``logs/error.log`` under the working home, and every
monitored hotel also gets ``logs/sources/<slug>.log``.
"""

from __future__ import annotations

import logging
import logging.config
import os
from pathlib import Path
from typing import Any, Iterable

import structlog

from .config.loader import ENV_HOME, _slugify

APP_LOGGER = "hotel_watch"
JSON_LINE_FORMAT = "%(asctime)s %(levelname)s %(name)s %(message)s"

_configured = False


def log_root() -> Path:
    """``$HOTEL_WATCH_HOME/logs``, or ``./logs`` when the variable is unset."""

    home = os.environ.get(ENV_HOME)
    base = Path(home).expanduser() if home else Path.cwd()
    return base.resolve() / "logs"


def monitor_log_path() -> Path:
    return log_root() / "monitor.log"


def error_log_path() -> Path:
    return log_root() / "error.log"


def source_log_path(source_name: str) -> Path:
    slug = _slugify(source_name) or "source"
    return log_root() / "sources" / f"{slug}.log"


def _dict_config(level: str) -> dict[str, Any]:
    def file_handler(path: Path, handler_level: str) -> dict[str, Any]:
        return {
            "class": "logging.FileHandler",
            "level": handler_level,
            "filename": str(path),
            "formatter": "json_line",
            "encoding": "utf-8",
        }

    return {
        "version": 1,
        "disable_existing_loggers": False,
        "formatters": {
            "json_line": {
                "()": "pythonjsonlogger.jsonlogger.JsonFormatter",
                "fmt": JSON_LINE_FORMAT,
                "json_ensure_ascii": False,
            }
        },
        "handlers": {
            "stderr": {"class": "logging.StreamHandler", "level": level, "formatter": "json_line"},
            "monitor": file_handler(monitor_log_path(), "INFO"),
            "errors": file_handler(error_log_path(), "ERROR"),
        },
        "loggers": {
            APP_LOGGER: {
                "handlers": ["stderr", "monitor", "errors"],
                "level": level,
                "propagate": False,
            },
        },
    }


def configure_logging(verbose: bool = False) -> structlog.BoundLogger:
    """Make sure the log files exist and install the handlers once per process.

    The level chosen by the first call sticks; later calls only recreate
    missing files and hand back the application logger.
    """

    global _configured
    (log_root() / "sources").mkdir(parents=True, exist_ok=True)
    monitor_log_path().touch(exist_ok=True)
    error_log_path().touch(exist_ok=True)

    if not _configured:
        logging.config.dictConfig(_dict_config("DEBUG" if verbose else "INFO"))
        structlog.configure(
            processors=[
                structlog.contextvars.merge_contextvars,
                structlog.processors.TimeStamper(fmt="iso"),
                structlog.stdlib.add_log_level,
                structlog.processors.StackInfoRenderer(),
                structlog.processors.format_exc_info,
                structlog.stdlib.ProcessorFormatter.wrap_for_formatter,
            ],
            logger_factory=structlog.stdlib.LoggerFactory(),
            cache_logger_on_first_use=True,
        )
        _configured = True
    return structlog.get_logger(APP_LOGGER)


def source_logger(source_name: str, verbose: bool = False) -> structlog.BoundLogger:
    """Logger bound to one hotel.

    Its events reach the application handlers and the hotel's own file.
    """

    configure_logging(verbose)
    path = source_log_path(source_name)
    name = f"{APP_LOGGER}.source.{path.stem}"
    target = logging.getLogger(name)
    attached = {getattr(handler, "baseFilename", None) for handler in target.handlers}
    if str(path) not in attached:
        handler = logging.FileHandler(path, encoding="utf-8")
        handler.setLevel(logging.INFO)
        app_handlers = logging.getLogger(APP_LOGGER).handlers
        if app_handlers:
            handler.setFormatter(app_handlers[0].formatter)
        target.addHandler(handler)
    return structlog.get_logger(name).bind(source=source_name)


def tail_log(path: Path, line_count: int = 100) -> list[str]:
    if line_count <= 0 or not path.exists():
        return []
    with path.open("r", encoding="utf-8", errors="ignore") as stream:
        return stream.readlines()[-line_count:]


def available_source_logs() -> Iterable[Path]:
    """Per-hotel log files, sorted by file name."""

    directory = log_root() / "sources"
    if not directory.is_dir():
        return []
    return sorted(directory.glob("*.log"))


__all__ = [
    "APP_LOGGER",
    "available_source_logs",
    "configure_logging",
    "log_root",
    "monitor_log_path",
    "source_log_path",
    "source_logger",
    "tail_log",
]
