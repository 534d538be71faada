"""Logging configuration built around structlog JSON logging."""

from __future__ import annotations

import logging
import logging.config
import os
from pathlib import Path
from typing import Iterable

import structlog

_LOGGING_INITIALISED = False


def default_log_dir() -> Path:
    env_root = os.environ.get("LAUNCH_WATCH_HOME")
    if env_root:
        return Path(env_root).expanduser().resolve() / "logs"
    return Path(__file__).resolve().parents[1] / "logs"


def configure_logging(verbose: bool = False) -> structlog.stdlib.BoundLogger:
    """Configure structlog + stdlib handlers and return application logger."""

    global _LOGGING_INITIALISED
    log_dir = default_log_dir()
    log_dir.mkdir(parents=True, exist_ok=True)
    error_log = log_dir / "error.log"
    watch_log = log_dir / "watch.log"
    error_log.touch(exist_ok=True)
    watch_log.touch(exist_ok=True)

    if not _LOGGING_INITIALISED:
        level = "DEBUG" if verbose else "INFO"
        logging.config.dictConfig(
            {
                "version": 1,
                "disable_existing_loggers": False,
                "formatters": {
                    "json": {
                        "()": "pythonjsonlogger.jsonlogger.JsonFormatter",
                        "fmt": "%(asctime)s %(levelname)s %(name)s %(message)s",
                    }
                },
                "handlers": {
                    "console": {
                        "class": "logging.StreamHandler",
                        "level": level,
                        "formatter": "json",
                    },
                    "watch_file": {
                        "class": "logging.FileHandler",
                        "level": "INFO",
                        "filename": str(watch_log),
                        "formatter": "json",
                        "encoding": "utf-8",
                    },
                    "error_file": {
                        "class": "logging.FileHandler",
                        "level": "ERROR",
                        "filename": str(error_log),
                        "formatter": "json",
                        "encoding": "utf-8",
                    },
                },
                "loggers": {
                    "launch_watch": {
                        "handlers": ["console", "watch_file", "error_file"],
                        "level": level,
                        "propagate": False,
                    },
                },
            }
        )

        # Event dicts become `extra` fields so the JSON formatter renders them flat.
        structlog.configure(
            processors=[
                structlog.contextvars.merge_contextvars,
                structlog.stdlib.filter_by_level,
                structlog.processors.TimeStamper(fmt="iso"),
                structlog.stdlib.add_log_level,
                structlog.processors.StackInfoRenderer(),
                structlog.processors.format_exc_info,
                structlog.stdlib.render_to_log_kwargs,
            ],
            logger_factory=structlog.stdlib.LoggerFactory(),
            wrapper_class=structlog.stdlib.BoundLogger,
            cache_logger_on_first_use=True,
        )
        _LOGGING_INITIALISED = True
    return structlog.get_logger("launch_watch")


def tail_log(path: Path, line_count: int = 100) -> list[str]:
    """Return the last N lines from a log file."""

    if not path.exists():
        return []
    with path.open("r", encoding="utf-8", errors="ignore") as stream:
        lines = stream.readlines()
    return lines[-line_count:]


def available_logs() -> Iterable[Path]:
    """Yield available log file paths."""

    log_dir = default_log_dir()
    if not log_dir.exists():
        return []
    return sorted(p for p in log_dir.glob("*.log"))


__all__ = ["available_logs", "configure_logging", "default_log_dir", "tail_log"]
