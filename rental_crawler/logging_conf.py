"""structlog over stdlib logging, rendered as JSON lines."""

from __future__ import annotations

import logging
import logging.config
import os
from pathlib import Path
from typing import Iterable

import structlog
from pythonjsonlogger import jsonlogger

HOME_ENV_VAR = "RENTAL_CRAWLER_HOME"
ROOT_LOGGER = "rental_crawler"
JSON_FORMAT = "%(asctime)s %(levelname)s %(name)s %(message)s"

_configured = False


def log_dir() -> Path:
    """``$RENTAL_CRAWLER_HOME/logs``, or ``./logs`` when the variable is unset."""

    env_home = os.environ.get(HOME_ENV_VAR)
    root = Path(env_home).expanduser() if env_home else Path.cwd()
    return root / "logs"


def main_log_path() -> Path:
    return log_dir() / "crawler.log"


def subscription_log_path(subscription_name: str) -> Path:
    slug = "".join(ch.lower() if ch.isalnum() else "-" for ch in subscription_name).strip("-")
    return log_dir() / "subscriptions" / f"{slug or 'subscription'}.log"


def _file_handler(path: Path, level: str) -> dict:
    return {
        "class": "logging.FileHandler",
        "level": level,
        "filename": str(path),
        "formatter": "json",
        "encoding": "utf-8",
    }


def configure_logging(verbose: bool = False) -> structlog.BoundLogger:
    """Install handlers once per process and return the application logger.

    Console follows ``verbose``; ``crawler.log`` keeps INFO and above and
    ``error.log`` only errors.
    """

    global _configured
    if not _configured:
        directory = log_dir()
        (directory / "subscriptions").mkdir(parents=True, exist_ok=True)
        level = "DEBUG" if verbose else "INFO"
        logging.config.dictConfig(
            {
                "version": 1,
                "disable_existing_loggers": False,
                "formatters": {
                    "json": {"()": "pythonjsonlogger.jsonlogger.JsonFormatter", "fmt": JSON_FORMAT}
                },
                "handlers": {
                    "console": {
                        "class": "logging.StreamHandler",
                        "level": level,
                        "formatter": "json",
                    },
                    "crawler_file": _file_handler(directory / "crawler.log", "INFO"),
                    "error_file": _file_handler(directory / "error.log", "ERROR"),
                },
                "loggers": {
                    ROOT_LOGGER: {
                        "handlers": ["console", "crawler_file", "error_file"],
                        "level": level,
                        "propagate": False,
                    },
                },
            }
        )
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
    return structlog.get_logger(ROOT_LOGGER)


def subscription_logger(subscription_name: str, verbose: bool = False) -> structlog.BoundLogger:
    """Logger bound to one subscription; its events also land in a per-subscription file."""

    configure_logging(verbose)
    path = subscription_log_path(subscription_name)
    path.parent.mkdir(parents=True, exist_ok=True)

    # Child of ROOT_LOGGER, so events still reach the global handlers.
    py_logger = logging.getLogger(f"{ROOT_LOGGER}.subscription.{path.stem}")
    if not any(getattr(h, "baseFilename", None) == str(path) for h in py_logger.handlers):
        handler = logging.FileHandler(path, encoding="utf-8")
        handler.setLevel(logging.INFO)
        handler.setFormatter(jsonlogger.JsonFormatter(JSON_FORMAT))
        py_logger.addHandler(handler)

    return structlog.get_logger(py_logger.name).bind(subscription=subscription_name)


def tail_log(path: Path, line_count: int = 100) -> list[str]:
    if not path.exists():
        return []
    with path.open("r", encoding="utf-8", errors="ignore") as stream:
        return stream.readlines()[-line_count:]


def available_subscription_logs() -> Iterable[Path]:
    directory = log_dir() / "subscriptions"
    if not directory.exists():
        return []
    return sorted(directory.glob("*.log"))


__all__ = [
    "available_subscription_logs",
    "configure_logging",
    "log_dir",
    "main_log_path",
    "subscription_log_path",
    "subscription_logger",
    "tail_log",
]
