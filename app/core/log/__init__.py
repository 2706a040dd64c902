"""Logging setup for the charts API: rich console output plus an optional daily file."""
from __future__ import annotations

import logging
import os
from dataclasses import dataclass
from datetime import date, datetime
from logging.handlers import QueueHandler, QueueListener
from pathlib import Path
from queue import SimpleQueue
from threading import RLock
from typing import Optional

from rich.console import Console
from rich.logging import RichHandler
from rich.traceback import install as install_rich_traceback

from .context import ContextFilter, log_context
from .timing import timeit

__all__ = [
    "LoggingConfig",
    "init_logging",
    "get_logger",
    "set_level",
    "shutdown_logging",
    "log_context",
    "timeit",
]


@dataclass
class LoggingConfig:
    """Runtime options for the logging subsystem."""

    app_name: str = "charts"
    level: str | int = "INFO"
    log_dir: Optional[Path] = None
    console: bool = True
    rich_tracebacks: bool = True
    queue: bool = True


_config_lock = RLock()
_config: LoggingConfig | None = None
_listener: QueueListener | None = None
_context_filter = ContextFilter()


def _parse_level(level: str | int) -> int:
    if isinstance(level, int):
        return level
    return getattr(logging, str(level).upper(), logging.INFO)


class DailyFileHandler(logging.FileHandler):
    """File handler that rolls over to ``<YYYY_MM_DD>.log`` when the day changes."""

    def __init__(self, directory: Path, *, encoding: str = "utf-8") -> None:
        self.directory = directory
        self.directory.mkdir(parents=True, exist_ok=True)
        self._current_date: date = datetime.now().date()
        super().__init__(self._path_for(self._current_date), mode="a", encoding=encoding)

    def _path_for(self, day: date) -> Path:
        return self.directory / f"{day.strftime('%Y_%m_%d')}.log"

    def emit(self, record: logging.LogRecord) -> None:
        record_date = datetime.fromtimestamp(record.created).date()
        if record_date != self._current_date:
            self._current_date = record_date
            if self.stream:
                try:
                    self.stream.flush()
                finally:
                    self.stream.close()
            self.baseFilename = os.fspath(self._path_for(record_date))
            self.stream = self._open()
        super().emit(record)


def _build_handlers(cfg: LoggingConfig, level: int) -> list[logging.Handler]:
    handlers: list[logging.Handler] = []

    if cfg.rich_tracebacks:
        install_rich_traceback(show_locals=False)

    if cfg.console:
        console_handler = RichHandler(
            console=Console(stderr=True),
            rich_tracebacks=cfg.rich_tracebacks,
            show_path=False,
            markup=False,
            log_time_format="%Y-%m-%d %H:%M:%S",
        )
        console_handler.setLevel(level)
        console_handler.setFormatter(logging.Formatter("%(context)s%(message)s"))
        console_handler.addFilter(_context_filter)
        handlers.append(console_handler)

    if cfg.log_dir:
        file_handler = DailyFileHandler(Path(cfg.log_dir))
        file_handler.setLevel(level)
        file_handler.setFormatter(
            logging.Formatter(
                "%(asctime)s | %(levelname)-8s | %(name)s | %(context)s%(message)s",
                datefmt="%Y-%m-%d %H:%M:%S",
            )
        )
        file_handler.addFilter(_context_filter)
        handlers.append(file_handler)

    return handlers


def init_logging(**kwargs: object) -> None:
    """Install the shared handlers on the root logger.

    Repeated calls with the same options are no-ops; different options tear
    the previous listener down and rebuild the handlers.
    """

    global _config, _listener

    with _config_lock:
        cfg = LoggingConfig()
        for key, value in kwargs.items():
            if hasattr(cfg, key):
                setattr(cfg, key, value)  # type: ignore[arg-type]

        if _config is not None:
            if _config == cfg:
                return
            _teardown_locked()

        level = _parse_level(cfg.level)
        root = logging.getLogger()
        root.setLevel(logging.NOTSET)
        for handler in list(root.handlers):
            root.removeHandler(handler)

        handlers = _build_handlers(cfg, level)
        if cfg.queue and handlers:
            log_queue: SimpleQueue = SimpleQueue()
            queue_handler = QueueHandler(log_queue)
            queue_handler.setLevel(level)
            # Context must be captured on the calling thread, before the record is queued.
            queue_handler.addFilter(_context_filter)
            root.addHandler(queue_handler)
            _listener = QueueListener(log_queue, *handlers, respect_handler_level=True)
            _listener.start()
        else:
            for handler in handlers:
                root.addHandler(handler)

        _config = cfg


def _teardown_locked() -> None:
    global _listener, _config
    if _listener is not None:
        _listener.stop()
    _listener = None
    _config = None
    root = logging.getLogger()
    for handler in list(root.handlers):
        root.removeHandler(handler)
        handler.close()


def shutdown_logging() -> None:
    """Stop the queue listener and detach handlers."""

    with _config_lock:
        _teardown_locked()


def get_logger(name: str | None = None) -> logging.Logger:
    with _config_lock:
        if _config is None:
            init_logging()
        cfg = _config or LoggingConfig()
    return logging.getLogger(name or cfg.app_name)


def set_level(level: str | int) -> None:
    new_level = _parse_level(level)
    for handler in logging.getLogger().handlers:
        handler.setLevel(new_level)
