"""Structured logging for :mod:`sourcekit`.

Every component logs through structlog bound loggers that hand their event
dicts to the standard library. The root logger then fans out to a Rich
console handler on stderr and, when a log directory is known, a daily JSON
log file whose archives are gzip-compressed.
"""

from __future__ import annotations

import contextlib
import gzip
import logging
import os
import shutil
from logging.handlers import TimedRotatingFileHandler
from pathlib import Path
from typing import Any, Iterable, Sequence

from rich.console import Console
from rich.logging import RichHandler
import structlog

Logger = structlog.stdlib.BoundLogger

LOG_FILENAME = "sourcekit.log"
DEFAULT_RETENTION_DAYS = 7

# HTTP transport internals stay at WARNING or above.
DEFAULT_QUIET_LOGGERS = ("httpx", "httpcore")

_TIMESTAMPER = structlog.processors.TimeStamper(fmt="iso", utc=True)


def _shared_processors() -> list[Any]:
    return [
        structlog.contextvars.merge_contextvars,
        structlog.stdlib.add_logger_name,
        structlog.stdlib.add_log_level,
        _TIMESTAMPER,
    ]


def _resolve_level(level: str) -> int:
    """Map a level name such as ``"debug"`` to its :mod:`logging` constant.

    Raises:
        ValueError: If the name is not a standard logging level.
    """

    value = logging.getLevelName(level.strip().upper())
    if not isinstance(value, int):
        raise ValueError(f"Unsupported log level: {level!r}")
    return value


def _formatter(renderer: Any) -> structlog.stdlib.ProcessorFormatter:
    return structlog.stdlib.ProcessorFormatter(
        processors=[
            structlog.stdlib.ProcessorFormatter.remove_processors_meta,
            renderer,
        ],
        foreign_pre_chain=_shared_processors(),
    )


class CompressingFileHandler(TimedRotatingFileHandler):
    """Daily rotating log file whose rotated copies are gzip archives."""

    def __init__(self, path: Path, *, retention_days: int) -> None:
        super().__init__(
            path,
            when="midnight",
            backupCount=retention_days,
            utc=True,
            encoding="utf-8",
            delay=True,
        )
        self.namer = lambda name: f"{name}.gz"

    def rotate(self, source: str, dest: str) -> None:
        if not os.path.exists(source):
            return
        with open(source, "rb") as plain, gzip.open(dest, "wb") as packed:
            shutil.copyfileobj(plain, packed)
        os.unlink(source)


def _console_handler(level: int, console: Console | None) -> RichHandler:
    # stdout carries command output, so logs go to stderr.
    handler = RichHandler(
        console=console or Console(stderr=True),
        level=level,
        show_path=False,
        markup=False,
        rich_tracebacks=True,
        enable_link_path=False,
        log_time_format="%H:%M:%S",
    )
    handler.setFormatter(_formatter(structlog.dev.ConsoleRenderer(colors=False)))
    return handler


def _file_handler(
    log_dir: str | Path,
    level: int,
    retention_days: int,
) -> CompressingFileHandler:
    directory = Path(log_dir).expanduser().resolve(strict=False)
    directory.mkdir(parents=True, exist_ok=True)
    handler = CompressingFileHandler(
        directory / LOG_FILENAME,
        retention_days=retention_days,
    )
    handler.setLevel(level)
    handler.setFormatter(
        _formatter(structlog.processors.JSONRenderer(sort_keys=True))
    )
    return handler


def _install_handlers(handlers: Iterable[logging.Handler], level: int) -> None:
    root = logging.getLogger()
    for previous in list(root.handlers):
        root.removeHandler(previous)
        with contextlib.suppress(OSError, ValueError):
            previous.close()
    for handler in handlers:
        root.addHandler(handler)
    root.setLevel(level)


def configure_logging(
    *,
    level: str = "INFO",
    log_dir: str | Path | None = None,
    console: Console | None = None,
    retention_days: int = DEFAULT_RETENTION_DAYS,
    quiet_loggers: Sequence[str] = DEFAULT_QUIET_LOGGERS,
) -> None:
    """Route structlog and standard logging through the sourcekit handlers.

    Calling this again replaces the handlers installed by a previous call.

    Args:
        level: Level name for the root logger, case-insensitive.
        log_dir: Directory for ``sourcekit.log``; no file is written when
            omitted.
        console: Rich console receiving human-readable output. Defaults to
            one writing to stderr.
        retention_days: Number of compressed daily archives to keep.
        quiet_loggers: Third-party loggers held at WARNING unless ``level``
            is stricter.

    Raises:
        ValueError: If ``level`` is not a standard logging level name.
    """

    log_level = _resolve_level(level)

    structlog.reset_defaults()
    structlog.configure(
        processors=[
            *_shared_processors(),
            structlog.processors.StackInfoRenderer(),
            structlog.processors.format_exc_info,
            structlog.stdlib.ProcessorFormatter.wrap_for_formatter,
        ],
        logger_factory=structlog.stdlib.LoggerFactory(),
        wrapper_class=structlog.stdlib.BoundLogger,
        cache_logger_on_first_use=True,
    )

    handlers: list[logging.Handler] = [_console_handler(log_level, console)]
    if log_dir is not None:
        handlers.append(_file_handler(log_dir, log_level, retention_days))
    _install_handlers(handlers, log_level)

    for name in quiet_loggers:
        logging.getLogger(name).setLevel(max(log_level, logging.WARNING))

    logging.captureWarnings(True)


def get_logger(name: str | None = None, **initial_context: Any) -> Logger:
    """Return a structlog logger with ``initial_context`` already bound.

    Example:
        >>> logger = get_logger(__name__, component="downloader")
        >>> logger.info("download-start", package="npm::left-pad:1.3.0")  # doctest: +SKIP
    """

    return structlog.get_logger(name).bind(**initial_context)


__all__ = [
    "CompressingFileHandler",
    "DEFAULT_QUIET_LOGGERS",
    "DEFAULT_RETENTION_DAYS",
    "LOG_FILENAME",
    "Logger",
    "configure_logging",
    "get_logger",
]
