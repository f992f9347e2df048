"""
Vitalink Structured Logger
===========================

:class:`VitaLogger` wraps one stdlib logger per component
(``vitalink.<tool>``).  Records go to a Rich handler on stderr and,
optionally, to a rotating log file as plain text or JSON lines.

Every record carries the component name and the current *operation*
(``load``, ``resolve_imports``), plus any extra keyword arguments
passed to the log call::

    log = VitaLogger("session")
    with log.operation("load"):
        log.debug("Loaded %d stubs", count, section=".vitalink.fstubs")

References:
    - Python logging HOWTO. https://docs.python.org/3/howto/logging.html
    - Rich library. https://github.com/Textualize/rich
"""

from __future__ import annotations

import json
import logging
import time
from contextlib import contextmanager
from datetime import datetime, timezone
from logging.handlers import RotatingFileHandler
from pathlib import Path
from typing import Any, Iterator

from rich.console import Console
from rich.logging import RichHandler
from rich.theme import Theme

_LOG_THEME = Theme(
    {
        "log.level.debug": "dim cyan",
        "log.level.info": "bold bright_blue",
        "log.level.warning": "bold yellow",
        "log.level.error": "bold red",
    }
)

_TEXT_FORMAT = "%(asctime)s | %(levelname)-8s | %(name)s | %(operation)s | %(message)s"

# Keyword arguments the stdlib logger understands itself
_LOGGING_KWARGS = frozenset({"exc_info", "stack_info", "stacklevel"})


class _JSONFormatter(logging.Formatter):
    """One JSON object per line: timestamp, level, logger, message,
    ``tool_name``, ``operation`` and the call's ``extra`` fields."""

    def format(self, record: logging.LogRecord) -> str:
        entry: dict[str, Any] = {
            "timestamp": datetime.fromtimestamp(
                record.created, tz=timezone.utc
            ).isoformat(),
            "level": record.levelname,
            "logger": record.name,
            "message": record.getMessage(),
            "tool_name": getattr(record, "tool_name", None),
            "operation": getattr(record, "operation", None),
        }
        fields = getattr(record, "vita_extra", None)
        if fields:
            entry["extra"] = fields
        if record.exc_info and record.exc_info[1] is not None:
            entry["exc_info"] = self.formatException(record.exc_info)
        return json.dumps(entry, ensure_ascii=False, default=str)


def _console_handler(level: int) -> logging.Handler:
    return RichHandler(
        level=level,
        console=Console(theme=_LOG_THEME, stderr=True),
        show_path=False,
        markup=False,
        rich_tracebacks=True,
    )


def _file_handler(
    log_file: str | Path, level: int, json_logs: bool, max_bytes: int, backup_count: int
) -> logging.Handler:
    path = Path(log_file)
    path.parent.mkdir(parents=True, exist_ok=True)
    handler = RotatingFileHandler(
        filename=str(path),
        maxBytes=max_bytes,
        backupCount=backup_count,
        encoding="utf-8",
    )
    handler.setLevel(level)
    if json_logs:
        handler.setFormatter(_JSONFormatter())
    else:
        handler.setFormatter(
            logging.Formatter(_TEXT_FORMAT, datefmt="%Y-%m-%dT%H:%M:%S%z")
        )
    return handler


class VitaLogger:
    """Component logger with an operation scope.

    Args:
        tool_name: Component name; the stdlib logger is ``vitalink.<tool_name>``.
        log_level: Minimum level name.
        log_file: Rotating log file, or ``None`` for none.
        json_logs: Write JSON lines to *log_file* instead of text.
        console_output: Attach the Rich stderr handler.
    """

    def __init__(
        self,
        tool_name: str,
        *,
        log_level: str = "INFO",
        log_file: str | Path | None = None,
        json_logs: bool = False,
        max_bytes: int = 10_485_760,
        backup_count: int = 5,
        console_output: bool = True,
    ) -> None:
        self._tool_name = tool_name
        self._operation: str | None = None

        level = getattr(logging, log_level.upper(), logging.INFO)
        self._logger = logging.getLogger(f"vitalink.{tool_name}")
        self._logger.setLevel(level)
        self._logger.propagate = False
        # Loggers are process-wide; a new VitaLogger replaces the old handlers
        for old in list(self._logger.handlers):
            self._logger.removeHandler(old)
            old.close()

        if console_output:
            self._logger.addHandler(_console_handler(level))
        if log_file:
            self._logger.addHandler(
                _file_handler(log_file, level, json_logs, max_bytes, backup_count)
            )

    @contextmanager
    def operation(self, name: str) -> Iterator[VitaLogger]:
        """Tag records logged inside the block with *name*."""
        previous, self._operation = self._operation, name
        try:
            yield self
        finally:
            self._operation = previous

    @contextmanager
    def timed(self, label: str) -> Iterator[None]:
        """Log the wall time of the block at DEBUG."""
        start = time.perf_counter()
        try:
            yield
        finally:
            self.debug("%s took %.3f sec", label, time.perf_counter() - start)

    def _log(self, level: int, msg: str, args: tuple[Any, ...], kwargs: dict[str, Any]) -> None:
        passthrough = {k: kwargs.pop(k) for k in list(kwargs) if k in _LOGGING_KWARGS}
        extra = {
            "tool_name": self._tool_name,
            "operation": self._operation or "-",
            "vita_extra": kwargs,
        }
        self._logger.log(level, msg, *args, extra=extra, **passthrough)

    def debug(self, msg: str, *args: Any, **kwargs: Any) -> None:
        self._log(logging.DEBUG, msg, args, kwargs)

    def info(self, msg: str, *args: Any, **kwargs: Any) -> None:
        self._log(logging.INFO, msg, args, kwargs)

    def warning(self, msg: str, *args: Any, **kwargs: Any) -> None:
        self._log(logging.WARNING, msg, args, kwargs)

    def error(self, msg: str, *args: Any, **kwargs: Any) -> None:
        self._log(logging.ERROR, msg, args, kwargs)

    @property
    def tool_name(self) -> str:
        return self._tool_name

    @property
    def underlying(self) -> logging.Logger:
        """The stdlib logger, for attaching extra handlers."""
        return self._logger


def from_config(tool_name: str, config: Any) -> VitaLogger:
    """Build a :class:`VitaLogger` from a :class:`~shared.config.VitalinkConfig`.

    ``global.debug`` forces DEBUG regardless of ``global.log_level``.
    """
    settings = config.global_settings
    return VitaLogger(
        tool_name,
        log_level="DEBUG" if settings.debug else settings.log_level,
        log_file=settings.log_file or None,
        json_logs=settings.log_json,
    )
