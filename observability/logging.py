from __future__ import annotations
import inspect
import logging
import sys
import json
import time
from functools import wraps
from typing import Any, Callable, Dict, Optional, Tuple
from datetime import datetime, timezone
from pathlib import Path

# Attributes every LogRecord carries; anything else arrived through ``extra=``
_STANDARD_ATTRS = frozenset(vars(logging.LogRecord('', 0, '', 0, '', None, None))) | {'message', 'asctime'}

# Context fields rendered inline by the console formatter
_CONSOLE_CONTEXT = ('project_id', 'duration_ms')

QUIET_LOGGERS: Tuple[str, ...] = ("uvicorn", "fastapi", "httpx")


def _extra_fields(record: logging.LogRecord) -> Dict[str, Any]:
    return {k: v for k, v in record.__dict__.items() if k not in _STANDARD_ATTRS}


class JSONFormatter(logging.Formatter):
    """One JSON object per line, with ``extra=`` fields merged in."""

    def __init__(self, service_name: str = "projectindex"):
        super().__init__()
        self.service_name = service_name

    def format(self, record: logging.LogRecord) -> str:
        entry: Dict[str, Any] = {
            "timestamp": datetime.fromtimestamp(record.created, tz=timezone.utc).isoformat(),
            "level": record.levelname,
            "service": self.service_name,
            "logger": record.name,
            "location": f"{record.module}.{record.funcName}:{record.lineno}",
            "message": record.getMessage(),
        }
        entry.update(_extra_fields(record))

        if record.exc_info:
            entry["exception"] = self.formatException(record.exc_info)

        return json.dumps(entry, default=str)


class ColoredFormatter(logging.Formatter):
    """Single-line console output, optionally ANSI coloured by level."""

    LEVEL_COLORS = {
        logging.DEBUG: '\033[36m',
        logging.INFO: '\033[32m',
        logging.WARNING: '\033[33m',
        logging.ERROR: '\033[31m',
        logging.CRITICAL: '\033[35m',
    }
    RESET = '\033[0m'

    def __init__(self, use_colors: bool = True):
        super().__init__(datefmt='%Y-%m-%d %H:%M:%S')
        self.use_colors = use_colors

    def format(self, record: logging.LogRecord) -> str:
        line = f"{self.formatTime(record, self.datefmt)} | {record.levelname:8} | {record.name} | {record.getMessage()}"

        context = [f"{key}={getattr(record, key)}" for key in _CONSOLE_CONTEXT if hasattr(record, key)]
        if context:
            line += f" ({', '.join(context)})"

        color = self.LEVEL_COLORS.get(record.levelno) if self.use_colors else None
        if color:
            line = f"{color}{line}{self.RESET}"

        if record.exc_info:
            line += "\n" + self.formatException(record.exc_info)
        return line


def _make_handler(handler: logging.Handler, level: int, formatter: logging.Formatter) -> logging.Handler:
    handler.setLevel(level)
    handler.setFormatter(formatter)
    return handler


def setup_logging(
    level: str = "INFO",
    service_name: str = "projectindex",
    log_file: Optional[str] = None,
    use_json: bool = False,
    use_colors: bool = True
) -> None:
    """Configure the root logger for the indexer service.

    Args:
        level: Log level name; unknown names fall back to INFO
        service_name: Service name stamped on JSON records
        log_file: Optional file that receives JSON records as well
        use_json: Emit JSON on the console instead of the coloured format
        use_colors: Colour console lines by level
    """
    numeric_level = getattr(logging, level.upper(), logging.INFO)

    root_logger = logging.getLogger()
    root_logger.handlers.clear()
    root_logger.setLevel(numeric_level)

    console_formatter = JSONFormatter(service_name) if use_json else ColoredFormatter(use_colors)
    root_logger.addHandler(_make_handler(logging.StreamHandler(sys.stdout), numeric_level, console_formatter))

    if log_file:
        Path(log_file).parent.mkdir(parents=True, exist_ok=True)
        # Files are always JSON
        root_logger.addHandler(
            _make_handler(logging.FileHandler(log_file), numeric_level, JSONFormatter(service_name))
        )

    for name in QUIET_LOGGERS:
        logging.getLogger(name).setLevel(logging.WARNING)


def get_logger(name: str) -> logging.Logger:
    """Get a logger instance with the given name."""
    return logging.getLogger(name)


def log_performance(logger_name: Optional[str] = None, threshold_ms: float = 1000.0):
    """Warn when a call takes longer than ``threshold_ms``; log and re-raise failures.

    Works on plain functions and coroutine functions alike.
    """
    def decorator(func: Callable):
        logger = get_logger(logger_name or func.__module__)

        def report(start_time: float, error: Optional[BaseException] = None) -> None:
            duration_ms = (time.perf_counter() - start_time) * 1000
            if error is not None:
                logger.error(
                    f"Function failed: {func.__name__}",
                    extra={"function_name": func.__name__, "duration_ms": duration_ms,
                           "error_type": type(error).__name__},
                    exc_info=True
                )
            elif duration_ms > threshold_ms:
                logger.warning(
                    f"Slow function execution: {func.__name__}",
                    extra={"function_name": func.__name__, "duration_ms": duration_ms,
                           "threshold_ms": threshold_ms}
                )

        if inspect.iscoroutinefunction(func):
            @wraps(func)
            async def async_wrapper(*args, **kwargs):
                start_time = time.perf_counter()
                try:
                    result = await func(*args, **kwargs)
                except Exception as e:
                    report(start_time, e)
                    raise
                report(start_time)
                return result
            return async_wrapper

        @wraps(func)
        def wrapper(*args, **kwargs):
            start_time = time.perf_counter()
            try:
                result = func(*args, **kwargs)
            except Exception as e:
                report(start_time, e)
                raise
            report(start_time)
            return result
        return wrapper

    return decorator
