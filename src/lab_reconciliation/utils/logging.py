# ============================================================================
# src/lab_reconciliation/utils/logging.py
# ============================================================================
"""
Logging setup for the reconciliation engine.

Fields bound with LogContext (record id, batch size, raw name...) travel on
each record as `log_context` and are rendered by both formatters, so a batch
can be followed through the resolver, validator and store.
"""

import asyncio
import functools
import json
import logging
import sys
import time
from datetime import datetime, timezone
from pathlib import Path
from typing import Iterable, Optional


# Third-party loggers that drown out pipeline messages at INFO
NOISY_LOGGERS = ("aiohttp.access", "uvicorn.access", "httpx")


def _context_of(record: logging.LogRecord) -> dict:
    return getattr(record, 'log_context', None) or {}


class ContextFormatter(logging.Formatter):
    """Plain-text formatter that appends bound context as [key=value ...]."""

    def __init__(self):
        super().__init__(
            '%(asctime)s - %(name)s - %(levelname)s - %(message)s',
            datefmt='%Y-%m-%d %H:%M:%S'
        )

    def format(self, record: logging.LogRecord) -> str:
        line = super().format(record)
        context = _context_of(record)
        if context:
            line += " [" + " ".join(f"{k}={v}" for k, v in context.items()) + "]"
        return line


class JsonFormatter(logging.Formatter):
    """One JSON object per line."""

    def format(self, record: logging.LogRecord) -> str:
        log_data = {
            'timestamp': datetime.fromtimestamp(record.created, tz=timezone.utc).isoformat(),
            'level': record.levelname,
            'logger': record.name,
            'message': record.getMessage(),
            'function': record.funcName,
            'line': record.lineno,
        }

        context = _context_of(record)
        if context:
            log_data['context'] = context

        if record.exc_info:
            log_data['exception'] = self.formatException(record.exc_info)

        return json.dumps(log_data, default=str, ensure_ascii=False)


def setup_logging(
    level: str = "INFO",
    log_file: Optional[Path] = None,
    format_json: bool = False,
    quiet: Iterable[str] = NOISY_LOGGERS
) -> None:
    """
    Configure the root logger for the API process or a script.

    Args:
        level: Logging level name
        log_file: Also write to this file when given
        format_json: Emit JSON lines instead of plain text
        quiet: Logger names capped at WARNING
    """
    formatter = JsonFormatter() if format_json else ContextFormatter()

    handlers = [logging.StreamHandler(sys.stdout)]
    if log_file:
        log_file = Path(log_file)
        log_file.parent.mkdir(parents=True, exist_ok=True)
        handlers.append(logging.FileHandler(log_file, encoding='utf-8'))

    for handler in handlers:
        handler.setFormatter(formatter)

    logging.basicConfig(level=getattr(logging, level.upper()), handlers=handlers, force=True)

    for name in quiet:
        logging.getLogger(name).setLevel(logging.WARNING)


class LogContext:
    """
    Bind key/value context to every record created inside the block.

    Nested contexts add to the outer one; inner values win on key clashes.

    Usage:
        with LogContext(logger, record_id=header.id):
            store.insert_lines(lines)
    """

    def __init__(self, logger: logging.Logger, **context):
        self.logger = logger
        self.context = context
        self.old_factory = None

    def __enter__(self):
        self.old_factory = logging.getLogRecordFactory()
        old_factory = self.old_factory
        context = self.context

        def record_factory(*args, **kwargs):
            record = old_factory(*args, **kwargs)
            record.log_context = {**_context_of(record), **context}
            return record

        logging.setLogRecordFactory(record_factory)
        return self

    def __exit__(self, exc_type, exc_val, exc_tb):
        logging.setLogRecordFactory(self.old_factory)


def log_performance(logger: logging.Logger, operation: str):
    """
    Decorator logging how long `operation` took, or how long until it failed.

    Works on plain functions and coroutines.
    """
    def report(started: float, error: Optional[Exception] = None):
        duration = time.perf_counter() - started
        if error is None:
            logger.info(f"{operation} completed in {duration:.3f}s")
        else:
            logger.error(f"{operation} failed after {duration:.3f}s: {error}")

    def decorator(func):
        if asyncio.iscoroutinefunction(func):
            @functools.wraps(func)
            async def async_wrapper(*args, **kwargs):
                started = time.perf_counter()
                try:
                    result = await func(*args, **kwargs)
                except Exception as e:
                    report(started, e)
                    raise
                report(started)
                return result

            return async_wrapper

        @functools.wraps(func)
        def wrapper(*args, **kwargs):
            started = time.perf_counter()
            try:
                result = func(*args, **kwargs)
            except Exception as e:
                report(started, e)
                raise
            report(started)
            return result

        return wrapper
    return decorator
