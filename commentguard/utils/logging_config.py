"""
Logging and in-process metrics for CommentGuard.

Production logs are one JSON object per line; development logs are plain
text with the structured context appended as key=value pairs.
"""

import json
import logging
import sys
import threading
import time
import traceback
from collections import deque
from contextvars import ContextVar
from datetime import datetime
from functools import wraps
from pathlib import Path
from typing import Any, Deque, Dict, Optional

from commentguard.config import settings


request_id_var: ContextVar[Optional[str]] = ContextVar("request_id", default=None)

QUIET_LOGGERS = ("httpx", "httpcore", "openai", "urllib3")
TIMING_WINDOW = 1000


def _context(record: logging.LogRecord) -> Dict[str, Any]:
    return getattr(record, "extra_data", None) or {}


class JSONFormatter(logging.Formatter):
    """One JSON document per record, for log shippers."""

    def format(self, record: logging.LogRecord) -> str:
        entry: Dict[str, Any] = {
            "timestamp": datetime.utcnow().isoformat() + "Z",
            "level": record.levelname,
            "logger": record.name,
            "message": record.getMessage(),
            "service": "commentguard",
            "environment": settings.environment,
        }

        request_id = request_id_var.get()
        if request_id:
            entry["request_id"] = request_id

        context = _context(record)
        if context:
            entry["data"] = context

        if record.exc_info and record.exc_info[0]:
            exc_type, exc, tb = record.exc_info
            entry["exception"] = {
                "type": exc_type.__name__,
                "message": str(exc),
                "traceback": traceback.format_exception(exc_type, exc, tb),
            }

        return json.dumps(entry, default=str)


class ConsoleFormatter(logging.Formatter):
    """Readable single-line format with structured context appended."""

    def __init__(self):
        super().__init__("%(asctime)s | %(levelname)-8s | %(name)s | %(message)s")

    def format(self, record: logging.LogRecord) -> str:
        line = super().format(record)
        context = _context(record)
        if context:
            line += " | " + " ".join(f"{k}={v}" for k, v in context.items())
        request_id = request_id_var.get()
        if request_id:
            line += f" [req={request_id[:8]}]"
        return line


class StructuredLogger:
    """
    Logger that takes keyword context alongside the message.

    Usage:
        logger = StructuredLogger(__name__)
        logger.info("Comment moderated", action="spam", confidence=0.92)
        logger.warning("Moderation skipped", error=str(e))
    """

    def __init__(self, name: str):
        self._logger = logging.getLogger(name)

    def _log(self, level: int, message: str, exc_info: bool = False, **context):
        if self._logger.isEnabledFor(level):
            self._logger.log(level, message, exc_info=exc_info, extra={"extra_data": context})

    def debug(self, message: str, **context):
        self._log(logging.DEBUG, message, **context)

    def info(self, message: str, **context):
        self._log(logging.INFO, message, **context)

    def warning(self, message: str, **context):
        self._log(logging.WARNING, message, **context)

    def error(self, message: str, exc_info: bool = False, **context):
        self._log(logging.ERROR, message, exc_info=exc_info, **context)


def setup_logging(
    level: str = "INFO",
    json_format: bool = True,
    log_file: Optional[str] = None,
):
    """
    Configure the root logger.

    Args:
        level: Log level name
        json_format: JSON lines on stdout instead of the console format
        log_file: Optional path for an additional JSON log file
    """
    numeric_level = getattr(logging, level.upper())

    root = logging.getLogger()
    root.setLevel(numeric_level)
    root.handlers.clear()

    stdout = logging.StreamHandler(sys.stdout)
    stdout.setFormatter(JSONFormatter() if json_format else ConsoleFormatter())
    root.addHandler(stdout)

    if log_file:
        Path(log_file).parent.mkdir(parents=True, exist_ok=True)
        file_handler = logging.FileHandler(log_file)
        file_handler.setFormatter(JSONFormatter())
        root.addHandler(file_handler)

    for name in QUIET_LOGGERS:
        logging.getLogger(name).setLevel(logging.WARNING)


def init_logging():
    """Configure logging for the current environment."""
    if settings.is_production:
        setup_logging(level="INFO", json_format=True, log_file="logs/commentguard.log")
    else:
        setup_logging(level="DEBUG" if settings.debug else "INFO", json_format=False)


# ============== METRICS ==============


class MetricsCollector:
    """
    Process-local counters and latency windows.

    Gate requests run on FastAPI's worker threads, so updates are locked.
    Each timing keeps its most recent TIMING_WINDOW samples.
    """

    def __init__(self):
        self._lock = threading.Lock()
        self._counters: Dict[str, int] = {}
        self._timings: Dict[str, Deque[float]] = {}
        self._started = time.time()

    def increment(self, name: str, value: int = 1):
        with self._lock:
            self._counters[name] = self._counters.get(name, 0) + value

    def timing(self, name: str, seconds: float):
        with self._lock:
            self._timings.setdefault(name, deque(maxlen=TIMING_WINDOW)).append(seconds)

    @staticmethod
    def _summary(samples) -> Dict[str, Any]:
        ordered = sorted(samples)
        n = len(ordered)
        return {
            "count": n,
            "min": ordered[0],
            "max": ordered[-1],
            "avg": sum(ordered) / n,
            "p50": ordered[n // 2],
            "p95": ordered[int(n * 0.95)] if n >= 20 else None,
        }

    def get_stats(self) -> Dict[str, Any]:
        with self._lock:
            counters = dict(self._counters)
            timings = {name: list(values) for name, values in self._timings.items() if values}

        return {
            "uptime_seconds": time.time() - self._started,
            "counters": counters,
            "timings": {name: self._summary(values) for name, values in timings.items()},
        }

    def reset(self):
        with self._lock:
            self._counters.clear()
            self._timings.clear()


metrics = MetricsCollector()


def track_moderation(func):
    """Count gate calls per resulting action and time them."""
    @wraps(func)
    def wrapper(*args, **kwargs):
        metrics.increment("moderation.total")
        start = time.perf_counter()
        try:
            result = func(*args, **kwargs)
        except Exception:
            metrics.increment("moderation.errors")
            raise
        metrics.timing("moderation.latency", time.perf_counter() - start)

        action = getattr(result, "action", None)
        metrics.increment(f"moderation.action.{action.value if action else 'skipped'}")
        return result

    return wrapper
