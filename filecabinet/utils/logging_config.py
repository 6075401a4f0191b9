"""
Logging Configuration
=====================

Console and JSON logging for the ``filecabinet`` logger tree.

Every record is stamped with the correlation ID of the batch run that
produced it. The engine hands its run's ID to each worker thread, so the
lines from one run can be picked out of an interleaved log.
"""

import logging
import logging.handlers
import json
import sys
import time
import uuid
from datetime import datetime, timezone
from pathlib import Path
from typing import Optional, TextIO
from dataclasses import dataclass, field
import threading


ROOT_LOGGER_NAME = "filecabinet"
LOG_FILE_NAME = "filecabinet.log"

_thread_local = threading.local()


def new_correlation_id() -> str:
    """Return a short random correlation ID."""
    return uuid.uuid4().hex[:8]


def get_correlation_id() -> str:
    """Get the current correlation ID for the thread."""
    if not hasattr(_thread_local, 'correlation_id'):
        _thread_local.correlation_id = new_correlation_id()
    return _thread_local.correlation_id


def set_correlation_id(correlation_id: str) -> None:
    """Set a correlation ID for the current thread."""
    _thread_local.correlation_id = correlation_id


class CorrelationFilter(logging.Filter):
    """Copies the emitting thread's correlation ID onto the record."""

    def filter(self, record: logging.LogRecord) -> bool:
        if not hasattr(record, "correlation_id"):
            record.correlation_id = get_correlation_id()
        return True


class JSONFormatter(logging.Formatter):
    """One JSON object per line, with the batch fields when present."""

    EXTRA_FIELDS = ("file_path", "operation", "outcome", "duration_ms")

    def format(self, record: logging.LogRecord) -> str:
        log_data = {
            "timestamp": datetime.fromtimestamp(record.created, timezone.utc).isoformat(),
            "level": record.levelname,
            "logger": record.name,
            "message": record.getMessage(),
            "correlation_id": getattr(record, "correlation_id", None),
        }

        for name in self.EXTRA_FIELDS:
            if hasattr(record, name):
                log_data[name] = getattr(record, name)

        if record.exc_info:
            log_data["exception"] = self.formatException(record.exc_info)

        return json.dumps(log_data, default=str)


class ConsoleFormatter(logging.Formatter):
    """Single-line console format, colored only on a terminal."""

    COLORS = {
        'DEBUG': '\033[36m',     # Cyan
        'INFO': '\033[32m',      # Green
        'WARNING': '\033[33m',   # Yellow
        'ERROR': '\033[31m',     # Red
        'CRITICAL': '\033[35m',  # Magenta
    }
    RESET = '\033[0m'

    def __init__(self, use_color: bool = False):
        super().__init__()
        self.use_color = use_color

    def format(self, record: logging.LogRecord) -> str:
        timestamp = datetime.fromtimestamp(record.created).strftime('%H:%M:%S')
        level = f"{record.levelname:8}"
        if self.use_color:
            level = f"{self.COLORS.get(record.levelname, '')}{level}{self.RESET}"

        msg = (
            f"[{timestamp}] {level} [{getattr(record, 'correlation_id', '-')}] "
            f"{record.name}: {record.getMessage()}"
        )
        if record.exc_info:
            msg += "\n" + self.formatException(record.exc_info)
        return msg


@dataclass
class LoggingConfig:
    """Configuration for the logging system."""
    level: str = "INFO"
    log_dir: Path = field(default_factory=lambda: Path.home() / ".filecabinet" / "logs")
    console_output: bool = True
    file_output: bool = False
    json_format: bool = False  # JSON on the console too
    max_file_size: int = 10 * 1024 * 1024  # 10MB
    backup_count: int = 5

    @classmethod
    def from_section(cls, section, verbose: int = 0) -> "LoggingConfig":
        """Build from the ``logging`` section of the config file.

        Any ``-v`` on the command line forces DEBUG.
        """
        return cls(
            level="DEBUG" if verbose else section.level,
            log_dir=section.log_dir,
            file_output=section.file_output,
            json_format=section.json_format,
        )


def _console_handler(config: LoggingConfig, stream: TextIO) -> logging.Handler:
    handler = logging.StreamHandler(stream)
    if config.json_format:
        handler.setFormatter(JSONFormatter())
    else:
        is_tty = hasattr(stream, "isatty") and stream.isatty()
        handler.setFormatter(ConsoleFormatter(use_color=is_tty))
    handler.addFilter(CorrelationFilter())
    return handler


def setup_logging(config: Optional[LoggingConfig] = None) -> None:
    """Install handlers on the ``filecabinet`` logger, replacing any before.

    Diagnostics go to stderr so stdout carries only the batch report.

    Args:
        config: Logging configuration. Uses defaults if not provided.
    """
    if config is None:
        config = LoggingConfig()

    level = logging.getLevelName(config.level.upper())
    if not isinstance(level, int):
        level = logging.INFO

    root_logger = logging.getLogger(ROOT_LOGGER_NAME)
    root_logger.setLevel(level)
    for handler in list(root_logger.handlers):
        root_logger.removeHandler(handler)
        handler.close()

    if config.console_output:
        root_logger.addHandler(_console_handler(config, sys.stderr))

    if config.file_output:
        config.log_dir.mkdir(parents=True, exist_ok=True)
        file_handler = logging.handlers.RotatingFileHandler(
            config.log_dir / LOG_FILE_NAME,
            maxBytes=config.max_file_size,
            backupCount=config.backup_count,
            encoding='utf-8'
        )
        file_handler.setFormatter(JSONFormatter())
        file_handler.addFilter(CorrelationFilter())
        root_logger.addHandler(file_handler)

    root_logger.propagate = False


def get_logger(name: str) -> logging.Logger:
    """Get a logger under the ``filecabinet`` namespace.

    Args:
        name: Name of the module (typically __name__).
    """
    if name == ROOT_LOGGER_NAME or name.startswith(ROOT_LOGGER_NAME + "."):
        return logging.getLogger(name)
    return logging.getLogger(f"{ROOT_LOGGER_NAME}.{name}")


class Timer:
    """Times a block and logs its duration with the outcome.

    Example:
        with Timer(logger, "batch.encrypt") as timer:
            ...
        timer.duration_ms
    """

    def __init__(self, logger: logging.Logger, operation: str):
        self.logger = logger
        self.operation = operation
        self.start_time = None
        self.duration_ms = 0.0

    def __enter__(self):
        self.start_time = time.perf_counter()
        return self

    def __exit__(self, exc_type, exc_val, exc_tb):
        self.duration_ms = round((time.perf_counter() - self.start_time) * 1000, 2)
        extra = {
            "operation": self.operation,
            "duration_ms": self.duration_ms,
            "outcome": "failure" if exc_type else "success",
        }
        if exc_type:
            self.logger.warning(f"{self.operation} aborted after {self.duration_ms} ms", extra=extra)
        else:
            self.logger.info(f"{self.operation} finished in {self.duration_ms} ms", extra=extra)
        return False
