"""
Logging for Explain Doctor

Library modules only call get_logger(). Handlers are attached by the host
with setup_logging(), normally from the loaded LoggingSettings.
"""

import copy
import logging
import sys
import time
from logging.handlers import TimedRotatingFileHandler
from pathlib import Path
from typing import Dict, Optional

from explain_doctor.core.config import LoggingSettings, get_settings
from explain_doctor.core.constants import APP_NAME, LOG_FILE

ROOT_LOGGER_NAME = APP_NAME.replace(' ', '')

CONSOLE_FORMAT = "%(asctime)s | %(levelname)-8s | %(name)s | %(message)s"
FILE_FORMAT = "%(asctime)s | %(levelname)-8s | %(name)s | %(filename)s:%(lineno)d | %(message)s"


class ColoredFormatter(logging.Formatter):
    """Console formatter that colours the level name when writing to a TTY"""

    LEVEL_COLORS = {
        logging.DEBUG: '\033[36m',     # Cyan
        logging.INFO: '\033[32m',      # Green
        logging.WARNING: '\033[33m',   # Yellow
        logging.ERROR: '\033[31m',     # Red
        logging.CRITICAL: '\033[35m',  # Magenta
    }
    RESET = '\033[0m'

    def __init__(self, use_colors: bool = True, stream=None):
        super().__init__(CONSOLE_FORMAT, datefmt="%H:%M:%S")
        stream = stream if stream is not None else sys.stdout
        self.use_colors = use_colors and hasattr(stream, 'isatty') and stream.isatty()

    def format(self, record: logging.LogRecord) -> str:
        color = self.LEVEL_COLORS.get(record.levelno) if self.use_colors else None
        if color:
            # Other handlers share the record
            record = copy.copy(record)
            record.levelname = f"{color}{record.levelname}{self.RESET}"
        return super().format(record)


_handlers: Dict[str, logging.Handler] = {}


def _app_logger() -> logging.Logger:
    return logging.getLogger(ROOT_LOGGER_NAME)


def setup_logging(
    settings: Optional[LoggingSettings] = None,
    console_colors: bool = True,
) -> logging.Logger:
    """
    Attach the console handler and, if enabled, a daily rotated log file

    Args:
        settings: Logging settings; the global settings are used when omitted
        console_colors: Colour level names on the console

    Returns:
        The application logger. Calling again replaces earlier handlers.
    """
    if settings is None:
        settings = get_settings().logging

    shutdown_logging()
    logger = _app_logger()
    level = getattr(logging, settings.level, logging.INFO)
    logger.setLevel(level)

    console = logging.StreamHandler(sys.stdout)
    console.setLevel(level)
    console.setFormatter(ColoredFormatter(use_colors=console_colors, stream=sys.stdout))
    logger.addHandler(console)
    _handlers['console'] = console

    if settings.file_enabled and settings.log_dir:
        log_dir = Path(settings.log_dir)
        log_dir.mkdir(parents=True, exist_ok=True)

        file_handler = TimedRotatingFileHandler(
            log_dir / LOG_FILE,
            when='midnight',
            backupCount=settings.retention_days,
            encoding='utf-8',
        )
        file_handler.suffix = "%Y-%m-%d"
        file_handler.setLevel(logging.DEBUG)  # File gets all levels
        file_handler.setFormatter(logging.Formatter(FILE_FORMAT, datefmt="%Y-%m-%d %H:%M:%S"))
        logger.addHandler(file_handler)
        _handlers['file'] = file_handler

    return logger


def shutdown_logging() -> None:
    """Detach and close the handlers added by setup_logging()"""
    logger = _app_logger()
    for handler in _handlers.values():
        logger.removeHandler(handler)
        handler.close()
    _handlers.clear()
    logger.setLevel(logging.NOTSET)


def get_logger(name: Optional[str] = None) -> logging.Logger:
    """
    Child of the application logger

    Example:
        >>> logger = get_logger('analysis.plan_builder')
        >>> logger.name
        'ExplainDoctor.analysis.plan_builder'
    """
    logger = _app_logger()
    return logger.getChild(name) if name else logger


def log_exception(logger: logging.Logger, exc: BaseException, message: str = "") -> None:
    """Log an exception with its traceback"""
    prefix = message or "Exception occurred"
    logger.error(f"{prefix}: {exc}", exc_info=exc)


class LogContext:
    """
    Logs start, completion time or failure of one operation

    Example:
        >>> with LogContext(logger, "Analyzing EXPLAIN plan"):
        ...     analyze()
        # Analyzing EXPLAIN plan... started
        # Analyzing EXPLAIN plan... completed in 0.02s
    """

    def __init__(self, logger: logging.Logger, operation: str, level: int = logging.INFO):
        self.logger = logger
        self.operation = operation
        self.level = level
        self.elapsed: Optional[float] = None
        self._started = 0.0

    def __enter__(self) -> 'LogContext':
        self._started = time.perf_counter()
        self.logger.log(self.level, f"{self.operation}... started")
        return self

    def __exit__(self, exc_type, exc_val, exc_tb) -> bool:
        self.elapsed = time.perf_counter() - self._started
        if exc_type is not None:
            self.logger.error(f"{self.operation}... failed after {self.elapsed:.2f}s: {exc_val}")
        else:
            self.logger.log(self.level, f"{self.operation}... completed in {self.elapsed:.2f}s")
        return False
