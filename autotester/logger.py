"""
Unified logging for test sessions.
==================================
Provides consistent log formatting with emoji prefixes and
process-wide handler setup for the CLI and the daemon.
"""
import logging
import sys
from enum import Enum
from typing import Optional


LOG_FORMAT = "%(asctime)s | %(levelname)s | %(name)s | %(message)s"
DATE_FORMAT = "%Y-%m-%d %H:%M:%S"


class LogLevel(Enum):
    """Log level indicators with emoji prefixes."""
    PHASE = "🚀"
    STEP = "📋"
    SUCCESS = "✅"
    WARNING = "⚠️"
    ERROR = "❌"
    DEBUG = "🔍"
    INFO = "ℹ️"
    SAVE = "💾"
    LEARN = "📚"


class SessionLogger:
    """Unified logger for session and daemon lifecycle messages."""

    def __init__(self, name: str = "autotester", verbose: bool = True):
        self.logger = logging.getLogger(name)
        self.verbose = verbose

    def banner(self, title: str, *lines: str, width: int = 70):
        """Log a framed block of lines."""
        rule = "═" * width
        self.logger.info(rule)
        self.logger.info(f"  {title}")
        for line in lines:
            self.logger.info(f"  {line}")
        self.logger.info(rule)

    def phase(self, message: str):
        """Log a major phase start."""
        self.logger.info(f"{LogLevel.PHASE.value} [PHASE] {message}")

    def step(self, message: str):
        """Log a step within a phase."""
        self.logger.info(f"{LogLevel.STEP.value} {message}")

    def success(self, message: str):
        self.logger.info(f"{LogLevel.SUCCESS.value} {message}")

    def warning(self, message: str):
        self.logger.warning(f"{LogLevel.WARNING.value} {message}")

    def error(self, message: str):
        self.logger.error(f"{LogLevel.ERROR.value} {message}")

    def debug(self, message: str):
        """Log a debug message (only if verbose)."""
        if self.verbose:
            self.logger.debug(f"{LogLevel.DEBUG.value} [DEBUG] {message}")

    def info(self, message: str):
        self.logger.info(f"{LogLevel.INFO.value} {message}")

    def learn(self, message: str):
        self.logger.info(f"{LogLevel.LEARN.value} {message}")

    def save(self, filename: str):
        """Log a file save operation."""
        self.logger.info(f"{LogLevel.SAVE.value} Saved: {filename}")


def configure_logging(verbose: bool = False, log_file: Optional[str] = None) -> logging.Logger:
    """
    Configure process-wide logging and return the package logger.

    A file handler is added when *log_file* is given (the daemon log).
    """
    level = logging.DEBUG if verbose else logging.INFO
    handlers = [logging.StreamHandler(sys.stdout)]
    if log_file:
        handlers.append(logging.FileHandler(log_file, encoding="utf-8"))
    logging.basicConfig(
        level=level,
        format=LOG_FORMAT,
        datefmt=DATE_FORMAT,
        handlers=handlers,
        force=True,
    )
    logger = logging.getLogger("autotester")
    logger.debug(f"Logging configured with level {logging.getLevelName(level)}")
    return logger
