#!/usr/bin/env python3
"""
Logging utilities for ShellSync.

This module provides a centralized logging system with support for different
log levels, colored output, and file logging. All module loggers are children
of the ``shellsync`` logger and share its handlers.
"""

import sys
import logging
import logging.handlers
from pathlib import Path
from typing import Optional, Dict

from colorama import init as colorama_init, Fore, Style
from rich.console import Console
from rich.logging import RichHandler

colorama_init()

ROOT_LOGGER = 'shellsync'

FILE_FORMAT = (
    "%(asctime)s - %(name)s - %(levelname)s - "
    "%(filename)s:%(lineno)d - %(message)s"
)


class ColoredFormatter(logging.Formatter):
    """Custom formatter with colored output for console logging."""

    COLORS = {
        'DEBUG': Fore.CYAN,
        'INFO': Fore.GREEN,
        'WARNING': Fore.YELLOW,
        'ERROR': Fore.RED,
        'CRITICAL': Fore.MAGENTA,
    }
    RESET = Style.RESET_ALL

    def __init__(self, fmt: str = None, datefmt: str = None, use_colors: bool = True):
        super().__init__(fmt, datefmt)
        self.use_colors = use_colors

    def format(self, record: logging.LogRecord) -> str:
        if not self.use_colors:
            return super().format(record)

        # Color the levelname for this record only
        original_levelname = record.levelname
        color = self.COLORS.get(record.levelname, '')
        record.levelname = f"{color}{record.levelname}{self.RESET}"
        try:
            return super().format(record)
        finally:
            record.levelname = original_levelname


class ShellSyncLogger:
    """Logger wrapper; only the root ``shellsync`` logger owns handlers."""

    def __init__(self, name: str = ROOT_LOGGER):
        self.name = name
        self.logger = logging.getLogger(name)

        if name != ROOT_LOGGER:
            # Children propagate to the root handlers
            return

        self.logger.setLevel(logging.INFO)
        # Prevent duplicate handlers
        if not self.logger.handlers:
            self._setup_console_handler(rich_output=True)

    def _setup_console_handler(self, rich_output: bool):
        """Setup the stderr handler, replacing any previous one."""
        for handler in list(self.logger.handlers):
            if getattr(handler, '_shellsync_console', False):
                self.logger.removeHandler(handler)

        interactive = sys.stderr.isatty()
        if rich_output and interactive:
            console_handler = RichHandler(
                console=Console(stderr=True),
                show_time=False,
                show_path=False,
                rich_tracebacks=True
            )
            console_handler.setFormatter(logging.Formatter("%(message)s"))
        else:
            console_handler = logging.StreamHandler(sys.stderr)
            console_handler.setFormatter(ColoredFormatter(
                "[%(levelname)s] %(name)s: %(message)s",
                use_colors=interactive
            ))

        console_handler.setLevel(self.logger.level or logging.INFO)
        console_handler._shellsync_console = True
        self.logger.addHandler(console_handler)

    def add_file_handler(self, log_file: Path, rotating: bool = True):
        """Attach a file handler that records everything down to DEBUG."""
        log_file = Path(log_file).expanduser()
        log_file.parent.mkdir(parents=True, exist_ok=True)

        if rotating:
            file_handler = logging.handlers.RotatingFileHandler(
                log_file,
                maxBytes=5 * 1024 * 1024,  # 5MB
                backupCount=5
            )
        else:
            file_handler = logging.FileHandler(log_file)

        file_handler.setFormatter(logging.Formatter(FILE_FORMAT, datefmt='%Y-%m-%d %H:%M:%S'))
        file_handler.setLevel(logging.DEBUG)
        self.logger.addHandler(file_handler)

    def set_level(self, level: str):
        """Set the logging level."""
        level_map = {
            'DEBUG': logging.DEBUG,
            'INFO': logging.INFO,
            'WARNING': logging.WARNING,
            'ERROR': logging.ERROR,
            'CRITICAL': logging.CRITICAL,
        }

        log_level = level_map.get(level.upper(), logging.INFO)
        self.logger.setLevel(log_level)

        # Also update console handler level
        for handler in self.logger.handlers:
            if getattr(handler, '_shellsync_console', False):
                handler.setLevel(log_level)

    def debug(self, message: str, *args, **kwargs):
        """Log debug message."""
        self.logger.debug(message, *args, **kwargs)

    def info(self, message: str, *args, **kwargs):
        """Log info message."""
        self.logger.info(message, *args, **kwargs)

    def warning(self, message: str, *args, **kwargs):
        """Log warning message."""
        self.logger.warning(message, *args, **kwargs)

    def error(self, message: str, *args, **kwargs):
        """Log error message."""
        self.logger.error(message, *args, **kwargs)

    def critical(self, message: str, *args, **kwargs):
        """Log critical message."""
        self.logger.critical(message, *args, **kwargs)

    def exception(self, message: str, *args, **kwargs):
        """Log exception with traceback."""
        self.logger.exception(message, *args, **kwargs)


# Global logger instances
_loggers: Dict[str, ShellSyncLogger] = {}


def get_logger(name: str = ROOT_LOGGER) -> ShellSyncLogger:
    """Get or create a logger instance."""
    if name not in _loggers:
        if name != ROOT_LOGGER and ROOT_LOGGER not in _loggers:
            get_logger(ROOT_LOGGER)
        _loggers[name] = ShellSyncLogger(name)
    return _loggers[name]


def set_log_level(level: str):
    """Set logging level for the whole package."""
    get_logger().set_level(level)


def setup_logging(
    level: str = 'INFO',
    log_file: Optional[Path] = None,
    verbose: bool = False,
    rich_output: bool = True
):
    """Setup logging configuration."""
    if verbose:
        level = 'DEBUG'

    logger = get_logger()
    logger._setup_console_handler(rich_output=rich_output)
    set_log_level(level)

    if log_file:
        try:
            logger.add_file_handler(Path(log_file))
            logger.debug(f"Logging to file: {log_file}")
        except OSError as e:
            logger.warning(f"Could not setup log file {log_file}: {e}")
